# Proof-of-work mining
import threading
from concurrent.futures import CancelledError, Future
from typing import Callable, Optional, TYPE_CHECKING

try:
    from .helpers import sha256_hex, meets_difficulty
except ImportError:
    from helpers import sha256_hex, meets_difficulty

if TYPE_CHECKING:
    from .block import Block

MAX_DIFFICULTY = 64  # length of a SHA-256 hex digest


class MiningCancelled(Exception):
    """The proof-of-work search was stopped before a valid nonce was found."""


class Miner:
    def __init__(self, difficulty: int, progress_interval: int = 1000):
        if isinstance(difficulty, bool) or not isinstance(difficulty, int):
            raise ValueError("Difficulty must be an integer")
        if difficulty < 0 or difficulty > MAX_DIFFICULTY:
            raise ValueError(f"Difficulty must be between 0 and {MAX_DIFFICULTY}")
        self.difficulty = difficulty
        self.progress_interval = max(1, int(progress_interval))

    def mine(
        self,
        block: 'Block',
        cancel_event: Optional[threading.Event] = None,
        on_progress: Optional[Callable[[int], None]] = None,
    ) -> 'Block':
        """Search nonces upward from block.nonce until the hash meets the difficulty.

        The winning nonce and hash are written to the block, which is returned.
        Raises MiningCancelled when cancel_event is set during the search; the
        block's hash is left untouched in that case.
        """
        nonce = block.nonce
        while True:
            if cancel_event is not None and cancel_event.is_set():
                raise MiningCancelled(f"Mining of block {block.index} cancelled at nonce {nonce}")

            block.nonce = nonce
            candidate = sha256_hex(block.header_string())
            if meets_difficulty(candidate, self.difficulty):
                block.hash = candidate
                return block

            nonce += 1
            if on_progress is not None and nonce % self.progress_interval == 0:
                on_progress(nonce)


class MiningJob:
    """Handle on a block being mined in the background."""

    def __init__(self, future: Future, cancel_event: threading.Event):
        self.future = future
        self.cancel_event = cancel_event

    def cancel(self) -> None:
        self.cancel_event.set()
        self.future.cancel()

    def cancelled(self) -> bool:
        """True only when the job ended without appending a block because of cancel()."""
        if self.future.cancelled():
            return True
        if not self.future.done():
            return False
        return isinstance(self.future.exception(), MiningCancelled)

    def done(self) -> bool:
        return self.future.done()

    def result(self, timeout: Optional[float] = None):
        """Wait for the mined block. Raises MiningCancelled if the job was cancelled."""
        try:
            return self.future.result(timeout)
        except CancelledError:
            raise MiningCancelled("Mining job cancelled before it started")
