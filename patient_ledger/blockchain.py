# Patient Ledger Implementation
# Append-only chain of patient records secured by proof-of-work

import json
import threading
import time
from concurrent.futures import Executor, ThreadPoolExecutor
from typing import Callable, List, Optional

try:
    from .block import Block
    from .config import DEFAULT_DIFFICULTY, GENESIS_PREVIOUS_HASH, GENESIS_RECORD
    from .helpers import now_ms
    from .miner import Miner, MiningCancelled, MiningJob
    from .validation import (
        DeserializationError,
        ValidationError,
        validate_block_dict,
        validate_chain_integrity,
        validate_patient_record,
    )
except ImportError:
    from block import Block
    from config import DEFAULT_DIFFICULTY, GENESIS_PREVIOUS_HASH, GENESIS_RECORD
    from helpers import now_ms
    from miner import Miner, MiningCancelled, MiningJob
    from validation import (
        DeserializationError,
        ValidationError,
        validate_block_dict,
        validate_chain_integrity,
        validate_patient_record,
    )


class Blockchain:
    def __init__(self, difficulty: int = DEFAULT_DIFFICULTY, chain: Optional[List[Block]] = None):
        self.miner = Miner(difficulty)
        self.difficulty = difficulty
        self.access_logs = []
        if chain:
            # Restored from serialized form; genesis is chain[0]
            self.chain = list(chain)
        else:
            self.chain = []
            self.create_genesis()

    def create_genesis(self):
        # Hashed like any block, but never mined: exempt from the difficulty predicate
        block = Block(0, now_ms(), GENESIS_RECORD, GENESIS_PREVIOUS_HASH)
        block.hash = block.compute_hash()
        self.chain.append(block)
        self.log_access(
            user_id="system",
            action="BLOCK_ADDED",
            record_id="genesis",
            success=True,
            index=block.index,
            hash=block.hash,
        )

    @property
    def latest_block(self) -> Block:
        return self.chain[-1]

    def __len__(self):
        return len(self.chain)

    # --- Block construction and mining ---
    def create_block(self, record: dict) -> Block:
        """Build the next, not yet mined, block on top of the current tail."""
        tail = self.latest_block
        return Block(tail.index + 1, now_ms(), record, tail.hash)

    def add_block(
        self,
        record: dict,
        cancel_event: Optional[threading.Event] = None,
        on_progress: Optional[Callable[[int], None]] = None,
    ) -> Block:
        """Validate, mine and append one patient record.

        Raises ValidationError (chain unchanged) for an incomplete record and
        MiningCancelled (chain unchanged) when cancel_event is set mid-search.
        """
        try:
            normalized = validate_patient_record(record)
        except ValidationError as e:
            record_id = record.get("id") if isinstance(record, dict) else None
            self.log_access("system", "SUBMIT_RECORD", record_id, False, reason=e.message, field=e.field)
            raise
        return self._mine_and_append(normalized, cancel_event, on_progress)

    def add_block_async(self, record: dict, executor: Optional[Executor] = None) -> MiningJob:
        """Start mining a record in the background and return a cancellable job.

        The record is validated before the job starts, so ValidationError is
        raised here rather than from the job's result().
        """
        normalized = validate_patient_record(record)
        cancel_event = threading.Event()
        if executor is not None:
            future = executor.submit(self._mine_and_append, normalized, cancel_event, None)
        else:
            own = ThreadPoolExecutor(max_workers=1, thread_name_prefix="miner")
            future = own.submit(self._mine_and_append, normalized, cancel_event, None)
            own.shutdown(wait=False)
        return MiningJob(future, cancel_event)

    def _mine_and_append(self, record, cancel_event, on_progress) -> Block:
        block = self.create_block(record)
        started = time.time()
        try:
            self.miner.mine(block, cancel_event=cancel_event, on_progress=on_progress)
        except MiningCancelled as e:
            self.log_access("system", "MINE_CANCELLED", record.get("id"), False, reason=str(e), index=block.index)
            raise

        # A cancel that lands after the search finished still wins
        if cancel_event is not None and cancel_event.is_set():
            self.log_access("system", "MINE_CANCELLED", record.get("id"), False, index=block.index)
            raise MiningCancelled(f"Mining of block {block.index} cancelled")

        if block.previous_hash != self.latest_block.hash:
            raise RuntimeError("Chain tip changed while mining; only one append may be in flight")

        self.chain.append(block)
        self.log_access(
            user_id=record.get("doctor") or "system",
            action="BLOCK_ADDED",
            record_id=record.get("id"),
            success=True,
            index=block.index,
            hash=block.hash,
            prev_hash=block.previous_hash,
            nonce=block.nonce,
            mining_seconds=round(time.time() - started, 3),
        )
        return block

    # --- Verification ---
    def is_chain_valid(self) -> bool:
        """Check genesis, index continuity, linkage, recomputed hashes and proof-of-work.

        Returns False on the first violation. Tampering is reported as data,
        never raised. validate_chain_integrity() gives the reason.
        """
        ok, _msg = validate_chain_integrity(self)
        return ok

    # --- Queries ---
    def get_all_patients(self) -> List[dict]:
        return [dict(blk.data) for blk in self.chain[1:]]

    def find_patient_records(self, patient_id: str) -> List[dict]:
        # Patient ids are caller-assigned and may repeat across blocks
        return [dict(blk.data) for blk in self.chain[1:] if blk.data.get("id") == patient_id]

    def stats(self) -> dict:
        return {
            "total_blocks": len(self.chain),
            "total_patients": len(self.chain) - 1,
            "chain_valid": self.is_chain_valid(),
            "difficulty": self.difficulty,
        }

    # --- Lifecycle ---
    def reset(self):
        """Discard all history and start again from a fresh genesis block."""
        discarded = len(self.chain)
        self.chain = []
        self.create_genesis()
        self.log_access("system", "RESET", "-", True, discarded_blocks=discarded)

    def log_access(self, user_id, action, record_id, success, reason=None, **metadata):
        entry = {
            "timestamp": time.ctime(),
            "user_id": user_id,
            "action": action,
            "record_id": record_id,
            "success": success,
            "reason": reason,
        }
        # Merge extra metadata fields into the log entry
        for k, v in (metadata or {}).items():
            if k not in entry:
                entry[k] = v
        self.access_logs.append(entry)

    # --- Serialization ---
    def to_dict_list(self) -> List[dict]:
        return [blk.to_dict() for blk in self.chain]

    def to_json(self, indent: Optional[int] = None) -> str:
        return json.dumps(self.to_dict_list(), indent=indent, ensure_ascii=False)

    @classmethod
    def from_json(cls, text: str, *, difficulty: int) -> "Blockchain":
        """Rebuild a ledger from to_json() output.

        The serialized array does not carry the difficulty, so the caller must
        pass the one the chain was mined at.

        Raises DeserializationError for unparseable text or structurally
        invalid blocks. Hash consistency is not checked here; call
        is_chain_valid() on the result.
        """
        try:
            data = json.loads(text)
        except (TypeError, ValueError) as e:
            raise DeserializationError(f"Stored ledger is not valid JSON: {e}") from e

        if not isinstance(data, list):
            raise DeserializationError("Stored ledger must be a JSON array of blocks")
        if not data:
            raise DeserializationError("Stored ledger has no genesis block")

        blocks = []
        for position, blk in enumerate(data):
            validate_block_dict(blk, position)
            blocks.append(Block.from_dict(blk))
        return cls(difficulty=difficulty, chain=blocks)
