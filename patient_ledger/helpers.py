"""
Hashing utilities for the patient ledger.

All functions except now_ms() are deterministic and side-effect free.
"""
import hashlib
import json
import time
from typing import Any


def canonical_json(obj: Any) -> str:
    """Serialize a value into a canonical JSON string (sorted keys, no whitespace)."""
    return json.dumps(obj, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def sha256_hex(text: str) -> str:
    """Return the SHA-256 hex digest of the UTF-8 encoded text."""
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def encode_block_fields(index: int, timestamp: int, data: dict, previous_hash: str, nonce: int) -> str:
    """Canonical encoding of the hashed block fields.

    Keys are sorted, so the caller's dict ordering (including the order of
    the patient fields inside ``data``) never changes the digest.
    """
    return canonical_json({
        "index": index,
        "timestamp": timestamp,
        "data": data,
        "previousHash": previous_hash,
        "nonce": nonce,
    })


def meets_difficulty(block_hash: str, difficulty: int) -> bool:
    """True when the hash starts with ``difficulty`` zero characters."""
    return block_hash.startswith("0" * difficulty)


def now_ms() -> int:
    return int(time.time() * 1000)
