"""
Patient Blockchain System

An append-only ledger of patient medical records, secured with
SHA-256 hash links and a simple proof-of-work.
"""

__version__ = "1.0.0"
__author__ = "Healthcare Blockchain Team"

from .block import Block
from .blockchain import Blockchain
from .miner import Miner, MiningJob, MiningCancelled
from .records import build_patient_record
from .storage import JsonFileStore, load_blockchain, save_blockchain
from .validation import (
    ValidationError,
    DeserializationError,
    validate_patient_record,
    check_patient_record,
    validate_chain_integrity,
)
from .helpers import canonical_json, sha256_hex, encode_block_fields, meets_difficulty

__all__ = [
    "Block",
    "Blockchain",
    "Miner",
    "MiningJob",
    "MiningCancelled",
    "build_patient_record",
    "JsonFileStore",
    "load_blockchain",
    "save_blockchain",
    "ValidationError",
    "DeserializationError",
    "validate_patient_record",
    "check_patient_record",
    "validate_chain_integrity",
    "canonical_json",
    "sha256_hex",
    "encode_block_fields",
    "meets_difficulty",
]
