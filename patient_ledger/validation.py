# Validation functions for the patient ledger
import re
from typing import Any, Tuple, TYPE_CHECKING

try:
    from .config import REQUIRED_FIELDS, GENDERS, BLOOD_TYPES, MAX_AGE, MAX_TEXT_LENGTH, GENESIS_PREVIOUS_HASH
    from .helpers import canonical_json, now_ms
except ImportError:
    from config import REQUIRED_FIELDS, GENDERS, BLOOD_TYPES, MAX_AGE, MAX_TEXT_LENGTH, GENESIS_PREVIOUS_HASH
    from helpers import canonical_json, now_ms

if TYPE_CHECKING:
    from .blockchain import Blockchain


class ValidationError(ValueError):
    """A submitted patient record is missing a required field or has a bad value."""

    def __init__(self, field: str, message: str):
        super().__init__(message)
        self.field = field
        self.message = message


class DeserializationError(ValueError):
    """Serialized ledger text could not be turned back into blocks."""


BLOCK_FIELDS = ["index", "timestamp", "data", "previousHash", "hash", "nonce"]

# Tab, newline and carriage return are allowed in free-text fields
CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")


def _is_int(value: Any) -> bool:
    # bool is an int subclass; JSON true/false must not pass as a number
    return isinstance(value, int) and not isinstance(value, bool)


def _normalize_age(value: Any) -> int:
    if _is_int(value):
        age = value
    elif isinstance(value, float) and value.is_integer():
        age = int(value)
    elif isinstance(value, str):
        try:
            age = int(value.strip())
        except ValueError:
            raise ValidationError("age", "Age must be a whole number")
    else:
        raise ValidationError("age", "Age must be a whole number")

    if age < 0 or age > MAX_AGE:
        raise ValidationError("age", f"Age must be between 0 and {MAX_AGE}")
    return age


def _check_text(field: str, value: str) -> None:
    if len(value) > MAX_TEXT_LENGTH:
        raise ValidationError(field, f"Field {field} is too long. Maximum {MAX_TEXT_LENGTH} characters.")
    if CONTROL_CHARS.search(value):
        raise ValidationError(field, f"Field {field} contains control characters")


def validate_patient_record(record: Any) -> dict:
    """Check a submitted record and return the normalized copy that goes into a block.

    Raises ValidationError on the first problem found. Required string fields
    are stripped, age is converted to int and a capture timestamp is assigned
    when the caller did not provide one. Text is never rewritten beyond
    trimming: over-long text, control characters and extra values that
    cannot be encoded as JSON are rejected.
    """
    if not isinstance(record, dict):
        raise ValidationError("record", "Patient record must be a mapping of fields")

    for field in REQUIRED_FIELDS:
        value = record.get(field)
        if value is None:
            raise ValidationError(field, f"Missing required field: {field}")
        if isinstance(value, str) and not value.strip():
            raise ValidationError(field, f"Empty value for required field: {field}")

    normalized = dict(record)
    for field in REQUIRED_FIELDS:
        if field == "age":
            continue
        value = record[field]
        if not isinstance(value, str):
            raise ValidationError(field, f"Field {field} must be text")
        normalized[field] = value.strip()

    normalized["age"] = _normalize_age(record["age"])

    if normalized["gender"] not in GENDERS:
        raise ValidationError("gender", f"Invalid gender. Must be one of: {', '.join(GENDERS)}")
    if normalized["bloodType"] not in BLOOD_TYPES:
        raise ValidationError("bloodType", f"Invalid blood type. Must be one of: {', '.join(BLOOD_TYPES)}")

    for field, value in normalized.items():
        if not isinstance(field, str):
            raise ValidationError(str(field), "Field names must be text")
        if isinstance(value, str):
            _check_text(field, value)
        elif field not in REQUIRED_FIELDS and field != "timestamp":
            try:
                canonical_json(value)
            except (TypeError, ValueError):
                raise ValidationError(field, f"Field {field} holds a value that cannot be stored as JSON")

    timestamp = record.get("timestamp")
    if timestamp is None:
        normalized["timestamp"] = now_ms()
    elif not _is_int(timestamp) or timestamp < 0:
        raise ValidationError("timestamp", "Timestamp must be a non-negative integer (ms since epoch)")

    return normalized


def check_patient_record(record: Any) -> Tuple[bool, str]:
    """Tuple-style wrapper used by the CLI and GUI before submitting."""
    try:
        validate_patient_record(record)
    except ValidationError as e:
        return False, e.message
    return True, "Valid patient record"


def validate_block_dict(raw: Any, position: int) -> None:
    """Structural checks on one serialized block; raises DeserializationError."""
    if not isinstance(raw, dict):
        raise DeserializationError(f"Block at position {position} is not an object")

    for field in BLOCK_FIELDS:
        if field not in raw:
            raise DeserializationError(f"Block at position {position} is missing field: {field}")

    if not _is_int(raw["index"]) or raw["index"] < 0:
        raise DeserializationError(f"Block at position {position}: index must be a non-negative integer")
    if not _is_int(raw["timestamp"]):
        raise DeserializationError(f"Block at position {position}: timestamp must be an integer")
    if not isinstance(raw["data"], dict):
        raise DeserializationError(f"Block at position {position}: data must be an object")
    if not isinstance(raw["previousHash"], str):
        raise DeserializationError(f"Block at position {position}: previousHash must be a string")
    if not isinstance(raw["hash"], str):
        raise DeserializationError(f"Block at position {position}: hash must be a string")
    if not _is_int(raw["nonce"]) or raw["nonce"] < 0:
        raise DeserializationError(f"Block at position {position}: nonce must be a non-negative integer")


def validate_chain_integrity(bc: 'Blockchain') -> Tuple[bool, str]:
    """Diagnostic counterpart of Blockchain.is_chain_valid() that says what broke."""
    if not bc.chain:
        return False, "Chain has no genesis block"

    genesis = bc.chain[0]
    if genesis.index != 0:
        return False, "Genesis block must have index 0"
    if genesis.previous_hash != GENESIS_PREVIOUS_HASH:
        return False, "Genesis block must have the sentinel previous hash"
    if genesis.hash != genesis.compute_hash():
        return False, "Stored hash does not match contents of the genesis block"

    for i in range(1, len(bc.chain)):
        current_block = bc.chain[i]
        prev_block = bc.chain[i - 1]

        if current_block.index != prev_block.index + 1:
            return False, f"Block index discontinuity at block {current_block.index}"

        if current_block.previous_hash != prev_block.hash:
            return False, f"Hash linkage broken at block {current_block.index}"

        if current_block.hash != current_block.compute_hash():
            return False, f"Stored hash does not match contents of block {current_block.index}"

        if not current_block.meets_difficulty(bc.difficulty):
            return False, f"Block {current_block.index} does not satisfy difficulty {bc.difficulty}"

    return True, "Chain integrity validated"

