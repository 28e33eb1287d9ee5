# Default settings for the patient ledger
import os


def env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw.strip())
    except ValueError:
        raise ValueError(f"Environment variable {name} must be a whole number, got {raw!r}") from None


# Number of leading "0" hex characters a mined block hash must have
DEFAULT_DIFFICULTY = env_int("PATIENT_LEDGER_DIFFICULTY", 2)

# previousHash carried by the genesis block
GENESIS_PREVIOUS_HASH = "0"

# Key and backing file used by the local key-value store
STORAGE_KEY = "patientBlockchain"
STORAGE_FILE = os.environ.get("PATIENT_LEDGER_STORAGE", "data/patient_ledger.json")

REQUIRED_FIELDS = ["id", "name", "age", "gender", "bloodType", "diagnosis", "treatment", "doctor"]
GENDERS = ["Male", "Female", "Other"]
BLOOD_TYPES = ["A+", "A-", "B+", "B-", "AB+", "AB-", "O+", "O-"]
MAX_AGE = 150
MAX_TEXT_LENGTH = 1000

GENESIS_RECORD = {
    "id": "0",
    "name": "Genesis Block",
    "age": 0,
    "gender": "",
    "bloodType": "",
    "diagnosis": "",
    "treatment": "",
    "doctor": "",
    "timestamp": 0,
}
