# Patient record intake
from typing import Optional, TYPE_CHECKING

try:
    from .config import GENDERS, BLOOD_TYPES
    from .validation import check_patient_record
except ImportError:
    from config import GENDERS, BLOOD_TYPES
    from validation import check_patient_record

if TYPE_CHECKING:
    from .blockchain import Blockchain


FORM_FIELDS = [
    ("id", "Patient ID"),
    ("name", "Full Name"),
    ("age", "Age"),
    ("gender", f"Gender ({'/'.join(GENDERS)})"),
    ("bloodType", f"Blood Type ({'/'.join(BLOOD_TYPES)})"),
    ("diagnosis", "Diagnosis"),
    ("treatment", "Treatment Plan"),
    ("doctor", "Doctor Name"),
]


def build_patient_record(form: dict) -> dict:
    """Turn raw form values into a record dict ready for Blockchain.add_block().

    Text is trimmed and age is parsed when it looks like a number; anything
    else is left for validation to reject.
    """
    record = {}
    for field, _label in FORM_FIELDS:
        value = form.get(field, "")
        record[field] = value.strip() if isinstance(value, str) else value

    age = record.get("age")
    if isinstance(age, str) and age.isdigit():
        record["age"] = int(age)
    return record


def input_patient_record(bc: 'Blockchain') -> Optional[dict]:
    print("\nEnter patient details:")

    form = {field: input(f"{label}: ").strip() for field, label in FORM_FIELDS}
    record = build_patient_record(form)

    ok, msg = check_patient_record(record)
    if not ok:
        print(f"Invalid patient record: {msg}")
        bc.log_access("system", "SUBMIT_RECORD", record.get("id"), False, reason=msg)
        return None

    return record
