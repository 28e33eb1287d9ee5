# View and display functionality for the patient ledger
import json
from datetime import datetime
from typing import TYPE_CHECKING

try:
    from .validation import validate_chain_integrity
except ImportError:
    from validation import validate_chain_integrity

if TYPE_CHECKING:
    from .blockchain import Blockchain


def format_timestamp(ms) -> str:
    # Records restored from storage may lack a usable timestamp
    if isinstance(ms, bool) or not isinstance(ms, (int, float)):
        return "N/A"
    try:
        return datetime.fromtimestamp(ms / 1000).strftime("%Y-%m-%d %H:%M:%S")
    except (OverflowError, OSError, ValueError):
        return "N/A"


def _print_patient(p: dict):
    print(f" Patient: {p.get('name', 'N/A')} ({p.get('id', 'N/A')})")
    print(f" Age: {p.get('age', 'N/A')} | Gender: {p.get('gender', 'N/A')} | Blood Type: {p.get('bloodType', 'N/A')}")
    print(f" Doctor: {p.get('doctor', 'N/A')}")
    print(f" Diagnosis: {p.get('diagnosis', 'N/A')}")
    print(f" Treatment: {p.get('treatment', 'N/A')}")


def show_chain(bc: 'Blockchain'):
    for blk in bc.chain:
        title = "Genesis Block" if blk.index == 0 else f"Block #{blk.index}"
        print(f"\n--- {title} ---")
        print("Timestamp:", format_timestamp(blk.timestamp))
        if blk.index > 0:
            _print_patient(blk.data)
        print("Block Hash:", blk.hash)
        print("Prev Hash:", blk.previous_hash)
        print("Nonce:", blk.nonce)


def show_patients(bc: 'Blockchain'):
    patients = bc.get_all_patients()
    if not patients:
        print("No patient records yet.")
        return

    print(f"\n--- All Patients ({len(patients)}) ---")
    for p in patients:
        print()
        _print_patient(p)
        print(f" Added: {format_timestamp(p.get('timestamp'))}")


def show_patient_history(bc: 'Blockchain', patient_id: str):
    found = bc.find_patient_records(patient_id)
    if not found:
        print(f"No records found for patient {patient_id}.")
        return

    print(f"\nHistory for Patient {patient_id}:")
    for p in found:
        print(f"\n {format_timestamp(p.get('timestamp'))}")
        _print_patient(p)


def show_stats(bc: 'Blockchain'):
    stats = bc.stats()
    print("\n--- Ledger Statistics ---")
    print(f"Total Blocks: {stats['total_blocks']}")
    print(f"Patient Records: {stats['total_patients']}")
    print(f"Difficulty: {stats['difficulty']}")
    print(f"Chain: {'Valid' if stats['chain_valid'] else 'Invalid'}")


def validate_and_report(bc: 'Blockchain') -> bool:
    ok, msg = validate_chain_integrity(bc)
    bc.log_access("system", "VALIDATE_CHAIN", "-", ok, reason=None if ok else msg)
    if ok:
        print("Blockchain is valid.")
    else:
        print(f"Blockchain is INVALID: {msg}")
    return ok


def view_access_logs(bc: 'Blockchain'):
    if not bc.access_logs:
        print("No logs yet.")
        return

    print("\n--- Access Logs ---")
    for e in bc.access_logs:
        print(json.dumps(e, indent=2))
