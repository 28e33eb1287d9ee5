import pytest

from patient_ledger.blockchain import Blockchain


@pytest.fixture
def record():
    return {
        "id": "P001",
        "name": "John Doe",
        "age": 25,
        "gender": "Male",
        "bloodType": "O+",
        "diagnosis": "Flu",
        "treatment": "Rest",
        "doctor": "Dr. Smith",
    }


@pytest.fixture
def bc():
    return Blockchain(difficulty=1)


@pytest.fixture
def filled(bc, record):
    bc.add_block(record)
    bc.add_block({**record, "id": "P002", "name": "Jane Roe", "gender": "Female", "bloodType": "AB-"})
    bc.add_block({**record, "id": "P003", "name": "Sam Poe", "gender": "Other", "age": 61})
    return bc
