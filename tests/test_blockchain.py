import json
import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from patient_ledger.blockchain import Blockchain
from patient_ledger.config import GENESIS_RECORD
from patient_ledger.miner import MiningCancelled
from patient_ledger.validation import ValidationError, DeserializationError, validate_chain_integrity


def test_new_ledger_has_valid_genesis():
    bc = Blockchain()
    assert len(bc.chain) == 1
    genesis = bc.chain[0]
    assert genesis.index == 0
    assert genesis.previous_hash == "0"
    assert genesis.nonce == 0
    assert genesis.data == GENESIS_RECORD
    assert genesis.hash == genesis.compute_hash()
    assert bc.is_chain_valid()
    assert bc.get_all_patients() == []


def test_ledgers_are_independent(record):
    a = Blockchain(difficulty=1)
    b = Blockchain(difficulty=1)
    a.add_block(record)
    assert len(a) == 2
    assert len(b) == 1


def test_create_block_reads_tail(bc, record, mocker):
    mocker.patch("patient_ledger.blockchain.now_ms", return_value=1700000000123)
    blk = bc.create_block(record)
    assert blk.index == 1
    assert blk.timestamp == 1700000000123
    assert blk.previous_hash == bc.chain[0].hash
    assert blk.nonce == 0
    assert blk.hash == ""
    assert len(bc.chain) == 1


def test_add_patient_scenario(record):
    bc = Blockchain()
    blk = bc.add_block(record)

    assert len(bc.chain) == 2
    assert bc.chain[1] is blk
    assert bc.chain[1].previous_hash == bc.chain[0].hash
    assert blk.hash.startswith("0" * bc.difficulty)
    assert bc.is_chain_valid()

    patients = bc.get_all_patients()
    assert len(patients) == 1
    assert isinstance(patients[0]["timestamp"], int)
    assert patients[0] == {**record, "timestamp": patients[0]["timestamp"]}


def test_missing_doctor_rejected(bc, record):
    del record["doctor"]
    with pytest.raises(ValidationError) as exc:
        bc.add_block(record)
    assert exc.value.field == "doctor"
    assert len(bc.chain) == 1
    assert bc.access_logs[-1]["success"] is False


def test_append_keeps_chain_valid(filled, record):
    assert filled.is_chain_valid()
    filled.add_block({**record, "id": "P004"})
    assert filled.is_chain_valid()
    assert [b.index for b in filled.chain] == [0, 1, 2, 3, 4]


def test_every_mined_block_meets_difficulty(filled):
    for blk in filled.chain[1:]:
        assert blk.hash.startswith("0" * filled.difficulty)


def test_get_all_patients_in_append_order(filled):
    patients = filled.get_all_patients()
    assert [p["id"] for p in patients] == ["P001", "P002", "P003"]


def test_get_all_patients_returns_copies(filled):
    filled.get_all_patients()[0]["name"] = "Mallory"
    assert filled.chain[1].data["name"] == "John Doe"
    assert filled.is_chain_valid()


def test_find_patient_records(filled, record):
    filled.add_block({**record, "diagnosis": "Recovered"})
    found = filled.find_patient_records("P001")
    assert [p["diagnosis"] for p in found] == ["Flu", "Recovered"]
    assert filled.find_patient_records("nobody") == []


@pytest.mark.parametrize("mutate", [
    lambda b: b.data.__setitem__("diagnosis", "Healthy"),
    lambda b: setattr(b, "timestamp", b.timestamp + 1),
    lambda b: setattr(b, "index", 7),
    lambda b: setattr(b, "nonce", b.nonce + 1),
    lambda b: setattr(b, "previous_hash", "f" * 64),
    lambda b: setattr(b, "hash", "0" * 64),
])
def test_tampering_detected(filled, mutate):
    mutate(filled.chain[2])
    assert not filled.is_chain_valid()


def test_tampered_genesis_detected(filled):
    filled.chain[0].data["name"] = "Forged"
    assert not filled.is_chain_valid()


def test_rehashed_tampering_still_detected(filled):
    # Recomputing the tampered block's hash breaks the next block's link
    blk = filled.chain[1]
    blk.data["diagnosis"] = "Healthy"
    filled.miner.mine(blk)
    assert not filled.is_chain_valid()


def test_skipped_proof_of_work_detected(bc, record):
    blk = bc.create_block(record)
    blk.hash = blk.compute_hash()
    while blk.hash.startswith("0"):
        blk.nonce += 1
        blk.hash = blk.compute_hash()
    bc.chain.append(blk)
    assert not bc.is_chain_valid()


def test_json_round_trip(filled):
    restored = Blockchain.from_json(filled.to_json(), difficulty=filled.difficulty)
    assert len(restored.chain) == len(filled.chain)
    assert restored.to_dict_list() == filled.to_dict_list()
    assert restored.is_chain_valid() is True


def test_json_round_trip_preserves_invalidity(filled):
    filled.chain[1].data["age"] = 99
    restored = Blockchain.from_json(filled.to_json(), difficulty=filled.difficulty)
    assert restored.to_dict_list() == filled.to_dict_list()
    assert restored.is_chain_valid() is False


def test_to_json_format(filled):
    data = json.loads(filled.to_json())
    assert isinstance(data, list)
    assert list(data[1]) == ["index", "timestamp", "data", "previousHash", "hash", "nonce"]
    assert data[1]["data"]["name"] == "John Doe"
    assert data[0]["previousHash"] == "0"


def test_restored_ledger_accepts_new_blocks(filled, record):
    restored = Blockchain.from_json(filled.to_json(), difficulty=1)
    restored.add_block({**record, "id": "P010"})
    assert restored.chain[-1].previous_hash == filled.chain[-1].hash
    assert restored.is_chain_valid()


@pytest.mark.parametrize("text", [
    "not json",
    "{}",
    "[]",
    '"chain"',
    '[{"index": 0}]',
    None,
])
def test_from_json_malformed(text):
    with pytest.raises(DeserializationError):
        Blockchain.from_json(text, difficulty=1)


@pytest.mark.parametrize("field,value", [
    ("index", "0"),
    ("index", -1),
    ("timestamp", True),
    ("timestamp", "yesterday"),
    ("data", ["P001"]),
    ("previousHash", 0),
    ("hash", None),
    ("nonce", -5),
    ("nonce", 1.5),
])
def test_from_json_wrong_types(filled, field, value):
    data = filled.to_dict_list()
    data[1][field] = value
    with pytest.raises(DeserializationError):
        Blockchain.from_json(json.dumps(data), difficulty=1)


def test_reset_discards_history(filled):
    filled.reset()
    assert len(filled.chain) == 1
    assert filled.get_all_patients() == []
    assert filled.is_chain_valid()
    assert filled.access_logs[-1]["action"] == "RESET"
    assert filled.access_logs[-1]["discarded_blocks"] == 4
    assert filled.chain[0].hash == filled.chain[0].compute_hash()


def test_stats(filled):
    assert filled.stats() == {
        "total_blocks": 4,
        "total_patients": 3,
        "chain_valid": True,
        "difficulty": 1,
    }


def test_add_block_logs_access(bc, record):
    blk = bc.add_block(record)
    entry = bc.access_logs[-1]
    assert entry["action"] == "BLOCK_ADDED"
    assert entry["record_id"] == "P001"
    assert entry["user_id"] == "Dr. Smith"
    assert entry["hash"] == blk.hash
    assert entry["nonce"] == blk.nonce


def test_cancelled_add_block_leaves_chain_unmodified(record):
    bc = Blockchain(difficulty=64)
    event = threading.Event()

    def progress(nonce):
        event.set()

    with pytest.raises(MiningCancelled):
        bc.add_block(record, cancel_event=event, on_progress=progress)
    assert len(bc.chain) == 1
    assert bc.access_logs[-1]["action"] == "MINE_CANCELLED"


def test_add_block_async_completes(bc, record):
    job = bc.add_block_async(record)
    blk = job.result(timeout=30)
    assert job.done()
    assert bc.chain[-1] is blk
    assert bc.is_chain_valid()


def test_add_block_async_with_executor(bc, record):
    with ThreadPoolExecutor(max_workers=1) as pool:
        blk = bc.add_block_async(record, executor=pool).result(timeout=30)
    assert len(bc.chain) == 2
    assert blk.index == 1


def test_add_block_async_cancel(record):
    bc = Blockchain(difficulty=64)
    job = bc.add_block_async(record)
    job.cancel()
    with pytest.raises(MiningCancelled):
        job.result(timeout=30)
    assert job.cancelled()
    assert len(bc.chain) == 1


def test_add_block_async_validates_upfront(bc, record):
    record["age"] = ""
    with pytest.raises(ValidationError):
        bc.add_block_async(record)
    assert len(bc.chain) == 1


def test_from_json_requires_difficulty(filled):
    with pytest.raises(TypeError):
        Blockchain.from_json(filled.to_json())


@pytest.mark.parametrize("difficulty", [0, 1, 3])
def test_json_round_trip_keeps_mining_difficulty(record, difficulty):
    bc = Blockchain(difficulty=difficulty)
    bc.add_block(record)
    restored = Blockchain.from_json(bc.to_json(), difficulty=difficulty)
    assert restored.difficulty == difficulty
    assert restored.is_chain_valid() is True
    restored.add_block({**record, "id": "P002"})
    assert restored.chain[-1].meets_difficulty(difficulty)
    assert restored.is_chain_valid() is True


def test_index_gap_invalidates_chain(bc, record):
    blk = bc.create_block(record)
    blk.index = 5
    bc.miner.mine(blk)
    bc.chain.append(blk)
    assert bc.is_chain_valid() is False
    assert validate_chain_integrity(bc) == (False, "Block index discontinuity at block 5")
    assert bc.stats()["chain_valid"] is False

    restored = Blockchain.from_json(bc.to_json(), difficulty=bc.difficulty)
    assert restored.is_chain_valid() is False
    assert validate_chain_integrity(restored)[0] is False


def test_rehashed_genesis_rejected_by_both_validators(bc):
    bc.chain[0].previous_hash = "1"
    bc.chain[0].hash = bc.chain[0].compute_hash()
    assert bc.is_chain_valid() is False
    assert validate_chain_integrity(bc) == (False, "Genesis block must have the sentinel previous hash")


def test_completed_async_job_is_not_cancelled(bc, record):
    job = bc.add_block_async(record)
    blk = job.result(timeout=30)
    job.cancel()
    assert job.cancelled() is False
    assert job.result(timeout=30) is blk
    assert len(bc.chain) == 2
