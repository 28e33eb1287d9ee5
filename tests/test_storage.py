import json

import pytest

from patient_ledger.blockchain import Blockchain
from patient_ledger.storage import JsonFileStore, load_blockchain, save_blockchain


@pytest.fixture
def store(tmp_path):
    return JsonFileStore(str(tmp_path / "data" / "ledger.json"))


def test_get_missing_key(store):
    assert store.get_item("patientBlockchain") is None


def test_set_get_remove(store):
    store.set_item("a", "1")
    store.set_item("b", "2")
    assert store.get_item("a") == "1"
    store.remove_item("a")
    assert store.get_item("a") is None
    assert store.get_item("b") == "2"


def test_corrupt_file_treated_as_empty(store, capsys):
    store.set_item("a", "1")
    with open(store.filename, "w") as f:
        f.write("{not json")
    assert store.get_item("a") is None
    assert "corrupt" in capsys.readouterr().out


def test_load_without_saved_ledger(store):
    bc = load_blockchain(store, difficulty=1)
    assert len(bc.chain) == 1
    assert bc.is_chain_valid()


def test_save_and_load(store, filled):
    save_blockchain(store, filled)
    with open(store.filename) as f:
        raw = json.load(f)
    assert json.loads(raw["patientBlockchain"]) == filled.to_dict_list()

    loaded = load_blockchain(store, difficulty=1)
    assert loaded.to_dict_list() == filled.to_dict_list()
    assert loaded.is_chain_valid()


def test_unparseable_ledger_falls_back_to_fresh(store, capsys):
    store.set_item("patientBlockchain", "[{\"index\": \"zero\"}]")
    bc = load_blockchain(store, difficulty=1)
    assert len(bc.chain) == 1
    assert "Starting fresh" in capsys.readouterr().out


def test_tampered_ledger_still_loads(store, filled):
    filled.chain[1].data["name"] = "Mallory"
    save_blockchain(store, filled)
    loaded = load_blockchain(store, difficulty=1)
    assert len(loaded.chain) == 4
    assert not loaded.is_chain_valid()


def test_custom_key(store, bc):
    save_blockchain(store, bc, key="other")
    assert store.get_item("patientBlockchain") is None
    assert isinstance(Blockchain.from_json(store.get_item("other"), difficulty=1), Blockchain)


def test_load_requires_difficulty(store, filled):
    save_blockchain(store, filled)
    with pytest.raises(TypeError):
        load_blockchain(store)


def test_loaded_ledger_uses_given_difficulty(store, filled, record):
    save_blockchain(store, filled)
    loaded = load_blockchain(store, difficulty=1)
    assert loaded.difficulty == 1
    loaded.add_block({**record, "id": "P004"})
    save_blockchain(store, loaded)
    assert load_blockchain(store, difficulty=1).is_chain_valid()
