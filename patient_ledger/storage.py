"""
Local key-value persistence for the ledger's serialized form.

The engine only knows to_json()/from_json(); this module plays the part of
the browser's local storage for the CLI and the Streamlit app.
"""
import json
import os
from typing import Optional

try:
    from .blockchain import Blockchain
    from .config import STORAGE_FILE, STORAGE_KEY
    from .validation import DeserializationError
except ImportError:
    from blockchain import Blockchain
    from config import STORAGE_FILE, STORAGE_KEY
    from validation import DeserializationError


class JsonFileStore:
    """String key-value store kept in a single JSON file."""

    def __init__(self, filename: str = STORAGE_FILE):
        self.filename = filename

    def _read(self) -> dict:
        try:
            with open(self.filename, "r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            return {}
        except json.JSONDecodeError:
            print(f"Warning: {self.filename} is corrupt, treating store as empty.")
            return {}
        return data if isinstance(data, dict) else {}

    def _write(self, data: dict):
        directory = os.path.dirname(self.filename)
        if directory:
            os.makedirs(directory, exist_ok=True)
        tmp = self.filename + ".tmp"
        with open(tmp, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
        os.replace(tmp, self.filename)

    def get_item(self, key: str) -> Optional[str]:
        return self._read().get(key)

    def set_item(self, key: str, value: str):
        data = self._read()
        data[key] = value
        self._write(data)

    def remove_item(self, key: str):
        data = self._read()
        if key in data:
            del data[key]
            self._write(data)


def load_blockchain(store: JsonFileStore, key: str = STORAGE_KEY, *, difficulty: int) -> Blockchain:
    """Return the stored ledger, or a fresh genesis-only one when absent or unreadable."""
    saved = store.get_item(key)
    if saved is None:
        print("No saved ledger found. Starting fresh.")
        return Blockchain(difficulty=difficulty)

    try:
        bc = Blockchain.from_json(saved, difficulty=difficulty)
    except DeserializationError as e:
        print(f"Saved ledger could not be loaded ({e}). Starting fresh.")
        return Blockchain(difficulty=difficulty)

    print(f"Ledger loaded from {store.filename} ({len(bc.chain)} blocks)")
    return bc


def save_blockchain(store: JsonFileStore, bc: Blockchain, key: str = STORAGE_KEY):
    store.set_item(key, bc.to_json())
