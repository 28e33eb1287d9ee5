# Block data structure
try:
    from .helpers import encode_block_fields, sha256_hex, meets_difficulty
except ImportError:
    from helpers import encode_block_fields, sha256_hex, meets_difficulty


class Block:
    def __init__(self, index, timestamp, data, previous_hash, nonce=0, hash=""):
        self.index = index
        self.timestamp = timestamp
        self.data = dict(data)
        self.previous_hash = previous_hash
        self.nonce = nonce
        # Empty until the block has been mined (or restored from storage)
        self.hash = hash

    def header_string(self) -> str:
        return encode_block_fields(self.index, self.timestamp, self.data, self.previous_hash, self.nonce)

    def compute_hash(self) -> str:
        """Recompute the digest from the current field values."""
        return sha256_hex(self.header_string())

    def meets_difficulty(self, difficulty: int) -> bool:
        return meets_difficulty(self.hash, difficulty)

    def to_dict(self) -> dict:
        # Field order is part of the serialized format
        return {
            "index": self.index,
            "timestamp": self.timestamp,
            "data": dict(self.data),
            "previousHash": self.previous_hash,
            "hash": self.hash,
            "nonce": self.nonce,
        }

    @classmethod
    def from_dict(cls, blk: dict) -> "Block":
        return cls(
            blk["index"],
            blk["timestamp"],
            blk["data"],
            blk["previousHash"],
            nonce=blk["nonce"],
            hash=blk["hash"],
        )

    def __eq__(self, other):
        if not isinstance(other, Block):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __repr__(self) -> str:
        return f"Block(index={self.index}, hash={self.hash[:10]}..., prev={self.previous_hash[:10]}...)"
