import hashlib
import json
import logging
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict

from starchain.utils import decode_body, encode_body

logger = logging.getLogger(__name__)


class Block(BaseModel):
    model_config = ConfigDict(frozen=True)

    hash: Optional[str] = None
    height: int = 0
    body: str
    time: int = 0
    previous_block_hash: Optional[str] = None

    @classmethod
    def from_data(cls, data: Any) -> "Block":
        """Creates an unsealed block carrying `data` as its payload."""
        return cls(body=encode_body(data))

    @property
    def is_sealed(self) -> bool:
        return self.hash is not None

    def calculate_hash(self) -> str:
        """
        Calculates the SHA-256 hash of the block content.
        We use the JSON representation of the block (excluding the hash itself) for consistency.
        """
        block_data = self.model_dump(exclude={'hash'})

        # Sort keys to ensure consistent hashing
        block_string = json.dumps(block_data, sort_keys=True)
        return hashlib.sha256(block_string.encode('utf-8')).hexdigest()

    def seal(self, previous_block_hash: Optional[str], height: int, timestamp: int) -> "Block":
        """Returns a sealed copy of this block with its linkage fields and hash fixed."""
        if self.is_sealed:
            raise ValueError(f"Block #{self.height} is already sealed")
        linked = self.model_copy(update={
            'previous_block_hash': previous_block_hash,
            'height': height,
            'time': timestamp,
        })
        return linked.model_copy(update={'hash': linked.calculate_hash()})

    def is_valid(self) -> bool:
        """True when the stored hash matches the block content."""
        return self.hash == self.calculate_hash()

    def get_body_data(self) -> Optional[Any]:
        """Decodes the payload, or returns None when the stored body is malformed."""
        try:
            return decode_body(self.body)
        except ValueError as e:
            logger.debug("Could not decode body of block #%s: %s", self.height, e)
            return None
