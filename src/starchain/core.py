import asyncio
import logging
import threading
import time
from typing import Any, Optional

from starchain.config import settings
from starchain.exceptions import ChainIntegrityError, ExpiredClaim, InvalidSignature, MalformedClaim
from starchain.schemas import Block
from starchain.utils import Clock, format_challenge, parse_challenge_time, unix_time
from starchain.wallet import verify_message

logger = logging.getLogger(__name__)


class Blockchain:
    """
    In-memory, append-only chain of star ownership claims.

    The genesis block is created by the constructor. Every mutation goes
    through `_add_block`, which holds the chain lock across validation,
    sealing and appending.
    """

    def __init__(
        self,
        genesis_message: Optional[str] = None,
        protocol_tag: Optional[str] = None,
        claim_window_seconds: Optional[int] = None,
        clock: Clock = time.time,
    ):
        self.genesis_message = genesis_message if genesis_message is not None else settings.genesis_message
        self.protocol_tag = protocol_tag if protocol_tag is not None else settings.protocol_tag
        self.claim_window_seconds = (
            claim_window_seconds if claim_window_seconds is not None else settings.claim_window_seconds
        )
        self.clock = clock

        self.chain: list[Block] = []
        self.height = -1
        self._lock = threading.RLock()

        self.initialize_chain()

    def initialize_chain(self):
        """Creates the Genesis Block if the chain is empty."""
        if self.height == -1:
            block = Block.from_data({'data': self.genesis_message})
            self._add_block(block)

    def get_chain_height(self) -> int:
        with self._lock:
            return self.height

    def get_latest_block(self) -> Block:
        with self._lock:
            return self.chain[-1]

    def get_blocks(self) -> list[Block]:
        """Snapshot of the chain, safe to iterate while claims are appended."""
        with self._lock:
            return list(self.chain)

    def _add_block(self, block: Block) -> Block:
        """
        Seals `block` onto the tail of the chain and returns the sealed block.
        Raises ChainIntegrityError, without touching the chain, if the current
        chain does not validate.
        """
        with self._lock:
            errors = self.validate_chain()
            if errors:
                logger.warning("Refusing to append: chain has %d invalid block(s)", len(errors))
                raise ChainIntegrityError(errors)

            previous_hash = self.chain[self.height].hash if self.height > -1 else None
            sealed = block.seal(previous_hash, self.height + 1, unix_time(self.clock))

            self.chain.append(sealed)
            self.height += 1
            logger.info("Appended block #%d %s", sealed.height, sealed.hash)
            return sealed

    def request_message_ownership_verification(self, address: str) -> str:
        """Returns the challenge message the owner of `address` has to sign."""
        return format_challenge(address, unix_time(self.clock), self.protocol_tag)

    async def verify_star_claim(self, address: str, message: str, signature: str) -> None:
        """
        Checks a signed challenge without touching the chain.
        Raises MalformedClaim, ExpiredClaim or InvalidSignature.
        """
        try:
            message_time = parse_challenge_time(message)
        except ValueError as e:
            logger.warning("Rejected claim for %s: %s", address, e)
            raise MalformedClaim(str(e)) from e

        elapsed = unix_time(self.clock) - message_time
        if elapsed >= self.claim_window_seconds:
            logger.warning("Rejected claim for %s: message is %ds old", address, elapsed)
            raise ExpiredClaim(elapsed, self.claim_window_seconds)

        # Key recovery is CPU bound, keep it off the event loop
        is_verified = await asyncio.to_thread(verify_message, message, address, signature)
        if not is_verified:
            logger.warning("Rejected claim for %s: invalid signature", address)
            raise InvalidSignature(address)

    async def submit_star(self, address: str, message: str, signature: str, star: Any) -> Block:
        """
        Registers `star` under `address` once the signed challenge checks out.
        Returns the block added to the chain.
        """
        await self.verify_star_claim(address, message, signature)
        block = Block.from_data({'owner': address, 'star': star})
        return self._add_block(block)

    def get_block_by_hash(self, block_hash: str) -> Optional[Block]:
        with self._lock:
            return next((b for b in self.chain if b.hash == block_hash), None)

    def get_block_by_height(self, height: int) -> Optional[Block]:
        with self._lock:
            return next((b for b in self.chain if b.height == height), None)

    def get_stars_by_wallet_address(self, address: str) -> list[dict]:
        """Decoded payloads of every block owned by `address`, in chain order."""
        stars = []
        for block in self.get_blocks():
            data = block.get_body_data()
            if isinstance(data, dict) and data.get('owner') == address:
                stars.append(data)
        return stars

    def validate_chain(self) -> list[str]:
        """
        Returns one error description per invalid block, or an empty list.
        A block is invalid if its hash does not match its content, or if the
        block its previous_block_hash points to is not in the chain.
        """
        with self._lock:
            errors = []
            for block in self.chain:
                is_block_valid = block.is_valid()
                has_previous_block = True
                if block.height > 0:
                    has_previous_block = self.get_block_by_hash(block.previous_block_hash) is not None

                if not is_block_valid or not has_previous_block:
                    error = f"Invalid block #{block.height} ({block.hash}):"
                    if not is_block_valid:
                        error += " block did not pass validation"
                    if not has_previous_block:
                        error += " previous block is missing"
                    errors.append(error)
            return errors
