import pytest

from starchain.core import Blockchain
from starchain.wallet import P2PKH, address_from_public_key, generate_private_key, sign_message

START_TIME = 1_700_000_000


class FakeClock:
    def __init__(self, now: float = START_TIME):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


class Wallet:
    """A throwaway key pair that signs challenges like an external wallet would."""

    def __init__(self, compressed: bool = True, address_type: str = P2PKH):
        self.key = generate_private_key()
        self.compressed = compressed
        self.address_type = address_type
        self.address = address_from_public_key(
            self.key.get_verifying_key(), compressed=compressed, address_type=address_type
        )

    def sign(self, message: str) -> str:
        return sign_message(message, self.key, compressed=self.compressed, address_type=self.address_type)


@pytest.fixture
def clock():
    return FakeClock()

@pytest.fixture
def chain(clock):
    return Blockchain(clock=clock)

@pytest.fixture
def alice():
    return Wallet()

@pytest.fixture
def bob():
    return Wallet()

@pytest.fixture
def claim(chain):
    """Requests a challenge for `wallet`, signs it and submits `star`."""
    async def _claim(wallet, star):
        message = chain.request_message_ownership_verification(wallet.address)
        return await chain.submit_star(wallet.address, message, wallet.sign(message), star)
    return _claim
