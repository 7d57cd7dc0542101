import asyncio

import pytest

from starchain.core import Blockchain
from starchain.exceptions import ChainIntegrityError
from starchain.schemas import Block
from starchain.utils import encode_body

STAR = {"ra": "16h 29m 1.0s", "dec": "-26° 29' 24.9", "story": "Found star using https://www.google.com/sky/"}


def test_genesis_block(chain):
    assert chain.get_chain_height() == 0
    assert len(chain.chain) == 1

    genesis = chain.chain[0]
    assert genesis.height == 0
    assert genesis.previous_block_hash is None
    assert genesis.get_body_data() == {"data": "Genesis Block"}
    assert genesis.is_valid()

def test_genesis_message_override(clock):
    bc = Blockchain(genesis_message="First Light", clock=clock)
    assert bc.chain[0].get_body_data() == {"data": "First Light"}

def test_empty_genesis_message_kept(clock):
    bc = Blockchain(genesis_message="", protocol_tag="", clock=clock)
    assert bc.chain[0].get_body_data() == {"data": ""}
    assert bc.request_message_ownership_verification("addr").endswith(":")

def test_initialize_chain_is_idempotent(chain):
    chain.initialize_chain()
    assert chain.get_chain_height() == 0
    assert len(chain.chain) == 1

@pytest.mark.asyncio
async def test_submit_star(chain, claim, alice, clock):
    block = await claim(alice, STAR)

    assert block.height == 1
    assert block.time == int(clock.now)
    assert block.previous_block_hash == chain.chain[0].hash
    assert block.get_body_data() == {"owner": alice.address, "star": STAR}
    assert chain.get_chain_height() == 1
    assert chain.get_latest_block() == block

@pytest.mark.asyncio
async def test_linkage_and_heights(chain, claim, alice, bob, clock):
    for wallet in (alice, bob, alice, bob):
        await claim(wallet, STAR)
        clock.advance(7)

    assert chain.get_chain_height() == 4
    for i, block in enumerate(chain.chain):
        assert block.height == i
        assert block.hash == block.calculate_hash()
        if i > 0:
            assert block.previous_block_hash == chain.chain[i - 1].hash

@pytest.mark.asyncio
async def test_validate_chain_clean(chain, claim, alice, bob):
    assert chain.validate_chain() == []
    for wallet in (alice, bob, bob):
        await claim(wallet, STAR)
    assert chain.validate_chain() == []

@pytest.mark.asyncio
async def test_tampered_body_detected(chain, claim, alice):
    await claim(alice, STAR)
    await claim(alice, STAR)

    original = chain.chain[1]
    chain.chain[1] = original.model_copy(update={"body": encode_body({"owner": "mallory", "star": STAR})})

    errors = chain.validate_chain()
    assert len(errors) == 1
    assert "#1" in errors[0]
    assert "block did not pass validation" in errors[0]
    assert "previous block is missing" not in errors[0]

@pytest.mark.asyncio
async def test_tampered_previous_hash_detected(chain, claim, alice):
    await claim(alice, STAR)
    await claim(alice, STAR)

    # Rewire the tail to a block that does not exist, keeping its own hash consistent
    tail = chain.chain[2].model_copy(update={"previous_block_hash": "f" * 64})
    chain.chain[2] = tail.model_copy(update={"hash": tail.calculate_hash()})

    errors = chain.validate_chain()
    assert len(errors) == 1
    assert "#2" in errors[0]
    assert "previous block is missing" in errors[0]
    assert "block did not pass validation" not in errors[0]

@pytest.mark.asyncio
async def test_tampered_chain_refuses_append(chain, claim, alice):
    await claim(alice, STAR)
    chain.chain[1] = chain.chain[1].model_copy(update={"time": 0})

    with pytest.raises(ChainIntegrityError) as exc_info:
        await claim(alice, STAR)

    assert len(exc_info.value.errors) == 1
    assert chain.get_chain_height() == 1
    assert len(chain.chain) == 2

def test_get_block_by_height(chain):
    assert chain.get_block_by_height(0) == chain.chain[0]
    assert chain.get_block_by_height(1) is None
    assert chain.get_block_by_height(-1) is None

@pytest.mark.asyncio
async def test_get_block_by_hash(chain, claim, alice):
    block = await claim(alice, STAR)
    assert chain.get_block_by_hash(block.hash) == block
    assert chain.get_block_by_hash("0" * 64) is None
    assert chain.get_block_by_hash(None) is None

@pytest.mark.asyncio
async def test_get_stars_by_wallet_address(chain, claim, alice, bob):
    await claim(alice, {"story": "first"})
    await claim(bob, {"story": "second"})
    await claim(alice, {"story": "third"})

    stars = chain.get_stars_by_wallet_address(alice.address)
    assert [s["star"]["story"] for s in stars] == ["first", "third"]
    assert all(s["owner"] == alice.address for s in stars)

    assert len(chain.get_stars_by_wallet_address(bob.address)) == 1
    assert chain.get_stars_by_wallet_address("1BoatSLRHtKNngkdXEeobR76b53LETtpyT") == []

def test_get_stars_skips_undecodable_blocks(chain, alice):
    chain.chain.append(Block(body="not-hex", height=1))
    assert chain.get_stars_by_wallet_address(alice.address) == []

@pytest.mark.asyncio
async def test_concurrent_submissions_stay_linked(chain, alice, bob):
    async def submit(wallet, n):
        message = chain.request_message_ownership_verification(wallet.address)
        return await chain.submit_star(wallet.address, message, wallet.sign(message), {"n": n})

    blocks = await asyncio.gather(*(submit(alice if n % 2 else bob, n) for n in range(6)))

    assert sorted(b.height for b in blocks) == [1, 2, 3, 4, 5, 6]
    assert chain.get_chain_height() == 6
    assert chain.validate_chain() == []

@pytest.mark.asyncio
async def test_get_blocks_is_a_snapshot(chain, claim, alice):
    snapshot = chain.get_blocks()
    await claim(alice, STAR)

    assert len(snapshot) == 1
    assert len(chain.get_blocks()) == 2

    snapshot.clear()
    assert chain.get_chain_height() == 1
    assert chain.validate_chain() == []
