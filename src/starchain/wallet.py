import base64
import hashlib
import logging
from typing import Optional

import base58
import bech32
from Crypto.Hash import RIPEMD160
from ecdsa import SECP256k1, SigningKey, VerifyingKey
from ecdsa.util import sigdecode_string, sigencode_string_canonize

logger = logging.getLogger(__name__)

MESSAGE_MAGIC = b"Bitcoin Signed Message:\n"

# Address types
P2PKH = "p2pkh"
P2SH_P2WPKH = "p2sh-p2wpkh"
P2WPKH = "p2wpkh"

# Base58Check version bytes
P2PKH_VERSIONS = {b"\x00", b"\x6f"}  # mainnet, testnet
P2SH_VERSIONS = {b"\x05", b"\xc4"}
P2PKH_VERSION = {"mainnet": b"\x00", "testnet": b"\x6f"}
P2SH_VERSION = {"mainnet": b"\x05", "testnet": b"\xc4"}
WIF_VERSIONS = {b"\x80", b"\xef"}

# Bech32 human readable parts
BECH32_HRP = {"mainnet": "bc", "testnet": "tb"}

# Signature header ranges (first byte of the 65 byte compact signature)
HEADER_P2PKH_UNCOMPRESSED = range(27, 31)
HEADER_P2PKH_COMPRESSED = range(31, 35)
HEADER_P2SH_P2WPKH = range(35, 39)
HEADER_P2WPKH = range(39, 43)


def _varint(n: int) -> bytes:
    if n < 0xfd:
        return n.to_bytes(1, "little")
    if n <= 0xffff:
        return b"\xfd" + n.to_bytes(2, "little")
    if n <= 0xffffffff:
        return b"\xfe" + n.to_bytes(4, "little")
    return b"\xff" + n.to_bytes(8, "little")

def hash160(data: bytes) -> bytes:
    """RIPEMD160(SHA256(data))"""
    return RIPEMD160.new(hashlib.sha256(data).digest()).digest()

def message_digest(message: str) -> bytes:
    """Double SHA-256 of the message wrapped in the Bitcoin signed-message envelope."""
    msg = message.encode("utf-8")
    payload = _varint(len(MESSAGE_MAGIC)) + MESSAGE_MAGIC + _varint(len(msg)) + msg
    return hashlib.sha256(hashlib.sha256(payload).digest()).digest()

def _p2wpkh_redeem_script(public_key: bytes) -> bytes:
    return b"\x00\x14" + hash160(public_key)

def address_from_public_key(
    verifying_key: VerifyingKey,
    compressed: bool = True,
    address_type: str = P2PKH,
    network: str = "mainnet",
) -> str:
    """
    Derives the address of a public key.
    Segwit address types always use the compressed key.
    """
    if address_type == P2WPKH:
        program = hash160(verifying_key.to_string("compressed"))
        return bech32.encode(BECH32_HRP[network], 0, program)
    if address_type == P2SH_P2WPKH:
        script = _p2wpkh_redeem_script(verifying_key.to_string("compressed"))
        payload = P2SH_VERSION[network] + hash160(script)
    elif address_type == P2PKH:
        encoding = "compressed" if compressed else "uncompressed"
        payload = P2PKH_VERSION[network] + hash160(verifying_key.to_string(encoding))
    else:
        raise ValueError(f"Unknown address type {address_type!r}")
    return base58.b58encode_check(payload).decode("ascii")

def generate_private_key() -> SigningKey:
    """Creates a throwaway secp256k1 key. Keys are never stored."""
    return SigningKey.generate(curve=SECP256k1)

def private_key_from_wif(wif: str) -> tuple[SigningKey, bool]:
    """Decodes a Wallet Import Format key. Returns the key and its compression flag."""
    raw = base58.b58decode_check(wif)
    if raw[:1] not in WIF_VERSIONS or len(raw) not in (33, 34):
        raise ValueError("Not a WIF private key")
    compressed = len(raw) == 34 and raw[33] == 0x01
    return SigningKey.from_string(raw[1:33], curve=SECP256k1), compressed

def _recover_public_keys(rs: bytes, digest: bytes) -> list[VerifyingKey]:
    return VerifyingKey.from_public_key_recovery_with_digest(
        rs, digest, SECP256k1, hashfunc=hashlib.sha256, sigdecode=sigdecode_string
    )

def sign_message(
    message: str,
    private_key: SigningKey,
    compressed: bool = True,
    address_type: str = P2PKH,
) -> str:
    """
    Signs a message the way Bitcoin Core and Electrum do and returns the
    base64 compact signature.
    """
    digest = message_digest(message)
    rs = private_key.sign_digest_deterministic(
        digest, hashfunc=hashlib.sha256, sigencode=sigencode_string_canonize
    )

    # Find the recovery id that yields our own public key
    own_point = private_key.get_verifying_key().to_string()
    candidates = _recover_public_keys(rs, digest)
    recid = next(i for i, vk in enumerate(candidates) if vk.to_string() == own_point)

    if address_type == P2WPKH:
        header = HEADER_P2WPKH.start + recid
    elif address_type == P2SH_P2WPKH:
        header = HEADER_P2SH_P2WPKH.start + recid
    elif compressed:
        header = HEADER_P2PKH_COMPRESSED.start + recid
    else:
        header = HEADER_P2PKH_UNCOMPRESSED.start + recid
    return base64.b64encode(bytes([header]) + rs).decode("utf-8")

def _decode_base58_address(address: str) -> Optional[tuple[bytes, bytes]]:
    try:
        raw = base58.b58decode_check(address)
    except ValueError:
        return None
    if len(raw) != 21:
        return None
    return raw[:1], raw[1:]

def _decode_bech32_address(address: str) -> Optional[bytes]:
    """Witness program of a version 0 P2WPKH address, or None."""
    for hrp in BECH32_HRP.values():
        witver, program = bech32.decode(hrp, address)
        if witver == 0 and program is not None and len(program) == 20:
            return bytes(program)
    return None

def _expected_hash(header: int, address: str) -> Optional[bytes]:
    """The 20 byte hash the recovered key must produce for this header and address."""
    if header in HEADER_P2WPKH:
        return _decode_bech32_address(address)

    decoded = _decode_base58_address(address)
    if decoded is None:
        return None
    version, expected = decoded
    if header in HEADER_P2SH_P2WPKH:
        return expected if version in P2SH_VERSIONS else None
    return expected if version in P2PKH_VERSIONS else None

def verify_message(message: str, address: str, signature: str) -> bool:
    """
    Verifies a Bitcoin signed message against a legacy, P2SH-P2WPKH or
    native segwit address. Returns False on any malformed input instead of raising.
    """
    try:
        raw = base64.b64decode(signature, validate=True)
    except ValueError:
        logger.debug("Signature is not valid base64")
        return False
    if len(raw) != 65:
        logger.debug("Signature has %d bytes, expected 65", len(raw))
        return False

    header, rs = raw[0], raw[1:]
    if not HEADER_P2PKH_UNCOMPRESSED.start <= header < HEADER_P2WPKH.stop:
        logger.debug("Invalid signature header byte %d", header)
        return False

    recid = (header - 27) & 3
    if recid > 1:
        # r >= curve order, never produced by real wallets
        return False

    expected_hash = _expected_hash(header, address)
    if expected_hash is None:
        logger.debug("Address %s does not match signature type %d", address, header)
        return False

    try:
        candidates = _recover_public_keys(rs, message_digest(message))
        if recid >= len(candidates):
            return False
        public_key = candidates[recid]

        if header in HEADER_P2SH_P2WPKH:
            script = _p2wpkh_redeem_script(public_key.to_string("compressed"))
            return hash160(script) == expected_hash
        if header in HEADER_P2WPKH:
            return hash160(public_key.to_string("compressed")) == expected_hash

        encoding = "compressed" if header in HEADER_P2PKH_COMPRESSED else "uncompressed"
        return hash160(public_key.to_string(encoding)) == expected_hash
    except Exception as e:
        # ecdsa raises a mix of ValueError/SquareRootError/MalformedPointError here
        logger.debug("Public key recovery failed: %s", e)
        return False
