import json
import time
from typing import Any, Callable

Clock = Callable[[], float]


def unix_time(clock: Clock = time.time) -> int:
    """Current time in whole seconds since the epoch."""
    return int(clock())

def format_challenge(address: str, timestamp: int, protocol_tag: str) -> str:
    return f"{address}:{timestamp}:{protocol_tag}"

def parse_challenge_time(message: str) -> int:
    """
    Extracts the timestamp embedded in a challenge message.
    Raises ValueError if the second colon-delimited field is missing or is not
    a plain run of ASCII digits.
    """
    parts = message.split(':')
    if len(parts) < 2:
        raise ValueError(f"Challenge message has no timestamp field: {message!r}")
    field = parts[1]
    if not (field.isascii() and field.isdigit()):
        raise ValueError(f"Challenge timestamp is not a number of seconds: {field!r}")
    return int(field)

def encode_body(data: Any) -> str:
    """Serializes data to compact JSON and hex-encodes it for block storage."""
    return json.dumps(data, separators=(',', ':'), ensure_ascii=False).encode('utf-8').hex()

def decode_body(body: str) -> Any:
    """Inverse of encode_body. Raises ValueError on malformed input."""
    return json.loads(bytes.fromhex(body).decode('utf-8'))
