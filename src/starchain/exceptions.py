"""
exceptions.py - Errors raised by the star registry chain.
"""

class StarchainError(Exception):
    """Base exception for the starchain package."""
    pass

class ClaimError(StarchainError):
    """Raised when a star claim is rejected. The chain is left untouched."""
    pass

class MalformedClaim(ClaimError):
    """Raised when a claim message does not follow the challenge format."""
    pass

class ExpiredClaim(ClaimError):
    """Raised when a claim message is older than the validity window."""

    def __init__(self, elapsed: int, window: int):
        self.elapsed = elapsed
        self.window = window
        super().__init__(
            f"Too much time has passed since the message was created ({elapsed}s, limit {window}s)"
        )

class InvalidSignature(ClaimError):
    """Raised when a signature does not verify against the address and message."""

    def __init__(self, address: str):
        self.address = address
        super().__init__(f"Message cannot be verified for address {address}")

class ChainIntegrityError(StarchainError):
    """Raised when the chain fails validation right before an append."""

    def __init__(self, errors: list[str]):
        self.errors = list(errors)
        super().__init__(f"Chain failed validation with {len(self.errors)} error(s)")
