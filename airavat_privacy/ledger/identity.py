"""
Agent identities.

An identity is the hex-encoded Ed25519 verify key of an agent. Every ledger
write is signed with the matching signing key, which is what authenticates
the caller the way a transaction signature does on-chain.
"""

from __future__ import annotations

from typing import Optional

from nacl.encoding import HexEncoder
from nacl.exceptions import BadSignatureError
from nacl.signing import SigningKey, VerifyKey

from .errors import InvalidSignature

IDENTITY_HEX_LEN = 64


class AgentKey:
    """
    Signing key of one agent (or of the controller).

    Example:
        >>> key = AgentKey.generate()
        >>> len(key.identity)
        64
    """

    def __init__(self, signing_key: SigningKey):
        self._signing_key = signing_key

    @classmethod
    def generate(cls) -> "AgentKey":
        return cls(SigningKey.generate())

    @classmethod
    def from_seed(cls, seed: bytes) -> "AgentKey":
        if not isinstance(seed, (bytes, bytearray)) or len(seed) != 32:
            raise ValueError("seed must be 32 bytes")
        return cls(SigningKey(bytes(seed)))

    @classmethod
    def from_hex(cls, seed_hex: str) -> "AgentKey":
        try:
            seed = bytes.fromhex(seed_hex.strip())
        except (AttributeError, ValueError) as exc:
            raise ValueError("seed must be 64 hex chars") from exc
        return cls.from_seed(seed)

    @property
    def identity(self) -> str:
        return self._signing_key.verify_key.encode(encoder=HexEncoder).decode("ascii")

    @property
    def seed_hex(self) -> str:
        return self._signing_key.encode(encoder=HexEncoder).decode("ascii")

    def sign(self, message: bytes) -> bytes:
        return self._signing_key.sign(message).signature


def is_identity(value: Optional[str]) -> bool:
    """True for the canonical form: 64 lower-case hex chars."""
    if not isinstance(value, str) or len(value) != IDENTITY_HEX_LEN:
        return False
    if value != value.lower():
        return False
    try:
        bytes.fromhex(value)
    except ValueError:
        return False
    return True


def canonical_identity(value: str) -> str:
    """Lower-case a hex identity. Other strings pass through unchanged."""
    if isinstance(value, str) and is_identity(value.lower()):
        return value.lower()
    return value


def verify_signature(identity: str, message: bytes, signature: bytes) -> None:
    """
    Raises:
        InvalidSignature: if ``signature`` is not ``identity``'s signature
            over ``message``.
    """
    if not is_identity(identity):
        raise InvalidSignature("sender is not an Ed25519 identity")
    try:
        VerifyKey(bytes.fromhex(identity)).verify(message, signature)
    except (BadSignatureError, ValueError, TypeError) as exc:
        raise InvalidSignature("signature does not match sender") from exc
