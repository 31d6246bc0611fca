"""
Identifier hashing.

Identifiers (user ids, organisation tokens) never enter a tree directly.
They are digested with SHA-256 and the digest is read as a big-endian
integer reduced modulo the field prime, which is what circomlibjs does when
it receives the SHA-256 BigInt as a Poseidon input.
"""

from __future__ import annotations

import hashlib
from typing import Any

from .config import FIELD_PRIME
from .exceptions import InvalidIdentifier


def identifier_digest(identifier: Any) -> bytes:
    """
    SHA-256 digest of the UTF-8 encoded identifier.

    Raises:
        InvalidIdentifier: if the identifier is not a non-empty string.
    """
    if not isinstance(identifier, str):
        raise InvalidIdentifier(
            f"identifier must be a string, got {type(identifier).__name__}"
        )
    if not identifier:
        raise InvalidIdentifier("identifier cannot be empty")
    return hashlib.sha256(identifier.encode("utf-8")).digest()


def hash_identifier(identifier: Any) -> int:
    """
    Map an identifier to a field element.

    Example:
        >>> hash_identifier("user1") == hash_identifier("user1")
        True
    """
    digest = identifier_digest(identifier)
    return int.from_bytes(digest, "big") % FIELD_PRIME
