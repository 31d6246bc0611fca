"""BN254 scalar field helpers shared by the hash, tree and witness code."""

from __future__ import annotations

from typing import Any

from .config import FIELD_BYTES, FIELD_PRIME
from .exceptions import InvalidFieldElement


def require_field_element(value: Any, label: str = "value") -> int:
    """
    Return ``value`` if it is a canonical field element.

    Raises:
        InvalidFieldElement: for non-int input, negatives, or values >= p.
    """
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidFieldElement(f"{label} must be an int, got {type(value).__name__}")
    if value < 0:
        raise InvalidFieldElement(f"{label} must be non-negative")
    if value >= FIELD_PRIME:
        raise InvalidFieldElement(f"{label} is outside the field")
    return value


def reduce(value: int) -> int:
    """Map an arbitrary non-negative integer into the field."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidFieldElement("only ints can be reduced into the field")
    if value < 0:
        raise InvalidFieldElement("cannot reduce a negative integer")
    return value % FIELD_PRIME


def to_hex(value: int) -> str:
    """Fixed-width 0x-prefixed encoding used for published roots."""
    value = require_field_element(value)
    return "0x" + value.to_bytes(FIELD_BYTES, "big").hex()


def from_hex(text: str, label: str = "value") -> int:
    if not isinstance(text, str):
        raise InvalidFieldElement(f"{label} must be a hex string")
    body = text[2:] if text.startswith(("0x", "0X")) else text
    if not body or len(body) > FIELD_BYTES * 2:
        raise InvalidFieldElement(f"{label} must be 1..{FIELD_BYTES * 2} hex chars")
    try:
        value = int(body, 16)
    except ValueError as exc:
        raise InvalidFieldElement(f"{label} must be valid hex") from exc
    return require_field_element(value, label)


def to_decimal(value: int) -> str:
    """Decimal string form, as snarkjs expects circuit inputs."""
    return str(require_field_element(value))


def from_decimal(text: str, label: str = "value") -> int:
    if not isinstance(text, str) or not text.isdigit():
        raise InvalidFieldElement(f"{label} must be a decimal string")
    return require_field_element(int(text), label)


def parse(value: Any, label: str = "value") -> int:
    """Accept an int, a decimal string or a 0x-hex string."""
    if isinstance(value, str):
        if value.startswith(("0x", "0X")):
            return from_hex(value, label)
        return from_decimal(value, label)
    return require_field_element(value, label)
