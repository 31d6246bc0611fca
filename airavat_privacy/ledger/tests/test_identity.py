import pytest

from airavat_privacy.ledger.errors import InvalidSignature
from airavat_privacy.ledger.identity import (
    AgentKey,
    canonical_identity,
    is_identity,
    verify_signature,
)


def test_seed_round_trip():
    key = AgentKey.generate()
    restored = AgentKey.from_hex(key.seed_hex)
    assert restored.identity == key.identity
    assert is_identity(key.identity)


def test_identity_is_deterministic_from_seed():
    assert AgentKey.from_seed(b"\x07" * 32).identity == AgentKey.from_seed(b"\x07" * 32).identity
    assert AgentKey.from_seed(b"\x07" * 32).identity != AgentKey.from_seed(b"\x08" * 32).identity


@pytest.mark.parametrize("seed", ["zz", "00" * 31, None])
def test_from_hex_rejects(seed):
    with pytest.raises(ValueError):
        AgentKey.from_hex(seed)


def test_sign_and_verify():
    key = AgentKey.from_seed(b"\x01" * 32)
    signature = key.sign(b"message")
    verify_signature(key.identity, b"message", signature)
    with pytest.raises(InvalidSignature):
        verify_signature(key.identity, b"other", signature)


@pytest.mark.parametrize("value", ["", "ab", "g" * 64, "AB" * 32, None, 5])
def test_is_identity_rejects(value):
    assert is_identity(value) is False


def test_verify_rejects_non_identity():
    with pytest.raises(InvalidSignature):
        verify_signature("controller", b"m", b"\x00" * 64)


def test_canonical_identity():
    key = AgentKey.from_seed(b"\x09" * 32)
    assert canonical_identity(key.identity.upper()) == key.identity
    assert canonical_identity(key.identity) == key.identity
    assert canonical_identity("controller") == "controller"
