"""CBOR envelopes for signed ledger calls."""

from __future__ import annotations

import hashlib
from dataclasses import dataclass, field
from typing import Any, Dict

import cbor2

from .errors import SchemaError, SizeLimitError
from .identity import AgentKey, is_identity, verify_signature
from .roles import AgentRole

MSG_V = 1
OP_ASSIGN = "assign_agent"
OP_REVOKE = "revoke_agent"
OP_APPEND = "append_log"
OPS = frozenset({OP_ASSIGN, OP_REVOKE, OP_APPEND})

CALL_MAX_BYTES = 8192
MAX_REQUEST_ID_LEN = 256
MAX_STATUS_LEN = 256
NONCE_MIN_BYTES = 16
NONCE_MAX_BYTES = 64
SIGNATURE_BYTES = 64


def _require_str(args: Dict[str, Any], key: str, max_len: int) -> str:
    value = args.get(key)
    if not isinstance(value, str):
        raise SchemaError(f"{key} must be a string")
    if len(value) > max_len:
        raise SizeLimitError(f"{key} too long")
    return value


def _require_identity(args: Dict[str, Any], key: str) -> str:
    value = args.get(key)
    if not is_identity(value):
        raise SchemaError(f"{key} must be a 64-char lower-case hex identity")
    return value


@dataclass(frozen=True)
class LedgerCall:
    op: str
    sender: str
    nonce: bytes
    args: Dict[str, Any] = field(default_factory=dict)
    msg_v: int = MSG_V

    def validate(self) -> None:
        if isinstance(self.msg_v, bool) or self.msg_v != MSG_V:
            raise SchemaError("unsupported msg_v")
        if self.op not in OPS:
            raise SchemaError("unsupported op")
        if not is_identity(self.sender):
            raise SchemaError("sender must be a 64-char lower-case hex identity")
        if not isinstance(self.nonce, (bytes, bytearray)):
            raise SchemaError("nonce must be bytes")
        if not NONCE_MIN_BYTES <= len(self.nonce) <= NONCE_MAX_BYTES:
            raise SchemaError("nonce length out of bounds")
        if not isinstance(self.args, dict):
            raise SchemaError("args must be a dict")

        if self.op == OP_ASSIGN:
            _require_identity(self.args, "identity")
            role = self.args.get("role")
            if isinstance(role, bool) or not isinstance(role, int):
                raise SchemaError("role must be an int")
            try:
                AgentRole(role)
            except ValueError:
                raise SchemaError("unknown role") from None
            expected = {"identity", "role"}
        elif self.op == OP_REVOKE:
            _require_identity(self.args, "identity")
            expected = {"identity"}
        else:
            _require_str(self.args, "requestId", MAX_REQUEST_ID_LEN)
            _require_str(self.args, "status", MAX_STATUS_LEN)
            score = self.args.get("riskScore")
            if isinstance(score, bool) or not isinstance(score, int) or score < 0:
                raise SchemaError("riskScore must be a non-negative int")
            expected = {"requestId", "riskScore", "status"}

        if set(self.args) != expected:
            raise SchemaError(f"{self.op} args must be exactly {sorted(expected)}")


def encode_call(call: LedgerCall) -> bytes:
    call.validate()
    payload = {
        "msg_v": call.msg_v,
        "op": call.op,
        "sender": call.sender,
        "nonce": bytes(call.nonce),
        "args": call.args,
    }
    blob = cbor2.dumps(payload, canonical=True)
    if len(blob) > CALL_MAX_BYTES:
        raise SizeLimitError("call too large")
    return blob


def decode_call(blob: bytes) -> LedgerCall:
    if not isinstance(blob, (bytes, bytearray)):
        raise SchemaError("call blob must be bytes")
    if len(blob) > CALL_MAX_BYTES:
        raise SizeLimitError("call too large")
    try:
        payload = cbor2.loads(bytes(blob))
    except (cbor2.CBORDecodeError, ValueError) as exc:
        raise SchemaError("call is not valid CBOR") from exc
    if not isinstance(payload, dict):
        raise SchemaError("call payload must be a dict")
    call = LedgerCall(
        op=payload.get("op", ""),
        sender=payload.get("sender", ""),
        nonce=payload.get("nonce", b""),
        args=payload.get("args", {}),
        msg_v=payload.get("msg_v", -1),
    )
    call.validate()
    return call


@dataclass(frozen=True)
class SignedCall:
    call: LedgerCall
    signature: bytes
    digest: str


def sign_call(key: AgentKey, call: LedgerCall) -> bytes:
    """Encode ``call`` and wrap it with ``key``'s signature."""
    if call.sender != key.identity:
        raise SchemaError("call sender does not match signing key")
    payload = encode_call(call)
    envelope = {"payload": payload, "sig": key.sign(payload)}
    return cbor2.dumps(envelope, canonical=True)


def open_call(blob: bytes) -> SignedCall:
    """
    Decode and authenticate a signed call.

    Raises:
        SchemaError: malformed envelope or payload
        SizeLimitError: oversized envelope
        InvalidSignature: signature does not verify against the sender
    """
    if not isinstance(blob, (bytes, bytearray)):
        raise SchemaError("envelope must be bytes")
    if len(blob) > CALL_MAX_BYTES + SIGNATURE_BYTES + 32:
        raise SizeLimitError("envelope too large")
    try:
        envelope = cbor2.loads(bytes(blob))
    except (cbor2.CBORDecodeError, ValueError) as exc:
        raise SchemaError("envelope is not valid CBOR") from exc
    if not isinstance(envelope, dict):
        raise SchemaError("envelope must be a dict")
    payload = envelope.get("payload")
    signature = envelope.get("sig")
    if not isinstance(payload, bytes) or not isinstance(signature, bytes):
        raise SchemaError("envelope needs bytes payload and sig")
    if len(signature) != SIGNATURE_BYTES:
        raise SchemaError("signature must be 64 bytes")
    call = decode_call(payload)
    verify_signature(call.sender, payload, signature)
    return SignedCall(call=call, signature=signature, digest=call_digest(payload))


def call_digest(payload: bytes) -> str:
    return hashlib.sha256(payload).hexdigest()
