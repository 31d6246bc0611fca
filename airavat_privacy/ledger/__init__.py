"""Role-gated audit ledger, signed calls and the async submission client."""

from .client import LedgerClient
from .errors import (
    InvalidSignature,
    LedgerError,
    LogIndexOutOfRange,
    NotAssigned,
    SchemaError,
    SizeLimitError,
    SubmissionTimeout,
    Unauthorized,
)
from .gateway import LedgerGateway, Receipt
from .identity import AgentKey
from .messages import LedgerCall, SignedCall, open_call, sign_call
from .roles import AgentRole
from .state import AuditLedger, LogEntry
from .storage import load_ledger, save_ledger

__all__ = [
    "AgentKey",
    "AgentRole",
    "AuditLedger",
    "InvalidSignature",
    "LedgerCall",
    "LedgerClient",
    "LedgerError",
    "LedgerGateway",
    "LogEntry",
    "LogIndexOutOfRange",
    "NotAssigned",
    "Receipt",
    "SchemaError",
    "SignedCall",
    "SizeLimitError",
    "SubmissionTimeout",
    "Unauthorized",
    "load_ledger",
    "open_call",
    "save_ledger",
    "sign_call",
]
