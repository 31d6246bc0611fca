"""Audit ledger error types."""

from airavat_privacy.proofs.exceptions import IndexOutOfRange


class LedgerError(Exception):
    """Base error for audit ledger issues."""


class Unauthorized(LedgerError):
    """Raised when a non-controller identity attempts a role mutation."""


class NotAssigned(LedgerError):
    """Raised when an identity without a role attempts a log write."""


class LogIndexOutOfRange(LedgerError, IndexOutOfRange):
    """Raised when a log index does not name an existing entry."""


class SchemaError(LedgerError):
    """Raised when a ledger call fails schema validation."""


class SizeLimitError(LedgerError):
    """Raised when a ledger call exceeds configured size limits."""


class InvalidSignature(LedgerError):
    """Raised when a signed call does not verify against its sender."""


class SubmissionTimeout(LedgerError):
    """
    Raised when a submission does not confirm in time.

    The outcome is unknown: the call may have been applied. Resolve by
    re-querying the log, not by resubmitting blindly.
    """
