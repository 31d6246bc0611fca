"""
In-process submission gateway for the audit ledger.

The gateway plays the role of the chain node: it authenticates a signed call,
applies it to the ``AuditLedger`` in arrival order and hands back a receipt.
Exact resubmissions of a recently applied envelope are answered with the
original receipt instead of being applied twice. Only the last
``receipt_cache_size`` receipts are remembered; an envelope resubmitted after
its receipt was evicted is applied again, so callers that lose track of a
write should ``reconcile`` rather than resubmit.
"""

from __future__ import annotations

import logging
from collections import OrderedDict
from dataclasses import dataclass
from typing import Optional

import trio

from .messages import OP_APPEND, OP_ASSIGN, OP_REVOKE, SignedCall, open_call
from .roles import AgentRole
from .state import AuditLedger, LogEntry

logger = logging.getLogger(__name__)

DEFAULT_RECEIPT_CACHE_SIZE = 1024


@dataclass(frozen=True)
class Receipt:
    """Confirmation of one applied call."""

    op: str
    entry_index: Optional[int]
    call_digest: str
    sequence: int


class LedgerGateway:
    """
    Args:
        ledger: Ledger state the gateway applies calls to.
        confirm_delay: Seconds ``submit_async`` waits after applying a call
            before returning its receipt (block confirmation latency).
        receipt_cache_size: How many recent receipts are kept for answering
            duplicate submissions.
    """

    def __init__(
        self,
        ledger: AuditLedger,
        confirm_delay: float = 0.0,
        receipt_cache_size: int = DEFAULT_RECEIPT_CACHE_SIZE,
    ):
        if confirm_delay < 0:
            raise ValueError("confirm_delay must be non-negative")
        if receipt_cache_size < 1:
            raise ValueError("receipt_cache_size must be positive")
        self.ledger = ledger
        self.confirm_delay = confirm_delay
        self.receipt_cache_size = receipt_cache_size
        self._receipts: "OrderedDict[str, Receipt]" = OrderedDict()
        self._sequence = 0

    def submit(self, blob: bytes) -> Receipt:
        """
        Authenticate and apply one signed call.

        Raises:
            SchemaError, SizeLimitError, InvalidSignature: envelope rejected
            Unauthorized, NotAssigned: the ledger refused the caller
        """
        signed = open_call(blob)
        previous = self._receipts.get(signed.digest)
        if previous is not None:
            self._receipts.move_to_end(signed.digest)
            logger.debug("duplicate submission %s", signed.digest[:16])
            return previous

        entry_index = self._apply(signed)
        self._sequence += 1
        receipt = Receipt(
            op=signed.call.op,
            entry_index=entry_index,
            call_digest=signed.digest,
            sequence=self._sequence,
        )
        self._receipts[signed.digest] = receipt
        if len(self._receipts) > self.receipt_cache_size:
            self._receipts.popitem(last=False)
        return receipt

    async def submit_async(self, blob: bytes) -> Receipt:
        receipt = self.submit(blob)
        await trio.sleep(self.confirm_delay)
        return receipt

    def _apply(self, signed: SignedCall) -> Optional[int]:
        call = signed.call
        if call.op == OP_ASSIGN:
            self.ledger.assign_agent(
                call.sender, call.args["identity"], AgentRole(call.args["role"])
            )
            return None
        if call.op == OP_REVOKE:
            self.ledger.revoke_agent(call.sender, call.args["identity"])
            return None
        if call.op == OP_APPEND:
            return self.ledger.append_log(
                call.sender,
                call.args["requestId"],
                call.args["riskScore"],
                call.args["status"],
            )
        raise AssertionError(f"unhandled op {call.op}")

    # Reads need no signature.

    def get_log(self, index: int) -> LogEntry:
        return self.ledger.get_log(index)

    def get_log_count(self) -> int:
        return self.ledger.get_log_count()

    def role_of(self, identity: str) -> AgentRole:
        return self.ledger.role_of(identity)
