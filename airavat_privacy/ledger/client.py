"""Async client for submitting signed calls to a ledger gateway."""

from __future__ import annotations

import logging
import secrets
from typing import Any, Dict, Optional, Union

import trio

from .errors import SubmissionTimeout
from .gateway import LedgerGateway, Receipt
from .identity import AgentKey, canonical_identity
from .messages import OP_APPEND, OP_ASSIGN, OP_REVOKE, LedgerCall, sign_call
from .roles import AgentRole
from .state import LogEntry

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0
NONCE_BYTES = 16


class LedgerClient:
    """
    Signs calls with ``key`` and submits them through ``gateway``.

    Writes never retry on their own. A ``SubmissionTimeout`` means the call
    may or may not have been applied; use ``reconcile`` to find out before
    submitting again.
    """

    def __init__(
        self,
        gateway: LedgerGateway,
        key: AgentKey,
        timeout: Optional[float] = None,
    ):
        self.gateway = gateway
        self.key = key
        self.timeout = DEFAULT_TIMEOUT if timeout is None else timeout
        if self.timeout <= 0:
            raise ValueError("timeout must be positive")

    @property
    def identity(self) -> str:
        return self.key.identity

    async def _submit(self, op: str, args: Dict[str, Any]) -> Receipt:
        call = LedgerCall(
            op=op,
            sender=self.key.identity,
            nonce=secrets.token_bytes(NONCE_BYTES),
            args=args,
        )
        blob = sign_call(self.key, call)
        try:
            with trio.fail_after(self.timeout):
                return await self.gateway.submit_async(blob)
        except trio.TooSlowError as exc:
            logger.warning("%s not confirmed within %.1fs", op, self.timeout)
            raise SubmissionTimeout(
                f"{op} not confirmed within {self.timeout}s; outcome unknown"
            ) from exc

    async def assign_agent(
        self, identity: str, role: Union[AgentRole, int, str]
    ) -> Receipt:
        parsed = AgentRole.parse(role)
        return await self._submit(
            OP_ASSIGN, {"identity": canonical_identity(identity), "role": int(parsed)}
        )

    async def revoke_agent(self, identity: str) -> Receipt:
        return await self._submit(OP_REVOKE, {"identity": canonical_identity(identity)})

    async def append_log(self, request_id: str, risk_score: int, status: str) -> int:
        """Returns the index of the new log entry."""
        receipt = await self._submit(
            OP_APPEND,
            {"requestId": request_id, "riskScore": risk_score, "status": status},
        )
        return receipt.entry_index

    async def get_log(self, index: int) -> LogEntry:
        await trio.lowlevel.checkpoint()
        return self.gateway.get_log(index)

    async def get_log_count(self) -> int:
        await trio.lowlevel.checkpoint()
        return self.gateway.get_log_count()

    async def reconcile(self, request_id: str, known_count: int) -> Optional[int]:
        """
        Look for this client's entry for ``request_id`` written at or after
        ``known_count``.

        Returns:
            The entry index, or None if the write did not land.
        """
        count = await self.get_log_count()
        for index in range(max(known_count, 0), count):
            entry = await self.get_log(index)
            if entry.agent == self.identity and entry.request_id == request_id:
                return index
        return None
