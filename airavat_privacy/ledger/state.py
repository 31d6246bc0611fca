"""
Role-gated, append-only audit ledger.

This is the state machine of the on-chain logger contract. Every call is
assumed to run to completion before the next one starts (the chain orders
them), so there is no locking here. The ledger exposes no update or delete:
entries are frozen and their index is their permanent identity.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, Dict, Iterator, List, Optional, Tuple, Union

from .errors import LogIndexOutOfRange, NotAssigned, Unauthorized
from .identity import canonical_identity
from .roles import AgentRole

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LogEntry:
    """One attested decision. Never mutated after it is appended."""

    agent: str
    role: AgentRole
    request_id: str
    risk_score: int
    status: str
    timestamp: int

    def to_dict(self) -> Dict[str, Union[str, int]]:
        return {
            "agent": self.agent,
            "role": int(self.role),
            "requestId": self.request_id,
            "riskScore": self.risk_score,
            "status": self.status,
            "timestamp": self.timestamp,
        }


def _require_identity(value: object, label: str) -> str:
    if not isinstance(value, str) or not value:
        raise ValueError(f"{label} must be a non-empty string")
    return canonical_identity(value)


class AuditLedger:
    """
    Controller-administered audit log.

    Args:
        controller: Identity allowed to assign and revoke roles. Fixed for the
            lifetime of the ledger.
        clock: Returns the current time in seconds; entries store it truncated
            to an int, as a block timestamp would be.

    Example:
        >>> ledger = AuditLedger("controller", clock=lambda: 1700000000)
        >>> ledger.assign_agent("controller", "agent-1", AgentRole.VRA)
        >>> ledger.append_log("agent-1", "REQ1", 5, "approved")
        0
    """

    def __init__(self, controller: str, clock: Optional[Callable[[], float]] = None):
        self._controller = _require_identity(controller, "controller")
        self._clock = clock or time.time
        self._roles: Dict[str, AgentRole] = {}
        self._entries: List[LogEntry] = []

    @property
    def controller(self) -> str:
        return self._controller

    # ------------------------------------------------------------------
    # Role administration
    # ------------------------------------------------------------------

    def _require_controller(self, caller: str, action: str) -> None:
        if canonical_identity(caller) != self._controller:
            logger.warning("rejected %s from non-controller %s", action, caller)
            raise Unauthorized(f"only the controller may {action}")

    def assign_agent(
        self, caller: str, identity: str, role: Union[AgentRole, int, str]
    ) -> None:
        """
        Give ``identity`` a role. Re-assigning the same role is a no-op.

        Raises:
            Unauthorized: if ``caller`` is not the controller
            ValueError: if ``role`` is unknown or ``NONE``
        """
        self._require_controller(caller, "assign agents")
        identity = _require_identity(identity, "identity")
        parsed = AgentRole.parse(role)
        if not parsed.is_assigned:
            raise ValueError("use revoke_agent to clear a role")
        self._roles[identity] = parsed
        logger.info("assigned %s to %s", parsed.name, identity)

    def revoke_agent(self, caller: str, identity: str) -> None:
        """
        Return ``identity`` to ``AgentRole.NONE``.

        Raises:
            Unauthorized: if ``caller`` is not the controller
        """
        self._require_controller(caller, "revoke agents")
        identity = _require_identity(identity, "identity")
        self._roles.pop(identity, None)
        logger.info("revoked %s", identity)

    def role_of(self, identity: str) -> AgentRole:
        return self._roles.get(canonical_identity(identity), AgentRole.NONE)

    def roles(self) -> Dict[str, AgentRole]:
        return dict(self._roles)

    # ------------------------------------------------------------------
    # Log
    # ------------------------------------------------------------------

    def append_log(
        self, caller: str, request_id: str, risk_score: int, status: str
    ) -> int:
        """
        Append a decision made by ``caller``.

        Returns:
            Index of the new entry

        Raises:
            NotAssigned: if ``caller`` currently holds no role
        """
        caller = canonical_identity(caller)
        role = self.role_of(caller)
        if not role.can_append_log:
            logger.warning("rejected log write from unassigned %s", caller)
            raise NotAssigned("Not an assigned agent")
        if not isinstance(request_id, str):
            raise TypeError("request_id must be a string")
        if not isinstance(status, str):
            raise TypeError("status must be a string")
        if isinstance(risk_score, bool) or not isinstance(risk_score, int):
            raise TypeError("risk_score must be an int")
        if risk_score < 0:
            raise ValueError("risk_score must be non-negative")

        entry = LogEntry(
            agent=caller,
            role=role,
            request_id=request_id,
            risk_score=risk_score,
            status=status,
            timestamp=int(self._clock()),
        )
        self._entries.append(entry)
        index = len(self._entries) - 1
        logger.info(
            "log #%d: %s (%s) %s risk=%d status=%s",
            index,
            caller,
            role.name,
            request_id,
            risk_score,
            status,
        )
        return index

    def get_log(self, index: int) -> LogEntry:
        """
        Raises:
            LogIndexOutOfRange: if ``index`` does not name an entry
        """
        if isinstance(index, bool) or not isinstance(index, int):
            raise LogIndexOutOfRange(f"log index must be an int, got {type(index).__name__}")
        if index < 0 or index >= len(self._entries):
            raise LogIndexOutOfRange(
                f"log index {index} out of range (count {len(self._entries)})"
            )
        return self._entries[index]

    def get_log_count(self) -> int:
        return len(self._entries)

    def iter_logs(self, start: int = 0) -> Iterator[Tuple[int, LogEntry]]:
        for index in range(max(start, 0), len(self._entries)):
            yield index, self._entries[index]

    @classmethod
    def restore(
        cls,
        controller: str,
        roles: Dict[str, AgentRole],
        entries: List[LogEntry],
        clock: Optional[Callable[[], float]] = None,
    ) -> "AuditLedger":
        """Rebuild a ledger from persisted state, preserving entry order."""
        ledger = cls(controller, clock=clock)
        for identity, role in roles.items():
            parsed = AgentRole.parse(role)
            if parsed.is_assigned:
                ledger._roles[_require_identity(identity, "identity")] = parsed
        ledger._entries.extend(entries)
        return ledger
