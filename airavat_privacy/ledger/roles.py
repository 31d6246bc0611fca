"""Agent roles recognised by the audit ledger."""

from __future__ import annotations

from enum import IntEnum
from typing import Union


class AgentRole(IntEnum):
    """
    Closed set of agent roles. Values match the on-chain enum ordinals.

    NONE is the initial state of every identity and the state after revoke.
    """

    NONE = 0
    VRA = 1  # Verification and Risk Assessment
    RBA = 2  # Risk Based Authentication
    ZBKA = 3  # Zero-Knowledge Based Agent
    DRA = 4  # Data Retrieval
    TLSA = 5  # Time Lock Server
    TMA = 6  # Transaction Monitoring
    OCA = 7  # Organisation Consent
    BBA = 8  # Blockchain Based Agent

    @property
    def is_assigned(self) -> bool:
        return self is not AgentRole.NONE

    @property
    def can_append_log(self) -> bool:
        return self.is_assigned

    @classmethod
    def parse(cls, value: Union[str, int, "AgentRole"]) -> "AgentRole":
        """
        Accept an ``AgentRole``, its ordinal, or its name (case-insensitive).

        Raises:
            ValueError: for unknown roles.
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, bool):
            raise ValueError(f"Invalid agent role: {value!r}")
        if isinstance(value, int):
            try:
                return cls(value)
            except ValueError:
                raise ValueError(f"Invalid agent role: {value!r}") from None
        if isinstance(value, str):
            key = value.strip().upper()
            if key.isdigit():
                return cls.parse(int(key))
            try:
                return cls[key]
            except KeyError:
                valid = ", ".join(role.name for role in cls)
                raise ValueError(
                    f"Invalid agent role: {value!r}. Valid options: {valid}"
                ) from None
        raise ValueError(f"Invalid agent role: {value!r}")
