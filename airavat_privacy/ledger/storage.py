"""CBOR snapshots of an audit ledger on disk."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union

import cbor2

from .errors import SchemaError
from .roles import AgentRole
from .state import AuditLedger, LogEntry

logger = logging.getLogger(__name__)

LEDGER_FORMAT_V = 1

_ENTRY_FIELDS = ("agent", "role", "requestId", "riskScore", "status", "timestamp")


def _entry_from_dict(data: Any, position: int) -> LogEntry:
    if not isinstance(data, dict) or set(data) != set(_ENTRY_FIELDS):
        raise SchemaError(f"entry {position} has unexpected fields")
    try:
        role = AgentRole(data["role"])
    except ValueError as exc:
        raise SchemaError(f"entry {position} has unknown role") from exc
    for key in ("agent", "requestId", "status"):
        if not isinstance(data[key], str):
            raise SchemaError(f"entry {position} field {key} must be a string")
    for key in ("riskScore", "timestamp"):
        if isinstance(data[key], bool) or not isinstance(data[key], int):
            raise SchemaError(f"entry {position} field {key} must be an int")
    return LogEntry(
        agent=data["agent"],
        role=role,
        request_id=data["requestId"],
        risk_score=data["riskScore"],
        status=data["status"],
        timestamp=data["timestamp"],
    )


def ledger_to_dict(ledger: AuditLedger) -> Dict[str, Any]:
    return {
        "v": LEDGER_FORMAT_V,
        "controller": ledger.controller,
        "roles": {identity: int(role) for identity, role in ledger.roles().items()},
        "entries": [entry.to_dict() for _, entry in ledger.iter_logs()],
    }


def ledger_from_dict(
    data: Any, clock: Optional[Callable[[], float]] = None
) -> AuditLedger:
    if not isinstance(data, dict):
        raise SchemaError("ledger snapshot must be a map")
    if data.get("v") != LEDGER_FORMAT_V:
        raise SchemaError("unsupported ledger snapshot version")
    controller = data.get("controller")
    roles = data.get("roles")
    entries = data.get("entries")
    if not isinstance(controller, str) or not controller:
        raise SchemaError("ledger snapshot has no controller")
    if not isinstance(roles, dict) or not isinstance(entries, list):
        raise SchemaError("ledger snapshot needs roles map and entries list")
    try:
        parsed_roles = {str(k): AgentRole(v) for k, v in roles.items()}
    except ValueError as exc:
        raise SchemaError("ledger snapshot has unknown role") from exc
    parsed_entries: List[LogEntry] = [
        _entry_from_dict(item, position) for position, item in enumerate(entries)
    ]
    return AuditLedger.restore(controller, parsed_roles, parsed_entries, clock=clock)


def save_ledger(ledger: AuditLedger, path: Union[str, Path]) -> None:
    """Write ``ledger`` to ``path``, replacing it atomically."""
    path = Path(path)
    blob = cbor2.dumps(ledger_to_dict(ledger), canonical=True)
    tmp = path.with_name(path.name + ".tmp")
    tmp.write_bytes(blob)
    os.replace(tmp, path)
    logger.debug("saved ledger (%d entries) to %s", ledger.get_log_count(), path)


def load_ledger(
    path: Union[str, Path], clock: Optional[Callable[[], float]] = None
) -> AuditLedger:
    """
    Raises:
        FileNotFoundError: if ``path`` does not exist
        SchemaError: if the file is not a ledger snapshot
    """
    blob = Path(path).read_bytes()
    try:
        data = cbor2.loads(blob)
    except (cbor2.CBORDecodeError, ValueError) as exc:
        raise SchemaError(f"{path} is not a CBOR ledger snapshot") from exc
    return ledger_from_dict(data, clock=clock)
