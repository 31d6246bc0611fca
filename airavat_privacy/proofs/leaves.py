"""
Versioned leaf-source snapshots.

A snapshot is the immutable input to ``build_tree``: the ordered records of
one registry (blacklist, credit scores, spend histories) at one version.
Rebuilding a tree means building from a new snapshot; snapshots are never
mutated in place.

Leaf derivation per kind:
    membership: combine1(H(id))
    threshold:  combine(H(id), value)
    budget:     combine(H(id), poseidon(spends))
where H is ``hash_identifier``.
"""

from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple, Union

import cbor2

from .config import MAX_SNAPSHOT_RECORDS, POSEIDON_MAX_INPUTS, SNAPSHOT_VERSION
from .field import require_field_element
from .identifiers import hash_identifier
from .merkle import PaddingPolicy
from .poseidon import combine, combine1, poseidon

KIND_MEMBERSHIP = "membership"
KIND_THRESHOLD = "threshold"
KIND_BUDGET = "budget"
SNAPSHOT_KINDS = frozenset({KIND_MEMBERSHIP, KIND_THRESHOLD, KIND_BUDGET})


def spends_hash(spends: Sequence[int]) -> int:
    """Commitment to a spend history, ``poseidon(spends)``."""
    values = list(spends)
    if not values or len(values) > POSEIDON_MAX_INPUTS:
        raise ValueError(
            f"spend history must have 1..{POSEIDON_MAX_INPUTS} entries, got {len(values)}"
        )
    return poseidon(values)


@dataclass(frozen=True)
class LeafSnapshot:
    """
    Immutable, ordered registry contents.

    Attributes:
        kind: "membership", "threshold" or "budget"
        version: Caller-assigned registry version (monotonic per registry)
        records: Identifiers (membership) or ``(identifier, value)`` pairs
        padding: Padding policy the published root was built with
    """

    kind: str
    version: int
    records: Tuple[Any, ...]
    padding: PaddingPolicy = PaddingPolicy.ZERO

    def __post_init__(self) -> None:
        if self.kind not in SNAPSHOT_KINDS:
            raise ValueError(f"unsupported snapshot kind: {self.kind!r}")
        if isinstance(self.version, bool) or not isinstance(self.version, int):
            raise ValueError("snapshot version must be an int")
        if self.version < 0:
            raise ValueError("snapshot version must be non-negative")
        if len(self.records) > MAX_SNAPSHOT_RECORDS:
            raise ValueError("snapshot has too many records")
        seen = set()
        for position, record in enumerate(self.records):
            identifier = self._identifier(record)
            hash_identifier(identifier)
            if identifier in seen:
                raise ValueError(f"duplicate identifier at records[{position}]")
            seen.add(identifier)
            if self.kind == KIND_THRESHOLD:
                require_field_element(record[1], f"records[{position}].value")
            elif self.kind == KIND_BUDGET:
                if not isinstance(record[1], (tuple, list)):
                    raise ValueError(f"records[{position}] spends must be a sequence")
                for j, spend in enumerate(record[1]):
                    require_field_element(spend, f"records[{position}].spends[{j}]")
                if not record[1] or len(record[1]) > POSEIDON_MAX_INPUTS:
                    raise ValueError(
                        f"records[{position}] spend history must have "
                        f"1..{POSEIDON_MAX_INPUTS} entries"
                    )

    def _identifier(self, record: Any) -> Any:
        if self.kind == KIND_MEMBERSHIP:
            return record
        if not isinstance(record, (tuple, list)) or len(record) != 2:
            raise ValueError(f"{self.kind} records must be (identifier, value) pairs")
        return record[0]

    def identifiers(self) -> List[str]:
        return [self._identifier(record) for record in self.records]

    def index_of(self, identifier: str) -> Optional[int]:
        for position, record in enumerate(self.records):
            if self._identifier(record) == identifier:
                return position
        return None

    def record_for(self, identifier: str) -> Optional[Any]:
        position = self.index_of(identifier)
        return None if position is None else self.records[position]

    def leaf_for(self, record: Any) -> int:
        if self.kind == KIND_MEMBERSHIP:
            return combine1(hash_identifier(record))
        identifier, attribute = record
        if self.kind == KIND_THRESHOLD:
            return combine(hash_identifier(identifier), attribute)
        return combine(hash_identifier(identifier), spends_hash(attribute))

    def leaves(self) -> List[int]:
        return [self.leaf_for(record) for record in self.records]

    def to_dict(self) -> Dict[str, Any]:
        if self.kind == KIND_MEMBERSHIP:
            records: List[Any] = list(self.records)
        elif self.kind == KIND_THRESHOLD:
            records = [{"id": r[0], "value": r[1]} for r in self.records]
        else:
            records = [{"id": r[0], "spends": list(r[1])} for r in self.records]
        return {
            "snapshotVersion": SNAPSHOT_VERSION,
            "kind": self.kind,
            "version": self.version,
            "padding": self.padding.value,
            "records": records,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LeafSnapshot":
        if data.get("snapshotVersion", SNAPSHOT_VERSION) != SNAPSHOT_VERSION:
            raise ValueError("unsupported snapshotVersion")
        kind = data.get("kind")
        raw = data.get("records")
        if not isinstance(raw, list):
            raise ValueError("records must be a list")
        try:
            if kind == KIND_MEMBERSHIP:
                records: Tuple[Any, ...] = tuple(raw)
            elif kind == KIND_THRESHOLD:
                records = tuple((r["id"], r["value"]) for r in raw)
            else:
                records = tuple((r["id"], tuple(r["spends"])) for r in raw)
        except (KeyError, TypeError) as exc:
            raise ValueError(f"malformed {kind} record: {exc}") from exc
        return cls(
            kind=kind,
            version=data.get("version", 0),
            records=records,
            padding=PaddingPolicy.parse(data.get("padding")),
        )

    def digest(self) -> str:
        """SHA-256 fingerprint of the canonical CBOR encoding."""
        blob = cbor2.dumps(self.to_dict(), canonical=True)
        return hashlib.sha256(blob).hexdigest()


def membership_snapshot(
    identifiers: Iterable[str],
    version: int = 0,
    padding: Union[str, PaddingPolicy, None] = None,
) -> LeafSnapshot:
    return LeafSnapshot(
        kind=KIND_MEMBERSHIP,
        version=version,
        records=tuple(identifiers),
        padding=PaddingPolicy.parse(padding),
    )


def threshold_snapshot(
    records: Iterable[Tuple[str, int]],
    version: int = 0,
    padding: Union[str, PaddingPolicy, None] = None,
) -> LeafSnapshot:
    return LeafSnapshot(
        kind=KIND_THRESHOLD,
        version=version,
        records=tuple((identifier, value) for identifier, value in records),
        padding=PaddingPolicy.parse(padding),
    )


def budget_snapshot(
    records: Iterable[Tuple[str, Sequence[int]]],
    version: int = 0,
    padding: Union[str, PaddingPolicy, None] = None,
) -> LeafSnapshot:
    return LeafSnapshot(
        kind=KIND_BUDGET,
        version=version,
        records=tuple((identifier, tuple(spends)) for identifier, spends in records),
        padding=PaddingPolicy.parse(padding),
    )


def load_snapshot(
    path: Union[str, Path], padding: Union[str, PaddingPolicy, None] = None
) -> LeafSnapshot:
    """
    Read a JSON registry file written by ``dump_snapshot``.

    ``padding`` only applies when the file does not pin a policy itself.
    """
    with Path(path).open("r", encoding="utf-8") as handle:
        data = json.load(handle)
    if not isinstance(data, dict):
        raise ValueError("snapshot file must contain a JSON object")
    if padding is not None and "padding" not in data:
        data["padding"] = PaddingPolicy.parse(padding).value
    return LeafSnapshot.from_dict(data)


def dump_snapshot(snapshot: LeafSnapshot, path: Union[str, Path]) -> Path:
    path = Path(path)
    with path.open("w", encoding="utf-8") as handle:
        json.dump(snapshot.to_dict(), handle, indent=2, sort_keys=True)
        handle.write("\n")
    return path
