"""
Circuit witness builders for the fraud, CIBIL and budget checker circuits.

Witnesses carry the off-circuit authentication path in the exact input
layout each circom circuit expects. ``to_circuit_inputs()`` returns the
snarkjs ``input.json`` mapping (decimal strings); ``encode_witness()`` is the
CBOR form used to hand witnesses between agents.

Notes:
    - ``check()`` replays the path off-circuit before anything is handed to
      the prover; a witness that fails here would only fail later in-circuit.
    - Field names on the circuit side are fixed by the deployed circuits.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Tuple, Union

import cbor2

from .config import HASH_ID, MAX_WITNESS_BYTES, WITNESS_VERSION
from .exceptions import BudgetExceeded, ProofMismatch, ThresholdNotMet
from .field import from_decimal, require_field_element, to_decimal
from .merkle import AuthenticationPath, require_valid_path
from .poseidon import combine, poseidon


def _index_bits(index: int, depth: int) -> List[int]:
    """
    Direction bits of a leaf index, lowest level first.

    Raises:
        ProofMismatch: if ``index`` is not a leaf position of a depth-``depth``
            tree; the circuit range-checks it the same way.
    """
    if isinstance(index, bool) or not isinstance(index, int):
        raise ProofMismatch(f"leaf index must be an int, got {type(index).__name__}")
    if not 0 <= index < 2 ** depth:
        raise ProofMismatch(f"leaf index {index} not in [0, {2 ** depth})")
    return [(index >> level) & 1 for level in range(depth)]


@dataclass(frozen=True)
class MembershipWitness:
    """Blacklist membership: ``leaf = combine1(identifier_hash)``."""

    root: int
    leaf: int
    path_elements: Tuple[int, ...]
    path_directions: Tuple[int, ...]

    kind = "membership"

    @classmethod
    def from_path(cls, path: AuthenticationPath) -> "MembershipWitness":
        return cls(
            root=path.root,
            leaf=path.leaf,
            path_elements=path.siblings,
            path_directions=path.directions,
        )

    @property
    def depth(self) -> int:
        return len(self.path_elements)

    def check(self) -> None:
        if len(self.path_elements) != len(self.path_directions):
            raise ProofMismatch("pathElements and pathDirections length mismatch")
        require_valid_path(
            self.leaf, list(zip(self.path_elements, self.path_directions)), self.root
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "root": self.root,
            "leaf": self.leaf,
            "pathElements": list(self.path_elements),
            "pathDirections": list(self.path_directions),
        }

    def to_circuit_inputs(self) -> Dict[str, Any]:
        return {
            "blacklistRoot": to_decimal(self.root),
            "userHash": to_decimal(self.leaf),
            "pathElements": [to_decimal(x) for x in self.path_elements],
            "pathIndices": list(self.path_directions),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MembershipWitness":
        return cls(
            root=require_field_element(data["root"], "root"),
            leaf=require_field_element(data["leaf"], "leaf"),
            path_elements=tuple(
                require_field_element(x, "pathElements") for x in data["pathElements"]
            ),
            path_directions=tuple(int(d) for d in data["pathDirections"]),
        )


@dataclass(frozen=True)
class ThresholdWitness:
    """Score threshold: ``leaf = combine(identifier_hash, attribute_value)``."""

    root: int
    threshold: int
    leaf_index: int
    auth_path: Tuple[int, ...]
    identifier_hash: int
    attribute_value: int

    kind = "threshold"

    @classmethod
    def from_path(
        cls,
        path: AuthenticationPath,
        threshold: int,
        identifier_hash: int,
        attribute_value: int,
    ) -> "ThresholdWitness":
        return cls(
            root=path.root,
            threshold=threshold,
            leaf_index=path.leaf_index,
            auth_path=tuple(path.lemma()),
            identifier_hash=identifier_hash,
            attribute_value=attribute_value,
        )

    @property
    def depth(self) -> int:
        return len(self.auth_path) - 2

    def check(self) -> None:
        if len(self.auth_path) < 3:
            raise ProofMismatch("authPath must hold leaf, siblings and root")
        require_field_element(self.threshold, "threshold")
        leaf = combine(self.identifier_hash, self.attribute_value)
        if self.auth_path[0] != leaf:
            raise ProofMismatch("authPath leaf does not commit to the attribute value")
        if self.auth_path[-1] != self.root:
            raise ProofMismatch("authPath root differs from the public root")
        siblings = self.auth_path[1:-1]
        directions = _index_bits(self.leaf_index, len(siblings))
        require_valid_path(leaf, list(zip(siblings, directions)), self.root)
        if self.attribute_value < self.threshold:
            raise ThresholdNotMet(
                f"committed value is below the required threshold ({self.threshold})"
            )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "root": self.root,
            "threshold": self.threshold,
            "leafIndex": self.leaf_index,
            "authPath": list(self.auth_path),
            "identifierHash": self.identifier_hash,
            "attributeValue": self.attribute_value,
        }

    def to_circuit_inputs(self) -> Dict[str, Any]:
        return {
            "merkleRoot": to_decimal(self.root),
            "threshold": to_decimal(self.threshold),
            "userIndex": str(self.leaf_index),
            "authPath": [to_decimal(x) for x in self.auth_path],
            "userIDHash": to_decimal(self.identifier_hash),
            "userCIBILScore": to_decimal(self.attribute_value),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ThresholdWitness":
        return cls(
            root=require_field_element(data["root"], "root"),
            threshold=require_field_element(data["threshold"], "threshold"),
            leaf_index=int(data["leafIndex"]),
            auth_path=tuple(
                require_field_element(x, "authPath") for x in data["authPath"]
            ),
            identifier_hash=require_field_element(data["identifierHash"], "identifierHash"),
            attribute_value=require_field_element(data["attributeValue"], "attributeValue"),
        )


@dataclass(frozen=True)
class BudgetWitness:
    """Spend budget: ``leaf = combine(identifier_hash, poseidon(spends))``."""

    root: int
    threshold: int
    identifier_hash: int
    spends: Tuple[int, ...]
    spends_hash: int
    path_elements: Tuple[int, ...]
    path_index: int

    kind = "budget"

    @property
    def depth(self) -> int:
        return len(self.path_elements)

    def check(self) -> None:
        require_field_element(self.threshold, "threshold")
        if poseidon(self.spends) != self.spends_hash:
            raise ProofMismatch("spends do not match the committed spend hash")
        leaf = combine(self.identifier_hash, self.spends_hash)
        directions = _index_bits(self.path_index, len(self.path_elements))
        require_valid_path(leaf, list(zip(self.path_elements, directions)), self.root)
        total = sum(self.spends)
        if total > self.threshold:
            raise BudgetExceeded(
                f"total spend {total} exceeds the budget ({self.threshold})"
            )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "root": self.root,
            "threshold": self.threshold,
            "identifierHash": self.identifier_hash,
            "spends": list(self.spends),
            "spendsHash": self.spends_hash,
            "pathElements": list(self.path_elements),
            "pathIndex": self.path_index,
        }

    def to_circuit_inputs(self) -> Dict[str, Any]:
        return {
            "userIdHash": to_decimal(self.identifier_hash),
            "spends": [to_decimal(s) for s in self.spends],
            "threshold": to_decimal(self.threshold),
            "merkleRoot": to_decimal(self.root),
            "spendsHash": to_decimal(self.spends_hash),
            "pathElements": [to_decimal(x) for x in self.path_elements],
            "pathIndex": str(self.path_index),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BudgetWitness":
        return cls(
            root=require_field_element(data["root"], "root"),
            threshold=require_field_element(data["threshold"], "threshold"),
            identifier_hash=require_field_element(data["identifierHash"], "identifierHash"),
            spends=tuple(require_field_element(s, "spends") for s in data["spends"]),
            spends_hash=require_field_element(data["spendsHash"], "spendsHash"),
            path_elements=tuple(
                require_field_element(x, "pathElements") for x in data["pathElements"]
            ),
            path_index=int(data["pathIndex"]),
        )


Witness = Union[MembershipWitness, ThresholdWitness, BudgetWitness]

WITNESS_TYPES = {
    MembershipWitness.kind: MembershipWitness,
    ThresholdWitness.kind: ThresholdWitness,
    BudgetWitness.kind: BudgetWitness,
}


def encode_witness(witness: Witness) -> bytes:
    payload = {
        "v": WITNESS_VERSION,
        "hash": HASH_ID,
        "t": witness.kind,
        "w": witness.to_dict(),
    }
    blob = cbor2.dumps(payload, canonical=True)
    if len(blob) > MAX_WITNESS_BYTES:
        raise ValueError("witness too large")
    return blob


def decode_witness(blob: bytes) -> Witness:
    if not isinstance(blob, (bytes, bytearray)):
        raise TypeError("witness blob must be bytes")
    if len(blob) > MAX_WITNESS_BYTES:
        raise ValueError("witness too large")
    payload = cbor2.loads(bytes(blob))
    if not isinstance(payload, dict):
        raise ValueError("witness payload must be a dict")
    if payload.get("v") != WITNESS_VERSION:
        raise ValueError("unsupported witness version")
    if payload.get("hash") != HASH_ID:
        raise ValueError(f"witness built with a different hash: {payload.get('hash')!r}")
    witness_type = WITNESS_TYPES.get(payload.get("t"))
    if witness_type is None:
        raise ValueError("unsupported witness type")
    try:
        return witness_type.from_dict(payload["w"])
    except (KeyError, TypeError) as exc:
        raise ValueError(f"malformed witness: {exc}") from exc


def write_circuit_inputs(witness: Witness, path: Union[str, Path]) -> Path:
    """Write the snarkjs ``input.json`` for ``witness``."""
    path = Path(path)
    path.write_text(
        json.dumps(witness.to_circuit_inputs(), indent=2) + "\n", encoding="utf-8"
    )
    return path


def read_membership_inputs(path: Union[str, Path]) -> MembershipWitness:
    """Load a fraud-checker ``input.json`` back into a witness."""
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    return MembershipWitness(
        root=from_decimal(data["blacklistRoot"], "blacklistRoot"),
        leaf=from_decimal(data["userHash"], "userHash"),
        path_elements=tuple(from_decimal(x, "pathElements") for x in data["pathElements"]),
        path_directions=tuple(int(d) for d in data["pathIndices"]),
    )
