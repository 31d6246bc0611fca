"""
Eligibility pipelines: snapshot -> tree -> per-query witness.

Each pipeline owns one built tree and the snapshot it was built from, so
leaf ordering is identical between construction and proof generation.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Sequence

from .config import DEFAULT_TREE_DEPTH
from .exceptions import BudgetExceeded, IdentifierNotFound, ProofMismatch, ThresholdNotMet
from .field import require_field_element
from .identifiers import hash_identifier
from .leaves import KIND_BUDGET, KIND_MEMBERSHIP, KIND_THRESHOLD, LeafSnapshot, spends_hash
from .merkle import MerkleTree, build_tree, prove
from .witness import BudgetWitness, MembershipWitness, ThresholdWitness

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _SnapshotTree:
    snapshot: LeafSnapshot
    tree: MerkleTree

    expected_kind = ""

    @classmethod
    def from_snapshot(cls, snapshot: LeafSnapshot, depth: int = DEFAULT_TREE_DEPTH):
        if snapshot.kind != cls.expected_kind:
            raise ValueError(
                f"{cls.__name__} needs a {cls.expected_kind} snapshot, got {snapshot.kind}"
            )
        tree = build_tree(snapshot.leaves(), depth=depth, padding=snapshot.padding)
        logger.info(
            "%s v%d committed: %d records, root=%s",
            snapshot.kind,
            snapshot.version,
            len(snapshot.records),
            tree.root_hex,
        )
        return cls(snapshot=snapshot, tree=tree)

    @property
    def root(self) -> int:
        return self.tree.root

    @property
    def root_hex(self) -> str:
        return self.tree.root_hex

    @property
    def depth(self) -> int:
        return self.tree.depth

    def contains(self, identifier: str) -> bool:
        return self.snapshot.index_of(identifier) is not None

    def _index(self, identifier: str) -> int:
        index = self.snapshot.index_of(identifier)
        if index is None:
            raise IdentifierNotFound(
                f"identifier not in {self.snapshot.kind} snapshot v{self.snapshot.version}"
            )
        return index


class MembershipTree(_SnapshotTree):
    """Blacklist tree; proves that an identifier is listed."""

    expected_kind = KIND_MEMBERSHIP

    def prove_membership(self, identifier: str) -> MembershipWitness:
        index = self._index(identifier)
        witness = MembershipWitness.from_path(prove(self.tree, index))
        witness.check()
        return witness


class ThresholdTree(_SnapshotTree):
    """Credit-score tree; proves a committed score meets a public threshold."""

    expected_kind = KIND_THRESHOLD

    def prove_threshold(self, identifier: str, threshold: int) -> ThresholdWitness:
        """
        Build the CIBIL checker witness.

        Raises:
            IdentifierNotFound: if the identifier is not committed
            InvalidFieldElement: if ``threshold`` is not a field element
            ThresholdNotMet: if the committed value is below ``threshold``
        """
        require_field_element(threshold, "threshold")
        index = self._index(identifier)
        _, value = self.snapshot.records[index]
        if value < threshold:
            raise ThresholdNotMet(
                f"committed value is below the required threshold ({threshold})"
            )
        witness = ThresholdWitness.from_path(
            prove(self.tree, index),
            threshold=threshold,
            identifier_hash=hash_identifier(identifier),
            attribute_value=value,
        )
        witness.check()
        return witness


class BudgetTree(_SnapshotTree):
    """Spend-history tree; proves total committed spend stays within a budget."""

    expected_kind = KIND_BUDGET

    def prove_budget(
        self, identifier: str, spends: Sequence[int], threshold: int
    ) -> BudgetWitness:
        """
        Build the budget checker witness from the spends the user discloses.

        Raises:
            IdentifierNotFound: if the identifier is not committed
            ProofMismatch: if ``spends`` do not hash to the committed value
            InvalidFieldElement: if ``threshold`` is not a field element
            BudgetExceeded: if ``sum(spends) > threshold``
        """
        require_field_element(threshold, "threshold")
        index = self._index(identifier)
        _, committed = self.snapshot.records[index]
        disclosed = tuple(spends)
        disclosed_hash = spends_hash(disclosed)
        if disclosed_hash != spends_hash(committed):
            raise ProofMismatch("provided spends do not match the registered spend hash")
        if sum(disclosed) > threshold:
            raise BudgetExceeded(
                f"total spend {sum(disclosed)} exceeds the budget ({threshold})"
            )
        path = prove(self.tree, index)
        witness = BudgetWitness(
            root=path.root,
            threshold=threshold,
            identifier_hash=hash_identifier(identifier),
            spends=disclosed,
            spends_hash=disclosed_hash,
            path_elements=path.siblings,
            path_index=index,
        )
        witness.check()
        return witness


TREE_TYPES = {
    KIND_MEMBERSHIP: MembershipTree,
    KIND_THRESHOLD: ThresholdTree,
    KIND_BUDGET: BudgetTree,
}


def tree_for(snapshot: LeafSnapshot, depth: int = DEFAULT_TREE_DEPTH) -> _SnapshotTree:
    """Build the pipeline matching ``snapshot.kind``."""
    return TREE_TYPES[snapshot.kind].from_snapshot(snapshot, depth=depth)
