"""
Fixed-depth Merkle tree over Poseidon for blacklist and score commitments.

The tree always has exactly 2^depth leaves: real leaves first, in caller
order, then padding according to a pinned ``PaddingPolicy``. Node hashing is
``combine(left, right)`` with fixed left||right ordering (no sorting), which
is what the circuits re-derive in-circuit.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, List, Sequence, Tuple, Union

from .config import (
    DEFAULT_PADDING_POLICY,
    DEFAULT_TREE_DEPTH,
    MAX_TREE_DEPTH,
    PADDING_REPEAT_LAST,
    PADDING_SENTINEL_VALUE,
    PADDING_ZERO,
)
from .exceptions import (
    ConfigurationError,
    DepthExceeded,
    IndexOutOfRange,
    ProofMismatch,
)
from .field import parse, require_field_element, to_hex
from .poseidon import combine, combine1

logger = logging.getLogger(__name__)


class PaddingPolicy(str, Enum):
    """
    How a tree is filled up to 2^depth leaves.

    - ZERO: every padding slot holds ``combine1(0)``. Default.
    - REPEAT_LAST: padding repeats the last real leaf. Kept only to reproduce
      roots published by the legacy credit-score and budget trees.
    """

    ZERO = PADDING_ZERO
    REPEAT_LAST = PADDING_REPEAT_LAST

    @classmethod
    def parse(cls, value: Union[str, "PaddingPolicy", None]) -> "PaddingPolicy":
        if value is None:
            return cls(DEFAULT_PADDING_POLICY)
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            valid = ", ".join(p.value for p in cls)
            raise ValueError(
                f"Invalid padding policy: {value!r}. Valid options: {valid}"
            ) from None


def padding_leaf() -> int:
    """The neutral sentinel leaf used by ``PaddingPolicy.ZERO``."""
    return combine1(PADDING_SENTINEL_VALUE)


def _require_depth(depth: Any) -> int:
    if isinstance(depth, bool) or not isinstance(depth, int):
        raise ConfigurationError("depth must be an int")
    if depth < 1 or depth > MAX_TREE_DEPTH:
        raise ConfigurationError(f"depth must be in [1, {MAX_TREE_DEPTH}], got {depth}")
    return depth


@dataclass(frozen=True)
class MerkleTree:
    """
    A fully built tree.

    Attributes:
        depth: Number of hashing levels (root is at level ``depth``)
        levels: ``levels[0]`` are the padded leaves, ``levels[-1] == (root,)``
        real_leaf_count: Number of caller-supplied leaves before padding
        padding: Policy used to fill the remaining slots
    """

    depth: int
    levels: Tuple[Tuple[int, ...], ...]
    real_leaf_count: int
    padding: PaddingPolicy

    @property
    def leaves(self) -> Tuple[int, ...]:
        return self.levels[0]

    @property
    def root(self) -> int:
        return self.levels[-1][0]

    @property
    def root_hex(self) -> str:
        return to_hex(self.root)

    @property
    def capacity(self) -> int:
        return 2 ** self.depth

    def is_padding_index(self, index: int) -> bool:
        return index >= self.real_leaf_count


def build_tree(
    leaves: Iterable[int],
    depth: int = DEFAULT_TREE_DEPTH,
    padding: Union[str, PaddingPolicy, None] = None,
) -> MerkleTree:
    """
    Build a fixed-depth Merkle tree.

    Args:
        leaves: Ordered leaf field elements (caller order is preserved)
        depth: Tree depth; the tree holds exactly 2^depth leaves
        padding: Padding policy (default ``PaddingPolicy.ZERO``)

    Returns:
        MerkleTree with every level materialised

    Raises:
        DepthExceeded: if there are more than 2^depth leaves
        InvalidFieldElement: if a leaf is not a field element
        ConfigurationError: if depth is out of range

    Example:
        tree = build_tree([combine1(hash_identifier(u)) for u in users], depth=10)
        publish(tree.root_hex)
    """
    depth = _require_depth(depth)
    policy = PaddingPolicy.parse(padding)
    level0: List[int] = [
        require_field_element(leaf, f"leaves[{i}]") for i, leaf in enumerate(leaves)
    ]
    capacity = 2 ** depth
    real_count = len(level0)
    if real_count > capacity:
        raise DepthExceeded(real_count, depth)

    if policy is PaddingPolicy.REPEAT_LAST and level0:
        filler = level0[-1]
    else:
        # REPEAT_LAST over an empty snapshot has nothing to repeat.
        filler = padding_leaf()
    level0.extend([filler] * (capacity - real_count))

    levels: List[Tuple[int, ...]] = [tuple(level0)]
    current = level0
    while len(current) > 1:
        current = [combine(current[i], current[i + 1]) for i in range(0, len(current), 2)]
        levels.append(tuple(current))

    tree = MerkleTree(
        depth=depth,
        levels=tuple(levels),
        real_leaf_count=real_count,
        padding=policy,
    )
    logger.debug(
        "built depth-%d tree: %d real leaves, padding=%s, root=%s",
        depth,
        real_count,
        policy.value,
        tree.root_hex,
    )
    return tree


# ============================================================================
# AUTHENTICATION PATHS
# ============================================================================


@dataclass(frozen=True)
class AuthenticationPath:
    """
    Sibling values and direction bits from one leaf up to the root.

    ``directions[i]`` is the position of the running node at level ``i``:
    0 means it is the left child (sibling on the right), 1 the right child.
    """

    leaf_index: int
    leaf: int
    siblings: Tuple[int, ...]
    directions: Tuple[int, ...]
    root: int

    @property
    def depth(self) -> int:
        return len(self.siblings)

    def lemma(self) -> List[int]:
        """Flattened ``[leaf, sibling_0, ..., sibling_{depth-1}, root]``."""
        return [self.leaf, *self.siblings, self.root]

    def pairs(self) -> List[Tuple[int, int]]:
        return list(zip(self.siblings, self.directions))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "leafIndex": self.leaf_index,
            "leaf": str(self.leaf),
            "pathElements": [str(s) for s in self.siblings],
            "pathDirections": list(self.directions),
            "root": str(self.root),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AuthenticationPath":
        try:
            siblings = tuple(
                parse(s, f"pathElements[{i}]")
                for i, s in enumerate(data["pathElements"])
            )
            directions = tuple(
                _require_bit(d, i) for i, d in enumerate(data["pathDirections"])
            )
            leaf_index = int(data["leafIndex"])
            leaf = parse(data["leaf"], "leaf")
            root = parse(data["root"], "root")
        except KeyError as exc:
            raise ValueError(f"authentication path missing field {exc}") from exc
        if len(siblings) != len(directions):
            raise ValueError("pathElements and pathDirections length mismatch")
        return cls(
            leaf_index=leaf_index,
            leaf=leaf,
            siblings=siblings,
            directions=directions,
            root=root,
        )


def _require_index(index: Any, capacity: int) -> int:
    if isinstance(index, bool) or not isinstance(index, int):
        raise IndexOutOfRange(f"leaf index must be an int, got {type(index).__name__}")
    if index < 0 or index >= capacity:
        raise IndexOutOfRange(f"leaf index {index} not in [0, {capacity})")
    return index


def _require_bit(value: Any, position: int) -> int:
    if isinstance(value, bool) or value not in (0, 1):
        raise ValueError(f"direction[{position}] must be 0 or 1, got {value!r}")
    return int(value)


def prove(tree: MerkleTree, leaf_index: int) -> AuthenticationPath:
    """
    Extract the authentication path for ``leaf_index``.

    Raises:
        IndexOutOfRange: if ``leaf_index`` is not in [0, 2^depth)
    """
    index = _require_index(leaf_index, tree.capacity)
    siblings: List[int] = []
    directions: List[int] = []
    for level in tree.levels[:-1]:
        siblings.append(level[index ^ 1])
        directions.append(index % 2)
        index //= 2
    return AuthenticationPath(
        leaf_index=leaf_index,
        leaf=tree.leaves[leaf_index],
        siblings=tuple(siblings),
        directions=tuple(directions),
        root=tree.root,
    )


def compute_root(
    leaf: int, siblings: Sequence[int], directions: Sequence[int]
) -> int:
    """Replay the path hashing from ``leaf`` upwards."""
    if len(siblings) != len(directions):
        raise ValueError("siblings and directions length mismatch")
    current = require_field_element(leaf, "leaf")
    for position, (sibling, direction) in enumerate(zip(siblings, directions)):
        if _require_bit(direction, position):
            # Sibling is on left, current on right
            current = combine(sibling, current)
        else:
            # Sibling is on right, current on left
            current = combine(current, sibling)
    return current


def _path_parts(
    path: Union[AuthenticationPath, Sequence[Tuple[int, int]]]
) -> Tuple[Sequence[int], Sequence[int]]:
    if isinstance(path, AuthenticationPath):
        return path.siblings, path.directions
    pairs = list(path)
    return [s for s, _ in pairs], [d for _, d in pairs]


def verify_path(
    leaf: int,
    path: Union[AuthenticationPath, Sequence[Tuple[int, int]]],
    root: int,
) -> bool:
    """
    Check an authentication path against a previously published root.

    Args:
        leaf: Leaf value being proven
        path: ``AuthenticationPath`` or ``[(sibling, direction), ...]``
        root: Claimed root

    Returns:
        True if replaying the path from ``leaf`` reproduces ``root``
    """
    siblings, directions = _path_parts(path)
    claimed = require_field_element(root, "root")
    return compute_root(leaf, siblings, directions) == claimed


def require_valid_path(
    leaf: int,
    path: Union[AuthenticationPath, Sequence[Tuple[int, int]]],
    root: int,
) -> None:
    """
    Like ``verify_path`` but raises instead of returning False.

    Raises:
        ProofMismatch: if the replayed root differs from ``root``
    """
    if not verify_path(leaf, path, root):
        raise ProofMismatch(
            f"authentication path does not reproduce root {to_hex(root)}"
        )
