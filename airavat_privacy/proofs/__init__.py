"""Public API for proofs: identifier hashing, Poseidon, trees and witnesses."""
from __future__ import annotations

from .eligibility import BudgetTree, MembershipTree, ThresholdTree
from .exceptions import (
    BudgetExceeded,
    ConfigurationError,
    DepthExceeded,
    IdentifierNotFound,
    IndexOutOfRange,
    InvalidFieldElement,
    InvalidIdentifier,
    PrivacyProtocolError,
    ProofMismatch,
    ThresholdNotMet,
)
from .identifiers import hash_identifier
from .leaves import (
    LeafSnapshot,
    budget_snapshot,
    membership_snapshot,
    threshold_snapshot,
)
from .merkle import (
    AuthenticationPath,
    MerkleTree,
    PaddingPolicy,
    build_tree,
    prove,
    require_valid_path,
    verify_path,
)
from .poseidon import combine, combine1, poseidon
from .witness import (
    BudgetWitness,
    MembershipWitness,
    ThresholdWitness,
    decode_witness,
    encode_witness,
)

__all__ = [
    "AuthenticationPath",
    "BudgetExceeded",
    "BudgetTree",
    "BudgetWitness",
    "ConfigurationError",
    "DepthExceeded",
    "IdentifierNotFound",
    "IndexOutOfRange",
    "InvalidFieldElement",
    "InvalidIdentifier",
    "LeafSnapshot",
    "MembershipTree",
    "MembershipWitness",
    "MerkleTree",
    "PaddingPolicy",
    "PrivacyProtocolError",
    "ProofMismatch",
    "ThresholdNotMet",
    "ThresholdTree",
    "ThresholdWitness",
    "budget_snapshot",
    "build_tree",
    "combine",
    "combine1",
    "decode_witness",
    "encode_witness",
    "hash_identifier",
    "membership_snapshot",
    "poseidon",
    "prove",
    "require_valid_path",
    "threshold_snapshot",
    "verify_path",
]
