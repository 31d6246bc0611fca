"""
⚠️ DRAFT — requires crypto review before production use

Custom exceptions for the eligibility proof pipeline.

Every failure mode has its own class so callers can tell bad input from a
missing record from a broken proof.
"""


class PrivacyProtocolError(Exception):
    """Base exception for proof pipeline errors."""

    pass


class ConfigurationError(PrivacyProtocolError):
    """Configuration error."""

    pass


class InvalidIdentifier(PrivacyProtocolError, ValueError):
    """Identifier is empty, undefined or not a string."""

    pass


class InvalidFieldElement(PrivacyProtocolError, ValueError):
    """Value is not an integer in [0, FIELD_PRIME)."""

    pass


class DepthExceeded(PrivacyProtocolError):
    """More leaves than the configured tree depth can hold."""

    def __init__(self, leaf_count: int, depth: int):
        self.leaf_count = leaf_count
        self.depth = depth
        super().__init__(
            f"{leaf_count} leaves do not fit a depth-{depth} tree "
            f"(capacity {2 ** depth})"
        )


class IndexOutOfRange(PrivacyProtocolError, IndexError):
    """Leaf index outside [0, 2^depth)."""

    pass


class ProofMismatch(PrivacyProtocolError):
    """Replayed root differs from the claimed root."""

    pass


class IdentifierNotFound(PrivacyProtocolError, LookupError):
    """Identifier is not part of the leaf snapshot."""

    pass


class ThresholdNotMet(PrivacyProtocolError):
    """Committed attribute value is below the public threshold."""

    pass


class BudgetExceeded(PrivacyProtocolError):
    """Committed spends add up to more than the public budget."""

    pass
