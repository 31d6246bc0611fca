"""
⚠️ DRAFT — requires crypto review before production use

Field and tree configuration for the eligibility proof pipeline.

Every value in this module is part of the contract with the external
circuits (fraud checker, CIBIL checker, budget checker). Changing the field,
the hash parameters or the default depth invalidates every published root.
"""

# ============================================================================
# FIELD SELECTION
# ============================================================================

# BN254 (alt_bn128) scalar field, the native field of circom/snarkjs Groth16.
FIELD_NAME = "bn254"
FIELD_PRIME = (
    21888242871839275222246405745257275088548364400416034343698204186575808495617
)
FIELD_BITS = 254
FIELD_BYTES = 32

# ============================================================================
# HASH FUNCTION (Poseidon, circomlib-compatible)
# ============================================================================

# Bump on any change to the constants or round structure below.
HASH_ID = "poseidon-bn254-x5-v1"

POSEIDON_ALPHA = 5
POSEIDON_FULL_ROUNDS = 8

# Partial rounds indexed by state width t = 2..17 (circomlib N_ROUNDS_P).
POSEIDON_PARTIAL_ROUNDS = (
    56, 57, 56, 60, 60, 63, 64, 63, 60, 66, 60, 65, 70, 60, 64, 68,
)
POSEIDON_MIN_WIDTH = 2
POSEIDON_MAX_WIDTH = POSEIDON_MIN_WIDTH + len(POSEIDON_PARTIAL_ROUNDS) - 1
POSEIDON_MAX_INPUTS = POSEIDON_MAX_WIDTH - 1

# Grain LFSR parameters from the Poseidon reference parameter script.
GRAIN_FIELD_TYPE = 1  # prime field
GRAIN_SBOX_TYPE = 0  # x^alpha

# Identifier digest (reduced into the field before hashing).
IDENTIFIER_DIGEST = "sha256"

# ============================================================================
# MERKLE TREE
# ============================================================================

DEFAULT_TREE_DEPTH = 10  # 1024 leaves, as deployed
MAX_TREE_DEPTH = 32

# Padding policies (see DESIGN.md, "padding policy").
PADDING_ZERO = "zero"
PADDING_REPEAT_LAST = "repeat_last"
PADDING_POLICIES = (PADDING_ZERO, PADDING_REPEAT_LAST)
DEFAULT_PADDING_POLICY = PADDING_ZERO

# Value committed by the zero sentinel leaf: combine1(PADDING_SENTINEL_VALUE).
PADDING_SENTINEL_VALUE = 0

# ============================================================================
# SERIALIZATION
# ============================================================================

SERIALIZATION_FORMAT = "CBOR"
WITNESS_VERSION = 1
SNAPSHOT_VERSION = 1

MAX_WITNESS_BYTES = 64 * 1024
MAX_SNAPSHOT_RECORDS = 2 ** MAX_TREE_DEPTH

# ============================================================================
# VALIDATION
# ============================================================================


def validate_config() -> bool:
    """
    Validate configuration parameters.

    Returns:
        True if configuration is valid

    Raises:
        AssertionError: If configuration is invalid
    """
    assert FIELD_PRIME.bit_length() == FIELD_BITS, "Field prime bit length mismatch"
    assert FIELD_PRIME % 2 == 1, "Field prime must be odd"
    assert POSEIDON_ALPHA == 5, "circomlib Poseidon uses the x^5 S-box"
    assert POSEIDON_FULL_ROUNDS % 2 == 0, "Full rounds must split evenly"
    assert POSEIDON_MAX_WIDTH == 17, "Partial round table must cover t = 2..17"
    assert 1 <= DEFAULT_TREE_DEPTH <= MAX_TREE_DEPTH, "Invalid default depth"
    assert DEFAULT_PADDING_POLICY in PADDING_POLICIES, "Invalid padding policy"
    assert 0 <= PADDING_SENTINEL_VALUE < FIELD_PRIME, "Sentinel outside field"
    assert SERIALIZATION_FORMAT in ["CBOR", "JSON"], "Invalid serialization format"

    return True


# Auto-validate on import
validate_config()
