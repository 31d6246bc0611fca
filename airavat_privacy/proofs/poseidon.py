"""
⚠️ DRAFT — requires crypto review before production use

Poseidon hash over the BN254 scalar field.

Bit-compatible with circomlib / circomlibjs ``poseidon``: x^5 S-box, 8 full
rounds, width-dependent partial rounds, round constants and Cauchy MDS matrix
derived with the Grain LFSR procedure from the Poseidon reference parameter
script. The external circuits hash with exactly this function, so any change
here is a breaking change (bump ``HASH_ID``).
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from functools import lru_cache
from typing import Iterator, List, Sequence, Tuple

from .config import (
    FIELD_BITS,
    FIELD_PRIME,
    GRAIN_FIELD_TYPE,
    GRAIN_SBOX_TYPE,
    POSEIDON_ALPHA,
    POSEIDON_FULL_ROUNDS,
    POSEIDON_MAX_INPUTS,
    POSEIDON_MIN_WIDTH,
    POSEIDON_PARTIAL_ROUNDS,
)
from .exceptions import InvalidFieldElement
from .field import require_field_element


@dataclass(frozen=True)
class PoseidonParameters:
    """Round constants and MDS matrix for one state width."""

    width: int
    full_rounds: int
    partial_rounds: int
    round_constants: Tuple[int, ...]
    mds: Tuple[Tuple[int, ...], ...]


# ============================================================================
# GRAIN LFSR PARAMETER GENERATION
# ============================================================================


def _init_sequence(width: int, full_rounds: int, partial_rounds: int) -> List[int]:
    fields = (
        (GRAIN_FIELD_TYPE, 2),
        (GRAIN_SBOX_TYPE, 4),
        (FIELD_BITS, 12),
        (width, 12),
        (full_rounds, 10),
        (partial_rounds, 10),
    )
    bits: List[int] = []
    for value, size in fields:
        bits.extend(int(b) for b in format(value, f"0{size}b"))
    bits.extend([1] * 30)
    return bits


def _grain_stream(width: int, full_rounds: int, partial_rounds: int) -> Iterator[int]:
    state = deque(_init_sequence(width, full_rounds, partial_rounds), maxlen=80)

    def step() -> int:
        bit = state[62] ^ state[51] ^ state[38] ^ state[23] ^ state[13] ^ state[0]
        state.append(bit)
        return bit

    for _ in range(160):
        step()

    # Self-shrinking: emit the second bit of each pair whose first bit is 1.
    while True:
        first = step()
        while first == 0:
            step()
            first = step()
        yield step()


def _take_bits(stream: Iterator[int], count: int) -> int:
    value = 0
    for _ in range(count):
        value = (value << 1) | next(stream)
    return value


def _generate_round_constants(stream: Iterator[int], count: int) -> List[int]:
    constants: List[int] = []
    for _ in range(count):
        candidate = _take_bits(stream, FIELD_BITS)
        while candidate >= FIELD_PRIME:
            candidate = _take_bits(stream, FIELD_BITS)
        constants.append(candidate)
    return constants


def _generate_mds(stream: Iterator[int], width: int) -> List[List[int]]:
    while True:
        values = [_take_bits(stream, FIELD_BITS) % FIELD_PRIME for _ in range(2 * width)]
        while len(set(values)) != len(values):
            values = [
                _take_bits(stream, FIELD_BITS) % FIELD_PRIME for _ in range(2 * width)
            ]
        xs, ys = values[:width], values[width:]
        sums = [[(x + y) % FIELD_PRIME for y in ys] for x in xs]
        if any(s == 0 for row in sums for s in row):
            continue
        return [[pow(s, FIELD_PRIME - 2, FIELD_PRIME) for s in row] for row in sums]


@lru_cache(maxsize=None)
def poseidon_parameters(width: int) -> PoseidonParameters:
    """
    Derive (and cache) the parameters for state width ``width`` (inputs + 1).

    Raises:
        InvalidFieldElement: if the width is not supported.
    """
    index = width - POSEIDON_MIN_WIDTH
    if index < 0 or index >= len(POSEIDON_PARTIAL_ROUNDS):
        raise InvalidFieldElement(
            f"Poseidon accepts 1..{POSEIDON_MAX_INPUTS} inputs, got {width - 1}"
        )
    partial_rounds = POSEIDON_PARTIAL_ROUNDS[index]
    stream = _grain_stream(width, POSEIDON_FULL_ROUNDS, partial_rounds)
    constants = _generate_round_constants(
        stream, (POSEIDON_FULL_ROUNDS + partial_rounds) * width
    )
    mds = _generate_mds(stream, width)
    return PoseidonParameters(
        width=width,
        full_rounds=POSEIDON_FULL_ROUNDS,
        partial_rounds=partial_rounds,
        round_constants=tuple(constants),
        mds=tuple(tuple(row) for row in mds),
    )


# ============================================================================
# PERMUTATION
# ============================================================================


def _permute(state: List[int], params: PoseidonParameters) -> List[int]:
    p = FIELD_PRIME
    width = params.width
    constants = params.round_constants
    mds = params.mds
    half = params.full_rounds // 2
    total = params.full_rounds + params.partial_rounds

    for r in range(total):
        offset = r * width
        state = [(s + constants[offset + i]) % p for i, s in enumerate(state)]
        if r < half or r >= half + params.partial_rounds:
            state = [pow(s, POSEIDON_ALPHA, p) for s in state]
        else:
            state[0] = pow(state[0], POSEIDON_ALPHA, p)
        state = [
            sum(row[j] * state[j] for j in range(width)) % p for row in mds
        ]
    return state


def poseidon(inputs: Sequence[int]) -> int:
    """
    Hash 1..16 field elements, circomlib ``poseidon(inputs)`` semantics.

    Raises:
        InvalidFieldElement: on out-of-field input or bad arity.
    """
    values = [
        require_field_element(value, f"inputs[{i}]") for i, value in enumerate(inputs)
    ]
    if not values or len(values) > POSEIDON_MAX_INPUTS:
        raise InvalidFieldElement(
            f"Poseidon accepts 1..{POSEIDON_MAX_INPUTS} inputs, got {len(values)}"
        )
    params = poseidon_parameters(len(values) + 1)
    return _permute([0] + values, params)[0]


def combine(a: int, b: int) -> int:
    """Two-to-one compression used for internal nodes and threshold leaves."""
    return _combine(require_field_element(a, "a"), require_field_element(b, "b"))


def combine1(a: int) -> int:
    """One-to-one hash used for membership leaves and the padding sentinel."""
    return _combine1(require_field_element(a, "a"))


# Padding subtrees repeat the same node pairs.
@lru_cache(maxsize=1 << 16)
def _combine(a: int, b: int) -> int:
    return poseidon((a, b))


@lru_cache(maxsize=1 << 12)
def _combine1(a: int) -> int:
    return poseidon((a,))
