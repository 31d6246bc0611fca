# -*- coding: utf-8 -*-
from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List

from airavat_privacy.proofs.config import FIELD_NAME, HASH_ID, IDENTIFIER_DIGEST
from airavat_privacy.proofs.field import from_hex, parse, to_hex
from airavat_privacy.proofs.identifiers import hash_identifier, identifier_digest
from airavat_privacy.proofs.poseidon import poseidon, poseidon_parameters

VECTOR_FILE = Path(__file__).with_name("poseidon_vectors.json")


def load_vectors(path: Path = VECTOR_FILE) -> Dict[str, Any]:
    with path.open("r", encoding="utf-8") as handle:
        return json.load(handle)


def compute_expected(vectors: Dict[str, Any]) -> Dict[str, Any]:
    hashes = []
    for position, case in enumerate(vectors["poseidon"]):
        inputs = [
            parse(value, f"poseidon[{position}].inputs")
            for value in _require_list(case.get("inputs"), f"poseidon[{position}].inputs")
        ]
        hashes.append(to_hex(poseidon(inputs)))

    constants = vectors["round_constants"]
    constants_params = poseidon_parameters(_require_width(constants.get("width")))

    mds = vectors["mds"]
    mds_params = poseidon_parameters(_require_width(mds.get("width")))

    identifier = vectors["identifier"]
    digest = identifier_digest(identifier.get("identifier"))
    field_hash = hash_identifier(identifier.get("identifier"))

    return {
        "poseidon": hashes,
        "round_constants": {"first_hex": to_hex(constants_params.round_constants[0])},
        "mds": {"row0_hex": [to_hex(x) for x in mds_params.mds[0]]},
        "identifier": {
            "expected_digest_hex": digest.hex(),
            "expected_field_hex": to_hex(field_hash),
        },
    }


def validate_vectors(data: Dict[str, Any]) -> List[str]:
    errors: List[str] = []
    if data.get("version") != "1":
        errors.append("version must be 1")
    if data.get("field") != FIELD_NAME:
        errors.append(f"field must be {FIELD_NAME}")
    if data.get("hash") != HASH_ID:
        errors.append(f"hash must be {HASH_ID}")
    if data.get("identifier_digest") != IDENTIFIER_DIGEST:
        errors.append(f"identifier_digest must be {IDENTIFIER_DIGEST}")

    vectors = data.get("vectors")
    if not isinstance(vectors, dict):
        errors.append("vectors must be a dict")
        return errors

    try:
        expected = compute_expected(vectors)
    except (KeyError, TypeError, ValueError) as exc:
        errors.append(str(exc))
        return errors

    for position, (case, actual) in enumerate(zip(vectors["poseidon"], expected["poseidon"])):
        if _normalize_hex(case.get("expected_hex")) != actual:
            errors.append(f"poseidon[{position}].expected_hex mismatch")

    if (
        _normalize_hex(vectors["round_constants"].get("first_hex"))
        != expected["round_constants"]["first_hex"]
    ):
        errors.append("round_constants.first_hex mismatch")

    row0 = _require_list(vectors["mds"].get("row0_hex"), "mds.row0_hex")
    if [_normalize_hex(x) for x in row0] != expected["mds"]["row0_hex"]:
        errors.append("mds.row0_hex mismatch")

    if (
        vectors["identifier"].get("expected_digest_hex")
        != expected["identifier"]["expected_digest_hex"]
    ):
        errors.append("identifier.expected_digest_hex mismatch")

    if (
        _normalize_hex(vectors["identifier"].get("expected_field_hex"))
        != expected["identifier"]["expected_field_hex"]
    ):
        errors.append("identifier.expected_field_hex mismatch")

    return errors


def _normalize_hex(value: Any) -> str:
    if not isinstance(value, str):
        return ""
    try:
        return to_hex(from_hex(value))
    except ValueError:
        return ""


def _require_list(value: Any, field_name: str) -> List[Any]:
    if not isinstance(value, list) or not value:
        raise ValueError(f"{field_name} must be a non-empty list")
    return value


def _require_width(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError("width must be an int")
    return value
