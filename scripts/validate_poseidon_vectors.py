from __future__ import annotations

import sys

from airavat_privacy.proofs.test_vectors import poseidon_vectors


def main() -> int:
    data = poseidon_vectors.load_vectors()
    errors = poseidon_vectors.validate_vectors(data)
    if errors:
        for error in errors:
            print(f"poseidon_vectors.json: {error}", file=sys.stderr)
        return 1
    print("poseidon_vectors.json: OK")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
