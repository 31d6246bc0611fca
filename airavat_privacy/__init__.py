"""Off-circuit Merkle commitments, circuit witnesses and the agent audit ledger."""

__version__ = "0.1.0"
