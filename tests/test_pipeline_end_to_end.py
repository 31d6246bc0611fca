"""
End-to-end: commit a blacklist, prove a query, record the decision.
"""

import pytest
import trio

from airavat_privacy.ledger import (
    AgentKey,
    AgentRole,
    AuditLedger,
    LedgerClient,
    LedgerGateway,
    load_ledger,
    save_ledger,
)
from airavat_privacy.proofs import (
    MembershipTree,
    ThresholdNotMet,
    ThresholdTree,
    decode_witness,
    encode_witness,
    membership_snapshot,
    threshold_snapshot,
)
from airavat_privacy.proofs.merkle import verify_path

CONTROLLER = AgentKey.from_seed(b"\x30" * 32)
FRAUD_AGENT = AgentKey.from_seed(b"\x31" * 32)
SCORE_AGENT = AgentKey.from_seed(b"\x32" * 32)


@pytest.mark.trio
async def test_blacklist_and_score_decisions_are_logged(tmp_path) -> None:
    blacklist = MembershipTree.from_snapshot(
        membership_snapshot(["fraud-1", "fraud-2", "fraud-3"], version=1), depth=4
    )
    scores = ThresholdTree.from_snapshot(
        threshold_snapshot([("alice", 780), ("bob", 610)], version=1), depth=4
    )
    published_blacklist_root = blacklist.root_hex

    # A verifier holding only the published root checks the shipped witness.
    shipped = encode_witness(blacklist.prove_membership("fraud-2"))
    received = decode_witness(shipped)
    received.check()
    assert received.root == int(published_blacklist_root, 16)
    assert verify_path(
        received.leaf,
        list(zip(received.path_elements, received.path_directions)),
        int(published_blacklist_root, 16),
    )

    scores.prove_threshold("alice", 700).check()
    with pytest.raises(ThresholdNotMet):
        scores.prove_threshold("bob", 700)

    gateway = LedgerGateway(AuditLedger(CONTROLLER.identity, clock=lambda: 1_700_000_000))
    admin = LedgerClient(gateway, CONTROLLER)
    await admin.assign_agent(FRAUD_AGENT.identity, AgentRole.VRA)
    await admin.assign_agent(SCORE_AGENT.identity, AgentRole.ZBKA)

    fraud = LedgerClient(gateway, FRAUD_AGENT)
    score = LedgerClient(gateway, SCORE_AGENT)
    assert await fraud.append_log("REQ-fraud-2", 95, "rejected") == 0
    assert await score.append_log("REQ-alice", 10, "approved") == 1
    assert await score.append_log("REQ-bob", 60, "rejected") == 2

    path = tmp_path / "audit.cbor"
    save_ledger(gateway.ledger, path)
    restored = load_ledger(path)
    assert restored.get_log_count() == 3
    assert restored.get_log(1).role is AgentRole.ZBKA
    assert restored.get_log(0).agent == FRAUD_AGENT.identity


def test_rebuild_with_new_snapshot_invalidates_old_witness() -> None:
    v1 = MembershipTree.from_snapshot(membership_snapshot(["a", "b"], version=1), depth=3)
    v2 = MembershipTree.from_snapshot(membership_snapshot(["a", "b", "c"], version=2), depth=3)
    old = v1.prove_membership("a")
    assert verify_path(
        old.leaf, list(zip(old.path_elements, old.path_directions)), v1.root
    )
    assert not verify_path(
        old.leaf, list(zip(old.path_elements, old.path_directions)), v2.root
    )


def test_sync_entry_point_with_trio_run() -> None:
    gateway = LedgerGateway(AuditLedger(CONTROLLER.identity))
    admin = LedgerClient(gateway, CONTROLLER)
    receipt = trio.run(admin.assign_agent, FRAUD_AGENT.identity, "vra")
    assert receipt.sequence == 1
    assert gateway.role_of(FRAUD_AGENT.identity) is AgentRole.VRA
