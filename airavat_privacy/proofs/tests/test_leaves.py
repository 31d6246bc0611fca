"""
Unit tests for leaf-source snapshots.
"""

import json

import pytest

from airavat_privacy.proofs import leaves
from airavat_privacy.proofs.exceptions import InvalidFieldElement, InvalidIdentifier
from airavat_privacy.proofs.identifiers import hash_identifier
from airavat_privacy.proofs.merkle import PaddingPolicy
from airavat_privacy.proofs.poseidon import combine, combine1, poseidon


class TestLeafDerivation:
    def test_membership_leaf(self):
        snapshot = leaves.membership_snapshot(["u1", "u2"])
        assert snapshot.leaves() == [
            combine1(hash_identifier("u1")),
            combine1(hash_identifier("u2")),
        ]

    def test_threshold_leaf(self):
        snapshot = leaves.threshold_snapshot([("u1", 720)])
        assert snapshot.leaves() == [combine(hash_identifier("u1"), 720)]

    def test_budget_leaf(self):
        snapshot = leaves.budget_snapshot([("u1", [100, 250])])
        assert snapshot.leaves() == [
            combine(hash_identifier("u1"), poseidon([100, 250]))
        ]

    def test_spends_hash_bounds(self):
        assert leaves.spends_hash([5]) == poseidon([5])
        with pytest.raises(ValueError):
            leaves.spends_hash([])
        with pytest.raises(ValueError):
            leaves.spends_hash([1] * 17)


class TestSnapshotValidation:
    def test_duplicate_identifier_rejected(self):
        with pytest.raises(ValueError, match="duplicate"):
            leaves.membership_snapshot(["u1", "u2", "u1"])

    def test_empty_identifier_rejected(self):
        with pytest.raises(InvalidIdentifier):
            leaves.membership_snapshot(["u1", ""])

    def test_out_of_field_value_rejected(self):
        with pytest.raises(InvalidFieldElement):
            leaves.threshold_snapshot([("u1", -5)])

    def test_empty_spend_history_rejected(self):
        with pytest.raises(ValueError, match="spend history"):
            leaves.budget_snapshot([("u1", [])])

    @pytest.mark.parametrize("kind", ["threshold", "budget"])
    @pytest.mark.parametrize("record", [("u1",), ("u1", 1, 2), "u1"])
    def test_record_must_be_a_pair(self, kind, record):
        with pytest.raises(ValueError, match="pairs"):
            leaves.LeafSnapshot(kind=kind, version=0, records=(record,))

    def test_budget_spends_must_be_a_sequence(self):
        with pytest.raises(ValueError, match="spends must be a sequence"):
            leaves.LeafSnapshot(kind="budget", version=0, records=(("u1", 5),))

    def test_unknown_kind_rejected(self):
        with pytest.raises(ValueError, match="unsupported snapshot kind"):
            leaves.LeafSnapshot(kind="allowlist", version=0, records=())

    def test_negative_version_rejected(self):
        with pytest.raises(ValueError):
            leaves.membership_snapshot(["u1"], version=-1)

    def test_snapshot_is_immutable(self):
        snapshot = leaves.membership_snapshot(["u1"])
        with pytest.raises(AttributeError):
            snapshot.records = ("u2",)


class TestSnapshotLookup:
    def test_index_and_record(self):
        snapshot = leaves.threshold_snapshot([("u1", 700), ("u2", 650)], version=4)
        assert snapshot.index_of("u2") == 1
        assert snapshot.index_of("nobody") is None
        assert snapshot.record_for("u1") == ("u1", 700)
        assert snapshot.identifiers() == ["u1", "u2"]


class TestSnapshotSerialization:
    def test_dict_round_trip(self):
        snapshot = leaves.budget_snapshot(
            [("u1", [10, 20]), ("u2", [5])], version=2, padding="repeat_last"
        )
        data = snapshot.to_dict()
        assert data["records"][0] == {"id": "u1", "spends": [10, 20]}
        assert data["padding"] == "repeat_last"
        assert leaves.LeafSnapshot.from_dict(data) == snapshot

    def test_digest_tracks_content(self):
        first = leaves.membership_snapshot(["u1", "u2"], version=1)
        same = leaves.membership_snapshot(["u1", "u2"], version=1)
        reordered = leaves.membership_snapshot(["u2", "u1"], version=1)
        assert first.digest() == same.digest()
        assert first.digest() != reordered.digest()

    def test_file_round_trip(self, tmp_path):
        snapshot = leaves.threshold_snapshot([("u1", 700)], version=3)
        path = leaves.dump_snapshot(snapshot, tmp_path / "scores.json")
        assert leaves.load_snapshot(path) == snapshot

    def test_load_applies_default_padding_only_when_unpinned(self, tmp_path):
        unpinned = tmp_path / "unpinned.json"
        unpinned.write_text(json.dumps({"kind": "membership", "records": ["u1"]}))
        loaded = leaves.load_snapshot(unpinned, padding="repeat_last")
        assert loaded.padding is PaddingPolicy.REPEAT_LAST
        assert loaded.version == 0

        pinned = tmp_path / "pinned.json"
        pinned.write_text(
            json.dumps({"kind": "membership", "padding": "zero", "records": ["u1"]})
        )
        assert leaves.load_snapshot(pinned, padding="repeat_last").padding is PaddingPolicy.ZERO

    def test_load_rejects_non_object(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text("[1, 2]")
        with pytest.raises(ValueError, match="JSON object"):
            leaves.load_snapshot(path)

    def test_malformed_record(self):
        with pytest.raises(ValueError, match="malformed"):
            leaves.LeafSnapshot.from_dict({"kind": "threshold", "records": [{"id": "u1"}]})
