import pytest

from airavat_privacy.proofs import merkle
from airavat_privacy.proofs.config import FIELD_PRIME
from airavat_privacy.proofs.exceptions import (
    ConfigurationError,
    DepthExceeded,
    IndexOutOfRange,
    InvalidFieldElement,
    ProofMismatch,
)
from airavat_privacy.proofs.identifiers import hash_identifier
from airavat_privacy.proofs.poseidon import combine, combine1


def _leaves(*names: str):
    return [combine1(hash_identifier(name)) for name in names]


@pytest.fixture(scope="module")
def abcd_tree():
    return merkle.build_tree(_leaves("a", "b", "c", "d"), depth=2)


class TestBuildTree:
    """Tree construction and padding."""

    def test_root_is_pairwise_reduction(self, abcd_tree):
        a, b, c, d = _leaves("a", "b", "c", "d")
        assert abcd_tree.root == combine(combine(a, b), combine(c, d))

    def test_levels_shape(self, abcd_tree):
        assert len(abcd_tree.levels) == 3
        assert [len(level) for level in abcd_tree.levels] == [4, 2, 1]
        assert abcd_tree.capacity == 4

    def test_deterministic(self):
        leaves = _leaves("u1", "u2", "u3")
        first = merkle.build_tree(leaves, depth=3)
        second = merkle.build_tree(list(leaves), depth=3)
        assert first.root == second.root
        assert first.levels == second.levels

    def test_order_matters(self):
        forward = merkle.build_tree(_leaves("x", "y"), depth=1)
        backward = merkle.build_tree(_leaves("y", "x"), depth=1)
        assert forward.root != backward.root

    def test_zero_padding_uses_sentinel(self):
        leaves = _leaves("a", "b", "c")
        tree = merkle.build_tree(leaves, depth=3)
        assert len(tree.leaves) == 8
        assert list(tree.leaves[:3]) == leaves
        assert set(tree.leaves[3:]) == {merkle.padding_leaf()}
        assert merkle.padding_leaf() == combine1(0)
        assert tree.real_leaf_count == 3
        assert tree.is_padding_index(3)
        assert not tree.is_padding_index(2)

    def test_empty_tree_is_all_padding(self):
        tree = merkle.build_tree([], depth=2)
        assert tree.leaves == (merkle.padding_leaf(),) * 4
        expected = combine(
            combine(merkle.padding_leaf(), merkle.padding_leaf()),
            combine(merkle.padding_leaf(), merkle.padding_leaf()),
        )
        assert tree.root == expected

    def test_repeat_last_padding(self):
        leaves = _leaves("a", "b", "c")
        tree = merkle.build_tree(leaves, depth=2, padding="repeat_last")
        assert tree.padding is merkle.PaddingPolicy.REPEAT_LAST
        assert tree.leaves == (leaves[0], leaves[1], leaves[2], leaves[2])

    def test_repeat_last_on_empty_falls_back_to_sentinel(self):
        tree = merkle.build_tree([], depth=1, padding=merkle.PaddingPolicy.REPEAT_LAST)
        assert tree.leaves == (merkle.padding_leaf(),) * 2

    def test_padding_policies_give_different_roots(self):
        leaves = _leaves("a", "b", "c")
        zero = merkle.build_tree(leaves, depth=2)
        repeat = merkle.build_tree(leaves, depth=2, padding="repeat_last")
        assert zero.root != repeat.root

    def test_full_tree_has_no_padding(self, abcd_tree):
        assert abcd_tree.real_leaf_count == 4
        assert not any(abcd_tree.is_padding_index(i) for i in range(4))

    def test_depth_exceeded(self):
        with pytest.raises(DepthExceeded) as excinfo:
            merkle.build_tree(_leaves("a", "b", "c"), depth=1)
        assert excinfo.value.leaf_count == 3
        assert excinfo.value.depth == 1

    @pytest.mark.parametrize("depth", [0, -1, 33, True, "2"])
    def test_invalid_depth(self, depth):
        with pytest.raises(ConfigurationError):
            merkle.build_tree([], depth=depth)

    def test_out_of_field_leaf_rejected(self):
        with pytest.raises(InvalidFieldElement):
            merkle.build_tree([FIELD_PRIME], depth=1)

    def test_invalid_padding_policy(self):
        with pytest.raises(ValueError, match="Invalid padding policy"):
            merkle.build_tree([], depth=1, padding="mirror")

    def test_root_hex_fixed_width(self, abcd_tree):
        assert abcd_tree.root_hex.startswith("0x")
        assert len(abcd_tree.root_hex) == 66
        assert int(abcd_tree.root_hex, 16) == abcd_tree.root


class TestProve:
    """Authentication paths."""

    def test_index_two_path(self, abcd_tree):
        a, b, c, d = _leaves("a", "b", "c", "d")
        path = merkle.prove(abcd_tree, 2)
        assert path.leaf == c
        assert path.siblings == (d, combine(a, b))
        assert path.directions == (0, 1)
        assert path.root == abcd_tree.root
        assert merkle.verify_path(c, path, abcd_tree.root) is True

    def test_lemma_layout(self, abcd_tree):
        path = merkle.prove(abcd_tree, 2)
        lemma = path.lemma()
        assert len(lemma) == abcd_tree.depth + 2
        assert lemma[0] == path.leaf
        assert lemma[-1] == abcd_tree.root

    @pytest.mark.parametrize("level", [0, 1])
    def test_flipped_direction_fails(self, abcd_tree, level):
        path = merkle.prove(abcd_tree, 2)
        pairs = path.pairs()
        sibling, direction = pairs[level]
        pairs[level] = (sibling, 1 - direction)
        assert merkle.verify_path(path.leaf, pairs, abcd_tree.root) is False

    @pytest.mark.parametrize("level", [0, 1])
    def test_tampered_sibling_fails(self, abcd_tree, level):
        path = merkle.prove(abcd_tree, 1)
        pairs = path.pairs()
        sibling, direction = pairs[level]
        pairs[level] = ((sibling + 1) % FIELD_PRIME, direction)
        assert merkle.verify_path(path.leaf, pairs, abcd_tree.root) is False

    def test_tampered_leaf_fails(self, abcd_tree):
        path = merkle.prove(abcd_tree, 0)
        assert merkle.verify_path((path.leaf + 1) % FIELD_PRIME, path, abcd_tree.root) is False

    def test_wrong_root_fails(self, abcd_tree):
        path = merkle.prove(abcd_tree, 3)
        assert merkle.verify_path(path.leaf, path, (abcd_tree.root + 1) % FIELD_PRIME) is False

    def test_every_index_round_trips_including_padding(self):
        tree = merkle.build_tree(_leaves("a", "b", "c", "d", "e"), depth=3)
        for index in range(tree.capacity):
            path = merkle.prove(tree, index)
            assert merkle.verify_path(tree.leaves[index], path, tree.root) is True

    def test_every_index_round_trips_repeat_last(self):
        tree = merkle.build_tree(_leaves("a", "b", "c"), depth=3, padding="repeat_last")
        for index in range(tree.capacity):
            assert merkle.verify_path(tree.leaves[index], merkle.prove(tree, index), tree.root)

    @pytest.mark.parametrize("index", [-1, 4])
    def test_index_out_of_range(self, abcd_tree, index):
        with pytest.raises(IndexOutOfRange):
            merkle.prove(abcd_tree, index)

    def test_index_out_of_range_is_index_error(self, abcd_tree):
        with pytest.raises(IndexError):
            merkle.prove(abcd_tree, 99)

    @pytest.mark.parametrize("index", [True, 1.0, "1"])
    def test_non_int_index_rejected(self, abcd_tree, index):
        with pytest.raises(IndexOutOfRange):
            merkle.prove(abcd_tree, index)

    def test_require_valid_path_raises(self, abcd_tree):
        path = merkle.prove(abcd_tree, 0)
        merkle.require_valid_path(path.leaf, path, abcd_tree.root)
        with pytest.raises(ProofMismatch):
            merkle.require_valid_path(path.leaf, path, (abcd_tree.root + 1) % FIELD_PRIME)

    def test_non_bit_direction_rejected(self, abcd_tree):
        path = merkle.prove(abcd_tree, 0)
        pairs = [(s, 2) for s, _ in path.pairs()]
        with pytest.raises(ValueError, match="must be 0 or 1"):
            merkle.verify_path(path.leaf, pairs, abcd_tree.root)

    def test_compute_root_length_mismatch(self):
        with pytest.raises(ValueError, match="length mismatch"):
            merkle.compute_root(1, [2, 3], [0])

    def test_path_dict_round_trip(self, abcd_tree):
        path = merkle.prove(abcd_tree, 3)
        data = path.to_dict()
        assert data["leafIndex"] == 3
        assert data["pathDirections"] == [1, 1]
        assert all(isinstance(x, str) for x in data["pathElements"])
        assert merkle.AuthenticationPath.from_dict(data) == path

    def test_path_from_dict_missing_field(self):
        with pytest.raises(ValueError, match="missing field"):
            merkle.AuthenticationPath.from_dict({"leaf": "1"})


@pytest.mark.slow
def test_depth_ten_tree_every_real_index():
    leaves = _leaves(*[f"user{i}" for i in range(50)])
    tree = merkle.build_tree(leaves, depth=10)
    assert len(tree.leaves) == 1024
    for index in range(len(leaves)):
        path = merkle.prove(tree, index)
        assert path.depth == 10
        assert merkle.verify_path(leaves[index], path, tree.root) is True
    padding_path = merkle.prove(tree, 1023)
    assert merkle.verify_path(merkle.padding_leaf(), padding_path, tree.root) is True
