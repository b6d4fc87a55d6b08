"""Tests for phylodiv.encoder module."""

import numpy as np
import pytest

from phylodiv.community import CommunityMatrix
from phylodiv.encoder import encode
from phylodiv.errors import EmptyCommunityError, EmptyTreeError, InputMismatchError
from phylodiv.tests.fixtures import (
    community_sets,
    generate_random_tree,
    generate_synthetic_community_matrix,
    matrix_from_sets,
    path_branches,
    three_leaf_tree,
)


@pytest.fixture
def small_case():
    tree = three_leaf_tree()
    matrix = matrix_from_sets(
        {"c1": {"A", "B"}, "c2": {"C"}, "c3": {"A", "B"}}, ["A", "B", "C"]
    )
    return tree, matrix


class TestEncode:
    def test_shapes(self, small_case):
        enc = encode(*small_case)
        assert enc.n_branches == 4
        assert enc.n_communities == 3
        assert enc.incidence.shape == (4, 3)
        assert enc.branch_lengths.shape == (4,)
        assert enc.community_ids == ["c1", "c2", "c3"]

    def test_incidence_values(self, small_case):
        enc = encode(*small_case)
        rows = {enc.tree.labels[n]: r for r, n in enumerate(enc.branch_nodes)}
        dense = enc.incidence.toarray()
        np.testing.assert_array_equal(dense[rows["A"]], [1, 0, 1])
        np.testing.assert_array_equal(dense[rows["B"]], [1, 0, 1])
        np.testing.assert_array_equal(dense[rows["AB"]], [1, 0, 1])
        np.testing.assert_array_equal(dense[rows["C"]], [0, 1, 0])
        np.testing.assert_array_equal(enc.branch_range()[rows["C"]], 1.0)

    def test_branches_exclude_root(self, small_case):
        enc = encode(*small_case)
        assert enc.tree.root not in set(enc.branch_nodes.tolist())

    def test_matches_path_enumeration(self):
        tree = generate_random_tree(40, seed=7)
        matrix = generate_synthetic_community_matrix(tree.leaf_labels, n_communities=12, seed=7)
        enc = encode(tree, matrix)
        row_of = {int(n): r for r, n in enumerate(enc.branch_nodes)}
        dense = enc.incidence.toarray()
        for c, members in enumerate(community_sets(matrix).values()):
            expected = np.zeros(enc.n_branches)
            for node in path_branches(enc.tree, members):
                expected[row_of[node]] = 1.0
            np.testing.assert_array_equal(dense[:, c], expected)

    def test_absent_species_pruned(self):
        tree = three_leaf_tree()
        matrix = matrix_from_sets({"c1": {"A"}, "c2": {"B"}}, ["A", "B", "C"])
        enc = encode(tree, matrix)
        assert sorted(enc.tree.leaf_labels) == ["A", "B"]
        assert enc.n_branches == 2
        assert enc.branch_lengths.sum() == pytest.approx(2.0)

    def test_deterministic(self):
        tree = generate_random_tree(30, seed=1)
        matrix = generate_synthetic_community_matrix(tree.leaf_labels, seed=1)
        first = encode(tree, matrix)
        second = encode(tree, matrix)
        np.testing.assert_array_equal(first.incidence.indptr, second.incidence.indptr)
        np.testing.assert_array_equal(first.incidence.indices, second.incidence.indices)
        np.testing.assert_array_equal(first.incidence.data, second.incidence.data)
        np.testing.assert_array_equal(first.branch_lengths, second.branch_lengths)
        np.testing.assert_array_equal(first.branch_nodes, second.branch_nodes)

    def test_inputs_not_modified(self, small_case):
        tree, matrix = small_case
        before = matrix.occurrences.toarray().copy()
        encode(tree, matrix)
        np.testing.assert_array_equal(matrix.occurrences.toarray(), before)
        assert tree.n_nodes == 5

    def test_outputs_read_only(self, small_case):
        enc = encode(*small_case)
        with pytest.raises(ValueError):
            enc.branch_lengths[0] = 99.0


class TestEncodeErrors:
    def test_unknown_species(self):
        matrix = matrix_from_sets({"c1": {"A", "Z"}}, ["A", "Z"])
        with pytest.raises(InputMismatchError) as excinfo:
            encode(three_leaf_tree(), matrix)
        assert excinfo.value.missing == ["Z"]

    def test_unknown_species_even_if_absent(self):
        matrix = CommunityMatrix(
            community_ids=["c1"],
            species_ids=["A", "B", "Q"],
            occurrences=np.array([[1.0, 1.0, 0.0]]),
        )
        with pytest.raises(InputMismatchError):
            encode(three_leaf_tree(), matrix)

    def test_single_species_tree(self):
        matrix = matrix_from_sets({"c1": {"A"}, "c2": {"A"}}, ["A", "B", "C"])
        with pytest.raises(EmptyTreeError):
            encode(three_leaf_tree(), matrix)

    def test_no_occurrences(self):
        matrix = CommunityMatrix(
            community_ids=["c1"], species_ids=["A"], occurrences=np.zeros((1, 1))
        )
        with pytest.raises(EmptyCommunityError):
            encode(three_leaf_tree(), matrix)

    def test_bad_weighting(self, small_case):
        with pytest.raises(ValueError, match="weighting"):
            encode(*small_case, weighting="log")


class TestAbundanceWeights:
    def test_weights_are_relative_abundance_below_branch(self):
        tree = three_leaf_tree()
        matrix = CommunityMatrix(
            community_ids=["c1", "c2"],
            species_ids=["A", "B", "C"],
            occurrences=np.array([[1.0, 3.0, 0.0], [0.0, 2.0, 2.0]]),
        )
        enc = encode(tree, matrix, weighting="abundance")
        rows = {enc.tree.labels[n]: r for r, n in enumerate(enc.branch_nodes)}
        w = enc.weights.toarray()
        np.testing.assert_allclose(w[rows["A"]], [0.25, 0.0])
        np.testing.assert_allclose(w[rows["B"]], [0.75, 0.5])
        np.testing.assert_allclose(w[rows["AB"]], [1.0, 0.5])
        np.testing.assert_allclose(w[rows["C"]], [0.0, 0.5])
        # same sparsity as the presence incidence
        np.testing.assert_array_equal(enc.weights.indices, enc.incidence.indices)

    def test_presence_mode_has_no_weights(self, small_case):
        assert encode(*small_case).weights is None
