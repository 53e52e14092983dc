"""Tests for Tree prediction and structure."""

import threading

import numpy as np
import pytest

import histree as ht
from histree import Leaf, Split, Tree


# =============================================================================
# Test fixtures
# =============================================================================

@pytest.fixture(params=["numba", "numpy"])
def backend(request):
    """Run a test once per backend, restoring the previous one afterwards."""
    previous = ht.get_backend()
    ht.set_backend(request.param)
    yield request.param
    ht.set_backend(previous)


@pytest.fixture
def stump():
    """Split on feature 0 at 5.0 with leaves 10.0 and 20.0."""
    return Tree(Split(0, 5.0, Leaf(10.0), Leaf(20.0)))


@pytest.fixture
def depth3_tree():
    """Unbalanced tree over three features."""
    return Tree(
        Split(
            feature_index=0,
            threshold=0.0,
            left_child=Split(
                feature_index=1,
                threshold=-1.5,
                left_child=Leaf(-3.0),
                right_child=Split(2, 2.5, Leaf(-1.0), Leaf(-0.5)),
            ),
            right_child=Split(
                feature_index=2,
                threshold=1.0,
                left_child=Leaf(0.25),
                right_child=Leaf(4.0),
            ),
        )
    )


# =============================================================================
# Single-sample prediction
# =============================================================================

class TestPredict:
    """Tests for Tree.predict()."""

    def test_stump(self, stump):
        """Values below the threshold go left, others right."""
        assert stump.predict([3.0]) == 10.0
        assert stump.predict([7.5]) == 20.0

    def test_threshold_routes_right(self, stump):
        """A value equal to the threshold goes right."""
        assert stump.predict([5.0]) == 20.0
        assert stump.predict([np.nextafter(np.float32(5.0), np.float32(0.0))]) == 10.0

    def test_single_leaf(self):
        """A tree that is just a leaf ignores its input."""
        tree = Tree(Leaf(1.5))

        assert tree.predict([]) == 1.5
        assert tree.predict([9.0, -9.0]) == 1.5

    def test_deeper_paths(self, depth3_tree):
        """Each root-to-leaf path is reachable."""
        assert depth3_tree.predict([-1.0, -2.0, 0.0]) == -3.0
        assert depth3_tree.predict([-1.0, 0.0, 1.0]) == -1.0
        assert depth3_tree.predict([-1.0, 0.0, 2.5]) == -0.5
        assert depth3_tree.predict([0.0, 0.0, 0.5]) == 0.25
        assert depth3_tree.predict([3.0, 0.0, 1.0]) == 4.0

    def test_accepts_numpy_input(self, depth3_tree):
        """numpy arrays of any float dtype are accepted."""
        x = np.array([-1.0, 0.0, 2.5], dtype=np.float64)

        assert depth3_tree.predict(x) == -0.5
        assert depth3_tree.predict(x.astype(np.float32)) == -0.5

    def test_deterministic(self, depth3_tree):
        """Repeated calls give bit-identical output."""
        rng = np.random.default_rng(0)
        x = rng.normal(size=3)

        results = {depth3_tree.predict(x) for _ in range(50)}
        assert len(results) == 1

    def test_returns_python_float(self, stump):
        """Predictions are plain floats."""
        assert type(stump.predict([1.0])) is float

    def test_feature_index_out_of_range(self, stump):
        """A split past the end of the feature vector raises."""
        with pytest.raises(ht.FeatureIndexOutOfRange):
            stump.predict([])

    def test_out_of_range_only_on_visited_path(self):
        """Only splits that are actually visited are checked."""
        tree = Tree(Split(0, 0.0, Leaf(1.0), Split(5, 0.0, Leaf(2.0), Leaf(3.0))))

        assert tree.predict([-1.0]) == 1.0
        with pytest.raises(ht.FeatureIndexOutOfRange, match="feature 5"):
            tree.predict([1.0])

    def test_negative_feature_index_rejected(self):
        """Negative indices do not wrap around."""
        tree = Tree(Split(-1, 0.0, Leaf(1.0), Leaf(2.0)))

        with pytest.raises(ht.FeatureIndexOutOfRange):
            tree.predict([1.0, 2.0])

    def test_out_of_range_is_index_error(self, stump):
        """FeatureIndexOutOfRange is also an IndexError."""
        with pytest.raises(IndexError):
            stump.predict([])

    def test_concurrent_readers(self, depth3_tree):
        """Many threads can predict from the same tree."""
        rng = np.random.default_rng(1)
        X = rng.normal(size=(200, 3))
        expected = [depth3_tree.predict(row) for row in X]
        results = [None] * 8

        def worker(slot):
            results[slot] = [depth3_tree.predict(row) for row in X]

        threads = [threading.Thread(target=worker, args=(i,)) for i in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        for r in results:
            assert r == expected


# =============================================================================
# Batch prediction
# =============================================================================

class TestPredictBatch:
    """Tests for Tree.predict_batch()."""

    def test_matches_single_predictions(self, backend, depth3_tree):
        """Batch output equals predict() row by row."""
        rng = np.random.default_rng(2)
        X = rng.normal(scale=2.0, size=(500, 3)).astype(np.float32)

        preds = depth3_tree.predict_batch(X)

        assert preds.shape == (500,)
        assert preds.dtype == np.float32
        expected = np.array([depth3_tree.predict(row) for row in X], dtype=np.float32)
        np.testing.assert_array_equal(preds, expected)

    def test_threshold_routes_right(self, backend, stump):
        """Threshold equality goes right in batch mode too."""
        preds = stump.predict_batch([[3.0], [5.0], [6.0]])

        np.testing.assert_array_equal(preds, [10.0, 20.0, 20.0])

    def test_call_alias(self, backend, stump):
        """tree(X) is predict_batch(X)."""
        X = np.array([[1.0], [9.0]], dtype=np.float32)

        np.testing.assert_array_equal(stump(X), stump.predict_batch(X))

    def test_extra_columns_ignored(self, backend, stump):
        """Features not referenced by any split do not matter."""
        preds = stump.predict_batch([[3.0, 100.0, -100.0]])

        np.testing.assert_array_equal(preds, [10.0])

    def test_single_leaf(self, backend):
        """A leaf-only tree predicts a constant."""
        tree = Tree(Leaf(-2.0))

        np.testing.assert_array_equal(tree.predict_batch(np.zeros((4, 2))), [-2.0] * 4)

    def test_too_few_features_raises(self, backend, depth3_tree):
        """X must have a column for every split feature."""
        with pytest.raises(ht.FeatureIndexOutOfRange):
            depth3_tree.predict_batch(np.zeros((5, 2)))

    def test_negative_feature_raises(self, backend):
        """Negative split features are rejected up front."""
        tree = Tree(Split(-1, 0.0, Leaf(1.0), Leaf(2.0)))

        with pytest.raises(ht.FeatureIndexOutOfRange):
            tree.predict_batch(np.zeros((2, 3)))

    def test_requires_2d(self, stump):
        """1D input is rejected with a helpful message."""
        with pytest.raises(ValueError, match="2D"):
            stump.predict_batch([1.0, 2.0])


# =============================================================================
# Structure
# =============================================================================

class TestStructure:
    """Tests for Tree structure helpers."""

    def test_counts(self, depth3_tree):
        """Node, leaf and depth counts."""
        assert depth3_tree.n_nodes == 9
        assert depth3_tree.n_leaves == 5
        assert depth3_tree.depth == 3
        assert depth3_tree.max_feature_index == 2

    def test_leaf_only(self):
        """A single leaf has depth 0 and no features."""
        tree = Tree(Leaf(0.0))

        assert tree.n_nodes == 1
        assert tree.n_leaves == 1
        assert tree.depth == 0
        assert tree.max_feature_index == -1

    def test_flat_layout(self, stump):
        """Flattened arrays are preorder with -1 children at leaves."""
        flat = stump.flat

        np.testing.assert_array_equal(flat.features, [0, -1, -1])
        np.testing.assert_array_equal(flat.thresholds, [5.0, 0.0, 0.0])
        np.testing.assert_array_equal(flat.values, [0.0, 10.0, 20.0])
        np.testing.assert_array_equal(flat.left, [1, -1, -1])
        np.testing.assert_array_equal(flat.right, [2, -1, -1])

    def test_flat_layout_deeper(self, depth3_tree):
        """Children indices point at the right subtrees."""
        flat = depth3_tree.flat

        # root -> left subtree at 1, right subtree after the 5 left-side nodes
        assert flat.left[0] == 1
        assert flat.right[0] == 6
        assert flat.features[6] == 2
        assert flat.values[flat.right[6]] == 4.0

    def test_immutable(self, stump):
        """Trees and nodes cannot be modified after construction."""
        with pytest.raises(AttributeError):
            stump.root = Leaf(0.0)
        with pytest.raises(AttributeError):
            stump.root.threshold = 1.0
        with pytest.raises(AttributeError):
            stump.root.left_child.value = 1.0

    def test_values_stored_as_float32(self):
        """Thresholds and leaf values are rounded to float32."""
        split = Split(0, 0.1, Leaf(1 / 3), Leaf(0.0))

        assert split.threshold == float(np.float32(0.1))
        assert split.left_child.value == float(np.float32(1 / 3))

    def test_repr(self, depth3_tree):
        """repr reports size and depth."""
        assert repr(depth3_tree) == "Tree(n_nodes=9, depth=3)"


# =============================================================================
# Histogram to tree
# =============================================================================

class TestHistogramSplitRouting:
    """A split built from a histogram bin routes like the bins."""

    def test_bin_split_matches_tree_routing(self, backend):
        """Samples in bins <= b go left, the rest go right."""
        rng = np.random.default_rng(3)
        x = rng.lognormal(size=400).astype(np.float32)
        hist = ht.Histogram.from_feature(x, max_bins=16)

        for b in range(hist.num_bins - 1):
            tree = Tree(Split(0, hist.split_threshold(b), Leaf(-1.0), Leaf(1.0)))
            preds = tree.predict_batch(x[:, None])
            left_by_bins = hist.search_bin_indices(x) <= b

            np.testing.assert_array_equal(preds == -1.0, left_by_bins)
