"""histree: histogram and decision-tree primitives for gradient boosting.

Two building blocks a boosting system calls into:

- ``Histogram``: quantile-style bins for one feature, with per-bin
  gradient/hessian sums for split finding.
- ``Tree``: an immutable tree of ``Split``/``Leaf`` nodes that maps a
  feature vector to a prediction.

Quick Start:
    >>> import numpy as np
    >>> import histree as ht
    >>>
    >>> # Bin a feature column, then accumulate statistics
    >>> hist = ht.Histogram.from_feature(x_train, max_bins=255)
    >>> hist.accumulate(x_train, grad, hess)
    >>>
    >>> # Turn a chosen bin split into a tree
    >>> threshold = hist.split_threshold(best_bin)
    >>> tree = ht.Tree(ht.Split(0, threshold, ht.Leaf(-0.3), ht.Leaf(0.7)))
    >>> tree.predict([1.25])
    >>> tree.predict_batch(X_test)

Backend control:
    >>> ht.set_backend("numpy")  # or "numba" (default), or HISTREE_BACKEND=numpy
"""

__version__ = "0.1.0"

from ._histogram import Histogram
from ._tree import Tree, TreeNode, Split, Leaf, FlatTree

from ._errors import (
    HistreeError,
    InputLengthMismatch,
    EmptyHistogram,
    FeatureIndexOutOfRange,
)

# Backend control
from ._backends import get_backend, set_backend, is_numba

__all__ = [
    # Version
    "__version__",
    # Histogram
    "Histogram",
    # Tree
    "Tree",
    "TreeNode",
    "Split",
    "Leaf",
    "FlatTree",
    # Errors
    "HistreeError",
    "InputLengthMismatch",
    "EmptyHistogram",
    "FeatureIndexOutOfRange",
    # Backend
    "get_backend",
    "set_backend",
    "is_numba",
]
