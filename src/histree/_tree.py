"""Decision tree evaluation for histree.

A tree is an immutable structure of :class:`Split` and :class:`Leaf`
nodes built elsewhere (typically by a training loop). Prediction walks
from the root: at each split the sample goes left when
``features[feature_index] < threshold`` and right otherwise, so a value
equal to the threshold routes right.

Example:
    >>> import histree as ht
    >>> tree = ht.Tree(ht.Split(0, 5.0, ht.Leaf(10.0), ht.Leaf(20.0)))
    >>> tree.predict([3.0])
    10.0
    >>> tree.predict([5.0])
    20.0
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import cached_property
from typing import TYPE_CHECKING, NamedTuple, Union

import numpy as np

from ._array import as_float32_vector, ensure_contiguous_float32
from ._backends import is_numba
from ._errors import FeatureIndexOutOfRange

if TYPE_CHECKING:
    from numpy.typing import ArrayLike, NDArray

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Leaf:
    """Terminal node holding the prediction value."""
    value: float

    def __post_init__(self):
        object.__setattr__(self, "value", float(np.float32(self.value)))


@dataclass(frozen=True)
class Split:
    """Internal node routing on one feature.

    Attributes:
        feature_index: Index into the feature vector.
        threshold: Values strictly below go to ``left_child``.
        left_child: Subtree for ``features[feature_index] < threshold``.
        right_child: Subtree for everything else.
    """
    feature_index: int
    threshold: float
    left_child: TreeNode
    right_child: TreeNode

    def __post_init__(self):
        object.__setattr__(self, "feature_index", int(self.feature_index))
        object.__setattr__(self, "threshold", float(np.float32(self.threshold)))


TreeNode = Union[Split, Leaf]


class FlatTree(NamedTuple):
    """Preorder array layout of a tree. Leaves have ``left == right == -1``."""
    features: NDArray[np.int32]
    thresholds: NDArray[np.float32]
    values: NDArray[np.float32]
    left: NDArray[np.int32]
    right: NDArray[np.int32]


@dataclass(frozen=True)
class Tree:
    """Immutable decision tree.

    No validation is done at construction; feature indices are checked
    against the input when predicting.

    Args:
        root: Root node, a :class:`Split` or a :class:`Leaf`.
    """
    root: TreeNode

    def __repr__(self) -> str:
        return f"Tree(n_nodes={self.n_nodes}, depth={self.depth})"

    def predict(self, features: ArrayLike) -> float:
        """Predict the leaf value for one feature vector.

        Args:
            features: Feature vector, shape (n_features,)

        Raises:
            FeatureIndexOutOfRange: If a visited split references a
                feature outside ``features``.
        """
        x = as_float32_vector(features, "features")
        n_features = len(x)

        node = self.root
        while isinstance(node, Split):
            index = node.feature_index
            if not 0 <= index < n_features:
                raise FeatureIndexOutOfRange(
                    f"Split references feature {index} but the feature vector "
                    f"has {n_features} features"
                )
            if x[index] < node.threshold:
                node = node.left_child
            else:
                node = node.right_child

        return node.value

    def predict_batch(self, X: ArrayLike) -> NDArray[np.float32]:
        """Predict every row of a feature matrix.

        Args:
            X: Features, shape (n_samples, n_features)

        Returns:
            Predictions, shape (n_samples,), float32. Same values as
            calling :meth:`predict` on each row.
        """
        X = ensure_contiguous_float32(X)
        if X.ndim != 2:
            raise ValueError(f"X must be 2D (n_samples, n_features), got shape {X.shape}")

        split_features = self.flat.features[self.flat.left != -1]
        if split_features.size and (
            split_features.min() < 0 or split_features.max() >= X.shape[1]
        ):
            raise FeatureIndexOutOfRange(
                f"Tree references features {split_features.min()}..{split_features.max()} "
                f"but X has {X.shape[1]} features"
            )

        if is_numba():
            from ._backends._cpu import predict_cpu
            flat = self.flat
            return predict_cpu(
                X, flat.features, flat.thresholds, flat.values,
                flat.left, flat.right,
            )

        return np.array([self.predict(row) for row in X], dtype=np.float32)

    __call__ = predict_batch

    # -------------------------------------------------------------------------
    # Structure
    # -------------------------------------------------------------------------

    @cached_property
    def flat(self) -> FlatTree:
        """Node arrays for the batch prediction kernel (root at index 0)."""
        features: list[int] = []
        thresholds: list[float] = []
        values: list[float] = []
        left: list[int] = []
        right: list[int] = []

        # (node, parent index, is left child)
        stack: list[tuple[TreeNode, int, bool]] = [(self.root, -1, False)]
        while stack:
            node, parent, is_left = stack.pop()
            index = len(features)
            if parent >= 0:
                if is_left:
                    left[parent] = index
                else:
                    right[parent] = index

            left.append(-1)
            right.append(-1)
            if isinstance(node, Split):
                features.append(node.feature_index)
                thresholds.append(node.threshold)
                values.append(0.0)
                stack.append((node.right_child, index, False))
                stack.append((node.left_child, index, True))
            else:
                features.append(-1)
                thresholds.append(0.0)
                values.append(node.value)

        logger.debug("Flattened tree into %d nodes", len(features))

        return FlatTree(
            features=np.array(features, dtype=np.int32),
            thresholds=np.array(thresholds, dtype=np.float32),
            values=np.array(values, dtype=np.float32),
            left=np.array(left, dtype=np.int32),
            right=np.array(right, dtype=np.int32),
        )

    @property
    def n_nodes(self) -> int:
        return len(self.flat.features)

    @property
    def n_leaves(self) -> int:
        return int(np.sum(self.flat.left == -1))

    @property
    def max_feature_index(self) -> int:
        """Largest feature index used by any split (-1 for a single leaf)."""
        return int(self.flat.features.max())

    @cached_property
    def depth(self) -> int:
        """Number of splits on the longest root-to-leaf path."""
        deepest = 0
        stack: list[tuple[TreeNode, int]] = [(self.root, 0)]
        while stack:
            node, level = stack.pop()
            if isinstance(node, Split):
                stack.append((node.left_child, level + 1))
                stack.append((node.right_child, level + 1))
            else:
                deepest = max(deepest, level)
        return deepest
