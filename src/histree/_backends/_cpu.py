"""CPU kernels using Numba JIT."""

from __future__ import annotations

import numpy as np
from numba import jit


# =============================================================================
# Histogram Accumulation
# =============================================================================

@jit(nopython=True, cache=True)
def _accumulate_histogram_cpu(
    bin_indices: np.ndarray,  # (n_samples,) int64
    grad: np.ndarray,         # (n_samples,) float32
    hess: np.ndarray,         # (n_samples,) float32
    hist_grad: np.ndarray,    # (n_bins,) float32, updated in place
    hist_hess: np.ndarray,    # (n_bins,) float32, updated in place
):
    """Add per-sample gradient/hessian into their bins."""
    n_samples = bin_indices.shape[0]

    for i in range(n_samples):
        b = bin_indices[i]
        hist_grad[b] += grad[i]
        hist_hess[b] += hess[i]


def accumulate_histogram_cpu(
    bin_indices: np.ndarray,
    grad: np.ndarray,
    hess: np.ndarray,
    hist_grad: np.ndarray,
    hist_hess: np.ndarray,
) -> None:
    """Accumulate gradient and hessian sums into existing histograms.

    Samples are summed in input order, so results match ``np.add.at``
    on the same inputs.

    Args:
        bin_indices: Bin index per sample, shape (n_samples,), each in
            ``[0, n_bins)``
        grad: Gradient vector, shape (n_samples,), float32
        hess: Hessian vector, shape (n_samples,), float32
        hist_grad: Gradient histogram, shape (n_bins,), float32
        hist_hess: Hessian histogram, shape (n_bins,), float32
    """
    _accumulate_histogram_cpu(
        np.ascontiguousarray(bin_indices, dtype=np.int64),
        grad, hess,
        hist_grad, hist_hess,
    )


# =============================================================================
# Prediction
# =============================================================================

@jit(nopython=True, cache=True)
def _predict_cpu(
    X: np.ndarray,                # (n_samples, n_features) float32
    tree_features: np.ndarray,    # (n_nodes,) int32
    tree_thresholds: np.ndarray,  # (n_nodes,) float32
    tree_values: np.ndarray,      # (n_nodes,) float32
    tree_left: np.ndarray,        # (n_nodes,) int32
    tree_right: np.ndarray,       # (n_nodes,) int32
    predictions: np.ndarray,      # (n_samples,) float32
):
    """Predict using a flattened tree (CPU)."""
    n_samples = X.shape[0]

    for i in range(n_samples):
        node = 0
        while tree_left[node] != -1:
            feature = tree_features[node]

            if X[i, feature] < tree_thresholds[node]:
                node = tree_left[node]
            else:
                node = tree_right[node]

        predictions[i] = tree_values[node]


def predict_cpu(
    X: np.ndarray,
    tree_features: np.ndarray,
    tree_thresholds: np.ndarray,
    tree_values: np.ndarray,
    tree_left: np.ndarray,
    tree_right: np.ndarray,
) -> np.ndarray:
    """Predict using a flattened tree on CPU.

    Feature indices must already be checked against ``X.shape[1]``.

    Returns:
        predictions: Shape (n_samples,), float32
    """
    n_samples = X.shape[0]
    predictions = np.empty(n_samples, dtype=np.float32)

    _predict_cpu(
        X, tree_features, tree_thresholds, tree_values,
        tree_left, tree_right, predictions
    )

    return predictions
