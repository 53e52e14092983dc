"""Per-feature gradient/hessian histograms.

A :class:`Histogram` discretizes one feature column into bins whose
boundaries are sampled from the sorted unique values at evenly spaced
ranks, so each bin covers roughly the same number of distinct values
rather than the same width. Gradient and hessian sums are then
accumulated per bin for use by a split-finding routine.

Example:
    >>> import numpy as np
    >>> import histree as ht
    >>> hist = ht.Histogram.from_feature(np.arange(10.0), max_bins=4)
    >>> hist.bins
    array([0., 2., 4., 6., 9.], dtype=float32)
    >>> hist.accumulate([1.0, 7.0], [0.5, -1.0], [1.0, 1.0])
    >>> hist.gradients
    array([ 0.5,  0. ,  0. , -1. ], dtype=float32)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

import numpy as np

from ._array import as_float32_vector
from ._backends import is_numba
from ._errors import EmptyHistogram, InputLengthMismatch

if TYPE_CHECKING:
    from numpy.typing import ArrayLike, NDArray

logger = logging.getLogger(__name__)


@dataclass(eq=False)
class Histogram:
    """Bin boundaries plus gradient/hessian sums for one feature.

    Bin ``i`` is the half-open interval ``[bins[i], bins[i + 1])``; the
    last bin is closed at the top. Lookups clamp, so values below the
    first boundary land in bin 0 and values at or above the last one
    land in the final bin.

    A histogram built from a single distinct value has one boundary and
    one bin, and every value maps to that bin.

    Attributes:
        bins: Boundaries, shape (num_bins + 1,), float32, non-decreasing
        gradients: Gradient sum per bin, shape (num_bins,), float32
        hessians: Hessian sum per bin, shape (num_bins,), float32
    """
    bins: NDArray[np.float32]
    gradients: NDArray[np.float32]
    hessians: NDArray[np.float32]

    def __repr__(self) -> str:
        return (
            f"Histogram(num_bins={self.num_bins}, sum_grad={self.sum_grad:.6g}, "
            f"sum_hess={self.sum_hess:.6g})"
        )

    @classmethod
    def from_feature(cls, feature_values: ArrayLike, max_bins: int) -> "Histogram":
        """Build quantile-style bin boundaries for one feature column.

        Boundary ``i`` is the sorted unique value at rank
        ``i * (n_unique - 1) // num_bins`` with
        ``num_bins = min(max_bins, n_unique - 1)``. Boundaries are always
        observed values, never interpolated. NaN values are ignored.

        Args:
            feature_values: Values of one feature across samples, any order.
            max_bins: Upper bound on the number of bins (>= 1).

        Returns:
            Histogram with zeroed gradient and hessian sums.
        """
        if max_bins < 1:
            raise ValueError(f"max_bins must be >= 1, got {max_bins}")

        values = as_float32_vector(feature_values, "feature_values")
        nan_mask = np.isnan(values)
        if nan_mask.any():
            logger.debug("Ignoring %d NaN feature values", int(nan_mask.sum()))
            values = values[~nan_mask]

        unique = np.unique(values)
        n_unique = len(unique)

        if n_unique == 0:
            bins = np.empty(0, dtype=np.float32)
            num_bins = 0
        elif n_unique == 1:
            bins = unique.copy()
            num_bins = 1
        else:
            num_bins = min(max_bins, n_unique - 1)
            ranks = (np.arange(num_bins + 1) * (n_unique - 1)) // num_bins
            bins = unique[ranks]

        logger.debug(
            "Built histogram: %d unique values, %d bins (max_bins=%d)",
            n_unique, num_bins, max_bins,
        )

        return cls(
            bins=bins,
            gradients=np.zeros(num_bins, dtype=np.float32),
            hessians=np.zeros(num_bins, dtype=np.float32),
        )

    # -------------------------------------------------------------------------
    # Derived properties
    # -------------------------------------------------------------------------

    @property
    def num_bins(self) -> int:
        return len(self.gradients)

    @property
    def is_empty(self) -> bool:
        """True for a histogram built from zero values."""
        return self.num_bins == 0

    @property
    def sum_grad(self) -> float:
        return float(np.sum(self.gradients, dtype=np.float64))

    @property
    def sum_hess(self) -> float:
        return float(np.sum(self.hessians, dtype=np.float64))

    # -------------------------------------------------------------------------
    # Lookup
    # -------------------------------------------------------------------------

    def search_bin_index(self, value: float) -> int:
        """Return the bin that ``value`` falls into.

        Finds the rightmost boundary ``<= value`` by binary search and
        clamps the result into ``[0, num_bins - 1]``.

        Raises:
            EmptyHistogram: If the histogram has no bins.
            ValueError: If ``value`` is NaN.
        """
        self._check_not_empty()
        value = np.float32(value)
        if np.isnan(value):
            raise ValueError("Cannot look up the bin of a NaN value")

        position = int(np.searchsorted(self.bins, value, side="right"))
        return min(max(position - 1, 0), self.num_bins - 1)

    def search_bin_indices(self, values: ArrayLike) -> NDArray[np.int64]:
        """Vectorized :meth:`search_bin_index`.

        Returns:
            Bin index per value, shape (n_values,), int64
        """
        self._check_not_empty()
        values = as_float32_vector(values, "values")
        if np.isnan(values).any():
            raise ValueError("Cannot look up the bin of a NaN value")

        positions = np.searchsorted(self.bins, values, side="right")
        return np.clip(positions - 1, 0, self.num_bins - 1).astype(np.int64)

    def split_threshold(self, bin_index: int) -> float:
        """Threshold that sends bins ``0..bin_index`` left and the rest right.

        This is the lower boundary of bin ``bin_index + 1``. Used as a
        :class:`~histree.Split` threshold, every value whose bin is
        ``<= bin_index`` satisfies ``value < threshold``.

        Args:
            bin_index: Last bin on the left side, in ``[0, num_bins - 2]``.
        """
        if not 0 <= bin_index < self.num_bins - 1:
            raise ValueError(
                f"bin_index must be in [0, {self.num_bins - 2}] for a histogram "
                f"with {self.num_bins} bins, got {bin_index}"
            )
        return float(self.bins[bin_index + 1])

    # -------------------------------------------------------------------------
    # Accumulation
    # -------------------------------------------------------------------------

    def accumulate(
        self,
        feature_values: ArrayLike,
        gradients: ArrayLike,
        hessians: ArrayLike,
    ) -> None:
        """Add per-sample gradients and hessians into their bins.

        Sums are never reset; build a new histogram for a fresh pass.

        Args:
            feature_values: Feature value per sample, shape (n_samples,)
            gradients: Gradient per sample, shape (n_samples,)
            hessians: Hessian per sample, shape (n_samples,)

        Raises:
            EmptyHistogram: If the histogram has no bins.
            InputLengthMismatch: If the three inputs differ in length.
        """
        self._check_not_empty()

        values = as_float32_vector(feature_values, "feature_values")
        grad = as_float32_vector(gradients, "gradients")
        hess = as_float32_vector(hessians, "hessians")

        if not len(values) == len(grad) == len(hess):
            raise InputLengthMismatch(
                f"feature_values, gradients and hessians must have equal length, "
                f"got {len(values)}, {len(grad)} and {len(hess)}"
            )

        bin_indices = self.search_bin_indices(values)

        if is_numba():
            from ._backends._cpu import accumulate_histogram_cpu
            accumulate_histogram_cpu(
                bin_indices, grad, hess,
                self.gradients, self.hessians,
            )
        else:
            np.add.at(self.gradients, bin_indices, grad)
            np.add.at(self.hessians, bin_indices, hess)

    def merge(self, other: "Histogram") -> None:
        """Add another histogram's sums into this one.

        Both histograms must share the same boundaries, e.g. per-thread
        histograms built from the same feature column.
        """
        if not np.array_equal(self.bins, other.bins):
            raise ValueError("Cannot merge histograms with different bins")
        self._check_not_empty()

        self.gradients += other.gradients
        self.hessians += other.hessians

    def _check_not_empty(self) -> None:
        if self.is_empty:
            raise EmptyHistogram(
                "Histogram was built from zero feature values and has no bins"
            )
