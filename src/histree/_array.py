"""Array conversion helpers for histree.

Everything numeric inside the package is ``float32``; these helpers turn
lists, NumPy arrays and other array-likes into that form.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import numpy as np

if TYPE_CHECKING:
    from numpy.typing import ArrayLike, NDArray


def _to_numpy(arr: ArrayLike) -> NDArray:
    """Convert various array types to numpy.

    Handles: numpy, PyTorch, JAX, CuPy, plain sequences
    """
    # Already numpy
    if isinstance(arr, np.ndarray):
        return arr

    # PyTorch
    if hasattr(arr, 'cpu') and hasattr(arr, 'numpy'):
        return arr.cpu().numpy()

    # CuPy
    if hasattr(arr, 'get') and hasattr(arr, '__cuda_array_interface__'):
        return arr.get()

    # JAX (has __array__ protocol), lists, tuples
    return np.asarray(arr)


def ensure_contiguous_float32(arr: ArrayLike) -> NDArray[np.float32]:
    """Ensure array is contiguous float32."""
    arr = _to_numpy(arr)
    if arr.dtype != np.float32:
        arr = arr.astype(np.float32)
    if not arr.flags['C_CONTIGUOUS']:
        arr = np.ascontiguousarray(arr)
    return arr


def as_float32_vector(arr: ArrayLike, name: str) -> NDArray[np.float32]:
    """Convert to a contiguous 1D float32 array.

    Args:
        arr: Input values.
        name: Argument name used in error messages.

    Raises:
        ValueError: If the input is not one-dimensional.
    """
    out = ensure_contiguous_float32(arr)
    if out.ndim != 1:
        raise ValueError(f"{name} must be 1D, got shape {out.shape}")
    return out
