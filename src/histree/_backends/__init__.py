"""Backend selection for histree.

The hot loops (histogram accumulation, batched prediction) run either as
Numba JIT kernels or as plain NumPy code. The initial backend comes from
the ``HISTREE_BACKEND`` environment variable and defaults to ``"numba"``.
"""

from __future__ import annotations

import logging
import os

logger = logging.getLogger(__name__)

_BACKENDS = ("numba", "numpy")


def _validate(name: str) -> str:
    name = name.strip().lower()
    if name not in _BACKENDS:
        available = ", ".join(_BACKENDS)
        raise ValueError(f"Unknown backend '{name}'. Available: {available}")
    return name


_backend = _validate(os.environ.get("HISTREE_BACKEND", "numba"))


def get_backend() -> str:
    """Return the active backend name."""
    return _backend


def set_backend(name: str) -> None:
    """Switch the active backend.
    
    Args:
        name: ``"numba"`` or ``"numpy"``.
    """
    global _backend
    name = _validate(name)
    if name != _backend:
        logger.debug("Switching backend from %s to %s", _backend, name)
    _backend = name


def is_numba() -> bool:
    return _backend == "numba"


__all__ = ["get_backend", "set_backend", "is_numba"]
