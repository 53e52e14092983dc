"""Exceptions raised by histree.

Each error also derives from the builtin it refines, so callers that
already catch ``ValueError`` or ``IndexError`` keep working.
"""

from __future__ import annotations


class HistreeError(Exception):
    """Base class for histree errors."""


class InputLengthMismatch(HistreeError, ValueError):
    """Feature values, gradients and hessians have different lengths."""


class EmptyHistogram(HistreeError, ValueError):
    """Bin lookup or accumulation on a histogram built from no values."""


class FeatureIndexOutOfRange(HistreeError, IndexError):
    """A split node references a feature the input vector does not have."""


__all__ = [
    "HistreeError",
    "InputLengthMismatch",
    "EmptyHistogram",
    "FeatureIndexOutOfRange",
]
