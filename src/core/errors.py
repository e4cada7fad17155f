"""Error kinds raised by the solver stack.

All errors derive from ValueError so callers that already guard against
invalid arguments keep working.
"""

from __future__ import annotations

__all__ = [
    "DimensionMismatch",
    "InvalidSampleSize",
    "MalformedInput",
]


class DimensionMismatch(ValueError):
    """Operand shapes are incompatible for the requested operation."""


class InvalidSampleSize(ValueError):
    """A sample count is non-positive or exceeds the available range."""


class MalformedInput(ValueError):
    """An input file could not be parsed."""
