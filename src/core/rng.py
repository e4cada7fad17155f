"""Random number generation utilities.

Sampling decisions are made on the coordinating process only, so a single
numpy Generator per solver run is enough.
"""

from __future__ import annotations

import numpy as np

__all__ = ["make_rng"]


def make_rng(seed: int | np.random.Generator | None = None) -> np.random.Generator:
    """Return a Generator for a seed, or pass an existing Generator through.

    Args:
        seed: Integer seed, an existing Generator, or None for fresh entropy.

    Returns:
        A numpy random Generator.
    """
    if isinstance(seed, np.random.Generator):
        return seed
    return np.random.default_rng(seed)
