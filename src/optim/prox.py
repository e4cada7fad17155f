"""Proximal operators."""

from __future__ import annotations

import numpy as np

from core.types import DenseMatrix

__all__ = ["soft_threshold"]


def soft_threshold(x: DenseMatrix | float, lam: float) -> DenseMatrix:
    """Proximal operator of lam * ||x||_1, applied element-wise.

        S(x) = x - lam   if x > lam
               x + lam   if x < -lam
               0         otherwise

    Values exactly at +-lam map to 0.

    Args:
        x: Scalar or array.
        lam: Non-negative threshold.

    Returns:
        A new float64 array with the shape of x.
    """
    arr = np.asarray(x, dtype=np.float64)
    return np.where(arr > lam, arr - lam, np.where(arr < -lam, arr + lam, 0.0))
