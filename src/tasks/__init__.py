"""Tasks module.

This package contains the LASSO problem definition and its data sources.

Available helpers:
- LassoProblem / lasso_objective: F(w) = (1/2n)||Xw - y||^2 + lam ||w||_1
- make_sparse_regression: synthetic sparse linear model
- load_svmlight / load_reference_optimum: file loaders
"""

from __future__ import annotations

from tasks.lasso import (
    LassoProblem,
    lasso_objective,
    least_squares_solution,
    make_sparse_regression,
    relative_error,
)
from tasks.svmlight import load_reference_optimum, load_svmlight

__all__ = [
    # LASSO problem
    "LassoProblem",
    "lasso_objective",
    "relative_error",
    "least_squares_solution",
    "make_sparse_regression",
    # Loaders
    "load_svmlight",
    "load_reference_optimum",
]
