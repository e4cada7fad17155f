"""Optimization algorithms module.

This package contains:
- soft_threshold: proximal operator of the L1 norm
- CASFISTASolver: communication-avoiding stochastic FISTA for LASSO
"""

from __future__ import annotations

from optim.ca_sfista import (
    DEFAULT_TOLERANCE,
    CASFISTASolver,
    Continue,
    Converged,
    LoopControl,
    SolverResult,
    SolverState,
    next_momentum,
    solve,
)
from optim.prox import soft_threshold

__all__ = [
    # Proximal operators
    "soft_threshold",
    # CA-SFISTA
    "CASFISTASolver",
    "SolverState",
    "SolverResult",
    "Continue",
    "Converged",
    "LoopControl",
    "DEFAULT_TOLERANCE",
    "next_momentum",
    "solve",
]
