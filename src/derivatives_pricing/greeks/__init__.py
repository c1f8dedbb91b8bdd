"""
Sensitivity (Greeks) computation.

Provides:
- GreeksMode and its resolution rules
- Finite differences on common random numbers
- Checkpoint-backed reverse (adjoint) sweep
- Dispatch and cross-mode comparison
"""

from derivatives_pricing.greeks.adjoint import CheckpointedAdjoint
from derivatives_pricing.greeks.dispatch import compare_modes, price_with_greeks_mode
from derivatives_pricing.greeks.finite_difference import compute_fd_greeks
from derivatives_pricing.greeks.modes import (
    GreeksMode,
    GreeksModeUnavailableError,
    ad_available,
)
from derivatives_pricing.greeks.result import GreeksResult

__all__ = [
    "CheckpointedAdjoint",
    "GreeksMode",
    "GreeksModeUnavailableError",
    "GreeksResult",
    "ad_available",
    "compare_modes",
    "compute_fd_greeks",
    "price_with_greeks_mode",
]
