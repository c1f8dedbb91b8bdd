"""
Monte Carlo simulation over reusable buffers.

Provides:
- Seeded random stream with a draw counter
- Growable simulation workspace and per-path observers
- GBM path generation (primal and spot tangent)
- Monte Carlo pricer and convergence analysis
"""

from derivatives_pricing.options.simulation.errors import ConfigError
from derivatives_pricing.options.simulation.gbm import (
    GBMParams,
    gbm_step,
    generate_gbm_paths,
    generate_gbm_paths_tangent_spot,
    terminal_prices,
)
from derivatives_pricing.options.simulation.monte_carlo import (
    MAX_PATHS,
    MAX_STEPS,
    Greek,
    MCResult,
    MonteCarloConfig,
    MonteCarloPricer,
    convergence_analysis,
    summarize_payoffs,
)
from derivatives_pricing.options.simulation.observer import PathObserver, PathObserverState
from derivatives_pricing.options.simulation.rng import RandomStream
from derivatives_pricing.options.simulation.workspace import SimulationWorkspace

__all__ = [
    # Errors
    "ConfigError",
    # GBM
    "GBMParams",
    "gbm_step",
    "generate_gbm_paths",
    "generate_gbm_paths_tangent_spot",
    "terminal_prices",
    # Monte Carlo
    "MAX_PATHS",
    "MAX_STEPS",
    "Greek",
    "MCResult",
    "MonteCarloConfig",
    "MonteCarloPricer",
    "convergence_analysis",
    "summarize_payoffs",
    # Buffers
    "PathObserver",
    "PathObserverState",
    "RandomStream",
    "SimulationWorkspace",
]
