"""
derivatives-pricing: checkpoint-bounded Monte Carlo pricing and Greeks.

Quick Start
-----------
>>> import numpy as np
>>> from derivatives_pricing import (
...     GBMParams, GreeksMode, MonteCarloConfig, MonteCarloPricer,
...     PayoffParams, price_with_greeks_mode,
... )
>>> pricer = MonteCarloPricer(MonteCarloConfig(n_paths=20_000, n_steps=32, seed=42))
>>> params = GBMParams(spot=100.0, rate=0.05, volatility=0.20, time_to_expiry=1.0)
>>> greeks = price_with_greeks_mode(
...     pricer, params, PayoffParams.call(100.0), np.exp(-0.05), GreeksMode.AUTO
... )

Version: 0.1.0
"""

__version__ = "0.1.0"

# =============================================================================
# Configuration
# =============================================================================
from derivatives_pricing.config.settings import SETTINGS

# =============================================================================
# Simulation
# =============================================================================
from derivatives_pricing.options.payoffs.base import OptionType, PayoffParams
from derivatives_pricing.options.pricing.black_scholes import (
    BSResult,
    black_scholes_greeks,
    black_scholes_price,
)
from derivatives_pricing.options.simulation import (
    ConfigError,
    GBMParams,
    Greek,
    MCResult,
    MonteCarloConfig,
    MonteCarloPricer,
    PathObserver,
    PathObserverState,
    RandomStream,
    SimulationWorkspace,
    convergence_analysis,
)

# =============================================================================
# Checkpointing
# =============================================================================
from derivatives_pricing.checkpoint import (
    CheckpointError,
    CheckpointManager,
    CheckpointNotFoundError,
    CheckpointStorage,
    CheckpointStrategy,
    InvalidCheckpointStateError,
    MemoryBudget,
    MemoryBudgetWarning,
    MemoryMonitor,
    MemoryMonitorConfig,
    MemoryStats,
    SimulationState,
)

# =============================================================================
# Greeks
# =============================================================================
from derivatives_pricing.greeks import (
    CheckpointedAdjoint,
    GreeksMode,
    GreeksModeUnavailableError,
    GreeksResult,
    compare_modes,
    price_with_greeks_mode,
)

# =============================================================================
# Portfolio
# =============================================================================
from derivatives_pricing.portfolio import PricerPool, Trade, TradeResult, price_portfolio

__all__ = [
    "__version__",
    "SETTINGS",
    # Simulation
    "OptionType",
    "PayoffParams",
    "BSResult",
    "black_scholes_greeks",
    "black_scholes_price",
    "ConfigError",
    "GBMParams",
    "Greek",
    "MCResult",
    "MonteCarloConfig",
    "MonteCarloPricer",
    "PathObserver",
    "PathObserverState",
    "RandomStream",
    "SimulationWorkspace",
    "convergence_analysis",
    # Checkpointing
    "CheckpointError",
    "CheckpointManager",
    "CheckpointNotFoundError",
    "CheckpointStorage",
    "CheckpointStrategy",
    "InvalidCheckpointStateError",
    "MemoryBudget",
    "MemoryBudgetWarning",
    "MemoryMonitor",
    "MemoryMonitorConfig",
    "MemoryStats",
    "SimulationState",
    # Greeks
    "CheckpointedAdjoint",
    "GreeksMode",
    "GreeksModeUnavailableError",
    "GreeksResult",
    "compare_modes",
    "price_with_greeks_mode",
    # Portfolio
    "PricerPool",
    "Trade",
    "TradeResult",
    "price_portfolio",
]
