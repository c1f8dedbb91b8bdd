"""
Frozen configuration settings for simulation, sensitivities and checkpointing.

All configuration is immutable (frozen dataclasses) to ensure reproducibility.
Two values can be overridden from the environment:

- ``DERIVATIVES_PRICING_SEED``: default Monte Carlo seed
- ``DERIVATIVES_PRICING_BUDGET_MB``: default checkpoint memory budget
"""

import os
from dataclasses import dataclass, field

# =============================================================================
# Environment Overrides
# =============================================================================


def _env_int(name: str, default: int) -> int:
    """
    Read a non-negative integer override from the environment.

    Parameters
    ----------
    name : str
        Environment variable name
    default : int
        Value used when the variable is unset or empty

    Returns
    -------
    int
        Resolved value

    Raises
    ------
    ValueError
        If the variable is set to something that is not a non-negative integer
    """
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError as e:
        raise ValueError(f"CRITICAL: {name} must be an integer, got {raw!r}") from e
    if value < 0:
        raise ValueError(f"CRITICAL: {name} must be >= 0, got {value}")
    return value


def _resolve_seed() -> int:
    """Default seed, overridable with DERIVATIVES_PRICING_SEED."""
    return _env_int("DERIVATIVES_PRICING_SEED", 42)


def _resolve_budget_mb() -> int:
    """Default checkpoint budget, overridable with DERIVATIVES_PRICING_BUDGET_MB."""
    return _env_int("DERIVATIVES_PRICING_BUDGET_MB", 1024)


# =============================================================================
# Simulation Configuration
# =============================================================================

@dataclass(frozen=True)
class SimulationConfig:
    """
    Immutable Monte Carlo configuration. [T3: Assumptions]

    Attributes
    ----------
    mc_paths : int
        Default number of Monte Carlo paths
    mc_steps : int
        Default number of time steps per path
    mc_seed : int
        Default random seed for reproducibility
    trading_days_per_year : int
        Number of trading days in a year
    """

    mc_paths: int = 100_000
    mc_steps: int = 252
    mc_seed: int = field(default_factory=_resolve_seed)
    trading_days_per_year: int = 252  # [T1]


# =============================================================================
# Greeks Configuration
# =============================================================================

@dataclass(frozen=True)
class GreeksConfig:
    """
    Immutable bump sizes for finite-difference Greeks.

    Attributes
    ----------
    spot_bump_relative : float
        Spot bump as a fraction of spot
    spot_bump_floor : float
        Smallest absolute spot bump (never more than spot_bump_cap · S)
    spot_bump_cap : float
        Largest spot bump as a fraction of spot, so S - h stays positive
    vol_bump_absolute : float
        Absolute volatility bump
    vol_floor : float
        Lowest volatility a down-bump may reach
    rate_bump_absolute : float
        Absolute rate bump
    time_bump_years : float
        Maturity shortening for theta (one trading day)
    maturity_floor : float
        Shortest maturity a theta bump may reach
    smoothing_epsilon : float
        Width of the soft-plus payoff kink
    """

    spot_bump_relative: float = 0.01
    spot_bump_floor: float = 0.01
    spot_bump_cap: float = 0.5
    vol_bump_absolute: float = 0.01
    vol_floor: float = 0.001
    rate_bump_absolute: float = 0.01
    time_bump_years: float = 1.0 / 252.0
    maturity_floor: float = 0.001
    smoothing_epsilon: float = 1e-4

    def spot_bump(self, spot: float) -> float:
        """Absolute spot bump for a given spot level; always < spot."""
        return min(
            max(self.spot_bump_relative * spot, self.spot_bump_floor),
            self.spot_bump_cap * spot,
        )


# =============================================================================
# Checkpoint Configuration
# =============================================================================

@dataclass(frozen=True)
class CheckpointConfig:
    """
    Immutable checkpointing defaults.

    Attributes
    ----------
    default_interval : int
        Interval of the default uniform strategy
    warning_threshold : float
        Fraction of a memory budget above which a warning is reported
    default_budget_mb : int
        Default memory budget in MiB
    checkpoint_overhead_bytes : int
        Fixed bookkeeping cost charged per stored checkpoint
    min_capacity : int
        Smallest pre-sized checkpoint store
    max_capacity : int
        Largest pre-sized checkpoint store
    """

    default_interval: int = 100
    warning_threshold: float = 0.8
    default_budget_mb: int = field(default_factory=_resolve_budget_mb)
    checkpoint_overhead_bytes: int = 128
    min_capacity: int = 10
    max_capacity: int = 1000


@dataclass(frozen=True)
class MonitorConfig:
    """
    Immutable defaults for the portfolio-level memory monitor.

    Attributes
    ----------
    budget_mb : int
        Aggregate memory budget in MiB
    checkpoint_threshold_pct : float
        Usage percentage above which checkpointing is switched on
    bytes_per_trade : int
        Estimated working-set size of one trade
    """

    budget_mb: int = 512
    checkpoint_threshold_pct: float = 70.0
    bytes_per_trade: int = 8192


# =============================================================================
# Master Configuration
# =============================================================================

@dataclass(frozen=True)
class Settings:
    """
    Master frozen configuration combining all sub-configs.

    Usage
    -----
    >>> from derivatives_pricing.config.settings import SETTINGS
    >>> SETTINGS.greeks.vol_bump_absolute
    0.01
    """

    simulation: SimulationConfig = field(default_factory=SimulationConfig)
    greeks: GreeksConfig = field(default_factory=GreeksConfig)
    checkpoint: CheckpointConfig = field(default_factory=CheckpointConfig)
    monitor: MonitorConfig = field(default_factory=MonitorConfig)


# Singleton instance - import this
SETTINGS = Settings()
