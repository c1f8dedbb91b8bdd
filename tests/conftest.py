"""
Centralized pytest fixtures for the derivatives-pricing test suite.

This module provides shared fixtures used across all test categories:
- anti_patterns/
- unit/
- properties/
- validation/
- integration/

Fixture Categories:
1. Market Parameters - Standard ATM Black-Scholes setup
2. Tolerance Tiers - Shared numerical tolerances
3. Pricer Factories - Small seeded pricers for fast tests
"""

from dataclasses import dataclass

import numpy as np
import pytest

from derivatives_pricing.config.tolerances import (
    GREEKS_MODE_AGREEMENT_TOLERANCE,
    MC_DELTA_10K_TOLERANCE,
    MC_GREEKS_TOLERANCE,
)
from derivatives_pricing.options.payoffs.base import PayoffParams
from derivatives_pricing.options.pricing.black_scholes import BSResult, black_scholes_greeks
from derivatives_pricing.options.simulation.gbm import GBMParams
from derivatives_pricing.options.simulation.monte_carlo import MonteCarloConfig, MonteCarloPricer

# =============================================================================
# TOLERANCE TIERS
# =============================================================================


@dataclass(frozen=True)
class ToleranceTiers:
    """
    Tiered tolerance framework for different test types.

    Derived from precision requirements, not ad hoc.
    """

    # Anti-pattern tests: Very tight (fundamental violations)
    anti_pattern: float = 1e-10

    # Analytic Greeks vs numerical differentiation
    analytic: float = 1e-5

    # CLT bound in standard errors for MC vs analytic prices
    mc_standard_errors: float = 4.0

    # Common-random-number delta at 10k paths
    mc_delta_10k: float = MC_DELTA_10K_TOLERANCE

    # Simulated Greeks vs Black-Scholes
    mc_greeks: float = MC_GREEKS_TOLERANCE

    # Agreement between sensitivity modes on one seed
    mode_agreement: float = GREEKS_MODE_AGREEMENT_TOLERANCE


TOLERANCES = ToleranceTiers()


@pytest.fixture(scope="session")
def tolerances() -> ToleranceTiers:
    """Provide tiered tolerance settings for all tests."""
    return TOLERANCES


# =============================================================================
# MARKET PARAMETERS
# =============================================================================

SPOT = 100.0
STRIKE = 100.0
RATE = 0.05
VOLATILITY = 0.20
MATURITY = 1.0


@pytest.fixture
def standard_params() -> GBMParams:
    """Standard ATM parameters: S=100, r=5%, σ=20%, T=1, no dividend."""
    return GBMParams(spot=SPOT, rate=RATE, volatility=VOLATILITY, time_to_expiry=MATURITY)


@pytest.fixture
def atm_call() -> PayoffParams:
    """Smoothed ATM call."""
    return PayoffParams.call(STRIKE)


@pytest.fixture
def atm_put() -> PayoffParams:
    """Smoothed ATM put."""
    return PayoffParams.put(STRIKE)


@pytest.fixture
def discount_factor() -> float:
    """exp(-rT) for the standard parameters."""
    return float(np.exp(-RATE * MATURITY))


@pytest.fixture
def bs_reference() -> BSResult:
    """Black-Scholes price and Greeks of the standard ATM call."""
    from derivatives_pricing.options.payoffs.base import OptionType

    return black_scholes_greeks(SPOT, STRIKE, RATE, 0.0, VOLATILITY, MATURITY, OptionType.CALL)


# =============================================================================
# PRICER FACTORIES
# =============================================================================


@pytest.fixture
def make_pricer():
    """Factory for seeded pricers: make_pricer(n_paths, n_steps, seed=42)."""

    def _make(n_paths: int = 2_000, n_steps: int = 8, seed: int = 42) -> MonteCarloPricer:
        return MonteCarloPricer(MonteCarloConfig(n_paths=n_paths, n_steps=n_steps, seed=seed))

    return _make


@pytest.fixture
def small_pricer(make_pricer) -> MonteCarloPricer:
    """2,000 paths x 8 steps, seed 42."""
    return make_pricer()
