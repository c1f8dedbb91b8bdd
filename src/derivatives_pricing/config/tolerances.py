"""
Centralized tolerance framework for simulation and sensitivity checks.

All tolerances are derived from precision requirements, not ad hoc tuning.

Tolerance Tiers:
    Tier 1 (Deterministic): bit-identical replay, machine-precision algebra
    Tier 2 (Analytical): closed-form reference comparisons
    Tier 3 (Stochastic): CLT-derived Monte Carlo bounds
    Tier 4 (Cross-Mode): agreement between sensitivity strategies

References:
    [T1] Higham (2002) "Accuracy and Stability of Numerical Algorithms"
    [T1] Glasserman (2003) Ch. 7 - Estimating sensitivities
    [T1] Griewank & Walther (2008) "Evaluating Derivatives", Ch. 12
"""

from typing import Final

import numpy as np

# =============================================================================
# Tier 1: Deterministic Tolerances
# =============================================================================

#: Replay from a checkpoint must reproduce the original forward pass exactly.
#: Zero: any difference is a defect, not floating-point noise.
CHECKPOINT_REPLAY_TOLERANCE: Final[float] = 0.0

#: Same-seed repricing (reset idempotence, determinism across instances)
DETERMINISM_TOLERANCE: Final[float] = 0.0

#: No-arbitrage bounds on simulated prices
ANTI_PATTERN_TOLERANCE: Final[float] = 1e-10

#: Streaming statistics vs batch numpy statistics (summation-order noise)
OBSERVER_STATISTICS_TOLERANCE: Final[float] = 1e-9


# =============================================================================
# Tier 2: Analytical Tolerances
# =============================================================================

#: Black-Scholes Greeks vs numerical differentiation of the BS price
GREEKS_NUMERICAL_TOLERANCE: Final[float] = 1e-5

#: Put-call parity on the analytic reference
PUT_CALL_PARITY_TOLERANCE: Final[float] = 1e-8


# =============================================================================
# Tier 3: Stochastic Tolerances (CLT-Derived)
# =============================================================================


def mc_tolerance(n_paths: int, sigma: float = 0.20, confidence: float = 3.0) -> float:
    """
    Calculate CLT-derived Monte Carlo tolerance.

    [T1] Standard error of MC estimate is σ/√N.
    3σ gives 99.7% confidence interval.

    Parameters
    ----------
    n_paths : int
        Number of Monte Carlo paths
    sigma : float
        Estimated relative dispersion of the payoff (default 0.20)
    confidence : float
        Number of standard deviations (default 3 for 99.7% CI)

    Returns
    -------
    float
        Relative tolerance for MC vs analytical comparison

    Examples
    --------
    >>> round(mc_tolerance(10_000), 4)
    0.006
    """
    if n_paths <= 0:
        raise ValueError(f"CRITICAL: n_paths must be > 0, got {n_paths}")
    return confidence * sigma / np.sqrt(n_paths)


#: MC price vs Black-Scholes, 10,000 paths (relative)
MC_10K_TOLERANCE: Final[float] = 0.02

#: MC price vs Black-Scholes, 100,000 paths (relative)
MC_100K_TOLERANCE: Final[float] = 0.01

#: Common-random-number delta vs Black-Scholes delta, 10,000 paths (relative)
MC_DELTA_10K_TOLERANCE: Final[float] = 0.10

#: Common-random-number delta vs Black-Scholes delta, 100,000 paths (relative)
MC_DELTA_100K_TOLERANCE: Final[float] = 0.03

#: Vega / rho / theta vs Black-Scholes at 50,000+ paths (relative)
MC_GREEKS_TOLERANCE: Final[float] = 0.10


# =============================================================================
# Tier 4: Cross-Mode Tolerances
# =============================================================================

#: Finite difference vs forward tangent vs reverse adjoint on a fixed seed.
#: Differences come from the bump size only (O(h²)), not sampling noise.
GREEKS_MODE_AGREEMENT_TOLERANCE: Final[float] = 0.02


# =============================================================================
# Tolerance Registry (For Dynamic Access)
# =============================================================================

TOLERANCE_REGISTRY: dict[str, float] = {
    # Tier 1: Deterministic
    "checkpoint_replay": CHECKPOINT_REPLAY_TOLERANCE,
    "determinism": DETERMINISM_TOLERANCE,
    "anti_pattern": ANTI_PATTERN_TOLERANCE,
    "observer_statistics": OBSERVER_STATISTICS_TOLERANCE,
    # Tier 2: Analytical
    "greeks_numerical": GREEKS_NUMERICAL_TOLERANCE,
    "put_call_parity": PUT_CALL_PARITY_TOLERANCE,
    # Tier 3: Stochastic
    "mc_10k": MC_10K_TOLERANCE,
    "mc_100k": MC_100K_TOLERANCE,
    "mc_delta_10k": MC_DELTA_10K_TOLERANCE,
    "mc_delta_100k": MC_DELTA_100K_TOLERANCE,
    "mc_greeks": MC_GREEKS_TOLERANCE,
    # Tier 4: Cross-Mode
    "greeks_mode_agreement": GREEKS_MODE_AGREEMENT_TOLERANCE,
}


def get_tolerance(name: str) -> float:
    """
    Get tolerance by name from registry.

    Parameters
    ----------
    name : str
        Tolerance name (see TOLERANCE_REGISTRY keys)

    Returns
    -------
    float
        Tolerance value

    Raises
    ------
    KeyError
        If tolerance name not found
    """
    if name not in TOLERANCE_REGISTRY:
        available = ", ".join(sorted(TOLERANCE_REGISTRY.keys()))
        raise KeyError(f"Unknown tolerance '{name}'. Available: {available}")
    return TOLERANCE_REGISTRY[name]
