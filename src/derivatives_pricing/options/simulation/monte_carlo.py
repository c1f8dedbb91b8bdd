"""
Monte Carlo pricer over a reusable simulation workspace.

Pipeline per pricing call:
1. grow the workspace to n_paths x n_steps
2. fill the random buffer from the seeded stream
3. the path generator writes prices into the workspace
4. the payoff evaluator writes per-path payoffs
5. aggregate the discounted mean and its standard error

The pricer is deterministic given its seed: ``reset()`` reseeds to the
original seed and reproduces bit-identical results. ``reset_with_seed`` is
what sensitivity modes use to run bumped scenarios on common random numbers.

[T1] MC converges to the true price at rate 1/√N

See: Glasserman (2003) "Monte Carlo Methods in Financial Engineering"
"""

import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Callable, Optional, Sequence

import numpy as np
import pandas as pd

from derivatives_pricing.config.settings import SETTINGS
from derivatives_pricing.options.payoffs.base import (
    PayoffParams,
    compute_payoffs,
    payoff_derivative,
)
from derivatives_pricing.options.simulation.errors import ConfigError
from derivatives_pricing.options.simulation.gbm import (
    GBMParams,
    generate_gbm_paths,
    generate_gbm_paths_tangent_spot,
)
from derivatives_pricing.options.simulation.rng import RandomStream
from derivatives_pricing.options.simulation.workspace import SimulationWorkspace

logger = logging.getLogger(__name__)

#: Largest accepted path count
MAX_PATHS = 10_000_000

#: Largest accepted step count
MAX_STEPS = 10_000

#: (workspace, params, n_paths, n_steps) -> None
PathGenerator = Callable[[SimulationWorkspace, GBMParams, int, int], None]

#: (workspace, payoff, n_paths, n_steps) -> None
PayoffEvaluator = Callable[[SimulationWorkspace, PayoffParams, int, int], None]


@dataclass(frozen=True)
class MonteCarloConfig:
    """
    Validated simulation size and seed.

    Attributes
    ----------
    n_paths : int
        Number of simulated paths, in [1, MAX_PATHS]
    n_steps : int
        Number of time steps per path, in [1, MAX_STEPS]
    seed : int, optional
        Seed of the random stream; None uses SETTINGS.simulation.mc_seed

    Raises
    ------
    ConfigError
        If a count is zero, negative or above its maximum
    """

    n_paths: int
    n_steps: int
    seed: Optional[int] = None

    def __post_init__(self) -> None:
        if not 0 < self.n_paths <= MAX_PATHS:
            raise ConfigError(
                f"CRITICAL: n_paths must be in [1, {MAX_PATHS}], got {self.n_paths}"
            )
        if not 0 < self.n_steps <= MAX_STEPS:
            raise ConfigError(
                f"CRITICAL: n_steps must be in [1, {MAX_STEPS}], got {self.n_steps}"
            )
        if self.seed is not None and self.seed < 0:
            raise ConfigError(f"CRITICAL: seed must be >= 0, got {self.seed}")

    @property
    def resolved_seed(self) -> int:
        """Seed in effect after applying the settings default."""
        return self.seed if self.seed is not None else SETTINGS.simulation.mc_seed


class Greek(Enum):
    """Sensitivities the pricer can report."""

    DELTA = "delta"
    GAMMA = "gamma"
    VEGA = "vega"
    THETA = "theta"
    RHO = "rho"
    VANNA = "vanna"
    VOLGA = "volga"


@dataclass(frozen=True)
class MCResult:
    """
    Monte Carlo pricing result.

    Attributes
    ----------
    price : float
        Discounted mean payoff
    standard_error : float
        Discounted sample standard deviation / √n_paths
    confidence_interval : tuple[float, float]
        95% confidence interval
    n_paths : int
        Number of paths used
    discount_factor : float
        Discount factor applied
    delta : float, optional
        Spot sensitivity, when computed in the same pass
    greeks : dict[Greek, float]
        Finite-difference sensitivities, when requested
    """

    price: float
    standard_error: float
    confidence_interval: tuple[float, float]
    n_paths: int
    discount_factor: float
    delta: Optional[float] = None
    greeks: dict[Greek, float] = field(default_factory=dict)

    @property
    def relative_error(self) -> float:
        """Relative standard error (SE / price)."""
        if abs(self.price) < 1e-10:
            return float("inf")
        return self.standard_error / abs(self.price)

    @property
    def ci_width(self) -> float:
        """Width of 95% confidence interval."""
        return self.confidence_interval[1] - self.confidence_interval[0]


def summarize_payoffs(payoffs: np.ndarray, discount_factor: float) -> MCResult:
    """
    Aggregate undiscounted payoffs into a priced result.

    Parameters
    ----------
    payoffs : np.ndarray
        Undiscounted payoffs, one per path
    discount_factor : float
        Discount factor applied to mean and standard error

    Returns
    -------
    MCResult
        Price, standard error and 95% CI

    Raises
    ------
    ValueError
        If there are no payoffs to aggregate
    """
    n = len(payoffs)
    if n == 0:
        raise ValueError("CRITICAL: cannot aggregate zero payoffs")

    mean_payoff = float(payoffs.mean())
    se = float(payoffs.std(ddof=1)) / np.sqrt(n) if n > 1 else 0.0

    price = discount_factor * mean_payoff
    se_price = discount_factor * se

    # 95% confidence interval (z = 1.96)
    return MCResult(
        price=price,
        standard_error=se_price,
        confidence_interval=(price - 1.96 * se_price, price + 1.96 * se_price),
        n_paths=n,
        discount_factor=discount_factor,
    )


def _validate_discount_factor(discount_factor: float) -> None:
    if not np.isfinite(discount_factor) or discount_factor <= 0:
        raise ValueError(
            f"CRITICAL: discount_factor must be finite and > 0, got {discount_factor}"
        )


class MonteCarloPricer:
    """
    Monte Carlo pricer with a reusable workspace and seeded stream.

    Parameters
    ----------
    config : MonteCarloConfig
        Path/step counts and seed
    path_generator : PathGenerator, optional
        Writes prices into the workspace; GBM by default
    payoff_evaluator : PayoffEvaluator, optional
        Writes payoffs into the workspace; smoothed vanilla by default

    Examples
    --------
    >>> pricer = MonteCarloPricer(MonteCarloConfig(n_paths=10_000, n_steps=1, seed=42))
    >>> params = GBMParams(spot=100, rate=0.05, volatility=0.20, time_to_expiry=1.0)
    >>> result = pricer.price_european(params, PayoffParams.call(100), np.exp(-0.05))
    >>> 9.5 < result.price < 11.5
    True
    """

    def __init__(
        self,
        config: MonteCarloConfig,
        path_generator: Optional[PathGenerator] = None,
        payoff_evaluator: Optional[PayoffEvaluator] = None,
    ):
        self.config = config
        self.path_generator = path_generator or generate_gbm_paths
        self.payoff_evaluator = payoff_evaluator or compute_payoffs
        self._original_seed = config.resolved_seed
        self._rng = RandomStream(self._original_seed)
        self.workspace = SimulationWorkspace(config.n_paths, config.n_steps)
        logger.info(
            f"MonteCarloPricer: {config.n_paths} paths x {config.n_steps} steps, "
            f"seed={self._original_seed}"
        )

    # -------------------------------------------------------------------------
    # State
    # -------------------------------------------------------------------------

    @property
    def seed(self) -> int:
        """Seed currently in effect."""
        return self._rng.seed

    @property
    def rng(self) -> RandomStream:
        return self._rng

    @property
    def supports_ad(self) -> bool:
        """True when tangent and adjoint passes model the configured pipeline."""
        return (
            self.path_generator is generate_gbm_paths
            and self.payoff_evaluator is compute_payoffs
        )

    def reset(self) -> None:
        """Clear the workspace size and reseed to the original seed."""
        self.workspace.reset()
        self._rng.reseed(self._original_seed)

    def reset_with_seed(self, seed: int) -> None:
        """Clear the workspace size and reseed to an arbitrary seed."""
        self.workspace.reset()
        self._rng.reseed(seed)

    def prepare(self) -> None:
        """Size the workspace and fill the random buffer for one run."""
        n_paths, n_steps = self.config.n_paths, self.config.n_steps
        self.workspace.ensure_capacity(n_paths, n_steps)
        self._rng.fill_normal(self.workspace.randoms)

    # -------------------------------------------------------------------------
    # Pricing
    # -------------------------------------------------------------------------

    def price_european(
        self,
        params: GBMParams,
        payoff: PayoffParams,
        discount_factor: float,
    ) -> MCResult:
        """
        Price a European payoff.

        Parameters
        ----------
        params : GBMParams
            Model parameters
        payoff : PayoffParams
            Payoff definition
        discount_factor : float
            Discount factor to expiry

        Returns
        -------
        MCResult
            Price and standard error
        """
        _validate_discount_factor(discount_factor)
        n_paths, n_steps = self.config.n_paths, self.config.n_steps
        self.prepare()
        self.path_generator(self.workspace, params, n_paths, n_steps)
        self.payoff_evaluator(self.workspace, payoff, n_paths, n_steps)
        return summarize_payoffs(self.workspace.payoffs, discount_factor)

    def price_with_greeks(
        self,
        params: GBMParams,
        payoff: PayoffParams,
        discount_factor: float,
        greeks: Sequence[Greek] = tuple(Greek),
    ) -> MCResult:
        """
        Price with bump-and-revalue Greeks on common random numbers.

        Every scenario is priced after ``reset_with_seed`` with the seed in
        effect at the call, so sampling noise cancels between scenarios.

        Parameters
        ----------
        params : GBMParams
            Model parameters
        payoff : PayoffParams
            Payoff definition
        discount_factor : float
            Discount factor to expiry
        greeks : Sequence[Greek]
            Sensitivities to compute (all by default)

        Returns
        -------
        MCResult
            Base price with ``greeks`` filled in
        """
        from derivatives_pricing.greeks.finite_difference import compute_fd_greeks

        base, values = compute_fd_greeks(self, params, payoff, discount_factor, greeks)
        return replace(base, greeks=values, delta=values.get(Greek.DELTA))

    def price_with_delta_ad(
        self,
        params: GBMParams,
        payoff: PayoffParams,
        discount_factor: float,
    ) -> MCResult:
        """
        Price and compute delta by forward tangent propagation in one pass.

        [T1] Δ = DF · E[f'(S_T) · dS_T/dS0]

        Raises
        ------
        GreeksModeUnavailableError
            If a custom path generator or payoff evaluator is configured
        """
        if not self.supports_ad:
            from derivatives_pricing.greeks.modes import GreeksModeUnavailableError

            raise GreeksModeUnavailableError(
                "Forward tangent requires the built-in GBM path model and vanilla payoff"
            )
        _validate_discount_factor(discount_factor)
        n_paths, n_steps = self.config.n_paths, self.config.n_steps
        self.prepare()
        tangent = generate_gbm_paths_tangent_spot(self.workspace, params, n_paths, n_steps)
        self.payoff_evaluator(self.workspace, payoff, n_paths, n_steps)
        result = summarize_payoffs(self.workspace.payoffs, discount_factor)

        terminal = self.workspace.paths[:n_paths, n_steps]
        delta = discount_factor * float(np.mean(payoff_derivative(terminal, payoff) * tangent))
        return replace(result, delta=delta)


# =============================================================================
# Convergence Analysis
# =============================================================================


def convergence_analysis(
    params: GBMParams,
    payoff: PayoffParams,
    analytical_price: float,
    discount_factor: float,
    path_counts: Sequence[int] = (1_000, 5_000, 10_000, 50_000),
    n_steps: int = 1,
    seed: int = 42,
) -> pd.DataFrame:
    """
    Analyze MC convergence to an analytical price.

    [T1] MC error should converge at rate 1/√N.

    Parameters
    ----------
    params : GBMParams
        Model parameters
    payoff : PayoffParams
        Payoff definition
    analytical_price : float
        Reference price (e.g. Black-Scholes)
    discount_factor : float
        Discount factor to expiry
    path_counts : Sequence[int]
        Path counts to test
    n_steps : int
        Time steps per path
    seed : int
        Seed shared by every run

    Returns
    -------
    pd.DataFrame
        One row per path count; the fitted log-log slope of absolute error
        against path count is stored in ``attrs["convergence_rate"]``
    """
    rows = []
    for n in path_counts:
        pricer = MonteCarloPricer(MonteCarloConfig(n_paths=n, n_steps=n_steps, seed=seed))
        result = pricer.price_european(params, payoff, discount_factor)
        error = abs(result.price - analytical_price)
        rows.append(
            {
                "n_paths": n,
                "mc_price": result.price,
                "analytical_price": analytical_price,
                "absolute_error": error,
                "relative_error": error / analytical_price if analytical_price > 0 else np.inf,
                "standard_error": result.standard_error,
                "within_ci": result.confidence_interval[0]
                <= analytical_price
                <= result.confidence_interval[1],
            }
        )

    frame = pd.DataFrame(rows)
    frame.attrs["convergence_rate"] = _estimate_convergence_rate(frame)
    return frame


def _estimate_convergence_rate(frame: pd.DataFrame) -> float:
    """
    Slope of log(error) against log(N).

    [T1] Theory predicts rate = -0.5 (error ~ 1/√N).
    """
    if len(frame) < 2:
        return float("nan")
    log_n = np.log(frame["n_paths"].to_numpy(dtype=float))
    log_error = np.log(frame["absolute_error"].to_numpy() + 1e-10)
    slope, _ = np.polyfit(log_n, log_error, 1)
    return float(slope)
