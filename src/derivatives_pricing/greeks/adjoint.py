"""
Checkpoint-backed reverse (adjoint) Greeks for GBM paths.

The forward sweep simulates every path exactly as the plain pricer does and
saves SimulationState checkpoints where the strategy says so. The reverse
sweep walks the steps from expiry back to zero one segment at a time: each
segment is recomputed from its checkpoint, then the adjoint of the price is
pulled back through the segment while the adjoints of volatility, rate and
maturity accumulate. Memory is bounded by the checkpoints plus one segment.

Per step, with S' = S·g and g = exp((r - q - σ²/2)dt + σ√dt·Z), dt = T/n:

[T1] ∂S'/∂S = g
[T1] ∂S'/∂σ = S'·(-σ·dt + √dt·Z)
[T1] ∂S'/∂r = S'·dt
[T1] ∂S'/∂T = S'·((r - q - σ²/2)/n + σ·Z/(2n√dt))

The payoff adjoint seeds the sweep: S̄_T = DF/N · f'(S_T).

References
----------
[T1] Giles & Glasserman (2006) "Smoking adjoints: fast Monte Carlo Greeks"
[T1] Griewank & Walther (2008) "Evaluating Derivatives", Ch. 12
"""

import logging
import warnings
from typing import Optional

import numpy as np

from derivatives_pricing.checkpoint.budget import MemoryBudget, MemoryBudgetWarning
from derivatives_pricing.checkpoint.manager import CheckpointError, CheckpointManager
from derivatives_pricing.checkpoint.state import SimulationState
from derivatives_pricing.checkpoint.strategy import CheckpointStrategy
from derivatives_pricing.config.settings import SETTINGS
from derivatives_pricing.greeks.modes import GreeksModeUnavailableError
from derivatives_pricing.options.payoffs.base import PayoffParams, payoff_derivative
from derivatives_pricing.options.simulation.gbm import GBMParams, gbm_step
from derivatives_pricing.options.simulation.monte_carlo import (
    Greek,
    MCResult,
    MonteCarloPricer,
    summarize_payoffs,
)

logger = logging.getLogger(__name__)


class CheckpointedAdjoint:
    """
    Forward sweep with checkpoints, then a reverse sweep by segment replay.

    Parameters
    ----------
    pricer : MonteCarloPricer
        Pricer whose workspace, stream and configuration are used
    strategy : CheckpointStrategy, optional
        Checkpoint placement; binomial with ceil(√n) slots by default
    memory_budget : MemoryBudget, optional
        Budget checked after every save; crossing its warning threshold
        issues a MemoryBudgetWarning
    track_observers : bool, default True
        Feed every simulated price to the per-path observers so checkpoints
        carry running statistics

    Raises
    ------
    GreeksModeUnavailableError
        If the pricer uses a custom path generator or payoff evaluator

    Examples
    --------
    >>> pricer = MonteCarloPricer(MonteCarloConfig(n_paths=2_000, n_steps=16, seed=7))
    >>> engine = CheckpointedAdjoint(pricer, track_observers=False)
    >>> result = engine.forward(params, PayoffParams.call(100), np.exp(-0.05))
    >>> greeks = engine.reverse()
    """

    def __init__(
        self,
        pricer: MonteCarloPricer,
        strategy: Optional[CheckpointStrategy] = None,
        memory_budget: Optional[MemoryBudget] = None,
        track_observers: bool = True,
    ):
        if not pricer.supports_ad:
            raise GreeksModeUnavailableError(
                "Reverse-mode Greeks require the built-in GBM path model and vanilla payoff"
            )
        self.pricer = pricer
        n_steps = pricer.config.n_steps
        if strategy is None:
            strategy = CheckpointStrategy.binomial_optimal(n_steps)
        capacity = max(strategy.estimated_checkpoints(n_steps), SETTINGS.checkpoint.min_capacity)
        self.manager = CheckpointManager(strategy, capacity=capacity, total_steps=n_steps)
        if memory_budget is not None:
            self.manager.with_memory_budget(memory_budget)
        self.track_observers = track_observers

        self._params: Optional[GBMParams] = None
        self._payoff: Optional[PayoffParams] = None
        self._discount_factor = 1.0
        self._result: Optional[MCResult] = None
        self._seed = 0
        self._rng_draws = 0
        self._warned = False

    # -------------------------------------------------------------------------
    # Forward sweep
    # -------------------------------------------------------------------------

    def forward(
        self,
        params: GBMParams,
        payoff: PayoffParams,
        discount_factor: float,
    ) -> MCResult:
        """
        Price while recording checkpoints.

        The price is bit-identical to ``pricer.price_european`` from the same
        stream position.

        Returns
        -------
        MCResult
            Price and standard error
        """
        pricer = self.pricer
        ws = pricer.workspace
        n_paths, n_steps = pricer.config.n_paths, pricer.config.n_steps

        self.manager.clear()
        self._warned = False
        self._seed = pricer.seed
        self._rng_draws = pricer.rng.draws
        pricer.prepare()

        _, drift_dt, vol_sqrt_dt = params.step_coefficients(n_steps)
        paths = ws.paths
        randoms = ws.randoms
        paths[:n_paths, 0] = params.spot
        if self.track_observers:
            ws.reset_observers()

        for k in range(n_steps):
            if self.manager.should_checkpoint(k):
                self._save(k, paths[:n_paths, k])
            gbm_step(
                paths[:n_paths, k], randoms[:n_paths, k], drift_dt, vol_sqrt_dt,
                out=paths[:n_paths, k + 1],
            )
            if self.track_observers:
                self._observe(paths[:n_paths, k + 1])

        if self.track_observers:
            for obs, terminal in zip(ws.observers, paths[:n_paths, n_steps]):
                obs.set_terminal(float(terminal))

        pricer.payoff_evaluator(ws, payoff, n_paths, n_steps)
        result = summarize_payoffs(ws.payoffs, discount_factor)

        self._params = params
        self._payoff = payoff
        self._discount_factor = discount_factor
        self._result = result
        logger.info(
            f"Checkpointed forward pass: {self.manager.checkpoint_count} checkpoints "
            f"({self.manager.strategy}), {self.manager.memory_usage()} bytes"
        )
        return result

    def _observe(self, prices: np.ndarray) -> None:
        for obs, value in zip(self.pricer.workspace.observers, prices):
            obs.observe(float(value))

    def _save(self, step: int, prices: np.ndarray) -> None:
        observer_states = (
            self.pricer.workspace.snapshot_observers() if self.track_observers else ()
        )
        state = SimulationState(
            step=step,
            rng_seed=self._seed,
            rng_draws=self._rng_draws,
            observer_states=observer_states,
            current_prices=prices,
        )
        self.manager.save_state(step, state)
        if not self._warned and self.manager.is_memory_warning():
            self._warned = True
            budget = self.manager.memory_budget
            usage = self.manager.memory_usage()
            message = (
                f"Checkpoint memory {usage} bytes is "
                f"{budget.usage_percentage(usage):.1f}% of budget {budget.max_bytes} bytes"
            )
            logger.warning(message)
            warnings.warn(message, MemoryBudgetWarning, stacklevel=3)

    # -------------------------------------------------------------------------
    # Replay
    # -------------------------------------------------------------------------

    def _require_forward(self) -> GBMParams:
        if self._params is None:
            raise CheckpointError("No forward pass recorded: call forward() first")
        return self._params

    def _ensure_randoms(self) -> None:
        """Regenerate the run's randoms if the workspace was reused since forward()."""
        rng = self.pricer.rng
        n_paths, n_steps = self.pricer.config.n_paths, self.pricer.config.n_steps
        expected_draws = self._rng_draws + n_paths * n_steps
        ws = self.pricer.workspace
        if (
            rng.seed == self._seed
            and rng.draws == expected_draws
            and ws.size_paths == n_paths
            and ws.size_steps == n_steps
        ):
            return
        logger.debug(
            f"Regenerating randoms from seed={self._seed}, draws={self._rng_draws}"
        )
        rng.reseed(self._seed)
        rng.fast_forward(self._rng_draws)
        ws.ensure_capacity(n_paths, n_steps)
        rng.fill_normal(ws.randoms)

    def replay_to(self, step: int) -> np.ndarray:
        """
        Prices at ``step`` recomputed from the nearest checkpoint at or before it.

        Observers are restored from the checkpoint and fed the replayed
        prices when tracking is on, so they match the forward pass at ``step``.

        Parameters
        ----------
        step : int
            Target step in [0, n_steps]

        Returns
        -------
        np.ndarray
            Prices at ``step``, one per path
        """
        params = self._require_forward()
        n_paths, n_steps = self.pricer.config.n_paths, self.pricer.config.n_steps
        if not 0 <= step <= n_steps:
            raise ValueError(f"CRITICAL: step must be in [0, {n_steps}], got {step}")
        self._ensure_randoms()

        start, prices = self._segment_start(step, params, n_paths)
        _, drift_dt, vol_sqrt_dt = params.step_coefficients(n_steps)
        randoms = self.pricer.workspace.randoms
        for k in range(start, step):
            prices = gbm_step(prices, randoms[:n_paths, k], drift_dt, vol_sqrt_dt)
            if self.track_observers:
                self._observe(prices)
        return prices

    def _segment_start(
        self, step: int, params: GBMParams, n_paths: int
    ) -> tuple[int, np.ndarray]:
        """Nearest checkpoint at or before ``step`` (spot at step 0 if none)."""
        ckpt = self.manager.nearest_checkpoint(step)
        if ckpt is None:
            if self.track_observers:
                self.pricer.workspace.reset_observers()
            return 0, np.full(n_paths, params.spot)
        state = self.manager.restore_state(ckpt)
        if self.track_observers:
            self.pricer.workspace.restore_observers(state.observer_states)
        return ckpt, state.current_prices

    def verify_checkpoint_equivalence(
        self,
        params: GBMParams,
        payoff: PayoffParams,
        discount_factor: float,
    ) -> bool:
        """
        Check the checkpointed pass against the plain pricer on the same seed.

        Returns
        -------
        bool
            True when prices match exactly and replaying to expiry reproduces
            the plain pricer's terminal prices bit for bit
        """
        pricer = self.pricer
        n_steps = pricer.config.n_steps
        seed = pricer.seed

        pricer.reset_with_seed(seed)
        plain = pricer.price_european(params, payoff, discount_factor)
        plain_terminal = pricer.workspace.paths[:, n_steps].copy()

        pricer.reset_with_seed(seed)
        checkpointed = self.forward(params, payoff, discount_factor)
        replayed = self.replay_to(n_steps)

        return plain.price == checkpointed.price and bool(
            np.array_equal(plain_terminal, replayed)
        )

    # -------------------------------------------------------------------------
    # Reverse sweep
    # -------------------------------------------------------------------------

    def reverse(self) -> dict[Greek, float]:
        """
        Pull the payoff adjoint back to the inputs.

        Returns
        -------
        dict[Greek, float]
            DELTA, VEGA, RHO and THETA. Rho includes the discount factor
            as exp(-rT); theta holds the discount factor fixed.
        """
        params = self._require_forward()
        self._ensure_randoms()
        pricer = self.pricer
        n_paths, n_steps = pricer.config.n_paths, pricer.config.n_steps
        dt, drift_dt, vol_sqrt_dt = params.step_coefficients(n_steps)
        sigma = params.volatility
        sqrt_dt = np.sqrt(dt)
        randoms = pricer.workspace.randoms

        # Segment boundaries: stored checkpoints plus both ends
        boundaries = sorted(set(s for s in self.manager.steps() if s < n_steps) | {0})
        boundaries.append(n_steps)

        bar_s: Optional[np.ndarray] = None
        bar_sigma = 0.0
        bar_rate = 0.0
        bar_maturity = 0.0
        maturity_drift = params.drift / n_steps
        maturity_vol = sigma / (2.0 * n_steps * sqrt_dt)

        for seg in range(len(boundaries) - 2, -1, -1):
            a, b = boundaries[seg], boundaries[seg + 1]
            logger.debug(f"Reverse sweep: replaying segment [{a}, {b}]")
            segment = self._recompute_segment(a, b, params, n_paths, drift_dt, vol_sqrt_dt)

            if bar_s is None:
                bar_s = (self._discount_factor / n_paths) * np.asarray(
                    payoff_derivative(segment[-1], self._payoff)
                )

            for k in range(b - 1, a - 1, -1):
                z = randoms[:n_paths, k]
                s_next = segment[k + 1 - a]
                weighted = bar_s * s_next
                bar_sigma += float(np.dot(weighted, sqrt_dt * z - sigma * dt))
                bar_rate += float(weighted.sum()) * dt
                bar_maturity += float(np.dot(weighted, maturity_drift + maturity_vol * z))
                bar_s = bar_s * np.exp(drift_dt + vol_sqrt_dt * z)

        price = self._result.price
        t = params.time_to_expiry
        rho_scale = float(np.exp(-params.rate * t)) / self._discount_factor
        return {
            Greek.DELTA: float(bar_s.sum()),
            Greek.VEGA: bar_sigma,
            Greek.RHO: rho_scale * (bar_rate - t * price),
            Greek.THETA: -bar_maturity,
        }

    def _recompute_segment(
        self,
        a: int,
        b: int,
        params: GBMParams,
        n_paths: int,
        drift_dt: float,
        vol_sqrt_dt: float,
    ) -> np.ndarray:
        """Prices at steps a..b, shape (b - a + 1, n_paths)."""
        if a == 0 and self.manager.nearest_checkpoint(0) is None:
            start = np.full(n_paths, params.spot)
        else:
            start = self.manager.restore_state(a).current_prices
        segment = np.empty((b - a + 1, n_paths))
        segment[0] = start
        randoms = self.pricer.workspace.randoms
        for k in range(a, b):
            gbm_step(segment[k - a], randoms[:n_paths, k], drift_dt, vol_sqrt_dt,
                     out=segment[k + 1 - a])
        return segment

    def compute(
        self,
        params: GBMParams,
        payoff: PayoffParams,
        discount_factor: float,
    ) -> tuple[MCResult, dict[Greek, float]]:
        """Forward sweep then reverse sweep."""
        result = self.forward(params, payoff, discount_factor)
        return result, self.reverse()
