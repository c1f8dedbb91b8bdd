"""
Bump-and-revalue Greeks on common random numbers.

Every scenario is repriced after ``reset_with_seed(seed)`` with the seed in
effect when the computation starts, so each scenario sees the same random
draws and sampling noise cancels in the differences.

Schemes
-------
[T1] Delta = (V(S+h) - V(S-h)) / 2h,  h = min(max(1% S, 0.01), S/2)
[T1] Gamma = (V(S+h) - 2V + V(S-h)) / h²
[T1] Vega  = (V(σ+k) - V(σ-k)) / (σ_up - σ_down),  σ-k floored at vol_floor
[T1] Volga = (V(σ+k) - 2V + V(σ-k)) / k²
[T1] Vanna = (V(S+h,σ+k) - V(S+h,σ-k) - V(S-h,σ+k) + V(S-h,σ-k)) / (2h·(σ_up - σ_down))
[T1] Rho   = (V(r+h) - V(r-h)) / 2h, each side discounted with exp(-(r±h)T)
[T1] Theta = -(V(T) - V(T-dt)) / dt, discount factor held fixed

See: Glasserman (2003) Ch. 7.1 - Finite-difference approximations
"""

import logging
from dataclasses import replace
from typing import Optional, Sequence

import numpy as np

from derivatives_pricing.config.settings import SETTINGS
from derivatives_pricing.options.payoffs.base import PayoffParams
from derivatives_pricing.options.simulation.gbm import GBMParams
from derivatives_pricing.options.simulation.monte_carlo import Greek, MCResult, MonteCarloPricer

logger = logging.getLogger(__name__)


class _Revaluer:
    """Prices scenarios on a fixed seed, caching repeated scenarios."""

    def __init__(
        self,
        pricer: MonteCarloPricer,
        payoff: PayoffParams,
        discount_factor: float,
        seed: int,
    ):
        self.pricer = pricer
        self.payoff = payoff
        self.discount_factor = discount_factor
        self.seed = seed
        self._cache: dict[tuple[GBMParams, float], MCResult] = {}

    def result(self, params: GBMParams, discount_factor: Optional[float] = None) -> MCResult:
        df = self.discount_factor if discount_factor is None else discount_factor
        key = (params, df)
        if key not in self._cache:
            self.pricer.reset_with_seed(self.seed)
            self._cache[key] = self.pricer.price_european(params, self.payoff, df)
        return self._cache[key]

    def price(self, params: GBMParams, discount_factor: Optional[float] = None) -> float:
        return self.result(params, discount_factor).price


def compute_fd_greeks(
    pricer: MonteCarloPricer,
    params: GBMParams,
    payoff: PayoffParams,
    discount_factor: float,
    greeks: Sequence[Greek] = tuple(Greek),
) -> tuple[MCResult, dict[Greek, float]]:
    """
    Finite-difference Greeks on common random numbers.

    Parameters
    ----------
    pricer : MonteCarloPricer
        Pricer to reprice with; its current seed is reused for every scenario
    params : GBMParams
        Base model parameters
    payoff : PayoffParams
        Payoff definition
    discount_factor : float
        Base discount factor
    greeks : Sequence[Greek]
        Sensitivities to compute

    Returns
    -------
    tuple[MCResult, dict[Greek, float]]
        Base result and the requested sensitivities

    Notes
    -----
    When ``time_to_expiry`` is already at ``SETTINGS.greeks.maturity_floor``
    there is no room to shorten it and theta is reported as 0.0 (logged at
    DEBUG), not estimated.
    """
    cfg = SETTINGS.greeks
    rev = _Revaluer(pricer, payoff, discount_factor, pricer.seed)
    base = rev.result(params)
    v0 = base.price

    h = cfg.spot_bump(params.spot)
    spot_up = replace(params, spot=params.spot + h)
    spot_down = replace(params, spot=params.spot - h)

    sigma = params.volatility
    vol_up = sigma + cfg.vol_bump_absolute
    vol_down = max(sigma - cfg.vol_bump_absolute, cfg.vol_floor)

    values: dict[Greek, float] = {}
    for greek in greeks:
        if greek == Greek.DELTA:
            values[greek] = (rev.price(spot_up) - rev.price(spot_down)) / (2 * h)

        elif greek == Greek.GAMMA:
            values[greek] = (rev.price(spot_up) - 2 * v0 + rev.price(spot_down)) / h**2

        elif greek == Greek.VEGA:
            values[greek] = (
                rev.price(replace(params, volatility=vol_up))
                - rev.price(replace(params, volatility=vol_down))
            ) / (vol_up - vol_down)

        elif greek == Greek.VOLGA:
            values[greek] = _volga(rev, params, v0)

        elif greek == Greek.VANNA:
            values[greek] = (
                rev.price(replace(spot_up, volatility=vol_up))
                - rev.price(replace(spot_up, volatility=vol_down))
                - rev.price(replace(spot_down, volatility=vol_up))
                + rev.price(replace(spot_down, volatility=vol_down))
            ) / (2 * h * (vol_up - vol_down))

        elif greek == Greek.RHO:
            hr = cfg.rate_bump_absolute
            t = params.time_to_expiry
            rate_up = params.rate + hr
            rate_down = params.rate - hr
            values[greek] = (
                rev.price(replace(params, rate=rate_up), float(np.exp(-rate_up * t)))
                - rev.price(replace(params, rate=rate_down), float(np.exp(-rate_down * t)))
            ) / (2 * hr)

        elif greek == Greek.THETA:
            short_t = max(params.time_to_expiry - cfg.time_bump_years, cfg.maturity_floor)
            shift = params.time_to_expiry - short_t
            if shift <= 0:
                logger.debug(
                    f"Maturity {params.time_to_expiry} at the floor {cfg.maturity_floor}: "
                    "theta reported as 0.0"
                )
                values[greek] = 0.0
            else:
                short = rev.price(replace(params, time_to_expiry=short_t))
                values[greek] = -(v0 - short) / shift

    return base, values


def _volga(rev: _Revaluer, params: GBMParams, v0: float) -> float:
    """Symmetric second vol difference; forward-sided when σ sits on the floor."""
    cfg = SETTINGS.greeks
    sigma = params.volatility
    k = min(cfg.vol_bump_absolute, sigma - cfg.vol_floor)
    if k > 0:
        return (
            rev.price(replace(params, volatility=sigma + k))
            - 2 * v0
            + rev.price(replace(params, volatility=sigma - k))
        ) / k**2
    k = cfg.vol_bump_absolute
    return (
        rev.price(replace(params, volatility=sigma + 2 * k))
        - 2 * rev.price(replace(params, volatility=sigma + k))
        + v0
    ) / k**2
