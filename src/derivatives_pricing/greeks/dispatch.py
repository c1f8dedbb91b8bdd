"""
Greeks dispatch: resolve a mode once, then run it on common random numbers.

First-order Greeks come from the resolved mode:
- FINITE_DIFFERENCE: bump-and-revalue for every Greek
- FORWARD_MODE: delta by tangent propagation, the rest by finite difference
- REVERSE_MODE: delta, vega, rho and theta from one checkpointed adjoint sweep

Second-order Greeks (gamma, vanna, volga) are always finite differences.
Every pass starts from the seed in effect at the call, so the base price is
identical across modes.
"""

import logging
from typing import Optional, Sequence

import numpy as np
import pandas as pd

from derivatives_pricing.greeks.adjoint import CheckpointedAdjoint
from derivatives_pricing.greeks.finite_difference import compute_fd_greeks
from derivatives_pricing.greeks.modes import GreeksMode, ad_available
from derivatives_pricing.greeks.result import GreeksResult
from derivatives_pricing.options.payoffs.base import PayoffParams
from derivatives_pricing.options.pricing.black_scholes import black_scholes_greeks
from derivatives_pricing.options.simulation.gbm import GBMParams
from derivatives_pricing.options.simulation.monte_carlo import Greek, MonteCarloPricer

logger = logging.getLogger(__name__)

_SECOND_ORDER = (Greek.GAMMA, Greek.VANNA, Greek.VOLGA)


def price_with_greeks_mode(
    pricer: MonteCarloPricer,
    params: GBMParams,
    payoff: PayoffParams,
    discount_factor: float,
    mode: GreeksMode = GreeksMode.AUTO,
) -> GreeksResult:
    """
    Price and compute Greeks with the requested mode.

    Parameters
    ----------
    pricer : MonteCarloPricer
        Pricer to run; its current seed is shared by every scenario
    params : GBMParams
        Model parameters
    payoff : PayoffParams
        Payoff definition
    discount_factor : float
        Discount factor to expiry
    mode : GreeksMode
        Requested mode (AUTO by default)

    Returns
    -------
    GreeksResult
        Price, Greeks and the concrete mode that ran

    Raises
    ------
    GreeksModeUnavailableError
        ADJOINT_ONLY requested for a pricer without adjoint support; raised
        before any pricing work
    """
    resolved = mode.resolve(ad_available(pricer))
    logger.debug(f"Greeks mode {mode.value} resolved to {resolved.value}")
    seed = pricer.seed

    if resolved == GreeksMode.FINITE_DIFFERENCE:
        base, values = compute_fd_greeks(pricer, params, payoff, discount_factor, tuple(Greek))

    elif resolved == GreeksMode.FORWARD_MODE:
        pricer.reset_with_seed(seed)
        base = pricer.price_with_delta_ad(params, payoff, discount_factor)
        pricer.reset_with_seed(seed)
        _, values = compute_fd_greeks(
            pricer, params, payoff, discount_factor,
            [g for g in Greek if g != Greek.DELTA],
        )
        values[Greek.DELTA] = base.delta

    else:
        pricer.reset_with_seed(seed)
        engine = CheckpointedAdjoint(pricer, track_observers=False)
        base, values = engine.compute(params, payoff, discount_factor)
        pricer.reset_with_seed(seed)
        _, second = compute_fd_greeks(pricer, params, payoff, discount_factor, _SECOND_ORDER)
        values.update(second)

    return GreeksResult.from_values(base, values, resolved)


def compare_modes(
    pricer: MonteCarloPricer,
    params: GBMParams,
    payoff: PayoffParams,
    discount_factor: float,
    modes: Sequence[GreeksMode] = (
        GreeksMode.FINITE_DIFFERENCE,
        GreeksMode.FORWARD_MODE,
        GreeksMode.REVERSE_MODE,
    ),
    include_reference: bool = True,
) -> pd.DataFrame:
    """
    Greeks from several modes side by side on one seed.

    Parameters
    ----------
    pricer : MonteCarloPricer
        Pricer to run
    params : GBMParams
        Model parameters
    payoff : PayoffParams
        Payoff definition
    discount_factor : float
        Discount factor to expiry
    modes : Sequence[GreeksMode]
        Modes to compare (one column each, named by the concrete mode)
    include_reference : bool
        Add a ``black_scholes`` column. Its theta holds the discount
        factor fixed (BS theta - r·V) to match the simulated convention.

    Returns
    -------
    pd.DataFrame
        Rows: price and Greeks. Columns: one per mode (+ reference).
    """
    seed = pricer.seed
    columns: dict[str, dict[str, Optional[float]]] = {}
    for mode in modes:
        pricer.reset_with_seed(seed)
        result = price_with_greeks_mode(pricer, params, payoff, discount_factor, mode)
        columns[result.mode.value] = result.to_dict()

    if include_reference:
        bs = black_scholes_greeks(
            params.spot,
            payoff.strike,
            params.rate,
            params.dividend,
            params.volatility,
            params.time_to_expiry,
            payoff.option_type,
        )
        columns["black_scholes"] = {
            "price": bs.price,
            "delta": bs.delta,
            "gamma": bs.gamma,
            "vega": bs.vega,
            "theta": bs.theta - params.rate * bs.price,
            "rho": bs.rho,
            "vanna": bs.vanna,
            "volga": bs.volga,
        }

    frame = pd.DataFrame(columns)
    return frame.astype(np.float64)
