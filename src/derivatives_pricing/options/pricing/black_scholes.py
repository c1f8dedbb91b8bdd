"""
Black-Scholes reference pricing with Greeks.

Closed-form European prices used to validate the Monte Carlo engine and its
sensitivity modes. Greeks are reported in raw units so they compare directly
with simulated sensitivities:

- vega per unit volatility (not per 1%)
- theta per year, as dV/dt = -dV/dT
- rho per unit rate

References
----------
[T1] Black, F., & Scholes, M. (1973). The pricing of options and corporate liabilities.
[T1] Hull, J. C. (2018). Options, Futures, and Other Derivatives (10th ed.).
"""

from dataclasses import dataclass

import numpy as np
from scipy import stats

from derivatives_pricing.options.payoffs.base import OptionType


@dataclass(frozen=True)
class BSResult:
    """
    Immutable Black-Scholes pricing result.

    Attributes
    ----------
    price : float
        Option price
    delta : float
        dV/dS
    gamma : float
        d²V/dS²
    vega : float
        dV/dσ per unit volatility
    theta : float
        dV/dt per year
    rho : float
        dV/dr per unit rate
    vanna : float
        d²V/dSdσ
    volga : float
        d²V/dσ²
    """

    price: float
    delta: float
    gamma: float
    vega: float
    theta: float
    rho: float
    vanna: float
    volga: float


def _validate_inputs(
    spot: float,
    strike: float,
    volatility: float,
    time_to_expiry: float,
) -> None:
    """Validate Black-Scholes inputs."""
    if spot <= 0:
        raise ValueError(f"CRITICAL: spot must be > 0, got {spot}")
    if strike <= 0:
        raise ValueError(f"CRITICAL: strike must be > 0, got {strike}")
    if volatility <= 0:
        raise ValueError(f"CRITICAL: volatility must be > 0, got {volatility}")
    if time_to_expiry <= 0:
        raise ValueError(f"CRITICAL: time_to_expiry must be > 0, got {time_to_expiry}")


def _calculate_d1_d2(
    spot: float,
    strike: float,
    rate: float,
    dividend: float,
    volatility: float,
    time_to_expiry: float,
) -> tuple[float, float]:
    """
    Calculate d1 and d2.

    [T1] d1 = (ln(S/K) + (r - q + σ²/2)T) / (σ√T)
    [T1] d2 = d1 - σ√T
    """
    vol_sqrt_t = volatility * np.sqrt(time_to_expiry)
    d1 = (
        np.log(spot / strike) + (rate - dividend + 0.5 * volatility**2) * time_to_expiry
    ) / vol_sqrt_t
    return float(d1), float(d1 - vol_sqrt_t)


def black_scholes_price(
    spot: float,
    strike: float,
    rate: float,
    dividend: float,
    volatility: float,
    time_to_expiry: float,
    option_type: OptionType,
) -> float:
    """
    Price a European option using Black-Scholes.

    [T1] C = S·e^(-qT)·N(d1) - K·e^(-rT)·N(d2)
    [T1] P = K·e^(-rT)·N(-d2) - S·e^(-qT)·N(-d1)

    Parameters
    ----------
    spot : float
        Current spot price
    strike : float
        Strike price
    rate : float
        Risk-free rate (decimal)
    dividend : float
        Dividend yield (decimal)
    volatility : float
        Volatility (decimal)
    time_to_expiry : float
        Time to expiry (years)
    option_type : OptionType
        Call or put

    Returns
    -------
    float
        Option price

    Examples
    --------
    >>> round(black_scholes_price(100, 100, 0.05, 0.0, 0.20, 1.0, OptionType.CALL), 4)
    10.4506
    """
    _validate_inputs(spot, strike, volatility, time_to_expiry)
    d1, d2 = _calculate_d1_d2(spot, strike, rate, dividend, volatility, time_to_expiry)
    fwd_spot = spot * np.exp(-dividend * time_to_expiry)
    pv_strike = strike * np.exp(-rate * time_to_expiry)

    if option_type == OptionType.CALL:
        price = fwd_spot * stats.norm.cdf(d1) - pv_strike * stats.norm.cdf(d2)
    else:
        price = pv_strike * stats.norm.cdf(-d2) - fwd_spot * stats.norm.cdf(-d1)
    return float(price)


def black_scholes_greeks(
    spot: float,
    strike: float,
    rate: float,
    dividend: float,
    volatility: float,
    time_to_expiry: float,
    option_type: OptionType,
) -> BSResult:
    """
    Calculate Black-Scholes price and Greeks.

    [T1] Delta (call) = e^(-qT)·N(d1), Delta (put) = -e^(-qT)·N(-d1)
    [T1] Gamma = e^(-qT)·n(d1) / (S·σ·√T)
    [T1] Vega = S·e^(-qT)·n(d1)·√T
    [T1] Rho (call) = K·T·e^(-rT)·N(d2)
    [T1] Vanna = -e^(-qT)·n(d1)·d2/σ
    [T1] Volga = Vega·d1·d2/σ

    Returns
    -------
    BSResult
        Price and Greeks in raw units
    """
    _validate_inputs(spot, strike, volatility, time_to_expiry)
    d1, d2 = _calculate_d1_d2(spot, strike, rate, dividend, volatility, time_to_expiry)

    sqrt_t = np.sqrt(time_to_expiry)
    exp_div = np.exp(-dividend * time_to_expiry)
    exp_rate = np.exp(-rate * time_to_expiry)
    n_d1 = stats.norm.pdf(d1)

    gamma = exp_div * n_d1 / (spot * volatility * sqrt_t)
    vega = spot * exp_div * n_d1 * sqrt_t
    vanna = -exp_div * n_d1 * d2 / volatility
    volga = vega * d1 * d2 / volatility
    decay = -spot * exp_div * n_d1 * volatility / (2 * sqrt_t)

    if option_type == OptionType.CALL:
        delta = exp_div * stats.norm.cdf(d1)
        theta = (
            decay
            - rate * strike * exp_rate * stats.norm.cdf(d2)
            + dividend * spot * exp_div * stats.norm.cdf(d1)
        )
        rho = strike * time_to_expiry * exp_rate * stats.norm.cdf(d2)
    else:
        delta = -exp_div * stats.norm.cdf(-d1)
        theta = (
            decay
            + rate * strike * exp_rate * stats.norm.cdf(-d2)
            - dividend * spot * exp_div * stats.norm.cdf(-d1)
        )
        rho = -strike * time_to_expiry * exp_rate * stats.norm.cdf(-d2)

    return BSResult(
        price=black_scholes_price(
            spot, strike, rate, dividend, volatility, time_to_expiry, option_type
        ),
        delta=float(delta),
        gamma=float(gamma),
        vega=float(vega),
        theta=float(theta),
        rho=float(rho),
        vanna=float(vanna),
        volga=float(volga),
    )


def put_call_parity_gap(
    spot: float,
    strike: float,
    rate: float,
    dividend: float,
    volatility: float,
    time_to_expiry: float,
) -> float:
    """
    Residual of put-call parity: C - P - (S·e^(-qT) - K·e^(-rT)).

    [T1] Zero for any consistent European pricer.
    """
    call = black_scholes_price(
        spot, strike, rate, dividend, volatility, time_to_expiry, OptionType.CALL
    )
    put = black_scholes_price(
        spot, strike, rate, dividend, volatility, time_to_expiry, OptionType.PUT
    )
    forward_value = spot * np.exp(-dividend * time_to_expiry) - strike * np.exp(
        -rate * time_to_expiry
    )
    return float(call - put - forward_value)
