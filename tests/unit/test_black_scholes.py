"""
Tests for the Black-Scholes reference.

Greeks are checked against numerical differentiation of the price.
"""

import pytest

from derivatives_pricing.options.payoffs.base import OptionType
from derivatives_pricing.options.pricing.black_scholes import (
    black_scholes_greeks,
    black_scholes_price,
    put_call_parity_gap,
)

S, K, R, Q, SIGMA, T = 100.0, 100.0, 0.05, 0.02, 0.20, 1.0


def _price(spot=S, rate=R, vol=SIGMA, t=T, option_type=OptionType.CALL):
    return black_scholes_price(spot, K, rate, Q, vol, t, option_type)


class TestKnownAnswers:
    """Textbook values."""

    def test_atm_call_no_dividend(self):
        """[T1] Hull: S=K=100, r=5%, σ=20%, T=1 → 10.4506."""
        price = black_scholes_price(100, 100, 0.05, 0.0, 0.20, 1.0, OptionType.CALL)
        assert price == pytest.approx(10.4506, abs=1e-4)

    def test_atm_put_no_dividend(self):
        price = black_scholes_price(100, 100, 0.05, 0.0, 0.20, 1.0, OptionType.PUT)
        assert price == pytest.approx(5.5735, abs=1e-4)

    def test_put_call_parity(self, tolerances):
        assert abs(put_call_parity_gap(S, K, R, Q, SIGMA, T)) < tolerances.anti_pattern


class TestValidation:
    """Inputs outside the model domain."""

    @pytest.mark.parametrize(
        "kwargs, message",
        [
            ({"spot": 0.0}, "spot must be > 0"),
            ({"vol": 0.0}, "volatility must be > 0"),
            ({"t": 0.0}, "time_to_expiry must be > 0"),
        ],
    )
    def test_invalid_inputs(self, kwargs, message):
        with pytest.raises(ValueError, match=message):
            _price(**kwargs)

    def test_invalid_strike(self):
        with pytest.raises(ValueError, match="strike must be > 0"):
            black_scholes_price(S, 0.0, R, Q, SIGMA, T, OptionType.CALL)


@pytest.mark.parametrize("option_type", [OptionType.CALL, OptionType.PUT])
class TestGreeksVsNumerical:
    """Analytic Greeks in raw units match central differences of the price."""

    def test_delta(self, option_type, tolerances):
        h = 1e-4
        numerical = (_price(spot=S + h, option_type=option_type)
                     - _price(spot=S - h, option_type=option_type)) / (2 * h)
        greeks = black_scholes_greeks(S, K, R, Q, SIGMA, T, option_type)
        assert greeks.delta == pytest.approx(numerical, abs=tolerances.analytic)

    def test_gamma(self, option_type, tolerances):
        h = 1e-3
        numerical = (
            _price(spot=S + h, option_type=option_type)
            - 2 * _price(option_type=option_type)
            + _price(spot=S - h, option_type=option_type)
        ) / h**2
        greeks = black_scholes_greeks(S, K, R, Q, SIGMA, T, option_type)
        assert greeks.gamma == pytest.approx(numerical, abs=tolerances.analytic)

    def test_vega_per_unit_vol(self, option_type, tolerances):
        h = 1e-5
        numerical = (_price(vol=SIGMA + h, option_type=option_type)
                     - _price(vol=SIGMA - h, option_type=option_type)) / (2 * h)
        greeks = black_scholes_greeks(S, K, R, Q, SIGMA, T, option_type)
        assert greeks.vega == pytest.approx(numerical, abs=tolerances.analytic)

    def test_rho_per_unit_rate(self, option_type, tolerances):
        h = 1e-5
        numerical = (_price(rate=R + h, option_type=option_type)
                     - _price(rate=R - h, option_type=option_type)) / (2 * h)
        greeks = black_scholes_greeks(S, K, R, Q, SIGMA, T, option_type)
        assert greeks.rho == pytest.approx(numerical, abs=tolerances.analytic)

    def test_theta_per_year(self, option_type, tolerances):
        """Theta = -dV/dT."""
        h = 1e-5
        numerical = -(_price(t=T + h, option_type=option_type)
                      - _price(t=T - h, option_type=option_type)) / (2 * h)
        greeks = black_scholes_greeks(S, K, R, Q, SIGMA, T, option_type)
        assert greeks.theta == pytest.approx(numerical, abs=tolerances.analytic)

    def test_vanna(self, option_type):
        h = 1e-3
        numerical = (
            black_scholes_greeks(S, K, R, Q, SIGMA + h, T, option_type).delta
            - black_scholes_greeks(S, K, R, Q, SIGMA - h, T, option_type).delta
        ) / (2 * h)
        greeks = black_scholes_greeks(S, K, R, Q, SIGMA, T, option_type)
        assert greeks.vanna == pytest.approx(numerical, abs=1e-5)

    def test_volga(self, option_type):
        h = 1e-4
        numerical = (
            black_scholes_greeks(S, K, R, Q, SIGMA + h, T, option_type).vega
            - black_scholes_greeks(S, K, R, Q, SIGMA - h, T, option_type).vega
        ) / (2 * h)
        greeks = black_scholes_greeks(S, K, R, Q, SIGMA, T, option_type)
        assert greeks.volga == pytest.approx(numerical, abs=1e-4)
