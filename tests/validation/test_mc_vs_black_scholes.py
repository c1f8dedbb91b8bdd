"""
Validation of simulated prices and Greeks against Black-Scholes.

Monte Carlo prices are checked with CLT bounds (k standard errors).
Greeks are checked with relative tolerances from the tolerance registry;
theta is compared with the discount factor held fixed (BS theta - r·V).

References:
    [T1] Hull (2021) "Options, Futures, and Other Derivatives", Ch. 15, 19
    [T1] Glasserman (2003) Ch. 7
"""

import numpy as np
import pytest

from derivatives_pricing.greeks.adjoint import CheckpointedAdjoint
from derivatives_pricing.greeks.finite_difference import compute_fd_greeks
from derivatives_pricing.options.payoffs.base import OptionType, PayoffParams
from derivatives_pricing.options.pricing.black_scholes import (
    black_scholes_greeks,
    black_scholes_price,
)
from derivatives_pricing.options.simulation.gbm import GBMParams
from derivatives_pricing.options.simulation.monte_carlo import Greek


def _rel_error(value: float, reference: float) -> float:
    return abs(value - reference) / abs(reference)


@pytest.mark.validation
class TestPriceVsBlackScholes:
    """MC prices within CLT bounds of the closed form."""

    @pytest.mark.parametrize(
        "strike, option_type",
        [
            (100.0, OptionType.CALL),
            (100.0, OptionType.PUT),
            (90.0, OptionType.CALL),
            (110.0, OptionType.PUT),
        ],
    )
    def test_single_step(self, make_pricer, standard_params, tolerances, strike, option_type):
        """Exact GBM scheme: one step suffices for a European payoff."""
        payoff = PayoffParams(strike=strike, option_type=option_type)
        result = make_pricer(n_paths=100_000, n_steps=1).price_european(
            standard_params, payoff, np.exp(-0.05)
        )
        bs = black_scholes_price(100.0, strike, 0.05, 0.0, 0.20, 1.0, option_type)
        assert abs(result.price - bs) < tolerances.mc_standard_errors * result.standard_error

    @pytest.mark.slow
    def test_multi_step_with_dividend(self, make_pricer, tolerances):
        """Time stepping does not bias the terminal distribution."""
        params = GBMParams(spot=100, rate=0.04, volatility=0.25, time_to_expiry=2.0, dividend=0.02)
        df = float(np.exp(-0.04 * 2.0))
        result = make_pricer(n_paths=40_000, n_steps=24).price_european(
            params, PayoffParams.call(105.0), df
        )
        bs = black_scholes_price(100.0, 105.0, 0.04, 0.02, 0.25, 2.0, OptionType.CALL)
        assert abs(result.price - bs) < tolerances.mc_standard_errors * result.standard_error

    def test_confidence_interval_width(self, make_pricer, standard_params, atm_call, discount_factor):
        """[T1] SE scales as 1/√N: 4x the paths halves the interval."""
        small = make_pricer(n_paths=10_000, n_steps=1).price_european(
            standard_params, atm_call, discount_factor
        )
        large = make_pricer(n_paths=40_000, n_steps=1).price_european(
            standard_params, atm_call, discount_factor
        )
        assert large.ci_width / small.ci_width == pytest.approx(0.5, rel=0.1)


@pytest.mark.validation
class TestFiniteDifferenceGreeks:
    """Bump-and-revalue Greeks vs analytic values."""

    def test_crn_delta_10k(self, make_pricer, standard_params, atm_call, discount_factor,
                           bs_reference, tolerances):
        """Common random numbers give delta within 10% at 10k paths."""
        _, values = compute_fd_greeks(
            make_pricer(n_paths=10_000, n_steps=1), standard_params, atm_call,
            discount_factor, (Greek.DELTA,),
        )
        assert _rel_error(values[Greek.DELTA], bs_reference.delta) < tolerances.mc_delta_10k

    @pytest.fixture
    def fd_values(self, make_pricer, standard_params, atm_call, discount_factor):
        _, values = compute_fd_greeks(
            make_pricer(n_paths=50_000, n_steps=1), standard_params, atm_call, discount_factor
        )
        return values

    def test_gamma(self, fd_values, bs_reference, tolerances):
        assert _rel_error(fd_values[Greek.GAMMA], bs_reference.gamma) < tolerances.mc_greeks

    def test_vega(self, fd_values, bs_reference, tolerances):
        assert _rel_error(fd_values[Greek.VEGA], bs_reference.vega) < tolerances.mc_greeks

    def test_rho(self, fd_values, bs_reference, tolerances):
        assert _rel_error(fd_values[Greek.RHO], bs_reference.rho) < tolerances.mc_greeks

    def test_theta_fixed_discount(self, fd_values, bs_reference, tolerances):
        """Simulated theta holds DF fixed: compare with BS theta - r·V."""
        reference = bs_reference.theta - 0.05 * bs_reference.price
        assert _rel_error(fd_values[Greek.THETA], reference) < tolerances.mc_greeks

    def test_second_order_finite(self, fd_values):
        """Cross and second vol differences are noisy at this size; only finiteness is checked."""
        assert np.isfinite(fd_values[Greek.VANNA])
        assert np.isfinite(fd_values[Greek.VOLGA])


@pytest.mark.validation
@pytest.mark.slow
class TestAdjointGreeks:
    """Checkpointed adjoint Greeks vs analytic values."""

    @pytest.fixture
    def adjoint_values(self, make_pricer, standard_params, atm_call, discount_factor):
        engine = CheckpointedAdjoint(
            make_pricer(n_paths=50_000, n_steps=16), track_observers=False
        )
        _, values = engine.compute(standard_params, atm_call, discount_factor)
        return values

    def test_delta(self, adjoint_values, bs_reference, tolerances):
        assert _rel_error(adjoint_values[Greek.DELTA], bs_reference.delta) < tolerances.mc_greeks

    def test_vega(self, adjoint_values, bs_reference, tolerances):
        assert _rel_error(adjoint_values[Greek.VEGA], bs_reference.vega) < tolerances.mc_greeks

    def test_rho(self, adjoint_values, bs_reference, tolerances):
        assert _rel_error(adjoint_values[Greek.RHO], bs_reference.rho) < tolerances.mc_greeks

    def test_theta_fixed_discount(self, adjoint_values, bs_reference, tolerances):
        reference = bs_reference.theta - 0.05 * bs_reference.price
        assert _rel_error(adjoint_values[Greek.THETA], reference) < tolerances.mc_greeks

    def test_dividend_and_put(self, make_pricer, tolerances):
        """Adjoint delta and vega for a put on a dividend payer."""
        params = GBMParams(spot=100, rate=0.03, volatility=0.3, time_to_expiry=0.5, dividend=0.01)
        df = float(np.exp(-0.03 * 0.5))
        engine = CheckpointedAdjoint(make_pricer(n_paths=50_000, n_steps=8), track_observers=False)
        _, values = engine.compute(params, PayoffParams.put(95.0), df)
        bs = black_scholes_greeks(100.0, 95.0, 0.03, 0.01, 0.3, 0.5, OptionType.PUT)
        assert _rel_error(values[Greek.DELTA], bs.delta) < tolerances.mc_greeks
        assert _rel_error(values[Greek.VEGA], bs.vega) < tolerances.mc_greeks
