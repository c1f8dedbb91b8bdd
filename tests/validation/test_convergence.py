"""
Validation of Monte Carlo convergence.

[T1] MC error converges at rate 1/√N.
"""

import numpy as np
import pytest

from derivatives_pricing.options.simulation.monte_carlo import convergence_analysis


@pytest.mark.validation
@pytest.mark.slow
class TestConvergence:
    """Error and standard error shrink with path count."""

    @pytest.fixture
    def frame(self, standard_params, atm_call, discount_factor, bs_reference):
        return convergence_analysis(
            standard_params, atm_call, bs_reference.price, discount_factor,
            path_counts=(1_000, 4_000, 16_000, 64_000),
        )

    def test_standard_error_rate(self, frame):
        """log-log slope of the standard error is -1/2."""
        slope, _ = np.polyfit(
            np.log(frame["n_paths"].to_numpy(dtype=float)),
            np.log(frame["standard_error"].to_numpy()),
            1,
        )
        assert slope == pytest.approx(-0.5, abs=0.05)

    def test_errors_within_bounds(self, frame, tolerances):
        """Every run sits within k standard errors of Black-Scholes."""
        assert np.all(
            frame["absolute_error"] < tolerances.mc_standard_errors * frame["standard_error"]
        )

    def test_relative_error_large_sample(self, frame):
        """64k paths: within 2% of Black-Scholes."""
        assert frame["relative_error"].iloc[-1] < 0.02
