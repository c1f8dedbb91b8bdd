"""
Smooth vanilla payoffs for simulation and sensitivities.

The kink of max(x, 0) is replaced by a soft-plus of width ε so the payoff is
differentiable everywhere. Tangent and adjoint passes use the analytic
derivative, which is a logistic function of the same scaled moneyness.

[T1] soft_plus(x, ε) = ε·log(1 + exp(x/ε)) → max(x, 0) as ε → 0
[T1] d/dx soft_plus(x, ε) = 1 / (1 + exp(-x/ε))
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Union

import numpy as np
from scipy.special import expit

from derivatives_pricing.config.settings import SETTINGS

if TYPE_CHECKING:
    from derivatives_pricing.options.simulation.workspace import SimulationWorkspace


ArrayOrFloat = Union[float, np.ndarray]


class OptionType(Enum):
    """Option type enumeration."""

    CALL = "call"
    PUT = "put"

    @property
    def sign(self) -> float:
        """+1 for calls, -1 for puts."""
        return 1.0 if self is OptionType.CALL else -1.0


@dataclass(frozen=True)
class PayoffParams:
    """
    Immutable vanilla payoff definition.

    Attributes
    ----------
    strike : float
        Strike price
    option_type : OptionType
        CALL or PUT
    smoothing_epsilon : float
        Soft-plus width; smaller is closer to the true kink
    """

    strike: float
    option_type: OptionType = OptionType.CALL
    smoothing_epsilon: float = field(
        default_factory=lambda: SETTINGS.greeks.smoothing_epsilon
    )

    def __post_init__(self) -> None:
        """Validate payoff parameters."""
        if self.strike <= 0:
            raise ValueError(f"CRITICAL: strike must be > 0, got {self.strike}")
        if not isinstance(self.option_type, OptionType):
            raise ValueError(
                f"CRITICAL: option_type must be OptionType, got {self.option_type!r}"
            )
        if self.smoothing_epsilon <= 0:
            raise ValueError(
                f"CRITICAL: smoothing_epsilon must be > 0, got {self.smoothing_epsilon}"
            )

    @classmethod
    def call(cls, strike: float) -> PayoffParams:
        """Smoothed European call."""
        return cls(strike=strike, option_type=OptionType.CALL)

    @classmethod
    def put(cls, strike: float) -> PayoffParams:
        """Smoothed European put."""
        return cls(strike=strike, option_type=OptionType.PUT)


# =============================================================================
# Kernels
# =============================================================================


def soft_plus(x: ArrayOrFloat, epsilon: float) -> ArrayOrFloat:
    """
    Smooth approximation of max(x, 0).

    Evaluated as ε·logaddexp(0, x/ε), which stays finite for large |x/ε|.

    Parameters
    ----------
    x : float or np.ndarray
        Argument
    epsilon : float
        Smoothing width (> 0)

    Returns
    -------
    float or np.ndarray
        Smoothed positive part, same shape as x
    """
    return epsilon * np.logaddexp(0.0, np.asarray(x, dtype=np.float64) / epsilon)


def soft_plus_derivative(x: ArrayOrFloat, epsilon: float) -> ArrayOrFloat:
    """Derivative of soft_plus with respect to x (logistic of x/ε)."""
    return expit(np.asarray(x, dtype=np.float64) / epsilon)


def payoff_value(terminal: ArrayOrFloat, payoff: PayoffParams) -> ArrayOrFloat:
    """
    Smoothed vanilla payoff at a terminal price.

    Parameters
    ----------
    terminal : float or np.ndarray
        Terminal underlying price(s)
    payoff : PayoffParams
        Payoff definition

    Returns
    -------
    float or np.ndarray
        Undiscounted payoff(s)
    """
    moneyness = payoff.option_type.sign * (np.asarray(terminal) - payoff.strike)
    result = soft_plus(moneyness, payoff.smoothing_epsilon)
    if np.ndim(result) == 0:
        return float(result)
    return result


def payoff_derivative(terminal: ArrayOrFloat, payoff: PayoffParams) -> ArrayOrFloat:
    """
    Derivative of the smoothed payoff with respect to the terminal price.

    Calls: expit((S - K)/ε). Puts: -expit((K - S)/ε).
    """
    sign = payoff.option_type.sign
    moneyness = sign * (np.asarray(terminal) - payoff.strike)
    result = sign * soft_plus_derivative(moneyness, payoff.smoothing_epsilon)
    if np.ndim(result) == 0:
        return float(result)
    return result


def compute_payoffs(
    workspace: SimulationWorkspace,
    payoff: PayoffParams,
    n_paths: int,
    n_steps: int,
) -> None:
    """
    Evaluate the payoff of every simulated path into the workspace.

    Reads terminal prices from column ``n_steps`` of the path buffer and
    writes the undiscounted payoffs into the payoff buffer.

    Parameters
    ----------
    workspace : SimulationWorkspace
        Workspace holding simulated paths
    payoff : PayoffParams
        Payoff definition
    n_paths : int
        Number of paths to evaluate
    n_steps : int
        Number of time steps simulated
    """
    terminal = workspace.paths[:n_paths, n_steps]
    sign = payoff.option_type.sign
    eps = payoff.smoothing_epsilon
    out = workspace.payoffs[:n_paths]
    np.logaddexp(0.0, sign * (terminal - payoff.strike) / eps, out=out)
    out *= eps
