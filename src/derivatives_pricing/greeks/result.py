"""
Greeks result container.
"""

from dataclasses import dataclass
from typing import Optional

from derivatives_pricing.greeks.modes import GreeksMode
from derivatives_pricing.options.simulation.monte_carlo import Greek, MCResult


@dataclass(frozen=True)
class GreeksResult:
    """
    Immutable price and sensitivities from one dispatch.

    Units are raw: vega per unit volatility, rho per unit rate, theta per
    year with the discount factor held fixed.

    Attributes
    ----------
    price : float
        Discounted MC price
    standard_error : float
        Standard error of the price
    delta, gamma, vega, theta, rho : float
        First- and second-order sensitivities
    vanna, volga : float, optional
        Cross and second vol sensitivities
    mode : GreeksMode
        Concrete mode that produced the first-order Greeks
    """

    price: float
    standard_error: float
    delta: float
    gamma: float
    vega: float
    theta: float
    rho: float
    mode: GreeksMode
    vanna: Optional[float] = None
    volga: Optional[float] = None

    @classmethod
    def from_values(
        cls, base: MCResult, values: dict[Greek, float], mode: GreeksMode
    ) -> "GreeksResult":
        """Build from a base price and a Greek -> value mapping."""
        return cls(
            price=base.price,
            standard_error=base.standard_error,
            delta=values[Greek.DELTA],
            gamma=values[Greek.GAMMA],
            vega=values[Greek.VEGA],
            theta=values[Greek.THETA],
            rho=values[Greek.RHO],
            mode=mode,
            vanna=values.get(Greek.VANNA),
            volga=values.get(Greek.VOLGA),
        )

    def to_dict(self) -> dict[str, Optional[float]]:
        """Price and Greeks keyed by name."""
        return {
            "price": self.price,
            "delta": self.delta,
            "gamma": self.gamma,
            "vega": self.vega,
            "theta": self.theta,
            "rho": self.rho,
            "vanna": self.vanna,
            "volga": self.volga,
        }
