"""
Geometric Brownian Motion path generation into a simulation workspace.

Paths are produced by the exact log-Euler scheme from standard normals the
pricer has already written into the workspace random buffer. Every producer of
prices (the plain pricer, the tangent pass, checkpoint replay) goes through
``gbm_step`` so they agree to the last bit.

[T1] GBM SDE: dS = (r - q)S dt + σS dW
[T1] Exact step: S(t+dt) = S(t)·exp((r - q - σ²/2)dt + σ√dt·Z)

See: Glasserman (2003) "Monte Carlo Methods in Financial Engineering", Ch. 3
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

import numpy as np

if TYPE_CHECKING:
    from derivatives_pricing.options.simulation.workspace import SimulationWorkspace


@dataclass(frozen=True)
class GBMParams:
    """
    Parameters for GBM simulation.

    Attributes
    ----------
    spot : float
        Initial spot price
    rate : float
        Risk-free rate (annualized, decimal)
    volatility : float
        Volatility (annualized, decimal)
    time_to_expiry : float
        Time to expiry in years
    dividend : float, default 0.0
        Dividend yield (annualized, decimal)
    """

    spot: float
    rate: float
    volatility: float
    time_to_expiry: float
    dividend: float = 0.0

    def __post_init__(self) -> None:
        """Validate parameters."""
        if self.spot <= 0:
            raise ValueError(f"CRITICAL: spot must be > 0, got {self.spot}")
        if self.volatility < 0:
            raise ValueError(f"CRITICAL: volatility must be >= 0, got {self.volatility}")
        if self.time_to_expiry <= 0:
            raise ValueError(
                f"CRITICAL: time_to_expiry must be > 0, got {self.time_to_expiry}"
            )

    @property
    def drift(self) -> float:
        """Risk-neutral log drift: r - q - σ²/2."""
        return self.rate - self.dividend - 0.5 * self.volatility**2

    @property
    def forward(self) -> float:
        """Forward price: S·exp((r - q)·T)."""
        return self.spot * np.exp((self.rate - self.dividend) * self.time_to_expiry)

    def step_coefficients(self, n_steps: int) -> tuple[float, float, float]:
        """
        Per-step constants of the exact scheme.

        Returns
        -------
        tuple[float, float, float]
            (dt, drift·dt, σ·√dt)
        """
        if n_steps <= 0:
            raise ValueError(f"CRITICAL: n_steps must be > 0, got {n_steps}")
        dt = self.time_to_expiry / n_steps
        return dt, self.drift * dt, self.volatility * np.sqrt(dt)


def gbm_step(
    prev: np.ndarray,
    z: np.ndarray,
    drift_dt: float,
    vol_sqrt_dt: float,
    out: Optional[np.ndarray] = None,
) -> np.ndarray:
    """
    Advance prices by one exact GBM step.

    Parameters
    ----------
    prev : np.ndarray
        Prices at the start of the step
    z : np.ndarray
        Standard normals for the step, same shape as prev
    drift_dt : float
        (r - q - σ²/2)·dt
    vol_sqrt_dt : float
        σ·√dt
    out : np.ndarray, optional
        Destination; a new array is returned when omitted

    Returns
    -------
    np.ndarray
        Prices at the end of the step
    """
    growth = np.exp(drift_dt + vol_sqrt_dt * z)
    return np.multiply(prev, growth, out=out)


def generate_gbm_paths(
    workspace: SimulationWorkspace,
    params: GBMParams,
    n_paths: int,
    n_steps: int,
) -> None:
    """
    Write GBM paths into the workspace from its random buffer.

    Column 0 of the path buffer is the spot; column k+1 is produced from
    column k and random column k.

    Parameters
    ----------
    workspace : SimulationWorkspace
        Workspace sized to at least n_paths x n_steps, randoms filled
    params : GBMParams
        Model parameters
    n_paths : int
        Number of paths
    n_steps : int
        Number of time steps
    """
    _, drift_dt, vol_sqrt_dt = params.step_coefficients(n_steps)
    paths = workspace.paths
    randoms = workspace.randoms
    paths[:n_paths, 0] = params.spot
    for k in range(n_steps):
        gbm_step(
            paths[:n_paths, k], randoms[:n_paths, k], drift_dt, vol_sqrt_dt,
            out=paths[:n_paths, k + 1],
        )


def generate_gbm_paths_tangent_spot(
    workspace: SimulationWorkspace,
    params: GBMParams,
    n_paths: int,
    n_steps: int,
) -> np.ndarray:
    """
    Write GBM paths and propagate the spot tangent alongside them.

    [T1] dS(t+dt)/dS0 = dS(t)/dS0 · exp((r - q - σ²/2)dt + σ√dt·Z)

    Returns
    -------
    np.ndarray
        dS(T)/dS0 per path, shape (n_paths,)
    """
    _, drift_dt, vol_sqrt_dt = params.step_coefficients(n_steps)
    paths = workspace.paths
    randoms = workspace.randoms
    paths[:n_paths, 0] = params.spot
    tangent = np.ones(n_paths)
    for k in range(n_steps):
        gbm_step(
            paths[:n_paths, k], randoms[:n_paths, k], drift_dt, vol_sqrt_dt,
            out=paths[:n_paths, k + 1],
        )
        tangent *= np.exp(drift_dt + vol_sqrt_dt * randoms[:n_paths, k])
    return tangent


def terminal_prices(workspace: SimulationWorkspace, n_paths: int, n_steps: int) -> np.ndarray:
    """Copy of the simulated prices at expiry."""
    return workspace.paths[:n_paths, n_steps].copy()
