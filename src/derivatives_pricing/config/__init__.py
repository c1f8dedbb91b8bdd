"""
Configuration: frozen settings and centralized tolerances.
"""

from derivatives_pricing.config.settings import (
    SETTINGS,
    CheckpointConfig,
    GreeksConfig,
    MonitorConfig,
    Settings,
    SimulationConfig,
)

__all__ = [
    "SETTINGS",
    "Settings",
    "SimulationConfig",
    "GreeksConfig",
    "CheckpointConfig",
    "MonitorConfig",
]
