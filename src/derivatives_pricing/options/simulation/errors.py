"""
Simulation error types.
"""


class ConfigError(ValueError):
    """Invalid Monte Carlo configuration (path or step counts out of range)."""

    pass
