"""
Smoothed vanilla payoffs and their derivatives.
"""

from derivatives_pricing.options.payoffs.base import (
    OptionType,
    PayoffParams,
    compute_payoffs,
    payoff_derivative,
    payoff_value,
    soft_plus,
    soft_plus_derivative,
)

__all__ = [
    "OptionType",
    "PayoffParams",
    "compute_payoffs",
    "payoff_derivative",
    "payoff_value",
    "soft_plus",
    "soft_plus_derivative",
]
