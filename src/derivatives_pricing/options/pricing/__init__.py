"""
Analytic reference pricing.

Provides:
- Black-Scholes price and Greeks in raw units
"""

from derivatives_pricing.options.pricing.black_scholes import (
    BSResult,
    black_scholes_greeks,
    black_scholes_price,
    put_call_parity_gap,
)

__all__ = [
    "BSResult",
    "black_scholes_greeks",
    "black_scholes_price",
    "put_call_parity_gap",
]
