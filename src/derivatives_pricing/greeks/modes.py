"""
Sensitivity computation modes and their resolution.

A requested mode is resolved once, before any pricing work, to the strategy
that will actually run:

| Requested          | Reverse available | Reverse unavailable          |
|--------------------|-------------------|------------------------------|
| AUTO               | REVERSE_MODE      | FINITE_DIFFERENCE            |
| FINITE_DIFFERENCE  | FINITE_DIFFERENCE | FINITE_DIFFERENCE            |
| FORWARD_MODE       | FORWARD_MODE      | FINITE_DIFFERENCE            |
| REVERSE_MODE       | REVERSE_MODE      | FINITE_DIFFERENCE (warning)  |
| ADJOINT_ONLY       | REVERSE_MODE      | GreeksModeUnavailableError   |
"""

import logging
from enum import Enum

logger = logging.getLogger(__name__)


class GreeksModeUnavailableError(RuntimeError):
    """A sensitivity mode was required that the pricer cannot run."""

    pass


class GreeksMode(Enum):
    """Requested sensitivity strategy."""

    AUTO = "auto"
    FINITE_DIFFERENCE = "finite_difference"
    FORWARD_MODE = "forward_mode"
    REVERSE_MODE = "reverse_mode"
    ADJOINT_ONLY = "adjoint_only"

    def resolve(self, ad_available: bool) -> "GreeksMode":
        """
        Concrete mode to run.

        Parameters
        ----------
        ad_available : bool
            Whether tangent and adjoint passes model the pricer's pipeline

        Returns
        -------
        GreeksMode
            FINITE_DIFFERENCE, FORWARD_MODE or REVERSE_MODE

        Raises
        ------
        GreeksModeUnavailableError
            For ADJOINT_ONLY when ``ad_available`` is False
        """
        if self == GreeksMode.FINITE_DIFFERENCE:
            return self
        if ad_available:
            if self == GreeksMode.FORWARD_MODE:
                return self
            return GreeksMode.REVERSE_MODE
        if self == GreeksMode.ADJOINT_ONLY:
            raise GreeksModeUnavailableError(
                "Adjoint-only Greeks requested but the pricer uses a custom path "
                "generator or payoff evaluator"
            )
        if self == GreeksMode.REVERSE_MODE:
            logger.warning(
                "Reverse-mode Greeks unavailable for this pricer: using finite differences"
            )
        return GreeksMode.FINITE_DIFFERENCE

    @property
    def is_concrete(self) -> bool:
        """True for modes that name a runnable strategy."""
        return self in (
            GreeksMode.FINITE_DIFFERENCE,
            GreeksMode.FORWARD_MODE,
            GreeksMode.REVERSE_MODE,
        )


def ad_available(pricer) -> bool:
    """Whether tangent and adjoint passes can run for ``pricer``."""
    return bool(getattr(pricer, "supports_ad", False))
