"""
Memory budget for checkpoint storage.

A MemoryBudget is an immutable ceiling on the bytes checkpoints may hold.
Overruns are reported, never raised: callers query ``is_within_budget`` and
``is_warning``, and the adjoint engine issues a MemoryBudgetWarning when the
warning threshold is crossed.
"""

from dataclasses import dataclass, field, replace

from derivatives_pricing.config.settings import SETTINGS

_MIB = 1024 * 1024
_GIB = 1024 * _MIB


class MemoryBudgetWarning(UserWarning):
    """Checkpoint memory crossed the budget's warning threshold."""

    pass


@dataclass(frozen=True)
class MemoryBudget:
    """
    Immutable memory ceiling for checkpoints.

    Attributes
    ----------
    max_bytes : int
        Budget in bytes
    warning_threshold : float
        Fraction of max_bytes above which usage is reported, in [0, 1]

    Examples
    --------
    >>> budget = MemoryBudget.from_mb(100)
    >>> budget.max_bytes
    104857600
    >>> budget.is_warning(90 * 1024 * 1024)
    True
    """

    max_bytes: int = field(
        default_factory=lambda: SETTINGS.checkpoint.default_budget_mb * _MIB
    )
    warning_threshold: float = field(
        default_factory=lambda: SETTINGS.checkpoint.warning_threshold
    )

    def __post_init__(self) -> None:
        if self.max_bytes < 0:
            raise ValueError(f"CRITICAL: max_bytes must be >= 0, got {self.max_bytes}")
        if not 0.0 <= self.warning_threshold <= 1.0:
            raise ValueError(
                f"CRITICAL: warning_threshold must be in [0, 1], got {self.warning_threshold}"
            )

    @classmethod
    def from_mb(cls, mb: int) -> "MemoryBudget":
        """Budget of ``mb`` MiB."""
        return cls(max_bytes=mb * _MIB)

    @classmethod
    def from_gb(cls, gb: int) -> "MemoryBudget":
        """Budget of ``gb`` GiB."""
        return cls(max_bytes=gb * _GIB)

    def with_warning_threshold(self, threshold: float) -> "MemoryBudget":
        """Copy with a different warning threshold (must be in [0, 1])."""
        return replace(self, warning_threshold=threshold)

    # -------------------------------------------------------------------------
    # Predicates
    # -------------------------------------------------------------------------

    def is_within_budget(self, current_usage: int) -> bool:
        return current_usage <= self.max_bytes

    def is_warning(self, current_usage: int) -> bool:
        """True when usage is strictly above max_bytes x warning_threshold."""
        return current_usage > self.max_bytes * self.warning_threshold

    def remaining(self, current_usage: int) -> int:
        """Bytes left before the ceiling (0 once exceeded)."""
        return max(0, self.max_bytes - current_usage)

    def usage_percentage(self, current_usage: int) -> float:
        """Usage as a percentage of the budget (100 for a zero budget)."""
        if self.max_bytes == 0:
            return 100.0
        return 100.0 * current_usage / self.max_bytes

    # -------------------------------------------------------------------------
    # Sizing
    # -------------------------------------------------------------------------

    def recommended_interval(
        self,
        n_paths: int,
        total_steps: int,
        state_size_per_path: int,
    ) -> int:
        """
        Checkpoint interval that keeps checkpoints within the budget.

        checkpoint size = n_paths x state_size_per_path + fixed overhead;
        the budget holds ``max_bytes // size`` of them.

        Parameters
        ----------
        n_paths : int
            Paths per checkpoint
        total_steps : int
            Steps in the simulation
        state_size_per_path : int
            Bytes per path in one checkpoint

        Returns
        -------
        int
            1 for degenerate inputs (no paths or no steps); ``total_steps``
            when not even one checkpoint fits (only step 0 is kept);
            otherwise ``max(1, total_steps // max_checkpoints)``
        """
        if total_steps == 0 or n_paths == 0:
            return 1
        checkpoint_size = (
            n_paths * state_size_per_path + SETTINGS.checkpoint.checkpoint_overhead_bytes
        )
        max_checkpoints = self.max_bytes // checkpoint_size
        if max_checkpoints == 0:
            return total_steps
        return max(1, total_steps // max_checkpoints)

    def __str__(self) -> str:
        return (
            f"MemoryBudget({self.max_bytes / _MIB:.1f} MiB, "
            f"warn at {self.warning_threshold:.0%})"
        )
