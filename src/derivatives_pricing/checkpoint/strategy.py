"""
Checkpoint placement strategies.

A strategy decides, in O(1), whether the state at a given step should be
saved. Every strategy except ``none`` saves step 0 so a replay always has a
starting point.

Strategies
----------
- none: never checkpoint
- uniform(interval): every ``interval`` steps
- logarithmic(base): step 0 then base·2^k; dense early, sparse late
- adaptive(target_memory_mb): about ten checkpoints over the horizon
- binomial(memory_slots): √n spacing, never more than ``memory_slots``

[T1] Griewank & Walther (2008) "Evaluating Derivatives", Ch. 12: √n spacing
gives O(√n) memory for O(√n) recomputation per segment.
"""

import math
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from derivatives_pricing.config.settings import SETTINGS


class StrategyKind(Enum):
    """Closed set of checkpoint strategies."""

    NONE = "none"
    UNIFORM = "uniform"
    LOGARITHMIC = "logarithmic"
    ADAPTIVE = "adaptive"
    BINOMIAL = "binomial"


@dataclass(frozen=True)
class CheckpointStrategy:
    """
    Immutable checkpoint placement rule.

    Construct through the factories rather than directly.

    Attributes
    ----------
    kind : StrategyKind
        Strategy variant
    interval_steps : int, optional
        Uniform interval or logarithmic base interval
    target_memory_mb : int, optional
        Memory target of the adaptive strategy
    memory_slots : int, optional
        Slot limit of the binomial strategy; None sizes to √n

    Examples
    --------
    >>> s = CheckpointStrategy.uniform(10)
    >>> [s.should_checkpoint(k, 30) for k in (0, 5, 10, 20)]
    [True, False, True, True]
    """

    kind: StrategyKind = StrategyKind.UNIFORM
    interval_steps: Optional[int] = None
    target_memory_mb: Optional[int] = None
    memory_slots: Optional[int] = None

    def __post_init__(self) -> None:
        if self.kind in (StrategyKind.UNIFORM, StrategyKind.LOGARITHMIC):
            if self.interval_steps is None or self.interval_steps <= 0:
                raise ValueError(
                    f"CRITICAL: {self.kind.value} interval must be > 0, got {self.interval_steps}"
                )
        if self.kind == StrategyKind.ADAPTIVE:
            if self.target_memory_mb is None or self.target_memory_mb <= 0:
                raise ValueError(
                    f"CRITICAL: target_memory_mb must be > 0, got {self.target_memory_mb}"
                )
        if self.memory_slots is not None and self.memory_slots <= 0:
            raise ValueError(f"CRITICAL: memory_slots must be > 0, got {self.memory_slots}")

    # -------------------------------------------------------------------------
    # Factories
    # -------------------------------------------------------------------------

    @classmethod
    def none(cls) -> "CheckpointStrategy":
        return cls(kind=StrategyKind.NONE)

    @classmethod
    def uniform(cls, interval: int) -> "CheckpointStrategy":
        return cls(kind=StrategyKind.UNIFORM, interval_steps=interval)

    @classmethod
    def logarithmic(cls, base_interval: int) -> "CheckpointStrategy":
        return cls(kind=StrategyKind.LOGARITHMIC, interval_steps=base_interval)

    @classmethod
    def adaptive(cls, target_memory_mb: int) -> "CheckpointStrategy":
        return cls(kind=StrategyKind.ADAPTIVE, target_memory_mb=target_memory_mb)

    @classmethod
    def binomial(cls, memory_slots: Optional[int] = None) -> "CheckpointStrategy":
        return cls(kind=StrategyKind.BINOMIAL, memory_slots=memory_slots)

    @classmethod
    def binomial_optimal(cls, total_steps: int) -> "CheckpointStrategy":
        """Binomial strategy with ceil(√n) memory slots."""
        return cls.binomial(max(1, _ceil_sqrt(max(total_steps, 0))))

    @classmethod
    def default(cls) -> "CheckpointStrategy":
        """Uniform strategy at the configured default interval."""
        return cls.uniform(SETTINGS.checkpoint.default_interval)

    # -------------------------------------------------------------------------
    # Placement
    # -------------------------------------------------------------------------

    def interval(self, total_steps: int) -> int:
        """
        Spacing between checkpoints for a horizon of ``total_steps``.

        Logarithmic spacing is not constant; its base interval is returned.
        """
        kind = self.kind
        if kind == StrategyKind.NONE:
            return max(total_steps, 1)
        if kind in (StrategyKind.UNIFORM, StrategyKind.LOGARITHMIC):
            return self.interval_steps
        if kind == StrategyKind.ADAPTIVE:
            return max(1, total_steps // 10)
        # Binomial
        if total_steps <= 0:
            return 1
        sqrt_n = _ceil_sqrt(total_steps)
        slots = self.memory_slots if self.memory_slots is not None else sqrt_n
        return max(1, sqrt_n, -(-total_steps // slots))

    def should_checkpoint(self, step: int, total_steps: int) -> bool:
        """
        Whether the state at ``step`` should be saved.

        Parameters
        ----------
        step : int
            Step about to be (or just) simulated
        total_steps : int
            Horizon length; 0 when unknown

        Returns
        -------
        bool
        """
        kind = self.kind
        if kind == StrategyKind.NONE:
            return False
        if step == 0:
            return True
        if kind == StrategyKind.UNIFORM:
            return step % self.interval_steps == 0
        if kind == StrategyKind.LOGARITHMIC:
            base = self.interval_steps
            if step % base != 0:
                return False
            ratio = step // base
            return ratio & (ratio - 1) == 0
        if total_steps <= 0:
            return False
        return step % self.interval(total_steps) == 0

    def estimated_checkpoints(self, total_steps: int) -> int:
        """Number of checkpoints the strategy places over ``total_steps``."""
        kind = self.kind
        if kind == StrategyKind.NONE:
            return 0
        if kind == StrategyKind.LOGARITHMIC:
            max_ratio = total_steps // self.interval_steps
            if max_ratio == 0:
                return 1
            # Powers of two up to max_ratio, plus step 0
            return max_ratio.bit_length() + 1
        if kind in (StrategyKind.ADAPTIVE, StrategyKind.BINOMIAL) and total_steps <= 0:
            return 1
        return total_steps // self.interval(total_steps) + 1

    def __str__(self) -> str:
        kind = self.kind
        if kind in (StrategyKind.UNIFORM, StrategyKind.LOGARITHMIC):
            return f"{kind.value}({self.interval_steps})"
        if kind == StrategyKind.ADAPTIVE:
            return f"adaptive({self.target_memory_mb} MB)"
        if kind == StrategyKind.BINOMIAL:
            return f"binomial({self.memory_slots})"
        return kind.value


def _ceil_sqrt(n: int) -> int:
    """Smallest integer r with r*r >= n."""
    r = math.isqrt(n)
    return r if r * r == n else r + 1
