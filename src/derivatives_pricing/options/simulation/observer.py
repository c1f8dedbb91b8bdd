"""
Streaming per-path statistics for path-dependent payoffs.

A PathObserver accumulates running statistics of one simulated path in O(1)
per observation. Its state can be captured as an immutable PathObserverState
and restored later with bit-identical results, which is what checkpoints store.

[T1] Geometric average = exp(mean(log S))
"""

import math
from dataclasses import dataclass


@dataclass(frozen=True)
class PathObserverState:
    """
    Immutable snapshot of a PathObserver.

    The terminal value is deliberately absent: it is set once when a path
    finishes and is not part of the running state.

    Attributes
    ----------
    count : int
        Number of observations
    running_sum : float
        Sum of observed values
    running_log_sum : float
        Sum of log observed values
    running_min : float
        Smallest observed value (inf when empty)
    running_max : float
        Largest observed value (-inf when empty)
    """

    count: int = 0
    running_sum: float = 0.0
    running_log_sum: float = 0.0
    running_min: float = math.inf
    running_max: float = -math.inf


class PathObserver:
    """Running statistics of a single path."""

    __slots__ = ("count", "running_sum", "running_log_sum", "minimum", "maximum", "terminal")

    def __init__(self) -> None:
        self.reset()

    def reset(self) -> None:
        """Return to the empty state."""
        self.count = 0
        self.running_sum = 0.0
        self.running_log_sum = 0.0
        self.minimum = math.inf
        self.maximum = -math.inf
        self.terminal = 0.0

    def observe(self, value: float) -> None:
        """
        Record one price.

        Parameters
        ----------
        value : float
            Observed price (must be > 0 for the log sum)
        """
        if value <= 0:
            raise ValueError(f"CRITICAL: observed value must be > 0, got {value}")
        self.count += 1
        self.running_sum += value
        self.running_log_sum += math.log(value)
        if value < self.minimum:
            self.minimum = value
        if value > self.maximum:
            self.maximum = value

    def set_terminal(self, value: float) -> None:
        """Record the terminal price of the path."""
        self.terminal = value

    @property
    def arithmetic_average(self) -> float:
        """Mean of observed values (0 when nothing observed)."""
        if self.count == 0:
            return 0.0
        return self.running_sum / self.count

    @property
    def geometric_average(self) -> float:
        """Geometric mean of observed values (0 when nothing observed)."""
        if self.count == 0:
            return 0.0
        return math.exp(self.running_log_sum / self.count)

    def snapshot(self) -> PathObserverState:
        """Capture the running state as an immutable value."""
        return PathObserverState(
            count=self.count,
            running_sum=self.running_sum,
            running_log_sum=self.running_log_sum,
            running_min=self.minimum,
            running_max=self.maximum,
        )

    def restore(self, state: PathObserverState) -> None:
        """Overwrite the running state from a snapshot."""
        self.count = state.count
        self.running_sum = state.running_sum
        self.running_log_sum = state.running_log_sum
        self.minimum = state.running_min
        self.maximum = state.running_max

    def __repr__(self) -> str:
        return (
            f"PathObserver(count={self.count}, "
            f"avg={self.arithmetic_average:.6g}, "
            f"min={self.minimum:.6g}, max={self.maximum:.6g})"
        )
