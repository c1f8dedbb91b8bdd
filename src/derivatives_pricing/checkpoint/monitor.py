"""
Portfolio-level memory monitor shared by parallel pricing workers.

The monitor is the only state shared between workers. It is passed to them
explicitly; updates are serialised with a lock. When tracked usage crosses a
percentage of the budget it switches checkpointing on for subsequent work.
"""

import logging
import threading
from dataclasses import dataclass, field, replace

from derivatives_pricing.checkpoint.budget import MemoryBudget
from derivatives_pricing.config.settings import SETTINGS

logger = logging.getLogger(__name__)

_MIB = 1024 * 1024


@dataclass(frozen=True)
class MemoryStats:
    """
    Point-in-time copy of monitor counters.

    Attributes
    ----------
    current_bytes : int
        Bytes currently tracked
    peak_bytes : int
        Highest value current_bytes has reached
    allocations : int
        Number of recorded allocations
    checkpoint_triggers : int
        Times checkpointing was switched on
    checkpoint_active : bool
        Whether checkpointing is currently on
    """

    current_bytes: int = 0
    peak_bytes: int = 0
    allocations: int = 0
    checkpoint_triggers: int = 0
    checkpoint_active: bool = False

    @property
    def current_mb(self) -> float:
        return self.current_bytes / _MIB

    @property
    def peak_mb(self) -> float:
        return self.peak_bytes / _MIB


@dataclass(frozen=True)
class MemoryMonitorConfig:
    """
    Immutable monitor configuration.

    Attributes
    ----------
    budget : MemoryBudget
        Aggregate memory budget
    auto_checkpoint : bool
        Switch checkpointing on automatically at the threshold
    checkpoint_threshold_pct : float
        Usage percentage (0-100) that triggers checkpointing
    bytes_per_trade : int
        Estimated working set of one trade
    """

    budget: MemoryBudget = field(
        default_factory=lambda: MemoryBudget.from_mb(SETTINGS.monitor.budget_mb)
    )
    auto_checkpoint: bool = True
    checkpoint_threshold_pct: float = field(
        default_factory=lambda: SETTINGS.monitor.checkpoint_threshold_pct
    )
    bytes_per_trade: int = field(default_factory=lambda: SETTINGS.monitor.bytes_per_trade)

    def __post_init__(self) -> None:
        if not 0.0 <= self.checkpoint_threshold_pct <= 100.0:
            raise ValueError(
                "CRITICAL: checkpoint_threshold_pct must be in [0, 100], "
                f"got {self.checkpoint_threshold_pct}"
            )
        if self.bytes_per_trade < 1:
            raise ValueError(
                f"CRITICAL: bytes_per_trade must be >= 1, got {self.bytes_per_trade}"
            )

    def with_budget_mb(self, mb: int) -> "MemoryMonitorConfig":
        return replace(self, budget=MemoryBudget.from_mb(mb))

    def with_auto_checkpoint(self, enabled: bool) -> "MemoryMonitorConfig":
        return replace(self, auto_checkpoint=enabled)

    @property
    def threshold_bytes(self) -> int:
        return int(self.budget.max_bytes * self.checkpoint_threshold_pct / 100.0)


class MemoryMonitor:
    """
    Thread-safe tracker of memory used across pricing workers.

    Parameters
    ----------
    config : MemoryMonitorConfig, optional
        Budget and trigger settings

    Examples
    --------
    >>> monitor = MemoryMonitor(MemoryMonitorConfig().with_budget_mb(1))
    >>> monitor.record_allocation(900_000)
    >>> monitor.is_checkpoint_active()
    True
    """

    def __init__(self, config: MemoryMonitorConfig | None = None):
        self.config = config if config is not None else MemoryMonitorConfig()
        self._lock = threading.Lock()
        self._current = 0
        self._peak = 0
        self._allocations = 0
        self._triggers = 0
        self._active = False

    def record_allocation(self, n_bytes: int) -> None:
        """Track ``n_bytes`` more; may switch checkpointing on."""
        if n_bytes < 0:
            raise ValueError(f"CRITICAL: n_bytes must be >= 0, got {n_bytes}")
        activated = False
        with self._lock:
            self._current += n_bytes
            self._allocations += 1
            self._peak = max(self._peak, self._current)
            if (
                self.config.auto_checkpoint
                and not self._active
                and self._current > self.config.threshold_bytes
            ):
                self._active = True
                self._triggers += 1
                activated = True
            current = self._current
        if activated:
            logger.warning(
                f"Memory usage {current / _MIB:.1f} MB above "
                f"{self.config.checkpoint_threshold_pct:.0f}% of budget: checkpointing enabled"
            )

    def record_deallocation(self, n_bytes: int) -> None:
        """Track ``n_bytes`` released (saturates at zero)."""
        with self._lock:
            self._current -= min(n_bytes, self._current)

    def stats(self) -> MemoryStats:
        with self._lock:
            return MemoryStats(
                current_bytes=self._current,
                peak_bytes=self._peak,
                allocations=self._allocations,
                checkpoint_triggers=self._triggers,
                checkpoint_active=self._active,
            )

    def is_checkpoint_active(self) -> bool:
        with self._lock:
            return self._active

    def deactivate_checkpoint(self) -> None:
        with self._lock:
            self._active = False

    def reset(self) -> None:
        """Zero every counter and switch checkpointing off."""
        with self._lock:
            self._current = 0
            self._peak = 0
            self._allocations = 0
            self._triggers = 0
            self._active = False

    def should_enable_checkpoint(self, n_trades: int) -> bool:
        """Whether ``n_trades`` would exceed the trigger threshold."""
        if not self.config.auto_checkpoint:
            return False
        return n_trades * self.config.bytes_per_trade > self.config.threshold_bytes

    def recommended_checkpoint_interval(self, n_trades: int, n_steps: int) -> int:
        return self.config.budget.recommended_interval(
            n_trades, max(n_steps, 1), self.config.bytes_per_trade
        )

    def usage_percentage(self) -> float:
        with self._lock:
            current = self._current
        return self.config.budget.usage_percentage(current)

    def remaining_bytes(self) -> int:
        with self._lock:
            current = self._current
        return self.config.budget.remaining(current)
