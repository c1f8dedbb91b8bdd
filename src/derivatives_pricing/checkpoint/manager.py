"""
Checkpoint manager: strategy, bounded storage and optional memory budget.

The manager decides when to save (delegating to its strategy), stores
independent copies of states, and hands back independent copies on restore,
so neither the forward pass nor a replay can mutate a stored checkpoint.
"""

import logging
from typing import Optional

from derivatives_pricing.checkpoint.budget import MemoryBudget
from derivatives_pricing.checkpoint.state import CheckpointStorage, SimulationState
from derivatives_pricing.checkpoint.strategy import CheckpointStrategy
from derivatives_pricing.config.settings import SETTINGS

logger = logging.getLogger(__name__)

# Horizon used to pre-size storage when total_steps is not given
_CAPACITY_SIZING_STEPS = 1000


class CheckpointError(Exception):
    """Base class for checkpoint failures."""

    pass


class CheckpointNotFoundError(CheckpointError):
    """No checkpoint is stored at the requested step."""

    def __init__(self, step: int):
        self.step = step
        super().__init__(f"Checkpoint not found for step {step}")


class InvalidCheckpointStateError(CheckpointError):
    """A state was saved under a step that differs from its own."""

    pass


class CheckpointManager:
    """
    Orchestrates checkpoint saves and restores for one simulation.

    Parameters
    ----------
    strategy : CheckpointStrategy, optional
        Placement rule; uniform at the configured default interval if omitted
    capacity : int, optional
        Maximum stored checkpoints. Defaults to the strategy's estimate for
        ``total_steps`` (a 1000-step horizon when unknown), clamped to
        [min_capacity, max_capacity]
    total_steps : int, default 0
        Horizon length (0 = unknown)

    Examples
    --------
    >>> manager = CheckpointManager(CheckpointStrategy.uniform(10), total_steps=100)
    >>> manager.should_checkpoint(20)
    True
    """

    def __init__(
        self,
        strategy: Optional[CheckpointStrategy] = None,
        capacity: Optional[int] = None,
        total_steps: int = 0,
    ):
        self.strategy = strategy if strategy is not None else CheckpointStrategy.default()
        if capacity is None:
            cfg = SETTINGS.checkpoint
            horizon = total_steps if total_steps > 0 else _CAPACITY_SIZING_STEPS
            estimated = self.strategy.estimated_checkpoints(horizon)
            capacity = min(max(estimated, cfg.min_capacity), cfg.max_capacity)
        self._storage = CheckpointStorage(capacity)
        self._total_steps = total_steps
        self._memory_budget: Optional[MemoryBudget] = None

    # -------------------------------------------------------------------------
    # Configuration
    # -------------------------------------------------------------------------

    def with_memory_budget(self, budget: MemoryBudget) -> "CheckpointManager":
        """Attach a memory budget; returns the manager for chaining."""
        self._memory_budget = budget
        return self

    @property
    def memory_budget(self) -> Optional[MemoryBudget]:
        return self._memory_budget

    @property
    def total_steps(self) -> int:
        return self._total_steps

    def set_total_steps(self, total_steps: int) -> None:
        if total_steps < 0:
            raise ValueError(f"CRITICAL: total_steps must be >= 0, got {total_steps}")
        self._total_steps = total_steps

    @property
    def capacity(self) -> int:
        return self._storage.capacity

    # -------------------------------------------------------------------------
    # Budget
    # -------------------------------------------------------------------------

    def is_within_budget(self) -> bool:
        """True without a budget."""
        if self._memory_budget is None:
            return True
        return self._memory_budget.is_within_budget(self.memory_usage())

    def is_memory_warning(self) -> bool:
        """False without a budget."""
        if self._memory_budget is None:
            return False
        return self._memory_budget.is_warning(self.memory_usage())

    def recommended_interval(self, n_paths: int, state_size_per_path: int) -> int:
        """
        Checkpoint interval for this horizon.

        Uses the memory budget when one is attached, otherwise the strategy.
        """
        if self._memory_budget is not None:
            return self._memory_budget.recommended_interval(
                n_paths, self._total_steps, state_size_per_path
            )
        return self.strategy.interval(self._total_steps)

    # -------------------------------------------------------------------------
    # Save / restore
    # -------------------------------------------------------------------------

    def should_checkpoint(self, step: int) -> bool:
        return self.strategy.should_checkpoint(step, self._total_steps)

    def save_state(self, step: int, state: SimulationState) -> None:
        """
        Store a copy of ``state`` under ``step``.

        Raises
        ------
        InvalidCheckpointStateError
            If ``state.step`` differs from ``step``
        """
        if state.step != step:
            raise InvalidCheckpointStateError(
                f"State step {state.step} doesn't match provided step {step}"
            )
        self._storage.save(step, state.clone())

    def restore_state(self, step: int) -> SimulationState:
        """
        Copy of the state stored at ``step``.

        Raises
        ------
        CheckpointNotFoundError
            If nothing is stored at ``step``
        """
        state = self._storage.get(step)
        if state is None:
            raise CheckpointNotFoundError(step)
        return state.clone()

    def nearest_checkpoint(self, step: int) -> Optional[int]:
        """Largest stored step <= ``step``, or None when nothing qualifies."""
        return self._storage.nearest_before(step)

    def steps(self) -> list[int]:
        return self._storage.steps()

    @property
    def checkpoint_count(self) -> int:
        return len(self._storage)

    def is_empty(self) -> bool:
        return len(self._storage) == 0

    def clear(self) -> None:
        self._storage.clear()

    def memory_usage(self) -> int:
        """Bytes held by stored checkpoints."""
        return self._storage.memory_usage()

    def __repr__(self) -> str:
        return (
            f"CheckpointManager(strategy={self.strategy}, "
            f"checkpoints={self.checkpoint_count}/{self.capacity}, "
            f"total_steps={self._total_steps})"
        )
