"""
Checkpointed simulation state and its bounded store.
"""

import bisect
from dataclasses import dataclass, field, replace
from typing import Iterator, Optional

import numpy as np

from derivatives_pricing.config.settings import SETTINGS
from derivatives_pricing.options.simulation.observer import PathObserverState
from derivatives_pricing.options.simulation.workspace import OBSERVER_STATE_BYTES


@dataclass
class SimulationState:
    """
    Everything needed to resume a simulation at a step.

    Attributes
    ----------
    step : int
        Step the state was captured at (prices are S at this step)
    rng_seed : int
        Seed of the random stream
    rng_draws : int
        Draw counter of the stream when the run's randoms were generated
    observer_states : tuple[PathObserverState, ...]
        Observer snapshots, one per path
    current_prices : np.ndarray
        Prices at ``step``, one per path
    """

    step: int
    rng_seed: int
    rng_draws: int
    observer_states: tuple[PathObserverState, ...] = ()
    current_prices: np.ndarray = field(default_factory=lambda: np.empty(0))

    def clone(self) -> "SimulationState":
        """Independent copy (price array copied; snapshots are immutable)."""
        return replace(self, current_prices=self.current_prices.copy())

    @property
    def n_paths(self) -> int:
        return len(self.current_prices)

    def memory_size(self) -> int:
        """Approximate bytes held by this state."""
        return (
            SETTINGS.checkpoint.checkpoint_overhead_bytes
            + self.current_prices.nbytes
            + len(self.observer_states) * OBSERVER_STATE_BYTES
        )


class CheckpointStorage:
    """
    Capacity-bounded store of states keyed by step.

    Saving an existing step overwrites it. Saving a new step at capacity
    evicts the entry with the smallest step. Steps are kept sorted so
    ``nearest_before`` is a binary search.

    Parameters
    ----------
    capacity : int
        Maximum number of stored states (>= 1)
    """

    def __init__(self, capacity: int):
        if capacity < 1:
            raise ValueError(f"CRITICAL: capacity must be >= 1, got {capacity}")
        self._capacity = capacity
        self._states: dict[int, SimulationState] = {}
        self._steps: list[int] = []

    @property
    def capacity(self) -> int:
        return self._capacity

    def save(self, step: int, state: SimulationState) -> None:
        if step in self._states:
            self._states[step] = state
            return
        if len(self._steps) >= self._capacity:
            evicted = self._steps.pop(0)
            del self._states[evicted]
        bisect.insort(self._steps, step)
        self._states[step] = state

    def get(self, step: int) -> Optional[SimulationState]:
        return self._states.get(step)

    def nearest_before(self, step: int) -> Optional[int]:
        """Largest stored step <= ``step``, or None."""
        idx = bisect.bisect_right(self._steps, step)
        if idx == 0:
            return None
        return self._steps[idx - 1]

    def steps(self) -> list[int]:
        """Stored steps in ascending order."""
        return list(self._steps)

    def clear(self) -> None:
        self._states.clear()
        self._steps.clear()

    def memory_usage(self) -> int:
        """Total bytes of stored states."""
        return sum(state.memory_size() for state in self._states.values())

    def __len__(self) -> int:
        return len(self._steps)

    def __iter__(self) -> Iterator[tuple[int, SimulationState]]:
        for step in self._steps:
            yield step, self._states[step]

    def __contains__(self, step: object) -> bool:
        return step in self._states
