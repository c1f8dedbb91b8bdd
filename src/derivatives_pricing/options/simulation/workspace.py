"""
Reusable simulation buffers.

The workspace owns every per-run array of a Monte Carlo pricer so repeated
pricing allocates nothing once capacity has been reached. Each dimension keeps
a ``(capacity, logical size)`` pair: capacity only grows (doubling), and the
logical size selects the region that views expose.

Buffers are flat float64 arrays; views are reshaped prefixes, so every view
is C-contiguous and can be filled in place by the random stream.

Layout
------
- randoms  : size_paths x size_steps
- paths    : size_paths x (size_steps + 1)
- payoffs  : size_paths
- observers: size_paths
"""

import logging

import numpy as np

from derivatives_pricing.options.simulation.observer import PathObserver, PathObserverState

logger = logging.getLogger(__name__)

#: Bytes of one observer snapshot (count + four float64 statistics + padding)
OBSERVER_STATE_BYTES = 48

#: Bytes of one stored price
PRICE_BYTES = 8


def _grown(current: int, requested: int) -> int:
    """New capacity for one dimension: at least double, at least requested."""
    if requested <= current:
        return current
    return max(requested, 2 * current)


class SimulationWorkspace:
    """
    Growable buffers for paths, randoms, payoffs and observers.

    Parameters
    ----------
    n_paths : int, default 0
        Initial path capacity
    n_steps : int, default 0
        Initial step capacity

    Notes
    -----
    Growth reallocates: views obtained before a growing ``ensure_capacity``
    no longer alias the workspace.
    """

    def __init__(self, n_paths: int = 0, n_steps: int = 0):
        if n_paths < 0 or n_steps < 0:
            raise ValueError(
                f"CRITICAL: capacities must be >= 0, got n_paths={n_paths}, n_steps={n_steps}"
            )
        self._capacity_paths = n_paths
        self._capacity_steps = n_steps
        self._size_paths = 0
        self._size_steps = 0
        self._randoms = np.zeros(n_paths * n_steps)
        self._paths = np.zeros(n_paths * (n_steps + 1))
        self._payoffs = np.zeros(n_paths)
        self._observers = [PathObserver() for _ in range(n_paths)]

    # -------------------------------------------------------------------------
    # Capacity management
    # -------------------------------------------------------------------------

    def ensure_capacity(self, n_paths: int, n_steps: int) -> None:
        """
        Make room for ``n_paths x n_steps`` and set the logical size.

        Never shrinks. A dimension that must grow is set to
        ``max(requested, 2 * current)``.

        Parameters
        ----------
        n_paths : int
            Paths needed
        n_steps : int
            Time steps needed
        """
        if n_paths < 0 or n_steps < 0:
            raise ValueError(
                f"CRITICAL: sizes must be >= 0, got n_paths={n_paths}, n_steps={n_steps}"
            )
        new_paths = _grown(self._capacity_paths, n_paths)
        new_steps = _grown(self._capacity_steps, n_steps)

        if new_paths != self._capacity_paths or new_steps != self._capacity_steps:
            logger.debug(
                f"Workspace growth: paths {self._capacity_paths} -> {new_paths}, "
                f"steps {self._capacity_steps} -> {new_steps}"
            )
            self._randoms = np.zeros(new_paths * new_steps)
            self._paths = np.zeros(new_paths * (new_steps + 1))
            if new_paths != self._capacity_paths:
                self._payoffs = np.zeros(new_paths)
                self._observers.extend(
                    PathObserver() for _ in range(new_paths - self._capacity_paths)
                )
            self._capacity_paths = new_paths
            self._capacity_steps = new_steps

        self._size_paths = n_paths
        self._size_steps = n_steps

    def reset(self) -> None:
        """Set the logical size to zero; contents and observers are untouched."""
        self._size_paths = 0
        self._size_steps = 0

    def reset_observers(self) -> None:
        """Return every observer within the logical size to its empty state."""
        for obs in self._observers[: self._size_paths]:
            obs.reset()

    def clear_all(self) -> None:
        """Zero buffer contents within the logical size and reset observers."""
        self.randoms.fill(0.0)
        self.paths.fill(0.0)
        self.payoffs.fill(0.0)
        self.reset_observers()

    # -------------------------------------------------------------------------
    # Sizes
    # -------------------------------------------------------------------------

    @property
    def capacity_paths(self) -> int:
        return self._capacity_paths

    @property
    def capacity_steps(self) -> int:
        return self._capacity_steps

    @property
    def size_paths(self) -> int:
        return self._size_paths

    @property
    def size_steps(self) -> int:
        return self._size_steps

    # -------------------------------------------------------------------------
    # Views
    # -------------------------------------------------------------------------

    @property
    def randoms(self) -> np.ndarray:
        """Random draws, shape (size_paths, size_steps)."""
        sp, ss = self._size_paths, self._size_steps
        return self._randoms[: sp * ss].reshape(sp, ss)

    @property
    def paths(self) -> np.ndarray:
        """Simulated prices, shape (size_paths, size_steps + 1)."""
        sp, ss = self._size_paths, self._size_steps
        return self._paths[: sp * (ss + 1)].reshape(sp, ss + 1)

    @property
    def payoffs(self) -> np.ndarray:
        """Undiscounted payoffs, shape (size_paths,)."""
        return self._payoffs[: self._size_paths]

    @property
    def observers(self) -> list[PathObserver]:
        """Observers within the logical size."""
        return self._observers[: self._size_paths]

    def observer(self, path: int) -> PathObserver:
        """Observer of one path."""
        if not 0 <= path < self._size_paths:
            raise IndexError(f"path {path} out of range [0, {self._size_paths})")
        return self._observers[path]

    def path_index(self, path: int, step: int) -> int:
        """Flat index of (path, step) in the path buffer."""
        if not 0 <= path < self._size_paths or not 0 <= step <= self._size_steps:
            raise IndexError(
                f"(path={path}, step={step}) outside "
                f"({self._size_paths}, {self._size_steps + 1})"
            )
        return path * (self._size_steps + 1) + step

    def random_index(self, path: int, step: int) -> int:
        """Flat index of (path, step) in the random buffer."""
        if not 0 <= path < self._size_paths or not 0 <= step < self._size_steps:
            raise IndexError(
                f"(path={path}, step={step}) outside ({self._size_paths}, {self._size_steps})"
            )
        return path * self._size_steps + step

    # -------------------------------------------------------------------------
    # Observer snapshots
    # -------------------------------------------------------------------------

    def snapshot_observers(self) -> tuple[PathObserverState, ...]:
        """Immutable snapshot of every observer within the logical size."""
        return tuple(obs.snapshot() for obs in self.observers)

    def restore_observers(self, states: tuple[PathObserverState, ...]) -> None:
        """
        Restore observers from a snapshot taken at the same logical size.

        Raises
        ------
        ValueError
            If the number of states differs from the logical path count
        """
        if len(states) != self._size_paths:
            raise ValueError(
                f"CRITICAL: expected {self._size_paths} observer states, got {len(states)}"
            )
        for obs, state in zip(self.observers, states):
            obs.restore(state)

    # -------------------------------------------------------------------------
    # Memory accounting
    # -------------------------------------------------------------------------

    def memory_usage(self) -> int:
        """Bytes held by the buffers at current capacity."""
        return (
            self._randoms.nbytes
            + self._paths.nbytes
            + self._payoffs.nbytes
            + self._capacity_paths * OBSERVER_STATE_BYTES
        )

    @staticmethod
    def state_size_per_path() -> int:
        """Bytes one path contributes to a checkpoint (price + observer state)."""
        return PRICE_BYTES + OBSERVER_STATE_BYTES

    def __repr__(self) -> str:
        return (
            f"SimulationWorkspace(paths={self._size_paths}/{self._capacity_paths}, "
            f"steps={self._size_steps}/{self._capacity_steps})"
        )
