"""
Seeded random stream with a draw counter.

Wraps a numpy ``Generator(PCG64)`` and counts the standard normals it has
produced since the last (re)seed. Uniforms are the normal CDF of counted
normal draws, so the generator only ever advances through normals. A
recorded ``(seed, draws)`` pair is enough to put a fresh stream back at the
same position, which is how checkpoints record the random state without
copying generator internals.
"""

from typing import Optional

import numpy as np
from scipy.special import ndtr

# Draws are discarded in bounded chunks while fast-forwarding
_FAST_FORWARD_CHUNK = 1 << 16

_BELOW_ONE = np.nextafter(1.0, 0.0)


class RandomStream:
    """
    Reproducible source of standard normal draws.

    Parameters
    ----------
    seed : int
        Seed of the underlying PCG64 bit generator

    Examples
    --------
    >>> stream = RandomStream(42)
    >>> a = stream.normal()
    >>> stream.reseed()
    >>> a == stream.normal()
    True
    """

    def __init__(self, seed: int):
        if seed < 0:
            raise ValueError(f"CRITICAL: seed must be >= 0, got {seed}")
        self._seed = int(seed)
        self._generator = np.random.Generator(np.random.PCG64(self._seed))
        self._draws = 0

    @property
    def seed(self) -> int:
        """Seed currently in effect."""
        return self._seed

    @property
    def draws(self) -> int:
        """Number of normal draws produced since the last (re)seed."""
        return self._draws

    def normal(self) -> float:
        """Return one standard normal draw."""
        self._draws += 1
        return float(self._generator.standard_normal())

    def fill_normal(self, out: np.ndarray) -> None:
        """
        Fill a contiguous float64 buffer with standard normals in place.

        Parameters
        ----------
        out : np.ndarray
            C-contiguous float64 array (any shape)
        """
        self._generator.standard_normal(out=out)
        self._draws += out.size

    def fill_uniform(self, out: np.ndarray) -> None:
        """
        Fill a contiguous float64 buffer with uniforms on [0, 1) in place.

        [T1] U = Φ(Z) is uniform for standard normal Z. Each uniform consumes
        one counted normal draw, so ``fast_forward`` replays mixed
        sequences exactly.
        """
        self.fill_normal(out)
        ndtr(out, out=out)
        np.minimum(out, _BELOW_ONE, out=out)

    def reseed(self, seed: Optional[int] = None) -> None:
        """
        Restart the stream.

        Parameters
        ----------
        seed : int, optional
            New seed. None restarts from the current seed.
        """
        if seed is not None:
            if seed < 0:
                raise ValueError(f"CRITICAL: seed must be >= 0, got {seed}")
            self._seed = int(seed)
        self._generator = np.random.Generator(np.random.PCG64(self._seed))
        self._draws = 0

    def fast_forward(self, n_draws: int) -> None:
        """
        Reposition the stream at a recorded draw counter.

        Restarts from the seed and discards ``n_draws`` normals, so the next
        draw equals the one the original stream produced after ``n_draws``.
        """
        if n_draws < 0:
            raise ValueError(f"CRITICAL: n_draws must be >= 0, got {n_draws}")
        self.reseed()
        remaining = n_draws
        scratch = np.empty(min(remaining, _FAST_FORWARD_CHUNK))
        while remaining > 0:
            chunk = scratch[: min(remaining, _FAST_FORWARD_CHUNK)]
            self._generator.standard_normal(out=chunk)
            remaining -= chunk.size
        self._draws = n_draws

    def __repr__(self) -> str:
        return f"RandomStream(seed={self._seed}, draws={self._draws})"
