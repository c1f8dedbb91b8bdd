"""
Tests for the seeded random stream and its draw counter.
"""

import numpy as np
import pytest

from derivatives_pricing.options.simulation.rng import RandomStream


class TestRandomStream:
    """Seeding, counting and repositioning."""

    def test_same_seed_same_draws(self):
        """Two streams with one seed produce identical normals."""
        a, b = np.empty(100), np.empty(100)
        RandomStream(7).fill_normal(a)
        RandomStream(7).fill_normal(b)
        np.testing.assert_array_equal(a, b)

    def test_different_seeds_differ(self):
        a, b = np.empty(100), np.empty(100)
        RandomStream(7).fill_normal(a)
        RandomStream(8).fill_normal(b)
        assert not np.array_equal(a, b)

    def test_draw_counter(self):
        """fill_normal and normal advance the counter by the draws produced."""
        stream = RandomStream(1)
        stream.fill_normal(np.empty((4, 5)))
        stream.normal()
        assert stream.draws == 21

    def test_uniform_draws_counted(self):
        """Every uniform advances the counter by one draw."""
        stream = RandomStream(1)
        out = np.empty(10)
        stream.fill_uniform(out)
        assert stream.draws == 10
        assert np.all((out >= 0.0) & (out < 1.0))

    def test_uniform_is_normal_cdf(self):
        from scipy.stats import norm

        normals, uniforms = np.empty(20), np.empty(20)
        RandomStream(4).fill_normal(normals)
        RandomStream(4).fill_uniform(uniforms)
        np.testing.assert_allclose(uniforms, norm.cdf(normals), rtol=1e-12)

    def test_fast_forward_after_uniforms(self):
        """The draw counter locates the stream after a uniform fill."""
        original = RandomStream(7)
        original.fill_uniform(np.empty(5))
        position = original.draws
        expected = original.normal()

        replay = RandomStream(7)
        replay.fast_forward(position)
        assert replay.normal() == expected

    def test_fast_forward_interleaved_draws(self):
        """Mixed normal and uniform fills replay exactly from any recorded position."""
        original = RandomStream(13)
        original.fill_normal(np.empty(17))
        original.fill_uniform(np.empty(9))
        original.normal()
        original.fill_uniform(np.empty(4))
        position = original.draws
        expected_normals, expected_uniforms = np.empty(6), np.empty(6)
        original.fill_normal(expected_normals)
        original.fill_uniform(expected_uniforms)

        replay = RandomStream(13)
        replay.fast_forward(position)
        actual_normals, actual_uniforms = np.empty(6), np.empty(6)
        replay.fill_normal(actual_normals)
        replay.fill_uniform(actual_uniforms)

        assert position == 31
        np.testing.assert_array_equal(actual_normals, expected_normals)
        np.testing.assert_array_equal(actual_uniforms, expected_uniforms)

    def test_reseed_restarts(self):
        """reseed() without a seed restarts the current sequence."""
        stream = RandomStream(3)
        first = stream.normal()
        stream.normal()
        stream.reseed()
        assert stream.draws == 0
        assert stream.normal() == first

    def test_reseed_with_new_seed(self):
        stream = RandomStream(3)
        stream.reseed(11)
        assert stream.seed == 11
        assert stream.normal() == RandomStream(11).normal()

    def test_fast_forward_matches_continuation(self):
        """A repositioned stream continues exactly where the original was."""
        original = RandomStream(5)
        original.fill_normal(np.empty(1_000))
        expected = np.empty(50)
        original.fill_normal(expected)

        replay = RandomStream(5)
        replay.normal()
        replay.fast_forward(1_000)
        actual = np.empty(50)
        replay.fill_normal(actual)

        assert replay.draws == 1_050
        np.testing.assert_array_equal(actual, expected)

    def test_fast_forward_across_chunks(self):
        """Discarding more than one internal chunk keeps the sequence aligned."""
        n = (1 << 16) + 123
        original = RandomStream(9)
        original.fill_normal(np.empty(n))
        expected = original.normal()

        replay = RandomStream(9)
        replay.fast_forward(n)
        assert replay.normal() == expected

    def test_fast_forward_zero(self):
        stream = RandomStream(2)
        first = RandomStream(2).normal()
        stream.normal()
        stream.fast_forward(0)
        assert stream.normal() == first

    def test_negative_seed_rejected(self):
        with pytest.raises(ValueError, match="seed must be >= 0"):
            RandomStream(-1)

    def test_negative_fast_forward_rejected(self):
        with pytest.raises(ValueError, match="n_draws must be >= 0"):
            RandomStream(1).fast_forward(-5)
