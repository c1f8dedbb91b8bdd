"""
Tests for frozen settings and the tolerance registry.
"""

from dataclasses import FrozenInstanceError

import pytest

from derivatives_pricing.config.settings import (
    SETTINGS,
    CheckpointConfig,
    GreeksConfig,
    SimulationConfig,
)
from derivatives_pricing.config.tolerances import (
    TOLERANCE_REGISTRY,
    get_tolerance,
    mc_tolerance,
)


class TestSettingsDefaults:
    """Default values of the settings singleton."""

    def test_simulation_defaults(self):
        """Simulation defaults match the documented values."""
        cfg = SimulationConfig()
        assert cfg.mc_paths == 100_000
        assert cfg.mc_steps == 252
        assert cfg.trading_days_per_year == 252

    def test_greeks_defaults(self):
        """Bump sizes match the documented values."""
        cfg = SETTINGS.greeks
        assert cfg.spot_bump_relative == 0.01
        assert cfg.vol_bump_absolute == 0.01
        assert cfg.vol_floor == 0.001
        assert cfg.rate_bump_absolute == 0.01
        assert cfg.time_bump_years == pytest.approx(1 / 252)
        assert cfg.maturity_floor == 0.001
        assert cfg.smoothing_epsilon == 1e-4

    def test_checkpoint_defaults(self):
        """Checkpoint defaults match the documented values."""
        cfg = SETTINGS.checkpoint
        assert cfg.default_interval == 100
        assert cfg.warning_threshold == 0.8
        assert cfg.checkpoint_overhead_bytes == 128
        assert (cfg.min_capacity, cfg.max_capacity) == (10, 1000)

    def test_monitor_defaults(self):
        """Monitor defaults match the documented values."""
        cfg = SETTINGS.monitor
        assert cfg.budget_mb == 512
        assert cfg.checkpoint_threshold_pct == 70.0
        assert cfg.bytes_per_trade == 8192

    def test_settings_are_frozen(self):
        """Settings cannot be mutated."""
        with pytest.raises(FrozenInstanceError):
            SETTINGS.greeks.vol_floor = 0.5  # type: ignore[misc]


class TestSpotBump:
    """Relative spot bump with an absolute floor."""

    def test_relative_bump(self):
        assert GreeksConfig().spot_bump(100.0) == pytest.approx(1.0)

    def test_floor_applies_for_small_spot(self):
        assert GreeksConfig().spot_bump(0.5) == 0.01

    def test_cap_keeps_down_bump_positive(self):
        """Below the floor the bump is capped at half the spot."""
        assert GreeksConfig().spot_bump(0.008) == pytest.approx(0.004)
        assert GreeksConfig().spot_bump(0.02) == 0.01


class TestEnvironmentOverrides:
    """Seed and budget can be overridden from the environment."""

    def test_seed_override(self, monkeypatch):
        """DERIVATIVES_PRICING_SEED sets the default seed."""
        monkeypatch.setenv("DERIVATIVES_PRICING_SEED", "1234")
        assert SimulationConfig().mc_seed == 1234

    def test_budget_override(self, monkeypatch):
        """DERIVATIVES_PRICING_BUDGET_MB sets the default budget."""
        monkeypatch.setenv("DERIVATIVES_PRICING_BUDGET_MB", "256")
        assert CheckpointConfig().default_budget_mb == 256

    def test_empty_value_uses_default(self, monkeypatch):
        monkeypatch.setenv("DERIVATIVES_PRICING_SEED", "")
        assert SimulationConfig().mc_seed == 42

    def test_invalid_value_rejected(self, monkeypatch):
        """Non-integer overrides fail loudly."""
        monkeypatch.setenv("DERIVATIVES_PRICING_SEED", "forty-two")
        with pytest.raises(ValueError, match="must be an integer"):
            SimulationConfig()

    def test_negative_value_rejected(self, monkeypatch):
        monkeypatch.setenv("DERIVATIVES_PRICING_BUDGET_MB", "-1")
        with pytest.raises(ValueError, match="must be >= 0"):
            CheckpointConfig()


class TestTolerances:
    """Tolerance registry and CLT helper."""

    def test_mc_tolerance_10k(self):
        """3σ/√N with σ=0.2 at 10k paths is 0.6%."""
        assert mc_tolerance(10_000) == pytest.approx(0.006)

    def test_mc_tolerance_shrinks_with_paths(self):
        assert mc_tolerance(100_000) < mc_tolerance(10_000)

    def test_mc_tolerance_rejects_zero_paths(self):
        with pytest.raises(ValueError, match="n_paths must be > 0"):
            mc_tolerance(0)

    def test_registry_lookup(self):
        assert get_tolerance("checkpoint_replay") == 0.0
        assert get_tolerance("greeks_mode_agreement") == TOLERANCE_REGISTRY[
            "greeks_mode_agreement"
        ]

    def test_unknown_tolerance(self):
        with pytest.raises(KeyError, match="Unknown tolerance"):
            get_tolerance("does_not_exist")
