"""
Tests for the portfolio memory monitor.
"""

import logging
import threading

import pytest

from derivatives_pricing.checkpoint.monitor import (
    MemoryMonitor,
    MemoryMonitorConfig,
    MemoryStats,
)

MIB = 1024 * 1024


class TestMemoryMonitorConfig:
    """Configuration defaults and validation."""

    def test_defaults(self):
        cfg = MemoryMonitorConfig()
        assert cfg.budget.max_bytes == 512 * MIB
        assert cfg.auto_checkpoint
        assert cfg.checkpoint_threshold_pct == 70.0
        assert cfg.bytes_per_trade == 8192

    def test_threshold_bytes(self):
        cfg = MemoryMonitorConfig().with_budget_mb(1)
        assert cfg.threshold_bytes == int(MIB * 0.7)

    @pytest.mark.parametrize("pct", [-1.0, 100.5])
    def test_invalid_threshold(self, pct):
        with pytest.raises(ValueError, match="checkpoint_threshold_pct must be in"):
            MemoryMonitorConfig(checkpoint_threshold_pct=pct)

    def test_invalid_bytes_per_trade(self):
        with pytest.raises(ValueError, match="bytes_per_trade must be >= 1"):
            MemoryMonitorConfig(bytes_per_trade=0)


class TestTracking:
    """Allocation counters."""

    def test_allocation_and_peak(self):
        monitor = MemoryMonitor()
        monitor.record_allocation(1000)
        monitor.record_allocation(500)
        monitor.record_deallocation(1200)
        stats = monitor.stats()
        assert stats == MemoryStats(
            current_bytes=300, peak_bytes=1500, allocations=2,
            checkpoint_triggers=0, checkpoint_active=False,
        )

    def test_deallocation_saturates(self):
        monitor = MemoryMonitor()
        monitor.record_allocation(100)
        monitor.record_deallocation(1_000)
        assert monitor.stats().current_bytes == 0

    def test_negative_allocation(self):
        with pytest.raises(ValueError, match="n_bytes must be >= 0"):
            MemoryMonitor().record_allocation(-1)

    def test_stats_in_mb(self):
        monitor = MemoryMonitor()
        monitor.record_allocation(2 * MIB)
        assert monitor.stats().current_mb == pytest.approx(2.0)
        assert monitor.stats().peak_mb == pytest.approx(2.0)

    def test_usage_and_remaining(self):
        monitor = MemoryMonitor(MemoryMonitorConfig().with_budget_mb(1))
        monitor.record_allocation(MIB // 4)
        assert monitor.usage_percentage() == pytest.approx(25.0)
        assert monitor.remaining_bytes() == MIB - MIB // 4

    def test_reset(self):
        monitor = MemoryMonitor(MemoryMonitorConfig().with_budget_mb(1))
        monitor.record_allocation(900_000)
        monitor.reset()
        assert monitor.stats() == MemoryStats()


class TestAutoCheckpoint:
    """Automatic switch-on above the threshold."""

    def test_activates_above_threshold(self, caplog):
        monitor = MemoryMonitor(MemoryMonitorConfig().with_budget_mb(1))
        monitor.record_allocation(700_000)
        assert not monitor.is_checkpoint_active()

        with caplog.at_level(logging.WARNING, logger="derivatives_pricing.checkpoint.monitor"):
            monitor.record_allocation(100_000)
        assert monitor.is_checkpoint_active()
        assert "checkpointing enabled" in caplog.text

    def test_triggers_counted_once_while_active(self):
        monitor = MemoryMonitor(MemoryMonitorConfig().with_budget_mb(1))
        monitor.record_allocation(900_000)
        monitor.record_allocation(10)
        assert monitor.stats().checkpoint_triggers == 1

    def test_reactivation_after_deactivate(self):
        monitor = MemoryMonitor(MemoryMonitorConfig().with_budget_mb(1))
        monitor.record_allocation(900_000)
        monitor.deactivate_checkpoint()
        assert not monitor.is_checkpoint_active()
        monitor.record_allocation(10)
        assert monitor.is_checkpoint_active()
        assert monitor.stats().checkpoint_triggers == 2

    def test_disabled(self):
        cfg = MemoryMonitorConfig().with_budget_mb(1).with_auto_checkpoint(False)
        monitor = MemoryMonitor(cfg)
        monitor.record_allocation(2 * MIB)
        assert not monitor.is_checkpoint_active()
        assert not monitor.should_enable_checkpoint(10**9)


class TestSizing:
    """Trade-count based advice."""

    def test_should_enable_checkpoint(self):
        """512 MiB x 70% / 8 KiB per trade ≈ 45,876 trades."""
        monitor = MemoryMonitor()
        assert not monitor.should_enable_checkpoint(100)
        assert not monitor.should_enable_checkpoint(45_875)
        assert monitor.should_enable_checkpoint(45_876)

    def test_recommended_interval(self):
        monitor = MemoryMonitor(MemoryMonitorConfig().with_budget_mb(1))
        # 1 MiB holds 1 checkpoint of 100 trades x 8 KiB + overhead
        assert monitor.recommended_checkpoint_interval(100, 252) == 252
        assert monitor.recommended_checkpoint_interval(0, 252) == 1


@pytest.mark.unit
class TestThreadSafety:
    """Concurrent updates from several workers."""

    def test_concurrent_allocations(self):
        monitor = MemoryMonitor()
        n_threads, n_allocs = 8, 1_000

        def worker():
            for _ in range(n_allocs):
                monitor.record_allocation(10)

        threads = [threading.Thread(target=worker) for _ in range(n_threads)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        stats = monitor.stats()
        assert stats.allocations == n_threads * n_allocs
        assert stats.current_bytes == 10 * n_threads * n_allocs
