"""
Memory-bounded checkpointing of simulation state.

Provides:
- MemoryBudget: ceiling on checkpoint memory
- CheckpointStrategy: where to checkpoint
- SimulationState / CheckpointStorage: what is stored
- CheckpointManager: save / restore / nearest lookup
- MemoryMonitor: shared portfolio-level memory tracking
"""

from derivatives_pricing.checkpoint.budget import MemoryBudget, MemoryBudgetWarning
from derivatives_pricing.checkpoint.manager import (
    CheckpointError,
    CheckpointManager,
    CheckpointNotFoundError,
    InvalidCheckpointStateError,
)
from derivatives_pricing.checkpoint.monitor import (
    MemoryMonitor,
    MemoryMonitorConfig,
    MemoryStats,
)
from derivatives_pricing.checkpoint.state import CheckpointStorage, SimulationState
from derivatives_pricing.checkpoint.strategy import CheckpointStrategy, StrategyKind

__all__ = [
    "MemoryBudget",
    "MemoryBudgetWarning",
    "CheckpointStrategy",
    "StrategyKind",
    "SimulationState",
    "CheckpointStorage",
    "CheckpointManager",
    "CheckpointError",
    "CheckpointNotFoundError",
    "InvalidCheckpointStateError",
    "MemoryMonitor",
    "MemoryMonitorConfig",
    "MemoryStats",
]
