"""Snapshot recording and comparison."""

from resultcheck.snapshots.diff import ABSENT, DiffKind, DiffResult, Discrepancy, ValueDiff, diff_lines
from resultcheck.snapshots.render import DefaultRenderer, Renderer
from resultcheck.snapshots.store import (
    SnapshotOutcome,
    SnapshotResult,
    SnapshotStore,
    default_store,
    expect_snapshot_value,
    get_snapshot_path,
    snapshot,
)
from resultcheck.snapshots.strategies import (
    ExactValueStrategy,
    RenderedTextStrategy,
    SnapshotKind,
    SnapshotStrategy,
    get_strategy,
)

__all__ = [
    # Store
    "SnapshotStore",
    "SnapshotOutcome",
    "SnapshotResult",
    "default_store",
    "snapshot",
    "expect_snapshot_value",
    "get_snapshot_path",
    # Strategies
    "SnapshotKind",
    "SnapshotStrategy",
    "ExactValueStrategy",
    "RenderedTextStrategy",
    "get_strategy",
    # Diffing
    "ABSENT",
    "DiffKind",
    "DiffResult",
    "Discrepancy",
    "ValueDiff",
    "diff_lines",
    # Rendering
    "Renderer",
    "DefaultRenderer",
]
