"""resultcheck - sandboxed script runs and value snapshots for analysis code.

Run a script in a throwaway copy of the files it needs, and check that the
values it computes still match what was recorded before.

Quick Start:
    from resultcheck import setup_sandbox, run_in_sandbox, snapshot

    # In an analysis script, interactively:
    snapshot(summary_table, "summary_table")

    # In a test:
    with setup_sandbox(["data/input.csv", "analysis.py"]) as sandbox:
        run_in_sandbox("analysis.py", sandbox)
"""

from __future__ import annotations

from resultcheck.config import ResultcheckConfig, load_config
from resultcheck.context import ExecutionContext, get_execution_context, is_strict, strict_mode
from resultcheck.errors import (
    ConfigValidationError,
    ErrorCode,
    ErrorContext,
    InvalidPathError,
    InvalidSandboxError,
    InvalidStartPathError,
    MissingInputWarning,
    NoSandboxError,
    ResultcheckError,
    ResultcheckWarning,
    RootFallbackWarning,
    RootNotFoundError,
    SandboxCreateError,
    SandboxMissingError,
    SandboxWarning,
    ScriptExecutionError,
    ScriptNotFoundError,
    SnapshotMismatchError,
    SnapshotMismatchWarning,
    SnapshotMissingError,
)
from resultcheck.root import find_root
from resultcheck.sandbox import (
    Sandbox,
    SandboxManager,
    ScriptRunner,
    cleanup_sandbox,
    run_in_sandbox,
    setup_sandbox,
)
from resultcheck.snapshots import (
    SnapshotKind,
    SnapshotOutcome,
    SnapshotResult,
    SnapshotStore,
    expect_snapshot_value,
    get_snapshot_path,
    snapshot,
)

__version__ = "0.3.0"

__all__ = [
    # Root
    "find_root",
    # Sandbox
    "Sandbox",
    "SandboxManager",
    "ScriptRunner",
    "setup_sandbox",
    "run_in_sandbox",
    "cleanup_sandbox",
    # Snapshots
    "SnapshotStore",
    "SnapshotKind",
    "SnapshotOutcome",
    "SnapshotResult",
    "snapshot",
    "expect_snapshot_value",
    "get_snapshot_path",
    # Mode
    "ExecutionContext",
    "get_execution_context",
    "is_strict",
    "strict_mode",
    # Configuration
    "ResultcheckConfig",
    "load_config",
    # Errors
    "ResultcheckError",
    "ErrorCode",
    "ErrorContext",
    "RootNotFoundError",
    "InvalidStartPathError",
    "InvalidPathError",
    "SandboxCreateError",
    "NoSandboxError",
    "InvalidSandboxError",
    "SandboxMissingError",
    "ScriptNotFoundError",
    "ScriptExecutionError",
    "SnapshotMissingError",
    "SnapshotMismatchError",
    "ConfigValidationError",
    # Warnings
    "ResultcheckWarning",
    "RootFallbackWarning",
    "MissingInputWarning",
    "SandboxWarning",
    "SnapshotMismatchWarning",
]
