"""resultcheck error handling.

- Custom exception hierarchy with error codes
- Structured context and troubleshooting suggestions
- Warning categories for non-fatal conditions
"""

from resultcheck.errors.base import (
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
    RootError,
    RootFallbackWarning,
    RootNotFoundError,
    SandboxCreateError,
    SandboxError,
    SandboxMissingError,
    SandboxWarning,
    ScriptError,
    ScriptExecutionError,
    ScriptNotFoundError,
    SnapshotError,
    SnapshotMismatchError,
    SnapshotMismatchWarning,
    SnapshotMissingError,
)

__all__ = [
    # Base exceptions
    "ResultcheckError",
    "ErrorCode",
    "ErrorContext",
    # Root resolution
    "RootError",
    "RootNotFoundError",
    "InvalidStartPathError",
    # Sandbox
    "SandboxError",
    "InvalidPathError",
    "SandboxCreateError",
    "NoSandboxError",
    "InvalidSandboxError",
    "SandboxMissingError",
    # Scripts
    "ScriptError",
    "ScriptNotFoundError",
    "ScriptExecutionError",
    # Snapshots
    "SnapshotError",
    "SnapshotMissingError",
    "SnapshotMismatchError",
    # Configuration
    "ConfigValidationError",
    # Warnings
    "ResultcheckWarning",
    "RootFallbackWarning",
    "MissingInputWarning",
    "SandboxWarning",
    "SnapshotMismatchWarning",
]
