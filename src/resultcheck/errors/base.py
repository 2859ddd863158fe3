"""Custom exception hierarchy for resultcheck.

All resultcheck errors inherit from ResultcheckError and include:
- error_code: A unique ErrorCode enum for categorization
- context: ErrorContext with path/sandbox/snapshot details
- suggestions: List of actionable steps to resolve the issue

Conditions that must not abort the caller (a missing input file while
staging, a permissive-mode snapshot mismatch, ...) are reported through
``warnings.warn`` using the ResultcheckWarning categories defined here.

Example:
    try:
        run_in_sandbox("analysis.py", sandbox)
    except ScriptExecutionError as e:
        print(f"Error: {e}")
        for suggestion in e.suggestions:
            print(f"  - {suggestion}")
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class ErrorCode(Enum):
    """Standardized error codes for resultcheck.

    Error codes are organized by category:
    - E0xx: Project root resolution errors
    - E1xx: Sandbox errors
    - E2xx: Script execution errors
    - E3xx: Snapshot errors
    - E4xx: Configuration errors
    - E9xx: Unknown/internal errors
    """

    # Root resolution errors (E0xx)
    ROOT_NOT_FOUND = "E001"
    INVALID_START_PATH = "E002"

    # Sandbox errors (E1xx)
    INVALID_PATH = "E101"
    SANDBOX_CREATE_FAILED = "E102"
    NO_SANDBOX = "E103"
    INVALID_SANDBOX = "E104"
    SANDBOX_MISSING = "E105"

    # Script errors (E2xx)
    SCRIPT_NOT_FOUND = "E201"
    SCRIPT_FAILED = "E202"

    # Snapshot errors (E3xx)
    SNAPSHOT_MISSING = "E301"
    SNAPSHOT_MISMATCH = "E302"

    # Configuration errors (E4xx)
    INVALID_CONFIG = "E401"

    # Unknown/internal errors (E9xx)
    UNKNOWN = "E999"

    @property
    def category(self) -> str:
        """Get the error category name."""
        code_num = int(self.value[1:])
        if code_num < 100:
            return "root"
        elif code_num < 200:
            return "sandbox"
        elif code_num < 300:
            return "script"
        elif code_num < 400:
            return "snapshot"
        elif code_num < 500:
            return "config"
        else:
            return "unknown"


@dataclass
class ErrorContext:
    """Structured context captured when an error is raised.

    Attributes:
        path: Filesystem path involved in the failure.
        sandbox_id: Identifier of the sandbox in use (if any).
        script: Script being executed (if any).
        snapshot: Name of the snapshot being compared (if any).
        extra: Additional context-specific information.
        timestamp: When the error occurred.
    """

    path: str | None = None
    sandbox_id: str | None = None
    script: str | None = None
    snapshot: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> dict[str, Any]:
        """Convert context to dictionary for serialization."""
        result = {
            "path": self.path,
            "sandbox_id": self.sandbox_id,
            "script": self.script,
            "snapshot": self.snapshot,
            "extra": self.extra,
            "timestamp": self.timestamp.isoformat(),
        }
        return {k: v for k, v in result.items() if v is not None}

    def format_location(self) -> str:
        """Format the error location as a readable string."""
        parts = []
        if self.sandbox_id:
            parts.append(f"sandbox={self.sandbox_id}")
        if self.script:
            parts.append(f"script={self.script}")
        if self.snapshot:
            parts.append(f"snapshot={self.snapshot}")
        if self.path:
            parts.append(f"path={self.path}")
        return " > ".join(parts) if parts else "unknown location"


class ResultcheckError(Exception):
    """Base exception for all resultcheck errors.

    Attributes:
        error_code: Unique ErrorCode for this error type
        message: Human-readable error description
        context: ErrorContext with execution details
        suggestions: List of actionable steps to resolve the issue
        cause: The underlying exception (if any)
    """

    error_code: ErrorCode = ErrorCode.UNKNOWN
    default_message: str = "An unexpected error occurred"
    default_suggestions: list[str] = []

    def __init__(
        self,
        message: str | None = None,
        error_code: ErrorCode | None = None,
        context: ErrorContext | None = None,
        cause: BaseException | None = None,
        suggestions: list[str] | None = None,
        **extra_context: Any,
    ) -> None:
        self.message = message or self.default_message
        self.error_code = error_code or self.error_code
        self.context = context or ErrorContext()
        self.cause = cause
        self._suggestions = suggestions

        if extra_context:
            self.context.extra.update(extra_context)

        super().__init__(self.message)

    @property
    def suggestions(self) -> list[str]:
        """Get actionable suggestions for resolving this error."""
        if self._suggestions is not None:
            return self._suggestions
        return self.default_suggestions.copy()

    def __str__(self) -> str:
        return f"[{self.error_code.value}] {self.message}"

    def format_verbose(self) -> str:
        """Format error with full details including suggestions."""
        lines = [
            f"Error [{self.error_code.value}]: {self.message}",
            "",
        ]

        location = self.context.format_location()
        if location != "unknown location":
            lines.append(f"Location: {location}")

        if self.cause is not None:
            lines.append(f"Caused by: {type(self.cause).__name__}: {self.cause}")

        if self.suggestions:
            lines.append("")
            lines.append("Suggestions:")
            for suggestion in self.suggestions:
                lines.append(f"  - {suggestion}")

        return "\n".join(lines)

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for serialization."""
        return {
            "error_code": self.error_code.value,
            "error_type": self.__class__.__name__,
            "message": self.message,
            "suggestions": self.suggestions,
            "context": self.context.to_dict(),
            "cause": str(self.cause) if self.cause else None,
        }


# =============================================================================
# Root resolution
# =============================================================================


class RootError(ResultcheckError):
    """Base class for project root resolution failures."""


class RootNotFoundError(RootError):
    """No ancestor directory carries a project root marker."""

    error_code = ErrorCode.ROOT_NOT_FOUND
    default_message = (
        "Could not find project root. Please ensure you are in a project directory "
        "with either a resultcheck.yml, .pyproj file, or .git directory."
    )
    default_suggestions = [
        "Create an empty resultcheck.yml at the top of your project",
        "Run from inside a git checkout",
        "Pass start_path explicitly to find_root()",
    ]


class InvalidStartPathError(RootError):
    """The directory to start the root search from does not exist."""

    error_code = ErrorCode.INVALID_START_PATH
    default_message = "Start path does not exist"


# =============================================================================
# Sandbox
# =============================================================================


class SandboxError(ResultcheckError):
    """Base class for sandbox failures."""


class InvalidPathError(SandboxError):
    """A requested path is absolute or attempts path traversal."""

    error_code = ErrorCode.INVALID_PATH
    default_message = "Invalid path"
    default_suggestions = [
        "Use paths relative to the project root, e.g. data/input.csv",
        "Do not use '..' components to leave the project root",
    ]


class SandboxCreateError(SandboxError):
    """The sandbox directory could not be created."""

    error_code = ErrorCode.SANDBOX_CREATE_FAILED
    default_message = "Failed to create sandbox directory"
    default_suggestions = [
        "Check that temp_base exists and is writable",
        "Check free disk space in the temporary directory",
    ]


class NoSandboxError(SandboxError):
    """No sandbox was passed and no default sandbox exists."""

    error_code = ErrorCode.NO_SANDBOX
    default_message = (
        "No sandbox specified and no previous sandbox found. "
        "Please create a sandbox with setup_sandbox() first."
    )


class InvalidSandboxError(SandboxError):
    """The object passed as a sandbox is not a sandbox handle."""

    error_code = ErrorCode.INVALID_SANDBOX
    default_message = (
        "Invalid sandbox object. Please provide a sandbox created by setup_sandbox()."
    )


class SandboxMissingError(SandboxError):
    """The sandbox directory no longer exists on disk."""

    error_code = ErrorCode.SANDBOX_MISSING
    default_message = "Sandbox directory does not exist"
    default_suggestions = [
        "Create a new sandbox with setup_sandbox()",
        "Do not call cleanup_sandbox() before run_in_sandbox()",
    ]


# =============================================================================
# Script execution
# =============================================================================


class ScriptError(ResultcheckError):
    """Base class for script execution failures."""


class ScriptNotFoundError(ScriptError):
    """The script could not be found in the sandbox, root, or given path."""

    error_code = ErrorCode.SCRIPT_NOT_FOUND
    default_message = "Script file not found"


class ScriptExecutionError(ScriptError):
    """The script raised while running inside the sandbox."""

    error_code = ErrorCode.SCRIPT_FAILED
    default_message = "Error executing script in sandbox"


# =============================================================================
# Snapshots
# =============================================================================


class SnapshotError(ResultcheckError):
    """Base class for snapshot failures."""


class SnapshotMissingError(SnapshotError):
    """No recorded snapshot exists and strict mode forbids creating one."""

    error_code = ErrorCode.SNAPSHOT_MISSING
    default_message = "Snapshot does not exist"
    default_suggestions = [
        "Run the script interactively first with snapshot() to create it",
        "Commit the _snapshots directory alongside your code",
    ]


class SnapshotMismatchError(SnapshotError):
    """A value differs from its recorded snapshot in strict mode."""

    error_code = ErrorCode.SNAPSHOT_MISMATCH
    default_message = "Snapshot differences found"
    default_suggestions = [
        "Inspect the differences above",
        "If the change is intended, re-run snapshot() interactively and accept the update",
    ]

    def __init__(self, message: str | None = None, diff: Any = None, **kwargs: Any) -> None:
        self.diff = diff
        super().__init__(message, **kwargs)


# =============================================================================
# Configuration
# =============================================================================


class ConfigValidationError(ResultcheckError):
    """Configuration value failed validation."""

    error_code = ErrorCode.INVALID_CONFIG
    default_message = "Configuration validation failed"

    def __init__(
        self,
        message: str | None = None,
        field: str | None = None,
        value: Any = None,
        **kwargs: Any,
    ) -> None:
        self.field = field
        self.value = value
        super().__init__(message, **kwargs)
        if field is not None:
            self.context.extra.setdefault("field", field)


# =============================================================================
# Warning categories
# =============================================================================


class ResultcheckWarning(UserWarning):
    """Base category for non-fatal resultcheck conditions."""


class RootFallbackWarning(ResultcheckWarning):
    """The recorded pre-sandbox directory vanished; the cwd was used instead."""


class MissingInputWarning(ResultcheckWarning):
    """A file requested for staging was not found or could not be copied."""


class SandboxWarning(ResultcheckWarning):
    """A sandbox could not be cleaned up."""


class SnapshotMismatchWarning(ResultcheckWarning):
    """A value differs from its snapshot in permissive mode."""
