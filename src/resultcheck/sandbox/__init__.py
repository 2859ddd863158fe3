"""Isolated working directories for running scripts.

- Path-safety validation for staged files
- Sandbox creation, staging and teardown
- Script execution with a redirected working directory
"""

from resultcheck.sandbox.manager import (
    Sandbox,
    SandboxManager,
    cleanup_sandbox,
    default_manager,
    generate_sandbox_id,
    setup_sandbox,
)
from resultcheck.sandbox.paths import (
    is_absolute_path,
    reject_traversal,
    staging_target,
    validate_relative_path,
)
from resultcheck.sandbox.runner import ScriptRunner, default_runner, run_in_sandbox

__all__ = [
    # Handles and managers
    "Sandbox",
    "SandboxManager",
    "default_manager",
    "generate_sandbox_id",
    "setup_sandbox",
    "cleanup_sandbox",
    # Path safety
    "is_absolute_path",
    "validate_relative_path",
    "reject_traversal",
    "staging_target",
    # Execution
    "ScriptRunner",
    "default_runner",
    "run_in_sandbox",
]
