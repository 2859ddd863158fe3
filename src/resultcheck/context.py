"""Execution context for sandboxed runs and snapshot mode detection.

Uses Python contextvars to carry two facts from ``run_in_sandbox`` down to
any snapshot call made by the script it runs:

- the working directory the caller had before entering the sandbox, so the
  project root can still be found while the cwd points at a temp directory;
- whether snapshots must behave in strict (automated verification) mode.

The slot is always set and reset in pairs through the context managers
below, so a nested run restores the state of the run that contains it and
the outermost run leaves the slot empty.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar, Token
from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class ExecutionContext:
    """State shared with code running inside a sandbox."""

    original_working_dir: Path | None = None
    strict_mode: bool = False


_execution_context: ContextVar[ExecutionContext | None] = ContextVar(
    "resultcheck_execution_context", default=None
)


def get_execution_context() -> ExecutionContext | None:
    """Get the active execution context, or None outside any run."""
    return _execution_context.get()


def set_execution_context(ctx: ExecutionContext | None) -> Token:
    """Set the execution context.

    Args:
        ctx: Context to install.

    Returns:
        Token for resetting the context
    """
    return _execution_context.set(ctx)


def reset_execution_context(token: Token) -> None:
    """Reset the execution context to its previous state.

    Args:
        token: Token returned by set_execution_context
    """
    _execution_context.reset(token)


@contextmanager
def sandboxed_execution(original_working_dir: str | Path) -> Iterator[ExecutionContext]:
    """Mark the enclosed block as a strict-mode sandboxed run.

    Args:
        original_working_dir: The caller's working directory before it was
            redirected into the sandbox.
    """
    ctx = ExecutionContext(
        original_working_dir=Path(original_working_dir),
        strict_mode=True,
    )
    token = set_execution_context(ctx)
    try:
        yield ctx
    finally:
        reset_execution_context(token)


@contextmanager
def strict_mode() -> Iterator[ExecutionContext]:
    """Force strict snapshot behaviour without redirecting root resolution."""
    current = get_execution_context()
    ctx = ExecutionContext(
        original_working_dir=current.original_working_dir if current else None,
        strict_mode=True,
    )
    token = set_execution_context(ctx)
    try:
        yield ctx
    finally:
        reset_execution_context(token)


def is_strict() -> bool:
    """Return True when snapshots must fail instead of prompting."""
    ctx = get_execution_context()
    return ctx is not None and ctx.strict_mode
