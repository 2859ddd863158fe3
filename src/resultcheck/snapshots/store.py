"""Snapshot storage and the create/compare/update protocol.

Snapshots live under ``<root>/<snapshot_dir>/<bucket>/<name>.<ext>``, where
the bucket is the name of the script that recorded them. How a comparison
ends depends on the mode:

- strict (inside ``run_in_sandbox`` or ``expect_snapshot_value``): a missing
  or differing snapshot raises and storage is never written;
- permissive (interactive use): a missing snapshot is created, a differing
  one produces a warning and, if the user confirms, is overwritten.

Example:
    >>> model_summary = fit_model(data)
    >>> snapshot(model_summary, "model_summary")
"""

from __future__ import annotations

import inspect
import logging
import os
import re
import sys
import warnings
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any

from rich.prompt import Confirm

from resultcheck.config import ResultcheckConfig, load_config
from resultcheck.context import is_strict, strict_mode
from resultcheck.errors import (
    ErrorContext,
    InvalidPathError,
    SnapshotMismatchError,
    SnapshotMismatchWarning,
    SnapshotMissingError,
)
from resultcheck.root import find_root
from resultcheck.snapshots.diff import DiffResult
from resultcheck.snapshots.render import DefaultRenderer, Renderer
from resultcheck.snapshots.strategies import SnapshotKind, SnapshotStrategy, get_strategy

logger = logging.getLogger(__name__)

INTERACTIVE_BUCKET = "interactive"
_PACKAGE_DIR = Path(__file__).resolve().parent.parent
_SCRIPT_SUFFIX = re.compile(r"\.py$", re.IGNORECASE)


class SnapshotOutcome(Enum):
    CREATED = "created"
    MATCHED = "matched"
    UPDATED = "updated"
    NOT_UPDATED = "not_updated"


@dataclass(frozen=True)
class SnapshotResult:
    """What happened to a snapshot in one ``record`` call.

    Attributes:
        outcome: Created, matched, updated, or left stale.
        path: Snapshot file location.
        diff: Differences against the stored payload, when one was compared.
    """

    outcome: SnapshotOutcome
    path: Path
    diff: DiffResult | None = None

    @property
    def ok(self) -> bool:
        """False only when a differing snapshot was left as it was."""
        return self.outcome is not SnapshotOutcome.NOT_UPDATED

    def __bool__(self) -> bool:
        return self.ok


def validate_snapshot_name(name: str, what: str = "snapshot name") -> str:
    """Reject names that would escape or collapse the bucket directory."""
    if not isinstance(name, str) or not name:
        raise InvalidPathError(f"Invalid {what}: must be a non-empty string, got {name!r}")
    if "/" in name or "\\" in name or name in (".", ".."):
        raise InvalidPathError(
            f"Invalid {what}: {name!r} must not contain path separators or be '.' or '..'",
            context=ErrorContext(snapshot=name),
        )
    return name


def _inside_package(path: Path) -> bool:
    return _PACKAGE_DIR in path.resolve().parents


def infer_bucket() -> str:
    """Name of the nearest calling script outside this package.

    Falls back to ``"interactive"`` when every frame comes from the package
    itself, a console or generated code.
    """
    frame = inspect.currentframe()
    try:
        while frame is not None:
            filename = frame.f_code.co_filename
            if filename and not filename.startswith("<"):
                path = Path(filename)
                if path.is_file() and not _inside_package(path):
                    return path.stem
            frame = frame.f_back
    finally:
        del frame
    return INTERACTIVE_BUCKET


class SnapshotStore:
    """Records values and compares them against earlier recordings.

    Args:
        root: Project root. Resolved with ``find_root()`` on every call when
            omitted, so the store follows sandboxed runs.
        config: Settings to use instead of the project's resultcheck.yml.
        confirm: Callable asked ``confirm(question) -> bool`` before a
            permissive-mode overwrite. Defaults to a terminal prompt when
            stdin is a TTY.
        renderer: Renderer for text snapshots.
    """

    def __init__(
        self,
        root: str | os.PathLike[str] | None = None,
        config: ResultcheckConfig | None = None,
        confirm: Callable[[str], bool] | None = None,
        renderer: Renderer | None = None,
    ) -> None:
        self._root = Path(root) if root is not None else None
        self._config = config
        self.confirm = confirm
        self.renderer = renderer

    @property
    def root(self) -> Path:
        if self._root is not None:
            return self._root
        return find_root()

    def _settings(self, root: Path) -> ResultcheckConfig:
        return self._config or load_config(root)

    def _strategy(self, config: ResultcheckConfig, kind: SnapshotKind | str | None) -> SnapshotStrategy:
        renderer = self.renderer or DefaultRenderer(width=config.render_width)
        return get_strategy(kind or config.default_kind, renderer=renderer)

    def _build_path(
        self,
        root: Path,
        config: ResultcheckConfig,
        name: str,
        script_bucket: str | None,
        extension: str,
    ) -> Path:
        validate_snapshot_name(name)
        if script_bucket is None:
            bucket = infer_bucket()
        else:
            bucket = validate_snapshot_name(_SCRIPT_SUFFIX.sub("", script_bucket), "script bucket")

        directory = root / config.snapshot_dir / bucket
        directory.mkdir(parents=True, exist_ok=True)
        return directory / f"{name}.{extension}"

    def path_for(self, name: str, script_bucket: str | None = None, extension: str = "md") -> Path:
        """Location of a snapshot file, creating its bucket directory.

        Raises:
            InvalidPathError: If ``name`` or ``script_bucket`` is unsafe.
            RootNotFoundError: If no project root can be found.
        """
        root = self.root
        return self._build_path(root, self._settings(root), name, script_bucket, extension)

    def record(
        self,
        value: Any,
        name: str,
        script_bucket: str | None = None,
        *,
        kind: SnapshotKind | str | None = None,
        interactive: bool = True,
    ) -> SnapshotResult:
        """Create a snapshot, or compare ``value`` against the stored one.

        Args:
            value: Value to record.
            name: Snapshot name, unique within its bucket.
            script_bucket: Bucket name. Inferred from the calling script
                when omitted.
            kind: Payload format. Defaults to the configured default_kind.
            interactive: Allow a confirmation prompt on mismatch.

        Returns:
            SnapshotResult describing the outcome.

        Raises:
            SnapshotMissingError: In strict mode, when nothing is recorded.
            SnapshotMismatchError: In strict mode, when the value differs.
        """
        root = self.root
        config = self._settings(root)
        strategy = self._strategy(config, kind)
        path = self._build_path(root, config, name, script_bucket, strategy.extension)
        label = f"{path.parent.name}/{path.name}"
        strict = is_strict()
        context = ErrorContext(path=str(path), snapshot=name)

        if not path.exists():
            if strict:
                raise SnapshotMissingError(
                    f"Snapshot does not exist: {name}\n"
                    "Run interactively first with snapshot() to create it.",
                    context=context,
                )
            strategy.write(path, value)
            logger.info("New snapshot saved: %s", label)
            return SnapshotResult(SnapshotOutcome.CREATED, path)

        diff = strategy.compare(strategy.read(path), value)

        if not diff.has_differences:
            if not strict:
                logger.info("Snapshot matches: %s", name)
            return SnapshotResult(SnapshotOutcome.MATCHED, path, diff)

        if strict:
            raise SnapshotMismatchError(
                f"Snapshot differences found for: {name}\n{diff.format()}",
                diff=diff,
                context=context,
            )

        warnings.warn(
            SnapshotMismatchWarning(
                f"Snapshot differences found for: {name}\nFile: {path}\n\n{diff.format()}"
            ),
            stacklevel=2,
        )

        if interactive and config.interactive and self._ask(f"Update snapshot {label}?"):
            strategy.write(path, value)
            logger.info("Snapshot updated: %s", label)
            return SnapshotResult(SnapshotOutcome.UPDATED, path, diff)

        logger.info("Snapshot not updated: %s", label)
        return SnapshotResult(SnapshotOutcome.NOT_UPDATED, path, diff)

    def _ask(self, question: str) -> bool:
        if self.confirm is not None:
            return bool(self.confirm(question))
        if sys.stdin is None or not sys.stdin.isatty():
            logger.info("No interactive terminal; run interactively to update snapshots")
            return False
        return Confirm.ask(question, default=False)


default_store = SnapshotStore()


def snapshot(
    value: Any,
    name: str,
    script_bucket: str | None = None,
    *,
    kind: SnapshotKind | str | None = None,
    interactive: bool = True,
) -> SnapshotResult:
    """Record ``value`` or compare it with its snapshot. See SnapshotStore.record."""
    return default_store.record(value, name, script_bucket, kind=kind, interactive=interactive)


def expect_snapshot_value(
    value: Any,
    name: str,
    script_bucket: str | None = None,
    *,
    kind: SnapshotKind | str | None = None,
) -> SnapshotResult:
    """Assert that ``value`` matches its snapshot, regardless of mode.

    Raises:
        SnapshotMissingError: If no snapshot has been recorded.
        SnapshotMismatchError: If the value differs.
    """
    with strict_mode():
        return default_store.record(value, name, script_bucket, kind=kind, interactive=False)


def get_snapshot_path(name: str, script_bucket: str | None = None, extension: str = "md") -> Path:
    """Location of a snapshot file in the current project."""
    return default_store.path_for(name, script_bucket, extension)
