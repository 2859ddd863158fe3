"""Snapshot comparison strategies.

Each strategy owns one payload format and the comparison that goes with it:

- ``SnapshotKind.TEXT``: the value rendered to Markdown-like text, compared
  line by line. Readable in review, tolerant of types that cannot be
  serialized.
- ``SnapshotKind.EXACT``: the value pickled, compared structurally after
  loading. Requires the value to survive a pickle round trip.
"""

from __future__ import annotations

import pickle
from abc import ABC, abstractmethod
from enum import Enum
from pathlib import Path
from typing import Any, ClassVar

from resultcheck.errors import ConfigValidationError
from resultcheck.snapshots.diff import DiffResult, ValueDiff, diff_lines
from resultcheck.snapshots.render import DefaultRenderer, Renderer

PICKLE_PROTOCOL = 4


class SnapshotKind(str, Enum):
    """Payload format of a snapshot."""

    TEXT = "text"
    EXACT = "exact"


class SnapshotStrategy(ABC):
    """Serialize, load and compare snapshot payloads of one kind."""

    kind: ClassVar[SnapshotKind]
    extension: ClassVar[str]

    @abstractmethod
    def dump(self, value: Any) -> bytes:
        """Serialize a value into the payload written to disk."""

    @abstractmethod
    def load(self, payload: bytes) -> Any:
        """Turn a stored payload back into a comparable form."""

    @abstractmethod
    def compare(self, stored: Any, value: Any) -> DiffResult:
        """Compare a loaded payload with a freshly computed value."""

    def read(self, path: Path) -> Any:
        return self.load(path.read_bytes())

    def write(self, path: Path, value: Any) -> None:
        path.write_bytes(self.dump(value))


class ExactValueStrategy(SnapshotStrategy):
    kind = SnapshotKind.EXACT
    extension = "pkl"

    def __init__(self, differ: ValueDiff | None = None) -> None:
        self.differ = differ or ValueDiff()

    def dump(self, value: Any) -> bytes:
        return pickle.dumps(value, protocol=PICKLE_PROTOCOL)

    def load(self, payload: bytes) -> Any:
        return pickle.loads(payload)

    def compare(self, stored: Any, value: Any) -> DiffResult:
        return self.differ.compare(stored, value)


class RenderedTextStrategy(SnapshotStrategy):
    kind = SnapshotKind.TEXT
    extension = "md"

    def __init__(self, renderer: Renderer | None = None) -> None:
        self.renderer = renderer or DefaultRenderer()

    def dump(self, value: Any) -> bytes:
        return self.renderer.render(value).encode("utf-8")

    def load(self, payload: bytes) -> str:
        return payload.decode("utf-8")

    def compare(self, stored: str, value: Any) -> DiffResult:
        return diff_lines(stored.splitlines(), self.renderer.render(value).splitlines())


def get_strategy(
    kind: SnapshotKind | str,
    renderer: Renderer | None = None,
) -> SnapshotStrategy:
    """Build the strategy for a snapshot kind.

    Raises:
        ConfigValidationError: If ``kind`` is not a known snapshot kind.
    """
    try:
        kind = SnapshotKind(kind.lower() if isinstance(kind, str) else kind)
    except ValueError as e:
        valid = [k.value for k in SnapshotKind]
        raise ConfigValidationError(
            message=f"Unknown snapshot kind: {kind!r}. Valid: {valid}",
            field="kind",
            value=kind,
            cause=e,
        ) from e

    if kind is SnapshotKind.EXACT:
        return ExactValueStrategy()
    return RenderedTextStrategy(renderer)
