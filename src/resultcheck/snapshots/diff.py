"""Structural and line-oriented diffing for snapshot comparison.

Two algorithms feed the snapshot strategies:

- ``ValueDiff`` walks two Python values in parallel (mappings, sequences,
  sets, dataclasses, pydantic models, plain objects) and reports every
  location where they disagree.
- ``diff_lines`` aligns two line sequences by index and reports changed
  line numbers.

Both produce a ``DiffResult``; values present on only one side are
recorded as ``ABSENT`` rather than dropped.

Example:
    >>> result = ValueDiff().compare({"a": [1, 2]}, {"a": [1, 3]})
    >>> print(result.format())
    old["a"][1]: 2 -> 3
"""

from __future__ import annotations

import dataclasses
import math
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from pydantic import BaseModel

MAX_REPR_LENGTH = 200


class _Absent:
    """Marker for a value that exists on only one side of a comparison."""

    _instance: _Absent | None = None

    def __new__(cls) -> _Absent:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "<absent>"

    def __bool__(self) -> bool:
        return False

    def __reduce__(self) -> str:
        return "ABSENT"


ABSENT = _Absent()


class DiffKind(Enum):
    """Types of discrepancy between two values."""

    ADDED = "added"
    REMOVED = "removed"
    CHANGED = "changed"
    TYPE_CHANGED = "type_changed"


@dataclass
class Discrepancy:
    """A single difference found by a comparison.

    Attributes:
        location: Where the values disagree (e.g. ``old["a"][2].x`` or
            ``line 4``).
        old: Value in the stored snapshot, or ABSENT.
        new: Value just computed, or ABSENT.
        kind: What sort of difference this is.
    """

    location: str
    old: Any
    new: Any
    kind: DiffKind = DiffKind.CHANGED

    def describe(self) -> str:
        old_text = _short_repr(self.old)
        new_text = _short_repr(self.new)
        if self.kind == DiffKind.TYPE_CHANGED:
            return (
                f"{self.location}: type {type(self.old).__name__} -> "
                f"{type(self.new).__name__} ({old_text} -> {new_text})"
            )
        return f"{self.location}: {old_text} -> {new_text}"

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "location": self.location,
            "kind": self.kind.value,
            "old": _short_repr(self.old),
            "new": _short_repr(self.new),
        }


@dataclass
class DiffResult:
    """Ordered list of discrepancies from one comparison."""

    discrepancies: list[Discrepancy] = field(default_factory=list)

    @property
    def has_differences(self) -> bool:
        return bool(self.discrepancies)

    def __len__(self) -> int:
        return len(self.discrepancies)

    def format(self, max_items: int = 50) -> str:
        """Render the discrepancies one per line for messages and warnings."""
        if not self.discrepancies:
            return "No differences"
        lines = [d.describe() for d in self.discrepancies[:max_items]]
        hidden = len(self.discrepancies) - max_items
        if hidden > 0:
            lines.append(f"... and {hidden} more differences")
        return "\n".join(lines)

    def to_dict(self) -> dict[str, Any]:
        return {
            "has_differences": self.has_differences,
            "discrepancies": [d.to_dict() for d in self.discrepancies],
        }


def _short_repr(value: Any) -> str:
    text = repr(value)
    if len(text) > MAX_REPR_LENGTH:
        text = text[: MAX_REPR_LENGTH - 3] + "..."
    return text


def _sorted_keys(keys: set[Any]) -> list[Any]:
    try:
        return sorted(keys)
    except TypeError:
        return sorted(keys, key=repr)


def _key_location(path: str, key: Any) -> str:
    if isinstance(key, str):
        return f'{path}["{key}"]'
    return f"{path}[{key!r}]"


def _is_nan(value: Any) -> bool:
    return isinstance(value, float) and math.isnan(value)


def _values_equal(old: Any, new: Any) -> bool:
    """Equality that copes with array-like and frame-like values."""
    if old is new:
        return True
    if _is_nan(old) and _is_nan(new):
        return True

    equals = getattr(old, "equals", None)
    if callable(equals) and not isinstance(old, (str, bytes)):
        return bool(equals(new))

    try:
        result = old == new
    except (TypeError, ValueError):
        # Array-likes with incompatible shapes refuse elementwise comparison.
        return False
    if isinstance(result, bool):
        return result
    reduce_all = getattr(result, "all", None)
    if callable(reduce_all):
        return bool(reduce_all())
    return bool(result)


def slot_names(cls: type) -> list[str]:
    """Names of the ``__slots__`` declared anywhere in the class hierarchy."""
    names: list[str] = []
    for klass in reversed(cls.__mro__):
        slots = klass.__dict__.get("__slots__", ())
        if isinstance(slots, str):
            slots = (slots,)
        for name in slots:
            if name in ("__dict__", "__weakref__"):
                continue
            if name.startswith("__") and not name.endswith("__"):
                name = f"_{klass.__name__.lstrip('_')}{name}"
            if name not in names:
                names.append(name)
    return names


def object_state(value: Any) -> dict[str, Any]:
    """Instance attributes from ``__dict__`` and any filled slots."""
    state = dict(vars(value)) if hasattr(value, "__dict__") else {}
    for name in slot_names(type(value)):
        if hasattr(value, name):
            state[name] = getattr(value, name)
    return state


def _uses_identity_equality(value: Any) -> bool:
    if type(value).__eq__ is not object.__eq__:
        return False
    return hasattr(value, "__dict__") or bool(slot_names(type(value)))


class ValueDiff:
    """Deep structural comparison of two Python values.

    Mapping keys are visited in sorted order and sequences by index, so the
    same pair of values always yields the same discrepancy list. Floats are
    compared exactly, except that two NaNs are considered equal.

    Example:
        >>> diff = ValueDiff()
        >>> result = diff.compare(stored_value, new_value)
        >>> for item in result.discrepancies:
        ...     print(f"{item.location}: {item.kind.value}")
    """

    def __init__(self, max_depth: int = 50, root_label: str = "old") -> None:
        """Initialize the differ.

        Args:
            max_depth: Nesting depth below which values are compared as a
                whole instead of field by field.
            root_label: Name used for the top-level value in locations.
        """
        self.max_depth = max_depth
        self.root_label = root_label

    def compare(self, old: Any, new: Any) -> DiffResult:
        """Compare two values.

        Args:
            old: The stored value.
            new: The newly computed value.

        Returns:
            DiffResult describing all differences.
        """
        items: list[Discrepancy] = []
        self._compare_recursive(old, new, self.root_label, items, depth=0)
        return DiffResult(items)

    def _compare_recursive(
        self,
        old: Any,
        new: Any,
        path: str,
        items: list[Discrepancy],
        depth: int,
    ) -> None:
        """Recursively compare two values."""
        if type(old) is not type(new):
            items.append(Discrepancy(path, old, new, DiffKind.TYPE_CHANGED))
            return

        if depth >= self.max_depth:
            if not _values_equal(old, new):
                items.append(Discrepancy(path, old, new))
            return

        if isinstance(old, Mapping):
            self._compare_mappings(old, new, path, items, depth)
        elif isinstance(old, Sequence) and not isinstance(old, (str, bytes, bytearray)):
            self._compare_sequences(old, new, path, items, depth)
        elif isinstance(old, (set, frozenset)):
            self._compare_sets(old, new, path, items)
        elif dataclasses.is_dataclass(old) and not isinstance(old, type):
            names = [f.name for f in dataclasses.fields(old)]
            self._compare_attributes(old, new, names, path, items, depth)
        elif isinstance(old, BaseModel):
            names = list(type(old).model_fields)
            self._compare_attributes(old, new, names, path, items, depth)
        elif _uses_identity_equality(old) and not isinstance(old, type):
            self._compare_mappings(
                object_state(old), object_state(new), path, items, depth, attribute=True
            )
        elif not _values_equal(old, new):
            items.append(Discrepancy(path, old, new))

    def _compare_mappings(
        self,
        old: Mapping[Any, Any],
        new: Mapping[Any, Any],
        path: str,
        items: list[Discrepancy],
        depth: int,
        attribute: bool = False,
    ) -> None:
        """Compare two mappings key by key."""
        for key in _sorted_keys(set(old) | set(new)):
            key_path = f"{path}.{key}" if attribute else _key_location(path, key)

            if key not in old:
                items.append(Discrepancy(key_path, ABSENT, new[key], DiffKind.ADDED))
            elif key not in new:
                items.append(Discrepancy(key_path, old[key], ABSENT, DiffKind.REMOVED))
            else:
                self._compare_recursive(old[key], new[key], key_path, items, depth + 1)

    def _compare_sequences(
        self,
        old: Sequence[Any],
        new: Sequence[Any],
        path: str,
        items: list[Discrepancy],
        depth: int,
    ) -> None:
        """Compare two sequences by index."""
        for i in range(max(len(old), len(new))):
            index_path = f"{path}[{i}]"

            if i >= len(old):
                items.append(Discrepancy(index_path, ABSENT, new[i], DiffKind.ADDED))
            elif i >= len(new):
                items.append(Discrepancy(index_path, old[i], ABSENT, DiffKind.REMOVED))
            else:
                self._compare_recursive(old[i], new[i], index_path, items, depth + 1)

    def _compare_sets(
        self,
        old: set[Any] | frozenset[Any],
        new: set[Any] | frozenset[Any],
        path: str,
        items: list[Discrepancy],
    ) -> None:
        for element in _sorted_keys(set(old - new)):
            items.append(Discrepancy(path, element, ABSENT, DiffKind.REMOVED))
        for element in _sorted_keys(set(new - old)):
            items.append(Discrepancy(path, ABSENT, element, DiffKind.ADDED))

    def _compare_attributes(
        self,
        old: Any,
        new: Any,
        names: list[str],
        path: str,
        items: list[Discrepancy],
        depth: int,
    ) -> None:
        for name in names:
            self._compare_recursive(
                getattr(old, name, ABSENT),
                getattr(new, name, ABSENT),
                f"{path}.{name}",
                items,
                depth + 1,
            )


def diff_lines(old_lines: Sequence[str], new_lines: Sequence[str]) -> DiffResult:
    """Compare two line sequences position by position.

    Line numbers in locations are 1-based. Lines beyond the end of the
    shorter sequence are reported against ABSENT.
    """
    items: list[Discrepancy] = []
    for i in range(max(len(old_lines), len(new_lines))):
        old = old_lines[i] if i < len(old_lines) else ABSENT
        new = new_lines[i] if i < len(new_lines) else ABSENT
        if old is ABSENT:
            items.append(Discrepancy(f"line {i + 1}", old, new, DiffKind.ADDED))
        elif new is ABSENT:
            items.append(Discrepancy(f"line {i + 1}", old, new, DiffKind.REMOVED))
        elif old != new:
            items.append(Discrepancy(f"line {i + 1}", old, new, DiffKind.CHANGED))
    return DiffResult(items)
