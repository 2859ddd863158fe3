"""Deterministic text rendering of values for text snapshots.

The text payload is meant to be read in code review and diffed by version
control, so rendering must not depend on hash seeds, memory addresses or
insertion order. Any object with a ``render(value) -> str`` method can be
plugged into the store in place of ``DefaultRenderer``.
"""

from __future__ import annotations

import dataclasses
import pprint
import re
from collections.abc import Mapping
from typing import Any, Protocol, runtime_checkable

from pydantic import BaseModel

from resultcheck.snapshots.diff import object_state, slot_names

_ADDRESS = re.compile(r" at 0x[0-9A-Fa-f]+")
MAX_LISTED_NAMES = 20


@runtime_checkable
class Renderer(Protocol):
    """Turns a value into the text stored in a text snapshot."""

    def render(self, value: Any) -> str: ...


class _Verbatim:
    """Wrapper whose repr is a precomputed string, for pprint."""

    def __init__(self, text: str) -> None:
        self.text = text

    def __repr__(self) -> str:
        return self.text


def strip_addresses(text: str) -> str:
    return _ADDRESS.sub("", text)


def type_name(value: Any) -> str:
    cls = type(value)
    if cls.__module__ == "builtins":
        return cls.__qualname__
    return f"{cls.__module__}.{cls.__qualname__}"


def _has_default_repr(value: Any) -> bool:
    return type(value).__repr__ is object.__repr__


def _has_state(value: Any) -> bool:
    return hasattr(value, "__dict__") or bool(slot_names(type(value)))


def _list_names(names: list[str]) -> str:
    shown = ", ".join(names[:MAX_LISTED_NAMES])
    if len(names) > MAX_LISTED_NAMES:
        shown += f", ... ({len(names) - MAX_LISTED_NAMES} more)"
    return shown


class DefaultRenderer:
    """Renders values as a header, a structure section and a content section.

    Example:
        >>> print(DefaultRenderer().render({"b": 2, "a": 1}))
        # Snapshot: dict
        <BLANKLINE>
        ## Structure
        <BLANKLINE>
        mapping with 2 keys: 'a', 'b'
        <BLANKLINE>
        ## Content
        <BLANKLINE>
        {'a': 1, 'b': 2}
        <BLANKLINE>
    """

    def __init__(self, width: int = 80) -> None:
        self.width = width

    def render(self, value: Any) -> str:
        sections = [
            f"# Snapshot: {type_name(value)}",
            "",
            "## Structure",
            "",
            self.describe_structure(value),
            "",
            "## Content",
            "",
            self.format_content(value),
            "",
        ]
        return "\n".join(sections)

    def describe_structure(self, value: Any) -> str:
        """One-paragraph description of the value's shape."""
        if isinstance(value, Mapping):
            if not value:
                return "empty mapping"
            keys = [repr(k) for k in self._sorted(value.keys())]
            return f"mapping with {len(keys)} keys: {_list_names(keys)}"
        if isinstance(value, (list, tuple)):
            element_types = sorted({type(v).__name__ for v in value})
            description = f"{type(value).__name__} of length {len(value)}"
            if element_types:
                description += f"; element types: {', '.join(element_types)}"
            return description
        if isinstance(value, (set, frozenset)):
            return f"{type(value).__name__} of size {len(value)}"
        if isinstance(value, str):
            return f"str of length {len(value)}, {len(value.splitlines())} lines"
        if isinstance(value, (bytes, bytearray)):
            return f"{type(value).__name__} of length {len(value)}"
        if dataclasses.is_dataclass(value) and not isinstance(value, type):
            fields = [f"{f.name} ({type(getattr(value, f.name)).__name__})" for f in dataclasses.fields(value)]
            return f"dataclass with fields: {_list_names(fields)}"
        if isinstance(value, BaseModel):
            fields = [f"{name} ({type(getattr(value, name)).__name__})" for name in type(value).model_fields]
            return f"model with fields: {_list_names(fields)}"

        lines = []
        shape = getattr(value, "shape", None)
        if isinstance(shape, tuple):
            lines.append(f"shape: {shape}")
        dtypes = getattr(value, "dtypes", None)
        if dtypes is not None and hasattr(dtypes, "items"):
            lines.extend(f"{column}: {dtype}" for column, dtype in dtypes.items())
        elif getattr(value, "dtype", None) is not None:
            lines.append(f"dtype: {value.dtype}")
        if lines:
            return "\n".join(lines)

        if _has_default_repr(value) and _has_state(value):
            names = sorted(object_state(value))
            return f"object with attributes: {_list_names(names)}"
        return "scalar"

    def format_content(self, value: Any) -> str:
        """Pretty-print the value with stable ordering."""
        return pprint.pformat(self._normalize(value), width=self.width, sort_dicts=True)

    def _sorted(self, items: Any) -> list[Any]:
        items = list(items)
        try:
            return sorted(items)
        except TypeError:
            return sorted(items, key=repr)

    def _normalize(self, value: Any, _active: frozenset[int] = frozenset()) -> Any:
        """Convert a value into something pprint renders deterministically.

        ``_active`` holds the ids of the containers currently being
        expanded; meeting one again renders a recursion marker.
        """
        if isinstance(value, (str, bytes, int, float, complex, bool, type(None))):
            return value
        if id(value) in _active:
            return _Verbatim(f"<Recursion on {type(value).__name__}>")
        active = _active | {id(value)}

        if isinstance(value, Mapping):
            return {k: self._normalize(v, active) for k, v in value.items()}
        if isinstance(value, list):
            return [self._normalize(v, active) for v in value]
        if isinstance(value, tuple) and not hasattr(value, "_fields"):
            return tuple(self._normalize(v, active) for v in value)
        if isinstance(value, (set, frozenset)):
            elements = [pprint.pformat(self._normalize(v, active), width=self.width) for v in value]
            elements.sort()
            if not elements:
                return _Verbatim(f"{type(value).__name__}()")
            body = "{" + ", ".join(elements) + "}"
            if isinstance(value, frozenset):
                body = f"frozenset({body})"
            return _Verbatim(body)
        if dataclasses.is_dataclass(value) and not isinstance(value, type):
            return {f.name: self._normalize(getattr(value, f.name), active) for f in dataclasses.fields(value)}
        if isinstance(value, BaseModel):
            return self._normalize(value.model_dump(), active)
        if _has_default_repr(value) and _has_state(value):
            return {k: self._normalize(v, active) for k, v in object_state(value).items()}
        return _Verbatim(strip_addresses(repr(value)))
