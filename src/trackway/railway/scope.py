"""Scope — the lookup environment every step closure runs in.

Steps need to read the values computed before them and the members of the
object that built the chain, without being coupled to either. The Scope
layers the two:

::

    scope.clean
       │
       ├── 1. ResultRecord["clean"]          (values computed so far this run)
       ├── 2. accessor(context, "clean")     (default: getattr)
       └── 3. ScopeLookupError               (propagates out of run)

The ResultRecord is created fresh for every run and only ever grows, in
step order. The Scope never writes to the context; mirroring is done by the
runner through an explicit writer.

Example::

    def has_no_special_chars(s):
        return s.clean.isalnum()

    scope["clean"]      # item access works too
    "clean" in scope    # True once the step ran
    scope._asdict()     # {"clean": "ann"}

Tags:
    trackway, railway, scope, lookup, result-record

Doc-Types:
    api-reference
"""

from __future__ import annotations

import operator
from collections.abc import Callable, Iterator, Mapping
from typing import Any

from trackway.core.errors import ScopeLookupError, TrackwayError

# Reads ``name`` from the context; raises AttributeError or KeyError if absent
AccessorFn = Callable[[Any, str], Any]
# Writes ``value`` to the context under ``name``
WriterFn = Callable[[Any, str, Any], None]


def attribute_accessor(context: Any, name: str) -> Any:
    """Default accessor: context members are attributes."""
    return getattr(context, name)


def mapping_accessor(context: Any, name: str) -> Any:
    """Accessor for dict-like contexts."""
    return context[name]


attribute_writer: WriterFn = setattr
mapping_writer: WriterFn = operator.setitem


class ResultRecord(Mapping[str, Any]):
    """Insertion-ordered, read-only view of the values computed in one run.

    Only the runner adds entries, through ``_store``; each name is stored at
    most once per run.
    """

    __slots__ = ("_values",)

    def __init__(self) -> None:
        self._values: dict[str, Any] = {}

    def _store(self, name: str, value: Any) -> None:
        if name in self._values:
            raise TrackwayError(f"Step '{name}' already stored a value in this run")
        self._values[name] = value

    def __getitem__(self, name: str) -> Any:
        return self._values[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"ResultRecord({list(self._values)!r})"


class Scope:
    """Two-level, read-only lookup over a ResultRecord and a context object.

    Attribute names beginning with ``_`` are never step names, so the Scope
    keeps its own state there. Dunder lookups are never forwarded to the
    context.
    """

    __slots__ = ("_record", "_context", "_accessor")

    def __init__(
        self,
        record: ResultRecord,
        context: Any = None,
        accessor: AccessorFn | None = None,
    ) -> None:
        object.__setattr__(self, "_record", record)
        object.__setattr__(self, "_context", context)
        object.__setattr__(self, "_accessor", accessor or attribute_accessor)

    def _resolve(self, name: str) -> Any:
        if name in self._record:
            return self._record[name]
        if self._context is None:
            raise ScopeLookupError(name)
        try:
            return self._accessor(self._context, name)
        except (AttributeError, KeyError) as exc:
            raise ScopeLookupError(name, cause=exc) from exc

    def __getattr__(self, name: str) -> Any:
        if name.startswith("__") and name.endswith("__"):
            raise AttributeError(name)
        return self._resolve(name)

    def __getitem__(self, name: str) -> Any:
        return self._resolve(name)

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError(f"Scope is read-only (cannot set {name!r})")

    def __contains__(self, name: object) -> bool:
        if not isinstance(name, str):
            return False
        try:
            self._resolve(name)
        except ScopeLookupError:
            return False
        return True

    def __iter__(self) -> Iterator[str]:
        return iter(self._record)

    def __len__(self) -> int:
        return len(self._record)

    def __dir__(self) -> list[str]:
        names = set(self._record)
        if self._context is not None:
            names.update(n for n in dir(self._context) if not n.startswith("__"))
        return sorted(names)

    def _asdict(self) -> dict[str, Any]:
        """Snapshot of the values computed so far, in step order."""
        return dict(self._record)

    def __repr__(self) -> str:
        context = type(self._context).__name__ if self._context is not None else None
        return f"Scope(steps={list(self._record)!r}, context={context})"
