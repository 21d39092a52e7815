"""Explicit dependency graph for per-session derived values.

Signals hold values set from outside (the selected state, the clicked
tract, fetched datasets). Derived nodes declare the names they read and are
recomputed, in declaration order, whenever one of those names changes.
Because a derived node may only depend on nodes declared before it,
declaration order is always a valid topological order.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Any, Callable

logger = logging.getLogger(__name__)

Observer = Callable[[str, Any], None]

_SCALARS = (str, int, float, bool, tuple, type(None))


def _unchanged(old: Any, new: Any) -> bool:
    if old is new:
        return True
    # DataFrames and figures do not support a boolean ==; only scalars are compared by value
    if isinstance(old, _SCALARS) and isinstance(new, _SCALARS) and type(old) is type(new):
        return old == new
    return False


class ReactiveGraph:
    def __init__(self) -> None:
        self._order: list[str] = []
        self._values: dict[str, Any] = {}
        self._versions: dict[str, int] = {}
        self._deps: dict[str, tuple[str, ...]] = {}
        self._compute: dict[str, Callable[..., Any]] = {}
        self._observers: dict[str, list[Observer]] = defaultdict(list)

    # -- declaration --------------------------------------------------------

    def signal(self, name: str, initial: Any = None) -> None:
        self._declare(name)
        self._values[name] = initial

    def derived(self, name: str, deps: list[str], fn: Callable[..., Any]) -> None:
        """Declare *name* = fn(*values of deps*) and compute it immediately."""
        for dep in deps:
            if dep not in self._versions:
                raise KeyError(f"{name!r} depends on undeclared node {dep!r}")
        self._declare(name)
        self._deps[name] = tuple(deps)
        self._compute[name] = fn
        self._values[name] = fn(*(self._values[d] for d in deps))

    def _declare(self, name: str) -> None:
        if name in self._versions:
            raise ValueError(f"Node {name!r} already declared")
        self._order.append(name)
        self._versions[name] = 0

    # -- access -------------------------------------------------------------

    def get(self, name: str) -> Any:
        return self._values[name]

    def version(self, name: str) -> int:
        """Number of times *name* has changed since declaration."""
        return self._versions[name]

    def observe(self, name: str, callback: Observer) -> Callable[[], None]:
        """Call ``callback(name, value)`` after every change of *name*.

        Returns a function that removes the observer.
        """
        if name not in self._versions:
            raise KeyError(name)
        self._observers[name].append(callback)
        return lambda: self._observers[name].remove(callback)

    # -- updates ------------------------------------------------------------

    def set(self, name: str, value: Any) -> bool:
        """Set one signal. Returns False when the value did not change."""
        return bool(self.update({name: value}))

    def update(self, values: dict[str, Any]) -> list[str]:
        """Set several signals at once and propagate a single time.

        Returns the names of every node that changed, in topological order.
        """
        changed: set[str] = set()
        for name, value in values.items():
            if name not in self._versions:
                raise KeyError(name)
            if name in self._compute:
                raise ValueError(f"{name!r} is derived and cannot be set")
            if _unchanged(self._values[name], value):
                continue
            self._values[name] = value
            self._versions[name] += 1
            changed.add(name)

        if not changed:
            return []

        for name in self._order:
            deps = self._deps.get(name)
            if deps is None or not changed.intersection(deps):
                continue
            self._values[name] = self._compute[name](*(self._values[d] for d in deps))
            self._versions[name] += 1
            changed.add(name)

        ordered = [n for n in self._order if n in changed]
        logger.debug("Recomputed: %s", ", ".join(ordered))
        for name in ordered:
            for callback in list(self._observers[name]):
                callback(name, self._values[name])
        return ordered
