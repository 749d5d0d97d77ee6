"""Bidirectional reference graph between cells."""

from __future__ import annotations

from collections.abc import Iterable


class DependencyGraph:
    """Tracks which cells each cell reads ("dependees") and is read by ("dependents").

    An edge ``(s, t)`` means *t* depends on *s*: *t*'s formula mentions *s*.
    Both indexes are kept symmetric and empty entries are pruned, so a name
    with no entry simply has no edges. Names may refer to cells that hold
    nothing yet.
    """

    __slots__ = ("dependees", "dependents", "_size")

    def __init__(self) -> None:
        # cell -> set of cells it reads from
        self.dependees: dict[str, set[str]] = {}
        # cell -> set of cells that read from it (reverse edges)
        self.dependents: dict[str, set[str]] = {}
        self._size = 0

    def __len__(self) -> int:
        """Number of edges."""
        return self._size

    def has_dependents(self, name: str) -> bool:
        return name in self.dependents

    def has_dependees(self, name: str) -> bool:
        return name in self.dependees

    def get_dependents(self, name: str) -> set[str]:
        """Cells that directly depend on *name* (a copy)."""
        return set(self.dependents.get(name, ()))

    def get_dependees(self, name: str) -> set[str]:
        """Cells *name* directly depends on (a copy)."""
        return set(self.dependees.get(name, ()))

    def add_dependency(self, dependee: str, dependent: str) -> None:
        """Record that *dependent* reads *dependee*. Adding an existing edge is a no-op."""
        reads = self.dependees.setdefault(dependent, set())
        if dependee in reads:
            return
        reads.add(dependee)
        self.dependents.setdefault(dependee, set()).add(dependent)
        self._size += 1

    def remove_dependency(self, dependee: str, dependent: str) -> None:
        """Drop the edge if present."""
        reads = self.dependees.get(dependent)
        if reads is None or dependee not in reads:
            return
        reads.discard(dependee)
        if not reads:
            del self.dependees[dependent]
        readers = self.dependents[dependee]
        readers.discard(dependent)
        if not readers:
            del self.dependents[dependee]
        self._size -= 1

    def replace_dependees(self, name: str, new_dependees: Iterable[str]) -> None:
        """Replace every "*name* depends on X" edge with edges to *new_dependees*."""
        for old in self.get_dependees(name):
            self.remove_dependency(old, name)
        for new in new_dependees:
            self.add_dependency(new, name)

    def replace_dependents(self, name: str, new_dependents: Iterable[str]) -> None:
        """Replace every "X depends on *name*" edge with edges from *new_dependents*."""
        for old in self.get_dependents(name):
            self.remove_dependency(name, old)
        for new in new_dependents:
            self.add_dependency(name, new)
