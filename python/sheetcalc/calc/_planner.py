"""Recalculation order for the cells affected by a change."""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Iterator

from sheetcalc._exceptions import CircularReferenceError
from sheetcalc.calc._graph import DependencyGraph

logger = logging.getLogger(__name__)


class RecalcPlanner:
    """Orders a changed cell and everything downstream of it for re-evaluation.

    Depth-first over the dependents relation: a cell is prepended to the
    order once all of its dependents have been visited, so every cell comes
    before everything that reads it. Reaching the changed cell again means
    the graph now has a cycle through it.

    The walk uses an explicit stack, so chain length is not bounded by the
    interpreter's recursion limit. The planner never mutates the graph and
    may be called speculatively.
    """

    __slots__ = ("_graph",)

    def __init__(self, graph: DependencyGraph) -> None:
        self._graph = graph

    def plan(self, changed: str) -> list[str]:
        """Return *changed* followed by its transitive dependents in evaluation order.

        Raises CircularReferenceError if *changed* is reachable from itself.
        """
        order: deque[str] = deque()
        visited: set[str] = {changed}
        stack: list[tuple[str, Iterator[str]]] = [
            (changed, iter(self._graph.get_dependents(changed)))
        ]

        while stack:
            cell, pending = stack[-1]
            for dependent in pending:
                if dependent == changed:
                    raise CircularReferenceError(changed)
                if dependent not in visited:
                    visited.add(dependent)
                    stack.append((dependent, iter(self._graph.get_dependents(dependent))))
                    break
            else:
                # All dependents of cell are placed.
                stack.pop()
                order.appendleft(cell)

        logger.debug("Recalculation order for %s: %s", changed, list(order))
        return list(order)
