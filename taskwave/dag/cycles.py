"""Cycle detection over task dependency edges."""

from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING

from taskwave.dag.exceptions import CycleError

if TYPE_CHECKING:
    from taskwave.dag.graph import DependencyGraph

WHITE, GRAY, BLACK = 0, 1, 2


def _edges(graph: "DependencyGraph | Mapping[str, Sequence[str]]") -> dict[str, list[str]]:
    if isinstance(graph, Mapping):
        return {task_id: list(deps) for task_id, deps in graph.items()}
    return {task_id: graph.dependencies_of(task_id) for task_id in graph.task_ids}


def find_cycle(graph: "DependencyGraph | Mapping[str, Sequence[str]]") -> list[str] | None:
    """
    Find a circular dependency using three-colour depth-first search.

    Traversal follows dependency edges from each unvisited task in input
    order. An explicit stack replaces recursion, so chain length is not
    limited by the interpreter's recursion limit. Nothing is mutated.

    Args:
        graph: A DependencyGraph, or a mapping of task ID -> dependency IDs.

    Returns:
        The cycle as a list of IDs with the first repeated at the end, or
        None if the graph is acyclic.

    Example:
        >>> find_cycle({"T1": ["T2"], "T2": ["T1"]})
        ['T1', 'T2', 'T1']
    """
    edges = _edges(graph)
    colors: dict[str, int] = {task_id: WHITE for task_id in edges}

    for start in edges:
        if colors[start] != WHITE:
            continue

        colors[start] = GRAY
        path = [start]
        stack = [iter(edges[start])]

        while stack:
            neighbor = next(stack[-1], None)

            if neighbor is None:
                stack.pop()
                colors[path.pop()] = BLACK
                continue

            if neighbor not in colors:
                continue  # dangling references are rejected at build time

            if colors[neighbor] == GRAY:
                cycle_start = path.index(neighbor)
                return path[cycle_start:] + [neighbor]

            if colors[neighbor] == WHITE:
                colors[neighbor] = GRAY
                path.append(neighbor)
                stack.append(iter(edges[neighbor]))

    return None


def detect_cycle(graph: "DependencyGraph | Mapping[str, Sequence[str]]") -> None:
    """
    Raise if the graph contains a circular dependency.

    Raises:
        CycleError: With the cycle path, e.g. ``T1 -> T2 -> T1``.
    """
    cycle = find_cycle(graph)
    if cycle:
        raise CycleError(cycle)
