"""Failure propagation - skip tasks that can no longer become eligible.

When a task fails (or is skipped), every pending task reachable from it
along dependent edges can never see all of its dependencies complete, so
it is moved to skipped. Running, completed, failed and already-skipped
tasks are left alone; in-flight work is never cancelled.
"""

from collections import deque
from typing import TYPE_CHECKING

from loguru import logger

from taskwave.dag.models import StatusTransition, TaskStatus

if TYPE_CHECKING:
    from taskwave.dag.graph import DependencyGraph

BLOCKING_STATUSES = (TaskStatus.FAILED, TaskStatus.SKIPPED)


def _skip_reason(graph: "DependencyGraph", dependency_id: str) -> str:
    if graph.status_of(dependency_id) == TaskStatus.FAILED:
        return f"dependency {dependency_id} failed"
    return f"dependency {dependency_id} was skipped"


def collect_skips(graph: "DependencyGraph", origin: str) -> list[StatusTransition]:
    """
    Skip every pending descendant of ``origin`` (breadth-first).

    The caller must hold the graph lock; events are returned, not emitted.

    Returns:
        The skip transitions applied, in walk order.
    """
    events: list[StatusTransition] = []
    queue: deque[str] = deque([origin])

    while queue:
        current = queue.popleft()
        reason = _skip_reason(graph, current)

        for dependent in graph.dependents_of(current):
            if graph.status_of(dependent) != TaskStatus.PENDING:
                continue
            events.append(graph._apply_transition(dependent, TaskStatus.SKIPPED, reason))
            queue.append(dependent)

    if events:
        logger.info(
            f"Skipped {len(events)} task(s) downstream of {origin}: "
            f"{', '.join(e.task_id for e in events)}"
        )
    return events


def propagate_failure(graph: "DependencyGraph", task_id: str) -> list[str]:
    """
    Skip the pending descendants of a failed or skipped task.

    ``DependencyGraph.fail`` already does this; call it directly when a
    skipped task is discovered to still have pending dependents.

    Args:
        graph: Graph owning the task.
        task_id: A task in the failed or skipped state.

    Returns:
        IDs of the tasks skipped, in walk order. Empty if the task is not
        failed or skipped.

    Raises:
        TaskNotFoundError: If the ID is unknown.
    """
    with graph._lock:
        status = graph.status_of(task_id)
        if status not in BLOCKING_STATUSES:
            logger.debug(f"Not propagating from {task_id}: status is {status.value}")
            return []
        events = collect_skips(graph, task_id)

    graph._emit(events)
    return [event.task_id for event in events]


def sweep_unreachable(graph: "DependencyGraph") -> list[str]:
    """
    Skip every pending task that has a failed or skipped dependency.

    Run before dispatching a wave so that no task whose dependency chain
    cannot complete is ever started.

    Returns:
        IDs of the tasks skipped by the sweep.
    """
    events: list[StatusTransition] = []

    with graph._lock:
        for task_id in graph.task_ids:
            if graph.status_of(task_id) != TaskStatus.PENDING:
                continue

            blocked = [
                dep for dep in graph.dependencies_of(task_id)
                if graph.status_of(dep) in BLOCKING_STATUSES
            ]
            if not blocked:
                continue

            events.append(
                graph._apply_transition(
                    task_id, TaskStatus.SKIPPED, _skip_reason(graph, blocked[0])
                )
            )
            events.extend(collect_skips(graph, task_id))

    graph._emit(events)
    return [event.task_id for event in events]
