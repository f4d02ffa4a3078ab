"""Dependency graph - builds task graphs and tracks per-task status.

The DependencyGraph exclusively owns its TaskNode values. Structure is
fixed once built; the only mutations after construction are status
transitions (guarded by a single re-entrant lock so concurrent workers can
report results) and the depth/wave assignment done by the wave computer.
"""

import threading
from collections.abc import Callable, Iterable, Iterator, Mapping, Sequence
from typing import Any

from loguru import logger

from taskwave.dag.cycles import detect_cycle
from taskwave.dag.exceptions import (
    DuplicateTaskError,
    IllegalTransitionError,
    MissingDependencyError,
    NoRootTasksError,
    TaskNotFoundError,
)
from taskwave.dag.models import (
    ALLOWED_TRANSITIONS,
    ExecutionWave,
    StatusTransition,
    TaskInput,
    TaskNode,
    TaskStatus,
    WaveStatus,
)
from taskwave.dag.propagation import collect_skips
from taskwave.dag.waves import compute_waves

TransitionListener = Callable[[StatusTransition], None]

TaskLike = TaskInput | Sequence[Any] | Mapping[str, Any]


class DependencyGraph:
    """
    Directed acyclic graph of tasks and their execution status.

    Build a graph with ``DependencyGraph.build`` (or ``build_graph``), then
    ``validate()`` and ``compute_waves()`` before running anything. Status
    changes go through ``start``, ``complete``, ``fail`` or ``set_status``.

    Example:
        >>> graph = DependencyGraph.build([("T1", []), ("T2", ["T1"])])
        >>> graph.compute_waves()
        >>> graph.start("T1")
        >>> graph.complete("T1")
        >>> graph.is_ready("T2")
        True
    """

    def __init__(self) -> None:
        self._nodes: dict[str, TaskNode] = {}
        self._roots: list[str] = []
        self._waves: list[ExecutionWave] = []
        self._lock = threading.RLock()
        self._listeners: list[TransitionListener] = []

    # =========================================================================
    # CONSTRUCTION
    # =========================================================================

    @classmethod
    def build(cls, tasks: Iterable[TaskLike]) -> "DependencyGraph":
        """
        Build a graph from a flat task list.

        Pass 1 inserts every node; pass 2 wires dependents and rejects
        references to unknown tasks; roots are identified last. Cycles are
        not detected here, see ``validate``.

        Args:
            tasks: TaskInput values, ``(id, deps[, payload])`` tuples, or
                mappings with ``id`` and ``dependencies`` keys.

        Returns:
            The constructed graph, all nodes pending.

        Raises:
            DuplicateTaskError: If two tasks share an ID.
            MissingDependencyError: If a dependency ID is not in the list.
        """
        graph = cls()

        for item in tasks:
            task = TaskInput.coerce(item)
            graph.add_task(task.id, task.dependencies, task.payload)

        graph._wire_dependents()
        graph._identify_roots()

        logger.debug(
            f"Built dependency graph with {graph.size} tasks and {len(graph._roots)} roots"
        )
        return graph

    def add_task(
        self,
        task_id: str,
        dependencies: Iterable[str] = (),
        payload: Any = None,
    ) -> None:
        """
        Insert a node without wiring its edges.

        A bare string is taken as a single dependency ID.

        Raises:
            DuplicateTaskError: If the ID is already present.
        """
        task = TaskInput(id=task_id, dependencies=dependencies, payload=payload)
        if task.id in self._nodes:
            raise DuplicateTaskError(task.id)

        self._nodes[task.id] = TaskNode(
            id=task.id,
            dependencies=list(task.dependencies),
            payload=task.payload,
        )

    def _wire_dependents(self) -> None:
        """Validate dependency references and fill each node's dependents."""
        for node in self._nodes.values():
            node.dependents = []

        for task_id, node in self._nodes.items():
            for dep_id in node.dependencies:
                dep_node = self._nodes.get(dep_id)
                if dep_node is None:
                    raise MissingDependencyError(task_id, dep_id)
                dep_node.dependents.append(task_id)

    def _identify_roots(self) -> None:
        self._roots = [
            task_id for task_id, node in self._nodes.items()
            if not node.dependencies
        ]

    # =========================================================================
    # STRUCTURE (READ-ONLY)
    # =========================================================================

    @property
    def size(self) -> int:
        """Number of tasks in the graph."""
        return len(self._nodes)

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, task_id: object) -> bool:
        return task_id in self._nodes

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._nodes))

    @property
    def task_ids(self) -> list[str]:
        """Task IDs in input order."""
        return list(self._nodes)

    @property
    def roots(self) -> list[str]:
        """IDs of tasks with no dependencies, in input order."""
        return list(self._roots)

    @property
    def waves(self) -> list[ExecutionWave]:
        """Copies of the computed waves (empty until ``compute_waves``)."""
        with self._lock:
            return [wave.model_copy(deep=True) for wave in self._waves]

    @property
    def has_waves(self) -> bool:
        """Whether waves have been computed for a non-empty graph."""
        return bool(self._waves)

    def _node(self, task_id: str) -> TaskNode:
        node = self._nodes.get(task_id)
        if node is None:
            raise TaskNotFoundError(task_id)
        return node

    def get_node(self, task_id: str) -> TaskNode:
        """
        Get a copy of a node.

        Raises:
            TaskNotFoundError: If the ID is unknown.
        """
        with self._lock:
            return self._node(task_id).snapshot()

    def nodes(self) -> dict[str, TaskNode]:
        """Copies of every node, keyed by ID in input order."""
        with self._lock:
            return {task_id: node.snapshot() for task_id, node in self._nodes.items()}

    def dependencies_of(self, task_id: str) -> list[str]:
        """IDs this task depends on, in declared order."""
        return list(self._node(task_id).dependencies)

    def dependents_of(self, task_id: str) -> list[str]:
        """IDs of tasks that depend on this task."""
        return list(self._node(task_id).dependents)

    def payload(self, task_id: str) -> Any:
        """The caller-supplied payload for a task."""
        return self._node(task_id).payload

    def depth_of(self, task_id: str) -> int:
        """Longest dependency chain ending at the task (valid after ``compute_waves``)."""
        return self._node(task_id).depth

    def wave_of(self, task_id: str) -> int | None:
        """Wave index of a task, or None if waves have not been computed."""
        node = self._node(task_id)
        return node.depth if self._waves else None

    # =========================================================================
    # VALIDATION AND WAVES
    # =========================================================================

    def validate(self) -> None:
        """
        Check the graph is acyclic and has at least one root.

        An empty graph is valid.

        Raises:
            CycleError: If a circular dependency exists.
            NoRootTasksError: If no task is free of dependencies.
        """
        if not self._nodes:
            return

        detect_cycle(self)

        if not self._roots:
            raise NoRootTasksError()

    def compute_waves(self) -> list[ExecutionWave]:
        """Validate and compute execution waves. See ``taskwave.dag.waves``."""
        return compute_waves(self)

    def _assign_waves(self, depths: dict[str, int], waves: list[ExecutionWave]) -> None:
        with self._lock:
            for task_id, depth in depths.items():
                self._nodes[task_id].depth = depth
            self._waves = waves

    def get_wave(self, index: int) -> ExecutionWave:
        """
        Copy of the wave at ``index`` (0-based).

        Raises:
            IndexError: If no such wave exists.
        """
        with self._lock:
            return self._waves[index].model_copy(deep=True)

    def set_wave_status(self, index: int, status: WaveStatus) -> None:
        """Record the execution status of a wave."""
        with self._lock:
            self._waves[index].status = status

    # =========================================================================
    # STATUS TRACKING
    # =========================================================================

    def status_of(self, task_id: str) -> TaskStatus:
        """
        Current status of a task.

        Raises:
            TaskNotFoundError: If the ID is unknown.
        """
        with self._lock:
            return self._node(task_id).status

    def statuses(self) -> dict[str, TaskStatus]:
        """Snapshot of every task's status."""
        with self._lock:
            return {task_id: node.status for task_id, node in self._nodes.items()}

    def counts(self) -> dict[TaskStatus, int]:
        """Number of tasks in each status (every status present, possibly 0)."""
        result = {status: 0 for status in TaskStatus}
        for status in self.statuses().values():
            result[status] += 1
        return result

    def tasks_with_status(self, status: TaskStatus) -> list[str]:
        """IDs of tasks currently in ``status``, in input order."""
        return [task_id for task_id, s in self.statuses().items() if s == status]

    def is_ready(self, task_id: str) -> bool:
        """Whether the task is pending and every dependency has completed."""
        with self._lock:
            node = self._node(task_id)
            return node.status == TaskStatus.PENDING and self._dependencies_completed(node)

    def ready_tasks(self, wave: ExecutionWave | int) -> list[str]:
        """Ready members of a wave, in wave order."""
        index = wave if isinstance(wave, int) else wave.index
        with self._lock:
            return [
                task_id for task_id in self._waves[index].task_ids
                if self.is_ready(task_id)
            ]

    def unmet_dependencies(self, task_id: str) -> list[str]:
        """Dependencies of the task that have not completed."""
        with self._lock:
            node = self._node(task_id)
            return [
                dep for dep in node.dependencies
                if self._nodes[dep].status != TaskStatus.COMPLETED
            ]

    def _dependencies_completed(self, node: TaskNode) -> bool:
        return all(
            self._nodes[dep].status == TaskStatus.COMPLETED
            for dep in node.dependencies
        )

    def start(self, task_id: str) -> None:
        """
        Move a task from pending to running.

        Raises:
            TaskNotFoundError: If the ID is unknown.
            IllegalTransitionError: If the task is not pending or a dependency
                has not completed.
        """
        with self._lock:
            node = self._node(task_id)
            if node.status == TaskStatus.PENDING:
                unmet = [
                    dep for dep in node.dependencies
                    if self._nodes[dep].status != TaskStatus.COMPLETED
                ]
                if unmet:
                    raise IllegalTransitionError(
                        task_id,
                        node.status.value,
                        TaskStatus.RUNNING.value,
                        detail=f"waiting on {', '.join(unmet)}",
                    )
            event = self._apply_transition(task_id, TaskStatus.RUNNING)

        self._emit([event])

    def complete(self, task_id: str) -> None:
        """Move a running task to completed."""
        self.set_status(task_id, TaskStatus.COMPLETED)

    def fail(self, task_id: str, reason: str | None = None) -> list[str]:
        """
        Move a running task to failed and skip its pending descendants.

        Returns:
            IDs of the tasks skipped as a consequence, in walk order.
        """
        events = self.set_status(task_id, TaskStatus.FAILED, reason=reason)
        return [event.task_id for event in events[1:]]

    def set_status(
        self,
        task_id: str,
        status: TaskStatus,
        reason: str | None = None,
    ) -> list[StatusTransition]:
        """
        Apply a state machine transition.

        Failing a task, or skipping one, also skips every pending task that
        depends on it, directly or transitively. A pending task can only be
        skipped directly when one of its dependencies has failed or been
        skipped.

        Args:
            task_id: Task to update.
            status: Requested status.
            reason: Optional human-readable reason carried on the event.

        Returns:
            Every transition applied, the requested one first.

        Raises:
            TaskNotFoundError: If the ID is unknown.
            IllegalTransitionError: If the change is not allowed; the graph is
                left unchanged.
        """
        status = TaskStatus(status)

        with self._lock:
            node = self._node(task_id)

            if status == TaskStatus.SKIPPED and node.status == TaskStatus.PENDING:
                blocked = [
                    dep for dep in node.dependencies
                    if self._nodes[dep].status in (TaskStatus.FAILED, TaskStatus.SKIPPED)
                ]
                if not blocked:
                    raise IllegalTransitionError(
                        task_id,
                        node.status.value,
                        status.value,
                        detail="task can still run",
                    )

            events = [self._apply_transition(task_id, status, reason)]

            if status in (TaskStatus.FAILED, TaskStatus.SKIPPED):
                events.extend(collect_skips(self, task_id))

        self._emit(events)
        return events

    def _apply_transition(
        self,
        task_id: str,
        status: TaskStatus,
        reason: str | None = None,
    ) -> StatusTransition:
        """Change a node's status. Caller must hold the lock."""
        node = self._node(task_id)
        previous = node.status

        if status not in ALLOWED_TRANSITIONS[previous]:
            raise IllegalTransitionError(task_id, previous.value, status.value)

        node.status = status
        node.reason = reason
        logger.debug(f"Task {task_id}: {previous.value} -> {status.value}")

        return StatusTransition(
            task_id=task_id,
            previous=previous,
            current=status,
            wave=node.depth if self._waves else None,
            reason=reason,
        )

    def reset(self) -> None:
        """Return every task and wave to pending."""
        with self._lock:
            for node in self._nodes.values():
                node.status = TaskStatus.PENDING
                node.reason = None
            for wave in self._waves:
                wave.status = WaveStatus.PENDING

    # =========================================================================
    # LISTENERS
    # =========================================================================

    def add_listener(self, listener: TransitionListener) -> None:
        """Register a callable invoked with every applied StatusTransition."""
        self._listeners.append(listener)

    def remove_listener(self, listener: TransitionListener) -> None:
        """Unregister a listener."""
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _emit(self, events: list[StatusTransition]) -> None:
        """Deliver events to listeners. Must be called without holding the lock."""
        for event in events:
            for listener in list(self._listeners):
                try:
                    listener(event)
                except Exception as e:
                    logger.warning(f"Status listener error: {e}")

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization (payloads excluded)."""
        with self._lock:
            return {
                "nodes": {
                    task_id: {
                        "dependencies": list(node.dependencies),
                        "dependents": list(node.dependents),
                        "depth": node.depth,
                        "status": node.status.value,
                    }
                    for task_id, node in self._nodes.items()
                },
                "roots": list(self._roots),
                "waves": [wave.task_ids for wave in self._waves],
                "total_waves": len(self._waves),
            }


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================


def build_graph(tasks: Iterable[TaskLike]) -> DependencyGraph:
    """
    Build a dependency graph from a flat task list.

    Example:
        >>> graph = build_graph([("T1", []), ("T2", ["T1"]), ("T3", ["T2"])])
        >>> graph.roots
        ['T1']
    """
    return DependencyGraph.build(tasks)
