"""Exceptions raised by the dependency graph and its status tracker."""


# =============================================================================
# BASE
# =============================================================================


class TaskwaveError(Exception):
    """Base exception for taskwave errors."""

    pass


# =============================================================================
# STRUCTURAL ERRORS
# =============================================================================


class GraphError(TaskwaveError):
    """The task list does not form a valid dependency graph.

    Structural errors are raised before any task runs.
    """

    pass


class DuplicateTaskError(GraphError):
    """Two tasks share the same ID."""

    def __init__(self, task_id: str) -> None:
        self.task_id = task_id
        super().__init__(f"duplicate task ID {task_id}")


class MissingDependencyError(GraphError):
    """A task depends on an ID that is not in the graph."""

    def __init__(self, task_id: str, dependency_id: str) -> None:
        self.task_id = task_id
        self.dependency_id = dependency_id
        super().__init__(f"task {task_id} depends on non-existent task {dependency_id}")


class CycleError(GraphError):
    """The dependency graph contains a cycle.

    Attributes:
        cycle: Task IDs along the cycle, with the first ID repeated at the end.
    """

    def __init__(self, cycle: list[str]) -> None:
        self.cycle = list(cycle)
        super().__init__(f"circular dependency detected: {' -> '.join(self.cycle)}")


class NoRootTasksError(GraphError):
    """A non-empty graph has no task without dependencies."""

    def __init__(self) -> None:
        super().__init__("no root tasks found (all tasks have dependencies)")


# =============================================================================
# TRANSITION ERRORS
# =============================================================================


class TransitionError(TaskwaveError):
    """A status transition was rejected. The graph is left unchanged."""

    pass


class TaskNotFoundError(TransitionError, KeyError):
    """No task with the given ID exists in the graph."""

    def __init__(self, task_id: str) -> None:
        self.task_id = task_id
        super().__init__(f"task {task_id} not found")

    def __str__(self) -> str:
        # KeyError would otherwise quote the message
        return str(self.args[0])


class IllegalTransitionError(TransitionError):
    """The requested status change is not an edge of the state machine."""

    def __init__(
        self,
        task_id: str,
        current: str,
        requested: str,
        detail: str | None = None,
    ) -> None:
        self.task_id = task_id
        self.current = current
        self.requested = requested
        message = f"illegal transition for task {task_id}: {current} -> {requested}"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)
