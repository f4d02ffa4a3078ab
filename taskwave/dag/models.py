"""Pydantic models for the task dependency graph.

This module defines the data structures shared by the graph builder,
the wave computer, and the execution driver: task statuses, the input
task tuples, graph nodes, execution waves, and status transition events.
"""

from collections.abc import Mapping, Sequence
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


# =============================================================================
# ENUMS
# =============================================================================


class TaskStatus(str, Enum):
    """Execution status of a task node."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    SKIPPED = "skipped"

    @property
    def is_terminal(self) -> bool:
        """Whether no further transition is defined out of this status."""
        return self in TERMINAL_STATUSES

    @property
    def symbol(self) -> str:
        """ASCII symbol used by the progress renderer."""
        return _STATUS_SYMBOLS[self]


TERMINAL_STATUSES = frozenset(
    {TaskStatus.COMPLETED, TaskStatus.FAILED, TaskStatus.SKIPPED}
)

_STATUS_SYMBOLS = {
    TaskStatus.PENDING: "o",
    TaskStatus.RUNNING: "*",
    TaskStatus.COMPLETED: "+",
    TaskStatus.FAILED: "x",
    TaskStatus.SKIPPED: "-",
}

# Edges of the task state machine
ALLOWED_TRANSITIONS: dict[TaskStatus, frozenset[TaskStatus]] = {
    TaskStatus.PENDING: frozenset({TaskStatus.RUNNING, TaskStatus.SKIPPED}),
    TaskStatus.RUNNING: frozenset({TaskStatus.COMPLETED, TaskStatus.FAILED}),
    TaskStatus.COMPLETED: frozenset(),
    TaskStatus.FAILED: frozenset(),
    TaskStatus.SKIPPED: frozenset(),
}


class WaveStatus(str, Enum):
    """Execution status of a wave."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    PARTIAL_FAILED = "partial_failed"
    SKIPPED = "skipped"


# =============================================================================
# INPUT
# =============================================================================


class TaskInput(BaseModel):
    """A task as supplied by the caller: an ID, its prerequisites, and a payload.

    The payload is opaque to the scheduler. It is carried through the graph
    and handed back to the runner unchanged.

    Example:
        >>> TaskInput(id="T002", dependencies=["T001"], payload={"title": "Models"})
        >>> TaskInput.coerce(("T002", ["T001"]))
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    id: str = Field(
        ...,
        min_length=1,
        description="Unique task identifier",
    )
    dependencies: list[str] = Field(
        default_factory=list,
        description="IDs of tasks that must complete first",
    )
    payload: Any = Field(
        default=None,
        description="Caller-owned task data, never inspected",
    )

    @field_validator("dependencies", mode="before")
    @classmethod
    def normalize_dependencies(cls, v: Any) -> list[str]:
        """Accept None and collapse repeated IDs, keeping first-seen order."""
        if v is None:
            return []
        if isinstance(v, str):
            v = [v]
        return list(dict.fromkeys(str(dep) for dep in v))

    @classmethod
    def coerce(cls, item: "TaskInput | Sequence[Any] | Mapping[str, Any]") -> "TaskInput":
        """Build a TaskInput from a tuple, a mapping, or an existing TaskInput.

        Tuples are ``(id, dependencies)`` or ``(id, dependencies, payload)``.
        A mapping must carry ``id`` and may carry ``dependencies``; the whole
        mapping becomes the payload unless it has an explicit ``payload`` key.

        Raises:
            TypeError: If the item has none of the supported shapes.
        """
        if isinstance(item, cls):
            return item
        if isinstance(item, Mapping):
            payload = item["payload"] if "payload" in item else dict(item)
            return cls(
                id=str(item["id"]),
                dependencies=item.get("dependencies") or [],
                payload=payload,
            )
        if isinstance(item, Sequence) and not isinstance(item, str) and len(item) in (2, 3):
            payload = item[2] if len(item) == 3 else None
            return cls(id=str(item[0]), dependencies=item[1], payload=payload)
        raise TypeError(f"Cannot build a task from {type(item).__name__}: {item!r}")


# =============================================================================
# GRAPH NODES AND WAVES
# =============================================================================


class TaskNode(BaseModel):
    """A node in the dependency graph.

    Nodes are owned by the DependencyGraph; callers only ever see copies.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True, validate_assignment=False)

    id: str
    dependencies: list[str] = Field(default_factory=list)
    dependents: list[str] = Field(default_factory=list)
    depth: int = Field(default=0, ge=0)
    status: TaskStatus = TaskStatus.PENDING
    reason: str | None = None
    payload: Any = None

    @property
    def is_root(self) -> bool:
        """Whether the node has no dependencies."""
        return not self.dependencies

    def snapshot(self) -> "TaskNode":
        """Copy of the node with independent edge lists.

        The payload is shared, not copied: it belongs to the caller.
        """
        return self.model_copy(
            update={
                "dependencies": list(self.dependencies),
                "dependents": list(self.dependents),
            }
        )


class ExecutionWave(BaseModel):
    """Tasks sharing one depth, eligible to run concurrently.

    ``index`` is the 0-based wave position and equals the depth of every
    member. ``number`` is the 1-based position used in output.
    """

    model_config = ConfigDict(frozen=False)

    index: int = Field(ge=0, description="Wave index (equals member depth)")
    task_ids: list[str] = Field(default_factory=list)
    status: WaveStatus = WaveStatus.PENDING

    @property
    def number(self) -> int:
        """1-based wave number for display."""
        return self.index + 1

    @property
    def size(self) -> int:
        """Number of tasks in the wave."""
        return len(self.task_ids)

    @property
    def is_complete(self) -> bool:
        """Whether the wave has finished (successfully, partially, or skipped)."""
        return self.status in (
            WaveStatus.COMPLETED,
            WaveStatus.PARTIAL_FAILED,
            WaveStatus.SKIPPED,
        )

    def __contains__(self, task_id: object) -> bool:
        return task_id in self.task_ids


class WaveStats(BaseModel):
    """Summary statistics about computed waves."""

    model_config = ConfigDict(frozen=True)

    total_waves: int = 0
    total_tasks: int = 0
    max_wave_size: int = 0
    min_wave_size: int = 0

    @property
    def average_wave_size(self) -> float:
        """Mean number of tasks per wave."""
        if not self.total_waves:
            return 0.0
        return self.total_tasks / self.total_waves


class StatusTransition(BaseModel):
    """A status change applied to a task, emitted to graph listeners."""

    model_config = ConfigDict(frozen=True)

    task_id: str
    previous: TaskStatus
    current: TaskStatus
    wave: int | None = Field(
        default=None,
        description="Wave index of the task, if waves have been computed",
    )
    reason: str | None = None
    timestamp: datetime = Field(default_factory=datetime.now)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return self.model_dump(mode="json")
