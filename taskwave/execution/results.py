"""Result objects produced by the execution driver."""

from datetime import datetime
from typing import Any

from taskwave.dag.models import TaskStatus, WaveStatus

# =============================================================================
# TASK RESULT
# =============================================================================


class TaskExecutionResult:
    """Result of a single task execution."""

    def __init__(
        self,
        task_id: str,
        success: bool,
        output: str | None = None,
        error: str | None = None,
        duration_seconds: float = 0.0,
        attempts: int = 1,
        wave_number: int | None = None,
        skipped: bool = False,
        skip_reason: str | None = None,
    ):
        self.task_id = task_id
        self.success = success
        self.output = output
        self.error = error
        self.duration_seconds = duration_seconds
        self.attempts = attempts
        self.wave_number = wave_number
        self.skipped = skipped
        self.skip_reason = skip_reason
        self.completed_at = datetime.now().isoformat()

    @property
    def status(self) -> TaskStatus:
        """Terminal status this result corresponds to."""
        if self.skipped:
            return TaskStatus.SKIPPED
        return TaskStatus.COMPLETED if self.success else TaskStatus.FAILED

    @classmethod
    def skipped_result(
        cls,
        task_id: str,
        reason: str | None,
        wave_number: int | None = None,
    ) -> "TaskExecutionResult":
        """Create a result for a task that was never dispatched."""
        return cls(
            task_id=task_id,
            success=False,
            attempts=0,
            wave_number=wave_number,
            skipped=True,
            skip_reason=reason,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "task_id": self.task_id,
            "status": self.status.value,
            "success": self.success,
            "output": self.output,
            "error": self.error,
            "duration_seconds": self.duration_seconds,
            "attempts": self.attempts,
            "wave_number": self.wave_number,
            "skipped": self.skipped,
            "skip_reason": self.skip_reason,
            "completed_at": self.completed_at,
        }

    def __repr__(self) -> str:
        return f"TaskExecutionResult(task_id={self.task_id!r}, status={self.status.value!r})"


# =============================================================================
# WAVE RESULT
# =============================================================================


class WaveExecutionResult:
    """Result of executing a full wave of tasks."""

    def __init__(
        self,
        wave_number: int,
        results: list[TaskExecutionResult],
        status: WaveStatus = WaveStatus.COMPLETED,
        duration_seconds: float = 0.0,
    ):
        self.wave_number = wave_number
        self.results = results
        self.status = status
        self.duration_seconds = duration_seconds
        self.completed_at = datetime.now().isoformat()

    @property
    def completed_tasks(self) -> list[str]:
        """Get IDs of successfully completed tasks."""
        return [r.task_id for r in self.results if r.success]

    @property
    def failed_tasks(self) -> list[str]:
        """Get IDs of failed tasks."""
        return [r.task_id for r in self.results if not r.success and not r.skipped]

    @property
    def skipped_tasks(self) -> list[str]:
        """Get IDs of tasks skipped without being dispatched."""
        return [r.task_id for r in self.results if r.skipped]

    @property
    def success_rate(self) -> float:
        """Share of dispatched tasks that completed."""
        dispatched = [r for r in self.results if not r.skipped]
        if not dispatched:
            return 0.0
        return len(self.completed_tasks) / len(dispatched)

    def get_result(self, task_id: str) -> TaskExecutionResult | None:
        """Result for one task in this wave, if present."""
        for result in self.results:
            if result.task_id == task_id:
                return result
        return None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "wave_number": self.wave_number,
            "status": self.status.value,
            "results": [r.to_dict() for r in self.results],
            "completed_tasks": self.completed_tasks,
            "failed_tasks": self.failed_tasks,
            "skipped_tasks": self.skipped_tasks,
            "success_rate": self.success_rate,
            "duration_seconds": self.duration_seconds,
            "completed_at": self.completed_at,
        }


# =============================================================================
# RUN SUMMARY
# =============================================================================


class RunSummary:
    """
    Outcome of executing a whole graph.

    Counts come from the graph's final statuses, so tasks skipped by
    propagation are included even when their wave was never dispatched.
    """

    def __init__(
        self,
        waves: list[WaveExecutionResult],
        statuses: dict[str, TaskStatus],
        duration_seconds: float = 0.0,
        aborted: bool = False,
    ):
        self.waves = waves
        self.statuses = statuses
        self.duration_seconds = duration_seconds
        self.aborted = aborted

    def _with_status(self, status: TaskStatus) -> list[str]:
        return [task_id for task_id, s in self.statuses.items() if s == status]

    @property
    def completed(self) -> list[str]:
        return self._with_status(TaskStatus.COMPLETED)

    @property
    def failed(self) -> list[str]:
        return self._with_status(TaskStatus.FAILED)

    @property
    def skipped(self) -> list[str]:
        return self._with_status(TaskStatus.SKIPPED)

    @property
    def pending(self) -> list[str]:
        """Tasks never run, e.g. after an aborted run."""
        return self._with_status(TaskStatus.PENDING)

    @property
    def counts(self) -> dict[str, int]:
        """Completed, failed, skipped, pending and total task counts."""
        return {
            "completed": len(self.completed),
            "failed": len(self.failed),
            "skipped": len(self.skipped),
            "pending": len(self.pending),
            "total": len(self.statuses),
        }

    @property
    def success(self) -> bool:
        """True when no task failed."""
        return not self.failed

    @property
    def exit_code(self) -> int:
        """Process exit status for a CLI: non-zero if any task failed."""
        return 0 if self.success else 1

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "waves": [w.to_dict() for w in self.waves],
            "counts": self.counts,
            "completed": self.completed,
            "failed": self.failed,
            "skipped": self.skipped,
            "pending": self.pending,
            "success": self.success,
            "aborted": self.aborted,
            "duration_seconds": self.duration_seconds,
        }
