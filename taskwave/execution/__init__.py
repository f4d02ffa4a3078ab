"""Wave-by-wave execution of dependency graphs."""

from taskwave.execution.executor import (
    DryRunExecutor,
    ExecutionCallback,
    ParallelExecutor,
    ProgressCallback,
    SequentialExecutor,
    TaskRunner,
    create_executor,
)
from taskwave.execution.results import (
    RunSummary,
    TaskExecutionResult,
    WaveExecutionResult,
)
from taskwave.execution.runners import ShellCommandRunner

__all__ = [
    "DryRunExecutor",
    "ExecutionCallback",
    "ParallelExecutor",
    "ProgressCallback",
    "RunSummary",
    "SequentialExecutor",
    "ShellCommandRunner",
    "TaskExecutionResult",
    "TaskRunner",
    "WaveExecutionResult",
    "create_executor",
]
