"""
Wave executor for taskwave.

This module drives a DependencyGraph to completion: waves are processed
strictly in order, the ready tasks of each wave are dispatched
concurrently (bounded by a semaphore), and the executor waits for every
dispatched task to reach a terminal state before moving to the next wave.
"""

import asyncio
import inspect
import random
import time
from collections.abc import Callable
from typing import Any

from loguru import logger

from taskwave.dag.graph import DependencyGraph
from taskwave.dag.models import ExecutionWave, TaskStatus, WaveStatus
from taskwave.dag.propagation import sweep_unreachable
from taskwave.dag.visualize import render_progress
from taskwave.execution.results import (
    RunSummary,
    TaskExecutionResult,
    WaveExecutionResult,
)

# =============================================================================
# CALLBACK TYPES
# =============================================================================


# Called with a task payload. Returns a bool, a (bool, message) tuple, or
# None (success); may be a coroutine function. Raising counts as failure.
TaskRunner = Callable[[Any], Any]

ExecutionCallback = Callable[[str, TaskExecutionResult], None]

# (wave_number, task_id, status, progress_line)
ProgressCallback = Callable[[int, str, TaskStatus, str], None]


def _normalize_outcome(value: Any) -> tuple[bool, str | None]:
    """Turn a runner return value into (success, message)."""
    if value is None:
        return True, None
    if isinstance(value, tuple):
        success = bool(value[0])
        message = value[1] if len(value) > 1 else None
        return success, None if message is None else str(message)
    return bool(value), None


# =============================================================================
# PARALLEL EXECUTOR
# =============================================================================


class ParallelExecutor:
    """
    Execute a dependency graph wave by wave.

    Tasks within a wave run concurrently up to ``max_concurrent``. Failed
    tasks are retried up to ``max_retries`` times before being reported as
    failed, at which point their pending descendants are skipped. A wave
    with no eligible tasks is marked skipped and the executor moves on.

    Attributes:
        max_concurrent: Maximum number of concurrent task executions.
        timeout: Timeout per attempt in seconds (None for no limit).
        max_retries: Extra attempts after the first failure.
        retry_delay: Delay between attempts in seconds.
        abort_on_failure: Stop after the first wave with a failed task.

    Example:
        >>> executor = ParallelExecutor(run_task, max_concurrent=4)
        >>> summary = await executor.execute_graph(graph)
        >>> print(summary.counts)
    """

    def __init__(
        self,
        runner: TaskRunner | None = None,
        max_concurrent: int = 4,
        timeout: float | None = None,
        max_retries: int = 0,
        retry_delay: float = 1.0,
        abort_on_failure: bool = False,
        on_progress: ProgressCallback | None = None,
    ):
        """
        Initialize the executor.

        Args:
            runner: Callable invoked with each task's payload.
            max_concurrent: Maximum concurrent tasks per wave (default 4).
            timeout: Per-attempt timeout in seconds. Synchronous runners run
                in a worker thread that is abandoned, not killed, on timeout.
            max_retries: Retries per task before it is marked failed.
            retry_delay: Seconds to wait between attempts.
            abort_on_failure: Stop dispatching after a wave with failures.
            on_progress: Called on every task start and finish.
        """
        if max_concurrent < 1:
            raise ValueError("max_concurrent must be at least 1")

        self.runner = runner
        self.max_concurrent = max_concurrent
        self.timeout = timeout
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.abort_on_failure = abort_on_failure
        self.on_progress = on_progress
        self._callbacks: list[ExecutionCallback] = []

    def add_callback(self, callback: ExecutionCallback) -> None:
        """Add a callback for task completion events."""
        self._callbacks.append(callback)

    def remove_callback(self, callback: ExecutionCallback) -> None:
        """Remove a callback."""
        if callback in self._callbacks:
            self._callbacks.remove(callback)

    def _emit_callback(self, task_id: str, result: TaskExecutionResult) -> None:
        """Emit callback to all registered listeners."""
        for callback in self._callbacks:
            try:
                callback(task_id, result)
            except Exception as e:
                logger.warning(f"Callback error: {e}")

    def _report_progress(self, graph: DependencyGraph, wave_number: int, task_id: str) -> None:
        if self.on_progress is None:
            return
        try:
            line = render_progress(graph, wave_number)
            self.on_progress(wave_number, task_id, graph.status_of(task_id), line)
        except Exception as e:
            logger.warning(f"Progress callback error: {e}")

    # =========================================================================
    # GRAPH AND WAVE EXECUTION
    # =========================================================================

    def dry_run(self, graph: DependencyGraph) -> list[ExecutionWave]:
        """Return the execution plan without running anything."""
        if not graph.has_waves:
            graph.compute_waves()
        return graph.waves

    async def execute_graph(self, graph: DependencyGraph) -> RunSummary:
        """
        Execute every wave of the graph in order.

        Structural errors (cycles, missing roots) are raised before any
        task runs. Task failures are recorded as statuses, not raised.

        Args:
            graph: The graph to run. Waves are computed if needed.

        Returns:
            RunSummary with per-wave results and final task statuses.
        """
        start_time = time.monotonic()

        if not graph.has_waves:
            graph.compute_waves()

        waves = graph.waves
        results: list[WaveExecutionResult] = []
        aborted = False

        logger.info(
            f"Executing {graph.size} tasks in {len(waves)} waves "
            f"(max {self.max_concurrent} concurrent)"
        )

        for wave in waves:
            wave_result = await self.execute_wave(graph, wave)
            results.append(wave_result)

            if self.abort_on_failure and wave_result.failed_tasks:
                remaining = graph.tasks_with_status(TaskStatus.PENDING)
                logger.error(
                    f"Wave {wave.number} had {len(wave_result.failed_tasks)} failure(s), "
                    f"aborting with {len(remaining)} task(s) not run"
                )
                aborted = True
                break

        summary = RunSummary(
            waves=results,
            statuses=graph.statuses(),
            duration_seconds=time.monotonic() - start_time,
            aborted=aborted,
        )

        counts = summary.counts
        logger.info(
            f"Run finished: {counts['completed']} completed, "
            f"{counts['failed']} failed, {counts['skipped']} skipped"
        )
        return summary

    async def execute_wave(
        self,
        graph: DependencyGraph,
        wave: ExecutionWave | int,
    ) -> WaveExecutionResult:
        """
        Execute the ready tasks of one wave and wait for all of them.

        Args:
            graph: Graph owning the wave.
            wave: The wave, or its 0-based index.

        Returns:
            WaveExecutionResult covering every member of the wave.
        """
        index = wave if isinstance(wave, int) else wave.index
        wave = graph.get_wave(index)
        start_time = time.monotonic()

        sweep_unreachable(graph)
        ready = graph.ready_tasks(index)

        skipped_results = [
            TaskExecutionResult.skipped_result(
                task_id, graph.get_node(task_id).reason, wave_number=wave.number
            )
            for task_id in wave.task_ids
            if graph.status_of(task_id) == TaskStatus.SKIPPED
        ]

        if not ready:
            logger.warning(f"Wave {wave.number} has no eligible tasks, skipping")
            graph.set_wave_status(index, WaveStatus.SKIPPED)
            return WaveExecutionResult(
                wave_number=wave.number,
                results=skipped_results,
                status=WaveStatus.SKIPPED,
            )

        logger.info(f"Executing wave {wave.number} with {len(ready)} tasks")
        graph.set_wave_status(index, WaveStatus.RUNNING)

        semaphore = asyncio.Semaphore(self.max_concurrent)
        coroutines = [
            self._execute_with_semaphore(graph, task_id, wave.number, semaphore)
            for task_id in ready
        ]
        outcomes = await asyncio.gather(*coroutines, return_exceptions=True)

        task_results: list[TaskExecutionResult] = []
        for task_id, outcome in zip(ready, outcomes, strict=True):
            if isinstance(outcome, BaseException):
                if not isinstance(outcome, Exception):
                    raise outcome
                task_results.append(self._record_crash(graph, task_id, wave.number, outcome))
            else:
                task_results.append(outcome)

        all_success = all(r.success for r in task_results)
        status = WaveStatus.COMPLETED if all_success else WaveStatus.PARTIAL_FAILED
        graph.set_wave_status(index, status)

        wave_result = WaveExecutionResult(
            wave_number=wave.number,
            results=task_results + skipped_results,
            status=status,
            duration_seconds=time.monotonic() - start_time,
        )

        logger.info(
            f"Wave {wave.number} complete: "
            f"{len(wave_result.completed_tasks)} succeeded, "
            f"{len(wave_result.failed_tasks)} failed"
        )
        return wave_result

    def _record_crash(
        self,
        graph: DependencyGraph,
        task_id: str,
        wave_number: int,
        error: Exception,
    ) -> TaskExecutionResult:
        """Fail a task whose execution raised outside the runner."""
        logger.error(f"Task {task_id} crashed: {error}")
        if graph.status_of(task_id) == TaskStatus.RUNNING:
            graph.fail(task_id, reason=str(error))
        result = TaskExecutionResult(
            task_id=task_id,
            success=False,
            error=str(error),
            wave_number=wave_number,
        )
        self._emit_callback(task_id, result)
        return result

    # =========================================================================
    # TASK EXECUTION
    # =========================================================================

    async def _execute_with_semaphore(
        self,
        graph: DependencyGraph,
        task_id: str,
        wave_number: int,
        semaphore: asyncio.Semaphore,
    ) -> TaskExecutionResult:
        """Execute task with semaphore for concurrency control."""
        async with semaphore:
            return await self._execute_task(graph, task_id, wave_number)

    async def _execute_task(
        self,
        graph: DependencyGraph,
        task_id: str,
        wave_number: int,
    ) -> TaskExecutionResult:
        """Run one task with retries and record its terminal status."""
        start_time = time.monotonic()
        graph.start(task_id)
        self._report_progress(graph, wave_number, task_id)
        logger.debug(f"Executing task: {task_id}")

        payload = graph.payload(task_id)
        attempts = 0
        success = False
        output: str | None = None
        error: str | None = None

        while attempts <= self.max_retries:
            attempts += 1
            try:
                success, output = await self._invoke(payload)
                error = None if success else (output or "task reported failure")
            except TimeoutError:
                success = False
                error = f"Task timed out after {self.timeout} seconds"
            except Exception as e:
                success = False
                error = str(e) or type(e).__name__

            if success:
                break

            if attempts <= self.max_retries:
                logger.warning(
                    f"Task {task_id} failed (attempt {attempts}/{self.max_retries + 1}): "
                    f"{error}; retrying in {self.retry_delay}s"
                )
                await asyncio.sleep(self.retry_delay)

        if success:
            graph.complete(task_id)
        else:
            logger.error(f"Task {task_id} failed: {error}")
            graph.fail(task_id, reason=error)

        self._report_progress(graph, wave_number, task_id)

        result = TaskExecutionResult(
            task_id=task_id,
            success=success,
            output=output if success else None,
            error=error,
            duration_seconds=time.monotonic() - start_time,
            attempts=attempts,
            wave_number=wave_number,
        )
        self._emit_callback(task_id, result)
        return result

    async def _invoke(self, payload: Any) -> tuple[bool, str | None]:
        """Call the runner once, honouring the per-attempt timeout."""
        if self.runner is None:
            return False, "no task runner configured"

        runner = self.runner
        is_async = inspect.iscoroutinefunction(runner) or inspect.iscoroutinefunction(
            getattr(runner, "__call__", None)
        )

        async def _attempt() -> Any:
            if is_async:
                value = await runner(payload)
            else:
                value = await asyncio.to_thread(runner, payload)
            # Sync callables may hand back a coroutine
            if inspect.isawaitable(value):
                value = await value
            return value

        if self.timeout:
            value = await asyncio.wait_for(_attempt(), timeout=self.timeout)
        else:
            value = await _attempt()

        return _normalize_outcome(value)


# =============================================================================
# SEQUENTIAL EXECUTOR
# =============================================================================


class SequentialExecutor:
    """
    Execute tasks one at a time.

    Useful for debugging or when parallel execution is not desired.
    """

    def __init__(self, runner: TaskRunner | None = None, **kwargs: Any):
        """
        Initialize sequential executor.

        Args:
            runner: Callable invoked with each task's payload.
            **kwargs: Any other ParallelExecutor option except max_concurrent.
        """
        kwargs.pop("max_concurrent", None)
        self._parallel = ParallelExecutor(runner, max_concurrent=1, **kwargs)

    @property
    def max_concurrent(self) -> int:
        return 1

    def add_callback(self, callback: ExecutionCallback) -> None:
        self._parallel.add_callback(callback)

    def remove_callback(self, callback: ExecutionCallback) -> None:
        self._parallel.remove_callback(callback)

    def dry_run(self, graph: DependencyGraph) -> list[ExecutionWave]:
        return self._parallel.dry_run(graph)

    async def execute_wave(
        self,
        graph: DependencyGraph,
        wave: ExecutionWave | int,
    ) -> WaveExecutionResult:
        """Execute a wave's tasks sequentially."""
        return await self._parallel.execute_wave(graph, wave)

    async def execute_graph(self, graph: DependencyGraph) -> RunSummary:
        """Execute all tasks in a dependency graph."""
        return await self._parallel.execute_graph(graph)


# =============================================================================
# DRY RUN EXECUTOR
# =============================================================================


class DryRunExecutor(ParallelExecutor):
    """
    Executor that simulates execution without running anything.

    Tasks go through the normal status transitions, so the scheduling
    (and, with ``success_rate`` below 1.0, failure propagation) can be
    observed without side effects.
    """

    def __init__(
        self,
        delay_per_task: float = 0.0,
        success_rate: float = 1.0,
        max_concurrent: int = 4,
        **kwargs: Any,
    ):
        """
        Initialize dry run executor.

        Args:
            delay_per_task: Simulated delay per task in seconds.
            success_rate: Probability of task success (0.0 to 1.0).
            max_concurrent: Maximum concurrent simulated tasks.
        """
        super().__init__(runner=self._simulate, max_concurrent=max_concurrent, **kwargs)
        self.delay_per_task = delay_per_task
        self.success_rate = success_rate

    async def _simulate(self, payload: Any) -> bool:
        await asyncio.sleep(self.delay_per_task)
        return random.random() < self.success_rate


# =============================================================================
# FACTORY FUNCTION
# =============================================================================


def create_executor(
    mode: str = "parallel",
    runner: TaskRunner | None = None,
    max_concurrent: int = 4,
    timeout: float | None = None,
    max_retries: int = 0,
    retry_delay: float = 1.0,
    abort_on_failure: bool = False,
    on_progress: ProgressCallback | None = None,
) -> ParallelExecutor | SequentialExecutor:
    """
    Create an executor with the specified configuration.

    Args:
        mode: Execution mode ("parallel", "sequential", "retry", "dry_run").
        runner: Callable invoked with each task's payload.
        max_concurrent: Maximum concurrent tasks for parallel mode.
        timeout: Timeout per attempt in seconds.
        max_retries: Maximum retries (at least 2 in retry mode).
        retry_delay: Delay between retries in seconds.
        abort_on_failure: Stop after the first wave with a failure.
        on_progress: Progress callback.

    Returns:
        Configured executor instance.

    Raises:
        ValueError: If the mode is unknown.

    Example:
        >>> executor = create_executor("parallel", run_task, max_concurrent=8)
        >>> summary = await executor.execute_graph(graph)
    """
    options: dict[str, Any] = {
        "timeout": timeout,
        "max_retries": max_retries,
        "retry_delay": retry_delay,
        "abort_on_failure": abort_on_failure,
        "on_progress": on_progress,
    }

    if mode == "parallel":
        return ParallelExecutor(runner, max_concurrent=max_concurrent, **options)
    elif mode == "sequential":
        return SequentialExecutor(runner, **options)
    elif mode == "retry":
        options["max_retries"] = max(max_retries, 2)
        return ParallelExecutor(runner, max_concurrent=max_concurrent, **options)
    elif mode == "dry_run":
        return DryRunExecutor(
            max_concurrent=max_concurrent,
            abort_on_failure=abort_on_failure,
            on_progress=on_progress,
        )
    raise ValueError(f"Unknown executor mode: {mode}")
