"""Unit tests for status transitions, failure propagation and listeners."""

import threading

import pytest

from taskwave.dag import (
    DependencyGraph,
    IllegalTransitionError,
    StatusTransition,
    TaskNotFoundError,
    TaskStatus,
    TransitionError,
    WaveStatus,
    build_graph,
    propagate_failure,
    sweep_unreachable,
)


def _finish(graph: DependencyGraph, task_id: str) -> None:
    graph.start(task_id)
    graph.complete(task_id)


class TestTransitions:
    """Tests for the task state machine."""

    def test_happy_path(self, diamond_graph: DependencyGraph) -> None:
        assert diamond_graph.is_ready("T1")
        assert not diamond_graph.is_ready("T2")

        _finish(diamond_graph, "T1")

        assert diamond_graph.status_of("T1") == TaskStatus.COMPLETED
        assert diamond_graph.ready_tasks(1) == ["T2", "T3"]

    def test_start_with_unmet_dependency(self, diamond_graph: DependencyGraph) -> None:
        with pytest.raises(IllegalTransitionError) as exc_info:
            diamond_graph.start("T2")

        assert "waiting on T1" in str(exc_info.value)
        assert diamond_graph.status_of("T2") == TaskStatus.PENDING

    def test_complete_pending_task_rejected(self, diamond_graph: DependencyGraph) -> None:
        with pytest.raises(IllegalTransitionError):
            diamond_graph.complete("T1")

        assert diamond_graph.status_of("T1") == TaskStatus.PENDING

    def test_terminal_states_are_final(self, diamond_graph: DependencyGraph) -> None:
        _finish(diamond_graph, "T1")

        for status in TaskStatus:
            with pytest.raises(IllegalTransitionError):
                diamond_graph.set_status("T1", status)

        assert diamond_graph.status_of("T1") == TaskStatus.COMPLETED

    def test_unknown_task(self, diamond_graph: DependencyGraph) -> None:
        with pytest.raises(TaskNotFoundError) as exc_info:
            diamond_graph.set_status("T404", TaskStatus.RUNNING)

        assert isinstance(exc_info.value, TransitionError)
        assert "T404" in str(exc_info.value)

    def test_skip_runnable_task_rejected(self, diamond_graph: DependencyGraph) -> None:
        with pytest.raises(IllegalTransitionError) as exc_info:
            diamond_graph.set_status("T1", TaskStatus.SKIPPED)

        assert "can still run" in str(exc_info.value)

    def test_set_status_accepts_string(self, diamond_graph: DependencyGraph) -> None:
        events = diamond_graph.set_status("T1", "running")

        assert events[0].current == TaskStatus.RUNNING

    def test_transition_event(self, diamond_graph: DependencyGraph) -> None:
        events = diamond_graph.set_status("T1", TaskStatus.RUNNING, reason="go")

        event = events[0]
        assert event.task_id == "T1"
        assert event.previous == TaskStatus.PENDING
        assert event.current == TaskStatus.RUNNING
        assert event.wave == 0
        assert event.reason == "go"
        assert event.to_dict()["current"] == "running"

    def test_reset(self, diamond_graph: DependencyGraph) -> None:
        _finish(diamond_graph, "T1")
        diamond_graph.set_wave_status(0, WaveStatus.COMPLETED)

        diamond_graph.reset()

        assert set(diamond_graph.statuses().values()) == {TaskStatus.PENDING}
        assert diamond_graph.waves[0].status == WaveStatus.PENDING


class TestFailurePropagation:
    """Tests for skipping descendants of failed tasks."""

    def test_diamond_branch_failure(self, diamond_graph: DependencyGraph) -> None:
        _finish(diamond_graph, "T1")
        diamond_graph.start("T2")
        diamond_graph.start("T3")

        skipped = diamond_graph.fail("T2", reason="boom")
        diamond_graph.complete("T3")

        assert skipped == ["T4"]
        assert diamond_graph.status_of("T2") == TaskStatus.FAILED
        assert diamond_graph.status_of("T3") == TaskStatus.COMPLETED
        assert diamond_graph.status_of("T4") == TaskStatus.SKIPPED
        assert diamond_graph.get_node("T4").reason == "dependency T2 failed"
        assert diamond_graph.get_node("T2").reason == "boom"

    def test_transitive_skip(self, chain_tasks: list) -> None:
        graph = build_graph(chain_tasks + [("T4", ["T3"]), ("X", [])])
        graph.compute_waves()

        graph.start("T1")
        skipped = graph.fail("T1")

        assert skipped == ["T2", "T3", "T4"]
        assert graph.get_node("T3").reason == "dependency T2 was skipped"
        assert graph.status_of("X") == TaskStatus.PENDING

    def test_running_descendants_untouched(self) -> None:
        graph = build_graph([("A", []), ("B", []), ("C", ["B"])])
        graph.compute_waves()
        _finish(graph, "B")
        graph.start("A")
        graph.start("C")

        assert graph.fail("A") == []
        assert graph.status_of("C") == TaskStatus.RUNNING

    def test_no_descendant_completes_after_failure(self) -> None:
        graph = build_graph([
            ("a", []), ("b", ["a"]), ("c", ["a"]), ("d", ["b"]), ("e", ["c", "d"]),
        ])
        graph.compute_waves()
        graph.start("a")
        graph.fail("a")

        for task_id in ("b", "c", "d", "e"):
            assert graph.status_of(task_id) in (TaskStatus.SKIPPED, TaskStatus.FAILED)
            with pytest.raises(IllegalTransitionError):
                graph.start(task_id)

    def test_manual_skip_propagates(self, chain_tasks: list) -> None:
        graph = build_graph(chain_tasks)
        graph.start("T1")
        graph.fail("T1")

        # Already skipped by propagation; nothing left to do
        assert propagate_failure(graph, "T2") == []
        assert graph.status_of("T3") == TaskStatus.SKIPPED

    def test_propagate_from_non_failed_task(self, diamond_graph: DependencyGraph) -> None:
        assert propagate_failure(diamond_graph, "T1") == []
        assert diamond_graph.status_of("T2") == TaskStatus.PENDING

    def test_sweep_unreachable(self, diamond_graph: DependencyGraph) -> None:
        _finish(diamond_graph, "T1")
        diamond_graph.start("T2")
        with diamond_graph._lock:
            # Force a failed dependency without propagating
            diamond_graph._node("T2").status = TaskStatus.FAILED

        assert sweep_unreachable(diamond_graph) == ["T4"]
        assert sweep_unreachable(diamond_graph) == []


class TestListeners:
    """Tests for transition listeners."""

    def test_listener_receives_propagated_events(self, diamond_graph: DependencyGraph) -> None:
        seen: list[StatusTransition] = []
        diamond_graph.add_listener(seen.append)

        diamond_graph.start("T1")
        diamond_graph.fail("T1")

        assert [(e.task_id, e.current) for e in seen] == [
            ("T1", TaskStatus.RUNNING),
            ("T1", TaskStatus.FAILED),
            ("T2", TaskStatus.SKIPPED),
            ("T3", TaskStatus.SKIPPED),
            ("T4", TaskStatus.SKIPPED),
        ]

    def test_listener_error_does_not_break_graph(self, diamond_graph: DependencyGraph) -> None:
        def broken(event: StatusTransition) -> None:
            raise RuntimeError("listener down")

        diamond_graph.add_listener(broken)
        diamond_graph.start("T1")

        assert diamond_graph.status_of("T1") == TaskStatus.RUNNING

    def test_remove_listener(self, diamond_graph: DependencyGraph) -> None:
        seen: list[StatusTransition] = []
        diamond_graph.add_listener(seen.append)
        diamond_graph.remove_listener(seen.append)

        diamond_graph.start("T1")

        assert seen == []

    def test_listener_can_read_graph(self, diamond_graph: DependencyGraph) -> None:
        statuses: list[TaskStatus] = []
        diamond_graph.add_listener(lambda e: statuses.append(diamond_graph.status_of(e.task_id)))

        diamond_graph.start("T1")

        assert statuses == [TaskStatus.RUNNING]


class TestConcurrency:
    """Status updates from many threads keep the graph consistent."""

    def test_parallel_completion(self) -> None:
        tasks = [("root", [])] + [(f"w{i}", ["root"]) for i in range(50)] + [
            ("sink", [f"w{i}" for i in range(50)])
        ]
        graph = build_graph(tasks)
        graph.compute_waves()
        _finish(graph, "root")

        errors: list[Exception] = []

        def worker(task_id: str) -> None:
            try:
                graph.start(task_id)
                graph.complete(task_id)
            except Exception as e:
                errors.append(e)

        threads = [threading.Thread(target=worker, args=(f"w{i}",)) for i in range(50)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        assert graph.counts()[TaskStatus.COMPLETED] == 51
        assert graph.is_ready("sink")

    def test_double_start_only_one_wins(self, diamond_graph: DependencyGraph) -> None:
        results: list[bool] = []
        barrier = threading.Barrier(8)

        def worker() -> None:
            barrier.wait()
            try:
                diamond_graph.start("T1")
                results.append(True)
            except IllegalTransitionError:
                results.append(False)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert results.count(True) == 1
