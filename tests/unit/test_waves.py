"""Unit tests for depth and wave computation."""

import pytest

from taskwave.dag import (
    DependencyGraph,
    WaveStatus,
    build_graph,
    compute_depths,
    critical_path,
    execution_order,
    wave_for_task,
    wave_stats,
    waves_from_task,
)


def _task_lists(graph: DependencyGraph) -> list[list[str]]:
    return [wave.task_ids for wave in graph.waves]


class TestComputeWaves:
    """Tests for compute_waves."""

    def test_linear_chain(self, chain_tasks: list) -> None:
        graph = build_graph(chain_tasks)
        graph.compute_waves()

        assert _task_lists(graph) == [["T1"], ["T2"], ["T3"]]

    def test_diamond(self, diamond_graph: DependencyGraph) -> None:
        assert _task_lists(diamond_graph) == [["T1"], ["T2", "T3"], ["T4"]]

    def test_disjoint_roots_sorted_by_id(self, disjoint_tasks: list) -> None:
        graph = build_graph(disjoint_tasks)
        waves = graph.compute_waves()

        assert waves[0].task_ids == ["T1", "T2"]
        assert waves[1].task_ids == ["T3"]

    def test_depth_is_longest_chain(self) -> None:
        # D depends on A directly and via B -> C
        graph = build_graph([("A", []), ("B", ["A"]), ("C", ["B"]), ("D", ["A", "C"])])
        depths = compute_depths(graph)

        assert depths == {"A": 0, "B": 1, "C": 2, "D": 3}

    def test_wave_index_matches_depth(self, diamond_graph: DependencyGraph) -> None:
        for wave in diamond_graph.waves:
            for task_id in wave.task_ids:
                assert diamond_graph.depth_of(task_id) == wave.index

    def test_every_task_in_exactly_one_wave(self) -> None:
        graph = build_graph([
            ("a", []), ("b", []), ("c", ["a"]), ("d", ["a", "b"]),
            ("e", ["c"]), ("f", ["d", "e"]), ("g", []),
        ])
        graph.compute_waves()

        order = execution_order(graph)
        assert sorted(order) == sorted(graph.task_ids)
        assert len(order) == len(set(order))

    def test_dependencies_in_earlier_waves(self) -> None:
        graph = build_graph([
            ("a", []), ("b", []), ("c", ["a"]), ("d", ["a", "b"]),
            ("e", ["c"]), ("f", ["d", "e"]),
        ])
        graph.compute_waves()

        for task_id in graph.task_ids:
            for dep in graph.dependencies_of(task_id):
                assert graph.wave_of(dep) < graph.wave_of(task_id)

    def test_waves_start_pending(self, diamond_graph: DependencyGraph) -> None:
        assert {w.status for w in diamond_graph.waves} == {WaveStatus.PENDING}

    def test_waves_are_copies(self, diamond_graph: DependencyGraph) -> None:
        diamond_graph.waves[0].task_ids.append("X")

        assert diamond_graph.waves[0].task_ids == ["T1"]

    def test_get_wave_out_of_range(self, diamond_graph: DependencyGraph) -> None:
        with pytest.raises(IndexError):
            diamond_graph.get_wave(10)

    def test_wave_numbering(self, diamond_graph: DependencyGraph) -> None:
        wave = diamond_graph.get_wave(1)

        assert wave.index == 1
        assert wave.number == 2
        assert wave.size == 2
        assert "T3" in wave


class TestWaveQueries:
    """Tests for wave lookup helpers."""

    def test_wave_for_task(self, diamond_graph: DependencyGraph) -> None:
        assert wave_for_task(diamond_graph, "T1") == 0
        assert wave_for_task(diamond_graph, "T3") == 1
        assert wave_for_task(diamond_graph, "missing") is None

    def test_wave_for_task_before_compute(self, diamond_tasks: list) -> None:
        graph = build_graph(diamond_tasks)

        assert wave_for_task(graph, "T1") is None

    def test_waves_from_task(self, diamond_graph: DependencyGraph) -> None:
        resumed = waves_from_task(diamond_graph, "T2")

        assert [w.task_ids for w in resumed] == [["T2", "T3"], ["T4"]]
        assert waves_from_task(diamond_graph, "missing") == []

    def test_wave_stats(self, diamond_graph: DependencyGraph) -> None:
        stats = wave_stats(diamond_graph)

        assert stats.total_waves == 3
        assert stats.total_tasks == 4
        assert stats.max_wave_size == 2
        assert stats.min_wave_size == 1
        assert stats.average_wave_size == pytest.approx(4 / 3)

    def test_wave_stats_empty(self) -> None:
        stats = wave_stats(build_graph([]))

        assert stats.total_waves == 0
        assert stats.average_wave_size == 0

    def test_critical_path(self) -> None:
        graph = build_graph([("A", []), ("B", ["A"]), ("C", ["B"]), ("D", ["A"]), ("E", ["C", "D"])])

        assert critical_path(graph) == ["A", "B", "C", "E"]

    def test_critical_path_empty(self) -> None:
        assert critical_path(build_graph([])) == []
