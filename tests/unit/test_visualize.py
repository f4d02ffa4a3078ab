"""Unit tests for the text renderers."""

from taskwave.dag import (
    DependencyGraph,
    build_graph,
    render_ascii,
    render_compact,
    render_detailed,
    render_progress,
)
from taskwave.dag.visualize import NO_WAVES


def test_ascii(diamond_graph: DependencyGraph) -> None:
    output = render_ascii(diamond_graph)

    assert output.startswith("Task Execution Waves\n====================\n")
    assert "Wave 1 (1 task)\n  +- [T1]\n    |\n    v\n" in output
    assert "Wave 2 (2 tasks)\n  |- [T2]\n  +- [T3]\n" in output
    assert "  Total Waves: 3\n" in output
    assert "  Total Tasks: 4\n" in output
    assert "  Max Parallel: 2\n" in output
    # No connector after the last wave
    assert "  +- [T4]\n\nSummary:" in output


def test_compact(diamond_graph: DependencyGraph) -> None:
    assert render_compact(diamond_graph) == (
        "Wave 1: [T1] -> Wave 2: [T2, T3] -> Wave 3: [T4]"
    )


def test_detailed(diamond_graph: DependencyGraph) -> None:
    output = render_detailed(diamond_graph)

    assert "  [T1] Pending\n    Blocks: T2, T3\n" in output
    assert "  [T4] Pending\n    Depends on: T2, T3\n" in output


def test_progress(diamond_graph: DependencyGraph) -> None:
    diamond_graph.start("T1")
    diamond_graph.complete("T1")
    diamond_graph.start("T2")

    assert render_progress(diamond_graph, 1) == "Wave 1: T1 +"
    assert render_progress(diamond_graph, 2) == "Wave 2: T2 * T3 o"

    diamond_graph.fail("T2")
    assert render_progress(diamond_graph, 3) == "Wave 3: T4 -"


def test_progress_out_of_range(diamond_graph: DependencyGraph) -> None:
    assert render_progress(diamond_graph, 0) == ""
    assert render_progress(diamond_graph, 4) == ""


def test_without_waves() -> None:
    graph = build_graph([("T1", [])])

    assert render_ascii(graph) == NO_WAVES
    assert render_detailed(graph) == NO_WAVES
    assert render_compact(graph) == "No waves computed"
