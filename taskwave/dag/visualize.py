"""Plain-text renderings of a dependency graph and its waves.

Only portable ASCII characters are used so output survives any terminal
and log file.
"""

from typing import TYPE_CHECKING

from taskwave.dag.waves import wave_stats

if TYPE_CHECKING:
    from taskwave.dag.graph import DependencyGraph

NO_WAVES = "No waves computed. Run compute_waves() first."


def render_ascii(graph: "DependencyGraph") -> str:
    """
    Render waves top to bottom with connectors and a summary.

    Example output::

        Task Execution Waves
        ====================

        Wave 1 (1 task)
          +- [T1]
            |
            v
        Wave 2 (2 tasks)
          |- [T2]
          +- [T3]
        ...
    """
    waves = graph.waves
    if not waves:
        return NO_WAVES

    lines = ["Task Execution Waves", "====================", ""]

    for position, wave in enumerate(waves):
        plural = "" if wave.size == 1 else "s"
        lines.append(f"Wave {wave.number} ({wave.size} task{plural})")

        if not wave.task_ids:
            lines.append("  (empty)")
        for i, task_id in enumerate(wave.task_ids):
            prefix = "  +-" if i == wave.size - 1 else "  |-"
            lines.append(f"{prefix} [{task_id}]")

        if position < len(waves) - 1:
            lines.extend(["    |", "    v"])

    stats = wave_stats(graph)
    lines.extend([
        "",
        "Summary:",
        f"  Total Waves: {stats.total_waves}",
        f"  Total Tasks: {stats.total_tasks}",
        f"  Max Parallel: {stats.max_wave_size}",
    ])

    return "\n".join(lines) + "\n"


def render_compact(graph: "DependencyGraph") -> str:
    """Single line: ``Wave 1: [T1] -> Wave 2: [T2, T3] -> Wave 3: [T4]``."""
    waves = graph.waves
    if not waves:
        return "No waves computed"

    return " -> ".join(
        f"Wave {wave.number}: [{', '.join(wave.task_ids)}]" for wave in waves
    )


def render_detailed(graph: "DependencyGraph") -> str:
    """Per-wave listing with each task's status, dependencies and dependents."""
    waves = graph.waves
    if not waves:
        return NO_WAVES

    lines = ["Detailed Task Execution Plan", "============================", ""]

    for wave in waves:
        lines.append(f"Wave {wave.number}:")
        lines.append("-" * 40)

        for task_id in wave.task_ids:
            node = graph.get_node(task_id)
            lines.append(f"  [{node.id}] {node.status.value.capitalize()}")
            if node.dependencies:
                lines.append(f"    Depends on: {', '.join(sorted(node.dependencies))}")
            if node.dependents:
                lines.append(f"    Blocks: {', '.join(sorted(node.dependents))}")

        lines.append("")

    return "\n".join(lines) + "\n"


def render_progress(graph: "DependencyGraph", wave_number: int) -> str:
    """
    One-line progress for a wave (1-based ``wave_number``).

    Format: ``Wave 2: T2 * T3 o`` where ``*`` running, ``o`` pending,
    ``+`` completed, ``x`` failed, ``-`` skipped.

    Returns:
        The progress line, or an empty string for an out-of-range wave.
    """
    waves = graph.waves
    if wave_number < 1 or wave_number > len(waves):
        return ""

    wave = waves[wave_number - 1]
    statuses = graph.statuses()
    parts = [f"{task_id} {statuses[task_id].symbol}" for task_id in wave.task_ids]

    return f"Wave {wave_number}: {' '.join(parts)}"
