"""Depth and wave computation.

A task's depth is the length of the longest dependency chain ending at it.
Tasks of equal depth cannot reach one another, so each depth forms a wave
whose members may run concurrently once every earlier wave has resolved.
"""

from collections import defaultdict, deque
from typing import TYPE_CHECKING

from loguru import logger

from taskwave.dag.cycles import detect_cycle
from taskwave.dag.exceptions import NoRootTasksError
from taskwave.dag.models import ExecutionWave, WaveStats

if TYPE_CHECKING:
    from taskwave.dag.graph import DependencyGraph


# =============================================================================
# DEPTHS
# =============================================================================


def compute_depths(graph: "DependencyGraph") -> dict[str, int]:
    """
    Compute the depth of every task.

    Processes tasks in topological order (Kahn's algorithm from the roots):
    roots have depth 0 and every other task is one deeper than its deepest
    dependency.

    Returns:
        Mapping of task ID -> depth, in topological order.

    Raises:
        CycleError: If not every task can be ordered.
    """
    in_degree = {task_id: len(graph.dependencies_of(task_id)) for task_id in graph.task_ids}
    depths = {task_id: 0 for task_id in graph.roots}
    queue: deque[str] = deque(graph.roots)
    order: list[str] = []

    while queue:
        task_id = queue.popleft()
        order.append(task_id)

        for dependent in graph.dependents_of(task_id):
            depths[dependent] = max(depths.get(dependent, 0), depths[task_id] + 1)
            in_degree[dependent] -= 1
            if in_degree[dependent] == 0:
                queue.append(dependent)

    if len(order) != graph.size:
        detect_cycle(graph)
        raise NoRootTasksError()

    return {task_id: depths[task_id] for task_id in order}


# =============================================================================
# WAVES
# =============================================================================


def compute_waves(graph: "DependencyGraph") -> list[ExecutionWave]:
    """
    Validate the graph and group its tasks into execution waves.

    Waves are ordered by ascending depth; tasks within a wave are sorted by
    ID so output is reproducible. The waves and node depths are stored on
    the graph.

    Returns:
        Copies of the computed waves. Empty for an empty graph.

    Raises:
        CycleError: If the graph has a circular dependency.
        NoRootTasksError: If a non-empty graph has no roots.

    Example:
        >>> graph = build_graph([("T1", []), ("T2", ["T1"]), ("T3", ["T1"])])
        >>> [w.task_ids for w in compute_waves(graph)]
        [['T1'], ['T2', 'T3']]
    """
    graph.validate()

    if not graph.size:
        graph._assign_waves({}, [])
        return []

    depths = compute_depths(graph)

    groups: dict[int, list[str]] = defaultdict(list)
    for task_id, depth in depths.items():
        groups[depth].append(task_id)

    waves = [
        ExecutionWave(index=depth, task_ids=sorted(groups[depth]))
        for depth in sorted(groups)
    ]
    graph._assign_waves(depths, waves)

    logger.info(f"Organized {graph.size} tasks into {len(waves)} waves")
    for wave in waves:
        logger.debug(f"Wave {wave.number}: {', '.join(wave.task_ids)}")

    return graph.waves


def wave_for_task(graph: "DependencyGraph", task_id: str) -> int | None:
    """Wave index containing the task, or None if unknown or not computed."""
    if task_id not in graph:
        return None
    return graph.wave_of(task_id)


def waves_from_task(graph: "DependencyGraph", task_id: str) -> list[ExecutionWave]:
    """
    All waves from the one containing ``task_id`` onwards.

    Useful for resuming a run from a specific point.

    Returns:
        The waves, or an empty list if the task is unknown or waves have not
        been computed.
    """
    start = wave_for_task(graph, task_id)
    if start is None:
        return []
    return [wave for wave in graph.waves if wave.index >= start]


def execution_order(graph: "DependencyGraph") -> list[str]:
    """Flat list of task IDs in wave order."""
    order: list[str] = []
    for wave in graph.waves:
        order.extend(wave.task_ids)
    return order


def wave_stats(graph: "DependencyGraph") -> WaveStats:
    """Summary statistics about the computed waves."""
    waves = graph.waves
    if not waves:
        return WaveStats()

    sizes = [wave.size for wave in waves]
    return WaveStats(
        total_waves=len(waves),
        total_tasks=sum(sizes),
        max_wave_size=max(sizes),
        min_wave_size=min(sizes),
    )


# =============================================================================
# CRITICAL PATH
# =============================================================================


def critical_path(graph: "DependencyGraph") -> list[str]:
    """
    Find the longest dependency chain in the graph.

    The critical path determines the minimum number of sequential waves.
    Ties are broken by the smallest task ID.

    Returns:
        Task IDs on the critical path, root first. Empty for an empty graph.
    """
    if not graph.size:
        return []
    if not graph.has_waves:
        compute_waves(graph)

    deepest = graph.waves[-1].task_ids[0]
    path = [deepest]
    current = deepest

    while graph.dependencies_of(current):
        target = graph.depth_of(current) - 1
        current = min(
            dep for dep in graph.dependencies_of(current)
            if graph.depth_of(dep) == target
        )
        path.append(current)

    return list(reversed(path))
