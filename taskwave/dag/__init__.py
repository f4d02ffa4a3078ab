"""Task dependency graph - building, validation, waves and status tracking.

This module provides the scheduling core:
- Graph building (flat task list -> validated graph)
- Cycle detection (graph -> cycle path or nothing)
- Wave computation (graph -> ordered groups of independent tasks)
- Status tracking and failure propagation
- Plain-text visualization
"""

from taskwave.dag.cycles import detect_cycle, find_cycle
from taskwave.dag.exceptions import (
    CycleError,
    DuplicateTaskError,
    GraphError,
    IllegalTransitionError,
    MissingDependencyError,
    NoRootTasksError,
    TaskNotFoundError,
    TaskwaveError,
    TransitionError,
)
from taskwave.dag.graph import DependencyGraph, build_graph
from taskwave.dag.models import (
    ExecutionWave,
    StatusTransition,
    TaskInput,
    TaskNode,
    TaskStatus,
    WaveStats,
    WaveStatus,
)
from taskwave.dag.propagation import propagate_failure, sweep_unreachable
from taskwave.dag.visualize import (
    render_ascii,
    render_compact,
    render_detailed,
    render_progress,
)
from taskwave.dag.waves import (
    compute_depths,
    compute_waves,
    critical_path,
    execution_order,
    wave_for_task,
    wave_stats,
    waves_from_task,
)

__all__ = [
    # Models
    "ExecutionWave",
    "StatusTransition",
    "TaskInput",
    "TaskNode",
    "TaskStatus",
    "WaveStats",
    "WaveStatus",
    # Graph
    "DependencyGraph",
    "build_graph",
    # Cycles
    "detect_cycle",
    "find_cycle",
    # Waves
    "compute_depths",
    "compute_waves",
    "critical_path",
    "execution_order",
    "wave_for_task",
    "wave_stats",
    "waves_from_task",
    # Propagation
    "propagate_failure",
    "sweep_unreachable",
    # Visualization
    "render_ascii",
    "render_compact",
    "render_detailed",
    "render_progress",
    # Errors
    "TaskwaveError",
    "GraphError",
    "DuplicateTaskError",
    "MissingDependencyError",
    "CycleError",
    "NoRootTasksError",
    "TransitionError",
    "TaskNotFoundError",
    "IllegalTransitionError",
]
