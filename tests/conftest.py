"""Pytest configuration and shared fixtures."""

import os
from collections.abc import Generator

import pytest

from taskwave.dag import DependencyGraph

# Set test environment
os.environ.setdefault("TASKWAVE_LOG_LEVEL", "DEBUG")


@pytest.fixture
def clean_settings() -> Generator:
    """Clear cached settings around a test."""
    from taskwave.core.config import clear_settings_cache

    clear_settings_cache()

    yield

    clear_settings_cache()


@pytest.fixture
def chain_tasks() -> list[tuple[str, list[str]]]:
    """T1 <- T2 <- T3."""
    return [("T1", []), ("T2", ["T1"]), ("T3", ["T2"])]


@pytest.fixture
def diamond_tasks() -> list[tuple[str, list[str]]]:
    """T1 fans out to T2 and T3, which join at T4."""
    return [("T1", []), ("T2", ["T1"]), ("T3", ["T1"]), ("T4", ["T2", "T3"])]


@pytest.fixture
def disjoint_tasks() -> list[tuple[str, list[str]]]:
    """Two independent roots feeding one task."""
    return [("T2", []), ("T1", []), ("T3", ["T1", "T2"])]


@pytest.fixture
def diamond_graph(diamond_tasks: list) -> DependencyGraph:
    """Diamond graph with waves computed."""
    graph = DependencyGraph.build(diamond_tasks)
    graph.compute_waves()
    return graph


@pytest.fixture
def tasks_yaml(tmp_path) -> str:
    """A phases-style task file on disk."""
    path = tmp_path / "tasks.yaml"
    path.write_text(
        """
phases:
  - id: 1
    name: Setup
    tasks:
      - id: T1
        title: Init project
        dependencies: []
  - id: 2
    name: Core
    tasks:
      - id: T2
        title: Models
        dependencies: [T1]
      - id: T3
        title: Services
        dependencies: [T1]
      - id: T4
        title: API
        dependencies: [T2, T3]
""",
        encoding="utf-8",
    )
    return str(path)
