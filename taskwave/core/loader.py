"""
Task file loading.

Reads a YAML task breakdown and turns it into TaskInput values for
``DependencyGraph.build``. Two layouts are accepted::

    phases:                      tasks:
      - id: 1                      - id: T1
        tasks:                       dependencies: []
          - id: T1                 - id: T2
            dependencies: []         dependencies: [T1]

Every task mapping becomes that task's payload. Tasks under a phase get a
``phase`` key when they do not carry one.
"""

from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from loguru import logger

from taskwave.dag.exceptions import TaskwaveError
from taskwave.dag.models import TaskInput


class TaskFileError(TaskwaveError):
    """Task file is missing, unreadable or malformed."""

    pass


def _task_items(document: Any) -> list[Any]:
    if isinstance(document, list):
        return document

    if not isinstance(document, Mapping):
        raise TaskFileError("task file must contain a mapping or a list of tasks")

    if "phases" in document:
        items: list[Any] = []
        for phase in document["phases"] or []:
            if not isinstance(phase, Mapping):
                raise TaskFileError("each phase must be a mapping")
            for task in phase.get("tasks") or []:
                if isinstance(task, Mapping) and "phase" not in task and "id" in phase:
                    task = {**task, "phase": phase["id"]}
                items.append(task)
        return items

    if "tasks" in document:
        return list(document["tasks"] or [])

    raise TaskFileError("task file has neither 'phases' nor 'tasks'")


def parse_tasks(document: Any) -> list[TaskInput]:
    """
    Convert a parsed YAML document into task inputs.

    Raises:
        TaskFileError: If the document layout or a task entry is invalid.
    """
    tasks: list[TaskInput] = []
    for position, item in enumerate(_task_items(document), start=1):
        if not isinstance(item, Mapping) or "id" not in item:
            raise TaskFileError(f"task #{position} must be a mapping with an 'id'")
        try:
            tasks.append(TaskInput.coerce(dict(item)))
        except (TypeError, ValueError) as e:
            raise TaskFileError(f"task #{position} is invalid: {e}") from e
    return tasks


def load_tasks(path: str | Path) -> list[TaskInput]:
    """
    Load task inputs from a YAML file.

    Args:
        path: Path to the task file.

    Returns:
        Task inputs in file order.

    Raises:
        TaskFileError: If the file cannot be read or parsed.
    """
    path = Path(path)
    try:
        with open(path, encoding="utf-8") as f:
            document = yaml.safe_load(f)
    except OSError as e:
        raise TaskFileError(f"cannot read task file {path}: {e}") from e
    except yaml.YAMLError as e:
        raise TaskFileError(f"invalid YAML in {path}: {e}") from e

    if document is None:
        raise TaskFileError(f"task file {path} is empty")

    tasks = parse_tasks(document)
    logger.debug(f"Loaded {len(tasks)} tasks from {path}")
    return tasks
