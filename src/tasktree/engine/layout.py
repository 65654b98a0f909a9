"""Column-per-depth tree layout for the task canvas.

Tasks are arranged left to right by depth: a breadth-first walk seeded with
the project's root tasks assigns every reachable task a level, each level
becomes a column, and each column is stacked vertically around a shared
midline.  The result depends only on the task links and the root order, so
two calls with the same input always agree.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, replace
from typing import Mapping, Optional, Sequence

from ..domain.models import Position, Project, Task


@dataclass(frozen=True)
class LayoutConfig:
    start_x: float = 50.0
    # No top clamp by default so every column stays centred on the midline; 50.0 restores a top margin.
    start_y: Optional[float] = None
    column_width: float = 280.0
    node_height: float = 160.0
    vertical_spacing: float = 20.0
    midline: float = 200.0


DEFAULT_LAYOUT = LayoutConfig()


def _levels(tasks: Mapping[str, Task], root_task_ids: Sequence[str]) -> list[list[str]]:
    levels: list[list[str]] = []
    visited: set[str] = set()
    queue: deque[tuple[str, int]] = deque((rid, 0) for rid in root_task_ids)

    while queue:
        task_id, level = queue.popleft()
        if task_id in visited:
            continue
        task = tasks.get(task_id)
        if task is None:
            continue
        visited.add(task_id)
        while len(levels) <= level:
            levels.append([])
        levels[level].append(task_id)
        for child_id in task.child_ids:
            if child_id not in visited:
                queue.append((child_id, level + 1))
    return levels


def _column_top(count: int, config: LayoutConfig) -> float:
    if count == 1:
        return config.midline - config.node_height / 2
    block = count * config.node_height + (count - 1) * config.vertical_spacing
    top = config.midline - block / 2
    if config.start_y is not None:
        top = max(config.start_y, top)
    return top


def compute_layout(
    tasks: Mapping[str, Task],
    root_task_ids: Sequence[str],
    config: Optional[LayoutConfig] = None,
) -> dict[str, Position]:
    """Return ``{task_id: Position}`` for every task reachable from a root.

    Unreachable tasks (orphans, dangling ids) are left out of the result.
    """
    config = config or DEFAULT_LAYOUT
    step = config.node_height + config.vertical_spacing
    positions: dict[str, Position] = {}
    for level, column in enumerate(_levels(tasks, root_task_ids)):
        x = config.start_x + level * config.column_width
        top = _column_top(len(column), config)
        for index, task_id in enumerate(column):
            positions[task_id] = Position(x=x, y=top + index * step)
    return positions


def apply_layout(project: Project, config: Optional[LayoutConfig] = None) -> Project:
    """Return a copy of *project* whose reachable tasks carry fresh positions.

    Tasks whose position does not change are shared with the input; the
    others are replaced, never mutated.
    """
    positions = compute_layout(project.tasks, project.root_task_ids, config)
    tasks = dict(project.tasks)
    for task_id, position in positions.items():
        if tasks[task_id].position != position:
            tasks[task_id] = replace(tasks[task_id], position=position)
    return replace(project, tasks=tasks)
