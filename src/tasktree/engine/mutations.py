"""Task and project mutations as reducers over :class:`AppState`.

Every public function here takes the current state and returns the next
one.  They are total: unknown project or task ids make the call a no-op that
returns the input state unchanged, and nothing in this module raises for
bad input.  Structural changes (create, clone, spawn, delete) rerun the
full tree layout of the affected project.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Optional

from loguru import logger

from ..constants import CLONE_TITLE_SUFFIX, DEFAULT_ORPHAN_POLICY
from ..domain.models import Message, NodeType, Position, Project, Task, new_project, now_iso
from ..domain.patches import ProjectPatch, TaskPatch
from . import selection
from .layout import LayoutConfig, apply_layout
from .state import AppState


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _lookup(state: AppState, project_id: str, task_id: str) -> tuple[Optional[Project], Optional[Task]]:
    project = state.project(project_id)
    if project is None:
        return None, None
    return project, project.tasks.get(task_id)


def _link(project: Project, task: Task) -> Project:
    """Insert *task* and hook it under its parent (or into the root list)."""
    tasks = dict(project.tasks)
    root_task_ids = list(project.root_task_ids)
    if task.parent_id is not None:
        parent = tasks[task.parent_id]
        tasks[parent.id] = replace(parent, child_ids=(*parent.child_ids, task.id), updated_at=now_iso())
    else:
        root_task_ids.append(task.id)
    tasks[task.id] = task
    return replace(project, tasks=tasks, root_task_ids=root_task_ids, updated_at=now_iso())


def _descendants(project: Project, task_id: str) -> list[str]:
    out: list[str] = []
    stack = list(project.tasks[task_id].child_ids)
    while stack:
        tid = stack.pop()
        if tid in out or tid not in project.tasks:
            continue
        out.append(tid)
        stack.extend(project.tasks[tid].child_ids)
    return out


def _insert_task(
    state: AppState,
    project: Project,
    task: Task,
    layout: Optional[LayoutConfig],
) -> AppState:
    project = apply_layout(_link(project, task), layout)
    state = state.with_project(project)
    logger.info("Created {} task {} in project {}", task.node_type.value, task.id, project.id)
    return selection.select_created(state, project.id, task.id)


# ---------------------------------------------------------------------------
# Projects
# ---------------------------------------------------------------------------

def create_project(state: AppState, title: str, description: str = "") -> AppState:
    """Add a project with its root task and select both."""
    project = new_project(title, description)
    state = state.with_project(project)
    logger.info("Created project {}: {}", project.id, title)
    return selection.select_created(state, project.id, project.root_task_ids[0])


def update_project(state: AppState, project_id: str, patch: ProjectPatch) -> AppState:
    project = state.project(project_id)
    changes = patch.changes()
    if project is None or not changes:
        return state
    project = replace(project, **changes, updated_at=now_iso())
    logger.debug("Updated project {} fields {}", project_id, sorted(changes))
    return state.with_project(project)


def delete_project(state: AppState, project_id: str) -> AppState:
    """Remove a project; reselect or recreate as the selection rules require."""
    if project_id not in state.store:
        return state
    was_selected = state.selected_project_id == project_id
    state = replace(state, store=state.store.remove(project_id))
    logger.info("Deleted project {}", project_id)
    return selection.after_project_deleted(state, was_selected)


def recalculate_layout(state: AppState, project_id: str, layout: Optional[LayoutConfig] = None) -> AppState:
    project = state.project(project_id)
    if project is None:
        return state
    return state.with_project(apply_layout(project, layout))


# ---------------------------------------------------------------------------
# Tasks
# ---------------------------------------------------------------------------

def create_task(
    state: AppState,
    project_id: str,
    title: str,
    description: str = "",
    node_type: NodeType = NodeType.ORIGINAL,
    parent_id: Optional[str] = None,
    position: Optional[Position] = None,
    layout: Optional[LayoutConfig] = None,
) -> AppState:
    """Insert a task under *parent_id* (or as a new root) and select it.

    The supplied *position* only survives until the layout pass, which
    places every reachable task.
    """
    project = state.project(project_id)
    if project is None:
        return state
    if parent_id is not None and parent_id not in project.tasks:
        logger.debug("create_task: unknown parent {} in project {}", parent_id, project_id)
        return state
    task = Task(
        title=title,
        description=description,
        node_type=node_type,
        parent_id=parent_id,
        position=position or Position(),
    )
    return _insert_task(state, project, task, layout)


def update_task(state: AppState, project_id: str, task_id: str, patch: TaskPatch) -> AppState:
    project, task = _lookup(state, project_id, task_id)
    changes = patch.changes()
    if project is None or task is None or not changes:
        return state
    now = now_iso()
    tasks = dict(project.tasks)
    tasks[task_id] = replace(task, **changes, updated_at=now)
    logger.debug("Updated task {} fields {}", task_id, sorted(changes))
    return state.with_project(replace(project, tasks=tasks, updated_at=now))


def delete_task(
    state: AppState,
    project_id: str,
    task_id: str,
    orphan_policy: str = DEFAULT_ORPHAN_POLICY,
    layout: Optional[LayoutConfig] = None,
) -> AppState:
    """Remove a task and unlink it from its parent or the root list.

    What happens to its descendants depends on *orphan_policy*:

    - ``orphan``: they stay in the task map, unreachable from the roots;
    - ``cascade``: they are removed as well;
    - ``reparent``: its direct children move up to its parent (or become
      roots, appended after the existing ones).

    Deleting a project's last remaining task is refused.
    """
    project, task = _lookup(state, project_id, task_id)
    if project is None or task is None:
        return state

    removed = {task_id}
    if orphan_policy == "cascade":
        removed.update(_descendants(project, task_id))
    if len(removed) >= len(project.tasks):
        logger.debug("Refusing to delete the last task of project {}", project_id)
        return state

    now = now_iso()
    tasks = {tid: t for tid, t in project.tasks.items() if tid not in removed}
    root_task_ids = [rid for rid in project.root_task_ids if rid not in removed]

    parent = tasks.get(task.parent_id) if task.parent_id else None
    children = [cid for cid in task.child_ids if cid in tasks]

    if orphan_policy == "reparent" and children:
        for cid in children:
            tasks[cid] = replace(tasks[cid], parent_id=parent.id if parent else None, updated_at=now)
        if parent is None:
            root_task_ids.extend(cid for cid in children if cid not in root_task_ids)

    if parent is not None:
        child_ids = [cid for cid in parent.child_ids if cid != task_id]
        if orphan_policy == "reparent":
            child_ids.extend(cid for cid in children if cid not in child_ids)
        tasks[parent.id] = replace(parent, child_ids=child_ids, updated_at=now)

    project = replace(project, tasks=tasks, root_task_ids=root_task_ids, updated_at=now)
    state = state.with_project(apply_layout(project, layout))
    logger.info("Deleted task {} from project {} ({} removed, policy={})", task_id, project_id, len(removed), orphan_policy)
    if state.selected_project_id == project_id:
        state = selection.after_tasks_deleted(state, removed)
    return state


def clone_task(
    state: AppState,
    project_id: str,
    task_id: str,
    layout: Optional[LayoutConfig] = None,
) -> AppState:
    """Duplicate a task next to the original (same parent) and select it.

    Only title, description, parent and position are copied; the clone
    starts with no children and an empty conversation.
    """
    project, original = _lookup(state, project_id, task_id)
    if project is None or original is None:
        return state
    # The clone of an orphan becomes a root.
    parent_id = original.parent_id if original.parent_id in project.tasks else None
    clone = Task(
        title=f"{original.title}{CLONE_TITLE_SUFFIX}",
        description=original.description,
        node_type=NodeType.CLONE,
        parent_id=parent_id,
        position=original.position,
    )
    return _insert_task(state, project, clone, layout)


def spawn_task(
    state: AppState,
    project_id: str,
    parent_task_id: str,
    title: str,
    description: str = "",
    layout: Optional[LayoutConfig] = None,
) -> AppState:
    project, parent = _lookup(state, project_id, parent_task_id)
    if project is None or parent is None:
        return state
    child = Task(
        title=title,
        description=description,
        node_type=NodeType.SPAWN,
        parent_id=parent.id,
        position=parent.position,
    )
    return _insert_task(state, project, child, layout)


def add_message(state: AppState, project_id: str, task_id: str, message: Message) -> AppState:
    project, task = _lookup(state, project_id, task_id)
    if project is None or task is None:
        logger.debug("Dropping message for missing task {}/{}", project_id, task_id)
        return state
    now = now_iso()
    conversation = replace(
        task.conversation,
        messages=(*task.conversation.messages, message),
        last_activity=now,
    )
    tasks = dict(project.tasks)
    tasks[task_id] = replace(task, conversation=conversation, updated_at=now)
    return state.with_project(replace(project, tasks=tasks, updated_at=now))


# Selection reducers live in :mod:`selection`; re-exported so callers can
# drive everything from one module.
select_project = selection.select_project
select_task = selection.select_task
initialize_selection = selection.initialize_selection
