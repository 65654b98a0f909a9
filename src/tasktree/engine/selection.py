"""Selection pointers and their fallback rules.

The selected task is only meaningful inside the selected project; a pointer
that does not resolve is treated as unset by :func:`selected_task`.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Optional, cast

from loguru import logger

from ..constants import DEFAULT_PROJECT_DESCRIPTION, DEFAULT_PROJECT_TITLE
from ..domain.models import Project, Task, new_project
from .state import AppState


def selected_project(state: AppState) -> Optional[Project]:
    return state.project(state.selected_project_id)


def selected_task(state: AppState) -> Optional[Task]:
    project = selected_project(state)
    if project is None or state.selected_task_id is None:
        return None
    return project.tasks.get(state.selected_task_id)


def select_project(state: AppState, project_id: Optional[str]) -> AppState:
    """Point at *project_id* (or nothing) and clear the task selection.

    Unknown ids leave the state untouched.
    """
    if project_id is not None and project_id not in state.store:
        return state
    return replace(state, selected_project_id=project_id, selected_task_id=None)


def select_task(state: AppState, task_id: Optional[str]) -> AppState:
    if task_id is None:
        return replace(state, selected_task_id=None)
    project = selected_project(state)
    if project is None or task_id not in project.tasks:
        return state
    return replace(state, selected_task_id=task_id)


def select_created(state: AppState, project_id: str, task_id: str) -> AppState:
    """Pair a freshly created project/task with the selection in one step."""
    return replace(state, selected_project_id=project_id, selected_task_id=task_id)


def initialize_selection(state: AppState) -> AppState:
    """Make sure something sensible is selected.

    With no projects at all a default project is created and selected.  With
    projects but no (valid) selection, the earliest-created project and its
    first root task are selected.  A valid selection is left alone.
    """
    if len(state.store) == 0:
        project = new_project(DEFAULT_PROJECT_TITLE, DEFAULT_PROJECT_DESCRIPTION)
        logger.info("No projects left; created {}", project.id)
        return select_created(state.with_project(project), project.id, project.root_task_ids[0])

    if selected_project(state) is not None:
        return state

    project = cast(Project, state.store.earliest_project())
    return replace(
        state,
        selected_project_id=project.id,
        selected_task_id=project.first_root_task_id,
    )


def after_project_deleted(state: AppState, was_selected: bool) -> AppState:
    if was_selected:
        state = replace(state, selected_project_id=None, selected_task_id=None)
        return initialize_selection(state)
    if len(state.store) == 0:
        return initialize_selection(state)
    return state


def after_tasks_deleted(state: AppState, task_ids: set[str]) -> AppState:
    if state.selected_task_id in task_ids:
        return replace(state, selected_task_id=None)
    return state
