"""Structural checks for project snapshots.

Each checker returns a list of human-readable problems; an empty list means
the snapshot is consistent.  :class:`~tasktree.engine.store.EntityStore`
runs :func:`check_project` on every replace.
"""

from __future__ import annotations

from ..domain.models import Project


class InvariantViolation(ValueError):
    """A project snapshot broke one or more structural invariants."""

    def __init__(self, project_id: str, problems: list[str]) -> None:
        self.project_id = project_id
        self.problems = list(problems)
        super().__init__(f"Project {project_id} is inconsistent: " + "; ".join(self.problems))


def find_orphans(project: Project) -> list[str]:
    """Ids of tasks whose parent no longer exists in the project."""
    return [
        t.id
        for t in project.tasks.values()
        if t.parent_id is not None and t.parent_id not in project.tasks
    ]


def reachable_task_ids(project: Project) -> set[str]:
    seen: set[str] = set()
    stack = list(project.root_task_ids)
    while stack:
        tid = stack.pop()
        if tid in seen or tid not in project.tasks:
            continue
        seen.add(tid)
        stack.extend(project.tasks[tid].child_ids)
    return seen


def check_links(project: Project) -> list[str]:
    """Parent/child back-link consistency.

    A task pointing at a parent that is gone is an orphan, which is allowed;
    a task pointing at a parent that exists but does not list it is not.
    """
    errors: list[str] = []
    for task in project.tasks.values():
        if task.parent_id is None or task.parent_id not in project.tasks:
            continue
        parent = project.tasks[task.parent_id]
        if task.id not in parent.child_ids:
            errors.append(f"task {task.id} names parent {parent.id} which does not list it")
    for parent in project.tasks.values():
        if len(set(parent.child_ids)) != len(parent.child_ids):
            errors.append(f"task {parent.id} lists a child more than once")
        for child_id in parent.child_ids:
            child = project.tasks.get(child_id)
            if child is None:
                errors.append(f"task {parent.id} lists missing child {child_id}")
            elif child.parent_id != parent.id:
                errors.append(f"task {parent.id} lists child {child_id} whose parent is {child.parent_id}")
    return errors


def check_roots(project: Project) -> list[str]:
    errors: list[str] = []
    roots = project.root_task_ids
    if len(set(roots)) != len(roots):
        errors.append("root_task_ids contains duplicates")
    expected = {t.id for t in project.tasks.values() if t.parent_id is None}
    if set(roots) != expected:
        missing = sorted(expected - set(roots))
        extra = sorted(set(roots) - expected)
        if missing:
            errors.append(f"parentless tasks missing from root_task_ids: {missing}")
        if extra:
            errors.append(f"root_task_ids lists non-root or unknown tasks: {extra}")
    return errors


def check_project(project: Project) -> list[str]:
    errors: list[str] = []
    if not project.tasks:
        errors.append("project has no tasks")
    for task_id, task in project.tasks.items():
        if task.id != task_id:
            errors.append(f"task map key {task_id} does not match task id {task.id}")
    errors.extend(check_links(project))
    errors.extend(check_roots(project))
    return errors
