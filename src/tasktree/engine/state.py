from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Optional

from ..domain.models import Project
from .store import EntityStore


@dataclass(frozen=True)
class AppState:
    """Everything the task tree knows at one point in time.

    Reducers in :mod:`tasktree.engine.mutations` take an ``AppState`` and
    return a new one; nothing mutates an existing value.
    """

    store: EntityStore = field(default_factory=EntityStore)
    selected_project_id: Optional[str] = None
    selected_task_id: Optional[str] = None

    def with_project(self, project: Project) -> "AppState":
        return replace(self, store=self.store.replace(project))

    def project(self, project_id: Optional[str]) -> Optional[Project]:
        return self.store.get(project_id)

    def to_dict(self) -> dict[str, Any]:
        return {
            "projects": self.store.to_dict(),
            "selected_project_id": self.selected_project_id,
            "selected_task_id": self.selected_task_id,
        }

    @classmethod
    def from_dict(cls, data: Any) -> "AppState":
        if not isinstance(data, dict):
            return cls()
        store = EntityStore.from_dict(data.get("projects"))
        project_id = data.get("selected_project_id")
        task_id = data.get("selected_task_id")
        project = store.get(str(project_id)) if project_id else None
        if project is None:
            return cls(store=store)
        if not task_id or str(task_id) not in project.tasks:
            task_id = None
        return cls(store=store, selected_project_id=project.id, selected_task_id=task_id)
