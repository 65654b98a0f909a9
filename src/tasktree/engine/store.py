"""Entity store: the canonical ``project id -> Project`` map.

The store is an immutable value.  The only ways to change it are
:meth:`EntityStore.replace` (whole-project swap, invariant-checked) and
:meth:`EntityStore.remove`, both of which return a new store, so a half
applied mutation can never be observed.
"""

from __future__ import annotations

from typing import Any, Iterator, Optional

from ..domain.models import Project
from .invariants import InvariantViolation, check_project


class EntityStore:
    __slots__ = ("_projects",)

    def __init__(self, projects: Optional[dict[str, Project]] = None) -> None:
        self._projects: dict[str, Project] = dict(projects or {})

    # -- lookups ------------------------------------------------------------

    def get(self, project_id: Optional[str]) -> Optional[Project]:
        if project_id is None:
            return None
        return self._projects.get(project_id)

    def project_ids(self) -> list[str]:
        return list(self._projects)

    def projects(self) -> list[Project]:
        """Projects ordered by creation time (ties keep insertion order)."""
        return sorted(self._projects.values(), key=lambda p: p.created_at)

    def earliest_project(self) -> Optional[Project]:
        ordered = self.projects()
        return ordered[0] if ordered else None

    def __contains__(self, project_id: object) -> bool:
        return project_id in self._projects

    def __len__(self) -> int:
        return len(self._projects)

    def __iter__(self) -> Iterator[Project]:
        return iter(list(self._projects.values()))

    # -- whole-project replacement -----------------------------------------

    def replace(self, project: Project) -> "EntityStore":
        """Return a store holding *project* in place of its previous snapshot.

        Raises :class:`InvariantViolation` if the snapshot is inconsistent.
        """
        problems = check_project(project)
        if problems:
            raise InvariantViolation(project.id, problems)
        projects = dict(self._projects)
        projects[project.id] = project
        return EntityStore(projects)

    def remove(self, project_id: str) -> "EntityStore":
        if project_id not in self._projects:
            return self
        projects = dict(self._projects)
        del projects[project_id]
        return EntityStore(projects)

    # -- serialization ------------------------------------------------------

    def to_dict(self) -> dict[str, Any]:
        return {pid: p.to_dict() for pid, p in self._projects.items()}

    @classmethod
    def from_dict(cls, data: Any) -> "EntityStore":
        """Restore a store, skipping project snapshots that fail the checks."""
        store = cls()
        if not isinstance(data, dict):
            return store
        for raw in data.values():
            if not isinstance(raw, dict):
                continue
            project = Project.from_dict(raw)
            if check_project(project):
                continue
            store = store.replace(project)
        return store
