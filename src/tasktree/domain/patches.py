"""Typed partial-update payloads for tasks and projects.

Only whitelisted fields can be patched.  Constructing a patch directly with
an unknown keyword is rejected by pydantic (``extra="forbid"``); loosely
typed payloads coming from the outside go through :meth:`from_mapping`,
which silently drops unknown keys and values that fail validation.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional

from pydantic import BaseModel, ConfigDict, ValidationError

from .models import Position, ProjectStatus, TaskStatus


class _Patch(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    @classmethod
    def from_mapping(cls, data: Optional[Mapping[str, Any]]) -> "_Patch":
        """Build a patch from an untyped mapping, keeping only valid fields."""
        accepted: dict[str, Any] = {}
        for key, value in dict(data or {}).items():
            if key not in cls.model_fields or value is None:
                continue
            try:
                cls.model_validate({key: value})
            except ValidationError:
                continue
            accepted[key] = value
        return cls.model_validate(accepted)

    def changes(self) -> dict[str, Any]:
        """Return the explicitly set, non-null fields."""
        return {
            name: getattr(self, name)
            for name in sorted(self.model_fields_set)
            if getattr(self, name) is not None
        }

    @property
    def is_empty(self) -> bool:
        return not self.changes()


class TaskPatch(_Patch):
    title: Optional[str] = None
    description: Optional[str] = None
    status: Optional[TaskStatus] = None
    position: Optional[Position] = None


class ProjectPatch(_Patch):
    title: Optional[str] = None
    description: Optional[str] = None
    status: Optional[ProjectStatus] = None
