"""Task, project and conversation models for the task tree.

Everything here serializes to plain, acyclic, id-referencing dicts: tasks
refer to their parent and children by id only, and a project owns its tasks
through a flat ``id -> Task`` map.  That keeps snapshots trivially
persistable by :mod:`tasktree.storage.state_file`.

All models are frozen; changes are made with :func:`dataclasses.replace`.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping, Optional


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class TaskStatus(str, Enum):
    """Progress of a single task."""

    PENDING = "pending"
    ACTIVE = "active"
    COMPLETED = "completed"
    FAILED = "failed"


class ProjectStatus(str, Enum):
    ACTIVE = "active"
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class NodeType(str, Enum):
    """How a task came into existence."""

    ORIGINAL = "original"
    CLONE = "clone"
    SPAWN = "spawn"


class ExecutionMode(str, Enum):
    INTERACTIVE = "interactive"
    AUTONOMOUS = "autonomous"


class MessageRole(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def generate_id(prefix: str) -> str:
    """Short id of the form ``<prefix>-<12hex>``."""
    return f"{prefix}-{uuid.uuid4().hex[:12]}"


def _coerce_enum(enum_cls: type[Enum], raw: Any, default: Enum) -> Any:
    if raw is None:
        return default
    if isinstance(raw, enum_cls):
        return raw
    try:
        return enum_cls(str(raw))
    except (ValueError, KeyError):
        return default


# ---------------------------------------------------------------------------
# Value types
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Position:
    """Top-left canvas coordinate of a task node."""

    x: float = 0.0
    y: float = 0.0

    def to_dict(self) -> dict[str, float]:
        return {"x": self.x, "y": self.y}

    @classmethod
    def from_dict(cls, data: Any) -> "Position":
        if not isinstance(data, dict):
            return cls()
        try:
            return cls(x=float(data.get("x", 0.0)), y=float(data.get("y", 0.0)))
        except (TypeError, ValueError):
            return cls()


@dataclass(frozen=True)
class Message:
    role: MessageRole = MessageRole.USER
    content: str = ""
    id: str = field(default_factory=lambda: generate_id("msg"))
    timestamp: str = field(default_factory=now_iso)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "role": self.role.value,
            "content": self.content,
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Message":
        return cls(
            id=str(data.get("id") or generate_id("msg")),
            role=_coerce_enum(MessageRole, data.get("role"), MessageRole.USER),
            content=str(data.get("content") or ""),
            timestamp=str(data.get("timestamp") or now_iso()),
        )


@dataclass(frozen=True)
class Conversation:
    id: str = field(default_factory=lambda: generate_id("conv"))
    messages: tuple[Message, ...] = ()
    last_activity: str = field(default_factory=now_iso)

    def __post_init__(self) -> None:
        object.__setattr__(self, "messages", tuple(self.messages))

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "messages": [m.to_dict() for m in self.messages],
            "last_activity": self.last_activity,
        }

    @classmethod
    def from_dict(cls, data: Any) -> "Conversation":
        if not isinstance(data, dict):
            return cls()
        messages = [Message.from_dict(m) for m in list(data.get("messages") or []) if isinstance(m, dict)]
        return cls(
            id=str(data.get("id") or generate_id("conv")),
            messages=messages,
            last_activity=str(data.get("last_activity") or now_iso()),
        )


# ---------------------------------------------------------------------------
# Task
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Task:
    """A node in a project's decomposition tree.

    ``parent_id`` / ``child_ids`` are the only structural links.  The
    mutation reducers keep them consistent with each other and with the
    owning project's ``root_task_ids``.
    """

    # Identity
    id: str = field(default_factory=lambda: generate_id("task"))
    title: str = ""
    description: str = ""

    # Classification
    status: TaskStatus = TaskStatus.PENDING
    node_type: NodeType = NodeType.ORIGINAL
    execution_mode: ExecutionMode = ExecutionMode.INTERACTIVE

    # Hierarchy
    parent_id: Optional[str] = None
    child_ids: tuple[str, ...] = ()

    # Rendering
    position: Position = field(default_factory=Position)

    conversation: Conversation = field(default_factory=Conversation)

    created_at: str = field(default_factory=now_iso)
    updated_at: str = field(default_factory=now_iso)

    def __post_init__(self) -> None:
        object.__setattr__(self, "child_ids", tuple(self.child_ids))

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "status": self.status.value,
            "node_type": self.node_type.value,
            "execution_mode": self.execution_mode.value,
            "parent_id": self.parent_id,
            "child_ids": list(self.child_ids),
            "position": self.position.to_dict(),
            "conversation": self.conversation.to_dict(),
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Task":
        """Deserialize from a plain dict, coercing enums gracefully."""
        parent_id = data.get("parent_id")
        return cls(
            id=str(data.get("id") or generate_id("task")),
            title=str(data.get("title") or ""),
            description=str(data.get("description") or ""),
            status=_coerce_enum(TaskStatus, data.get("status"), TaskStatus.PENDING),
            node_type=_coerce_enum(NodeType, data.get("node_type"), NodeType.ORIGINAL),
            execution_mode=_coerce_enum(ExecutionMode, data.get("execution_mode"), ExecutionMode.INTERACTIVE),
            parent_id=str(parent_id) if parent_id else None,
            child_ids=tuple(str(c) for c in list(data.get("child_ids") or [])),
            position=Position.from_dict(data.get("position")),
            conversation=Conversation.from_dict(data.get("conversation")),
            created_at=str(data.get("created_at") or now_iso()),
            updated_at=str(data.get("updated_at") or now_iso()),
        )

    @property
    def is_root(self) -> bool:
        return self.parent_id is None


# ---------------------------------------------------------------------------
# Project
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Project:
    """Top-level container owning a tree of tasks."""

    id: str = field(default_factory=lambda: generate_id("project"))
    title: str = ""
    description: str = ""
    status: ProjectStatus = ProjectStatus.ACTIVE
    tasks: Mapping[str, Task] = field(default_factory=dict)
    root_task_ids: tuple[str, ...] = ()
    created_at: str = field(default_factory=now_iso)
    updated_at: str = field(default_factory=now_iso)

    def __post_init__(self) -> None:
        # Copied so the caller keeps no handle on the task map.
        object.__setattr__(self, "tasks", MappingProxyType(dict(self.tasks)))
        object.__setattr__(self, "root_task_ids", tuple(self.root_task_ids))

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "status": self.status.value,
            "tasks": {tid: t.to_dict() for tid, t in self.tasks.items()},
            "root_task_ids": list(self.root_task_ids),
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Project":
        raw_tasks = data.get("tasks") or {}
        if isinstance(raw_tasks, list):
            raw_tasks = {str(t.get("id")): t for t in raw_tasks if isinstance(t, dict)}
        tasks: dict[str, Task] = {}
        for raw in raw_tasks.values():
            if isinstance(raw, dict):
                task = Task.from_dict(raw)
                tasks[task.id] = task
        return cls(
            id=str(data.get("id") or generate_id("project")),
            title=str(data.get("title") or ""),
            description=str(data.get("description") or ""),
            status=_coerce_enum(ProjectStatus, data.get("status"), ProjectStatus.ACTIVE),
            tasks=tasks,
            root_task_ids=tuple(str(r) for r in list(data.get("root_task_ids") or [])),
            created_at=str(data.get("created_at") or now_iso()),
            updated_at=str(data.get("updated_at") or now_iso()),
        )

    @property
    def first_root_task_id(self) -> Optional[str]:
        return self.root_task_ids[0] if self.root_task_ids else None


def new_project(title: str, description: str) -> Project:
    """Build a project together with its root task.

    The root task mirrors the project's title and description and starts at
    the layout origin column.
    """
    root = Task(
        title=title,
        description=description,
        node_type=NodeType.ORIGINAL,
        position=Position(x=50.0, y=200.0),
    )
    return Project(
        title=title,
        description=description,
        tasks={root.id: root},
        root_task_ids=(root.id,),
    )
