from .models import (
    Conversation,
    ExecutionMode,
    Message,
    MessageRole,
    NodeType,
    Position,
    Project,
    ProjectStatus,
    Task,
    TaskStatus,
    new_project,
    now_iso,
)
from .patches import ProjectPatch, TaskPatch

__all__ = [
    "Conversation",
    "ExecutionMode",
    "Message",
    "MessageRole",
    "NodeType",
    "Position",
    "Project",
    "ProjectPatch",
    "ProjectStatus",
    "Task",
    "TaskPatch",
    "TaskStatus",
    "new_project",
    "now_iso",
]
