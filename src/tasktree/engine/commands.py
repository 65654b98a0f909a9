"""Slash commands typed into a task's chat.

Input starting with ``/`` never reaches the text generator.  Each command is
applied to the task whose chat it was typed into and answered with exactly
one assistant message.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional

from ..constants import DEFAULT_SPAWN_TITLE
from ..domain.models import Message, MessageRole
from . import mutations
from .layout import LayoutConfig
from .state import AppState

AVAILABLE_COMMANDS = "/clone, /spawn [title], /exit"


@dataclass(frozen=True)
class Command:
    name: str
    args: tuple[str, ...] = ()
    # Everything after the name, inner whitespace kept.
    arg_text: str = ""


@dataclass(frozen=True)
class CommandOutcome:
    state: AppState
    reply: str
    changed: bool


def is_command(text: str) -> bool:
    return text.strip().startswith("/")


def parse_command(text: str) -> Optional[Command]:
    stripped = text.strip()
    if not stripped.startswith("/"):
        return None
    parts = stripped.split()
    return Command(name=parts[0], args=tuple(parts[1:]), arg_text=stripped[len(parts[0]):].strip())


def _clone(state: AppState, project_id: str, task_id: str, command: Command, layout: Optional[LayoutConfig]) -> tuple[AppState, str]:
    new_state = mutations.clone_task(state, project_id, task_id, layout=layout)
    return new_state, "✅ Task cloned successfully! A new clone has been created."


def _spawn(state: AppState, project_id: str, task_id: str, command: Command, layout: Optional[LayoutConfig]) -> tuple[AppState, str]:
    project = state.project(project_id)
    parent = project.tasks.get(task_id) if project else None
    title = command.arg_text or DEFAULT_SPAWN_TITLE
    description = f"Spawned from {parent.title}" if parent else ""
    new_state = mutations.spawn_task(state, project_id, task_id, title, description, layout=layout)
    return new_state, f'✅ New task "{title}" spawned successfully!'


def _exit(state: AppState, project_id: str, task_id: str, command: Command, layout: Optional[LayoutConfig]) -> tuple[AppState, str]:
    return state, "✅ Task folded back to parent successfully."


_Handler = Callable[[AppState, str, str, Command, Optional[LayoutConfig]], tuple[AppState, str]]

COMMANDS: dict[str, _Handler] = {
    "/clone": _clone,
    "/spawn": _spawn,
    "/exit": _exit,
}


def run_command(
    state: AppState,
    project_id: str,
    task_id: str,
    text: str,
    layout: Optional[LayoutConfig] = None,
) -> CommandOutcome:
    """Execute *text* as a slash command against ``project_id/task_id``.

    The reply message is not appended here; the caller decides which task's
    conversation receives it.
    """
    command = parse_command(text)
    if command is None:
        return CommandOutcome(state=state, reply="", changed=False)
    handler = COMMANDS.get(command.name)
    if handler is None:
        reply = f"❌ Unknown command: {command.name}. Available commands: {AVAILABLE_COMMANDS}"
        return CommandOutcome(state=state, reply=reply, changed=False)
    new_state, reply = handler(state, project_id, task_id, command, layout)
    return CommandOutcome(state=new_state, reply=reply, changed=new_state is not state)


def assistant_message(content: str) -> Message:
    return Message(role=MessageRole.ASSISTANT, content=content)
