"""Task board: the single owner of the current :class:`AppState`.

This is the primary entry point for callers (API, CLI, tests).  Every
method runs one reducer from :mod:`.mutations` and swaps in the resulting
state; when a repository is attached, changed states are saved right away.
The only ``await`` is in :meth:`TaskBoard.send_message`, and no state is
held across it, so other calls may interleave with a pending reply.
"""

from __future__ import annotations

from typing import Any, Callable, Mapping, Optional, Union, cast

from loguru import logger

from ..chat.generator import GenerationError, MockTextGenerator, TextGenerator
from ..constants import DEFAULT_ORPHAN_POLICY, ORPHAN_POLICIES
from ..domain.models import Message, MessageRole, NodeType, Position, Project, Task
from ..domain.patches import ProjectPatch, TaskPatch
from . import mutations, selection
from .commands import assistant_message, is_command, run_command
from .layout import LayoutConfig
from .state import AppState

Listener = Callable[[AppState], None]


class TaskBoard:
    """Manage projects, tasks, selection and chat for one workspace.

    Parameters
    ----------
    state:
        Initial state; defaults to an empty one.  Selection is initialized
        immediately, so a board always has a selected project.
    generator:
        Text generation backend used for non-command chat input.
    repository:
        Optional object with ``save(state)``; called after every change.
    """

    def __init__(
        self,
        state: Optional[AppState] = None,
        *,
        generator: Optional[TextGenerator] = None,
        layout: Optional[LayoutConfig] = None,
        orphan_policy: str = DEFAULT_ORPHAN_POLICY,
        repository: Any = None,
    ) -> None:
        if orphan_policy not in ORPHAN_POLICIES:
            raise ValueError(f"orphan_policy must be one of {ORPHAN_POLICIES}, got {orphan_policy!r}")
        self.generator: TextGenerator = generator or MockTextGenerator()
        self.layout = layout
        self.orphan_policy = orphan_policy
        self.repository = repository
        self._listeners: list[Listener] = []
        self._state = AppState()
        self._commit(selection.initialize_selection(state or AppState()))

    # ------------------------------------------------------------------
    # State plumbing
    # ------------------------------------------------------------------

    @property
    def state(self) -> AppState:
        return self._state

    def subscribe(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def _commit(self, new_state: AppState) -> bool:
        if new_state is self._state:
            return False
        self._state = new_state
        if self.repository is not None:
            self.repository.save(new_state)
        for listener in list(self._listeners):
            listener(new_state)
        return True

    # ------------------------------------------------------------------
    # Getters
    # ------------------------------------------------------------------

    def get_project(self, project_id: str) -> Optional[Project]:
        return self._state.project(project_id)

    def get_task(self, project_id: str, task_id: str) -> Optional[Task]:
        project = self.get_project(project_id)
        return project.tasks.get(task_id) if project else None

    def list_projects(self) -> list[Project]:
        return self._state.store.projects()

    def get_project_tasks(self, project_id: str) -> list[Task]:
        project = self.get_project(project_id)
        return list(project.tasks.values()) if project else []

    @property
    def selected_project(self) -> Optional[Project]:
        return selection.selected_project(self._state)

    @property
    def selected_task(self) -> Optional[Task]:
        return selection.selected_task(self._state)

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    def select_project(self, project_id: Optional[str]) -> bool:
        return self._commit(selection.select_project(self._state, project_id))

    def select_task(self, task_id: Optional[str]) -> bool:
        return self._commit(selection.select_task(self._state, task_id))

    # ------------------------------------------------------------------
    # Projects
    # ------------------------------------------------------------------

    def create_project(self, title: str, description: str = "") -> Project:
        self._commit(mutations.create_project(self._state, title, description))
        return cast(Project, self.selected_project)

    def update_project(
        self,
        project_id: str,
        patch: Union[ProjectPatch, Mapping[str, Any]],
    ) -> Optional[Project]:
        if not isinstance(patch, ProjectPatch):
            patch = ProjectPatch.from_mapping(patch)
        self._commit(mutations.update_project(self._state, project_id, patch))
        return self.get_project(project_id)

    def delete_project(self, project_id: str) -> bool:
        return self._commit(mutations.delete_project(self._state, project_id))

    def recalculate_layout(self, project_id: str) -> Optional[Project]:
        self._commit(mutations.recalculate_layout(self._state, project_id, self.layout))
        return self.get_project(project_id)

    # ------------------------------------------------------------------
    # Tasks
    # ------------------------------------------------------------------

    def _created_task(self, changed: bool) -> Optional[Task]:
        return self.selected_task if changed else None

    def create_task(
        self,
        project_id: str,
        title: str,
        description: str = "",
        node_type: NodeType = NodeType.ORIGINAL,
        parent_id: Optional[str] = None,
        position: Optional[Position] = None,
    ) -> Optional[Task]:
        new_state = mutations.create_task(
            self._state, project_id, title, description, node_type, parent_id, position, layout=self.layout
        )
        return self._created_task(self._commit(new_state))

    def update_task(
        self,
        project_id: str,
        task_id: str,
        patch: Union[TaskPatch, Mapping[str, Any]],
    ) -> Optional[Task]:
        if not isinstance(patch, TaskPatch):
            patch = TaskPatch.from_mapping(patch)
        self._commit(mutations.update_task(self._state, project_id, task_id, patch))
        return self.get_task(project_id, task_id)

    def delete_task(self, project_id: str, task_id: str) -> bool:
        new_state = mutations.delete_task(
            self._state, project_id, task_id, orphan_policy=self.orphan_policy, layout=self.layout
        )
        return self._commit(new_state)

    def clone_task(self, project_id: str, task_id: str) -> Optional[Task]:
        new_state = mutations.clone_task(self._state, project_id, task_id, layout=self.layout)
        return self._created_task(self._commit(new_state))

    def spawn_task(self, project_id: str, parent_task_id: str, title: str, description: str = "") -> Optional[Task]:
        new_state = mutations.spawn_task(
            self._state, project_id, parent_task_id, title, description, layout=self.layout
        )
        return self._created_task(self._commit(new_state))

    def add_message(self, project_id: str, task_id: str, message: Message) -> bool:
        return self._commit(mutations.add_message(self._state, project_id, task_id, message))

    # ------------------------------------------------------------------
    # Chat
    # ------------------------------------------------------------------

    async def send_message(self, project_id: str, task_id: str, text: str) -> Optional[Message]:
        """Post user input to a task's chat and append the assistant reply.

        Slash commands are handled locally.  Anything else goes to the text
        generator; if the task or project disappears while waiting, the reply
        is dropped and ``None`` is returned.
        """
        content = text.strip()
        if not content or self.get_task(project_id, task_id) is None:
            return None
        self.add_message(project_id, task_id, Message(role=MessageRole.USER, content=content))

        if is_command(content):
            outcome = run_command(self._state, project_id, task_id, content, layout=self.layout)
            self._commit(outcome.state)
            logger.info("Command {!r} on task {} (changed={})", content.split()[0], task_id, outcome.changed)
            reply = assistant_message(outcome.reply)
            self.add_message(project_id, task_id, reply)
            return reply

        task = self.get_task(project_id, task_id)
        if task is None:
            return None
        history = list(task.conversation.messages)
        try:
            text_reply = await self.generator.generate(history)
        except GenerationError as exc:
            logger.warning("Text generation failed for task {}: {}", task_id, exc)
            text_reply = f"⚠️ Could not get a response: {exc}"

        reply = assistant_message(text_reply)
        if not self.add_message(project_id, task_id, reply):
            logger.debug("Discarded reply for task {} which no longer exists", task_id)
            return None
        return reply
