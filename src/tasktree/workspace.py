"""Wire a :class:`TaskBoard` to a workspace directory."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from loguru import logger

from .chat.generator import TextGenerator, build_generator
from .config import get_generator_config, get_layout_config, get_orphan_policy, load_config
from .engine.board import TaskBoard
from .storage.state_file import StateFileRepository


def open_board(
    workspace_dir: Path,
    *,
    generator: Optional[TextGenerator] = None,
    persist: bool = True,
) -> TaskBoard:
    """Load config and saved state from *workspace_dir* and build a board.

    With ``persist=True`` the board saves back to ``.tasktree/state.yaml``
    after every change.
    """
    config, err = load_config(workspace_dir)
    if err:
        logger.warning("Ignoring unreadable config: {}", err)
    repository = StateFileRepository.for_workspace(workspace_dir)
    state = repository.load()
    board = TaskBoard(
        state,
        generator=generator or build_generator(get_generator_config(config)),
        layout=get_layout_config(config),
        orphan_policy=get_orphan_policy(config),
    )
    if persist:
        board.repository = repository
        if state is None or board.state is not state:
            repository.save(board.state)
    return board
