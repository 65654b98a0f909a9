"""FastAPI application factory."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ..engine.board import TaskBoard
from ..workspace import open_board
from .router import create_router


def create_app(
    workspace_dir: Optional[Path] = None,
    board: Optional[TaskBoard] = None,
    enable_cors: bool = True,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        workspace_dir: Workspace to load and persist; defaults to the cwd.
        board: Use this board instead of opening one (nothing is persisted
            unless the board has a repository).
        enable_cors: Whether to enable CORS.

    Returns:
        Configured FastAPI app.
    """
    if board is None:
        board = open_board(workspace_dir or Path.cwd())

    app = FastAPI(
        title="tasktree",
        description="Task tree state manager for projects, tasks and their chats",
        version="0.1.0",
    )

    if enable_cors:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    app.state.board = board
    app.include_router(create_router(board))
    return app
