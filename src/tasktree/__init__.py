"""Provide the public `tasktree` package exports."""

from __future__ import annotations

from .engine.board import TaskBoard
from .workspace import open_board

__all__ = ["TaskBoard", "open_board"]
