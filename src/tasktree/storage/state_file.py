"""File-backed snapshot of the whole :class:`AppState`.

The state is written as a single YAML document (``.tasktree/state.yaml``)
under an exclusive ``filelock.FileLock`` and replaced atomically, so a
reader never sees a half-written file.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from filelock import FileLock, Timeout
from loguru import logger

from ..constants import STATE_DIR_NAME, STATE_FILE, STATE_LOCK_FILE, STATE_SCHEMA_VERSION
from ..engine.state import AppState
from ..io_utils import _atomic_write_yaml, _load_data_with_error

LOCK_TIMEOUT = 30  # seconds


class StateFileError(RuntimeError):
    """The state file could not be locked or written."""


class StateFileRepository:
    def __init__(self, path: Path, lock_path: Optional[Path] = None) -> None:
        self.path = path
        self.lock_path = lock_path or path.with_suffix(".lock")
        self._lock = FileLock(str(self.lock_path), timeout=LOCK_TIMEOUT)

    @classmethod
    def for_workspace(cls, workspace_dir: Path) -> "StateFileRepository":
        root = workspace_dir.resolve() / STATE_DIR_NAME
        return cls(root / STATE_FILE, root / STATE_LOCK_FILE)

    def load(self) -> Optional[AppState]:
        """Return the saved state, or ``None`` when missing or unreadable."""
        self.lock_path.parent.mkdir(parents=True, exist_ok=True)
        try:
            with self._lock:
                data, err = _load_data_with_error(self.path, {})
        except Timeout as exc:
            raise StateFileError(f"Timed out waiting for {self.lock_path}") from exc
        if err:
            logger.warning("Ignoring unreadable state file: {}", err)
            return None
        if not data:
            return None
        version = data.get("version")
        if version != STATE_SCHEMA_VERSION:
            logger.warning("Ignoring state file with unsupported version {!r}", version)
            return None
        return AppState.from_dict(data)

    def save(self, state: AppState) -> None:
        payload = {"version": STATE_SCHEMA_VERSION, **state.to_dict()}
        self.lock_path.parent.mkdir(parents=True, exist_ok=True)
        try:
            with self._lock:
                _atomic_write_yaml(self.path, payload)
        except Timeout as exc:
            raise StateFileError(f"Timed out waiting for {self.lock_path}") from exc
        except OSError as exc:
            raise StateFileError(f"Could not write {self.path}: {exc}") from exc
        logger.debug("Saved {} project(s) to {}", len(state.store), self.path)
