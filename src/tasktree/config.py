"""Load optional workspace configuration from `.tasktree/config.yaml`."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from .constants import (
    CONFIG_FILE,
    DEFAULT_GENERATOR_KIND,
    DEFAULT_ORPHAN_POLICY,
    ORPHAN_POLICIES,
    STATE_DIR_NAME,
)
from .engine.layout import DEFAULT_LAYOUT, LayoutConfig
from .io_utils import _load_data_with_error


def load_config(workspace_dir: Path) -> tuple[dict[str, Any], str | None]:
    """Load the optional workspace config file.

    Args:
        workspace_dir: Directory holding the `.tasktree/` folder.

    Returns:
        A tuple of `(config, error_message)`. If the file is missing, returns `({}, None)`.
    """
    path = workspace_dir.resolve() / STATE_DIR_NAME / CONFIG_FILE
    data, err = _load_data_with_error(path, {})
    if err:
        return {}, err
    return data, None


def _get_block(config: dict[str, Any], key: str) -> dict[str, Any]:
    raw = config.get(key)
    return raw if isinstance(raw, dict) else {}


def _as_float(value: Any, default: float) -> float:
    if isinstance(value, bool):
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def get_layout_config(config: dict[str, Any]) -> LayoutConfig:
    """Build a :class:`LayoutConfig` from the `layout` block.

    Missing or non-numeric values fall back to the defaults; dimensions must
    be positive.
    """
    raw = _get_block(config, "layout")
    d = DEFAULT_LAYOUT

    def _positive(key: str, default: float) -> float:
        value = _as_float(raw.get(key), default)
        return value if value > 0 else default

    start_y_raw = raw.get("start_y")
    return LayoutConfig(
        start_x=_as_float(raw.get("start_x"), d.start_x),
        start_y=None if start_y_raw is None else _as_float(start_y_raw, 0.0),
        column_width=_positive("column_width", d.column_width),
        node_height=_positive("node_height", d.node_height),
        vertical_spacing=max(0.0, _as_float(raw.get("vertical_spacing"), d.vertical_spacing)),
        midline=_as_float(raw.get("midline"), d.midline),
    )


def get_orphan_policy(config: dict[str, Any]) -> str:
    raw = _get_block(config, "tasks").get("orphan_policy")
    if isinstance(raw, str) and raw in ORPHAN_POLICIES:
        return raw
    return DEFAULT_ORPHAN_POLICY


def get_generator_config(config: dict[str, Any]) -> dict[str, Any]:
    """Extract the `generator` block, with numeric fields sanitized."""
    raw = dict(_get_block(config, "generator"))
    raw.setdefault("kind", DEFAULT_GENERATOR_KIND)
    for key in ("temperature", "timeout"):
        if key in raw:
            value = _as_float(raw[key], -1.0)
            if value < 0:
                del raw[key]
            else:
                raw[key] = value
    return raw
