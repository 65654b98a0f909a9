"""Tests for the command line interface (cli.py)."""

from __future__ import annotations

import json
import sys
from pathlib import Path

import pytest
from loguru import logger

from tasktree.cli import main, render_project_tree
from tasktree.domain.models import Position, Project, Task


@pytest.fixture(autouse=True)
def _reset_logger():
    """main() swaps the loguru sink; put a default one back afterwards."""
    yield
    logger.remove()
    logger.add(sys.stderr)


def _run(workspace: Path, *argv: str) -> int:
    return main(["--workspace", str(workspace), *argv])


def _json(capsys: pytest.CaptureFixture[str]) -> dict:
    return json.loads(capsys.readouterr().out)


def _selected(workspace: Path, capsys: pytest.CaptureFixture[str]) -> tuple[str, str]:
    assert _run(workspace, "state") == 0
    data = _json(capsys)
    return data["selected_project_id"], data["selected_task_id"]


class TestProjectCommands:
    def test_create_and_list(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        assert _run(tmp_path, "project", "create", "Alpha", "--description", "First") == 0
        created = _json(capsys)["project"]
        assert created["title"] == "Alpha"
        assert created["description"] == "First"

        assert _run(tmp_path, "project", "list") == 0
        projects = _json(capsys)["projects"]
        assert [p["title"] for p in projects] == ["New Project", "Alpha"]
        assert [p["selected"] for p in projects] == [False, True]
        assert projects[1]["tasks"] == 1

    def test_select_and_delete(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        default_id, _ = _selected(tmp_path, capsys)
        _run(tmp_path, "project", "create", "Alpha")
        alpha_id = _json(capsys)["project"]["id"]

        assert _run(tmp_path, "project", "select", default_id) == 0
        assert _json(capsys) == {"selected_project_id": default_id}

        assert _run(tmp_path, "project", "delete", default_id) == 0
        assert _json(capsys) == {"deleted": default_id, "selected_project_id": alpha_id}

    def test_unknown_project(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        assert _run(tmp_path, "project", "delete", "ghost") == 1
        assert "Unknown project: ghost" in capsys.readouterr().err
        assert _run(tmp_path, "project", "select", "ghost") == 1
        assert _run(tmp_path, "show", "ghost") == 1


class TestTaskCommands:
    def test_create_spawn_clone_update_delete(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        pid, root = _selected(tmp_path, capsys)

        assert _run(tmp_path, "task", "create", pid, "Design", "--parent-id", root) == 0
        design = _json(capsys)["task"]
        assert design["parent_id"] == root
        assert design["position"]["x"] == 330.0

        assert _run(tmp_path, "task", "spawn", pid, design["id"], "Mockups") == 0
        mockups = _json(capsys)["task"]
        assert mockups["node_type"] == "spawn"

        assert _run(tmp_path, "task", "clone", pid, design["id"]) == 0
        clone = _json(capsys)["task"]
        assert clone["title"] == "Design (Clone)"

        assert _run(tmp_path, "task", "update", pid, design["id"], "--status", "completed", "--title", "Design v2") == 0
        updated = _json(capsys)["task"]
        assert updated["status"] == "completed"
        assert updated["title"] == "Design v2"

        assert _run(tmp_path, "task", "delete", pid, clone["id"]) == 0
        assert _json(capsys) == {"deleted": clone["id"]}

    def test_delete_last_task_fails(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        pid, root = _selected(tmp_path, capsys)
        assert _run(tmp_path, "task", "delete", pid, root) == 1
        assert "at least one task" in capsys.readouterr().err

    def test_unknown_parent(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        pid, _ = _selected(tmp_path, capsys)
        assert _run(tmp_path, "task", "create", pid, "Orphan", "--parent-id", "ghost") == 1
        assert _run(tmp_path, "task", "clone", pid, "ghost") == 1
        assert _run(tmp_path, "task", "update", pid, "ghost", "--title", "x") == 1


class TestChatAndShow:
    def test_chat_with_mock_generator(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        pid, root = _selected(tmp_path, capsys)
        assert _run(tmp_path, "chat", pid, root, "What next?") == 0
        reply = _json(capsys)["reply"]
        assert reply["role"] == "assistant"
        assert 'I received your message: "What next?"' in reply["content"]

    def test_chat_command(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        pid, root = _selected(tmp_path, capsys)
        assert _run(tmp_path, "chat", pid, root, "/exit") == 0
        assert _json(capsys)["reply"]["content"] == "✅ Task folded back to parent successfully."

    def test_show_renders_tree(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        pid, root = _selected(tmp_path, capsys)
        _run(tmp_path, "task", "spawn", pid, root, "Research")
        capsys.readouterr()
        assert _run(tmp_path, "show") == 0
        out = capsys.readouterr().out
        assert "New Project" in out
        assert "Research" in out


class TestRenderProjectTree:
    def test_orphans_are_listed_separately(self) -> None:
        root = Task(id="r", title="Root", child_ids=["c"], position=Position(50, 120))
        child = Task(id="c", title="Child", parent_id="r", position=Position(330, 120))
        orphan = Task(id="o", title="Lost", parent_id="deleted")
        project = Project(id="p", title="Demo", tasks={"r": root, "c": child, "o": orphan}, root_task_ids=["r"])
        text = render_project_tree(project, selected_task_id="c")
        lines = text.splitlines()
        assert "Demo" in lines[0]
        assert any("Child" in line and "*" in line for line in lines)
        orphan_index = next(i for i, line in enumerate(lines) if "orphaned" in line)
        assert any("Lost" in line for line in lines[orphan_index:])
        assert "@(330, 120)" in text

    def test_bracketed_titles_are_shown_verbatim(self) -> None:
        root = Task(id="r", title="Plan [/x] stuff", child_ids=["c"])
        child = Task(id="c", title="[bold]not markup[/bold]", parent_id="r")
        project = Project(id="p", title="Board [v2]", tasks={"r": root, "c": child}, root_task_ids=["r"])
        text = render_project_tree(project)
        assert "Board [v2]" in text
        assert "Plan [/x] stuff" in text
        assert "[bold]not markup[/bold]" in text

    def test_show_with_bracketed_title(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        pid, root = _selected(tmp_path, capsys)
        assert _run(tmp_path, "task", "spawn", pid, root, "Plan [/x] stuff") == 0
        capsys.readouterr()
        assert _run(tmp_path, "show") == 0
        assert "Plan [/x] stuff" in capsys.readouterr().out
