from __future__ import annotations

import argparse
import asyncio
import io
import json
import sys
from pathlib import Path
from typing import Any, Optional

from loguru import logger
from rich.console import Console
from rich.markup import escape
from rich.tree import Tree

from .domain.models import NodeType, Project
from .engine.board import TaskBoard
from .engine.invariants import find_orphans
from .workspace import open_board

_STATUS_STYLE = {
    "pending": "dim",
    "active": "cyan",
    "completed": "green",
    "failed": "red",
}


def _resolve_workspace(workspace: Optional[str]) -> Path:
    return Path(workspace).expanduser().resolve() if workspace else Path.cwd().resolve()


def _board(args: argparse.Namespace) -> TaskBoard:
    return open_board(_resolve_workspace(args.workspace))


def _emit(payload: Any) -> int:
    sys.stdout.write(json.dumps(payload, indent=2) + "\n")
    return 0


def _fail(message: str) -> int:
    sys.stderr.write(message + "\n")
    return 1


def render_project_tree(project: Project, selected_task_id: Optional[str] = None, width: int = 100) -> str:
    """Render *project*'s task tree (roots first, then orphans) as text."""
    console = Console(record=True, width=width, file=io.StringIO())
    tree = Tree(f"[bold]{escape(project.title)}[/bold] [dim]({project.id})[/dim]")

    def _label(task_id: str) -> str:
        task = project.tasks[task_id]
        style = _STATUS_STYLE.get(task.status.value, "white")
        marker = " [bold yellow]*[/bold yellow]" if task_id == selected_task_id else ""
        return (
            f"[{style}]{escape(task.title)}[/{style}] [dim]{task.node_type.value} "
            f"@({task.position.x:g}, {task.position.y:g})[/dim]{marker}"
        )

    def _add(node: Tree, task_id: str, visited: set[str]) -> None:
        if task_id in visited or task_id not in project.tasks:
            return
        visited.add(task_id)
        branch = node.add(_label(task_id))
        for child_id in project.tasks[task_id].child_ids:
            _add(branch, child_id, visited)

    visited: set[str] = set()
    for root_id in project.root_task_ids:
        _add(tree, root_id, visited)
    orphans = [tid for tid in find_orphans(project) if tid not in visited]
    if orphans:
        orphan_node = tree.add("[red]orphaned[/red]")
        for task_id in orphans:
            _add(orphan_node, task_id, visited)

    console.print(tree)
    return console.export_text()


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------

def _show(args: argparse.Namespace) -> int:
    board = _board(args)
    project = board.get_project(args.project_id) if args.project_id else board.selected_project
    if project is None:
        return _fail(f"Unknown project: {args.project_id}")
    sys.stdout.write(render_project_tree(project, board.state.selected_task_id))
    return 0


def _state(args: argparse.Namespace) -> int:
    return _emit(_board(args).state.to_dict())


def _project_create(args: argparse.Namespace) -> int:
    project = _board(args).create_project(args.title, args.description)
    return _emit({"project": project.to_dict()})


def _project_list(args: argparse.Namespace) -> int:
    board = _board(args)
    items = [
        {
            "id": p.id,
            "title": p.title,
            "status": p.status.value,
            "tasks": len(p.tasks),
            "selected": p.id == board.state.selected_project_id,
        }
        for p in board.list_projects()
    ]
    return _emit({"projects": items})


def _project_delete(args: argparse.Namespace) -> int:
    board = _board(args)
    if not board.delete_project(args.project_id):
        return _fail(f"Unknown project: {args.project_id}")
    return _emit({"deleted": args.project_id, "selected_project_id": board.state.selected_project_id})


def _project_select(args: argparse.Namespace) -> int:
    board = _board(args)
    if board.get_project(args.project_id) is None:
        return _fail(f"Unknown project: {args.project_id}")
    board.select_project(args.project_id)
    return _emit({"selected_project_id": args.project_id})


def _task_create(args: argparse.Namespace) -> int:
    task = _board(args).create_task(
        args.project_id, args.title, args.description, NodeType(args.node_type), args.parent_id
    )
    if task is None:
        return _fail("Unknown project or parent task")
    return _emit({"task": task.to_dict()})


def _task_spawn(args: argparse.Namespace) -> int:
    task = _board(args).spawn_task(args.project_id, args.parent_id, args.title, args.description)
    if task is None:
        return _fail("Unknown project or parent task")
    return _emit({"task": task.to_dict()})


def _task_clone(args: argparse.Namespace) -> int:
    task = _board(args).clone_task(args.project_id, args.task_id)
    if task is None:
        return _fail("Unknown project or task")
    return _emit({"task": task.to_dict()})


def _task_update(args: argparse.Namespace) -> int:
    board = _board(args)
    if board.get_task(args.project_id, args.task_id) is None:
        return _fail("Unknown project or task")
    changes = {"title": args.title, "description": args.description, "status": args.status}
    task = board.update_task(args.project_id, args.task_id, changes)
    if task is None:
        return _fail("Unknown project or task")
    return _emit({"task": task.to_dict()})


def _task_delete(args: argparse.Namespace) -> int:
    board = _board(args)
    if board.get_task(args.project_id, args.task_id) is None:
        return _fail("Unknown project or task")
    if not board.delete_task(args.project_id, args.task_id):
        return _fail("A project must keep at least one task")
    return _emit({"deleted": args.task_id})


def _chat(args: argparse.Namespace) -> int:
    board = _board(args)
    if board.get_task(args.project_id, args.task_id) is None:
        return _fail("Unknown project or task")
    reply = asyncio.run(board.send_message(args.project_id, args.task_id, args.message))
    return _emit({"reply": reply.to_dict() if reply else None})


def _serve(args: argparse.Namespace) -> int:
    import uvicorn

    from .api.app import create_app

    app = create_app(workspace_dir=_resolve_workspace(args.workspace))
    uvicorn.run(app, host=args.host, port=args.port)
    return 0


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="tasktree: projects, task trees and task chats")
    parser.add_argument("--workspace", default=None, help="Workspace directory (default: cwd)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log debug output to stderr")
    subparsers = parser.add_subparsers(dest="command", required=True)

    serve = subparsers.add_parser("serve", help="Start the HTTP API")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=3001)
    serve.set_defaults(func=_serve)

    show = subparsers.add_parser("show", help="Render a project's task tree")
    show.add_argument("project_id", nargs="?", default=None)
    show.set_defaults(func=_show)

    state = subparsers.add_parser("state", help="Dump the full state as JSON")
    state.set_defaults(func=_state)

    project = subparsers.add_parser("project", help="Manage projects")
    project_sub = project.add_subparsers(dest="project_cmd", required=True)
    pcreate = project_sub.add_parser("create", help="Create a project")
    pcreate.add_argument("title")
    pcreate.add_argument("--description", default="")
    pcreate.set_defaults(func=_project_create)
    plist = project_sub.add_parser("list", help="List projects")
    plist.set_defaults(func=_project_list)
    pdelete = project_sub.add_parser("delete", help="Delete a project")
    pdelete.add_argument("project_id")
    pdelete.set_defaults(func=_project_delete)
    pselect = project_sub.add_parser("select", help="Select a project")
    pselect.add_argument("project_id")
    pselect.set_defaults(func=_project_select)

    task = subparsers.add_parser("task", help="Manage tasks")
    task_sub = task.add_subparsers(dest="task_cmd", required=True)
    tcreate = task_sub.add_parser("create", help="Create a task")
    tcreate.add_argument("project_id")
    tcreate.add_argument("title")
    tcreate.add_argument("--description", default="")
    tcreate.add_argument("--parent-id", default=None)
    tcreate.add_argument("--node-type", choices=[n.value for n in NodeType], default=NodeType.ORIGINAL.value)
    tcreate.set_defaults(func=_task_create)
    tspawn = task_sub.add_parser("spawn", help="Spawn a child task")
    tspawn.add_argument("project_id")
    tspawn.add_argument("parent_id")
    tspawn.add_argument("title")
    tspawn.add_argument("--description", default="")
    tspawn.set_defaults(func=_task_spawn)
    tclone = task_sub.add_parser("clone", help="Clone a task")
    tclone.add_argument("project_id")
    tclone.add_argument("task_id")
    tclone.set_defaults(func=_task_clone)
    tupdate = task_sub.add_parser("update", help="Update task fields")
    tupdate.add_argument("project_id")
    tupdate.add_argument("task_id")
    tupdate.add_argument("--title", default=None)
    tupdate.add_argument("--description", default=None)
    tupdate.add_argument("--status", default=None)
    tupdate.set_defaults(func=_task_update)
    tdelete = task_sub.add_parser("delete", help="Delete a task")
    tdelete.add_argument("project_id")
    tdelete.add_argument("task_id")
    tdelete.set_defaults(func=_task_delete)

    chat = subparsers.add_parser("chat", help="Send a message (or /command) to a task")
    chat.add_argument("project_id")
    chat.add_argument("task_id")
    chat.add_argument("message")
    chat.set_defaults(func=_chat)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if args.verbose else "WARNING")
    handler = getattr(args, "func", None)
    if handler is None:
        parser.print_help()
        return 1
    return int(handler(args) or 0)


if __name__ == "__main__":
    raise SystemExit(main())
