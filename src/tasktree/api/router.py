"""HTTP endpoints over a :class:`TaskBoard`.

The router is what a presentation layer talks to: it exposes the full state
snapshot (positions included) and one endpoint per board operation.  The
board itself never fails on unknown ids; this layer turns them into 404s.
"""

from __future__ import annotations

from typing import Any, Optional, TypeVar

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from ..domain.models import NodeType, Position, Project, Task
from ..domain.patches import ProjectPatch, TaskPatch
from ..engine.board import TaskBoard


# ---------------------------------------------------------------------------
# Pydantic request models
# ---------------------------------------------------------------------------

class CreateProjectRequest(BaseModel):
    title: str = Field(min_length=1)
    description: str = ""


class PositionModel(BaseModel):
    x: float
    y: float


class CreateTaskRequest(BaseModel):
    title: str = Field(min_length=1)
    description: str = ""
    node_type: NodeType = NodeType.ORIGINAL
    parent_id: Optional[str] = None
    position: Optional[PositionModel] = None


class SpawnTaskRequest(BaseModel):
    title: str = Field(min_length=1)
    description: str = ""


class SendMessageRequest(BaseModel):
    content: str = Field(min_length=1)


def _state_payload(board: TaskBoard) -> dict[str, Any]:
    state = board.state
    return {
        "projects": [p.to_dict() for p in board.list_projects()],
        "selected_project_id": state.selected_project_id,
        "selected_task_id": board.selected_task.id if board.selected_task else None,
    }


T = TypeVar("T")


def _or_404(entity: Optional[T], kind: str, entity_id: str) -> T:
    if entity is None:
        raise HTTPException(status_code=404, detail=f"{kind} {entity_id} not found")
    return entity


def create_router(board: TaskBoard) -> APIRouter:
    router = APIRouter(prefix="/api", tags=["tasktree"])

    def _project(project_id: str) -> Project:
        return _or_404(board.get_project(project_id), "Project", project_id)

    def _task(project_id: str, task_id: str) -> Task:
        return _or_404(_project(project_id).tasks.get(task_id), "Task", task_id)

    @router.get("/state")
    async def get_state() -> dict[str, Any]:
        return _state_payload(board)

    # -- projects -----------------------------------------------------------

    @router.post("/projects", status_code=201)
    async def create_project(body: CreateProjectRequest) -> dict[str, Any]:
        project = board.create_project(body.title, body.description)
        return {"project": project.to_dict()}

    @router.get("/projects/{project_id}")
    async def get_project(project_id: str) -> dict[str, Any]:
        return {"project": _project(project_id).to_dict()}

    @router.patch("/projects/{project_id}")
    async def patch_project(project_id: str, body: dict[str, Any]) -> dict[str, Any]:
        _project(project_id)
        project = board.update_project(project_id, ProjectPatch.from_mapping(body))
        project = _or_404(project, "Project", project_id)
        return {"project": project.to_dict()}

    @router.delete("/projects/{project_id}")
    async def delete_project(project_id: str) -> dict[str, Any]:
        _project(project_id)
        board.delete_project(project_id)
        return _state_payload(board)

    @router.post("/projects/{project_id}/select")
    async def select_project(project_id: str) -> dict[str, Any]:
        _project(project_id)
        board.select_project(project_id)
        return _state_payload(board)

    @router.post("/projects/{project_id}/layout")
    async def recalculate_layout(project_id: str) -> dict[str, Any]:
        _project(project_id)
        project = _or_404(board.recalculate_layout(project_id), "Project", project_id)
        return {"project": project.to_dict()}

    # -- tasks --------------------------------------------------------------

    @router.post("/projects/{project_id}/tasks", status_code=201)
    async def create_task(project_id: str, body: CreateTaskRequest) -> dict[str, Any]:
        _project(project_id)
        if body.parent_id is not None:
            _task(project_id, body.parent_id)
        position = Position(x=body.position.x, y=body.position.y) if body.position else None
        task = board.create_task(project_id, body.title, body.description, body.node_type, body.parent_id, position)
        task = _or_404(task, "Parent task", body.parent_id or "")
        return {"task": task.to_dict()}

    @router.get("/projects/{project_id}/tasks/{task_id}")
    async def get_task(project_id: str, task_id: str) -> dict[str, Any]:
        return {"task": _task(project_id, task_id).to_dict()}

    @router.patch("/projects/{project_id}/tasks/{task_id}")
    async def patch_task(project_id: str, task_id: str, body: dict[str, Any]) -> dict[str, Any]:
        _task(project_id, task_id)
        task = board.update_task(project_id, task_id, TaskPatch.from_mapping(body))
        task = _or_404(task, "Task", task_id)
        return {"task": task.to_dict()}

    @router.delete("/projects/{project_id}/tasks/{task_id}")
    async def delete_task(project_id: str, task_id: str) -> dict[str, Any]:
        _task(project_id, task_id)
        deleted = board.delete_task(project_id, task_id)
        if not deleted:
            raise HTTPException(status_code=409, detail="A project must keep at least one task")
        return {"project": _project(project_id).to_dict()}

    @router.post("/projects/{project_id}/tasks/{task_id}/select")
    async def select_task(project_id: str, task_id: str) -> dict[str, Any]:
        _task(project_id, task_id)
        if board.state.selected_project_id != project_id:
            board.select_project(project_id)
        board.select_task(task_id)
        return _state_payload(board)

    @router.post("/projects/{project_id}/tasks/{task_id}/clone", status_code=201)
    async def clone_task(project_id: str, task_id: str) -> dict[str, Any]:
        _task(project_id, task_id)
        task = _or_404(board.clone_task(project_id, task_id), "Task", task_id)
        return {"task": task.to_dict()}

    @router.post("/projects/{project_id}/tasks/{task_id}/spawn", status_code=201)
    async def spawn_task(project_id: str, task_id: str, body: SpawnTaskRequest) -> dict[str, Any]:
        _task(project_id, task_id)
        task = board.spawn_task(project_id, task_id, body.title, body.description)
        task = _or_404(task, "Task", task_id)
        return {"task": task.to_dict()}

    @router.post("/projects/{project_id}/tasks/{task_id}/messages")
    async def send_message(project_id: str, task_id: str, body: SendMessageRequest) -> dict[str, Any]:
        _task(project_id, task_id)
        reply = await board.send_message(project_id, task_id, body.content)
        task = board.get_task(project_id, task_id)
        return {
            "reply": reply.to_dict() if reply else None,
            "task": task.to_dict() if task else None,
        }

    return router
