"""REST API routes for task workflow operations."""

from typing import List, Optional

from fastapi import APIRouter, HTTPException, Query
from pydantic import BaseModel

from tools.task_tools import (
    handle_analyze_todos,
    handle_append_summary,
    handle_create_task,
    handle_execute_task,
    handle_get_task,
    handle_get_workflow_config,
    handle_update_task,
    handle_update_todos,
)

# error_type -> HTTP status for structured failures
ERROR_STATUS = {
    "ValidationError": 400,
    "InvalidTaskType": 400,
    "EmptyBatch": 400,
    "MalformedUpdate": 400,
    "UnknownStatus": 400,
    "IllegalTransition": 409,
    "TodoNotFound": 404,
    "NotSupported": 501,
    "BackendUnavailable": 502,
}


class TaskCreateBody(BaseModel):
    title: str
    task_type: str
    content: str = ""


class TaskUpdateBody(BaseModel):
    title: Optional[str] = None
    task_type: Optional[str] = None
    status: Optional[str] = None


class ExecuteBody(BaseModel):
    batch: bool = True


class TodoUpdateBody(BaseModel):
    text: str
    completed: bool = True


class TodoBatchBody(BaseModel):
    updates: List[TodoUpdateBody]


class SummaryBody(BaseModel):
    summary: str


def _check(result: dict) -> dict:
    """Raise an HTTPException for a structured failure payload."""
    if result.get("success", True):
        return result
    error_type = result.get("error_type")
    status_code = ERROR_STATUS.get(error_type, 500)
    if error_type == "BackendUnavailable" and result.get("status_code") == 404:
        status_code = 404
    raise HTTPException(status_code=status_code, detail=result)


def register_task_routes(app_router: APIRouter, services) -> None:
    """Attach task REST routes that use the shared service graph."""

    @app_router.get("/tasks/{task_id}")
    def get_task(task_id: str):
        return _check(handle_get_task(services, task_id=task_id))

    @app_router.post("/tasks", status_code=201)
    def create_task(body: TaskCreateBody):
        return _check(handle_create_task(services, **body.model_dump()))

    @app_router.patch("/tasks/{task_id}")
    def update_task(task_id: str, body: TaskUpdateBody):
        return _check(handle_update_task(services, task_id=task_id, **body.model_dump()))

    @app_router.post("/tasks/{task_id}/execute")
    def execute_task(task_id: str, body: Optional[ExecuteBody] = None):
        batch = body.batch if body is not None else True
        return _check(handle_execute_task(services, task_id=task_id, batch=batch))

    @app_router.post("/tasks/{task_id}/todos")
    def update_todos(task_id: str, body: TodoBatchBody):
        updates = [u.model_dump() for u in body.updates]
        return _check(handle_update_todos(services, task_id=task_id, updates=updates))

    @app_router.get("/tasks/{task_id}/todos/analysis")
    def analyze_todos(task_id: str, include_hierarchy: bool = Query(False)):
        return _check(
            handle_analyze_todos(services, task_id=task_id, include_hierarchy=include_hierarchy)
        )

    @app_router.post("/tasks/{task_id}/summary", status_code=201)
    def append_summary(task_id: str, body: SummaryBody):
        return _check(handle_append_summary(services, task_id=task_id, summary=body.summary))

    @app_router.get("/workflow")
    def get_workflow():
        return handle_get_workflow_config(services)
