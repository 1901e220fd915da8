"""
Task workflow tool handlers.

Core logic lives in handle_* functions (return dicts, shared with the REST
API). MCP wrappers in register_task_tools() serialize to JSON strings.

A handler never raises a WorkflowError: it returns the error's structured
payload instead ({"success": false, "error": ..., "error_type": ...}).
"""

import functools
import json
import logging
from dataclasses import asdict
from typing import Any, Dict, List, Optional

from mcp.server.fastmcp import FastMCP

from errors import WorkflowError
from models.workflow import ExecutionMode, NeedsImplementation
from utils.formatting import (
    format_action,
    format_task_created,
    format_task_info,
    format_task_updated,
    format_todo_analysis,
    format_todos_updated,
    format_workflow,
)

log = logging.getLogger(__name__)


def _action_to_dict(action) -> dict:
    """Serialize an ExecutionAction, adding its text rendering."""
    d = asdict(action)
    if isinstance(action, NeedsImplementation):
        d["todos"] = action.todos
    d["message"] = format_action(action)
    return d


def _todo_to_dict(todo) -> dict:
    return {
        "text": todo.text,
        "completed": todo.completed,
        "level": todo.level,
        "index": todo.index,
        "heading": todo.heading,
    }


def _workflow_errors(fn):
    """Turn a WorkflowError raised by a handler into its failure payload."""

    @functools.wraps(fn)
    def wrapper(*args, **kwargs):
        try:
            return fn(*args, **kwargs)
        except WorkflowError as e:
            log.info("%s failed: %s", fn.__name__, e)
            return e.to_dict()

    return wrapper


# ---------------------------------------------------------------------------
# Handler functions (return dicts, shared by MCP tools and REST API)
# ---------------------------------------------------------------------------


@_workflow_errors
def handle_execute_task(services, *, task_id: str, batch: bool = True) -> dict:
    action = services.orchestrator.execute_task(task_id, ExecutionMode(batch=batch))
    result = {"success": True, "task_id": task_id}
    result.update(_action_to_dict(action))
    return result


@_workflow_errors
def handle_update_todos(services, *, task_id: str, updates: List[Dict[str, Any]]) -> dict:
    result = services.orchestrator.complete_todos(task_id, updates)
    return {
        "success": True,
        "task_id": task_id,
        "updated": result.updated,
        "failed": result.failed,
        "failed_texts": list(result.failed_texts),
        "next_action": _action_to_dict(result.next_action) if result.next_action else None,
        "message": format_todos_updated(task_id, result),
    }


@_workflow_errors
def handle_update_task(
    services,
    *,
    task_id: str,
    title: Optional[str] = None,
    task_type: Optional[str] = None,
    status: Optional[str] = None,
) -> dict:
    changed = services.tasks.update_task(task_id, title=title, task_type=task_type, status=status)
    return {
        "success": True,
        "task_id": task_id,
        "updated": changed,
        "message": format_task_updated(task_id, changed),
    }


@_workflow_errors
def handle_get_task(services, *, task_id: str) -> dict:
    metadata = services.tasks.get_task_metadata(task_id)
    result = {"success": True}
    result.update(asdict(metadata))
    result["message"] = format_task_info(metadata)
    return result


@_workflow_errors
def handle_analyze_todos(services, *, task_id: str, include_hierarchy: bool = False) -> dict:
    analysis = services.tasks.analyze_todos(task_id, include_hierarchy=include_hierarchy)
    result = {
        "success": True,
        "task_id": task_id,
        "stats": asdict(analysis.stats),
        "todos": [_todo_to_dict(t) for t in analysis.todos],
        "insights": analysis.insights,
        "recommendations": analysis.recommendations,
        "blockers": analysis.blockers,
        "content": analysis.content,
    }
    if analysis.structure is not None:
        result["sections"] = [
            {
                "title": s.title,
                "level": s.level,
                "is_virtual": s.is_virtual,
                "is_default": s.is_default,
                "todos": [_todo_to_dict(t) for t in s.todos],
            }
            for s in analysis.structure.sections
        ]
        result["hierarchy"] = [asdict(node) for node in analysis.structure.hierarchy]
    result["message"] = format_todo_analysis(analysis)
    return result


@_workflow_errors
def handle_create_task(services, *, title: str, task_type: str, content: str = "") -> dict:
    task = services.tasks.create_task(title, task_type, content)
    return {"success": True, "task": asdict(task), "message": format_task_created(task)}


@_workflow_errors
def handle_append_summary(services, *, task_id: str, summary: str) -> dict:
    count = services.tasks.append_summary(task_id, summary)
    return {
        "success": True,
        "task_id": task_id,
        "blocks_appended": count,
        "message": f"Summary appended to task {task_id}",
    }


def handle_get_workflow_config(services) -> dict:
    config = services.config
    result = {"success": True}
    result.update(config.to_dict())
    result["statuses"] = list(config.status_mapping.values())
    result["human_only_statuses"] = [config.status_mapping[k] for k in config.requires_validation]
    result["message"] = format_workflow(config)
    return result


# ---------------------------------------------------------------------------
# MCP tool registration (thin wrappers)
# ---------------------------------------------------------------------------


def _dump(fn, *args, **kwargs) -> str:
    try:
        return json.dumps(fn(*args, **kwargs), indent=2)
    except Exception as e:
        log.exception("Tool %s failed", fn.__name__)
        return json.dumps({"success": False, "error": str(e)})


def register_task_tools(mcp: FastMCP, services) -> None:
    """Register all task workflow MCP tools onto the FastMCP instance."""

    @mcp.tool()
    def execute_task(task_id: str, batch: bool = True) -> str:
        """
        Get the next action for a task.

        Reads the task fresh, moves it out of its not-started status once
        work has begun, and returns one of:
          - needs_implementation: every open todo grouped by heading, with
            instructions (only the first todo when batch is False)
          - needs_analysis: the task has no checklist; derive the work from
            its description
          - completed: every todo is checked; append a summary next

        Args:
            task_id: The task (page) ID
            batch: Deliver all open todos at once (default) or only the next one

        Returns:
            JSON action object with a rendered "message"
        """
        return _dump(handle_execute_task, services, task_id=task_id, batch=batch)

    @mcp.tool()
    def update_todos(task_id: str, updates: List[Dict[str, Any]]) -> str:
        """
        Mark todos completed (or not) and get the next action.

        Todos are matched by their exact text (whitespace-insensitive)
        against the live document. Unmatched todos are reported as failed
        without aborting the rest of the batch.

        Args:
            task_id: The task (page) ID
            updates: List of {"text": str, "completed": bool}

        Returns:
            JSON with updated/failed counts, failed_texts and next_action
        """
        return _dump(handle_update_todos, services, task_id=task_id, updates=updates)

    @mcp.tool()
    def update_task(
        task_id: str,
        title: Optional[str] = None,
        task_type: Optional[str] = None,
        status: Optional[str] = None,
    ) -> str:
        """
        Update a task's title, type or status.

        Status changes must follow the workflow transitions. Statuses that
        require human validation cannot be set here; the error lists the
        statuses that are allowed.

        Args:
            task_id: The task (page) ID
            title: New title
            task_type: New task type (one of the configured types)
            status: New status label

        Returns:
            JSON with the updated fields, or a structured error
        """
        return _dump(
            handle_update_task,
            services,
            task_id=task_id,
            title=title,
            task_type=task_type,
            status=status,
        )

    @mcp.tool()
    def get_task(task_id: str) -> str:
        """
        Get task metadata: title, status, type, todo statistics and the
        statuses the task can move to.

        Args:
            task_id: The task (page) ID
        """
        return _dump(handle_get_task, services, task_id=task_id)

    @mcp.tool()
    def analyze_todos(task_id: str, include_hierarchy: bool = False) -> str:
        """
        Analyze a task's todos: statistics, insights, recommendations and
        blockers, plus the page content as markdown.

        Args:
            task_id: The task (page) ID
            include_hierarchy: Also return sections and the todo hierarchy
        """
        return _dump(
            handle_analyze_todos, services, task_id=task_id, include_hierarchy=include_hierarchy
        )

    @mcp.tool()
    def create_task(title: str, task_type: str, content: str = "") -> str:
        """
        Create a task with markdown content.

        Use "- [ ] item" lines for todos and "#" headings for sections.
        The task starts in the workflow's default status.

        Args:
            title: Task title (max 200 characters)
            task_type: One of the configured task types
            content: Markdown body
        """
        return _dump(
            handle_create_task, services, title=title, task_type=task_type, content=content
        )

    @mcp.tool()
    def append_summary(task_id: str, summary: str) -> str:
        """
        Append a work summary (markdown) to a task after a divider.

        Args:
            task_id: The task (page) ID
            summary: Markdown summary; list manual test steps as "- [ ] item"
        """
        return _dump(handle_append_summary, services, task_id=task_id, summary=summary)

    @mcp.tool()
    def get_workflow_config() -> str:
        """
        Show the workflow: statuses, transitions, task types and which
        statuses require human validation.
        """
        return _dump(handle_get_workflow_config, services)
