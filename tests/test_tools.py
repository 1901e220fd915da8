"""
Tests for tools/task_tools.py.

Uses a real service graph over an InMemoryBackend.
Exercises the MCP tool functions directly (bypasses transport).
"""

import json
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import pytest

from backends import InMemoryBackend
from models.workflow import WorkflowConfig
from tools.task_tools import handle_execute_task, register_task_tools
from workflow.services import build_services

CONFIG = {
    "statusMapping": {
        "notStarted": "Not started",
        "inProgress": "In progress",
        "test": "Test",
        "done": "Done",
    },
    "transitions": {
        "notStarted": ["inProgress"],
        "inProgress": ["test", "done"],
        "test": ["done", "inProgress"],
    },
    "taskTypes": ["Feature", "Bug"],
    "defaultStatus": "notStarted",
    "requiresValidation": ["done"],
}


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

class _FakeMCP:
    """Minimal fake to capture tool registrations."""

    def __init__(self):
        self._tools = {}

    def tool(self, *args, **kwargs):
        """Decorator that records functions by name."""
        def decorator(fn):
            self._tools[fn.__name__] = fn
            return fn
        return decorator

    def get(self, name: str):
        return self._tools[name]


@pytest.fixture
def setup():
    backend = InMemoryBackend()
    backend.add_task(
        "Login page",
        "In progress",
        task_type="Feature",
        content="# Form\n- [x] email field\n- [ ] submit button\n- [ ] error banner\n",
        task_id="t1",
    )
    backend.add_task("Research", "Not started", task_type="Bug", content="Look into it.", task_id="t2")
    services = build_services(WorkflowConfig.from_dict(CONFIG), backend)

    mcp = _FakeMCP()
    register_task_tools(mcp, services)
    return mcp, services


def _call(mcp, name, **kwargs) -> dict:
    return json.loads(mcp.get(name)(**kwargs))


# ---------------------------------------------------------------------------
# Registration
# ---------------------------------------------------------------------------

class TestRegistration:
    def test_all_tools_registered(self, setup):
        mcp, _ = setup
        assert set(mcp._tools) == {
            "execute_task",
            "update_todos",
            "update_task",
            "get_task",
            "analyze_todos",
            "create_task",
            "append_summary",
            "get_workflow_config",
        }


# ---------------------------------------------------------------------------
# execute_task / update_todos
# ---------------------------------------------------------------------------

class TestExecuteTask:
    def test_needs_implementation(self, setup):
        mcp, _ = setup
        result = _call(mcp, "execute_task", task_id="t1")
        assert result["success"] is True
        assert result["type"] == "needs_implementation"
        assert result["todos"] == ["submit button", "error banner"]
        assert result["groups"][0]["heading"] == "Form"
        assert result["context"]["todo_stats"]["percentage"] == 33
        assert "Implementation required: 2 todo(s)" in result["message"]

    def test_single_todo(self, setup):
        mcp, _ = setup
        result = _call(mcp, "execute_task", task_id="t1", batch=False)
        assert result["todos"] == ["submit button"]

    def test_needs_analysis(self, setup):
        mcp, _ = setup
        result = _call(mcp, "execute_task", task_id="t2")
        assert result["type"] == "needs_analysis"
        assert result["message"].startswith("Analysis required")

    def test_unknown_task_is_structured_error(self, setup):
        mcp, _ = setup
        result = _call(mcp, "execute_task", task_id="nope")
        assert result["success"] is False
        assert result["error_type"] == "BackendUnavailable"
        assert result["status_code"] == 404

    def test_handler_returns_dict(self, setup):
        _, services = setup
        assert handle_execute_task(services, task_id="t1")["task_id"] == "t1"


class TestUpdateTodos:
    def test_completing_everything_returns_completed(self, setup):
        mcp, services = setup
        result = _call(
            mcp,
            "update_todos",
            task_id="t1",
            updates=[
                {"text": "submit button", "completed": True},
                {"text": "error banner", "completed": True},
            ],
        )
        assert (result["updated"], result["failed"]) == (2, 0)
        assert result["next_action"]["type"] == "completed"
        assert services.backend.get_task("t1").status == "Test"
        assert "Todos updated" in result["message"]

    def test_partial_failure(self, setup):
        mcp, _ = setup
        result = _call(
            mcp,
            "update_todos",
            task_id="t1",
            updates=[{"text": "ghost", "completed": True}, {"text": "submit button", "completed": True}],
        )
        assert result["failed_texts"] == ["ghost"]
        assert result["next_action"]["todos"] == ["error banner"]

    def test_empty_batch(self, setup):
        mcp, _ = setup
        result = _call(mcp, "update_todos", task_id="t1", updates=[])
        assert result["success"] is False
        assert result["error_type"] == "EmptyBatch"


# ---------------------------------------------------------------------------
# Task tools
# ---------------------------------------------------------------------------

class TestTaskTools:
    def test_get_task(self, setup):
        mcp, _ = setup
        result = _call(mcp, "get_task", task_id="t1")
        assert result["title"] == "Login page"
        assert result["status_info"]["available"] == ["Test"]
        assert result["todo_stats"]["next_todos"] == ["submit button", "error banner"]
        assert "Task information" in result["message"]

    def test_update_task_illegal_transition(self, setup):
        mcp, _ = setup
        result = _call(mcp, "update_task", task_id="t1", status="Done")
        assert result["success"] is False
        assert result["error_type"] == "IllegalTransition"
        assert result["allowed_transitions"] == ["Test"]
        assert result["current_status"] == "In progress"

    def test_update_task(self, setup):
        mcp, services = setup
        result = _call(mcp, "update_task", task_id="t1", status="Test", task_type="Bug")
        assert result["updated"] == {"type": "Bug", "status": "Test"}
        assert services.backend.get_task("t1").type == "Bug"

    def test_analyze_todos(self, setup):
        mcp, _ = setup
        result = _call(mcp, "analyze_todos", task_id="t1", include_hierarchy=True)
        assert result["stats"]["total"] == 3
        assert result["sections"][0]["title"] == "Form"
        assert result["hierarchy"][0]["type"] == "section"
        assert "- [x] email field" in result["content"]

    def test_analyze_without_hierarchy(self, setup):
        mcp, _ = setup
        result = _call(mcp, "analyze_todos", task_id="t1")
        assert "sections" not in result
        assert result["blockers"] == []

    def test_create_task(self, setup):
        mcp, services = setup
        result = _call(mcp, "create_task", title="Fix crash", task_type="Bug", content="- [ ] reproduce")
        assert result["task"]["status"] == "Not started"
        assert services.backend.get_task(result["task"]["id"]).title == "Fix crash"

    def test_create_task_invalid_type(self, setup):
        mcp, _ = setup
        result = _call(mcp, "create_task", title="Fix crash", task_type="Epic")
        assert result["error_type"] == "InvalidTaskType"

    def test_append_summary(self, setup):
        mcp, _ = setup
        result = _call(mcp, "append_summary", task_id="t1", summary="## Summary\n- [ ] verify on mobile")
        assert result["blocks_appended"] == 3

    def test_get_workflow_config(self, setup):
        mcp, _ = setup
        result = _call(mcp, "get_workflow_config")
        assert result["statuses"] == ["Not started", "In progress", "Test", "Done"]
        assert result["human_only_statuses"] == ["Done"]
        assert "Done (human only)" in result["message"]

    def test_unexpected_error_is_caught(self, setup, monkeypatch):
        mcp, services = setup

        def broken(*args, **kwargs):
            raise RuntimeError("boom")

        monkeypatch.setattr(services.tasks, "get_task_metadata", broken)
        result = _call(mcp, "get_task", task_id="t1")
        assert result == {"success": False, "error": "boom"}
