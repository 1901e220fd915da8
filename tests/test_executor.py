"""
Tests for workflow/executor.py and workflow/tasks.py.

Runs the full service graph against an InMemoryBackend seeded from markdown.
"""

import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import pytest

from backends import Capability, InMemoryBackend
from errors import BackendUnavailable, IllegalTransition, InvalidTaskType, NotSupported, TodoNotFound
from models.content import Divider, Paragraph
from models.todo import TodoUpdate
from models.workflow import (
    Completed,
    Continue,
    ExecutionMode,
    NeedsAnalysis,
    NeedsImplementation,
    WorkflowConfig,
)
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
        "done": [],
    },
    "taskTypes": ["Feature", "Bug"],
    "defaultStatus": "notStarted",
    "requiresValidation": ["done"],
}

DOCUMENT = (
    "# Setup\n"
    "Prepare the repository first.\n"
    "- [x] init repo\n"
    "- [ ] add config\n"
    "# Build\n"
    "- [ ] compile\n"
)


class _FailingStatusBackend(InMemoryBackend):
    def set_task_status(self, task_id, label):
        raise BackendUnavailable("status write timed out")


def _services(backend=None, content=DOCUMENT, status="Not started"):
    backend = backend or InMemoryBackend()
    backend.add_task("Login page", status, task_type="Feature", content=content, task_id="t1")
    return build_services(WorkflowConfig.from_dict(CONFIG), backend)


# ---------------------------------------------------------------------------
# execute_task
# ---------------------------------------------------------------------------

class TestExecuteTask:
    def test_no_todos_needs_analysis(self):
        services = _services(content="Just a description.")
        action = services.orchestrator.execute_task("t1")

        assert isinstance(action, NeedsAnalysis)
        assert action.type == "needs_analysis"
        assert 'Move the task to "Test"' in action.message
        assert action.context.todo_stats.total == 0
        assert services.backend.get_task("t1").status == "Not started"

    @pytest.mark.parametrize("status", ["In progress", "Test", "Archived"])
    def test_no_todos_any_status(self, status):
        services = _services(content="", status=status)
        assert isinstance(services.orchestrator.execute_task("t1"), NeedsAnalysis)

    def test_progress_moves_task_out_of_not_started(self):
        services = _services()
        services.orchestrator.execute_task("t1")
        assert services.backend.get_task("t1").status == "In progress"

    def test_zero_progress_stays_not_started(self):
        services = _services(content="- [ ] a\n- [ ] b\n")
        services.orchestrator.execute_task("t1")
        assert services.backend.get_task("t1").status == "Not started"

    def test_batch_bundles_all_open_todos(self):
        action = _services().orchestrator.execute_task("t1")

        assert isinstance(action, NeedsImplementation)
        assert action.todos == ["add config", "compile"]
        assert [(g.heading, g.context_text, g.todos) for g in action.groups] == [
            ("Setup", "Prepare the repository first.", ["add config"]),
            ("Build", None, ["compile"]),
        ]
        assert action.section == "Setup"
        assert [t.text for t in action.overview] == ["Setup", "Build"]
        assert action.context.current_todo == "add config"
        assert action.context.todo_stats.percentage == 33
        assert "## Setup" in action.instructions
        assert "- [ ] compile" in action.instructions

    def test_virtual_section_todos_render_from_column_zero(self):
        content = (
            "# Feature\n"
            "- [x] first\n"
            "- [x] second\n"
            "- [ ] third\n"
            "    - [ ] nested a\n"
            "        - [ ] deep\n"
            "    - [ ] nested b\n"
        )
        action = _services(content=content).orchestrator.execute_task("t1")
        assert action.section == "third"
        assert "## third\n- [ ] nested a\n    - [ ] deep\n- [ ] nested b" in action.instructions

    def test_open_child_of_checked_parent_is_not_indented(self):
        content = "# Setup\n- [x] parent\n    - [ ] child\n"
        action = _services(content=content).orchestrator.execute_task("t1")
        assert "## Setup\n- [ ] child\n" in action.instructions

    def test_single_todo_fallback(self):
        action = _services().orchestrator.execute_task("t1", ExecutionMode(batch=False))
        assert action.todos == ["add config"]
        assert 'TODO: "add config"' in action.instructions

    def test_show_progress_off_hides_overview(self):
        action = _services().orchestrator.execute_task("t1", ExecutionMode(show_progress=False))
        assert action.overview == []

    def test_all_done_moves_to_test_never_done(self):
        services = _services(content="- [x] a\n- [x] b\n", status="In progress")
        action = services.orchestrator.execute_task("t1")

        assert isinstance(action, Completed)
        assert action.stats.percentage == 100
        assert "append_summary" in action.message
        assert "Done requires human validation" in action.message
        assert services.backend.get_task("t1").status == "Test"

    def test_all_done_from_not_started_reaches_test(self):
        services = _services(content="- [x] a\n", status="Not started")
        services.orchestrator.execute_task("t1")
        assert services.backend.get_task("t1").status == "Test"

    def test_all_done_in_test_stays(self):
        services = _services(content="- [x] a\n", status="Test")
        assert isinstance(services.orchestrator.execute_task("t1"), Completed)
        assert services.backend.get_task("t1").status == "Test"

    def test_auto_update_disabled(self):
        services = _services()
        services.orchestrator.execute_task("t1", ExecutionMode(auto_update_status=False))
        assert services.backend.get_task("t1").status == "Not started"

    def test_backend_without_status_writes_does_not_advance(self):
        backend = InMemoryBackend(capabilities=[Capability.WRITE_TODOS])
        services = _services(backend=backend)
        action = services.orchestrator.execute_task("t1")
        assert isinstance(action, NeedsImplementation)
        assert backend.get_task("t1").status == "Not started"

    def test_auto_advance_failure_is_logged_not_raised(self, caplog):
        services = _services(backend=_FailingStatusBackend())
        with caplog.at_level(logging.WARNING, logger="workflow.executor"):
            action = services.orchestrator.execute_task("t1")
        assert isinstance(action, NeedsImplementation)
        assert "status write timed out" in caplog.text

    def test_unknown_task_raises(self):
        with pytest.raises(BackendUnavailable):
            _services().orchestrator.execute_task("missing")


# ---------------------------------------------------------------------------
# complete_todos
# ---------------------------------------------------------------------------

class TestCompleteTodos:
    def test_returns_next_action(self):
        services = _services()
        result = services.orchestrator.complete_todos("t1", [{"text": "add config", "completed": True}])

        assert (result.updated, result.failed) == (1, 0)
        assert isinstance(result.next_action, NeedsImplementation)
        assert result.next_action.todos == ["compile"]
        assert result.next_action.section == "Build"

    def test_unmatched_text_fails_without_aborting_batch(self):
        services = _services()
        result = services.orchestrator.complete_todos(
            "t1",
            [TodoUpdate("no such todo"), TodoUpdate("compile"), TodoUpdate("add config")],
        )
        assert result.updated == 2
        assert result.failed == 1
        assert result.failed_texts == ["no such todo"]
        assert isinstance(result.next_action, Completed)
        assert services.backend.get_task("t1").status == "Test"

    def test_nothing_written_returns_continue(self):
        result = _services().orchestrator.complete_todos("t1", [{"text": "ghost", "completed": True}])
        assert result.updated == 0
        assert isinstance(result.next_action, Continue)
        assert '"ghost"' in result.next_action.message

    def test_uncheck(self):
        services = _services()
        services.orchestrator.complete_todos("t1", [{"text": "init repo", "completed": False}])
        analysis = services.tasks.analyze_todos("t1")
        assert analysis.stats.completed == 0

    def test_read_only_backend_raises_not_supported(self):
        services = _services(backend=InMemoryBackend(capabilities=[]))
        with pytest.raises(NotSupported):
            services.orchestrator.complete_todos("t1", [{"text": "compile", "completed": True}])


# ---------------------------------------------------------------------------
# TaskService
# ---------------------------------------------------------------------------

class TestTaskService:
    def test_metadata(self):
        metadata = _services().tasks.get_task_metadata("t1")
        assert metadata.title == "Login page"
        assert metadata.type == "Feature"
        assert metadata.todo_stats.total == 3
        assert metadata.status_info.available == ["In progress"]
        assert metadata.status_info.recommended == "In progress"

    def test_update_todo_not_found(self):
        with pytest.raises(TodoNotFound):
            _services().tasks.update_todo("t1", "ghost")

    def test_update_task_fields_and_status(self):
        services = _services()
        changed = services.tasks.update_task("t1", title="Sign-in page", status="In progress")
        assert changed == {"title": "Sign-in page", "status": "In progress"}
        task = services.backend.get_task("t1")
        assert (task.title, task.status) == ("Sign-in page", "In progress")

    def test_update_task_illegal_transition(self):
        services = _services()
        with pytest.raises(IllegalTransition) as exc:
            services.tasks.update_task("t1", status="Test")
        assert exc.value.allowed == ["In progress"]
        assert services.backend.get_task("t1").status == "Not started"

    def test_update_task_human_only(self):
        services = _services(status="Test")
        with pytest.raises(IllegalTransition, match="human validation"):
            services.tasks.update_task("t1", status="Done")

    def test_update_task_invalid_type_writes_nothing(self):
        services = _services()
        with pytest.raises(InvalidTaskType):
            services.tasks.update_task("t1", title="New", task_type="Epic")
        assert services.backend.get_task("t1").title == "Login page"

    def test_update_task_not_supported(self):
        services = _services(backend=InMemoryBackend(capabilities=[]))
        with pytest.raises(NotSupported, match="write_fields"):
            services.tasks.update_task("t1", title="New")

    def test_create_task_uses_default_status(self):
        services = _services()
        task = services.tasks.create_task("Fix crash", "Bug", "- [ ] reproduce\n- [ ] fix")
        assert task.status == "Not started"
        assert services.tasks.analyze_todos(task.id).stats.total == 2

    def test_append_summary(self):
        services = _services()
        count = services.tasks.append_summary("t1", "Implemented config loading.")
        assert count == 2
        assert services.backend.list_content_nodes("t1")[-2:] == [
            Divider(),
            Paragraph("Implemented config loading."),
        ]

    def test_analyze_todos(self):
        analysis = _services().tasks.analyze_todos("t1", include_hierarchy=True)
        assert analysis.stats.percentage == 33
        assert "Task in early progress" in analysis.insights
        assert analysis.recommendations == ["Focus on completing remaining todos"]
        assert analysis.blockers == []
        assert analysis.content.startswith("# Setup\nPrepare the repository first.\n- [x] init repo")
        assert [s.title for s in analysis.structure.sections] == ["Setup", "Build"]

    def test_analyze_without_hierarchy(self):
        assert _services().tasks.analyze_todos("t1").structure is None
