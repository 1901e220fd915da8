"""
Task service: reads, analyses and writes tasks through a backend.

Every read goes to the backend; structures and stats are recomputed per
call. Agent-requested writes that the backend cannot perform raise
NotSupported. Callers that want to branch instead (the orchestrator's
auto-advance) check backend.supports() first.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence, Union

from backends.base import NOT_SUPPORTED, Capability, TaskBackend
from errors import BackendUnavailable, NotSupported, TodoNotFound
from models.content import Divider
from models.task import Task, TaskMetadata
from models.todo import TaskStructure, TodoAnalysis, TodoStats, TodoUpdate
from models.workflow import TodoUpdateResult
from parsers import DEFAULT_POLICY, ParserPolicy, calculate_stats, parse
from utils.markdown import parse_markdown, render_markdown
from workflow.analysis import generate_insights, generate_recommendations, identify_blockers
from workflow.status import StatusTransitionEngine
from workflow.validation import ValidationService

log = logging.getLogger(__name__)


def _as_update(update: Union[TodoUpdate, Dict[str, Any]]) -> TodoUpdate:
    if isinstance(update, TodoUpdate):
        return update
    return TodoUpdate(text=update["text"], completed=update.get("completed", True))


class TaskService:
    def __init__(
        self,
        backend: TaskBackend,
        engine: StatusTransitionEngine,
        validation: ValidationService,
        policy: ParserPolicy = DEFAULT_POLICY,
    ):
        self.backend = backend
        self.engine = engine
        self.validation = validation
        self.policy = policy

    def _require(self, result, capability: Capability):
        if result is NOT_SUPPORTED:
            raise NotSupported(self.backend.name, capability.value)
        return result

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_task(self, task_id: str) -> Task:
        return self.backend.get_task(task_id)

    def get_structure(self, task_id: str) -> TaskStructure:
        return parse(self.backend.list_content_nodes(task_id), self.policy)

    def analyze_todos(self, task_id: str, include_hierarchy: bool = False) -> TodoAnalysis:
        nodes = self.backend.list_content_nodes(task_id)
        structure = parse(nodes, self.policy)
        stats = calculate_stats(structure.todos)
        return TodoAnalysis(
            todos=structure.todos,
            stats=stats,
            content=render_markdown(nodes),
            insights=generate_insights(stats),
            recommendations=generate_recommendations(stats),
            blockers=identify_blockers(stats),
            structure=structure if include_hierarchy else None,
        )

    def get_task_metadata(self, task_id: str) -> TaskMetadata:
        task = self.get_task(task_id)
        stats: TodoStats = calculate_stats(self.get_structure(task_id).todos)
        return TaskMetadata(
            id=task.id,
            title=task.title,
            status=task.status,
            type=task.type or "",
            todo_stats=stats,
            status_info=self.engine.status_info(task.status, stats.percentage),
        )

    # ------------------------------------------------------------------
    # Task fields and status
    # ------------------------------------------------------------------

    def update_task(
        self,
        task_id: str,
        title: Optional[str] = None,
        task_type: Optional[str] = None,
        status: Optional[str] = None,
    ) -> Dict[str, str]:
        """
        Update a task's title, type and/or status on behalf of the agent.

        Status changes are validated as automated transitions, so a
        human-only target is refused.

        Returns:
            the fields that were written
        """
        self.validation.validate_task_update_data(title, task_type, status)

        current = None
        if status is not None:
            current = self.get_task(task_id)
            self.validation.validate_status_transition(current.status, status, automated=True)

        changed: Dict[str, str] = {}
        if title is not None or task_type is not None:
            self._require(
                self.backend.set_task_fields(task_id, title=title, task_type=task_type),
                Capability.WRITE_FIELDS,
            )
            if title is not None:
                changed["title"] = title
            if task_type is not None:
                changed["type"] = task_type

        if status is not None and status != current.status:
            self._require(self.backend.set_task_status(task_id, status), Capability.WRITE_STATUS)
            changed["status"] = status
            log.info("Task %s status %r -> %r", task_id, current.status, status)

        return changed

    def set_status(self, task_id: str, current_label: str, target_key: str) -> str:
        """Move a task to target_key as an automated caller; returns the new label."""
        target_label = self.engine.label_for(target_key)
        self.validation.validate_status_transition(current_label, target_label, automated=True)
        self._require(self.backend.set_task_status(task_id, target_label), Capability.WRITE_STATUS)
        return target_label

    # ------------------------------------------------------------------
    # Todos
    # ------------------------------------------------------------------

    def update_todo(self, task_id: str, text: str, completed: bool = True) -> None:
        found = self._require(
            self.backend.find_and_set_checklist_item(task_id, text, completed),
            Capability.WRITE_TODOS,
        )
        if not found:
            raise TodoNotFound(text)

    def update_todos(
        self, task_id: str, updates: Sequence[Union[TodoUpdate, Dict[str, Any]]]
    ) -> TodoUpdateResult:
        """
        Apply a batch of todo updates in order.

        A todo that does not match the live document, or whose write fails,
        is counted as failed; the rest of the batch still runs.
        """
        self.validation.validate_todo_update_data(updates)

        result = TodoUpdateResult()
        for update in map(_as_update, updates):
            try:
                self.update_todo(task_id, update.text, update.completed)
                result.updated += 1
            except (TodoNotFound, BackendUnavailable) as e:
                log.info("Todo update failed for %r: %s", update.text, e)
                result.failed += 1
                result.failed_texts.append(update.text)

        log.info("Task %s: %d todo(s) updated, %d failed", task_id, result.updated, result.failed)
        return result

    # ------------------------------------------------------------------
    # Creation and summaries
    # ------------------------------------------------------------------

    def create_task(self, title: str, task_type: str, content: str = "") -> Task:
        self.validation.validate_task_creation_data(title, task_type, content)
        task = self._require(
            self.backend.create_task(title, task_type, self.engine.default_label, parse_markdown(content)),
            Capability.CREATE,
        )
        log.info("Created task %s (%s)", task.id, title)
        return task

    def append_summary(self, task_id: str, summary: str) -> int:
        """Append a divider and the summary markdown; returns the block count."""
        self.validation.validate_summary(summary)
        nodes: List = [Divider()] + parse_markdown(summary)
        self._require(self.backend.append_content(task_id, nodes), Capability.APPEND)
        return len(nodes)
