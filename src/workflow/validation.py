"""
Input validation guarding every state-mutating call.

Runs before the orchestrator or the backend sees the request, so a rejected
call never touches the remote document.
"""

from typing import Any, Optional, Sequence

from errors import (
    EmptyBatch,
    IllegalTransition,
    InvalidTaskType,
    MalformedUpdate,
    ValidationError,
)
from models.todo import TodoUpdate
from models.workflow import WorkflowConfig
from workflow.status import StatusTransitionEngine

MAX_TITLE_LENGTH = 200


class ValidationService:
    def __init__(self, config: WorkflowConfig, engine: StatusTransitionEngine):
        self.config = config
        self.engine = engine

    def validate_task_type(self, task_type: str) -> None:
        if task_type not in self.config.task_types:
            raise InvalidTaskType(task_type, self.config.task_types)

    def validate_status_transition(self, from_label: str, to_label: str, automated: bool = True) -> None:
        """
        Check that moving from from_label to to_label is legal.

        Raises:
            UnknownStatus: either label is not in the status mapping
            IllegalTransition: not a transition target, or a human-only
                target requested by an automated caller
        """
        if from_label == to_label:
            return

        from_key = self.engine.key_for(from_label)
        to_key = self.engine.key_for(to_label)
        allowed = self.engine.allowed_labels(from_key, automated=automated)

        if not self.engine.is_allowed(from_key, to_key):
            raise IllegalTransition(from_label, to_label, allowed)
        if automated and self.engine.is_human_only(to_key):
            raise IllegalTransition(
                from_label, to_label, allowed, reason="status requires human validation"
            )

    def validate_todo_update_data(self, updates: Sequence[Any]) -> None:
        """
        Check a batch of todo updates.

        Entries may be TodoUpdate instances or dicts with "text" and
        "completed" keys.
        """
        if not updates:
            raise EmptyBatch()

        for i, update in enumerate(updates):
            if isinstance(update, TodoUpdate):
                text, completed = update.text, update.completed
            elif isinstance(update, dict):
                text, completed = update.get("text"), update.get("completed", True)
            else:
                raise MalformedUpdate(i, "expected an object with 'text' and 'completed'")

            if not isinstance(text, str) or not text.strip():
                raise MalformedUpdate(i, "missing non-empty 'text'")
            if not isinstance(completed, bool):
                raise MalformedUpdate(i, "'completed' must be a boolean")

    def validate_task_update_data(
        self,
        title: Optional[str] = None,
        task_type: Optional[str] = None,
        status: Optional[str] = None,
    ) -> None:
        if title is None and task_type is None and status is None:
            raise ValidationError("Nothing to update: pass title, task_type or status")
        if title is not None:
            self._validate_title(title)
        if task_type is not None:
            self.validate_task_type(task_type)
        if status is not None and (not isinstance(status, str) or not status.strip()):
            raise ValidationError("Status must be a non-empty string", field="status")

    def validate_task_creation_data(self, title: str, task_type: str, content: str) -> None:
        self._validate_title(title)
        self.validate_task_type(task_type)
        if not isinstance(content, str):
            raise ValidationError("Content must be a string", field="content")

    def validate_summary(self, summary: str) -> None:
        if not isinstance(summary, str) or not summary.strip():
            raise ValidationError("Summary is required and cannot be empty", field="summary")

    def _validate_title(self, title: str) -> None:
        if not isinstance(title, str) or not title.strip():
            raise ValidationError("Title is required and cannot be empty", field="title")
        if len(title) > MAX_TITLE_LENGTH:
            raise ValidationError(
                f"Title cannot exceed {MAX_TITLE_LENGTH} characters", field="title"
            )
