"""
Error taxonomy for the task workflow.

Every error that may reach the tool boundary is a WorkflowError and knows how
to render itself as the structured failure payload returned to the agent:

    {"success": false, "error": "...", "error_type": "...", ...}

Illegal transitions additionally carry the full legal target set so that the
caller can correct itself without a second round-trip.
"""

from typing import List, Optional


class WorkflowError(Exception):
    """Base class for all expected task workflow failures."""

    def to_dict(self) -> dict:
        return {
            "success": False,
            "error": str(self),
            "error_type": type(self).__name__,
        }


class ConfigError(WorkflowError):
    """Workflow configuration is missing or inconsistent (raised at load time)."""


class ValidationError(WorkflowError):
    """Caller-supplied data failed validation."""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class InvalidTaskType(ValidationError):
    def __init__(self, task_type: str, available: List[str]):
        super().__init__(
            f"Invalid task type '{task_type}'. Available: {', '.join(available)}",
            field="task_type",
        )
        self.task_type = task_type
        self.available = list(available)


class EmptyBatch(ValidationError):
    def __init__(self):
        super().__init__("Todo update batch is empty", field="updates")


class MalformedUpdate(ValidationError):
    def __init__(self, index: int, reason: str):
        super().__init__(f"Update #{index}: {reason}", field="updates")
        self.index = index


class UnknownStatus(WorkflowError):
    def __init__(self, status: str, valid: List[str]):
        super().__init__(f"Unknown status '{status}'. Valid statuses: {', '.join(valid)}")
        self.status = status
        self.valid = list(valid)

    def to_dict(self) -> dict:
        d = super().to_dict()
        d["valid_statuses"] = self.valid
        return d


class IllegalTransition(WorkflowError):
    def __init__(self, current: str, target: str, allowed: List[str], reason: str = ""):
        message = f"Invalid transition from '{current}' to '{target}'"
        if reason:
            message += f" ({reason})"
        message += f". Available: {', '.join(allowed) if allowed else 'none'}"
        super().__init__(message)
        self.current = current
        self.target = target
        self.allowed = list(allowed)

    def to_dict(self) -> dict:
        d = super().to_dict()
        d["allowed_transitions"] = self.allowed
        d["current_status"] = self.current
        return d


class TodoNotFound(WorkflowError):
    def __init__(self, text: str):
        super().__init__(f"No checklist item matching '{text}' in the live document")
        self.text = text


class BackendUnavailable(WorkflowError):
    """The remote document backend failed or could not be reached."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code

    def to_dict(self) -> dict:
        d = super().to_dict()
        if self.status_code is not None:
            d["status_code"] = self.status_code
        return d


class NotSupported(WorkflowError):
    """The configured backend lacks the capability an operation needs."""

    def __init__(self, backend: str, capability: str):
        super().__init__(f"Backend '{backend}' does not support {capability}")
        self.backend = backend
        self.capability = capability
