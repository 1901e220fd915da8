"""
Workflow configuration, execution actions and plan steps.

WorkflowConfig is loaded once per process and treated as read-only. It is
validated in from_dict so that a broken configuration fails at startup
instead of surfacing as a guessed status or task type at call time.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Optional, Union

from errors import ConfigError
from models.todo import TodoStats

# Internal keys the status engine gives a role to.
NOT_STARTED = "notStarted"
IN_PROGRESS = "inProgress"
TEST = "test"
DONE = "done"

ROLE_KEYS = (NOT_STARTED, IN_PROGRESS, TEST, DONE)

# (snake_case field, camelCase alias)
_FIELDS = (
    ("status_mapping", "statusMapping"),
    ("transitions", "transitions"),
    ("task_types", "taskTypes"),
    ("default_status", "defaultStatus"),
    ("requires_validation", "requiresValidation"),
)


def _pick(data: Dict[str, Any], snake: str, camel: str) -> Any:
    if snake in data:
        return data[snake]
    return data.get(camel)


def _is_str_list(value: Any) -> bool:
    return isinstance(value, list) and all(isinstance(v, str) for v in value)


@dataclass(frozen=True)
class WorkflowConfig:
    """
    Status workflow definition.

    status_mapping maps internal keys to display labels and must be a
    bijection. transitions is the adjacency list of the status graph (cycles
    allowed). requires_validation lists keys an automated caller may never
    move a task into.
    """

    status_mapping: Dict[str, str]
    transitions: Dict[str, List[str]]
    task_types: List[str]
    default_status: str
    requires_validation: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> WorkflowConfig:
        """
        Build and validate a config from its JSON form.

        Accepts both snake_case and camelCase keys.

        Raises:
            ConfigError: on any missing field or inconsistency
        """
        if not isinstance(data, dict):
            raise ConfigError("Workflow config must be a JSON object")

        values = {}
        for snake, camel in _FIELDS:
            value = _pick(data, snake, camel)
            if value is None and snake != "requires_validation":
                raise ConfigError(f"Missing required field in workflow config: {camel}")
            values[snake] = value

        mapping = values["status_mapping"]
        if not isinstance(mapping, dict) or not mapping:
            raise ConfigError("statusMapping must be a non-empty object")

        for key in ROLE_KEYS:
            if not mapping.get(key):
                raise ConfigError(f"Missing status mapping: {key}")

        seen: Dict[str, str] = {}
        for key, label in mapping.items():
            if label in seen:
                raise ConfigError(
                    f"Status label '{label}' is mapped by both '{seen[label]}' and '{key}'"
                )
            seen[label] = key

        transitions = values["transitions"]
        if not isinstance(transitions, dict):
            raise ConfigError("transitions must be an object")
        for source, targets in transitions.items():
            if source not in mapping:
                raise ConfigError(f"Transition source '{source}' not found in statusMapping")
            if not _is_str_list(targets):
                raise ConfigError(f"transitions['{source}'] must be a list of status keys")
            for target in targets:
                if target not in mapping:
                    raise ConfigError(
                        f"Transition target '{target}' (from '{source}') not found in statusMapping"
                    )

        task_types = values["task_types"]
        if not _is_str_list(task_types):
            raise ConfigError("taskTypes must be a list of strings")
        if not task_types:
            raise ConfigError("taskTypes must list at least one task type")

        if not isinstance(values["default_status"], str) or values["default_status"] not in mapping:
            raise ConfigError(
                f"Default status '{values['default_status']}' not found in statusMapping"
            )

        requires_validation = values["requires_validation"] or []
        if isinstance(requires_validation, bool):
            # Older configs used a flag; it meant "done needs a human".
            requires_validation = [DONE] if requires_validation else []
        if not _is_str_list(requires_validation):
            raise ConfigError("requiresValidation must be a list of status keys")
        for key in requires_validation:
            if key not in mapping:
                raise ConfigError(f"requiresValidation key '{key}' not found in statusMapping")

        return cls(
            status_mapping=dict(mapping),
            transitions={k: list(v) for k, v in transitions.items()},
            task_types=list(task_types),
            default_status=values["default_status"],
            requires_validation=list(requires_validation),
        )

    def to_dict(self) -> dict:
        return {
            "status_mapping": dict(self.status_mapping),
            "transitions": {k: list(v) for k, v in self.transitions.items()},
            "task_types": list(self.task_types),
            "default_status": self.default_status,
            "requires_validation": list(self.requires_validation),
        }


@dataclass
class ExecutionMode:
    """
    Per-call execution options.

    batch=False selects the one-todo-per-call fallback instead of delivering
    every remaining todo in a single payload.
    """

    auto_update_status: bool = True
    show_progress: bool = True
    batch: bool = True


@dataclass
class ExecutionContext:
    task_id: str
    task_title: str
    todo_stats: TodoStats
    current_todo: Optional[str] = None


@dataclass
class TodoGroup:
    """Uncompleted todos sharing a heading, with the heading's context text."""

    heading: Optional[str]
    context_text: Optional[str] = None
    todos: List[str] = field(default_factory=list)


@dataclass
class Completed:
    stats: TodoStats
    message: str = ""
    type: Literal["completed"] = "completed"


@dataclass
class NeedsAnalysis:
    message: str
    context: ExecutionContext
    type: Literal["needs_analysis"] = "needs_analysis"


@dataclass
class NeedsImplementation:
    instructions: str
    context: ExecutionContext
    groups: List[TodoGroup] = field(default_factory=list)
    section: Optional[str] = None
    overview: List[StepTodo] = field(default_factory=list)
    type: Literal["needs_implementation"] = "needs_implementation"

    @property
    def todos(self) -> List[str]:
        return [text for group in self.groups for text in group.todos]


@dataclass
class Continue:
    message: str
    type: Literal["continue"] = "continue"


ExecutionAction = Union[Completed, NeedsAnalysis, NeedsImplementation, Continue]


@dataclass
class StepTodo:
    text: str
    checked: bool = False
    type: Literal["section", "todo", "subtodo"] = "todo"


@dataclass
class Step:
    """One unit of a progressive execution plan."""

    message: str
    type: Literal["overview", "section", "subtask", "overview_return"]
    todos: List[StepTodo] = field(default_factory=list)
    section_name: Optional[str] = None
    task_name: Optional[str] = None

    @property
    def has_open_todos(self) -> bool:
        return any(not t.checked for t in self.todos)


@dataclass
class TodoUpdateResult:
    updated: int = 0
    failed: int = 0
    failed_texts: List[str] = field(default_factory=list)
    next_action: Optional[ExecutionAction] = None
