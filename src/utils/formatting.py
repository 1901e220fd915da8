"""
Text rendering for tool responses.

Every tool returns a JSON object; the "message" field carries one of these
renderings so that an agent reading the response sees the next step without
walking the structure.
"""

from typing import Dict, List, Sequence

from models.task import Task, TaskMetadata
from models.todo import TodoAnalysis
from models.workflow import (
    Completed,
    Continue,
    ExecutionAction,
    NeedsAnalysis,
    NeedsImplementation,
    StepTodo,
    TodoUpdateResult,
    WorkflowConfig,
)


def _bullets(items: Sequence[str]) -> List[str]:
    return [f"- {item}" for item in items]


def format_overview(todos: Sequence[StepTodo]) -> str:
    """Render a plan overview as a checklist of section titles."""
    return "\n".join(f"- [{'x' if t.checked else ' '}] {t.text}" for t in todos)


def format_action(action: ExecutionAction) -> str:
    if isinstance(action, Completed):
        return f"Task completed ({action.stats.percentage}%)\n\n{action.message}"

    if isinstance(action, NeedsAnalysis):
        return f"Analysis required\n\n{action.message}"

    if isinstance(action, NeedsImplementation):
        parts = [f"Implementation required: {len(action.todos)} todo(s)"]
        if action.overview:
            parts.append(f"Sections:\n{format_overview(action.overview)}")
        parts.append(action.instructions)
        return "\n\n".join(parts)

    if isinstance(action, Continue):
        return f"Continue\n\n{action.message}"

    return "Next action available"


def format_task_info(metadata: TaskMetadata) -> str:
    stats = metadata.todo_stats
    info = metadata.status_info
    lines = [
        "Task information",
        "",
        f"Title: {metadata.title}",
        f"Status: {metadata.status}",
        f"Type: {metadata.type or '-'}",
        f"ID: {metadata.id}",
        "",
        "Todo statistics",
        f"- Total: {stats.total}",
        f"- Completed: {stats.completed}",
        f"- Progress: {stats.percentage}%",
        "",
        "Status",
        f"Current: {info.current}",
        f"Available transitions: {', '.join(info.available) or 'none'}",
        f"Recommended: {info.recommended or 'None'}",
    ]
    if stats.next_todos:
        lines.extend(["", f"Next todos: {', '.join(stats.next_todos)}"])
    return "\n".join(lines)


def format_task_created(task: Task) -> str:
    lines = [
        "Task created",
        "",
        f"Title: {task.title}",
        f"Type: {task.type}",
        f"Status: {task.status}",
        f"ID: {task.id}",
    ]
    if task.url:
        lines.append(f"URL: {task.url}")
    return "\n".join(lines)


def format_task_updated(task_id: str, changed: Dict[str, str]) -> str:
    fields = ", ".join(f"{k}={v!r}" for k, v in changed.items()) or "none"
    return f"Task updated\n\nTask ID: {task_id}\nUpdated fields: {fields}"


def format_todo_analysis(analysis: TodoAnalysis) -> str:
    stats = analysis.stats
    lines = [
        "Todo analysis",
        "",
        f"Total todos: {stats.total}",
        f"Completed: {stats.completed}",
        f"Progress: {stats.percentage}%",
        "",
        "Insights",
        *_bullets(analysis.insights),
        "",
        "Recommendations",
        *_bullets(analysis.recommendations),
    ]
    if analysis.blockers:
        lines.extend(["", "Blockers", *_bullets(analysis.blockers)])
    if analysis.structure is not None:
        lines.extend(["", "Sections"])
        for section in analysis.structure.sections:
            done = sum(1 for t in section.todos if t.completed)
            lines.append(f"- {section.title} ({done}/{len(section.todos)})")
    return "\n".join(lines)


def format_todos_updated(task_id: str, result: TodoUpdateResult) -> str:
    lines = [
        "Todos updated",
        "",
        f"Task ID: {task_id}",
        f"Successfully updated: {result.updated}",
        f"Failed: {result.failed}",
    ]
    if result.failed_texts:
        lines.extend(_bullets(f'"{t}"' for t in result.failed_texts))
    text = "\n".join(lines)
    if result.next_action is not None:
        text += "\n\n" + format_action(result.next_action)
    return text


def format_workflow(config: WorkflowConfig) -> str:
    labels = config.status_mapping
    lines = ["Workflow", "", "Statuses"]
    for key, label in labels.items():
        marker = " (human only)" if key in config.requires_validation else ""
        lines.append(f"- {label}{marker}")
    lines.extend(["", "Transitions"])
    for source, targets in config.transitions.items():
        lines.append(f"- {labels[source]} -> {', '.join(labels[t] for t in targets) or 'none'}")
    lines.extend(["", f"Task types: {', '.join(config.task_types)}"])
    lines.append(f"Default status: {labels[config.default_status]}")
    return "\n".join(lines)
