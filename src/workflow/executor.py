"""
Execution orchestrator.

Evaluates a task from scratch on every call and returns the single next
action for the agent:

    no todos            -> NeedsAnalysis
    all todos checked   -> Completed (status advanced toward test)
    otherwise           -> NeedsImplementation with every open todo

The agent does the work, reports it through complete_todos, and gets the
next action back in the same call. report_completion evaluates exactly once;
there is no internal loop or recursion.
"""

import itertools
import logging
from typing import Any, Dict, List, Optional, Sequence, Union

from backends.base import Capability
from errors import WorkflowError
from models.todo import TaskStructure, Todo, TodoStats, TodoUpdate
from models.task import Task
from models.workflow import (
    TEST,
    Completed,
    Continue,
    ExecutionAction,
    ExecutionContext,
    ExecutionMode,
    NeedsAnalysis,
    NeedsImplementation,
    TodoGroup,
    TodoUpdateResult,
)
from parsers import calculate_stats
from workflow.plan import current_step, generate_steps, overview_before
from workflow.status import StatusTransitionEngine
from workflow.tasks import TaskService
from workflow.validation import ValidationService

log = logging.getLogger(__name__)


def group_by_heading(todos: Sequence[Todo]) -> List[TodoGroup]:
    """Group consecutive todos sharing a heading, keeping document order."""
    groups: List[TodoGroup] = []
    for todo in todos:
        if not groups or groups[-1].heading != todo.heading:
            groups.append(TodoGroup(heading=todo.heading, context_text=todo.context_text))
        groups[-1].todos.append(todo.text)
    return groups


def _render_todos(todos: Sequence[Todo]) -> List[str]:
    """Checklist lines per heading run, indented relative to the run's shallowest todo."""
    lines = []
    for heading, run in itertools.groupby(todos, key=lambda t: t.heading):
        run = list(run)
        if lines:
            lines.append("")
        if heading:
            lines.append(f"## {heading}")
        if run[0].context_text:
            lines.append(run[0].context_text)
        base = min(todo.level for todo in run)
        for todo in run:
            lines.append(f"{'    ' * (todo.level - base)}- [ ] {todo.text}")
    return lines


class ExecutionOrchestrator:
    def __init__(
        self,
        tasks: TaskService,
        engine: StatusTransitionEngine,
        validation: ValidationService,
    ):
        self.tasks = tasks
        self.engine = engine
        self.validation = validation

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    def execute_task(self, task_id: str, mode: Optional[ExecutionMode] = None) -> ExecutionAction:
        return self._evaluate(task_id, mode or ExecutionMode())

    def report_completion(self, task_id: str, mode: Optional[ExecutionMode] = None) -> ExecutionAction:
        log.info("Re-evaluating task %s after reported progress", task_id)
        return self._evaluate(task_id, mode or ExecutionMode())

    def complete_todos(
        self,
        task_id: str,
        updates: Sequence[Union[TodoUpdate, Dict[str, Any]]],
        mode: Optional[ExecutionMode] = None,
    ) -> TodoUpdateResult:
        """Write a batch of todo updates and attach the next action."""
        result = self.tasks.update_todos(task_id, updates)
        if result.updated:
            result.next_action = self.report_completion(task_id, mode)
        else:
            result.next_action = Continue(
                message=(
                    f"No todos were updated; {result.failed} did not match the live document: "
                    + ", ".join(f'"{t}"' for t in result.failed_texts)
                    + ". Use the exact todo texts from execute_task or analyze_todos and "
                    "call update_todos again."
                )
            )
        return result

    # ------------------------------------------------------------------
    # Evaluation
    # ------------------------------------------------------------------

    def _evaluate(self, task_id: str, mode: ExecutionMode) -> ExecutionAction:
        task = self.tasks.get_task(task_id)
        structure = self.tasks.get_structure(task_id)
        stats = calculate_stats(structure.todos)
        status = task.status

        if mode.auto_update_status and stats.percentage > 0 and status == self.engine.not_started_label:
            status = self._auto_advance(task_id, status, stats.percentage) or status

        context = ExecutionContext(task_id=task_id, task_title=task.title, todo_stats=stats)

        if stats.total == 0:
            log.info("Task %s has no todos; asking for analysis", task_id)
            return NeedsAnalysis(message=self._analysis_message(task), context=context)

        open_todos = structure.uncompleted()
        if not open_todos:
            advanced = None
            if mode.auto_update_status:
                advanced = self._auto_advance(task_id, status, stats.percentage)
            log.info("Task %s completed (%d todos)", task_id, stats.total)
            return Completed(stats=stats, message=self._completed_message(task, stats, advanced))

        return self._implementation(task, structure, stats, context, mode)

    def _auto_advance(self, task_id: str, current_label: str, percentage: int) -> Optional[str]:
        """Move the task to the recommended status; returns the new label or None."""
        if not self.tasks.backend.supports(Capability.WRITE_STATUS):
            log.info("Backend %s cannot write status; not advancing %s", self.tasks.backend.name, task_id)
            return None
        try:
            target = self.engine.recommend(self.engine.key_for(current_label), percentage)
            if target is None:
                return None
            label = self.tasks.set_status(task_id, current_label, target)
        except WorkflowError as e:
            log.warning("Failed to auto-update status of %s: %s", task_id, e)
            return None
        log.info("Task %s status %r -> %r at %d%%", task_id, current_label, label, percentage)
        return label

    def _implementation(
        self,
        task: Task,
        structure: TaskStructure,
        stats: TodoStats,
        context: ExecutionContext,
        mode: ExecutionMode,
    ) -> NeedsImplementation:
        open_todos = structure.uncompleted()
        todos = open_todos if mode.batch else open_todos[:1]
        context.current_todo = todos[0].text

        steps = generate_steps(structure)
        step = current_step(steps)
        overview = overview_before(steps, step) if step else None
        section = step.section_name if step else None

        log.info(
            "Task %s: %d open todo(s), delivering %d (section %r)",
            task.id, len(open_todos), len(todos), section,
        )
        if mode.batch:
            instructions = self._batch_instructions(task, stats, todos, section)
        else:
            instructions = self._single_instructions(task, stats, todos[0])

        return NeedsImplementation(
            instructions=instructions,
            context=context,
            groups=group_by_heading(todos),
            section=section,
            overview=overview.todos if overview and mode.show_progress else [],
        )

    # ------------------------------------------------------------------
    # Messages
    # ------------------------------------------------------------------

    def _analysis_message(self, task: Task) -> str:
        return (
            f'Task "{task.title}" has no checklist todos but needs development work.\n\n'
            "Phase 1: Analyze the task description and requirements\n"
            "Phase 2: Break the work down into implementation steps\n"
            "Phase 3: Use development tools (Read, Edit, Write, Bash) to implement\n"
            "Phase 4: Test and validate the implementation\n"
            f'Phase 5: Move the task to "{self.engine.label_for(TEST)}" with update_task when complete'
        )

    def _completed_message(self, task: Task, stats: TodoStats, advanced: Optional[str]) -> str:
        lines = [f'All {stats.total} todos of "{task.title}" are completed.']
        if advanced:
            lines.append(f'Status moved to "{advanced}".')
        human_only = [self.engine.label_for(k) for k in self.engine.config.requires_validation]
        if human_only:
            lines.append(f"Moving the task to {', '.join(human_only)} requires human validation.")
        lines.append(
            "Append a short summary of the work with append_summary. "
            "List anything that still needs manual testing as unchecked items (- [ ] ...)."
        )
        return "\n".join(lines)

    def _batch_instructions(
        self, task: Task, stats: TodoStats, todos: Sequence[Todo], section: Optional[str]
    ) -> str:
        lines = [
            f'Implement the remaining todos of "{task.title}" and mark each one completed.',
            "",
            f"Progress: {stats.completed}/{stats.total} todos completed "
            f"({stats.percentage}%), {stats.remaining} remaining.",
        ]
        if section:
            lines.append(f'Current section: "{section}"')
        lines.append("")
        lines.extend(_render_todos(todos))
        lines.extend([
            "",
            "Steps:",
            "1. Read the relevant code and the context given for each group.",
            "2. Implement the todos with your development tools, testing as you go.",
            "3. Call update_todos with the exact texts of the todos you completed; "
            "several can be reported at once.",
            "4. update_todos returns the next action, so execute_task does not need to be called again.",
        ])
        return "\n".join(lines)

    def _single_instructions(self, task: Task, stats: TodoStats, todo: Todo) -> str:
        return "\n".join([
            "Implement the following todo and then mark it as completed:",
            "",
            f'TODO: "{todo.text}"',
            "",
            "1. Analyze what this todo requires (read relevant files, understand context)",
            "2. Use development tools (Read, Edit, Write, Bash) to implement it",
            "3. Test your implementation if possible",
            "4. Mark it completed with update_todos; the response carries the next todo",
            "",
            f"Task: {task.title}",
            f"Total todos: {stats.total}, completed: {stats.completed}, remaining: {stats.remaining}",
        ])
