"""
Progressive execution plan.

Turns a TaskStructure into an ordered list of steps:

    overview → (section → subtask* → overview_return)*

The overview lists every section title as an unchecked entry. Each section
step carries that section's todos, each todo with children gets a subtask
step scoped to those children, and the overview_return step re-renders the
overview with every section up to and including the current one checked.
A caller can therefore show a stable table of contents before and after each
unit of work without recomputing section completion.
"""

from typing import List, Optional

from models.todo import TaskStructure
from models.workflow import Step, StepTodo

OVERVIEW_MESSAGE = "Here are all the tasks to do"
WORKING_ON = "Working on"
COMPLETED_SECTION = "Section completed"


def generate_steps(structure: TaskStructure) -> List[Step]:
    steps: List[Step] = []
    titles = [node.title or "" for node in structure.hierarchy]

    if titles:
        steps.append(
            Step(
                message=OVERVIEW_MESSAGE,
                type="overview",
                todos=[StepTodo(text=t, checked=False, type="section") for t in titles],
            )
        )

    for i, section in enumerate(structure.hierarchy):
        if not section.children:
            continue

        steps.append(
            Step(
                message=f'{WORKING_ON} "{section.title}"',
                type="section",
                todos=[
                    StepTodo(text=child.text or "", checked=child.checked, type="todo")
                    for child in section.children
                ],
                section_name=section.title,
            )
        )

        for todo in section.children:
            if todo.children:
                steps.append(
                    Step(
                        message=f'{WORKING_ON} "{todo.text}"',
                        type="subtask",
                        todos=[
                            StepTodo(text=sub.text or "", checked=sub.checked, type="subtodo")
                            for sub in todo.children
                        ],
                        section_name=section.title,
                        task_name=todo.text,
                    )
                )

        steps.append(
            Step(
                message=f'{COMPLETED_SECTION} "{section.title}"',
                type="overview_return",
                todos=[
                    StepTodo(text=t, checked=j <= i, type="section")
                    for j, t in enumerate(titles)
                ],
                section_name=section.title,
            )
        )

    return steps


def current_step(steps: List[Step]) -> Optional[Step]:
    """First section or subtask step that still has an unchecked todo."""
    for step in steps:
        if step.type in ("section", "subtask") and step.has_open_todos:
            return step
    return None


def overview_before(steps: List[Step], step: Step) -> Optional[Step]:
    """The overview (or overview_return) emitted most recently before step."""
    latest = None
    for candidate in steps:
        if candidate is step:
            break
        if candidate.type in ("overview", "overview_return"):
            latest = candidate
    return latest
