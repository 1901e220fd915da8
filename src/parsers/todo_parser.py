"""
Parser turning task document content into a section/todo hierarchy.

Main API:
    parse(nodes)  → TaskStructure
    calculate_stats(todos)  → TodoStats

The input is the ordered list of content nodes the backend returns for a
task page. Headings open sections, a paragraph directly under a heading
becomes the context text of that section's todos, and checklist items become
todos (nested checklist items become child todos).

Virtual sections
----------------
Authors often nest a sub-checklist directly under a checklist item instead of
writing a heading for it. Such an item is promoted to a section of its own
(title = its text, level = ParserPolicy.virtual_section_level) when either

- more than ``virtual_run_length`` (2) checklist items have appeared since
  the last heading or virtual section, or
- the current section is the implicit default section and already holds at
  least ``default_section_min_todos`` (2) todos.

The promoted item's children become the todos of the new section; the item
itself is the section title and is not counted as a todo. Checklist items
that follow join the virtual section until the next heading.
"""

import math
from dataclasses import dataclass
from typing import List, Optional, Sequence

from models.content import ChecklistItem, ContentNode, Heading, Paragraph
from models.todo import HierarchyNode, Section, TaskStructure, Todo, TodoStats

# Title of the implicit section holding checklist items seen before any heading
DEFAULT_SECTION_TITLE = "Section 1"
# Used instead when the document has no heading at all
FALLBACK_SECTION_TITLE = "Main Tasks"

NEXT_TODOS_LIMIT = 3


@dataclass(frozen=True)
class ParserPolicy:
    virtual_run_length: int = 2
    default_section_min_todos: int = 2
    virtual_section_level: int = 2


DEFAULT_POLICY = ParserPolicy()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _build_todo(item: ChecklistItem, level: int) -> Todo:
    """Recursively convert a checklist item and its checklist children."""
    todo = Todo(text=item.text.strip(), completed=bool(item.checked), level=level)
    for child in item.children:
        if isinstance(child, ChecklistItem):
            todo.children.append(_build_todo(child, level + 1))
    return todo


def _context_after(nodes: Sequence[ContentNode], i: int) -> Optional[str]:
    """Return the paragraph text directly following node i, if any."""
    if i + 1 < len(nodes) and isinstance(nodes[i + 1], Paragraph):
        text = nodes[i + 1].text.strip()
        return text or None
    return None


def _should_promote(section: Section, run_length: int, policy: ParserPolicy) -> bool:
    if run_length > policy.virtual_run_length:
        return True
    return section.is_default and len(section.todos) >= policy.default_section_min_todos


def _build_todo_node(todo: Todo, node_type: str = "todo") -> HierarchyNode:
    node = HierarchyNode(type=node_type, text=todo.text, checked=todo.completed, level=todo.level)
    for child in todo.children:
        node.children.append(_build_todo_node(child, "subtodo"))
    return node


def build_hierarchy(sections: List[Section]) -> List[HierarchyNode]:
    hierarchy = []
    for section in sections:
        node = HierarchyNode(type="section", title=section.title, level=section.level)
        node.children = [_build_todo_node(todo) for todo in section.todos]
        hierarchy.append(node)
    return hierarchy


class _Builder:
    """Accumulates sections and the flat todo list while walking the nodes."""

    def __init__(self):
        self.structure = TaskStructure()
        self.current: Optional[Section] = None
        self.context_text: Optional[str] = None
        self._section_texts: List[str] = []

    def open(self, section: Section, context_text: Optional[str] = None) -> None:
        self.flush()
        self.current = section
        self.context_text = context_text
        self._section_texts = []

    def flush(self) -> None:
        if self.current is not None:
            self.structure.sections.append(self.current)
            self.current = None

    def add(self, todo: Todo) -> None:
        """Append a root todo to the current section and flatten its subtree."""
        self.current.todos.append(todo)
        for node in todo.all_todos():
            node.heading = self.current.title
            node.heading_level = self.current.level
            node.context_text = self.context_text
            node.index = len(self.structure.todos)
            node.related_todos = list(self._section_texts)
            self._section_texts.append(node.text)
            self.structure.todos.append(
                Todo(
                    text=node.text,
                    completed=node.completed,
                    level=node.level,
                    index=node.index,
                    heading=node.heading,
                    heading_level=node.heading_level,
                    context_text=node.context_text,
                    related_todos=list(node.related_todos),
                )
            )


# ---------------------------------------------------------------------------
# Main API
# ---------------------------------------------------------------------------

def parse(nodes: Optional[Sequence[ContentNode]], policy: ParserPolicy = DEFAULT_POLICY) -> TaskStructure:
    """
    Parse content nodes into a TaskStructure.

    Pure and deterministic; an empty or missing node list yields an empty
    structure.
    """
    if not nodes:
        return TaskStructure()

    has_heading = any(isinstance(n, Heading) for n in nodes)
    default_title = DEFAULT_SECTION_TITLE if has_heading else FALLBACK_SECTION_TITLE

    builder = _Builder()
    run_length = 0

    for i, node in enumerate(nodes):
        if isinstance(node, Heading):
            builder.open(
                Section(title=node.text.strip(), level=node.level),
                _context_after(nodes, i),
            )
            run_length = 0
            continue

        if not isinstance(node, ChecklistItem):
            continue

        run_length += 1
        todo = _build_todo(node, 0)

        if builder.current is None:
            builder.open(Section(title=default_title, level=1, is_default=True))

        if todo.children and _should_promote(builder.current, run_length, policy):
            builder.open(
                Section(title=todo.text, level=policy.virtual_section_level, is_virtual=True)
            )
            # children are root todos of the new section
            for child in node.children:
                if isinstance(child, ChecklistItem):
                    builder.add(_build_todo(child, 0))
            run_length = 0
        else:
            builder.add(todo)

    builder.flush()
    structure = builder.structure
    structure.hierarchy = build_hierarchy(structure.sections)
    return structure


def calculate_stats(todos: Sequence[Todo]) -> TodoStats:
    """
    Compute completion statistics over a flat todo list.

    percentage is completed/total rounded half-up to an integer (0 when there
    are no todos); next_todos lists up to three uncompleted todos in document
    order.
    """
    total = len(todos)
    completed = sum(1 for t in todos if t.completed)
    percentage = math.floor(100 * completed / total + 0.5) if total else 0
    next_todos = [t.text for t in todos if not t.completed][:NEXT_TODOS_LIMIT]
    return TodoStats(total=total, completed=completed, percentage=percentage, next_todos=next_todos)
