"""
Todo data models.

A Todo is identified by its text: the backends expose no stable block ID
that survives human edits, so updates locate the checklist item by
normalised text match against the live document.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Literal, Optional


@dataclass
class Todo:
    """A single checkable work item parsed from a task document."""

    text: str
    completed: bool = False
    level: int = 0
    index: int = 0
    heading: Optional[str] = None
    heading_level: Optional[int] = None
    context_text: Optional[str] = None
    related_todos: List[str] = field(default_factory=list)
    children: List[Todo] = field(default_factory=list)

    @property
    def is_subtask(self) -> bool:
        return self.level > 0

    def all_todos(self) -> List[Todo]:
        """Return this todo and all descendants as a flat list."""
        result = [self]
        for child in self.children:
            result.extend(child.all_todos())
        return result


@dataclass
class Section:
    """
    A titled run of todos.

    Heading-derived sections mirror the document. Virtual sections are
    synthesised from a checklist item with nested children; the default
    section collects checklist items seen before any heading.
    """

    title: str
    level: int
    todos: List[Todo] = field(default_factory=list)
    is_virtual: bool = False
    is_default: bool = False


@dataclass
class HierarchyNode:
    type: Literal["section", "todo", "subtodo"]
    title: Optional[str] = None
    text: Optional[str] = None
    checked: bool = False
    level: Optional[int] = None
    children: List[HierarchyNode] = field(default_factory=list)


@dataclass
class TaskStructure:
    """
    Parsed view of a task document.

    Recomputed from the remote document on every call; never cached, since a
    human may edit the document between calls.
    """

    sections: List[Section] = field(default_factory=list)
    todos: List[Todo] = field(default_factory=list)
    hierarchy: List[HierarchyNode] = field(default_factory=list)

    def uncompleted(self) -> List[Todo]:
        return [t for t in self.todos if not t.completed]


@dataclass
class TodoStats:
    total: int = 0
    completed: int = 0
    percentage: int = 0
    next_todos: List[str] = field(default_factory=list)

    @property
    def remaining(self) -> int:
        return self.total - self.completed


@dataclass
class TodoUpdate:
    """One entry of a batch todo update, as reported by the agent."""

    text: str
    completed: bool = True


@dataclass
class TodoAnalysis:
    todos: List[Todo]
    stats: TodoStats
    content: str = ""
    insights: List[str] = field(default_factory=list)
    recommendations: List[str] = field(default_factory=list)
    blockers: List[str] = field(default_factory=list)
    structure: Optional[TaskStructure] = None
