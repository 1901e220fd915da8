"""
Content node models.

A task document is read from the backend as an ordered list of typed nodes.
Only headings, checklist items and paragraphs carry meaning for the todo
parser; bullets and dividers exist so that appended markup survives a round
trip through the backend.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Union


@dataclass
class Heading:
    level: int
    text: str


@dataclass
class ChecklistItem:
    """A checkbox line. Children may hold any node kind; only nested
    checklist items become child todos."""

    text: str
    checked: bool = False
    children: List[ContentNode] = field(default_factory=list)


@dataclass
class Paragraph:
    text: str


@dataclass
class BulletItem:
    text: str


@dataclass
class Divider:
    pass


ContentNode = Union[Heading, ChecklistItem, Paragraph, BulletItem, Divider]
