"""
Task data models.

A Task is the remote page as the backend reports it. TaskMetadata is
assembled per call from the task plus a fresh todo analysis; neither is
cached.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

from models.todo import TodoStats


@dataclass
class Task:
    id: str
    title: str
    status: str
    type: Optional[str] = None
    url: Optional[str] = None


@dataclass
class StatusInfo:
    """Current status label with the labels an automated caller may move to."""

    current: str
    available: List[str] = field(default_factory=list)
    recommended: Optional[str] = None


@dataclass
class TaskMetadata:
    id: str
    title: str
    status: str
    type: str
    todo_stats: TodoStats
    status_info: StatusInfo
