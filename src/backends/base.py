"""
Remote task backend interface.

A backend stores tasks as pages with a status, a type and block content.
Reading is mandatory; every write operation is a capability. A backend that
lacks a capability returns NOT_SUPPORTED from the corresponding method
instead of raising, so callers can branch on a configuration-driven
condition without exception handling.

Backends raise errors.BackendUnavailable for transport or remote failures.
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import FrozenSet, List, Optional, Sequence, Union

from models.content import ContentNode
from models.task import Task


class Capability(str, Enum):
    WRITE_STATUS = "write_status"
    WRITE_FIELDS = "write_fields"
    WRITE_TODOS = "write_todos"
    APPEND = "append"
    CREATE = "create"


class _NotSupported:
    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "NOT_SUPPORTED"

    def __bool__(self) -> bool:
        return False


NOT_SUPPORTED = _NotSupported()


class TaskBackend(ABC):
    name: str = "base"
    capabilities: FrozenSet[Capability] = frozenset()

    def supports(self, capability: Capability) -> bool:
        return capability in self.capabilities

    @abstractmethod
    def get_task(self, task_id: str) -> Task:
        ...

    @abstractmethod
    def list_content_nodes(self, task_id: str) -> List[ContentNode]:
        """Ordered content of the task page, nested checklist children resolved."""

    def set_task_status(self, task_id: str, label: str) -> Union[None, _NotSupported]:
        return NOT_SUPPORTED

    def set_task_fields(
        self,
        task_id: str,
        title: Optional[str] = None,
        task_type: Optional[str] = None,
    ) -> Union[None, _NotSupported]:
        return NOT_SUPPORTED

    def find_and_set_checklist_item(
        self, task_id: str, text: str, checked: bool
    ) -> Union[bool, _NotSupported]:
        """Set the first checklist item whose normalised text matches.

        Returns False when nothing matched.
        """
        return NOT_SUPPORTED

    def append_content(self, task_id: str, nodes: Sequence[ContentNode]) -> Union[None, _NotSupported]:
        return NOT_SUPPORTED

    def create_task(
        self, title: str, task_type: str, status: str, nodes: Sequence[ContentNode]
    ) -> Union[Task, _NotSupported]:
        return NOT_SUPPORTED

    def close(self) -> None:
        pass


def normalize_text(text: str) -> str:
    """Whitespace-insensitive key used to match todo text against the document."""
    return " ".join((text or "").split())
