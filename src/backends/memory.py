"""
In-memory task backend.

Holds task pages in a dict guarded by an RLock (the REST API thread and the
MCP transport may touch it concurrently). Pages are seeded from markdown.
Used for local runs (TASK_BACKEND=memory) and as the backend in tests; the
capability set can be narrowed to exercise NOT_SUPPORTED paths.
"""

import copy
import logging
import secrets
import threading
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Iterable, Iterator, List, Optional, Sequence

from backends.base import NOT_SUPPORTED, Capability, TaskBackend, normalize_text
from errors import BackendUnavailable
from models.content import ChecklistItem, ContentNode
from models.task import Task
from utils.markdown import parse_markdown

log = logging.getLogger(__name__)

ALL_CAPABILITIES: FrozenSet[Capability] = frozenset(Capability)


@dataclass
class _Page:
    task: Task
    nodes: List[ContentNode] = field(default_factory=list)


def _iter_items(nodes: Iterable[ContentNode]) -> Iterator[ChecklistItem]:
    for node in nodes:
        if isinstance(node, ChecklistItem):
            yield node
            yield from _iter_items(node.children)


def _find_item(nodes: Iterable[ContentNode], key: str, checked: bool) -> Optional[ChecklistItem]:
    """First item with this text whose state differs from checked, else the first match."""
    first = None
    for node in _iter_items(nodes):
        if normalize_text(node.text) != key:
            continue
        if node.checked != checked:
            return node
        if first is None:
            first = node
    return first


class InMemoryBackend(TaskBackend):
    name = "memory"

    def __init__(self, capabilities: Optional[Iterable[Capability]] = None):
        self.capabilities = frozenset(capabilities) if capabilities is not None else ALL_CAPABILITIES
        self._pages: Dict[str, _Page] = {}
        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    # Seeding
    # ------------------------------------------------------------------

    def add_task(
        self,
        title: str,
        status: str,
        task_type: Optional[str] = None,
        content: str = "",
        task_id: Optional[str] = None,
    ) -> Task:
        """Create a page directly, bypassing capabilities (for seeding)."""
        task = Task(id=task_id or secrets.token_hex(16), title=title, status=status, type=task_type)
        with self._lock:
            self._pages[task.id] = _Page(task=task, nodes=parse_markdown(content))
        return copy.deepcopy(task)

    def _page(self, task_id: str) -> _Page:
        page = self._pages.get(task_id)
        if page is None:
            raise BackendUnavailable(f"Task '{task_id}' not found", status_code=404)
        return page

    # ------------------------------------------------------------------
    # TaskBackend
    # ------------------------------------------------------------------

    def get_task(self, task_id: str) -> Task:
        with self._lock:
            return copy.deepcopy(self._page(task_id).task)

    def list_content_nodes(self, task_id: str) -> List[ContentNode]:
        with self._lock:
            return copy.deepcopy(self._page(task_id).nodes)

    def set_task_status(self, task_id: str, label: str):
        if not self.supports(Capability.WRITE_STATUS):
            return NOT_SUPPORTED
        with self._lock:
            self._page(task_id).task.status = label
        return None

    def set_task_fields(self, task_id: str, title: Optional[str] = None, task_type: Optional[str] = None):
        if not self.supports(Capability.WRITE_FIELDS):
            return NOT_SUPPORTED
        with self._lock:
            task = self._page(task_id).task
            if title is not None:
                task.title = title
            if task_type is not None:
                task.type = task_type
        return None

    def find_and_set_checklist_item(self, task_id: str, text: str, checked: bool):
        if not self.supports(Capability.WRITE_TODOS):
            return NOT_SUPPORTED
        with self._lock:
            item = _find_item(self._page(task_id).nodes, normalize_text(text), checked)
            if item is None:
                return False
            item.checked = checked
            return True

    def append_content(self, task_id: str, nodes: Sequence[ContentNode]):
        if not self.supports(Capability.APPEND):
            return NOT_SUPPORTED
        with self._lock:
            self._page(task_id).nodes.extend(copy.deepcopy(list(nodes)))
        log.debug("Appended %d node(s) to %s", len(nodes), task_id)
        return None

    def create_task(self, title: str, task_type: str, status: str, nodes: Sequence[ContentNode]):
        if not self.supports(Capability.CREATE):
            return NOT_SUPPORTED
        task = Task(id=secrets.token_hex(16), title=title, status=status, type=task_type)
        with self._lock:
            self._pages[task.id] = _Page(task=task, nodes=copy.deepcopy(list(nodes)))
        return copy.deepcopy(task)

