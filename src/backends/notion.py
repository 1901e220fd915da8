"""
Notion REST API backend.

Tasks are pages of one Notion database. The page title property is found
dynamically; status and type live in a "Status" (status) and a "Type"
(select) property. Page content is read as blocks: headings, to_do items,
paragraphs, bullets and dividers. Children of to_do blocks are fetched
recursively so nested checklists reach the parser.

All HTTP failures surface as BackendUnavailable; nothing is retried here.
"""

import logging
from typing import Any, Dict, Iterator, List, Optional, Sequence

import httpx

from backends.base import Capability, TaskBackend, normalize_text
from errors import BackendUnavailable
from models.content import BulletItem, ChecklistItem, ContentNode, Divider, Heading, Paragraph
from models.task import Task

log = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.notion.com/v1"
NOTION_VERSION = "2022-06-28"
PAGE_SIZE = 100
# Notion accepts at most 100 children per append request
APPEND_BATCH = 100
MAX_RICH_TEXT = 2000


# ---------------------------------------------------------------------------
# Block <-> node conversion
# ---------------------------------------------------------------------------

def _plain_text(rich_text: Optional[List[Dict[str, Any]]]) -> str:
    return "".join(part.get("plain_text") or part.get("text", {}).get("content", "") for part in rich_text or [])


def _rich_text(text: str) -> List[Dict[str, Any]]:
    return [{"type": "text", "text": {"content": text[:MAX_RICH_TEXT]}}]


def block_to_node(block: Dict[str, Any]) -> Optional[ContentNode]:
    """Convert a Notion block to a content node, or None for unsupported types."""
    kind = block.get("type", "")
    body = block.get(kind) or {}

    if kind in ("heading_1", "heading_2", "heading_3"):
        return Heading(level=int(kind[-1]), text=_plain_text(body.get("rich_text")))
    if kind == "to_do":
        return ChecklistItem(text=_plain_text(body.get("rich_text")), checked=bool(body.get("checked")))
    if kind == "paragraph":
        return Paragraph(text=_plain_text(body.get("rich_text")))
    if kind in ("bulleted_list_item", "numbered_list_item"):
        return BulletItem(text=_plain_text(body.get("rich_text")))
    if kind == "divider":
        return Divider()
    return None


def node_to_block(node: ContentNode) -> Dict[str, Any]:
    """Convert a content node to a Notion block payload."""
    if isinstance(node, Heading):
        kind = f"heading_{min(max(node.level, 1), 3)}"
        return {"object": "block", "type": kind, kind: {"rich_text": _rich_text(node.text)}}
    if isinstance(node, ChecklistItem):
        body: Dict[str, Any] = {"rich_text": _rich_text(node.text), "checked": node.checked}
        if node.children:
            body["children"] = [node_to_block(child) for child in node.children]
        return {"object": "block", "type": "to_do", "to_do": body}
    if isinstance(node, BulletItem):
        return {
            "object": "block",
            "type": "bulleted_list_item",
            "bulleted_list_item": {"rich_text": _rich_text(node.text)},
        }
    if isinstance(node, Divider):
        return {"object": "block", "type": "divider", "divider": {}}
    return {"object": "block", "type": "paragraph", "paragraph": {"rich_text": _rich_text(node.text)}}


# ---------------------------------------------------------------------------
# NotionBackend
# ---------------------------------------------------------------------------

class NotionBackend(TaskBackend):
    name = "notion"
    capabilities = frozenset(Capability)

    def __init__(
        self,
        api_key: str,
        database_id: str,
        base_url: str = DEFAULT_API_URL,
        timeout: float = 30.0,
        status_property: str = "Status",
        type_property: str = "Type",
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.database_id = database_id
        self.status_property = status_property
        self.type_property = type_property
        self._title_property: Optional[str] = None
        self._client = httpx.Client(
            base_url=base_url,
            timeout=httpx.Timeout(timeout, connect=10.0),
            headers={
                "Authorization": f"Bearer {api_key}",
                "Notion-Version": NOTION_VERSION,
                "Content-Type": "application/json",
            },
            transport=transport,
        )

    def close(self) -> None:
        self._client.close()

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------

    def _request(self, method: str, path: str, **kwargs) -> Dict[str, Any]:
        try:
            resp = self._client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            log.error("Notion %s %s failed: %s", method, path, e)
            raise BackendUnavailable(f"Notion request failed: {e}") from e

        if resp.status_code >= 400:
            try:
                detail = resp.json().get("message", resp.text)
            except ValueError:
                detail = resp.text
            log.error("Notion %s %s returned %d: %s", method, path, resp.status_code, detail)
            raise BackendUnavailable(
                f"Notion API error {resp.status_code}: {detail}", status_code=resp.status_code
            )
        return resp.json()

    def _iter_children(self, block_id: str) -> Iterator[Dict[str, Any]]:
        """Yield the direct child blocks of a page or block, following pagination."""
        params: Dict[str, Any] = {"page_size": PAGE_SIZE}
        while True:
            data = self._request("GET", f"/blocks/{block_id}/children", params=params)
            yield from data.get("results", [])
            if not data.get("has_more"):
                break
            params["start_cursor"] = data.get("next_cursor")

    def _title_property_name(self) -> str:
        if self._title_property is None:
            database = self._request("GET", f"/databases/{self.database_id}")
            for name, prop in (database.get("properties") or {}).items():
                if prop.get("type") == "title":
                    self._title_property = name
                    break
            else:
                self._title_property = "Name"
        return self._title_property

    def _map_page(self, page: Dict[str, Any]) -> Task:
        props = page.get("properties") or {}

        title = "Untitled"
        for prop in props.values():
            if prop.get("type") == "title":
                title = _plain_text(prop.get("title")) or "Untitled"
                break

        status_prop = props.get(self.status_property) or {}
        status = (status_prop.get("status") or status_prop.get("select") or {}).get("name") or "Unknown"
        type_prop = props.get(self.type_property) or {}
        task_type = (type_prop.get("select") or {}).get("name")

        return Task(id=page["id"], title=title, status=status, type=task_type, url=page.get("url"))

    # ------------------------------------------------------------------
    # Reading
    # ------------------------------------------------------------------

    def get_task(self, task_id: str) -> Task:
        return self._map_page(self._request("GET", f"/pages/{task_id}"))

    def _nodes_under(self, block_id: str) -> List[ContentNode]:
        nodes: List[ContentNode] = []
        for block in self._iter_children(block_id):
            node = block_to_node(block)
            if node is None:
                continue
            if isinstance(node, ChecklistItem) and block.get("has_children"):
                node.children = self._nodes_under(block["id"])
            nodes.append(node)
        return nodes

    def list_content_nodes(self, task_id: str) -> List[ContentNode]:
        return self._nodes_under(task_id)

    # ------------------------------------------------------------------
    # Writing
    # ------------------------------------------------------------------

    def set_task_status(self, task_id: str, label: str):
        self._request(
            "PATCH",
            f"/pages/{task_id}",
            json={"properties": {self.status_property: {"status": {"name": label}}}},
        )
        return None

    def set_task_fields(self, task_id: str, title: Optional[str] = None, task_type: Optional[str] = None):
        properties: Dict[str, Any] = {}
        if title is not None:
            properties[self._title_property_name()] = {"title": _rich_text(title)}
        if task_type is not None:
            properties[self.type_property] = {"select": {"name": task_type}}
        if properties:
            self._request("PATCH", f"/pages/{task_id}", json={"properties": properties})
        return None

    def _iter_todo_blocks(self, block_id: str) -> Iterator[Dict[str, Any]]:
        """Depth-first walk in document order over to_do blocks."""
        for block in self._iter_children(block_id):
            if block.get("type") != "to_do":
                continue
            yield block
            if block.get("has_children"):
                yield from self._iter_todo_blocks(block["id"])

    def _find_todo_block(self, block_id: str, key: str, checked: bool) -> Optional[Dict[str, Any]]:
        first = None
        for block in self._iter_todo_blocks(block_id):
            if normalize_text(_plain_text(block["to_do"].get("rich_text"))) != key:
                continue
            if bool(block["to_do"].get("checked")) != checked:
                return block
            if first is None:
                first = block
        return first

    def find_and_set_checklist_item(self, task_id: str, text: str, checked: bool):
        block = self._find_todo_block(task_id, normalize_text(text), checked)
        if block is None:
            return False
        self._request(
            "PATCH",
            f"/blocks/{block['id']}",
            json={"to_do": {"rich_text": block["to_do"].get("rich_text", []), "checked": checked}},
        )
        return True

    def _append_blocks(self, block_id: str, blocks: List[Dict[str, Any]]) -> None:
        for start in range(0, len(blocks), APPEND_BATCH):
            self._request(
                "PATCH",
                f"/blocks/{block_id}/children",
                json={"children": blocks[start:start + APPEND_BATCH]},
            )

    def append_content(self, task_id: str, nodes: Sequence[ContentNode]):
        self._append_blocks(task_id, [node_to_block(n) for n in nodes])
        return None

    def create_task(self, title: str, task_type: str, status: str, nodes: Sequence[ContentNode]):
        blocks = [node_to_block(n) for n in nodes]
        payload = {
            "parent": {"database_id": self.database_id},
            "properties": {
                self._title_property_name(): {"title": _rich_text(title)},
                self.type_property: {"select": {"name": task_type}},
                self.status_property: {"status": {"name": status}},
            },
        }
        if blocks:
            payload["children"] = blocks[:APPEND_BATCH]

        page = self._request("POST", "/pages", json=payload)
        if len(blocks) > APPEND_BATCH:
            self._append_blocks(page["id"], blocks[APPEND_BATCH:])
        log.info("Created Notion task %s (%s)", page["id"], title)
        return self._map_page(page)
