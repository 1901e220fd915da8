"""
Markdown <-> content node conversion.

Used to turn agent-supplied markup (task content, summaries) into content
nodes a backend can append, and to render a parsed document back to markdown
for the analysis "content" field.

Nesting follows list indentation: four spaces (or one tab) per level.
"""

import re
from typing import List, Optional, Sequence, Tuple

from models.content import BulletItem, ChecklistItem, ContentNode, Divider, Heading, Paragraph

_CHECKLIST_RE = re.compile(r"^(\s*)[-*] \[(.)\] ?(.*)$")
_BULLET_RE = re.compile(r"^(\s*)[-*] (.+)$")
_HEADING_RE = re.compile(r"^(#{1,6})\s+(.*)$")
_DIVIDER_RE = re.compile(r"^(-{3,}|\*{3,}|_{3,})$")


def _indent_level(indent_str: str) -> int:
    """Convert a leading-whitespace string to a 0-based indent level."""
    spaces = len(indent_str.replace("\t", "    "))
    return spaces // 4


def _parse_heading(stripped: str) -> Optional[Tuple[int, str]]:
    """Return (level, text) or None if line is not a heading."""
    m = _HEADING_RE.match(stripped)
    if not m:
        return None
    return len(m.group(1)), m.group(2).strip()


def parse_markdown(text: str) -> List[ContentNode]:
    """
    Parse markdown into top-level content nodes.

    Checklist items nest under the nearest less-indented checklist item above
    them; indented bullets likewise become children of that item.
    """
    nodes: List[ContentNode] = []
    stack: List[Tuple[int, ChecklistItem]] = []

    for line in (text or "").splitlines():
        stripped = line.strip()
        if not stripped:
            continue

        if _DIVIDER_RE.match(stripped):
            stack.clear()
            nodes.append(Divider())
            continue

        heading = _parse_heading(stripped)
        if heading:
            stack.clear()
            nodes.append(Heading(level=heading[0], text=heading[1]))
            continue

        m = _CHECKLIST_RE.match(line)
        if m:
            indent = _indent_level(m.group(1))
            item = ChecklistItem(text=m.group(3).strip(), checked=m.group(2).lower() == "x")
            while stack and stack[-1][0] >= indent:
                stack.pop()
            if stack:
                stack[-1][1].children.append(item)
            else:
                nodes.append(item)
            stack.append((indent, item))
            continue

        m = _BULLET_RE.match(line)
        if m:
            indent = _indent_level(m.group(1))
            bullet = BulletItem(text=m.group(2).strip())
            while stack and stack[-1][0] >= indent:
                stack.pop()
            if stack:
                stack[-1][1].children.append(bullet)
            else:
                nodes.append(bullet)
            continue

        stack.clear()
        nodes.append(Paragraph(text=stripped))

    return nodes


def _render_node(node: ContentNode, indent_level: int) -> List[str]:
    indent = "    " * indent_level
    if isinstance(node, Heading):
        return [f"{'#' * node.level} {node.text}"]
    if isinstance(node, ChecklistItem):
        checkbox = "[x]" if node.checked else "[ ]"
        lines = [f"{indent}- {checkbox} {node.text}"]
        for child in node.children:
            lines.extend(_render_node(child, indent_level + 1))
        return lines
    if isinstance(node, BulletItem):
        return [f"{indent}- {node.text}"]
    if isinstance(node, Divider):
        return ["---"]
    return [f"{indent}{node.text}"]


def render_markdown(nodes: Sequence[ContentNode]) -> str:
    """Render content nodes back to markdown, one node per line."""
    lines: List[str] = []
    for node in nodes:
        lines.extend(_render_node(node, 0))
    return "\n".join(lines)
