"""Canvas (JSON Canvas) to markdown conversion."""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional

from vaultindexer.errors import RecoverableExtractionError

LOGGER = logging.getLogger(__name__)


def _contains(group: Dict[str, Any], node: Dict[str, Any]) -> bool:
    try:
        return (
            group["x"] <= node["x"]
            and group["y"] <= node["y"]
            and node["x"] + node.get("width", 0) <= group["x"] + group.get("width", 0)
            and node["y"] + node.get("height", 0) <= group["y"] + group.get("height", 0)
        )
    except (KeyError, TypeError):
        return False


def _node_markdown(node: Dict[str, Any]) -> Optional[str]:
    kind = node.get("type")
    if kind == "text":
        text = (node.get("text") or "").strip()
        return text or None
    if kind == "file":
        target = node.get("file")
        if not target:
            return None
        subpath = node.get("subpath") or ""
        return f"[[{target}{subpath}]]"
    if kind == "link":
        url = node.get("url")
        return f"<{url}>" if url else None
    return None


def parse_canvas(text: str, path: str) -> Dict[str, List[Dict[str, Any]]]:
    try:
        data = json.loads(text) if text.strip() else {}
    except json.JSONDecodeError as exc:
        raise RecoverableExtractionError(f"Invalid canvas JSON: {exc}", path=path) from exc
    if not isinstance(data, dict):
        raise RecoverableExtractionError("Canvas root must be an object", path=path)
    return {
        "nodes": [node for node in data.get("nodes") or [] if isinstance(node, dict)],
        "edges": [edge for edge in data.get("edges") or [] if isinstance(edge, dict)],
    }


def render_canvas(text: str, path: str) -> str:
    """Render the searchable content of a canvas file as markdown.

    Nodes inside a group (by geometry) are listed under that group's heading;
    remaining nodes follow under "Ungrouped". Edges are listed as connections
    between node summaries.
    """
    canvas = parse_canvas(text, path)
    nodes = canvas["nodes"]
    groups = [node for node in nodes if node.get("type") == "group"]
    content_nodes = [node for node in nodes if node.get("type") != "group"]

    sections: List[str] = []
    placed: set[str] = set()
    for index, group in enumerate(groups, start=1):
        label = (group.get("label") or "").strip() or f"Group {index}"
        members = [node for node in content_nodes if _contains(group, node)]
        lines = [_node_markdown(node) for node in members]
        placed.update(str(node.get("id")) for node in members)
        body = "\n\n".join(line for line in lines if line)
        sections.append(f"## {label}\n\n{body}".rstrip())

    loose = [
        _node_markdown(node) for node in content_nodes if str(node.get("id")) not in placed
    ]
    loose = [line for line in loose if line]
    if loose:
        heading = "## Ungrouped\n\n" if groups else ""
        sections.append(heading + "\n\n".join(loose))

    summaries = {str(node.get("id")): _summary(node) for node in nodes}
    connections = []
    for edge in canvas["edges"]:
        source = summaries.get(str(edge.get("fromNode")))
        target = summaries.get(str(edge.get("toNode")))
        if not source or not target:
            continue
        label = f" ({edge['label']})" if edge.get("label") else ""
        connections.append(f"- {source} -> {target}{label}")
    if connections:
        sections.append("## Connections\n\n" + "\n".join(connections))

    LOGGER.debug(
        "Rendered canvas %s: %d nodes, %d groups, %d connections",
        path,
        len(content_nodes),
        len(groups),
        len(connections),
    )
    return "\n\n".join(sections)


def _summary(node: Dict[str, Any]) -> str:
    kind = node.get("type")
    if kind == "group":
        return (node.get("label") or "group").strip()
    if kind == "text":
        first_line = (node.get("text") or "").strip().splitlines()
        return first_line[0][:60] if first_line else ""
    return _node_markdown(node) or ""
