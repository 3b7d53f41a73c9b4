"""
Structural lint for a logigramme.

Reports modelling problems (misused events and gateways, orphan or
unlabelled nodes, dangling edges) as a flat list of issues. Nothing here
modifies the graph or blocks saving.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import asdict, dataclass
from typing import Any, Iterable, Optional

from logigramme_mcp.models import Edge, Node

SEVERITIES = ("error", "warning", "info")

# Shapes that are decorations rather than steps
_CONTAINER_SHAPES = {"group", "text-annotation"}


@dataclass
class ValidationIssue:
    id: str
    severity: str
    message: str
    element_id: Optional[str] = None
    element_type: Optional[str] = None  # node | edge

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def validate_diagram(nodes: Iterable[Node], edges: Iterable[Edge]) -> list[ValidationIssue]:
    nodes = list(nodes)
    edges = list(edges)
    issues: list[ValidationIssue] = []

    def add(severity: str, message: str, element_id: Optional[str] = None,
            element_type: Optional[str] = None) -> None:
        issues.append(ValidationIssue(
            f"v-{len(issues) + 1}", severity, message, element_id, element_type,
        ))

    node_ids = {n.id for n in nodes}
    incoming: dict[str, int] = defaultdict(int)
    outgoing: dict[str, int] = defaultdict(int)
    for e in edges:
        incoming[e.target] += 1
        outgoing[e.source] += 1

    for node in nodes:
        shape = node.shape or "rectangle"
        n_in = incoming[node.id]
        n_out = outgoing[node.id]
        label = node.label

        if shape.startswith("event-start"):
            if n_in:
                add("error", f'Start event "{label}" must not have incoming connections',
                    node.id, "node")
            if not n_out:
                add("warning", f'Start event "{label}" has no outgoing connection',
                    node.id, "node")

        if shape.startswith("event-end"):
            if n_out:
                add("error", f'End event "{label}" must not have outgoing connections',
                    node.id, "node")
            if not n_in:
                add("warning", f'End event "{label}" has no incoming connection',
                    node.id, "node")

        if shape.startswith("gateway-") and n_out < 2:
            add("warning", f'Gateway "{label}" should have at least 2 outputs', node.id, "node")

        if (not n_in and not n_out
                and not shape.startswith("event-start")
                and shape not in _CONTAINER_SHAPES):
            add("info", f'Node "{label}" is orphaned (no connections)', node.id, "node")

        if not label.strip() and shape not in _CONTAINER_SHAPES:
            add("warning", f"Node without a label (id: {node.id})", node.id, "node")

    for e in edges:
        if e.source not in node_ids:
            add("error", f'Edge "{e.id}" has a missing source', e.id, "edge")
        if e.target not in node_ids:
            add("error", f'Edge "{e.id}" has a missing target', e.id, "edge")

    if nodes:
        if not any(n.shape.startswith("event-start") for n in nodes):
            add("info", "No start event in the diagram")
        if not any(n.shape.startswith("event-end") for n in nodes):
            add("info", "No end event in the diagram")

    return issues


def summarize(issues: Iterable[ValidationIssue]) -> dict[str, int]:
    """Issue counts per severity."""
    counts = {s: 0 for s in SEVERITIES}
    for issue in issues:
        counts[issue.severity] = counts.get(issue.severity, 0) + 1
    return counts
