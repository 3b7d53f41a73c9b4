"""
Conversion between runtime graph objects and the persisted document.

The persisted form is a plain JSON-compatible dict::

    {
      "entryNodeId": "S1",
      "nodes":  [{"id", "sourceRef", "shape", "label", "position", "style", "interaction"}],
      "edges":  [{"id", "from", "to", "label", "kind", "color", "width",
                  "badgeText", "badgeColor", "badgeBg"}],
      "legend": [{"key", "label", "color", "background"}],
    }

Decoding is lenient: a malformed record is degraded (default shape,
fallback colour / width, zero position) rather than failing the whole
document, and edges whose endpoints are missing are dropped.
"""

from __future__ import annotations

import logging
import math
from typing import Any, Iterable, Mapping, Optional

from logigramme_mcp.models import (
    DEFAULT_EDGE_COLOR,
    DEFAULT_EDGE_WIDTH,
    Document,
    Edge,
    EdgeBadge,
    EdgeKind,
    InteractionAction,
    LegendItem,
    Node,
    NodeInteraction,
    NodeStyle,
    Position,
    new_id,
)
from logigramme_mcp.shapes import FALLBACK_SHAPE, is_known_shape

logger = logging.getLogger(__name__)

_STYLE_COLOR_KEYS = ("fill", "stroke", "text")
_STYLE_NUMBER_KEYS = {"width": "width", "height": "height", "fontSize": "font_size"}


def default_legend() -> list[LegendItem]:
    """Legend shipped with a brand new logigramme."""
    return [
        LegendItem("1", "Manage the company", "#64748b"),
        LegendItem("2", "Sell", "#f59e0b"),
        LegendItem("3", "Plan", "#e879f9"),
        LegendItem("4", "Manage the programme", "#0ea5e9"),
        LegendItem("5", "Deliver", "#475569"),
        LegendItem("6", "Validate", "#84cc16"),
    ]


# ---------------------------------------------------------------------------
# Coercion helpers
# ---------------------------------------------------------------------------

def _finite(value: Any) -> Optional[float]:
    """Return *value* as a finite float, or None."""
    if isinstance(value, bool) or value is None:
        return None
    try:
        v = float(value)
    except (TypeError, ValueError):
        return None
    return v if math.isfinite(v) else None


def positive_size(value: Any) -> Optional[float]:
    """Return *value* as a finite float > 0, or None."""
    v = _finite(value)
    return v if v is not None and v > 0 else None


def _text(value: Any) -> Optional[str]:
    if value is None:
        return None
    s = str(value).strip()
    return s or None


def coerce_style(raw: Any, node_id: str = "") -> Optional[NodeStyle]:
    """Build a NodeStyle from an untrusted mapping.

    Colours must be strings; numeric fields that are missing, non-numeric,
    non-finite or non-positive are left unset so the shape default applies.
    """
    if not isinstance(raw, Mapping):
        return None
    st = NodeStyle()
    for key in _STYLE_COLOR_KEYS:
        val = raw.get(key)
        if isinstance(val, str) and val.strip():
            setattr(st, key, val.strip())
    for key, attr in _STYLE_NUMBER_KEYS.items():
        if key not in raw and attr not in raw:
            continue
        val = positive_size(raw.get(key, raw.get(attr)))
        if val is None:
            logger.warning("Node '%s': invalid style %s=%r, using default", node_id, key, raw.get(key))
            continue
        setattr(st, attr, val)
    return st


def coerce_interaction(raw: Any) -> Optional[NodeInteraction]:
    if not isinstance(raw, Mapping):
        return None
    try:
        action = InteractionAction(str(raw.get("action", "")).lower())
    except ValueError:
        return None
    target_type = "url" if raw.get("targetType") == "url" else "process"
    return NodeInteraction(
        action=action,
        target_type=target_type,
        target_process_id=_text(raw.get("targetProcessId")),
        target_url=_text(raw.get("targetUrl")),
        tooltip=_text(raw.get("tooltip")),
    )


def _coerce_position(raw: Any) -> Position:
    if not isinstance(raw, Mapping):
        return Position(0, 0)
    return Position(_finite(raw.get("x")) or 0, _finite(raw.get("y")) or 0)


# ---------------------------------------------------------------------------
# Decoding
# ---------------------------------------------------------------------------

def node_from_stored(raw: Any, index: int) -> Node:
    """Convert a stored node record into a runtime Node (never raises)."""
    if not isinstance(raw, Mapping):
        logger.warning("Node #%d is not an object, replaced by a placeholder", index)
        raw = {}
    nid = _text(raw.get("id")) or f"n{index + 1}"

    shape = raw.get("shape")
    if not isinstance(shape, str) or not is_known_shape(shape):
        if shape is not None:
            logger.warning("Node '%s': unknown shape %r, using %s", nid, shape, FALLBACK_SHAPE)
        shape = FALLBACK_SHAPE

    label = raw.get("label")
    label = str(label) if label is not None else nid

    return Node(
        id=nid,
        shape=shape,
        label=label,
        position=_coerce_position(raw.get("position")),
        style=coerce_style(raw.get("style"), nid),
        source_ref=_text(raw.get("sourceRef", raw.get("sipocRef"))),
        interaction=coerce_interaction(raw.get("interaction")),
    )


def edge_from_stored(raw: Any, index: int) -> Optional[Edge]:
    """Convert a stored edge record; returns None when an endpoint is missing."""
    if not isinstance(raw, Mapping):
        return None
    source = _text(raw.get("from", raw.get("source")))
    target = _text(raw.get("to", raw.get("target")))
    eid = _text(raw.get("id")) or f"e{index + 1}"
    if not source or not target:
        logger.warning("Dropping edge '%s': missing endpoint", eid)
        return None

    try:
        kind = EdgeKind(str(raw.get("kind", raw.get("type")) or EdgeKind.ORTHOGONAL.value))
    except ValueError:
        kind = EdgeKind.ORTHOGONAL

    color = raw.get("color")
    color = color.strip() if isinstance(color, str) and color.strip() else DEFAULT_EDGE_COLOR
    width = _finite(raw.get("width"))
    if width is None or width <= 0:
        width = DEFAULT_EDGE_WIDTH

    badge: Optional[EdgeBadge] = None
    if any(k in raw for k in ("badgeText", "badgeColor", "badgeBg")):
        badge = EdgeBadge(
            text=str(raw.get("badgeText") or ""),
            color=_text(raw.get("badgeColor")),
            background=_text(raw.get("badgeBg")),
        )

    label = raw.get("label")
    return Edge(
        id=eid,
        source=source,
        target=target,
        label=str(label) if label is not None else "",
        kind=kind,
        color=color,
        width=width,
        badge=badge,
    )


def legend_from_stored(raw: Any) -> list[LegendItem]:
    if not isinstance(raw, list):
        return default_legend()
    items: list[LegendItem] = []
    for i, entry in enumerate(raw):
        if not isinstance(entry, Mapping):
            continue
        items.append(LegendItem(
            key=_text(entry.get("key")) or str(i + 1),
            label=str(entry.get("label") or ""),
            color=_text(entry.get("color")),
            background=_text(entry.get("background", entry.get("bg"))),
        ))
    return items


def decode_document(raw: Any) -> Document:
    """Decode a persisted document into runtime objects.

    Node ids are made unique (later duplicates get a fresh id) and any edge
    that does not resolve to two loaded nodes is dropped.
    """
    if not isinstance(raw, Mapping):
        return Document(legend=default_legend())

    nodes: list[Node] = []
    seen: set[str] = set()
    raw_nodes = raw.get("nodes") if isinstance(raw.get("nodes"), list) else []
    for i, rn in enumerate(raw_nodes):
        node = node_from_stored(rn, i)
        if node.id in seen:
            fresh = new_id("n")
            logger.warning("Duplicate node id '%s' renamed to '%s'", node.id, fresh)
            node.id = fresh
        seen.add(node.id)
        nodes.append(node)

    edges: list[Edge] = []
    edge_ids: set[str] = set()
    raw_edges = raw.get("edges") if isinstance(raw.get("edges"), list) else []
    for i, re_ in enumerate(raw_edges):
        edge = edge_from_stored(re_, i)
        if edge is None:
            continue
        if edge.source not in seen or edge.target not in seen:
            logger.warning("Dropping edge '%s': endpoint not in document", edge.id)
            continue
        if edge.id in edge_ids:
            edge.id = new_id("e")
        edge_ids.add(edge.id)
        edges.append(edge)

    entry = _text(raw.get("entryNodeId"))
    if entry not in seen:
        entry = None

    return Document(
        nodes=nodes,
        edges=edges,
        legend=legend_from_stored(raw.get("legend")),
        entry_node_id=entry,
    )


# ---------------------------------------------------------------------------
# Encoding
# ---------------------------------------------------------------------------

def _style_to_stored(style: NodeStyle) -> dict[str, Any]:
    out: dict[str, Any] = {}
    for key in _STYLE_COLOR_KEYS:
        val = getattr(style, key)
        if val is not None:
            out[key] = val
    for key, attr in _STYLE_NUMBER_KEYS.items():
        val = getattr(style, attr)
        if val is not None:
            out[key] = val
    return out


def _interaction_to_stored(inter: NodeInteraction) -> dict[str, Any]:
    out: dict[str, Any] = {"action": inter.action.value, "targetType": inter.target_type}
    if inter.target_process_id:
        out["targetProcessId"] = inter.target_process_id
    if inter.target_url:
        out["targetUrl"] = inter.target_url
    if inter.tooltip:
        out["tooltip"] = inter.tooltip
    return out


def node_to_stored(node: Node) -> dict[str, Any]:
    out: dict[str, Any] = {
        "id": node.id,
        "shape": node.shape,
        "label": node.label,
        "position": {"x": node.position.x, "y": node.position.y},
    }
    if node.source_ref:
        out["sourceRef"] = node.source_ref
    if node.style is not None:
        out["style"] = _style_to_stored(node.style)
    out["interaction"] = _interaction_to_stored(node.interaction) if node.interaction else None
    return out


def edge_to_stored(edge: Edge) -> dict[str, Any]:
    out: dict[str, Any] = {
        "id": edge.id,
        "from": edge.source,
        "to": edge.target,
        "label": edge.label,
        "kind": edge.kind.value,
        "color": edge.color,
        "width": edge.width,
    }
    if edge.badge is not None:
        out["badgeText"] = edge.badge.text
        if edge.badge.color:
            out["badgeColor"] = edge.badge.color
        if edge.badge.background:
            out["badgeBg"] = edge.badge.background
    return out


def legend_to_stored(item: LegendItem) -> dict[str, Any]:
    out: dict[str, Any] = {"key": item.key, "label": item.label}
    if item.color:
        out["color"] = item.color
    if item.background:
        out["background"] = item.background
    return out


def encode_document(
    nodes: Iterable[Node],
    edges: Iterable[Edge],
    legend: Iterable[LegendItem],
    entry_node_id: Optional[str] = None,
) -> dict[str, Any]:
    """Encode runtime objects to the persisted document.

    The entry node defaults to the first node, as the editor always did.
    Transient selection flags are never written.
    """
    nodes = list(nodes)
    if entry_node_id is None and nodes:
        entry_node_id = nodes[0].id
    doc: dict[str, Any] = {
        "nodes": [node_to_stored(n) for n in nodes],
        "edges": [edge_to_stored(e) for e in edges],
        "legend": [legend_to_stored(item) for item in legend],
    }
    if entry_node_id:
        doc["entryNodeId"] = entry_node_id
    return doc


def create_edge(
    source: str,
    target: str,
    edge_id: Optional[str] = None,
    kind: EdgeKind = EdgeKind.ORTHOGONAL,
) -> Edge:
    """Create a new edge with default styling."""
    return Edge(
        id=edge_id or new_id("e"),
        source=source,
        target=target,
        kind=kind,
        color=DEFAULT_EDGE_COLOR,
        width=DEFAULT_EDGE_WIDTH,
    )
