"""
Clipboard, duplicate and delete commands.

All functions are pure: they take node / edge lists and return new lists,
leaving the inputs untouched. The controller decides what to do with the
result (replace its state, commit history).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Collection, Iterable, Optional

from logigramme_mcp.models import Edge, Node, Position, new_id

logger = logging.getLogger(__name__)

DEFAULT_PASTE_OFFSET = (20.0, 20.0)


@dataclass
class Clipboard:
    """Single-slot clipboard; holds independent copies."""
    nodes: list[Node] = field(default_factory=list)
    edges: list[Edge] = field(default_factory=list)

    @property
    def empty(self) -> bool:
        return not self.nodes


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------

def has_edge(edges: Iterable[Edge], source: str, target: str) -> bool:
    """True if an edge source -> target already exists (direction matters)."""
    return any(e.source == source and e.target == target for e in edges)


def internal_edges(edges: Iterable[Edge], node_ids: Collection[str]) -> list[Edge]:
    """Edges whose both endpoints lie inside *node_ids*."""
    return [e for e in edges if e.source in node_ids and e.target in node_ids]


def prune_dangling_edges(nodes: Iterable[Node], edges: Iterable[Edge]) -> list[Edge]:
    """Drop every edge that references a node not in *nodes*."""
    ids = {n.id for n in nodes}
    kept = [e for e in edges if e.source in ids and e.target in ids]
    return kept


# ---------------------------------------------------------------------------
# Copy / paste / duplicate
# ---------------------------------------------------------------------------

def copy_selection(
    nodes: Iterable[Node],
    edges: Iterable[Edge],
    node_ids: Collection[str],
) -> Clipboard:
    """Deep-copy the selected nodes and their internal edges.

    Edges leaving or entering the selection are not copied. Transient
    selection flags are cleared on the copies.
    """
    ids = set(node_ids)
    copied_nodes: list[Node] = []
    for n in nodes:
        if n.id in ids:
            c = n.clone()
            c.selected = False
            c.is_selection_source = False
            copied_nodes.append(c)
    copied_edges: list[Edge] = []
    for e in internal_edges(edges, ids):
        c = e.clone()
        c.selected = False
        copied_edges.append(c)
    return Clipboard(nodes=copied_nodes, edges=copied_edges)


def paste_clipboard(
    clipboard: Clipboard,
    offset: tuple[float, float] = DEFAULT_PASTE_OFFSET,
    existing_ids: Collection[str] = (),
) -> tuple[list[Node], list[Edge]]:
    """Materialise the clipboard as new nodes and edges.

    Every node gets a fresh id not in *existing_ids*, is shifted by *offset*,
    loses its source reference and comes out selected. Edges are remapped
    through the id table; an edge with an endpoint outside the copied set
    is dropped.
    """
    dx, dy = offset
    taken = set(existing_ids)
    id_map: dict[str, str] = {}
    new_nodes: list[Node] = []
    for n in clipboard.nodes:
        fresh = _fresh_id("n", taken)
        taken.add(fresh)
        id_map[n.id] = fresh
        c = n.clone()
        c.id = fresh
        c.position = Position(n.position.x + dx, n.position.y + dy)
        c.source_ref = None
        c.selected = True
        c.is_selection_source = False
        new_nodes.append(c)

    new_edges: list[Edge] = []
    for e in clipboard.edges:
        src = id_map.get(e.source)
        tgt = id_map.get(e.target)
        if src is None or tgt is None:
            logger.debug("Paste: dropping edge '%s' with endpoint outside the copy", e.id)
            continue
        c = e.clone()
        c.id = _fresh_id("e", taken)
        taken.add(c.id)
        c.source = src
        c.target = tgt
        c.selected = False
        new_edges.append(c)
    return new_nodes, new_edges


def duplicate_selection(
    nodes: list[Node],
    edges: list[Edge],
    node_ids: Collection[str],
    offset: tuple[float, float] = DEFAULT_PASTE_OFFSET,
) -> tuple[list[Node], list[Edge]]:
    """Copy-then-paste of *node_ids* without touching any shared clipboard.

    Returns only the new nodes and edges; ids are disjoint from *nodes*
    and *edges*.
    """
    snapshot = copy_selection(nodes, edges, node_ids)
    existing = {n.id for n in nodes} | {e.id for e in edges}
    return paste_clipboard(snapshot, offset, existing)


def _fresh_id(prefix: str, taken: Collection[str]) -> str:
    nid = new_id(prefix)
    while nid in taken:
        nid = new_id(prefix)
    return nid


# ---------------------------------------------------------------------------
# Delete
# ---------------------------------------------------------------------------

def delete_selection(
    nodes: Iterable[Node],
    edges: Iterable[Edge],
    node_ids: Collection[str] = (),
    edge_ids: Optional[Collection[str]] = None,
) -> tuple[list[Node], list[Edge]]:
    """Remove nodes and edges in one pass.

    An edge goes if it is listed in *edge_ids* or touches a removed node.
    """
    doomed = set(node_ids)
    doomed_edges = set(edge_ids or ())
    kept_nodes = [n for n in nodes if n.id not in doomed]
    kept_edges = [
        e for e in edges
        if e.id not in doomed_edges
        and e.source not in doomed
        and e.target not in doomed
    ]
    return kept_nodes, kept_edges
