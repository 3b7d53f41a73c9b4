"""
Synchronisation of diagram nodes with an external, ordered step list.

Each step record (derived elsewhere from the tabular process description)
yields exactly one node whose id is the step key. Existing nodes keep
their position, shape, style and interaction; only the label and source
reference are refreshed. New keys are placed with a deterministic grid
layout and keys that disappeared are dropped. Running the sync twice
with the same steps is therefore a no-op.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Optional, Sequence, Union

from logigramme_mcp.codec import create_edge
from logigramme_mcp.config import GridLayoutConfig
from logigramme_mcp.models import Edge, Node, Position


@dataclass(frozen=True)
class StepRecord:
    """One row of the step-list provider."""
    key: str
    display_name: str = ""


StepLike = Union[StepRecord, Mapping[str, Any]]


def normalize_steps(steps: Iterable[StepLike]) -> list[StepRecord]:
    """Coerce provider records to StepRecords.

    A blank key falls back to ``S<n>`` (1-based position in the list).
    Mappings may use ``key``/``displayName`` or ``key``/``display_name``.
    """
    out: list[StepRecord] = []
    for i, step in enumerate(steps):
        if isinstance(step, StepRecord):
            key, name = step.key, step.display_name
        elif isinstance(step, Mapping):
            key = step.get("key")
            name = step.get("displayName", step.get("display_name"))
        else:
            key, name = None, None
        key = str(key or "").strip() or f"S{i + 1}"
        out.append(StepRecord(key=key, display_name=str(name or "")))
    return out


def grid_layout(
    ids: Sequence[str],
    config: Optional[GridLayoutConfig] = None,
) -> dict[str, Position]:
    """Row-major grid positions for *ids*.

    The column count grows with the number of items but is clamped to
    ``[min_columns, max_columns]``.
    """
    cfg = config or GridLayoutConfig()
    cols = max(cfg.min_columns, min(cfg.max_columns, len(ids)))
    positions: dict[str, Position] = {}
    for i, nid in enumerate(ids):
        col = i % cols
        row = i // cols
        positions[nid] = Position(
            x=cfg.start_x + col * cfg.col_width,
            y=cfg.start_y + row * cfg.row_gap,
        )
    return positions


def build_from_steps(
    steps: Iterable[StepLike],
    prev_nodes: Iterable[Node] = (),
    config: Optional[GridLayoutConfig] = None,
) -> list[Node]:
    """Derive the node list from *steps*, preserving manual layout."""
    records = normalize_steps(steps)
    prev_by_id = {n.id: n for n in prev_nodes}
    ids = list(dict.fromkeys(r.key for r in records))
    layout = grid_layout(ids, config)

    nodes: list[Node] = []
    emitted: set[str] = set()
    for record in records:
        # Node ids must stay unique; a repeated key keeps its first row
        if record.key in emitted:
            continue
        emitted.add(record.key)
        prev = prev_by_id.get(record.key)
        label = record.display_name or record.key
        if prev is not None:
            node = prev.clone()
            node.label = label
            node.source_ref = record.key
            node.is_selection_source = False
        else:
            node = Node(
                id=record.key,
                shape="rectangle",
                label=label,
                position=layout.get(record.key) or Position(0, 0),
                source_ref=record.key,
            )
        nodes.append(node)
    return nodes


def apply_auto_layout(
    nodes: Iterable[Node],
    config: Optional[GridLayoutConfig] = None,
) -> list[Node]:
    """Re-place every node on the grid, keeping everything else."""
    nodes = list(nodes)
    layout = grid_layout([n.id for n in nodes], config)
    out: list[Node] = []
    for n in nodes:
        c = n.clone()
        pos = layout.get(n.id)
        if pos is not None:
            c.position = Position(pos.x, pos.y)
        out.append(c)
    return out


def default_flow_edges(steps: Iterable[StepLike]) -> list[Edge]:
    """A linear chain of edges following the step order."""
    ids = list(dict.fromkeys(r.key for r in normalize_steps(steps)))
    return [create_edge(ids[i], ids[i + 1]) for i in range(len(ids) - 1)]
