"""
Align and distribute operators for a multi-node selection.

Both operators return new node lists; nodes outside the selection are
returned unchanged (same objects are cloned so callers may mutate freely).
"""

from __future__ import annotations

from typing import Collection, Optional

from logigramme_mcp.models import Node, Position, snap_to_grid

ALIGNMENTS = ("left", "center", "right", "top", "middle", "bottom")
DIRECTIONS = ("horizontal", "vertical")

MIN_ALIGN = 2
MIN_DISTRIBUTE = 3


def can_align(selected_count: int) -> bool:
    return selected_count >= MIN_ALIGN


def can_distribute(selected_count: int) -> bool:
    return selected_count >= MIN_DISTRIBUTE


def _snap(value: float, grid_size: Optional[int]) -> float:
    return snap_to_grid(value, grid_size) if grid_size else value


def align_nodes(
    nodes: list[Node],
    node_ids: Collection[str],
    alignment: str,
    grid_size: Optional[int] = None,
) -> list[Node]:
    """Align the selected nodes on a shared edge or centre line.

    left/top use the minimum edge, right/bottom the maximum edge and
    center/middle the average of the centres. Every new position is
    snapped to *grid_size* when given. With fewer than two selected nodes the
    input is returned unchanged.
    """
    al = alignment.lower()
    if al not in ALIGNMENTS:
        raise ValueError(f"unknown alignment '{alignment}'")
    ids = set(node_ids)
    selected = [n for n in nodes if n.id in ids]
    if not can_align(len(selected)):
        return [n.clone() for n in nodes]

    bounds = {n.id: n.bounds() for n in selected}
    if al == "left":
        t = min(b.left for b in bounds.values())
    elif al == "right":
        t = max(b.right for b in bounds.values())
    elif al == "center":
        t = sum(b.cx for b in bounds.values()) / len(bounds)
    elif al == "top":
        t = min(b.top for b in bounds.values())
    elif al == "bottom":
        t = max(b.bottom for b in bounds.values())
    else:  # middle
        t = sum(b.cy for b in bounds.values()) / len(bounds)

    out: list[Node] = []
    for n in nodes:
        c = n.clone()
        b = bounds.get(n.id)
        if b is not None:
            x, y = c.position.x, c.position.y
            if al == "left":
                x = _snap(t, grid_size)
            elif al == "center":
                x = _snap(t - b.width / 2, grid_size)
            elif al == "right":
                x = _snap(t - b.width, grid_size)
            elif al == "top":
                y = _snap(t, grid_size)
            elif al == "middle":
                y = _snap(t - b.height / 2, grid_size)
            else:
                y = _snap(t - b.height, grid_size)
            c.position = Position(x, y)
        out.append(c)
    return out


def distribute_nodes(
    nodes: list[Node],
    node_ids: Collection[str],
    direction: str,
    grid_size: Optional[int] = None,
) -> list[Node]:
    """Space the selected nodes at equal centre-to-centre gaps.

    The selection is sorted by centre along the axis; the first and last
    nodes stay put and the interior nodes are spread evenly between them.
    Requires at least three selected nodes, otherwise a no-op.
    """
    dd = direction.lower()
    if dd not in DIRECTIONS:
        raise ValueError(f"unknown direction '{direction}'")
    horizontal = dd == "horizontal"
    ids = set(node_ids)
    selected = [n for n in nodes if n.id in ids]
    if not can_distribute(len(selected)):
        return [n.clone() for n in nodes]

    bounds = {n.id: n.bounds() for n in selected}

    def center(nid: str) -> float:
        b = bounds[nid]
        return b.cx if horizontal else b.cy

    order = sorted(bounds, key=center)
    first, last = center(order[0]), center(order[-1])
    step = (last - first) / (len(order) - 1)

    targets: dict[str, Position] = {}
    for i, nid in enumerate(order[1:-1], start=1):
        b = bounds[nid]
        c = first + step * i
        if horizontal:
            targets[nid] = Position(_snap(c - b.width / 2, grid_size), b.y)
        else:
            targets[nid] = Position(b.x, _snap(c - b.height / 2, grid_size))

    out: list[Node] = []
    for n in nodes:
        c = n.clone()
        pos = targets.get(n.id)
        if pos is not None:
            c.position = pos
        out.append(c)
    return out
