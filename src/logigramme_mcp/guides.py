"""
Smart alignment guides for node dragging.

While a node is dragged, every other node is checked for edge-to-edge,
centre-to-centre and edge-to-opposite-edge alignment on each axis
independently. The closest candidate under the threshold wins; the caller
applies the returned delta to the dragged node before committing the move.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Optional

from logigramme_mcp.models import Bounds, Node, union_bounds

SNAP_THRESHOLD = 8  # pixels
GUIDE_PADDING = 50
_COINCIDE = 1.0  # pixels


@dataclass
class Guide:
    """A transient alignment line.

    ``orientation`` is "vertical" (constant x) or "horizontal" (constant y);
    ``start``/``end`` span the cross axis.
    """
    orientation: str
    position: float
    start: float
    end: float


@dataclass
class GuideResult:
    guides: list[Guide] = field(default_factory=list)
    dx: float = 0
    dy: float = 0

    @property
    def snapped(self) -> bool:
        return self.dx != 0 or self.dy != 0


@dataclass
class _Candidate:
    delta: float       # absolute distance before snapping
    snapped: float     # new left (x axis) or top (y axis) of the dragged node
    line: float        # coordinate of the guide line


def _axis_candidates(
    lo: float, hi: float, mid: float, size: float,
    o_lo: float, o_hi: float, o_mid: float,
) -> list[_Candidate]:
    """Candidates on one axis, in evaluation order.

    lo/hi/mid are the dragged node's left/right/centre (or top/bottom/centre).
    """
    return [
        _Candidate(abs(lo - o_lo), o_lo, o_lo),                # lo -> lo
        _Candidate(abs(hi - o_hi), o_hi - size, o_hi),         # hi -> hi
        _Candidate(abs(mid - o_mid), o_mid - size / 2, o_mid),  # centre
        _Candidate(abs(lo - o_hi), o_hi, o_hi),                # lo -> hi
        _Candidate(abs(hi - o_lo), o_lo - size, o_lo),         # hi -> lo
    ]


def _best(candidates: Iterable[_Candidate], threshold: float) -> Optional[_Candidate]:
    best: Optional[_Candidate] = None
    for c in candidates:
        if c.delta < threshold and (best is None or c.delta < best.delta):
            best = c
    return best


def calculate_guides(
    dragging: Node,
    nodes: Iterable[Node],
    threshold: float = SNAP_THRESHOLD,
    padding: float = GUIDE_PADDING,
) -> GuideResult:
    """Compute snap delta and guide lines for *dragging* against *nodes*.

    *nodes* may include the dragged node itself; it is skipped by id.
    On an axis with no candidate under *threshold* the delta is zero and no
    guide is produced. A guide is emitted at the chosen line when at least
    one other node has an edge or centre within 1px of it, spanning the
    padded union of all node bounds on the cross axis.
    """
    drag = dragging.bounds()
    others = [n.bounds() for n in nodes if n.id != dragging.id]
    if not others:
        return GuideResult()

    best_x = _best(
        (c for o in others for c in _axis_candidates(
            drag.left, drag.right, drag.cx, drag.width, o.left, o.right, o.cx)),
        threshold,
    )
    best_y = _best(
        (c for o in others for c in _axis_candidates(
            drag.top, drag.bottom, drag.cy, drag.height, o.top, o.bottom, o.cy)),
        threshold,
    )

    result = GuideResult()
    span = union_bounds([drag, *others])
    if span is None:
        return result

    if best_x is not None:
        result.dx = best_x.snapped - drag.left
        if _any_coincide(others, best_x.line, vertical=True):
            result.guides.append(Guide(
                "vertical", best_x.line, span.top - padding, span.bottom + padding,
            ))
    if best_y is not None:
        result.dy = best_y.snapped - drag.top
        if _any_coincide(others, best_y.line, vertical=False):
            result.guides.append(Guide(
                "horizontal", best_y.line, span.left - padding, span.right + padding,
            ))
    return result


def _any_coincide(others: list[Bounds], line: float, vertical: bool) -> bool:
    for o in others:
        coords = (o.left, o.right, o.cx) if vertical else (o.top, o.bottom, o.cy)
        if any(abs(c - line) < _COINCIDE for c in coords):
            return True
    return False
