"""
Core graph model for logigramme (process flowchart) diagrams.

Provides the runtime node / edge / legend entities manipulated by the
editor, plus the small geometric helpers shared by layout, guides and
alignment code.
"""

from __future__ import annotations

import copy
import math
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Optional

from logigramme_mcp.shapes import get_shape_def


DEFAULT_EDGE_COLOR = "#f59ad5"
DEFAULT_EDGE_WIDTH = 2.0
DEFAULT_FILL = "#ffffff"
DEFAULT_STROKE = "#cbd5e1"
DEFAULT_TEXT = "#0f172a"
DEFAULT_FONT_SIZE = 13.0


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class EdgeKind(Enum):
    """Rendering path of a connector. Has no graph semantics."""
    ORTHOGONAL = "orthogonal"
    STEP = "step"
    SMOOTH = "smooth"


class ConnectMode(Enum):
    OFF = "off"
    FANOUT = "fanout"
    CHAIN = "chain"


class InteractionAction(Enum):
    NAVIGATE = "navigate"
    OPEN = "open"
    TOOLTIP = "tooltip"


# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------

@dataclass
class Position:
    """A 2-D coordinate (top-left corner of a node)."""
    x: float = 0
    y: float = 0


@dataclass
class NodeStyle:
    """Optional visual overrides for a node; ``None`` means "use the default"."""
    fill: Optional[str] = None
    stroke: Optional[str] = None
    text: Optional[str] = None
    width: Optional[float] = None
    height: Optional[float] = None
    font_size: Optional[float] = None


@dataclass(frozen=True)
class ResolvedStyle:
    """A NodeStyle with every field filled in for a given shape kind."""
    fill: str
    stroke: str
    text: str
    width: float
    height: float
    font_size: float


@dataclass
class NodeInteraction:
    """Click behaviour attached to a node in the read-only viewer."""
    action: InteractionAction
    target_type: str = "process"  # process | url
    target_process_id: Optional[str] = None
    target_url: Optional[str] = None
    tooltip: Optional[str] = None

    @property
    def target(self) -> Optional[str]:
        if self.action == InteractionAction.TOOLTIP:
            return self.tooltip
        if self.target_type == "url":
            return self.target_url
        return self.target_process_id


@dataclass
class Node:
    """A visual step of the flowchart."""
    id: str
    shape: str = "rectangle"
    label: str = ""
    position: Position = field(default_factory=Position)
    style: Optional[NodeStyle] = None
    source_ref: Optional[str] = None
    interaction: Optional[NodeInteraction] = None
    # Transient UI state, never persisted
    selected: bool = False
    is_selection_source: bool = False

    def resolved_style(self) -> ResolvedStyle:
        return resolve_style(self.style, self.shape)

    def bounds(self) -> Bounds:
        st = self.resolved_style()
        return Bounds(self.position.x, self.position.y, st.width, st.height)

    def clone(self) -> Node:
        return copy.deepcopy(self)


@dataclass
class EdgeBadge:
    """Small pill rendered at the midpoint of an edge."""
    text: str = ""
    color: Optional[str] = None
    background: Optional[str] = None


@dataclass
class Edge:
    """A directed connector between two nodes."""
    id: str
    source: str
    target: str
    label: str = ""
    kind: EdgeKind = EdgeKind.ORTHOGONAL
    color: str = DEFAULT_EDGE_COLOR
    width: float = DEFAULT_EDGE_WIDTH
    badge: Optional[EdgeBadge] = None
    selected: bool = False

    def clone(self) -> Edge:
        return copy.deepcopy(self)


@dataclass
class LegendItem:
    """Purely descriptive legend entry."""
    key: str
    label: str
    color: Optional[str] = None
    background: Optional[str] = None


@dataclass
class Document:
    """Runtime view of a persisted logigramme."""
    nodes: list[Node] = field(default_factory=list)
    edges: list[Edge] = field(default_factory=list)
    legend: list[LegendItem] = field(default_factory=list)
    entry_node_id: Optional[str] = None


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def new_id(prefix: str = "n") -> str:
    """Generate a fresh, practically unique identifier."""
    return f"{prefix}-{uuid.uuid4().hex[:12]}"


def snap_to_grid(value: float, grid_size: int = 10) -> float:
    """Snap a coordinate to the nearest grid point."""
    return round(value / grid_size) * grid_size


def resolve_style(style: Optional[NodeStyle], shape: str) -> ResolvedStyle:
    """Fill in every style field, falling back to the shape's defaults."""
    shape_def = get_shape_def(shape)
    st = style or NodeStyle()
    return ResolvedStyle(
        fill=st.fill or DEFAULT_FILL,
        stroke=st.stroke or DEFAULT_STROKE,
        text=st.text or DEFAULT_TEXT,
        width=_positive(st.width, shape_def.default_width),
        height=_positive(st.height, shape_def.default_height),
        font_size=_positive(st.font_size, DEFAULT_FONT_SIZE),
    )


def _positive(value: Optional[float], fallback: float) -> float:
    if value is None:
        return fallback
    try:
        v = float(value)
    except (TypeError, ValueError):
        return fallback
    if not math.isfinite(v) or v <= 0:
        return fallback
    return v


def clear_transient(nodes: Iterable[Node], edges: Iterable[Edge]) -> tuple[list[Node], list[Edge]]:
    """Deep-copy nodes/edges with selection and connect-source flags reset."""
    out_nodes: list[Node] = []
    for n in nodes:
        c = n.clone()
        c.selected = False
        c.is_selection_source = False
        out_nodes.append(c)
    out_edges: list[Edge] = []
    for e in edges:
        c = e.clone()
        c.selected = False
        out_edges.append(c)
    return out_nodes, out_edges


@dataclass
class Bounds:
    """Axis-aligned bounding box for a node."""
    x: float
    y: float
    width: float
    height: float

    @property
    def left(self) -> float:
        return self.x

    @property
    def top(self) -> float:
        return self.y

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    @property
    def cx(self) -> float:
        return self.x + self.width / 2

    @property
    def cy(self) -> float:
        return self.y + self.height / 2


def union_bounds(boxes: Iterable[Bounds]) -> Optional[Bounds]:
    """Smallest box containing every box in *boxes* (None when empty)."""
    boxes = list(boxes)
    if not boxes:
        return None
    left = min(b.left for b in boxes)
    top = min(b.top for b in boxes)
    right = max(b.right for b in boxes)
    bottom = max(b.bottom for b in boxes)
    return Bounds(left, top, right - left, bottom - top)
