"""
Shape registry and style builder for logigramme nodes.

Every node carries a shape key. The registry maps that key to a
ShapeDefinition holding its default size, palette category, an icon glyph
and a ``render`` function producing the draw.io style string used on export.
Unknown keys always resolve to the rectangle definition.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Style builder
# ---------------------------------------------------------------------------

class StyleBuilder:
    """Fluent builder for semicolon-delimited draw.io style strings."""

    def __init__(self, base: str = "") -> None:
        self._parts: dict[str, str] = {}
        self._prefix: str = ""
        if base:
            self._parse(base)

    def _parse(self, raw: str) -> None:
        tokens = [t.strip() for t in raw.split(";") if t.strip()]
        for tok in tokens:
            if "=" in tok:
                k, v = tok.split("=", 1)
                self._parts[k] = v
            else:
                # Shape name prefix like "ellipse", "rhombus", etc.
                self._prefix = tok

    def fill_color(self, color: str) -> StyleBuilder:
        self._parts["fillColor"] = color
        return self

    def stroke_color(self, color: str) -> StyleBuilder:
        self._parts["strokeColor"] = color
        return self

    def stroke_width(self, width: float) -> StyleBuilder:
        self._parts["strokeWidth"] = _num(width)
        return self

    def font_color(self, color: str) -> StyleBuilder:
        self._parts["fontColor"] = color
        return self

    def font_size(self, size: float) -> StyleBuilder:
        self._parts["fontSize"] = _num(size)
        return self

    def edge_style(self, style: str) -> StyleBuilder:
        self._parts["edgeStyle"] = style
        return self

    def rounded(self, on: bool = True) -> StyleBuilder:
        self._parts["rounded"] = "1" if on else "0"
        return self

    def curved(self, on: bool = True) -> StyleBuilder:
        self._parts["curved"] = "1" if on else "0"
        return self

    def end_arrow(self, arrow: str) -> StyleBuilder:
        self._parts["endArrow"] = arrow
        return self

    def set(self, key: str, value: str) -> StyleBuilder:
        self._parts[key] = value
        return self

    def build(self) -> str:
        parts: list[str] = []
        if self._prefix:
            parts.append(self._prefix)
        for k, v in self._parts.items():
            parts.append(f"{k}={v}")
        return ";".join(parts) + ";"


def _num(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else str(value)


# ---------------------------------------------------------------------------
# Shape definitions
# ---------------------------------------------------------------------------

_BOX = "rounded=1;whiteSpace=wrap;html=1;"
_DIAMOND = "rhombus;whiteSpace=wrap;html=1;"
_CIRCLE = "ellipse;whiteSpace=wrap;html=1;aspect=fixed;"


@dataclass(frozen=True)
class ShapeDefinition:
    """Registry record for one shape kind."""
    key: str
    category: str
    label: str
    default_width: float
    default_height: float
    icon: str
    base_style: str = _BOX

    def render(
        self,
        fill: str,
        stroke: str,
        text: str,
        font_size: float,
        stroke_width: Optional[float] = None,
    ) -> str:
        """Return the draw.io style string for a node of this shape."""
        sb = (
            StyleBuilder(self.base_style)
            .fill_color(fill)
            .stroke_color(stroke)
            .font_color(text)
            .font_size(font_size)
        )
        if stroke_width is not None:
            sb.stroke_width(stroke_width)
        return sb.build()


_LEGACY = [
    ShapeDefinition("rectangle", "legacy", "Rectangle", 220, 64, "▭"),
    ShapeDefinition("diamond", "legacy", "Diamond", 110, 110, "◇", _DIAMOND),
    ShapeDefinition("circle", "legacy", "Circle", 80, 80, "○", _CIRCLE),
    ShapeDefinition(
        "diamond-x", "legacy", "Exclusion", 110, 110, "⊗",
        "shape=mxgraph.flowchart.or;whiteSpace=wrap;html=1;",
    ),
]

_EVENTS = [
    ShapeDefinition("event-start", "events", "Start", 60, 60, "◯", _CIRCLE),
    ShapeDefinition(
        "event-start-message", "events", "Start (message)", 60, 60, "✉",
        "shape=mxgraph.bpmn.shape;perimeter=mxPerimeter.EllipsePerimeter;symbol=message;outline=standard;whiteSpace=wrap;html=1;",
    ),
    ShapeDefinition(
        "event-start-timer", "events", "Start (timer)", 60, 60, "⏱",
        "shape=mxgraph.bpmn.shape;perimeter=mxPerimeter.EllipsePerimeter;symbol=timer;outline=standard;whiteSpace=wrap;html=1;",
    ),
    ShapeDefinition(
        "event-intermediate", "events", "Intermediate", 60, 60, "◎",
        "ellipse;shape=doubleEllipse;whiteSpace=wrap;html=1;aspect=fixed;",
    ),
    ShapeDefinition(
        "event-intermediate-message", "events", "Intermediate (message)", 60, 60, "✉",
        "shape=mxgraph.bpmn.shape;perimeter=mxPerimeter.EllipsePerimeter;symbol=message;outline=throwing;whiteSpace=wrap;html=1;",
    ),
    ShapeDefinition(
        "event-intermediate-timer", "events", "Intermediate (timer)", 60, 60, "⏱",
        "shape=mxgraph.bpmn.shape;perimeter=mxPerimeter.EllipsePerimeter;symbol=timer;outline=throwing;whiteSpace=wrap;html=1;",
    ),
    ShapeDefinition(
        "event-end", "events", "End", 60, 60, "◉",
        _CIRCLE + "strokeWidth=3;",
    ),
    ShapeDefinition(
        "event-end-message", "events", "End (message)", 60, 60, "✉",
        "shape=mxgraph.bpmn.shape;perimeter=mxPerimeter.EllipsePerimeter;symbol=message;outline=end;whiteSpace=wrap;html=1;",
    ),
    ShapeDefinition(
        "event-end-error", "events", "End (error)", 60, 60, "⚡",
        "shape=mxgraph.bpmn.shape;perimeter=mxPerimeter.EllipsePerimeter;symbol=error;outline=end;whiteSpace=wrap;html=1;",
    ),
    ShapeDefinition(
        "event-end-signal", "events", "End (signal)", 60, 60, "△",
        "shape=mxgraph.bpmn.shape;perimeter=mxPerimeter.EllipsePerimeter;symbol=signal;outline=end;whiteSpace=wrap;html=1;",
    ),
]

_TASKS = [
    ShapeDefinition("task", "tasks", "Task", 220, 64, "▭"),
    ShapeDefinition("task-user", "tasks", "User task", 220, 64, "☺"),
    ShapeDefinition("task-service", "tasks", "Service task", 220, 64, "⚙"),
    ShapeDefinition("task-manual", "tasks", "Manual task", 220, 64, "✋"),
    ShapeDefinition("task-script", "tasks", "Script task", 220, 64, "≣"),
]

_GATEWAYS = [
    ShapeDefinition("gateway-exclusive", "gateways", "Exclusive (XOR)", 110, 110, "✖", _DIAMOND),
    ShapeDefinition("gateway-parallel", "gateways", "Parallel (AND)", 110, 110, "✚", _DIAMOND),
    ShapeDefinition("gateway-inclusive", "gateways", "Inclusive (OR)", 110, 110, "◯", _DIAMOND),
    ShapeDefinition("gateway-event", "gateways", "Event-based", 110, 110, "⬠", _DIAMOND),
]

_CONTAINERS = [
    ShapeDefinition(
        "subprocess", "containers", "Sub-process", 220, 80, "⊞",
        "rounded=1;whiteSpace=wrap;html=1;container=1;collapsible=0;",
    ),
    ShapeDefinition(
        "group", "containers", "Group", 300, 200, "⬚",
        "rounded=1;whiteSpace=wrap;html=1;dashed=1;fillColor=none;container=1;",
    ),
]

_DATA = [
    ShapeDefinition(
        "data-object", "data", "Data object", 60, 80, "\U0001f5cb",
        "shape=note;whiteSpace=wrap;html=1;backgroundOutline=1;size=15;",
    ),
    ShapeDefinition(
        "data-store", "data", "Data store", 80, 60, "⛁",
        "shape=cylinder3;whiteSpace=wrap;html=1;boundedLbl=1;size=10;",
    ),
]

_ANNOTATIONS = [
    ShapeDefinition(
        "text-annotation", "annotations", "Annotation", 180, 50, "‹",
        "shape=partialRectangle;whiteSpace=wrap;html=1;top=0;bottom=0;right=0;fillColor=none;align=left;",
    ),
]

ALL_SHAPES: list[ShapeDefinition] = (
    _LEGACY + _EVENTS + _TASKS + _GATEWAYS + _CONTAINERS + _DATA + _ANNOTATIONS
)

SHAPE_REGISTRY: dict[str, ShapeDefinition] = {s.key: s for s in ALL_SHAPES}

FALLBACK_SHAPE = "rectangle"

CATEGORY_LABELS: dict[str, str] = {
    "events": "Events",
    "tasks": "Tasks",
    "gateways": "Decisions",
    "data": "Data",
    "containers": "Containers",
    "annotations": "Annotations",
    "legacy": "Basic",
}


def is_known_shape(key: str) -> bool:
    return key in SHAPE_REGISTRY


def get_shape_def(key: Optional[str]) -> ShapeDefinition:
    """Return the definition for *key*, falling back to the rectangle."""
    if key and key in SHAPE_REGISTRY:
        return SHAPE_REGISTRY[key]
    if key:
        logger.debug("Unknown shape '%s', using %s", key, FALLBACK_SHAPE)
    return SHAPE_REGISTRY[FALLBACK_SHAPE]


def shapes_by_category() -> list[tuple[str, str, list[ShapeDefinition]]]:
    """Palette listing: (category, human label, shapes) in display order."""
    result: list[tuple[str, str, list[ShapeDefinition]]] = []
    for category, label in CATEGORY_LABELS.items():
        shapes = [s for s in ALL_SHAPES if s.category == category]
        result.append((category, label, shapes))
    return result
