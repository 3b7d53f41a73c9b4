"""
draw.io (diagrams.net) XML export of a logigramme.

Produces an uncompressed ``.drawio`` file: one page, vertices styled through
the shape registry, edges styled by kind, and the legend as a swimlane
placed to the right of the diagram. Nodes and edges are ``<object>`` wrappers
whose cell ids carry an ``n:`` / ``e:`` prefix, so step keys such as "0" or
"1" never clash with the root cells or the legend; the raw id is kept in
``nodeId`` / ``edgeId``. Node interactions add ``tooltip`` / ``link``
attributes to the wrapper.
"""

from __future__ import annotations

import datetime
import xml.etree.ElementTree as ET
from typing import Optional

from logigramme_mcp.models import (
    Document,
    Edge,
    EdgeKind,
    InteractionAction,
    LegendItem,
    Node,
    union_bounds,
)
from logigramme_mcp.shapes import StyleBuilder, get_shape_def

AGENT = "logigramme-mcp/1.0"

_LEGEND_WIDTH = 220
_LEGEND_ROW = 26
_LEGEND_HEADER = 30
_LEGEND_GAP = 80


def edge_style(edge: Edge) -> str:
    sb = StyleBuilder("html=1;")
    if edge.kind == EdgeKind.SMOOTH:
        sb.curved(True)
    else:
        sb.edge_style("orthogonalEdgeStyle").rounded(edge.kind == EdgeKind.STEP)
    return (
        sb.stroke_color(edge.color)
        .stroke_width(edge.width)
        .end_arrow("block")
        .set("endFill", "1")
        .build()
    )


def _geometry(parent: ET.Element, x: float, y: float, w: float, h: float) -> None:
    ET.SubElement(parent, "mxGeometry", attrib={
        "x": _fmt(x), "y": _fmt(y), "width": _fmt(w), "height": _fmt(h), "as": "geometry",
    })


def _fmt(v: float) -> str:
    return str(int(v)) if float(v).is_integer() else str(v)


def node_cell_id(node_id: str) -> str:
    return f"n:{node_id}"


def edge_cell_id(edge_id: str) -> str:
    return f"e:{edge_id}"


def _node_element(node: Node) -> ET.Element:
    st = node.resolved_style()
    style = get_shape_def(node.shape).render(st.fill, st.stroke, st.text, st.font_size)
    wrapper = ET.Element("object", attrib={
        "label": node.label, "id": node_cell_id(node.id), "nodeId": node.id,
    })
    inter = node.interaction
    if inter is not None and inter.action == InteractionAction.TOOLTIP:
        if inter.tooltip:
            wrapper.set("tooltip", inter.tooltip)
    elif inter is not None and inter.target:
        if inter.target_type == "url":
            wrapper.set("link", inter.target)
        else:
            wrapper.set("process", inter.target)
    if node.source_ref:
        wrapper.set("sourceRef", node.source_ref)
    cell = ET.SubElement(wrapper, "mxCell", attrib={"style": style, "parent": "1", "vertex": "1"})
    _geometry(cell, node.position.x, node.position.y, st.width, st.height)
    return wrapper


def _edge_element(edge: Edge) -> ET.Element:
    value = edge.label
    if edge.badge is not None and edge.badge.text:
        value = f"{value} [{edge.badge.text}]" if value else edge.badge.text
    wrapper = ET.Element("object", attrib={
        "label": value, "id": edge_cell_id(edge.id), "edgeId": edge.id,
    })
    cell = ET.SubElement(wrapper, "mxCell", attrib={
        "style": edge_style(edge),
        "parent": "1",
        "source": node_cell_id(edge.source),
        "target": node_cell_id(edge.target),
        "edge": "1",
    })
    ET.SubElement(cell, "mxGeometry", attrib={"relative": "1", "as": "geometry"})
    return wrapper


def _legend_elements(items: list[LegendItem], x: float, y: float) -> list[ET.Element]:
    height = _LEGEND_HEADER + _LEGEND_ROW * len(items) + 8
    lane = ET.Element("mxCell", attrib={
        "id": "legend",
        "value": "Legend",
        "style": "swimlane;startSize=30;html=1;fillColor=#f8fafc;strokeColor=#cbd5e1;",
        "parent": "1",
        "vertex": "1",
    })
    _geometry(lane, x, y, _LEGEND_WIDTH, height)
    out = [lane]
    for i, item in enumerate(items):
        style = (
            StyleBuilder("rounded=1;whiteSpace=wrap;html=1;align=left;spacingLeft=8;")
            .fill_color(item.background or "#ffffff")
            .stroke_color(item.color or "#cbd5e1")
            .font_color(item.color or "#0f172a")
            .build()
        )
        cell = ET.Element("mxCell", attrib={
            "id": f"legend-{i + 1}",
            "value": f"{item.key}. {item.label}",
            "style": style,
            "parent": "legend",
            "vertex": "1",
        })
        _geometry(cell, 8, _LEGEND_HEADER + i * _LEGEND_ROW, _LEGEND_WIDTH - 16, _LEGEND_ROW - 4)
        out.append(cell)
    return out


def document_to_drawio(
    doc: Document,
    name: str = "Logigramme",
    grid_size: int = 10,
    include_legend: bool = True,
    pretty: bool = True,
) -> str:
    """Serialise *doc* as an mxfile string."""
    mxfile = ET.Element("mxfile", attrib={
        "host": "logigramme-mcp",
        "modified": datetime.datetime.now(datetime.timezone.utc).strftime(
            "%Y-%m-%dT%H:%M:%S.000Z"
        ),
        "agent": AGENT,
        "type": "device",
        "compressed": "false",
    })
    diagram = ET.SubElement(mxfile, "diagram", attrib={"name": name, "id": "page-1"})
    model = ET.SubElement(diagram, "mxGraphModel", attrib={
        "grid": "1", "gridSize": str(grid_size), "guides": "1",
        "connect": "1", "arrows": "1", "page": "0",
    })
    root = ET.SubElement(model, "root")
    ET.SubElement(root, "mxCell", attrib={"id": "0"})
    ET.SubElement(root, "mxCell", attrib={"id": "1", "parent": "0"})

    for node in doc.nodes:
        root.append(_node_element(node))
    node_ids = {n.id for n in doc.nodes}
    for edge in doc.edges:
        if edge.source in node_ids and edge.target in node_ids:
            root.append(_edge_element(edge))

    if include_legend and doc.legend:
        box = union_bounds(n.bounds() for n in doc.nodes)
        lx = box.right + _LEGEND_GAP if box else 0
        ly = box.top if box else 0
        for el in _legend_elements(doc.legend, lx, ly):
            root.append(el)

    if pretty:
        ET.indent(mxfile, space="  ")
    return '<?xml version="1.0" encoding="UTF-8"?>\n' + ET.tostring(mxfile, encoding="unicode")


def cell_ids(xml: str) -> list[str]:
    """Ids of every cell in an exported file (object wrappers included)."""
    tree = ET.fromstring(xml)
    ids: list[Optional[str]] = [el.get("id") for el in tree.iter() if el.tag in ("mxCell", "object")]
    return [i for i in ids if i]
