"""
Logigramme MCP Server — edit process flowcharts via Model Context Protocol.

Each open process gets one editor session (an EditorController) held in
memory until it is closed. Documents are persisted as JSON, one file per
process id.

Tools:
  1. editor       — lifecycle: open, load_json, get_json, save, close, list,
                    set_steps, export_drawio, validate, notifications, shapes
  2. edit         — mutations: nodes, edges, selection, clipboard, align,
                    distribute, drag, undo/redo, sync, legend
  3. connect_mode — click-driven edge creation: enter, exit, click_node,
                    click_pane, status
"""

from __future__ import annotations

import json
import logging
import os
import threading
from typing import Any

from mcp.server.fastmcp import FastMCP

from logigramme_mcp.checks import summarize
from logigramme_mcp.codec import edge_to_stored, legend_to_stored, node_to_stored
from logigramme_mcp.config import EditorConfig
from logigramme_mcp.connect import ClickResult
from logigramme_mcp.controller import EditorController
from logigramme_mcp.guides import GuideResult
from logigramme_mcp.models import ConnectMode, Edge, EdgeBadge, EdgeKind, Node
from logigramme_mcp.persistence import JsonFilePersistence, PersistenceService
from logigramme_mcp.shapes import shapes_by_category
from logigramme_mcp.validation import (
    ValidationError,
    validate_action,
    validate_alignment,
    validate_badge_dict,
    validate_color,
    validate_connect_mode,
    validate_dist_direction,
    validate_edge_kind,
    validate_id_list,
    validate_interaction_dict,
    validate_legend_entry,
    validate_list,
    validate_non_empty_string,
    validate_number,
    validate_offset,
    validate_positive_number,
    validate_process_id,
    validate_shape,
    validate_step_dict,
    validate_string,
    validate_style_patch,
    _CONNECT_ACTIONS,
    _EDIT_ACTIONS,
    _EDITOR_ACTIONS,
)

# ---------------------------------------------------------------------------
# Logging — keep FastMCP's routine INFO chatter off stderr
# ---------------------------------------------------------------------------
logging.getLogger("mcp.server").setLevel(logging.WARNING)
logger = logging.getLogger("logigramme-mcp")

# ---------------------------------------------------------------------------
# MCP Server
# ---------------------------------------------------------------------------
mcp = FastMCP(
    "logigramme-mcp",
    instructions=(
        "MCP server for editing process flowcharts (logigrammes).\n\n"
        "=== 3 TOOLS — use the 'action' parameter to pick the operation ===\n\n"
        "1. editor(action, process_id, ...) — open, load_json, get_json, save,\n"
        "   close, list, set_steps, export_drawio, validate, notifications, shapes.\n"
        "2. edit(action, process_id, ...) — add_node, update_node, update_style,\n"
        "   update_edge, delete_edge, connect, select, select_all, clear_selection,\n"
        "   copy, paste, duplicate, delete, align, distribute, undo, redo,\n"
        "   sync_steps, auto_layout, rebuild_flow, drag_start, drag_move, drag_end,\n"
        "   move, resize, key, legend_reset, legend_add, legend_update, legend_delete.\n"
        "3. connect_mode(action, process_id, ...) — enter (fanout|chain), exit,\n"
        "   click_node, click_pane, status.\n\n"
        "=== RULES ===\n"
        "- Always editor(action='open') a process before editing it.\n"
        "- Nodes synced from steps use the step key as node id.\n"
        "- align/distribute/copy/duplicate/delete act on the current selection.\n"
        "- Every mutation is undoable; selection changes are not.\n"
        "- Nothing is written to disk until editor(action='save').\n"
    ),
)

# In-memory editor registry: process_id -> EditorController
# Guarded by _editors_lock for thread-safety.
_editors: dict[str, EditorController] = {}
_editors_lock = threading.Lock()

_persistence: PersistenceService = JsonFilePersistence(
    os.environ.get("LOGIGRAMME_DATA_DIR", "logigrammes")
)
_config = EditorConfig()


def configure_persistence(backend: PersistenceService) -> None:
    """Swap the storage backend used by sessions opened afterwards."""
    global _persistence
    _persistence = backend


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _get_editor(process_id: str) -> EditorController | str:
    """Return the open session or an error string."""
    try:
        pid = validate_process_id(process_id)
    except ValidationError as exc:
        return f"Error: {exc.message}"
    with _editors_lock:
        ed = _editors.get(pid)
    if ed is None:
        return f"Error: process '{pid}' is not open. Use editor(action='open') first."
    return ed


def _node_view(node: Node) -> dict[str, Any]:
    view = node_to_stored(node)
    view["selected"] = node.selected
    if node.is_selection_source:
        view["isSelectionSource"] = True
    return view


def _edge_view(edge: Edge) -> dict[str, Any]:
    view = edge_to_stored(edge)
    view["selected"] = edge.selected
    return view


def _guide_view(result: GuideResult) -> dict[str, Any]:
    return {
        "dx": result.dx,
        "dy": result.dy,
        "guides": [
            {"orientation": g.orientation, "position": g.position,
             "start": g.start, "end": g.end}
            for g in result.guides
        ],
    }


def _with_status(ed: EditorController, **extra: Any) -> str:
    payload: dict[str, Any] = dict(extra)
    payload["status"] = ed.status()
    notes = ed.drain_notifications()
    if notes:
        payload["notifications"] = [
            {"id": n.id, "level": n.level, "message": n.message} for n in notes
        ]
    return json.dumps(payload, indent=2, ensure_ascii=False)


def _steps_from(steps: list[dict[str, Any]] | None) -> list[dict[str, Any]]:
    items = validate_list(steps or [], "steps")
    for i, s in enumerate(items):
        validate_step_dict(s, i)
    return items


# ===================================================================
# RESOURCES
# ===================================================================

@mcp.resource("logigramme://shapes")
def shape_catalog() -> str:
    """Return every shape key grouped by palette category."""
    lines: list[str] = []
    for _category, label, shapes in shapes_by_category():
        lines.append(f"{label}:")
        for s in shapes:
            lines.append(
                f"  {s.key}: {s.label} ({s.default_width:g}x{s.default_height:g})"
            )
    return "Available shapes:\n" + "\n".join(lines)


# ===================================================================
# TOOL 1: editor — session lifecycle
# ===================================================================

@mcp.tool()
def editor(
    action: str,
    process_id: str = "",
    steps: list[dict[str, Any]] | None = None,
    json_content: str = "",
    notification_id: int = 0,
) -> str:
    """Editor session lifecycle.

    Actions:
      open          — Open (or reopen) a process from storage. Params: process_id,
                      steps? (list of {key, displayName}); an empty document is
                      built from the steps.
      load_json     — Replace the graph with a JSON document. Params: json_content.
      get_json      — Return the persisted document form of the current graph.
      save          — Write the document to storage. Failures keep local edits.
      close         — Drop the session (unsaved edits are lost).
      list          — List open sessions.
      set_steps     — Replace the step list; auto-syncs nodes when enabled.
      export_drawio — Return the graph as draw.io XML.
      validate      — Lint the graph (events, gateways, orphans, labels).
      notifications — Return pending notifications; dismiss one with notification_id.
      shapes        — List shape keys by category.

    Args:
        action: One of the actions listed above.
        process_id: Process identifier (letters, digits, '.', '_', '-').
        steps: Ordered step records for open / set_steps.
        json_content: JSON document for load_json.
        notification_id: Notification to dismiss (notifications action).

    Returns:
        JSON string, or a string starting with "Error:".
    """
    try:
        action = validate_action(action, "editor", _EDITOR_ACTIONS)
    except ValidationError as exc:
        return f"Error: {exc.message}"

    if action == "list":
        with _editors_lock:
            sessions = [ed.status() for ed in _editors.values()]
        return json.dumps(sessions, indent=2)

    if action == "shapes":
        return json.dumps([
            {"category": cat, "label": label,
             "shapes": [{"key": s.key, "label": s.label, "icon": s.icon,
                         "width": s.default_width, "height": s.default_height}
                        for s in shapes]}
            for cat, label, shapes in shapes_by_category()
        ], indent=2, ensure_ascii=False)

    if action == "open":
        try:
            pid = validate_process_id(process_id)
            step_list = _steps_from(steps) if steps is not None else None
        except ValidationError as exc:
            return f"Error: {exc.message}"
        ed = EditorController(pid, _persistence, _config)
        ed.open(step_list)
        with _editors_lock:
            _editors[pid] = ed
        logger.info("Opened process '%s'", pid)
        return _with_status(ed)

    ed = _get_editor(process_id)
    if isinstance(ed, str):
        return ed

    if action == "close":
        with _editors_lock:
            _editors.pop(ed.process_id, None)
        return f"Process '{ed.process_id}' closed."

    elif action == "load_json":
        try:
            validate_non_empty_string(json_content, "json_content")
        except ValidationError as exc:
            return f"Error: {exc.message}"
        ed.import_json(json_content)
        return _with_status(ed)

    elif action == "get_json":
        return ed.export_json()

    elif action == "save":
        saved = ed.save()
        return _with_status(ed, saved=saved)

    elif action == "set_steps":
        try:
            step_list = _steps_from(steps)
        except ValidationError as exc:
            return f"Error: {exc.message}"
        synced = ed.set_steps(step_list)
        return _with_status(ed, synced=synced)

    elif action == "export_drawio":
        return ed.export_drawio()

    elif action == "validate":
        issues = ed.validate()
        return json.dumps({
            "summary": summarize(issues),
            "issues": [i.to_dict() for i in issues],
        }, indent=2, ensure_ascii=False)

    elif action == "notifications":
        if notification_id:
            ed.dismiss(notification_id)
        return json.dumps([
            {"id": n.id, "level": n.level, "message": n.message} for n in ed.notifications
        ], indent=2, ensure_ascii=False)

    return f"Error: unknown editor action '{action}'."


# ===================================================================
# TOOL 2: edit — graph mutations
# ===================================================================

@mcp.tool()
def edit(
    action: str,
    process_id: str = "",
    node_id: str = "",
    edge_id: str = "",
    node_ids: list[str] | None = None,
    edge_ids: list[str] | None = None,
    additive: bool = False,
    shape: str = "",
    label: str | None = None,
    x: float = 0,
    y: float = 0,
    width: float = 0,
    height: float = 0,
    style: dict[str, Any] | None = None,
    interaction: dict[str, Any] | None = None,
    clear_interaction: bool = False,
    source_id: str = "",
    target_id: str = "",
    kind: str = "",
    color: str = "",
    edge_width: float = 0,
    badge: dict[str, Any] | None = None,
    clear_badge: bool = False,
    alignment: str = "",
    direction: str = "",
    offset: list[float] | None = None,
    key: str = "",
    ctrl: bool = False,
    shift: bool = False,
    legend_index: int = -1,
    legend_entry: dict[str, Any] | None = None,
) -> str:
    """Mutate the open graph.

    Actions:
      add_node        — Params: shape, x, y, label?. Position is grid-snapped.
      update_node     — Params: node_id, label?, shape?, interaction? | clear_interaction.
      update_style    — Params: node_id, style {fill?, stroke?, text?, width?, height?, fontSize?}.
      update_edge     — Params: edge_id, label?, kind?, color?, edge_width?, badge? | clear_badge.
      delete_edge     — Params: edge_id.
      connect         — Explicit connect gesture. Params: source_id, target_id.
      select          — Params: node_ids?, edge_ids?, additive?.
      select_all / clear_selection
      copy / paste (offset? [dx, dy]) / duplicate / delete — act on the selection.
      align           — Params: alignment (left|center|right|top|middle|bottom).
      distribute      — Params: direction (horizontal|vertical).
      undo / redo
      sync_steps      — Re-derive nodes from the step list.
      auto_layout     — Grid layout of all nodes.
      rebuild_flow    — Replace edges with a chain following the step order.
      drag_start      — Params: node_id.
      drag_move       — Params: x, y (returns guides and snap delta).
      drag_end        — Applies the snap and records one 'move' entry.
      move            — One-shot drag. Params: node_id, x, y.
      resize          — Params: node_id, width, height.
      key             — Keyboard shortcut. Params: key, ctrl?, shift?.
      legend_reset / legend_add (legend_entry) /
      legend_update (legend_index, legend_entry) / legend_delete (legend_index)

    Returns:
        JSON with the action result and the editor status, or "Error: ...".
    """
    try:
        action = validate_action(action, "edit", _EDIT_ACTIONS)
    except ValidationError as exc:
        return f"Error: {exc.message}"

    ed = _get_editor(process_id)
    if isinstance(ed, str):
        return ed

    try:
        if action == "add_node":
            shape = validate_shape(shape or "rectangle")
            validate_number(x, "x")
            validate_number(y, "y")
            if label is not None:
                validate_string(label, "label")
            node = ed.add_node(shape, x, y, label)
            return _with_status(ed, node=_node_view(node))

        elif action == "update_node":
            nid = validate_non_empty_string(node_id, "node_id")
            new_shape = validate_shape(shape) if shape else None
            inter = validate_interaction_dict(interaction)
            if not ed.update_node(nid, label, new_shape, inter, clear_interaction):
                return f"Error: node '{nid}' not found."
            return _with_status(ed)

        elif action == "update_style":
            nid = validate_non_empty_string(node_id, "node_id")
            patch = validate_style_patch(style or {})
            if not ed.update_node_style(nid, **patch):
                return f"Error: node '{nid}' not found."
            return _with_status(ed)

        elif action == "update_edge":
            eid = validate_non_empty_string(edge_id, "edge_id")
            edge_kind = EdgeKind(validate_edge_kind(kind)) if kind else None
            edge_color = validate_color(color, "color") if color else None
            w = validate_positive_number(edge_width, "edge_width") if edge_width else None
            b = validate_badge_dict(badge)
            edge_badge = EdgeBadge(
                text=b.get("text", ""), color=b.get("color"), background=b.get("background"),
            ) if b is not None else None
            if not ed.update_edge(eid, label, edge_kind, edge_color, w, edge_badge, clear_badge):
                return f"Error: edge '{eid}' not found."
            return _with_status(ed)

        elif action == "delete_edge":
            eid = validate_non_empty_string(edge_id, "edge_id")
            if not ed.delete_edge(eid):
                return f"Error: edge '{eid}' not found."
            return _with_status(ed)

        elif action == "connect":
            src = validate_non_empty_string(source_id, "source_id")
            tgt = validate_non_empty_string(target_id, "target_id")
            edge = ed.connect(src, tgt)
            return _with_status(ed, edge=_edge_view(edge) if edge else None)

        elif action == "select":
            ed.select(
                validate_id_list(node_ids or [], "node_ids"),
                validate_id_list(edge_ids or [], "edge_ids"),
                additive,
            )
            return _with_status(ed)

        elif action == "select_all":
            ed.select_all()
            return _with_status(ed)

        elif action == "clear_selection":
            ed.clear_selection()
            return _with_status(ed)

        elif action == "copy":
            return _with_status(ed, copied=ed.copy())

        elif action == "paste":
            off = validate_offset(offset) if offset is not None else None
            nodes = ed.paste(off)
            return _with_status(ed, pasted=[n.id for n in nodes])

        elif action == "duplicate":
            nodes = ed.duplicate()
            return _with_status(ed, duplicated=[n.id for n in nodes])

        elif action == "delete":
            return _with_status(ed, deleted=ed.delete_selected())

        elif action == "align":
            al = validate_alignment(alignment)
            return _with_status(ed, aligned=ed.align(al))

        elif action == "distribute":
            dd = validate_dist_direction(direction)
            return _with_status(ed, distributed=ed.distribute(dd))

        elif action == "undo":
            return _with_status(ed, undone=ed.undo())

        elif action == "redo":
            return _with_status(ed, redone=ed.redo())

        elif action == "sync_steps":
            return _with_status(ed, synced=ed.sync_from_steps())

        elif action == "auto_layout":
            return _with_status(ed, laid_out=ed.auto_layout())

        elif action == "rebuild_flow":
            return _with_status(ed, rebuilt=ed.rebuild_default_flow())

        elif action == "drag_start":
            nid = validate_non_empty_string(node_id, "node_id")
            if not ed.start_drag(nid):
                return f"Error: node '{nid}' not found."
            return _with_status(ed)

        elif action == "drag_move":
            if not ed.dragging:
                return "Error: no drag in progress. Use edit(action='drag_start') first."
            result = ed.drag_to(validate_number(x, "x"), validate_number(y, "y"))
            return json.dumps(_guide_view(result), indent=2)

        elif action == "drag_end":
            return _with_status(ed, moved=ed.end_drag())

        elif action == "move":
            nid = validate_non_empty_string(node_id, "node_id")
            if not ed.start_drag(nid):
                return f"Error: node '{nid}' not found."
            result = ed.drag_to(validate_number(x, "x"), validate_number(y, "y"))
            moved = ed.end_drag()
            return _with_status(ed, moved=moved, snap=_guide_view(result))

        elif action == "resize":
            nid = validate_non_empty_string(node_id, "node_id")
            w = validate_positive_number(width, "width")
            h = validate_positive_number(height, "height")
            if not ed.end_resize(nid, w, h):
                return f"Error: node '{nid}' not found or size unchanged."
            return _with_status(ed)

        elif action == "key":
            k = validate_non_empty_string(key, "key")
            return _with_status(ed, performed=ed.key(k, ctrl=ctrl, shift=shift))

        elif action == "legend_reset":
            ed.reset_legend()
            return _with_status(ed, legend=[legend_to_stored(i) for i in ed.state.legend])

        elif action == "legend_add":
            entry = validate_legend_entry(legend_entry or {})
            item = ed.add_legend_item(
                entry.get("label", ""), entry.get("color"), entry.get("background"), entry.get("key"),
            )
            return _with_status(ed, legend_item=legend_to_stored(item))

        elif action == "legend_update":
            entry = validate_legend_entry(legend_entry or {})
            changes = {k: entry[k] for k in ("key", "label", "color", "background") if k in entry}
            if not ed.update_legend_item(legend_index, **changes):
                return f"Error: legend index {legend_index} out of range."
            return _with_status(ed, legend=[legend_to_stored(i) for i in ed.state.legend])

        elif action == "legend_delete":
            if not ed.delete_legend_item(legend_index):
                return f"Error: legend index {legend_index} out of range."
            return _with_status(ed, legend=[legend_to_stored(i) for i in ed.state.legend])

    except ValidationError as exc:
        return f"Error: {exc.message}"

    return f"Error: unknown edit action '{action}'."


# ===================================================================
# TOOL 3: connect_mode — click-driven edge creation
# ===================================================================

@mcp.tool()
def connect_mode(
    action: str,
    process_id: str = "",
    mode: str = "fanout",
    node_id: str = "",
) -> str:
    """Connect mode: build edges by clicking nodes.

    Actions:
      enter      — Enter a mode. Params: mode (fanout | chain). Clears selection.
      exit       — Leave connect mode.
      click_node — Click a node. First click arms the source, a second click on
                   the source disarms it, a click on another node creates
                   source -> node (never twice). In chain mode the clicked
                   node becomes the new source.
      click_pane — Click the empty canvas (leaves connect mode).
      status     — Current mode, armed source and graph summary.

    Returns:
        JSON string, or a string starting with "Error:".
    """
    try:
        action = validate_action(action, "connect_mode", _CONNECT_ACTIONS)
    except ValidationError as exc:
        return f"Error: {exc.message}"

    ed = _get_editor(process_id)
    if isinstance(ed, str):
        return ed

    if action == "enter":
        try:
            m = validate_connect_mode(mode)
        except ValidationError as exc:
            return f"Error: {exc.message}"
        ed.enter_connect_mode(ConnectMode(m))
        return _with_status(ed)

    elif action == "exit":
        ed.exit_connect_mode()
        return _with_status(ed)

    elif action == "click_node":
        try:
            nid = validate_non_empty_string(node_id, "node_id")
        except ValidationError as exc:
            return f"Error: {exc.message}"
        outcome = ed.click_node(nid)
        if outcome is None:
            return f"Error: node '{nid}' not found."
        extra: dict[str, Any] = {"result": outcome.result.value}
        if outcome.source:
            extra["source"] = outcome.source
        if outcome.target:
            extra["target"] = outcome.target
        if outcome.result == ClickResult.IGNORED and ed.focused_ref:
            extra["focused_ref"] = ed.focused_ref
        return _with_status(ed, **extra)

    elif action == "click_pane":
        ed.click_pane()
        return _with_status(ed)

    elif action == "status":
        return _with_status(
            ed,
            nodes=[_node_view(n) for n in ed.nodes],
            edges=[_edge_view(e) for e in ed.edges],
        )

    return f"Error: unknown connect_mode action '{action}'."


def main() -> None:
    """Run the MCP server."""
    mcp.run()


if __name__ == "__main__":
    main()
