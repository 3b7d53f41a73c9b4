"""
Editor controller: the single operation surface of a logigramme editor.

One controller owns the live state of one open document (nodes, edges,
legend, step list, dirty flag) together with its history, clipboard,
connect-mode machine and pending drag. It is the only caller of
``History.commit``; every discrete user-visible mutation records exactly
one entry. Failures never abort the session: they become notifications
and the in-memory state is kept.
"""

from __future__ import annotations

import itertools
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Collection, Iterable, Mapping, Optional

from logigramme_mcp.align import align_nodes, can_align, can_distribute, distribute_nodes
from logigramme_mcp.checks import ValidationIssue, validate_diagram
from logigramme_mcp.codec import (
    coerce_interaction,
    create_edge,
    decode_document,
    default_legend,
    encode_document,
    positive_size,
)
from logigramme_mcp.commands import (
    Clipboard,
    copy_selection,
    delete_selection,
    duplicate_selection,
    has_edge,
    paste_clipboard,
    prune_dangling_edges,
)
from logigramme_mcp.config import EditorConfig
from logigramme_mcp.connect import ClickOutcome, ClickResult, ConnectModeMachine
from logigramme_mcp.export import document_to_drawio
from logigramme_mcp.guides import GuideResult, calculate_guides
from logigramme_mcp.history import History, Snapshot
from logigramme_mcp.models import (
    ConnectMode,
    Document,
    Edge,
    EdgeBadge,
    EdgeKind,
    LegendItem,
    Node,
    NodeStyle,
    Position,
    new_id,
    snap_to_grid,
)
from logigramme_mcp.persistence import PersistenceError, PersistenceService
from logigramme_mcp.shapes import get_shape_def, is_known_shape
from logigramme_mcp.sync import (
    StepLike,
    StepRecord,
    apply_auto_layout,
    build_from_steps,
    default_flow_edges,
    normalize_steps,
)

logger = logging.getLogger(__name__)

_SIZE_FIELDS = ("width", "height", "font_size")


@dataclass
class Notification:
    """Transient, dismissible message for the host view."""
    level: str  # info | warning | error
    message: str
    id: int = 0


@dataclass
class EditorState:
    nodes: list[Node] = field(default_factory=list)
    edges: list[Edge] = field(default_factory=list)
    legend: list[LegendItem] = field(default_factory=list)
    steps: list[StepRecord] = field(default_factory=list)
    dirty: bool = False
    ready: bool = False


@dataclass
class _DragSession:
    node_id: str
    origin: Position
    guides: GuideResult = field(default_factory=GuideResult)


class EditorController:
    """Composes sync, guides, commands, align, history and connect-mode."""

    def __init__(
        self,
        process_id: str,
        persistence: Optional[PersistenceService] = None,
        config: Optional[EditorConfig] = None,
        on_row_focus: Optional[Callable[[str], None]] = None,
    ) -> None:
        self.process_id = process_id
        self.persistence = persistence
        self.config = config or EditorConfig()
        self.on_row_focus = on_row_focus
        self.state = EditorState()
        self.history = History(self.config.history_limit)
        self.connect_mode = ConnectModeMachine()
        self.clipboard = Clipboard()
        self.notifications: list[Notification] = []
        self._notification_ids = itertools.count(1)
        self.focused_ref: Optional[str] = None
        self._drag: Optional[_DragSession] = None

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @property
    def nodes(self) -> list[Node]:
        return self.state.nodes

    @property
    def edges(self) -> list[Edge]:
        return self.state.edges

    def _grid(self) -> Optional[int]:
        return self.config.grid_size if self.config.snap_to_grid else None

    def _commit(self, reason: str) -> bool:
        if not self.history.commit(self.state.nodes, self.state.edges, reason):
            return False
        self.state.dirty = True
        return True

    def notify(self, level: str, message: str) -> Notification:
        note = Notification(level, message, next(self._notification_ids))
        self.notifications.append(note)
        log = logger.warning if level in ("warning", "error") else logger.debug
        log("[%s] %s", self.process_id, message)
        return note

    def dismiss(self, notification_id: int) -> bool:
        before = len(self.notifications)
        self.notifications = [n for n in self.notifications if n.id != notification_id]
        return len(self.notifications) != before

    def drain_notifications(self) -> list[Notification]:
        notes, self.notifications = self.notifications, []
        return notes

    def _find_node(self, node_id: str) -> Optional[Node]:
        return next((n for n in self.state.nodes if n.id == node_id), None)

    def _find_edge(self, edge_id: str) -> Optional[Edge]:
        return next((e for e in self.state.edges if e.id == edge_id), None)

    def _refresh_source_flag(self) -> None:
        src = self.connect_mode.source_id
        for n in self.state.nodes:
            n.is_selection_source = src is not None and n.id == src

    def _set_graph(self, nodes: list[Node], edges: list[Edge]) -> None:
        self.state.nodes = nodes
        self.state.edges = edges
        self._refresh_source_flag()

    # ------------------------------------------------------------------
    # Load / save
    # ------------------------------------------------------------------

    def load(
        self,
        document: Optional[Mapping[str, Any]] = None,
        steps: Optional[Iterable[StepLike]] = None,
    ) -> None:
        """Load a persisted document and seed history with it.

        A missing or empty document is built from *steps* (one node per
        step plus a linear default flow) when steps are available.
        """
        if steps is not None:
            self.state.steps = normalize_steps(steps)
        doc = decode_document(document) if document is not None else Document(legend=default_legend())
        nodes, edges = doc.nodes, doc.edges
        if not nodes and self.state.steps:
            nodes = build_from_steps(self.state.steps, (), self.config.grid_layout)
            edges = default_flow_edges(self.state.steps)
        self.state.legend = doc.legend
        self.connect_mode.exit()
        self._drag = None
        self._set_graph(nodes, edges)
        self.history.initialize(nodes, edges)
        self.state.dirty = False
        self.state.ready = True
        logger.debug("Loaded '%s': %d nodes, %d edges", self.process_id, len(nodes), len(edges))

    def open(self, steps: Optional[Iterable[StepLike]] = None) -> bool:
        """Load from the persistence backend; falls back to an empty document."""
        raw: Optional[dict[str, Any]] = None
        ok = True
        if self.persistence is not None:
            try:
                raw = self.persistence.load(self.process_id)
            except PersistenceError as exc:
                self.notify("error", f"Could not load logigramme: {exc.message}")
                ok = False
        self.load(raw, steps)
        return ok

    def to_document(self) -> dict[str, Any]:
        return encode_document(self.state.nodes, self.state.edges, self.state.legend)

    def save(self) -> bool:
        """Persist the whole document.

        On failure the local state is left untouched, ``dirty`` stays set
        and an error notification is queued; calling save again retries.
        """
        if self.persistence is None:
            self.notify("error", "No persistence backend configured")
            return False
        try:
            self.persistence.save(self.process_id, self.to_document())
        except PersistenceError as exc:
            self.notify("error", f"Save failed: {exc.message}")
            return False
        self.state.dirty = False
        self.notify("info", "Logigramme saved")
        return True

    def export_json(self) -> str:
        return json.dumps(self.to_document(), indent=2, ensure_ascii=False)

    def import_json(self, text: str) -> bool:
        """Replace the graph with a JSON document; history is re-seeded."""
        try:
            raw = json.loads(text)
        except json.JSONDecodeError as exc:
            self.notify("error", f"Invalid JSON: {exc.msg}")
            return False
        if not isinstance(raw, dict):
            self.notify("error", "Invalid JSON: expected an object")
            return False
        self.load(raw)
        self.state.dirty = True
        return True

    def export_drawio(self) -> str:
        doc = decode_document(self.to_document())
        return document_to_drawio(doc, name=self.process_id, grid_size=self.config.grid_size)

    def validate(self) -> list[ValidationIssue]:
        return validate_diagram(self.state.nodes, self.state.edges)

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    @property
    def selected_node_ids(self) -> list[str]:
        return [n.id for n in self.state.nodes if n.selected]

    @property
    def selected_edge_ids(self) -> list[str]:
        return [e.id for e in self.state.edges if e.selected]

    @property
    def selected_node(self) -> Optional[Node]:
        """The single selected node, if exactly one is selected."""
        sel = [n for n in self.state.nodes if n.selected]
        return sel[0] if len(sel) == 1 else None

    @property
    def selected_edge(self) -> Optional[Edge]:
        sel = [e for e in self.state.edges if e.selected]
        return sel[0] if len(sel) == 1 else None

    def select(
        self,
        node_ids: Collection[str] = (),
        edge_ids: Collection[str] = (),
        additive: bool = False,
    ) -> None:
        nids, eids = set(node_ids), set(edge_ids)
        for n in self.state.nodes:
            n.selected = n.id in nids or (additive and n.selected)
        for e in self.state.edges:
            e.selected = e.id in eids or (additive and e.selected)

    def select_all(self) -> None:
        for n in self.state.nodes:
            n.selected = True
        for e in self.state.edges:
            e.selected = True

    def clear_selection(self) -> None:
        self.select()

    # ------------------------------------------------------------------
    # Pointer / keyboard routing
    # ------------------------------------------------------------------

    def click_node(self, node_id: str) -> Optional[ClickOutcome]:
        """Route a node click to connect-mode or to selection."""
        if self._find_node(node_id) is None:
            return None
        if self.connect_mode.active:
            outcome = self.connect_mode.click_node(
                node_id, lambda s, t: has_edge(self.state.edges, s, t),
            )
            if outcome.creates_edge and outcome.source and outcome.target:
                self.state.edges.append(self._new_edge(outcome.source, outcome.target))
                self._commit("connect")
            self._refresh_source_flag()
            return outcome

        self.select([node_id])
        node = self._find_node(node_id)
        self.focused_ref = node.source_ref if node is not None else None
        if self.focused_ref and self.on_row_focus is not None:
            self.on_row_focus(self.focused_ref)
        return ClickOutcome(ClickResult.IGNORED, target=node_id)

    def click_pane(self) -> None:
        if not self.connect_mode.click_pane():
            self.clear_selection()
        self._refresh_source_flag()

    def key(self, key: str, ctrl: bool = False, shift: bool = False) -> Optional[str]:
        """Handle a keyboard shortcut; returns the action name performed."""
        k = key.lower() if len(key) == 1 else key
        if key in ("Escape", "Esc"):
            self.exit_connect_mode()
            self.clear_selection()
            return "escape"
        if key in ("Delete", "Backspace"):
            if self.selected_node_ids or self.selected_edge_ids:
                self.delete_selected()
                return "delete"
            return None
        if not ctrl:
            return None
        if k == "z" and not shift:
            self.undo()
            return "undo"
        if k == "y" or (k == "z" and shift):
            self.redo()
            return "redo"
        shortcuts: dict[str, Callable[[], Any]] = {
            "c": self.copy,
            "v": self.paste,
            "d": self.duplicate,
            "a": self.select_all,
        }
        handler = shortcuts.get(k)
        if handler is None:
            return None
        handler()
        return {"c": "copy", "v": "paste", "d": "duplicate", "a": "select_all"}[k]

    # ------------------------------------------------------------------
    # Connect mode and edges
    # ------------------------------------------------------------------

    def enter_connect_mode(self, mode: ConnectMode) -> None:
        self.clear_selection()
        if mode == ConnectMode.OFF:
            self.connect_mode.exit()
        else:
            self.connect_mode.enter(mode)
        self._refresh_source_flag()

    def exit_connect_mode(self) -> None:
        self.connect_mode.exit()
        self._refresh_source_flag()

    def _new_edge(self, source: str, target: str) -> Edge:
        taken = {e.id for e in self.state.edges}
        eid = new_id("e")
        while eid in taken:
            eid = new_id("e")
        kind = EdgeKind.ORTHOGONAL if self.config.orthogonal_edges else EdgeKind.SMOOTH
        return create_edge(source, target, eid, kind)

    def connect(self, source: str, target: str) -> Optional[Edge]:
        """Explicit drag-connect gesture; self-loops and duplicates are ignored."""
        if source == target:
            return None
        if self._find_node(source) is None or self._find_node(target) is None:
            self.notify("warning", "Cannot connect: unknown node")
            return None
        if has_edge(self.state.edges, source, target):
            return None
        edge = self._new_edge(source, target)
        self.state.edges.append(edge)
        self._commit("connect")
        return edge

    def update_edge(
        self,
        edge_id: str,
        label: Optional[str] = None,
        kind: Optional[EdgeKind] = None,
        color: Optional[str] = None,
        width: Optional[float] = None,
        badge: Optional[EdgeBadge] = None,
        clear_badge: bool = False,
    ) -> bool:
        edge = self._find_edge(edge_id)
        if edge is None:
            return False
        if label is not None:
            edge.label = label
        if kind is not None:
            edge.kind = kind
        if color:
            edge.color = color
        if width is not None and width > 0:
            edge.width = width
        if clear_badge:
            edge.badge = None
        elif badge is not None:
            edge.badge = badge
        self._commit("edit-edge")
        return True

    def delete_edge(self, edge_id: str) -> bool:
        nodes, edges = delete_selection(self.state.nodes, self.state.edges, (), {edge_id})
        if len(edges) == len(self.state.edges):
            return False
        self._set_graph(nodes, edges)
        self._commit("delete-edge")
        return True

    # ------------------------------------------------------------------
    # Nodes
    # ------------------------------------------------------------------

    def add_node(self, shape: str, x: float, y: float, label: Optional[str] = None) -> Node:
        """Palette drop: new node at a grid-snapped position, selected."""
        shape_def = get_shape_def(shape)
        grid = self._grid()
        pos = Position(
            snap_to_grid(x, grid) if grid else x,
            snap_to_grid(y, grid) if grid else y,
        )
        taken = {n.id for n in self.state.nodes}
        nid = new_id("n")
        while nid in taken:
            nid = new_id("n")
        node = Node(
            id=nid,
            shape=shape_def.key,
            label=label if label is not None else shape_def.label,
            position=pos,
            style=NodeStyle(width=shape_def.default_width, height=shape_def.default_height),
        )
        self.clear_selection()
        node.selected = True
        self.state.nodes.append(node)
        self._commit("add-node")
        return node

    def update_node(
        self,
        node_id: str,
        label: Optional[str] = None,
        shape: Optional[str] = None,
        interaction: Optional[Mapping[str, Any]] = None,
        clear_interaction: bool = False,
    ) -> bool:
        node = self._find_node(node_id)
        if node is None:
            return False
        if label is not None:
            node.label = label
        if shape is not None:
            node.shape = shape if is_known_shape(shape) else "rectangle"
        if clear_interaction:
            node.interaction = None
        elif interaction is not None:
            node.interaction = coerce_interaction(interaction)
        self._commit("edit-node")
        return True

    def update_node_style(self, node_id: str, **changes: Any) -> bool:
        """Merge style fields (fill, stroke, text, width, height, font_size)."""
        node = self._find_node(node_id)
        if node is None:
            return False
        style = node.style or NodeStyle()
        for key, value in changes.items():
            if not hasattr(style, key):
                raise ValueError(f"unknown style field '{key}'")
            if key in _SIZE_FIELDS and value is not None:
                size = positive_size(value)
                if size is None:
                    self.notify("warning", f"Invalid {key} {value!r}, using the shape default")
                value = size
            setattr(style, key, value)
        node.style = style
        self._commit("edit-style")
        return True

    # ------------------------------------------------------------------
    # Drag and resize
    # ------------------------------------------------------------------

    def start_drag(self, node_id: str) -> bool:
        node = self._find_node(node_id)
        if node is None:
            return False
        self._drag = _DragSession(node_id, Position(node.position.x, node.position.y))
        return True

    def drag_to(self, x: float, y: float) -> GuideResult:
        """Live drag frame: move the node and recompute guides (no history)."""
        if self._drag is None:
            return GuideResult()
        node = self._find_node(self._drag.node_id)
        if node is None:
            self._drag = None
            return GuideResult()
        grid = self._grid()
        node.position = Position(
            snap_to_grid(x, grid) if grid else x,
            snap_to_grid(y, grid) if grid else y,
        )
        if self.config.guides_enabled:
            self._drag.guides = calculate_guides(
                node, self.state.nodes,
                self.config.snap_threshold, self.config.guide_padding,
            )
        else:
            self._drag.guides = GuideResult()
        return self._drag.guides

    def end_drag(self) -> bool:
        """Drag-stop: apply the guide snap and commit one ``move`` entry."""
        if self._drag is None:
            return False
        session, self._drag = self._drag, None
        node = self._find_node(session.node_id)
        if node is None:
            return False
        g = session.guides
        if g.dx or g.dy:
            node.position = Position(node.position.x + g.dx, node.position.y + g.dy)
        if node.position == session.origin:
            return False
        return self._commit("move")

    @property
    def dragging(self) -> bool:
        return self._drag is not None

    def move_node(self, node_id: str, x: float, y: float) -> GuideResult:
        """A whole drag in one call."""
        if not self.start_drag(node_id):
            return GuideResult()
        result = self.drag_to(x, y)
        self.end_drag()
        return result

    def end_resize(self, node_id: str, width: float, height: float) -> bool:
        node = self._find_node(node_id)
        w, h = positive_size(width), positive_size(height)
        if node is None or w is None or h is None:
            return False
        style = node.style or NodeStyle()
        style.width = w
        style.height = h
        node.style = style
        return self._commit("resize")

    # ------------------------------------------------------------------
    # Clipboard / delete
    # ------------------------------------------------------------------

    def copy(self) -> int:
        ids = self.selected_node_ids
        if not ids:
            self.notify("warning", "Nothing selected to copy")
            return 0
        self.clipboard = copy_selection(self.state.nodes, self.state.edges, ids)
        return len(self.clipboard.nodes)

    def paste(self, offset: Optional[tuple[float, float]] = None) -> list[Node]:
        if self.clipboard.empty:
            self.notify("warning", "Clipboard is empty")
            return []
        existing = {n.id for n in self.state.nodes} | {e.id for e in self.state.edges}
        nodes, edges = paste_clipboard(
            self.clipboard, offset or self.config.paste_offset, existing,
        )
        self.clear_selection()
        self.state.nodes.extend(nodes)
        self.state.edges.extend(edges)
        self._commit("paste")
        return nodes

    def duplicate(self) -> list[Node]:
        ids = self.selected_node_ids
        if not ids:
            self.notify("warning", "Nothing selected to duplicate")
            return []
        nodes, edges = duplicate_selection(
            self.state.nodes, self.state.edges, ids, self.config.paste_offset,
        )
        self.clear_selection()
        self.state.nodes.extend(nodes)
        self.state.edges.extend(edges)
        self._commit("duplicate")
        return nodes

    def delete_selected(self) -> bool:
        node_ids = self.selected_node_ids
        edge_ids = self.selected_edge_ids
        if not node_ids and not edge_ids:
            return False
        if self.connect_mode.source_id in node_ids:
            self.connect_mode.source_id = None
        nodes, edges = delete_selection(self.state.nodes, self.state.edges, node_ids, edge_ids)
        self._set_graph(nodes, edges)
        self._commit("delete")
        return True

    # ------------------------------------------------------------------
    # Align / distribute
    # ------------------------------------------------------------------

    def align(self, alignment: str) -> bool:
        ids = self.selected_node_ids
        if not can_align(len(ids)):
            self.notify("warning", "Select at least 2 nodes to align")
            return False
        self._set_graph(align_nodes(self.state.nodes, ids, alignment, self._grid()), self.state.edges)
        self._commit(f"align-{alignment.lower()}")
        return True

    def distribute(self, direction: str) -> bool:
        ids = self.selected_node_ids
        if not can_distribute(len(ids)):
            self.notify("warning", "Select at least 3 nodes to distribute")
            return False
        self._set_graph(
            distribute_nodes(self.state.nodes, ids, direction, self._grid()), self.state.edges,
        )
        self._commit(f"distribute-{direction.lower()}")
        return True

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    def _restore(self, restored: Optional[Snapshot]) -> bool:
        if restored is None:
            return False
        nodes, edges = restored.restore()
        if self.connect_mode.source_id not in {n.id for n in nodes}:
            self.connect_mode.source_id = None
        self._drag = None
        self._set_graph(nodes, edges)
        self.state.dirty = True
        return True

    def undo(self) -> bool:
        return self._restore(self.history.undo())

    def redo(self) -> bool:
        return self._restore(self.history.redo())

    # ------------------------------------------------------------------
    # Step list synchronisation and layout
    # ------------------------------------------------------------------

    def set_steps(self, steps: Iterable[StepLike]) -> bool:
        """Replace the step list; runs auto-sync when it changed."""
        records = normalize_steps(steps)
        changed = records != self.state.steps
        self.state.steps = records
        if changed and self.config.auto_sync and self.state.ready and records:
            return self._sync("auto-sync")
        return False

    def _sync(self, reason: str) -> bool:
        nodes = build_from_steps(self.state.steps, self.state.nodes, self.config.grid_layout)
        edges = prune_dangling_edges(nodes, self.state.edges)
        if self.connect_mode.source_id not in {n.id for n in nodes}:
            self.connect_mode.source_id = None
        self._set_graph(nodes, edges)
        return self._commit(reason)

    def sync_from_steps(self) -> bool:
        if not self.state.steps:
            self.notify("warning", "No steps to synchronise")
            return False
        self._sync("sync-steps")
        self.notify("info", "Nodes synchronised from steps")
        return True

    def auto_layout(self) -> bool:
        if not self.state.nodes:
            return False
        self._set_graph(apply_auto_layout(self.state.nodes, self.config.grid_layout), self.state.edges)
        self._commit("auto-layout")
        return True

    def rebuild_default_flow(self) -> bool:
        if not self.state.steps:
            return False
        present = {n.id for n in self.state.nodes}
        edges = [
            e for e in default_flow_edges(self.state.steps)
            if e.source in present and e.target in present
        ]
        self._set_graph(self.state.nodes, edges)
        self._commit("rebuild-flow")
        return True

    # ------------------------------------------------------------------
    # Legend (descriptive only, no history)
    # ------------------------------------------------------------------

    def reset_legend(self) -> None:
        self.state.legend = default_legend()
        self.state.dirty = True

    def add_legend_item(
        self,
        label: str = "",
        color: Optional[str] = None,
        background: Optional[str] = None,
        key: Optional[str] = None,
    ) -> LegendItem:
        item = LegendItem(key or str(len(self.state.legend) + 1), label, color, background)
        self.state.legend.append(item)
        self.state.dirty = True
        return item

    def update_legend_item(self, index: int, **changes: Any) -> bool:
        if not 0 <= index < len(self.state.legend):
            return False
        item = self.state.legend[index]
        for key, value in changes.items():
            if not hasattr(item, key):
                raise ValueError(f"unknown legend field '{key}'")
            setattr(item, key, value)
        self.state.dirty = True
        return True

    def delete_legend_item(self, index: int) -> bool:
        if not 0 <= index < len(self.state.legend):
            return False
        del self.state.legend[index]
        self.state.dirty = True
        return True

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    def status(self) -> dict[str, Any]:
        return {
            "process_id": self.process_id,
            "nodes": len(self.state.nodes),
            "edges": len(self.state.edges),
            "dirty": self.state.dirty,
            "selected_nodes": self.selected_node_ids,
            "selected_edges": self.selected_edge_ids,
            "connect_mode": self.connect_mode.mode.value,
            "connect_source": self.connect_mode.source_id,
            "can_undo": self.history.can_undo,
            "can_redo": self.history.can_redo,
            "clipboard": len(self.clipboard.nodes),
        }
