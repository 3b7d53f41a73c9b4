"""
Linear undo / redo over full graph snapshots.

The history keeps three parts: ``past`` (undo stack), ``present`` (the
snapshot matching the live state) and ``future`` (redo stack). Snapshots
are deep copies with transient selection flags stripped, so selecting a
node is never an undoable action. History is session-local; it is never
persisted.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, Optional

from logigramme_mcp.models import Edge, Node, clear_transient

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 100


@dataclass
class Snapshot:
    """An immutable-by-convention copy of the graph."""
    nodes: list[Node] = field(default_factory=list)
    edges: list[Edge] = field(default_factory=list)
    reason: str = ""

    @classmethod
    def capture(cls, nodes: Iterable[Node], edges: Iterable[Edge], reason: str = "") -> Snapshot:
        n, e = clear_transient(nodes, edges)
        return cls(nodes=n, edges=e, reason=reason)

    def same_graph(self, other: Snapshot) -> bool:
        return self.nodes == other.nodes and self.edges == other.edges

    def restore(self) -> tuple[list[Node], list[Edge]]:
        """Fresh copies of the stored graph for the live state."""
        return clear_transient(self.nodes, self.edges)


class History:
    """Undo / redo manager.

    ``limit`` bounds the undo stack; the oldest entries fall off first.
    """

    def __init__(self, limit: int = DEFAULT_LIMIT) -> None:
        if limit < 1:
            raise ValueError("history limit must be >= 1")
        self.limit = limit
        self.past: list[Snapshot] = []
        self.present: Snapshot = Snapshot(reason="init")
        self.future: list[Snapshot] = []

    def initialize(self, nodes: Iterable[Node], edges: Iterable[Edge], reason: str = "load") -> None:
        """Reset the history so *nodes*/*edges* is the only known state."""
        self.past.clear()
        self.future.clear()
        self.present = Snapshot.capture(nodes, edges, reason)

    def commit(self, nodes: Iterable[Node], edges: Iterable[Edge], reason: str) -> bool:
        """Record the current graph. Returns False when nothing changed."""
        snap = Snapshot.capture(nodes, edges, reason)
        if snap.same_graph(self.present):
            logger.debug("History: skip '%s' (no change)", reason)
            return False
        self.past.append(self.present)
        if len(self.past) > self.limit:
            del self.past[: len(self.past) - self.limit]
        self.present = snap
        self.future.clear()
        logger.debug("History: commit '%s' (%d undo)", reason, len(self.past))
        return True

    def undo(self) -> Optional[Snapshot]:
        """Step back; returns the snapshot that is now current, or None."""
        if not self.past:
            return None
        self.future.append(self.present)
        self.present = self.past.pop()
        return self.present

    def redo(self) -> Optional[Snapshot]:
        if not self.future:
            return None
        self.past.append(self.present)
        self.present = self.future.pop()
        return self.present

    @property
    def can_undo(self) -> bool:
        return bool(self.past)

    @property
    def can_redo(self) -> bool:
        return bool(self.future)

    @property
    def undo_label(self) -> Optional[str]:
        """Reason of the change an undo would revert."""
        return self.present.reason if self.past else None

    @property
    def redo_label(self) -> Optional[str]:
        return self.future[-1].reason if self.future else None
