"""
Connect-mode state machine.

Turns a sequence of node clicks into edge requests::

    OFF --enter(fanout|chain)--> AWAITING SOURCE --click A--> ARMED(A)
    ARMED(A) --click A--> AWAITING SOURCE
    ARMED(A) --click B--> edge A->B (unless it exists)
        fanout: stays ARMED(A)
        chain:  becomes ARMED(B)
    any --exit / Escape / pane click--> OFF

The machine never touches the graph. It reports what should happen through
a ClickOutcome; the controller creates the edge and commits history.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from logigramme_mcp.models import ConnectMode

EXIT_KEYS = frozenset({"Escape", "Esc"})


class ClickResult(Enum):
    IGNORED = "ignored"
    ARMED = "armed"
    DISARMED = "disarmed"
    CONNECTED = "connected"
    DUPLICATE = "duplicate"


@dataclass(frozen=True)
class ClickOutcome:
    result: ClickResult
    source: Optional[str] = None
    target: Optional[str] = None

    @property
    def creates_edge(self) -> bool:
        return self.result == ClickResult.CONNECTED


class ConnectModeMachine:
    """Tracks the active connect mode and the armed source node."""

    def __init__(self) -> None:
        self.mode: ConnectMode = ConnectMode.OFF
        self.source_id: Optional[str] = None

    @property
    def active(self) -> bool:
        return self.mode != ConnectMode.OFF

    def enter(self, mode: ConnectMode) -> None:
        """Switch mode; the pending source is always cleared."""
        self.mode = mode
        self.source_id = None

    def exit(self) -> None:
        self.mode = ConnectMode.OFF
        self.source_id = None

    def toggle(self, mode: ConnectMode) -> None:
        """Enter *mode*, or leave it when it is already active."""
        if self.mode == mode:
            self.exit()
        else:
            self.enter(mode)

    def click_node(self, node_id: str, edge_exists: Callable[[str, str], bool]) -> ClickOutcome:
        if not self.active:
            return ClickOutcome(ClickResult.IGNORED, target=node_id)

        if self.source_id is None:
            self.source_id = node_id
            return ClickOutcome(ClickResult.ARMED, source=node_id)

        source = self.source_id
        if source == node_id:
            self.source_id = None
            return ClickOutcome(ClickResult.DISARMED, source=source)

        duplicate = edge_exists(source, node_id)
        if self.mode == ConnectMode.CHAIN:
            self.source_id = node_id
        result = ClickResult.DUPLICATE if duplicate else ClickResult.CONNECTED
        return ClickOutcome(result, source=source, target=node_id)

    def click_pane(self) -> bool:
        """Empty-canvas click; returns True if a mode was left."""
        was_active = self.active
        self.exit()
        return was_active

    def key(self, key: str) -> bool:
        if key in EXIT_KEYS and self.active:
            self.exit()
            return True
        return False
