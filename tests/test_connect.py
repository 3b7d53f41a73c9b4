"""Tests for the connect-mode state machine."""

from logigramme_mcp.commands import has_edge
from logigramme_mcp.connect import ClickResult, ConnectModeMachine
from logigramme_mcp.models import ConnectMode, Edge


class _Recorder:
    """Collects edges the way the controller would."""

    def __init__(self) -> None:
        self.edges: list[Edge] = []

    def exists(self, s: str, t: str) -> bool:
        return has_edge(self.edges, s, t)

    def click(self, machine: ConnectModeMachine, node_id: str) -> ClickResult:
        outcome = machine.click_node(node_id, self.exists)
        if outcome.creates_edge:
            self.edges.append(Edge(f"e{len(self.edges)}", outcome.source, outcome.target))
        return outcome.result


def test_clicks_ignored_when_off() -> None:
    m = ConnectModeMachine()
    rec = _Recorder()
    assert rec.click(m, "A") == ClickResult.IGNORED
    assert m.source_id is None


def test_fanout_no_duplicate() -> None:
    m = ConnectModeMachine()
    m.enter(ConnectMode.FANOUT)
    rec = _Recorder()
    assert rec.click(m, "S") == ClickResult.ARMED
    assert rec.click(m, "T1") == ClickResult.CONNECTED
    assert rec.click(m, "T1") == ClickResult.DUPLICATE
    assert rec.click(m, "T2") == ClickResult.CONNECTED
    assert [(e.source, e.target) for e in rec.edges] == [("S", "T1"), ("S", "T2")]
    assert m.source_id == "S"


def test_chain_moves_source() -> None:
    m = ConnectModeMachine()
    m.enter(ConnectMode.CHAIN)
    rec = _Recorder()
    for nid in ("A", "B", "C", "D"):
        rec.click(m, nid)
    assert [(e.source, e.target) for e in rec.edges] == [("A", "B"), ("B", "C"), ("C", "D")]
    assert m.source_id == "D"


def test_chain_advances_on_duplicate() -> None:
    m = ConnectModeMachine()
    m.enter(ConnectMode.CHAIN)
    rec = _Recorder()
    rec.edges.append(Edge("pre", "A", "B"))
    rec.click(m, "A")
    assert rec.click(m, "B") == ClickResult.DUPLICATE
    assert m.source_id == "B"


def test_reverse_direction_is_not_a_duplicate() -> None:
    m = ConnectModeMachine()
    m.enter(ConnectMode.FANOUT)
    rec = _Recorder()
    rec.edges.append(Edge("pre", "B", "A"))
    rec.click(m, "A")
    assert rec.click(m, "B") == ClickResult.CONNECTED


def test_clicking_source_again_disarms() -> None:
    m = ConnectModeMachine()
    m.enter(ConnectMode.FANOUT)
    rec = _Recorder()
    rec.click(m, "A")
    assert rec.click(m, "A") == ClickResult.DISARMED
    assert m.source_id is None
    assert m.mode == ConnectMode.FANOUT
    assert rec.edges == []


def test_pane_click_and_escape_exit() -> None:
    m = ConnectModeMachine()
    m.enter(ConnectMode.CHAIN)
    m.click_node("A", lambda s, t: False)
    assert m.click_pane()
    assert m.mode == ConnectMode.OFF and m.source_id is None
    assert not m.click_pane()

    m.enter(ConnectMode.FANOUT)
    m.click_node("A", lambda s, t: False)
    assert not m.key("Enter")
    assert m.key("Escape")
    assert not m.active and m.source_id is None


def test_entering_a_mode_clears_source() -> None:
    m = ConnectModeMachine()
    m.enter(ConnectMode.FANOUT)
    m.click_node("A", lambda s, t: False)
    m.enter(ConnectMode.CHAIN)
    assert m.source_id is None
    m.toggle(ConnectMode.CHAIN)
    assert m.mode == ConnectMode.OFF
