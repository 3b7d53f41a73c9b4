"""Tests for copy / paste / duplicate / delete."""

from logigramme_mcp.commands import (
    Clipboard,
    copy_selection,
    delete_selection,
    duplicate_selection,
    has_edge,
    paste_clipboard,
    prune_dangling_edges,
)
from logigramme_mcp.models import Edge, Node, Position


def _graph() -> tuple[list[Node], list[Edge]]:
    nodes = [
        Node("a", label="A", position=Position(0, 0), source_ref="ROW-A"),
        Node("b", label="B", position=Position(300, 0)),
        Node("c", label="C", position=Position(600, 0)),
        Node("d", label="D", position=Position(900, 0)),
    ]
    edges = [
        Edge("ab", "a", "b"),
        Edge("bc", "b", "c"),
        Edge("ca", "c", "a"),
        Edge("cd", "c", "d"),
    ]
    return nodes, edges


def test_copy_takes_internal_edges_only() -> None:
    nodes, edges = _graph()
    clip = copy_selection(nodes, edges, {"a", "b"})
    assert [n.id for n in clip.nodes] == ["a", "b"]
    assert [e.id for e in clip.edges] == ["ab"]


def test_copy_is_independent_of_source() -> None:
    nodes, edges = _graph()
    nodes[0].selected = True
    clip = copy_selection(nodes, edges, {"a"})
    nodes[0].label = "changed"
    nodes[0].position.x = 777
    assert clip.nodes[0].label == "A"
    assert clip.nodes[0].position.x == 0
    assert not clip.nodes[0].selected


def test_paste_remaps_ids_and_offsets() -> None:
    nodes, edges = _graph()
    clip = copy_selection(nodes, edges, {"a", "b"})
    new_nodes, new_edges = paste_clipboard(clip, (20, 20), {n.id for n in nodes})

    assert len(new_nodes) == 2
    assert not {n.id for n in new_nodes} & {"a", "b", "c", "d"}
    first = new_nodes[0]
    assert first.position == Position(20, 20)
    assert first.source_ref is None
    assert all(n.selected for n in new_nodes)

    (edge,) = new_edges
    ids = {n.id for n in new_nodes}
    assert edge.source in ids and edge.target in ids
    assert edge.id != "ab"
    # clipboard stays reusable
    assert clip.nodes[0].id == "a"


def test_paste_drops_edges_leaving_the_copy() -> None:
    clip = Clipboard(nodes=[Node("x")], edges=[Edge("xy", "x", "y")])
    new_nodes, new_edges = paste_clipboard(clip)
    assert len(new_nodes) == 1
    assert new_edges == []


def test_paste_empty_clipboard() -> None:
    assert Clipboard().empty
    assert paste_clipboard(Clipboard()) == ([], [])


def test_duplicate_ids_are_disjoint() -> None:
    nodes, edges = _graph()
    new_nodes, new_edges = duplicate_selection(nodes, edges, {"a", "b", "c"})
    new_ids = {n.id for n in new_nodes}
    assert len(new_ids) == 3
    assert not new_ids & {n.id for n in nodes}
    assert len(new_edges) == 3  # ab, bc, ca
    for e in new_edges:
        assert e.source in new_ids and e.target in new_ids
    assert not {e.id for e in new_edges} & {e.id for e in edges}


def test_delete_cascades_to_touching_edges_only() -> None:
    nodes, edges = _graph()
    kept_nodes, kept_edges = delete_selection(nodes, edges, {"c"})
    assert [n.id for n in kept_nodes] == ["a", "b", "d"]
    assert [e.id for e in kept_edges] == ["ab"]


def test_delete_cascade_for_every_node() -> None:
    nodes, edges = _graph()
    for n in nodes:
        _, kept = delete_selection(nodes, edges, {n.id})
        expected = [e for e in edges if e.source != n.id and e.target != n.id]
        assert kept == expected


def test_delete_selected_edges() -> None:
    nodes, edges = _graph()
    kept_nodes, kept_edges = delete_selection(nodes, edges, (), {"bc"})
    assert len(kept_nodes) == 4
    assert [e.id for e in kept_edges] == ["ab", "ca", "cd"]


def test_has_edge_is_directional() -> None:
    _, edges = _graph()
    assert has_edge(edges, "a", "b")
    assert not has_edge(edges, "b", "a")


def test_prune_dangling_edges() -> None:
    nodes, edges = _graph()
    kept = prune_dangling_edges(nodes[:2], edges)
    assert [e.id for e in kept] == ["ab"]
