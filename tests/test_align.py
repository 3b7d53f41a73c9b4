"""Tests for align and distribute operators."""

import pytest

from logigramme_mcp.align import align_nodes, can_align, can_distribute, distribute_nodes
from logigramme_mcp.models import Node, NodeStyle, Position


def _box(nid: str, x: float, y: float, w: float = 100, h: float = 50) -> Node:
    return Node(nid, position=Position(x, y), style=NodeStyle(width=w, height=h))


def test_align_left() -> None:
    nodes = [_box("a", 10, 0), _box("b", 50, 100), _box("c", 30, 200)]
    out = align_nodes(nodes, {"a", "b", "c"}, "left")
    assert [n.position.x for n in out] == [10, 10, 10]
    assert [n.position.y for n in out] == [0, 100, 200]


def test_align_right_uses_max_edge() -> None:
    nodes = [_box("a", 0, 0, w=100), _box("b", 50, 100, w=200)]
    out = align_nodes(nodes, {"a", "b"}, "right")
    assert [n.bounds().right for n in out] == [250, 250]


def test_align_center_averages_centres() -> None:
    nodes = [_box("a", 0, 0, w=100), _box("b", 100, 100, w=100)]
    out = align_nodes(nodes, {"a", "b"}, "center")
    # centres 50 and 150 -> 100
    assert [n.bounds().cx for n in out] == [100, 100]


def test_align_middle_and_bottom() -> None:
    nodes = [_box("a", 0, 0, h=40), _box("b", 200, 100, h=60)]
    middle = align_nodes(nodes, {"a", "b"}, "middle")
    assert middle[0].bounds().cy == middle[1].bounds().cy
    bottom = align_nodes(nodes, {"a", "b"}, "bottom")
    assert [n.bounds().bottom for n in bottom] == [160, 160]


def test_align_snaps_computed_positions() -> None:
    nodes = [_box("a", 0, 0, w=100), _box("b", 13, 100, w=100)]
    out = align_nodes(nodes, {"a", "b"}, "center", grid_size=10)
    assert all(n.position.x % 10 == 0 for n in out)


def test_align_leaves_unselected_nodes() -> None:
    nodes = [_box("a", 10, 0), _box("b", 50, 0), _box("z", 999, 0)]
    out = align_nodes(nodes, {"a", "b"}, "left")
    assert out[2].position.x == 999
    # inputs are not mutated
    assert nodes[1].position.x == 50


def test_align_needs_two_nodes() -> None:
    nodes = [_box("a", 10, 0), _box("b", 50, 0)]
    out = align_nodes(nodes, {"a"}, "left")
    assert [n.position.x for n in out] == [10, 50]
    assert not can_align(1) and can_align(2)


def test_align_rejects_unknown_mode() -> None:
    with pytest.raises(ValueError):
        align_nodes([], set(), "diagonal")


def test_distribute_horizontal_equal_centre_gaps() -> None:
    nodes = [_box("a", 0, 0), _box("b", 60, 30), _box("c", 150, 0), _box("d", 400, 10)]
    out = distribute_nodes(nodes, {"a", "b", "c", "d"}, "horizontal")
    centres = sorted(n.bounds().cx for n in out)
    gaps = {round(centres[i + 1] - centres[i], 6) for i in range(3)}
    assert len(gaps) == 1
    # extremes stay put, cross axis untouched
    assert out[0].position == Position(0, 0)
    assert out[3].position == Position(400, 10)
    assert out[1].position.y == 30


def test_distribute_vertical_sorts_by_position() -> None:
    nodes = [_box("low", 0, 300), _box("top", 0, 0), _box("mid", 0, 20)]
    out = {n.id: n for n in distribute_nodes(nodes, {"low", "top", "mid"}, "vertical")}
    assert out["top"].position.y == 0
    assert out["low"].position.y == 300
    assert out["mid"].position.y == 150


def test_distribute_needs_three_nodes() -> None:
    nodes = [_box("a", 0, 0), _box("b", 500, 0)]
    out = distribute_nodes(nodes, {"a", "b"}, "horizontal")
    assert [n.position.x for n in out] == [0, 500]
    assert not can_distribute(2) and can_distribute(3)


def test_align_left_and_top_snap_to_grid() -> None:
    nodes = [_box("a", 13, 27), _box("b", 57, 64)]
    left = align_nodes(nodes, {"a", "b"}, "left", grid_size=10)
    assert [n.position.x for n in left] == [10, 10]
    top = align_nodes(nodes, {"a", "b"}, "top", grid_size=10)
    assert [n.position.y for n in top] == [30, 30]
