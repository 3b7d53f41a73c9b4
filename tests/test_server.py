"""Tests for the MCP server tools (editor, edit, connect_mode)."""

import json
import tempfile

from logigramme_mcp.persistence import InMemoryPersistence, JsonFilePersistence
from logigramme_mcp.server import (
    _editors,
    configure_persistence,
    connect_mode,
    edit,
    editor,
    shape_catalog,
)

_store = InMemoryPersistence()

_THREE = json.dumps({
    "nodes": [
        {"id": "a", "label": "A", "position": {"x": 10, "y": 0}},
        {"id": "b", "label": "B", "position": {"x": 50, "y": 100}},
        {"id": "c", "label": "C", "position": {"x": 30, "y": 200}},
    ],
    "edges": [],
})


def setup_function() -> None:
    """Fresh registry and storage for every test."""
    global _store
    _editors.clear()
    _store = InMemoryPersistence()
    configure_persistence(_store)


def _open_three(pid: str = "P1") -> None:
    editor(action="open", process_id=pid)
    editor(action="load_json", process_id=pid, json_content=_THREE)


def _graph(pid: str) -> dict:
    return json.loads(editor(action="get_json", process_id=pid))


def test_open_builds_from_steps() -> None:
    result = json.loads(editor(action="open", process_id="P1", steps=[
        {"key": "S1", "displayName": "Receive order"},
        {"key": "S2", "displayName": "Check stock"},
        {"key": "S3"},
    ]))
    status = result["status"]
    assert status["nodes"] == 3
    assert status["edges"] == 2
    assert status["dirty"] is False
    doc = _graph("P1")
    assert [n["id"] for n in doc["nodes"]] == ["S1", "S2", "S3"]
    assert doc["nodes"][2]["label"] == "S3"
    assert doc["entryNodeId"] == "S1"


def test_errors_are_strings() -> None:
    assert editor(action="explode").startswith("Error: Unknown editor action")
    assert "not open" in edit(action="undo", process_id="nope")
    assert "may only contain" in editor(action="get_json", process_id="../x")
    editor(action="open", process_id="P1")
    assert edit(action="add_node", process_id="P1", shape="hexagon").startswith("Error: Unknown shape")
    assert "Unknown style key" in edit(
        action="update_style", process_id="P1", node_id="a", style={"opacity": 1},
    )
    assert edit(action="drag_move", process_id="P1", x=1, y=1).startswith("Error: no drag")
    assert "not found" in connect_mode(action="click_node", process_id="P1", node_id="ghost")


def test_add_node_is_snapped_and_selected() -> None:
    editor(action="open", process_id="P1")
    result = json.loads(edit(action="add_node", process_id="P1", shape="task", x=33, y=47))
    node = result["node"]
    assert node["position"] == {"x": 30, "y": 50}
    assert node["label"] == "Task"
    assert node["selected"] is True
    assert result["status"]["selected_nodes"] == [node["id"]]
    assert result["status"]["can_undo"] is True


def test_fanout_via_tool() -> None:
    _open_three()
    assert json.loads(connect_mode(action="enter", process_id="P1", mode="fanout"))[
        "status"]["connect_mode"] == "fanout"
    results = [
        json.loads(connect_mode(action="click_node", process_id="P1", node_id=n))["result"]
        for n in ("a", "b", "b", "c")
    ]
    assert results == ["armed", "connected", "duplicate", "connected"]
    edges = [(e["from"], e["to"]) for e in _graph("P1")["edges"]]
    assert edges == [("a", "b"), ("a", "c")]

    status = json.loads(connect_mode(action="click_pane", process_id="P1"))["status"]
    assert status["connect_mode"] == "off"
    assert status["connect_source"] is None


def test_chain_and_status_views() -> None:
    _open_three()
    connect_mode(action="enter", process_id="P1", mode="chain")
    for n in ("a", "b", "c"):
        connect_mode(action="click_node", process_id="P1", node_id=n)
    view = json.loads(connect_mode(action="status", process_id="P1"))
    assert view["status"]["connect_source"] == "c"
    assert [(e["from"], e["to"]) for e in view["edges"]] == [("a", "b"), ("b", "c")]
    assert any(n.get("isSelectionSource") for n in view["nodes"] if n["id"] == "c")


def test_click_outside_connect_mode_reports_focus() -> None:
    editor(action="open", process_id="P1", steps=[{"key": "S1"}, {"key": "S2"}])
    result = json.loads(connect_mode(action="click_node", process_id="P1", node_id="S2"))
    assert result["result"] == "ignored"
    assert result["focused_ref"] == "S2"
    assert result["status"]["selected_nodes"] == ["S2"]


def test_align_and_keyboard_undo() -> None:
    _open_three()
    edit(action="select", process_id="P1", node_ids=["a", "b", "c"])
    result = json.loads(edit(action="align", process_id="P1", alignment="LEFT"))
    assert result["aligned"] is True
    assert {n["position"]["x"] for n in _graph("P1")["nodes"]} == {10}

    result = json.loads(edit(action="key", process_id="P1", key="z", ctrl=True))
    assert result["performed"] == "undo"
    assert [n["position"]["x"] for n in _graph("P1")["nodes"]] == [10, 50, 30]


def test_copy_paste_delete() -> None:
    _open_three()
    edit(action="connect", process_id="P1", source_id="a", target_id="b")
    edit(action="select", process_id="P1", node_ids=["a", "b"])
    assert json.loads(edit(action="copy", process_id="P1"))["copied"] == 2
    pasted = json.loads(edit(action="paste", process_id="P1", offset=[100, 0]))["pasted"]
    assert len(pasted) == 2 and not {"a", "b"} & set(pasted)
    doc = _graph("P1")
    assert len(doc["nodes"]) == 5
    assert len(doc["edges"]) == 2

    edit(action="select", process_id="P1", node_ids=["a"])
    assert json.loads(edit(action="delete", process_id="P1"))["deleted"] is True
    doc = _graph("P1")
    assert "a" not in {n["id"] for n in doc["nodes"]}
    assert all(e["from"] != "a" for e in doc["edges"])


def test_save_and_failed_save() -> None:
    _open_three()
    result = json.loads(editor(action="save", process_id="P1"))
    assert result["saved"] is True
    assert result["status"]["dirty"] is False
    assert [n["id"] for n in _store.documents["P1"]["nodes"]] == ["a", "b", "c"]

    edit(action="add_node", process_id="P1", shape="task")
    _store.fail_saves = True
    result = json.loads(editor(action="save", process_id="P1"))
    assert result["saved"] is False
    assert result["status"]["dirty"] is True
    assert result["notifications"][0]["level"] == "error"
    assert len(_store.documents["P1"]["nodes"]) == 3

    # Reopening reads back the last successful save
    editor(action="close", process_id="P1")
    reopened = json.loads(editor(action="open", process_id="P1"))
    assert reopened["status"]["nodes"] == 3


def test_save_to_json_files() -> None:
    with tempfile.TemporaryDirectory() as tmp:
        configure_persistence(JsonFilePersistence(tmp))
        _open_three("FILE-1")
        assert json.loads(editor(action="save", process_id="FILE-1"))["saved"] is True
        with open(f"{tmp}/FILE-1.json", encoding="utf-8") as fh:
            stored = json.load(fh)
        assert [n["id"] for n in stored["nodes"]] == ["a", "b", "c"]


def test_load_json_rejects_garbage() -> None:
    editor(action="open", process_id="P1")
    result = json.loads(editor(action="load_json", process_id="P1", json_content="{nope"))
    assert result["notifications"][0]["message"].startswith("Invalid JSON")
    assert result["status"]["nodes"] == 0


def test_export_validate_and_list() -> None:
    _open_three()
    xml = editor(action="export_drawio", process_id="P1")
    assert "<mxfile" in xml and 'id="legend"' in xml

    report = json.loads(editor(action="validate", process_id="P1"))
    # Three orphans plus missing start and end events
    assert report["summary"]["info"] == 5
    assert len(report["issues"]) == 5

    sessions = json.loads(editor(action="list"))
    assert [s["process_id"] for s in sessions] == ["P1"]
    assert editor(action="close", process_id="P1") == "Process 'P1' closed."
    assert json.loads(editor(action="list")) == []


def test_set_steps_resyncs() -> None:
    editor(action="open", process_id="P1", steps=[{"key": "S1"}, {"key": "S2"}])
    result = json.loads(editor(action="set_steps", process_id="P1", steps=[
        {"key": "S1"}, {"key": "S3"},
    ]))
    assert result["synced"] is True
    ids = [n["id"] for n in _graph("P1")["nodes"]]
    assert ids == ["S1", "S3"]
    assert editor(action="set_steps", process_id="P1", steps=["bad"]).startswith("Error:")


def test_drag_session_and_legend() -> None:
    _open_three()
    edit(action="drag_start", process_id="P1", node_id="b")
    guides = json.loads(edit(action="drag_move", process_id="P1", x=14, y=100))
    # Grid snap lands b on a's left edge
    assert guides["dx"] == 0
    assert guides["guides"]
    assert json.loads(edit(action="drag_end", process_id="P1"))["moved"] is True
    assert _graph("P1")["nodes"][1]["position"]["x"] == 10

    result = json.loads(edit(action="legend_add", process_id="P1",
                             legend_entry={"label": "Audit", "color": "#000000"}))
    assert result["legend_item"]["label"] == "Audit"
    assert edit(action="legend_delete", process_id="P1", legend_index=99).startswith("Error:")


def test_shapes_listing() -> None:
    cats = json.loads(editor(action="shapes"))
    keys = {s["key"] for c in cats for s in c["shapes"]}
    assert {"event-start", "gateway-exclusive", "text-annotation"} <= keys
    assert "event-start" in shape_catalog()
