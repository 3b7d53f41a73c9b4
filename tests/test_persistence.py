"""Tests for persistence backends."""

import json
import tempfile
from pathlib import Path

import pytest

from logigramme_mcp.persistence import InMemoryPersistence, JsonFilePersistence, PersistenceError


def test_json_file_round_trip() -> None:
    with tempfile.TemporaryDirectory() as tmp:
        store = JsonFilePersistence(Path(tmp) / "nested")
        assert store.load("P-1") is None
        doc = {"nodes": [{"id": "a"}], "edges": [], "legend": []}
        store.save("P-1", doc)
        assert store.load("P-1") == doc
        saved = json.loads((Path(tmp) / "nested" / "P-1.json").read_text(encoding="utf-8"))
        assert saved == doc
        assert not (Path(tmp) / "nested" / "P-1.json.tmp").exists()


def test_json_file_rejects_unsafe_ids() -> None:
    store = JsonFilePersistence(tempfile.gettempdir())
    with pytest.raises(PersistenceError):
        store.save("../escape", {})


def test_json_file_corrupt_content() -> None:
    with tempfile.TemporaryDirectory() as tmp:
        Path(tmp, "P.json").write_text("{broken", encoding="utf-8")
        Path(tmp, "L.json").write_text("[1, 2]", encoding="utf-8")
        store = JsonFilePersistence(tmp)
        with pytest.raises(PersistenceError):
            store.load("P")
        with pytest.raises(PersistenceError) as exc:
            store.load("L")
        assert "document object" in exc.value.message


def test_in_memory_isolates_copies() -> None:
    store = InMemoryPersistence()
    doc = {"nodes": []}
    store.save("P", doc)
    doc["nodes"].append({"id": "x"})
    assert store.load("P") == {"nodes": []}
    store.fail_saves = True
    with pytest.raises(PersistenceError):
        store.save("P", doc)
    assert store.save_count == 1
