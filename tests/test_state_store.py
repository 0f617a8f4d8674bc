"""Tests for selection store backends and the store factory."""

import json
import os

import pytest

from config import load_config
from state.factory import get_selection_store, user_namespace
from prompt_engine.feedback import SelectionState
from state.jsonl_store import COMPACT_MIN_LINES, JsonlSelectionStore
from state.memory_store import InMemorySelectionStore


@pytest.fixture(params=["memory", "jsonl"])
def store(request, tmp_path):
    if request.param == "memory":
        return InMemorySelectionStore("test")
    return JsonlSelectionStore(str(tmp_path / "u" / "stats.jsonl"))


def test_set_get_delete(store):
    store.set("a", {"shown": 1}, now=10.0)
    assert store.get("a") == {"shown": 1, "saved_at": 10.0}
    assert store.keys() == ["a"]
    store.delete("a")
    assert store.get("a") is None
    assert store.keys() == []


def test_get_returns_a_copy(store):
    store.set("a", {"shown": 1}, now=1.0)
    rec = store.get("a")
    rec["shown"] = 99
    assert store.get("a")["shown"] == 1


def test_prune_by_ttl(store):
    store.set("old", {}, now=0.0)
    store.set("new", {}, now=90.0)
    removed = store.prune_by_ttl_and_size(60, None, now=100.0)
    assert removed == 1
    assert store.keys() == ["new"]


def test_prune_by_size_keeps_most_recent(store):
    for i, key in enumerate(["a", "b", "c", "d"]):
        store.set(key, {}, now=float(i))
    store.set("a", {}, now=10.0)
    store.prune_by_ttl_and_size(None, 2, now=11.0)
    assert sorted(store.keys()) == ["a", "d"]


def test_items(store):
    store.set("a", {"x": 1}, now=1.0)
    assert store.items() == {"a": {"x": 1, "saved_at": 1.0}}


def test_jsonl_persists_across_instances(tmp_path):
    path = str(tmp_path / "ns" / "stats.jsonl")
    first = JsonlSelectionStore(path)
    first.set("a", {"shown": 1}, now=1.0)
    first.set("b", {"shown": 2}, now=2.0)
    first.set("a", {"shown": 3}, now=3.0)
    first.delete("b")

    second = JsonlSelectionStore(path)
    assert second.keys() == ["a"]
    assert second.get("a")["shown"] == 3


def test_jsonl_skips_corrupt_lines_and_compacts(tmp_path):
    path = tmp_path / "stats.jsonl"
    path.write_text(
        json.dumps({"key": "a", "value": {"saved_at": 1.0}}) + "\n"
        + "{not json\n"
        + json.dumps({"value": {"missing": "key"}}) + "\n",
        encoding="utf-8",
    )
    store = JsonlSelectionStore(str(path))
    assert store.keys() == ["a"]
    assert store.skipped_lines == 2

    store.prune_by_ttl_and_size(None, None, now=2.0)
    lines = path.read_text(encoding="utf-8").splitlines()
    assert len(lines) == 1
    assert not os.path.exists(str(path) + ".tmp")


def test_user_namespace_is_stable_and_opaque():
    assert user_namespace("alice") == user_namespace("alice")
    assert user_namespace("alice") != user_namespace("bob")
    assert "alice" not in user_namespace("alice")
    assert len(user_namespace("")) == 16


def test_factory_memory_backend(monkeypatch):
    monkeypatch.setenv("STATE_BACKEND", "memory")
    store = get_selection_store("alice", "stats", load_config())
    assert isinstance(store, InMemorySelectionStore)


def test_factory_jsonl_backend(monkeypatch, tmp_path):
    monkeypatch.setenv("STATE_BACKEND", "jsonl")
    monkeypatch.setenv("STATE_DIR", str(tmp_path))
    store = get_selection_store("alice", "expansion", load_config())
    assert isinstance(store, JsonlSelectionStore)
    assert store.path == os.path.join(str(tmp_path), user_namespace("alice"), "expansion.jsonl")


def test_factory_unknown_backend_falls_back(monkeypatch):
    monkeypatch.setenv("STATE_BACKEND", "redis")
    assert isinstance(get_selection_store("alice", "stats", load_config()), InMemorySelectionStore)


def test_jsonl_compacts_repeated_writes(tmp_path):
    path = tmp_path / "ns" / "stats.jsonl"
    state = SelectionState(JsonlSelectionStore(str(path)), max_items=5)
    prompt = "What felt most important to you today?"
    for i in range(2000):
        state.mark_shown(prompt, now=float(i))

    lines = path.read_text(encoding="utf-8").splitlines()
    assert len(lines) <= COMPACT_MIN_LINES

    reloaded = SelectionState(JsonlSelectionStore(str(path)), max_items=5)
    assert reloaded.get(prompt).shown == 2000


def test_jsonl_compaction_keeps_latest_values(tmp_path):
    path = str(tmp_path / "stats.jsonl")
    store = JsonlSelectionStore(path)
    for i in range(COMPACT_MIN_LINES + 5):
        store.set("a", {"n": i}, now=float(i))
        store.set("b", {"n": -i}, now=float(i))

    assert store.line_count <= COMPACT_MIN_LINES
    replayed = JsonlSelectionStore(path)
    assert replayed.get("a")["n"] == COMPACT_MIN_LINES + 4
    assert replayed.get("b")["n"] == -(COMPACT_MIN_LINES + 4)
