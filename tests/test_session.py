"""Tests for per-user sessions and the session registry."""

import time

from config import load_config
from prompt_engine.session import SessionRegistry, UserSession
from prompt_engine.validation import validate_prompt
from test_expansion import CALM_STEP, BlockingAdapter


def test_registry_reuses_sessions():
    registry = SessionRegistry(load_config(), max_sessions=4)
    try:
        assert registry.get("alice") is registry.get("alice")
        assert registry.get("") is registry.get("anonymous")
    finally:
        registry.shutdown()


def test_registry_evicts_least_recently_used():
    registry = SessionRegistry(load_config(), max_sessions=2)
    try:
        alice = registry.get("alice")
        bob = registry.get("bob")
        registry.get("alice")
        registry.get("carol")
        assert len(registry) == 2
        assert registry.get("alice") is alice
        assert registry.get("bob") is not bob
    finally:
        registry.shutdown()


def test_registry_limit_comes_from_config(monkeypatch):
    monkeypatch.setenv("MAX_SESSIONS", "3")
    registry = SessionRegistry(load_config())
    try:
        for i in range(10):
            registry.get(f"user-{i}")
        assert registry.max_sessions == 3
        assert len(registry) == 3
    finally:
        registry.shutdown()


def test_expanded_prompts_wait_is_bounded(monkeypatch, work_entries):
    monkeypatch.setenv("EXPANSION_WAIT_SECONDS", "0.2")
    adapter = BlockingAdapter([CALM_STEP])
    session = UserSession("slow", load_config(), adapter=adapter, seed=1)
    try:
        start = time.time()
        prompts = session.expanded_prompts(work_entries)
        assert time.time() - start < 3
        assert prompts
        assert all(validate_prompt(p) for p in prompts)
        assert not any(p.startswith("What is one calm step") for p in prompts)
    finally:
        adapter.release.set()
        session.close()
