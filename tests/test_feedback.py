"""Tests for prompt telemetry and engagement weighting."""

import pytest

from prompt_engine.feedback import (
    SelectionState,
    get_prompt_perf,
    mark_prompt_completed,
    mark_prompt_shown,
    score_prompt,
)
from schemas.prompting import PromptStats
from state.memory_store import InMemorySelectionStore

PROMPT = "What felt most important to you today?"


def test_score_prompt_unseen_gets_exploration_bonus():
    assert score_prompt({}, PROMPT) == pytest.approx(1.35)
    assert score_prompt(None, PROMPT) == pytest.approx(1.35)


def test_score_prompt_decays_with_showings():
    stats = {PROMPT.lower(): {"shown": 5}}
    assert score_prompt(stats, PROMPT) == pytest.approx(1.0)


def test_score_prompt_rewards_completion_and_length():
    stats = {PROMPT.lower(): {"shown": 2, "completed": 2, "total_words": 320}}
    # 1 + 160/160 + 0.8 + (0.35 - 0.14)
    assert score_prompt(stats, PROMPT) == pytest.approx(3.01)


def test_score_prompt_caps_word_quality():
    stats = {PROMPT.lower(): {"shown": 10, "completed": 1, "total_words": 5000}}
    assert score_prompt(stats, PROMPT) == pytest.approx(1 + 220 / 160 + 0.08)


def test_mark_prompt_shown_is_pure():
    before = {}
    after = mark_prompt_shown(before, PROMPT, now=100.0)
    assert before == {}
    perf = after[PROMPT.lower()]
    assert perf.shown == 1
    assert perf.last_shown_at == 100.0
    assert perf.text == PROMPT


def test_mark_prompt_completed_accumulates_words():
    stats = mark_prompt_completed({}, PROMPT, "one two three", now=5.0)
    stats = mark_prompt_completed(stats, "  what felt most important to you today? ", "four five")
    perf = get_prompt_perf(stats, PROMPT)
    assert perf.completed == 2
    assert perf.total_words == 5


def test_mark_ignores_empty_prompt():
    assert mark_prompt_shown({}, "") == {}
    assert mark_prompt_completed({}, "", "words") == {}


def test_get_prompt_perf_reads_camel_case_words():
    perf = get_prompt_perf({PROMPT.lower(): {"completed": 1, "totalWords": 12}}, PROMPT)
    assert perf.total_words == 12


def test_selection_state_round_trip():
    state = SelectionState(InMemorySelectionStore("u"))
    state.mark_shown(PROMPT)
    state.mark_completed(PROMPT, "a short answer")
    perf = state.get(PROMPT)
    assert isinstance(perf, PromptStats)
    assert (perf.shown, perf.completed, perf.total_words) == (1, 1, 3)
    assert state.shown_keys == {PROMPT.lower()}
    assert state.used_keys == {PROMPT.lower()}


def test_selection_state_evicts_least_recently_used():
    state = SelectionState(InMemorySelectionStore("u"), max_items=2)
    state.mark_shown("What felt most important to you today?", now=1.0)
    state.mark_shown("What moment today felt most like you?", now=2.0)
    state.mark_shown("What felt most important to you today?", now=3.0)
    state.mark_shown("What can you let go of before tonight?", now=4.0)
    assert set(state.stats()) == {
        "what felt most important to you today?",
        "what can you let go of before tonight?",
    }
