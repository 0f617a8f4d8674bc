"""Shared fixtures: deterministic sentiment and entry builders."""

import re
from datetime import datetime, timedelta

import pytest
from unittest.mock import patch

POSITIVE_WORDS = {"grateful", "great", "happy", "proud", "calm", "good", "love", "excited", "joy", "wonderful"}
NEGATIVE_WORDS = {"awful", "terrible", "stressed", "overwhelmed", "bad", "anxious", "exhausted", "sad", "hate", "tense"}


class FakeVader:
    """Word-list stand-in for VADER so tests never need the NLTK lexicon."""

    def polarity_scores(self, text):
        tokens = re.findall(r"[a-z]+", (text or "").lower())
        score = sum(t in POSITIVE_WORDS for t in tokens) - sum(t in NEGATIVE_WORDS for t in tokens)
        return {"compound": max(-1.0, min(1.0, score * 0.4))}


@pytest.fixture(autouse=True)
def fake_vader():
    with patch("prompt_engine.sentiment._get_analyzer", return_value=FakeVader()):
        yield


@pytest.fixture(autouse=True)
def default_env(monkeypatch):
    monkeypatch.setenv("STATE_BACKEND", "memory")
    monkeypatch.setenv("EXPANSION_ENABLED", "true")


def make_entries(contents, moods=None, start=datetime(2026, 10, 10, 19, 0)):
    moods = moods or [None] * len(contents)
    return [
        {
            "id": str(i),
            "content": content,
            "mood": mood,
            "createdAt": (start + timedelta(days=i)).isoformat(),
        }
        for i, (content, mood) in enumerate(zip(contents, moods))
    ]


WORK_ENTRY = (
    "The project deadline moved again and my manager scheduled another meeting with the client. "
    "I want to plan tomorrow carefully, decide on one priority, and keep my evening free so I can "
    "rest and think about what matters most."
)


@pytest.fixture
def work_entries():
    """Six long work entries: enough signal for expansion to be allowed."""
    return make_entries([WORK_ENTRY] * 6)
