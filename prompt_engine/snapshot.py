"""
Snapshot builder: collapses the most recent entries into one ContextSnapshot.

No raw phrases from entries ever leave this module; everything is reduced to
categorical tags drawn from the keyword tables, plus coarse counts.
"""

from __future__ import annotations

import re
from collections import Counter
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from prompt_engine import sentiment
from prompt_engine.keywords import (
    ACTION_KEYWORDS,
    CHECKLIST_KEYWORDS,
    DOMAIN_KEYWORDS,
    FIRST_PERSON_KEYWORDS,
    SENSITIVE_KEYWORDS,
    STATE_KEYWORDS,
    THIRD_PERSON_KEYWORDS,
)
from prompt_engine.signals import count_keyword_hits, pick_top_keys, tokenize
from prompt_engine.timeframe import compute_timeframe, get_season, get_time_theme, get_week_context
from schemas.journal import JournalEntry, Mood, coerce_entries
from schemas.prompting import ContextSnapshot

RECENT_ENTRY_LIMIT = 12

LOW_SIGNAL = "low_signal"
TASK_MODE = "task_mode"
THIRD_PERSON_HEAVY = "third_person_heavy"
SENSITIVE_MODE = "sensitive_mode"
POSITIVE_MODE = "positive_mode"
MODE_ORDER = [LOW_SIGNAL, TASK_MODE, THIRD_PERSON_HEAVY, SENSITIVE_MODE, POSITIVE_MODE]

PROMPT_MOODS = ("anxious", "reflective", "grateful", "stuck")
_MOOD_TO_PROMPT_MOOD = {
    "great": "grateful",
    "good": "reflective",
    "okay": "reflective",
    "bad": "stuck",
    "awful": "anxious",
}

_LIST_LINE = re.compile(r"^\s*(?:[-*•]|\d+[.)])\s+\S", re.MULTILINE)


def normalize_prompt_mood(mood: Optional[Mood]) -> Optional[str]:
    """Map a stored five-level mood onto the four moods that drive tone."""
    if mood is None:
        return None
    raw = mood.label.strip().lower()
    if raw in PROMPT_MOODS:
        return raw
    return _MOOD_TO_PROMPT_MOOD.get(raw)


def mood_to_tone(prompt_mood_trend: List[str]) -> str:
    if "anxious" in prompt_mood_trend:
        return "gentle"
    if "stuck" in prompt_mood_trend:
        return "neutral"
    if "grateful" in prompt_mood_trend:
        return "upbeat"
    return "gentle"


def recent_entries(entries: Iterable[Any], limit: int = RECENT_ENTRY_LIMIT) -> List[JournalEntry]:
    """Newest first, at most `limit`; ties keep caller order."""
    coerced = coerce_entries(entries)
    return sorted(coerced, key=lambda e: e.time_key(), reverse=True)[:limit]


def compute_domain_activation(domain_scores: Dict[str, int], strong_hits: Dict[str, int]) -> List[str]:
    # A single ambiguous word must never activate a domain on its own:
    # either two strong hits, or one strong hit backed by more signal.
    active = []
    for domain, total in domain_scores.items():
        strong = strong_hits.get(domain, 0)
        if strong >= 2 or (strong >= 1 and total >= 3):
            active.append(domain)
    return active


def _has_list_structure(content: str) -> bool:
    return len(_LIST_LINE.findall(content)) >= 2


def detect_modes(
    entry_count: int,
    avg_words_per_entry: float,
    tokens_all: List[str],
    sentiment_trend: int,
    list_like: bool = False,
) -> List[str]:
    modes = set()

    if entry_count < 2 or avg_words_per_entry < 12:
        modes.add(LOW_SIGNAL)

    if list_like or count_keyword_hits(tokens_all, CHECKLIST_KEYWORDS) > 0:
        modes.add(TASK_MODE)

    first_person = count_keyword_hits(tokens_all, FIRST_PERSON_KEYWORDS)
    third_person = count_keyword_hits(tokens_all, THIRD_PERSON_KEYWORDS)
    if third_person >= 4 and third_person > first_person * 2:
        modes.add(THIRD_PERSON_HEAVY)

    if count_keyword_hits(tokens_all, SENSITIVE_KEYWORDS) > 0:
        modes.add(SENSITIVE_MODE)

    if sentiment_trend >= 3:
        modes.add(POSITIVE_MODE)

    return [m for m in MODE_ORDER if m in modes]


def compute_confidence(entry_count: int, avg_words_per_entry: float, strong_domain_count: int, has_action: bool) -> float:
    signal_score = (
        (2 if entry_count >= 6 else 1 if entry_count >= 3 else 0)
        + (2 if avg_words_per_entry >= 35 else 1 if avg_words_per_entry >= 18 else 0)
        + (1 if strong_domain_count >= 1 else 0)
        + (1 if has_action else 0)
    )
    return max(0.0, min(1.0, signal_score / 6))


def build_prompt_context(
    entries: Optional[Iterable[Any]] = None,
    now: Optional[datetime] = None,
    limit: int = RECENT_ENTRY_LIMIT,
) -> ContextSnapshot:
    """
    Build the context snapshot used for prompt selection.

    Args:
        entries: Journal entries (JournalEntry objects or dicts), any order
        now: Evaluation time; defaults to the local wall clock
        limit: How many of the most recent entries to consider

    Returns:
        A fresh ContextSnapshot. An empty or missing entry list yields the
        general/low-signal defaults rather than an error.
    """
    now = now or datetime.now()
    time_theme = get_time_theme(now)
    week = get_week_context(now)
    recent = recent_entries(entries or [], limit)

    domain_scores = {d: 0 for d in DOMAIN_KEYWORDS}
    strong_hits = {d: 0 for d in DOMAIN_KEYWORDS}
    action_scores = {a: 0 for a in ACTION_KEYWORDS}
    state_scores = {s: 0 for s in STATE_KEYWORDS}
    mood_counts: Counter = Counter()
    prompt_mood_counts: Counter = Counter()

    tokens_all: List[str] = []
    total_words = 0
    sentiment_sum = 0
    list_like = False

    for entry in recent:
        content = entry.content
        tokens = tokenize(content)
        tokens_all.extend(tokens)
        total_words += len(tokens)
        list_like = list_like or _has_list_structure(content)

        if entry.mood is not None:
            mood_counts[entry.mood.label] += 1

        text_score = sentiment.score_text(content)
        sentiment_sum += text_score

        prompt_mood = normalize_prompt_mood(entry.mood)
        if prompt_mood is None:
            prompt_mood = normalize_prompt_mood(Mood(label=sentiment.mood_from_score(text_score)))
        if prompt_mood:
            prompt_mood_counts[prompt_mood] += 1

        for domain, tiers in DOMAIN_KEYWORDS.items():
            strong = count_keyword_hits(tokens, tiers["strong"])
            weak = count_keyword_hits(tokens, tiers["weak"])
            strong_hits[domain] += strong
            domain_scores[domain] += strong * 2 + weak

        for action, keys in ACTION_KEYWORDS.items():
            action_scores[action] += count_keyword_hits(tokens, keys)
        for state, keys in STATE_KEYWORDS.items():
            state_scores[state] += count_keyword_hits(tokens, keys)

    entry_count = len(recent)
    avg_words = int(round(total_words / entry_count)) if entry_count else 0
    prompt_mood_trend = [m for m, _n in prompt_mood_counts.most_common(3)]
    actions = pick_top_keys(action_scores, 2, 1)
    states = pick_top_keys(state_scores, 2, 1)

    active_domains = compute_domain_activation(domain_scores, strong_hits)
    domains = active_domains or ["general"]
    if domains == ["general"] and "plan" in actions:
        domains = ["responsibilities", "general"]

    strong_domain_count = sum(1 for d in active_domains if strong_hits[d] >= 1)
    confidence = compute_confidence(entry_count, avg_words, strong_domain_count, bool(actions))

    sentiment_trend = int(round(sentiment_sum / entry_count)) if entry_count else 0
    modes = detect_modes(entry_count, avg_words, tokens_all, sentiment_trend, list_like)

    return ContextSnapshot(
        domains=domains,
        actions=actions,
        states=states,
        tone=mood_to_tone(prompt_mood_trend),
        modes=modes,
        week_mode=week["week_mode"],
        day_name=week["day_name"],
        is_weekend=week["is_weekend"],
        month=now.month,
        season=get_season(now),
        sentiment_trend=sentiment_trend,
        time_theme=time_theme,
        confidence=confidence,
        entry_count=entry_count,
        avg_words_per_entry=avg_words,
        top_moods=[m for m, _n in mood_counts.most_common(2)],
        prompt_mood_trend=prompt_mood_trend,
        **compute_timeframe(time_theme, now),
    )
