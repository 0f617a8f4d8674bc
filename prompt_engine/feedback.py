"""
Prompt telemetry: shown/completed counts and the weighting derived from them.

Stats are keyed by the normalized prompt text. The pure `mark_*` helpers
return a new mapping; `SelectionState` applies the same updates to a
per-user SelectionStore and caps its size with LRU eviction.
"""

from __future__ import annotations

import time
from typing import Any, Dict, Mapping, Optional, Set

from prompt_engine.validation import normalize_prompt_key
from schemas.prompting import PromptStats
from state.base import SAVED_AT, SelectionStore

DEFAULT_MAX_ITEMS = 500


def _coerce_stats(raw: Any) -> PromptStats:
    if isinstance(raw, PromptStats):
        return raw
    if isinstance(raw, dict):
        return PromptStats(
            text=str(raw.get("text") or ""),
            shown=int(raw.get("shown") or 0),
            completed=int(raw.get("completed") or 0),
            total_words=int(raw.get("total_words", raw.get("totalWords")) or 0),
            last_shown_at=raw.get("last_shown_at"),
            last_completed_at=raw.get("last_completed_at"),
        )
    return PromptStats()


def get_prompt_perf(stats: Optional[Mapping[str, Any]], prompt_text: str) -> PromptStats:
    if not stats or not prompt_text:
        return PromptStats(text=prompt_text or "")
    key = normalize_prompt_key(prompt_text)
    raw = stats.get(key, stats.get(prompt_text))
    perf = _coerce_stats(raw)
    if not perf.text:
        perf = perf.model_copy(update={"text": prompt_text})
    return perf


def score_prompt(stats: Optional[Mapping[str, Any]], prompt_text: str) -> float:
    """
    Engagement weight for a prompt.

    Favors prompts that get completed and produce longer entries, plus a
    small exploration bonus that decays with each showing.
    """
    perf = get_prompt_perf(stats, prompt_text)
    completion_rate = perf.completed / max(1, perf.shown)
    avg_words = perf.total_words / perf.completed if perf.completed > 0 else 0.0
    quality_boost = min(avg_words, 220) / 160
    completion_boost = completion_rate * 0.8
    exploration_boost = max(0.0, 0.35 - perf.shown * 0.07)
    return 1 + quality_boost + completion_boost + exploration_boost


def count_words(content: Optional[str]) -> int:
    return len(content.split()) if content else 0


def mark_prompt_shown(stats: Optional[Mapping[str, Any]], prompt_text: str, now: Optional[float] = None) -> Dict[str, Any]:
    out = dict(stats or {})
    if not prompt_text:
        return out
    perf = get_prompt_perf(stats, prompt_text)
    out[normalize_prompt_key(prompt_text)] = perf.model_copy(update={
        "shown": perf.shown + 1,
        "last_shown_at": time.time() if now is None else now,
    })
    return out


def mark_prompt_completed(
    stats: Optional[Mapping[str, Any]],
    prompt_text: str,
    content: Optional[str],
    now: Optional[float] = None,
) -> Dict[str, Any]:
    out = dict(stats or {})
    if not prompt_text:
        return out
    perf = get_prompt_perf(stats, prompt_text)
    out[normalize_prompt_key(prompt_text)] = perf.model_copy(update={
        "completed": perf.completed + 1,
        "total_words": perf.total_words + count_words(content),
        "last_completed_at": time.time() if now is None else now,
    })
    return out


class SelectionState:
    """Per-user novelty bookkeeping and engagement stats on top of a store."""

    def __init__(self, store: SelectionStore, max_items: int = DEFAULT_MAX_ITEMS) -> None:
        self.store = store
        self.max_items = max_items

    def stats(self) -> Dict[str, PromptStats]:
        out = {}
        for key, rec in self.store.items().items():
            rec = {k: v for k, v in rec.items() if k != SAVED_AT}
            out[key] = _coerce_stats(rec)
        return out

    def get(self, prompt_text: str) -> PromptStats:
        rec = self.store.get(normalize_prompt_key(prompt_text))
        perf = _coerce_stats(rec)
        return perf if perf.text else perf.model_copy(update={"text": prompt_text})

    @property
    def shown_keys(self) -> Set[str]:
        return {k for k, s in self.stats().items() if s.shown > 0}

    @property
    def used_keys(self) -> Set[str]:
        return {k for k, s in self.stats().items() if s.completed > 0}

    def _save(self, key: str, updated: Dict[str, Any], now: Optional[float]) -> None:
        perf = updated[key]
        self.store.set(key, perf.model_dump(), now=now)
        self.store.prune_by_ttl_and_size(None, self.max_items, now=now)

    def mark_shown(self, prompt_text: str, now: Optional[float] = None) -> Optional[PromptStats]:
        if not prompt_text:
            return None
        key = normalize_prompt_key(prompt_text)
        updated = mark_prompt_shown({key: self.get(prompt_text)}, prompt_text, now=now)
        self._save(key, updated, now)
        return updated[key]

    def mark_completed(self, prompt_text: str, content: Optional[str], now: Optional[float] = None) -> Optional[PromptStats]:
        if not prompt_text:
            return None
        key = normalize_prompt_key(prompt_text)
        updated = mark_prompt_completed({key: self.get(prompt_text)}, prompt_text, content, now=now)
        self._save(key, updated, now)
        return updated[key]
