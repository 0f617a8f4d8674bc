"""
Prompt selection: weighted draws over gated templates, novelty bookkeeping,
and the degradation order used when the user asks for a new prompt.
"""

from __future__ import annotations

import logging
import random
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Set, Tuple, TypeVar

from prompt_engine.catalog import TEMPLATE_LIBRARY, UNIVERSAL_PROMPTS, static_fallback_prompts
from prompt_engine.feedback import SelectionState, score_prompt
from prompt_engine.gating import MIN_WEIGHT, gate_templates, score_template
from prompt_engine.snapshot import build_prompt_context
from prompt_engine.validation import normalize_prompt_key, normalize_whitespace, validate_prompt
from schemas.prompting import ContextSnapshot, PromptPick, Template

T = TypeVar("T")

CANDIDATE_COUNT = 20
FALLBACK_COUNT = 24
POOL_EXHAUSTED_STATUS = "Finding fresh prompts for you…"
BASE_RELEVANCE = 1.0

_PLACEHOLDER_FIELDS = ("timeframe", "timeframe_next", "timeframe_end")


def render_template(text: str, snapshot: ContextSnapshot) -> str:
    out = text or ""
    for name in _PLACEHOLDER_FIELDS:
        out = out.replace("{" + name + "}", str(getattr(snapshot, name, "") or ""))
    return normalize_whitespace(out)


def weighted_pick(items: Sequence[T], weight_fn: Callable[[T], float], rng: Optional[random.Random] = None) -> Optional[T]:
    if not items:
        return None
    if len(items) == 1:
        return items[0]
    rows = [(item, max(MIN_WEIGHT, weight_fn(item))) for item in items]
    total = sum(w for _item, w in rows)
    n = (rng or random).random() * total
    for item, w in rows:
        n -= w
        if n <= 0:
            return item
    return rows[-1][0]


def build_scored_batch(
    snapshot: ContextSnapshot,
    exclude_keys: Optional[Set[str]] = None,
    max_results: int = 12,
    templates: Optional[Iterable[Template]] = None,
    rng: Optional[random.Random] = None,
    top_up: bool = True,
) -> List[Tuple[str, float]]:
    """
    Draw up to `max_results` rendered prompts without replacement, each paired
    with the relevance score of the template it came from.

    Each template is drawn at most once, weighted by relevance. Renders that
    repeat an excluded key or fail validation are skipped. When `top_up` is
    set, universal prompts fill whatever the draw could not; they carry the
    base relevance of 1.0.

    `exclude_keys` is updated in place with every key that was emitted.
    """
    exclude_keys = exclude_keys if exclude_keys is not None else set()
    pool = gate_templates(templates if templates is not None else TEMPLATE_LIBRARY, snapshot)

    out: List[Tuple[str, float]] = []
    remaining = list(pool)
    used_intents: Set[str] = set()

    while len(out) < max_results and remaining:
        pick = weighted_pick(remaining, lambda t: score_template(t, snapshot, used_intents), rng)
        remaining.remove(pick)

        rendered = render_template(pick.text, snapshot)
        key = normalize_prompt_key(rendered)
        if not key or key in exclude_keys:
            continue
        if not validate_prompt(rendered):
            logging.debug(f"Rejected rendered template {pick.id}")
            continue

        if pick.actions:
            used_intents.add(pick.actions[0])
        exclude_keys.add(key)
        out.append((rendered, score_template(pick, snapshot)))

    if top_up and len(out) < max_results:
        for p in UNIVERSAL_PROMPTS:
            key = normalize_prompt_key(p)
            if key in exclude_keys or not validate_prompt(p):
                continue
            exclude_keys.add(key)
            out.append((p, BASE_RELEVANCE))
            if len(out) >= max_results:
                break

    return out[:max_results]


def build_prompt_batch(
    snapshot: ContextSnapshot,
    exclude_keys: Optional[Set[str]] = None,
    max_results: int = 12,
    templates: Optional[Iterable[Template]] = None,
    rng: Optional[random.Random] = None,
    top_up: bool = True,
) -> List[str]:
    """Prompt texts of `build_scored_batch`, in draw order."""
    return [p for p, _relevance in build_scored_batch(snapshot, exclude_keys, max_results, templates, rng, top_up)]


def relevance_by_key(scored: Iterable[Tuple[str, float]]) -> Dict[str, float]:
    return {normalize_prompt_key(p): relevance for p, relevance in scored}


def get_scored_candidates(
    entries: Optional[Iterable[Any]] = None,
    now: Optional[datetime] = None,
    rng: Optional[random.Random] = None,
    templates: Optional[Iterable[Template]] = None,
) -> List[Tuple[str, float]]:
    snapshot = build_prompt_context(entries or [], now=now)
    return build_scored_batch(snapshot, set(), CANDIDATE_COUNT, templates=templates, rng=rng)


def get_prompt_candidates(
    entries: Optional[Iterable[Any]] = None,
    now: Optional[datetime] = None,
    rng: Optional[random.Random] = None,
    templates: Optional[Iterable[Template]] = None,
) -> List[str]:
    return [p for p, _relevance in get_scored_candidates(entries, now, rng, templates)]


def get_contextual_fallback_prompts(
    entries: Optional[Iterable[Any]] = None,
    now: Optional[datetime] = None,
    rng: Optional[random.Random] = None,
) -> List[str]:
    snapshot = build_prompt_context(entries or [], now=now)
    return build_prompt_batch(snapshot, set(), FALLBACK_COUNT, rng=rng)


def _exclude_list(exclude: Any) -> List[str]:
    if exclude is None:
        return []
    if isinstance(exclude, str):
        return [exclude]
    return [e for e in exclude if e]


def selection_weight(prompt_text: str, stats: Optional[Mapping[str, Any]], relevance: Optional[Mapping[str, float]] = None) -> float:
    """Engagement weight layered on the relevance of the prompt's template."""
    base = (relevance or {}).get(normalize_prompt_key(prompt_text), BASE_RELEVANCE)
    return base * score_prompt(stats, prompt_text)


def pick_from_pool(
    pool: Sequence[str],
    exclude: Any = None,
    stats: Optional[Mapping[str, Any]] = None,
    rng: Optional[random.Random] = None,
    relevance: Optional[Mapping[str, float]] = None,
) -> str:
    """
    Relevance x engagement weighted pick that avoids the excluded prompts.

    `relevance` maps normalized prompt keys to template scores; prompts not
    in it count as 1.0. Only when every pool member is excluded does an
    excluded prompt come back.
    """
    pool = [p for p in (pool or []) if p]
    excluded = {normalize_prompt_key(e) for e in _exclude_list(exclude)}
    choices = [p for p in pool if normalize_prompt_key(p) not in excluded]
    candidates = choices or pool
    if not candidates:
        return ""
    return weighted_pick(candidates, lambda p: selection_weight(p, stats, relevance), rng) or ""


def pick_prompt(
    exclude: Any = None,
    entries: Optional[Iterable[Any]] = None,
    stats: Optional[Mapping[str, Any]] = None,
    rng: Optional[random.Random] = None,
    now: Optional[datetime] = None,
) -> str:
    scored = get_scored_candidates(entries, now=now, rng=rng)
    return pick_from_pool([p for p, _r in scored], exclude, stats, rng, relevance=relevance_by_key(scored))


class PromptSelector:
    """
    Single-prompt selection for "shuffle" and "new entry".

    Tiers, in order: unseen-and-unused from the live pool; unseen-and-unused
    from the static fallback; shown but never used; anything except the
    immediately prior prompt. If nothing is left, a refill is requested and
    the current prompt stays with a status message.
    """

    def __init__(
        self,
        state: SelectionState,
        rng: Optional[random.Random] = None,
        templates_provider: Optional[Callable[[ContextSnapshot], Iterable[Template]]] = None,
        on_refill: Optional[Callable[[ContextSnapshot], None]] = None,
    ) -> None:
        self.state = state
        self.rng = rng or random.Random()
        self.templates_provider = templates_provider
        self.on_refill = on_refill

    def scored_live_pool(self, snapshot: ContextSnapshot) -> List[Tuple[str, float]]:
        templates = list(TEMPLATE_LIBRARY)
        if self.templates_provider is not None:
            extra = list(self.templates_provider(snapshot) or [])
            known = {t.id for t in templates}
            templates.extend(t for t in extra if t.id not in known)
        return build_scored_batch(snapshot, set(), FALLBACK_COUNT, templates=templates, rng=self.rng, top_up=False)

    def live_pool(self, snapshot: ContextSnapshot) -> List[str]:
        return [p for p, _relevance in self.scored_live_pool(snapshot)]

    def next_prompt(
        self,
        entries: Optional[Iterable[Any]] = None,
        current: Optional[str] = None,
        exclude: Any = None,
        now: Optional[datetime] = None,
        snapshot: Optional[ContextSnapshot] = None,
    ) -> PromptPick:
        snapshot = snapshot or build_prompt_context(entries or [], now=now)
        scored_live = self.scored_live_pool(snapshot)
        live = [p for p, _relevance in scored_live]
        relevance = relevance_by_key(scored_live)
        static = [p for p in static_fallback_prompts() if validate_prompt(p)]

        blocked = {normalize_prompt_key(p) for p in _exclude_list(exclude)}
        if current:
            blocked.add(normalize_prompt_key(current))

        stats = self.state.stats()
        shown = {k for k, s in stats.items() if s.shown > 0}
        used = {k for k, s in stats.items() if s.completed > 0}

        def fresh(pool: List[str]) -> List[str]:
            return [p for p in pool if normalize_prompt_key(p) not in shown | used | blocked]

        combined = _dedupe(live + static)
        tiers = [
            ("live", fresh(live)),
            ("static", fresh(static)),
            ("shown", [p for p in combined
                       if normalize_prompt_key(p) in shown
                       and normalize_prompt_key(p) not in used | blocked]),
            ("any", [p for p in combined if normalize_prompt_key(p) not in blocked]),
        ]

        for source, candidates in tiers:
            if candidates:
                prompt = weighted_pick(candidates, lambda p: selection_weight(p, stats, relevance), self.rng)
                return PromptPick(prompt=prompt, source=source)

        logging.info("Prompt pool exhausted; requesting refill")
        if self.on_refill is not None:
            self.on_refill(snapshot)
        fallback = current or (static[0] if static else UNIVERSAL_PROMPTS[0])
        return PromptPick(prompt=fallback, status=POOL_EXHAUSTED_STATUS, refill_requested=True, source="exhausted")


def _dedupe(prompts: Iterable[str]) -> List[str]:
    seen = set()
    out = []
    for p in prompts:
        key = normalize_prompt_key(p)
        if key not in seen:
            seen.add(key)
            out.append(p)
    return out
