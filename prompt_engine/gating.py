"""
Hard eligibility rules (gating) and relevance weights (scoring) for templates.
"""

from __future__ import annotations

from typing import AbstractSet, Iterable, List

from prompt_engine.snapshot import LOW_SIGNAL, POSITIVE_MODE, SENSITIVE_MODE, THIRD_PERSON_HEAVY
from schemas.prompting import ContextSnapshot, Template

SENSITIVE_SAFE_ACTIONS = frozenset(["support", "rest", "release", "plan", "boundaries"])
THIRD_PERSON_SAFE_ACTIONS = frozenset(["boundaries", "support", "reframe"])
CORE_DOMAINS = frozenset(["general", "responsibilities"])
WORK_LIKE_DOMAINS = frozenset(["work", "school"])

DOMAIN_WEIGHT = 1.1
ACTION_WEIGHT = 0.9
STATE_WEIGHT = 0.7
TONE_WEIGHT = 0.4
REPEATED_INTENT_PENALTY = 0.55
MIN_WEIGHT = 0.05


def _overlaps(a: Iterable[str], b: Iterable[str]) -> bool:
    return not set(a).isdisjoint(b)


def passes_mode_rules(tpl: Template, snapshot: ContextSnapshot) -> bool:
    modes = snapshot.modes
    domains = snapshot.domains

    if SENSITIVE_MODE in modes:
        if tpl.actions and not _overlaps(tpl.actions, SENSITIVE_SAFE_ACTIONS):
            return False

    if LOW_SIGNAL in modes:
        if not _overlaps(tpl.domains, CORE_DOMAINS | set(domains)):
            return False

    if snapshot.week_mode == "weekend":
        if _overlaps(tpl.domains, WORK_LIKE_DOMAINS) and not _overlaps(domains, WORK_LIKE_DOMAINS):
            return False

    if THIRD_PERSON_HEAVY in modes:
        if "relationships" in tpl.domains and not _overlaps(tpl.actions, THIRD_PERSON_SAFE_ACTIONS):
            return False

    if POSITIVE_MODE in modes:
        if "stress" in tpl.domains and "rest" in tpl.actions:
            return False

    return True


def template_matches(tpl: Template, snapshot: ContextSnapshot, relaxed: bool = False) -> bool:
    """
    Full gate: mode rules, then domain, intent and tone match.

    With `relaxed` the domain filter only accepts the core domains
    (general/responsibilities); used when the strict gate leaves nothing.
    """
    if not passes_mode_rules(tpl, snapshot):
        return False

    if relaxed:
        domain_ok = _overlaps(tpl.domains, CORE_DOMAINS)
    else:
        domain_ok = "general" in tpl.domains or _overlaps(tpl.domains, snapshot.domains)

    intent_ok = (
        (not tpl.actions and not tpl.states)
        or _overlaps(tpl.actions, snapshot.actions)
        or _overlaps(tpl.states, snapshot.states)
        or _overlaps(tpl.domains, CORE_DOMAINS)
    )

    tone_ok = not tpl.tones or snapshot.tone in tpl.tones or "gentle" in tpl.tones

    return domain_ok and intent_ok and tone_ok


def gate_templates(templates: Iterable[Template], snapshot: ContextSnapshot) -> List[Template]:
    """Eligible templates; falls back to the relaxed gate, then to the core domains."""
    pool = list(templates)
    eligible = [t for t in pool if template_matches(t, snapshot)]
    if eligible:
        return eligible
    eligible = [t for t in pool if template_matches(t, snapshot, relaxed=True)]
    if eligible:
        return eligible
    return [t for t in pool if _overlaps(t.domains, CORE_DOMAINS)]


def score_template(tpl: Template, snapshot: ContextSnapshot, used_intents: AbstractSet[str] = frozenset()) -> float:
    score = 1.0
    if _overlaps(tpl.domains, snapshot.domains):
        score += DOMAIN_WEIGHT
    if _overlaps(tpl.actions, snapshot.actions):
        score += ACTION_WEIGHT
    if _overlaps(tpl.states, snapshot.states):
        score += STATE_WEIGHT
    if snapshot.tone in tpl.tones:
        score += TONE_WEIGHT

    # Same primary intent already drawn in this batch
    primary = tpl.actions[0] if tpl.actions else ""
    if primary and primary in used_intents:
        score -= REPEATED_INTENT_PENALTY

    return max(MIN_WEIGHT, score)
