"""
Title suggestions for an entry: local candidates plus optional Ollama ones,
both filtered through the same relevance ranker.

Candidates come from three places: domain/tone-conditioned template titles,
situation titles ("Meeting With Manager Check-In"), and extractive 2-4 word
phrases lifted from the entry. Every candidate is sanitized and softened
before it is scored against the entry's keywords.
"""

from __future__ import annotations

import logging
import math
import re
import threading
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Set

from config import Config, load_config
from llm_client import GenerationCancelled, generate_json_with_fallbacks
from privacy.redact import prepare_for_model
from prompt_engine.sentiment import score_text
from prompt_engine.signals import tokenize
from title_prompts import TITLE_SYSTEM_PROMPT, get_title_prompt

MAX_TITLES = 5
DROP_AT_OR_BELOW = -4

_WS = re.compile(r"\s+")
_META_WORDS = re.compile(r"\b(prompt|shuffle|reflekt|assistant|system|model|cache|code)\b")
_LEADING_FILLER = re.compile(r"^(and|but|so|or|of|to|for|the|a|an)\b")
_DESPAIR = re.compile(r"\b(ruined|hopeless|broken|empty inside|dead inside)\b")

_SOFTEN_REPLACEMENTS = [
    (re.compile(r"absolutely nothing", re.IGNORECASE), "Low Energy"),
    (re.compile(r"stopped trying", re.IGNORECASE), "Feeling Disconnected"),
    (re.compile(r"hollowed out", re.IGNORECASE), "Emotionally Drained"),
    (re.compile(r"dull ache", re.IGNORECASE), "Heavy Mood"),
    (re.compile(r"heavy", re.IGNORECASE), "Strained"),
    (re.compile(r"dream life", re.IGNORECASE), "Good Day"),
    (re.compile(r"everything .* turns to gold", re.IGNORECASE), "Things Going Well"),
    (re.compile(r"massive opportunity", re.IGNORECASE), "New Opportunity"),
    (re.compile(r"completely energized", re.IGNORECASE), "Energized"),
    (re.compile(r"abundant", re.IGNORECASE), "Steady"),
]

TITLE_DOMAIN_KEYWORDS: Dict[str, List[str]] = {
    "work": ["work", "job", "office", "manager", "coworker", "team", "meeting", "deadline", "project", "client"],
    "school": ["school", "class", "study", "homework", "assignment", "exam", "professor", "teacher", "course"],
    "relationships": ["partner", "relationship", "boyfriend", "girlfriend", "friend", "family", "roommate", "parent"],
    "money": ["money", "budget", "bill", "rent", "debt", "paycheck", "expense", "income"],
    "health": ["health", "sleep", "energy", "exercise", "therapy", "doctor", "anxiety", "stress", "burnout"],
}

TITLE_SITUATION_PATTERNS = [
    ("meeting with manager", re.compile(
        r"\b(meeting|1:1|one on one)\b.*\b(manager|boss)\b|\b(manager|boss)\b.*\b(meeting|1:1|one on one)\b")),
    ("team meeting", re.compile(r"\b(team meeting|standup|sync)\b")),
    ("project deadline", re.compile(r"\b(project|deadline|deliverable)\b")),
    ("exam prep", re.compile(r"\b(exam|test|quiz|midterm|finals?)\b")),
    ("assignment pressure", re.compile(r"\b(assignment|homework)\b")),
    ("friend tension", re.compile(
        r"\b(friend|friends)\b.*\b(tension|argument|fight|distance)\b|\b(tension|argument|fight|distance)\b.*\b(friend|friends)\b")),
    ("family pressure", re.compile(
        r"\b(family|parent|parents)\b.*(pressure|argument|fight|stress)|\b(pressure|argument|fight|stress).*\b(family|parent|parents)\b")),
    ("relationship check-in", re.compile(r"\b(partner|relationship|boyfriend|girlfriend)\b")),
    ("money stress", re.compile(r"\b(money|budget|bill|rent|debt)\b")),
    ("sleep and energy", re.compile(r"\b(sleep|tired|exhausted|energy)\b")),
]

TITLE_TONE_KEYWORDS = frozenset([
    "stress", "stressed", "overwhelmed", "drained", "exhausted", "tired", "lonely",
    "anxious", "pressure", "disappointed", "hopeful", "grateful", "energized", "calm", "focused",
])

TITLE_QUIRKY_OBJECT_WORDS = frozenset([
    "peanut", "butter", "cereal", "chicken", "freezer", "kitchen", "wall", "spoon", "fork",
])

_POSITIVE_HINTS = re.compile(r"\b(grateful|joy|joyful|energized|excited|abundant|dream life|proud|optimistic|inspired)\b")
_NEGATIVE_HINTS = re.compile(r"\b(heavy|exhausted|drained|overwhelmed|anxious|stress|stressed|burnout|hard day)\b")

_DOMAIN_TITLES: Dict[str, Dict[str, List[str]]] = {
    "work": {
        "positive": ["Good Momentum at Work", "Workday Wins", "Work Felt Lighter Today"],
        "negative": ["Work Stress Check-In", "Tough Day at Work", "Work Pressure Today"],
        "neutral": ["Work Check-In", "Work and Energy", "Work Priorities Today"],
    },
    "school": {
        "positive": ["School Progress Today", "Steady School Momentum", "Learning Went Well"],
        "negative": ["School Stress Check-In", "Study Pressure Today", "School Felt Heavy"],
        "neutral": ["School Check-In", "Study and Focus", "School Priorities Today"],
    },
    "relationships": {
        "positive": ["Feeling More Connected", "Connection Went Well", "Relationship Win Today"],
        "negative": ["Connection Felt Hard", "Relationship Check-In", "Boundary and Connection"],
        "neutral": ["Connection Check-In", "Relationships Today", "People and Energy"],
    },
    "money": {
        "positive": ["Money Felt Clearer", "Steadier with Money", "Money Progress Today"],
        "negative": ["Money Stress Check-In", "Money Pressure Today", "Getting Clear on Money"],
        "neutral": ["Money Check-In", "Budget and Priorities", "Money and Peace of Mind"],
    },
    "health": {
        "positive": ["Energy Felt Better", "Feeling Stronger Today", "Health Win Today"],
        "negative": ["Low Energy Check-In", "Energy and Recovery", "Health Felt Heavy"],
        "neutral": ["Health Check-In", "Energy and Balance", "Taking Care of Yourself"],
    },
    "": {
        "positive": ["A Good Day to Build On", "Steady Positive Momentum", "Feeling Good Today"],
        "negative": ["A Hard Day Check-In", "A Small Step Forward", "Where You Are Today"],
        "neutral": ["A Meaningful Check-In", "Where You Are Today", "Today in Reflection"],
    },
}

_CONTRACTIONS = [
    (re.compile(r"\b(it|that|there|here|what|who|where|when|how)['’]s\b", re.IGNORECASE), r"\1 is"),
    (re.compile(r"\b([a-z]+)['’]m\b", re.IGNORECASE), r"\1 am"),
    (re.compile(r"\b([a-z]+)['’]re\b", re.IGNORECASE), r"\1 are"),
    (re.compile(r"\b([a-z]+)['’]ve\b", re.IGNORECASE), r"\1 have"),
    (re.compile(r"\b([a-z]+)n['’]t\b", re.IGNORECASE), r"\1 not"),
]

_EXTRACTIVE_STOP = frozenset([
    "i", "im", "ive", "my", "me", "the", "a", "an", "and", "or", "but", "so", "to", "of", "in",
    "on", "at", "for", "with", "this", "that", "it", "is", "are", "was", "were", "be", "been",
    "being", "today", "already", "just", "really", "very", "completely", "through", "right",
    "s", "am", "have", "had", "not", "getting", "honestly", "okay", "about", "their", "people", "anyone",
])
_EXTRACTIVE_WEAK_LEAD = frozenset([
    "woke", "feeling", "feel", "going", "meet", "someone", "touch", "turns", "coming", "best", "truly",
])
_MAX_PHRASES = 40

# Extractive phrase preferences: (pattern, weight)
_PHRASE_PREFERENCES = [
    (re.compile(r"\b(opportunity|productivity|grateful|joyful|abundant|dream|energy|energized|life|focus|momentum)\b"), 3),
    (re.compile(r"\b(work|school|money|health|relationship|goal|project|meeting|deadline)\b"), 2),
    (re.compile(r"\b(mask|heavy|dull ache|hollowed|pretending|absolutely nothing|stopped trying|dark)\b"), 4),
    (re.compile(r"\b(people about|their weekends|made polite|polite conversation)\b"), -3),
]


def _collapse(text: Any) -> str:
    return _WS.sub(" ", "" if text is None else str(text)).strip()


def to_title_case(text: str) -> str:
    """Capitalize the first letter of each word, leaving the rest alone."""
    return " ".join(w[:1].upper() + w[1:] for w in (text or "").split())


def sanitize_title_candidate(raw: Any) -> str:
    """Cleaned title, or "" when the candidate is unusable."""
    s = re.sub(r"[\r\n\t]+", " ", "" if raw is None else str(raw))
    s = re.sub(r"^\s*[-*•\d.)]+\s*", "", s)
    s = re.sub(r"^[^a-zA-Z0-9]+", "", s)
    s = re.sub(r"^[a-zA-Z]\s+", "", s)
    s = re.sub(r"^[\"']|[\"']$", "", s)
    s = re.sub(r"[.?!,:;]+$", "", s)
    s = _collapse(s)
    if not s:
        return ""
    lower = s.lower()
    if _META_WORDS.search(lower) or _LEADING_FILLER.search(lower):
        return ""
    if len(s) < 3 or len(s) > 72:
        return ""
    if not 2 <= len(s.split(" ")) <= 5:
        return ""
    return s


def soften_title_candidate(raw: Any) -> str:
    """Sanitize, then dampen dramatic wording; despairing titles are dropped."""
    s = sanitize_title_candidate(raw)
    if not s:
        return ""
    for pattern, replacement in _SOFTEN_REPLACEMENTS:
        s = pattern.sub(replacement, s)
    s = _collapse(s)
    if _DESPAIR.search(s.lower()):
        return ""
    return sanitize_title_candidate(s)


def detect_title_domain(text: str, tokens: Optional[List[str]] = None) -> str:
    lower = (text or "").lower()
    token_set = set(tokens if tokens is not None else tokenize(lower))
    best, best_score = "", 0
    for domain, keys in TITLE_DOMAIN_KEYWORDS.items():
        score = 0
        for key in keys:
            if " " in key:
                score += 2 if key in lower else 0
            elif key in token_set:
                score += 1
        if score > best_score:
            best, best_score = domain, score
    return best


def detect_situation_label(text: str) -> str:
    lower = (text or "").lower()
    for label, pattern in TITLE_SITUATION_PATTERNS:
        if pattern.search(lower):
            return label
    return ""


def situation_title_base(label: str) -> str:
    if not label:
        return ""
    if label == "sleep and energy":
        return "Low Energy Tonight"
    return to_title_case(label)


def domain_title_options(domain: str, positive_mode: bool = False, negative_mode: bool = False) -> List[str]:
    options = _DOMAIN_TITLES.get(domain) or _DOMAIN_TITLES[""]
    if positive_mode:
        return list(options["positive"])
    if negative_mode:
        return list(options["negative"])
    return list(options["neutral"])


def extractive_title_suggestions(content: str, max_results: int = MAX_TITLES) -> List[str]:
    """Title-cased 2-4 word phrases lifted from adjacent words in the entry."""
    text = content or ""
    for pattern, replacement in _CONTRACTIONS:
        text = pattern.sub(replacement, text)
    text = _collapse(text).lower()
    tokens = tokenize(text)
    if not tokens:
        return []

    phrases: List[str] = []
    seen: Set[str] = set()
    for i in range(len(tokens)):
        for n in range(2, 5):
            chunk = tokens[i:i + n]
            if len(chunk) != n:
                continue
            phrase = " ".join(chunk)
            if phrase in seen:
                continue
            if len(chunk[0]) < 3 or chunk[0] in _EXTRACTIVE_WEAK_LEAD:
                continue
            if any(len(p) <= 1 or p in _EXTRACTIVE_STOP for p in chunk):
                continue
            if not any(len(p) >= 5 for p in chunk):
                continue
            seen.add(phrase)
            phrases.append(phrase)
            if len(phrases) >= _MAX_PHRASES:
                break
        if len(phrases) >= _MAX_PHRASES:
            break

    def phrase_score(p: str) -> int:
        score = sum(weight for pattern, weight in _PHRASE_PREFERENCES if pattern.search(p))
        return score + sum(1 for w in p.split(" ") if len(w) >= 6)

    ranked = sorted(phrases, key=phrase_score, reverse=True)

    out: List[str] = []
    for p in ranked:
        title = soften_title_candidate(to_title_case(p))
        if title and title not in out:
            out.append(title)
        if len(out) >= max_results:
            break
    return out


@dataclass
class TitleSignal:
    tokens: Set[str]
    situation: str = ""
    top_domain: str = ""
    domain_tokens: Set[str] = field(default_factory=set)


_ALL_DOMAIN_TOKENS = frozenset(
    part for keys in TITLE_DOMAIN_KEYWORDS.values() for key in keys for part in key.lower().split()
)


def title_signal_from_content(content: str) -> TitleSignal:
    text = (content or "").lower()
    tokens = tokenize(text)
    return TitleSignal(
        tokens=set(tokens),
        situation=detect_situation_label(text),
        top_domain=detect_title_domain(text, tokens),
        domain_tokens=set(_ALL_DOMAIN_TOKENS),
    )


def score_title_relevance(title: str, signal: TitleSignal) -> float:
    """
    Overlap between a title and the entry it is meant for.

    Returns -inf for titles that do not survive sanitizing.
    """
    raw = sanitize_title_candidate(title)
    if not raw:
        return -math.inf
    lower = raw.lower()
    parts = tokenize(lower)
    if not parts:
        return -math.inf

    domain_hits = sum(1 for p in parts if p in signal.domain_tokens and p in signal.tokens)
    tone_hits = sum(1 for p in parts if p in TITLE_TONE_KEYWORDS and p in signal.tokens)
    score = domain_hits * 3 + tone_hits * 2

    if signal.situation:
        score += 3 * sum(1 for p in signal.situation.split() if p in lower)
    if signal.top_domain and signal.top_domain in lower:
        score += 2

    no_signal = domain_hits == 0 and tone_hits == 0
    if no_signal and any(p in TITLE_QUIRKY_OBJECT_WORDS for p in parts):
        score -= 6
    # Short titles with nothing in common with the entry read as random
    if no_signal and len(parts) <= 2:
        score -= 4

    return float(score)


def rank_and_filter_title_options(options: Iterable[Any], content: str, max_results: int = MAX_TITLES) -> List[str]:
    signal = title_signal_from_content(content)
    unique: List[str] = []
    for option in options or []:
        title = soften_title_candidate(option)
        if title and title not in unique:
            unique.append(title)

    scored = [(t, score_title_relevance(t, signal)) for t in unique]
    kept = [(t, s) for t, s in scored if math.isfinite(s) and s > DROP_AT_OR_BELOW]
    kept.sort(key=lambda row: row[1], reverse=True)
    return [t for t, _s in kept[:max_results]]


def generate_title_suggestions_local(content: str, current_title: str = "") -> List[str]:
    text = _collapse(content)
    if not text:
        return []

    sentiment = score_text(text)
    lower = text.lower()
    positive_mode = sentiment >= 3 or bool(_POSITIVE_HINTS.search(lower))
    negative_mode = sentiment <= -2 or bool(_NEGATIVE_HINTS.search(lower))
    tokens = [t for t in tokenize(text) if len(t) >= 4]
    top_domain = detect_title_domain(text, tokens)
    situation_base = situation_title_base(detect_situation_label(text))

    options: List[str] = []
    current = sanitize_title_candidate(current_title)
    if current:
        options.append(current)

    options.extend(domain_title_options(top_domain, positive_mode, negative_mode))

    if situation_base:
        if positive_mode:
            options.extend([f"{situation_base} Went Well", f"{situation_base} Progress"])
        elif negative_mode:
            options.extend([f"{situation_base} Felt Hard", f"{situation_base} Check-In"])
        else:
            options.extend([f"{situation_base} Check-In", f"Thoughts on {situation_base}"])

    options.extend(extractive_title_suggestions(text, MAX_TITLES))
    return rank_and_filter_title_options(options, text, MAX_TITLES)


def _titles_from_response(parsed: Dict[str, Any], content: str) -> List[str]:
    raw = parsed.get("titles") if isinstance(parsed, dict) else None
    if not isinstance(raw, list):
        return []
    return rank_and_filter_title_options([t for t in raw if isinstance(t, str)], content, MAX_TITLES)


def generate_title_suggestions_with_ollama(
    content: str,
    current_title: str = "",
    cancel: Optional[threading.Event] = None,
    cfg: Optional[Config] = None,
) -> List[str]:
    """
    Ollama titles ranked with the local pipeline; local titles on any failure.

    Only redacted, truncated text leaves the process. Ranking uses the full
    entry locally.
    """
    text = _collapse(content)
    if not text:
        return []
    cfg = cfg or load_config()
    if not cfg.expansion_enabled:
        return generate_title_suggestions_local(text, current_title)

    prompt = get_title_prompt(prepare_for_model(text), sanitize_title_candidate(current_title))
    try:
        return generate_json_with_fallbacks(
            prompt,
            cfg.ollama_endpoints,
            cfg.ollama_models,
            extract=lambda parsed: _titles_from_response(parsed, text),
            timeout=cfg.ollama_timeout_seconds,
            keep_alive=cfg.ollama_keep_alive,
            cancel=cancel,
            system=TITLE_SYSTEM_PROMPT,
        )
    except GenerationCancelled:
        logging.info("Title generation cancelled; using local titles")
    except ValueError as e:
        logging.warning(f"Ollama titles unavailable, using local titles: {e}")
    return generate_title_suggestions_local(text, current_title)
