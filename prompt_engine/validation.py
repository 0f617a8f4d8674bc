"""
Grammar and safety checks shared by selection and expansion.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Optional

from prompt_engine.keywords import ALLOWED_ACTIONS, ALLOWED_DOMAINS, ALLOWED_STATES, ALLOWED_TONES
from prompt_engine.signals import tokenize
from schemas.prompting import Template

ALLOWED_PLACEHOLDERS = ("timeframe", "timeframe_next", "timeframe_end")

BANNED_META_TOKENS = frozenset([
    "prompt", "prompts", "shuffle", "reflekt", "chatgpt", "assistant", "system",
    "model", "cache", "version", "code", "app", "entry", "journal", "journaling",
])

_WS = re.compile(r"\s+")
_PLACEHOLDER = re.compile(r"\{([^}]*)\}")
_THINGS = re.compile(r"\bthings\b")
_NULLISH = re.compile(r"undefined|null", re.IGNORECASE)
_HEDGED_DOMAIN = re.compile(r"\b(work\s+or\s+school|school\s+or\s+work)\b", re.IGNORECASE)


def normalize_whitespace(text: Any) -> str:
    return _WS.sub(" ", "" if text is None else str(text)).strip()


def normalize_prompt_key(text: Any) -> str:
    """Comparison key for novelty bookkeeping."""
    return normalize_whitespace(text).lower()


def _has_meta_vocabulary(text: str) -> bool:
    return any(token in BANNED_META_TOKENS for token in tokenize(text))


def validate_prompt(text: Any) -> bool:
    """True when a rendered prompt is safe to show."""
    s = normalize_whitespace(text)
    if not s:
        return False
    lower = s.lower()
    if not lower.endswith("?") or s.count("?") != 1:
        return False
    if _has_meta_vocabulary(s):
        return False
    if _THINGS.search(lower):
        return False
    words = s.split(" ")
    if len(words) < 5 or len(words) > 20:
        return False
    if _PLACEHOLDER.search(s):
        return False
    if _NULLISH.search(s):
        return False
    return True


def validate_template_text(text: Any) -> bool:
    """Pre-render check for template source text."""
    s = normalize_whitespace(text)
    if not s or not s.endswith("?") or s.count("?") != 1:
        return False
    for name in _PLACEHOLDER.findall(s):
        if name not in ALLOWED_PLACEHOLDERS:
            return False
    if _has_meta_vocabulary(s):
        return False
    if _THINGS.search(s.lower()):
        return False
    if _HEDGED_DOMAIN.search(s):
        return False
    words = s.split(" ")
    return 5 <= len(words) <= 22


def _tag_list(raw: Any, allowed: frozenset) -> Optional[tuple]:
    if raw is None:
        return ()
    if isinstance(raw, str):
        raw = [raw]
    if not isinstance(raw, (list, tuple)):
        return None
    tags = tuple(str(v).strip().lower() for v in raw if str(v).strip())
    if any(tag not in allowed for tag in tags):
        return None
    return tags


def sanitize_template_candidate(raw: Any) -> Optional[Template]:
    """
    Admit an externally generated template only if it is fully valid.

    The text must pass template validation and every tag must come from the
    controlled vocabulary. Anything else is discarded (returns None).
    """
    if isinstance(raw, Template):
        raw = raw.model_dump()
    if not isinstance(raw, dict):
        return None
    template_id = normalize_whitespace(raw.get("id"))
    text = normalize_whitespace(raw.get("text"))
    if len(template_id) < 3 or not validate_template_text(text):
        return None

    domains = _tag_list(raw.get("domains"), ALLOWED_DOMAINS)
    actions = _tag_list(raw.get("actions"), ALLOWED_ACTIONS)
    states = _tag_list(raw.get("states"), ALLOWED_STATES)
    tones = _tag_list(raw.get("tones"), ALLOWED_TONES)
    if domains is None or actions is None or states is None or tones is None:
        logging.debug(f"Rejected template {template_id}: tag outside controlled vocabulary")
        return None

    return Template(
        id=template_id,
        domains=domains or ("general",),
        actions=actions,
        states=states,
        tones=tones,
        text=text,
    )
