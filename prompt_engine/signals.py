"""
Text signal extraction: tokenization and keyword-table hit counting.
"""

from __future__ import annotations

import re
from typing import Dict, Iterable, List, Sequence

_NON_ALNUM = re.compile(r"[^a-z0-9]+")


def tokenize(text: object) -> List[str]:
    """Lowercase alphanumeric tokens; everything else is a separator."""
    if text is None:
        return []
    return [t for t in _NON_ALNUM.split(str(text).lower()) if t]


def count_keyword_hits(tokens: Sequence[str], keywords: Iterable[str]) -> int:
    """
    Count how many keywords from a table occur in the token list.

    Single-word keywords must match a whole token. Keywords that tokenize to
    several words ("let go", "self-esteem") match as a substring of the
    space-joined token text. Each keyword counts at most once.
    """
    if not tokens:
        return 0
    token_set = set(tokens)
    joined = " ".join(tokens)
    hits = 0
    for keyword in keywords:
        parts = tokenize(keyword)
        if not parts:
            continue
        if len(parts) > 1:
            if " ".join(parts) in joined:
                hits += 1
        elif parts[0] in token_set:
            hits += 1
    return hits


def pick_top_keys(scores: Dict[str, int], max_keys: int = 2, min_score: int = 1) -> List[str]:
    """Highest-scoring keys first; ties keep table order."""
    ranked = sorted(
        ((key, score) for key, score in scores.items() if score >= min_score),
        key=lambda kv: kv[1],
        reverse=True,
    )
    return [key for key, _score in ranked[:max_keys]]
