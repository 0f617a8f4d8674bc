"""
Coarse sentiment bucket built on NLTK's VADER analyzer.

Only an integer score on a -5..5 scale is needed downstream (snapshot
positivity, inferred mood when an entry has none, title tone). If the VADER
lexicon cannot be loaded every text scores as neutral.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Optional

import nltk
from nltk.sentiment.vader import SentimentIntensityAnalyzer

SCORE_SCALE = 5

_analyzer: Optional[Any] = None
_analyzer_failed = False
_lock = threading.Lock()


def _get_analyzer() -> Optional[Any]:
    global _analyzer, _analyzer_failed
    if _analyzer is not None or _analyzer_failed:
        return _analyzer
    with _lock:
        if _analyzer is not None or _analyzer_failed:
            return _analyzer
        try:
            nltk.data.find("sentiment/vader_lexicon.zip")
        except LookupError:
            logging.info("Downloading NLTK VADER lexicon...")
            nltk.download("vader_lexicon", quiet=True)
        try:
            _analyzer = SentimentIntensityAnalyzer()
        except LookupError as e:
            logging.warning(f"VADER lexicon unavailable, sentiment disabled: {type(e).__name__}")
            _analyzer_failed = True
    return _analyzer


def score_text(text: Optional[str]) -> int:
    """Integer sentiment score in [-5, 5]; 0 for empty text or no analyzer."""
    if not text or not text.strip():
        return 0
    analyzer = _get_analyzer()
    if analyzer is None:
        return 0
    compound = float(analyzer.polarity_scores(text).get("compound", 0.0))
    return int(round(compound * SCORE_SCALE))


def mood_from_score(score: int) -> str:
    if score >= 5:
        return "Great"
    if score >= 2:
        return "Good"
    if score >= -1:
        return "Okay"
    if score >= -4:
        return "Bad"
    return "Awful"


def mood_from_text(text: Optional[str]) -> str:
    """Five-level mood label suggested by the text alone."""
    return mood_from_score(score_text(text))
