from __future__ import annotations

from typing import List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field


class Template(BaseModel):
    """Tag-annotated question skeleton. Instances are immutable."""

    model_config = ConfigDict(frozen=True)

    id: str
    domains: Tuple[str, ...] = ("general",)
    actions: Tuple[str, ...] = ()
    states: Tuple[str, ...] = ()
    tones: Tuple[str, ...] = ()
    text: str


class ContextSnapshot(BaseModel):
    domains: List[str] = Field(default_factory=lambda: ["general"], min_length=1)
    actions: List[str] = []
    states: List[str] = []
    tone: str = "gentle"
    modes: List[str] = []
    week_mode: str = "weekday"
    day_name: str = ""
    is_weekend: bool = False
    month: int = 1
    season: str = ""
    sentiment_trend: int = 0
    time_theme: str = "night"
    timeframe: str = "today"
    timeframe_next: str = "tomorrow"
    timeframe_end: str = "tonight"
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    entry_count: int = 0
    avg_words_per_entry: int = 0
    top_moods: List[str] = []
    prompt_mood_trend: List[str] = []


class PromptStats(BaseModel):
    text: str = ""
    shown: int = 0
    completed: int = 0
    total_words: int = 0
    last_shown_at: Optional[float] = None
    last_completed_at: Optional[float] = None


class ExpansionCacheEntry(BaseModel):
    snapshot_key: str
    templates: List[Template] = []
    saved_at: float


class PromptPick(BaseModel):
    prompt: str
    status: Optional[str] = None
    refill_requested: bool = False
    source: str = "pool"
