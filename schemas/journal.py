from __future__ import annotations

import json
import logging
from datetime import datetime
from typing import Any, Iterable, List, Optional

from pydantic import AliasChoices, BaseModel, Field, ValidationError, field_validator


class Mood(BaseModel):
    label: str
    confidence: float = Field(default=1.0, ge=0.0, le=1.0)


def normalize_mood(raw: Any) -> Optional[Mood]:
    """
    Collapse the stored mood shapes into one Mood value.

    Entries carry either a plain label ("Bad"), a serialized object
    ('{"label": "Bad", "confidence": 0.7}'), an already-decoded dict, or
    nothing at all.
    """
    if raw is None:
        return None
    if isinstance(raw, Mood):
        return raw
    if isinstance(raw, str):
        text = raw.strip()
        if not text:
            return None
        if text.startswith("{"):
            try:
                decoded = json.loads(text)
            except json.JSONDecodeError:
                return None
            return normalize_mood(decoded)
        return Mood(label=text)
    if isinstance(raw, dict):
        label = raw.get("label") or raw.get("mood") or raw.get("value") or raw.get("name")
        if not isinstance(label, str) or not label.strip():
            return None
        confidence = raw.get("confidence", raw.get("score", 1.0))
        try:
            confidence = min(1.0, max(0.0, float(confidence)))
        except (TypeError, ValueError):
            confidence = 1.0
        return Mood(label=label.strip(), confidence=confidence)
    return None


def _parse_timestamp(raw: Any) -> Optional[datetime]:
    if raw is None or raw == "":
        return None
    if isinstance(raw, datetime):
        return raw
    if isinstance(raw, (int, float)):
        # JS clients send epoch milliseconds
        seconds = raw / 1000.0 if raw > 1e11 else float(raw)
        try:
            return datetime.fromtimestamp(seconds)
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(raw, str):
        try:
            return datetime.fromisoformat(raw.strip().replace("Z", "+00:00"))
        except ValueError:
            return None
    return None


class JournalEntry(BaseModel):
    id: Optional[str] = None
    content: str = ""
    title: str = ""
    created_at: Optional[datetime] = Field(
        default=None, validation_alias=AliasChoices("created_at", "createdAt")
    )
    updated_at: Optional[datetime] = Field(
        default=None, validation_alias=AliasChoices("updated_at", "updatedAt")
    )
    mood: Optional[Mood] = None

    @field_validator("id", mode="before")
    @classmethod
    def _id_to_str(cls, v: Any) -> Optional[str]:
        return None if v is None else str(v)

    @field_validator("content", "title", mode="before")
    @classmethod
    def _text_or_empty(cls, v: Any) -> str:
        return "" if v is None else str(v)

    @field_validator("created_at", "updated_at", mode="before")
    @classmethod
    def _lenient_timestamp(cls, v: Any) -> Optional[datetime]:
        return _parse_timestamp(v)

    @field_validator("mood", mode="before")
    @classmethod
    def _normalize_mood(cls, v: Any) -> Optional[Mood]:
        return normalize_mood(v)

    def time_key(self) -> float:
        """Sort key: created_at, then updated_at, else the epoch."""
        for stamp in (self.created_at, self.updated_at):
            if stamp is not None:
                try:
                    return stamp.timestamp()
                except (OverflowError, OSError, ValueError):
                    continue
        return 0.0


def coerce_entries(raw_entries: Optional[Iterable[Any]]) -> List[JournalEntry]:
    """Turn caller-supplied dicts into JournalEntry objects, skipping bad rows."""
    entries: List[JournalEntry] = []
    if not raw_entries:
        return entries
    skipped = 0
    for raw in raw_entries:
        if isinstance(raw, JournalEntry):
            entries.append(raw)
            continue
        if not isinstance(raw, dict):
            skipped += 1
            continue
        try:
            entries.append(JournalEntry.model_validate(raw))
        except ValidationError as e:
            skipped += 1
            logging.debug(f"Skipping malformed entry: {e.error_count()} errors")
    if skipped:
        logging.warning(f"Skipped {skipped} malformed entries")
    return entries
