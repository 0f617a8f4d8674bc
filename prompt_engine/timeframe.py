"""
Time context from the evaluation-time clock (not entry timestamps).
"""

from __future__ import annotations

from datetime import datetime
from typing import Dict, Optional

DAY_NAMES = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]
FRIDAY = 4
SATURDAY = 5
SUNDAY = 6


def get_time_theme(now: Optional[datetime] = None) -> str:
    h = (now or datetime.now()).hour
    if 5 <= h < 12:
        return "morning"
    if 12 <= h < 17:
        return "afternoon"
    if 17 <= h < 21:
        return "evening"
    return "night"


def get_week_context(now: Optional[datetime] = None) -> Dict[str, object]:
    now = now or datetime.now()
    day = now.weekday()
    is_weekend = day in (SATURDAY, SUNDAY)
    return {
        "day": day,
        "day_name": DAY_NAMES[day],
        "is_weekend": is_weekend,
        "week_mode": "weekend" if is_weekend else "weekday",
    }


def get_season(now: Optional[datetime] = None) -> str:
    # Northern hemisphere; only used as a coarse tag, never forced into wording.
    m = (now or datetime.now()).month
    if m in (12, 1, 2):
        return "winter"
    if 3 <= m <= 5:
        return "spring"
    if 6 <= m <= 8:
        return "summer"
    return "fall"


def compute_timeframe(time_theme: str, now: Optional[datetime] = None) -> Dict[str, str]:
    """Values for the {timeframe}, {timeframe_next} and {timeframe_end} placeholders."""
    now = now or datetime.now()
    week = get_week_context(now)
    day = week["day"]

    timeframe = "today"
    if time_theme == "morning":
        timeframe_next = "today"
        timeframe_end = "tonight"
    elif time_theme in ("afternoon", "evening"):
        timeframe_next = "tomorrow"
        timeframe_end = "tonight"
    else:
        timeframe_next = "tomorrow"
        timeframe_end = "tomorrow starts"

    if time_theme in ("evening", "night"):
        if day == FRIDAY:
            timeframe_end = "the weekend starts"
        elif day == SUNDAY:
            timeframe_end = "the week begins"

    if week["is_weekend"] and time_theme == "morning":
        timeframe_next = "today"

    return {
        "timeframe": timeframe,
        "timeframe_next": timeframe_next,
        "timeframe_end": timeframe_end,
    }
