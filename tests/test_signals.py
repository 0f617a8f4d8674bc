"""Tests for tokenization, keyword hits and timeframe helpers."""

from datetime import datetime

from prompt_engine.signals import count_keyword_hits, pick_top_keys, tokenize
from prompt_engine.timeframe import compute_timeframe, get_season, get_time_theme, get_week_context


def test_tokenize_lowercases_and_splits_on_punctuation():
    assert tokenize("Deadline: Friday! My manager's call.") == ["deadline", "friday", "my", "manager", "s", "call"]
    assert tokenize(None) == []
    assert tokenize("") == []


def test_count_keyword_hits_whole_tokens_only():
    tokens = tokenize("The classroom was quiet")
    assert count_keyword_hits(tokens, ["class"]) == 0
    assert count_keyword_hits(tokenize("Back to class"), ["class"]) == 1


def test_count_keyword_hits_multiword_and_hyphenated():
    tokens = tokenize("My self-esteem dipped and I need to let go of it")
    assert count_keyword_hits(tokens, ["self-esteem"]) == 1
    assert count_keyword_hits(tokens, ["let go", "leave behind"]) == 1


def test_count_keyword_hits_counts_each_keyword_once():
    tokens = tokenize("meeting after meeting after meeting")
    assert count_keyword_hits(tokens, ["meeting"]) == 1


def test_pick_top_keys_orders_by_score_then_table_order():
    scores = {"plan": 2, "rest": 3, "support": 2, "values": 0}
    assert pick_top_keys(scores, 2, 1) == ["rest", "plan"]
    assert pick_top_keys({"plan": 0}, 2, 1) == []


def test_time_theme_boundaries():
    assert get_time_theme(datetime(2026, 10, 16, 4, 59)) == "night"
    assert get_time_theme(datetime(2026, 10, 16, 5, 0)) == "morning"
    assert get_time_theme(datetime(2026, 10, 16, 12, 0)) == "afternoon"
    assert get_time_theme(datetime(2026, 10, 16, 17, 0)) == "evening"
    assert get_time_theme(datetime(2026, 10, 16, 21, 0)) == "night"


def test_week_context_weekend():
    saturday = get_week_context(datetime(2026, 10, 17, 10, 0))
    assert saturday["day_name"] == "Saturday"
    assert saturday["week_mode"] == "weekend"
    friday = get_week_context(datetime(2026, 10, 16, 10, 0))
    assert friday["week_mode"] == "weekday"


def test_season():
    assert get_season(datetime(2026, 1, 5)) == "winter"
    assert get_season(datetime(2026, 4, 5)) == "spring"
    assert get_season(datetime(2026, 7, 5)) == "summer"
    assert get_season(datetime(2026, 10, 17)) == "fall"


def test_timeframe_friday_evening_and_sunday_night():
    friday = datetime(2026, 10, 16, 20, 0)
    assert compute_timeframe("evening", friday)["timeframe_end"] == "the weekend starts"
    sunday = datetime(2026, 10, 18, 22, 0)
    assert compute_timeframe("night", sunday)["timeframe_end"] == "the week begins"


def test_timeframe_morning_and_weekday_night():
    morning = compute_timeframe("morning", datetime(2026, 10, 14, 8, 0))
    assert morning == {"timeframe": "today", "timeframe_next": "today", "timeframe_end": "tonight"}
    night = compute_timeframe("night", datetime(2026, 10, 14, 23, 0))
    assert night["timeframe_next"] == "tomorrow"
    assert night["timeframe_end"] == "tomorrow starts"
