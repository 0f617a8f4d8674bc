"""Tests for title sanitizing, relevance ranking and suggestion paths."""

import json

import pytest
import requests
from unittest.mock import patch, MagicMock

from config import load_config
from prompt_engine.titles import (
    detect_situation_label,
    detect_title_domain,
    generate_title_suggestions_local,
    generate_title_suggestions_with_ollama,
    rank_and_filter_title_options,
    sanitize_title_candidate,
    situation_title_base,
    soften_title_candidate,
    to_title_case,
)

MEETING_ENTRY = "Had a tense meeting with my manager about the project deadline and I feel stressed."


def ollama_titles(titles):
    response = MagicMock()
    response.status_code = 200
    response.json.return_value = {"response": json.dumps({"titles": titles})}
    return response


@pytest.mark.parametrize("raw, expected", [
    ("- Work Stress Check-In.", "Work Stress Check-In"),
    ("1. Morning Walk Reset", "Morning Walk Reset"),
    ("A Good Day to Build On", "Good Day to Build On"),
    ("The Long Day", ""),
    ("Hello", ""),
    ("Prompt Ideas Today", ""),
    ("One Two Three Four Five Six", ""),
    (None, ""),
])
def test_sanitize_title_candidate(raw, expected):
    assert sanitize_title_candidate(raw) == expected


def test_soften_title_candidate():
    assert soften_title_candidate("Heavy Week Ahead") == "Strained Week Ahead"
    assert soften_title_candidate("Feeling Hopeless Again") == ""


def test_situation_helpers():
    assert detect_situation_label("I had a 1:1 with my boss today") == "meeting with manager"
    assert detect_situation_label("nothing in particular") == ""
    assert situation_title_base("sleep and energy") == "Low Energy Tonight"
    assert situation_title_base("exam prep") == "Exam Prep"
    assert to_title_case("meeting with manager") == "Meeting With Manager"


def test_detect_title_domain():
    assert detect_title_domain("My budget and rent are due") == "money"
    assert detect_title_domain("Quiet evening") == ""


def test_relevant_title_beats_quirky_one():
    ranked = rank_and_filter_title_options(
        ["Peanut Butter Freezer", "Meeting With Manager Review", "Work Check-In"],
        MEETING_ENTRY,
    )
    assert ranked[0] == "Meeting With Manager Review"
    assert "Peanut Butter Freezer" not in ranked
    assert "Work Check-In" in ranked


def test_short_unrelated_title_is_dropped():
    assert rank_and_filter_title_options(["Blue Sky"], MEETING_ENTRY) == []


def test_ranking_keeps_input_order_on_ties():
    ranked = rank_and_filter_title_options(["Work Priorities Today", "Work Check-In"], MEETING_ENTRY)
    assert ranked == ["Work Priorities Today", "Work Check-In"]


def test_ranking_caps_results_and_dedupes():
    options = [
        "Meeting With Manager Review", "Meeting With Manager Review",
        "Manager Meeting Notes", "Project Deadline Pressure", "Deadline Meeting Prep",
        "Manager and Project", "Meeting Went Long",
    ]
    ranked = rank_and_filter_title_options(options, MEETING_ENTRY)
    assert len(ranked) == 5
    assert len(set(ranked)) == 5


def test_local_suggestions():
    titles = generate_title_suggestions_local(MEETING_ENTRY)
    assert titles[0].startswith("Meeting With Manager")
    assert 1 <= len(titles) <= 5
    assert len(set(titles)) == len(titles)
    assert all(sanitize_title_candidate(t) == t for t in titles)


def test_local_suggestions_keep_relevant_current_title():
    titles = generate_title_suggestions_local(MEETING_ENTRY, current_title="Manager Meeting Notes")
    assert "Manager Meeting Notes" in titles


def test_local_suggestions_empty_content():
    assert generate_title_suggestions_local("   ") == []


@pytest.fixture
def single_endpoint(monkeypatch):
    monkeypatch.setenv("OLLAMA_ENDPOINTS", "http://ollama:11434/api/generate")
    monkeypatch.setenv("OLLAMA_MODELS", "gemma3:4b")


@patch('llm_client.requests.post')
def test_ollama_titles_are_ranked_and_redacted(mock_post, single_endpoint):
    mock_post.return_value = ollama_titles(["Meeting With Manager Review", "Peanut Butter Freezer", "Prompt Ideas"])
    content = MEETING_ENTRY + " Email me at sam@example.com later."

    titles = generate_title_suggestions_with_ollama(content, cfg=load_config())

    assert titles == ["Meeting With Manager Review"]
    payload = mock_post.call_args.kwargs["json"]
    assert "sam@example.com" not in payload["prompt"]
    assert "[REDACTED_EMAIL]" in payload["prompt"]
    assert payload["model"] == "gemma3:4b"
    assert "system" in payload


@patch('llm_client.requests.post')
def test_ollama_titles_fall_back_to_local(mock_post, single_endpoint):
    mock_post.side_effect = requests.exceptions.ConnectionError("refused")
    titles = generate_title_suggestions_with_ollama(MEETING_ENTRY, cfg=load_config())
    assert titles == generate_title_suggestions_local(MEETING_ENTRY)


@patch('llm_client.requests.post')
def test_ollama_titles_skipped_when_expansion_disabled(mock_post, monkeypatch):
    monkeypatch.setenv("EXPANSION_ENABLED", "false")
    titles = generate_title_suggestions_with_ollama(MEETING_ENTRY, cfg=load_config())
    mock_post.assert_not_called()
    assert titles == generate_title_suggestions_local(MEETING_ENTRY)


ANNUAL_REVIEW_ENTRY = "Had my annual review with my manager today, feeling proud"


def test_annual_review_title_outranks_quirky_title():
    ranked = rank_and_filter_title_options(
        ["Peanut Butter Freezer", "Manager Review Went Well", "Work Check-In"],
        ANNUAL_REVIEW_ENTRY,
    )
    assert ranked[0] == "Manager Review Went Well"
    assert "Peanut Butter Freezer" not in ranked


def test_annual_review_local_titles_are_about_work():
    titles = generate_title_suggestions_local(ANNUAL_REVIEW_ENTRY, current_title="Peanut Butter Freezer")
    assert titles
    assert "work" in titles[0].lower()
    assert "Peanut Butter Freezer" not in titles
