"""Tests for template gating and relevance scoring."""

from datetime import datetime

import pytest
from conftest import make_entries

from prompt_engine.catalog import TEMPLATE_LIBRARY, TEMPLATES_BY_ID
from prompt_engine.gating import (
    SENSITIVE_SAFE_ACTIONS,
    gate_templates,
    passes_mode_rules,
    score_template,
    template_matches,
)
from prompt_engine.snapshot import build_prompt_context
from schemas.prompting import ContextSnapshot

SATURDAY = datetime(2026, 10, 17, 11, 0)


def _domains(templates):
    return {d for t in templates for d in t.domains}


def test_saturday_without_work_signal_excludes_work_and_school():
    entries = make_entries(["Slept in, went for a long walk, and cooked dinner with my partner."] * 3)
    snapshot = build_prompt_context(entries, now=SATURDAY)
    assert snapshot.week_mode == "weekend"
    gated = gate_templates(TEMPLATE_LIBRARY, snapshot)
    assert gated
    assert not _domains(gated) & {"work", "school"}


def test_weekend_rule_keeps_work_when_work_detected():
    tpl = TEMPLATES_BY_ID["work_001"]
    weekend_general = ContextSnapshot(domains=["general"], week_mode="weekend")
    weekend_work = ContextSnapshot(domains=["work"], week_mode="weekend")
    assert not passes_mode_rules(tpl, weekend_general)
    assert passes_mode_rules(tpl, weekend_work)


def test_work_templates_need_work_domain():
    tpl = TEMPLATES_BY_ID["work_003"]
    assert not template_matches(tpl, ContextSnapshot(domains=["health"], tone="neutral"))
    assert template_matches(tpl, ContextSnapshot(domains=["work"], actions=["reflect"], tone="neutral"))


def test_sensitive_mode_narrows_to_safe_actions():
    snapshot = ContextSnapshot(domains=["general"], modes=["sensitive_mode"])
    gated = gate_templates(TEMPLATE_LIBRARY, snapshot)
    assert gated
    for tpl in gated:
        assert not tpl.actions or set(tpl.actions) & SENSITIVE_SAFE_ACTIONS


def test_low_signal_keeps_core_domains():
    snapshot = ContextSnapshot(domains=["general"], modes=["low_signal"])
    gated = gate_templates(TEMPLATE_LIBRARY, snapshot)
    assert _domains(gated) <= {"general", "responsibilities", "stress"}


def test_third_person_heavy_limits_relationship_templates():
    snapshot = ContextSnapshot(domains=["relationships"], modes=["third_person_heavy"], tone="gentle")
    gated = gate_templates(TEMPLATE_LIBRARY, snapshot)
    for tpl in gated:
        if "relationships" in tpl.domains:
            assert set(tpl.actions) & {"boundaries", "support", "reframe"}


def test_positive_mode_drops_stress_rest():
    snapshot = ContextSnapshot(domains=["general"], modes=["positive_mode"], states=["overwhelmed"])
    gated = gate_templates(TEMPLATE_LIBRARY, snapshot)
    assert "stress_001" not in {t.id for t in gated}
    assert "stress_002" in {t.id for t in gated}


def test_gate_falls_back_to_core_domains():
    # Only neutral-toned templates exist for an upbeat work-less snapshot
    templates = [TEMPLATES_BY_ID["work_001"], TEMPLATES_BY_ID["resp_003"]]
    snapshot = ContextSnapshot(domains=["money"], tone="upbeat", week_mode="weekday")
    gated = gate_templates(templates, snapshot)
    assert [t.id for t in gated] == ["resp_003"]


def test_score_template_weights():
    tpl = TEMPLATES_BY_ID["work_001"]
    snapshot = ContextSnapshot(domains=["work"], actions=["plan"], tone="neutral")
    assert score_template(tpl, snapshot) == pytest.approx(3.4)
    assert score_template(tpl, snapshot, {"plan"}) == pytest.approx(2.85)


def test_score_template_state_match():
    tpl = TEMPLATES_BY_ID["stress_003"]
    plain = ContextSnapshot(domains=["general"], tone="gentle")
    stressed = ContextSnapshot(domains=["general"], states=["overwhelmed"], tone="gentle")
    assert score_template(tpl, stressed) - score_template(tpl, plain) == pytest.approx(0.7)
