"""
Prompt templates for question-template expansion.
"""

import json

from prompt_engine.keywords import ALLOWED_ACTIONS, ALLOWED_DOMAINS, ALLOWED_STATES, ALLOWED_TONES
from schemas.prompting import ContextSnapshot

EXPANSION_TEMPLATE_COUNT = 10


def _allowed(values) -> str:
    return ", ".join(sorted(values))


TEMPLATE_SYSTEM_PROMPT = f"""You write short journal question templates in second-person voice.

CRITICAL RULES:
1. Each text is a single question template ending with '?', 5-22 words
2. The ONLY placeholders allowed are {{timeframe}}, {{timeframe_next}} and {{timeframe_end}}, and they are optional
3. No names, no private details, no quotes from anyone
4. No meta or UI words: prompt, app, journal, chatgpt, assistant, system, model, cache, code, entry
5. Templates must read correctly without inserting user phrases
6. Never hedge between domains ("work or school"); if unclear, use responsibilities

Allowed domains: {_allowed(ALLOWED_DOMAINS)}.
Allowed actions: {_allowed(ALLOWED_ACTIONS)}.
Allowed states: {_allowed(ALLOWED_STATES)}.
Allowed tones: {_allowed(ALLOWED_TONES)}.

Return a JSON object in this exact shape:
{{"templates": [{{"id": "ai_x", "domains": [...], "actions": [...], "states": [...], "tones": [...], "text": "..."}}]}}

CRITICAL: Return ONLY valid JSON. Do not add markdown, no commentary, no code fences."""


def get_expansion_prompt(snapshot: ContextSnapshot, count: int = EXPANSION_TEMPLATE_COUNT) -> str:
    """
    Build the template expansion prompt.

    Only the snapshot's tags go to the model; entry text never does.

    Args:
        snapshot: Context snapshot the templates should fit
        count: Number of templates to ask for

    Returns:
        Formatted user prompt
    """
    summary = {
        "domains": snapshot.domains,
        "actions": snapshot.actions,
        "states": snapshot.states,
        "tone": snapshot.tone,
        "week_mode": snapshot.week_mode,
        "modes": snapshot.modes,
        "timeframe": snapshot.timeframe,
        "timeframe_next": snapshot.timeframe_next,
        "timeframe_end": snapshot.timeframe_end,
    }
    prompt = "User snapshot (choose variety, do not overfit):\n"
    prompt += f"{json.dumps(summary)}\n\n"
    prompt += f"Create {count} templates with unique ids (prefix ai_), diverse stems, and safe phrasing.\n"
    if snapshot.domains != ["school"]:
        prompt += "Do not write school templates; the snapshot does not point to school.\n"
    prompt += "\nReturn ONLY valid JSON. No markdown, no commentary, no code fences."
    return prompt
