"""
Static template catalog and hand-authored fallback prompts.

Templates must not hedge domains ("work or school"). When the domain is
unclear, the neutral "responsibilities" wording is used instead.
"""

from typing import Dict, List, Tuple

from schemas.prompting import Template


def _t(id: str, domains: List[str], actions: List[str], tones: List[str], text: str, states: Tuple[str, ...] = ()) -> Template:
    return Template(id=id, domains=tuple(domains), actions=tuple(actions), states=states, tones=tuple(tones), text=text)


_STRESS_STATES = ("overwhelmed", "anxious")

TEMPLATE_LIBRARY: Tuple[Template, ...] = (
    # General reflection
    _t("gen_001", ["general"], ["reflect"], ["gentle", "neutral"], "What felt most important to you {timeframe}?"),
    _t("gen_002", ["general"], ["reflect"], ["gentle", "neutral"], "What moment {timeframe} felt most like you?"),
    _t("gen_003", ["general"], ["reframe"], ["gentle"], "What is one kind sentence you actually need right now?"),
    _t("gen_004", ["general"], ["plan"], ["neutral", "direct"], "What is the smallest next step that would make {timeframe} easier?"),
    _t("gen_005", ["general"], ["gratitude"], ["upbeat", "gentle"], "What is one small win you can give yourself credit for {timeframe}?"),
    _t("gen_006", ["general"], ["release"], ["gentle"], "What can you let go of before {timeframe_end}?"),
    _t("gen_007", ["general"], ["values"], ["gentle", "neutral"], "What choice would feel most aligned {timeframe_next}?"),
    _t("gen_008", ["general"], ["support"], ["gentle"], "What kind of support would feel most real and helpful right now?"),

    # Responsibilities: neutral fallback when the domain is unclear
    _t("resp_001", ["responsibilities"], ["plan"], ["neutral", "direct"], "What is one responsibility you can make 10% easier {timeframe_next}?"),
    _t("resp_002", ["responsibilities"], ["boundaries"], ["gentle", "neutral"], "What boundary would protect your energy around responsibilities {timeframe_next}?"),
    _t("resp_003", ["responsibilities"], ["reflect"], ["neutral"], "What part of your responsibilities mattered most {timeframe}?"),
    _t("resp_004", ["responsibilities"], ["reframe"], ["gentle"], "What would “good enough” look like for your responsibilities {timeframe_next}?"),
    _t("resp_005", ["responsibilities"], ["support"], ["gentle", "neutral"], "What would help you feel more supported with responsibilities this week?"),

    # Work
    _t("work_001", ["work"], ["plan"], ["neutral", "direct"], "What is one work task you can make 10% easier {timeframe_next}?"),
    _t("work_002", ["work"], ["boundaries"], ["gentle", "neutral"], "What boundary would protect your energy around work {timeframe_next}?"),
    _t("work_003", ["work"], ["reflect"], ["neutral"], "What part of your work mattered most {timeframe}?"),
    _t("work_004", ["work"], ["reframe"], ["gentle"], "What would “good enough” look like for work {timeframe_next}?"),
    _t("work_005", ["work"], ["support"], ["gentle", "neutral"], "What would help you feel more supported at work this week?"),

    # School, only once it is actually detected
    _t("school_001", ["school"], ["plan"], ["neutral", "direct"], "What is one school task you can make 10% easier {timeframe_next}?"),
    _t("school_002", ["school"], ["boundaries"], ["gentle", "neutral"], "What boundary would protect your energy around school {timeframe_next}?"),
    _t("school_003", ["school"], ["reflect"], ["neutral"], "What part of school mattered most {timeframe}?"),
    _t("school_004", ["school"], ["reframe"], ["gentle"], "What would “good enough” look like for school {timeframe_next}?"),
    _t("school_005", ["school"], ["support"], ["gentle", "neutral"], "What would help you feel more supported with school this week?"),

    # Relationships / connection
    _t("rel_001", ["relationships"], ["reflect"], ["gentle", "neutral"], "What did you need most from someone {timeframe}?"),
    _t("rel_002", ["relationships"], ["plan"], ["gentle"], "What is one small way you can feel more connected {timeframe_next}?"),
    _t("rel_003", ["relationships"], ["boundaries"], ["gentle", "neutral"], "What boundary would make a relationship feel lighter this week?"),
    _t("rel_004", ["relationships"], ["reframe"], ["gentle"], "What is one assumption you could soften about someone {timeframe}?"),
    _t("rel_005", ["relationships"], ["support"], ["gentle"], "Who could you reach out to for a small check-in {timeframe_next}?"),

    # Health / sleep / energy
    _t("hlth_001", ["health"], ["reflect"], ["gentle", "neutral"], "What did your body try to tell you {timeframe}?"),
    _t("hlth_002", ["health"], ["plan"], ["gentle", "neutral"], "What would help you protect your energy {timeframe_next}?"),
    _t("hlth_003", ["health"], ["rest"], ["gentle"], "What would make rest feel more possible before {timeframe_end}?"),
    _t("hlth_004", ["health"], ["boundaries"], ["gentle"], "What boundary could protect your time or energy this week?"),
    _t("hlth_005", ["health"], ["gratitude"], ["upbeat", "gentle"], "What helped your energy shift in a better direction {timeframe}?"),

    # Money / life admin
    _t("money_001", ["money"], ["plan"], ["neutral", "direct"], "What is one money decision you can simplify {timeframe_next}?"),
    _t("money_002", ["money"], ["boundaries"], ["gentle", "neutral"], "What boundary would help you feel steadier about money this week?"),
    _t("admin_001", ["life_admin"], ["plan"], ["neutral", "direct"], "What is one small life task you can finish to feel lighter {timeframe_next}?"),
    _t("admin_002", ["life_admin"], ["reflect"], ["gentle", "neutral"], "What has been quietly taking your attention lately?"),

    # Self-confidence / inner critic
    _t("self_001", ["self"], ["reframe"], ["gentle"], "If your inner critic spoke up {timeframe}, what would a kinder reply be?"),
    _t("self_002", ["self"], ["reflect"], ["gentle", "neutral"], "Where did you show strength {timeframe}, even in a small way?"),
    _t("self_003", ["self"], ["values"], ["gentle"], "What do you want to believe about yourself {timeframe_next}?"),
    _t("self_004", ["self"], ["gratitude"], ["upbeat", "gentle"], "What is one part of how you handled {timeframe} that you like?"),

    # Stress / overwhelm: eligible through "general", boosted by matching states
    _t("stress_001", ["stress", "general"], ["rest"], ["gentle"], "What is one small way you can soften pressure before {timeframe_end}?", _STRESS_STATES),
    _t("stress_002", ["stress", "general"], ["plan"], ["gentle", "neutral"], "What is one detail you can control in the next 10 minutes?", _STRESS_STATES),
    _t("stress_003", ["stress", "general"], ["support"], ["gentle"], "Do you need a plan, a pause, or a person most right now?", _STRESS_STATES),
    _t("stress_004", ["stress", "general"], ["boundaries"], ["gentle", "neutral"], "What boundary would help you breathe easier this week?", _STRESS_STATES),

    # Week rhythm
    _t("wknd_001", ["general"], ["release"], ["gentle"], "What would feel worth resetting before the week begins?"),
    _t("wknd_002", ["general"], ["plan"], ["gentle", "neutral"], "What would make this weekend feel genuinely restorative?"),
    _t("wknd_003", ["general"], ["values"], ["gentle"], "What do you want to make space for outside of responsibilities this week?"),
)

TEMPLATES_BY_ID: Dict[str, Template] = {t.id: t for t in TEMPLATE_LIBRARY}

# Appended only when a draw from the library undershoots the requested count.
UNIVERSAL_PROMPTS: Tuple[str, ...] = (
    "What is one small win you can acknowledge today?",
    "What do you need more of right now: rest, clarity, connection, or courage?",
    "What drained you today, and what refueled you?",
    "What can you leave behind before tomorrow starts?",
    "What would make tomorrow feel 10% easier?",
    "What are you proud you didn’t give up on today?",
    "What would help you feel steadier in the next hour?",
    "What is one task you can simplify before tonight?",
    "What support would help you move forward right now?",
    "What felt meaningful today, even if it was small?",
    "What is one boundary you want to keep this week?",
    "What does your mind need before you rest tonight?",
)

# Context-free starters used as the static fallback tier of single-prompt picks.
STARTER_PROMPTS: Tuple[str, ...] = (
    "What’s something small you handled better than before?",
    "What stayed with you from today?",
    "What felt heavier than expected today?",
    "What gave you a bit of energy today?",
    "What are you learning about yourself lately?",
    "What moment made you feel most like yourself today?",
    "What drained you today, and what refilled you even a little?",
    "What’s one thought you keep looping on?",
    "What did you do today that future-you will thank you for?",
    "What felt unexpectedly good today?",
    "What’s one fear that showed up today?",
    "What’s one worry you can let go of tonight?",
    "What’s a lesson you’re resisting?",
    "What do you need more of this week?",
    "What do you need less of this week?",
)


def static_fallback_prompts() -> List[str]:
    """Universal prompts first, then starters, without duplicates."""
    seen = set()
    out = []
    for p in UNIVERSAL_PROMPTS + STARTER_PROMPTS:
        if p not in seen:
            seen.add(p)
            out.append(p)
    return out
