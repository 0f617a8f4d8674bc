"""
Keyword tables for signal extraction.

Dict order matters: ties in action/state ranking are broken by table order.
"""

from typing import Dict, List

# "strong" tokens are unambiguous for the domain; "weak" ones only count
# toward activation once a strong token is present.
DOMAIN_KEYWORDS: Dict[str, Dict[str, List[str]]] = {
    "work": {
        "strong": ["deadline", "meeting", "coworker", "manager", "office", "client", "project"],
        "weak": ["work", "job"],
    },
    "school": {
        "strong": ["exam", "assignment", "homework", "teacher", "professor", "course"],
        "weak": ["school", "class", "study"],
    },
    "relationships": {
        "strong": ["partner", "relationship", "roommate", "boyfriend", "girlfriend"],
        "weak": ["friend", "friends", "family", "parent", "sister", "brother"],
    },
    "health": {
        "strong": ["therapy", "doctor", "migraine", "headache", "sick", "injury"],
        "weak": ["sleep", "rest", "tired", "energy", "health", "exercise", "food"],
    },
    "money": {
        "strong": ["rent", "debt", "income", "paycheck", "mortgage"],
        "weak": ["money", "budget", "bill", "expense", "pay"],
    },
    "life_admin": {
        "strong": ["paperwork", "appointment", "bank", "insurance"],
        "weak": ["laundry", "clean", "groceries", "errand", "email"],
    },
    "self": {
        "strong": ["self-esteem", "confidence", "shame", "comparison", "worthy"],
        "weak": ["self", "critic", "proud"],
    },
}

ACTION_KEYWORDS: Dict[str, List[str]] = {
    "plan": ["plan", "schedule", "tomorrow", "next", "decide", "choice", "priority"],
    "boundaries": ["boundary", "boundaries", "limit", "protect", "space"],
    "rest": ["rest", "sleep", "pause", "break", "recover"],
    "support": ["support", "help", "talk", "reach", "ask", "someone"],
    "gratitude": ["grateful", "gratitude", "appreciate", "thankful"],
    "reflect": ["reflect", "notice", "realize", "learn", "pattern"],
    "reframe": ["reframe", "perspective", "story", "assume", "thought"],
    "values": ["value", "values", "aligned", "meaning", "purpose"],
    "release": ["let go", "release", "leave behind"],
}

STATE_KEYWORDS: Dict[str, List[str]] = {
    "overwhelmed": ["overwhelmed", "too much", "stressed", "stress", "pressure", "burnout"],
    "low_energy": ["tired", "exhausted", "drained", "low energy"],
    "anxious": ["anxious", "anxiety", "nervous", "worry", "worried"],
    "lonely": ["lonely", "alone", "isolated"],
    "calm": ["calm", "steady", "peaceful"],
    "hopeful": ["hopeful", "excited", "optimistic"],
}

# Crisis/trauma vocabulary. A hit only narrows which templates are eligible.
SENSITIVE_KEYWORDS: List[str] = [
    "abuse",
    "assault",
    "trauma",
    "ptsd",
    "self-harm",
    "suicide",
    "suicidal",
    "overdose",
    "violence",
]

CHECKLIST_KEYWORDS: List[str] = ["todo", "todos", "checklist", "to do list"]
FIRST_PERSON_KEYWORDS: List[str] = ["i", "me", "my", "mine", "myself"]
THIRD_PERSON_KEYWORDS: List[str] = ["he", "she", "they", "them", "his", "her", "their"]

# Controlled vocabulary for templates that come from outside the catalog.
ALLOWED_DOMAINS = frozenset([
    "work", "school", "relationships", "health", "money", "life_admin",
    "self", "stress", "responsibilities", "general",
])
ALLOWED_ACTIONS = frozenset(ACTION_KEYWORDS)
ALLOWED_STATES = frozenset(STATE_KEYWORDS)
ALLOWED_TONES = frozenset(["gentle", "neutral", "upbeat", "direct"])
