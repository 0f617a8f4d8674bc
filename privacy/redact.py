import re

EMAIL = re.compile(r"\b[\w\.-]+@[\w\.-]+\.\w+\b")
PHONE = re.compile(r"\b(\+?\d{1,2}\s?)?(\(?\d{3}\)?[\s.-]?)\d{3}[\s.-]?\d{4}\b")
URL = re.compile(r"\bhttps?://\S+|\bwww\.\S+", re.IGNORECASE)
WHITESPACE = re.compile(r"\s+")

MODEL_CONTENT_LIMIT = 2500


def redact(text: str) -> str:
    """
    Apply simple PII redaction to user text.

    - URLs -> [REDACTED_URL]
    - Emails -> [REDACTED_EMAIL]
    - Phone numbers -> [REDACTED_PHONE]
    """
    text = URL.sub("[REDACTED_URL]", text)
    text = EMAIL.sub("[REDACTED_EMAIL]", text)
    text = PHONE.sub("[REDACTED_PHONE]", text)
    return text


def prepare_for_model(text: str, limit: int = MODEL_CONTENT_LIMIT) -> str:
    """Collapse whitespace, redact, and cap the text sent to a local model."""
    clean = WHITESPACE.sub(" ", text or "").strip()
    return redact(clean)[:limit]
