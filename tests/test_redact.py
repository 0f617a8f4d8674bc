from privacy.redact import prepare_for_model, redact


def test_redact_email_phone_url():
    text = "Mail sam@example.com, call 555-123-4567 or see https://example.com/notes?id=1"
    out = redact(text)
    assert "[REDACTED_EMAIL]" in out
    assert "[REDACTED_PHONE]" in out
    assert "[REDACTED_URL]" in out
    assert "sam@example.com" not in out
    assert "555-123-4567" not in out


def test_redact_leaves_plain_text_alone():
    text = "Long day at work, but the walk helped."
    assert redact(text) == text


def test_prepare_for_model_collapses_and_truncates():
    assert prepare_for_model("  a\n\n  b\tc  ") == "a b c"
    assert prepare_for_model("word " * 1000, limit=20) == ("word " * 4)
    assert prepare_for_model(None) == ""
