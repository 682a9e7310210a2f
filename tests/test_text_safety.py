import pytest
from app.services.text_safety import (
    CARD_PLACEHOLDER,
    SSN_PLACEHOLDER,
    redact_pii,
    sanitize_text,
)

def test_sanitize_removes_nul_and_control_characters():
    raw = "He\x00llo\x01 wor\x08ld\x0b\x0c\x0e\x1f!"
    assert sanitize_text(raw) == "Hello world!"

def test_sanitize_keeps_tab_newline_and_carriage_return():
    raw = "col1\tcol2\r\nrow2\n"
    assert sanitize_text(raw) == raw

@pytest.mark.parametrize("raw", [
    "plain text",
    "bad\x00bytes\x07here",
    "\x00\x00\x00",
    "",
])
def test_sanitize_is_idempotent(raw):
    once = sanitize_text(raw)
    assert "\x00" not in once
    assert sanitize_text(once) == once

def test_redact_replaces_every_ssn():
    text = "SSN 123-45-6789 and again 987-65-4321."
    assert redact_pii(text) == f"SSN {SSN_PLACEHOLDER} and again {SSN_PLACEHOLDER}."

def test_redact_replaces_sixteen_digit_runs():
    text = "Card 4111111111111111 on file"
    assert redact_pii(text) == f"Card {CARD_PLACEHOLDER} on file"

def test_redact_leaves_other_digit_runs_alone():
    # 15 and 17 digits, a phone number and a dashed card number are out of scope
    text = "411111111111111 41111111111111111 555-123-4567 4111-1111-1111-1111"
    assert redact_pii(text) == text

def test_redact_is_idempotent():
    text = "John Doe, SSN 123-45-6789, card 1234567812345678."
    once = redact_pii(text)
    assert redact_pii(once) == once

def test_example_document_is_redacted():
    text = "John Doe, SSN 123-45-6789."
    assert sanitize_text(text) == text
    assert redact_pii(sanitize_text(text)) == "John Doe, SSN [REDACTED_SSN]."
