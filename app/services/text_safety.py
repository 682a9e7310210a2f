"""
Text hygiene applied before anything is stored or embedded.

`sanitize_text` makes text storable in a PostgreSQL TEXT column.
`redact_pii` is a best-effort, pattern-based scrub of two PII shapes
(US Social Security numbers written ddd-dd-dddd and 16-digit card numbers
written without separators). It does not detect names, emails, phone
numbers, addresses, or card numbers containing spaces or dashes, and must
not be relied on as complete PII removal.
"""
import re

SSN_PLACEHOLDER = "[REDACTED_SSN]"
CARD_PLACEHOLDER = "[REDACTED_CARD]"

# NUL plus every C0 control character except tab (\x09), LF (\x0a) and CR (\x0d)
_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f]")
_SSN_PATTERN = re.compile(r"\b\d{3}-\d{2}-\d{4}\b", re.ASCII)
_CARD_PATTERN = re.compile(r"\b\d{16}\b", re.ASCII)


def sanitize_text(text: str) -> str:
    return _CONTROL_CHARS.sub("", text)


def redact_pii(text: str) -> str:
    text = _SSN_PATTERN.sub(SSN_PLACEHOLDER, text)
    return _CARD_PATTERN.sub(CARD_PLACEHOLDER, text)
