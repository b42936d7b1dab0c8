"""Logging filters that scrub sensitive content."""

from __future__ import annotations

import logging
import re

_SENSITIVE_PATTERN = re.compile(
    r"(Authorization: Bearer\s+[\w\.-]+|access_token\"\s*:\s*\"[^\"]+\"|password\"\s*:\s*\"[^\"]+\")",
    re.IGNORECASE,
)
# Card numbers: 13-19 digits, optionally grouped by spaces or dashes.
_CARD_PATTERN = re.compile(r"(?<![\d-])(?:\d[ -]?){12,18}\d(?![\d-])")
_PHONE_PATTERN = re.compile(r"(?<![\w-])\+?\d{9,15}(?![\w-])")


def redact(text: str) -> str:
    text = _SENSITIVE_PATTERN.sub("**REDACTED**", text)
    text = _CARD_PATTERN.sub("**CARD**", text)
    return _PHONE_PATTERN.sub("**PHONE**", text)


class SensitiveFilter(logging.Filter):
    """Replace tokens, card numbers and phone numbers in log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        if isinstance(record.msg, str):
            record.msg = redact(record.msg)
        if isinstance(record.args, tuple):
            record.args = tuple(
                redact(arg) if isinstance(arg, str) else arg for arg in record.args
            )
        return True


__all__ = ["SensitiveFilter", "redact"]
