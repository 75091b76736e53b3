"""Logging filters that scrub credentials from log lines."""

from __future__ import annotations

import logging
import re

_SENSITIVE_PATTERN = re.compile(
    r"((?:Authorization:\s*)?Bearer\s+[\w\.-]+"
    r"|access_token\"?\s*[:=]\s*\"?[^\"\s,}]+"
    r"|password\"?\s*[:=]\s*\"?[^\"\s,}]+"
    r"|audio_base64\"?\s*[:=]\s*\"?[^\"\s,}]+)",
    re.IGNORECASE,
)


def scrub(text: str) -> str:
    return _SENSITIVE_PATTERN.sub("**REDACTED**", text)


class SensitiveFilter(logging.Filter):
    """Replace bearer tokens, passwords and audio payloads with a marker."""

    def filter(self, record: logging.LogRecord) -> bool:
        if isinstance(record.msg, str):
            record.msg = scrub(record.msg)
        if record.args:
            if isinstance(record.args, tuple):
                record.args = tuple(
                    scrub(arg) if isinstance(arg, str) else arg for arg in record.args
                )
        return True


__all__ = ["SensitiveFilter", "scrub"]
