"""Shared schema field types."""

from __future__ import annotations

import re
from typing import Annotated

from pydantic import AfterValidator

_CLOCK_RE = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)(:[0-5]\d)?$")


def normalize_clock(value: str) -> str:
    """Accept ``HH:MM`` or ``HH:MM:SS`` and return ``HH:MM``."""
    match = _CLOCK_RE.match(value.strip())
    if match is None:
        raise ValueError("Time must be formatted as HH:MM")
    return f"{match.group(1)}:{match.group(2)}"


ClockTime = Annotated[str, AfterValidator(normalize_clock)]
