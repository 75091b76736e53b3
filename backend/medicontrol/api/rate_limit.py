"""Redis-backed rate limit dependencies that no-op when the limiter is down."""

from __future__ import annotations

from fastapi import Depends, Request, Response
from fastapi_limiter import FastAPILimiter
from fastapi_limiter.depends import RateLimiter

from medicontrol.core.config import get_settings

_WINDOWS = {
    "second": 1,
    "seconds": 1,
    "minute": 60,
    "minutes": 60,
    "hour": 3600,
    "hours": 3600,
    "day": 86400,
    "days": 86400,
}


def parse_rate(value: str, *, fallback: tuple[int, int]) -> tuple[int, int]:
    """Turn ``"10/minute"`` into ``(10, 60)``."""
    try:
        count_str, window_str = value.split("/", 1)
        count = int(count_str.strip())
    except ValueError:
        return fallback
    return count, _WINDOWS.get(window_str.strip().lower(), fallback[1])


def rate_dependency(limit: tuple[int, int]):
    limiter = RateLimiter(times=limit[0], seconds=limit[1])

    async def _dependency(request: Request, response: Response) -> None:
        if FastAPILimiter.redis is None:
            return None
        await limiter(request, response)

    return Depends(_dependency)


_settings = get_settings()

LOGIN_RATE = rate_dependency(parse_rate(_settings.rate_limit_login, fallback=(10, 60)))
DEFAULT_RATE = rate_dependency(parse_rate(_settings.rate_limit_default, fallback=(100, 60)))
