"""
Request Guards
==============

API key authentication, payload screening and per-client rate limiting.
"""

from dataclasses import dataclass
from typing import Dict, Optional
import math
import re
import secrets
import time

from fastapi import Depends
from fastapi.security import APIKeyQuery

from html2img.api.errors import ApiError
from html2img.config.logging import get_logger
from html2img.config.settings import get_settings

logger = get_logger(__name__)

# API key query parameter
api_key_query = APIKeyQuery(name="apiKey", auto_error=False)

MALICIOUS_PATTERNS = [
    re.compile(r"electron", re.IGNORECASE),
    re.compile(r"child_process", re.IGNORECASE),
    re.compile(r"require\s*\(\s*['\"]os['\"]\s*\)", re.IGNORECASE),
    re.compile(r"require\s*\(\s*['\"]fs['\"]\s*\)", re.IGNORECASE),
    re.compile(r"require\s*\(\s*['\"]path['\"]\s*\)", re.IGNORECASE),
    re.compile(r"process\.env", re.IGNORECASE),
    re.compile(r"process\.exit", re.IGNORECASE),
    re.compile(r"<\s*iframe.*src\s*=\s*[\"']file://", re.IGNORECASE),
]


async def validate_api_key(api_key: Optional[str] = Depends(api_key_query)) -> str:
    """
    Validate the apiKey query parameter.

    Raises:
        ApiError: 500 if the server has no key configured, 401 if the key is
            missing or wrong
    """
    expected = get_settings().api_key

    if not expected:
        logger.error("API key is not configured")
        raise ApiError("Server authentication configuration error", 500)

    if not api_key:
        raise ApiError("API key is required", 401)

    if not secrets.compare_digest(api_key.encode(), expected.encode()):
        raise ApiError("Invalid API key", 401)

    return api_key


def check_payload_size(content_length: Optional[str]) -> None:
    """Reject bodies whose declared size exceeds the configured limit."""
    if content_length is None:
        return
    try:
        size = int(content_length)
    except ValueError:
        raise ApiError("Invalid Content-Length header", 400)
    if size > get_settings().max_payload_bytes:
        raise ApiError("Payload too large", 413)


def reject_malicious_content(*fragments: Optional[str]) -> None:
    """Refuse content matching known sandbox-escape patterns."""
    combined = " ".join(fragment for fragment in fragments if fragment)
    for pattern in MALICIOUS_PATTERNS:
        if pattern.search(combined):
            logger.warning("Malicious pattern detected", pattern=pattern.pattern)
            raise ApiError("Potentially malicious code detected", 400)


@dataclass
class _Window:
    count: int
    started: float


class RateLimiter:
    """Fixed-window request counter keyed by client address."""

    def __init__(self, max_requests: int = 60, window_ms: int = 60000):
        self.max_requests = max_requests
        self.window = window_ms / 1000
        self._windows: Dict[str, _Window] = {}

    def check(self, key: str, now: Optional[float] = None) -> None:
        """
        Count a request for key.

        Raises:
            ApiError: 429 with details.retryAfter (seconds) once the window's
                budget is spent
        """
        now = time.monotonic() if now is None else now
        self._evict_expired(now)

        window = self._windows.get(key)
        if window is None or now - window.started > self.window:
            self._windows[key] = _Window(count=1, started=now)
            return

        window.count += 1
        if window.count > self.max_requests:
            retry_after = max(1, math.ceil(window.started + self.window - now))
            raise ApiError("Too many requests", 429, {"retryAfter": retry_after})

    def reset(self) -> None:
        self._windows.clear()

    def _evict_expired(self, now: float) -> None:
        expired = [k for k, w in self._windows.items() if now - w.started > self.window]
        for key in expired:
            del self._windows[key]


# Global rate limiter instance
_rate_limiter: Optional[RateLimiter] = None


def get_rate_limiter() -> RateLimiter:
    """Get the process-wide rate limiter."""
    global _rate_limiter
    if _rate_limiter is None:
        settings = get_settings()
        _rate_limiter = RateLimiter(settings.rate_limit_max, settings.rate_limit_window)
    return _rate_limiter


def reset_rate_limiter() -> None:
    """Drop the process-wide rate limiter so it is rebuilt from current settings."""
    global _rate_limiter
    _rate_limiter = None
