# src/services/token_cache.py

from __future__ import annotations

import time
from typing import Callable, Optional


class TokenCache:
    """
    Holds one OAuth2 access token and its expiry.

    A token is served until `refresh_margin_seconds` before it expires, so a
    request never goes out with a token about to lapse mid-flight. The clock
    is injectable to keep expiry testable.
    """

    def __init__(
        self,
        refresh_margin_seconds: float = 60.0,
        clock: Callable[[], float] = time.time,
    ):
        self.refresh_margin_seconds = refresh_margin_seconds
        self._clock = clock
        self._token: Optional[str] = None
        self._expires_at: float = 0.0  # seconds since epoch

    @property
    def expires_at(self) -> float:
        return self._expires_at

    def get(self) -> Optional[str]:
        if self._token and self._clock() < self._expires_at - self.refresh_margin_seconds:
            return self._token
        return None

    def store(self, token: str, expires_in: float) -> None:
        self._token = token
        self._expires_at = self._clock() + float(expires_in)

    def clear(self) -> None:
        self._token = None
        self._expires_at = 0.0
