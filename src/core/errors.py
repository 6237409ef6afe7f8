# src/core/errors.py

from __future__ import annotations

from typing import Optional


class ConfigurationError(ValueError):
    """Required settings (e.g. API credentials) are missing."""


class FetchError(Exception):
    """A flight search could not produce a batch of offers."""

    kind = "fetch-failed"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NetworkError(FetchError):
    kind = "network"


class UpstreamRejectedError(FetchError):
    kind = "upstream-rejected"

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        detail: Optional[str] = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.detail = detail


class NoResultsError(FetchError):
    """Upstream answered but had no offers; callers treat it as an empty batch."""

    kind = "no-results"
