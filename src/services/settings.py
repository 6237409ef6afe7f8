# src/services/settings.py

from __future__ import annotations

import logging
import os
from dataclasses import dataclass

from dotenv import load_dotenv


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    try:
        return int(raw) if raw else default
    except ValueError:
        return default


@dataclass(frozen=True)
class Settings:
    amadeus_client_id: str = ""
    amadeus_client_secret: str = ""
    amadeus_env: str = "test"  # "test" | "production"
    amadeus_timeout_seconds: int = 20
    results_max: int = 30
    default_currency: str = "GBP"
    log_level: str = "INFO"

    @property
    def has_amadeus_credentials(self) -> bool:
        return bool(self.amadeus_client_id and self.amadeus_client_secret)

    @property
    def amadeus_base_url(self) -> str:
        return (
            "https://test.api.amadeus.com"
            if self.amadeus_env == "test"
            else "https://api.amadeus.com"
        )

    @classmethod
    def from_env(cls) -> "Settings":
        """Read settings from the environment (and a local .env, if present)."""
        load_dotenv()
        return cls(
            amadeus_client_id=os.getenv("AMADEUS_CLIENT_ID", "").strip(),
            amadeus_client_secret=os.getenv("AMADEUS_CLIENT_SECRET", "").strip(),
            amadeus_env=os.getenv("AMADEUS_ENV", "test").strip().lower(),
            amadeus_timeout_seconds=_int_env("AMADEUS_TIMEOUT_SECONDS", 20),
            results_max=_int_env("FLIGHT_RESULTS_MAX", 30),
            default_currency=os.getenv("DEFAULT_CURRENCY", "GBP").strip().upper(),
            log_level=os.getenv("LOG_LEVEL", "INFO").strip().upper(),
        )


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
