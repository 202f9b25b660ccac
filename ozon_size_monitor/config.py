"""Configuration loader.

Reads environment variables and `.env` to configure the service.
"""

from __future__ import annotations

import os
from enum import Enum
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

# Load variables from a .env file if present (project root).
load_dotenv(dotenv_path=Path(__file__).resolve().parents[1] / ".env")


def _get_env(name: str, default: Optional[str] = None) -> Optional[str]:
    return os.environ.get(name, default)


def _parse_bool(value: Optional[str], default: bool = False) -> bool:
    if value is None:
        return default
    v = value.strip().lower()
    if v in ("1", "true", "yes", "y", "on"):
        return True
    if v in ("0", "false", "no", "n", "off"):
        return False
    return default


def _parse_int(value: Optional[str], default: int) -> int:
    try:
        return int(value.strip()) if value is not None else default
    except ValueError:
        return default


def _get_list(name: str, default: str = "", *, lower: bool = False) -> List[str]:
    raw = _get_env(name, default) or ""
    items = [s.strip() for s in raw.split(",") if s.strip()]
    return [s.lower() for s in items] if lower else items


class TrackingMode(str, Enum):
    """Which kinds of change the reconciler reports."""

    DIMENSIONS = "DIMENSIONS"
    ATTRIBUTE = "ATTRIBUTE"
    BOTH = "BOTH"

    @property
    def tracks_dimensions(self) -> bool:
        return self in (TrackingMode.DIMENSIONS, TrackingMode.BOTH)

    @property
    def tracks_attributes(self) -> bool:
        return self in (TrackingMode.ATTRIBUTE, TrackingMode.BOTH)

    @classmethod
    def parse(cls, raw: Optional[str]) -> "TrackingMode":
        value = (raw or "").strip().upper()
        if value == "ATTRIBUTES":
            value = "ATTRIBUTE"
        return cls(value or cls.DIMENSIONS.value)


# ---- Seller API ---------------------------------------------------------------

OZON_API_BASE: str = (_get_env("OZON_API_BASE", "https://api-seller.ozon.ru") or "").rstrip("/")
OZON_CLIENT_ID: str = (_get_env("OZON_CLIENT_ID", "") or "").strip()
OZON_API_KEY: str = (_get_env("OZON_API_KEY", "") or "").strip()

HTTP_TIMEOUT_SECONDS: int = _parse_int(_get_env("HTTP_TIMEOUT_SECONDS"), 30)

# Listing page size; also the number of offers reconciled per batch.
PAGE_SIZE: int = _parse_int(_get_env("PAGE_SIZE"), 1000)

# Sub-chunk size for the fallback info endpoint and for attribute fetches.
FALLBACK_CHUNK_SIZE: int = _parse_int(_get_env("FALLBACK_CHUNK_SIZE"), 100)

# Attempts per API call when the server answers 429.
API_MAX_ATTEMPTS: int = max(1, _parse_int(_get_env("API_MAX_ATTEMPTS"), 3))

# ---- Telegram -----------------------------------------------------------------

TELEGRAM_BOT_TOKEN: str = (_get_env("TELEGRAM_BOT_TOKEN", "") or "").strip()
TELEGRAM_API_BASE: str = (_get_env("TELEGRAM_API_BASE", "https://api.telegram.org") or "").rstrip("/")

# ---- Scanning -----------------------------------------------------------------

POLL_INTERVAL_SECONDS: int = _parse_int(_get_env("POLL_INTERVAL_SECONDS"), 60)

# Simultaneous batches per scan. Higher values risk upstream throttling.
SCAN_CONCURRENCY: int = max(1, _parse_int(_get_env("SCAN_CONCURRENCY"), 2))

# Optional allow-list. When set, only one listing page is requested.
TRACK_OFFER_IDS: List[str] = _get_list("TRACK_OFFER_IDS")

_SIZE_TRACKING_MODE_RAW: str = _get_env("SIZE_TRACKING_MODE", "DIMENSIONS") or "DIMENSIONS"

SIZE_ATTRIBUTE_PATTERNS: List[str] = _get_list(
    "SIZE_ATTRIBUTE_PATTERNS",
    "размер,российский размер,размер производителя,size",
    lower=True,
)

NOTIFY_ON_NEW_PRODUCT: bool = _parse_bool(_get_env("NOTIFY_ON_NEW_PRODUCT"), False)

# ---- Storage ------------------------------------------------------------------

DB_PATH: str = (_get_env("DB_PATH", "ozon_notifier.db") or "ozon_notifier.db").strip()

# ---- Logging ------------------------------------------------------------------

LOG_LEVEL: str = _get_env("LOG_LEVEL", "INFO") or "INFO"
LOG_FILE: str = (_get_env("LOG_FILE", "") or "").strip()
LOG_API: bool = _parse_bool(_get_env("LOG_API"), True)
LOG_REQ_BODY: bool = _parse_bool(_get_env("LOG_REQ_BODY"), False)
LOG_RES_BODY: bool = _parse_bool(_get_env("LOG_RES_BODY"), False)
LOG_MAX_BODY_CHARS: int = _parse_int(_get_env("LOG_MAX_BODY_CHARS"), 2000)


try:
    SIZE_TRACKING_MODE: TrackingMode = TrackingMode.parse(_SIZE_TRACKING_MODE_RAW)
except ValueError:
    # Reported by validate(); keep the module importable.
    SIZE_TRACKING_MODE = TrackingMode.DIMENSIONS
    _MODE_INVALID = True
else:
    _MODE_INVALID = False


# ---- Validation --------------------------------------------------------------

def validate() -> None:
    """Validate required configuration parameters."""
    if not OZON_CLIENT_ID or not OZON_API_KEY:
        raise RuntimeError(
            "OZON_CLIENT_ID and OZON_API_KEY must be set. See .env.example for details."
        )
    if not TELEGRAM_BOT_TOKEN:
        raise RuntimeError(
            "TELEGRAM_BOT_TOKEN must be set. See .env.example for details."
        )
    if _MODE_INVALID:
        raise RuntimeError(
            f"SIZE_TRACKING_MODE={_SIZE_TRACKING_MODE_RAW!r} is not one of DIMENSIONS, ATTRIBUTE, BOTH."
        )


__all__ = [
    "TrackingMode",
    # Seller API
    "OZON_API_BASE",
    "OZON_CLIENT_ID",
    "OZON_API_KEY",
    "HTTP_TIMEOUT_SECONDS",
    "PAGE_SIZE",
    "FALLBACK_CHUNK_SIZE",
    "API_MAX_ATTEMPTS",
    # Telegram
    "TELEGRAM_BOT_TOKEN",
    "TELEGRAM_API_BASE",
    # Scanning
    "POLL_INTERVAL_SECONDS",
    "SCAN_CONCURRENCY",
    "TRACK_OFFER_IDS",
    "SIZE_TRACKING_MODE",
    "SIZE_ATTRIBUTE_PATTERNS",
    "NOTIFY_ON_NEW_PRODUCT",
    # Storage
    "DB_PATH",
    # Logging
    "LOG_LEVEL",
    "LOG_FILE",
    "LOG_API",
    "LOG_REQ_BODY",
    "LOG_RES_BODY",
    "LOG_MAX_BODY_CHARS",
    # Helpers
    "validate",
]
