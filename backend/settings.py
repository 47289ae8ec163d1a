"""Environment-driven settings."""
from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from backend.runtime import REFERENCE_DIR

DEFAULT_USASPENDING_URL = "https://api.usaspending.gov/api/v2/search/spending_by_award/"
DEFAULT_USER_AGENT = "AgencyScope/0.1"


@dataclass(frozen=True)
class Settings:
    usaspending_url: str = DEFAULT_USASPENDING_URL
    search_start_date: str = "2022-10-01"
    search_end_date: str = "2025-09-30"
    page_delay_seconds: float = 0.1
    page_timeout_seconds: float = 30.0
    probe_timeout_seconds: float = 5.0
    probe_workers: int = 4
    reference_dir: Path = REFERENCE_DIR
    log_level: str = "INFO"
    http_user_agent: str = DEFAULT_USER_AGENT


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}") from None


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None


def load_settings(reference_dir: Optional[Path] = None) -> Settings:
    """Build settings from the process environment (after ``load_dotenv``)."""
    ref_env = os.getenv("REFERENCE_DIR")
    if reference_dir is None:
        reference_dir = Path(ref_env).expanduser() if ref_env else REFERENCE_DIR

    return Settings(
        usaspending_url=os.getenv("USASPENDING_URL") or DEFAULT_USASPENDING_URL,
        search_start_date=os.getenv("SEARCH_START_DATE") or "2022-10-01",
        search_end_date=os.getenv("SEARCH_END_DATE") or "2025-09-30",
        page_delay_seconds=_float_env("PAGE_DELAY_SECONDS", 0.1),
        page_timeout_seconds=_float_env("PAGE_TIMEOUT_SECONDS", 30.0),
        probe_timeout_seconds=_float_env("PROBE_TIMEOUT_SECONDS", 5.0),
        probe_workers=max(1, _int_env("PROBE_WORKERS", 4)),
        reference_dir=Path(reference_dir),
        log_level=os.getenv("LOG_LEVEL") or "INFO",
        http_user_agent=os.getenv("HTTP_USER_AGENT") or DEFAULT_USER_AGENT,
    )


__all__ = ["Settings", "load_settings", "DEFAULT_USASPENDING_URL"]
