"""Application settings loaded from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

_DEFAULT_TIMEOUT = 10.0
_DEFAULT_RADIUS_KM = 5.0
_DEFAULT_SEARCH_VIEW = "building_search_view"
_DEFAULT_BUILDINGS_TABLE = "buildings_table_2"


@dataclass(frozen=True)
class AppSettings:
    """Settings container for the Supabase connection and search behaviour."""

    supabase_url: Optional[str]
    supabase_key: Optional[str]
    timeout: float = _DEFAULT_TIMEOUT
    default_radius_km: float = _DEFAULT_RADIUS_KM
    search_view: str = _DEFAULT_SEARCH_VIEW
    buildings_table: str = _DEFAULT_BUILDINGS_TABLE
    architect_resolution: str = "legacy"


@lru_cache(maxsize=1)
def get_app_settings() -> AppSettings:
    """Return cached application settings parsed from the environment."""
    return AppSettings(
        supabase_url=_coerce_env(os.getenv("SUPABASE_URL")),
        supabase_key=_coerce_env(os.getenv("SUPABASE_ANON_KEY")),
        timeout=float(os.getenv("ARCHIMAP_SUPABASE_TIMEOUT", str(_DEFAULT_TIMEOUT))),
        default_radius_km=float(os.getenv("ARCHIMAP_DEFAULT_RADIUS_KM", str(_DEFAULT_RADIUS_KM))),
        search_view=_coerce_env(os.getenv("ARCHIMAP_SEARCH_VIEW")) or _DEFAULT_SEARCH_VIEW,
        buildings_table=_coerce_env(os.getenv("ARCHIMAP_BUILDINGS_TABLE")) or _DEFAULT_BUILDINGS_TABLE,
        architect_resolution=(_coerce_env(os.getenv("ARCHIMAP_ARCHITECT_RESOLUTION")) or "legacy").lower(),
    )


def _coerce_env(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    stripped = value.strip()
    return stripped or None


def reset_settings_cache() -> None:
    """Clear cached settings; intended for use in test suites."""
    get_app_settings.cache_clear()


__all__ = ["AppSettings", "get_app_settings", "reset_settings_cache"]
