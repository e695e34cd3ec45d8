from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path


SHEETS_API_BASE = "https://sheets.googleapis.com/v4/spreadsheets"
DRIVE_API_BASE = "https://www.googleapis.com/drive/v3/files"


def default_db_path() -> str:
    return os.environ.get("CAMPAIGNDOCS_DB_PATH", str(Path("data/campaigndocs.sqlite")))


def default_token_cache_path() -> str:
    return os.environ.get("CAMPAIGNDOCS_TOKEN_CACHE", str(Path("data/token_cache.json")))


def _bool_env(name: str, default: bool = False) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return str(raw).strip().lower() in {"1", "true", "yes", "on"}


def _int_env(name: str, default: int) -> int:
    try:
        value = int(os.environ.get(name, str(default)))
    except ValueError:
        return default
    return value if value > 0 else default


@dataclass(frozen=True)
class ExportSettings:
    data_sheet: str = "MB_Data"
    splits_sheet: str = "MB_Splits"
    clear_range: str = "A:Z"
    campaign_cell: str = "A1"
    hierarchy_cell: str = "A4"
    breakdown_cell: str = "A1"
    tag_cell: str = "B1"
    template_tab: str = "Template"
    token_ttl_seconds: int = 50 * 60
    default_language: str = "FR"
    allow_code_lookup: bool = False
    sheets_api_base: str = SHEETS_API_BASE
    drive_api_base: str = DRIVE_API_BASE
    http_timeout: float = 45.0

    @classmethod
    def from_env(cls) -> "ExportSettings":
        language = os.environ.get("CAMPAIGNDOCS_DEFAULT_LANGUAGE", "FR").strip().upper()
        return cls(
            data_sheet=os.environ.get("CAMPAIGNDOCS_DATA_SHEET", "MB_Data"),
            splits_sheet=os.environ.get("CAMPAIGNDOCS_SPLITS_SHEET", "MB_Splits"),
            token_ttl_seconds=_int_env("CAMPAIGNDOCS_TOKEN_TTL_SECONDS", 50 * 60),
            default_language=language if language in {"FR", "EN"} else "FR",
            allow_code_lookup=_bool_env("CAMPAIGNDOCS_SHORTCODE_CODE_LOOKUP", default=False),
            sheets_api_base=os.environ.get("CAMPAIGNDOCS_SHEETS_API_BASE", SHEETS_API_BASE),
            drive_api_base=os.environ.get("CAMPAIGNDOCS_DRIVE_API_BASE", DRIVE_API_BASE),
        )
