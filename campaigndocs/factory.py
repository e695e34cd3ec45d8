from __future__ import annotations

from campaigndocs.auth import AccessTokenProvider, RefreshTokenFlow
from campaigndocs.cache import FileCache
from campaigndocs.config import ExportSettings, default_db_path, default_token_cache_path
from campaigndocs.export import DocumentExporter
from campaigndocs.sheets import SheetsClient
from campaigndocs.shortcodes import ShortcodeCache
from campaigndocs.store import SqliteStore


def build_exporter(db_path: str = "", settings: ExportSettings | None = None) -> DocumentExporter:
    """Wire the exporter from environment configuration.

    The access token and the shortcode map share one file cache so both
    survive between CLI runs.
    """
    settings = settings or ExportSettings.from_env()
    store = SqliteStore(db_path or default_db_path())
    cache = FileCache(default_token_cache_path())
    tokens = AccessTokenProvider(cache, RefreshTokenFlow.from_env(), ttl=settings.token_ttl_seconds)
    sheets = SheetsClient(
        tokens,
        api_base=settings.sheets_api_base,
        drive_api_base=settings.drive_api_base,
        timeout=settings.http_timeout,
    )
    return DocumentExporter(store, sheets, tokens, ShortcodeCache(cache), settings)
