"""Failure taxonomy for the export pipeline.

Integrity, fetch, authorization, API and partial-write faults all abort an
export. Parse faults (bad stored dates, non-numeric cells) never reach this
module: they are logged and recovered where they happen.
"""

from __future__ import annotations

from typing import Any


class ExportError(Exception):
    kind = "export"


class IntegrityError(ExportError):
    kind = "integrity"


class FetchError(ExportError):
    kind = "fetch"


class MappingConfigError(ExportError):
    kind = "config"


class InvalidSheetUrlError(ExportError):
    kind = "invalid_url"


class DocumentCreationError(ExportError):
    kind = "creation"


AUTH_MESSAGES = {
    "authorization_required": "Google authorization is required before accessing the spreadsheet.",
    "popup_blocked": "The Google sign-in popup was blocked. Allow popups for this site and try again.",
    "unauthorized_domain": "This domain is not authorized for Google sign-in.",
    "operation_not_allowed": "Google sign-in is not enabled for this project.",
    "network": "Network error while contacting Google. Check your connection and try again.",
    "session_expired": "Your Google session has expired. Please sign in again.",
    "denied": "Google authorization was denied.",
    "token_missing": "Google did not return an access token.",
}


class AuthorizationError(ExportError):
    kind = "authorization"

    def __init__(self, reason: str, message: str = "") -> None:
        self.reason = reason
        super().__init__(message or AUTH_MESSAGES.get(reason, "Google authentication error."))


class SheetsApiError(ExportError):
    kind = "api"

    def __init__(self, status: int, message: str, range_name: str = "") -> None:
        self.status = status
        self.api_message = message
        self.range_name = range_name
        super().__init__(self._describe())

    def _describe(self) -> str:
        return f"Google Sheets API error ({self.status}): {self.api_message}"


class SheetsPermissionError(SheetsApiError):
    def _describe(self) -> str:
        return f"Insufficient permissions on the spreadsheet: {self.api_message}"


class SheetsNotFoundError(SheetsApiError):
    def _describe(self) -> str:
        target = f"'{self.range_name}'" if self.range_name else "spreadsheet"
        return f"Google Sheet or tab {target} not found: {self.api_message}"


class TabSyncError(ExportError):
    kind = "tab_sync"

    def __init__(self, message: str, *, created: int = 0, renamed: int = 0, deleted: int = 0) -> None:
        self.created = created
        self.renamed = renamed
        self.deleted = deleted
        super().__init__(message)


class TemplateTabMissingError(TabSyncError):
    pass


class PartialWriteError(ExportError):
    kind = "partial_write"

    def __init__(self, failed: dict[str, BaseException], succeeded: list[str]) -> None:
        self.failed = failed
        self.succeeded = succeeded
        details = "; ".join(f"{target}: {exc}" for target, exc in failed.items())
        super().__init__(f"{len(failed)} of {len(failed) + len(succeeded)} sheet writes failed ({details})")


def error_payload(exc: BaseException) -> dict[str, Any]:
    payload: dict[str, Any] = {"kind": getattr(exc, "kind", "unknown"), "message": str(exc)}
    if isinstance(exc, SheetsApiError):
        payload["status"] = exc.status
    if isinstance(exc, AuthorizationError):
        payload["reason"] = exc.reason
    return payload
