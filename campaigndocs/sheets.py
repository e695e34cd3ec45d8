"""Google Sheets v4 client used by the exporter and the tab synchronizer."""

from __future__ import annotations

import logging
import re
from typing import Any
from urllib.parse import quote

import httpx

from campaigndocs.config import DRIVE_API_BASE, SHEETS_API_BASE
from campaigndocs.errors import (
    AuthorizationError,
    InvalidSheetUrlError,
    SheetsApiError,
    SheetsNotFoundError,
    SheetsPermissionError,
)
from campaigndocs.models import SheetTab
from campaigndocs.util import format_cell

logger = logging.getLogger(__name__)

_SHEET_ID_RE = re.compile(r"/spreadsheets/d/([a-zA-Z0-9-_]+)")
_FOLDER_ID_RE = re.compile(r"/folders/([a-zA-Z0-9-_]+)")


def extract_sheet_id(url: str) -> str:
    match = _SHEET_ID_RE.search(url or "")
    if not match:
        raise InvalidSheetUrlError(f"Invalid Google Sheets URL: {url!r}")
    return match.group(1)


def extract_folder_id(url: str) -> str | None:
    match = _FOLDER_ID_RE.search(url or "")
    return match.group(1) if match else None


def spreadsheet_url(spreadsheet_id: str) -> str:
    return f"https://docs.google.com/spreadsheets/d/{spreadsheet_id}/edit"


def a1(sheet: str, cell: str) -> str:
    """Quoted A1 range, e.g. ``'MB Data'!A4``."""
    return "'" + sheet.replace("'", "''") + "'!" + cell


def _error_message(resp: httpx.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        return resp.text[:400] or f"HTTP {resp.status_code}"
    if isinstance(body, dict) and isinstance(body.get("error"), dict):
        return str(body["error"].get("message") or f"HTTP {resp.status_code}")
    return resp.text[:400] or f"HTTP {resp.status_code}"


class SheetsClient:
    def __init__(
        self,
        tokens: Any,
        *,
        api_base: str = SHEETS_API_BASE,
        drive_api_base: str = DRIVE_API_BASE,
        timeout: float = 45,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.tokens = tokens
        self.api_base = api_base.rstrip("/")
        self.drive_api_base = drive_api_base.rstrip("/")
        self.timeout = timeout
        self.transport = transport

    def _values_url(self, spreadsheet_id: str, range_name: str, suffix: str = "") -> str:
        return f"{self.api_base}/{spreadsheet_id}/values/{quote(range_name, safe='')}{suffix}"

    async def _request(
        self,
        method: str,
        url: str,
        *,
        range_name: str = "",
        params: dict[str, Any] | None = None,
        json: Any = None,
    ) -> dict[str, Any]:
        token = await self.tokens.get_token()
        headers = {"Authorization": f"Bearer {token}"}
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                resp = await client.request(method, url, params=params, json=json, headers=headers)
        except httpx.TransportError as exc:
            raise SheetsApiError(0, f"network error: {exc}", range_name) from exc

        if resp.status_code == 401:
            self.tokens.invalidate()
            raise AuthorizationError("session_expired")
        if resp.status_code == 403:
            raise SheetsPermissionError(403, _error_message(resp), range_name)
        if resp.status_code == 404:
            raise SheetsNotFoundError(404, _error_message(resp), range_name)
        if resp.status_code >= 400:
            raise SheetsApiError(resp.status_code, _error_message(resp), range_name)
        if not resp.content:
            return {}
        return resp.json()

    # ── values ─────────────────────────────────────────────────────────────────

    async def read_values(self, spreadsheet_id: str, range_name: str) -> list[list[Any]]:
        body = await self._request("GET", self._values_url(spreadsheet_id, range_name), range_name=range_name)
        return body.get("values") or []

    async def read_cell(self, spreadsheet_id: str, sheet: str, cell: str) -> str | None:
        values = await self.read_values(spreadsheet_id, a1(sheet, cell))
        if values and values[0] and values[0][0] not in (None, ""):
            return str(values[0][0])
        return None

    async def write_values(self, spreadsheet_id: str, range_name: str, values: list[list[Any]]) -> dict[str, Any]:
        """Write with USER_ENTERED so typed numbers stay numbers.

        When the API rejects the payload (HTTP 400) the write is retried once as
        RAW with every cell converted to text.
        """
        url = self._values_url(spreadsheet_id, range_name)
        try:
            return await self._request(
                "PUT", url, range_name=range_name, params={"valueInputOption": "USER_ENTERED"}, json={"values": values}
            )
        except SheetsApiError as exc:
            if exc.status != 400:
                raise
            logger.warning("[SHEETS] USER_ENTERED write to %s rejected (%s), retrying as RAW", range_name, exc)

        raw_values = [[format_cell(cell) for cell in row] for row in values]
        return await self._request(
            "PUT", url, range_name=range_name, params={"valueInputOption": "RAW"}, json={"values": raw_values}
        )

    async def write_cell(self, spreadsheet_id: str, sheet: str, cell: str, value: str) -> None:
        range_name = a1(sheet, cell)
        await self._request(
            "PUT",
            self._values_url(spreadsheet_id, range_name),
            range_name=range_name,
            params={"valueInputOption": "RAW"},
            json={"values": [[value]]},
        )

    async def clear_range(self, spreadsheet_id: str, range_name: str) -> None:
        await self._request("POST", self._values_url(spreadsheet_id, range_name, ":clear"), range_name=range_name)

    # ── tabs ───────────────────────────────────────────────────────────────────

    async def list_tabs(self, spreadsheet_id: str) -> list[SheetTab]:
        body = await self._request(
            "GET", f"{self.api_base}/{spreadsheet_id}", params={"fields": "sheets.properties"}
        )
        tabs = []
        for sheet in body.get("sheets") or []:
            props = sheet.get("properties") or {}
            tabs.append(
                SheetTab(
                    sheet_id=int(props.get("sheetId", 0)),
                    title=str(props.get("title", "")),
                    index=int(props.get("index", 0)),
                )
            )
        return tabs

    async def _batch_update(self, spreadsheet_id: str, request: dict[str, Any]) -> dict[str, Any]:
        return await self._request(
            "POST", f"{self.api_base}/{spreadsheet_id}:batchUpdate", json={"requests": [request]}
        )

    async def duplicate_tab(self, spreadsheet_id: str, source_sheet_id: int, new_title: str, insert_index: int) -> int:
        body = await self._batch_update(
            spreadsheet_id,
            {
                "duplicateSheet": {
                    "sourceSheetId": source_sheet_id,
                    "insertSheetIndex": insert_index,
                    "newSheetName": new_title,
                }
            },
        )
        replies = body.get("replies") or [{}]
        new_id = ((replies[0] or {}).get("duplicateSheet") or {}).get("properties", {}).get("sheetId")
        if new_id is None:
            raise SheetsApiError(200, f"duplicate of sheet {source_sheet_id} returned no new sheet id")
        return int(new_id)

    async def rename_tab(self, spreadsheet_id: str, sheet_id: int, new_title: str) -> None:
        await self._batch_update(
            spreadsheet_id,
            {
                "updateSheetProperties": {
                    "properties": {"sheetId": sheet_id, "title": new_title},
                    "fields": "title",
                }
            },
        )

    async def delete_tab(self, spreadsheet_id: str, sheet_id: int) -> None:
        await self._batch_update(spreadsheet_id, {"deleteSheet": {"sheetId": sheet_id}})

    # ── drive ──────────────────────────────────────────────────────────────────

    async def copy_file(self, file_id: str, name: str, folder_id: str | None = None) -> str:
        """Copy a Drive file (the template spreadsheet) and return the new file id."""
        body: dict[str, Any] = {"name": name}
        if folder_id:
            body["parents"] = [folder_id]
        result = await self._request("POST", f"{self.drive_api_base}/{file_id}/copy", json=body)
        new_id = str(result.get("id") or "")
        if not new_id:
            raise SheetsApiError(200, f"copy of file {file_id} returned no file id")
        logger.info("[SHEETS] copied %s to %s (%r)", file_id, new_id, name)
        return new_id
