"""Document export API.

Endpoints:
  POST /api/exports/run        export a campaign version into its Google Sheet
  POST /api/exports/tabs       synchronize the sheet's tabs (creation | refresh)
  POST /api/exports/documents  copy a template into a new document, then export into it
  GET  /api/exports/preview    the tables an export would write, no sheet calls
"""

from __future__ import annotations

import os
from typing import Any

from fastapi import APIRouter, HTTPException, Query
from pydantic import BaseModel

from campaigndocs.config import default_db_path
from campaigndocs.errors import ExportError, error_payload
from campaigndocs.export import DocumentExporter
from campaigndocs.factory import build_exporter
from campaigndocs.tabsync import MODES

router = APIRouter()


class ExportRequest(BaseModel):
    client_id: str
    campaign_id: str
    version_id: str
    sheet_url: str
    export_language: str = ""
    synced_by: str = ""


class CreateDocumentRequest(BaseModel):
    client_id: str
    campaign_id: str
    version_id: str
    name: str
    template_id: str
    created_by: str = ""


class TabSyncRequest(BaseModel):
    client_id: str
    campaign_id: str
    version_id: str
    sheet_url: str
    mode: str = "refresh"


def _db() -> str:
    return os.environ.get("CAMPAIGNDOCS_DB_PATH", default_db_path())


def _exporter() -> DocumentExporter:
    return build_exporter(_db())


def _language(value: str) -> str | None:
    lang = (value or "").strip().upper()
    if not lang:
        return None
    if lang not in ("FR", "EN"):
        raise HTTPException(status_code=400, detail="export_language must be FR or EN")
    return lang


@router.post("/run")
async def run_export(req: ExportRequest) -> dict[str, Any]:
    language = _language(req.export_language)
    result = await _exporter().export(
        req.client_id,
        req.campaign_id,
        req.version_id,
        req.sheet_url,
        export_language=language,
        synced_by=req.synced_by or "api",
    )
    return result.as_dict()


@router.post("/tabs")
async def sync_tabs(req: TabSyncRequest) -> dict[str, Any]:
    if req.mode not in MODES:
        raise HTTPException(status_code=400, detail=f"mode must be one of: {', '.join(MODES)}")
    try:
        result = await _exporter().sync_tabs(req.mode, req.client_id, req.campaign_id, req.version_id, req.sheet_url)
    except ExportError as exc:
        return {"success": False, "error": error_payload(exc)}
    return {"success": True, **result.as_dict()}


@router.post("/documents")
async def create_document(req: CreateDocumentRequest) -> dict[str, Any]:
    result = await _exporter().create_document(
        req.client_id,
        req.campaign_id,
        req.version_id,
        req.name,
        req.template_id,
        created_by=req.created_by or "api",
    )
    return result.as_dict()


@router.get("/preview")
async def preview(
    client_id: str = Query(...),
    campaign_id: str = Query(...),
    version_id: str = Query(...),
    language: str = Query(default=""),
) -> dict[str, Any]:
    lang = _language(language)
    try:
        tables = await _exporter().preview(client_id, campaign_id, version_id, lang)
    except ExportError as exc:
        return {"success": False, "error": error_payload(exc)}
    return {"success": True, **tables}
