"""SQLite-backed campaign store with Firestore-style collection paths."""

from __future__ import annotations

import uuid
from typing import Any

from campaigndocs.db import ensure_schema, get_record, list_records, put_record, update_record
from campaigndocs.models import (
    BreakdownDefinition,
    Campaign,
    ClientInfo,
    Creative,
    DocumentRecord,
    DocumentStatus,
    Placement,
    Section,
    Shortcode,
    Tab,
    Tactic,
    Template,
)
from campaigndocs.util import now_iso


def version_path(client_id: str, campaign_id: str, version_id: str) -> str:
    return f"clients/{client_id}/campaigns/{campaign_id}/versions/{version_id}"


def tabs_path(client_id: str, campaign_id: str, version_id: str) -> str:
    return f"{version_path(client_id, campaign_id, version_id)}/tabs"


def sections_path(client_id: str, campaign_id: str, version_id: str, tab_id: str) -> str:
    return f"{tabs_path(client_id, campaign_id, version_id)}/{tab_id}/sections"


def tactics_path(client_id: str, campaign_id: str, version_id: str, tab_id: str, section_id: str) -> str:
    return f"{sections_path(client_id, campaign_id, version_id, tab_id)}/{section_id}/tactics"


def placements_path(
    client_id: str, campaign_id: str, version_id: str, tab_id: str, section_id: str, tactic_id: str
) -> str:
    return f"{tactics_path(client_id, campaign_id, version_id, tab_id, section_id)}/{tactic_id}/placements"


def creatives_path(
    client_id: str,
    campaign_id: str,
    version_id: str,
    tab_id: str,
    section_id: str,
    tactic_id: str,
    placement_id: str,
) -> str:
    base = placements_path(client_id, campaign_id, version_id, tab_id, section_id, tactic_id)
    return f"{base}/{placement_id}/creatives"


def breakdowns_path(client_id: str, campaign_id: str) -> str:
    return f"clients/{client_id}/campaigns/{campaign_id}/breakdowns"


def documents_path(client_id: str, campaign_id: str, version_id: str) -> str:
    return f"{version_path(client_id, campaign_id, version_id)}/documents"


class SqliteStore:
    """Read accessors used by the export pipeline, plus its own document writes."""

    def __init__(self, db_path: str) -> None:
        self.db_path = db_path

    def init(self) -> None:
        ensure_schema(self.db_path)

    # ── hierarchy ──────────────────────────────────────────────────────────────

    async def get_tabs(self, client_id: str, campaign_id: str, version_id: str) -> list[Tab]:
        docs = list_records(self.db_path, tabs_path(client_id, campaign_id, version_id))
        return [Tab.from_doc(d) for d in docs]

    async def get_sections(self, client_id: str, campaign_id: str, version_id: str, tab_id: str) -> list[Section]:
        docs = list_records(self.db_path, sections_path(client_id, campaign_id, version_id, tab_id))
        return [Section.from_doc(d) for d in docs]

    async def get_tactics(
        self, client_id: str, campaign_id: str, version_id: str, tab_id: str, section_id: str
    ) -> list[Tactic]:
        docs = list_records(self.db_path, tactics_path(client_id, campaign_id, version_id, tab_id, section_id))
        return [Tactic.from_doc(d) for d in docs]

    async def get_placements(
        self, client_id: str, campaign_id: str, version_id: str, tab_id: str, section_id: str, tactic_id: str
    ) -> list[Placement]:
        path = placements_path(client_id, campaign_id, version_id, tab_id, section_id, tactic_id)
        return [Placement.from_doc(d) for d in list_records(self.db_path, path)]

    async def get_creatives(
        self,
        client_id: str,
        campaign_id: str,
        version_id: str,
        tab_id: str,
        section_id: str,
        tactic_id: str,
        placement_id: str,
    ) -> list[Creative]:
        path = creatives_path(client_id, campaign_id, version_id, tab_id, section_id, tactic_id, placement_id)
        return [Creative.from_doc(d) for d in list_records(self.db_path, path)]

    async def get_breakdown_definitions(self, client_id: str, campaign_id: str) -> list[BreakdownDefinition]:
        docs = list_records(self.db_path, breakdowns_path(client_id, campaign_id))
        return [BreakdownDefinition.from_doc(d) for d in docs]

    # ── campaign, client, templates, documents ─────────────────────────────────

    async def get_campaign(self, client_id: str, campaign_id: str) -> Campaign | None:
        doc = get_record(self.db_path, f"clients/{client_id}/campaigns", campaign_id)
        return Campaign.from_doc(doc) if doc else None

    async def get_client_info(self, client_id: str) -> ClientInfo | None:
        doc = get_record(self.db_path, "clients", client_id)
        return ClientInfo.from_doc(doc) if doc else None

    async def get_template_by_id(self, client_id: str, template_id: str) -> Template | None:
        doc = get_record(self.db_path, f"clients/{client_id}/templates", template_id)
        return Template.from_doc(doc) if doc else None

    async def get_documents_by_version(
        self, client_id: str, campaign_id: str, version_id: str
    ) -> list[DocumentRecord]:
        docs = list_records(self.db_path, documents_path(client_id, campaign_id, version_id))
        return [DocumentRecord.from_doc(d) for d in docs]

    async def get_shortcodes(self) -> list[Shortcode]:
        return [Shortcode.from_doc(d) for d in list_records(self.db_path, "shortcodes")]

    async def create_document(
        self, client_id: str, campaign_id: str, version_id: str, doc: dict[str, Any]
    ) -> str:
        """Store a new document record and return its id."""
        document_id = str(doc.get("id") or uuid.uuid4().hex)
        put_record(self.db_path, documents_path(client_id, campaign_id, version_id), {**doc, "id": document_id})
        return document_id

    async def update_document_status(
        self,
        client_id: str,
        campaign_id: str,
        version_id: str,
        document_id: str,
        status: DocumentStatus,
        error_message: str = "",
    ) -> None:
        updates: dict[str, Any] = {"status": status.value, "lastUpdated": now_iso()}
        if error_message:
            updates["errorMessage"] = error_message
        path = documents_path(client_id, campaign_id, version_id)
        if not update_record(self.db_path, path, document_id, updates):
            raise KeyError(f"document {document_id} not found in {path}")

    async def update_document_data_sync(
        self,
        client_id: str,
        campaign_id: str,
        version_id: str,
        document_id: str,
        synced_by: str,
        success: bool,
        error_message: str = "",
    ) -> None:
        sync: dict[str, Any] = {"syncedAt": now_iso(), "syncedBy": synced_by, "success": success}
        if error_message:
            sync["errorMessage"] = error_message
        path = documents_path(client_id, campaign_id, version_id)
        if not update_record(self.db_path, path, document_id, {"lastDataSync": sync, "lastUpdated": now_iso()}):
            raise KeyError(f"document {document_id} not found in {path}")

    # ── seeding ────────────────────────────────────────────────────────────────

    def put(self, collection: str, doc: dict[str, Any], sort_order: Any = 0) -> None:
        put_record(self.db_path, collection, doc, sort_order)
