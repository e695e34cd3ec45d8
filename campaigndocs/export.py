"""Export one campaign version into its Google Sheets document.

The exporter runs the stages in a fixed order and stops at the first failure:
template lookup, authorization, optional tab sync, clearing the target
ranges, extraction, shortcode resolution and the three final writes. The
outcome is returned as an ``ExportResult`` and recorded on the document's
stored status. ``create_document`` copies a template into a new spreadsheet
first, creates its tabs, then runs the same export.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any

from campaigndocs.breakdowns import flatten_breakdowns
from campaigndocs.campaign import campaign_summary
from campaigndocs.config import ExportSettings
from campaigndocs.errors import (
    AuthorizationError,
    DocumentCreationError,
    ExportError,
    FetchError,
    PartialWriteError,
    SheetsApiError,
)
from campaigndocs.fetcher import fetch_breakdown_definitions, fetch_hierarchy
from campaigndocs.flatten import flatten_hierarchy
from campaigndocs.mapping import DEFAULT_MAPPING, ColumnMapping
from campaigndocs.models import Campaign, ClientInfo, DocumentRecord, DocumentStatus, Template
from campaigndocs.sheets import a1, extract_folder_id, extract_sheet_id, spreadsheet_url
from campaigndocs.shortcodes import resolve_table
from campaigndocs.tabsync import TabSyncResult, TabSynchronizer
from campaigndocs.util import now_iso

logger = logging.getLogger(__name__)

LANGUAGES = ("FR", "EN")


class ExportStage(str, Enum):
    LOCATING_TEMPLATE = "locating_template"
    AWAITING_AUTHORIZATION = "awaiting_authorization"
    SYNCING_TABS = "syncing_tabs"
    CLEARING = "clearing"
    EXTRACTING = "extracting"
    RESOLVING = "resolving"
    WRITING = "writing"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class ExportResult:
    success: bool
    stage: ExportStage
    error_kind: str = ""
    error_message: str = ""
    status_code: int | None = None
    language: str = ""
    tab_sync: dict[str, Any] | None = None
    rows: dict[str, int] = field(default_factory=dict)

    def as_dict(self) -> dict[str, Any]:
        out = asdict(self)
        out["stage"] = self.stage.value
        return out


@dataclass
class DocumentCreationResult:
    success: bool
    failed_step: str = ""
    document_id: str = ""
    url: str = ""
    error_kind: str = ""
    error_message: str = ""
    status_code: int | None = None
    tab_sync: dict[str, Any] | None = None
    export: dict[str, Any] | None = None

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class _Tables:
    campaign: list[list[Any]]
    hierarchy: list[list[Any]]
    breakdowns: list[list[Any]]

    def row_counts(self) -> dict[str, int]:
        return {
            "campaign": max(len(self.campaign) - 1, 0),
            "hierarchy": max(len(self.hierarchy) - 1, 0),
            "breakdowns": max(len(self.breakdowns) - 1, 0),
        }


def _language(value: Any) -> str | None:
    s = str(value or "").strip().upper()
    return s if s in LANGUAGES else None


class DocumentExporter:
    def __init__(
        self,
        store: Any,
        sheets: Any,
        tokens: Any,
        shortcodes: Any = None,
        settings: ExportSettings | None = None,
        mapping: ColumnMapping = DEFAULT_MAPPING,
        on_stage: Callable[[ExportStage], None] | None = None,
    ) -> None:
        self.store = store
        self.sheets = sheets
        self.tokens = tokens
        self.shortcodes = shortcodes
        self.settings = settings or ExportSettings()
        self.mapping = mapping
        self.on_stage = on_stage
        self.tab_sync = TabSynchronizer(sheets, self.settings.tag_cell, self.settings.template_tab)

    def _enter(self, stage: ExportStage) -> ExportStage:
        logger.debug("[EXPORT] stage %s", stage.value)
        if self.on_stage is not None:
            self.on_stage(stage)
        return stage

    # ── document + template lookup ─────────────────────────────────────────────

    async def _find_document(
        self, client_id: str, campaign_id: str, version_id: str, sheet_url: str
    ) -> DocumentRecord | None:
        try:
            documents = await self.store.get_documents_by_version(client_id, campaign_id, version_id)
        except Exception as exc:
            logger.warning("[EXPORT] cannot list documents of version %s: %s", version_id, exc)
            return None
        document = next((d for d in documents if d.url == sheet_url), None)
        if document is None:
            logger.warning("[EXPORT] no document record for %s, template options unknown", sheet_url)
        return document

    async def _find_template(self, client_id: str, document: DocumentRecord | None) -> Template | None:
        if document is None or not document.template_id:
            return None
        try:
            return await self.store.get_template_by_id(client_id, document.template_id)
        except Exception as exc:
            logger.warning("[EXPORT] cannot read template %s: %s", document.template_id, exc)
            return None

    async def _resolve_language(self, client_id: str, requested: str | None, template: Template | None) -> str:
        language = _language(requested)
        if language:
            return language
        if template is not None and _language(template.language):
            return template.language
        try:
            client = await self.store.get_client_info(client_id)
        except Exception as exc:
            logger.warning("[EXPORT] cannot read client %s settings: %s", client_id, exc)
            client = None
        if client is not None and _language(client.export_language):
            return client.export_language
        return self.settings.default_language

    # ── status records ─────────────────────────────────────────────────────────

    async def _set_status(
        self,
        ids: tuple[str, str, str],
        document: DocumentRecord | None,
        status: DocumentStatus,
        error_message: str = "",
    ) -> None:
        if document is None:
            return
        try:
            await self.store.update_document_status(*ids, document.id, status, error_message)
        except Exception as exc:
            logger.warning("[EXPORT] cannot record status %s on document %s: %s", status.value, document.id, exc)

    async def _record_sync(
        self,
        ids: tuple[str, str, str],
        document: DocumentRecord | None,
        synced_by: str,
        success: bool,
        error_message: str = "",
    ) -> None:
        if document is None:
            return
        try:
            await self.store.update_document_data_sync(*ids, document.id, synced_by, success, error_message)
        except Exception as exc:
            logger.warning("[EXPORT] cannot record data sync on document %s: %s", document.id, exc)

    # ── pipeline pieces ────────────────────────────────────────────────────────

    async def _extract(self, client_id: str, campaign_id: str, version_id: str, language: str) -> _Tables:
        hierarchy = await fetch_hierarchy(self.store, client_id, campaign_id, version_id)
        definitions = await fetch_breakdown_definitions(self.store, client_id, campaign_id)
        try:
            campaign = await self.store.get_campaign(client_id, campaign_id)
        except Exception as exc:
            raise FetchError(f"Failed to read campaign {campaign_id}: {exc}") from exc
        return _Tables(
            campaign=campaign_summary(campaign),
            hierarchy=flatten_hierarchy(hierarchy, self.mapping),
            breakdowns=flatten_breakdowns(hierarchy, definitions, language),
        )

    def _resolve(self, tables: _Tables, language: str) -> _Tables:
        cached = self.shortcodes.get() if self.shortcodes is not None else None
        allow_codes = self.settings.allow_code_lookup
        return _Tables(
            campaign=resolve_table(tables.campaign, cached, language, allow_code_lookup=allow_codes),
            hierarchy=resolve_table(tables.hierarchy, cached, language, allow_code_lookup=allow_codes),
            breakdowns=tables.breakdowns,
        )

    async def _write(self, sheet_id: str, tables: _Tables) -> None:
        s = self.settings
        targets = {
            a1(s.data_sheet, s.campaign_cell): tables.campaign,
            a1(s.data_sheet, s.hierarchy_cell): tables.hierarchy,
            a1(s.splits_sheet, s.breakdown_cell): tables.breakdowns,
        }
        results = await asyncio.gather(
            *(self.sheets.write_values(sheet_id, range_name, values) for range_name, values in targets.items()),
            return_exceptions=True,
        )
        failed = {rng: res for rng, res in zip(targets, results) if isinstance(res, BaseException)}
        if not failed:
            return
        if len(failed) == len(targets):
            raise next(iter(failed.values()))
        raise PartialWriteError(failed, [rng for rng in targets if rng not in failed])

    # ── public operations ──────────────────────────────────────────────────────

    async def export(
        self,
        client_id: str,
        campaign_id: str,
        version_id: str,
        sheet_url: str,
        export_language: str | None = None,
        synced_by: str = "",
        *,
        refresh_tabs: bool = True,
    ) -> ExportResult:
        ids = (client_id, campaign_id, version_id)
        stage = self._enter(ExportStage.LOCATING_TEMPLATE)
        document: DocumentRecord | None = None
        language = ""
        tab_sync: dict[str, Any] | None = None
        tables: _Tables | None = None

        try:
            sheet_id = extract_sheet_id(sheet_url)
            document = await self._find_document(*ids, sheet_url)
            template = await self._find_template(client_id, document)
            language = await self._resolve_language(client_id, export_language, template)
            await self._set_status(ids, document, DocumentStatus.CREATING)
            logger.info("[EXPORT] campaign %s version %s -> sheet %s (%s)", campaign_id, version_id, sheet_id, language)

            stage = self._enter(ExportStage.AWAITING_AUTHORIZATION)
            await self.tokens.authorize()

            if refresh_tabs and template is not None and template.duplicate_tabs:
                stage = self._enter(ExportStage.SYNCING_TABS)
                tab_sync = await self._sync_tabs_softly(sheet_id, *ids)

            stage = self._enter(ExportStage.CLEARING)
            await self.sheets.clear_range(sheet_id, a1(self.settings.data_sheet, self.settings.clear_range))
            await self.sheets.clear_range(sheet_id, a1(self.settings.splits_sheet, self.settings.clear_range))

            stage = self._enter(ExportStage.EXTRACTING)
            tables = await self._extract(*ids, language)

            stage = self._enter(ExportStage.RESOLVING)
            tables = self._resolve(tables, language)

            stage = self._enter(ExportStage.WRITING)
            await self._write(sheet_id, tables)
        except Exception as exc:
            return await self._fail(ids, document, stage, exc, language, tab_sync, tables, synced_by)

        self._enter(ExportStage.COMPLETED)
        await self._set_status(ids, document, DocumentStatus.COMPLETED)
        await self._record_sync(ids, document, synced_by, True)
        logger.info("[EXPORT] campaign %s version %s exported", campaign_id, version_id)
        return ExportResult(
            success=True,
            stage=ExportStage.COMPLETED,
            language=language,
            tab_sync=tab_sync,
            rows=tables.row_counts(),
        )

    async def _fail(
        self,
        ids: tuple[str, str, str],
        document: DocumentRecord | None,
        stage: ExportStage,
        exc: Exception,
        language: str,
        tab_sync: dict[str, Any] | None,
        tables: _Tables | None,
        synced_by: str,
    ) -> ExportResult:
        if isinstance(exc, ExportError):
            logger.error("[EXPORT] failed during %s: %s", stage.value, exc)
        else:
            logger.exception("[EXPORT] unexpected failure during %s", stage.value)
        self._enter(ExportStage.FAILED)
        message = str(exc) or exc.__class__.__name__
        await self._set_status(ids, document, DocumentStatus.ERROR, message)
        await self._record_sync(ids, document, synced_by, False, message)
        return ExportResult(
            success=False,
            stage=stage,
            error_kind=getattr(exc, "kind", "unknown"),
            error_message=message,
            status_code=exc.status if isinstance(exc, SheetsApiError) else None,
            language=language,
            tab_sync=tab_sync,
            rows=tables.row_counts() if tables is not None else {},
        )

    async def _sync_tabs_softly(
        self, sheet_id: str, client_id: str, campaign_id: str, version_id: str
    ) -> dict[str, Any]:
        try:
            tabs = await self.store.get_tabs(client_id, campaign_id, version_id)
            result = await self.tab_sync.sync("refresh", sheet_id, tabs)
        except AuthorizationError:
            raise
        except Exception as exc:
            logger.warning("[EXPORT] tab sync failed, continuing with the export: %s", exc)
            return {"mode": "refresh", "error": str(exc)}
        return result.as_dict()

    async def sync_tabs(
        self, mode: str, client_id: str, campaign_id: str, version_id: str, sheet_url: str
    ) -> TabSyncResult:
        sheet_id = extract_sheet_id(sheet_url)
        await self.tokens.authorize()
        tabs = await self.store.get_tabs(client_id, campaign_id, version_id)
        return await self.tab_sync.sync(mode, sheet_id, tabs)

    # ── document creation ──────────────────────────────────────────────────────

    async def _check_creation(
        self, ids: tuple[str, str, str], name: str, template_id: str
    ) -> tuple[Template, Campaign, ClientInfo | None]:
        client_id, campaign_id, _ = ids
        if not name:
            raise DocumentCreationError("A document name is required.")
        documents = await self.store.get_documents_by_version(*ids)
        if any(d.name == name for d in documents):
            raise DocumentCreationError(f'A document named "{name}" already exists for this version.')
        template = await self.store.get_template_by_id(client_id, template_id)
        if template is None:
            raise DocumentCreationError(f"Template {template_id} not found.")
        campaign = await self.store.get_campaign(client_id, campaign_id)
        if campaign is None:
            raise DocumentCreationError(f"Campaign {campaign_id} not found.")
        return template, campaign, await self.store.get_client_info(client_id)

    async def _copy_template(self, template: Template, name: str, client: ClientInfo | None) -> str:
        file_id = extract_sheet_id(template.url)
        folder_id = None
        if client is not None and client.drive_folder:
            folder_id = extract_folder_id(client.drive_folder)
            if folder_id is None:
                logger.warning("[EXPORT] invalid Drive folder %r, copying to the root folder", client.drive_folder)
        return spreadsheet_url(await self.sheets.copy_file(file_id, name, folder_id))

    async def create_document(
        self,
        client_id: str,
        campaign_id: str,
        version_id: str,
        name: str,
        template_id: str,
        created_by: str = "",
    ) -> DocumentCreationResult:
        """Copy a template into a new spreadsheet and fill it with the version.

        Steps: validation, authorization, duplication of the template file,
        saving the document record (status ``creating``), tab creation when
        the template duplicates tabs, then a full export in the template's
        language. The record ends as ``completed`` or ``error``.
        """
        ids = (client_id, campaign_id, version_id)
        name = (name or "").strip()
        step = "validation"
        document: DocumentRecord | None = None
        url = ""
        tab_sync: dict[str, Any] | None = None

        try:
            template, campaign, client = await self._check_creation(ids, name, template_id)

            step = "authorization"
            await self.tokens.authorize()

            step = "duplication"
            url = await self._copy_template(template, name, client)

            step = "saving"
            now = now_iso()
            doc = {
                "name": name,
                "url": url,
                "status": DocumentStatus.CREATING.value,
                "template": {"id": template.id, "name": template.name, "originalUrl": template.url},
                "campaign": {"id": campaign.id, "name": str(campaign.get("CA_Name") or "")},
                "version": {"id": version_id},
                "createdBy": created_by,
                "createdAt": now,
                "lastUpdated": now,
            }
            document_id = await self.store.create_document(*ids, doc)
            document = DocumentRecord.from_doc({**doc, "id": document_id})
            logger.info("[EXPORT] document %s created from template %s: %s", document_id, template.id, url)

            if template.duplicate_tabs:
                step = "tabs"
                tabs = await self.store.get_tabs(*ids)
                tab_sync = (await self.tab_sync.sync("creation", extract_sheet_id(url), tabs)).as_dict()
        except Exception as exc:
            if isinstance(exc, ExportError):
                logger.error("[EXPORT] document creation failed during %s: %s", step, exc)
            else:
                logger.exception("[EXPORT] unexpected failure during document creation (%s)", step)
            message = str(exc) or exc.__class__.__name__
            await self._set_status(ids, document, DocumentStatus.ERROR, message)
            await self._record_sync(ids, document, created_by, False, message)
            return DocumentCreationResult(
                success=False,
                failed_step=step,
                document_id=document.id if document is not None else "",
                url=url,
                error_kind=getattr(exc, "kind", "unknown"),
                error_message=message,
                status_code=exc.status if isinstance(exc, SheetsApiError) else None,
                tab_sync=tab_sync,
            )

        result = await self.export(
            *ids,
            url,
            export_language=template.language or None,
            synced_by=created_by,
            refresh_tabs=False,
        )
        return DocumentCreationResult(
            success=result.success,
            failed_step="" if result.success else "export",
            document_id=document.id,
            url=url,
            error_kind=result.error_kind,
            error_message=result.error_message,
            status_code=result.status_code,
            tab_sync=tab_sync,
            export=result.as_dict(),
        )

    async def preview(
        self, client_id: str, campaign_id: str, version_id: str, language: str | None = None
    ) -> dict[str, Any]:
        """The three tables an export would write, without touching any sheet."""
        lang = await self._resolve_language(client_id, language, None)
        tables = self._resolve(await self._extract(client_id, campaign_id, version_id, lang), lang)
        return {
            "language": lang,
            "campaign": tables.campaign,
            "hierarchy": tables.hierarchy,
            "breakdowns": tables.breakdowns,
            "rows": tables.row_counts(),
        }
