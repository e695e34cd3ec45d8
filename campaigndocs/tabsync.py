"""Keep the spreadsheet's tabs in line with the campaign's hierarchy tabs.

Every synchronized tab carries its hierarchy tab id in a tagging cell (B1).
``creation`` fans a ``Template`` tab out into one tab per hierarchy tab and
then removes the template. ``refresh`` matches tabs by their tag, renames the
ones whose title drifted and adds the missing ones; it never deletes.
Calls are strictly sequential because tab indices move after each change.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from campaigndocs.errors import AuthorizationError, SheetsApiError, TabSyncError, TemplateTabMissingError
from campaigndocs.models import SheetTab, Tab

logger = logging.getLogger(__name__)

MODES = ("creation", "refresh")
UNTAGGED_READ_STATUSES = (400, 404)


@dataclass
class TabSyncResult:
    mode: str
    created: int = 0
    renamed: int = 0
    deleted: int = 0

    def as_dict(self) -> dict[str, Any]:
        return {"mode": self.mode, "created": self.created, "renamed": self.renamed, "deleted": self.deleted}


class TabSynchronizer:
    def __init__(self, sheets: Any, tag_cell: str = "B1", template_tab: str = "Template") -> None:
        self.sheets = sheets
        self.tag_cell = tag_cell
        self.template_tab = template_tab

    async def sync(self, mode: str, spreadsheet_id: str, tabs: list[Tab]) -> TabSyncResult:
        if mode not in MODES:
            raise ValueError(f"unknown tab sync mode: {mode!r}")
        result = TabSyncResult(mode=mode)
        ordered = sorted(tabs, key=lambda t: t.order)
        if not ordered:
            logger.info("[TABS] no hierarchy tabs, nothing to synchronize")
            return result

        try:
            if mode == "creation":
                await self._create(spreadsheet_id, ordered, result)
            else:
                await self._refresh(spreadsheet_id, ordered, result)
        except (AuthorizationError, TabSyncError):
            raise
        except Exception as exc:
            raise TabSyncError(
                f"Tab synchronization ({mode}) failed: {exc}",
                created=result.created,
                renamed=result.renamed,
                deleted=result.deleted,
            ) from exc

        logger.info(
            "[TABS] %s done: %s created, %s renamed, %s deleted",
            mode,
            result.created,
            result.renamed,
            result.deleted,
        )
        return result

    async def _create(self, spreadsheet_id: str, tabs: list[Tab], result: TabSyncResult) -> None:
        existing = await self.sheets.list_tabs(spreadsheet_id)
        template = next((t for t in existing if t.title == self.template_tab), None)
        if template is None:
            raise TemplateTabMissingError(
                f'No "{self.template_tab}" tab found in the spreadsheet, cannot create campaign tabs.'
            )

        for i, tab in enumerate(tabs):
            await self.sheets.duplicate_tab(spreadsheet_id, template.sheet_id, tab.name, template.index + 1 + i)
            await self.sheets.write_cell(spreadsheet_id, tab.name, self.tag_cell, tab.id)
            result.created += 1
            logger.debug("[TABS] created %r for tab %s", tab.name, tab.id)

        await self.sheets.delete_tab(spreadsheet_id, template.sheet_id)
        result.deleted += 1

    async def _read_tags(self, spreadsheet_id: str, existing: list[SheetTab]) -> dict[str, SheetTab]:
        tagged: dict[str, SheetTab] = {}
        for sheet_tab in existing:
            try:
                tag = await self.sheets.read_cell(spreadsheet_id, sheet_tab.title, self.tag_cell)
            except SheetsApiError as exc:
                # 400/404 mean the tab has no addressable tag cell; any other failure aborts the sync.
                if exc.status not in UNTAGGED_READ_STATUSES:
                    raise
                logger.warning("[TABS] cannot read %s!%s, treating it as untagged: %s", sheet_tab.title, self.tag_cell, exc)
                continue
            if tag:
                tagged[tag.strip()] = sheet_tab
        return tagged

    async def _refresh(self, spreadsheet_id: str, tabs: list[Tab], result: TabSyncResult) -> None:
        existing = list(await self.sheets.list_tabs(spreadsheet_id))
        tagged = await self._read_tags(spreadsheet_id, existing)
        logger.info("[TABS] %s tagged tabs found in the spreadsheet", len(tagged))

        for tab in tabs:
            current = tagged.get(tab.id)
            if current is not None:
                if current.title != tab.name:
                    await self.sheets.rename_tab(spreadsheet_id, current.sheet_id, tab.name)
                    result.renamed += 1
                    logger.debug("[TABS] renamed %r to %r", current.title, tab.name)
                continue

            if not existing:
                logger.warning("[TABS] spreadsheet has no tab to duplicate for %r", tab.name)
                continue
            source = existing[0]
            new_id = await self.sheets.duplicate_tab(spreadsheet_id, source.sheet_id, tab.name, len(existing))
            await self.sheets.write_cell(spreadsheet_id, tab.name, self.tag_cell, tab.id)
            result.created += 1
            created = SheetTab(sheet_id=new_id, title=tab.name, index=len(existing))
            existing.append(created)
            tagged[tab.id] = created
