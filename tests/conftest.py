from __future__ import annotations

from typing import Any

import pytest

from campaigndocs.errors import SheetsApiError
from campaigndocs.models import (
    BreakdownDefinition,
    Campaign,
    ClientInfo,
    Creative,
    DocumentRecord,
    Placement,
    Section,
    Shortcode,
    SheetTab,
    Tab,
    Tactic,
    Template,
)

SHEET_URL = "https://docs.google.com/spreadsheets/d/sheet-123/edit#gid=0"
TEMPLATE_URL = "https://docs.google.com/spreadsheets/d/template-9/edit"


class FakeStore:
    """In-memory stand-in for SqliteStore keyed by parent id."""

    def __init__(self) -> None:
        self.tabs: list[dict[str, Any]] = []
        self.sections: dict[str, list[dict[str, Any]]] = {}
        self.tactics: dict[str, list[dict[str, Any]]] = {}
        self.placements: dict[str, list[dict[str, Any]]] = {}
        self.creatives: dict[str, list[dict[str, Any]]] = {}
        self.breakdowns: list[dict[str, Any]] = []
        self.campaign: dict[str, Any] | None = {"id": "camp-1", "CA_Name": "Spring", "CA_Budget": 1000}
        self.client: dict[str, Any] | None = {"id": "client-1", "CL_Export_Language": "FR"}
        self.templates: dict[str, dict[str, Any]] = {}
        self.documents: list[dict[str, Any]] = []
        self.shortcodes: list[dict[str, Any]] = []
        self.fail_on: str = ""
        self.status_updates: list[tuple[str, str, str]] = []
        self.data_syncs: list[tuple[str, str, bool, str]] = []

    def _check(self, step: str) -> None:
        if self.fail_on == step:
            raise RuntimeError(f"store unavailable while reading {step}")

    async def get_tabs(self, client_id, campaign_id, version_id):
        self._check("tabs")
        return [Tab.from_doc(d) for d in self.tabs]

    async def get_sections(self, client_id, campaign_id, version_id, tab_id):
        self._check("sections")
        return [Section.from_doc(d) for d in self.sections.get(tab_id, [])]

    async def get_tactics(self, client_id, campaign_id, version_id, tab_id, section_id):
        self._check("tactics")
        return [Tactic.from_doc(d) for d in self.tactics.get(section_id, [])]

    async def get_placements(self, client_id, campaign_id, version_id, tab_id, section_id, tactic_id):
        self._check("placements")
        return [Placement.from_doc(d) for d in self.placements.get(tactic_id, [])]

    async def get_creatives(self, client_id, campaign_id, version_id, tab_id, section_id, tactic_id, placement_id):
        self._check("creatives")
        return [Creative.from_doc(d) for d in self.creatives.get(placement_id, [])]

    async def get_breakdown_definitions(self, client_id, campaign_id):
        self._check("breakdowns")
        return [BreakdownDefinition.from_doc(d) for d in self.breakdowns]

    async def get_campaign(self, client_id, campaign_id):
        self._check("campaign")
        return Campaign.from_doc(self.campaign) if self.campaign else None

    async def get_client_info(self, client_id):
        return ClientInfo.from_doc(self.client) if self.client else None

    async def get_template_by_id(self, client_id, template_id):
        doc = self.templates.get(template_id)
        return Template.from_doc(doc) if doc else None

    async def get_documents_by_version(self, client_id, campaign_id, version_id):
        return [DocumentRecord.from_doc(d) for d in self.documents]

    async def get_shortcodes(self):
        return [Shortcode.from_doc(d) for d in self.shortcodes]

    async def update_document_status(self, client_id, campaign_id, version_id, document_id, status, error_message=""):
        self.status_updates.append((document_id, status.value, error_message))

    async def update_document_data_sync(
        self, client_id, campaign_id, version_id, document_id, synced_by, success, error_message=""
    ):
        self.data_syncs.append((document_id, synced_by, success, error_message))

    async def create_document(self, client_id, campaign_id, version_id, doc):
        document_id = f"doc-{len(self.documents) + 1}"
        self.documents.append({**doc, "id": document_id})
        return document_id


class FakeSheets:
    """Spreadsheet double: a tab list, a cell map and a log of calls."""

    def __init__(self, titles: list[str] | None = None) -> None:
        self.tabs: list[SheetTab] = []
        self.cells: dict[tuple[str, str], str] = {}
        self.calls: list[tuple[Any, ...]] = []
        self.writes: dict[str, list[list[Any]]] = {}
        self.fail_writes: dict[str, Exception] = {}
        self.fail_clear: Exception | None = None
        self.fail_duplicate: Exception | None = None
        self.fail_copy: Exception | None = None
        self.unreadable: set[str] = set()
        self.failing_reads: dict[str, Exception] = {}
        self._next_id = 100
        for title in titles or []:
            self.add_tab(title)

    def add_tab(self, title: str, tag: str = "") -> SheetTab:
        tab = SheetTab(sheet_id=self._next_id, title=title, index=len(self.tabs))
        self._next_id += 1
        self.tabs.append(tab)
        if tag:
            self.cells[(title, "B1")] = tag
        return tab

    def _reindex(self) -> None:
        self.tabs = [SheetTab(t.sheet_id, t.title, i) for i, t in enumerate(self.tabs)]

    def titles(self) -> list[str]:
        return [t.title for t in self.tabs]

    def mutations(self) -> list[tuple[Any, ...]]:
        return [c for c in self.calls if c[0] in {"duplicate", "rename", "delete"}]

    async def list_tabs(self, spreadsheet_id):
        self.calls.append(("list",))
        return list(self.tabs)

    async def read_cell(self, spreadsheet_id, sheet, cell):
        self.calls.append(("read", sheet, cell))
        if sheet in self.unreadable:
            raise SheetsApiError(400, "Unable to parse range")
        if sheet in self.failing_reads:
            raise self.failing_reads[sheet]
        return self.cells.get((sheet, cell))

    async def write_cell(self, spreadsheet_id, sheet, cell, value):
        self.calls.append(("tag", sheet, cell, value))
        self.cells[(sheet, cell)] = value

    async def duplicate_tab(self, spreadsheet_id, source_sheet_id, new_title, insert_index):
        self.calls.append(("duplicate", source_sheet_id, new_title, insert_index))
        if self.fail_duplicate is not None:
            raise self.fail_duplicate
        source = next(t for t in self.tabs if t.sheet_id == source_sheet_id)
        new = SheetTab(self._next_id, new_title, insert_index)
        self._next_id += 1
        self.tabs.insert(min(insert_index, len(self.tabs)), new)
        self._reindex()
        if (source.title, "B1") in self.cells:
            self.cells[(new_title, "B1")] = self.cells[(source.title, "B1")]
        return new.sheet_id

    async def rename_tab(self, spreadsheet_id, sheet_id, new_title):
        self.calls.append(("rename", sheet_id, new_title))
        for i, t in enumerate(self.tabs):
            if t.sheet_id == sheet_id:
                if (t.title, "B1") in self.cells:
                    self.cells[(new_title, "B1")] = self.cells.pop((t.title, "B1"))
                self.tabs[i] = SheetTab(sheet_id, new_title, t.index)

    async def delete_tab(self, spreadsheet_id, sheet_id):
        self.calls.append(("delete", sheet_id))
        self.tabs = [t for t in self.tabs if t.sheet_id != sheet_id]
        self._reindex()

    async def clear_range(self, spreadsheet_id, range_name):
        self.calls.append(("clear", range_name))
        if self.fail_clear is not None:
            raise self.fail_clear

    async def write_values(self, spreadsheet_id, range_name, values):
        self.calls.append(("write", range_name))
        if range_name in self.fail_writes:
            raise self.fail_writes[range_name]
        self.writes[range_name] = values
        return {"updatedRange": range_name}

    async def copy_file(self, file_id, name, folder_id=None):
        self.calls.append(("copy", file_id, name, folder_id))
        if self.fail_copy is not None:
            raise self.fail_copy
        return "copy-1"


class FakeTokens:
    def __init__(self, error: Exception | None = None) -> None:
        self.error = error
        self.authorize_calls = 0

    async def authorize(self):
        self.authorize_calls += 1
        if self.error is not None:
            raise self.error
        return "token"

    async def get_token(self):
        return "token"

    def invalidate(self):
        pass


class FakeShortcodes:
    def __init__(self, shortcodes: dict[str, Shortcode] | None) -> None:
        self.shortcodes = shortcodes

    def get(self):
        return self.shortcodes


def scenario_a_store() -> FakeStore:
    """1 tab, 1 section, 2 tactics, no placements."""
    store = FakeStore()
    store.tabs = [{"id": "tab-1", "ONGLET_Name": "Main", "ONGLET_Order": 0}]
    store.sections = {"tab-1": [{"id": "sec-1", "SECTION_Name": "Awareness", "SECTION_Order": 0}]}
    store.tactics = {
        "sec-1": [
            {"id": "tc-2", "TC_Label": "Radio", "TC_Order": 2},
            {"id": "tc-1", "TC_Label": "TV", "TC_Order": 1, "TC_Media_Type": "SC001"},
        ]
    }
    return store


def full_store() -> FakeStore:
    """Two tabs with every level populated and a linked document."""
    store = scenario_a_store()
    store.tabs.append({"id": "tab-2", "ONGLET_Name": "Always on", "ONGLET_Order": 1})
    store.placements = {"tc-1": [{"id": "pl-1", "PL_Label": "Prime time", "PL_Order": 0}]}
    store.creatives = {
        "pl-1": [
            {"id": "cr-1", "CR_Label": "30s", "CR_Order": 0},
            {"id": "cr-2", "CR_Label": "15s", "CR_Order": 1},
        ]
    }
    store.tactics["sec-1"][1]["breakdowns"] = {
        "bd-month": {"periods": {"p-mar": {"date": "2025-03-01", "value": 100}}},
        "bd-custom": {"periods": {"s1": {"name": "Sprint 1", "value": "50", "order": 1}}},
    }
    store.breakdowns = [
        {"id": "bd-month", "name": "Calendar", "type": "Monthly", "order": 0},
        {"id": "bd-custom", "name": "Sprints", "type": "Custom", "order": 1},
    ]
    store.templates = {
        "tpl-1": {"id": "tpl-1", "TE_Name": "Plan", "TE_URL": TEMPLATE_URL, "TE_Duplicate": False, "TE_Language": ""}
    }
    store.documents = [{"id": "doc-1", "url": SHEET_URL, "status": "completed", "template": {"id": "tpl-1"}}]
    return store


@pytest.fixture
def store() -> FakeStore:
    return full_store()


@pytest.fixture
def sheets() -> FakeSheets:
    return FakeSheets(["MB_Data", "MB_Splits"])
