from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, ClassVar

from campaigndocs.util import to_int


class Level(str, Enum):
    TAB = "Tab"
    SECTION = "Section"
    TACTIC = "Tactic"
    PLACEMENT = "Placement"
    CREATIVE = "Creative"


ANCESTOR_LEVELS: tuple[Level, ...] = (Level.TAB, Level.SECTION, Level.TACTIC, Level.PLACEMENT)


@dataclass
class Entity:
    """A node of the campaign hierarchy as returned by the store.

    ``fields`` keeps the raw stored document so that the column mapping can
    reach any attribute, including ones this model does not name.
    """

    id: str
    label: str = ""
    order: int = 0
    fields: dict[str, Any] = field(default_factory=dict)

    label_field: ClassVar[str] = ""
    order_field: ClassVar[str] = ""
    level: ClassVar[Level]

    def get(self, name: str) -> Any:
        if name == "id":
            return self.id
        return self.fields.get(name)

    @classmethod
    def from_doc(cls, doc: dict[str, Any], **extra: Any):
        return cls(
            id=str(doc.get("id") or ""),
            label=str(doc.get(cls.label_field) or ""),
            order=to_int(doc.get(cls.order_field)),
            fields=dict(doc),
            **extra,
        )


@dataclass
class Tab(Entity):
    label_field: ClassVar[str] = "ONGLET_Name"
    order_field: ClassVar[str] = "ONGLET_Order"
    level: ClassVar[Level] = Level.TAB

    @property
    def name(self) -> str:
        return self.label


@dataclass
class Section(Entity):
    label_field: ClassVar[str] = "SECTION_Name"
    order_field: ClassVar[str] = "SECTION_Order"
    level: ClassVar[Level] = Level.SECTION

    @property
    def name(self) -> str:
        return self.label


@dataclass
class Tactic(Entity):
    breakdowns: dict[str, Any] = field(default_factory=dict)

    label_field: ClassVar[str] = "TC_Label"
    order_field: ClassVar[str] = "TC_Order"
    level: ClassVar[Level] = Level.TACTIC

    @classmethod
    def from_doc(cls, doc: dict[str, Any], **extra: Any) -> "Tactic":
        raw = doc.get("breakdowns")
        breakdowns = raw if isinstance(raw, dict) else {}
        return super().from_doc(doc, breakdowns=breakdowns, **extra)


@dataclass
class Placement(Entity):
    label_field: ClassVar[str] = "PL_Label"
    order_field: ClassVar[str] = "PL_Order"
    level: ClassVar[Level] = Level.PLACEMENT


@dataclass
class Creative(Entity):
    label_field: ClassVar[str] = "CR_Label"
    order_field: ClassVar[str] = "CR_Order"
    level: ClassVar[Level] = Level.CREATIVE


# ── Breakdowns ─────────────────────────────────────────────────────────────────

class BreakdownType(str, Enum):
    MONTHLY = "Monthly"
    WEEKLY = "Weekly"
    PEBS = "PEBs"
    CUSTOM = "Custom"

    @classmethod
    def parse(cls, value: Any) -> "BreakdownType | None":
        s = str(value or "").strip()
        legacy = {"Mensuel": cls.MONTHLY, "Hebdomadaire": cls.WEEKLY}
        if s in legacy:
            return legacy[s]
        for member in cls:
            if member.value.lower() == s.lower():
                return member
        return None

@dataclass(frozen=True)
class BreakdownDefinition:
    id: str
    name: str
    type: BreakdownType | None
    raw_type: str = ""
    order: int = 0

    @property
    def type_label(self) -> str:
        return self.type.value if self.type is not None else self.raw_type

    @classmethod
    def from_doc(cls, doc: dict[str, Any]) -> "BreakdownDefinition":
        raw_type = str(doc.get("type") or "")
        return cls(
            id=str(doc.get("id") or ""),
            name=str(doc.get("name") or ""),
            type=BreakdownType.parse(raw_type),
            raw_type=raw_type,
            order=to_int(doc.get("order")),
        )


@dataclass
class BreakdownPeriodRow:
    tactic_id: str
    breakdown_id: str
    breakdown_name: str
    breakdown_type: str
    period_id: str
    period_name: str
    value: str
    unit_cost: str
    total: str
    is_toggled: bool
    order: int
    breakdown_order: int
    period_order: int
    start_date: datetime | None
    custom_name: str
    stored_date: str


# ── Hierarchy ──────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Ancestry:
    tab_id: str = ""
    section_id: str = ""
    tactic_id: str = ""
    placement_id: str = ""

    def id_for(self, level: Level) -> str:
        return {
            Level.TAB: self.tab_id,
            Level.SECTION: self.section_id,
            Level.TACTIC: self.tactic_id,
            Level.PLACEMENT: self.placement_id,
        }.get(level, "")


def _ordered(items: list[Any]) -> list[Any]:
    return sorted(items, key=lambda e: e.order)


@dataclass
class Hierarchy:
    """Five-level campaign tree, stored as child lists keyed by parent id."""

    tabs: list[Tab] = field(default_factory=list)
    sections: dict[str, list[Section]] = field(default_factory=dict)
    tactics: dict[str, list[Tactic]] = field(default_factory=dict)
    placements: dict[str, list[Placement]] = field(default_factory=dict)
    creatives: dict[str, list[Creative]] = field(default_factory=dict)

    def walk(self) -> Iterator[tuple[Level, Entity, Ancestry]]:
        """Depth-first pre-order traversal, siblings by stored order."""
        for tab in _ordered(self.tabs):
            tab_path = Ancestry(tab_id=tab.id)
            yield Level.TAB, tab, tab_path
            for section in _ordered(self.sections.get(tab.id, [])):
                section_path = Ancestry(tab.id, section.id)
                yield Level.SECTION, section, section_path
                for tactic in _ordered(self.tactics.get(section.id, [])):
                    tactic_path = Ancestry(tab.id, section.id, tactic.id)
                    yield Level.TACTIC, tactic, tactic_path
                    for placement in _ordered(self.placements.get(tactic.id, [])):
                        yield Level.PLACEMENT, placement, Ancestry(tab.id, section.id, tactic.id, placement.id)
                        for creative in _ordered(self.creatives.get(placement.id, [])):
                            yield Level.CREATIVE, creative, Ancestry(tab.id, section.id, tactic.id, placement.id)

    def all_tactics(self) -> list[Tactic]:
        return [e for _, e, _ in self.walk() if isinstance(e, Tactic)]

    def entity_count(self) -> int:
        return (
            len(self.tabs)
            + sum(len(v) for v in self.sections.values())
            + sum(len(v) for v in self.tactics.values())
            + sum(len(v) for v in self.placements.values())
            + sum(len(v) for v in self.creatives.values())
        )


# ── Shortcodes, templates, documents ───────────────────────────────────────────

# Templates store the language as a name ("Français", "Anglais"); clients as a code.
_LANGUAGE_ALIASES = {
    "fr": "FR",
    "français": "FR",
    "francais": "FR",
    "french": "FR",
    "en": "EN",
    "anglais": "EN",
    "english": "EN",
}


def normalize_language(value: Any) -> str:
    """``FR`` or ``EN`` for a stored language code or name, ``""`` when unknown."""
    return _LANGUAGE_ALIASES.get(str(value or "").strip().casefold(), "")


@dataclass(frozen=True)
class Shortcode:
    id: str
    code: str = ""
    display_name_fr: str = ""
    display_name_en: str = ""

    @classmethod
    def from_doc(cls, doc: dict[str, Any]) -> "Shortcode":
        return cls(
            id=str(doc.get("id") or ""),
            code=str(doc.get("SH_Code") or ""),
            display_name_fr=str(doc.get("SH_Display_Name_FR") or ""),
            display_name_en=str(doc.get("SH_Display_Name_EN") or ""),
        )

    def to_doc(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "SH_Code": self.code,
            "SH_Display_Name_FR": self.display_name_fr,
            "SH_Display_Name_EN": self.display_name_en,
        }


@dataclass(frozen=True)
class SheetTab:
    sheet_id: int
    title: str
    index: int


@dataclass(frozen=True)
class Template:
    id: str
    name: str = ""
    url: str = ""
    duplicate_tabs: bool = False
    language: str = ""

    @classmethod
    def from_doc(cls, doc: dict[str, Any]) -> "Template":
        return cls(
            id=str(doc.get("id") or ""),
            name=str(doc.get("TE_Name") or ""),
            url=str(doc.get("TE_URL") or ""),
            duplicate_tabs=bool(doc.get("TE_Duplicate")),
            language=normalize_language(doc.get("TE_Language")),
        )


class DocumentStatus(str, Enum):
    CREATING = "creating"
    COMPLETED = "completed"
    ERROR = "error"


@dataclass
class DocumentRecord:
    id: str
    name: str = ""
    url: str = ""
    status: DocumentStatus = DocumentStatus.CREATING
    template_id: str = ""
    error_message: str = ""
    last_data_sync: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_doc(cls, doc: dict[str, Any]) -> "DocumentRecord":
        template = doc.get("template") or {}
        try:
            status = DocumentStatus(str(doc.get("status") or "creating"))
        except ValueError:
            status = DocumentStatus.ERROR
        return cls(
            id=str(doc.get("id") or ""),
            name=str(doc.get("name") or ""),
            url=str(doc.get("url") or ""),
            status=status,
            template_id=str(template.get("id") or "") if isinstance(template, dict) else "",
            error_message=str(doc.get("errorMessage") or ""),
            last_data_sync=dict(doc.get("lastDataSync") or {}),
        )


@dataclass(frozen=True)
class ClientInfo:
    id: str
    name: str = ""
    export_language: str = "FR"
    drive_folder: str = ""

    @classmethod
    def from_doc(cls, doc: dict[str, Any]) -> "ClientInfo":
        return cls(
            id=str(doc.get("id") or ""),
            name=str(doc.get("CL_Name") or ""),
            export_language=normalize_language(doc.get("CL_Export_Language")) or "FR",
            drive_folder=str(doc.get("CL_Default_Drive_Folder") or ""),
        )


@dataclass
class Campaign:
    id: str
    fields: dict[str, Any] = field(default_factory=dict)

    def get(self, name: str) -> Any:
        if name == "id":
            return self.id
        return self.fields.get(name)

    @classmethod
    def from_doc(cls, doc: dict[str, Any]) -> "Campaign":
        return cls(id=str(doc.get("id") or ""), fields=dict(doc))
