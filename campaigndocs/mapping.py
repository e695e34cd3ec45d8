"""Column mapping for the hierarchy table.

A mapping is a list of ``(column, level, field)`` entries. It is validated
once when built; flattening never has to guess what a column means.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass

from campaigndocs.errors import MappingConfigError
from campaigndocs.models import Level


FIXED_HEADERS: tuple[str, ...] = ("Level", "Tab", "Section", "Tactic", "Placement")
MISSING_SENTINEL = "XXX"


@dataclass(frozen=True)
class FieldMapping:
    column: str
    level: Level
    field: str


class ColumnMapping:
    def __init__(self, entries: Iterable[FieldMapping], columns: Sequence[str] | None = None) -> None:
        self.entries = list(entries)
        self._fields: dict[tuple[str, Level], str] = {}
        mapped_columns: list[str] = []

        for entry in self.entries:
            column = entry.column.strip()
            fld = entry.field.strip()
            if not column or not fld:
                raise MappingConfigError(f"mapping entry with empty column or field: {entry!r}")
            if column in FIXED_HEADERS:
                raise MappingConfigError(f"column '{column}' is reserved for hierarchy ids")
            key = (column, entry.level)
            if key in self._fields:
                raise MappingConfigError(f"column '{column}' is mapped twice for level {entry.level.value}")
            self._fields[key] = fld
            if column not in mapped_columns:
                mapped_columns.append(column)

        if columns is None:
            self.columns = mapped_columns
        else:
            unmapped = [c for c in columns if c not in mapped_columns]
            if unmapped:
                raise MappingConfigError(f"columns without any field mapping: {', '.join(unmapped)}")
            if len(set(columns)) != len(columns):
                raise MappingConfigError("column order lists the same column more than once")
            self.columns = list(columns)

    def field_for(self, column: str, level: Level) -> str | None:
        return self._fields.get((column, level))

    def headers(self) -> list[str]:
        return [*FIXED_HEADERS, *self.columns]

    @classmethod
    def from_config(
        cls, config: Mapping[str, Sequence[tuple[str, str]]], columns: Sequence[str] | None = None
    ) -> "ColumnMapping":
        """Build from ``{level name: [(field, column), ...]}``."""
        entries: list[FieldMapping] = []
        for level_name, pairs in config.items():
            try:
                level = Level(level_name)
            except ValueError as exc:
                raise MappingConfigError(f"unknown hierarchy level '{level_name}'") from exc
            entries.extend(FieldMapping(column=column, level=level, field=fld) for fld, column in pairs)
        return cls(entries, columns)


def _same(*fields: str) -> list[tuple[str, str]]:
    return [(f, f) for f in fields]


# Creative specs live on tactics and creatives under one shared column.
SPEC_FIELDS = (
    "Name",
    "Format",
    "Ratio",
    "FileType",
    "MaxWeight",
    "Weight",
    "Animation",
    "Title",
    "Text",
    "SpecSheetLink",
    "Notes",
)

DEFAULT_CONFIG: dict[str, list[tuple[str, str]]] = {
    "Tab": [
        ("ONGLET_Name", "Label"),
        ("ONGLET_Order", "Order"),
    ],
    "Section": [
        ("SECTION_Name", "Section_Label"),
        ("SECTION_Name", "Label"),
        ("SECTION_Order", "Order"),
    ],
    "Tactic": [
        ("TC_Label", "TC_Label"),
        ("TC_Label", "Label"),
        ("TC_Order", "Order"),
        *_same(
            "TC_BuyCurrency",
            "TC_Billing_ID",
            "TC_AssetDate",
            "TC_Prog_Buying_Method_1",
            "TC_Prog_Buying_Method_2",
            "TC_Custom_Dim_1",
            "TC_Custom_Dim_2",
            "TC_Custom_Dim_3",
            "TC_Emplacement",
            "TC_End_Date",
        ),
        *_same(*(f"TC_Fee_{n}_Value" for n in range(1, 6))),
        *_same(*(f"TC_Fee_{n}_RefCurrency" for n in range(1, 6))),
        *_same(*(f"TC_Fee_{n}_Option_Name" for n in range(1, 6))),
        *_same(*(f"TC_Fee_{n}_Name" for n in range(1, 6))),
        *_same("TC_Format_Open", "TC_Frequence", "TC_Inventory", "TC_Kpi", "TC_Kpi_CostPer", "TC_Kpi_Volume"),
        *_same(*(f for n in range(2, 6) for f in (f"TC_Kpi_{n}", f"TC_Kpi_CostPer_{n}", f"TC_Kpi_Volume_{n}"))),
        *_same(
            "TC_Language_Open",
            "TC_LOB",
            "TC_Market",
            "TC_Market_Open",
            "TC_Media_Objective",
            "TC_Media_Type",
            "TC_NumberCreative",
            "TC_PO",
            "TC_Product_Open",
            "TC_Publisher",
            "TC_Tags",
            "TC_Start_Date",
            "TC_Targeting_Open",
            "TC_Unit_Type",
            "TC_Unit_Volume",
        ),
        *_same(
            "TC_Media_Budget",
            "TC_Media_Budget_RefCurrency",
            "TC_Client_Budget",
            "TC_Client_Budget_RefCurrency",
            "TC_Media_Value",
            "TC_Unit_Price",
            "TC_MPA",
        ),
        *[(f"TC_Spec_{name}", f"TC_CR_Spec_{name}") for name in SPEC_FIELDS],
        *_same("TC_CM360_Rate", "TC_CM360_Volume", "TC_Buy_Type"),
    ],
    "Placement": [
        ("PL_Label", "Label"),
        ("PL_Order", "Order"),
        *_same(*(f for n in range(1, 5) for f in (f"PL_Plateforme_{n}_Title", f"PL_Plateforme_{n}"))),
        *_same("PL_Tag_Type", "PL_VPAID", "PL_Third_Party_Measurement", "PL_Floodlight"),
        ("PL_Tag_Start_Date", "PL_CR_Tag_Start_Date"),
        ("PL_Tag_End_Date", "PL_CR_Tag_End_Date"),
        ("PL_Creative_Rotation_Type", "PL_CR_Rotation"),
    ],
    "Creative": [
        ("CR_Label", "Label"),
        ("CR_Order", "Order"),
        *[(f"CR_Spec_{name}", f"TC_CR_Spec_{name}") for name in SPEC_FIELDS],
        *_same("CR_Plateforme_5_Title", "CR_Plateforme_5", "CR_Plateforme_6_Title", "CR_Plateforme_6"),
        ("CR_Tag_Start_Date", "PL_CR_Tag_Start_Date"),
        ("CR_Tag_End_Date", "PL_CR_Tag_End_Date"),
        ("CR_Rotation_Weight", "PL_CR_Rotation"),
    ],
}

DEFAULT_MAPPING = ColumnMapping.from_config(DEFAULT_CONFIG)
