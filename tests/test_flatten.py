import asyncio

import pytest

from campaigndocs.errors import IntegrityError, MappingConfigError
from campaigndocs.fetcher import fetch_hierarchy
from campaigndocs.flatten import flatten_hierarchy
from campaigndocs.mapping import DEFAULT_MAPPING, FIXED_HEADERS, ColumnMapping, FieldMapping
from campaigndocs.models import Hierarchy, Level, Section, Tab, Tactic
from conftest import full_store, scenario_a_store


def _hierarchy(store) -> Hierarchy:
    return asyncio.run(fetch_hierarchy(store, "client-1", "camp-1", "v1"))


def _col(table, name):
    return table[0].index(name)


class TestFlattenHierarchy:
    def test_scenario_one_tab_one_section_two_tactics(self):
        table = flatten_hierarchy(_hierarchy(scenario_a_store()))

        assert len(table) == 5
        assert table[0][:5] == list(FIXED_HEADERS)
        levels = [row[0] for row in table[1:]]
        assert levels == ["Tab", "Section", "Tactic", "Tactic"]

        for row in table[3:]:
            assert row[_col(table, "Section")] == "sec-1"
            assert row[_col(table, "Placement")] == ""
        # siblings follow stored order, not store order
        assert [row[_col(table, "Tactic")] for row in table[3:]] == ["tc-1", "tc-2"]

    def test_ancestor_columns_blank_above_the_row_level(self):
        table = flatten_hierarchy(_hierarchy(scenario_a_store()))
        tab_row, section_row = table[1], table[2]
        assert tab_row[1:5] == ["tab-1", "", "", ""]
        assert section_row[1:5] == ["tab-1", "sec-1", "", ""]

    def test_row_count_matches_entity_count_and_ids_resolve(self):
        hierarchy = _hierarchy(full_store())
        table = flatten_hierarchy(hierarchy)

        assert len(table) - 1 == hierarchy.entity_count()
        known = {
            "Tab": {t.id for t in hierarchy.tabs},
            "Section": {s.id for v in hierarchy.sections.values() for s in v},
            "Tactic": {t.id for v in hierarchy.tactics.values() for t in v},
            "Placement": {p.id for v in hierarchy.placements.values() for p in v},
        }
        for row in table[1:]:
            for column, ids in known.items():
                value = row[_col(table, column)]
                assert value == "" or value in ids

    def test_creative_rows_carry_their_placement(self):
        table = flatten_hierarchy(_hierarchy(full_store()))
        creative_rows = [row for row in table[1:] if row[0] == "Creative"]
        assert [row[_col(table, "Label")] for row in creative_rows] == ["30s", "15s"]
        assert all(row[_col(table, "Placement")] == "pl-1" for row in creative_rows)
        assert all(row[_col(table, "Tactic")] == "tc-1" for row in creative_rows)

    def test_missing_field_sentinel_and_unmapped_blank(self):
        table = flatten_hierarchy(_hierarchy(scenario_a_store()))
        radio = next(row for row in table[1:] if row[_col(table, "Tactic")] == "tc-2")
        tab_row = table[1]

        # mapped for tactics but absent on this tactic
        assert radio[_col(table, "TC_Media_Type")] == "XXX"
        # no mapping for tabs at all
        assert tab_row[_col(table, "TC_Media_Type")] == ""

    def test_numbers_render_without_trailing_zero(self):
        hierarchy = Hierarchy(tabs=[Tab.from_doc({"id": "t", "ONGLET_Name": "T", "ONGLET_Order": 3.0})])
        table = flatten_hierarchy(hierarchy)
        assert table[1][_col(table, "Order")] == "3"

    def test_entity_without_id_is_an_integrity_fault(self):
        hierarchy = Hierarchy(tabs=[Tab.from_doc({"id": "t"})], sections={"t": [Section.from_doc({"SECTION_Name": "x"})]})
        with pytest.raises(IntegrityError):
            flatten_hierarchy(hierarchy)

    def test_empty_hierarchy_is_header_only(self):
        assert flatten_hierarchy(Hierarchy()) == [DEFAULT_MAPPING.headers()]


class TestColumnMapping:
    def test_default_mapping_covers_every_document_column(self):
        per_level = {level: 0 for level in Level}
        for entry in DEFAULT_MAPPING.entries:
            per_level[entry.level] += 1

        assert per_level == {
            Level.TAB: 2,
            Level.SECTION: 3,
            Level.TACTIC: 87,
            Level.PLACEMENT: 17,
            Level.CREATIVE: 20,
        }
        assert len(DEFAULT_MAPPING.columns) == 107
        assert len(DEFAULT_MAPPING.headers()) == 112
        assert DEFAULT_MAPPING.headers()[5:8] == ["Label", "Order", "Section_Label"]

    def test_shared_columns_resolve_per_level(self):
        assert DEFAULT_MAPPING.field_for("TC_CR_Spec_Ratio", Level.TACTIC) == "TC_Spec_Ratio"
        assert DEFAULT_MAPPING.field_for("TC_CR_Spec_Ratio", Level.CREATIVE) == "CR_Spec_Ratio"
        assert DEFAULT_MAPPING.field_for("PL_CR_Rotation", Level.PLACEMENT) == "PL_Creative_Rotation_Type"
        assert DEFAULT_MAPPING.field_for("PL_CR_Rotation", Level.CREATIVE) == "CR_Rotation_Weight"
        assert DEFAULT_MAPPING.field_for("TC_Kpi_Volume_5", Level.TACTIC) == "TC_Kpi_Volume_5"
        assert DEFAULT_MAPPING.field_for("TC_Fee_3_Option_Name", Level.PLACEMENT) is None

    def test_duplicate_column_level_pair_is_rejected(self):
        entries = [FieldMapping("Label", Level.TAB, "ONGLET_Name"), FieldMapping("Label", Level.TAB, "other")]
        with pytest.raises(MappingConfigError):
            ColumnMapping(entries)

    def test_reserved_column_is_rejected(self):
        with pytest.raises(MappingConfigError):
            ColumnMapping([FieldMapping("Tactic", Level.TACTIC, "TC_Label")])

    def test_explicit_column_without_mapping_is_rejected(self):
        with pytest.raises(MappingConfigError):
            ColumnMapping([FieldMapping("Label", Level.TAB, "ONGLET_Name")], columns=["Label", "Budget"])

    def test_unknown_level_in_config(self):
        with pytest.raises(MappingConfigError):
            ColumnMapping.from_config({"Campaign": [("CA_Name", "Name")]})

    def test_custom_mapping_drives_columns(self):
        mapping = ColumnMapping.from_config({"Tactic": [("TC_Label", "Name"), ("TC_Budget", "Budget")]})
        hierarchy = Hierarchy(
            tabs=[Tab.from_doc({"id": "t"})],
            sections={"t": [Section.from_doc({"id": "s"})]},
            tactics={"s": [Tactic.from_doc({"id": "c", "TC_Label": "TV", "TC_Budget": 12.5})]},
        )
        table = flatten_hierarchy(hierarchy, mapping)
        assert table[0] == [*FIXED_HEADERS, "Name", "Budget"]
        assert table[3][5:] == ["TV", "12.5"]
        assert table[1][5:] == ["", ""]
