#!/usr/bin/env python3
"""Create a small demo store: one client, one campaign version, a linked document."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from campaigndocs.store import (  # noqa: E402
    SqliteStore,
    breakdowns_path,
    creatives_path,
    documents_path,
    placements_path,
    sections_path,
    tabs_path,
    tactics_path,
)

CLIENT = "demo-client"
CAMPAIGN = "demo-campaign"
VERSION = "v1"


def seed(db_path: str, sheet_url: str) -> None:
    p = Path(db_path)
    if p.exists():
        p.unlink()
    store = SqliteStore(db_path)
    store.init()

    store.put("clients", {"id": CLIENT, "CL_Name": "Demo Client", "CL_Export_Language": "FR"})
    store.put(
        f"clients/{CLIENT}/campaigns",
        {
            "id": CAMPAIGN,
            "CA_Name": "Spring Launch",
            "CA_Campaign_Identifier": "SPR-2025",
            "CA_Division": "SH_DIV_RETAIL",
            "CA_Status": "Active",
            "CA_Quarter": "Q1",
            "CA_Year": 2025,
            "CA_Start_Date": "2025-01-06",
            "CA_End_Date": "2025-03-30",
            "CA_Budget": 150000,
            "CA_Currency": "CAD",
            "officialVersionId": VERSION,
        },
    )
    store.put(
        f"clients/{CLIENT}/templates",
        {"id": "tpl-media-plan", "TE_Name": "Media plan", "TE_Duplicate": True, "TE_Language": "FR"},
    )
    store.put(
        documents_path(CLIENT, CAMPAIGN, VERSION),
        {"id": "doc-1", "name": "Spring Launch plan", "url": sheet_url, "status": "completed", "template": {"id": "tpl-media-plan"}},
    )

    for shortcode in (
        {"id": "SH_DIV_RETAIL", "SH_Code": "RETAIL", "SH_Display_Name_FR": "Détail", "SH_Display_Name_EN": "Retail"},
        {"id": "SH_MT_TV", "SH_Code": "TV", "SH_Display_Name_FR": "Télévision", "SH_Display_Name_EN": "Television"},
        {"id": "SH_MT_SOCIAL", "SH_Code": "SOC", "SH_Display_Name_FR": "Social", "SH_Display_Name_EN": ""},
    ):
        store.put("shortcodes", shortcode)

    store.put(breakdowns_path(CLIENT, CAMPAIGN), {"id": "bd-month", "name": "Calendar", "type": "Monthly", "order": 0})
    store.put(breakdowns_path(CLIENT, CAMPAIGN), {"id": "bd-sprint", "name": "Sprints", "type": "Custom", "order": 1})

    ids = (CLIENT, CAMPAIGN, VERSION)
    store.put(tabs_path(*ids), {"id": "tab-main", "ONGLET_Name": "Main plan", "ONGLET_Order": 0}, 0)
    store.put(tabs_path(*ids), {"id": "tab-extra", "ONGLET_Name": "Always on", "ONGLET_Order": 1}, 1)
    store.put(sections_path(*ids, "tab-main"), {"id": "sec-aw", "SECTION_Name": "Awareness", "SECTION_Order": 0})

    store.put(
        tactics_path(*ids, "tab-main", "sec-aw"),
        {
            "id": "tc-tv",
            "TC_Label": "National TV",
            "TC_Order": 0,
            "TC_Media_Type": "SH_MT_TV",
            "TC_Media_Budget": 90000,
            "TC_Start_Date": "2025-01-06",
            "TC_End_Date": "2025-03-30",
            "breakdowns": {
                "bd-month": {
                    "periods": {
                        "p-jan": {"date": "2025-01-01", "value": "30000", "order": 0},
                        "p-feb": {"date": "2025-02-01", "value": "30000", "order": 0},
                        "p-mar": {"date": "2025-03-01", "value": "30000", "order": 0},
                    }
                },
                "bd-sprint": {"periods": {"s1": {"name": "Sprint 1", "value": "45000", "order": 1, "isToggled": True}}},
            },
        },
    )
    store.put(
        tactics_path(*ids, "tab-main", "sec-aw"),
        {"id": "tc-social", "TC_Label": "Social video", "TC_Order": 1, "TC_Media_Type": "SH_MT_SOCIAL", "TC_Media_Budget": 60000},
    )
    store.put(
        placements_path(*ids, "tab-main", "sec-aw", "tc-social"),
        {"id": "pl-ig", "PL_Label": "Instagram Reels", "PL_Order": 0, "PL_Tag_Type": "Video"},
    )
    store.put(
        creatives_path(*ids, "tab-main", "sec-aw", "tc-social", "pl-ig"),
        {"id": "cr-15s", "CR_Label": "15s cutdown", "CR_Order": 0, "CR_Rotation_Weight": 50},
    )

    print(f"Demo store created at {db_path}")


if __name__ == "__main__":
    parser = argparse.ArgumentParser()
    parser.add_argument("--sqlite-path", default="data/campaigndocs.sqlite")
    parser.add_argument("--sheet-url", default="https://docs.google.com/spreadsheets/d/DEMO_SHEET_ID/edit")
    args = parser.parse_args()
    seed(args.sqlite_path, args.sheet_url)
