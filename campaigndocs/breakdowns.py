"""Flatten per-tactic breakdown periods into the splits table.

Automatic breakdowns (Monthly, Weekly, PEBs) name their periods from the
stored ISO date; Custom breakdowns use the stored label and never carry a
date. Rows with a date come first in chronological order, undated rows
follow; ties are broken by breakdown order, then period order.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from campaigndocs.models import BreakdownDefinition, BreakdownPeriodRow, BreakdownType, Hierarchy, Tactic
from campaigndocs.util import epoch_ms, format_cell, parse_stored_date, to_int

logger = logging.getLogger(__name__)

BREAKDOWN_HEADERS = [
    "Tactic Id",
    "Breakdown Name",
    "Type",
    "Period Id",
    "Period Name",
    "Date",
    "Custom Name",
    "Stored Date",
    "Order",
    "Value",
    "Unit Cost",
    "Total",
    "isToggled",
]

MONTHS = {
    "EN": ["Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"],
    "FR": ["Jan", "Fév", "Mar", "Avr", "Mai", "Jun", "Jul", "Aoû", "Sep", "Oct", "Nov", "Déc"],
}

UNKNOWN_BREAKDOWN = "Unknown breakdown"
UNKNOWN_TYPE = "Unknown type"


@dataclass(frozen=True)
class PeriodMetadata:
    start_date: datetime | None
    display_name: str
    custom_name: str
    stored_date: str


def _display_name(breakdown_type: BreakdownType, start: datetime, language: str) -> str:
    months = MONTHS.get(language, MONTHS["EN"])
    month = months[start.month - 1]
    if breakdown_type is BreakdownType.MONTHLY:
        return f"{month} {start.year % 100:02d}"
    return f"{start.day:02d} {month}"


def period_metadata(
    period_id: str,
    period: dict[str, Any],
    definition: BreakdownDefinition | None,
    language: str = "EN",
) -> PeriodMetadata:
    if definition is None or definition.type is None:
        return PeriodMetadata(None, period_id, "", "")

    if definition.type is BreakdownType.CUSTOM:
        custom_name = str(period.get("name") or "")
        return PeriodMetadata(None, custom_name or period_id, custom_name, "")

    stored_date = str(period.get("date") or "")
    if not stored_date:
        return PeriodMetadata(None, period_id, "", "")
    try:
        start = parse_stored_date(stored_date)
    except ValueError:
        logger.warning("[BREAKDOWNS] unreadable date %r for period %s, sorting it last", stored_date, period_id)
        return PeriodMetadata(None, period_id, "", stored_date)
    return PeriodMetadata(start, _display_name(definition.type, start, language), "", stored_date)


def _amount(value: Any) -> str:
    return "" if value in (None, "") else format_cell(value)


def _tactic_rows(
    tactic: Tactic, definitions: dict[str, BreakdownDefinition], language: str
) -> list[BreakdownPeriodRow]:
    rows: list[BreakdownPeriodRow] = []
    for breakdown_id, data in tactic.breakdowns.items():
        definition = definitions.get(breakdown_id)
        periods = data.get("periods") if isinstance(data, dict) else None
        if not isinstance(periods, dict):
            continue

        for period_id, period in periods.items():
            if not isinstance(period, dict):
                continue
            meta = period_metadata(period_id, period, definition, language)
            order = to_int(period.get("order"))
            period_order = order
            if meta.start_date is not None and period_order == 0:
                period_order = epoch_ms(meta.start_date)
            toggled = period.get("isToggled")

            rows.append(
                BreakdownPeriodRow(
                    tactic_id=tactic.id,
                    breakdown_id=breakdown_id,
                    breakdown_name=(definition.name if definition else "") or UNKNOWN_BREAKDOWN,
                    breakdown_type=(definition.type_label if definition else "") or UNKNOWN_TYPE,
                    period_id=period_id,
                    period_name=meta.display_name,
                    value=_amount(period.get("value")),
                    unit_cost=_amount(period.get("unitCost")),
                    total=_amount(period.get("total")),
                    is_toggled=True if toggled is None else bool(toggled),
                    order=order,
                    breakdown_order=definition.order if definition else 0,
                    period_order=period_order,
                    start_date=meta.start_date,
                    custom_name=meta.custom_name,
                    stored_date=meta.stored_date,
                )
            )
    return rows


def _sort_key(row: BreakdownPeriodRow) -> tuple[int, int, int, int]:
    if row.start_date is not None:
        return (0, epoch_ms(row.start_date), row.breakdown_order, row.order)
    return (1, 0, row.breakdown_order, row.order)


def flatten_breakdown_rows(
    tactics: list[Tactic], definitions: dict[str, BreakdownDefinition], language: str = "EN"
) -> list[BreakdownPeriodRow]:
    rows: list[BreakdownPeriodRow] = []
    for tactic in tactics:
        rows.extend(_tactic_rows(tactic, definitions, language))
    rows.sort(key=_sort_key)
    return rows


def breakdown_table(rows: list[BreakdownPeriodRow]) -> list[list[str]]:
    table = [list(BREAKDOWN_HEADERS)]
    for row in rows:
        table.append(
            [
                row.tactic_id,
                row.breakdown_name,
                row.breakdown_type,
                row.period_id,
                row.period_name,
                row.start_date.strftime("%Y-%m-%d") if row.start_date else "",
                row.custom_name,
                row.stored_date,
                str(row.order),
                row.value,
                row.unit_cost,
                row.total,
                "true" if row.is_toggled else "false",
            ]
        )
    return table


def flatten_breakdowns(
    hierarchy: Hierarchy, definitions: dict[str, BreakdownDefinition], language: str = "EN"
) -> list[list[str]]:
    rows = flatten_breakdown_rows(hierarchy.all_tactics(), definitions, language)
    logger.info("[BREAKDOWNS] %s period rows flattened", len(rows))
    return breakdown_table(rows)
