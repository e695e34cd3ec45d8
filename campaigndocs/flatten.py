from __future__ import annotations

import logging

from campaigndocs.errors import IntegrityError
from campaigndocs.mapping import DEFAULT_MAPPING, MISSING_SENTINEL, ColumnMapping
from campaigndocs.models import ANCESTOR_LEVELS, Entity, Hierarchy, Level
from campaigndocs.util import format_cell

logger = logging.getLogger(__name__)


def _mapped_value(entity: Entity, field: str) -> str:
    value = entity.get(field)
    if value is None:
        return MISSING_SENTINEL
    return format_cell(value)


def flatten_row(level: Level, entity: Entity, ids: list[str], mapping: ColumnMapping) -> list[str]:
    row = [level.value, *ids]
    for column in mapping.columns:
        field = mapping.field_for(column, level)
        row.append("" if field is None else _mapped_value(entity, field))
    return row


def flatten_hierarchy(hierarchy: Hierarchy, mapping: ColumnMapping = DEFAULT_MAPPING) -> list[list[str]]:
    """One row per entity, depth-first, after a header row.

    The four id columns hold the entity's own id at its level, the ancestor
    id above it, and stay blank below it.
    """
    table = [mapping.headers()]
    for level, entity, path in hierarchy.walk():
        if not entity.id:
            raise IntegrityError(f"{level.value} row without id (parent path {path})")
        ids = [path.id_for(ancestor) for ancestor in ANCESTOR_LEVELS]
        table.append(flatten_row(level, entity, ids, mapping))

    logger.info("[FLATTEN] hierarchy table: %s rows x %s columns", len(table) - 1, len(table[0]))
    return table
