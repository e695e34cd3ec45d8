"""Walk the five-level campaign tree for one version.

Reads are issued level by level (tabs, then every tab's sections, then every
section's tactics, ...). Each level keeps the full chain of parent ids next to
the entity so that child collection paths are built without looking anything
up again.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

from campaigndocs.errors import ExportError, FetchError, IntegrityError
from campaigndocs.models import BreakdownDefinition, Entity, Hierarchy, Level

logger = logging.getLogger(__name__)


def _checked(entities: Sequence[Entity], level: Level, parent: str, seen: set[str]) -> list[Any]:
    out = list(entities)
    for entity in out:
        if not entity.id:
            raise IntegrityError(f"{level.value} without id under {parent or 'version root'}")
        if entity.id in seen:
            raise IntegrityError(f"{level.value} {entity.id} appears more than once in the hierarchy")
        seen.add(entity.id)
    return out


async def fetch_hierarchy(store: Any, client_id: str, campaign_id: str, version_id: str) -> Hierarchy:
    """Return the complete tree or raise; a partial hierarchy is never returned."""
    hierarchy = Hierarchy()
    args = (client_id, campaign_id, version_id)
    step = "tabs"
    try:
        hierarchy.tabs = _checked(await store.get_tabs(*args), Level.TAB, "", set())

        step = "sections"
        seen: set[str] = set()
        section_paths: list[tuple[str, str]] = []
        for tab in hierarchy.tabs:
            sections = _checked(await store.get_sections(*args, tab.id), Level.SECTION, tab.id, seen)
            hierarchy.sections[tab.id] = sections
            section_paths.extend((tab.id, s.id) for s in sections)

        step = "tactics"
        seen = set()
        tactic_paths: list[tuple[str, str, str]] = []
        for tab_id, section_id in section_paths:
            tactics = _checked(
                await store.get_tactics(*args, tab_id, section_id), Level.TACTIC, section_id, seen
            )
            hierarchy.tactics[section_id] = tactics
            tactic_paths.extend((tab_id, section_id, t.id) for t in tactics)

        step = "placements"
        seen = set()
        placement_paths: list[tuple[str, str, str, str]] = []
        for tab_id, section_id, tactic_id in tactic_paths:
            placements = _checked(
                await store.get_placements(*args, tab_id, section_id, tactic_id),
                Level.PLACEMENT,
                tactic_id,
                seen,
            )
            hierarchy.placements[tactic_id] = placements
            placement_paths.extend((tab_id, section_id, tactic_id, p.id) for p in placements)

        step = "creatives"
        seen = set()
        for tab_id, section_id, tactic_id, placement_id in placement_paths:
            hierarchy.creatives[placement_id] = _checked(
                await store.get_creatives(*args, tab_id, section_id, tactic_id, placement_id),
                Level.CREATIVE,
                placement_id,
                seen,
            )
    except ExportError:
        raise
    except Exception as exc:
        raise FetchError(f"Failed to read {step} for campaign {campaign_id} version {version_id}: {exc}") from exc

    logger.info(
        "[FETCH] %s entities read for campaign %s version %s",
        hierarchy.entity_count(),
        campaign_id,
        version_id,
    )
    return hierarchy


async def fetch_breakdown_definitions(store: Any, client_id: str, campaign_id: str) -> dict[str, BreakdownDefinition]:
    try:
        definitions = await store.get_breakdown_definitions(client_id, campaign_id)
    except Exception as exc:
        raise FetchError(f"Failed to read breakdowns for campaign {campaign_id}: {exc}") from exc
    return {d.id: d for d in definitions if d.id}
