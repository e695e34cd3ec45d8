"""Replace shortcode ids with display names and numeric-looking text with numbers.

Numbers are written as typed values so the spreadsheet applies its own locale
formatting instead of storing literal text.
"""

from __future__ import annotations

import logging
import math
import re
from collections.abc import Iterable, Mapping, Sequence
from typing import Any, Union

from campaigndocs.models import Shortcode

logger = logging.getLogger(__name__)

Cell = Union[str, int, float]

CACHE_KEY = "shortcodes"
_NUMBER_RE = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)$")
_LETTER_RE = re.compile(r"[^\W\d_]")


def coerce_number(value: Any) -> Cell:
    """Return an int/float for clean numeric text, anything else unchanged."""
    if not isinstance(value, str):
        return value
    s = value.strip()
    if not s or _LETTER_RE.search(s):
        return value
    # composite ids such as 2024-0001-03
    if "-" in s and len(s) > 10:
        return value
    if len(s) > 15 or not _NUMBER_RE.match(s):
        return value
    number = float(s)
    if not math.isfinite(number):
        return value
    if "." in s:
        return number
    return int(s)


def display_name(shortcode: Shortcode, language: str) -> str:
    if str(language).upper() == "EN":
        return shortcode.display_name_en or shortcode.display_name_fr
    return shortcode.display_name_fr


def _code_index(shortcodes: Mapping[str, Shortcode]) -> dict[str, Shortcode]:
    index: dict[str, Shortcode] = {}
    for shortcode in shortcodes.values():
        if shortcode.code and shortcode.code not in index:
            index[shortcode.code] = shortcode
    return index


def resolve_cell(
    value: Any,
    shortcodes: Mapping[str, Shortcode] | None,
    language: str,
    codes: Mapping[str, Shortcode] | None = None,
) -> Cell:
    if isinstance(value, str) and shortcodes:
        key = value.strip()
        match = shortcodes.get(key)
        if match is None and codes:
            match = codes.get(key)
        if match is not None:
            name = display_name(match, language)
            if name:
                return name
    return coerce_number(value)


def resolve_table(
    table: Sequence[Sequence[Any]],
    shortcodes: Mapping[str, Shortcode] | None,
    language: str,
    *,
    allow_code_lookup: bool = False,
) -> list[list[Cell]]:
    """Resolve every cell of ``table`` independently; the shape is preserved.

    With ``shortcodes`` set to None only numeric coercion is applied.
    ``allow_code_lookup`` additionally matches cells against ``SH_Code``
    when no id matches.
    """
    if shortcodes is None:
        logger.warning("[SHORTCODES] no shortcode cache available, applying numeric coercion only")
    codes = _code_index(shortcodes) if shortcodes and allow_code_lookup else None
    return [[resolve_cell(cell, shortcodes, language, codes) for cell in row] for row in table]


class ShortcodeCache:
    """Shortcode map held in an injected TTL cache."""

    def __init__(self, cache: Any, ttl: float | None = 24 * 3600) -> None:
        self.cache = cache
        self.ttl = ttl

    def get(self) -> dict[str, Shortcode] | None:
        docs = self.cache.get(CACHE_KEY)
        if docs is None:
            return None
        return {s.id: s for s in (Shortcode.from_doc(d) for d in docs) if s.id}

    def put(self, shortcodes: Iterable[Shortcode]) -> int:
        docs = [s.to_doc() for s in shortcodes if s.id]
        self.cache.set(CACHE_KEY, docs, self.ttl)
        return len(docs)

    def invalidate(self) -> None:
        self.cache.invalidate(CACHE_KEY)

    async def refresh(self, store: Any) -> int:
        count = self.put(await store.get_shortcodes())
        logger.info("[SHORTCODES] cache refreshed with %s shortcodes", count)
        return count
