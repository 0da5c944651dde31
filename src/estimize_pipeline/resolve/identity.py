"""Ticker normalization and point-in-time identity resolution.

Estimize lists delisted companies with a "defunct" marker appended to the
ticker (``"XYZ - defunct"``, ``"XYZ_defunct"``). The marker has to go before
the ticker can be used in an API path, and the ticker then needs a second,
map-file-specific normalization before it can be looked up.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Union

from estimize_pipeline.logging_config import TRACE
from estimize_pipeline.mapping.map_file import EmptyMapFileError, MapFileResolver

log = logging.getLogger(__name__)

DEFUNCT_MARKER = "defunct"
DEFUNCT_DELIMITERS = ("-", "_")


def normalize_defunct_ticker(ticker: str) -> str | None:
    """Strip a trailing defunct marker from an Estimize ticker.

    Args:
        ticker: Ticker as listed by Estimize.

    Returns:
        The ticker without its marker (or unchanged when it carries none), or
        ``None`` when a marker is present but no delimiter separates it.
    """
    ticker = ticker.strip()
    if DEFUNCT_MARKER not in ticker.lower():
        return ticker

    cuts = [i for i in (ticker.find(d) for d in DEFUNCT_DELIMITERS) if i > 0]
    if not cuts:
        return None
    return ticker[: min(cuts)].strip() or None


def normalize_ticker(ticker: str) -> str:
    """Convert an Estimize ticker into the form map files are keyed by."""
    t = ticker.lower()
    for marker in ("- defunct", "-defunct", "_defunct"):
        t = t.replace(marker, "")
    return t.replace(" ", "").replace("|", "").replace("-", ".")


@dataclass(frozen=True)
class Found:
    """Ticker in effect on the requested date."""
    symbol: str
    remapped: bool = False


@dataclass(frozen=True)
class NotFound:
    reason: str


Resolution = Union[Found, NotFound]


class IdentityResolver:
    """Maps (ticker, timestamp) to the symbol trading on that date.

    Lookups are pure functions of the loaded map files, so the same
    (ticker, timestamp) always produces the same `Resolution`.
    """

    def __init__(self, map_files: MapFileResolver) -> None:
        self.map_files = map_files

    def resolve(self, ticker: str, as_of: datetime) -> Resolution:
        """Resolve `ticker` as of `as_of`.

        Args:
            ticker: Estimize ticker with any defunct marker already removed.
            as_of: Event timestamp; naive values are taken as UTC.

        Returns:
            Found with the mapped symbol, or NotFound when no map file covers
            the ticker on that date or it maps to a blank symbol.
        """
        old_ticker = normalize_ticker(ticker)
        if as_of.tzinfo is None:
            as_of = as_of.replace(tzinfo=timezone.utc)
        as_of_date = as_of.astimezone(timezone.utc).date()

        try:
            map_file = self.map_files.resolve_map_file(old_ticker, as_of_date)
        except EmptyMapFileError as e:
            log.error("Failed to load map file for: %s - on: %s (%s)", old_ticker, as_of, e)
            return NotFound("empty map file")

        if not map_file.any():
            log.log(TRACE, "Failed to find map file for: %s - on: %s", old_ticker, as_of)
            return NotFound("no map file")

        new_ticker = map_file.get_mapped_symbol(as_of_date)
        if not new_ticker or not new_ticker.strip():
            log.log(
                TRACE,
                "Failed to find mapping for null new ticker. Old ticker: %s - on: %s",
                old_ticker,
                as_of,
            )
            return NotFound("blank mapped symbol")

        remapped = old_ticker.casefold() != new_ticker.casefold()
        if remapped:
            log.log(TRACE, "Remapped from %s to %s for %s", old_ticker, new_ticker, as_of)
        return Found(new_ticker, remapped=remapped)
