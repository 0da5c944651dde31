"""Point-in-time ticker mapping tables ("map files").

A map file tracks one security across ticker changes. It is a headerless CSV
named after the security's permanent ticker (``<permtick>.csv``) whose rows
are ``yyyyMMdd,symbol[,exchange]``; each row means the symbol was in effect up
to and including that date.

`MapFileResolver` indexes a directory of map files by every symbol they
mention so a (ticker, date) pair can be traced to the security that used the
ticker on that date.
"""

from __future__ import annotations

import bisect
import logging
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Iterable, Iterator

import pandas as pd

log = logging.getLogger(__name__)


class EmptyMapFileError(LookupError):
    """Raised when date bounds are requested from a map file without rows."""


@dataclass(frozen=True)
class MapFileRow:
    """One ticker period: `symbol` is in effect up to and including `date`."""
    date: date
    symbol: str
    exchange: str | None = None


class MapFile:
    """Ordered ticker history for a single security."""

    def __init__(self, permtick: str, rows: Iterable[MapFileRow]) -> None:
        self.permtick = permtick.upper()
        self.rows: list[MapFileRow] = sorted(rows, key=lambda r: r.date)

    def __iter__(self) -> Iterator[MapFileRow]:
        return iter(self.rows)

    def __len__(self) -> int:
        return len(self.rows)

    def any(self) -> bool:
        """Return True when the file covers at least one period."""
        return bool(self.rows)

    @property
    def first_date(self) -> date:
        if not self.rows:
            raise EmptyMapFileError(f"Map file {self.permtick} has no rows")
        return self.rows[0].date

    def get_mapped_symbol(self, search_date: date, default: str = "") -> str:
        """Return the symbol in effect on `search_date`, or `default`."""
        for row in self.rows:
            if row.date >= search_date:
                return row.symbol
        return default


def read_map_file(path: Path) -> MapFile:
    """Load a single map file from disk.

    Args:
        path: Path to ``<permtick>.csv``.

    Returns:
        MapFile whose permtick is the file stem. An empty file yields a
        MapFile without rows.
    """
    try:
        df = pd.read_csv(
            path,
            header=None,
            names=["date", "symbol", "exchange"],
            dtype=str,
        )
    except pd.errors.EmptyDataError:
        return MapFile(path.stem, [])

    rows = []
    for i, rec in enumerate(df.itertuples(index=False), start=1):
        if not _is_cell(rec.date) or not _is_cell(rec.symbol):
            log.warning("Skipping malformed row %d in %s", i, path)
            continue
        rows.append(
            MapFileRow(
                date=pd.to_datetime(rec.date.strip(), format="%Y%m%d").date(),
                symbol=rec.symbol.strip().upper(),
                exchange=rec.exchange.strip() if isinstance(rec.exchange, str) else None,
            )
        )
    return MapFile(path.stem, rows)


def _is_cell(value: object) -> bool:
    # pandas reads missing cells as NaN
    return isinstance(value, str) and bool(value.strip())


class MapFileResolver:
    """Finds the map file that covers a ticker as of a date."""

    def __init__(self, map_files: Iterable[MapFile]) -> None:
        self._by_permtick: dict[str, MapFile] = {}
        # symbol -> (sorted row dates, permticks aligned with those dates)
        self._by_symbol: dict[str, tuple[list[date], list[str]]] = {}

        entries: dict[str, list[tuple[date, str]]] = {}
        for mf in map_files:
            self._by_permtick[mf.permtick] = mf
            for row in mf:
                entries.setdefault(row.symbol, []).append((row.date, mf.permtick))

        for symbol, pairs in entries.items():
            pairs.sort()
            self._by_symbol[symbol] = ([d for d, _ in pairs], [p for _, p in pairs])

    @classmethod
    def from_directory(cls, directory: Path) -> "MapFileResolver":
        """Load every ``*.csv`` map file found in `directory`."""
        if not directory.is_dir():
            raise FileNotFoundError(f"Map file directory not found: {directory}")
        map_files = [read_map_file(p) for p in sorted(directory.glob("*.csv"))]
        log.info("Loaded %d map files from %s", len(map_files), directory)
        return cls(map_files)

    def __len__(self) -> int:
        return len(self._by_permtick)

    def resolve_map_file(self, symbol: str, as_of: date) -> MapFile:
        """Return the map file of the security trading as `symbol` on `as_of`.

        The rows mentioning `symbol` are searched for the first period ending
        on or after `as_of`; dates past the last period use the last one. A
        symbol never seen in any row falls back to the map file named after
        it. When nothing matches, or the matched security starts trading
        after `as_of`, an empty MapFile is returned.

        Raises:
            EmptyMapFileError: if the matched map file on disk has no rows.
        """
        symbol = symbol.upper()
        permtick = symbol

        indexed = self._by_symbol.get(symbol)
        if indexed is not None:
            dates, permticks = indexed
            i = bisect.bisect_left(dates, as_of)
            if i == len(dates):
                i = len(dates) - 1
            permtick = permticks[i]

        mf = self._by_permtick.get(permtick)
        if mf is None:
            return MapFile(symbol, [])
        if mf.first_date > as_of:
            return MapFile(symbol, [])
        return mf
