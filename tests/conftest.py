from __future__ import annotations

import json
import threading
from pathlib import Path
from typing import Any

import pytest

from estimize_pipeline.ingest.estimize_client import FetchResult
from estimize_pipeline.mapping.map_file import MapFileResolver
from estimize_pipeline.resolve.identity import IdentityResolver


def write_map_file(folder: Path, permtick: str, rows: list[tuple[str, str]]) -> Path:
    folder.mkdir(parents=True, exist_ok=True)
    path = folder / f"{permtick.lower()}.csv"
    path.write_text("".join(f"{d},{s},Q\n" for d, s in rows), encoding="utf-8")
    return path


def release(
    rid: str,
    release_date: str,
    fiscal_year: int | None = 2019,
    fiscal_quarter: int | None = 1,
    **metrics: Any,
) -> dict[str, Any]:
    return {
        "id": rid,
        "release_date": release_date,
        "fiscal_year": fiscal_year,
        "fiscal_quarter": fiscal_quarter,
        **metrics,
    }


class FakeClient:
    """Stands in for EstimizeClient; serves canned results per path."""

    def __init__(self, responses: dict[str, Any] | None = None) -> None:
        self.responses = responses or {}
        self.calls: list[str] = []
        self._lock = threading.Lock()

    def issue(self, path: str) -> FetchResult:
        with self._lock:
            self.calls.append(path)
        value = self.responses.get(path)
        if isinstance(value, BaseException):
            raise value
        if value is None:
            return FetchResult(success=False)
        if isinstance(value, FetchResult):
            return value
        return FetchResult(success=True, body=json.dumps(value))


class CountingGate:
    def __init__(self) -> None:
        self.count = 0
        self._lock = threading.Lock()

    def wait_to_proceed(self) -> float:
        with self._lock:
            self.count += 1
            return 0.0


@pytest.fixture
def map_dir(tmp_path: Path) -> Path:
    """A always maps to A; B becomes BNEW after 2019-12-31."""
    folder = tmp_path / "map_files"
    write_map_file(folder, "a", [("19980102", "a"), ("20501231", "a")])
    write_map_file(folder, "bnew", [("19980102", "b"), ("20191231", "b"), ("20501231", "bnew")])
    return folder


@pytest.fixture
def resolver(map_dir: Path) -> IdentityResolver:
    return IdentityResolver(MapFileResolver.from_directory(map_dir))
