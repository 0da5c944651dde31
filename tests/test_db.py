from __future__ import annotations

from typing import Any

import pytest
from pymongo import UpdateOne
from pymongo.errors import PyMongoError

from estimize_pipeline.db import upsert_registry
from estimize_pipeline.models import RegistryEntry


class FakeCollection:
    name = "release_registry"

    def __init__(self, fail: bool = False) -> None:
        self.batches: list[list[Any]] = []
        self.fail = fail

    def bulk_write(self, ops: list[Any], ordered: bool = True) -> None:
        self.batches.append(list(ops))
        if self.fail:
            raise PyMongoError("unavailable")


def _entries(n: int) -> list[RegistryEntry]:
    return [RegistryEntry(release_id=str(i), symbol="AAPL", fiscal_year=2020, fiscal_quarter=1) for i in range(n)]


def test_upsert_registry_batches_by_key() -> None:
    coll = FakeCollection()
    attempted = upsert_registry(coll, reversed(_entries(3)), batch_size=2)  # type: ignore[arg-type]

    assert attempted == 3
    assert [len(b) for b in coll.batches] == [2, 1]
    assert coll.batches[0][0] == UpdateOne(
        {"release_id": "0", "symbol": "AAPL"},
        {"$set": {"release_id": "0", "symbol": "AAPL", "fiscal_year": 2020, "fiscal_quarter": 1}},
        upsert=True,
    )


def test_upsert_registry_survives_failed_batch(caplog: pytest.LogCaptureFixture) -> None:
    coll = FakeCollection(fail=True)
    assert upsert_registry(coll, _entries(2)) == 2  # type: ignore[arg-type]
    assert "batch failed" in caplog.text
