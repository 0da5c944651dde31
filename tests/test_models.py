from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

import pytest
from pydantic import ValidationError

from estimize_pipeline.models import RELEASE_LIST, RegistryEntry, Release


def test_release_parses_payload_and_normalizes_to_utc() -> None:
    payload = (
        '[{"id": 42, "fiscal_year": 2019, "fiscal_quarter": 2,'
        ' "release_date": "2019-06-01T16:30:00-04:00", "eps": 1.25,'
        ' "revenue": 1000.5, "consensus_eps_estimate": null, "extra": "ignored"}]'
    )
    (rel,) = RELEASE_LIST.validate_json(payload)
    assert rel.id == "42"
    assert rel.release_date == datetime(2019, 6, 1, 20, 30, tzinfo=timezone.utc)
    assert rel.eps == Decimal("1.25")
    assert rel.consensus_eps_estimate is None


def test_release_csv_line_layout() -> None:
    rel = Release(
        id="r1",
        release_date=datetime(2019, 6, 1, 20, 30, tzinfo=timezone.utc),
        fiscal_year=2019,
        fiscal_quarter=2,
        eps=Decimal("1.25"),
        revenue=Decimal("1000.5"),
        wallstreet_eps_estimate=Decimal("1.2"),
    )
    assert rel.to_csv_line() == "20190601 20:30:00,r1,2019,2,1.25,1000.5,,,1.2,,,"


def test_release_csv_round_trip() -> None:
    rel = Release(
        id="r2",
        release_date=datetime(2020, 2, 1, 13, 0, 5, tzinfo=timezone.utc),
        fiscal_year=2020,
        fiscal_quarter=None,
        eps=Decimal("-0.03"),
        revenue=Decimal("1E+6"),
        consensus_eps_estimate=Decimal("0.01"),
        consensus_revenue_estimate=Decimal("990000"),
        wallstreet_eps_estimate=None,
        wallstreet_revenue_estimate=Decimal("1000000.25"),
        consensus_weighted_eps_estimate=Decimal("0.02"),
        consensus_weighted_revenue_estimate=None,
    )
    line = rel.to_csv_line()
    assert "E" not in line
    assert Release.from_csv_line(line) == rel


def test_release_from_csv_line_rejects_wrong_width() -> None:
    with pytest.raises(ValueError):
        Release.from_csv_line("20190601 20:30:00,r1,2019")


def test_release_rejects_bad_quarter() -> None:
    with pytest.raises(ValidationError):
        Release(id="x", release_date=datetime(2019, 1, 1), fiscal_quarter=5)


def test_registry_entries_collapse_in_a_set() -> None:
    a = RegistryEntry(release_id="1", symbol="AAPL", fiscal_year=2019, fiscal_quarter=1)
    b = RegistryEntry(release_id="1", symbol="AAPL", fiscal_year=2019, fiscal_quarter=1)
    c = RegistryEntry(release_id="1", symbol="AAPL", fiscal_year=2019, fiscal_quarter=2)
    assert len({a, b, c}) == 2
