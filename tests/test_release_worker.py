from __future__ import annotations

import json

from estimize_pipeline.aggregate.release_worker import ReleaseWorker
from estimize_pipeline.ingest.estimize_client import FetchResult
from estimize_pipeline.models import RELEASE_LIST, Company, RegistryEntry, Release
from estimize_pipeline.resolve.identity import IdentityResolver
from conftest import CountingGate, FakeClient, release


def _worker(resolver: IdentityResolver, client: FakeClient, **kwargs) -> tuple[ReleaseWorker, CountingGate]:
    gate = CountingGate()
    return ReleaseWorker(client, gate, resolver, **kwargs), gate  # type: ignore[arg-type]


def test_groups_by_symbol_in_effect_on_release_date(resolver: IdentityResolver) -> None:
    client = FakeClient(
        {
            "/companies/B/releases": [
                release("b1", "2019-12-01T12:00:00Z", 2019, 4),
                release("b2", "2020-02-01T12:00:00Z", 2020, 1),
            ]
        }
    )
    worker, gate = _worker(resolver, client)
    out = worker.process(Company(ticker="B-defunct-tag"))

    assert gate.count == 1
    assert client.calls == ["/companies/B/releases"]
    assert list(out.groups) == ["B", "BNEW"]
    assert out.groups["B"] == ["20191201 12:00:00,b1,2019,4,,,,,,,,"]
    assert out.groups["BNEW"] == ["20200201 12:00:00,b2,2020,1,,,,,,,,"]
    assert out.registry == [
        RegistryEntry(release_id="b1", symbol="B", fiscal_year=2019, fiscal_quarter=4),
        RegistryEntry(release_id="b2", symbol="BNEW", fiscal_year=2020, fiscal_quarter=1),
    ]


def test_lines_keep_response_order_and_round_trip(resolver: IdentityResolver) -> None:
    payload = [
        release("a3", "2019-09-01T00:00:00Z", 2019, 3, eps=0.5, revenue=12000000),
        release("a1", "2019-03-01T00:00:00Z", 2019, 1, eps=-0.1),
        release("a2", "2019-06-01T21:15:30Z", 2019, 2, consensus_weighted_revenue_estimate=99.75),
    ]
    worker, _ = _worker(resolver, FakeClient({"/companies/A/releases": payload}))
    out = worker.process(Company(ticker="A"))

    lines = out.groups["A"]
    assert [ln.split(",")[1] for ln in lines] == ["a3", "a1", "a2"]
    originals = RELEASE_LIST.validate_json(json.dumps(payload))
    assert [Release.from_csv_line(ln) for ln in lines] == originals


def test_unresolved_releases_are_dropped(resolver: IdentityResolver) -> None:
    payload = [
        release("a1", "2019-06-01T00:00:00Z"),
        release("late", "2061-01-01T00:00:00Z"),
    ]
    worker, _ = _worker(resolver, FakeClient({"/companies/A/releases": payload}))
    out = worker.process(Company(ticker="A"))
    assert out.line_count == 1
    assert [e.release_id for e in out.registry] == ["a1"]


def test_unknown_ticker_yields_nothing(resolver: IdentityResolver) -> None:
    client = FakeClient({"/companies/ZZZ/releases": [release("z1", "2019-06-01T00:00:00Z")]})
    worker, _ = _worker(resolver, client)
    out = worker.process(Company(ticker="ZZZ"))
    assert out.groups == {}
    assert out.registry == []


def test_failed_or_empty_fetch_contributes_nothing(resolver: IdentityResolver) -> None:
    client = FakeClient(
        {
            "/companies/A/releases": FetchResult(success=False),
            "/companies/B/releases": FetchResult(success=True, body=""),
            "/companies/C/releases": FetchResult(success=True, body="{not json"),
        }
    )
    worker, gate = _worker(resolver, client)
    for ticker in ("A", "B", "C"):
        out = worker.process(Company(ticker=ticker))
        assert out.line_count == 0
    assert gate.count == 3


def test_prepare_skips_unparseable_and_filtered(resolver: IdentityResolver) -> None:
    client = FakeClient()
    worker, gate = _worker(resolver, client, process_tickers=frozenset({"A"}))

    assert worker.prepare(Company(ticker="defunct")) is None
    assert worker.prepare(Company(ticker="B")) is None
    assert worker.prepare(Company(ticker="a")) == "a"

    out = worker.process(Company(ticker="B"))
    assert out.line_count == 0
    assert client.calls == []
    assert gate.count == 0
