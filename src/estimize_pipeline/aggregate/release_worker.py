"""Per-company release fetching, resolution and grouping.

A `ReleaseWorker` turns one company into a `WorkerOutput`: release lines
grouped by the symbol each release resolved to, plus the registry entries for
the same releases. Nothing here touches shared output; the coordinator merges
worker outputs after all of them have finished.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from pydantic import ValidationError

from estimize_pipeline.ingest.estimize_client import EstimizeClient
from estimize_pipeline.ingest.rate_gate import RateGate
from estimize_pipeline.logging_config import TRACE
from estimize_pipeline.models import RELEASE_LIST, Company, RegistryEntry, Release
from estimize_pipeline.resolve.identity import Found, IdentityResolver, normalize_defunct_ticker

log = logging.getLogger(__name__)


@dataclass
class WorkerOutput:
    """Result of processing one company.

    Attributes:
        ticker: Estimize ticker the releases were requested for.
        groups: Resolved symbol -> serialized release lines, in response order.
        registry: One entry per written release.
    """
    ticker: str
    groups: dict[str, list[str]] = field(default_factory=dict)
    registry: list[RegistryEntry] = field(default_factory=list)

    @property
    def line_count(self) -> int:
        return sum(len(lines) for lines in self.groups.values())


class ReleaseWorker:
    """Fetches and groups the releases of a single company.

    Args:
        client: Estimize transport.
        gate: Shared rate gate passed before every request.
        resolver: Point-in-time identity resolver.
        process_tickers: Optional upper-cased allow-list of tickers.
    """

    def __init__(
        self,
        client: EstimizeClient,
        gate: RateGate,
        resolver: IdentityResolver,
        process_tickers: frozenset[str] | None = None,
    ) -> None:
        self.client = client
        self.gate = gate
        self.resolver = resolver
        self.process_tickers = process_tickers

    def prepare(self, company: Company) -> str | None:
        """Return the API ticker for `company`, or None if it should be skipped."""
        ticker = normalize_defunct_ticker(company.ticker)
        if ticker is None:
            log.error("Defunct ticker %s is unable to be parsed. Continuing...", company.ticker)
            return None

        if self.process_tickers is not None and ticker.upper() not in self.process_tickers:
            log.log(TRACE, "Skipping %s since it is not in the list of predefined tickers", ticker)
            return None

        return ticker

    def process(self, company: Company) -> WorkerOutput:
        """Run the full fetch → resolve → group sequence for one company."""
        ticker = self.prepare(company)
        if ticker is None:
            return WorkerOutput(ticker=company.ticker)
        return self.fetch(ticker)

    def fetch(self, ticker: str) -> WorkerOutput:
        """Request, parse and group the releases of an already-prepared ticker."""
        out = WorkerOutput(ticker=ticker)

        self.gate.wait_to_proceed()
        log.debug("Processing %s", ticker)
        result = self.client.issue(f"/companies/{ticker}/releases")

        if not result.success:
            log.error("Failed to get data for %s", ticker)
            return out
        if not result.body:
            return out

        try:
            releases = RELEASE_LIST.validate_json(result.body)
        except ValidationError as e:
            log.error("Unable to parse releases for %s: %s", ticker, e)
            return out

        return self.group(ticker, releases)

    def group(self, ticker: str, releases: list[Release]) -> WorkerOutput:
        """Resolve each release and bucket it under its resolved symbol.

        Releases that cannot be resolved are dropped; the rest keep their
        relative order inside each group.
        """
        out = WorkerOutput(ticker=ticker)
        for release in releases:
            resolution = self.resolver.resolve(ticker, release.release_date)
            if not isinstance(resolution, Found):
                continue

            out.groups.setdefault(resolution.symbol, []).append(release.to_csv_line())
            out.registry.append(
                RegistryEntry(
                    release_id=release.id,
                    symbol=resolution.symbol,
                    fiscal_year=release.fiscal_year,
                    fiscal_quarter=release.fiscal_quarter,
                )
            )

        dropped = len(releases) - len(out.registry)
        if dropped:
            log.debug("%s: dropped %d of %d releases without a mapping", ticker, dropped, len(releases))
        return out
