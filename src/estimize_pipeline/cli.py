"""Command-line interface for the release download.

Provides subcommands: `releases` and `companies`. Each command is implemented
as a `cmd_*` function that accepts an argparse namespace and returns a process
exit code.
"""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv

from estimize_pipeline.aggregate.downloader import ReleaseDataDownloader, dedupe_companies
from estimize_pipeline.aggregate.release_worker import ReleaseWorker
from estimize_pipeline.config import Settings, get_settings, parse_ticker_list
from estimize_pipeline.db import REGISTRY_COLLECTION, get_client, get_db, upsert_registry
from estimize_pipeline.ingest.estimize_client import EstimizeClient, get_companies
from estimize_pipeline.ingest.rate_gate import RateGate
from estimize_pipeline.logging_config import configure_logging, level_for_verbosity
from estimize_pipeline.mapping.map_file import MapFileResolver
from estimize_pipeline.resolve.identity import IdentityResolver

log = logging.getLogger(__name__)


# --------------------------------------------------
# Helpers
# --------------------------------------------------
def _client_and_gate(s: Settings) -> tuple[EstimizeClient, RateGate]:
    client = EstimizeClient(s.api_key, base_url=s.base_url, timeout=s.request_timeout)
    gate = RateGate(s.rate_limit_occurrences, s.rate_limit_seconds)
    return client, gate


# --------------------------------------------------
# RELEASES
# --------------------------------------------------
def cmd_releases(args: argparse.Namespace) -> int:
    """Download releases for all companies and write them per resolved symbol.

    Args:
        args: argparse namespace with optional `tickers` and `skip_registry`.
    """
    s = get_settings()
    client, gate = _client_and_gate(s)

    process_tickers = s.process_tickers
    if args.tickers:
        process_tickers = parse_ticker_list(args.tickers)

    try:
        map_files = MapFileResolver.from_directory(s.map_file_dir)
    except FileNotFoundError as e:
        log.error("Unable to load map files: %s", e)
        return 1

    resolver = IdentityResolver(map_files)
    worker = ReleaseWorker(client, gate, resolver, process_tickers=process_tickers)
    downloader = ReleaseDataDownloader(s.data_dir, worker)

    try:
        companies = get_companies(client, gate)
    except (RuntimeError, ValueError) as e:
        log.error("Unable to load companies: %s", e)
        return 1

    ok, registry = downloader.run(companies)
    if not ok:
        return 1

    if s.mongo_uri and not args.skip_registry:
        mongo = get_client(s.mongo_uri)
        try:
            upsert_registry(get_db(mongo, s.mongo_db)[REGISTRY_COLLECTION], registry)
        finally:
            mongo.close()

    return 0


# --------------------------------------------------
# COMPANIES
# --------------------------------------------------
def cmd_companies(_: argparse.Namespace) -> int:
    """Print the de-duplicated company list as `ticker,name` lines."""
    s = get_settings()
    client, gate = _client_and_gate(s)
    try:
        companies = get_companies(client, gate)
    except (RuntimeError, ValueError) as e:
        log.error("Unable to load companies: %s", e)
        return 1

    for c in dedupe_companies(companies):
        print(f"{c.ticker},{c.name or ''}")
    return 0


# --------------------------------------------------
# CLI
# --------------------------------------------------
def build_parser() -> argparse.ArgumentParser:
    """Build and return the top-level argument parser for the CLI.

    Returns:
        Configured argparse.ArgumentParser instance.
    """
    p = argparse.ArgumentParser(prog="estimize_pipeline")
    p.add_argument("--log-file", type=Path, default=Path("logs/pipeline.log"))
    p.add_argument("-v", "--verbose", action="count", default=0)
    sub = p.add_subparsers(dest="cmd", required=True)

    p_rel = sub.add_parser("releases")
    p_rel.add_argument("--tickers", default=None, help="Comma-separated allow-list")
    p_rel.add_argument("--skip-registry", action="store_true")

    sub.add_parser("companies")

    return p


def main(argv: list[str] | None = None) -> int:
    """CLI entry point: parse args, configure logging and dispatch commands."""
    load_dotenv()
    args = build_parser().parse_args(argv)

    configure_logging(args.log_file, level=level_for_verbosity(args.verbose))

    if args.cmd == "releases":
        return cmd_releases(args)
    if args.cmd == "companies":
        return cmd_companies(args)
    raise SystemExit(2)


if __name__ == "__main__":
    sys.exit(main())
