"""Configuration helpers and Settings container.

This module provides a small `Settings` dataclass and `get_settings` which
reads required environment variables (including a check that
`ESTIMIZE_API_KEY` is present).
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
import os

from dotenv import load_dotenv

# Explicitly load .env from project root
PROJECT_ROOT = Path(__file__).resolve().parents[2]
load_dotenv(PROJECT_ROOT / ".env")

DEFAULT_BASE_URL = "https://api.estimize.com"


@dataclass(frozen=True)
class Settings:
    """Container for pipeline configuration read from the environment.

    Attributes:
        api_key: Estimize API key sent with every request.
        base_url: Estimize API base URL.
        data_dir: Root output directory; releases land in `<data_dir>/release`.
        map_file_dir: Directory holding `<permtick>.csv` map files.
        process_tickers: Optional allow-list; ``None`` means process all.
        rate_limit_occurrences: Requests allowed per rate window.
        rate_limit_seconds: Length of the rate window in seconds.
        request_timeout: HTTP timeout in seconds.
        mongo_uri: Optional MongoDB URI for persisting the release registry.
        mongo_db: MongoDB database name.
    """
    api_key: str
    base_url: str
    data_dir: Path
    map_file_dir: Path
    process_tickers: frozenset[str] | None
    rate_limit_occurrences: int
    rate_limit_seconds: float
    request_timeout: float
    mongo_uri: str | None
    mongo_db: str


def parse_ticker_list(raw: str | None) -> frozenset[str] | None:
    """Parse a comma-separated ticker list into an upper-cased set.

    Returns ``None`` for a missing or blank value so callers can tell
    "no allow-list" apart from an empty one.
    """
    if raw is None or not raw.strip():
        return None
    return frozenset(t.strip().upper() for t in raw.split(",") if t.strip())


def get_settings() -> Settings:
    """Read environment variables and return a frozen `Settings` object.

    Raises:
        RuntimeError: if `ESTIMIZE_API_KEY` is not set in the environment.
    """
    api_key = os.getenv("ESTIMIZE_API_KEY", "").strip()
    if not api_key:
        raise RuntimeError(
            "ESTIMIZE_API_KEY is required. Set it in .env "
            "(example: 'ESTIMIZE_API_KEY=your-key')."
        )

    return Settings(
        api_key=api_key,
        base_url=os.getenv("ESTIMIZE_BASE_URL", DEFAULT_BASE_URL).rstrip("/"),
        data_dir=Path(os.getenv("ESTIMIZE_DATA_DIR", "data/alternative/estimize")),
        map_file_dir=Path(os.getenv("MAP_FILE_DIR", "data/equity/usa/map_files")),
        process_tickers=parse_ticker_list(os.getenv("PROCESS_TICKERS")),
        rate_limit_occurrences=int(os.getenv("RATE_LIMIT_OCCURRENCES", "10")),
        rate_limit_seconds=float(os.getenv("RATE_LIMIT_SECONDS", "1.1")),
        request_timeout=float(os.getenv("REQUEST_TIMEOUT", "30")),
        mongo_uri=os.getenv("MONGO_URI") or None,
        mongo_db=os.getenv("MONGO_DB", "estimize"),
    )
