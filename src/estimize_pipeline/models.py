"""Pydantic models for Estimize payloads and pipeline outputs.

These models define the expected schema of the company list and release
payloads returned by the Estimize API, the flat-file line format releases are
written in, and the registry entries handed back to callers.
"""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator

DATE_FORMAT = "%Y%m%d %H:%M:%S"

# Column order of a release line after the timestamp.
RELEASE_FIELDS: tuple[str, ...] = (
    "id",
    "fiscal_year",
    "fiscal_quarter",
    "eps",
    "revenue",
    "consensus_eps_estimate",
    "consensus_revenue_estimate",
    "wallstreet_eps_estimate",
    "wallstreet_revenue_estimate",
    "consensus_weighted_eps_estimate",
    "consensus_weighted_revenue_estimate",
)


class Company(BaseModel):
    """One company as listed by the Estimize `/companies` endpoint."""
    model_config = ConfigDict(extra="ignore", frozen=True)
    name: str | None = None
    ticker: str


class Release(BaseModel):
    """Schema for a single Estimize release.

    Attributes:
        id: Estimize release identifier.
        release_date: When the release occurred, normalized to UTC.
        fiscal_year: Fiscal year of the release.
        fiscal_quarter: Fiscal quarter (1-4) of the release.
        eps: Reported earnings per share.
        revenue: Reported revenue.
        consensus_eps_estimate: Estimize consensus EPS.
        consensus_revenue_estimate: Estimize consensus revenue.
        wallstreet_eps_estimate: Wall Street consensus EPS.
        wallstreet_revenue_estimate: Wall Street consensus revenue.
        consensus_weighted_eps_estimate: Estimize weighted consensus EPS.
        consensus_weighted_revenue_estimate: Estimize weighted consensus revenue.
    """
    model_config = ConfigDict(extra="ignore", frozen=True)
    id: str
    release_date: datetime
    fiscal_year: int | None = None
    fiscal_quarter: int | None = Field(default=None, ge=1, le=4)
    eps: Decimal | None = None
    revenue: Decimal | None = None
    consensus_eps_estimate: Decimal | None = None
    consensus_revenue_estimate: Decimal | None = None
    wallstreet_eps_estimate: Decimal | None = None
    wallstreet_revenue_estimate: Decimal | None = None
    consensus_weighted_eps_estimate: Decimal | None = None
    consensus_weighted_revenue_estimate: Decimal | None = None

    @field_validator("id", mode="before")
    @classmethod
    def _id_as_str(cls, v: object) -> object:
        # Estimize has served ids both as strings and as integers
        return str(v) if isinstance(v, int) else v

    @field_validator("release_date")
    @classmethod
    def _to_utc(cls, v: datetime) -> datetime:
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v.astimezone(timezone.utc)

    def to_csv_line(self) -> str:
        """Serialize the release into one comma-delimited line.

        The timestamp comes first in UTC with second precision, followed by
        `RELEASE_FIELDS` in order. Null fields are written as empty strings.
        """
        cells = [self.release_date.strftime(DATE_FORMAT)]
        for name in RELEASE_FIELDS:
            cells.append(_format_cell(getattr(self, name)))
        return ",".join(cells)

    @classmethod
    def from_csv_line(cls, line: str) -> "Release":
        """Parse a line written by `to_csv_line` back into a `Release`."""
        cells = line.rstrip("\r\n").split(",")
        if len(cells) != len(RELEASE_FIELDS) + 1:
            raise ValueError(
                f"Expected {len(RELEASE_FIELDS) + 1} columns, got {len(cells)}: {line!r}"
            )
        data: dict[str, object] = {
            "release_date": datetime.strptime(cells[0], DATE_FORMAT).replace(tzinfo=timezone.utc)
        }
        for name, cell in zip(RELEASE_FIELDS, cells[1:]):
            data[name] = cell if cell != "" else None
        return cls.model_validate(data)


class RegistryEntry(BaseModel):
    """Cross-reference of a release to the symbol it was written under.

    Frozen (and therefore hashable) so entries collapse inside a set.
    """
    model_config = ConfigDict(frozen=True)
    release_id: str
    symbol: str
    fiscal_year: int | None = None
    fiscal_quarter: int | None = None


def _format_cell(value: object) -> str:
    if value is None:
        return ""
    if isinstance(value, Decimal):
        # fixed-point, never scientific notation
        return format(value, "f")
    return str(value)


COMPANY_LIST = TypeAdapter(list[Company])
RELEASE_LIST = TypeAdapter(list[Release])
