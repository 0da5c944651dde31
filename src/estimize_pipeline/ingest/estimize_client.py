"""HTTP access to the Estimize API.

`EstimizeClient.issue` performs one GET and reports the outcome as a
`FetchResult` instead of raising, so a failure for one company stays local to
that company. The client does not throttle itself; callers pass through the
shared `RateGate` before each `issue`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import requests  # type: ignore[import-untyped]

from estimize_pipeline.ingest.rate_gate import RateGate
from estimize_pipeline.models import COMPANY_LIST, Company

log = logging.getLogger(__name__)

API_KEY_HEADER = "X-Estimize-Key"


@dataclass(frozen=True)
class FetchResult:
    """Outcome of one request.

    Attributes:
        success: False when the request faulted (network error, non-2xx).
        body: Response text; empty when the provider returned nothing.
    """
    success: bool
    body: str = ""


class EstimizeClient:
    """Thin wrapper over a `requests.Session` bound to the Estimize API."""

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.estimize.com",
        timeout: float = 30.0,
        session: requests.Session | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update(
            {
                API_KEY_HEADER: api_key,
                "Accept": "application/json",
            }
        )

    def issue(self, path: str) -> FetchResult:
        """GET `path` relative to the base URL.

        Args:
            path: Endpoint path such as ``/companies/AAPL/releases``.

        Returns:
            FetchResult with the response body, or ``success=False`` on error.
        """
        url = f"{self.base_url}{path}"
        try:
            resp = self.session.get(url, timeout=self.timeout)
        except requests.RequestException as e:
            log.error("Request to %s failed: %s", url, e)
            return FetchResult(success=False)

        if resp.status_code != 200:
            log.error("Request to %s returned HTTP %d", url, resp.status_code)
            return FetchResult(success=False)

        if not resp.text:
            log.warning("Empty response body from %s", url)
        return FetchResult(success=True, body=resp.text)


def get_companies(client: EstimizeClient, gate: RateGate | None = None) -> list[Company]:
    """Fetch the full Estimize company list in provider order.

    Raises:
        RuntimeError: if the company list could not be fetched.
    """
    if gate is not None:
        gate.wait_to_proceed()
    result = client.issue("/companies")
    if not result.success or not result.body:
        raise RuntimeError("Unable to fetch the Estimize company list")

    companies = COMPANY_LIST.validate_json(result.body)
    log.info("Fetched %d companies", len(companies))
    return companies
