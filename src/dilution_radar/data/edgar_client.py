"""SEC EDGAR full-text search client."""

import logging
from concurrent.futures import Executor
from typing import Any

import requests

from dilution_radar.data.retry import ApiCallCounter, RetryExhaustedError, retry_with_backoff
from dilution_radar.utils.validators import SEARCH_PAGE_SIZE, SearchParams

logger = logging.getLogger(__name__)

EDGAR_SEARCH_URL = "https://efts.sec.gov/LATEST/search-index"
DEFAULT_USER_AGENT = "DilutionRadar/1.0 (radar@example.com)"

# Canned full-text queries per scan
ATM_QUERY = '"at-the-market" OR "ATM offering" OR "equity distribution agreement"'
SHELF_S3_QUERY = '"shelf registration" OR "securities registered"'
SHELF_S1_QUERY = '"securities registered" OR "offering price"'
SHELF_S8_QUERY = '"employee stock" OR "equity incentive" OR "compensation plan"'
GOING_CONCERN_QUERY = '"going concern" OR "substantial doubt"'


class EdgarSearchError(Exception):
    """Raised when the filing search is unreachable or returns garbage."""


class EdgarSearchClient:
    """
    Paged EDGAR full-text search.

    SEC requires a descriptive User-Agent on every request. Each page is one
    blocking request run in an executor with retry and backoff; every attempt
    is counted on the per-run ApiCallCounter.
    """

    def __init__(
        self,
        user_agent: str = DEFAULT_USER_AGENT,
        counter: ApiCallCounter | None = None,
        timeout: float = 30.0,
        session: requests.Session | None = None,
        executor: Executor | None = None,
    ):
        self.counter = counter if counter is not None else ApiCallCounter()
        self.timeout = timeout
        self.executor = executor
        self.session = session or requests.Session()
        self.session.headers.update(
            {"User-Agent": user_agent, "Accept-Encoding": "gzip, deflate"}
        )

    def _get_page(self, params: SearchParams, offset: int) -> dict[str, Any]:
        response = self.session.get(
            EDGAR_SEARCH_URL,
            params=params.to_query_params(offset),
            timeout=self.timeout,
        )
        response.raise_for_status()
        return response.json()

    async def search(self, params: SearchParams) -> list[dict[str, Any]]:
        """
        Collect up to params.size hits ({"_source": {...}} records).

        Raises:
            EdgarSearchError: search unreachable after retries or malformed reply
        """
        hits: list[dict[str, Any]] = []
        offset = 0
        while len(hits) < params.size:
            try:
                retry_result = await retry_with_backoff(
                    f"edgar_search({params.forms}, from={offset})",
                    lambda: self._get_page(params, offset),
                    source="sec_edgar",
                    executor=self.executor,
                    counter=self.counter,
                )
            except (RetryExhaustedError, requests.RequestException, ValueError) as e:
                raise EdgarSearchError(f"EDGAR search failed for {params.forms}: {e}") from e

            payload = retry_result.result
            page = (payload.get("hits") or {}).get("hits") if isinstance(payload, dict) else None
            if not isinstance(page, list):
                raise EdgarSearchError(f"Unexpected EDGAR response for {params.forms}")
            hits.extend(page)
            if len(page) < SEARCH_PAGE_SIZE:
                break
            offset += len(page)

        logger.info(
            f"EDGAR {params.forms} {params.start_date}..{params.end_date}: {len(hits[: params.size])} hits"
        )
        return hits[: params.size]
