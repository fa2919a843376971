"""
World Bank Data360 client
Single-hop GET against /data360/data with caching and typed error results
"""

import asyncio
import logging
from typing import Any, Mapping

import requests
from pydantic import ValidationError

from .cache import ResponseCache, canonical_key
from .results import DataError, DataErrorType, Err, ObservationRecord, Ok, Result

logger = logging.getLogger(__name__)

# API Configuration
DATA360_BASE_URL = "https://data360api.worldbank.org"
DATA_PATH = "/data360/data"
DEFAULT_TIMEOUT_SECONDS = 30.0


class Data360Client:
    """Fetches observation records, consulting the response cache first"""

    def __init__(
        self,
        cache: ResponseCache,
        base_url: str = DATA360_BASE_URL,
        session: requests.Session | None = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ):
        self.cache = cache
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._session = session

    @property
    def data_endpoint(self) -> str:
        return f"{self.base_url}{DATA_PATH}"

    def _get(self, params: Mapping[str, str], timeout: float) -> requests.Response:
        # Runs in worker threads; without an injected session each call is a plain requests.get
        http = self._session if self._session is not None else requests
        return http.get(
            self.data_endpoint,
            params=dict(params),
            headers={"Accept": "application/json"},
            timeout=timeout,
        )

    async def fetch(
        self, params: Mapping[str, str], timeout: float | None = None
    ) -> Result[list[ObservationRecord]]:
        """Return every record for `params`, or the reason there are none"""
        timeout = self.timeout if timeout is None else timeout
        key = canonical_key(params)

        cached = self.cache.get(params)
        if cached is not None:
            logger.debug("Cache hit for: %s", key)
            return Ok(cached.data)

        # Blocking I/O stays off the event loop; the cache is only touched here
        try:
            response = await asyncio.to_thread(self._get, params, timeout)
        except requests.Timeout:
            logger.warning("Data360 request timed out after %.0fs: %s", timeout, key)
            return Err(DataError(
                type=DataErrorType.TIMEOUT,
                message=f"Request timed out after {int(timeout * 1000)}ms",
                suggested_action="API may be under heavy load. Try again in a few moments.",
            ))
        except requests.RequestException as e:
            logger.warning("Data360 request failed: %s (%s)", key, e)
            return Err(DataError(
                type=DataErrorType.NETWORK_ERROR,
                message="Unable to reach World Bank Data360 API",
                details=str(e),
                suggested_action="Check network connection or try again later",
            ))

        result = self._classify(response, params)
        if isinstance(result, Ok):
            self.cache.put(params, result.value)
            logger.debug("Cache miss - fetched and cached: %s", key)
        return result

    def _classify(
        self, response: requests.Response, params: Mapping[str, str]
    ) -> Result[list[ObservationRecord]]:
        if response.status_code == 429:
            return Err(DataError(
                type=DataErrorType.RATE_LIMITED,
                message="API rate limit exceeded",
                suggested_action="Wait 2-3 minutes before retrying",
            ))

        if not response.ok:
            logger.warning("Data360 returned HTTP %s for %s", response.status_code, canonical_key(params))
            return Err(DataError(
                type=DataErrorType.API_ERROR,
                message=f"API request failed with status {response.status_code}",
                details=response.reason,
            ))

        try:
            data: Any = response.json()
        except ValueError as e:
            return Err(DataError(
                type=DataErrorType.MALFORMED_RESPONSE,
                message="Invalid JSON response from API",
                details=str(e),
            ))

        values = data.get("value") if isinstance(data, dict) else None
        if not isinstance(values, list):
            return Err(DataError(
                type=DataErrorType.MALFORMED_RESPONSE,
                message="Unexpected response structure from API",
                details=data,
            ))

        if not values:
            return Err(DataError(
                type=DataErrorType.NO_DATA,
                message="No data available for this query",
                details=dict(params),
                suggested_action="Try broader filters (e.g., global region, all sectors)",
            ))

        try:
            records = [ObservationRecord.model_validate(row) for row in values]
        except ValidationError as e:
            return Err(DataError(
                type=DataErrorType.MALFORMED_RESPONSE,
                message="Unexpected record structure from API",
                details=str(e),
            ))

        return Ok(records)
