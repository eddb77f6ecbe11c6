"""
Registry gateway client for person search and demographics lookup.

The gateway fronts the national registry FHIR API and owns authentication
to it. This client only speaks the gateway's JSON API:
- POST /api/v1/search with search parameters
- POST /api/v1/demographics with {"nhsNumber": ...}
"""

import logging
from typing import Any

import httpx
from pydantic import ValidationError
from tenacity import (
    AsyncRetrying,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from src.exceptions import RegistryError
from src.matching.models import (
    DemographicLookupResult,
    LookupStatus,
    RegistrySearchResult,
    SearchQuery,
)
from src.settings import settings

logger = logging.getLogger(__name__)

SEARCH_PATH = "/api/v1/search"
DEMOGRAPHICS_PATH = "/api/v1/demographics"
HEALTH_PATH = "/health"

# Upper bound on a single back-off wait in seconds
MAX_RETRY_WAIT = 10.0


def _is_retryable(error: BaseException) -> bool:
    """Transport failures and 5xx responses are worth another attempt."""
    if isinstance(error, httpx.TransportError):
        return True
    if isinstance(error, httpx.HTTPStatusError):
        return error.response.status_code >= 500
    return False


class RegistryService:
    """HTTP client for the registry gateway."""

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        max_attempts: int | None = None,
        retry_wait: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = (base_url or settings.registry_url).rstrip("/")
        self.timeout = timeout or settings.registry_timeout
        self.max_attempts = max_attempts or settings.registry_max_attempts
        self.retry_wait = settings.registry_retry_wait if retry_wait is None else retry_wait
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _post(self, path: str, payload: dict[str, Any]) -> Any:
        """
        POST JSON to the gateway, retrying transient failures.

        Raises:
            httpx.HTTPStatusError: If the gateway keeps returning an error
            httpx.TransportError: If the gateway stays unreachable
        """
        client = await self._get_client()

        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(multiplier=self.retry_wait, max=MAX_RETRY_WAIT),
            retry=retry_if_exception(_is_retryable),
            reraise=True,
        ):
            with attempt:
                if attempt.retry_state.attempt_number > 1:
                    logger.info(
                        "Retrying %s (attempt %d of %d)",
                        path,
                        attempt.retry_state.attempt_number,
                        self.max_attempts,
                    )
                response = await client.post(path, json=payload)
                response.raise_for_status()
                return response.json()

    async def search(self, query: SearchQuery) -> RegistrySearchResult:
        """
        Run one registry search.

        Args:
            query: Search parameters for a single cascade entry

        Returns:
            RegistrySearchResult from the gateway

        Raises:
            RegistryError: If the gateway response is not a search result
            httpx.HTTPError: If the request fails after retries
        """
        data = await self._post(SEARCH_PATH, query.to_params())
        try:
            return RegistrySearchResult.model_validate(data)
        except ValidationError as e:
            raise RegistryError(f"Unexpected search response from registry: {e}") from e

    async def lookup_by_identifier(self, nhs_number: str) -> DemographicLookupResult:
        """
        Fetch registry demographics for an NHS number.

        A 404 from the gateway is reported as PatientNotFound rather than
        raised.

        Raises:
            RegistryError: If the gateway response is not a lookup result
            httpx.HTTPError: If the request fails after retries
        """
        try:
            data = await self._post(DEMOGRAPHICS_PATH, {"nhsNumber": nhs_number})
        except httpx.HTTPStatusError as e:
            if e.response.status_code == 404:
                logger.info("Registry has no record for the requested NHS number")
                return DemographicLookupResult(
                    status=LookupStatus.PATIENT_NOT_FOUND,
                    error_message="Patient not found",
                )
            raise

        try:
            return DemographicLookupResult.model_validate(data)
        except ValidationError as e:
            raise RegistryError(f"Unexpected demographics response from registry: {e}") from e

    async def health_check(self) -> bool:
        """Check whether the gateway is reachable and healthy."""
        client = await self._get_client()
        try:
            response = await client.get(HEALTH_PATH)
        except httpx.HTTPError as e:
            logger.warning("Registry health check failed: %s", e)
            return False
        return response.is_success
