"""
FlightLabs Transport - Async HTTP client for the FlightLabs API.

Sends GET requests with the access key as a query parameter, retries
rate limits, server errors and timeouts with exponential backoff, and
turns every failure (including `success: false` error bodies) into an
UpstreamError.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Mapping, Optional

import httpx

from src.flight_analytics.config import ClientConfig
from src.flight_analytics.exceptions import UpstreamError
from src.flight_analytics.ports.transport import FlightDataTransport

logger = logging.getLogger(__name__)

RETRYABLE_STATUS_CODES = frozenset({429, 500, 502, 503, 504})


def _error_from_payload(status_code: int, payload: Dict[str, Any]) -> UpstreamError:
    """Build an UpstreamError from a FlightLabs `{success: false, error: {...}}` body."""
    error = payload.get("error") or {}
    if isinstance(error, dict):
        code = error.get("code")
        message = error.get("info") or error.get("message") or error.get("type") or ""
    else:
        code = None
        message = str(error)
    return UpstreamError(
        status_code=code if isinstance(code, int) else status_code,
        message=message or "FlightLabs API reported an error",
        payload=payload,
    )


class FlightLabsTransport(FlightDataTransport):
    """
    FlightDataTransport backed by httpx.AsyncClient.

    The client is created lazily on first use and must be released with
    close() (or by using the transport as an async context manager).

    Attributes:
        _config: Base URL, credentials, timeout and retry settings.
        _client: Async HTTP client (lazy).
    """

    def __init__(self, config: Optional[ClientConfig] = None) -> None:
        """
        Initialize the transport.

        Args:
            config: Client configuration. If None, reads it from the environment.
        """
        self._config = config or ClientConfig.from_env()
        if not self._config.access_key:
            logger.warning("FLIGHTLABS_ACCESS_KEY not set - requests will be rejected")

        # Lazy-initialized client
        self._client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create async HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self._config.base_url,
                headers={"Accept": "application/json"},
                timeout=httpx.Timeout(self._config.timeout_seconds, connect=5.0),
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "FlightLabsTransport":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def fetch(self, endpoint: str, params: Mapping[str, Any]) -> Dict[str, Any]:
        """
        GET an endpoint and return its decoded JSON body.

        Args:
            endpoint: Endpoint path (e.g., '/flight_delays').
            params: Query parameters; None values are dropped.

        Returns:
            Decoded JSON object.

        Raises:
            UpstreamError: On HTTP errors, network errors, exhausted
                retries, invalid JSON or an API error body.
        """
        client = await self._get_client()
        query = {k: v for k, v in params.items() if v is not None}
        query["access_key"] = self._config.access_key

        retries = 0
        backoff = self._config.backoff_seconds

        while True:
            try:
                response = await client.get(endpoint, params=query)
            except httpx.TimeoutException as e:
                retries += 1
                if retries > self._config.max_retries:
                    logger.error("FlightLabs timeout on %s after %d retries", endpoint, retries - 1)
                    raise UpstreamError(-1, f"Request to {endpoint} timed out") from e
                await asyncio.sleep(backoff)
                backoff *= self._config.backoff_multiplier
                continue
            except httpx.RequestError as e:
                logger.error("FlightLabs network error on %s: %s", endpoint, e)
                raise UpstreamError(-1, f"Network error: {e}") from e

            if response.status_code in RETRYABLE_STATUS_CODES and retries < self._config.max_retries:
                retries += 1
                logger.warning(
                    "FlightLabs returned %d for %s, retry %d/%d in %.1fs",
                    response.status_code,
                    endpoint,
                    retries,
                    self._config.max_retries,
                    backoff,
                )
                await asyncio.sleep(backoff)
                backoff *= self._config.backoff_multiplier
                continue

            return self._decode(endpoint, response)

    def _decode(self, endpoint: str, response: httpx.Response) -> Dict[str, Any]:
        """Decode a final response or raise UpstreamError."""
        try:
            payload = response.json()
        except ValueError as e:
            if response.is_success:
                logger.error("Invalid JSON from %s: %s", endpoint, e)
                raise UpstreamError(response.status_code, f"Invalid JSON response: {e}") from e
            payload = None

        if not response.is_success:
            logger.error(
                "FlightLabs API error: %d %s",
                response.status_code,
                response.text[:200],
            )
            raise UpstreamError(response.status_code, response.text[:200], payload)

        if not isinstance(payload, dict):
            raise UpstreamError(response.status_code, "Expected a JSON object", payload)

        if payload.get("success") is False:
            error = _error_from_payload(response.status_code, payload)
            logger.error("FlightLabs error body from %s: %s", endpoint, error.message)
            raise error

        return payload
