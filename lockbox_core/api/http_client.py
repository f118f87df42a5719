"""
Async HTTP client for the Firefox Accounts servers.

Wraps httpx with JSON decoding, status checking and log-safe error reporting.
"""

import asyncio
from typing import Any

import httpx
import structlog

from lockbox_core.config import LockboxConfig
from lockbox_core.exceptions import APIError, NetworkError, UnexpectedDataFormatError

logger = structlog.get_logger(__name__)

SENSITIVE_KEYS = frozenset(
    {
        "access_token",
        "refresh_token",
        "id_token",
        "keys_jwe",
        "keys_jwk",
        "code",
        "code_verifier",
        "Authorization",
    }
)


def sanitize_for_log(data: dict[str, Any]) -> dict[str, Any]:
    """
    Remove sensitive fields from a dict before logging.

    Recursively sanitizes nested dictionaries and lists.

    Args:
        data: Dictionary that may contain sensitive values.

    Returns:
        Copy with sensitive values replaced by "***".
    """
    result = {}
    for key, value in data.items():
        if key in SENSITIVE_KEYS:
            result[key] = "***"
        elif isinstance(value, dict):
            result[key] = sanitize_for_log(value)
        elif isinstance(value, list):
            result[key] = [
                sanitize_for_log(item) if isinstance(item, dict) else item for item in value
            ]
        else:
            result[key] = value
    return result


class AsyncHttpClient:
    """Async HTTP client for the OAuth and profile servers."""

    def __init__(
        self,
        config: LockboxConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """
        Args:
            config: Client configuration.
            transport: Optional transport for testing (mock transport).
        """
        self._config = config
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._client_lock = asyncio.Lock()

    async def __aenter__(self) -> "AsyncHttpClient":
        await self._ensure_client()
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    async def _ensure_client(self) -> httpx.AsyncClient:
        async with self._client_lock:
            if self._client is None:
                self._client = httpx.AsyncClient(
                    timeout=self._config.timeout,
                    transport=self._transport,
                    headers={
                        "Accept": "application/json",
                        "User-Agent": self._config.user_agent,
                    },
                )
        return self._client

    async def close(self) -> None:
        """Close the underlying httpx client. Safe to call twice."""
        async with self._client_lock:
            if self._client is None:
                logger.debug("Client not open.")
                return
            await self._client.aclose()
            self._client = None

    async def request(
        self,
        method: str,
        url: str,
        *,
        json: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        """
        Make a JSON request.

        Args:
            method: HTTP method (GET, POST, etc.).
            url: Absolute URL.
            json: JSON body for POST requests.
            headers: Extra request headers.

        Returns:
            Decoded JSON object.

        Raises:
            NetworkError: If the request could not be completed.
            APIError: If the server answered with a non-2xx status.
            UnexpectedDataFormatError: If the body is not a JSON object.
        """
        client = await self._ensure_client()
        logger.debug("HTTP request", method=method, url=url)
        try:
            response = await client.request(method=method, url=url, json=json, headers=headers)
        except httpx.HTTPError as e:
            logger.warning("HTTP request failed", url=url, error_type=type(e).__name__)
            msg = f"Request to {url} failed"
            raise NetworkError(msg) from e

        if not response.is_success:
            self._raise_api_error(response, url)

        try:
            data = response.json()
        except ValueError as e:
            msg = "Invalid JSON response"
            raise UnexpectedDataFormatError(msg, endpoint=url) from e
        if not isinstance(data, dict):
            msg = "Expected a JSON object"
            raise UnexpectedDataFormatError(msg, endpoint=url, actual=type(data).__name__)
        return data

    @staticmethod
    def _raise_api_error(response: httpx.Response, url: str) -> None:
        try:
            data = response.json()
        except ValueError:
            data = {}
        if not isinstance(data, dict):
            data = {}
        logger.warning(
            "API error", url=url, status=response.status_code, body=sanitize_for_log(data)
        )
        error_msg = data.get("message") or data.get("error") or response.reason_phrase
        msg = f"{error_msg} (status={response.status_code})"
        raise APIError(msg, code=response.status_code, endpoint=url)
