"""
Coinbase API request executor

One outbound call per ``execute``: sign (when required), send, read the
whole body, classify failures, then decode into a pydantic model.
"""

import asyncio
import logging
from typing import Any, Dict, Optional, Type, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from portfolio_tracker.coinbase_api.auth import TokenSigner
from portfolio_tracker.constants import BODY_EXCERPT_LENGTH, COINBASE_API_HOST, MAX_RETRIES, REQUEST_TIMEOUT
from portfolio_tracker.exceptions import DecodeError, SigningError, TransportError, UpstreamError

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


def lower_keys(value: Any) -> Any:
    """Lower-case every object key so field matching ignores case."""
    if isinstance(value, dict):
        return {str(k).lower(): lower_keys(v) for k, v in value.items()}
    if isinstance(value, list):
        return [lower_keys(v) for v in value]
    return value


def split_link(link: str, default_host: str) -> tuple:
    """Split a pagination link (absolute URL or host-relative path) into (host, path)."""
    if link.startswith("http://") or link.startswith("https://"):
        url = httpx.URL(link)
        path = url.raw_path.decode("ascii")
        return url.host, path
    if not link.startswith("/"):
        link = f"/{link}"
    return default_host, link


class CoinbaseClient:
    """
    Coinbase v2 API client

    Holds a single ``httpx.AsyncClient`` (created on demand unless one is
    injected) and an optional ``TokenSigner`` for authenticated calls.
    """

    def __init__(
        self,
        signer: Optional[TokenSigner] = None,
        host: str = COINBASE_API_HOST,
        timeout: float = REQUEST_TIMEOUT,
        http_client: Optional[httpx.AsyncClient] = None,
        max_retries: int = MAX_RETRIES,
    ):
        self.signer = signer
        self.host = host
        self.timeout = timeout
        self.max_retries = max_retries
        self._http_client = http_client
        self._owns_client = http_client is None

    async def __aenter__(self) -> "CoinbaseClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    def _get_http_client(self) -> httpx.AsyncClient:
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=self.timeout)
        return self._http_client

    async def aclose(self) -> None:
        if self._http_client is not None and self._owns_client:
            await self._http_client.aclose()
            self._http_client = None

    def _auth_headers(self, method: str, host: str, path: str) -> Dict[str, str]:
        if self.signer is None:
            raise SigningError("No CDP credentials configured for an authenticated request")
        token = self.signer.sign(method, path.split("?")[0], host=host)
        return {"Authorization": f"Bearer {token}"}

    async def _send(
        self,
        method: str,
        host: str,
        path: str,
        params: Optional[Dict[str, Any]],
        requires_auth: bool,
    ) -> httpx.Response:
        """Send with retry on 429; a fresh token is signed for every attempt."""
        url = f"https://{host}{path}"
        client = self._get_http_client()

        for attempt in range(self.max_retries):
            headers = {"Accept": "application/json"}
            if requires_auth:
                headers.update(self._auth_headers(method, host, path))

            try:
                response = await client.request(method, url, params=params, headers=headers)
            except httpx.RequestError as e:
                logger.warning(f"Transport failure on {method} {path}: {type(e).__name__}: {e}")
                raise TransportError(f"Could not reach {host}: {type(e).__name__}") from e

            if response.status_code == 429 and attempt < self.max_retries - 1:
                # Exponential backoff: 1s, 2s, ...
                wait_time = 2 ** attempt
                logger.warning(
                    f"Rate limited (429) on {method} {path}, retrying in {wait_time}s... "
                    f"(attempt {attempt + 1}/{self.max_retries})"
                )
                await asyncio.sleep(wait_time)
                continue

            if response.status_code == 429:
                logger.error(f"Rate limit exceeded after {self.max_retries} attempts on {method} {path}")
            return response

        # max_retries < 1
        raise TransportError(f"No request attempted for {method} {path}")

    async def execute(
        self,
        path: str,
        model: Optional[Type[ModelT]] = None,
        params: Optional[Dict[str, Any]] = None,
        requires_auth: bool = True,
        method: str = "GET",
        host: Optional[str] = None,
    ) -> Any:
        """
        Execute one request against the Coinbase API

        Args:
            path: Endpoint path; may carry a query string (pagination links)
                or be an absolute URL
            model: pydantic model to decode into; None returns the raw JSON
            params: Extra query parameters (never part of the signed path)
            requires_auth: Attach a CDP bearer token
            method: HTTP method
            host: Override the configured API host

        Returns:
            Instance of ``model`` or the decoded JSON value

        Raises:
            TransportError: network failure
            UpstreamError: non-2xx status
            DecodeError: body is not JSON, is empty/null, or does not match ``model``
        """
        host, path = split_link(path, host or self.host)
        method = method.upper()

        response = await self._send(method, host, path, params, requires_auth)
        body = response.text  # Full body is read before the status is inspected

        logger.debug(f"{method} {path} -> {response.status_code} ({len(body)} bytes)")

        if not response.is_success:
            raise UpstreamError(
                status=response.status_code,
                reason_phrase=response.reason_phrase,
                body_excerpt=body[:BODY_EXCERPT_LENGTH],
            )

        target_type = model.__name__ if model is not None else "JSON"

        try:
            payload = response.json()
        except ValueError as e:
            raise DecodeError(target_type, body, "body is not valid JSON") from e

        if payload is None or payload == {} or payload == []:
            raise DecodeError(target_type, body, "body decoded to an empty result")

        if model is None:
            return payload

        try:
            return model.model_validate(lower_keys(payload))
        except ValidationError as e:
            raise DecodeError(target_type, body, f"{e.error_count()} validation error(s)") from e
