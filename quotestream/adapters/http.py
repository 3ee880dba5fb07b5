"""
HTTP adapters for the quote and fx ports.

Both talk to a quote service exposing:
- ``GET /quotes/{stock_code}`` -> ``{"price", "changeAmount", "sign", "changeRate"}``
- ``GET /fx/{fx_type}/{fx_code}`` -> ``{"fxType", "fxCode", "rate", ...}``
"""

import logging
from typing import Any

import httpx
from pydantic import ValidationError

from quotestream.config import get_settings
from quotestream.exceptions import QuoteServiceError
from quotestream.types.quote import FxInfo, Quote

logger = logging.getLogger(__name__)


def create_http_client(
    base_url: str | None = None,
    timeout_seconds: float | None = None,
) -> httpx.AsyncClient:
    """
    Create the shared async HTTP client for the quote service.

    Args:
        base_url: Service base URL. Defaults to the configured URL.
        timeout_seconds: Request timeout. Defaults to the configured timeout.

    Returns:
        httpx.AsyncClient: The client; the caller owns closing it.
    """
    settings = get_settings()
    return httpx.AsyncClient(
        base_url=base_url or settings.quote_api_base_url,
        timeout=timeout_seconds or settings.quote_api_timeout_seconds,
    )


async def _get_json(client: httpx.AsyncClient, path: str) -> dict[str, Any]:
    """
    GET a JSON object, mapping transport and HTTP errors to QuoteServiceError.
    """
    try:
        response = await client.get(path)
    except httpx.HTTPError as e:
        raise QuoteServiceError(f"Quote service request failed: {e}") from e

    if not response.is_success:
        raise QuoteServiceError(
            f"Quote service returned HTTP {response.status_code} for {path}",
            status_code=response.status_code,
        )

    return response.json()


class HttpQuotePort:
    """Price lookup over the quote service."""

    def __init__(self, client: httpx.AsyncClient):
        self._client = client

    async def fetch_quote(self, stock_code: str) -> Quote:
        data = await _get_json(self._client, f"/quotes/{stock_code}")
        try:
            return Quote.model_validate(data)
        except ValidationError as e:
            raise QuoteServiceError(f"Unexpected quote payload for {stock_code}") from e


class HttpFxInfoPort:
    """Currency-pair lookup over the quote service."""

    def __init__(self, client: httpx.AsyncClient):
        self._client = client

    async def fetch_fx_info(self, fx_type: str, fx_code: str) -> FxInfo:
        data = await _get_json(self._client, f"/fx/{fx_type}/{fx_code}")
        try:
            return FxInfo.model_validate(data)
        except ValidationError as e:
            raise QuoteServiceError(
                f"Unexpected fx payload for {fx_type}/{fx_code}"
            ) from e
