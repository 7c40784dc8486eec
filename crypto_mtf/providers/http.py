"""
Shared httpx plumbing for kline providers: client lifetime and JSON decoding
with provider-scoped error mapping.
"""
from __future__ import annotations

import contextlib
from typing import Any, AsyncIterator, Dict, Optional

import httpx

from ..core.errors import MalformedPayload, ProviderError

HTTP_TIMEOUT_S = 10.0


@contextlib.asynccontextmanager
async def client_session(
    client: Optional[httpx.AsyncClient], timeout_s: float = HTTP_TIMEOUT_S
) -> AsyncIterator[httpx.AsyncClient]:
    """Yield the injected client, or a short-lived one closed on exit."""
    if client is not None:
        yield client
        return
    async with httpx.AsyncClient(
        timeout=timeout_s, headers={"Accept": "application/json"}
    ) as owned:
        yield owned


def decode_json(provider_name: str, resp: httpx.Response) -> Any:
    try:
        return resp.json()
    except ValueError as exc:
        raise MalformedPayload(provider_name, f"invalid JSON body: {exc}") from exc


async def get_json(
    provider_name: str,
    client: httpx.AsyncClient,
    url: str,
    params: Optional[Dict[str, Any]] = None,
) -> Any:
    """GET and decode; transport errors and non-2xx become ProviderError."""
    try:
        resp = await client.get(url, params=params)
    except httpx.HTTPError as exc:
        raise ProviderError(provider_name, f"{type(exc).__name__}: {exc}") from exc
    if resp.status_code == 429:
        raise ProviderError(provider_name, "rate limit (HTTP 429)")
    if resp.status_code >= 400:
        raise ProviderError(provider_name, f"HTTP {resp.status_code}")
    return decode_json(provider_name, resp)
