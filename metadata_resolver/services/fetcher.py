from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

import httpx

from metadata_resolver.services.errors import GatewayFetchError, NonJSONResponseError

logger = logging.getLogger(__name__)

JSON_CONTENT_TYPE = "application/json"


async def fetch_json(
    client: httpx.AsyncClient,
    url: str,
    *,
    timeout_seconds: float,
    headers: dict[str, str] | None = None,
) -> Any:
    """GET ``url`` under a hard deadline and parse the body as JSON.

    Timeouts, transport errors, non-2xx statuses and unparseable bodies all
    raise GatewayFetchError so callers can move on to the next candidate.
    """
    try:
        response = await asyncio.wait_for(
            client.get(url, headers=headers, timeout=timeout_seconds),
            timeout=timeout_seconds,
        )
    except asyncio.TimeoutError as exc:
        raise GatewayFetchError(url, f"timed out after {timeout_seconds:.2f}s") from exc
    except (httpx.HTTPError, httpx.InvalidURL) as exc:
        raise GatewayFetchError(url, f"transport error: {exc.__class__.__name__}") from exc

    if not response.is_success:
        raise GatewayFetchError(url, f"HTTP {response.status_code}")

    content_type = response.headers.get("content-type", "")
    if JSON_CONTENT_TYPE in content_type.lower():
        try:
            return response.json()
        except (ValueError, RecursionError) as exc:
            raise GatewayFetchError(url, "malformed JSON body") from exc

    text = response.text
    try:
        return json.loads(text)
    except RecursionError as exc:
        raise GatewayFetchError(url, "JSON nesting too deep") from exc
    except ValueError as exc:
        logger.debug("gateway returned non-JSON body url=%s content_type=%s", url, content_type or "-")
        raise NonJSONResponseError(url, text) from exc
