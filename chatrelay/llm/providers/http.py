"""Small async HTTP helpers for provider probes."""

import asyncio
import logging
from typing import Any, Dict, Optional

import httpx

logger = logging.getLogger(__name__)


async def _get(
    url: str,
    *,
    headers: Optional[Dict[str, str]],
    timeout_s: float,
    transport: Optional[httpx.AsyncBaseTransport],
) -> httpx.Response:
    async with httpx.AsyncClient(transport=transport, timeout=timeout_s) as client:
        # The deadline cancels the request regardless of transport timeouts.
        return await asyncio.wait_for(
            client.get(url, headers=headers), timeout=timeout_s
        )


async def probe(
    url: str,
    *,
    headers: Optional[Dict[str, str]] = None,
    timeout_s: float = 5.0,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> bool:
    """GET a URL and report whether it answered with a 2xx status.

    Never raises: errors, non-2xx statuses and timeouts all return False.
    """
    try:
        response = await _get(
            url, headers=headers, timeout_s=timeout_s, transport=transport
        )
    except asyncio.TimeoutError:
        logger.debug(f"Probe of {url} timed out after {timeout_s}s")
        return False
    except Exception as e:
        logger.debug(f"Probe of {url} failed: {e!r}")
        return False

    if not response.is_success:
        logger.debug(f"Probe of {url} returned HTTP {response.status_code}")
    return response.is_success


async def get_json(
    url: str,
    *,
    headers: Optional[Dict[str, str]] = None,
    timeout_s: float = 10.0,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> Any:
    """GET a URL and decode its JSON body.

    Raises:
        httpx.HTTPStatusError: On non-2xx responses
        asyncio.TimeoutError: When the deadline passes
        ValueError: When the body is not JSON
    """
    response = await _get(url, headers=headers, timeout_s=timeout_s, transport=transport)
    response.raise_for_status()
    return response.json()
