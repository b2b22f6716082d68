"""
Shared request helpers for upstream HTTP APIs.
"""

import asyncio
from typing import Any, Dict, Optional

import httpx

from sportrays.errors import UpstreamUnavailable


def new_http_client(timeout: float, transport: Optional[httpx.AsyncBaseTransport] = None) -> httpx.AsyncClient:
    """
    Create the async HTTP client used for upstream calls.

    Args:
        timeout: Seconds allowed for each phase of a call, and for the call as a whole
        transport: Optional transport override (tests use httpx.MockTransport)
    """
    return httpx.AsyncClient(timeout=timeout, transport=transport, follow_redirects=True)


async def fetch(
    client: httpx.AsyncClient,
    url: str,
    params: Optional[Dict[str, Any]] = None,
    headers: Optional[Dict[str, str]] = None,
    label: str = "upstream",
) -> httpx.Response:
    """
    GET a URL and fail on anything but a success status.

    Args:
        client: HTTP client
        url: Endpoint URL
        params: Query parameters
        headers: Extra request headers
        label: Upstream name used in error messages

    Returns:
        The successful response

    Raises:
        UpstreamUnavailable: On network errors, timeouts and non-2xx statuses
    """
    # httpx timeouts apply per phase; the whole call shares one deadline
    deadline = client.timeout.read
    try:
        response = await asyncio.wait_for(client.get(url, params=params, headers=headers), timeout=deadline)
        response.raise_for_status()
        return response
    except httpx.HTTPStatusError as e:
        raise UpstreamUnavailable(
            f"{label} {e.response.status_code}",
            upstream_status=e.response.status_code,
        )
    except (httpx.TimeoutException, asyncio.TimeoutError):
        raise UpstreamUnavailable(f"{label} timed out")
    except httpx.RequestError as e:
        raise UpstreamUnavailable(f"{label} request error: {e.__class__.__name__}")


async def fetch_json(
    client: httpx.AsyncClient,
    url: str,
    params: Optional[Dict[str, Any]] = None,
    headers: Optional[Dict[str, str]] = None,
    label: str = "upstream",
) -> Dict[str, Any]:
    """
    GET a URL and decode its JSON object body.

    Raises:
        UpstreamUnavailable: On transport errors or a body that is not a JSON object
    """
    response = await fetch(client, url, params=params, headers=headers, label=label)
    try:
        data = response.json()
    except ValueError:
        raise UpstreamUnavailable(f"{label} returned invalid JSON")
    if not isinstance(data, dict):
        raise UpstreamUnavailable(f"{label} returned unexpected payload")
    return data
