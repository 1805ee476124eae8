"""HTTP plumbing shared by the entity store and the collaborator clients."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from app.config import get_settings
from huddle.errors import NotFound, Rejected, Unauthenticated, Unavailable

logger = logging.getLogger(__name__)


def build_client(
    base_url: str | None = None,
    token: str | None = None,
    *,
    timeout: float | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    """Create an async client pointed at the reference API."""

    settings = get_settings()
    headers = {"Authorization": f"Bearer {token}"} if token else {}
    return httpx.AsyncClient(
        base_url=base_url or settings.entity_api_base_url,
        timeout=timeout if timeout is not None else settings.entity_api_timeout_seconds,
        headers=headers,
        transport=transport,
    )


def _detail(response: httpx.Response) -> Any:
    try:
        body = response.json()
    except ValueError:
        return response.text or None
    if isinstance(body, dict) and "detail" in body:
        return body["detail"]
    return body


async def send_request(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    *,
    resource: str | None = None,
    identifier: str | None = None,
    **kwargs: Any,
) -> httpx.Response:
    """Issue a request and translate failures into engine errors."""

    try:
        response = await client.request(method, url, **kwargs)
    except httpx.TransportError as exc:
        logger.debug("%s %s failed in transport: %s", method, url, exc)
        raise Unavailable(f"{method} {url} failed: {exc}") from exc

    status_code = response.status_code
    if status_code < 400:
        return response
    if status_code == 401:
        raise Unauthenticated(str(_detail(response) or "Not authenticated"))
    if status_code == 404:
        raise NotFound(resource or url, identifier)
    if status_code >= 500:
        raise Unavailable(f"{method} {url} returned {status_code}")
    raise Rejected(status_code, _detail(response))
