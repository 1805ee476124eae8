"""Narrow request/response clients for services outside the engine core."""

from __future__ import annotations

import logging
from typing import Any, Protocol

import httpx

from app.config import get_settings
from huddle.entities.records import User
from huddle.errors import Unavailable
from huddle.http import build_client, send_request

logger = logging.getLogger(__name__)


class IdentityProvider(Protocol):
    async def who_am_i(self) -> User:
        """Return the signed-in user or raise :class:`Unauthenticated`."""

    async def update_profile(self, **fields: Any) -> User:
        """Apply profile changes and return the updated user."""


class FileStorage(Protocol):
    async def upload(
        self, data: bytes, filename: str = "upload.bin", content_type: str | None = None
    ) -> dict[str, str]:
        """Store a file and return ``{"file_url": ...}``."""


class HttpIdentityProvider:
    def __init__(self, client: httpx.AsyncClient | None = None, *, token: str | None = None) -> None:
        self._client = client if client is not None else build_client(token=token)

    async def who_am_i(self) -> User:
        response = await send_request(self._client, "GET", "/auth/me", resource="User")
        return User.from_payload(response.json())

    async def update_profile(self, **fields: Any) -> User:
        payload = {key: value for key, value in fields.items() if value is not None}
        response = await send_request(
            self._client, "PATCH", "/auth/me", resource="User", json=payload
        )
        return User.from_payload(response.json())


class HttpFileStorage:
    def __init__(self, client: httpx.AsyncClient | None = None, *, token: str | None = None) -> None:
        self._client = client if client is not None else build_client(token=token)

    async def upload(
        self, data: bytes, filename: str = "upload.bin", content_type: str | None = None
    ) -> dict[str, str]:
        files = {"file": (filename, data, content_type or "application/octet-stream")}
        response = await send_request(self._client, "POST", "/uploads", files=files)
        body = response.json()
        return {"file_url": str(body["file_url"])}


class AssistantClient:
    """Single-shot prompt/response client for the configured AI endpoint."""

    def __init__(
        self,
        url: str | None = None,
        *,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        settings = get_settings()
        self._url = url or settings.assistant_url
        self._timeout = timeout if timeout is not None else settings.assistant_timeout_seconds
        self._transport = transport

    async def invoke(self, prompt: str) -> str:
        text = (prompt or "").strip()
        if not text:
            raise ValueError("Prompt cannot be empty")
        if not self._url:
            raise Unavailable("No assistant endpoint is configured")

        async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
            response = await send_request(client, "POST", str(self._url), json={"prompt": text})

        try:
            body = response.json()
        except ValueError:
            return response.text
        if isinstance(body, dict):
            for key in ("response", "text", "content"):
                if isinstance(body.get(key), str):
                    return body[key]
        if isinstance(body, str):
            return body
        logger.debug("Assistant returned an unexpected payload: %r", body)
        return response.text
