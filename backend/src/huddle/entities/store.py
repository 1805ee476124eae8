"""Entity access layer contract and its HTTP implementation."""

from __future__ import annotations

from typing import Any, Mapping, Protocol, Sequence

import httpx

from huddle.entities.records import EntityKind
from huddle.http import build_client, send_request

Row = dict[str, Any]


class EntityStore(Protocol):
    """Request/response access to stored records.

    Every method is a suspension point. Transport failures raise
    :class:`huddle.errors.Unavailable`; unknown identifiers raise
    :class:`huddle.errors.NotFound`. ``order_by`` names a field, prefixed with
    ``-`` for descending order.
    """

    async def get(self, kind: EntityKind, entity_id: str) -> Row:
        """Return one record by identifier."""

    async def filter(
        self,
        kind: EntityKind,
        criteria: Mapping[str, Any],
        *,
        order_by: str | None = None,
        limit: int | None = None,
    ) -> list[Row]:
        """Return records whose fields equal every value in ``criteria``."""

    async def list(
        self,
        kind: EntityKind,
        *,
        order_by: str | None = None,
        limit: int | None = None,
    ) -> list[Row]:
        """Return all records of a kind."""

    async def create(self, kind: EntityKind, fields: Mapping[str, Any]) -> Row:
        """Persist one record; the store assigns ``id`` and ``created_date``."""

    async def bulk_create(self, kind: EntityKind, items: Sequence[Mapping[str, Any]]) -> list[Row]:
        """Persist several records of the same kind."""


def _query_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if hasattr(value, "value"):
        return str(value.value)
    return str(value)


class HttpEntityStore:
    """:class:`EntityStore` backed by the ``/entities`` HTTP API."""

    def __init__(self, client: httpx.AsyncClient | None = None, *, token: str | None = None) -> None:
        self._owns_client = client is None
        self._client = client if client is not None else build_client(token=token)

    async def __aenter__(self) -> "HttpEntityStore":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    @staticmethod
    def _path(kind: EntityKind, *parts: str) -> str:
        suffix = "".join(f"/{part}" for part in parts)
        return f"/entities/{EntityKind(kind).value}{suffix}"

    async def get(self, kind: EntityKind, entity_id: str) -> Row:
        response = await send_request(
            self._client,
            "GET",
            self._path(kind, entity_id),
            resource=EntityKind(kind).value,
            identifier=entity_id,
        )
        return response.json()

    async def filter(
        self,
        kind: EntityKind,
        criteria: Mapping[str, Any],
        *,
        order_by: str | None = None,
        limit: int | None = None,
    ) -> list[Row]:
        params = {field: _query_value(value) for field, value in criteria.items()}
        if order_by:
            params["order_by"] = order_by
        if limit is not None:
            params["limit"] = str(limit)
        response = await send_request(
            self._client,
            "GET",
            self._path(kind),
            resource=EntityKind(kind).value,
            params=params,
        )
        return list(response.json())

    async def list(
        self,
        kind: EntityKind,
        *,
        order_by: str | None = None,
        limit: int | None = None,
    ) -> list[Row]:
        return await self.filter(kind, {}, order_by=order_by, limit=limit)

    async def create(self, kind: EntityKind, fields: Mapping[str, Any]) -> Row:
        response = await send_request(
            self._client,
            "POST",
            self._path(kind),
            resource=EntityKind(kind).value,
            json=dict(fields),
        )
        return response.json()

    async def bulk_create(self, kind: EntityKind, items: Sequence[Mapping[str, Any]]) -> list[Row]:
        response = await send_request(
            self._client,
            "POST",
            self._path(kind, "bulk"),
            resource=EntityKind(kind).value,
            json=[dict(item) for item in items],
        )
        return list(response.json())
