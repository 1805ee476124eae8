"""Generic CRUD-lite endpoints backing the chat engine's entity store."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException, Query, Request, status
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError
from sqlalchemy.orm import Session

from app.api.deps import get_current_user
from app.database import get_db
from app.models import User
from app.monitoring.metrics import entity_requests_total
from app.schemas.entities import EntityCreate
from app.services.entities import (
    RESERVED_QUERY_PARAMS,
    EntityType,
    bulk_create_entities,
    create_entity,
    filter_entities,
    get_entity,
    get_entity_type,
)

router = APIRouter(prefix="/entities", tags=["entities"])


def _parse_payload(entity: EntityType, raw: Any) -> EntityCreate:
    if entity.create_schema is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"{entity.name} records cannot be created through this endpoint",
        )
    try:
        return entity.create_schema.model_validate(raw)
    except ValidationError as exc:
        raise RequestValidationError(exc.errors(include_url=False)) from exc


@router.get("/{kind}/{identifier}")
def read_entity(
    kind: str,
    identifier: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> dict[str, Any]:
    entity = get_entity_type(kind)
    entity_requests_total.inc(kind=entity.name, operation="get")
    return entity.serialize(get_entity(db, entity, identifier))


@router.get("/{kind}")
def list_entities(
    kind: str,
    request: Request,
    order_by: str | None = Query(default=None, description="Field name, '-' prefix for descending"),
    limit: int | None = Query(default=None),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> list[dict[str, Any]]:
    """Return records matching every non-reserved query parameter."""

    entity = get_entity_type(kind)
    criteria = {
        name: value
        for name, value in request.query_params.items()
        if name not in RESERVED_QUERY_PARAMS
    }
    entity_requests_total.inc(kind=entity.name, operation="filter" if criteria else "list")
    rows = filter_entities(db, entity, criteria, order_by=order_by, limit=limit)
    return [entity.serialize(row) for row in rows]


@router.post("/{kind}", status_code=status.HTTP_201_CREATED)
def create_entity_endpoint(
    kind: str,
    payload: dict[str, Any] = Body(...),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> dict[str, Any]:
    entity = get_entity_type(kind)
    parsed = _parse_payload(entity, payload)
    entity_requests_total.inc(kind=entity.name, operation="create")
    return entity.serialize(create_entity(db, entity, parsed, current_user))


@router.post("/{kind}/bulk", status_code=status.HTTP_201_CREATED)
def bulk_create_endpoint(
    kind: str,
    payload: list[dict[str, Any]] = Body(...),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> list[dict[str, Any]]:
    entity = get_entity_type(kind)
    parsed = [_parse_payload(entity, item) for item in payload]
    entity_requests_total.inc(kind=entity.name, operation="bulk_create")
    return [entity.serialize(row) for row in bulk_create_entities(db, entity, parsed, current_user)]
