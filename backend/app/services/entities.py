"""Generic persistence for the chat entity kinds exposed under ``/api/entities``."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Iterable, Mapping, Sequence

from fastapi import HTTPException, status
from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.config import get_settings
from app.models import Base, Channel, DirectMessage, Message, Server, ServerMember, User
from app.schemas.entities import (
    ChannelCreate,
    ChannelRead,
    DirectMessageCreate,
    DirectMessageRead,
    EntityCreate,
    MessageCreate,
    MessageRead,
    ServerCreate,
    ServerMemberCreate,
    ServerMemberRead,
    ServerRead,
    UserEntityRead,
)

logger = logging.getLogger(__name__)

settings = get_settings()

RESERVED_QUERY_PARAMS = frozenset({"order_by", "limit"})


@dataclass(frozen=True)
class EntityType:
    name: str
    model: type[Base]
    read_schema: type[BaseModel]
    create_schema: type[EntityCreate] | None
    # Fields whose values must name an existing row of the given model.
    references: Mapping[str, type[Base]] = field(default_factory=dict)
    # Field that must equal the calling user's id on creation.
    author_field: str | None = None
    # Field naming the server whose owner alone may create this kind.
    server_field: str | None = None

    @property
    def columns(self) -> Mapping[str, Any]:
        return self.model.__table__.columns

    def serialize(self, instance: Base) -> dict[str, Any]:
        return self.read_schema.model_validate(instance).model_dump(mode="json")


ENTITY_TYPES: dict[str, EntityType] = {
    entity.name: entity
    for entity in (
        EntityType("User", User, UserEntityRead, None),
        EntityType(
            "Server",
            Server,
            ServerRead,
            ServerCreate,
            references={"owner_id": User},
            author_field="owner_id",
        ),
        EntityType(
            "Channel",
            Channel,
            ChannelRead,
            ChannelCreate,
            references={"server_id": Server},
            server_field="server_id",
        ),
        EntityType(
            "ServerMember",
            ServerMember,
            ServerMemberRead,
            ServerMemberCreate,
            references={"server_id": Server, "user_id": User},
            server_field="server_id",
        ),
        EntityType(
            "Message",
            Message,
            MessageRead,
            MessageCreate,
            references={"channel_id": Channel, "user_id": User},
            author_field="user_id",
        ),
        EntityType(
            "DirectMessage",
            DirectMessage,
            DirectMessageRead,
            DirectMessageCreate,
            references={"sender_id": User, "receiver_id": User},
            author_field="sender_id",
        ),
    )
}


def get_entity_type(kind: str) -> EntityType:
    entity = ENTITY_TYPES.get(kind)
    if entity is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unknown entity kind '{kind}'",
        )
    return entity


def _coerce(entity: EntityType, name: str, raw: str) -> Any:
    column = entity.columns[name]
    try:
        python_type = column.type.python_type
    except NotImplementedError:
        return raw
    try:
        if python_type is bool:
            lowered = raw.strip().lower()
            if lowered not in {"true", "false", "1", "0"}:
                raise ValueError(raw)
            return lowered in {"true", "1"}
        if python_type is int:
            return int(raw)
        if python_type is datetime:
            return datetime.fromisoformat(raw.replace("Z", "+00:00"))
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid value for '{name}': {raw!r}",
        ) from None
    return raw


def _order_clause(entity: EntityType, order_by: str | None) -> list[Any]:
    identifier = entity.columns["id"]
    if not order_by:
        return [identifier]
    descending = order_by.startswith("-")
    name = order_by[1:] if descending else order_by
    if name not in entity.columns or name == "hashed_password":
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Cannot order {entity.name} by '{name}'",
        )
    column = entity.columns[name]
    if descending:
        return [column.desc(), identifier.desc()]
    return [column.asc(), identifier.asc()]


def get_entity(db: Session, entity: EntityType, identifier: str) -> Base:
    instance = db.get(entity.model, identifier)
    if instance is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"{entity.name} '{identifier}' not found",
        )
    return instance


def filter_entities(
    db: Session,
    entity: EntityType,
    criteria: Mapping[str, str],
    *,
    order_by: str | None = None,
    limit: int | None = None,
) -> Sequence[Base]:
    """Rows whose fields equal every criterion, ordered and truncated as requested."""

    stmt = select(entity.model)
    for name, raw in criteria.items():
        if name not in entity.columns or name == "hashed_password":
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Cannot filter {entity.name} by '{name}'",
            )
        stmt = stmt.where(entity.columns[name] == _coerce(entity, name, raw))

    stmt = stmt.order_by(*_order_clause(entity, order_by))

    if limit is not None:
        if limit < 1:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="limit must be a positive integer",
            )
        stmt = stmt.limit(min(limit, settings.entity_list_max_limit))
    else:
        stmt = stmt.limit(settings.entity_list_max_limit)

    return db.execute(stmt).scalars().all()


def _validate_references(db: Session, entity: EntityType, values: Mapping[str, Any]) -> None:
    for name, model in entity.references.items():
        value = values.get(name)
        if value is None:
            continue
        if db.get(model, value) is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"{model.__name__} '{value}' referenced by '{name}' not found",
            )


def _check_server_owner(
    db: Session, entity: EntityType, values: Mapping[str, Any], author: User
) -> None:
    """Only the owner may shape a server; anyone may join a public one as a plain member."""

    server = db.get(Server, values.get(entity.server_field))
    if server is None or server.owner_id == author.id:
        return
    joining = (
        entity.model is ServerMember
        and values.get("user_id") == author.id
        and values.get("role") == "member"
        and server.is_public
    )
    if not joining:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Only the server owner may create this {entity.name}",
        )


def _build(db: Session, entity: EntityType, payload: EntityCreate, author: User) -> Base:
    values = payload.model_dump(mode="json")
    if entity.author_field is not None and values.get(entity.author_field) != author.id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"'{entity.author_field}' must match the authenticated user",
        )
    _validate_references(db, entity, values)
    if entity.server_field is not None:
        _check_server_owner(db, entity, values, author)
    return entity.model(**values)


def _commit(db: Session, entity: EntityType, instances: Iterable[Base]) -> None:
    db.add_all(list(instances))
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        logger.info("Rejected conflicting %s write: %s", entity.name, exc.orig)
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"{entity.name} conflicts with an existing record",
        ) from exc


def create_entity(db: Session, entity: EntityType, payload: EntityCreate, author: User) -> Base:
    instance = _build(db, entity, payload, author)
    _commit(db, entity, [instance])
    db.refresh(instance)
    return instance


def bulk_create_entities(
    db: Session, entity: EntityType, payloads: Sequence[EntityCreate], author: User
) -> list[Base]:
    """Insert every payload in one transaction; any rejected item rejects the batch."""

    instances = [_build(db, entity, payload, author) for payload in payloads]
    _commit(db, entity, instances)
    for instance in instances:
        db.refresh(instance)
    return instances
