"""Shared pytest fixtures for backend tests."""

from __future__ import annotations

import asyncio
import itertools
import sys
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Iterator, Mapping

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from app.database import get_db
from app.main import app
from app.models import Base
from huddle.entities.records import EntityKind, User
from huddle.errors import NotFound, Unauthenticated, Unavailable

BASE_TIME = datetime(2024, 1, 1, 10, 0, tzinfo=timezone.utc)


def at(minutes: float) -> str:
    """ISO timestamp ``minutes`` after 10:00 UTC on the test day."""

    return (BASE_TIME + timedelta(minutes=minutes)).isoformat()


@pytest.fixture()
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture()
def test_engine() -> Iterator[Engine]:
    """Provide an in-memory SQLite engine for isolated tests."""

    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    Base.metadata.create_all(engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(engine)
        engine.dispose()


@pytest.fixture()
def session_factory(test_engine) -> sessionmaker[Session]:
    return sessionmaker(bind=test_engine, future=True)


@pytest.fixture()
def db_session(session_factory) -> Iterator[Session]:
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def service_app(session_factory) -> Iterator[FastAPI]:
    """The FastAPI app with the database dependency pointed at the test engine."""

    def override_get_db() -> Iterator[Session]:
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield app
    finally:
        app.dependency_overrides.clear()


@pytest.fixture()
def client(service_app) -> Iterator[TestClient]:
    """Yield a FastAPI TestClient with the database dependency overridden."""

    with TestClient(service_app) as test_client:
        yield test_client


@dataclass
class Gate:
    """Holds matching store calls until released."""

    operation: str
    kind: str
    match: dict[str, Any]
    entered: asyncio.Event = field(default_factory=asyncio.Event)
    opened: asyncio.Event = field(default_factory=asyncio.Event)

    def matches(self, operation: str, kind: str, criteria: Mapping[str, Any]) -> bool:
        if operation != self.operation or kind != self.kind:
            return False
        return all(criteria.get(key) == value for key, value in self.match.items())

    def release(self) -> None:
        self.opened.set()


class FakeEntityStore:
    """In-memory entity store with call recording, gates and failure injection."""

    def __init__(self) -> None:
        self.rows: dict[str, dict[str, dict[str, Any]]] = defaultdict(dict)
        self.calls: list[tuple[str, str, dict[str, Any]]] = []
        self._failures: dict[tuple[str, str], list[Exception]] = defaultdict(list)
        self._gates: list[Gate] = []
        self._ids = itertools.count(1)
        self._clock = itertools.count(1)
        # Simulated round-trip time and the concurrency it exposes.
        self.latency = 0.0
        self.active = 0
        self.peak_active = 0

    # Test helpers -----------------------------------------------------
    def seed(self, kind: EntityKind | str, **fields: Any) -> dict[str, Any]:
        kind_name = EntityKind(kind).value
        row = dict(fields)
        row.setdefault("id", f"{kind_name.lower()}-{next(self._ids)}")
        row.setdefault("created_date", at(next(self._clock)))
        self.rows[kind_name][row["id"]] = row
        return dict(row)

    def fail_next(
        self, operation: str, kind: EntityKind | str, error: Exception | None = None
    ) -> None:
        self._failures[(operation, EntityKind(kind).value)].append(
            error or Unavailable("injected failure")
        )

    def hold(self, operation: str, kind: EntityKind | str, **match: Any) -> Gate:
        gate = Gate(operation=operation, kind=EntityKind(kind).value, match=match)
        self._gates.append(gate)
        return gate

    def count(self, operation: str, kind: EntityKind | str) -> int:
        kind_name = EntityKind(kind).value
        return sum(1 for op, name, _ in self.calls if op == operation and name == kind_name)

    def all(self, kind: EntityKind | str) -> list[dict[str, Any]]:
        return list(self.rows[EntityKind(kind).value].values())

    # Store protocol ---------------------------------------------------
    async def _enter(self, operation: str, kind: str, criteria: Mapping[str, Any]) -> None:
        self.calls.append((operation, kind, dict(criteria)))
        self.active += 1
        self.peak_active = max(self.peak_active, self.active)
        try:
            for gate in list(self._gates):
                if gate.matches(operation, kind, criteria):
                    # Each gate holds exactly one call.
                    self._gates.remove(gate)
                    gate.entered.set()
                    await gate.opened.wait()
                    break
            if self.latency:
                await asyncio.sleep(self.latency)
            failures = self._failures.get((operation, kind))
            if failures:
                raise failures.pop(0)
        finally:
            self.active -= 1

    async def get(self, kind: EntityKind, identifier: str) -> dict[str, Any]:
        kind_name = EntityKind(kind).value
        await self._enter("get", kind_name, {"id": identifier})
        row = self.rows[kind_name].get(identifier)
        if row is None:
            raise NotFound(kind_name, identifier)
        return dict(row)

    async def filter(
        self,
        kind: EntityKind,
        criteria: Mapping[str, Any],
        *,
        order_by: str | None = None,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        kind_name = EntityKind(kind).value
        await self._enter("filter", kind_name, criteria)
        rows = [
            dict(row)
            for row in self.rows[kind_name].values()
            if all(row.get(key) == value for key, value in criteria.items())
        ]
        if order_by:
            descending = order_by.startswith("-")
            name = order_by.lstrip("-")
            rows.sort(key=lambda row: (row.get(name), row["id"]), reverse=descending)
        if limit is not None:
            rows = rows[:limit]
        return rows

    async def list(
        self, kind: EntityKind, *, order_by: str | None = None, limit: int | None = None
    ) -> list[dict[str, Any]]:
        return await self.filter(kind, {}, order_by=order_by, limit=limit)

    async def create(self, kind: EntityKind, fields: Mapping[str, Any]) -> dict[str, Any]:
        kind_name = EntityKind(kind).value
        await self._enter("create", kind_name, fields)
        return self.seed(kind_name, **fields)

    async def bulk_create(
        self, kind: EntityKind, items: list[Mapping[str, Any]]
    ) -> list[dict[str, Any]]:
        kind_name = EntityKind(kind).value
        await self._enter("bulk_create", kind_name, {})
        return [self.seed(kind_name, **item) for item in items]


@pytest.fixture()
def store() -> FakeEntityStore:
    return FakeEntityStore()


class FakeIdentity:
    def __init__(self, user: dict[str, Any] | None) -> None:
        self.user = user
        self.updates: list[dict[str, Any]] = []

    async def who_am_i(self):
        if self.user is None:
            raise Unauthenticated("no session")
        return User.from_payload(self.user)

    async def update_profile(self, **fields: Any):
        self.updates.append(fields)
        self.user = {**(self.user or {}), **fields}
        return User.from_payload(self.user)
