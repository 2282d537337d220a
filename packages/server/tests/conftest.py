"""
Shared fixtures: in-memory SQLite (aiosqlite) per test, a fixed clock, a
recording audit sink and small seeding helpers.
"""

from __future__ import annotations

import os

# Must be set before app modules build their engine and settings
os.environ.setdefault("HG_DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("HG_AUDIT_TO_DATABASE", "false")
os.environ.setdefault("HG_LOG_FORMAT", "text")

import uuid
from datetime import datetime, timezone
from typing import Optional

import pytest
from sqlalchemy import event
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel

import app.models  # noqa: F401  (populate metadata)
from app.core.audit import AuditRecord
from app.core.clock import FixedClock
from app.models.hub import Hub
from app.models.hub_role import HubRoleAssignment
from app.models.membership import Membership
from app.models.resource import Resource
from app.models.user import User

NOW = datetime(2026, 3, 2, 12, 0, tzinfo=timezone.utc)


class RecordingAuditSink:
    def __init__(self):
        self.records: list[AuditRecord] = []
        # Whether each record was written in the caller's session
        self.in_transaction: list[bool] = []

    async def emit(self, record: AuditRecord, session=None) -> None:
        self.records.append(record)
        self.in_transaction.append(session is not None)

    def actions(self) -> list[str]:
        return [r.action for r in self.records]


class _UnreachableSession:
    """Session stand-in for a store that refuses every write."""

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        return False

    def add(self, obj):
        pass

    async def commit(self):
        raise OperationalError("INSERT INTO audit_events", {}, Exception("connection refused"))


class Seeder:
    """Creates hubs, users, roles, resources and memberships in one session."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def hub(self, slug: str = "robotics", status: str = "active") -> Hub:
        hub = Hub(name=slug.title(), slug=slug, status=status)
        self.session.add(hub)
        await self.session.flush()
        return hub

    async def user(self, name: str = "user", *, platform_admin: bool = False) -> User:
        user = User(
            email=f"{name}-{uuid.uuid4().hex[:6]}@uni.test",
            display_name=name,
            is_platform_admin=platform_admin,
        )
        self.session.add(user)
        await self.session.flush()
        return user

    async def role(self, user: User, hub: Hub, role: str) -> HubRoleAssignment:
        assignment = HubRoleAssignment(user_id=user.id, hub_id=hub.id, role=role)
        self.session.add(assignment)
        await self.session.flush()
        return assignment

    async def resource(
        self,
        hub: Hub,
        type: str = "project",
        *,
        visibility: str = "hub_members",
        capacity: Optional[int] = None,
        starts_at: Optional[datetime] = None,
        ends_at: Optional[datetime] = None,
        programme_id: Optional[uuid.UUID] = None,
        publish_status: str = "published",
    ) -> Resource:
        resource = Resource(
            hub_id=hub.id,
            type=type,
            title=f"{type.title()} {uuid.uuid4().hex[:4]}",
            visibility=visibility,
            capacity=capacity,
            starts_at=starts_at,
            ends_at=ends_at,
            programme_id=programme_id,
            publish_status=publish_status,
        )
        self.session.add(resource)
        await self.session.flush()
        return resource

    async def member(self, user: User, resource: Resource, role: str = "member") -> Membership:
        membership = Membership(
            user_id=user.id,
            resource_id=resource.id,
            hub_id=resource.hub_id,
            role=role,
        )
        self.session.add(membership)
        await self.session.flush()
        return membership

    async def commit(self) -> None:
        await self.session.commit()


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    # Let SQLAlchemy emit BEGIN itself so SAVEPOINTs nest correctly
    @event.listens_for(engine.sync_engine, "connect")
    def _do_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _do_begin(conn):
        conn.exec_driver_sql("BEGIN")

    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def seed(session) -> Seeder:
    return Seeder(session)


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(NOW)


@pytest.fixture
def audit() -> RecordingAuditSink:
    return RecordingAuditSink()

@pytest.fixture
def unreachable_store():
    """Session factory for an audit store that is down."""
    return _UnreachableSession

