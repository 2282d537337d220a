"""
Membership registry: active memberships of users in resources.

A partial unique index keeps at most one active membership per
(user, resource); ``create_membership`` is idempotent on top of it.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Optional

import structlog
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.errors import NotFound, Transient
from app.models.membership import Membership
from app.models.resource import Resource
from hubgate_shared.schemas.common import MembershipRole, MembershipStatus

log = structlog.get_logger()


async def active_membership(
    user_id: Optional[uuid.UUID], resource_id: uuid.UUID, session: AsyncSession
) -> Optional[Membership]:
    if user_id is None:
        return None
    result = await session.execute(
        select(Membership).where(
            Membership.user_id == user_id,
            Membership.resource_id == resource_id,
            Membership.status == MembershipStatus.ACTIVE.value,
        )
    )
    return result.scalar_one_or_none()


async def create_membership(
    user_id: uuid.UUID,
    resource: Resource,
    role: MembershipRole,
    session: AsyncSession,
    *,
    now: Optional[datetime] = None,
) -> Membership:
    """Create an active membership, or return the one that already exists."""
    existing = await active_membership(user_id, resource.id, session)
    if existing:
        return existing

    membership = Membership(
        user_id=user_id,
        resource_id=resource.id,
        hub_id=resource.hub_id,
        role=role.value,
        status=MembershipStatus.ACTIVE.value,
        created_at=now or datetime.now(timezone.utc),
    )
    try:
        async with session.begin_nested():
            session.add(membership)
    except IntegrityError:
        # Lost a race with a concurrent insert; the winner is the membership
        existing = await active_membership(user_id, resource.id, session)
        if existing is None:
            raise Transient("Membership write conflicted, retry")
        log.info(
            "membership.create_raced",
            user_id=str(user_id),
            resource_id=str(resource.id),
        )
        return existing

    log.info(
        "membership.created",
        membership_id=str(membership.id),
        user_id=str(user_id),
        resource_id=str(resource.id),
        role=role.value,
    )
    return membership


async def count_active(resource_id: uuid.UUID, session: AsyncSession) -> int:
    """Seats taken: active memberships with the member role."""
    result = await session.execute(
        select(func.count())
        .select_from(Membership)
        .where(
            Membership.resource_id == resource_id,
            Membership.status == MembershipStatus.ACTIVE.value,
            Membership.role == MembershipRole.MEMBER.value,
        )
    )
    return result.scalar_one()


async def list_active(
    resource_id: uuid.UUID, session: AsyncSession
) -> list[Membership]:
    result = await session.execute(
        select(Membership)
        .where(
            Membership.resource_id == resource_id,
            Membership.status == MembershipStatus.ACTIVE.value,
        )
        .order_by(Membership.created_at)
    )
    return list(result.scalars().all())


async def terminate_membership(
    user_id: uuid.UUID,
    resource_id: uuid.UUID,
    session: AsyncSession,
    *,
    now: Optional[datetime] = None,
) -> Membership:
    """End an active membership (leaving frees the seat)."""
    membership = await active_membership(user_id, resource_id, session)
    if not membership:
        raise NotFound("No active membership")

    membership.status = MembershipStatus.TERMINATED.value
    membership.terminated_at = now or datetime.now(timezone.utc)
    session.add(membership)
    await session.flush()

    log.info(
        "membership.terminated",
        membership_id=str(membership.id),
        user_id=str(user_id),
        resource_id=str(resource_id),
    )
    return membership
