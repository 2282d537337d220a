"""
Role directory: hub-scoped role lookups against the role-fact tables.

Mostly reads; the one write is the member grant made when a hub join request
is approved. A user with no assignment in a hub has role ``none``; only an
unknown (or archived) hub is an error.
"""

from __future__ import annotations

import uuid
from typing import Optional

import structlog
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.errors import NotFound, Transient
from app.models.hub import Hub
from app.models.hub_role import HubRoleAssignment
from app.models.user import User
from hubgate_shared.schemas.common import HUB_MANAGER_ROLES, HubRole, HubStatus

log = structlog.get_logger()


async def get_active_hub(hub_id: uuid.UUID, session: AsyncSession) -> Hub:
    """Get a hub by id; raises NotFound if missing or archived."""
    hub = await session.get(Hub, hub_id)
    if not hub or hub.status != HubStatus.ACTIVE.value:
        raise NotFound("Hub not found")
    return hub


async def role_of(
    user_id: Optional[uuid.UUID], hub_id: uuid.UUID, session: AsyncSession
) -> HubRole:
    await get_active_hub(hub_id, session)
    if user_id is None:
        return HubRole.NONE

    result = await session.execute(
        select(HubRoleAssignment.role).where(
            HubRoleAssignment.user_id == user_id,
            HubRoleAssignment.hub_id == hub_id,
        )
    )
    role = result.scalar_one_or_none()
    return HubRole(role) if role else HubRole.NONE


async def is_platform_admin(
    user_id: Optional[uuid.UUID], session: AsyncSession
) -> bool:
    if user_id is None:
        return False
    user = await session.get(User, user_id)
    return bool(user and user.is_platform_admin)


async def is_hub_manager(
    user_id: Optional[uuid.UUID], hub_id: uuid.UUID, session: AsyncSession
) -> bool:
    """Hub leader or supervisor of the hub, or a platform admin."""
    if await role_of(user_id, hub_id, session) in HUB_MANAGER_ROLES:
        return True
    return await is_platform_admin(user_id, session)


async def grant_hub_membership(
    user_id: uuid.UUID, hub_id: uuid.UUID, session: AsyncSession
) -> HubRoleAssignment:
    """Give the user the member role in the hub unless they already hold a role."""
    existing = await session.get(HubRoleAssignment, (user_id, hub_id))
    if existing:
        return existing

    assignment = HubRoleAssignment(user_id=user_id, hub_id=hub_id, role=HubRole.MEMBER.value)
    try:
        async with session.begin_nested():
            session.add(assignment)
    except IntegrityError:
        # A concurrent grant got in first; one role per (user, hub)
        existing = await session.get(HubRoleAssignment, (user_id, hub_id), populate_existing=True)
        if existing is None:
            raise Transient("Hub role write conflicted, retry")
        return existing

    log.info("hub_role.granted", user_id=str(user_id), hub_id=str(hub_id), role=assignment.role)
    return assignment
