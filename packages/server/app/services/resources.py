"""Resource lookup: only published, live resources of active hubs are visible.

Capacity checks read the active member count and then insert; two
transactions doing that for the same resource must not interleave, so both
the request and the approval path take a row lock on the resource first
(``lock_resource``). SQLite has no row locks and ignores ``FOR UPDATE``; its
writers are serialised by the database lock instead.
"""

from __future__ import annotations

import uuid

from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.errors import NotFound
from app.models.hub import Hub
from app.models.resource import Resource
from hubgate_shared.schemas.common import HubStatus, PublishStatus


async def get_resource(resource_id: uuid.UUID, session: AsyncSession) -> Resource:
    result = await session.execute(
        select(Resource)
        .join(Hub, Hub.id == Resource.hub_id)
        .where(
            Resource.id == resource_id,
            Resource.deleted_at.is_(None),
            Resource.publish_status == PublishStatus.PUBLISHED.value,
            Hub.status == HubStatus.ACTIVE.value,
        )
    )
    resource = result.scalar_one_or_none()
    if not resource:
        raise NotFound("Resource not found")
    return resource


def lock_statement(resource_id: uuid.UUID):
    return (
        select(Resource)
        .where(Resource.id == resource_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )


async def lock_resource(resource_id: uuid.UUID, session: AsyncSession) -> Resource:
    """Re-read the resource under a row lock held until the transaction ends."""
    result = await session.execute(lock_statement(resource_id))
    resource = result.scalar_one_or_none()
    if not resource:
        raise NotFound("Resource not found")
    return resource
