"""
Capacity & window guard: admission checks consulted before a request is
created (and, for capacity, again before it is approved).

The capacity check is best effort: it reads the active count at check time.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.clock import as_utc
from app.core.errors import CapacityExceeded, WindowClosed
from app.models.resource import Resource
from app.services.memberships import count_active
from hubgate_shared.schemas.common import ResourceKind, kind_of


async def check_capacity(resource: Resource, session: AsyncSession) -> None:
    if resource.capacity is None:
        return
    active = await count_active(resource.id, session)
    if active >= resource.capacity:
        raise CapacityExceeded(
            f"{resource.type.capitalize()} is full ({active}/{resource.capacity})"
        )


def check_window(resource: Resource, now: datetime) -> None:
    now = as_utc(now)
    if resource.starts_at is not None and now < as_utc(resource.starts_at):
        raise WindowClosed(f"Opens at {as_utc(resource.starts_at).isoformat()}")
    if resource.ends_at is not None and now > as_utc(resource.ends_at):
        raise WindowClosed(f"Closed at {as_utc(resource.ends_at).isoformat()}")


async def check_admission(
    resource: Resource,
    session: AsyncSession,
    *,
    now: datetime,
    kind: Optional[ResourceKind] = None,
) -> None:
    """Raise CapacityExceeded or WindowClosed if a new request may not be admitted."""
    kind = kind or kind_of(resource.type)
    if kind.enforces_capacity:
        await check_capacity(resource, session)
    if kind.enforces_window:
        check_window(resource, now)
