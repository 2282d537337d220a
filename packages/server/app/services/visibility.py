"""
Visibility resolver: may this principal (or an anonymous caller) see a
resource?

Policies:
- public: everyone, including anonymous callers
- authenticated: any signed-in user, hub relationship or not
- hub_members: any role in the owning hub
- programme_members: an active member of the programme, or a hub manager
"""

from __future__ import annotations

import uuid
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.models.resource import Resource
from app.services.memberships import active_membership
from app.services.roles import is_hub_manager, role_of
from hubgate_shared.schemas.common import HubRole, ResourceType, Visibility


async def can_view(
    user_id: Optional[uuid.UUID], resource: Resource, session: AsyncSession
) -> bool:
    policy = Visibility(resource.visibility)

    if policy == Visibility.PUBLIC:
        return True
    if user_id is None:
        return False
    if policy == Visibility.AUTHENTICATED:
        return True
    if policy == Visibility.HUB_MEMBERS:
        return await role_of(user_id, resource.hub_id, session) != HubRole.NONE

    # programme_members
    if await is_hub_manager(user_id, resource.hub_id, session):
        return True
    programme_id = resource.programme_id
    if programme_id is None and resource.type == ResourceType.PROGRAMME.value:
        programme_id = resource.id
    if programme_id is None:
        return False
    return await active_membership(user_id, programme_id, session) is not None
