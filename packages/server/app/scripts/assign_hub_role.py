"""
Script to seed role facts for local testing: ensure a user and a hub exist
and give the user a role in the hub.
"""

import argparse
import asyncio

import structlog
from sqlmodel import select

from app.core.config import get_settings
from app.core.database import get_session_context, init_db
from app.core.logging import configure_logging
from app.models.hub import Hub
from app.models.hub_role import HubRoleAssignment
from app.models.user import User
from hubgate_shared.schemas.common import HubRole

log = structlog.get_logger()


async def assign_role(email: str, hub_slug: str, role: HubRole, platform_admin: bool):
    await init_db()

    async with get_session_context() as session:
        # 1. Ensure hub exists
        result = await session.execute(select(Hub).where(Hub.slug == hub_slug))
        hub = result.scalar_one_or_none()
        if not hub:
            hub = Hub(name=hub_slug.replace("-", " ").title(), slug=hub_slug)
            session.add(hub)
            log.info("hub.created", slug=hub_slug)

        # 2. Ensure user exists
        result = await session.execute(select(User).where(User.email == email))
        user = result.scalar_one_or_none()
        if not user:
            user = User(email=email, display_name=email.split("@")[0])
            session.add(user)
            log.info("user.created", email=email)
        if platform_admin:
            user.is_platform_admin = True

        await session.flush()

        # 3. One role per (user, hub): replace whatever is there
        assignment = await session.get(HubRoleAssignment, (user.id, hub.id))
        if assignment:
            assignment.role = role.value
        else:
            assignment = HubRoleAssignment(user_id=user.id, hub_id=hub.id, role=role.value)
        session.add(assignment)

    log.info("hub_role.assigned", email=email, hub=hub_slug, role=role.value)


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Give a user a role in a hub.")
    parser.add_argument("--email", required=True, help="Email address for the user")
    parser.add_argument("--hub", required=True, help="Hub slug (created if missing)")
    parser.add_argument(
        "--role",
        default=HubRole.MEMBER.value,
        choices=[r.value for r in HubRole if r != HubRole.NONE],
    )
    parser.add_argument("--platform-admin", action="store_true")

    args = parser.parse_args()
    settings = get_settings()
    configure_logging(settings.log_level, "text")

    asyncio.run(assign_role(args.email, args.hub, HubRole(args.role), args.platform_admin))
