"""Resource membership (project/programme members, event registrations)."""

from datetime import datetime
from typing import Optional
import uuid

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import CreatedAtMixin, UUIDMixin


class Membership(UUIDMixin, CreatedAtMixin, SQLModel, table=True):
    __tablename__ = "memberships"
    __table_args__ = (
        # At most one active membership per (user, resource)
        sa.Index(
            "uq_memberships_active",
            "user_id",
            "resource_id",
            unique=True,
            postgresql_where=sa.text("status = 'active'"),
            sqlite_where=sa.text("status = 'active'"),
        ),
    )

    user_id: uuid.UUID = Field(foreign_key="users.id", nullable=False, index=True)
    resource_id: uuid.UUID = Field(foreign_key="resources.id", nullable=False, index=True)
    hub_id: uuid.UUID = Field(foreign_key="hubs.id", nullable=False, index=True)
    role: str = Field(nullable=False, default="member")  # member | supervisor
    status: str = Field(nullable=False, default="active")  # active | terminated
    terminated_at: Optional[datetime] = Field(default=None, sa_type=sa.DateTime(timezone=True))
