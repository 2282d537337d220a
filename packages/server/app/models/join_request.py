"""Join/registration request model. Rows are never deleted.

A request with no ``resource_id`` asks to join the hub itself.
"""

from datetime import datetime
from typing import Optional
import uuid

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import CreatedAtMixin, UUIDMixin


class JoinRequest(UUIDMixin, CreatedAtMixin, SQLModel, table=True):
    __tablename__ = "join_requests"
    __table_args__ = (
        # At most one pending request per (user, resource)
        sa.Index(
            "uq_join_requests_pending",
            "user_id",
            "resource_id",
            unique=True,
            postgresql_where=sa.text("status = 'pending'"),
            sqlite_where=sa.text("status = 'pending'"),
        ),
        # ... and per (user, hub) for hub joins, where resource_id is NULL
        sa.Index(
            "uq_join_requests_hub_pending",
            "user_id",
            "hub_id",
            unique=True,
            postgresql_where=sa.text("status = 'pending' AND resource_id IS NULL"),
            sqlite_where=sa.text("status = 'pending' AND resource_id IS NULL"),
        ),
    )

    user_id: uuid.UUID = Field(foreign_key="users.id", nullable=False, index=True)
    resource_id: Optional[uuid.UUID] = Field(default=None, foreign_key="resources.id", index=True)
    hub_id: uuid.UUID = Field(foreign_key="hubs.id", nullable=False, index=True)
    message: Optional[str] = None
    status: str = Field(nullable=False, default="pending")  # pending | approved | rejected
    resolved_at: Optional[datetime] = Field(default=None, sa_type=sa.DateTime(timezone=True))
    resolved_by: Optional[uuid.UUID] = Field(default=None, foreign_key="users.id")
    resolution_message: Optional[str] = None
