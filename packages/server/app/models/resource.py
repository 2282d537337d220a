"""Joinable resource model: projects, programmes and events."""

from datetime import datetime
from typing import Optional
import uuid

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import CreatedAtMixin, UUIDMixin


class Resource(UUIDMixin, CreatedAtMixin, SQLModel, table=True):
    __tablename__ = "resources"
    __table_args__ = (
        sa.CheckConstraint("capacity IS NULL OR capacity >= 1", name="positive_capacity"),
        sa.CheckConstraint(
            "starts_at IS NULL OR ends_at IS NULL OR starts_at <= ends_at",
            name="ordered_window",
        ),
    )

    hub_id: uuid.UUID = Field(foreign_key="hubs.id", nullable=False, index=True)
    type: str = Field(nullable=False)  # project | programme | event
    title: str = Field(nullable=False)
    visibility: str = Field(nullable=False, default="hub_members")
    # Programme whose members may see a programme_members resource
    programme_id: Optional[uuid.UUID] = Field(default=None, foreign_key="resources.id")
    capacity: Optional[int] = None
    starts_at: Optional[datetime] = Field(default=None, sa_type=sa.DateTime(timezone=True))
    ends_at: Optional[datetime] = Field(default=None, sa_type=sa.DateTime(timezone=True))
    publish_status: str = Field(default="published", nullable=False)  # draft | published | archived
    deleted_at: Optional[datetime] = Field(default=None, sa_type=sa.DateTime(timezone=True))
