"""Audit event model (append-only, read by the audit-log subsystem)."""

from datetime import datetime
from typing import Optional
import uuid

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB
from sqlmodel import Field, SQLModel

from .base import _utcnow


class AuditEvent(SQLModel, table=True):
    __tablename__ = "audit_events"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    action: str = Field(nullable=False, index=True)  # e.g. join_request.created
    entity_type: str = Field(nullable=False)  # join_request | membership
    entity_id: Optional[uuid.UUID] = Field(default=None, index=True)
    actor_id: Optional[uuid.UUID] = Field(default=None, index=True)
    hub_id: Optional[uuid.UUID] = Field(default=None, index=True)
    success: bool = Field(nullable=False)
    error_code: Optional[str] = None
    payload: dict = Field(
        default_factory=dict,
        sa_type=sa.JSON().with_variant(JSONB, "postgresql"),
        nullable=False,
    )
    timestamp: datetime = Field(
        default_factory=_utcnow,
        nullable=False,
        sa_type=sa.DateTime(timezone=True),
    )
