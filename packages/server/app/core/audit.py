"""
Audit sink for join/registration state transitions.

Every request creation and resolution, successful or not, is reported here.
Records of a completed transition are written in the caller's session so they
commit or roll back with the transition itself. Records of failed attempts are
written in their own short transaction, since the caller rolls back; that
write is best effort and never replaces the error being reported.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any, Optional, Protocol

import structlog
from pydantic import BaseModel, Field
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.audit_event import AuditEvent

log = structlog.get_logger()


class AuditRecord(BaseModel):
    action: str
    entity_type: str
    entity_id: Optional[uuid.UUID] = None
    actor_id: Optional[uuid.UUID] = None
    hub_id: Optional[uuid.UUID] = None
    success: bool = True
    error_code: Optional[str] = None
    payload: dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class AuditSink(Protocol):
    async def emit(
        self, record: AuditRecord, session: Optional[AsyncSession] = None
    ) -> None: ...


def _log_record(record: AuditRecord) -> None:
    log.info(
        "audit.recorded",
        action=record.action,
        entity_type=record.entity_type,
        entity_id=str(record.entity_id) if record.entity_id else None,
        actor_id=str(record.actor_id) if record.actor_id else None,
        success=record.success,
        error_code=record.error_code,
    )


def _to_event(record: AuditRecord) -> AuditEvent:
    return AuditEvent(
        action=record.action,
        entity_type=record.entity_type,
        entity_id=record.entity_id,
        actor_id=record.actor_id,
        hub_id=record.hub_id,
        success=record.success,
        error_code=record.error_code,
        payload=record.payload,
        timestamp=record.timestamp,
    )


class LogAuditSink:
    """Structured-log only; used when no audit table is configured."""

    async def emit(
        self, record: AuditRecord, session: Optional[AsyncSession] = None
    ) -> None:
        _log_record(record)


class DatabaseAuditSink:
    """Persist audit records to ``audit_events``.

    With ``session`` the record joins the caller's transaction. Without it the
    record is committed on its own; a store failure there is logged and
    dropped.
    """

    def __init__(self, session_factory):
        self._session_factory = session_factory

    async def emit(
        self, record: AuditRecord, session: Optional[AsyncSession] = None
    ) -> None:
        if session is not None:
            session.add(_to_event(record))
            _log_record(record)
            return

        try:
            async with self._session_factory() as own_session:
                own_session.add(_to_event(record))
                await own_session.commit()
        except (SQLAlchemyError, OSError) as exc:
            log.warning(
                "audit.write_failed",
                action=record.action,
                entity_id=str(record.entity_id) if record.entity_id else None,
                error=str(exc),
            )
            return
        _log_record(record)


def get_audit_sink() -> AuditSink:
    """FastAPI dependency: the configured audit sink."""
    from app.core.config import get_settings
    from app.core.database import async_session_factory

    if get_settings().audit_to_database:
        return DatabaseAuditSink(async_session_factory)
    return LogAuditSink()
