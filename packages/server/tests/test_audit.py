"""
Tests for audit sinks.
"""

import uuid

from sqlalchemy import func
from sqlmodel import select

from app.core.audit import AuditRecord, DatabaseAuditSink, LogAuditSink, get_audit_sink
from app.models.audit_event import AuditEvent


def _record(**overrides) -> AuditRecord:
    fields = {"action": "join_request.created", "entity_type": "join_request"}
    fields.update(overrides)
    return AuditRecord(**fields)


async def _audit_rows(session) -> int:
    return (await session.execute(select(func.count()).select_from(AuditEvent))).scalar_one()


async def test_database_sink_persists_record(session_factory):
    sink = DatabaseAuditSink(session_factory)
    request_id = uuid.uuid4()

    await sink.emit(
        _record(
            action="join_request.create_failed",
            entity_id=request_id,
            success=False,
            error_code="WINDOW_CLOSED",
            payload={"resource_id": "abc"},
        )
    )

    async with session_factory() as session:
        rows = (await session.execute(select(AuditEvent))).scalars().all()
    assert len(rows) == 1
    assert rows[0].action == "join_request.create_failed"
    assert rows[0].entity_id == request_id
    assert rows[0].success is False
    assert rows[0].payload == {"resource_id": "abc"}


async def test_own_transaction_write_failure_is_dropped(unreachable_store):
    # Must not raise: the caller is already reporting a different error
    await DatabaseAuditSink(unreachable_store).emit(
        _record(action="join_request.create_failed", success=False, error_code="TRANSIENT")
    )


async def test_record_in_caller_session_rolls_back_with_it(session, session_factory):
    sink = DatabaseAuditSink(session_factory)

    await sink.emit(_record(), session=session)
    await session.rollback()
    assert await _audit_rows(session) == 0

    await sink.emit(_record(action="join_request.approved"), session=session)
    await session.commit()
    rows = (await session.execute(select(AuditEvent))).scalars().all()
    assert [r.action for r in rows] == ["join_request.approved"]


async def test_caller_session_write_does_not_open_its_own():
    opened = []
    added = []

    def factory():
        opened.append(True)
        raise AssertionError("audit sink opened its own session")

    sink = DatabaseAuditSink(factory)

    class _CallerSession:
        def add(self, obj):
            added.append(obj)

    await sink.emit(_record(), session=_CallerSession())
    assert len(added) == 1
    assert isinstance(added[0], AuditEvent)
    assert opened == []


async def test_log_sink_accepts_records():
    await LogAuditSink().emit(_record())


def test_default_sink_follows_settings():
    # Tests run with HG_AUDIT_TO_DATABASE=false
    assert isinstance(get_audit_sink(), LogAuditSink)
