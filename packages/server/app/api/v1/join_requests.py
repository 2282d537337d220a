"""
Join request endpoints: resolution by reviewers and the caller's own list.
"""

from __future__ import annotations

import uuid
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.audit import AuditSink, get_audit_sink
from app.core.auth import Principal, get_optional_principal, require_principal
from app.core.clock import Clock, get_clock
from app.core.database import get_session
from app.services import workflow
from hubgate_shared.schemas.join_requests import (
    JoinRequestListResponse,
    JoinRequestRead,
    JoinRequestResolve,
)

router = APIRouter()


@router.get("/mine", response_model=JoinRequestListResponse)
async def list_my_requests(
    principal: Principal = Depends(require_principal),
    session: AsyncSession = Depends(get_session),
):
    requests = await workflow.requests_for_user(principal.user_id, session)
    return {"data": [JoinRequestRead.model_validate(r) for r in requests]}


@router.post("/{request_id}/resolve", response_model=JoinRequestRead)
async def resolve_join_request(
    request_id: uuid.UUID,
    body: JoinRequestResolve,
    principal: Optional[Principal] = Depends(get_optional_principal),
    session: AsyncSession = Depends(get_session),
    clock: Clock = Depends(get_clock),
    audit: AuditSink = Depends(get_audit_sink),
):
    """Approve or reject a pending request (hub leaders, supervisors, admins)."""
    join_request = await workflow.resolve_request(
        principal.user_id if principal else None,
        request_id,
        body.decision,
        body.message,
        session,
        clock=clock,
        audit=audit,
    )
    return JoinRequestRead.model_validate(join_request)
