"""
Hub endpoints: asking to join a hub and the hub leader's review queue.
"""

from __future__ import annotations

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.resources import outcome_to_read
from app.core.audit import AuditSink, get_audit_sink
from app.core.auth import Principal, get_optional_principal, require_principal
from app.core.clock import Clock, get_clock
from app.core.database import get_session
from app.core.errors import Forbidden
from app.services import workflow
from app.services.roles import is_hub_manager
from hubgate_shared.schemas.join_requests import (
    JoinOutcomeRead,
    JoinRequestCreate,
    JoinRequestListResponse,
    JoinRequestRead,
)

router = APIRouter()


@router.post("/{hub_id}/join-requests", response_model=JoinOutcomeRead)
async def create_hub_join_request(
    hub_id: uuid.UUID,
    body: JoinRequestCreate,
    response: Response,
    principal: Optional[Principal] = Depends(get_optional_principal),
    session: AsyncSession = Depends(get_session),
    clock: Clock = Depends(get_clock),
    audit: AuditSink = Depends(get_audit_sink),
):
    """Ask to become a member of the hub."""
    user_id = principal.user_id if principal else None
    if principal and body.user_id and body.user_id != principal.user_id:
        if not principal.is_platform_admin:
            raise Forbidden("Can only request membership for yourself")
        user_id = body.user_id

    outcome = await workflow.request_to_join_hub(
        user_id, hub_id, body.message, session, clock=clock, audit=audit
    )
    response.status_code = 201 if outcome.created else 200
    return outcome_to_read(outcome)


@router.get("/{hub_id}/join-requests", response_model=JoinRequestListResponse)
async def list_hub_join_requests(
    hub_id: uuid.UUID,
    principal: Principal = Depends(require_principal),
    session: AsyncSession = Depends(get_session),
):
    """Pending requests for the hub and its resources, oldest first."""
    if not await is_hub_manager(principal.user_id, hub_id, session):
        raise Forbidden("Only hub leaders and supervisors can review requests")
    pending = await workflow.pending_requests_for_hub(hub_id, session)
    return {"data": [JoinRequestRead.model_validate(r) for r in pending]}
