"""
Resource access endpoints: visibility, join/registration requests, membership.

- GET access is open to anonymous callers (public resources are viewable)
- POST join-requests returns 201 for a new request and 200 for the idempotent
  outcomes (already pending, already a member)
"""

from __future__ import annotations

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.audit import AuditSink, get_audit_sink
from app.core.auth import Principal, get_optional_principal, require_principal
from app.core.clock import Clock, get_clock
from app.core.database import get_session
from app.core.errors import Forbidden
from app.services import memberships, workflow
from app.services.resources import get_resource
from app.services.visibility import can_view
from hubgate_shared.schemas.join_requests import (
    AccessRead,
    JoinOutcomeRead,
    JoinRequestCreate,
    JoinRequestListResponse,
    JoinRequestRead,
    MembershipRead,
)

router = APIRouter()


def outcome_to_read(outcome: workflow.JoinOutcome) -> JoinOutcomeRead:
    return JoinOutcomeRead(
        outcome=outcome.status,
        request=JoinRequestRead.model_validate(outcome.request) if outcome.request else None,
        membership=(
            MembershipRead.model_validate(outcome.membership) if outcome.membership else None
        ),
    )


@router.get("/{resource_id}/access", response_model=AccessRead)
async def get_access(
    resource_id: uuid.UUID,
    principal: Optional[Principal] = Depends(get_optional_principal),
    session: AsyncSession = Depends(get_session),
):
    """Can the caller see this resource, and where do they stand with it?"""
    resource = await get_resource(resource_id, session)
    user_id = principal.user_id if principal else None
    visible = await can_view(user_id, resource, session)

    membership = None
    pending = None
    if visible and user_id is not None:
        membership = await memberships.active_membership(user_id, resource.id, session)
        pending = await workflow.find_pending_request(user_id, resource.id, session)

    return AccessRead(
        resource_id=resource.id,
        resource_type=resource.type,
        can_view=visible,
        membership=MembershipRead.model_validate(membership) if membership else None,
        pending_request=JoinRequestRead.model_validate(pending) if pending else None,
    )


@router.post("/{resource_id}/join-requests", response_model=JoinOutcomeRead)
async def create_join_request(
    resource_id: uuid.UUID,
    body: JoinRequestCreate,
    response: Response,
    principal: Optional[Principal] = Depends(get_optional_principal),
    session: AsyncSession = Depends(get_session),
    clock: Clock = Depends(get_clock),
    audit: AuditSink = Depends(get_audit_sink),
):
    """Request to join a project/programme or register for an event."""
    user_id = principal.user_id if principal else None
    if principal and body.user_id and body.user_id != principal.user_id:
        if not principal.is_platform_admin:
            raise Forbidden("Can only request to join for yourself")
        user_id = body.user_id

    outcome = await workflow.request_to_join(
        user_id, resource_id, body.message, session, clock=clock, audit=audit
    )
    response.status_code = 201 if outcome.created else 200
    return outcome_to_read(outcome)


@router.get("/{resource_id}/join-requests", response_model=JoinRequestListResponse)
async def list_resource_join_requests(
    resource_id: uuid.UUID,
    principal: Principal = Depends(require_principal),
    session: AsyncSession = Depends(get_session),
):
    """Pending requests for one resource (its reviewers only)."""
    resource = await get_resource(resource_id, session)
    if not await workflow.can_review(principal.user_id, resource.hub_id, resource.id, session):
        raise Forbidden("Only hub leaders and supervisors can review requests")
    pending = await workflow.pending_requests_for_resource(resource.id, session)
    return {"data": [JoinRequestRead.model_validate(r) for r in pending]}


@router.get("/{resource_id}/membership", response_model=Optional[MembershipRead])
async def get_membership(
    resource_id: uuid.UUID,
    principal: Principal = Depends(require_principal),
    session: AsyncSession = Depends(get_session),
):
    resource = await get_resource(resource_id, session)
    membership = await memberships.active_membership(principal.user_id, resource.id, session)
    return MembershipRead.model_validate(membership) if membership else None


@router.delete("/{resource_id}/membership", response_model=MembershipRead)
async def leave_resource(
    resource_id: uuid.UUID,
    principal: Principal = Depends(require_principal),
    session: AsyncSession = Depends(get_session),
    clock: Clock = Depends(get_clock),
):
    """Leave a project/programme or cancel an event registration."""
    resource = await get_resource(resource_id, session)
    membership = await memberships.terminate_membership(
        principal.user_id, resource.id, session, now=clock.now()
    )
    return MembershipRead.model_validate(membership)
