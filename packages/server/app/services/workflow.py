"""
Join/registration workflow: the request lifecycle for projects, programmes,
events and the hub itself.

States: pending → approved | rejected (both terminal). There is an implicit
"no request" state before the first request.

Resource request checks run in a fixed order and the first failure wins:
1. signed in                     → Unauthenticated
2. resource exists and is live   → NotFound
3. can view                      → Forbidden
4. not a manager of it           → AlreadyManaging
5. hub member (projects/programmes only) → NotEligible
6. not already a member          → outcome already_member
7. no pending request            → outcome already_pending
8. seats and window              → CapacityExceeded / WindowClosed

Hub join requests (``resource_id`` is NULL) skip visibility, eligibility,
seats and window: signed in, hub active, not a hub leader or supervisor,
not already a hub member, no pending hub request. Approval grants the member
role in the hub.

Nothing is written until every check has passed. Uniqueness of pending
requests and active memberships is enforced by partial unique indexes, so a
concurrent duplicate surfaces as an IntegrityError inside a savepoint and is
folded into the idempotent outcome. Seat checks run under a row lock on the
resource so concurrent admissions to one resource are serialised.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

import structlog
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.audit import AuditRecord, AuditSink, LogAuditSink
from app.core.clock import Clock, system_clock
from app.core.database import store_errors
from app.core.errors import (
    AccessError,
    AlreadyManaging,
    Forbidden,
    InvalidState,
    NotEligible,
    NotFound,
    Transient,
    Unauthenticated,
)
from app.models.join_request import JoinRequest
from app.models.membership import Membership
from app.services.guard import check_admission, check_capacity
from app.services.memberships import active_membership, create_membership
from app.services.resources import get_resource, lock_resource
from app.services.roles import get_active_hub, grant_hub_membership, is_hub_manager, role_of
from app.services.visibility import can_view
from hubgate_shared.schemas.common import (
    HUB_MANAGER_ROLES,
    Decision,
    DECISION_OUTCOME,
    HubRole,
    JoinRequestStatus,
    MembershipRole,
    ResourceKind,
    ResourceType,
    kind_of,
)
from hubgate_shared.schemas.join_requests import JoinOutcomeStatus, validate_resolution

log = structlog.get_logger()

_default_audit = LogAuditSink()


@dataclass
class JoinOutcome:
    status: JoinOutcomeStatus
    request: Optional[JoinRequest] = None
    membership: Optional[Membership] = None

    @property
    def created(self) -> bool:
        return self.status == JoinOutcomeStatus.CREATED


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


async def find_pending_request(
    user_id: uuid.UUID, resource_id: uuid.UUID, session: AsyncSession
) -> Optional[JoinRequest]:
    result = await session.execute(
        select(JoinRequest).where(
            JoinRequest.user_id == user_id,
            JoinRequest.resource_id == resource_id,
            JoinRequest.status == JoinRequestStatus.PENDING.value,
        )
    )
    return result.scalar_one_or_none()


async def find_pending_hub_request(
    user_id: uuid.UUID, hub_id: uuid.UUID, session: AsyncSession
) -> Optional[JoinRequest]:
    result = await session.execute(
        select(JoinRequest).where(
            JoinRequest.user_id == user_id,
            JoinRequest.hub_id == hub_id,
            JoinRequest.resource_id.is_(None),
            JoinRequest.status == JoinRequestStatus.PENDING.value,
        )
    )
    return result.scalar_one_or_none()


def _is_resource_supervisor(membership: Optional[Membership]) -> bool:
    return membership is not None and membership.role == MembershipRole.SUPERVISOR.value


async def _audit_failure(
    audit: AuditSink,
    action: str,
    exc: AccessError,
    *,
    actor_id: Optional[uuid.UUID],
    entity_id: Optional[uuid.UUID],
    payload: dict,
) -> None:
    # The caller's transaction is about to roll back, so no session here
    await audit.emit(
        AuditRecord(
            action=action,
            entity_type="join_request",
            entity_id=entity_id,
            actor_id=actor_id,
            success=False,
            error_code=exc.code.value,
            payload=payload,
        )
    )


async def _insert_request(
    user_id: uuid.UUID,
    hub_id: uuid.UUID,
    resource_id: Optional[uuid.UUID],
    message: Optional[str],
    kind: ResourceKind,
    session: AsyncSession,
    clock: Clock,
    audit: AuditSink,
    refind: Callable[[], Awaitable[Optional[JoinRequest]]],
) -> JoinOutcome:
    now = clock.now()
    join_request = JoinRequest(
        user_id=user_id,
        resource_id=resource_id,
        hub_id=hub_id,
        message=(message or "").strip() or kind.default_message,
        status=JoinRequestStatus.PENDING.value,
        created_at=now,
    )
    try:
        async with session.begin_nested():
            session.add(join_request)
    except IntegrityError:
        # A concurrent request for the same target got in first
        pending = await refind()
        if pending is None:
            raise Transient("Join request write conflicted, retry")
        return JoinOutcome(status=JoinOutcomeStatus.ALREADY_PENDING, request=pending)

    log.info(
        "join_request.created",
        request_id=str(join_request.id),
        user_id=str(user_id),
        hub_id=str(hub_id),
        resource_id=str(resource_id) if resource_id else None,
        resource_type=kind.type.value,
    )
    await audit.emit(
        AuditRecord(
            action="join_request.created",
            entity_type="join_request",
            entity_id=join_request.id,
            actor_id=user_id,
            hub_id=hub_id,
            payload={
                "resource_id": str(resource_id) if resource_id else None,
                "resource_type": kind.type.value,
            },
            timestamp=now,
        ),
        session=session,
    )
    return JoinOutcome(status=JoinOutcomeStatus.CREATED, request=join_request)


# ---------------------------------------------------------------------------
# Request
# ---------------------------------------------------------------------------


async def request_to_join(
    user_id: Optional[uuid.UUID],
    resource_id: uuid.UUID,
    message: Optional[str],
    session: AsyncSession,
    *,
    clock: Clock = system_clock,
    audit: AuditSink = _default_audit,
) -> JoinOutcome:
    """Ask to join a project/programme or register for an event."""
    try:
        async with store_errors("join_request.create"):
            return await _request_to_join(user_id, resource_id, message, session, clock, audit)
    except AccessError as exc:
        log.info(
            "join_request.refused",
            user_id=str(user_id) if user_id else None,
            resource_id=str(resource_id),
            code=exc.code.value,
        )
        await _audit_failure(
            audit,
            "join_request.create_failed",
            exc,
            actor_id=user_id,
            entity_id=None,
            payload={"resource_id": str(resource_id)},
        )
        raise


async def _request_to_join(
    user_id: Optional[uuid.UUID],
    resource_id: uuid.UUID,
    message: Optional[str],
    session: AsyncSession,
    clock: Clock,
    audit: AuditSink,
) -> JoinOutcome:
    if user_id is None:
        raise Unauthenticated("Sign in to join")

    resource = await get_resource(resource_id, session)
    kind = kind_of(resource.type)

    if not await can_view(user_id, resource, session):
        raise Forbidden("Resource is not visible to you")

    hub_role = await role_of(user_id, resource.hub_id, session)
    membership = await active_membership(user_id, resource.id, session)
    if hub_role in HUB_MANAGER_ROLES or _is_resource_supervisor(membership):
        raise AlreadyManaging()

    if kind.requires_hub_membership and hub_role == HubRole.NONE:
        raise NotEligible(f"Hub membership is required to join a {resource.type}")

    if membership is not None:
        return JoinOutcome(status=JoinOutcomeStatus.ALREADY_MEMBER, membership=membership)

    pending = await find_pending_request(user_id, resource.id, session)
    if pending is not None:
        return JoinOutcome(status=JoinOutcomeStatus.ALREADY_PENDING, request=pending)

    if kind.enforces_capacity:
        resource = await lock_resource(resource.id, session)
    await check_admission(resource, session, now=clock.now(), kind=kind)

    return await _insert_request(
        user_id,
        resource.hub_id,
        resource.id,
        message,
        kind,
        session,
        clock,
        audit,
        refind=lambda: find_pending_request(user_id, resource.id, session),
    )


async def request_to_join_hub(
    user_id: Optional[uuid.UUID],
    hub_id: uuid.UUID,
    message: Optional[str],
    session: AsyncSession,
    *,
    clock: Clock = system_clock,
    audit: AuditSink = _default_audit,
) -> JoinOutcome:
    """Ask a hub's leaders for the member role in the hub."""
    try:
        async with store_errors("join_request.create"):
            return await _request_to_join_hub(user_id, hub_id, message, session, clock, audit)
    except AccessError as exc:
        log.info(
            "join_request.refused",
            user_id=str(user_id) if user_id else None,
            hub_id=str(hub_id),
            code=exc.code.value,
        )
        await _audit_failure(
            audit,
            "join_request.create_failed",
            exc,
            actor_id=user_id,
            entity_id=None,
            payload={"hub_id": str(hub_id), "resource_type": ResourceType.HUB.value},
        )
        raise


async def _request_to_join_hub(
    user_id: Optional[uuid.UUID],
    hub_id: uuid.UUID,
    message: Optional[str],
    session: AsyncSession,
    clock: Clock,
    audit: AuditSink,
) -> JoinOutcome:
    if user_id is None:
        raise Unauthenticated("Sign in to join")

    hub = await get_active_hub(hub_id, session)

    hub_role = await role_of(user_id, hub.id, session)
    if hub_role in HUB_MANAGER_ROLES:
        raise AlreadyManaging("You already lead this hub")
    if hub_role == HubRole.MEMBER:
        return JoinOutcome(status=JoinOutcomeStatus.ALREADY_MEMBER)

    pending = await find_pending_hub_request(user_id, hub.id, session)
    if pending is not None:
        return JoinOutcome(status=JoinOutcomeStatus.ALREADY_PENDING, request=pending)

    return await _insert_request(
        user_id,
        hub.id,
        None,
        message,
        kind_of(ResourceType.HUB),
        session,
        clock,
        audit,
        refind=lambda: find_pending_hub_request(user_id, hub.id, session),
    )


# ---------------------------------------------------------------------------
# Resolve
# ---------------------------------------------------------------------------


async def resolve_request(
    resolver_id: Optional[uuid.UUID],
    request_id: uuid.UUID,
    decision: Decision,
    message: Optional[str],
    session: AsyncSession,
    *,
    clock: Clock = system_clock,
    audit: AuditSink = _default_audit,
) -> JoinRequest:
    """Approve or reject a pending request. Approval creates the membership."""
    try:
        async with store_errors("join_request.resolve"):
            return await _resolve_request(
                resolver_id, request_id, decision, message, session, clock, audit
            )
    except AccessError as exc:
        log.info(
            "join_request.resolve_refused",
            request_id=str(request_id),
            resolver_id=str(resolver_id) if resolver_id else None,
            code=exc.code.value,
        )
        await _audit_failure(
            audit,
            "join_request.resolve_failed",
            exc,
            actor_id=resolver_id,
            entity_id=request_id,
            payload={"decision": decision.value},
        )
        raise


async def can_review(
    user_id: uuid.UUID,
    hub_id: uuid.UUID,
    resource_id: Optional[uuid.UUID],
    session: AsyncSession,
) -> bool:
    """Hub managers, platform admins and the resource's own supervisors."""
    if await is_hub_manager(user_id, hub_id, session):
        return True
    if resource_id is None:
        return False
    membership = await active_membership(user_id, resource_id, session)
    return _is_resource_supervisor(membership)


async def _resolve_request(
    resolver_id: Optional[uuid.UUID],
    request_id: uuid.UUID,
    decision: Decision,
    message: Optional[str],
    session: AsyncSession,
    clock: Clock,
    audit: AuditSink,
) -> JoinRequest:
    if resolver_id is None:
        raise Unauthenticated("Sign in to review requests")

    join_request = await session.get(JoinRequest, request_id)
    if not join_request:
        raise NotFound("Join request not found")

    is_valid, error_msg = validate_resolution(JoinRequestStatus(join_request.status), decision)
    if not is_valid:
        raise InvalidState(error_msg)

    if not await can_review(
        resolver_id, join_request.hub_id, join_request.resource_id, session
    ):
        raise Forbidden("Only hub leaders and supervisors can review requests")

    resource = None
    if join_request.resource_id is not None:
        resource = await lock_resource(join_request.resource_id, session)
        if decision == Decision.APPROVE:
            await check_capacity(resource, session)

    now = clock.now()
    target = DECISION_OUTCOME[decision]
    result = await session.execute(
        update(JoinRequest)
        .where(
            JoinRequest.id == request_id,
            JoinRequest.status == JoinRequestStatus.PENDING.value,
        )
        .values(
            status=target.value,
            resolved_at=now,
            resolved_by=resolver_id,
            resolution_message=message,
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise InvalidState("Join request was resolved concurrently")
    await session.refresh(join_request)

    payload = {
        "resource_id": str(join_request.resource_id) if join_request.resource_id else None,
        "requester_id": str(join_request.user_id),
    }
    if decision == Decision.APPROVE:
        if resource is None:
            await grant_hub_membership(join_request.user_id, join_request.hub_id, session)
        else:
            membership = await create_membership(
                join_request.user_id, resource, MembershipRole.MEMBER, session, now=now
            )
            payload["membership_id"] = str(membership.id)

    log.info(
        f"join_request.{target.value}",
        request_id=str(request_id),
        resolver_id=str(resolver_id),
        hub_id=str(join_request.hub_id),
        resource_id=payload["resource_id"],
    )
    await audit.emit(
        AuditRecord(
            action=f"join_request.{target.value}",
            entity_type="join_request",
            entity_id=join_request.id,
            actor_id=resolver_id,
            hub_id=join_request.hub_id,
            payload=payload,
            timestamp=now,
        ),
        session=session,
    )
    return join_request


# ---------------------------------------------------------------------------
# Read models
# ---------------------------------------------------------------------------


async def get_request(request_id: uuid.UUID, session: AsyncSession) -> JoinRequest:
    join_request = await session.get(JoinRequest, request_id)
    if not join_request:
        raise NotFound("Join request not found")
    return join_request


async def pending_requests_for_hub(
    hub_id: uuid.UUID, session: AsyncSession
) -> list[JoinRequest]:
    """Pending requests for the hub and all of its resources, oldest first."""
    async with store_errors("join_request.list_for_hub"):
        await get_active_hub(hub_id, session)
        result = await session.execute(
            select(JoinRequest)
            .where(
                JoinRequest.hub_id == hub_id,
                JoinRequest.status == JoinRequestStatus.PENDING.value,
            )
            .order_by(JoinRequest.created_at)
        )
        return list(result.scalars().all())


async def pending_requests_for_resource(
    resource_id: uuid.UUID, session: AsyncSession
) -> list[JoinRequest]:
    async with store_errors("join_request.list_for_resource"):
        result = await session.execute(
            select(JoinRequest)
            .where(
                JoinRequest.resource_id == resource_id,
                JoinRequest.status == JoinRequestStatus.PENDING.value,
            )
            .order_by(JoinRequest.created_at)
        )
        return list(result.scalars().all())


async def requests_for_user(
    user_id: uuid.UUID, session: AsyncSession
) -> list[JoinRequest]:
    """A user's own requests in every state, newest first."""
    async with store_errors("join_request.list_for_user"):
        result = await session.execute(
            select(JoinRequest)
            .where(JoinRequest.user_id == user_id)
            .order_by(JoinRequest.created_at.desc())
        )
        return list(result.scalars().all())
