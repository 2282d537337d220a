"""Join request and membership schemas shared between the server and portal codegen."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field
from pydantic import UUID4

from .common import (
    Decision,
    JoinRequestStatus,
    JOIN_REQUEST_TRANSITIONS,
    DECISION_OUTCOME,
    MembershipRole,
    MembershipStatus,
    ResourceType,
)


class JoinOutcomeStatus(str, Enum):
    CREATED = "created"
    ALREADY_PENDING = "already_pending"
    ALREADY_MEMBER = "already_member"


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------

class JoinRequestCreate(BaseModel):
    """Ask to join a project/programme or register for an event."""
    message: Optional[str] = Field(default=None, max_length=2000)
    user_id: Optional[UUID4] = None  # platform admins may request on someone's behalf


class JoinRequestResolve(BaseModel):
    decision: Decision
    message: Optional[str] = Field(default=None, max_length=2000)


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------

class JoinRequestRead(BaseModel):
    id: UUID4
    user_id: UUID4
    resource_id: Optional[UUID4] = None  # None for hub joins
    hub_id: UUID4
    message: Optional[str] = None
    status: JoinRequestStatus
    created_at: datetime
    resolved_at: Optional[datetime] = None
    resolved_by: Optional[UUID4] = None
    resolution_message: Optional[str] = None

    model_config = {"from_attributes": True}


class MembershipRead(BaseModel):
    id: UUID4
    user_id: UUID4
    resource_id: UUID4
    hub_id: UUID4
    role: MembershipRole
    status: MembershipStatus
    created_at: datetime
    terminated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class JoinOutcomeRead(BaseModel):
    outcome: JoinOutcomeStatus
    request: Optional[JoinRequestRead] = None
    membership: Optional[MembershipRead] = None


class AccessRead(BaseModel):
    """What the portal needs to render a resource's join button."""
    resource_id: UUID4
    resource_type: ResourceType
    can_view: bool
    membership: Optional[MembershipRead] = None
    pending_request: Optional[JoinRequestRead] = None


class JoinRequestListResponse(BaseModel):
    data: List[JoinRequestRead]


def validate_resolution(
    current: JoinRequestStatus, decision: Decision
) -> tuple[bool, str]:
    """Validate resolving a request in ``current`` state with ``decision``.

    Returns (is_valid, error_message).
    """
    target = DECISION_OUTCOME[decision]
    if target in JOIN_REQUEST_TRANSITIONS[current]:
        return True, ""
    return False, f"Join request is already {current.value}"
