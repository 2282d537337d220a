from enum import Enum
from typing import Optional

from pydantic import BaseModel


class HubRole(str, Enum):
    NONE = "none"
    MEMBER = "member"
    HUB_LEADER = "hub_leader"
    SUPERVISOR = "supervisor"

# Roles that manage a hub's resources rather than joining them
HUB_MANAGER_ROLES: frozenset["HubRole"] = frozenset({HubRole.HUB_LEADER, HubRole.SUPERVISOR})

class ResourceType(str, Enum):
    PROJECT = "project"
    PROGRAMME = "programme"
    EVENT = "event"
    HUB = "hub"  # the hub itself; never a row in resources

class Visibility(str, Enum):
    PUBLIC = "public"
    AUTHENTICATED = "authenticated"
    HUB_MEMBERS = "hub_members"
    PROGRAMME_MEMBERS = "programme_members"

class PublishStatus(str, Enum):
    DRAFT = "draft"
    PUBLISHED = "published"
    ARCHIVED = "archived"

class HubStatus(str, Enum):
    ACTIVE = "active"
    ARCHIVED = "archived"

class MembershipRole(str, Enum):
    MEMBER = "member"
    SUPERVISOR = "supervisor"

class MembershipStatus(str, Enum):
    ACTIVE = "active"
    TERMINATED = "terminated"

class JoinRequestStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"

# Only pending requests may move; approved/rejected are terminal
JOIN_REQUEST_TRANSITIONS: dict["JoinRequestStatus", list["JoinRequestStatus"]] = {
    JoinRequestStatus.PENDING: [JoinRequestStatus.APPROVED, JoinRequestStatus.REJECTED],
    JoinRequestStatus.APPROVED: [],
    JoinRequestStatus.REJECTED: [],
}

class Decision(str, Enum):
    APPROVE = "approve"
    REJECT = "reject"

DECISION_OUTCOME: dict["Decision", "JoinRequestStatus"] = {
    Decision.APPROVE: JoinRequestStatus.APPROVED,
    Decision.REJECT: JoinRequestStatus.REJECTED,
}

class ErrorCode(str, Enum):
    UNAUTHENTICATED = "UNAUTHENTICATED"
    FORBIDDEN = "FORBIDDEN"
    ALREADY_MANAGING = "ALREADY_MANAGING"
    NOT_ELIGIBLE = "NOT_ELIGIBLE"
    ALREADY_MEMBER = "ALREADY_MEMBER"
    CAPACITY_EXCEEDED = "CAPACITY_EXCEEDED"
    WINDOW_CLOSED = "WINDOW_CLOSED"
    INVALID_STATE = "INVALID_STATE"
    NOT_FOUND = "NOT_FOUND"
    TRANSIENT = "TRANSIENT"

# What the portal shows for each outcome
USER_MESSAGES: dict["ErrorCode", str] = {
    ErrorCode.UNAUTHENTICATED: "Please sign in to continue",
    ErrorCode.FORBIDDEN: "You do not have access to this resource",
    ErrorCode.ALREADY_MANAGING: "You manage this resource",
    ErrorCode.NOT_ELIGIBLE: "Join the hub before joining its projects and programmes",
    ErrorCode.ALREADY_MEMBER: "You are already a member",
    ErrorCode.CAPACITY_EXCEEDED: "Event Full",
    ErrorCode.WINDOW_CLOSED: "Registration is closed",
    ErrorCode.INVALID_STATE: "This request has already been handled",
    ErrorCode.NOT_FOUND: "Not found",
    ErrorCode.TRANSIENT: "Something went wrong, please try again",
}


class ResourceKind(BaseModel):
    """Admission rules shared by every resource of one type."""

    type: ResourceType
    requires_hub_membership: bool
    enforces_capacity: bool = True
    enforces_window: bool = True
    default_message: str

    model_config = {"frozen": True}


RESOURCE_KINDS: dict["ResourceType", ResourceKind] = {
    ResourceType.PROJECT: ResourceKind(
        type=ResourceType.PROJECT,
        requires_hub_membership=True,
        default_message="I would like to join this project",
    ),
    ResourceType.PROGRAMME: ResourceKind(
        type=ResourceType.PROGRAMME,
        requires_hub_membership=True,
        default_message="I would like to join this programme",
    ),
    ResourceType.EVENT: ResourceKind(
        type=ResourceType.EVENT,
        requires_hub_membership=False,
        default_message="I would like to register for this event",
    ),
    ResourceType.HUB: ResourceKind(
        type=ResourceType.HUB,
        requires_hub_membership=False,
        enforces_capacity=False,
        enforces_window=False,
        default_message="I would like to join this hub",
    ),
}


def kind_of(resource_type: "ResourceType | str") -> ResourceKind:
    return RESOURCE_KINDS[ResourceType(resource_type)]


class ErrorBody(BaseModel):
    code: ErrorCode
    message: str
    retryable: bool = False
    detail: Optional[str] = None
