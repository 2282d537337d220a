# SQLModel definitions, imported here to ensure metadata is populated for create_all.
from .base import CreatedAtMixin, UUIDMixin  # noqa: F401
from .user import User  # noqa: F401
from .hub import Hub  # noqa: F401
from .hub_role import HubRoleAssignment  # noqa: F401
from .resource import Resource  # noqa: F401
from .membership import Membership  # noqa: F401
from .join_request import JoinRequest  # noqa: F401
from .audit_event import AuditEvent  # noqa: F401
