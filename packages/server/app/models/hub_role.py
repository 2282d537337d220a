"""Hub-scoped role assignments (one role per user per hub)."""

import uuid

from sqlmodel import Field, SQLModel


class HubRoleAssignment(SQLModel, table=True):
    __tablename__ = "hub_roles"

    user_id: uuid.UUID = Field(foreign_key="users.id", primary_key=True)
    hub_id: uuid.UUID = Field(foreign_key="hubs.id", primary_key=True)
    role: str = Field(nullable=False, default="member")  # member | hub_leader | supervisor
