"""User model. Accounts are managed by the portal; the engine reads them."""

from typing import Optional

from sqlmodel import Field, SQLModel

from .base import CreatedAtMixin, UUIDMixin


class User(UUIDMixin, CreatedAtMixin, SQLModel, table=True):
    __tablename__ = "users"

    email: Optional[str] = Field(default=None, unique=True, index=True)
    display_name: str = Field(nullable=False)
    is_platform_admin: bool = Field(default=False, nullable=False)
