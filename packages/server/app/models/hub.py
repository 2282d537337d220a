"""Hub model."""

from sqlmodel import Field, SQLModel

from .base import CreatedAtMixin, UUIDMixin


class Hub(UUIDMixin, CreatedAtMixin, SQLModel, table=True):
    __tablename__ = "hubs"

    name: str = Field(nullable=False, index=True)
    slug: str = Field(unique=True, nullable=False, index=True)
    status: str = Field(default="active", nullable=False)  # active | archived
