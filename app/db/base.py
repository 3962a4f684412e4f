"""Declarative base and the column mixins shared by the models.

Every table is keyed by a string UUID. Constraint names follow
``NAMING_CONVENTION`` so that migrations can refer to them.
"""

from datetime import datetime
from uuid import uuid4

from sqlalchemy import Boolean, DateTime, MetaData
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from app.utils.time import utc_now

NAMING_CONVENTION = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


def new_id() -> str:
    return str(uuid4())


class Base(DeclarativeBase):
    metadata = MetaData(naming_convention=NAMING_CONVENTION)

    id: Mapped[str] = mapped_column(UUID(as_uuid=False), primary_key=True, default=new_id)


class TimestampMixin:
    """``created_at`` on insert, ``updated_at`` on every later update."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False
    )
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), default=None, onupdate=utc_now, nullable=True
    )


class SoftDeleteMixin:
    """Deletion flag that hides a row from listings without removing it.

    ``deleted_at`` and ``deleted_by`` are set together with ``is_deleted``
    and cleared together on restore.
    """

    is_deleted: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False, index=True)
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    deleted_by: Mapped[str | None] = mapped_column(UUID(as_uuid=False), nullable=True)

    def soft_delete(self, deleted_by_id: str | None = None) -> None:
        self.is_deleted = True
        self.deleted_at = utc_now()
        self.deleted_by = deleted_by_id

    def restore(self) -> None:
        self.is_deleted = False
        self.deleted_at = None
        self.deleted_by = None
