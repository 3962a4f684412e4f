"""Practitioner account model."""

from enum import Enum

from sqlalchemy import Boolean, String
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base, SoftDeleteMixin, TimestampMixin


class UserRole(str, Enum):
    """Practitioner roles."""

    DOCTOR = "doctor"
    ADMIN = "admin"


class User(Base, TimestampMixin, SoftDeleteMixin):
    """Practitioner who owns patients, questionnaires and question bank entries.

    Every practitioner-facing query is scoped by the owning user's id.
    """

    __tablename__ = "users"

    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
        index=True,
    )
    hashed_password: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    role: Mapped[UserRole] = mapped_column(
        String(50),
        default=UserRole.DOCTOR,
        nullable=False,
    )
    full_name: Mapped[str | None] = mapped_column(
        String(100),
        nullable=True,
    )
    # Regional medical council registration
    crm: Mapped[str | None] = mapped_column(
        String(20),
        nullable=True,
    )
    specialty: Mapped[str | None] = mapped_column(
        String(50),
        nullable=True,
    )
    phone: Mapped[str | None] = mapped_column(
        String(20),
        nullable=True,
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<User {self.email}>"
