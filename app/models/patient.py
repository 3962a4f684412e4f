"""Patient record owned by a practitioner."""

from datetime import date
from enum import Enum

from sqlalchemy import Date, ForeignKey, String, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSON, UUID
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base, SoftDeleteMixin, TimestampMixin


class Gender(str, Enum):
    """Gender options recorded on the patient chart."""

    MALE = "male"
    FEMALE = "female"
    OTHER = "other"


class Patient(Base, TimestampMixin, SoftDeleteMixin):
    """Patient registered by a practitioner.

    Deleting a patient only sets the soft delete marker; public links and
    responses bound to the patient remain readable.
    """

    __tablename__ = "patients"
    __table_args__ = (
        UniqueConstraint("doctor_id", "cpf", name="uq_patients_doctor_cpf"),
    )

    doctor_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # -------------------------------------------------------------------------
    # Identity
    # -------------------------------------------------------------------------
    full_name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
    )
    # Brazilian taxpayer id, digits only
    cpf: Mapped[str | None] = mapped_column(
        String(11),
        nullable=True,
    )
    birth_date: Mapped[date | None] = mapped_column(
        Date,
        nullable=True,
    )
    gender: Mapped[str | None] = mapped_column(
        String(10),
        nullable=True,
    )

    # -------------------------------------------------------------------------
    # Contact
    # -------------------------------------------------------------------------
    email: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
    )
    phone: Mapped[str | None] = mapped_column(
        String(20),
        nullable=True,
    )
    # {street, number, complement, neighborhood, city, state, zip_code}
    address: Mapped[dict | None] = mapped_column(
        JSON,
        nullable=True,
    )

    medical_history: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )

    def __repr__(self) -> str:
        return f"<Patient {self.full_name}>"
