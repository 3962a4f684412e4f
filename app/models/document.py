"""Patient document metadata (file bytes live in the storage backend)."""

from enum import Enum

from sqlalchemy import Boolean, ForeignKey, Integer, String, Text
from sqlalchemy.dialects.postgresql import JSON, UUID
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base, TimestampMixin


class DocumentType(str, Enum):
    """Document classification."""

    IDENTITY = "identity"
    MEDICAL = "medical"
    INSURANCE = "insurance"
    CONSENT = "consent"
    PRESCRIPTION = "prescription"
    REPORT = "report"
    OTHER = "other"


class PatientDocument(Base, TimestampMixin):
    """Uploaded file attached to a patient chart."""

    __tablename__ = "patient_documents"

    patient_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("patients.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    doctor_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    title: Mapped[str] = mapped_column(
        String(200),
        nullable=False,
    )
    description: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )
    document_type: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=DocumentType.OTHER.value,
    )
    tags: Mapped[list] = mapped_column(
        JSON,
        nullable=False,
        default=list,
    )
    is_sensitive: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )

    # Stored file
    file_name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    file_size: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
    )
    mime_type: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
    )
    storage_key: Mapped[str] = mapped_column(
        String(500),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<PatientDocument {self.title}>"
