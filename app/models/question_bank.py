"""Reusable question library entries."""

from sqlalchemy import Boolean, ForeignKey, String, Text
from sqlalchemy.dialects.postgresql import JSON, UUID
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base, TimestampMixin


class QuestionBankEntry(Base, TimestampMixin):
    """Question definition that can be inserted into any questionnaire.

    System defaults have ``is_default`` set and no owner; everything else
    belongs to the practitioner in ``doctor_id``.
    """

    __tablename__ = "questions_bank"

    question_text: Mapped[str] = mapped_column(
        Text,
        nullable=False,
    )
    question_type: Mapped[str] = mapped_column(
        String(30),
        nullable=False,
        index=True,
    )
    # Choices (strings or {id, label, value}) for radio and checkbox entries,
    # a settings object (ranges, file limits, labels) for the other types
    options: Mapped[list | dict | None] = mapped_column(
        JSON,
        nullable=True,
    )
    category: Mapped[str | None] = mapped_column(
        String(50),
        nullable=True,
    )
    specialty: Mapped[str | None] = mapped_column(
        String(50),
        nullable=True,
    )
    is_default: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )
    doctor_id: Mapped[str | None] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )

    def __repr__(self) -> str:
        return f"<QuestionBankEntry {self.question_type}: {self.question_text[:30]}>"
