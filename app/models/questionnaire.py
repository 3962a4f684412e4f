"""Questionnaire definitions, public links and submitted responses."""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, String, Text
from sqlalchemy.dialects.postgresql import JSON, UUID
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base, TimestampMixin
from app.utils.time import as_utc, utc_now


class Questionnaire(Base, TimestampMixin):
    """Questionnaire authored by a practitioner.

    ``questions`` holds the validated question list as JSON; see
    ``app.questionnaire.questions`` for the variant shapes.
    """

    __tablename__ = "questionnaires"

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
    category: Mapped[str | None] = mapped_column(
        String(50),
        nullable=True,
    )
    specialty: Mapped[str | None] = mapped_column(
        String(50),
        nullable=True,
    )
    questions: Mapped[list] = mapped_column(
        JSON,
        nullable=False,
        default=list,
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
    )
    expires_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    def __repr__(self) -> str:
        return f"<Questionnaire {self.title}>"


class PublicLink(Base, TimestampMixin):
    """Tokenized link binding one questionnaire to one patient.

    Whether the link has been answered is decided by the existence of a
    QuestionnaireResponse row, never by ``is_used``.
    """

    __tablename__ = "public_links"

    token: Mapped[str] = mapped_column(
        String(64),
        unique=True,
        nullable=False,
        index=True,
    )
    questionnaire_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("questionnaires.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    patient_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("patients.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    expires_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    # Written as False at creation and never updated
    is_used: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )

    def is_expired_at(self, now: datetime) -> bool:
        """Check expiry against an explicit instant."""
        if self.expires_at is None:
            return False
        return as_utc(self.expires_at) <= now

    @property
    def is_expired(self) -> bool:
        """Check if the link has expired."""
        return self.is_expired_at(utc_now())

    def __repr__(self) -> str:
        return f"<PublicLink {self.token[:8]}... expired={self.is_expired}>"


class QuestionnaireResponse(Base, TimestampMixin):
    """A patient's answers submitted through a public link.

    The unique constraint on ``public_link_id`` is what guarantees at most
    one response per link under concurrent submissions.
    """

    __tablename__ = "questionnaire_responses"

    public_link_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("public_links.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )
    questionnaire_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("questionnaires.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    patient_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("patients.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    answers: Mapped[list] = mapped_column(
        JSON,
        nullable=False,
    )
    completed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<QuestionnaireResponse link={self.public_link_id}>"
