"""Audit trail rows."""

from enum import Enum

from sqlalchemy import String
from sqlalchemy.dialects.postgresql import JSON, UUID
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base, TimestampMixin


class ActorType(str, Enum):
    SYSTEM = "system"
    PRACTITIONER = "practitioner"
    # Anonymous holder of a public link token
    LINK_HOLDER = "link_holder"


class AuditEvent(Base, TimestampMixin):
    """One recorded action on a patient, questionnaire, link or account.

    Inserted by ``write_audit_event`` and never changed afterwards. On
    Postgres a trigger rejects UPDATE and DELETE.
    """

    __tablename__ = "audit_events"

    actor_type: Mapped[ActorType] = mapped_column(String(50), nullable=False)
    # None for link holders and the system
    actor_id: Mapped[str | None] = mapped_column(UUID(as_uuid=False), nullable=True)

    action: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    entity_type: Mapped[str] = mapped_column(String(100), nullable=False)
    entity_id: Mapped[str | None] = mapped_column(
        UUID(as_uuid=False), nullable=True, index=True
    )
    event_metadata: Mapped[dict | None] = mapped_column("metadata", JSON, nullable=True)

    ip_address: Mapped[str | None] = mapped_column(String(45), nullable=True)
    user_agent: Mapped[str | None] = mapped_column(String(500), nullable=True)

    def __repr__(self) -> str:
        return f"<AuditEvent {self.action} {self.entity_type}:{self.entity_id}>"
