"""Append-only audit trail.

Every state change a practitioner or link holder makes is recorded as an
``AuditEvent`` row and echoed on the ``audit`` logger.
"""

import logging
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from app.models.audit_event import ActorType, AuditEvent

audit_log = logging.getLogger("audit")


async def write_audit_event(
    session: AsyncSession,
    actor_type: ActorType,
    actor_id: str | None,
    action: str,
    entity_type: str,
    entity_id: str | None,
    metadata: dict[str, Any] | None = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> AuditEvent:
    """Persist one audit event and commit it.

    ``actor_id`` is the practitioner id, or None when the actor is a public
    link holder or the system. ``action`` names what happened, such as
    ``patient_soft_deleted`` or ``response_submitted``.
    """
    event = AuditEvent(
        actor_type=actor_type,
        actor_id=actor_id,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        event_metadata=metadata,
        ip_address=ip_address,
        user_agent=user_agent,
    )
    session.add(event)
    await session.commit()
    await session.refresh(event)

    actor = f"{actor_type.value}:{actor_id}" if actor_id else actor_type.value
    entity = f"{entity_type}:{entity_id}" if entity_id else entity_type
    audit_log.info(
        f"{action} by {actor} on {entity}",
        extra={"action": action, "actor": actor, "entity": entity},
    )
    return event
