"""Public questionnaire link redemption.

A link moves from CREATED to ANSWERED when its single response is stored.
Expiry is independent of that and is evaluated at read time against the
injected clock. The existing-response check in ``submit`` is only an early
exit; the unique constraint on ``questionnaire_responses.public_link_id``
is what keeps a link to one response when two submissions race.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

from app.core.security import generate_public_link_token
from app.utils.time import utc_now
from app.models.patient import Patient
from app.models.questionnaire import PublicLink, Questionnaire, QuestionnaireResponse
from app.questionnaire.validation import (
    FieldError,
    QuestionnaireValidationError,
    validate_answer_set,
)
from app.services.link_store import DuplicateResponseError, PublicLinkStore

logger = logging.getLogger(__name__)


class PublicLinkError(Exception):
    """Base class for redemption failures."""

    pass


class LinkNotFoundError(PublicLinkError):
    """No link matches the token."""

    pass


class LinkExpiredError(PublicLinkError):
    """The link exists but its validity window has passed."""

    pass


class AlreadyAnsweredError(PublicLinkError):
    """The link already has its response; carries that response's identity."""

    def __init__(self, response_id: str, completed_at: datetime) -> None:
        self.response_id = response_id
        self.completed_at = completed_at
        super().__init__(f"Link already answered by response {response_id}")


class AnswersInvalidError(PublicLinkError):
    """The submitted answers do not fit the questionnaire."""

    def __init__(self, errors: list[FieldError]) -> None:
        self.errors = errors
        super().__init__(f"{len(errors)} answer error(s)")


@dataclass
class LinkResolution:
    """Everything a patient-facing page needs to render a link."""

    link: PublicLink
    questionnaire: Questionnaire
    patient: Patient
    response: QuestionnaireResponse | None

    @property
    def is_answered(self) -> bool:
        return self.response is not None


class PublicLinkRedemption:
    """Resolve, submit and issue public questionnaire links.

    Args:
        store: Persistence collaborator
        clock: Returns the current aware UTC datetime
        link_ttl: Lifetime of newly issued links; None means no expiry
    """

    def __init__(
        self,
        store: PublicLinkStore,
        clock: Callable[[], datetime] = utc_now,
        link_ttl: timedelta | None = None,
    ) -> None:
        self.store = store
        self.clock = clock
        self.link_ttl = link_ttl

    async def _live_link(self, token: str) -> PublicLink:
        link = await self.store.get_link_by_token(token)
        if link is None:
            raise LinkNotFoundError(token)
        if link.is_expired_at(self.clock()):
            raise LinkExpiredError(token)
        return link

    async def resolve(self, token: str) -> LinkResolution:
        """Look up a link and what it is bound to.

        Raises:
            LinkNotFoundError: Unknown token, or its questionnaire/patient is gone
            LinkExpiredError: ``expires_at`` is set and not in the future
        """
        link = await self._live_link(token)

        questionnaire = await self.store.get_questionnaire(link.questionnaire_id)
        patient = await self.store.get_patient(link.patient_id)
        if questionnaire is None or patient is None:
            logger.warning(f"Public link {link.id} points at a missing questionnaire or patient")
            raise LinkNotFoundError(token)

        response = await self.store.get_response_by_link_id(link.id)
        return LinkResolution(
            link=link,
            questionnaire=questionnaire,
            patient=patient,
            response=response,
        )

    async def submit(self, token: str, answers: Any) -> QuestionnaireResponse:
        """Record the single response for a link.

        Liveness and the existing response are checked again here rather than
        trusted from an earlier ``resolve``.

        Raises:
            LinkNotFoundError: Unknown token
            LinkExpiredError: The link expired
            AlreadyAnsweredError: A response exists, including one stored by a
                concurrent submission between our check and our insert
            AnswersInvalidError: The answers fail validation
        """
        link = await self._live_link(token)
        link_id = link.id

        existing = await self.store.get_response_by_link_id(link_id)
        if existing is not None:
            raise AlreadyAnsweredError(existing.id, existing.completed_at)

        questionnaire = await self.store.get_questionnaire(link.questionnaire_id)
        if questionnaire is None:
            raise LinkNotFoundError(token)

        try:
            parsed = validate_answer_set(questionnaire, answers)
        except QuestionnaireValidationError as exc:
            raise AnswersInvalidError(exc.errors) from exc

        payload = [answer.model_dump(mode="json") for answer in parsed]
        try:
            response = await self.store.insert_response(link, payload, self.clock())
        except DuplicateResponseError:
            winner = await self.store.get_response_by_link_id(link_id)
            if winner is None:
                raise
            raise AlreadyAnsweredError(winner.id, winner.completed_at) from None

        logger.info(
            f"Public link {link_id} answered with response {response.id}",
            extra={"link_id": link_id},
        )
        return response

    async def issue(
        self,
        questionnaire: Questionnaire,
        patient: Patient,
    ) -> tuple[PublicLink, bool]:
        """Return the live link for the pair, creating one if needed.

        Returns:
            (link, created) where ``created`` is False when an unexpired link
            was reused
        """
        now = self.clock()
        existing = await self.store.find_live_link(questionnaire.id, patient.id, now)
        if existing is not None:
            return existing, False

        expires_at = now + self.link_ttl if self.link_ttl is not None else None
        link = await self.store.create_link(
            questionnaire_id=questionnaire.id,
            patient_id=patient.id,
            token=generate_public_link_token(),
            expires_at=expires_at,
        )
        logger.info(
            f"Issued public link {link.id} for questionnaire {questionnaire.id}",
            extra={"link_id": link.id, "questionnaire_id": questionnaire.id},
        )
        return link, True
