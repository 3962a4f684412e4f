"""Persistence contract used by the public link redemption flow."""

import logging
from abc import ABC, abstractmethod
from datetime import datetime

from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.patient import Patient
from app.models.questionnaire import PublicLink, Questionnaire, QuestionnaireResponse

logger = logging.getLogger(__name__)


class DuplicateResponseError(Exception):
    """A response already exists for the link (unique constraint fired)."""

    def __init__(self, link_id: str) -> None:
        self.link_id = link_id
        super().__init__(f"Response already recorded for link {link_id}")


class PublicLinkStore(ABC):
    """Storage operations the redemption protocol depends on.

    ``get_link_by_token`` returns links regardless of expiry; liveness is
    judged by the caller against its own clock.
    """

    @abstractmethod
    async def get_link_by_token(self, token: str) -> PublicLink | None:
        pass

    @abstractmethod
    async def find_live_link(
        self,
        questionnaire_id: str,
        patient_id: str,
        now: datetime,
    ) -> PublicLink | None:
        """Find a link for the pair with no expiry or expiry after ``now``."""
        pass

    @abstractmethod
    async def create_link(
        self,
        questionnaire_id: str,
        patient_id: str,
        token: str,
        expires_at: datetime | None,
    ) -> PublicLink:
        pass

    @abstractmethod
    async def get_questionnaire(self, questionnaire_id: str) -> Questionnaire | None:
        pass

    @abstractmethod
    async def get_patient(self, patient_id: str) -> Patient | None:
        pass

    @abstractmethod
    async def get_response_by_link_id(self, link_id: str) -> QuestionnaireResponse | None:
        pass

    @abstractmethod
    async def insert_response(
        self,
        link: PublicLink,
        answers: list[dict],
        completed_at: datetime,
    ) -> QuestionnaireResponse:
        """Insert the single response for a link in one atomic write.

        Raises:
            DuplicateResponseError: If a response for the link already exists
        """
        pass


class SQLPublicLinkStore(PublicLinkStore):
    """PublicLinkStore backed by the SQLAlchemy session."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_link_by_token(self, token: str) -> PublicLink | None:
        result = await self.session.execute(
            select(PublicLink).where(PublicLink.token == token)
        )
        return result.scalar_one_or_none()

    async def find_live_link(
        self,
        questionnaire_id: str,
        patient_id: str,
        now: datetime,
    ) -> PublicLink | None:
        result = await self.session.execute(
            select(PublicLink)
            .where(PublicLink.questionnaire_id == questionnaire_id)
            .where(PublicLink.patient_id == patient_id)
            .where(or_(PublicLink.expires_at.is_(None), PublicLink.expires_at > now))
            .order_by(PublicLink.created_at.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def create_link(
        self,
        questionnaire_id: str,
        patient_id: str,
        token: str,
        expires_at: datetime | None,
    ) -> PublicLink:
        link = PublicLink(
            questionnaire_id=questionnaire_id,
            patient_id=patient_id,
            token=token,
            expires_at=expires_at,
            is_used=False,
        )
        self.session.add(link)
        await self.session.commit()
        await self.session.refresh(link)
        return link

    async def get_questionnaire(self, questionnaire_id: str) -> Questionnaire | None:
        return await self.session.get(Questionnaire, questionnaire_id)

    async def get_patient(self, patient_id: str) -> Patient | None:
        return await self.session.get(Patient, patient_id)

    async def get_response_by_link_id(self, link_id: str) -> QuestionnaireResponse | None:
        result = await self.session.execute(
            select(QuestionnaireResponse).where(
                QuestionnaireResponse.public_link_id == link_id
            )
        )
        return result.scalar_one_or_none()

    async def insert_response(
        self,
        link: PublicLink,
        answers: list[dict],
        completed_at: datetime,
    ) -> QuestionnaireResponse:
        link_id = link.id
        response = QuestionnaireResponse(
            public_link_id=link_id,
            questionnaire_id=link.questionnaire_id,
            patient_id=link.patient_id,
            answers=answers,
            completed_at=completed_at,
        )
        self.session.add(response)
        try:
            await self.session.commit()
        except IntegrityError as exc:
            await self.session.rollback()
            logger.info(f"Concurrent submission lost the insert race for link {link_id}")
            raise DuplicateResponseError(link_id) from exc

        await self.session.refresh(response)
        return response
