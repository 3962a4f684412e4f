"""Questionnaire service scoped to one practitioner."""

import logging
import re
from typing import Any

from sqlalchemy import delete, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.questionnaire import PublicLink, Questionnaire, QuestionnaireResponse
from app.questionnaire.questions import QuestionnaireForm
from app.questionnaire.validation import validate_questionnaire

logger = logging.getLogger(__name__)

COPY_SUFFIX = re.compile(r" Copy( \d+)?$")

# Columns that a create or update body may set
EDITABLE_FIELDS = (
    "title",
    "description",
    "category",
    "specialty",
    "is_active",
    "expires_at",
    "questions",
)


class QuestionnaireNotFoundError(Exception):
    """Raised when the questionnaire does not exist for this practitioner."""

    pass


def _form_values(form: QuestionnaireForm) -> dict[str, Any]:
    values = form.model_dump(mode="json", exclude={"questions", "expires_at"})
    values["expires_at"] = form.expires_at
    values["questions"] = [question.model_dump(mode="json") for question in form.questions]
    return values


class QuestionnaireService:
    """CRUD and duplication of a practitioner's questionnaires."""

    def __init__(self, session: AsyncSession, doctor_id: str) -> None:
        self.session = session
        self.doctor_id = doctor_id

    async def list_questionnaires(
        self,
        search: str | None = None,
        category: str | None = None,
        is_active: bool | None = None,
        page: int = 1,
        limit: int = 10,
    ) -> tuple[list[tuple[Questionnaire, int]], int]:
        """List questionnaires, newest first, with their response counts."""
        query = select(Questionnaire).where(Questionnaire.doctor_id == self.doctor_id)

        if search:
            pattern = f"%{search.strip()}%"
            query = query.where(
                or_(
                    Questionnaire.title.ilike(pattern),
                    Questionnaire.description.ilike(pattern),
                )
            )
        if category:
            query = query.where(Questionnaire.category == category)
        if is_active is not None:
            query = query.where(Questionnaire.is_active == is_active)

        total = await self.session.scalar(
            select(func.count()).select_from(query.subquery())
        )

        result = await self.session.execute(
            query.order_by(Questionnaire.created_at.desc(), Questionnaire.id)
            .offset((page - 1) * limit)
            .limit(limit)
        )
        questionnaires = list(result.scalars().all())

        counts: dict[str, int] = {}
        if questionnaires:
            count_result = await self.session.execute(
                select(QuestionnaireResponse.questionnaire_id, func.count())
                .where(
                    QuestionnaireResponse.questionnaire_id.in_(
                        [q.id for q in questionnaires]
                    )
                )
                .group_by(QuestionnaireResponse.questionnaire_id)
            )
            counts = dict(count_result.all())

        return [(q, counts.get(q.id, 0)) for q in questionnaires], total or 0

    async def get(self, questionnaire_id: str) -> Questionnaire:
        """Fetch one questionnaire.

        Raises:
            QuestionnaireNotFoundError: If missing or owned by someone else
        """
        result = await self.session.execute(
            select(Questionnaire).where(
                Questionnaire.id == questionnaire_id,
                Questionnaire.doctor_id == self.doctor_id,
            )
        )
        questionnaire = result.scalar_one_or_none()
        if not questionnaire:
            raise QuestionnaireNotFoundError(questionnaire_id)
        return questionnaire

    async def create(self, candidate: dict[str, Any]) -> Questionnaire:
        """Validate and store a questionnaire.

        Raises:
            QuestionnaireValidationError: With every violation found
        """
        form = validate_questionnaire(candidate)

        questionnaire = Questionnaire(doctor_id=self.doctor_id, **_form_values(form))
        self.session.add(questionnaire)
        await self.session.commit()
        await self.session.refresh(questionnaire)

        logger.info(f"Questionnaire created: {questionnaire.id}")
        return questionnaire

    async def update(self, questionnaire_id: str, candidate: dict[str, Any]) -> Questionnaire:
        """Merge the body over the stored questionnaire and revalidate the whole."""
        questionnaire = await self.get(questionnaire_id)

        merged = {field: getattr(questionnaire, field) for field in EDITABLE_FIELDS}
        merged.update({k: v for k, v in candidate.items() if k in EDITABLE_FIELDS})
        form = validate_questionnaire(merged)

        for field, value in _form_values(form).items():
            setattr(questionnaire, field, value)
        await self.session.commit()
        await self.session.refresh(questionnaire)
        return questionnaire

    async def has_responses(self, questionnaire_id: str) -> bool:
        count = await self.session.scalar(
            select(func.count(QuestionnaireResponse.id)).where(
                QuestionnaireResponse.questionnaire_id == questionnaire_id
            )
        )
        return bool(count)

    async def delete(self, questionnaire_id: str) -> Questionnaire | None:
        """Delete a questionnaire, or deactivate it if it has responses.

        Returns:
            The deactivated questionnaire, or None when it was deleted
        """
        questionnaire = await self.get(questionnaire_id)

        if await self.has_responses(questionnaire.id):
            questionnaire.is_active = False
            await self.session.commit()
            await self.session.refresh(questionnaire)
            logger.info(f"Questionnaire deactivated (has responses): {questionnaire.id}")
            return questionnaire

        await self.session.execute(
            delete(PublicLink).where(PublicLink.questionnaire_id == questionnaire.id)
        )
        await self.session.delete(questionnaire)
        await self.session.commit()
        logger.info(f"Questionnaire deleted: {questionnaire_id}")
        return None

    async def duplicate(self, questionnaire_id: str) -> Questionnaire:
        """Copy a questionnaire as ``"<base> Copy N"``."""
        original = await self.get(questionnaire_id)
        base_title = COPY_SUFFIX.sub("", original.title)

        copies = await self.session.scalar(
            select(func.count(Questionnaire.id)).where(
                Questionnaire.doctor_id == self.doctor_id,
                Questionnaire.title.startswith(f"{base_title} Copy", autoescape=True),
            )
        )

        duplicate = Questionnaire(
            doctor_id=self.doctor_id,
            title=f"{base_title} Copy {(copies or 0) + 1}",
            description=original.description,
            category=original.category,
            specialty=original.specialty,
            questions=list(original.questions),
            is_active=original.is_active,
            expires_at=original.expires_at,
        )
        self.session.add(duplicate)
        await self.session.commit()
        await self.session.refresh(duplicate)
        return duplicate
