"""Question bank service: system defaults plus practitioner entries."""

import logging
from typing import Any

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.question_bank import QuestionBankEntry
from app.models.questionnaire import Questionnaire

logger = logging.getLogger(__name__)


class QuestionBankEntryNotFoundError(Exception):
    """Raised when the entry is missing or belongs to another practitioner."""

    pass


class DefaultEntryReadOnlyError(Exception):
    """Raised when editing or deleting a system default entry."""

    pass


class EntryInUseError(Exception):
    """Raised when deleting an entry that questionnaires still reference."""

    def __init__(self, entry_id: str, questionnaires: list[dict[str, str]]) -> None:
        self.entry_id = entry_id
        self.questionnaires = questionnaires
        super().__init__(f"Question {entry_id} is used by {len(questionnaires)} questionnaire(s)")


class QuestionBankService:
    """Query and manage bank entries visible to one practitioner."""

    def __init__(self, session: AsyncSession, doctor_id: str) -> None:
        self.session = session
        self.doctor_id = doctor_id

    def _visible(self):
        return select(QuestionBankEntry).where(
            or_(
                QuestionBankEntry.is_default == True,
                QuestionBankEntry.doctor_id == self.doctor_id,
            )
        )

    async def list_entries(
        self,
        search: str | None = None,
        question_type: str | None = None,
        category: str | None = None,
        specialty: str | None = None,
        is_default: bool | None = None,
        page: int = 1,
        limit: int = 10,
    ) -> tuple[list[QuestionBankEntry], int]:
        """List defaults and the practitioner's own entries, newest first."""
        query = self._visible()

        if search:
            query = query.where(QuestionBankEntry.question_text.ilike(f"%{search.strip()}%"))
        if question_type:
            query = query.where(QuestionBankEntry.question_type == question_type)
        if category:
            query = query.where(QuestionBankEntry.category == category)
        if specialty:
            query = query.where(QuestionBankEntry.specialty == specialty)
        if is_default is not None:
            query = query.where(QuestionBankEntry.is_default == is_default)

        total = await self.session.scalar(
            select(func.count()).select_from(query.subquery())
        )
        result = await self.session.execute(
            query.order_by(QuestionBankEntry.created_at.desc(), QuestionBankEntry.id)
            .offset((page - 1) * limit)
            .limit(limit)
        )
        return list(result.scalars().all()), total or 0

    async def get(self, entry_id: str) -> QuestionBankEntry:
        result = await self.session.execute(
            self._visible().where(QuestionBankEntry.id == entry_id)
        )
        entry = result.scalar_one_or_none()
        if not entry:
            raise QuestionBankEntryNotFoundError(entry_id)
        return entry

    async def _get_owned(self, entry_id: str) -> QuestionBankEntry:
        entry = await self.get(entry_id)
        if entry.is_default:
            raise DefaultEntryReadOnlyError(entry_id)
        return entry

    async def create(self, data: dict[str, Any]) -> QuestionBankEntry:
        """Create a practitioner entry; ``is_default`` is always False."""
        entry = QuestionBankEntry(
            doctor_id=self.doctor_id,
            is_default=False,
            **data,
        )
        self.session.add(entry)
        await self.session.commit()
        await self.session.refresh(entry)
        return entry

    async def update(self, entry_id: str, changes: dict[str, Any]) -> QuestionBankEntry:
        """Update an owned entry.

        Raises:
            QuestionBankEntryNotFoundError: Not visible to this practitioner
            DefaultEntryReadOnlyError: The entry is a system default
        """
        entry = await self._get_owned(entry_id)
        for field, value in changes.items():
            setattr(entry, field, value)
        await self.session.commit()
        await self.session.refresh(entry)
        return entry

    async def find_usages(self, entry_id: str) -> list[dict[str, str]]:
        """Questionnaires of this practitioner holding a question with the entry's id."""
        result = await self.session.execute(
            select(Questionnaire).where(Questionnaire.doctor_id == self.doctor_id)
        )
        return [
            {"id": questionnaire.id, "title": questionnaire.title}
            for questionnaire in result.scalars().all()
            if any(
                isinstance(question, dict) and question.get("id") == entry_id
                for question in questionnaire.questions or []
            )
        ]

    async def delete(self, entry_id: str) -> None:
        """Delete an owned entry that no questionnaire references.

        Raises:
            QuestionBankEntryNotFoundError: Not visible to this practitioner
            DefaultEntryReadOnlyError: The entry is a system default
            EntryInUseError: Questionnaires still contain the question
        """
        entry = await self._get_owned(entry_id)

        usages = await self.find_usages(entry.id)
        if usages:
            raise EntryInUseError(entry.id, usages)

        await self.session.delete(entry)
        await self.session.commit()
        logger.info(f"Question bank entry deleted: {entry_id}")
