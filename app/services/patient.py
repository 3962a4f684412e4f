"""Patient records service scoped to one practitioner."""

import logging
import re
from datetime import date, datetime
from typing import Any

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.document import PatientDocument
from app.models.patient import Patient
from app.models.questionnaire import Questionnaire, QuestionnaireResponse
from app.utils.time import as_utc, end_of_day, start_of_day, years_before

logger = logging.getLogger(__name__)

SORT_COLUMNS = {
    "full_name": Patient.full_name,
    "created_at": Patient.created_at,
    "birth_date": Patient.birth_date,
}


class PatientNotFoundError(Exception):
    """Raised when the patient does not exist for this practitioner."""

    pass


class PatientConflictError(Exception):
    """Raised when another patient of the practitioner has the same CPF."""

    pass


class PatientAlreadyDeletedError(Exception):
    """Raised when soft deleting a patient that is already deleted."""

    pass


class PatientNotDeletedError(Exception):
    """Raised when restoring a patient that is not deleted."""

    pass


def _latest(*values: datetime | None) -> datetime | None:
    present = [as_utc(v) for v in values if v is not None]
    return max(present) if present else None


class PatientService:
    """CRUD, soft delete and activity queries for a practitioner's patients."""

    def __init__(self, session: AsyncSession, doctor_id: str) -> None:
        self.session = session
        self.doctor_id = doctor_id

    def _scoped(self):
        return select(Patient).where(Patient.doctor_id == self.doctor_id)

    # =========================================================================
    # Queries
    # =========================================================================

    async def list_patients(
        self,
        search: str | None = None,
        gender: str | None = None,
        age_min: int | None = None,
        age_max: int | None = None,
        created_after: date | None = None,
        created_before: date | None = None,
        page: int = 1,
        limit: int = 20,
        sort_by: str = "created_at",
        sort_order: str = "desc",
        today: date | None = None,
    ) -> tuple[list[Patient], int]:
        """List active patients with filters.

        Args:
            search: Case-insensitive match on name, email or CPF
            gender: Exact gender filter
            age_min: Minimum age in whole years
            age_max: Maximum age in whole years
            created_after: Registered on or after this day
            created_before: Registered on or before this day
            page: 1-based page number
            limit: Page size
            sort_by: One of full_name, created_at, birth_date
            sort_order: asc or desc
            today: Reference day for age filters

        Returns:
            Tuple of (patients on the page, total matching)
        """
        today = today or date.today()
        query = self._scoped().where(Patient.is_deleted == False)

        if search:
            pattern = f"%{search.strip()}%"
            conditions = [Patient.full_name.ilike(pattern), Patient.email.ilike(pattern)]
            # CPF is stored as digits only
            digits = re.sub(r"\D", "", search)
            if digits:
                conditions.append(Patient.cpf.like(f"%{digits}%"))
            query = query.where(or_(*conditions))

        if gender:
            query = query.where(Patient.gender == gender)

        # Age bounds translate to birth date bounds
        if age_min is not None:
            query = query.where(Patient.birth_date <= years_before(today, age_min))
        if age_max is not None:
            oldest = years_before(today, age_max + 1)
            query = query.where(Patient.birth_date > oldest)

        if created_after:
            query = query.where(Patient.created_at >= start_of_day(created_after))
        if created_before:
            query = query.where(Patient.created_at <= end_of_day(created_before))

        total = await self.session.scalar(
            select(func.count()).select_from(query.subquery())
        )

        column = SORT_COLUMNS.get(sort_by, Patient.created_at)
        order = column.asc() if sort_order == "asc" else column.desc()
        result = await self.session.execute(
            query.order_by(order, Patient.id).offset((page - 1) * limit).limit(limit)
        )
        return list(result.scalars().all()), total or 0

    async def list_deleted(
        self,
        search: str | None = None,
        page: int = 1,
        limit: int = 20,
    ) -> tuple[list[Patient], int]:
        """List soft-deleted patients, most recently deleted first."""
        query = self._scoped().where(Patient.is_deleted == True)
        if search:
            pattern = f"%{search.strip()}%"
            query = query.where(
                or_(Patient.full_name.ilike(pattern), Patient.email.ilike(pattern))
            )

        total = await self.session.scalar(
            select(func.count()).select_from(query.subquery())
        )
        result = await self.session.execute(
            query.order_by(Patient.deleted_at.desc(), Patient.id)
            .offset((page - 1) * limit)
            .limit(limit)
        )
        return list(result.scalars().all()), total or 0

    async def get(self, patient_id: str, include_deleted: bool = False) -> Patient:
        """Fetch one patient.

        Raises:
            PatientNotFoundError: If missing, owned by someone else, or deleted
        """
        query = self._scoped().where(Patient.id == patient_id)
        if not include_deleted:
            query = query.where(Patient.is_deleted == False)

        result = await self.session.execute(query)
        patient = result.scalar_one_or_none()
        if not patient:
            raise PatientNotFoundError(patient_id)
        return patient

    async def _ensure_cpf_free(self, cpf: str | None, exclude_id: str | None = None) -> None:
        if not cpf:
            return
        query = self._scoped().where(Patient.cpf == cpf)
        if exclude_id:
            query = query.where(Patient.id != exclude_id)
        result = await self.session.execute(query)
        if result.scalars().first():
            raise PatientConflictError(cpf)

    # =========================================================================
    # Mutations
    # =========================================================================

    async def create(self, data: dict[str, Any]) -> Patient:
        """Register a patient.

        Raises:
            PatientConflictError: If the CPF is already registered
        """
        await self._ensure_cpf_free(data.get("cpf"))

        patient = Patient(doctor_id=self.doctor_id, **data)
        self.session.add(patient)
        try:
            await self.session.commit()
        except IntegrityError:
            await self.session.rollback()
            raise PatientConflictError(data.get("cpf"))
        await self.session.refresh(patient)

        logger.info(f"Patient created: {patient.id}")
        return patient

    async def update(self, patient_id: str, changes: dict[str, Any]) -> tuple[Patient, list[str]]:
        """Apply a partial update.

        Returns:
            Tuple of (patient, names of fields that changed)
        """
        patient = await self.get(patient_id)

        if changes.get("cpf") and changes["cpf"] != patient.cpf:
            await self._ensure_cpf_free(changes["cpf"], exclude_id=patient.id)

        changed: list[str] = []
        for field, value in changes.items():
            if getattr(patient, field) != value:
                setattr(patient, field, value)
                changed.append(field)

        if changed:
            try:
                await self.session.commit()
            except IntegrityError:
                await self.session.rollback()
                raise PatientConflictError(changes.get("cpf"))
            await self.session.refresh(patient)

        return patient, changed

    async def soft_delete(self, patient_id: str, deleted_by: str) -> Patient:
        """Mark the patient deleted.

        Raises:
            PatientAlreadyDeletedError: If already soft deleted
        """
        patient = await self.get(patient_id, include_deleted=True)
        if patient.is_deleted:
            raise PatientAlreadyDeletedError(patient_id)

        patient.soft_delete(deleted_by)
        await self.session.commit()
        await self.session.refresh(patient)

        logger.info(f"Patient soft deleted: {patient.id}")
        return patient

    async def restore(self, patient_id: str) -> Patient:
        """Clear the soft delete marker.

        Raises:
            PatientNotDeletedError: If the patient is not deleted
        """
        patient = await self.get(patient_id, include_deleted=True)
        if not patient.is_deleted:
            raise PatientNotDeletedError(patient_id)

        patient.restore()
        await self.session.commit()
        await self.session.refresh(patient)

        logger.info(f"Patient restored: {patient.id}")
        return patient

    # =========================================================================
    # Activity
    # =========================================================================

    async def stats(self, patient_id: str) -> dict[str, Any]:
        """Count documents and responses and find the latest activity."""
        patient = await self.get(patient_id)

        total_documents = await self.session.scalar(
            select(func.count(PatientDocument.id)).where(
                PatientDocument.patient_id == patient.id
            )
        )
        total_responses = await self.session.scalar(
            select(func.count(QuestionnaireResponse.id)).where(
                QuestionnaireResponse.patient_id == patient.id
            )
        )
        last_document = await self.session.scalar(
            select(func.max(PatientDocument.created_at)).where(
                PatientDocument.patient_id == patient.id
            )
        )
        last_response = await self.session.scalar(
            select(func.max(QuestionnaireResponse.completed_at)).where(
                QuestionnaireResponse.patient_id == patient.id
            )
        )

        return {
            "total_documents": total_documents or 0,
            "total_responses": total_responses or 0,
            "last_activity": _latest(last_document, last_response),
        }

    async def history(
        self,
        patient_id: str,
        item_type: str = "all",
        limit: int = 50,
        offset: int = 0,
    ) -> dict[str, Any]:
        """Merged timeline of responses and documents, newest first."""
        patient = await self.get(patient_id)
        items: list[dict[str, Any]] = []

        if item_type in ("all", "responses"):
            result = await self.session.execute(
                select(QuestionnaireResponse, Questionnaire)
                .join(Questionnaire, Questionnaire.id == QuestionnaireResponse.questionnaire_id)
                .where(QuestionnaireResponse.patient_id == patient.id)
            )
            for response, questionnaire in result.all():
                items.append(
                    {
                        "id": response.id,
                        "type": "response",
                        "title": f"Questionnaire: {questionnaire.title}",
                        "description": questionnaire.description or "",
                        "category": questionnaire.category or "general",
                        "date": as_utc(response.completed_at),
                        "data": {
                            "questionnaire_id": questionnaire.id,
                            "answers": response.answers,
                        },
                    }
                )

        if item_type in ("all", "documents"):
            result = await self.session.execute(
                select(PatientDocument).where(PatientDocument.patient_id == patient.id)
            )
            for document in result.scalars().all():
                items.append(
                    {
                        "id": document.id,
                        "type": "document",
                        "title": f"Document: {document.title}",
                        "description": document.description or "",
                        "category": document.document_type,
                        "date": as_utc(document.created_at),
                        "data": {
                            "file_name": document.file_name,
                            "mime_type": document.mime_type,
                            "tags": document.tags,
                        },
                    }
                )

        items.sort(key=lambda item: item["date"], reverse=True)
        total = len(items)

        return {
            "items": items[offset : offset + limit],
            "stats": await self.stats(patient.id),
            "total": total,
            "limit": limit,
            "offset": offset,
            "has_more": offset + limit < total,
        }
