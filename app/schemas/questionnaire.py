"""Pydantic schemas for questionnaires and public links.

Create and update bodies are validated by
``app.questionnaire.validate_questionnaire`` rather than by a request model,
so that every violation is reported in one ``{field, reason}`` list.
"""

from datetime import date, datetime
from typing import Any

from pydantic import BaseModel, Field

from app.schemas.pagination import Pagination


class QuestionnaireRead(BaseModel):
    """Questionnaire as returned to its owner."""

    id: str
    doctor_id: str
    title: str
    description: str | None = None
    category: str | None = None
    specialty: str | None = None
    questions: list[dict[str, Any]]
    is_active: bool
    expires_at: datetime | None = None
    created_at: datetime
    updated_at: datetime | None = None

    model_config = {"from_attributes": True}


class QuestionnaireListItem(QuestionnaireRead):
    """List row with the number of stored responses."""

    response_count: int = 0


class QuestionnaireListResponse(BaseModel):
    """Paginated questionnaire list."""

    data: list[QuestionnaireListItem]
    pagination: Pagination


class ValidationErrorResponse(BaseModel):
    """422 body for questionnaire and answer validation failures."""

    message: str
    errors: list[dict[str, str]]


# =============================================================================
# Public links
# =============================================================================


class PublicLinkCreate(BaseModel):
    """Request to issue a link for one patient."""

    patient_id: str = Field(..., min_length=1)


class PublicLinkToken(BaseModel):
    """Issued or reused link token."""

    data: str


class PublicQuestionnaire(BaseModel):
    """What a link holder sees of the questionnaire."""

    id: str
    title: str
    description: str | None = None
    questions: list[dict[str, Any]]

    model_config = {"from_attributes": True}


class PublicPatient(BaseModel):
    """What a link holder sees of the patient."""

    id: str
    full_name: str
    email: str | None = None
    phone: str | None = None
    birth_date: date | None = None

    model_config = {"from_attributes": True}


class ResponseReceipt(BaseModel):
    """Identity of a stored response."""

    id: str
    completed_at: datetime

    model_config = {"from_attributes": True}


class StoredResponse(ResponseReceipt):
    """Stored response including its answers."""

    answers: list[dict[str, Any]]


class PublicLinkData(BaseModel):
    questionnaire: PublicQuestionnaire
    patient: PublicPatient
    response: StoredResponse | None = None


class PublicLinkView(BaseModel):
    """Body of ``GET /public-link/{token}``."""

    data: PublicLinkData


class AnswerSubmission(BaseModel):
    """Body of ``POST /public-link/{token}/submit``.

    ``answers`` is left untyped here; its shape is checked against the
    questionnaire by ``validate_answer_set``.
    """

    answers: Any = None


class SubmitResult(BaseModel):
    """Body of a successful submission."""

    success: bool = True
    response: ResponseReceipt


class AlreadyAnsweredResponse(BaseModel):
    """409 body when the link already has its response."""

    detail: str
    response: ResponseReceipt
