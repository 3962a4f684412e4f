"""Pydantic schemas for stored responses and their aggregation."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel

from app.schemas.pagination import Pagination
from app.schemas.patient import PatientRead
from app.schemas.questionnaire import QuestionnaireRead


class ResponseListItem(BaseModel):
    """Response row with questionnaire title and patient name."""

    id: str
    questionnaire_id: str
    questionnaire_title: str
    patient_id: str
    patient_name: str
    answers: list[dict[str, Any]]
    completed_at: datetime


class ResponseListResponse(BaseModel):
    """Paginated response list."""

    data: list[ResponseListItem]
    pagination: Pagination


class ResponseDetail(BaseModel):
    """Full response with the questionnaire and patient it belongs to."""

    id: str
    public_link_id: str
    answers: list[dict[str, Any]]
    completed_at: datetime
    questionnaire: QuestionnaireRead
    patient: PatientRead


class QuestionSummaryRead(BaseModel):
    """Aggregate for one question."""

    question_id: str
    question_text: str
    question_type: str
    answered: int
    counts: dict[str, int]
    minimum: float | None = None
    maximum: float | None = None
    mean: float | None = None
    files: int


class QuestionnaireSummaryRead(BaseModel):
    """Aggregate over every response to a questionnaire."""

    questionnaire_id: str
    total_responses: int
    questions: list[QuestionSummaryRead]
