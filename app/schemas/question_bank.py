"""Pydantic schemas for the question bank."""

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, Field

from app.questionnaire.questions import MEDICAL_SPECIALTIES, QuestionType
from app.schemas.pagination import Pagination


class QuestionBankEntryCreate(BaseModel):
    """Practitioner-authored bank entry.

    ``options`` is free JSON: a list of choices for radio/checkbox entries,
    or a settings object (ranges, accepted file types, labels) otherwise.
    """

    question_text: str = Field(..., min_length=1)
    question_type: QuestionType
    options: list[Any] | dict[str, Any] | None = None
    category: str | None = Field(None, max_length=50)
    specialty: Literal[MEDICAL_SPECIALTIES] | None = None  # type: ignore[valid-type]


class QuestionBankEntryUpdate(BaseModel):
    """Partial update of an owned entry."""

    question_text: str | None = Field(None, min_length=1)
    question_type: QuestionType | None = None
    options: list[Any] | dict[str, Any] | None = None
    category: str | None = Field(None, max_length=50)
    specialty: Literal[MEDICAL_SPECIALTIES] | None = None  # type: ignore[valid-type]


class QuestionBankEntryRead(BaseModel):
    id: str
    question_text: str
    question_type: str
    options: list[Any] | dict[str, Any] | None = None
    category: str | None = None
    specialty: str | None = None
    is_default: bool
    doctor_id: str | None = None
    created_at: datetime
    updated_at: datetime | None = None

    model_config = {"from_attributes": True}


class QuestionBankListResponse(BaseModel):
    """Paginated question bank list."""

    data: list[QuestionBankEntryRead]
    pagination: Pagination


class QuestionInUseResponse(BaseModel):
    """409 body when an entry is still referenced by questionnaires."""

    detail: str
    questionnaires: list[dict[str, str]]
