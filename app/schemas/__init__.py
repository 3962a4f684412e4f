"""Pydantic schemas for request/response validation."""

from app.schemas.auth import LoginRequest, PractitionerRead, RegisterRequest, TokenResponse
from app.schemas.document import DocumentMetadata, DocumentRead, DocumentUpdate
from app.schemas.pagination import Pagination
from app.schemas.patient import PatientCreate, PatientRead, PatientUpdate
from app.schemas.question_bank import (
    QuestionBankEntryCreate,
    QuestionBankEntryRead,
    QuestionBankEntryUpdate,
)
from app.schemas.questionnaire import (
    AnswerSubmission,
    PublicLinkCreate,
    PublicLinkView,
    QuestionnaireRead,
    SubmitResult,
)
from app.schemas.response import QuestionnaireSummaryRead, ResponseDetail

__all__ = [
    "LoginRequest",
    "RegisterRequest",
    "TokenResponse",
    "PractitionerRead",
    "Pagination",
    "PatientCreate",
    "PatientUpdate",
    "PatientRead",
    "DocumentMetadata",
    "DocumentUpdate",
    "DocumentRead",
    "QuestionnaireRead",
    "PublicLinkCreate",
    "PublicLinkView",
    "AnswerSubmission",
    "SubmitResult",
    "QuestionBankEntryCreate",
    "QuestionBankEntryUpdate",
    "QuestionBankEntryRead",
    "ResponseDetail",
    "QuestionnaireSummaryRead",
]
