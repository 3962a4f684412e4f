"""Typed questionnaire model: question variants, answers and validation."""

from app.questionnaire.builder import (
    BuilderSnapshot,
    DraftStore,
    QuestionnaireBuilder,
    default_draft_store,
    question_from_bank_entry,
)
from app.questionnaire.questions import (
    MEDICAL_SPECIALTIES,
    QUESTIONNAIRE_CATEGORIES,
    Answer,
    Question,
    QuestionnaireForm,
    QuestionType,
    load_questions,
)
from app.questionnaire.validation import (
    FieldError,
    QuestionnaireValidationError,
    validate_answer_set,
    validate_questionnaire,
)

__all__ = [
    "Question",
    "Answer",
    "QuestionType",
    "QuestionnaireForm",
    "QUESTIONNAIRE_CATEGORIES",
    "MEDICAL_SPECIALTIES",
    "load_questions",
    "FieldError",
    "QuestionnaireValidationError",
    "validate_questionnaire",
    "validate_answer_set",
    "QuestionnaireBuilder",
    "BuilderSnapshot",
    "DraftStore",
    "default_draft_store",
    "question_from_bank_entry",
]
