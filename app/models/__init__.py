"""Database models for Practice Forms."""

from app.models.audit_event import ActorType, AuditEvent
from app.models.document import DocumentType, PatientDocument
from app.models.patient import Gender, Patient
from app.models.question_bank import QuestionBankEntry
from app.models.questionnaire import PublicLink, Questionnaire, QuestionnaireResponse
from app.models.user import User, UserRole

__all__ = [
    # Practitioner
    "User",
    "UserRole",
    # Patient
    "Patient",
    "Gender",
    "PatientDocument",
    "DocumentType",
    # Questionnaire
    "Questionnaire",
    "PublicLink",
    "QuestionnaireResponse",
    "QuestionBankEntry",
    # Audit
    "AuditEvent",
    "ActorType",
]
