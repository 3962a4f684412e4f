"""Business logic services."""

from app.services.audit import write_audit_event
from app.services.auth import AuthService
from app.services.document import DocumentService
from app.services.link_store import PublicLinkStore, SQLPublicLinkStore
from app.services.patient import PatientService
from app.services.public_link import PublicLinkRedemption
from app.services.question_bank import QuestionBankService
from app.services.questionnaire import QuestionnaireService
from app.services.reporting import ReportingService, summarize_responses

__all__ = [
    "write_audit_event",
    "AuthService",
    "DocumentService",
    "PatientService",
    "PublicLinkStore",
    "SQLPublicLinkStore",
    "PublicLinkRedemption",
    "QuestionBankService",
    "QuestionnaireService",
    "ReportingService",
    "summarize_responses",
]
