"""Response listing and per-question aggregation.

``summarize_responses`` is pure and works on stored answer lists; the
``ReportingService`` queries the practitioner's responses around it.
"""

from collections import Counter
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.patient import Patient
from app.models.questionnaire import Questionnaire, QuestionnaireResponse
from app.questionnaire.questions import QuestionType, load_questions


@dataclass
class QuestionSummary:
    """Aggregate for one question."""
    question_id: str
    question_text: str
    question_type: str
    answered: int = 0
    counts: dict[str, int] = field(default_factory=dict)
    minimum: float | None = None
    maximum: float | None = None
    mean: float | None = None
    files: int = 0


@dataclass
class QuestionnaireSummary:
    """Aggregate over every response to a questionnaire."""
    questionnaire_id: str
    total_responses: int
    questions: list[QuestionSummary]


COUNTED_TYPES = {
    QuestionType.RADIO,
    QuestionType.CHECKBOX,
    QuestionType.YES_NO,
    QuestionType.FACIAL_COMPLAINTS,
    QuestionType.BODY_COMPLAINTS,
}


def _payload(answer: dict[str, Any]) -> Any:
    for key in ("value", "selected_option", "selected_options", "files"):
        if answer.get(key) is not None:
            return answer[key]
    return None


def _is_blank(payload: Any) -> bool:
    if payload is None:
        return True
    if isinstance(payload, str):
        return not payload.strip()
    if isinstance(payload, list):
        return not payload
    return False


def summarize_responses(
    questionnaire: Any,
    responses: list[Any],
) -> QuestionnaireSummary:
    """Aggregate stored answers per question.

    Args:
        questionnaire: Object exposing ``id`` and ``questions``
        responses: Objects exposing ``answers`` (list of answer dicts)

    Returns:
        QuestionnaireSummary in question order. Option counts are keyed by
        the stored selection; yes/no counts by ``yes``/``no``/``unknown``;
        complaint counts by region id.
    """
    questions = sorted(load_questions(questionnaire.questions), key=lambda q: q.order)
    summaries = {
        q.id: QuestionSummary(
            question_id=q.id,
            question_text=q.question_text,
            question_type=q.question_type,
        )
        for q in questions
    }
    numbers: dict[str, list[float]] = {q.id: [] for q in questions}
    counters: dict[str, Counter] = {q.id: Counter() for q in questions}

    for response in responses:
        for answer in response.answers or []:
            summary = summaries.get(answer.get("question_id"))
            if summary is None:
                continue
            payload = _payload(answer)
            if _is_blank(payload):
                continue

            summary.answered += 1
            question_type = QuestionType(summary.question_type)

            if question_type in (QuestionType.SCALE, QuestionType.SLIDER):
                numbers[summary.question_id].append(float(payload))
            elif question_type == QuestionType.FILE:
                summary.files += len(payload)
            elif question_type in COUNTED_TYPES:
                selections = payload if isinstance(payload, list) else [payload]
                counters[summary.question_id].update(str(s) for s in selections)

    for question_id, summary in summaries.items():
        values = numbers[question_id]
        if values:
            summary.minimum = min(values)
            summary.maximum = max(values)
            summary.mean = round(sum(values) / len(values), 2)
        summary.counts = dict(counters[question_id])

    return QuestionnaireSummary(
        questionnaire_id=questionnaire.id,
        total_responses=len(responses),
        questions=[summaries[q.id] for q in questions],
    )


class ResponseNotFoundError(Exception):
    """Raised when the response is missing or not the practitioner's."""

    pass


class ReportingService:
    """Queries over responses to a practitioner's questionnaires."""

    def __init__(self, session: AsyncSession, doctor_id: str) -> None:
        self.session = session
        self.doctor_id = doctor_id

    def _owned(self):
        return (
            select(QuestionnaireResponse, Questionnaire, Patient)
            .join(Questionnaire, Questionnaire.id == QuestionnaireResponse.questionnaire_id)
            .join(Patient, Patient.id == QuestionnaireResponse.patient_id)
            .where(Questionnaire.doctor_id == self.doctor_id)
        )

    async def list_responses(
        self,
        search: str | None = None,
        page: int = 1,
        limit: int = 20,
    ) -> tuple[list[tuple[QuestionnaireResponse, Questionnaire, Patient]], int]:
        """Completed responses, newest first."""
        query = self._owned()
        if search:
            pattern = f"%{search.strip()}%"
            query = query.where(
                or_(Questionnaire.title.ilike(pattern), Patient.full_name.ilike(pattern))
            )

        total = await self.session.scalar(
            select(func.count()).select_from(query.subquery())
        )
        result = await self.session.execute(
            query.order_by(QuestionnaireResponse.completed_at.desc(), QuestionnaireResponse.id)
            .offset((page - 1) * limit)
            .limit(limit)
        )
        return [tuple(row) for row in result.all()], total or 0

    async def get_response(
        self, response_id: str
    ) -> tuple[QuestionnaireResponse, Questionnaire, Patient]:
        result = await self.session.execute(
            self._owned().where(QuestionnaireResponse.id == response_id)
        )
        row = result.first()
        if row is None:
            raise ResponseNotFoundError(response_id)
        return tuple(row)

    async def summarize(self, questionnaire: Questionnaire) -> QuestionnaireSummary:
        result = await self.session.execute(
            select(QuestionnaireResponse).where(
                QuestionnaireResponse.questionnaire_id == questionnaire.id
            )
        )
        return summarize_responses(questionnaire, list(result.scalars().all()))
