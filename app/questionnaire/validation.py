"""Questionnaire and answer set validation.

Both entry points collect every violation they find and raise a single
QuestionnaireValidationError carrying the full list, so that a form can
highlight all problem fields at once.
"""

from collections import Counter
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ValidationError

from app.questionnaire.questions import (
    ANSWER_CLASSES,
    QUESTION_CLASSES,
    BaseAnswer,
    BaseQuestion,
    CheckboxAnswer,
    CheckboxQuestion,
    DateAnswer,
    DateQuestion,
    FileAnswer,
    FileQuestion,
    QuestionnaireForm,
    QuestionnaireMetadata,
    QuestionType,
    RadioAnswer,
    RadioQuestion,
    TextAnswer,
    TextQuestion,
    load_questions,
)
from app.questionnaire.regions import BODY_COMPLAINT_IDS, FACIAL_COMPLAINT_IDS
from app.utils.time import parse_iso_date

BYTES_PER_MB = 1024 * 1024

REGION_IDS = {
    QuestionType.FACIAL_COMPLAINTS.value: FACIAL_COMPLAINT_IDS,
    QuestionType.BODY_COMPLAINTS.value: BODY_COMPLAINT_IDS,
}


@dataclass(frozen=True)
class FieldError:
    """One validation failure, addressed by a dotted field path."""

    field: str
    reason: str

    def to_dict(self) -> dict[str, str]:
        return {"field": self.field, "reason": self.reason}


class QuestionnaireValidationError(Exception):
    """Raised with every violation found in a questionnaire or answer set."""

    def __init__(self, errors: Iterable[FieldError]) -> None:
        self.errors = list(errors)
        super().__init__(f"{len(self.errors)} validation error(s)")

    def to_list(self) -> list[dict[str, str]]:
        return [error.to_dict() for error in self.errors]


def _pydantic_errors(prefix: str, exc: ValidationError) -> list[FieldError]:
    errors = []
    for item in exc.errors():
        path = ".".join([prefix, *(str(part) for part in item["loc"])]).strip(".")
        reason = item["msg"].removeprefix("Value error, ")
        errors.append(FieldError(path or prefix, reason))
    return errors


def _as_mapping(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump()
    return value


# =============================================================================
# Questionnaire
# =============================================================================


def _parse_question(index: int, raw: Any) -> tuple[BaseQuestion | None, list[FieldError]]:
    prefix = f"questions.{index}"
    if not isinstance(raw, Mapping):
        return None, [FieldError(prefix, "must be an object")]

    tag = raw.get("question_type")
    try:
        question_class = QUESTION_CLASSES[QuestionType(tag)]
    except ValueError:
        return None, [FieldError(f"{prefix}.question_type", f"unknown question type '{tag}'")]

    try:
        return question_class.model_validate(raw), []
    except ValidationError as exc:
        return None, _pydantic_errors(prefix, exc)


def _duplicate_errors(parsed: dict[int, BaseQuestion], key: str) -> list[FieldError]:
    """Compare coerced values, so ``1``, ``"1"`` and ``1.0`` are one order."""
    counts = Counter(getattr(question, key) for question in parsed.values())
    errors = []
    seen: set[Any] = set()
    for index, question in parsed.items():
        value = getattr(question, key)
        if counts[value] < 2:
            continue
        if value in seen:
            errors.append(
                FieldError(f"questions.{index}.{key}", f"duplicate question {key} '{value}'")
            )
        seen.add(value)
    return errors


def validate_questionnaire(candidate: Mapping[str, Any] | BaseModel) -> QuestionnaireForm:
    """Validate a questionnaire definition.

    Every question is checked against its variant, then question ids and
    orders are checked for uniqueness across the questionnaire.

    Args:
        candidate: Raw questionnaire data (title, questions, ...)

    Returns:
        The parsed questionnaire

    Raises:
        QuestionnaireValidationError: With every violation found
    """
    data = _as_mapping(candidate)
    if not isinstance(data, Mapping):
        raise QuestionnaireValidationError([FieldError("", "must be an object")])

    errors: list[FieldError] = []

    metadata = {key: value for key, value in data.items() if key != "questions"}
    try:
        QuestionnaireMetadata.model_validate(metadata)
    except ValidationError as exc:
        errors.extend(_pydantic_errors("", exc))

    questions = data.get("questions")
    if not isinstance(questions, list):
        errors.append(FieldError("questions", "must be a list of questions"))
    elif not questions:
        errors.append(FieldError("questions", "at least one question is required"))
    else:
        questions = [_as_mapping(q) for q in questions]
        parsed: dict[int, BaseQuestion] = {}
        for index, raw in enumerate(questions):
            question, question_errors = _parse_question(index, raw)
            errors.extend(question_errors)
            if question is not None:
                parsed[index] = question
        errors.extend(_duplicate_errors(parsed, "id"))
        errors.extend(_duplicate_errors(parsed, "order"))

    if errors:
        raise QuestionnaireValidationError(errors)

    try:
        return QuestionnaireForm.model_validate({**data, "questions": questions})
    except ValidationError as exc:
        raise QuestionnaireValidationError(_pydantic_errors("", exc)) from exc


# =============================================================================
# Answers
# =============================================================================


def mime_type_accepted(file_type: str, file_name: str, accepted_types: Iterable[str]) -> bool:
    """Check an uploaded file against a question's accepted type patterns.

    Patterns may be exact MIME types, ``type/*`` wildcards, ``*`` or ``*/*``,
    or file extensions such as ``.pdf``.
    """
    file_type = file_type.strip().lower()
    file_name = file_name.strip().lower()
    for pattern in accepted_types:
        pattern = pattern.strip().lower()
        if pattern in ("*", "*/*"):
            return True
        if pattern.startswith("."):
            if file_name.endswith(pattern):
                return True
        elif pattern.endswith("/*"):
            if file_type.startswith(pattern[:-1]):
                return True
        elif file_type == pattern:
            return True
    return False


def _option_matches(question: RadioQuestion | CheckboxQuestion, selection: str) -> bool:
    return any(selection in (option.value, option.id) for option in question.options)


def _payload_errors(question: BaseQuestion, answer: BaseAnswer, prefix: str) -> list[FieldError]:
    """Check a non-empty answer payload against its question's constraints."""
    field = f"{prefix}.{answer.payload_field}"
    errors: list[FieldError] = []

    if isinstance(question, TextQuestion) and isinstance(answer, TextAnswer):
        if question.max_length is not None and len(answer.value) > question.max_length:
            errors.append(
                FieldError(field, f"must be at most {question.max_length} characters")
            )

    elif question.question_type in ("scale", "slider"):
        if not question.min_value <= answer.value <= question.max_value:
            errors.append(
                FieldError(
                    field,
                    f"must be between {question.min_value} and {question.max_value}",
                )
            )

    elif isinstance(question, RadioQuestion) and isinstance(answer, RadioAnswer):
        if not _option_matches(question, answer.selected_option):
            errors.append(FieldError(field, f"'{answer.selected_option}' is not an option"))

    elif isinstance(question, CheckboxQuestion) and isinstance(answer, CheckboxAnswer):
        selections = answer.selected_options
        unknown = [s for s in selections if not _option_matches(question, s)]
        if unknown:
            errors.append(FieldError(field, f"not options: {', '.join(unknown)}"))
        if len(set(selections)) != len(selections):
            errors.append(FieldError(field, "options must not repeat"))
        if question.max_selections is not None and len(selections) > question.max_selections:
            errors.append(
                FieldError(field, f"at most {question.max_selections} selections allowed")
            )

    elif isinstance(question, DateQuestion) and isinstance(answer, DateAnswer):
        try:
            value = parse_iso_date(answer.value)
        except ValueError:
            errors.append(FieldError(field, "must be an ISO date (YYYY-MM-DD)"))
        else:
            if question.min_date is not None and value < parse_iso_date(question.min_date):
                errors.append(FieldError(field, f"must not be before {question.min_date}"))
            if question.max_date is not None and value > parse_iso_date(question.max_date):
                errors.append(FieldError(field, f"must not be after {question.max_date}"))

    elif isinstance(question, FileQuestion) and isinstance(answer, FileAnswer):
        if question.max_files is not None and len(answer.files) > question.max_files:
            errors.append(FieldError(field, f"at most {question.max_files} files allowed"))
        size_limit = question.max_size_mb * BYTES_PER_MB
        for position, uploaded in enumerate(answer.files):
            if not mime_type_accepted(uploaded.type, uploaded.name, question.accepted_types):
                errors.append(
                    FieldError(f"{field}.{position}.type", f"type '{uploaded.type}' not accepted")
                )
            if uploaded.size > size_limit:
                errors.append(
                    FieldError(
                        f"{field}.{position}.size",
                        f"file exceeds {question.max_size_mb} MB",
                    )
                )

    elif question.question_type in REGION_IDS:
        allowed = REGION_IDS[question.question_type]
        unknown = [region for region in answer.value if region not in allowed]
        if unknown:
            errors.append(FieldError(field, f"unknown regions: {', '.join(unknown)}"))
        if len(set(answer.value)) != len(answer.value):
            errors.append(FieldError(field, "regions must not repeat"))

    return errors


def _questions_of(questionnaire: Any) -> list[BaseQuestion]:
    if isinstance(questionnaire, Mapping):
        raw = questionnaire.get("questions") or []
    else:
        raw = getattr(questionnaire, "questions", None) or []
    if all(isinstance(q, BaseQuestion) for q in raw):
        return list(raw)
    return load_questions(raw)


def validate_answer_set(questionnaire: Any, candidate_answers: Any) -> list[BaseAnswer]:
    """Validate a patient's answers against a questionnaire.

    Answers whose question resolves are addressed as ``answers.<question_id>``
    in errors; answers that cannot be tied to a question are addressed by
    position (``answers.<index>``).

    Args:
        questionnaire: Object or mapping exposing ``questions``
        candidate_answers: List of answer mappings or answer models

    Returns:
        Parsed answers, with ``question_type`` filled in, in question order

    Raises:
        QuestionnaireValidationError: With every violation found
    """
    questions = _questions_of(questionnaire)
    by_id = {question.id: question for question in questions}

    if not isinstance(candidate_answers, list):
        raise QuestionnaireValidationError([FieldError("answers", "must be a list")])

    errors: list[FieldError] = []
    accepted: dict[str, BaseAnswer] = {}
    seen: set[str] = set()

    for index, raw in enumerate(candidate_answers):
        raw = _as_mapping(raw)
        if not isinstance(raw, Mapping):
            errors.append(FieldError(f"answers.{index}", "must be an object"))
            continue

        question_id = raw.get("question_id")
        if not isinstance(question_id, str) or not question_id:
            errors.append(FieldError(f"answers.{index}.question_id", "is required"))
            continue

        question = by_id.get(question_id)
        if question is None:
            errors.append(
                FieldError(f"answers.{index}.question_id", f"unknown question '{question_id}'")
            )
            continue

        prefix = f"answers.{question_id}"
        tag = raw.get("question_type")
        if tag is not None and tag != question.question_type:
            errors.append(
                FieldError(
                    f"{prefix}.question_type",
                    f"expected '{question.question_type}', got '{tag}'",
                )
            )
            continue

        if question_id in seen:
            errors.append(FieldError(prefix, "question answered more than once"))
            continue
        seen.add(question_id)

        answer_class = ANSWER_CLASSES[QuestionType(question.question_type)]
        try:
            answer = answer_class.model_validate(
                {**raw, "question_type": question.question_type}
            )
        except ValidationError as exc:
            errors.extend(_pydantic_errors(prefix, exc))
            continue

        accepted[question_id] = answer
        if not answer.is_empty():
            errors.extend(_payload_errors(question, answer, prefix))

    for question in questions:
        if not question.required:
            continue
        answer = accepted.get(question.id)
        if answer is None and question.id in seen:
            # Already reported as a malformed answer
            continue
        if answer is None or answer.is_empty():
            errors.append(FieldError(f"answers.{question.id}", "required question not answered"))

    if errors:
        raise QuestionnaireValidationError(errors)

    ordered = sorted(questions, key=lambda q: q.order)
    return [accepted[q.id] for q in ordered if q.id in accepted]
