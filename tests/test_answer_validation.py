"""Tests for validating a patient's answers against a questionnaire."""

import pytest

from app.questionnaire.questions import CheckboxAnswer, RadioAnswer, TextAnswer
from app.questionnaire.validation import (
    QuestionnaireValidationError,
    mime_type_accepted,
    validate_answer_set,
)
from tests.conftest import QUESTIONS


def questionnaire_with(*questions: dict) -> dict:
    return {"questions": list(questions)}


def error_fields(exc: QuestionnaireValidationError) -> set[str]:
    return {error.field for error in exc.errors}


SCALE = {
    "id": "pain",
    "question_text": "Nível de dor",
    "question_type": "scale",
    "order": 0,
    "min_value": 0,
    "max_value": 10,
}

RADIO = {
    "id": "skin",
    "question_text": "Tipo de pele",
    "question_type": "radio",
    "order": 0,
    "options": [
        {"id": "opt-oily", "label": "Oleosa", "value": "oily"},
        {"id": "opt-dry", "label": "Seca", "value": "dry"},
    ],
}

CHECKBOX = {
    "id": "areas",
    "question_text": "Áreas",
    "question_type": "checkbox",
    "order": 0,
    "options": [
        {"id": "a", "label": "A", "value": "a"},
        {"id": "b", "label": "B", "value": "b"},
        {"id": "c", "label": "C", "value": "c"},
    ],
    "max_selections": 2,
}

FILE = {
    "id": "photos",
    "question_text": "Fotos",
    "question_type": "file",
    "order": 0,
    "accepted_types": ["image/*", ".pdf"],
    "max_size_mb": 1,
    "max_files": 2,
}


class TestRequiredQuestions:
    """Required questions must have a non-empty answer."""

    def test_empty_answer_set_names_missing_question(self):
        with pytest.raises(QuestionnaireValidationError) as exc_info:
            validate_answer_set({"questions": QUESTIONS}, [])

        assert error_fields(exc_info.value) == {"answers.q1"}

    def test_blank_text_counts_as_missing(self):
        with pytest.raises(QuestionnaireValidationError) as exc_info:
            validate_answer_set({"questions": QUESTIONS}, [{"question_id": "q1", "value": "   "}])

        assert "answers.q1" in error_fields(exc_info.value)

    def test_only_required_answered(self):
        """The question type is filled in from the questionnaire."""
        answers = validate_answer_set(
            {"questions": QUESTIONS}, [{"question_id": "q1", "value": "ok"}]
        )

        assert len(answers) == 1
        assert isinstance(answers[0], TextAnswer)
        assert answers[0].question_type == "text"

    def test_answers_come_back_in_question_order(self):
        answers = validate_answer_set(
            {"questions": QUESTIONS},
            [
                {"question_id": "q3", "value": 4},
                {"question_id": "q2", "value": "no"},
                {"question_id": "q1", "value": "Manchas"},
            ],
        )

        assert [a.question_id for a in answers] == ["q1", "q2", "q3"]


class TestAnswerAddressing:
    """Answers that cannot be matched to a question."""

    def test_unknown_question_is_rejected(self):
        with pytest.raises(QuestionnaireValidationError) as exc_info:
            validate_answer_set(
                {"questions": QUESTIONS},
                [{"question_id": "q1", "value": "ok"}, {"question_id": "zzz", "value": "x"}],
            )

        assert error_fields(exc_info.value) == {"answers.1.question_id"}

    def test_mismatched_question_type(self):
        with pytest.raises(QuestionnaireValidationError) as exc_info:
            validate_answer_set(
                {"questions": QUESTIONS},
                [{"question_id": "q1", "question_type": "scale", "value": 3}],
            )

        assert "answers.q1.question_type" in error_fields(exc_info.value)

    def test_question_answered_twice(self):
        with pytest.raises(QuestionnaireValidationError) as exc_info:
            validate_answer_set(
                {"questions": QUESTIONS},
                [{"question_id": "q1", "value": "a"}, {"question_id": "q1", "value": "b"}],
            )

        assert "answers.q1" in error_fields(exc_info.value)

    def test_answers_must_be_a_list(self):
        with pytest.raises(QuestionnaireValidationError) as exc_info:
            validate_answer_set({"questions": QUESTIONS}, {"q1": "ok"})

        assert error_fields(exc_info.value) == {"answers"}


class TestRangeAnswers:
    """Scale and slider answers must fall inside the range."""

    @pytest.mark.parametrize("value", [0, 10, 5.5])
    def test_in_range_accepted(self, value):
        answers = validate_answer_set(
            questionnaire_with(SCALE), [{"question_id": "pain", "value": value}]
        )
        assert answers[0].value == value

    @pytest.mark.parametrize("value", [11, -1])
    def test_out_of_range_rejected(self, value):
        with pytest.raises(QuestionnaireValidationError) as exc_info:
            validate_answer_set(questionnaire_with(SCALE), [{"question_id": "pain", "value": value}])

        assert "answers.pain.value" in error_fields(exc_info.value)

    def test_string_number_rejected(self):
        with pytest.raises(QuestionnaireValidationError):
            validate_answer_set(questionnaire_with(SCALE), [{"question_id": "pain", "value": "5"}])


class TestChoiceAnswers:
    """Radio and checkbox selections."""

    def test_radio_matches_value_or_id(self):
        by_value = validate_answer_set(
            questionnaire_with(RADIO), [{"question_id": "skin", "selected_option": "oily"}]
        )
        by_id = validate_answer_set(
            questionnaire_with(RADIO), [{"question_id": "skin", "value": "opt-dry"}]
        )

        assert isinstance(by_value[0], RadioAnswer)
        assert by_value[0].selected_option == "oily"
        assert by_id[0].selected_option == "opt-dry"

    def test_radio_unknown_option(self):
        with pytest.raises(QuestionnaireValidationError) as exc_info:
            validate_answer_set(
                questionnaire_with(RADIO), [{"question_id": "skin", "selected_option": "mixed"}]
            )

        assert "answers.skin.selected_option" in error_fields(exc_info.value)

    def test_checkbox_max_selections(self):
        """Three selections exceed a limit of two; two are fine."""
        with pytest.raises(QuestionnaireValidationError) as exc_info:
            validate_answer_set(
                questionnaire_with(CHECKBOX),
                [{"question_id": "areas", "selected_options": ["a", "b", "c"]}],
            )
        assert "answers.areas.selected_options" in error_fields(exc_info.value)

        answers = validate_answer_set(
            questionnaire_with(CHECKBOX),
            [{"question_id": "areas", "selected_options": ["a", "b"]}],
        )
        assert isinstance(answers[0], CheckboxAnswer)
        assert answers[0].selected_options == ["a", "b"]

    def test_checkbox_repeated_selection(self):
        with pytest.raises(QuestionnaireValidationError) as exc_info:
            validate_answer_set(
                questionnaire_with(CHECKBOX),
                [{"question_id": "areas", "selected_options": ["a", "a"]}],
            )

        reasons = [e.reason for e in exc_info.value.errors]
        assert "options must not repeat" in reasons


class TestOtherAnswers:
    """Dates, files, yes/no and complaint pickers."""

    def test_date_bounds(self):
        question = {
            "id": "when",
            "question_text": "Quando?",
            "question_type": "date",
            "order": 0,
            "min_date": "2024-01-01",
            "max_date": "2024-12-31",
        }

        validate_answer_set(questionnaire_with(question), [{"question_id": "when", "value": "2024-05-10"}])

        with pytest.raises(QuestionnaireValidationError):
            validate_answer_set(questionnaire_with(question), [{"question_id": "when", "value": "2025-01-01"}])
        with pytest.raises(QuestionnaireValidationError):
            validate_answer_set(questionnaire_with(question), [{"question_id": "when", "value": "10/05/2024"}])

    def test_files_checked_against_question(self):
        ok = {"name": "rosto.jpg", "url": "https://cdn.example.com/rosto.jpg", "size": 1000, "type": "image/jpeg"}
        pdf = {"name": "exame.pdf", "url": "https://cdn.example.com/exame.pdf", "size": 1000, "type": "application/pdf"}
        too_big = {**ok, "size": 2 * 1024 * 1024}
        wrong_type = {**ok, "name": "notas.txt", "type": "text/plain"}

        validate_answer_set(questionnaire_with(FILE), [{"question_id": "photos", "files": [ok, pdf]}])

        with pytest.raises(QuestionnaireValidationError) as exc_info:
            validate_answer_set(
                questionnaire_with(FILE),
                [{"question_id": "photos", "files": [too_big, wrong_type, ok]}],
            )

        fields = error_fields(exc_info.value)
        assert "answers.photos.files" in fields
        assert "answers.photos.files.0.size" in fields
        assert "answers.photos.files.1.type" in fields

    def test_yes_no_accepts_unknown(self):
        question = {"id": "smoker", "question_text": "Fuma?", "question_type": "yes_no", "order": 0}

        answers = validate_answer_set(
            questionnaire_with(question), [{"question_id": "smoker", "value": "unknown"}]
        )
        assert answers[0].value == "unknown"

        with pytest.raises(QuestionnaireValidationError):
            validate_answer_set(questionnaire_with(question), [{"question_id": "smoker", "value": "maybe"}])

    def test_complaint_regions(self):
        question = {
            "id": "face",
            "question_text": "Regiões",
            "question_type": "facial_complaints",
            "order": 0,
        }

        validate_answer_set(
            questionnaire_with(question),
            [{"question_id": "face", "value": ["rugas-testa", "pes-de-galinha"]}],
        )

        with pytest.raises(QuestionnaireValidationError) as exc_info:
            validate_answer_set(
                questionnaire_with(question),
                [{"question_id": "face", "value": ["rugas-testa", "joelho"]}],
            )
        assert "answers.face.value" in error_fields(exc_info.value)


class TestMimeTypes:
    """Accepted type patterns for uploaded files."""

    @pytest.mark.parametrize(
        ("file_type", "file_name", "patterns", "expected"),
        [
            ("image/png", "a.png", ["image/*"], True),
            ("image/png", "a.png", ["image/jpeg"], False),
            ("application/pdf", "a.PDF", [".pdf"], True),
            ("text/plain", "a.txt", ["*/*"], True),
            ("text/plain", "a.txt", ["application/pdf", "image/*"], False),
        ],
    )
    def test_patterns(self, file_type, file_name, patterns, expected):
        assert mime_type_accepted(file_type, file_name, patterns) is expected
