"""Tests for response listing and per-question aggregation."""

from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.patient import Patient
from app.models.questionnaire import PublicLink, Questionnaire, QuestionnaireResponse
from app.models.user import User
from app.services.reporting import summarize_responses
from tests.conftest import QUESTIONS

FORM = SimpleNamespace(id="form-1", questions=QUESTIONS)


def stored(*answers: dict) -> SimpleNamespace:
    return SimpleNamespace(answers=list(answers))


class TestSummarizeResponses:
    """Pure aggregation over stored answer lists."""

    def test_no_responses(self):
        summary = summarize_responses(FORM, [])

        assert summary.total_responses == 0
        assert [q.question_id for q in summary.questions] == ["q1", "q2", "q3", "q4"]
        assert all(q.answered == 0 for q in summary.questions)
        assert summary.questions[2].mean is None

    def test_numeric_and_counted_questions(self):
        responses = [
            stored(
                {"question_id": "q2", "value": "no"},
                {"question_id": "q3", "value": 3},
                {"question_id": "q4", "selected_options": ["a", "c"]},
            ),
            stored(
                {"question_id": "q2", "value": "no"},
                {"question_id": "q3", "value": 4},
                {"question_id": "q4", "selected_options": ["c"]},
            ),
            stored(
                {"question_id": "q2", "value": "unknown"},
                {"question_id": "q3", "value": 4},
            ),
        ]

        summary = summarize_responses(FORM, responses)
        by_id = {q.question_id: q for q in summary.questions}

        assert summary.total_responses == 3
        assert by_id["q2"].counts == {"no": 2, "unknown": 1}
        assert by_id["q3"].minimum == 3
        assert by_id["q3"].maximum == 4
        assert by_id["q3"].mean == 3.67
        assert by_id["q4"].answered == 2
        assert by_id["q4"].counts == {"a": 1, "c": 2}

    def test_blank_and_unknown_answers_skipped(self):
        responses = [
            stored(
                {"question_id": "q1", "value": "   "},
                {"question_id": "q4", "selected_options": []},
                {"question_id": "removed", "value": "old question"},
            ),
        ]

        summary = summarize_responses(FORM, responses)

        assert all(q.answered == 0 for q in summary.questions)
        assert summary.questions[3].counts == {}

    def test_file_answers_counted(self):
        form = SimpleNamespace(
            id="form-2",
            questions=[
                {
                    "id": "photos",
                    "question_text": "Envie fotos da área",
                    "question_type": "file",
                    "required": False,
                    "order": 0,
                    "accepted_types": ["image/*"],
                    "max_files": 3,
                    "max_size_mb": 5,
                }
            ],
        )
        files = [
            {"name": "frente.jpg", "type": "image/jpeg", "size": 1000},
            {"name": "perfil.jpg", "type": "image/jpeg", "size": 2000},
        ]

        summary = summarize_responses(form, [stored({"question_id": "photos", "files": files})])

        assert summary.questions[0].answered == 1
        assert summary.questions[0].files == 2


@pytest.fixture
async def responses(
    async_session: AsyncSession,
    practitioner: User,
    questionnaire: Questionnaire,
    patient: Patient,
) -> list[QuestionnaireResponse]:
    """Two completed responses from different patients, one day apart."""
    other_patient = Patient(doctor_id=practitioner.id, full_name="Pedro Alves")
    async_session.add(other_patient)
    await async_session.commit()

    created = []
    completed_at = datetime(2025, 3, 10, 12, 0, tzinfo=timezone.utc)
    for offset, target in enumerate([patient, other_patient]):
        link = PublicLink(
            token=f"reporting_token_{offset}_{uuid4().hex}",
            questionnaire_id=questionnaire.id,
            patient_id=target.id,
        )
        async_session.add(link)
        await async_session.flush()
        response = QuestionnaireResponse(
            public_link_id=link.id,
            questionnaire_id=questionnaire.id,
            patient_id=target.id,
            answers=[{"question_id": "q1", "question_type": "text", "value": "Manchas"}],
            completed_at=completed_at + timedelta(days=offset),
        )
        async_session.add(response)
        created.append(response)
    await async_session.commit()
    return created


class TestResponseEndpoints:
    """GET /api/v1/responses and /{id}."""

    @pytest.mark.asyncio
    async def test_list_newest_first(
        self,
        client: TestClient,
        auth_headers: dict,
        responses: list[QuestionnaireResponse],
    ):
        response = client.get("/api/v1/responses", headers=auth_headers)

        assert response.status_code == 200
        body = response.json()
        assert body["pagination"]["total"] == 2
        assert [r["patient_name"] for r in body["data"]] == ["Pedro Alves", "Maria Silva"]
        assert body["data"][0]["questionnaire_title"] == "Avaliação Facial"

    @pytest.mark.asyncio
    async def test_search_by_patient_name(
        self,
        client: TestClient,
        auth_headers: dict,
        responses: list[QuestionnaireResponse],
    ):
        response = client.get("/api/v1/responses?search=maria", headers=auth_headers)

        assert [r["patient_name"] for r in response.json()["data"]] == ["Maria Silva"]

    @pytest.mark.asyncio
    async def test_pagination(
        self,
        client: TestClient,
        auth_headers: dict,
        responses: list[QuestionnaireResponse],
    ):
        response = client.get("/api/v1/responses?page=2&limit=1", headers=auth_headers)

        body = response.json()
        assert [r["patient_name"] for r in body["data"]] == ["Maria Silva"]
        assert body["pagination"]["total_pages"] == 2

    @pytest.mark.asyncio
    async def test_detail_embeds_questionnaire_and_patient(
        self,
        client: TestClient,
        auth_headers: dict,
        responses: list[QuestionnaireResponse],
    ):
        response_id = responses[0].id

        response = client.get(f"/api/v1/responses/{response_id}", headers=auth_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["questionnaire"]["title"] == "Avaliação Facial"
        assert data["patient"]["full_name"] == "Maria Silva"
        assert data["answers"][0]["value"] == "Manchas"

    @pytest.mark.asyncio
    async def test_other_practitioner_sees_nothing(
        self,
        client: TestClient,
        other_auth_headers: dict,
        responses: list[QuestionnaireResponse],
    ):
        listing = client.get("/api/v1/responses", headers=other_auth_headers)
        detail = client.get(f"/api/v1/responses/{responses[0].id}", headers=other_auth_headers)

        assert listing.json()["data"] == []
        assert detail.status_code == 404
        assert detail.json()["detail"] == "Response not found"

    @pytest.mark.asyncio
    async def test_requires_authentication(self, client: TestClient):
        assert client.get("/api/v1/responses").status_code == 401
