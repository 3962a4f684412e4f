"""Tests for the public link redemption protocol.

These run against an in-memory store that enforces one response per link,
with a fixed clock so expiry is deterministic.
"""

from datetime import datetime, timedelta, timezone
from uuid import uuid4

import pytest

from app.models.patient import Patient
from app.models.questionnaire import PublicLink, Questionnaire, QuestionnaireResponse
from app.services.link_store import DuplicateResponseError, PublicLinkStore
from app.services.public_link import (
    AlreadyAnsweredError,
    AnswersInvalidError,
    LinkExpiredError,
    LinkNotFoundError,
    PublicLinkRedemption,
)
from tests.conftest import QUESTIONS

NOW = datetime(2025, 3, 10, 12, 0, tzinfo=timezone.utc)


class InMemoryLinkStore(PublicLinkStore):
    """PublicLinkStore keeping rows in dicts; one response per link."""

    def __init__(self) -> None:
        self.links: dict[str, PublicLink] = {}
        self.questionnaires: dict[str, Questionnaire] = {}
        self.patients: dict[str, Patient] = {}
        self.responses: dict[str, QuestionnaireResponse] = {}
        # Response stored by a competing submission right before our insert
        self.race_winner: QuestionnaireResponse | None = None

    async def get_link_by_token(self, token):
        return next((link for link in self.links.values() if link.token == token), None)

    async def find_live_link(self, questionnaire_id, patient_id, now):
        live = [
            link
            for link in self.links.values()
            if link.questionnaire_id == questionnaire_id
            and link.patient_id == patient_id
            and not link.is_expired_at(now)
        ]
        return live[-1] if live else None

    async def create_link(self, questionnaire_id, patient_id, token, expires_at):
        if any(link.token == token for link in self.links.values()):
            raise AssertionError("token collision")
        link = PublicLink(
            id=str(uuid4()),
            questionnaire_id=questionnaire_id,
            patient_id=patient_id,
            token=token,
            expires_at=expires_at,
            is_used=False,
        )
        self.links[link.id] = link
        return link

    async def get_questionnaire(self, questionnaire_id):
        return self.questionnaires.get(questionnaire_id)

    async def get_patient(self, patient_id):
        return self.patients.get(patient_id)

    async def get_response_by_link_id(self, link_id):
        return self.responses.get(link_id)

    async def insert_response(self, link, answers, completed_at):
        if self.race_winner is not None:
            self.responses[link.id] = self.race_winner
            self.race_winner = None
        if link.id in self.responses:
            raise DuplicateResponseError(link.id)
        response = QuestionnaireResponse(
            id=str(uuid4()),
            public_link_id=link.id,
            questionnaire_id=link.questionnaire_id,
            patient_id=link.patient_id,
            answers=answers,
            completed_at=completed_at,
        )
        self.responses[link.id] = response
        return response


class FixedClock:
    """Clock that only moves when told to."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta) -> None:
        self.now += delta


@pytest.fixture
def store() -> InMemoryLinkStore:
    store = InMemoryLinkStore()
    questionnaire = Questionnaire(
        id=str(uuid4()),
        doctor_id=str(uuid4()),
        title="Avaliação",
        questions=QUESTIONS,
        is_active=True,
    )
    patient = Patient(id=str(uuid4()), doctor_id=questionnaire.doctor_id, full_name="Maria Silva")
    store.questionnaires[questionnaire.id] = questionnaire
    store.patients[patient.id] = patient
    return store


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(NOW)


@pytest.fixture
def questionnaire(store: InMemoryLinkStore) -> Questionnaire:
    return next(iter(store.questionnaires.values()))


@pytest.fixture
def patient(store: InMemoryLinkStore) -> Patient:
    return next(iter(store.patients.values()))


async def make_link(store, questionnaire, patient, token="tok", expires_at=None) -> PublicLink:
    return await store.create_link(questionnaire.id, patient.id, token, expires_at)


VALID_ANSWERS = [{"question_id": "q1", "value": "ok"}]


class TestResolve:
    """Looking a token up."""

    async def test_unknown_token(self, store, clock):
        redemption = PublicLinkRedemption(store, clock=clock)

        with pytest.raises(LinkNotFoundError):
            await redemption.resolve("missing")

    async def test_live_unanswered_link(self, store, clock, questionnaire, patient):
        await make_link(store, questionnaire, patient, expires_at=NOW + timedelta(days=1))
        redemption = PublicLinkRedemption(store, clock=clock)

        resolution = await redemption.resolve("tok")

        assert resolution.questionnaire is questionnaire
        assert resolution.patient is patient
        assert resolution.response is None
        assert resolution.is_answered is False

    async def test_expired_even_though_row_exists(self, store, clock, questionnaire, patient):
        """Expiry is judged against the clock, not by the store."""
        await make_link(store, questionnaire, patient, expires_at=NOW - timedelta(seconds=1))
        redemption = PublicLinkRedemption(store, clock=clock)

        with pytest.raises(LinkExpiredError):
            await redemption.resolve("tok")

    async def test_expires_exactly_at_boundary(self, store, clock, questionnaire, patient):
        await make_link(store, questionnaire, patient, expires_at=NOW)
        redemption = PublicLinkRedemption(store, clock=clock)

        with pytest.raises(LinkExpiredError):
            await redemption.resolve("tok")

    async def test_link_without_expiry_never_expires(self, store, clock, questionnaire, patient):
        await make_link(store, questionnaire, patient)
        clock.advance(timedelta(days=3650))
        redemption = PublicLinkRedemption(store, clock=clock)

        resolution = await redemption.resolve("tok")

        assert resolution.link.expires_at is None

    async def test_missing_questionnaire_reads_as_not_found(self, store, clock, questionnaire, patient):
        await make_link(store, questionnaire, patient)
        store.questionnaires.clear()
        redemption = PublicLinkRedemption(store, clock=clock)

        with pytest.raises(LinkNotFoundError):
            await redemption.resolve("tok")

    async def test_answered_link_returns_response(self, store, clock, questionnaire, patient):
        await make_link(store, questionnaire, patient)
        redemption = PublicLinkRedemption(store, clock=clock)
        stored = await redemption.submit("tok", VALID_ANSWERS)

        resolution = await redemption.resolve("tok")

        assert resolution.is_answered is True
        assert resolution.response is stored


class TestSubmit:
    """Recording the single response for a link."""

    async def test_submit_then_already_answered(self, store, clock, questionnaire, patient):
        """The second submit reports the first response's completion time."""
        await make_link(store, questionnaire, patient)
        redemption = PublicLinkRedemption(store, clock=clock)

        response = await redemption.submit("tok", VALID_ANSWERS)
        assert response.completed_at == NOW
        assert response.answers == [{"question_id": "q1", "question_type": "text", "value": "ok"}]

        clock.advance(timedelta(minutes=5))
        with pytest.raises(AlreadyAnsweredError) as exc_info:
            await redemption.submit("tok", VALID_ANSWERS)

        assert exc_info.value.response_id == response.id
        assert exc_info.value.completed_at == NOW
        assert len(store.responses) == 1

    async def test_missing_required_answer(self, store, clock, questionnaire, patient):
        await make_link(store, questionnaire, patient)
        redemption = PublicLinkRedemption(store, clock=clock)

        with pytest.raises(AnswersInvalidError) as exc_info:
            await redemption.submit("tok", [])

        assert [e.field for e in exc_info.value.errors] == ["answers.q1"]
        assert store.responses == {}

    async def test_invalid_answers_leave_link_open(self, store, clock, questionnaire, patient):
        await make_link(store, questionnaire, patient)
        redemption = PublicLinkRedemption(store, clock=clock)

        with pytest.raises(AnswersInvalidError):
            await redemption.submit("tok", [{"question_id": "q1", "value": "ok"}, {"question_id": "q3", "value": 11}])

        response = await redemption.submit("tok", VALID_ANSWERS)
        assert response.public_link_id in store.responses

    async def test_expired_link_rejects_submit(self, store, clock, questionnaire, patient):
        await make_link(store, questionnaire, patient, expires_at=NOW + timedelta(hours=1))
        redemption = PublicLinkRedemption(store, clock=clock)
        clock.advance(timedelta(hours=2))

        with pytest.raises(LinkExpiredError):
            await redemption.submit("tok", VALID_ANSWERS)

    async def test_unknown_token_rejects_submit(self, store, clock):
        redemption = PublicLinkRedemption(store, clock=clock)

        with pytest.raises(LinkNotFoundError):
            await redemption.submit("missing", VALID_ANSWERS)

    async def test_answered_link_stays_answered_after_expiry(self, store, clock, questionnaire, patient):
        """Once expired, an answered link reads as expired."""
        await make_link(store, questionnaire, patient, expires_at=NOW + timedelta(hours=1))
        redemption = PublicLinkRedemption(store, clock=clock)
        await redemption.submit("tok", VALID_ANSWERS)

        clock.advance(timedelta(hours=2))

        with pytest.raises(LinkExpiredError):
            await redemption.resolve("tok")

    async def test_lost_insert_race(self, store, clock, questionnaire, patient):
        """A concurrent winner surfaces as AlreadyAnswered with its own timestamp."""
        link = await make_link(store, questionnaire, patient)
        winner_time = NOW - timedelta(seconds=2)
        store.race_winner = QuestionnaireResponse(
            id=str(uuid4()),
            public_link_id=link.id,
            questionnaire_id=questionnaire.id,
            patient_id=patient.id,
            answers=[],
            completed_at=winner_time,
        )
        redemption = PublicLinkRedemption(store, clock=clock)

        with pytest.raises(AlreadyAnsweredError) as exc_info:
            await redemption.submit("tok", VALID_ANSWERS)

        assert exc_info.value.completed_at == winner_time
        assert store.responses[link.id].completed_at == winner_time

    async def test_soft_deleted_patient_can_still_answer(self, store, clock, questionnaire, patient):
        await make_link(store, questionnaire, patient)
        patient.soft_delete()
        redemption = PublicLinkRedemption(store, clock=clock)

        response = await redemption.submit("tok", VALID_ANSWERS)

        assert response.patient_id == patient.id


class TestIssue:
    """Issuing links for a questionnaire and patient."""

    async def test_creates_link_without_expiry_by_default(self, store, clock, questionnaire, patient):
        redemption = PublicLinkRedemption(store, clock=clock)

        link, created = await redemption.issue(questionnaire, patient)

        assert created is True
        assert link.expires_at is None
        assert len(link.token) >= 32

    async def test_ttl_sets_expiry(self, store, clock, questionnaire, patient):
        redemption = PublicLinkRedemption(store, clock=clock, link_ttl=timedelta(days=7))

        link, _ = await redemption.issue(questionnaire, patient)

        assert link.expires_at == NOW + timedelta(days=7)

    async def test_reuses_live_link(self, store, clock, questionnaire, patient):
        redemption = PublicLinkRedemption(store, clock=clock, link_ttl=timedelta(days=7))
        first, _ = await redemption.issue(questionnaire, patient)

        clock.advance(timedelta(days=1))
        second, created = await redemption.issue(questionnaire, patient)

        assert created is False
        assert second.token == first.token

    async def test_new_link_after_expiry(self, store, clock, questionnaire, patient):
        redemption = PublicLinkRedemption(store, clock=clock, link_ttl=timedelta(days=7))
        first, _ = await redemption.issue(questionnaire, patient)

        clock.advance(timedelta(days=8))
        second, created = await redemption.issue(questionnaire, patient)

        assert created is True
        assert second.token != first.token
        assert len(store.links) == 2
