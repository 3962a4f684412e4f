"""Pytest configuration and fixtures."""

import os

os.environ["ENV"] = "test"
os.environ["RATE_LIMIT_ENABLED"] = "false"

from collections.abc import AsyncGenerator, Generator
from datetime import date, datetime, timedelta, timezone
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import StaticPool
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from app.api.deps import get_storage
from app.core.security import create_access_token, hash_password
from app.db.base import Base
from app.db.session import get_db
from app.main import app
from app.models.patient import Patient
from app.models.questionnaire import PublicLink, Questionnaire
from app.models.user import User, UserRole
from app.services.storage import LocalStorageBackend


# Use SQLite for testing (simpler than spinning up postgres)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

QUESTIONS = [
    {
        "id": "q1",
        "question_text": "Qual é a sua queixa principal?",
        "question_type": "text",
        "required": True,
        "order": 0,
        "max_length": 500,
    },
    {
        "id": "q2",
        "question_text": "Já realizou algum procedimento estético?",
        "question_type": "yes_no",
        "required": False,
        "order": 1,
    },
    {
        "id": "q3",
        "question_text": "De 0 a 10, qual o seu nível de incômodo?",
        "question_type": "scale",
        "required": False,
        "order": 2,
        "min_value": 0,
        "max_value": 10,
        "step": 1,
    },
    {
        "id": "q4",
        "question_text": "Quais áreas deseja tratar?",
        "question_type": "checkbox",
        "required": False,
        "order": 3,
        "options": [
            {"id": "a", "label": "Testa", "value": "a"},
            {"id": "b", "label": "Olhos", "value": "b"},
            {"id": "c", "label": "Boca", "value": "c"},
        ],
        "max_selections": 2,
    },
]


@pytest.fixture(scope="function")
async def async_engine():
    """Create async test database engine."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture(scope="function")
async def async_session(async_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create async database session for tests."""
    async_session_maker = async_sessionmaker(
        async_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )

    async with async_session_maker() as session:
        yield session


@pytest.fixture
def storage(tmp_path: Path) -> LocalStorageBackend:
    """Document storage rooted in a temporary directory."""
    return LocalStorageBackend(str(tmp_path / "documents"))


@pytest.fixture(scope="function")
def client(
    async_session: AsyncSession,
    storage: LocalStorageBackend,
) -> Generator[TestClient, None, None]:
    """Create FastAPI test client with overridden dependencies."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield async_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_storage] = lambda: storage

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


# =============================================================================
# Practitioners
# =============================================================================


@pytest.fixture
async def practitioner(async_session: AsyncSession) -> User:
    """Create a test practitioner."""
    user = User(
        email="ana.souza@clinica.com.br",
        hashed_password=hash_password("doctorpassword123"),
        role=UserRole.DOCTOR,
        full_name="Ana Souza",
        crm="123456-SP",
        specialty="dermatologia",
        is_active=True,
    )
    async_session.add(user)
    await async_session.commit()
    await async_session.refresh(user)
    return user


@pytest.fixture
async def other_practitioner(async_session: AsyncSession) -> User:
    """Create a second practitioner whose data must stay isolated."""
    user = User(
        email="bruno.lima@clinica.com.br",
        hashed_password=hash_password("otherpassword123"),
        role=UserRole.DOCTOR,
        full_name="Bruno Lima",
        is_active=True,
    )
    async_session.add(user)
    await async_session.commit()
    await async_session.refresh(user)
    return user


def create_test_token(user: User) -> str:
    """Create a test JWT token for a user."""
    return create_access_token(
        subject=user.id,
        claims={
            "role": user.role.value if hasattr(user.role, "value") else user.role,
            "email": user.email,
        },
    )


@pytest.fixture
def auth_headers(practitioner: User) -> dict[str, str]:
    """Create authorization headers for the test practitioner."""
    token = create_test_token(practitioner)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def other_auth_headers(other_practitioner: User) -> dict[str, str]:
    """Create authorization headers for the second practitioner."""
    token = create_test_token(other_practitioner)
    return {"Authorization": f"Bearer {token}"}


# =============================================================================
# Patients, questionnaires and links
# =============================================================================


@pytest.fixture
async def patient(async_session: AsyncSession, practitioner: User) -> Patient:
    """Create a test patient owned by the practitioner."""
    patient = Patient(
        doctor_id=practitioner.id,
        full_name="Maria Silva",
        email="maria.silva@example.com",
        phone="(11) 98765-4321",
        cpf="52998224725",
        birth_date=date(1985, 3, 14),
        gender="female",
    )
    async_session.add(patient)
    await async_session.commit()
    await async_session.refresh(patient)
    return patient


@pytest.fixture
async def questionnaire(async_session: AsyncSession, practitioner: User) -> Questionnaire:
    """Create a questionnaire with text, yes/no, scale and checkbox questions."""
    questionnaire = Questionnaire(
        doctor_id=practitioner.id,
        title="Avaliação Facial",
        description="Responda antes da consulta.",
        category="estetica-facial",
        specialty="dermatologia",
        questions=QUESTIONS,
        is_active=True,
    )
    async_session.add(questionnaire)
    await async_session.commit()
    await async_session.refresh(questionnaire)
    return questionnaire


@pytest.fixture
async def public_link(
    async_session: AsyncSession,
    questionnaire: Questionnaire,
    patient: Patient,
) -> PublicLink:
    """Create a link that never expires."""
    link = PublicLink(
        questionnaire_id=questionnaire.id,
        patient_id=patient.id,
        token="valid_test_token_12345678901234567890",
        expires_at=None,
        is_used=False,
    )
    async_session.add(link)
    await async_session.commit()
    await async_session.refresh(link)
    return link


@pytest.fixture
async def expired_link(
    async_session: AsyncSession,
    questionnaire: Questionnaire,
    patient: Patient,
) -> PublicLink:
    """Create a link whose validity window has passed."""
    link = PublicLink(
        questionnaire_id=questionnaire.id,
        patient_id=patient.id,
        token="expired_test_token_12345678901234567890",
        expires_at=datetime.now(timezone.utc) - timedelta(minutes=1),
        is_used=False,
    )
    async_session.add(link)
    await async_session.commit()
    await async_session.refresh(link)
    return link
