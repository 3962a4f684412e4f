"""Create a demo practitioner with a patient, a questionnaire and a public link.

Run after database migration:

    python scripts/seed_demo.py

Existing demo data is reused, so the script can be run more than once.
"""

import asyncio
import secrets
from datetime import timedelta

from sqlalchemy import select

from app.core.config import settings
from app.core.security import hash_password
from app.db.session import AsyncSessionLocal
from app.fixtures.question_bank import seed_question_bank
from app.models.patient import Patient
from app.models.question_bank import QuestionBankEntry
from app.models.questionnaire import Questionnaire
from app.models.user import User, UserRole
from app.questionnaire.builder import QuestionnaireBuilder, question_from_bank_entry
from app.services.link_store import SQLPublicLinkStore
from app.services.patient import PatientService
from app.services.public_link import PublicLinkRedemption
from app.services.questionnaire import QuestionnaireService

DEMO_PRACTITIONER = {
    "email": "demo@clinica.example.com",
    "full_name": "Dra. Demo",
    "crm": "000000-SP",
    "specialty": "dermatologia",
}

DEMO_PATIENT = {
    "full_name": "Paciente Demonstração",
    "email": "paciente@example.com",
    "phone": "(11) 90000-0000",
    "gender": "female",
}

DEMO_QUESTIONNAIRE_TITLE = "Avaliação Dermatológica (demo)"


async def get_or_create_practitioner(session) -> tuple[User, str | None]:
    """Return the demo practitioner and its temporary password if just created."""
    existing = await session.scalar(
        select(User).where(User.email == DEMO_PRACTITIONER["email"])
    )
    if existing:
        return existing, None

    password = f"Demo{secrets.token_urlsafe(8)}!"
    user = User(
        **DEMO_PRACTITIONER,
        role=UserRole.DOCTOR,
        hashed_password=hash_password(password),
        is_active=True,
    )
    session.add(user)
    await session.commit()
    await session.refresh(user)
    return user, password


async def get_or_create_patient(session, practitioner: User) -> Patient:
    existing = await session.scalar(
        select(Patient).where(
            Patient.doctor_id == practitioner.id,
            Patient.email == DEMO_PATIENT["email"],
        )
    )
    if existing:
        return existing
    return await PatientService(session, practitioner.id).create(dict(DEMO_PATIENT))


async def get_or_create_questionnaire(session, practitioner: User) -> Questionnaire:
    """Build the demo questionnaire from the default dermatology bank entries."""
    existing = await session.scalar(
        select(Questionnaire).where(
            Questionnaire.doctor_id == practitioner.id,
            Questionnaire.title == DEMO_QUESTIONNAIRE_TITLE,
        )
    )
    if existing:
        return existing

    result = await session.execute(
        select(QuestionBankEntry)
        .where(QuestionBankEntry.is_default == True)
        .order_by(QuestionBankEntry.created_at)
    )
    entries = [
        entry
        for entry in result.scalars().all()
        if entry.specialty in ("geral", "dermatologia")
    ]

    builder = QuestionnaireBuilder()
    builder.update_questionnaire(
        title=DEMO_QUESTIONNAIRE_TITLE,
        description="Questionário de exemplo gerado a partir do banco de perguntas",
        category="estetica-facial",
        specialty="dermatologia",
    )
    builder.add_questions(question_from_bank_entry(entry) for entry in entries)

    candidate = builder.draft.model_dump(exclude_none=True)
    candidate["questions"] = [q.model_dump(mode="json") for q in builder.questions]
    return await QuestionnaireService(session, practitioner.id).create(candidate)


async def main() -> None:
    """Main entry point."""
    async with AsyncSessionLocal() as session:
        seeded = await seed_question_bank(session)
        practitioner, password = await get_or_create_practitioner(session)
        patient = await get_or_create_patient(session, practitioner)
        questionnaire = await get_or_create_questionnaire(session, practitioner)

        ttl = settings.public_link_ttl_days
        redemption = PublicLinkRedemption(
            SQLPublicLinkStore(session),
            link_ttl=timedelta(days=ttl) if ttl is not None else None,
        )
        link, created = await redemption.issue(questionnaire, patient)

    print("=" * 60)
    print("DEMO DATA")
    print("=" * 60)
    print(f"Question bank entries added: {seeded}")
    print(f"Practitioner: {practitioner.email}")
    if password:
        print(f"Temporary password: {password}")
        print("Save this password - it is shown only once.")
    print(f"Patient: {patient.full_name} ({patient.id})")
    print(f"Questionnaire: {questionnaire.title} ({len(questionnaire.questions)} questions)")
    print(f"Public link token ({'new' if created else 'reused'}): {link.token}")
    print(f"Answer it at: GET/POST /api/v1/public-link/{link.token}")
    print("=" * 60)


if __name__ == "__main__":
    asyncio.run(main())
