"""Default question bank fixtures.

The entries live in ``question_bank.yaml`` next to this module.
Run ``seed_question_bank`` to insert or refresh them.
"""

import logging
from pathlib import Path
from typing import Any

import yaml
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.question_bank import QuestionBankEntry
from app.questionnaire.questions import QuestionType

logger = logging.getLogger(__name__)

QUESTION_BANK_FILE = Path(__file__).parent / "question_bank.yaml"


def load_default_questions(path: Path | None = None) -> list[dict[str, Any]]:
    """Load default entries from YAML.

    Args:
        path: Fixture file (defaults to the bundled question_bank.yaml)

    Returns:
        List of entry dicts

    Raises:
        FileNotFoundError: If the fixture file doesn't exist
        ValueError: If an entry has an unknown question type
    """
    path = path or QUESTION_BANK_FILE
    if not path.exists():
        raise FileNotFoundError(f"Question bank fixture not found: {path}")

    data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    entries = data.get("questions", [])

    for entry in entries:
        QuestionType(entry["question_type"])

    return entries


async def seed_question_bank(session: AsyncSession, path: Path | None = None) -> int:
    """Insert missing default entries and refresh existing ones.

    Args:
        session: Database session
        path: Fixture file override

    Returns:
        Number of entries inserted
    """
    created = 0

    for entry_data in load_default_questions(path):
        result = await session.execute(
            select(QuestionBankEntry).where(
                QuestionBankEntry.is_default == True,
                QuestionBankEntry.question_type == entry_data["question_type"],
                QuestionBankEntry.question_text == entry_data["question_text"],
            )
        )
        existing = result.scalars().first()

        if existing:
            existing.options = entry_data.get("options")
            existing.category = entry_data.get("category")
            existing.specialty = entry_data.get("specialty")
        else:
            session.add(
                QuestionBankEntry(
                    question_text=entry_data["question_text"],
                    question_type=entry_data["question_type"],
                    options=entry_data.get("options"),
                    category=entry_data.get("category"),
                    specialty=entry_data.get("specialty"),
                    is_default=True,
                    doctor_id=None,
                )
            )
            created += 1

    await session.commit()
    logger.info(f"Question bank seeded ({created} new default entries)")
    return created
