"""Schema creation for development and the optional startup bootstrap.

Production schemas are managed by alembic; ``init_db`` is for local runs
with ``INIT_DB_ON_STARTUP=true``.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

import app.models  # noqa: F401  registers every table on Base.metadata
from app.db.base import Base
from app.db.session import engine
from app.fixtures.question_bank import seed_question_bank

logger = logging.getLogger(__name__)


async def create_tables() -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info(f"Ensured {len(Base.metadata.tables)} tables exist")


async def init_db(session: AsyncSession) -> None:
    """Create missing tables and add the default question bank entries."""
    await create_tables()
    added = await seed_question_bank(session)
    logger.info(f"Database ready ({added} question bank entries added)")
