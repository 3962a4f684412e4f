"""Database fixtures for Practice Forms.

Contains seed data for:
- Default question bank entries
"""

from app.fixtures.question_bank import load_default_questions, seed_question_bank

__all__ = ["load_default_questions", "seed_question_bank"]
