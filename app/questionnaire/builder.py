"""Draft state for the questionnaire builder.

A practitioner collects questions from several sources (manual entry, the
question bank, complaint pickers) before saving the questionnaire once.
The draft is a plain serializable snapshot; DraftStore is the only place
it touches the filesystem.
"""

import json
import logging
import os
import re
from collections.abc import Callable, Iterable
from datetime import datetime
from pathlib import Path
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from app.core.config import settings
from app.questionnaire.questions import Question, QuestionType

logger = logging.getLogger(__name__)

DEFAULT_DRAFT_NAME = "questionnaire-builder-storage"

_question_adapter = TypeAdapter(Question)


class QuestionnaireDraft(BaseModel):
    """Questionnaire metadata entered so far; every field is optional."""

    model_config = ConfigDict(extra="ignore")

    title: str | None = None
    description: str | None = None
    category: str | None = None
    specialty: str | None = None
    is_active: bool | None = None
    expires_at: datetime | None = None


class BuilderSnapshot(BaseModel):
    """Serializable builder state.

    Serialized with ``by_alias=True`` the initialization flag is written as
    ``isInitialized``; both spellings are accepted on load.
    """

    model_config = ConfigDict(populate_by_name=True)

    questions: list[Question] = Field(default_factory=list)
    questionnaire: QuestionnaireDraft = Field(default_factory=QuestionnaireDraft)
    is_initialized: bool = Field(False, alias="isInitialized")


def new_question_id() -> str:
    """Collision-resistant id for a question added to the builder."""
    return f"question_{uuid4().hex}"


def _as_dict(question: Any) -> dict[str, Any]:
    if isinstance(question, BaseModel):
        return question.model_dump()
    return dict(question)


class QuestionnaireBuilder:
    """Ordered collection of draft questions plus draft metadata.

    No insert-at or move operation exists; reordering goes through
    ``set_questions`` with the new orders already assigned.
    """

    def __init__(
        self,
        snapshot: BuilderSnapshot | None = None,
        id_factory: Callable[[], str] = new_question_id,
    ) -> None:
        snapshot = snapshot or BuilderSnapshot()
        self._questions: list[Question] = list(snapshot.questions)
        self._draft = snapshot.questionnaire.model_copy()
        self._initialized = snapshot.is_initialized
        self._id_factory = id_factory

    @property
    def questions(self) -> list[Question]:
        return list(self._questions)

    @property
    def draft(self) -> QuestionnaireDraft:
        return self._draft

    def set_questions(self, questions: Iterable[Any]) -> None:
        """Replace all questions, keeping their ids and orders as given."""
        self._questions = [_question_adapter.validate_python(_as_dict(q)) for q in questions]
        self._initialized = True

    def add_questions(self, questions: Iterable[Any]) -> list[Question]:
        """Append questions, assigning each a fresh id and an order after the highest one.

        Returns:
            The appended questions as stored
        """
        start = max((q.order for q in self._questions), default=-1) + 1
        added = []
        for index, question in enumerate(questions):
            data = _as_dict(question)
            data["id"] = self._id_factory()
            data["order"] = start + index
            added.append(_question_adapter.validate_python(data))

        self._questions.extend(added)
        self._initialized = True
        return added

    def clear_questions(self) -> None:
        self._questions = []

    def update_questionnaire(self, **fields: Any) -> None:
        """Merge metadata fields into the draft."""
        merged = {**self._draft.model_dump(exclude_unset=True), **fields}
        self._draft = QuestionnaireDraft.model_validate(merged)
        self._initialized = True

    def reset(self) -> None:
        """Discard questions and metadata."""
        self._questions = []
        self._draft = QuestionnaireDraft()
        self._initialized = False

    def snapshot(self) -> BuilderSnapshot:
        return BuilderSnapshot(
            questions=list(self._questions),
            questionnaire=self._draft.model_copy(),
            is_initialized=self._initialized,
        )


def _bank_options(raw: Any) -> list[dict[str, str]]:
    """Normalize bank options, which may be plain strings or option objects."""
    options = []
    for index, option in enumerate(raw or []):
        if isinstance(option, str):
            slug = re.sub(r"[^a-z0-9]+", "-", option.lower()).strip("-") or f"option-{index}"
            options.append({"id": slug, "label": option, "value": option})
        else:
            options.append(dict(option))
    return options


def question_from_bank_entry(entry: Any) -> dict[str, Any]:
    """Turn a question bank entry into draft question fields.

    The id and order are placeholders; ``add_questions`` replaces them.
    Variant settings come from the entry's ``options`` JSON, falling back
    to the builder defaults (0-10 step 1 ranges, one file up to 10 MB of
    any type).
    """
    question_type = QuestionType(entry.question_type)
    config = entry.options if isinstance(entry.options, dict) else {}
    question: dict[str, Any] = {
        "id": str(entry.id),
        "question_text": entry.question_text,
        "question_type": question_type.value,
        "required": False,
        "order": 0,
    }

    if question_type in (QuestionType.RADIO, QuestionType.CHECKBOX):
        raw_options = entry.options if isinstance(entry.options, list) else config.get("options")
        question["options"] = _bank_options(raw_options)
        if question_type == QuestionType.CHECKBOX and config.get("max_selections"):
            question["max_selections"] = config["max_selections"]
    elif question_type in (QuestionType.SCALE, QuestionType.SLIDER):
        question["min_value"] = config.get("min_value") or 0
        question["max_value"] = config.get("max_value") or 10
        question["step"] = config.get("step") or 1
        question["labels"] = config.get("labels") or {}
    elif question_type == QuestionType.FILE:
        question["accepted_types"] = config.get("accepted_types") or ["*/*"]
        question["max_size_mb"] = config.get("max_size_mb") or 10
        question["max_files"] = config.get("max_files") or 1
    elif question_type == QuestionType.YES_NO:
        question["labels"] = config.get("labels") or {}
    elif question_type == QuestionType.TEXT:
        if config.get("placeholder"):
            question["placeholder"] = config["placeholder"]
        if config.get("max_length"):
            question["max_length"] = config["max_length"]

    return question


class DraftStore:
    """Filesystem persistence for builder snapshots, one JSON file per name.

    Writes replace the whole file, so concurrent editors of the same draft
    see last-write-wins.
    """

    def __init__(self, directory: str | Path) -> None:
        self.directory = Path(directory)

    def _path(self, name: str) -> Path:
        safe_name = re.sub(r"[^A-Za-z0-9_.-]", "_", name)
        return self.directory / f"{safe_name}.json"

    def save(self, snapshot: BuilderSnapshot, name: str = DEFAULT_DRAFT_NAME) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        path = self._path(name)
        tmp_path = path.with_suffix(".json.tmp")
        tmp_path.write_text(snapshot.model_dump_json(by_alias=True), encoding="utf-8")
        os.replace(tmp_path, path)

    def load(self, name: str = DEFAULT_DRAFT_NAME) -> BuilderSnapshot | None:
        """Rehydrate a snapshot, or None when nothing usable is stored."""
        path = self._path(name)
        if not path.exists():
            return None
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
            return BuilderSnapshot.model_validate(data)
        except ValueError:
            logger.warning(f"Discarding unreadable builder draft {path.name}")
            return None

    def clear(self, name: str = DEFAULT_DRAFT_NAME) -> bool:
        path = self._path(name)
        if not path.exists():
            return False
        path.unlink()
        return True


def default_draft_store() -> DraftStore:
    """DraftStore rooted at the configured ``builder_draft_dir``."""
    return DraftStore(settings.builder_draft_dir)
