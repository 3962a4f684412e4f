"""Tests for the questionnaire builder draft state."""

import itertools
from types import SimpleNamespace

from app.core.config import settings
from app.questionnaire.builder import (
    DEFAULT_DRAFT_NAME,
    BuilderSnapshot,
    DraftStore,
    QuestionnaireBuilder,
    default_draft_store,
    new_question_id,
    question_from_bank_entry,
)
from app.questionnaire.validation import validate_questionnaire


def text_question(text: str = "Como podemos ajudar?") -> dict:
    return {
        "id": "placeholder",
        "question_text": text,
        "question_type": "text",
        "order": 0,
    }


def bank_entry(question_type: str, options=None, text: str = "Pergunta do banco") -> SimpleNamespace:
    return SimpleNamespace(
        id="bank-1",
        question_text=text,
        question_type=question_type,
        options=options,
    )


class TestAddQuestions:
    """Appending assigns fresh ids and sequential orders."""

    def test_sequential_appends_never_share_ids(self):
        builder = QuestionnaireBuilder()

        builder.add_questions([text_question("Primeira")])
        builder.add_questions([text_question("Segunda")])
        assert [q.order for q in builder.questions] == [0, 1]

        builder.add_questions([text_question("Terceira")])

        ids = [q.id for q in builder.questions]
        assert len(set(ids)) == 3
        assert [q.order for q in builder.questions] == [0, 1, 2]

    def test_batch_append_orders_follow_existing(self):
        counter = itertools.count()
        builder = QuestionnaireBuilder(id_factory=lambda: f"q{next(counter)}")
        builder.add_questions([text_question()])

        added = builder.add_questions([text_question("B"), text_question("C")])

        assert [q.id for q in added] == ["q1", "q2"]
        assert [q.order for q in added] == [1, 2]

    def test_default_ids_are_unique(self):
        assert new_question_id() != new_question_id()

    def test_snapshot_is_valid_questionnaire(self):
        """Questions collected in the builder pass questionnaire validation."""
        builder = QuestionnaireBuilder()
        builder.update_questionnaire(title="Pós-operatório")
        builder.add_questions([text_question(), text_question("Alguma dor?")])

        snapshot = builder.snapshot()
        form = validate_questionnaire(
            {**snapshot.questionnaire.model_dump(exclude_none=True), "questions": snapshot.questions}
        )

        assert form.title == "Pós-operatório"
        assert len(form.questions) == 2


class TestBuilderState:
    """Replacing, clearing and resetting."""

    def test_set_questions_keeps_given_ids(self):
        builder = QuestionnaireBuilder()
        builder.set_questions(
            [
                {**text_question(), "id": "keep-me", "order": 5},
            ]
        )

        assert builder.questions[0].id == "keep-me"
        assert builder.questions[0].order == 5
        assert builder.snapshot().is_initialized is True

    def test_append_after_gapped_orders(self):
        builder = QuestionnaireBuilder()
        builder.update_questionnaire(title="Com lacunas")
        builder.set_questions(
            [
                {**text_question("A"), "id": "a", "order": 0},
                {**text_question("B"), "id": "b", "order": 2},
            ]
        )

        builder.add_questions([text_question("C")])

        assert [q.order for q in builder.questions] == [0, 2, 3]
        snapshot = builder.snapshot()
        form = validate_questionnaire(
            {**snapshot.questionnaire.model_dump(exclude_none=True), "questions": snapshot.questions}
        )
        assert [q.order for q in form.questions] == [0, 2, 3]

    def test_clear_keeps_metadata(self):
        builder = QuestionnaireBuilder()
        builder.update_questionnaire(title="Rascunho")
        builder.add_questions([text_question()])

        builder.clear_questions()

        assert builder.questions == []
        assert builder.draft.title == "Rascunho"

    def test_update_merges_fields(self):
        builder = QuestionnaireBuilder()
        builder.update_questionnaire(title="Primeiro")
        builder.update_questionnaire(category="satisfacao")

        assert builder.draft.title == "Primeiro"
        assert builder.draft.category == "satisfacao"

    def test_reset(self):
        builder = QuestionnaireBuilder()
        builder.update_questionnaire(title="Rascunho")
        builder.add_questions([text_question()])

        builder.reset()

        snapshot = builder.snapshot()
        assert snapshot.questions == []
        assert snapshot.questionnaire.title is None
        assert snapshot.is_initialized is False


class TestBankConversion:
    """Question bank entries become draft questions with builder defaults."""

    def test_scale_defaults(self):
        question = question_from_bank_entry(bank_entry("scale"))

        assert question["min_value"] == 0
        assert question["max_value"] == 10
        assert question["step"] == 1
        assert question["required"] is False

    def test_scale_settings_from_entry(self):
        question = question_from_bank_entry(
            bank_entry("slider", {"min_value": 1, "max_value": 5, "labels": {"min": "Pouco", "max": "Muito"}})
        )

        assert question["min_value"] == 1
        assert question["max_value"] == 5
        assert question["labels"] == {"min": "Pouco", "max": "Muito"}

    def test_file_defaults(self):
        question = question_from_bank_entry(bank_entry("file"))

        assert question["accepted_types"] == ["*/*"]
        assert question["max_size_mb"] == 10
        assert question["max_files"] == 1

    def test_string_options_become_option_objects(self):
        question = question_from_bank_entry(bank_entry("radio", ["Sim, sempre", "Nunca"]))

        assert question["options"] == [
            {"id": "sim-sempre", "label": "Sim, sempre", "value": "Sim, sempre"},
            {"id": "nunca", "label": "Nunca", "value": "Nunca"},
        ]

    def test_added_bank_question_gets_fresh_id(self):
        builder = QuestionnaireBuilder()
        builder.add_questions([text_question()])

        added = builder.add_questions([question_from_bank_entry(bank_entry("yes_no"))])

        assert added[0].id != "bank-1"
        assert added[0].order == 1
        assert added[0].question_type == "yes_no"


class TestDraftStore:
    """Explicit load/save boundary for builder snapshots."""

    def test_round_trip(self, tmp_path):
        store = DraftStore(tmp_path)
        builder = QuestionnaireBuilder()
        builder.update_questionnaire(title="Rascunho", category="outros")
        builder.add_questions([text_question(), question_from_bank_entry(bank_entry("scale"))])
        snapshot = builder.snapshot()

        store.save(snapshot)
        loaded = store.load()

        assert loaded is not None
        assert loaded.model_dump() == snapshot.model_dump()
        assert (tmp_path / f"{DEFAULT_DRAFT_NAME}.json").exists()

    def test_serialized_flag_name(self, tmp_path):
        store = DraftStore(tmp_path)
        store.save(BuilderSnapshot(is_initialized=True), name="draft")

        raw = (tmp_path / "draft.json").read_text(encoding="utf-8")

        assert '"isInitialized":true' in raw.replace(" ", "")

    def test_missing_and_corrupt_drafts(self, tmp_path):
        store = DraftStore(tmp_path)
        assert store.load("nothing") is None

        (tmp_path / "broken.json").write_text("{not json", encoding="utf-8")
        assert store.load("broken") is None

    def test_last_write_wins(self, tmp_path):
        store = DraftStore(tmp_path)
        first = QuestionnaireBuilder()
        first.update_questionnaire(title="Primeiro")
        second = QuestionnaireBuilder()
        second.update_questionnaire(title="Segundo")

        store.save(first.snapshot())
        store.save(second.snapshot())

        assert store.load().questionnaire.title == "Segundo"

    def test_clear(self, tmp_path):
        store = DraftStore(tmp_path)
        store.save(BuilderSnapshot())

        assert store.clear() is True
        assert store.clear() is False
        assert store.load() is None

    def test_default_store_uses_configured_directory(self, monkeypatch, tmp_path):
        monkeypatch.setattr(settings, "builder_draft_dir", str(tmp_path / "drafts"))

        store = default_draft_store()
        store.save(BuilderSnapshot())

        assert (tmp_path / "drafts" / f"{DEFAULT_DRAFT_NAME}.json").exists()
