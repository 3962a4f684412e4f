"""Question and answer variants.

Questions and answers are tagged unions keyed by ``question_type``. The
question classes carry the authoring constraints; the answer classes only
describe payload shape. Whether an answer fits its question is decided in
``app.questionnaire.validation``.
"""

from collections.abc import Iterable
from datetime import datetime
from enum import Enum
from typing import Annotated, Any, ClassVar, Literal, Union

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    StrictFloat,
    StrictInt,
    TypeAdapter,
    ValidationInfo,
    field_validator,
)

from app.utils.time import parse_iso_date

Number = Union[StrictInt, StrictFloat]

QUESTIONNAIRE_CATEGORIES = (
    "anamnese-geral",
    "estetica-facial",
    "dermatologia",
    "cirurgia-plastica",
    "odontologia",
    "pos-operatorio",
    "satisfacao",
    "outros",
)

MEDICAL_SPECIALTIES = (
    "dermatologia",
    "cirurgia-plastica",
    "medicina-estetica",
    "odontologia",
    "fisioterapia",
    "psicologia",
    "nutricao",
    "endocrinologia",
    "geral",
    "outros",
)


class QuestionType(str, Enum):
    """Supported question kinds."""

    TEXT = "text"
    RADIO = "radio"
    CHECKBOX = "checkbox"
    SCALE = "scale"
    SLIDER = "slider"
    DATE = "date"
    FILE = "file"
    YES_NO = "yes_no"
    FACIAL_COMPLAINTS = "facial_complaints"
    BODY_COMPLAINTS = "body_complaints"


# =============================================================================
# Questions
# =============================================================================


class QuestionOption(BaseModel):
    """Choice offered by radio and checkbox questions."""

    id: str = Field(..., min_length=1)
    label: str = Field(..., min_length=1)
    value: str = Field(..., min_length=1)


class RangeLabels(BaseModel):
    """Captions shown at the ends of a scale or slider."""

    min: str | None = None
    max: str | None = None


class YesNoLabels(BaseModel):
    """Captions for the three yes/no/unknown buttons."""

    yes: str | None = None
    no: str | None = None
    unknown: str | None = None


class BaseQuestion(BaseModel):
    """Fields shared by every question variant."""

    model_config = ConfigDict(extra="ignore")

    id: str = Field(..., min_length=1)
    question_text: str = Field(..., min_length=1)
    required: bool = False
    order: int = Field(..., ge=0)


class TextQuestion(BaseQuestion):
    question_type: Literal["text"] = "text"
    placeholder: str | None = None
    max_length: int | None = Field(None, ge=1)


class RadioQuestion(BaseQuestion):
    question_type: Literal["radio"] = "radio"
    options: list[QuestionOption] = Field(..., min_length=2)


class CheckboxQuestion(BaseQuestion):
    question_type: Literal["checkbox"] = "checkbox"
    options: list[QuestionOption] = Field(..., min_length=2)
    max_selections: int | None = Field(None, ge=1)


class _RangeQuestion(BaseQuestion):
    min_value: Number
    max_value: Number
    step: Number | None = None
    labels: RangeLabels | None = None

    @field_validator("step")
    @classmethod
    def step_minimum(cls, value: float | None) -> float | None:
        if value is not None and value < 0.1:
            raise ValueError("step must be at least 0.1")
        return value

    @field_validator("max_value")
    @classmethod
    def max_above_min(cls, value: float, info: ValidationInfo) -> float:
        min_value = info.data.get("min_value")
        if min_value is not None and value <= min_value:
            raise ValueError("max_value must be greater than min_value")
        return value


class ScaleQuestion(_RangeQuestion):
    question_type: Literal["scale"] = "scale"


class SliderQuestion(_RangeQuestion):
    question_type: Literal["slider"] = "slider"


class DateQuestion(BaseQuestion):
    question_type: Literal["date"] = "date"
    min_date: str | None = None
    max_date: str | None = None

    @field_validator("min_date", "max_date")
    @classmethod
    def iso_date(cls, value: str | None) -> str | None:
        if value is not None:
            try:
                parse_iso_date(value)
            except ValueError:
                raise ValueError("must be an ISO date (YYYY-MM-DD)") from None
        return value

    @field_validator("max_date")
    @classmethod
    def max_after_min(cls, value: str | None, info: ValidationInfo) -> str | None:
        min_date = info.data.get("min_date")
        if value is not None and min_date is not None:
            if parse_iso_date(value) < parse_iso_date(min_date):
                raise ValueError("max_date must not be before min_date")
        return value


class FileQuestion(BaseQuestion):
    question_type: Literal["file"] = "file"
    accepted_types: list[Annotated[str, Field(min_length=1)]] = Field(..., min_length=1)
    max_size_mb: Number
    max_files: int | None = Field(None, ge=1)

    @field_validator("max_size_mb")
    @classmethod
    def positive_size(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("max_size_mb must be greater than 0")
        return value


class YesNoQuestion(BaseQuestion):
    question_type: Literal["yes_no"] = "yes_no"
    labels: YesNoLabels | None = None


class FacialComplaintsQuestion(BaseQuestion):
    question_type: Literal["facial_complaints"] = "facial_complaints"


class BodyComplaintsQuestion(BaseQuestion):
    question_type: Literal["body_complaints"] = "body_complaints"


Question = Annotated[
    Union[
        TextQuestion,
        RadioQuestion,
        CheckboxQuestion,
        ScaleQuestion,
        SliderQuestion,
        DateQuestion,
        FileQuestion,
        YesNoQuestion,
        FacialComplaintsQuestion,
        BodyComplaintsQuestion,
    ],
    Field(discriminator="question_type"),
]

QUESTION_CLASSES: dict[QuestionType, type[BaseQuestion]] = {
    QuestionType.TEXT: TextQuestion,
    QuestionType.RADIO: RadioQuestion,
    QuestionType.CHECKBOX: CheckboxQuestion,
    QuestionType.SCALE: ScaleQuestion,
    QuestionType.SLIDER: SliderQuestion,
    QuestionType.DATE: DateQuestion,
    QuestionType.FILE: FileQuestion,
    QuestionType.YES_NO: YesNoQuestion,
    QuestionType.FACIAL_COMPLAINTS: FacialComplaintsQuestion,
    QuestionType.BODY_COMPLAINTS: BodyComplaintsQuestion,
}

_question_list = TypeAdapter(list[Question])


def load_questions(raw: Iterable[Any]) -> list[Question]:
    """Build question objects from stored JSON.

    Intended for questions that already passed ``validate_questionnaire``;
    a malformed entry raises ``pydantic.ValidationError``.
    """
    items = [q.model_dump() if isinstance(q, BaseModel) else q for q in raw]
    return _question_list.validate_python(items)


# =============================================================================
# Questionnaire
# =============================================================================


class QuestionnaireMetadata(BaseModel):
    """Questionnaire fields other than the questions."""

    model_config = ConfigDict(extra="ignore")

    title: str = Field(..., min_length=1, max_length=200)
    description: str | None = Field(None, max_length=1000)
    category: Literal[QUESTIONNAIRE_CATEGORIES] | None = None  # type: ignore[valid-type]
    specialty: Literal[MEDICAL_SPECIALTIES] | None = None  # type: ignore[valid-type]
    is_active: bool = True
    expires_at: datetime | None = None


class QuestionnaireForm(QuestionnaireMetadata):
    """A validated questionnaire: metadata plus its questions."""

    questions: list[Question] = Field(..., min_length=1)


# =============================================================================
# Answers
# =============================================================================


class UploadedFile(BaseModel):
    """Descriptor of a file the patient uploaded for a file question."""

    name: str = Field(..., min_length=1)
    url: str = Field(..., min_length=1)
    size: Number
    type: str = Field(..., min_length=1)

    @field_validator("size")
    @classmethod
    def non_negative(cls, value: float) -> float:
        if value < 0:
            raise ValueError("size must not be negative")
        return value


class BaseAnswer(BaseModel):
    """Fields shared by every answer variant.

    Payload fields are optional so that an empty answer is representable;
    the required-question check treats None, blank strings and empty lists
    as missing.
    """

    model_config = ConfigDict(extra="ignore")

    # Name of the attribute holding the answer payload
    payload_field: ClassVar[str] = "value"

    question_id: str = Field(..., min_length=1)

    @property
    def payload(self) -> Any:
        return getattr(self, self.payload_field)

    def is_empty(self) -> bool:
        value = self.payload
        if value is None:
            return True
        if isinstance(value, str):
            return not value.strip()
        if isinstance(value, list):
            return len(value) == 0
        return False


class TextAnswer(BaseAnswer):
    question_type: Literal["text"] = "text"
    value: str | None = None


class RadioAnswer(BaseAnswer):
    payload_field: ClassVar[str] = "selected_option"

    question_type: Literal["radio"] = "radio"
    selected_option: str | None = Field(
        None, validation_alias=AliasChoices("selected_option", "value")
    )


class CheckboxAnswer(BaseAnswer):
    payload_field: ClassVar[str] = "selected_options"

    question_type: Literal["checkbox"] = "checkbox"
    selected_options: list[str] | None = Field(
        None, validation_alias=AliasChoices("selected_options", "value")
    )


class ScaleAnswer(BaseAnswer):
    question_type: Literal["scale"] = "scale"
    value: Number | None = None


class SliderAnswer(BaseAnswer):
    question_type: Literal["slider"] = "slider"
    value: Number | None = None


class DateAnswer(BaseAnswer):
    question_type: Literal["date"] = "date"
    value: str | None = None


class FileAnswer(BaseAnswer):
    payload_field: ClassVar[str] = "files"

    question_type: Literal["file"] = "file"
    files: list[UploadedFile] | None = Field(
        None, validation_alias=AliasChoices("files", "value")
    )


class YesNoAnswer(BaseAnswer):
    question_type: Literal["yes_no"] = "yes_no"
    value: Literal["yes", "no", "unknown"] | None = None


class FacialComplaintsAnswer(BaseAnswer):
    question_type: Literal["facial_complaints"] = "facial_complaints"
    value: list[str] | None = None


class BodyComplaintsAnswer(BaseAnswer):
    question_type: Literal["body_complaints"] = "body_complaints"
    value: list[str] | None = None


Answer = Annotated[
    Union[
        TextAnswer,
        RadioAnswer,
        CheckboxAnswer,
        ScaleAnswer,
        SliderAnswer,
        DateAnswer,
        FileAnswer,
        YesNoAnswer,
        FacialComplaintsAnswer,
        BodyComplaintsAnswer,
    ],
    Field(discriminator="question_type"),
]

ANSWER_CLASSES: dict[QuestionType, type[BaseAnswer]] = {
    QuestionType.TEXT: TextAnswer,
    QuestionType.RADIO: RadioAnswer,
    QuestionType.CHECKBOX: CheckboxAnswer,
    QuestionType.SCALE: ScaleAnswer,
    QuestionType.SLIDER: SliderAnswer,
    QuestionType.DATE: DateAnswer,
    QuestionType.FILE: FileAnswer,
    QuestionType.YES_NO: YesNoAnswer,
    QuestionType.FACIAL_COMPLAINTS: FacialComplaintsAnswer,
    QuestionType.BODY_COMPLAINTS: BodyComplaintsAnswer,
}
