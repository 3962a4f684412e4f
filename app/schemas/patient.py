"""Pydantic schemas for patient operations."""

import re
from datetime import date, datetime
from typing import Annotated, Any, Literal

from pydantic import AfterValidator, BaseModel, BeforeValidator, EmailStr, Field, field_validator

from app.schemas.pagination import Pagination

NAME_PATTERN = re.compile(r"^[a-zA-ZÀ-ÿ\s]+$")
PHONE_PATTERN = re.compile(r"^\(\d{2}\)\s\d{4,5}-\d{4}$")
CPF_PATTERN = re.compile(r"^(\d{3}\.\d{3}\.\d{3}-\d{2}|\d{11})$")
MIN_BIRTH_DATE = date(1900, 1, 1)


def cpf_check_digits_valid(digits: str) -> bool:
    """Verify the two CPF check digits of an 11-digit string."""
    if len(digits) != 11 or not digits.isdigit() or len(set(digits)) == 1:
        return False

    for position in (9, 10):
        total = sum(int(digits[i]) * (position + 1 - i) for i in range(position))
        check = (total * 10) % 11 % 10
        if check != int(digits[position]):
            return False
    return True


def normalize_cpf(value: str) -> str:
    """Validate a CPF and return its 11 digits."""
    if not CPF_PATTERN.match(value):
        raise ValueError("CPF must be formatted as 000.000.000-00")
    digits = re.sub(r"\D", "", value)
    if not cpf_check_digits_valid(digits):
        raise ValueError("Invalid CPF")
    return digits


def _validate_phone(value: str) -> str:
    if not PHONE_PATTERN.match(value):
        raise ValueError("Phone must be formatted as (00) 00000-0000 or (00) 0000-0000")
    return value


def _validate_birth_date(value: date) -> date:
    if value > date.today() or value < MIN_BIRTH_DATE:
        raise ValueError("Birth date must be between 1900-01-01 and today")
    return value


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str) and not value.strip():
        return None
    return value


Cpf = Annotated[str, AfterValidator(normalize_cpf)]
Phone = Annotated[str, AfterValidator(_validate_phone)]
BirthDate = Annotated[date, AfterValidator(_validate_birth_date)]
Gender = Literal["male", "female", "other"]


# =============================================================================
# Address
# =============================================================================


class PatientAddress(BaseModel):
    """Postal address stored as JSON on the patient."""

    street: str = Field(..., min_length=1)
    number: str = Field(..., min_length=1)
    complement: str | None = None
    neighborhood: str = Field(..., min_length=1)
    city: str = Field(..., min_length=1)
    state: str = Field(..., min_length=2, max_length=2)
    zip_code: str = Field(..., pattern=r"^\d{5}-\d{3}$")


# =============================================================================
# Patient
# =============================================================================


class PatientBase(BaseModel):
    """Fields shared by create and update payloads."""

    email: Annotated[EmailStr | None, BeforeValidator(_blank_to_none)] = None
    phone: Annotated[Phone | None, BeforeValidator(_blank_to_none)] = None
    cpf: Annotated[Cpf | None, BeforeValidator(_blank_to_none)] = None
    birth_date: Annotated[BirthDate | None, BeforeValidator(_blank_to_none)] = None
    gender: Gender | None = None
    address: PatientAddress | None = None
    medical_history: str | None = Field(None, max_length=2000)


class PatientCreate(PatientBase):
    """Schema for registering a patient."""

    full_name: str = Field(..., min_length=2, max_length=100)

    @field_validator("full_name")
    @classmethod
    def letters_only(cls, value: str) -> str:
        if not NAME_PATTERN.match(value):
            raise ValueError("Name must contain only letters and spaces")
        return value.strip()


class PatientUpdate(PatientBase):
    """Partial update; only fields present in the body are changed."""

    full_name: str | None = Field(None, min_length=2, max_length=100)

    @field_validator("full_name")
    @classmethod
    def letters_only(cls, value: str | None) -> str | None:
        if value is not None and not NAME_PATTERN.match(value):
            raise ValueError("Name must contain only letters and spaces")
        return value.strip() if value else value


class PatientRead(BaseModel):
    """Patient as returned by the API."""

    id: str
    doctor_id: str
    full_name: str
    email: str | None = None
    phone: str | None = None
    cpf: str | None = None
    birth_date: date | None = None
    gender: str | None = None
    address: dict | None = None
    medical_history: str | None = None
    is_deleted: bool
    deleted_at: datetime | None = None
    created_at: datetime
    updated_at: datetime | None = None

    model_config = {"from_attributes": True}


class PatientListResponse(BaseModel):
    """Paginated patient list."""

    data: list[PatientRead]
    pagination: Pagination


class PatientStats(BaseModel):
    """Activity counters for one patient."""

    total_documents: int
    total_responses: int
    last_activity: datetime | None = None


class HistoryItem(BaseModel):
    """One entry in a patient's activity timeline."""

    id: str
    type: Literal["response", "document"]
    title: str
    description: str | None = None
    category: str | None = None
    date: datetime
    data: dict[str, Any] = Field(default_factory=dict)


class PatientHistory(BaseModel):
    """Timeline page plus counters."""

    items: list[HistoryItem]
    stats: PatientStats
    total: int
    limit: int
    offset: int
    has_more: bool
