"""Practitioner authentication schemas."""

import re
from datetime import datetime
from typing import Annotated, Literal

from pydantic import AfterValidator, BaseModel, Field

from app.questionnaire.questions import MEDICAL_SPECIALTIES


def validate_email_lenient(v: str) -> str:
    """Validate email with lenient rules that allow .local domains for testing."""
    if not v or "@" not in v:
        raise ValueError("Invalid email address")
    pattern = r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$"
    if not re.match(pattern, v):
        raise ValueError("Invalid email address format")
    return v.lower()


LenientEmail = Annotated[str, AfterValidator(validate_email_lenient)]


class LoginRequest(BaseModel):
    """Practitioner login with email and password."""

    email: LenientEmail
    password: str = Field(min_length=8, max_length=128)


class RegisterRequest(BaseModel):
    """Practitioner sign-up."""

    email: LenientEmail
    password: str = Field(min_length=8, max_length=128)
    full_name: str | None = Field(default=None, min_length=2, max_length=100)
    crm: str | None = Field(default=None, max_length=20)
    specialty: Literal[MEDICAL_SPECIALTIES] | None = None  # type: ignore[valid-type]
    phone: str | None = Field(default=None, max_length=20)


class TokenResponse(BaseModel):
    """JWT token response."""

    access_token: str
    token_type: str = "bearer"
    expires_in: int  # seconds


class PractitionerRead(BaseModel):
    """Practitioner profile."""

    id: str
    email: str
    full_name: str | None = None
    role: str
    crm: str | None = None
    specialty: str | None = None
    phone: str | None = None
    created_at: datetime

    model_config = {"from_attributes": True}
