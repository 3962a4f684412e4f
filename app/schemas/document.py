"""Pydantic schemas for patient documents."""

from datetime import datetime
from typing import Annotated, Literal

from pydantic import AfterValidator, BaseModel, Field

from app.schemas.pagination import Pagination

DocumentTypeName = Literal[
    "identity", "medical", "insurance", "consent", "prescription", "report", "other"
]

ALLOWED_DOCUMENT_MIME_TYPES = (
    "application/pdf",
    "image/jpeg",
    "image/png",
    "image/webp",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
)


def _check_tags(value: list[str] | None) -> list[str] | None:
    if value is None:
        return value
    if len(value) > 10:
        raise ValueError("At most 10 tags are allowed")
    for tag in value:
        if len(tag) > 50:
            raise ValueError("Tags must have at most 50 characters")
    return value


Tags = Annotated[list[str] | None, AfterValidator(_check_tags)]


class DocumentMetadata(BaseModel):
    """Metadata sent alongside an uploaded file."""

    title: str = Field(..., min_length=1, max_length=200)
    description: str | None = None
    document_type: DocumentTypeName
    tags: Tags = None
    is_sensitive: bool = False


class DocumentUpdate(BaseModel):
    """Partial metadata update."""

    title: str | None = Field(None, min_length=1, max_length=200)
    description: str | None = None
    document_type: DocumentTypeName | None = None
    tags: Tags = None
    is_sensitive: bool | None = None


class DocumentRead(BaseModel):
    """Document metadata returned by the API."""

    id: str
    patient_id: str
    doctor_id: str
    title: str
    description: str | None = None
    document_type: str
    tags: list[str]
    is_sensitive: bool
    file_name: str
    file_size: int
    mime_type: str
    created_at: datetime
    updated_at: datetime | None = None

    model_config = {"from_attributes": True}


class DocumentListResponse(BaseModel):
    """Paginated document list."""

    data: list[DocumentRead]
    pagination: Pagination
