"""Patient document service.

Metadata lives in ``patient_documents``; bytes go to the injected
storage backend under ``<doctor_id>/<patient_id>/``.
"""

import logging
from datetime import date
from typing import Any

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.document import PatientDocument
from app.schemas.document import ALLOWED_DOCUMENT_MIME_TYPES
from app.services.storage import StorageBackend
from app.utils.time import end_of_day, start_of_day

logger = logging.getLogger(__name__)


class DocumentNotFoundError(Exception):
    """Raised when the document does not exist for this patient."""

    pass


class DocumentRejectedError(Exception):
    """Raised when an upload is too large or of a disallowed type."""

    pass


class DocumentService:
    """Upload, list, update and delete documents of one patient."""

    def __init__(
        self,
        session: AsyncSession,
        storage: StorageBackend,
        doctor_id: str,
        max_size_bytes: int,
    ) -> None:
        self.session = session
        self.storage = storage
        self.doctor_id = doctor_id
        self.max_size_bytes = max_size_bytes

    def check_upload(self, content_type: str | None, size: int) -> None:
        """Reject files over the size cap or outside the allowed types.

        Raises:
            DocumentRejectedError: With a client-facing message
        """
        if size == 0:
            raise DocumentRejectedError("File is empty")
        if size > self.max_size_bytes:
            limit_mb = self.max_size_bytes // (1024 * 1024)
            raise DocumentRejectedError(f"File must be at most {limit_mb}MB")
        if content_type not in ALLOWED_DOCUMENT_MIME_TYPES:
            raise DocumentRejectedError(
                "File type not allowed. Use PDF, images (JPEG, PNG, WebP) or Word documents"
            )

    async def upload(
        self,
        patient_id: str,
        file_data: bytes,
        file_name: str,
        content_type: str | None,
        metadata: dict[str, Any],
    ) -> PatientDocument:
        """Store the file then record its metadata.

        The stored file is removed again if the row cannot be written.
        """
        self.check_upload(content_type, len(file_data))

        storage_key = await self.storage.upload(
            file_data,
            file_name,
            content_type=content_type,
            folder=f"{self.doctor_id}/{patient_id}",
        )

        document = PatientDocument(
            patient_id=patient_id,
            doctor_id=self.doctor_id,
            title=metadata["title"],
            description=metadata.get("description"),
            document_type=metadata["document_type"],
            tags=metadata.get("tags") or [],
            is_sensitive=metadata.get("is_sensitive", False),
            file_name=file_name,
            file_size=len(file_data),
            mime_type=content_type,
            storage_key=storage_key,
        )
        self.session.add(document)
        try:
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            await self.storage.delete(storage_key)
            raise
        await self.session.refresh(document)

        logger.info(f"Document uploaded: {document.id} ({document.file_size} bytes)")
        return document

    async def list_documents(
        self,
        patient_id: str,
        document_type: str | None = None,
        search: str | None = None,
        is_sensitive: bool | None = None,
        date_from: date | None = None,
        date_to: date | None = None,
        page: int = 1,
        limit: int = 20,
    ) -> tuple[list[PatientDocument], int]:
        """List a patient's documents, newest first."""
        query = select(PatientDocument).where(
            PatientDocument.patient_id == patient_id,
            PatientDocument.doctor_id == self.doctor_id,
        )

        if document_type:
            query = query.where(PatientDocument.document_type == document_type)
        if search:
            pattern = f"%{search.strip()}%"
            query = query.where(
                or_(
                    PatientDocument.title.ilike(pattern),
                    PatientDocument.description.ilike(pattern),
                )
            )
        if is_sensitive is not None:
            query = query.where(PatientDocument.is_sensitive == is_sensitive)
        if date_from:
            query = query.where(PatientDocument.created_at >= start_of_day(date_from))
        if date_to:
            query = query.where(PatientDocument.created_at <= end_of_day(date_to))

        total = await self.session.scalar(
            select(func.count()).select_from(query.subquery())
        )
        result = await self.session.execute(
            query.order_by(PatientDocument.created_at.desc(), PatientDocument.id)
            .offset((page - 1) * limit)
            .limit(limit)
        )
        return list(result.scalars().all()), total or 0

    async def get(self, patient_id: str, document_id: str) -> PatientDocument:
        result = await self.session.execute(
            select(PatientDocument).where(
                PatientDocument.id == document_id,
                PatientDocument.patient_id == patient_id,
                PatientDocument.doctor_id == self.doctor_id,
            )
        )
        document = result.scalar_one_or_none()
        if not document:
            raise DocumentNotFoundError(document_id)
        return document

    async def update(
        self,
        patient_id: str,
        document_id: str,
        changes: dict[str, Any],
    ) -> PatientDocument:
        document = await self.get(patient_id, document_id)
        for field, value in changes.items():
            setattr(document, field, value)
        await self.session.commit()
        await self.session.refresh(document)
        return document

    async def delete(self, patient_id: str, document_id: str) -> str:
        """Remove the row and the stored bytes; returns the storage key."""
        document = await self.get(patient_id, document_id)
        storage_key = document.storage_key

        await self.session.delete(document)
        await self.session.commit()

        if not await self.storage.delete(storage_key):
            logger.warning(f"Stored file already missing: {storage_key}")
        return storage_key

    async def download(self, patient_id: str, document_id: str) -> tuple[PatientDocument, bytes]:
        document = await self.get(patient_id, document_id)
        return document, await self.storage.download(document.storage_key)
