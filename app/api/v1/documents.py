"""Patient document endpoints.

Files are uploaded as multipart ``file`` plus a ``metadata`` JSON field;
bytes go to the storage backend, metadata to ``patient_documents``.
"""

from datetime import date
from urllib.parse import quote

from fastapi import (
    APIRouter,
    File,
    Form,
    HTTPException,
    Query,
    Request,
    Response,
    UploadFile,
    status,
)
from pydantic import ValidationError

from app.api.deps import CurrentUser, DbSession, Storage, get_client_ip
from app.core.config import settings
from app.models.audit_event import ActorType
from app.models.document import PatientDocument
from app.schemas.document import (
    DocumentListResponse,
    DocumentMetadata,
    DocumentRead,
    DocumentTypeName,
    DocumentUpdate,
)
from app.schemas.pagination import Pagination
from app.services.audit import write_audit_event
from app.services.document import DocumentNotFoundError, DocumentRejectedError, DocumentService
from app.services.patient import PatientNotFoundError, PatientService
from app.services.storage import StorageError

router = APIRouter(prefix="/patients/{patient_id}/documents", tags=["documents"])


async def _document_service(
    patient_id: str,
    user: CurrentUser,
    session: DbSession,
    storage: Storage,
) -> DocumentService:
    try:
        await PatientService(session, user.id).get(patient_id)
    except PatientNotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Patient not found",
        )
    return DocumentService(
        session=session,
        storage=storage,
        doctor_id=user.id,
        max_size_bytes=settings.max_document_size_bytes,
    )


def _document_not_found() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail="Document not found",
    )


@router.get("", response_model=DocumentListResponse)
async def list_documents(
    patient_id: str,
    user: CurrentUser,
    session: DbSession,
    storage: Storage,
    document_type: DocumentTypeName | None = None,
    search: str | None = None,
    is_sensitive: bool | None = None,
    date_from: date | None = None,
    date_to: date | None = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
) -> DocumentListResponse:
    """List a patient's documents, newest first."""
    service = await _document_service(patient_id, user, session, storage)
    documents, total = await service.list_documents(
        patient_id,
        document_type=document_type,
        search=search,
        is_sensitive=is_sensitive,
        date_from=date_from,
        date_to=date_to,
        page=page,
        limit=limit,
    )
    return DocumentListResponse(
        data=[DocumentRead.model_validate(d) for d in documents],
        pagination=Pagination.build(page, limit, total),
    )


@router.post("", response_model=DocumentRead, status_code=status.HTTP_201_CREATED)
async def upload_document(
    patient_id: str,
    user: CurrentUser,
    session: DbSession,
    storage: Storage,
    request: Request,
    file: UploadFile = File(...),
    metadata: str = Form(...),
) -> PatientDocument:
    """Upload a document for a patient.

    Raises:
        HTTPException: 400 for invalid metadata, oversized or disallowed files
    """
    service = await _document_service(patient_id, user, session, storage)

    try:
        parsed = DocumentMetadata.model_validate_json(metadata)
    except ValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "message": "Invalid metadata",
                "errors": [
                    {"field": ".".join(str(p) for p in err["loc"]), "reason": err["msg"]}
                    for err in exc.errors()
                ],
            },
        )

    file_data = await file.read()
    try:
        document = await service.upload(
            patient_id,
            file_data=file_data,
            file_name=file.filename or "file",
            content_type=file.content_type,
            metadata=parsed.model_dump(),
        )
    except DocumentRejectedError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        )

    await write_audit_event(
        session=session,
        actor_type=ActorType.PRACTITIONER,
        actor_id=user.id,
        action="document_uploaded",
        entity_type="patient_document",
        entity_id=document.id,
        metadata={"patient_id": patient_id, "file_size": document.file_size},
        ip_address=get_client_ip(request),
        user_agent=request.headers.get("User-Agent"),
    )
    return document


@router.get("/{document_id}", response_model=DocumentRead)
async def get_document(
    patient_id: str,
    document_id: str,
    user: CurrentUser,
    session: DbSession,
    storage: Storage,
) -> PatientDocument:
    service = await _document_service(patient_id, user, session, storage)
    try:
        return await service.get(patient_id, document_id)
    except DocumentNotFoundError:
        raise _document_not_found()


@router.put("/{document_id}", response_model=DocumentRead)
async def update_document(
    patient_id: str,
    document_id: str,
    body: DocumentUpdate,
    user: CurrentUser,
    session: DbSession,
    storage: Storage,
) -> PatientDocument:
    """Update document metadata; the stored file is unchanged."""
    service = await _document_service(patient_id, user, session, storage)
    try:
        return await service.update(patient_id, document_id, body.model_dump(exclude_unset=True))
    except DocumentNotFoundError:
        raise _document_not_found()


@router.delete("/{document_id}")
async def delete_document(
    patient_id: str,
    document_id: str,
    user: CurrentUser,
    session: DbSession,
    storage: Storage,
    request: Request,
) -> dict:
    """Delete the document row and its stored file."""
    service = await _document_service(patient_id, user, session, storage)
    try:
        await service.delete(patient_id, document_id)
    except DocumentNotFoundError:
        raise _document_not_found()

    await write_audit_event(
        session=session,
        actor_type=ActorType.PRACTITIONER,
        actor_id=user.id,
        action="document_deleted",
        entity_type="patient_document",
        entity_id=document_id,
        metadata={"patient_id": patient_id},
        ip_address=get_client_ip(request),
        user_agent=request.headers.get("User-Agent"),
    )
    return {"message": "Document deleted"}


@router.get("/{document_id}/download")
async def download_document(
    patient_id: str,
    document_id: str,
    user: CurrentUser,
    session: DbSession,
    storage: Storage,
) -> Response:
    """Return the stored bytes with the original name and type."""
    service = await _document_service(patient_id, user, session, storage)
    try:
        document, content = await service.download(patient_id, document_id)
    except DocumentNotFoundError:
        raise _document_not_found()
    except StorageError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Stored file not found",
        )

    return Response(
        content=content,
        media_type=document.mime_type,
        headers={"Content-Disposition": f"attachment; filename*=UTF-8''{quote(document.file_name)}"},
    )
