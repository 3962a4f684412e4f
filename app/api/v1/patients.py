"""Patient management endpoints for practitioners.

Every query is scoped to the authenticated practitioner. Deleting a patient
only sets the soft delete marker; deleted patients can be listed and
restored.
"""

from datetime import date
from typing import Literal

from fastapi import APIRouter, HTTPException, Query, Request, status

from app.api.deps import CurrentUser, DbSession, get_client_ip
from app.models.audit_event import ActorType
from app.models.patient import Patient
from app.schemas.pagination import Pagination
from app.schemas.patient import (
    PatientCreate,
    PatientHistory,
    PatientListResponse,
    PatientRead,
    PatientStats,
    PatientUpdate,
)
from app.services.audit import write_audit_event
from app.services.patient import (
    PatientAlreadyDeletedError,
    PatientConflictError,
    PatientNotDeletedError,
    PatientNotFoundError,
    PatientService,
)

router = APIRouter(prefix="/patients", tags=["patients"])


def _not_found() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail="Patient not found",
    )


def _cpf_conflict() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_409_CONFLICT,
        detail="A patient with this CPF is already registered",
    )


# =============================================================================
# Listing
# =============================================================================


@router.get("", response_model=PatientListResponse)
async def list_patients(
    user: CurrentUser,
    session: DbSession,
    search: str | None = None,
    gender: Literal["male", "female", "other"] | None = None,
    age_min: int | None = Query(None, ge=0, le=150),
    age_max: int | None = Query(None, ge=0, le=150),
    created_after: date | None = None,
    created_before: date | None = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    sort_by: Literal["full_name", "created_at", "birth_date"] = "created_at",
    sort_order: Literal["asc", "desc"] = "desc",
) -> PatientListResponse:
    """List active patients with search, filters and pagination."""
    patients, total = await PatientService(session, user.id).list_patients(
        search=search,
        gender=gender,
        age_min=age_min,
        age_max=age_max,
        created_after=created_after,
        created_before=created_before,
        page=page,
        limit=limit,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    return PatientListResponse(
        data=[PatientRead.model_validate(p) for p in patients],
        pagination=Pagination.build(page, limit, total),
    )


@router.get("/deleted", response_model=PatientListResponse)
async def list_deleted_patients(
    user: CurrentUser,
    session: DbSession,
    search: str | None = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
) -> PatientListResponse:
    """List soft-deleted patients."""
    patients, total = await PatientService(session, user.id).list_deleted(
        search=search,
        page=page,
        limit=limit,
    )
    return PatientListResponse(
        data=[PatientRead.model_validate(p) for p in patients],
        pagination=Pagination.build(page, limit, total),
    )


# =============================================================================
# Patient CRUD
# =============================================================================


@router.post("", response_model=PatientRead, status_code=status.HTTP_201_CREATED)
async def create_patient(
    body: PatientCreate,
    user: CurrentUser,
    session: DbSession,
    request: Request,
) -> Patient:
    """Register a patient.

    Raises:
        HTTPException: 409 if the CPF is already registered
    """
    try:
        patient = await PatientService(session, user.id).create(body.model_dump())
    except PatientConflictError:
        raise _cpf_conflict()

    await write_audit_event(
        session=session,
        actor_type=ActorType.PRACTITIONER,
        actor_id=user.id,
        action="patient_created",
        entity_type="patient",
        entity_id=patient.id,
        ip_address=get_client_ip(request),
        user_agent=request.headers.get("User-Agent"),
    )
    return patient


@router.get("/{patient_id}", response_model=PatientRead)
async def get_patient(
    patient_id: str,
    user: CurrentUser,
    session: DbSession,
) -> Patient:
    try:
        return await PatientService(session, user.id).get(patient_id)
    except PatientNotFoundError:
        raise _not_found()


@router.put("/{patient_id}", response_model=PatientRead)
async def update_patient(
    patient_id: str,
    body: PatientUpdate,
    user: CurrentUser,
    session: DbSession,
    request: Request,
) -> Patient:
    """Update the fields present in the body."""
    try:
        patient, changed = await PatientService(session, user.id).update(
            patient_id, body.model_dump(exclude_unset=True)
        )
    except PatientNotFoundError:
        raise _not_found()
    except PatientConflictError:
        raise _cpf_conflict()

    if changed:
        await write_audit_event(
            session=session,
            actor_type=ActorType.PRACTITIONER,
            actor_id=user.id,
            action="patient_updated",
            entity_type="patient",
            entity_id=patient.id,
            metadata={"changed_fields": changed},
            ip_address=get_client_ip(request),
            user_agent=request.headers.get("User-Agent"),
        )
    return patient


@router.delete("/{patient_id}")
async def delete_patient(
    patient_id: str,
    user: CurrentUser,
    session: DbSession,
    request: Request,
) -> dict:
    """Soft delete a patient.

    Raises:
        HTTPException: 404 if not found, 400 if already deleted
    """
    try:
        patient = await PatientService(session, user.id).soft_delete(patient_id, user.id)
    except PatientNotFoundError:
        raise _not_found()
    except PatientAlreadyDeletedError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Patient is already deleted",
        )

    await write_audit_event(
        session=session,
        actor_type=ActorType.PRACTITIONER,
        actor_id=user.id,
        action="patient_soft_deleted",
        entity_type="patient",
        entity_id=patient.id,
        ip_address=get_client_ip(request),
        user_agent=request.headers.get("User-Agent"),
    )
    return {"message": "Patient deleted", "id": patient.id}


@router.post("/{patient_id}/restore", response_model=PatientRead)
async def restore_patient(
    patient_id: str,
    user: CurrentUser,
    session: DbSession,
    request: Request,
) -> Patient:
    """Restore a soft-deleted patient.

    Raises:
        HTTPException: 404 if not found, 400 if the patient is not deleted
    """
    try:
        patient = await PatientService(session, user.id).restore(patient_id)
    except PatientNotFoundError:
        raise _not_found()
    except PatientNotDeletedError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Patient is not deleted",
        )

    await write_audit_event(
        session=session,
        actor_type=ActorType.PRACTITIONER,
        actor_id=user.id,
        action="patient_restored",
        entity_type="patient",
        entity_id=patient.id,
        ip_address=get_client_ip(request),
        user_agent=request.headers.get("User-Agent"),
    )
    return patient


# =============================================================================
# Activity
# =============================================================================


@router.get("/{patient_id}/stats", response_model=PatientStats)
async def get_patient_stats(
    patient_id: str,
    user: CurrentUser,
    session: DbSession,
) -> PatientStats:
    """Document and response counters with the latest activity time."""
    try:
        stats = await PatientService(session, user.id).stats(patient_id)
    except PatientNotFoundError:
        raise _not_found()
    return PatientStats(**stats)


@router.get("/{patient_id}/history", response_model=PatientHistory)
async def get_patient_history(
    patient_id: str,
    user: CurrentUser,
    session: DbSession,
    type: Literal["all", "responses", "documents"] = "all",
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
) -> PatientHistory:
    """Responses and documents merged into one timeline, newest first."""
    try:
        history = await PatientService(session, user.id).history(
            patient_id,
            item_type=type,
            limit=limit,
            offset=offset,
        )
    except PatientNotFoundError:
        raise _not_found()
    return PatientHistory(**history)
