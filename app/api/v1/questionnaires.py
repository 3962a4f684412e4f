"""Questionnaire endpoints for practitioners.

Bodies of create and update are validated as a whole; failures come back
as ``422 {message, errors: [{field, reason}]}`` listing every violation.
"""

from dataclasses import asdict
from typing import Any

from fastapi import APIRouter, Body, HTTPException, Query, Request, status
from fastapi.responses import JSONResponse

from app.api.deps import CurrentUser, DbSession, LinkRedemption, get_client_ip
from app.models.audit_event import ActorType
from app.models.questionnaire import Questionnaire
from app.questionnaire.validation import QuestionnaireValidationError
from app.schemas.pagination import Pagination
from app.schemas.questionnaire import (
    PublicLinkCreate,
    QuestionnaireListItem,
    QuestionnaireListResponse,
    QuestionnaireRead,
    ValidationErrorResponse,
)
from app.schemas.response import QuestionnaireSummaryRead
from app.services.audit import write_audit_event
from app.services.patient import PatientNotFoundError, PatientService
from app.services.questionnaire import QuestionnaireNotFoundError, QuestionnaireService
from app.services.reporting import ReportingService

router = APIRouter(prefix="/questionnaires", tags=["questionnaires"])

VALIDATION_RESPONSES: dict[int | str, dict[str, Any]] = {
    422: {"model": ValidationErrorResponse},
}


def _validation_failed(exc: QuestionnaireValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"message": "Invalid questionnaire", "errors": exc.to_list()},
    )


def _not_found() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail="Questionnaire not found",
    )


async def _get_owned(session: DbSession, user: CurrentUser, questionnaire_id: str) -> Questionnaire:
    try:
        return await QuestionnaireService(session, user.id).get(questionnaire_id)
    except QuestionnaireNotFoundError:
        raise _not_found()


# =============================================================================
# Questionnaire CRUD
# =============================================================================


@router.get("", response_model=QuestionnaireListResponse)
async def list_questionnaires(
    user: CurrentUser,
    session: DbSession,
    search: str | None = None,
    category: str | None = None,
    is_active: bool | None = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
) -> QuestionnaireListResponse:
    """List the practitioner's questionnaires with response counts."""
    rows, total = await QuestionnaireService(session, user.id).list_questionnaires(
        search=search,
        category=category,
        is_active=is_active,
        page=page,
        limit=limit,
    )
    return QuestionnaireListResponse(
        data=[
            QuestionnaireListItem.model_validate(
                {**QuestionnaireRead.model_validate(q).model_dump(), "response_count": count}
            )
            for q, count in rows
        ],
        pagination=Pagination.build(page, limit, total),
    )


@router.post(
    "",
    response_model=QuestionnaireRead,
    status_code=status.HTTP_201_CREATED,
    responses=VALIDATION_RESPONSES,
)
async def create_questionnaire(
    user: CurrentUser,
    session: DbSession,
    request: Request,
    body: dict[str, Any] = Body(...),
) -> Any:
    """Create a questionnaire after validating metadata and every question."""
    try:
        questionnaire = await QuestionnaireService(session, user.id).create(body)
    except QuestionnaireValidationError as exc:
        return _validation_failed(exc)

    await write_audit_event(
        session=session,
        actor_type=ActorType.PRACTITIONER,
        actor_id=user.id,
        action="questionnaire_created",
        entity_type="questionnaire",
        entity_id=questionnaire.id,
        metadata={"questions": len(questionnaire.questions)},
        ip_address=get_client_ip(request),
        user_agent=request.headers.get("User-Agent"),
    )
    return questionnaire


@router.get("/{questionnaire_id}", response_model=QuestionnaireRead)
async def get_questionnaire(
    questionnaire_id: str,
    user: CurrentUser,
    session: DbSession,
) -> Questionnaire:
    return await _get_owned(session, user, questionnaire_id)


@router.put(
    "/{questionnaire_id}",
    response_model=QuestionnaireRead,
    responses=VALIDATION_RESPONSES,
)
async def update_questionnaire(
    questionnaire_id: str,
    user: CurrentUser,
    session: DbSession,
    body: dict[str, Any] = Body(...),
) -> Any:
    """Update a questionnaire; the merged result is revalidated."""
    try:
        return await QuestionnaireService(session, user.id).update(questionnaire_id, body)
    except QuestionnaireNotFoundError:
        raise _not_found()
    except QuestionnaireValidationError as exc:
        return _validation_failed(exc)


@router.delete("/{questionnaire_id}")
async def delete_questionnaire(
    questionnaire_id: str,
    user: CurrentUser,
    session: DbSession,
    request: Request,
) -> dict:
    """Delete a questionnaire, or deactivate it when it already has responses."""
    try:
        deactivated = await QuestionnaireService(session, user.id).delete(questionnaire_id)
    except QuestionnaireNotFoundError:
        raise _not_found()

    await write_audit_event(
        session=session,
        actor_type=ActorType.PRACTITIONER,
        actor_id=user.id,
        action="questionnaire_deactivated" if deactivated else "questionnaire_deleted",
        entity_type="questionnaire",
        entity_id=questionnaire_id,
        ip_address=get_client_ip(request),
        user_agent=request.headers.get("User-Agent"),
    )

    if deactivated is not None:
        return {
            "data": QuestionnaireRead.model_validate(deactivated).model_dump(mode="json"),
            "message": "Questionnaire deactivated (it has responses)",
        }
    return {"message": "Questionnaire deleted"}


@router.post(
    "/{questionnaire_id}/duplicate",
    response_model=QuestionnaireRead,
    status_code=status.HTTP_201_CREATED,
)
async def duplicate_questionnaire(
    questionnaire_id: str,
    user: CurrentUser,
    session: DbSession,
) -> Questionnaire:
    """Copy a questionnaire as ``"<title> Copy N"``."""
    try:
        return await QuestionnaireService(session, user.id).duplicate(questionnaire_id)
    except QuestionnaireNotFoundError:
        raise _not_found()


# =============================================================================
# Public links and aggregation
# =============================================================================


@router.post("/{questionnaire_id}/public-link")
async def issue_public_link(
    questionnaire_id: str,
    body: PublicLinkCreate,
    user: CurrentUser,
    session: DbSession,
    redemption: LinkRedemption,
    request: Request,
) -> JSONResponse:
    """Return the live link token for a patient, creating one if needed.

    Returns 201 when a link was created and 200 when an unexpired link was
    reused.
    """
    questionnaire = await _get_owned(session, user, questionnaire_id)
    try:
        patient = await PatientService(session, user.id).get(body.patient_id)
    except PatientNotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Patient not found",
        )

    link, created = await redemption.issue(questionnaire, patient)

    if created:
        await write_audit_event(
            session=session,
            actor_type=ActorType.PRACTITIONER,
            actor_id=user.id,
            action="public_link_issued",
            entity_type="public_link",
            entity_id=link.id,
            metadata={"questionnaire_id": questionnaire.id, "patient_id": patient.id},
            ip_address=get_client_ip(request),
            user_agent=request.headers.get("User-Agent"),
        )

    return JSONResponse(
        status_code=status.HTTP_201_CREATED if created else status.HTTP_200_OK,
        content={"data": link.token},
    )


@router.get("/{questionnaire_id}/summary", response_model=QuestionnaireSummaryRead)
async def get_questionnaire_summary(
    questionnaire_id: str,
    user: CurrentUser,
    session: DbSession,
) -> QuestionnaireSummaryRead:
    """Per-question aggregation over every stored response."""
    questionnaire = await _get_owned(session, user, questionnaire_id)
    summary = await ReportingService(session, user.id).summarize(questionnaire)
    return QuestionnaireSummaryRead.model_validate(asdict(summary))
