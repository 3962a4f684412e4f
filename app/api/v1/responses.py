"""Stored response endpoints for practitioners."""

from fastapi import APIRouter, HTTPException, Query, status

from app.api.deps import CurrentUser, DbSession
from app.schemas.pagination import Pagination
from app.schemas.patient import PatientRead
from app.schemas.questionnaire import QuestionnaireRead
from app.schemas.response import ResponseDetail, ResponseListItem, ResponseListResponse
from app.services.reporting import ReportingService, ResponseNotFoundError

router = APIRouter(prefix="/responses", tags=["responses"])


@router.get("", response_model=ResponseListResponse)
async def list_responses(
    user: CurrentUser,
    session: DbSession,
    search: str | None = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
) -> ResponseListResponse:
    """Completed responses to the practitioner's questionnaires, newest first."""
    rows, total = await ReportingService(session, user.id).list_responses(
        search=search,
        page=page,
        limit=limit,
    )
    return ResponseListResponse(
        data=[
            ResponseListItem(
                id=response.id,
                questionnaire_id=questionnaire.id,
                questionnaire_title=questionnaire.title,
                patient_id=patient.id,
                patient_name=patient.full_name,
                answers=response.answers,
                completed_at=response.completed_at,
            )
            for response, questionnaire, patient in rows
        ],
        pagination=Pagination.build(page, limit, total),
    )


@router.get("/{response_id}", response_model=ResponseDetail)
async def get_response(
    response_id: str,
    user: CurrentUser,
    session: DbSession,
) -> ResponseDetail:
    try:
        response, questionnaire, patient = await ReportingService(
            session, user.id
        ).get_response(response_id)
    except ResponseNotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Response not found",
        )

    return ResponseDetail(
        id=response.id,
        public_link_id=response.public_link_id,
        answers=response.answers,
        completed_at=response.completed_at,
        questionnaire=QuestionnaireRead.model_validate(questionnaire),
        patient=PatientRead.model_validate(patient),
    )
