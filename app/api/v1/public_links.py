"""Public questionnaire link endpoints (no login).

Unknown and expired tokens both answer 404 with the same message, so a
link holder cannot tell which one they have.
"""

import logging

from fastapi import APIRouter, HTTPException, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from app.api.deps import DbSession, LinkRedemption, get_client_ip
from app.models.audit_event import ActorType
from app.schemas.questionnaire import (
    AlreadyAnsweredResponse,
    AnswerSubmission,
    PublicLinkData,
    PublicLinkView,
    PublicPatient,
    PublicQuestionnaire,
    ResponseReceipt,
    StoredResponse,
    SubmitResult,
    ValidationErrorResponse,
)
from app.services.audit import write_audit_event
from app.services.public_link import (
    AlreadyAnsweredError,
    AnswersInvalidError,
    LinkExpiredError,
    LinkNotFoundError,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/public-link", tags=["public-link"])

ALREADY_ANSWERED = "This questionnaire has already been answered."

INVALID_LINK = "Invalid or expired link."


def _invalid_link() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=INVALID_LINK,
    )


def _internal_error() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="Internal server error",
    )


@router.get("/{token}", response_model=PublicLinkView)
async def get_public_link(
    token: str,
    redemption: LinkRedemption,
) -> PublicLinkView:
    """Resolve a token to its questionnaire, patient and existing response."""
    try:
        resolution = await redemption.resolve(token)
    except (LinkNotFoundError, LinkExpiredError):
        raise _invalid_link()
    except SQLAlchemyError:
        logger.exception("Failed to resolve public link")
        raise _internal_error()

    return PublicLinkView(
        data=PublicLinkData(
            questionnaire=PublicQuestionnaire.model_validate(resolution.questionnaire),
            patient=PublicPatient.model_validate(resolution.patient),
            response=(
                StoredResponse.model_validate(resolution.response)
                if resolution.response is not None
                else None
            ),
        )
    )


@router.post(
    "/{token}/submit",
    response_model=SubmitResult,
    status_code=status.HTTP_201_CREATED,
    responses={
        409: {"model": AlreadyAnsweredResponse},
        422: {"model": ValidationErrorResponse},
    },
)
async def submit_public_link(
    token: str,
    body: AnswerSubmission,
    redemption: LinkRedemption,
    session: DbSession,
    request: Request,
) -> SubmitResult | JSONResponse:
    """Store the single response for a link.

    Raises:
        HTTPException: 404 for unknown or expired links
    """
    try:
        response = await redemption.submit(token, body.answers)
    except (LinkNotFoundError, LinkExpiredError):
        raise _invalid_link()
    except AlreadyAnsweredError as exc:
        return JSONResponse(
            status_code=status.HTTP_409_CONFLICT,
            content={
                "error": ALREADY_ANSWERED,
                "detail": ALREADY_ANSWERED,
                "response": ResponseReceipt(
                    id=exc.response_id,
                    completed_at=exc.completed_at,
                ).model_dump(mode="json"),
            },
        )
    except AnswersInvalidError as exc:
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={
                "message": "Invalid answers",
                "errors": [error.to_dict() for error in exc.errors],
            },
        )
    except SQLAlchemyError:
        logger.exception("Failed to store public link response")
        raise _internal_error()

    receipt = ResponseReceipt.model_validate(response)

    await write_audit_event(
        session=session,
        actor_type=ActorType.LINK_HOLDER,
        actor_id=None,
        action="response_submitted",
        entity_type="questionnaire_response",
        entity_id=receipt.id,
        metadata={"public_link_id": response.public_link_id},
        ip_address=get_client_ip(request),
        user_agent=request.headers.get("User-Agent"),
    )

    return SubmitResult(success=True, response=receipt)
