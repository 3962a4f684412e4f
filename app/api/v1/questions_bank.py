"""Question bank endpoints.

System defaults are visible to everyone and read-only; practitioners
manage their own entries.
"""

from fastapi import APIRouter, HTTPException, Query, status
from fastapi.responses import JSONResponse

from app.api.deps import CurrentUser, DbSession
from app.models.question_bank import QuestionBankEntry
from app.questionnaire.questions import QuestionType
from app.schemas.pagination import Pagination
from app.schemas.question_bank import (
    QuestionBankEntryCreate,
    QuestionBankEntryRead,
    QuestionBankEntryUpdate,
    QuestionBankListResponse,
    QuestionInUseResponse,
)
from app.services.question_bank import (
    DefaultEntryReadOnlyError,
    EntryInUseError,
    QuestionBankEntryNotFoundError,
    QuestionBankService,
)

router = APIRouter(prefix="/questions-bank", tags=["questions-bank"])


def _not_found() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail="Question not found",
    )


@router.get("", response_model=QuestionBankListResponse)
async def list_entries(
    user: CurrentUser,
    session: DbSession,
    search: str | None = None,
    question_type: QuestionType | None = None,
    category: str | None = None,
    specialty: str | None = None,
    is_default: bool | None = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
) -> QuestionBankListResponse:
    """List system defaults and the practitioner's own entries."""
    entries, total = await QuestionBankService(session, user.id).list_entries(
        search=search,
        question_type=question_type.value if question_type else None,
        category=category,
        specialty=specialty,
        is_default=is_default,
        page=page,
        limit=limit,
    )
    return QuestionBankListResponse(
        data=[QuestionBankEntryRead.model_validate(e) for e in entries],
        pagination=Pagination.build(page, limit, total),
    )


@router.post("", response_model=QuestionBankEntryRead, status_code=status.HTTP_201_CREATED)
async def create_entry(
    body: QuestionBankEntryCreate,
    user: CurrentUser,
    session: DbSession,
) -> QuestionBankEntry:
    return await QuestionBankService(session, user.id).create(body.model_dump(mode="json"))


@router.get("/{entry_id}", response_model=QuestionBankEntryRead)
async def get_entry(
    entry_id: str,
    user: CurrentUser,
    session: DbSession,
) -> QuestionBankEntry:
    try:
        return await QuestionBankService(session, user.id).get(entry_id)
    except QuestionBankEntryNotFoundError:
        raise _not_found()


@router.put("/{entry_id}", response_model=QuestionBankEntryRead)
async def update_entry(
    entry_id: str,
    body: QuestionBankEntryUpdate,
    user: CurrentUser,
    session: DbSession,
) -> QuestionBankEntry:
    """Update an owned entry; defaults answer 403."""
    try:
        return await QuestionBankService(session, user.id).update(
            entry_id, body.model_dump(mode="json", exclude_unset=True)
        )
    except QuestionBankEntryNotFoundError:
        raise _not_found()
    except DefaultEntryReadOnlyError:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Default questions cannot be edited",
        )


@router.delete(
    "/{entry_id}",
    response_model=None,
    responses={409: {"model": QuestionInUseResponse}},
)
async def delete_entry(
    entry_id: str,
    user: CurrentUser,
    session: DbSession,
) -> dict | JSONResponse:
    """Delete an owned entry that no questionnaire uses."""
    try:
        await QuestionBankService(session, user.id).delete(entry_id)
    except QuestionBankEntryNotFoundError:
        raise _not_found()
    except DefaultEntryReadOnlyError:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Default questions cannot be deleted",
        )
    except EntryInUseError as exc:
        return JSONResponse(
            status_code=status.HTTP_409_CONFLICT,
            content={
                "detail": "This question is used by questionnaires and cannot be deleted",
                "questionnaires": exc.questionnaires,
            },
        )
    return {"message": "Question deleted"}
