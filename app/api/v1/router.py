"""API v1 router aggregating all endpoints."""

from fastapi import APIRouter

from app.api.v1 import (
    auth,
    documents,
    health,
    patients,
    public_links,
    questionnaires,
    questions_bank,
    responses,
)

api_router = APIRouter()

# Health check
api_router.include_router(
    health.router,
    prefix="/health",
    tags=["health"],
)

# Authentication
api_router.include_router(
    auth.router,
    prefix="/auth",
    tags=["auth"],
)

# Patients and their documents
api_router.include_router(patients.router)
api_router.include_router(documents.router)

# Questionnaires and the question bank
api_router.include_router(questionnaires.router)
api_router.include_router(questions_bank.router)

# Responses
api_router.include_router(responses.router)

# Public links (no login)
api_router.include_router(public_links.router)
