"""Master API router mounted at /api/v1."""

from fastapi import APIRouter
from tradermind.api.routes import (
    auth,
    health,
    reports,
    survey,
)

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(health.router, tags=["Health"])
api_router.include_router(auth.router)
api_router.include_router(survey.router)
api_router.include_router(reports.router)
