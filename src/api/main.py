"""
FILE: src/api/main.py
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from src.api.observability import setup_observability
from src.api.persistence_profile import validate_persistence_profile_guardrails
from src.api.routers.pages import router as pages_router
from src.api.routers.proposals import router as proposals_router
from src.api.routers.proposals_config import get_proposal_store


@asynccontextmanager
async def _app_lifespan(_app: FastAPI):
    validate_persistence_profile_guardrails()
    get_proposal_store()
    yield


app = FastAPI(
    title="Valentine Proposal API",
    version="0.1.0",
    description=(
        "Create a shareable Valentine proposal, let the partner respond, and follow the "
        "answer live.\n\n"
        "Proposal status only moves forward: `pending` -> `opened` -> `accepted`."
    ),
    openapi_tags=[
        {
            "name": "Proposals",
            "description": "Proposal records, status updates, and page links.",
        },
        {
            "name": "Pages",
            "description": "Creator, respondent, tracking, and celebration page flows.",
        },
        {
            "name": "Health",
            "description": "Liveness and readiness probes.",
        },
    ],
    lifespan=_app_lifespan,
)

logger = logging.getLogger(__name__)

setup_observability(app)
app.include_router(proposals_router)
app.include_router(pages_router)


@app.exception_handler(Exception)
async def unhandled_exception_to_problem_details(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled exception while serving request", exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        media_type="application/problem+json",
        content={
            "type": "about:blank",
            "title": "Internal Server Error",
            "status": 500,
            "detail": "An unexpected error occurred.",
            "instance": str(request.url.path),
        },
    )


@app.get("/health", tags=["Health"], summary="Health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/health/live", tags=["Health"], summary="Liveness")
def health_live() -> dict[str, str]:
    return {"status": "live"}


@app.get("/health/ready", tags=["Health"], summary="Readiness")
def health_ready() -> dict[str, str]:
    get_proposal_store()
    return {"status": "ready"}
