"""
Health and diagnostics endpoints.

Lightweight probes for operational monitoring without exposing secrets.
"""

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy import inspect

from normalz.api.deps import GameServices, get_services
from normalz.core.database import check_connection

logger = logging.getLogger("normalz")

router = APIRouter(tags=["health"])

REQUIRED_TABLES = [
    "questions",
    "question_options",
    "vote_receipts",
    "player_streaks",
]


@router.get("/healthz")
def healthz():
    """Lightweight liveness check (no deps)."""
    return {"status": "ok"}


@router.get("/readyz")
def readyz(services: GameServices = Depends(get_services)):
    """Readiness: question pool present, plus DB connectivity and tables when a database is configured."""
    if services.engine is not None:
        if not check_connection(services.engine):
            logger.error("[readyz] database unreachable")
            return JSONResponse(status_code=503, content={"status": "error", "detail": "database unreachable"})
        inspector = inspect(services.engine)
        missing = [t for t in REQUIRED_TABLES if not inspector.has_table(t)]
        if missing:
            detail = f"missing tables: {', '.join(missing)}"
            logger.warning(f"[readyz] {detail}")
            return JSONResponse(status_code=503, content={"status": "error", "detail": detail})

    active = len(services.store.active_ids())
    if active == 0:
        return JSONResponse(status_code=503, content={"status": "error", "detail": "question pool empty"})
    return {"status": "ok", "activeQuestions": active}
