"""
Health endpoints for groupplan.

Provides lightweight endpoints for operational monitoring without exposing secrets.
"""

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse, PlainTextResponse
from sqlalchemy import text
from sqlalchemy.orm import Session

from groupplan.core.database import get_db

logger = logging.getLogger("groupplan")

router = APIRouter(tags=["health"])


@router.get("/ping", response_class=PlainTextResponse)
def ping():
    return "pong"


@router.get("/healthz")
def healthz():
    """Lightweight liveness check (no deps)."""
    return {"status": "ok"}


@router.get("/readyz")
def readyz(db: Session = Depends(get_db)):
    """Readiness check: the database answers a trivial query."""
    try:
        db.execute(text("SELECT 1"))
    except Exception as e:
        logger.warning(f"[readyz] database unavailable: {e}")
        return JSONResponse(status_code=503, content={"status": "unavailable"})
    return {"status": "ok"}
