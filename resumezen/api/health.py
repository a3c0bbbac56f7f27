"""
Liveness and readiness checks. No secrets, no auth.
"""

import logging

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from sqlalchemy import inspect

from resumezen.core.database import get_engine

logger = logging.getLogger("resumezen")

router = APIRouter(tags=["health"])

REQUIRED_TABLES = [
    "app_users",
    "plans",
    "user_plans",
    "resume_analyses",
    "idempotency_keys",
]


@router.get("/healthz")
def healthz():
    """Liveness: the process is up."""
    return {"status": "ok"}


@router.get("/readyz")
def readyz():
    """Readiness: database reachable and schema present."""
    try:
        engine = get_engine()
        with engine.connect() as conn:
            conn.exec_driver_sql("SELECT 1")
        inspector = inspect(engine)
        missing = [t for t in REQUIRED_TABLES if not inspector.has_table(t)]
    except Exception as e:
        logger.error(f"[readyz] readiness check failed: {e}")
        return JSONResponse(status_code=503, content={"status": "error", "detail": "database unreachable"})

    if missing:
        detail = f"missing tables: {', '.join(missing)}"
        logger.warning(f"[readyz] {detail}")
        return JSONResponse(status_code=503, content={"status": "error", "detail": detail})
    return {"status": "ok"}
