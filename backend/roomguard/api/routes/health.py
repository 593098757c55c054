from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from sqlalchemy import text

from roomguard.core.config import get_settings
from roomguard.db.bootstrap import missing_schema_items
from roomguard.db.session import engine

router = APIRouter()

settings = get_settings()


@router.get("/health")
def health() -> dict:
    return {"status": "ok"}


@router.get("/health/ready")
def health_ready() -> JSONResponse:
    db_ok = True
    db_error: str | None = None
    missing: list[str] = []
    try:
        with engine.connect() as connection:
            connection.execute(text("SELECT 1"))
        missing = missing_schema_items(engine)
    except Exception as exc:
        db_ok = False
        db_error = str(exc)

    ready = db_ok and not missing
    payload = {
        "status": "ok" if ready else "degraded",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "database": {"ok": db_ok, "missing": missing, "error": db_error},
        "smtp": {"configured": bool(settings.smtp_host and settings.smtp_from_email)},
        "sweeps": {
            "enabled": settings.sweeps_enabled,
            "auto_reject_hour": settings.auto_reject_hour,
            "status_refresh_interval_seconds": settings.status_refresh_interval_seconds,
        },
    }
    return JSONResponse(status_code=200 if ready else 503, content=payload)
