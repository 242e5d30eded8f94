from __future__ import annotations

import time
from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from app.container import container
from app.core.errors import CorruptQueueError
from app.core.utils import iso_now, to_iso
from app.models.support import URGENCY_LEVELS

router = APIRouter(prefix="/health", tags=["health"])

_STARTED_AT = time.monotonic()


def _uptime() -> float:
    return round(time.monotonic() - _STARTED_AT, 3)


def _is_complete(row: dict[str, Any]) -> bool:
    return all(row.get(key) for key in ("id", "name", "email", "topic", "message", "createdAt")) and (
        row.get("urgency") in URGENCY_LEVELS
    )


@router.get("")
def health() -> dict[str, object]:
    return {"status": "ok", "timestamp": iso_now(), "uptime": _uptime()}


@router.get("/live")
def live() -> dict[str, object]:
    return {"status": "alive", "timestamp": iso_now(), "uptime": _uptime()}


@router.get("/ready")
def ready() -> JSONResponse:
    try:
        container.support_repository.read_all()
    except (CorruptQueueError, OSError) as exc:
        return JSONResponse(
            status_code=503,
            content={"status": "not ready", "timestamp": iso_now(), "error": str(exc)},
        )
    return JSONResponse(content={"status": "ready", "timestamp": iso_now()})


@router.get("/detailed")
def detailed() -> JSONResponse:
    checks: dict[str, Any] = {}
    overall = "healthy"

    try:
        stats = container.support_repository.stat()
        checks["queueFile"] = {
            "status": "healthy",
            "path": str(container.support_repository.locate()),
            "size": stats.st_size,
            "modified": to_iso(datetime.fromtimestamp(stats.st_mtime, tz=timezone.utc)),
        }
    except OSError as exc:
        checks["queueFile"] = {"status": "unhealthy", "error": str(exc)}
        overall = "degraded"

    try:
        rows = container.support_repository.read_all()
        valid = sum(1 for row in rows if _is_complete(row))
        checks["dataIntegrity"] = {
            "status": "healthy" if valid == len(rows) else "degraded",
            "totalRequests": len(rows),
            "validRequests": valid,
            "invalidRequests": len(rows) - valid,
        }
        if valid != len(rows) and overall == "healthy":
            overall = "degraded"
    except (CorruptQueueError, OSError) as exc:
        checks["dataIntegrity"] = {"status": "unhealthy", "error": str(exc)}
        overall = "unhealthy"

    settings = container.settings
    checks["configuration"] = {
        "status": "healthy",
        "environment": settings.app_env,
        "automaticBackups": container.backup_scheduler.state,
        "backupIntervalHours": settings.backup_interval_hours,
        "dataRetentionDays": settings.data_retention_days,
    }

    status_code = 503 if overall == "unhealthy" else 200
    return JSONResponse(
        status_code=status_code,
        content={"status": overall, "timestamp": iso_now(), "uptime": _uptime(), "checks": checks},
    )
