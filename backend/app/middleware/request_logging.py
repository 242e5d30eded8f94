from __future__ import annotations
import uuid
from time import perf_counter
import structlog
from fastapi import Request
from app.container import container
from app.infrastructure.logging import get_logger

logger = get_logger("app.http")

SLOW_REQUEST_MS = 1000.0

def _request_id() -> str:
    return f"req_{uuid.uuid4().hex[:16]}"

async def log_requests(request: Request, call_next):  # type: ignore[no-untyped-def]
    request_id = request.headers.get("X-Request-ID") or _request_id()
    structlog.contextvars.bind_contextvars(request_id=request_id)
    started = perf_counter()
    status_code = 500
    try:
        response = await call_next(request)
        status_code = response.status_code
        response.headers["X-Request-ID"] = request_id
        return response
    except Exception:
        logger.exception("http_request_errored", method=request.method, path=request.url.path)
        raise
    finally:
        duration_ms = round((perf_counter() - started) * 1000, 2)
        if container.settings.enable_request_logging:
            fields = {
                "method": request.method,
                "path": request.url.path,
                "status_code": status_code,
                "duration_ms": duration_ms,
                "ip": request.client.host if request.client else None,
                "user_agent": request.headers.get("user-agent", "unknown"),
            }
            if status_code >= 400:
                logger.warning("http_request_failed", **fields)
            else:
                logger.info("http_request", **fields)
            if duration_ms > SLOW_REQUEST_MS:
                logger.warning("http_request_slow", **fields)
        structlog.contextvars.unbind_contextvars("request_id")
