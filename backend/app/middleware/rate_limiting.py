from __future__ import annotations
from time import time
from fastapi import Request
from fastapi.responses import JSONResponse
from app.container import container
from app.core.config import Settings
from app.core.security import header_fingerprint
from app.infrastructure.logging import get_logger

logger = get_logger(__name__)

_MESSAGES = {
    "support": "Too many support requests. Please wait before submitting another request.",
    "admin": "Too many admin requests. Please wait before trying again.",
    "health": "Too many health check requests.",
    "general": "Too many requests from this IP, please try again later.",
}

def _rate_limit_scope(path: str) -> str:
    parts = [part for part in path.split("/") if part]
    if not parts:
        return "general"
    if parts[0] in {"support", "admin", "health"}:
        return parts[0]
    return "general"

def _rate_limit_profile(settings: Settings, scope: str) -> tuple[int, int]:
    if scope == "support":
        return settings.rate_limit_support_max_requests, settings.rate_limit_support_window_seconds
    if scope == "admin":
        return settings.rate_limit_admin_max_requests, settings.rate_limit_admin_window_seconds
    if scope == "health":
        return settings.rate_limit_health_max_requests, settings.rate_limit_health_window_seconds
    return settings.rate_limit_max_requests, settings.rate_limit_window_seconds

def _subject(request: Request) -> str:
    client_ip = request.client.host if request.client and request.client.host else "unknown"
    auth_header = request.headers.get("Authorization", "")
    if auth_header:
        return f"ip:{client_ip}:{header_fingerprint(auth_header)}"
    return f"ip:{client_ip}"

async def enforce_rate_limits(request: Request, call_next):  # type: ignore[no-untyped-def]
    scope = _rate_limit_scope(request.url.path)
    limit, window_seconds = _rate_limit_profile(container.settings, scope)
    decision = container.rate_limiter.check(
        key=f"{scope}:{_subject(request)}",
        limit=limit,
        window_seconds=window_seconds,
    )

    rate_headers = {
        "X-RateLimit-Limit": str(decision.limit),
        "X-RateLimit-Remaining": str(decision.remaining),
        "X-RateLimit-Reset": str(int(decision.reset_epoch)),
    }
    if not decision.allowed:
        logger.warning(
            "rate_limit_exceeded",
            scope=scope,
            ip=request.client.host if request.client else None,
            method=request.method,
            path=request.url.path,
            count=decision.count,
            limit=decision.limit,
        )
        return JSONResponse(
            status_code=429,
            content={
                "error": {
                    "code": "RATE_LIMITED",
                    "message": _MESSAGES[scope],
                    "details": {"retryAfter": window_seconds},
                }
            },
            headers={**rate_headers, "Retry-After": str(decision.retry_after(time()))},
        )

    response = await call_next(request)
    for key, value in rate_headers.items():
        response.headers[key] = value
    return response
