from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api.routes.admin_routes import router as admin_router
from app.api.routes.health_routes import router as health_router
from app.api.routes.support_routes import router as support_router
from app.container import container
from app.core.errors import SupportQueueError, ValidationError
from app.infrastructure.logging import get_logger
from app.middleware import (
    apply_response_security_headers,
    enforce_rate_limits,
    enforce_request_hardening,
    log_requests,
)

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI) -> AsyncIterator[None]:
    await container.start()
    logger.info("server_started", environment=container.settings.app_env)
    try:
        yield
    finally:
        await container.stop()
        logger.info("server_stopped")


app = FastAPI(title=container.settings.app_name, version="0.1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=container.settings.cors_origin_list,
    allow_credentials=True,
    allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "X-Requested-With"],
    max_age=86400,
)

# Registered innermost first; the last one added wraps all the others.
app.middleware("http")(enforce_request_hardening)
app.middleware("http")(enforce_rate_limits)
app.middleware("http")(apply_response_security_headers)
app.middleware("http")(log_requests)

app.include_router(health_router)
app.include_router(support_router)
app.include_router(admin_router)


@app.exception_handler(ValidationError)
async def handle_validation_error(_: Request, exc: ValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": {
                "code": exc.code,
                "message": str(exc),
                "details": exc.errors,
            }
        },
    )


@app.exception_handler(RequestValidationError)
async def handle_request_validation_error(_: Request, exc: RequestValidationError) -> JSONResponse:
    details: dict[str, str] = {}
    for error in exc.errors():
        loc = [str(part) for part in error.get("loc", ()) if part not in ("body", "query")]
        field = loc[0] if loc and error.get("type") != "json_invalid" else "body"
        message = "Request body is not valid JSON" if error.get("type") == "json_invalid" else str(error.get("msg", ""))
        details.setdefault(field, message)
    return JSONResponse(
        status_code=ValidationError.status_code,
        content={"error": {"code": ValidationError.code, "message": "Invalid request", "details": details}},
    )


@app.exception_handler(SupportQueueError)
async def handle_support_queue_error(request: Request, exc: SupportQueueError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("request_failed", path=request.url.path, code=exc.code, error=str(exc))
        message = "Unexpected error handling support request"
        if not container.settings.is_production:
            message = str(exc)
    else:
        message = str(exc)
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": {"code": exc.code, "message": message, "details": {}}},
    )


@app.get("/")
def root() -> dict[str, object]:
    return {"name": container.settings.app_name, "status": "ok"}
