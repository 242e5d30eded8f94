from __future__ import annotations
from fastapi import Request
from fastapi.responses import JSONResponse
from app.container import container
from app.infrastructure.logging import get_logger

logger = get_logger(__name__)

STRICT_JSON_METHODS = {"POST", "PUT", "PATCH"}

def _request_has_body(request: Request) -> bool:
    content_length = request.headers.get("content-length")
    if content_length is not None:
        try:
            return int(content_length) > 0
        except ValueError:
            return True
    transfer_encoding = request.headers.get("transfer-encoding", "")
    return bool(str(transfer_encoding).strip())

def _reject(status_code: int, message: str, event: str, request: Request) -> JSONResponse:
    logger.warning(event, method=request.method, path=request.url.path)
    return JSONResponse(
        status_code=status_code,
        content={
            "error": {
                "code": "VALIDATION_ERROR",
                "message": message,
                "details": {},
            }
        },
    )

async def enforce_request_hardening(request: Request, call_next):  # type: ignore[no-untyped-def]
    settings = container.settings
    content_length = request.headers.get("content-length")
    if content_length is not None:
        try:
            parsed_length = int(content_length)
        except ValueError:
            return _reject(400, "Invalid Content-Length header.", "invalid_content_length", request)
        if parsed_length > max(0, int(settings.request_max_body_bytes)):
            return _reject(413, "Request body is too large.", "request_too_large", request)

    if (
        settings.enforce_json_content_type
        and request.method.upper() in STRICT_JSON_METHODS
        and _request_has_body(request)
    ):
        content_type = str(request.headers.get("content-type", "")).split(";", 1)[0].strip().lower()
        if content_type != "application/json":
            return _reject(415, "Unsupported Content-Type. Use application/json.", "content_type_rejected", request)

    return await call_next(request)
