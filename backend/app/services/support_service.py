from __future__ import annotations

from datetime import datetime
from typing import Any, Callable

from pydantic import ValidationError as PayloadValidationError

from app.core.errors import ValidationError
from app.core.utils import Clock, generate_id, to_iso, utc_now
from app.infrastructure.logging import get_logger
from app.models.schemas import SupportRequestPayload
from app.models.support import URGENCY_LEVELS, SupportRequest, ValidationResult
from app.repositories.support_repository import SupportQueueRepository

logger = get_logger(__name__)


def _field_message(error: dict[str, Any]) -> str:
    """Turns one pydantic error into the message reported for its field."""
    label = str(error["loc"][0]).capitalize()
    kind = error["type"]
    raw = error.get("input")
    if kind == "missing" or raw is None or (isinstance(raw, str) and not raw.strip()):
        return f"{label} is required"
    if kind == "string_type":
        return f"{label} must be a string"
    if kind == "string_too_short":
        return f"{label} must be at least {error['ctx']['min_length']} characters"
    if kind == "literal_error":
        return f"{label} must be one of: {', '.join(URGENCY_LEVELS)}"
    if kind == "value_error":
        return str(error["ctx"]["error"])
    return f"{label} is invalid"


def validate_support_payload(payload: Any) -> ValidationResult:
    if not isinstance(payload, dict):
        return ValidationResult(ok=False, errors={"body": "Payload must be a JSON object"})
    try:
        parsed = SupportRequestPayload.model_validate(payload)
    except PayloadValidationError as exc:
        errors: dict[str, str] = {}
        for error in exc.errors():
            # First violated rule per field wins.
            errors.setdefault(str(error["loc"][0]), _field_message(error))
        return ValidationResult(ok=False, errors=errors)
    return ValidationResult(ok=True, value=parsed.model_dump())


class SupportService:
    def __init__(
        self,
        *,
        support_repository: SupportQueueRepository,
        clock: Clock = utc_now,
        id_factory: Callable[[], str] = generate_id,
    ) -> None:
        self.support_repository = support_repository
        self.clock = clock
        self.id_factory = id_factory
        self._last_created_at: datetime | None = None

    def validate(self, payload: Any) -> ValidationResult:
        return validate_support_payload(payload)

    def submit(self, payload: Any) -> SupportRequest:
        result = self.validate(payload)
        if not result.ok or result.value is None:
            logger.info("support_request_rejected", fields=sorted(result.errors))
            raise ValidationError(result.errors)

        with self.support_repository.lock:
            created_at = self._next_timestamp()
            record = SupportRequest(
                id=self.id_factory(),
                name=result.value["name"],
                email=result.value["email"],
                topic=result.value["topic"],
                message=result.value["message"],
                urgency=result.value["urgency"],
                createdAt=to_iso(created_at),
            )
            self.support_repository.append(record.to_dict())

        logger.info(
            "support_request_created",
            request_id=record.id,
            urgency=record.urgency,
            topic=record.topic,
        )
        return record

    def _next_timestamp(self) -> datetime:
        now = self.clock()
        if self._last_created_at is not None and now < self._last_created_at:
            now = self._last_created_at
        self._last_created_at = now
        return now
