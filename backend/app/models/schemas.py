from __future__ import annotations

import re
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.models.support import ExportFormat, ExportOptions, Urgency

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class SupportRequestPayload(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(min_length=2)
    email: str = Field(min_length=1)
    topic: str = Field(min_length=3)
    message: str = Field(min_length=10)
    urgency: Urgency

    @field_validator("email")
    @classmethod
    def _check_email(cls, value: str) -> str:
        if not EMAIL_PATTERN.match(value):
            raise ValueError("Email must be a valid email address")
        return value


class RestoreBackupRequest(BaseModel):
    filename: str = Field(min_length=1)


class ExportRequest(BaseModel):
    format: ExportFormat
    startDate: datetime | None = None
    endDate: datetime | None = None
    urgency: Urgency | None = None
    includeMetadata: bool = True

    def to_options(self) -> ExportOptions:
        # The date filter only applies when both bounds are given.
        has_range = self.startDate is not None and self.endDate is not None
        return ExportOptions(
            format=self.format,
            start=self.startDate if has_range else None,
            end=self.endDate if has_range else None,
            urgency=self.urgency,
            include_metadata=self.includeMetadata,
        )


class RequestListQuery(BaseModel):
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=20, ge=1, le=200)
    urgency: Urgency | None = None
    search: str | None = None
    sortBy: Literal["createdAt", "urgency", "name"] = "createdAt"
    sortOrder: Literal["asc", "desc"] = "desc"
