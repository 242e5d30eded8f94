from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body

from app.container import container

router = APIRouter(tags=["support"])


@router.post("/support", status_code=201)
def submit_support_request(payload: Any = Body(default=None)) -> dict[str, object]:
    record = container.support_service.submit(payload)
    return {"status": "ok", "id": record.id}
