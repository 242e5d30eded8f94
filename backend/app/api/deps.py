from __future__ import annotations

from fastapi import Depends, HTTPException
from fastapi.security import HTTPBasic, HTTPBasicCredentials

from app.container import container
from app.core.security import verify_credentials

basic_auth = HTTPBasic(auto_error=False, realm="Admin Panel")

_CHALLENGE = {"WWW-Authenticate": 'Basic realm="Admin Panel"'}


def require_admin(credentials: HTTPBasicCredentials | None = Depends(basic_auth)) -> str:
    if credentials is None:
        raise HTTPException(status_code=401, detail="Authentication required", headers=_CHALLENGE)
    settings = container.settings
    if not verify_credentials(
        username=credentials.username,
        password=credentials.password,
        expected_username=settings.admin_username,
        expected_password=settings.admin_password,
    ):
        raise HTTPException(status_code=401, detail="Invalid credentials", headers=_CHALLENGE)
    return credentials.username
