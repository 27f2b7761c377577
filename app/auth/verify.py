"""
verify.py
---------
Purpose:
    Shared-secret bearer check for the report trigger endpoints.

Notes:
    - Cron jobs and the order webhook send `Authorization: Bearer <REPORT_TOKEN>`.
    - When REPORT_TOKEN is unset (local development) every request is accepted.
"""

import hmac

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.config import settings

_security = HTTPBearer(auto_error=False)


def verify_report_token(token: str | None) -> bool:
    expected = settings.REPORT_TOKEN
    if not expected:
        return True
    if not token:
        return False
    return hmac.compare_digest(token.encode("utf-8"), expected.encode("utf-8"))


def report_token_dependency(
    credentials: HTTPAuthorizationCredentials | None = Depends(_security),
) -> None:
    token = credentials.credentials if credentials else None
    if not verify_report_token(token):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid report token",
            headers={"WWW-Authenticate": "Bearer"},
        )
