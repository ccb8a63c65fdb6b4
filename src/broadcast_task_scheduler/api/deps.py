from __future__ import annotations

import secrets

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBasic, HTTPBasicCredentials
from sqlalchemy.orm import Session

from broadcast_task_scheduler import db
from broadcast_task_scheduler.config import Settings, get_settings
from broadcast_task_scheduler.store import TaskStore

_basic = HTTPBasic()


def require_basic_auth(
    credentials: HTTPBasicCredentials = Depends(_basic),
    settings: Settings = Depends(get_settings),
) -> str:
    """Check HTTP Basic credentials against the configured pair.

    With no credentials configured every request is rejected.
    """
    expected_user = settings.api_username.encode("utf-8")
    expected_pass = settings.api_password.encode("utf-8")
    user_ok = secrets.compare_digest(credentials.username.encode("utf-8"), expected_user)
    pass_ok = secrets.compare_digest(credentials.password.encode("utf-8"), expected_pass)
    if not (expected_user and user_ok and pass_ok):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="unauthorized",
            headers={"WWW-Authenticate": "Basic"},
        )
    return credentials.username


def get_store(session: Session = Depends(db.get_session)) -> TaskStore:
    return TaskStore(session)
