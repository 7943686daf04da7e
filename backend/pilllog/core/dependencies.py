from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from pilllog.core.config import settings
from pilllog.core.database import get_db
from pilllog.domains.uploads.processor import UploadWorkerPool


def get_current_user_id() -> str:
    """Every request acts as the seeded demo user."""
    return settings.DEMO_USER_ID


def get_upload_worker_pool(request: Request) -> UploadWorkerPool:
    return request.app.state.upload_worker_pool


DbSession = Annotated[Session, Depends(get_db)]
CurrentUser = Annotated[str, Depends(get_current_user_id)]
UploadWorkerPoolDep = Annotated[UploadWorkerPool, Depends(get_upload_worker_pool)]
