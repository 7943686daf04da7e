"""Pydantic schemas for the uploads domain."""
from datetime import datetime

from pilllog.core.schemas import CamelModel
from pilllog.domains.uploads.models import ProcessingStatus


class ImageUploadCreate(CamelModel):
    user_id: str
    file_name: str
    original_url: str
    processing_status: ProcessingStatus = ProcessingStatus.PROCESSING


class ImageUploadUpdate(CamelModel):
    extracted_text: str | None = None
    processing_status: ProcessingStatus | None = None
    medication_id: str | None = None


class ImageUploadResponse(CamelModel):
    id: str
    user_id: str
    file_name: str
    original_url: str
    extracted_text: str | None = None
    processing_status: ProcessingStatus
    medication_id: str | None = None
    created_at: datetime


class UploadAccepted(CamelModel):
    """Returned as soon as an image is queued; poll the upload for the outcome."""
    upload_id: str
    status: ProcessingStatus
    message: str
