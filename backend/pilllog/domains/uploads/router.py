"""API routes for the uploads domain."""
import logging
import time

from fastapi import APIRouter, File, HTTPException, UploadFile, status

from pilllog.core.config import settings
from pilllog.core.dependencies import CurrentUser, DbSession, UploadWorkerPoolDep
from pilllog.domains.uploads.models import ProcessingStatus
from pilllog.domains.uploads.processor import UploadJob, UploadQueueFullError
from pilllog.domains.uploads.schemas import (
    ImageUploadCreate,
    ImageUploadResponse,
    ImageUploadUpdate,
    UploadAccepted,
)
from pilllog.domains.uploads.service import UploadsService

logger = logging.getLogger(__name__)

router = APIRouter()


# --- Upload Endpoints ---

@router.post("/upload", response_model=UploadAccepted)
async def upload_prescription_image(
    db: DbSession,
    current_user: CurrentUser,
    pool: UploadWorkerPoolDep,
    image: UploadFile | None = File(None, description="Photo of a prescription or drug bag"),
):
    """
    Upload a prescription image for OCR.

    The image is queued and the call returns immediately with status
    "processing". Poll GET /uploads/{id} for the outcome; on success a
    medication is created from the recognized text and linked to the upload.
    """
    if image is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No image file provided")

    if not (image.content_type or "").startswith("image/"):
        raise HTTPException(
            status_code=status.HTTP_415_UNSUPPORTED_MEDIA_TYPE,
            detail="Only image files are allowed",
        )

    content = await image.read()
    if len(content) > settings.MAX_UPLOAD_SIZE_BYTES:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"Image exceeds the {settings.MAX_UPLOAD_SIZE_BYTES // (1024 * 1024)}MB limit",
        )

    file_name = image.filename or "upload"
    service = UploadsService(db)
    upload = service.create_upload(
        ImageUploadCreate(
            user_id=current_user,
            file_name=file_name,
            original_url=f"upload_{int(time.time() * 1000)}_{file_name}",
            processing_status=ProcessingStatus.PROCESSING,
        )
    )

    try:
        pool.submit(UploadJob(upload_id=upload.id, user_id=current_user, image_bytes=content))
    except UploadQueueFullError as e:
        logger.warning(f"Rejecting upload {upload.id}: {e}")
        service.update_upload(upload.id, ImageUploadUpdate(processing_status=ProcessingStatus.FAILED))
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Too many images are being processed, try again shortly",
        )

    logger.info(f"Queued upload {upload.id} ({file_name}, {len(content)} bytes)")
    return UploadAccepted(
        upload_id=upload.id,
        status=ProcessingStatus.PROCESSING,
        message="Image uploaded successfully. Processing in progress...",
    )


@router.get("/uploads", response_model=list[ImageUploadResponse])
def list_uploads(db: DbSession, current_user: CurrentUser):
    service = UploadsService(db)
    return service.get_uploads(current_user)


@router.get("/uploads/{upload_id}", response_model=ImageUploadResponse)
def get_upload(upload_id: str, db: DbSession, current_user: CurrentUser):
    service = UploadsService(db)
    upload = service.get_upload(upload_id)
    if not upload or upload.user_id != current_user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Upload not found")
    return upload
