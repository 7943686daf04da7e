"""Service layer for the uploads domain."""
import logging

from sqlalchemy.orm import Session

from pilllog.domains.medications.models import Medication
from pilllog.domains.medications.schemas import MedicationInsert
from pilllog.domains.uploads.models import ImageUpload
from pilllog.domains.uploads.schemas import ImageUploadCreate, ImageUploadUpdate

logger = logging.getLogger(__name__)


class UploadsService:
    """Service for prescription image uploads."""

    def __init__(self, db: Session):
        self.db = db

    def get_uploads(self, user_id: str) -> list[ImageUpload]:
        """Uploads of a user, newest first."""
        return (
            self.db.query(ImageUpload)
            .filter(ImageUpload.user_id == user_id)
            .order_by(ImageUpload.created_at.desc())
            .all()
        )

    def get_upload(self, upload_id: str) -> ImageUpload | None:
        return self.db.query(ImageUpload).filter(ImageUpload.id == upload_id).first()

    def create_upload(self, upload: ImageUploadCreate) -> ImageUpload:
        db_upload = ImageUpload(**upload.model_dump(mode="json"))
        self.db.add(db_upload)
        self.db.commit()
        self.db.refresh(db_upload)
        return db_upload

    def update_upload(self, upload_id: str, upload: ImageUploadUpdate) -> ImageUpload | None:
        db_upload = self.get_upload(upload_id)
        if not db_upload:
            return None
        update_data = upload.model_dump(mode="json", exclude_unset=True)
        for field, value in update_data.items():
            setattr(db_upload, field, value)
        self.db.commit()
        self.db.refresh(db_upload)
        return db_upload

    def link_new_medication(self, upload_id: str, medication: MedicationInsert) -> Medication | None:
        """
        Create a medication and point the upload at it in one transaction.

        Returns None (and creates nothing) when the upload does not exist.
        """
        db_upload = self.get_upload(upload_id)
        if not db_upload:
            return None

        db_medication = Medication(**medication.model_dump())
        self.db.add(db_medication)
        self.db.flush()
        db_upload.medication_id = db_medication.id
        self.db.commit()
        self.db.refresh(db_medication)

        logger.info(f"Linked medication {db_medication.id} to upload {upload_id}")
        return db_medication
