from sqlalchemy.orm import Session

from pilllog.domains.medications.models import Medication
from pilllog.domains.medications.schemas import MedicationInsert, MedicationUpdate, check_date_range


class MedicationsService:
    def __init__(self, db: Session):
        self.db = db

    def get_medications(self, user_id: str) -> list[Medication]:
        """Active medications first, newest first within each group."""
        return (
            self.db.query(Medication)
            .filter(Medication.user_id == user_id)
            .order_by(Medication.is_active.desc(), Medication.created_at.desc())
            .all()
        )

    def get_medication(self, medication_id: str) -> Medication | None:
        return self.db.query(Medication).filter(Medication.id == medication_id).first()

    def create_medication(self, medication: MedicationInsert) -> Medication:
        db_medication = Medication(**medication.model_dump())
        self.db.add(db_medication)
        self.db.commit()
        self.db.refresh(db_medication)
        return db_medication

    def update_medication(self, medication_id: str, medication: MedicationUpdate) -> Medication | None:
        """
        Apply the fields set on the update.

        Raises ValueError when the resulting end date would come before the
        start date, including when only one of the two is being changed.
        """
        db_medication = self.get_medication(medication_id)
        if not db_medication:
            return None
        update_data = medication.model_dump(exclude_unset=True)
        check_date_range(
            update_data.get("start_date", db_medication.start_date),
            update_data.get("end_date", db_medication.end_date),
        )
        for field, value in update_data.items():
            setattr(db_medication, field, value)
        self.db.commit()
        self.db.refresh(db_medication)
        return db_medication
