from sqlalchemy.orm import Session

from pilllog.domains.symptoms.models import SymptomRecord
from pilllog.domains.symptoms.schemas import SymptomRecordInsert


class SymptomsService:
    def __init__(self, db: Session):
        self.db = db

    def get_symptom_records(self, user_id: str, medication_id: str | None = None) -> list[SymptomRecord]:
        query = self.db.query(SymptomRecord).filter(SymptomRecord.user_id == user_id)
        if medication_id:
            query = query.filter(SymptomRecord.medication_id == medication_id)
        return query.order_by(SymptomRecord.recorded_at.desc()).all()

    def create_symptom_record(self, record: SymptomRecordInsert) -> SymptomRecord:
        db_record = SymptomRecord(**record.model_dump())
        self.db.add(db_record)
        self.db.commit()
        self.db.refresh(db_record)
        return db_record
