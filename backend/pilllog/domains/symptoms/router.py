from fastapi import APIRouter, HTTPException, Query, status

from pilllog.core.dependencies import CurrentUser, DbSession
from pilllog.domains.medications.service import MedicationsService
from pilllog.domains.symptoms.schemas import (
    SymptomRecordCreate,
    SymptomRecordInsert,
    SymptomRecordResponse,
)
from pilllog.domains.symptoms.service import SymptomsService

router = APIRouter()


@router.get("", response_model=list[SymptomRecordResponse])
def list_symptom_records(
    db: DbSession,
    current_user: CurrentUser,
    medication_id: str | None = Query(None, alias="medicationId"),
):
    service = SymptomsService(db)
    return service.get_symptom_records(current_user, medication_id=medication_id)


@router.post("", response_model=SymptomRecordResponse, status_code=status.HTTP_201_CREATED)
def create_symptom_record(record: SymptomRecordCreate, db: DbSession, current_user: CurrentUser):
    if not MedicationsService(db).get_medication(record.medication_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Medication not found")

    service = SymptomsService(db)
    return service.create_symptom_record(
        SymptomRecordInsert(**record.model_dump(), user_id=current_user)
    )
