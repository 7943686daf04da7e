from datetime import datetime

from pydantic import Field

from pilllog.core.schemas import CamelModel


class SymptomRecordBase(CamelModel):
    medication_id: str
    pain_level: int = Field(ge=0, le=10)
    symptoms: list[str] | None = None
    notes: str | None = None


class SymptomRecordCreate(SymptomRecordBase):
    pass


class SymptomRecordInsert(SymptomRecordBase):
    user_id: str


class SymptomRecordResponse(SymptomRecordBase):
    id: str
    user_id: str
    recorded_at: datetime
