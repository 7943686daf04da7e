"""Pydantic schemas for the medications domain."""
from datetime import datetime, timezone
from enum import Enum

from pydantic import Field, model_validator

from pilllog.core.schemas import CamelModel


def _as_utc(value: datetime) -> datetime:
    # Naive values are taken to be UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def check_date_range(start: datetime | None, end: datetime | None) -> None:
    """Raise ValueError when both dates are set and end comes before start."""
    if start is not None and end is not None and _as_utc(end) < _as_utc(start):
        raise ValueError("endDate must not be earlier than startDate")


# --- Medication Schemas ---

class MedicationBase(CamelModel):
    name: str = Field(min_length=1)
    dosage: str | None = None
    frequency: str | None = None
    duration: str | None = None
    hospital_name: str | None = None
    doctor_name: str | None = None
    effect: str | None = None
    prescribed_date: datetime | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None
    is_active: bool = True


class MedicationCreate(MedicationBase):
    @model_validator(mode="after")
    def check_dates(self) -> "MedicationCreate":
        check_date_range(self.start_date, self.end_date)
        return self


class MedicationInsert(MedicationBase):
    """A complete medication row, owner included."""
    user_id: str


class MedicationUpdate(CamelModel):
    name: str | None = Field(default=None, min_length=1)
    dosage: str | None = None
    frequency: str | None = None
    duration: str | None = None
    hospital_name: str | None = None
    doctor_name: str | None = None
    effect: str | None = None
    prescribed_date: datetime | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None
    is_active: bool | None = None

    @model_validator(mode="after")
    def check_dates(self) -> "MedicationUpdate":
        for field in ("name", "is_active"):
            if field in self.model_fields_set and getattr(self, field) is None:
                raise ValueError(f"{field} cannot be null")
        check_date_range(self.start_date, self.end_date)
        return self


class MedicationResponse(MedicationBase):
    id: str
    user_id: str
    created_at: datetime


# --- Drug Registry Search Schemas ---

class DrugSearchType(str, Enum):
    NAME = "name"
    INGREDIENT = "ingredient"
    COMPANY = "company"


class DrugInfoResponse(CamelModel):
    name: str
    company: str
    effect: str
    usage: str
    precautions: str
    side_effects: str
    ingredients: str
    approval_number: str


class DrugSearchResponse(CamelModel):
    medications: list[DrugInfoResponse]
    total_count: int
