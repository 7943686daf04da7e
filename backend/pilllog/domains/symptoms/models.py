import uuid
from datetime import datetime, timezone

from sqlalchemy import JSON, DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from pilllog.core.database import Base


class SymptomRecord(Base):
    __tablename__ = "symptom_records"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    # Reference only, a record does not belong to the medication
    medication_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    pain_level: Mapped[int] = mapped_column(Integer, nullable=False)
    symptoms: Mapped[list[str] | None] = mapped_column(JSON)
    notes: Mapped[str | None] = mapped_column(Text)
    recorded_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
