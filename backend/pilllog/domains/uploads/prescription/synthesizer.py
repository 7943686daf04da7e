"""Turns parsed prescription fields into an insertable medication."""
import re
from datetime import datetime, timedelta, timezone

from pilllog.domains.medications.schemas import MedicationInsert

from .types import ParsedPrescription

UNKNOWN_MEDICATION_NAME = "알 수 없는 약물"
LEADING_DAYS_PATTERN = re.compile(r"\s*([0-9]+)")


def duration_days(duration: str | None) -> int | None:
    """Leading day count of a duration such as "7" or "7일", None if there is none."""
    if not duration:
        return None
    match = LEADING_DAYS_PATTERN.match(duration)
    if not match:
        return None
    try:
        return int(match.group(1))
    except ValueError:
        # More digits than int() converts
        return None


def _end_date(start: datetime, days: int | None) -> datetime | None:
    if days is None:
        return None
    try:
        return start + timedelta(days=days)
    except OverflowError:
        # Beyond datetime.max, same as no readable day count
        return None


def build_medication(
    parsed: ParsedPrescription,
    user_id: str,
    now: datetime | None = None,
) -> MedicationInsert:
    """
    Build a medication row from parsed fields.

    Treatment is assumed to start now; the end date is only set when the
    duration starts with a day count that keeps it within the datetime range.
    """
    start = now or datetime.now(timezone.utc)

    return MedicationInsert(
        user_id=user_id,
        name=parsed.name or UNKNOWN_MEDICATION_NAME,
        dosage=parsed.dosage,
        frequency=parsed.frequency,
        duration=parsed.duration,
        hospital_name=parsed.hospital_name,
        doctor_name=parsed.doctor_name,
        effect=parsed.effect,
        prescribed_date=start,
        start_date=start,
        end_date=_end_date(start, duration_days(parsed.duration)),
        is_active=True,
    )
