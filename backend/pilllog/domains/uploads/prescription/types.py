"""Data types for prescription text extraction."""
from dataclasses import dataclass


@dataclass(frozen=True)
class ParsedPrescription:
    """
    Medication fields found in OCR text of a prescription.

    None means the field was not found; an empty string is never stored.
    """
    name: str | None = None
    dosage: str | None = None
    frequency: str | None = None
    duration: str | None = None  # day count as printed, e.g. "7" or "7일"
    hospital_name: str | None = None
    doctor_name: str | None = None
    effect: str | None = None
