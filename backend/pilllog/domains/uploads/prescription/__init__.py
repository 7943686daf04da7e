# Prescription text extraction utilities
from .parser import PrescriptionParser
from .synthesizer import UNKNOWN_MEDICATION_NAME, build_medication, duration_days
from .types import ParsedPrescription

__all__ = [
    "PrescriptionParser",
    "ParsedPrescription",
    "UNKNOWN_MEDICATION_NAME",
    "build_medication",
    "duration_days",
]
