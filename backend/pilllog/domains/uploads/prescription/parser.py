"""Heuristic field extraction from OCR text of Korean prescriptions."""
import logging
import re

from .types import ParsedPrescription

logger = logging.getLogger(__name__)

# Only the top of a prescription is searched for an unlabeled drug name
NAME_SCAN_LINES = 10
NAME_LINE_MARKERS = ("mg", "정", "캡슐")  # mg, tablet, capsule
# Word and digit classes are ASCII only; Hangul syllables are listed explicitly
NAME_PATTERN = re.compile(r"([가-힣A-Za-z0-9_\s]+(?:[0-9]+mg)?)")

# 1일 3회, 3회/일, 식전/식후, 아침/점심/저녁
FREQUENCY_PATTERN = re.compile(r"([0-9]+일\s*[0-9]+회|[0-9]+회/일|식[전후]|아침|점심|저녁)")

# "<label>: <value>" anywhere in the text, value runs to the end of the line
LABELED_NAME_PATTERN = re.compile(r"(?:약품명|성분명|제품명)[:\s]*([^\n]+)", re.IGNORECASE)
LABELED_DOSAGE_PATTERN = re.compile(r"(?:용법용량|복용법|용량)[:\s]*([^\n]+)", re.IGNORECASE)
LABELED_DURATION_PATTERN = re.compile(r"(?:투여일수|복용기간|일수)[:\s]*([0-9]+)일?", re.IGNORECASE)
LABELED_HOSPITAL_PATTERN = re.compile(r"(?:의료기관|병원명|요양기관)[:\s]*([^\n]+)", re.IGNORECASE)
LABELED_DOCTOR_PATTERN = re.compile(r"(?:의사명|처방의|담당의)[:\s]*([^\n]+)", re.IGNORECASE)
LABELED_EFFECT_PATTERN = re.compile(r"(?:효능|주치|적응증)[:\s]*([^\n]+)", re.IGNORECASE)

HOSPITAL_KEYWORDS = ("병원", "의원", "클리닉")
DOCTOR_KEYWORDS_PATTERN = re.compile(r"의사|선생님")
DOCTOR_LINE_MAX_LENGTH = 20


class PrescriptionParser:
    """
    Best-effort parser for prescription and drug-bag text.

    Heuristic passes run first; labeled values ("약품명: ...") found anywhere
    in the text then replace whatever the heuristics produced, and the
    hospital/doctor line fallbacks only fill fields that are still missing.
    Parsing never fails: unmatched fields stay None.
    """

    def parse(self, text: str) -> ParsedPrescription:
        lines = self._split_lines(text)

        name = self._find_name_line(lines)
        frequency = self._find_frequency_line(lines)

        # Labeled values win over the heuristics above
        name = self._search_label(LABELED_NAME_PATTERN, text) or name
        dosage = self._search_label(LABELED_DOSAGE_PATTERN, text)
        duration = self._search_label(LABELED_DURATION_PATTERN, text)
        hospital_name = self._search_label(LABELED_HOSPITAL_PATTERN, text)
        doctor_name = self._search_label(LABELED_DOCTOR_PATTERN, text)
        effect = self._search_label(LABELED_EFFECT_PATTERN, text)

        if hospital_name is None:
            hospital_name = self._find_hospital_line(lines)
        if doctor_name is None:
            doctor_name = self._find_doctor_line(lines)

        parsed = ParsedPrescription(
            name=name,
            dosage=dosage,
            frequency=frequency,
            duration=duration,
            hospital_name=hospital_name,
            doctor_name=doctor_name,
            effect=effect,
        )
        logger.debug(f"Parsed prescription: {parsed}")
        return parsed

    def _split_lines(self, text: str) -> list[str]:
        stripped = (line.strip() for line in text.split("\n"))
        return [line for line in stripped if line]

    def _find_name_line(self, lines: list[str]) -> str | None:
        """Name on the first drug-looking line near the top of the text."""
        for line in lines[:NAME_SCAN_LINES]:
            if not any(marker in line for marker in NAME_LINE_MARKERS):
                continue
            match = NAME_PATTERN.search(line)
            if match:
                # First match wins even when it trims to nothing
                return match.group(1).strip() or None
        return None

    def _find_frequency_line(self, lines: list[str]) -> str | None:
        """Whole line of the first dosing-schedule mention."""
        for line in lines:
            if FREQUENCY_PATTERN.search(line):
                return line
        return None

    def _search_label(self, pattern: re.Pattern[str], text: str) -> str | None:
        match = pattern.search(text)
        if not match:
            return None
        return match.group(1).strip() or None

    def _find_hospital_line(self, lines: list[str]) -> str | None:
        for line in lines:
            if any(keyword in line for keyword in HOSPITAL_KEYWORDS):
                return line
        return None

    def _find_doctor_line(self, lines: list[str]) -> str | None:
        """First short line mentioning a doctor, with the title words removed."""
        for line in lines:
            if len(line) < DOCTOR_LINE_MAX_LENGTH and DOCTOR_KEYWORDS_PATTERN.search(line):
                return DOCTOR_KEYWORDS_PATTERN.sub("", line).strip() or None
        return None
