"""
Field extraction from a flattened voter card line.

Each rule runs independently over the same text; a field found by one
rule does not consume text for the others. Nothing here raises: fields
that do not match come back as "" (the name as NAME_NOT_FOUND).
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional, TYPE_CHECKING

from ..models import Voter

if TYPE_CHECKING:
    from .header_extractor import HeaderInfo


NAME_NOT_FOUND = "Unknown"

_RELATIVES = r"(?:Father|Husband|Mother|Guardian)"
_POSSESSIVE = r"(?:['’`]?s)?"

# Strict EPIC (3 letters + 7 digits, O tolerated for 0) or a looser
# 3+ letter prefix with 5+ digits
EPIC_RE = re.compile(r"([A-Z]{3}[O0-9]{7}|[A-Z]{3,}\d{5,}[A-Z0-9]*)", re.IGNORECASE)

NAME_LABEL_RE = re.compile(r"\bName[:\s\-\.]+", re.IGNORECASE)
RELATIVE_PREFIX_RE = re.compile(_RELATIVES + _POSSESSIVE + r"\s*$", re.IGNORECASE)
NAME_VALUE_RE = re.compile(
    r"(.*?)\s*(?=\b" + _RELATIVES + _POSSESSIVE + r"\b"
    r"|\b(?:House|Age|Aqe|Gender|Sex|Elector|Photo)\b|$)",
    re.IGNORECASE,
)

RELATIVE_RE = re.compile(
    r"\b" + _RELATIVES + _POSSESSIVE + r"[\s:]*Name[:\s\-\.]+"
    r"(.*?)\s*(?=\b(?:House|Age|Aqe|Gender|Sex|Elector|Photo)\b|$)",
    re.IGNORECASE,
)

HOUSE_RE = re.compile(
    r"\b(?:House\s*(?:No|Number)?|H\.?\s*No)\b[\s\-\.:]+"
    r"([0-9A-Za-z\-/\s]+?)(?=\s*\b(?:Age|Aqe|Gender|Sex)\b|\s*$)",
    re.IGNORECASE,
)
HOUSE_FALLBACK_RE = re.compile(
    r"\bNo\b[\s\-\.:]+([0-9A-Za-z\-/\s]+?)(?=\s*\b(?:Age|Aqe|Gender|Sex)\b|\s*$)",
    re.IGNORECASE,
)

AGE_GENDER_RE = re.compile(
    r"\b(?:Age|Aqe)[:\s\-\.]*(\d+)[\s,;|]*(?:Gender|Sex)[:\s\-\.]*([A-Za-z]+)",
    re.IGNORECASE,
)

SERIAL_RE = re.compile(r"^(\d+)")


@dataclass
class VoterFields:
    """Best-effort field values for one card."""
    serial_no: str = ""
    epic_no: str = ""
    name: str = NAME_NOT_FOUND
    relative_name: str = ""
    house_no: str = ""
    age: str = ""
    gender: str = ""

    def to_voter(
        self,
        page_number: int,
        header: Optional["HeaderInfo"] = None,
        photo_base64: Optional[str] = None
    ) -> Voter:
        return Voter(
            sl_no=self.serial_no,
            epic_no=self.epic_no,
            name_en=self.name,
            relative_name=self.relative_name,
            house_no=self.house_no,
            age=self.age,
            gender=self.gender,
            assembly_name=header.assembly_name if header else "",
            parliament_name=header.parliament_name if header else "",
            polling_station_no=header.polling_station_no if header else "",
            photo_base64=photo_base64,
            original_page=page_number,
        )


def normalize_epic(raw: str) -> str:
    """Upper-case and map O to 0 after the 3-letter prefix."""
    epic = raw.upper()
    return epic[:3] + epic[3:].replace("O", "0")


def find_epic(text: str) -> str:
    match = EPIC_RE.search(text or "")
    return normalize_epic(match.group(1)) if match else ""


def is_epic_candidate(text: str) -> bool:
    return bool(EPIC_RE.search(text or ""))


def extract_name(text: str) -> str:
    for label in NAME_LABEL_RE.finditer(text):
        # Skip the Name in "Father's Name" and friends
        if RELATIVE_PREFIX_RE.search(text[:label.start()]):
            continue
        value = NAME_VALUE_RE.match(text, label.end())
        if value and value.group(1).strip():
            return value.group(1).strip()
    return NAME_NOT_FOUND


def extract_relative_name(text: str) -> str:
    for match in RELATIVE_RE.finditer(text):
        value = match.group(1).strip()
        if value:
            return value
    return ""


def extract_house_no(text: str) -> str:
    match = HOUSE_RE.search(text) or HOUSE_FALLBACK_RE.search(text)
    return match.group(1).strip() if match else ""


def extract_fields(line: str) -> VoterFields:
    """
    Apply every field rule to one flattened card line.

    Never raises; see VoterFields for defaults.
    """
    text = " ".join((line or "").split())

    fields = VoterFields(
        epic_no=find_epic(text),
        name=extract_name(text),
        relative_name=extract_relative_name(text),
        house_no=extract_house_no(text),
    )

    age_gender = AGE_GENDER_RE.search(text)
    if age_gender:
        fields.age = age_gender.group(1)
        fields.gender = age_gender.group(2)

    serial = SERIAL_RE.match(text)
    if serial:
        fields.serial_no = serial.group(1)

    return fields
