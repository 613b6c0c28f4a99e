"""
Voter data models.

Represents individual voter records extracted from electoral roll pages.
"""

from __future__ import annotations

from dataclasses import dataclass, field, asdict, fields
from typing import Optional, Any, List
import re


# Fields shared by Voter and RawExtractionRecord, in export order
RECORD_TEXT_FIELDS = (
    "sl_no",
    "epic_no",
    "name_en",
    "name_te",
    "relative_name",
    "house_no",
    "age",
    "gender",
    "assembly_name",
    "parliament_name",
    "polling_station_no",
)


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value)


@dataclass
class Voter:
    """
    One digitized voter record.

    Poll-state fields (is_voted, voted_party, timestamp) are always
    False/None straight out of extraction; only the tracking actions
    in voterroll.tracking set them.
    """

    # Identifiers
    sl_no: str = ""
    epic_no: str = ""

    # Personal information
    name_en: str = ""
    name_te: str = ""
    relative_name: str = ""  # Father/Husband/Mother/Guardian
    house_no: str = ""
    age: str = ""
    gender: str = ""

    # Page header context
    assembly_name: str = ""
    parliament_name: str = ""
    polling_station_no: str = ""

    photo_base64: Optional[str] = None
    original_page: int = 0

    # Poll state
    is_voted: bool = False
    voted_party: Optional[str] = None
    timestamp: Optional[int] = None  # epoch milliseconds

    def __post_init__(self):
        """Clean data after initialization."""
        for name in RECORD_TEXT_FIELDS:
            setattr(self, name, _as_text(getattr(self, name)).strip())
        self.epic_no = self.epic_no.upper()

    @staticmethod
    def validate_epic(epic: str) -> bool:
        """
        Validate EPIC number format.

        Indian EPIC format: 3 letters followed by 7 digits (e.g., ABC1234567)
        """
        if not epic:
            return False
        return bool(re.fullmatch(r"[A-Z]{3}\d{7}", epic.upper()))

    @property
    def epic_valid(self) -> bool:
        return self.validate_epic(self.epic_no)

    @property
    def serial_number(self) -> int:
        """Serial as an integer for ordering; 0 when not numeric."""
        match = re.match(r"\d+", self.sl_no)
        return int(match.group(0)) if match else 0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Voter":
        """Create Voter from dictionary."""
        return cls(**{
            k: v for k, v in data.items()
            if k in cls.__dataclass_fields__
        })

    def same_record(self, other: "Voter") -> bool:
        """Compare on every field except the photo, which is never exported."""
        return all(
            getattr(self, f.name) == getattr(other, f.name)
            for f in fields(self)
            if f.name != "photo_base64"
        )


@dataclass
class RawExtractionRecord:
    """
    Untyped record produced by the vision model before coercion.

    photo_box_2d is [ymin, xmin, ymax, xmax] normalized to 0-1000.
    """

    sl_no: str = ""
    epic_no: str = ""
    name_en: str = ""
    name_te: str = ""
    relative_name: str = ""
    house_no: str = ""
    age: str = ""
    gender: str = ""
    assembly_name: str = ""
    parliament_name: str = ""
    polling_station_no: str = ""
    photo_box_2d: Optional[List[float]] = field(default=None)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RawExtractionRecord":
        """Coerce a loosely-typed model object, defaulting missing fields to ''."""
        values = {name: _as_text(data.get(name)) for name in RECORD_TEXT_FIELDS}
        return cls(photo_box_2d=cls._coerce_box(data.get("photo_box_2d")), **values)

    @staticmethod
    def _coerce_box(box: Any) -> Optional[List[float]]:
        if not isinstance(box, (list, tuple)) or len(box) != 4:
            return None
        try:
            return [float(v) for v in box]
        except (TypeError, ValueError):
            return None

    def to_voter(self, page_number: int, photo_base64: Optional[str] = None) -> Voter:
        return Voter(
            **{name: getattr(self, name) for name in RECORD_TEXT_FIELDS},
            photo_base64=photo_base64,
            original_page=page_number,
        )
