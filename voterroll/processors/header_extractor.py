"""
Page header extraction.

The top band of every roll page names the assembly constituency, the
parliamentary constituency and the polling station shared by all cards on
that page.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Sequence

from ..models import PositionedToken
from .region_clusterer import flatten, sort_reading_order

# Fraction of page height treated as header for digital text
DIGITAL_HEADER_FRACTION = 0.10

# Optional "No. and Name" between the label and its value
_LABEL_TAIL = r"(?:\s*No\.?\s*(?:and|&)\s*Name)?[:\s\-]*"
_NUMBER_PREFIX = r"(?:\d+\s*[-:.]?\s*)?"
_NEXT_KEYWORD = r"\b(?:Assembly|Parliament(?:ary)?|Polling|Part|Section)\b"

ASSEMBLY_RE = re.compile(
    r"Assembly.*?Constituency" + _LABEL_TAIL + _NUMBER_PREFIX +
    r"([A-Za-z][A-Za-z\s]*?)(?=\s*(?:" + _NEXT_KEYWORD + r"|[^A-Za-z\s]|$))",
    re.IGNORECASE,
)

PARLIAMENT_RE = re.compile(
    r"Parliament(?:ary)?.*?Constituency" + _LABEL_TAIL + _NUMBER_PREFIX +
    r"([A-Za-z][A-Za-z\s]*?)(?=\s*(?:" + _NEXT_KEYWORD + r"|[^A-Za-z\s]|$))",
    re.IGNORECASE,
)

POLLING_RE = re.compile(
    r"Polling.*?Station" + _LABEL_TAIL +
    r"([0-9A-Za-z][0-9A-Za-z\s\-\.]*?)(?=\s*(?:" + _NEXT_KEYWORD + r"|[^0-9A-Za-z\s\-\.]|$))",
    re.IGNORECASE,
)


@dataclass
class HeaderInfo:
    """Header values shared by every voter on a page."""
    assembly_name: str = ""
    parliament_name: str = ""
    polling_station_no: str = ""


def _first_group(pattern: re.Pattern, text: str) -> str:
    match = pattern.search(text)
    return match.group(1).strip() if match else ""


def parse_header(text: str) -> HeaderInfo:
    """Apply the header patterns to flattened header text."""
    text = " ".join((text or "").split())
    return HeaderInfo(
        assembly_name=_first_group(ASSEMBLY_RE, text),
        parliament_name=_first_group(PARLIAMENT_RE, text),
        polling_station_no=_first_group(POLLING_RE, text),
    )


def header_band(tokens: Sequence[PositionedToken], cutoff: float) -> list[PositionedToken]:
    """Tokens whose bottom edge lies above cutoff."""
    return [t for t in tokens if t.y1 < cutoff]


def extract_header(
    tokens: Sequence[PositionedToken],
    cutoff: float,
    row_tolerance: float = 5.0
) -> HeaderInfo:
    """Flatten the header band in reading order and parse it."""
    band = sort_reading_order(header_band(tokens, cutoff), row_tolerance)
    return parse_header(flatten(band))
