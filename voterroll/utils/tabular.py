"""
Tabular (CSV) export and import of voter collections.

Export writes the fixed 15-column layout used for downloads and by the
remote conversion endpoint. Import accepts the same layout with either a
comma or semicolon delimiter and is all-or-nothing: it returns at least
one voter or raises ImportDataError.
"""

from __future__ import annotations

import csv
import io
import re
from typing import Iterable, List, Optional

from ..exceptions import ImportDataError
from ..models import Voter

BOM = "\ufeff"

HEADERS = [
    "Serial No", "EPIC No", "Name (English)", "Name (Telugu)", "Relation Name",
    "House No", "Age", "Gender", "Assembly", "Parliament", "Polling Station",
    "Voted?", "Party", "Page No", "Timestamp",
]

# Column order of the text fields in HEADERS[0:11]
_TEXT_COLUMNS = [
    "sl_no", "epic_no", "name_en", "name_te", "relative_name",
    "house_no", "age", "gender", "assembly_name", "parliament_name",
    "polling_station_no",
]

_MIN_COLUMNS = 3


def _quote(value: Optional[str]) -> str:
    return '"' + (value or "").replace('"', '""') + '"'


def export_voters(voters: Iterable[Voter]) -> str:
    """
    Render voters as tabular text.

    UTF-8 BOM, header row, one row per voter in the given order, '\\n'
    line breaks. Photos are never exported.
    """
    lines = [",".join(HEADERS)]
    for v in voters:
        cols = [_quote(getattr(v, name)) for name in _TEXT_COLUMNS]
        cols.append("YES" if v.is_voted else "NO")
        cols.append(_quote(v.voted_party) if v.voted_party else "")
        cols.append(str(v.original_page))
        cols.append(str(v.timestamp) if v.timestamp is not None else "")
        lines.append(",".join(cols))
    return BOM + "\n".join(lines)


def detect_delimiter(header_line: str) -> str:
    return ";" if ";" in header_line else ","


def _parse_int(value: str) -> Optional[int]:
    value = value.strip()
    if re.fullmatch(r"-?\d+", value):
        return int(value)
    return None


def import_voters(text: str) -> List[Voter]:
    """
    Parse tabular text into voters.

    Raises:
        ImportDataError: With fewer than two non-blank rows, or when no
            row yields a voter
    """
    if text.startswith(BOM):
        text = text[1:]

    header_line = next((line for line in text.splitlines() if line.strip()), "")
    delimiter = detect_delimiter(header_line)

    # Parse the whole text so quoted fields keep their line breaks
    reader = csv.reader(io.StringIO(text, newline=""), delimiter=delimiter, quotechar='"')
    rows = [row for row in reader if any(c.strip() for c in row)]
    if len(rows) < 2:
        raise ImportDataError(
            "Data appears to be empty or missing headers.", line_count=len(rows)
        )

    voters: List[Voter] = []
    for row in rows[1:]:
        cols = [c.strip() for c in row]
        if len(cols) < _MIN_COLUMNS:
            continue
        cols += [""] * (len(HEADERS) - len(cols))

        party = cols[12]
        voters.append(Voter(
            **dict(zip(_TEXT_COLUMNS, cols[:11])),
            is_voted=cols[11].upper() == "YES",
            voted_party=party if party and party != "null" else None,
            original_page=_parse_int(cols[13]) or 0,
            timestamp=_parse_int(cols[14]),
        ))

    if not voters:
        raise ImportDataError("No valid voter records parsed.", line_count=len(rows))

    return voters
