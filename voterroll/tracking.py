"""
Poll-day tracking actions.

These are the only functions that set a voter's poll state (is_voted,
voted_party, timestamp). They mutate the voter in place and return it.
"""

from __future__ import annotations

import time
from enum import Enum
from typing import Iterable, List, Optional

from .models import Voter

DEFAULT_PARTIES = ["INC", "BRS", "BJP", "AIMIM", "OTHERS"]


class VoteFilter(str, Enum):
    ALL = "ALL"
    VOTED = "VOTED"
    NOT_VOTED = "NOT_VOTED"


def _now_ms() -> int:
    return int(time.time() * 1000)


def toggle_vote(voter: Voter, now: Optional[int] = None) -> Voter:
    """Flip the voted flag; un-voting clears the party."""
    if voter.is_voted:
        voter.voted_party = None
    voter.is_voted = not voter.is_voted
    voter.timestamp = _now_ms() if now is None else now
    return voter


def mark_voted(voter: Voter, party: Optional[str], now: Optional[int] = None) -> Voter:
    voter.is_voted = True
    voter.voted_party = party or None
    voter.timestamp = _now_ms() if now is None else now
    return voter


def update_voter(voters: List[Voter], updated: Voter) -> bool:
    """
    Replace the voter with the same EPIC number.

    Returns:
        True if a voter was replaced
    """
    for i, v in enumerate(voters):
        if v.epic_no == updated.epic_no:
            voters[i] = updated
            return True
    return False


def find_by_epic(voters: Iterable[Voter], epic_no: str) -> Optional[Voter]:
    epic_no = (epic_no or "").strip().upper()
    for v in voters:
        if v.epic_no == epic_no:
            return v
    return None


def sort_by_serial(voters: Iterable[Voter]) -> List[Voter]:
    """Numeric serial order; non-numeric serials sort as 0. Stable."""
    return sorted(voters, key=lambda v: v.serial_number)


def search(
    voters: Iterable[Voter],
    term: str = "",
    status: VoteFilter = VoteFilter.ALL
) -> List[Voter]:
    """
    Filter voters by a search term and poll status, in serial order.

    The term matches name, EPIC and house number case-insensitively, and
    the serial number as a substring.
    """
    needle = (term or "").lower()
    status = VoteFilter(status)

    def matches(v: Voter) -> bool:
        if needle and not (
            needle in v.name_en.lower()
            or needle in v.epic_no.lower()
            or (term or "") in v.sl_no
            or needle in v.house_no.lower()
        ):
            return False
        if status == VoteFilter.VOTED:
            return v.is_voted
        if status == VoteFilter.NOT_VOTED:
            return not v.is_voted
        return True

    return sort_by_serial(v for v in voters if matches(v))
