"""
Anchor-based region clustering.

Electoral roll pages are a loose grid of fixed-size voter cards. Each card
carries exactly one EPIC number near its top, so every token matching the
EPIC pattern seeds a window, and the tokens falling inside that window are
taken as the card's content. Overlapping windows are allowed; a token may
belong to several regions.

All coordinates are top-left origin with y growing downward.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, List, Sequence, Tuple

from ..models import PositionedToken
from .field_extractor import is_epic_candidate

Box = Tuple[float, float, float, float]
AnchorPredicate = Callable[[str], bool]


@dataclass(frozen=True)
class RegionWindow:
    """
    Search window around an anchor token.

    In box mode the window extends from the anchor's box and a token must
    lie fully inside it. In point mode (PDF text items, which are
    positioned by their origin) both the window and the membership test use
    the (x0, y0) point.
    """
    left: float
    right: float
    above: float
    below: float
    row_tolerance: float = 5.0
    point_mode: bool = False

    def around(self, anchor: PositionedToken) -> Box:
        if self.point_mode:
            return (
                anchor.x0 - self.left,
                anchor.y0 - self.above,
                anchor.x0 + self.right,
                anchor.y0 + self.below,
            )
        return (
            anchor.x0 - self.left,
            anchor.y0 - self.above,
            anchor.x1 + self.right,
            anchor.y1 + self.below,
        )

    def contains(self, box: Box, token: PositionedToken) -> bool:
        if self.point_mode:
            x0, y0, x1, y1 = box
            return x0 <= token.x0 <= x1 and y0 <= token.y0 <= y1
        return token.inside(box)


# PDF points
DIGITAL_WINDOW = RegionWindow(left=200, right=200, above=60, below=120, row_tolerance=5, point_mode=True)

# Pixels at the default render scale
OCR_WINDOW = RegionWindow(left=250, right=100, above=20, below=140, row_tolerance=10)


@dataclass
class Region:
    """Tokens believed to belong to one voter card."""
    anchor: PositionedToken
    box: Box
    tokens: List[PositionedToken] = field(default_factory=list)

    @property
    def text(self) -> str:
        return flatten(self.tokens)


def sort_reading_order(
    tokens: Sequence[PositionedToken],
    row_tolerance: float = 5.0
) -> List[PositionedToken]:
    """
    Sort tokens top-to-bottom, then left-to-right.

    Tokens whose top edge is within row_tolerance of a row's first token
    are treated as the same row.
    """
    rows: List[List[PositionedToken]] = []
    for token in sorted(tokens, key=lambda t: (t.y0, t.x0)):
        if rows and abs(token.y0 - rows[-1][0].y0) <= row_tolerance:
            rows[-1].append(token)
        else:
            rows.append([token])

    ordered: List[PositionedToken] = []
    for row in rows:
        ordered.extend(sorted(row, key=lambda t: t.x0))
    return ordered


def flatten(tokens: Sequence[PositionedToken]) -> str:
    """Join token texts with whitespace collapsed to single spaces."""
    return " ".join(" ".join(t.text for t in tokens).split())


def find_anchors(
    tokens: Sequence[PositionedToken],
    predicate: AnchorPredicate = is_epic_candidate,
    row_tolerance: float = 5.0
) -> List[PositionedToken]:
    """Return anchor tokens in page reading order."""
    anchors = [t for t in tokens if predicate(t.text)]
    return sort_reading_order(anchors, row_tolerance)


def cluster(
    tokens: Sequence[PositionedToken],
    window: RegionWindow,
    predicate: AnchorPredicate = is_epic_candidate
) -> List[Region]:
    """
    Partition a page into one region per anchor.

    Returns:
        Regions in anchor reading order, each with its tokens sorted
        in reading order
    """
    regions: List[Region] = []
    for anchor in find_anchors(tokens, predicate, window.row_tolerance):
        box = window.around(anchor)
        members = [t for t in tokens if window.contains(box, t)]
        regions.append(Region(
            anchor=anchor,
            box=box,
            tokens=sort_reading_order(members, window.row_tolerance),
        ))
    return regions
