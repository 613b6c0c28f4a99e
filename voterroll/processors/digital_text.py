"""
Digital-text extraction strategy.

Works directly on a PDF's embedded text layer: no rendering, no OCR, no
network. Pages without a text layer (most scanned rolls) simply produce no
voters.
"""

from __future__ import annotations

from typing import Any, Iterable, List, Optional, Sequence
from urllib.parse import unquote

from ..models import PageInput, PositionedToken, Voter
from .base import BaseStrategy, ProcessingContext
from .field_extractor import extract_fields, find_epic
from .header_extractor import DIGITAL_HEADER_FRACTION, extract_header
from .region_clusterer import DIGITAL_WINDOW, RegionWindow, cluster


def tokens_from_words(words: Iterable[Sequence[Any]]) -> List[PositionedToken]:
    """
    Build tokens from PyMuPDF ``page.get_text("words")`` tuples.

    Each tuple is (x0, y0, x1, y1, text, block_no, line_no, word_no), already
    top-left origin.
    """
    tokens = []
    for w in words:
        text = str(w[4]).strip()
        if text:
            tokens.append(PositionedToken(text, float(w[0]), float(w[1]), float(w[2]), float(w[3])))
    return tokens


def tokens_from_text_items(items: Iterable[dict], page_height: Optional[float] = None) -> List[PositionedToken]:
    """
    Build tokens from raw positioned text items.

    Items carry ``str`` (percent-encoded), ``transform`` (x at index 4,
    baseline y at index 5, bottom-left origin), ``width`` and ``height``.
    The y axis is flipped against page_height, or the highest baseline when
    the page height is unknown.
    """
    items = list(items)
    if not items:
        return []

    if not page_height:
        page_height = max(float(i["transform"][5]) for i in items)

    tokens = []
    for item in items:
        text = unquote(str(item.get("str", ""))).strip()
        if not text:
            continue
        x = float(item["transform"][4])
        baseline = page_height - float(item["transform"][5])
        width = float(item.get("width") or 0.0)
        height = float(item.get("height") or 0.0)
        tokens.append(PositionedToken(text, x, baseline - height, x + width, baseline))
    return tokens


class DigitalTextStrategy(BaseStrategy):
    """
    Extract voters from a page's text-position stream.

    Processing Flow:
    1. Build positioned tokens from PyMuPDF words or raw text items
    2. Parse the header from the top tenth of the page
    3. Cluster tokens around each EPIC anchor
    4. Run the field extractor on each region
    """

    name = "DigitalTextStrategy"
    needs_image = False
    needs_text = True

    def __init__(self, context: ProcessingContext, window: RegionWindow = DIGITAL_WINDOW):
        super().__init__(context)
        self.window = window

    def page_tokens(self, page: PageInput) -> List[PositionedToken]:
        if page.tokens:
            return list(page.tokens)
        if page.text_items:
            return tokens_from_text_items(page.text_items, page.height or None)
        return []

    def extract(self, page: PageInput) -> List[Voter]:
        tokens = self.page_tokens(page)
        if not tokens:
            self.log_debug("No text layer", page=page.page_number)
            return []

        page_height = page.height or max(t.y1 for t in tokens)
        header = extract_header(
            tokens,
            cutoff=page_height * DIGITAL_HEADER_FRACTION,
            row_tolerance=self.window.row_tolerance,
        )

        voters = []
        for region in cluster(tokens, self.window):
            fields = extract_fields(region.text)
            # The anchor is the authoritative id for the card
            fields.epic_no = find_epic(region.anchor.text)
            voters.append(fields.to_voter(page.page_number, header))

        self.log_debug(
            f"Digital text page {page.page_number}",
            tokens=len(tokens), voters=len(voters)
        )
        return voters
