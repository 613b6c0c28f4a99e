"""
Positioned text tokens.

Common interchange type between the digital-text and OCR strategies and
the region clusterer. Coordinates use a top-left origin with y growing
downward, in page points (digital text) or pixels (OCR).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple


@dataclass(frozen=True)
class PositionedToken:
    """A word with its bounding box."""
    text: str
    x0: float
    y0: float
    x1: float
    y1: float
    confidence: float = -1.0

    @property
    def width(self) -> float:
        return self.x1 - self.x0

    @property
    def height(self) -> float:
        return self.y1 - self.y0

    @property
    def bbox(self) -> Tuple[float, float, float, float]:
        return (self.x0, self.y0, self.x1, self.y1)

    def inside(self, box: Tuple[float, float, float, float]) -> bool:
        """True when this token's box lies fully within box (x0, y0, x1, y1)."""
        bx0, by0, bx1, by1 = box
        return (
            self.x0 >= bx0 and self.x1 <= bx1 and
            self.y0 >= by0 and self.y1 <= by1
        )
