"""
Image-OCR extraction strategy.

Binarizes a rendered page, runs Tesseract for word boxes, and feeds them
through the same header/region/field pipeline as the digital-text
strategy. Optionally crops each card's photo.
"""

from __future__ import annotations

import io
import os
from pathlib import Path
from typing import List, Optional

import pytesseract
from pytesseract import Output
from PIL import Image

from ..exceptions import OCRError, TesseractNotFoundError
from ..models import PageInput, PositionedToken, Voter
from ..utils.image_utils import binarize_bytes, crop_to_base64_jpeg, decode_image
from .base import BaseStrategy, ProcessingContext
from .field_extractor import extract_fields, find_epic
from .header_extractor import extract_header
from .region_clusterer import OCR_WINDOW, Box, RegionWindow, cluster

# Photo sits in the right part of the card, below the EPIC line
PHOTO_WIDTH_FRACTION = 0.35
PHOTO_TOP_OFFSET = 30
PHOTO_BOTTOM_OFFSET = 10
PHOTO_JPEG_QUALITY = 60

_WINDOWS_TESSERACT = r"C:\Program Files\Tesseract-OCR\tesseract.exe"


def configure_tesseract(tesseract_path: str = "") -> None:
    """Point pytesseract at an explicit binary, or the default Windows install."""
    if tesseract_path:
        pytesseract.pytesseract.tesseract_cmd = tesseract_path
    elif os.name == "nt" and Path(_WINDOWS_TESSERACT).exists():
        pytesseract.pytesseract.tesseract_cmd = _WINDOWS_TESSERACT


def ensure_tesseract(tesseract_path: str = "") -> str:
    """
    Configure and probe Tesseract.

    Returns:
        Tesseract version string

    Raises:
        TesseractNotFoundError: If the binary cannot be run
    """
    configure_tesseract(tesseract_path)
    try:
        return str(pytesseract.get_tesseract_version())
    except (pytesseract.TesseractNotFoundError, OSError) as e:
        raise TesseractNotFoundError(tesseract_path or None) from e


def photo_box(card: Box) -> Box:
    """Pixel box of the photo inside a card region."""
    x0, y0, x1, y1 = card
    photo_x0 = x1 - (x1 - x0) * PHOTO_WIDTH_FRACTION
    return (photo_x0, y0 + PHOTO_TOP_OFFSET, x1, y1 - PHOTO_BOTTOM_OFFSET)


def words_from_ocr_data(data: dict, min_confidence: float = 0) -> List[PositionedToken]:
    """Convert pytesseract image_to_data DICT output into tokens."""
    tokens = []
    for i, raw in enumerate(data.get("text", [])):
        txt = (raw or "").strip()
        if not txt:
            continue

        conf = float(data["conf"][i]) if "conf" in data else -1.0
        if conf != -1 and conf < min_confidence:
            continue

        left, top = float(data["left"][i]), float(data["top"][i])
        width, height = float(data["width"][i]), float(data["height"][i])
        tokens.append(PositionedToken(txt, left, top, left + width, top + height, conf))
    return tokens


class ImageOCRStrategy(BaseStrategy):
    """
    Extract voters from a rendered page image using Tesseract.

    Processing Flow:
    1. Binarize (luminance grayscale, fixed threshold, lossless re-encode)
    2. Tesseract word boxes with uniform-block segmentation
    3. Header from words above the header band
    4. Cluster words around each EPIC anchor
    5. Field extraction per region
    6. Optional photo crop from the original image

    A failing page logs and returns [].
    """

    name = "ImageOCRStrategy"

    def __init__(
        self,
        context: ProcessingContext,
        include_photos: Optional[bool] = None,
        window: RegionWindow = OCR_WINDOW,
    ):
        super().__init__(context)
        self.ocr_config = self.config.ocr
        self.include_photos = (
            self.config.coordinator.include_photos if include_photos is None else include_photos
        )
        self.window = window

    def validate(self) -> bool:
        try:
            version = ensure_tesseract(self.ocr_config.tesseract_path)
        except TesseractNotFoundError as e:
            self.log_error("Tesseract not available", error=e)
            return False
        self.log_debug(f"Tesseract version: {version}")
        return True

    def recognize_words(self, image_bytes: bytes, page_number: int = 0) -> List[PositionedToken]:
        """Binarize and OCR one page image into word tokens."""
        try:
            binary_png = binarize_bytes(image_bytes, self.ocr_config.binarize_threshold)
        except ValueError as e:
            raise OCRError(str(e), page_number=page_number)

        pil_img = Image.open(io.BytesIO(binary_png))
        data = pytesseract.image_to_data(
            pil_img,
            lang=self.ocr_config.languages,
            config=self.ocr_config.tesseract_config,
            output_type=Output.DICT
        )

        words = words_from_ocr_data(data, self.ocr_config.min_confidence)
        if self.config.dump_raw_ocr:
            self.log_debug(f"Tesseract raw page {page_number}: {[w.text for w in words]}")
        return words

    def extract(self, page: PageInput) -> List[Voter]:
        try:
            return self._extract(page)
        except Exception as e:
            self.log_error(f"OCR failed on page {page.page_number}", error=e)
            return []

    def _extract(self, page: PageInput) -> List[Voter]:
        if not page.image_bytes:
            raise OCRError("No page image", page_number=page.page_number)

        words = self.recognize_words(page.image_bytes, page.page_number)
        header = extract_header(
            words,
            cutoff=self.ocr_config.header_band_px,
            row_tolerance=self.window.row_tolerance,
        )

        original = decode_image(page.image_bytes) if self.include_photos else None

        voters = []
        for region in cluster(words, self.window):
            epic = find_epic(region.anchor.text)
            if not epic:
                continue

            fields = extract_fields(region.text)
            fields.epic_no = epic

            photo = None
            if original is not None:
                photo = self._crop_photo(original, region.box, page.page_number)

            voters.append(fields.to_voter(page.page_number, header, photo))

        self.log_debug(
            f"OCR page {page.page_number}",
            words=len(words), voters=len(voters)
        )
        return voters

    def _crop_photo(self, image, card: Box, page_number: int) -> Optional[str]:
        try:
            return crop_to_base64_jpeg(image, photo_box(card), PHOTO_JPEG_QUALITY)
        except Exception as e:
            self.log_debug(f"Photo crop failed on page {page_number}: {e}")
            return None
