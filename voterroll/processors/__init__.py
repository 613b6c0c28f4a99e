"""
Extraction strategies and their building blocks.

- RegionClusterer (region_clusterer): anchor-based grouping of tokens into cards
- Field extractor (field_extractor): regex rules over one flattened card line
- Header extractor (header_extractor): constituency / polling station band
- DigitalTextStrategy: voters from a PDF text layer
- ImageOCRStrategy: voters from a rendered page via Tesseract
- RemoteVisionStrategy: voters from a vision model with retry rotation
- StrategyCoordinator: remote conversion first, batched local fallback
- PdfPageSource: page rendering and word streams via PyMuPDF
- RemoteConverter: whole-document conversion endpoint client
"""

from .base import BaseStrategy, ProcessingContext
from .region_clusterer import (
    DIGITAL_WINDOW,
    OCR_WINDOW,
    Region,
    RegionWindow,
    cluster,
    find_anchors,
    flatten,
    sort_reading_order,
)
from .field_extractor import VoterFields, extract_fields, find_epic, normalize_epic
from .header_extractor import HeaderInfo, extract_header, parse_header
from .digital_text import DigitalTextStrategy, tokens_from_text_items, tokens_from_words
from .image_ocr import ImageOCRStrategy
from .vision_model import RemoteVisionStrategy, backoff_delay, select_model
from .pdf_extractor import PageSource, PdfPageSource
from .remote_converter import RemoteConverter
from .coordinator import ExtractionResult, StrategyCoordinator, create_strategy, make_batches

__all__ = [
    "BaseStrategy",
    "ProcessingContext",
    "DIGITAL_WINDOW",
    "OCR_WINDOW",
    "Region",
    "RegionWindow",
    "cluster",
    "find_anchors",
    "flatten",
    "sort_reading_order",
    "VoterFields",
    "extract_fields",
    "find_epic",
    "normalize_epic",
    "HeaderInfo",
    "extract_header",
    "parse_header",
    "DigitalTextStrategy",
    "tokens_from_text_items",
    "tokens_from_words",
    "ImageOCRStrategy",
    "RemoteVisionStrategy",
    "backoff_delay",
    "select_model",
    "PageSource",
    "PdfPageSource",
    "RemoteConverter",
    "ExtractionResult",
    "StrategyCoordinator",
    "create_strategy",
    "make_batches",
]
