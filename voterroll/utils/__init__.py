"""
Utility functions for the electoral roll digitizer.
"""

from .image_utils import (
    decode_image,
    encode_image,
    binarize,
    binarize_bytes,
    crop_box,
    normalized_box_to_pixels,
    crop_to_base64_jpeg,
)

from .timing import Timer, format_duration

from .ai_parser import parse_ai_response

from .tabular import export_voters, import_voters, HEADERS

__all__ = [
    # Image utilities
    "decode_image",
    "encode_image",
    "binarize",
    "binarize_bytes",
    "crop_box",
    "normalized_box_to_pixels",
    "crop_to_base64_jpeg",

    # Timing utilities
    "Timer",
    "format_duration",

    # Model response parsing
    "parse_ai_response",

    # Tabular format
    "export_voters",
    "import_voters",
    "HEADERS",
]
