"""
Image processing utility functions.

Common operations for page images in the extraction pipeline. Images are
passed around as encoded bytes and decoded to OpenCV BGR arrays on demand.
"""

from __future__ import annotations

import base64
from typing import Optional, Sequence, Tuple

import cv2
import numpy as np


def decode_image(data: bytes, flags: int = cv2.IMREAD_COLOR) -> Optional[np.ndarray]:
    """
    Decode encoded image bytes (JPEG, PNG, ...) into a numpy array.

    Returns:
        Decoded image, or None if the bytes are not a readable image
    """
    if not data:
        return None
    buf = np.frombuffer(data, dtype=np.uint8)
    return cv2.imdecode(buf, flags)


def encode_image(image: np.ndarray, ext: str = ".jpg", quality: int = 90) -> bytes:
    """
    Encode a numpy image to bytes.

    Args:
        image: Image array
        ext: Target format extension (".jpg" or ".png")
        quality: JPEG quality (0-100), ignored for PNG
    """
    ext = ext.lower()
    if ext in (".jpg", ".jpeg"):
        params = [cv2.IMWRITE_JPEG_QUALITY, int(quality)]
    elif ext == ".png":
        params = [cv2.IMWRITE_PNG_COMPRESSION, 3]
    else:
        params = []

    success, data = cv2.imencode(ext, image, params)
    if not success:
        raise ValueError(f"Failed to encode image as {ext}")
    return data.tobytes()


def binarize(image: np.ndarray, threshold: int = 128) -> np.ndarray:
    """
    Convert to luminance grayscale and threshold to pure black/white.

    Pixels with luminance >= threshold become 255, all others 0.
    """
    if image.ndim == 3:
        gray = cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)
    else:
        gray = image
    # THRESH_BINARY keeps values strictly greater than thresh
    _, bw = cv2.threshold(gray, threshold - 1, 255, cv2.THRESH_BINARY)
    return bw


def binarize_bytes(data: bytes, threshold: int = 128) -> bytes:
    """
    Binarize an encoded page image and re-encode it losslessly as PNG.

    Raises:
        ValueError: If the bytes cannot be decoded
    """
    image = decode_image(data)
    if image is None:
        raise ValueError("Could not decode page image")
    return encode_image(binarize(image, threshold), ".png")


def crop_box(
    image: np.ndarray,
    x0: float,
    y0: float,
    x1: float,
    y1: float
) -> Optional[np.ndarray]:
    """
    Crop image using pixel coordinates, clamped to the image bounds.

    Returns:
        Cropped image, or None when the clamped box is empty
    """
    h, w = image.shape[:2]

    X0 = max(0, min(w, int(round(x0))))
    X1 = max(0, min(w, int(round(x1))))
    Y0 = max(0, min(h, int(round(y0))))
    Y1 = max(0, min(h, int(round(y1))))

    if X1 <= X0 or Y1 <= Y0:
        return None
    return image[Y0:Y1, X0:X1]


def normalized_box_to_pixels(
    box: Sequence[float],
    width: int,
    height: int,
    padding: int = 0
) -> Tuple[float, float, float, float]:
    """
    Convert a [ymin, xmin, ymax, xmax] box on the 0-1000 scale to pixel
    (x0, y0, x1, y1), grown by padding on every side.
    """
    ymin, xmin, ymax, xmax = box
    x0 = xmin / 1000.0 * width
    y0 = ymin / 1000.0 * height
    x1 = xmax / 1000.0 * width
    y1 = ymax / 1000.0 * height
    return (x0 - padding, y0 - padding, x1 + padding, y1 + padding)


def to_base64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def crop_to_base64_jpeg(
    image: np.ndarray,
    box: Tuple[float, float, float, float],
    quality: int = 80
) -> Optional[str]:
    """
    Crop a pixel box and return it as base64 JPEG.

    Returns:
        Base64 string, or None if the box is empty
    """
    crop = crop_box(image, *box)
    if crop is None or crop.size == 0:
        return None
    return to_base64(encode_image(crop, ".jpg", quality))
