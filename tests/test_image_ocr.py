import base64

import cv2
import numpy as np
import pytest

from voterroll.models import PageInput
from voterroll.processors import ProcessingContext
from voterroll.processors import image_ocr
from voterroll.processors.image_ocr import ImageOCRStrategy, photo_box, words_from_ocr_data


def page_jpeg(width=1200, height=1000):
    img = np.full((height, width, 3), 200, dtype=np.uint8)
    img[:, : width // 2] = 90  # low-contrast left half
    ok, buf = cv2.imencode(".jpg", img)
    assert ok
    return buf.tobytes()


# (text, left, top, width, height)
WORDS = [
    ("", 0, 0, 1200, 1000),
    ("Assembly", 20, 20, 90, 20),
    ("Constituency:", 120, 20, 120, 20),
    ("Nampally", 250, 20, 90, 20),
    ("12", 260, 300, 25, 25),
    ("ABC12O4567", 500, 300, 150, 25),
    ("Name:", 260, 340, 60, 20),
    ("Ravi", 330, 340, 50, 20),
    ("Age:", 260, 380, 40, 20),
    ("45", 310, 380, 25, 20),
    ("Gender:", 345, 380, 70, 20),
    ("Male", 425, 380, 45, 20),
]


def ocr_dict(words):
    return {
        "text": [w[0] for w in words],
        "conf": [-1 if not w[0] else 91 for w in words],
        "left": [w[1] for w in words],
        "top": [w[2] for w in words],
        "width": [w[3] for w in words],
        "height": [w[4] for w in words],
    }


@pytest.fixture
def fake_tesseract(monkeypatch):
    calls = []

    def image_to_data(image, lang=None, config=None, output_type=None):
        calls.append({"image": image, "lang": lang, "config": config})
        return ocr_dict(WORDS)

    monkeypatch.setattr(image_ocr.pytesseract, "image_to_data", image_to_data)
    return calls


def test_ocr_page_to_voter(fake_tesseract):
    strategy = ImageOCRStrategy(ProcessingContext(), include_photos=False)
    voters = strategy.extract(PageInput(page_number=3, image_bytes=page_jpeg()))

    assert len(voters) == 1
    v = voters[0]
    assert v.epic_no == "ABC1204567"
    assert v.sl_no == "12"
    assert v.name_en == "Ravi"
    assert v.age == "45"
    assert v.gender == "Male"
    assert v.assembly_name == "Nampally"
    assert v.original_page == 3
    assert v.photo_base64 is None


def test_tesseract_gets_binarized_image_and_block_mode(fake_tesseract):
    ImageOCRStrategy(ProcessingContext()).extract(PageInput(page_number=3, image_bytes=page_jpeg()))

    call = fake_tesseract[0]
    assert call["config"] == "--oem 1 --psm 6"
    assert call["lang"] == "eng"
    pixels = np.array(call["image"])
    assert set(np.unique(pixels)) <= {0, 255}
    # 90 falls below the threshold, 200 above it
    assert pixels[500, 100] == 0
    assert pixels[500, 1100] == 255


def test_photo_crop_attached(fake_tesseract):
    strategy = ImageOCRStrategy(ProcessingContext(), include_photos=True)
    voters = strategy.extract(PageInput(page_number=3, image_bytes=page_jpeg()))

    photo = base64.b64decode(voters[0].photo_base64)
    assert photo[:2] == b"\xff\xd8"  # JPEG


def test_photo_box_right_part_of_card():
    assert photo_box((250, 280, 750, 465)) == pytest.approx((575, 310, 750, 455))


def test_ocr_engine_failure_yields_empty_page(monkeypatch):
    def broken(*args, **kwargs):
        raise RuntimeError("tesseract crashed")

    monkeypatch.setattr(image_ocr.pytesseract, "image_to_data", broken)
    strategy = ImageOCRStrategy(ProcessingContext())

    assert strategy.extract(PageInput(page_number=3, image_bytes=page_jpeg())) == []


def test_undecodable_image_yields_empty_page(fake_tesseract):
    strategy = ImageOCRStrategy(ProcessingContext())

    assert strategy.extract(PageInput(page_number=3, image_bytes=b"not an image")) == []
    assert strategy.extract(PageInput(page_number=3)) == []
    assert fake_tesseract == []


def test_words_from_ocr_data_confidence_filter():
    data = ocr_dict([("keep", 0, 0, 10, 10), ("drop", 20, 0, 10, 10)])
    data["conf"] = [80, 10]

    words = words_from_ocr_data(data, min_confidence=50)
    assert [w.text for w in words] == ["keep"]
    assert words[0].bbox == (0, 0, 10, 10)
