import pytest

from voterroll.exceptions import ModelResponseError
from voterroll.utils.ai_parser import parse_ai_response


def test_array_in_prose_and_fence():
    text = 'Sure! Here are the voters:\n```json\n[{"epic_no": "ABC1234567", "name_en": "Ravi"}]\n```\nDone.'
    assert parse_ai_response(text) == [{"epic_no": "ABC1234567", "name_en": "Ravi"}]


def test_voters_wrapper():
    text = '{"voters": [{"name_en": "Ravi"}, {"name_en": "Sita"}]}'
    assert [r["name_en"] for r in parse_ai_response(text)] == ["Ravi", "Sita"]


def test_single_object_becomes_one_record():
    text = '```\n{"epic_no": "ABC1234567", "name_en": "Ravi"}\n```'
    assert parse_ai_response(text) == [{"epic_no": "ABC1234567", "name_en": "Ravi"}]


def test_empty_array_is_a_valid_empty_page():
    assert parse_ai_response("[]") == []


def test_non_object_items_dropped():
    assert parse_ai_response('[{"name_en": "Ravi"}, "noise", 3]') == [{"name_en": "Ravi"}]


@pytest.mark.parametrize("text", ["", "   ", "I could not find any voters.", "[{broken", "{\"voters\": ["])
def test_unparseable_raises(text):
    with pytest.raises(ModelResponseError):
        parse_ai_response(text, model="gemini-2.5-flash")


def test_single_object_with_photo_box_is_not_read_as_array():
    text = '{"epic_no": "ABC1234567", "name_en": "Ravi", "photo_box_2d": [100, 700, 300, 900]}'
    records = parse_ai_response(text)
    assert len(records) == 1
    assert records[0]["photo_box_2d"] == [100, 700, 300, 900]


def test_object_in_prose_with_photo_box():
    text = 'Found one voter: {"name_en": "Ravi", "photo_box_2d": [1, 2, 3, 4]} (end)'
    assert [r["name_en"] for r in parse_ai_response(text)] == ["Ravi"]
