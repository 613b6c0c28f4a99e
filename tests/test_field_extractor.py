import pytest

from voterroll.processors.field_extractor import (
    NAME_NOT_FOUND,
    extract_fields,
    find_epic,
    is_epic_candidate,
    normalize_epic,
)


def test_full_card_line():
    line = (
        "12 ABC1234567 Name: Ramesh Kumar Father's Name: Suresh Kumar "
        "House No: 4-5/A Age: 45 Gender: Male Photo Not Available"
    )
    fields = extract_fields(line)

    assert fields.serial_no == "12"
    assert fields.epic_no == "ABC1234567"
    assert fields.name == "Ramesh Kumar"
    assert fields.relative_name == "Suresh Kumar"
    assert fields.house_no == "4-5/A"
    assert fields.age == "45"
    assert fields.gender == "Male"


def test_epic_letter_o_in_digits_becomes_zero():
    assert find_epic("ABC12O4567") == "ABC1204567"
    assert find_epic("xyz OO12345 67") == ""
    assert normalize_epic("abc12o4567") == "ABC1204567"


def test_epic_prefix_letters_are_not_rewritten():
    assert find_epic("OAB1234567") == "OAB1234567"


def test_loose_epic_pattern():
    assert find_epic("TN/123 WXYZ12345") == "WXYZ12345"
    assert is_epic_candidate("AP12345") is False
    assert is_epic_candidate("ABCD123456")


def test_no_name_label_gives_sentinel():
    fields = extract_fields("12 ABC1234567 Age 30 Gender Female")

    assert fields.name == NAME_NOT_FOUND == "Unknown"
    assert fields.relative_name == ""
    assert fields.age == "30"
    assert fields.gender == "Female"


def test_empty_line_never_raises():
    fields = extract_fields("")
    assert fields.name == "Unknown"
    assert fields.epic_no == ""
    assert fields.serial_no == ""


def test_relative_name_label_is_not_taken_as_voter_name():
    fields = extract_fields("Husband's Name: Rangaraj House No: 9 Age: 57 Gender: Female")

    assert fields.name == "Unknown"
    assert fields.relative_name == "Rangaraj"


def test_mother_name_label():
    fields = extract_fields("Name: Kalaivani Mother Name: Lakshmi Age: 41 Sex: F")

    assert fields.name == "Kalaivani"
    assert fields.relative_name == "Lakshmi"
    assert fields.gender == "F"


def test_ocr_misread_age_and_sex_label():
    fields = extract_fields("Name : Ram Aqe: 33 Sex: Male")
    assert fields.age == "33"
    assert fields.gender == "Male"


def test_case_insensitive_labels_and_stray_punctuation():
    fields = extract_fields("NAME:- Priya  father's name . Mohan HOUSE NO. : 12B AGE - 29 GENDER : Female")

    assert fields.name == "Priya"
    assert fields.relative_name == "Mohan"
    assert fields.house_no == "12B"
    assert fields.age == "29"


def test_house_h_no_label():
    fields = extract_fields("Name: Anil H.No: 7-1-22 Age: 50 Gender: Male")
    assert fields.house_no == "7-1-22"


def test_house_bare_no_fallback():
    fields = extract_fields("Name: Anil No: 88 Age: 50 Gender: Male")
    assert fields.house_no == "88"


def test_serial_only_at_line_start():
    assert extract_fields("Name: Ravi 45").serial_no == ""
    assert extract_fields("  7 Name: Ravi").serial_no == "7"


def test_to_voter_carries_header_and_page():
    from voterroll.processors.header_extractor import HeaderInfo

    fields = extract_fields("3 ABC1234567 Name: Ravi")
    voter = fields.to_voter(5, HeaderInfo("Khairatabad", "Secunderabad", "123"))

    assert voter.original_page == 5
    assert voter.assembly_name == "Khairatabad"
    assert voter.parliament_name == "Secunderabad"
    assert voter.polling_station_no == "123"
    assert voter.is_voted is False
    assert voter.voted_party is None
    assert voter.timestamp is None


@pytest.mark.parametrize("label", ["Fathers", "Husbands", "Mothers", "Father's", "Father"])
def test_name_stops_at_relative_label_without_apostrophe(label):
    fields = extract_fields(
        f"1 ABC1234567 Name: Ravi Kumar {label} Name: Suresh House No: 12 Age: 45 Gender: Male"
    )

    assert fields.name == "Ravi Kumar"
    assert fields.relative_name == "Suresh"
    assert fields.house_no == "12"
