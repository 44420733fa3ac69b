import pytest

from taskboard.ids import MAX_ID, format_id, parse_id


def test_max_id_fits_signed_bigint():
    assert MAX_ID == 9223372036854775807


@pytest.mark.parametrize(
    "raw,expected",
    [("1", 1), (" 42 ", 42), (7, 7), (str(MAX_ID), MAX_ID), (MAX_ID, MAX_ID)],
)
def test_parse_valid(raw, expected):
    assert parse_id(raw) == expected


@pytest.mark.parametrize(
    "raw",
    [
        None,
        True,
        "",
        "abc",
        "-1",
        "0",
        0,
        "1.5",
        "١٢",
        "1e3",
        str(MAX_ID + 1),
        MAX_ID + 1,
        "18446744073709551615",
        str(2**64),
    ],
)
def test_parse_invalid(raw):
    assert parse_id(raw) is None


def test_format_id():
    assert format_id(9223372036854775807) == "9223372036854775807"
