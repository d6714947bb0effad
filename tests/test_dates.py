import datetime

import pytest

from fastfeedreader.dates import parse_date, parse_date_or_none
from fastfeedreader.errors import DateParseError

UTC = datetime.timezone.utc


@pytest.mark.parametrize("value", ["", "   ", "\t\n"])
def test_empty_values_fail(value):
    with pytest.raises(DateParseError) as excinfo:
        parse_date(value)
    assert str(excinfo.value) == "date parser: empty value"


def test_unix_epoch():
    assert parse_date("1520932969") == datetime.datetime(2018, 3, 13, 9, 22, 49, tzinfo=UTC)


def test_unparsable_value():
    with pytest.raises(DateParseError) as excinfo:
        parse_date("not a date at all")
    assert str(excinfo.value) == 'date parser: failed to parse date "not a date at all"'
    assert isinstance(excinfo.value, ValueError)


@pytest.mark.parametrize("value", ["Tuesday", "December", "Mon, Dec", "noon"])
def test_values_without_digits_fail(value):
    with pytest.raises(DateParseError):
        parse_date(value)
    assert parse_date_or_none(value) is None


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("2003-12-13T18:30:02Z", datetime.datetime(2003, 12, 13, 18, 30, 2, tzinfo=UTC)),
        ("2003-12-13T18:30:02+01:00", datetime.datetime(2003, 12, 13, 17, 30, 2, tzinfo=UTC)),
        ("2003-12-13 18:30:02 +0100", datetime.datetime(2003, 12, 13, 17, 30, 2, tzinfo=UTC)),
        ("Sat, 13 Dec 2003 18:30:02 GMT", datetime.datetime(2003, 12, 13, 18, 30, 2, tzinfo=UTC)),
        ("Tue, 10 Jun 2003 04:00:00 -0700", datetime.datetime(2003, 6, 10, 11, 0, 0, tzinfo=UTC)),
        ("Tue, 10 Jun 2003 04:00:00 PDT", datetime.datetime(2003, 6, 10, 11, 0, 0, tzinfo=UTC)),
        (
            "Tue, 10 Jun 2003 04:00:00 GMT (Coordinated Universal Time)",
            datetime.datetime(2003, 6, 10, 4, 0, 0, tzinfo=UTC),
        ),
    ],
)
def test_common_formats(value, expected):
    assert parse_date(value) == expected


def test_naive_values_are_utc():
    parsed = parse_date("2019-06-03 10:00:00")
    assert parsed == datetime.datetime(2019, 6, 3, 10, 0, tzinfo=UTC)


def test_named_local_zone_follows_daylight_saving_time():
    summer = parse_date("Wed, 02 Oct 2002 08:00:00 EST")
    winter = parse_date("Mon, 02 Dec 2002 08:00:00 EST")
    assert summer.utcoffset() == datetime.timedelta(hours=-4)
    assert winter.utcoffset() == datetime.timedelta(hours=-5)


def test_trailing_iana_zone_name():
    parsed = parse_date("2019-01-02 15:04:05 Europe/Paris")
    assert parsed.utcoffset() == datetime.timedelta(hours=1)
    assert parsed.astimezone(UTC) == datetime.datetime(2019, 1, 2, 14, 4, 5, tzinfo=UTC)


def test_out_of_range_offset_is_coerced_to_utc():
    parsed = parse_date("2020-01-01T10:00:00+15:00")
    assert parsed.utcoffset() == datetime.timedelta(0)
    assert parsed == datetime.datetime(2020, 1, 1, 10, 0, tzinfo=UTC)


def test_french_names():
    assert parse_date("lundi 3 juin 2019 10:00") == datetime.datetime(
        2019, 6, 3, 10, 0, tzinfo=UTC
    )


def test_german_abbreviations():
    assert parse_date("Mo, 15 Okt 2018 10:00:00 +0200") == datetime.datetime(
        2018, 10, 15, 8, 0, tzinfo=UTC
    )


def test_ordinal_day():
    assert parse_date("June 3rd, 2019") == datetime.datetime(2019, 6, 3, tzinfo=UTC)


def test_trailing_garbage_is_ignored():
    assert parse_date("Sat, 13 Dec 2003 18:30:02 GMT garbage") == datetime.datetime(
        2003, 12, 13, 18, 30, 2, tzinfo=UTC
    )


def test_impossible_leap_day():
    assert parse_date("2023-02-29T10:00:00Z") == datetime.datetime(
        2023, 2, 28, 10, 0, tzinfo=UTC
    )


def test_parse_date_or_none():
    assert parse_date_or_none(None) is None
    assert parse_date_or_none("") is None
    assert parse_date_or_none("garbage") is None
    assert parse_date_or_none("2003-12-13T18:30:02Z") == datetime.datetime(
        2003, 12, 13, 18, 30, 2, tzinfo=UTC
    )
