from datetime import datetime

import pytest

from posledger.time_utils import parse_iso_datetime, parse_window, to_utc_z


@pytest.mark.parametrize("value,expected", [
    (None, None),
    ("  ", None),
    ("2026-03-01", datetime(2026, 3, 1)),
    ("2026-03-01T10:30:00Z", datetime(2026, 3, 1, 10, 30)),
    ("2026-03-01T12:30:00+02:00", datetime(2026, 3, 1, 10, 30)),
])
def test_parse_iso_datetime(value, expected):
    assert parse_iso_datetime(value) == expected


def test_date_only_end_covers_whole_day():
    start, end = parse_window("2026-03-01", "2026-03-01")

    assert start == datetime(2026, 3, 1)
    assert end == datetime(2026, 3, 1, 23, 59, 59, 999999)


@pytest.mark.parametrize("start,end", [("yesterday", None), ("2026-03-02", "2026-03-01")])
def test_bad_windows(start, end):
    with pytest.raises(ValueError):
        parse_window(start, end)


def test_to_utc_z():
    assert to_utc_z(datetime(2026, 3, 1, 10, 30, 5, 123)) == "2026-03-01T10:30:05Z"
    assert to_utc_z(None) is None
