# tests/test_timestamps.py
from datetime import datetime, timedelta, timezone

import pytest

from app.domain.timestamps import normalize_timestamp

EXPECTED = datetime(2023, 11, 14, 22, 13, 20, tzinfo=timezone.utc)


@pytest.mark.parametrize(
    "value",
    [
        EXPECTED,
        EXPECTED.replace(tzinfo=None),
        EXPECTED.astimezone(timezone(timedelta(hours=-3))),
        1700000000,
        1700000000.0,
        1700000000000,
        "1700000000",
        "2023-11-14T22:13:20Z",
        "2023-11-14T19:13:20-03:00",
        {"_seconds": 1700000000, "_nanoseconds": 0},
        {"seconds": 1700000000},
    ],
)
def test_every_shape_becomes_aware_utc(value):
    result = normalize_timestamp(value)
    assert result == EXPECTED
    assert result.utcoffset() == timedelta(0)


def test_none_passes_through():
    assert normalize_timestamp(None) is None


@pytest.mark.parametrize("value", [True, "", "ayer", {"nanos": 1}, [1700000000]])
def test_unrecognized_values_raise(value):
    with pytest.raises(ValueError):
        normalize_timestamp(value)
