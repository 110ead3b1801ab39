"""Unit tests for livetex.utils.timestamp."""

from datetime import datetime, timedelta

import pytest

from livetex.utils.timestamp import format_timestamp, now


@pytest.mark.unit
def test_absolute_format():
    assert format_timestamp("2025-11-13T18:45:40.572549") == "2025-11-13 18:45:40"


@pytest.mark.unit
@pytest.mark.parametrize(
    "delta,expected",
    [
        (timedelta(seconds=30), "s ago"),
        (timedelta(minutes=15), "15m ago"),
        (timedelta(hours=2, minutes=1), "2h ago"),
        (timedelta(days=5, minutes=1), "5d ago"),
    ],
)
def test_relative_format(delta, expected):
    stamp = (datetime.now() - delta).isoformat()

    assert format_timestamp(stamp, relative=True).endswith(expected)


@pytest.mark.unit
def test_unparseable_is_returned_unchanged():
    assert format_timestamp("yesterday-ish") == "yesterday-ish"


@pytest.mark.unit
def test_now_is_filename_safe():
    stamp = now()

    assert len(stamp) == 15
    assert stamp[8] == "_"
