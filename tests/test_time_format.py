from __future__ import annotations

import pytest

from worklog_timer.time_format import format_detailed, format_display, format_tracker, parse_tracker


@pytest.mark.parametrize(
    "total_ms, expected",
    [
        (0, "0s"),
        (45_999, "45s"),
        (60_000, "1 min"),
        (3_600_000, "1 hr"),
        (7_500_000, "2 hrs 5 min"),
        (33_180_000, "9 hrs 13 min"),
        (-5_000, "0s"),
    ],
)
def test_format_display(total_ms: int, expected: str) -> None:
    assert format_display(total_ms) == expected


@pytest.mark.parametrize(
    "total_ms, expected",
    [
        (30_000, "30s"),
        (2_700_000, "45m"),
        (7_200_000, "2h"),
        (9_000_000, "2h 30m"),
    ],
)
def test_format_tracker(total_ms: int, expected: str) -> None:
    assert format_tracker(total_ms) == expected


def test_format_detailed_pads_fields() -> None:
    assert format_detailed(3_723_000) == "01:02:03"
    assert format_detailed(0) == "00:00:00"
    assert format_detailed(100 * 3_600_000) == "100:00:00"


def test_parse_tracker() -> None:
    assert parse_tracker("2h 30m") == 9_000_000
    assert parse_tracker("45m") == 2_700_000
    assert parse_tracker("30s") == 30_000
    assert parse_tracker("") == 0
