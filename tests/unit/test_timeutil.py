"""Unit tests for time normalization helpers."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from scm_change_tracker.core.timeutil import MIN_TIME, UTC, ParsedTime, ensure_utc, in_window, parse_datetime

JST = timezone(timedelta(hours=9))


class TestEnsureUtc:
    def test_naive_value_is_interpreted_in_assumed_zone(self) -> None:
        assert ensure_utc(datetime(2020, 1, 2, 9, 0), JST) == datetime(2020, 1, 2, 0, 0, tzinfo=UTC)

    def test_aware_value_is_converted(self) -> None:
        value = datetime(2020, 1, 2, 9, 0, tzinfo=JST)
        assert ensure_utc(value) == datetime(2020, 1, 2, 0, 0, tzinfo=UTC)
        assert ensure_utc(value).tzinfo == UTC

    def test_naive_minimum_maps_to_min_time(self) -> None:
        assert ensure_utc(datetime.min, JST) == MIN_TIME


class TestParseDatetime:
    def test_first_matching_format_wins(self) -> None:
        parsed = parse_datetime("2020/01/02 03:04:05", ("%Y-%m-%d", "%Y/%m/%d %H:%M:%S"))
        assert parsed == ParsedTime(datetime(2020, 1, 2, 3, 4, 5, tzinfo=UTC))
        assert not parsed.defaulted

    def test_iso_fallback(self) -> None:
        parsed = parse_datetime("2020-01-02T03:04:05Z", ())
        assert parsed.value == datetime(2020, 1, 2, 3, 4, 5, tzinfo=UTC)

    def test_iso_fallback_can_be_disabled(self) -> None:
        assert parse_datetime("2020-01-02T03:04:05Z", (), allow_iso=False).defaulted

    def test_failure_is_observable(self) -> None:
        parsed = parse_datetime("not a date", ("%Y",))
        assert parsed.defaulted
        assert parsed.value == MIN_TIME

    def test_blank_is_defaulted(self) -> None:
        assert parse_datetime("   ", ("%Y",)).defaulted


class TestInWindow:
    def test_bounds_are_inclusive(self) -> None:
        start = datetime(2020, 1, 1, tzinfo=UTC)
        end = datetime(2020, 1, 2, tzinfo=UTC)
        assert in_window(start, start, end)
        assert in_window(end, start, end)
        assert not in_window(end + timedelta(seconds=1), start, end)

    def test_naive_bounds_are_utc(self) -> None:
        assert in_window(datetime(2020, 1, 1, 12, tzinfo=UTC), datetime(2020, 1, 1), datetime(2020, 1, 2))
