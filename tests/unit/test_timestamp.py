"""Tests for fb_group_media.extraction.timestamp."""

import pytest

from fb_group_media.extraction.timestamp import epoch_to_iso, month_to_number, parse_fb_timestamp


class TestParseFbTimestamp:

    def test_pm(self):
        assert parse_fb_timestamp("Monday, June 24, 2013 at 5:20 PM") == "2013-06-24T17:20:00Z"

    def test_am_hour_unpadded(self):
        assert parse_fb_timestamp("Tuesday, January 1, 2020 at 9:05 AM") == "2020-01-01T9:05:00Z"

    def test_day_padded(self):
        assert parse_fb_timestamp("Friday, March 5, 2021 at 10:00 AM") == "2021-03-05T10:00:00Z"

    def test_lowercase_pm(self):
        assert parse_fb_timestamp("Monday, June 24, 2013 at 5:20 pm") == "2013-06-24T17:20:00Z"

    def test_noon_keeps_literal_adjustment(self):
        assert parse_fb_timestamp("Monday, June 24, 2013 at 12:30 PM") == "2013-06-24T24:30:00Z"

    def test_midnight_not_adjusted(self):
        assert parse_fb_timestamp("Monday, June 24, 2013 at 12:30 AM") == "2013-06-24T12:30:00Z"

    @pytest.mark.parametrize("text", [
        "",
        "Yesterday at 5:20 PM",
        "June 24, 2013",
        "Monday, Juno 24, 2013 at 5:20 PM",
    ])
    def test_no_match(self, text):
        assert parse_fb_timestamp(text) is None

    def test_none(self):
        assert parse_fb_timestamp(None) is None


class TestMonthToNumber:

    def test_full_name(self):
        assert month_to_number("December") == "12"

    def test_short_name(self):
        assert month_to_number("Sep") == "09"

    def test_unknown(self):
        assert month_to_number("Smarch") is None


class TestEpochToIso:

    def test_seconds(self):
        assert epoch_to_iso(1372094400) == "2013-06-24T17:20:00Z"

    def test_string(self):
        assert epoch_to_iso("1372094400") == "2013-06-24T17:20:00Z"

    @pytest.mark.parametrize("value", [None, "", "abc", 0])
    def test_invalid(self, value):
        assert epoch_to_iso(value) is None
