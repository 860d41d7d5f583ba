"""Tests for duration parsing."""

from datetime import timedelta

import pytest

from windowguard.core.duration import parse_duration
from windowguard.exceptions import ConfigurationError, DurationFormatError


class TestParseDuration:
    """Test conversion of durations to milliseconds."""

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("500ms", 500),
            ("10s", 10_000),
            ("1m", 60_000),
            ("2h", 7_200_000),
            ("1d", 86_400_000),
            ("1.5m", 90_000),
            ("0.5s", 500),
            (" 30s ", 30_000),
        ],
    )
    def test_parses_strings(self, raw, expected):
        assert parse_duration(raw) == expected

    def test_fractional_milliseconds_round_up(self):
        assert parse_duration("1.2ms") == 2
        assert parse_duration(1.2) == 2

    def test_integers_pass_through(self):
        assert parse_duration(5000) == 5000

    def test_timedelta(self):
        assert parse_duration(timedelta(minutes=15)) == 900_000

    def test_zero_is_parsed(self):
        """Zero parses; rejecting it is the limiter's job."""
        assert parse_duration("0s") == 0

    @pytest.mark.parametrize("raw", ["", "10", "10x", "-5s", "s", "1 m", "1M", "ten seconds"])
    def test_rejects_malformed_strings(self, raw):
        with pytest.raises(DurationFormatError) as exc_info:
            parse_duration(raw)

        assert "Invalid duration" in str(exc_info.value)
        assert exc_info.value.field == "window"

    @pytest.mark.parametrize("raw", [True, None, [1], {"s": 1}])
    def test_rejects_other_types(self, raw):
        with pytest.raises(DurationFormatError):
            parse_duration(raw)

    def test_error_is_configuration_error(self):
        with pytest.raises(ConfigurationError):
            parse_duration("soon")
