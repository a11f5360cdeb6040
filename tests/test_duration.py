"""Tests for duration parsing."""

import pytest

from edgepurge import parse_duration


class TestParseDuration:
    """Tests for parse_duration function."""

    def test_milliseconds(self) -> None:
        """Test parsing milliseconds."""
        assert parse_duration("500ms") == pytest.approx(0.5)
        assert parse_duration("0ms") == 0

    def test_seconds(self) -> None:
        """Test parsing seconds."""
        assert parse_duration("2s") == 2.0
        assert parse_duration("1.5s") == 1.5

    def test_minutes_and_hours(self) -> None:
        assert parse_duration("1m") == 60.0
        assert parse_duration("2h") == 7200.0

    def test_number_passthrough(self) -> None:
        """Test that numbers are taken as seconds."""
        assert parse_duration(2) == 2.0
        assert parse_duration(0.25) == 0.25

    def test_invalid_format(self) -> None:
        """Test that invalid formats raise ValueError."""
        for value in ("invalid", "10x", "s10", "", "10", "1d"):
            with pytest.raises(ValueError, match="Invalid duration"):
                parse_duration(value)

    def test_negative_rejected(self) -> None:
        with pytest.raises(ValueError, match="Invalid duration"):
            parse_duration(-1)
