"""Tests for human-readable schedule descriptions."""

import pytest

from cronledger.schedule.description import describe, describe_schedule, ordinal
from cronledger.schedule.expression import CronExpression


class TestDescribe:
    """Tests for describe()."""

    @pytest.mark.parametrize("text,expected", [
        ("* * * * *", "Every minute"),
        ("*/5 * * * *", "Every 5 minutes"),
        ("0 8 * * 1", "At 08:00 on Monday"),
        ("0 * * * *", "At minute 0 past every hour"),
        ("30 9 * 1,4,7,10 1-5", "At 09:30 on weekdays in January, April, July, October"),
        ("0 0 1 * *", "At 00:00 on the 1st"),
        ("0 0 13 * 5", "At 00:00 on the 13th and Friday"),
        ("0 0,12 * * *", "At 00:00, 12:00"),
        ("0 0 * * 0,6", "At 00:00 on weekends"),
        ("0 9-17 * * *", "At minute 0 past every hour from 09:00 through 17:00"),
        ("*/15 */2 * * *", "Every 15 minutes of every 2 hours"),
        ("0 0 1 1 * 2030", "At 00:00 on the 1st in January in 2030"),
    ])
    def test_describe(self, text: str, expected: str) -> None:
        """Test descriptions of common schedules."""
        assert describe(CronExpression.parse(text)) == expected

    def test_description_property(self) -> None:
        """Test the shortcut on the expression."""
        assert CronExpression.parse("weekly").description == "At 00:00 on Sunday"

    def test_named_input(self) -> None:
        """Test that names and numbers describe alike."""
        assert describe_schedule("0 8 * * mon") == describe_schedule("0 8 * * 1")


class TestDescribeSchedule:
    """Tests for describe_schedule()."""

    def test_alias(self) -> None:
        """Test describing an alias."""
        assert describe_schedule("every_5_minutes") == "Every 5 minutes"

    def test_invalid_returns_message(self) -> None:
        """Test that invalid input returns the error message."""
        message = describe_schedule("0 25 * * *")
        assert message.startswith("Invalid value for field 'hours'")

    def test_wrong_field_count_returns_message(self) -> None:
        """Test that a field count error returns the message."""
        assert "5 or 6 parts" in describe_schedule("* *")


class TestOrdinal:
    """Tests for ordinal()."""

    @pytest.mark.parametrize("number,expected", [
        (1, "1st"), (2, "2nd"), (3, "3rd"), (4, "4th"),
        (11, "11th"), (12, "12th"), (13, "13th"),
        (21, "21st"), (22, "22nd"), (31, "31st"), (111, "111th"),
    ])
    def test_ordinal(self, number: int, expected: str) -> None:
        """Test English ordinal suffixes."""
        assert ordinal(number) == expected
