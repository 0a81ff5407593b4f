"""Tests for date parser with relative dates."""

import pytest
from datetime import date, timedelta
from fintrack.utils.date_parser import parse_date


def test_parse_absolute_date():
    """Test parsing absolute dates."""
    result = parse_date("2024-01-15")
    assert result == date(2024, 1, 15)


def test_parse_today():
    """Test parsing 'today'."""
    assert parse_date("today") == date.today()
    assert parse_date("  Today ") == date.today()


def test_parse_yesterday():
    """Test parsing 'yesterday'."""
    result = parse_date("yesterday")
    assert result == date.today() - timedelta(days=1)


def test_parse_tomorrow():
    """Test parsing 'tomorrow'."""
    result = parse_date("tomorrow")
    assert result == date.today() + timedelta(days=1)


def test_parse_month_boundaries():
    """Test parsing start and end of month."""
    today = date.today()
    start = parse_date("start of month")
    end = parse_date("end of month")
    assert start == date(today.year, today.month, 1)
    assert end.month == today.month
    assert (end + timedelta(days=1)).day == 1


def test_parse_end_of_last_month():
    """Test parsing 'end of last month'."""
    result = parse_date("end of last month")
    assert result == date.today().replace(day=1) - timedelta(days=1)


def test_parse_standard_formats():
    """Test parsing various standard date formats."""
    # These should all work via dateutil parser
    assert parse_date("January 15, 2024") == date(2024, 1, 15)
    assert parse_date("15 Jan 2024") == date(2024, 1, 15)
    assert parse_date("15/01/2024") == date(2024, 1, 15)


def test_parse_invalid():
    """Test parsing an invalid date string."""
    with pytest.raises(ValueError, match="Could not parse date"):
        parse_date("not a date at all")
