"""
Date and time utilities for slot handling.

Slots are stored as a calendar date (yyyy-MM-dd) plus wall-clock start and
end times (HH:mm). No time zone is ever attached.
"""

import re
from datetime import date, time
from typing import Optional, Tuple
from .exceptions import ValidationError


DATE_PATTERN = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")
# Seconds are accepted on input but dropped
TIME_PATTERN = re.compile(r"^(\d{1,2}):(\d{2})(?::(\d{2}))?$")

DATE_FORMAT = "%Y-%m-%d"
TIME_FORMAT = "%H:%M"


# Parse yyyy-MM-dd
def parse_date(value: str) -> date:
    """
    Parse a calendar date in yyyy-MM-dd form.

    Args:
        value: Date string, surrounding whitespace allowed

    Returns:
        datetime.date

    Raises:
        ValidationError: If the string is empty, malformed or not a real date
    """
    if not value or not value.strip():
        raise ValidationError("Date is required", field_name="date", value=value)

    value = value.strip()
    match = DATE_PATTERN.match(value)
    if not match:
        raise ValidationError(
            f"Invalid date '{value}': expected yyyy-MM-dd", field_name="date", value=value
        )

    year, month, day = (int(g) for g in match.groups())
    try:
        return date(year, month, day)
    except ValueError as e:
        raise ValidationError(f"Invalid date '{value}': {e}", field_name="date", value=value)


# Parse HH:mm
def parse_time(value: str) -> time:
    """
    Parse a wall-clock time in HH:mm form (H:mm and HH:mm:ss also accepted).

    Raises:
        ValidationError: If the string is empty, malformed or out of range
    """
    if not value or not value.strip():
        raise ValidationError("Time is required", field_name="time", value=value)

    value = value.strip()
    match = TIME_PATTERN.match(value)
    if not match:
        raise ValidationError(
            f"Invalid time '{value}': expected HH:mm", field_name="time", value=value
        )

    hour, minute = int(match.group(1)), int(match.group(2))
    if not (0 <= hour <= 23):
        raise ValidationError(
            f"Invalid time '{value}': hour must be 0-23, got {hour}",
            field_name="time",
            value=value,
        )
    if not (0 <= minute <= 59):
        raise ValidationError(
            f"Invalid time '{value}': minute must be 0-59, got {minute}",
            field_name="time",
            value=value,
        )
    return time(hour, minute)


def format_date(value: date) -> str:
    return value.strftime(DATE_FORMAT)


def format_time(value: time) -> str:
    return value.strftime(TIME_FORMAT)


# Validate a start/end pair
def validate_time_range(start: time, end: time) -> None:
    """
    Ensure a slot's start time is strictly before its end time.

    Raises:
        ValidationError: If start >= end
    """
    if start >= end:
        raise ValidationError(
            f"Start time {format_time(start)} must be before end time {format_time(end)}",
            field_name="start_time",
            value=start,
        )


def parse_time_range(start: str, end: str) -> Tuple[time, time]:
    """Parse and validate a start/end time pair given as strings."""
    start_time = parse_time(start)
    end_time = parse_time(end)
    validate_time_range(start_time, end_time)
    return start_time, end_time


def coerce_date(value) -> Optional[date]:
    """Accept a date, a yyyy-MM-dd string or None."""
    if value is None or isinstance(value, date):
        return value
    return parse_date(value)


def coerce_time(value) -> time:
    """Accept a time or an HH:mm string."""
    if isinstance(value, time):
        return value
    return parse_time(value)
