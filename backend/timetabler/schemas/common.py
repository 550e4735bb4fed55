from __future__ import annotations

import re

DAY_ORDER = (
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
    "Sunday",
)

DAY_VALUES = set(DAY_ORDER)

DAY_SHORT_MAP = {
    "Mon": "Monday",
    "Tue": "Tuesday",
    "Wed": "Wednesday",
    "Thu": "Thursday",
    "Fri": "Friday",
    "Sat": "Saturday",
    "Sun": "Sunday",
}

TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")
ACADEMIC_YEAR_PATTERN = re.compile(r"^(\d{4})-(\d{4})$")


def normalize_day(value: str) -> str:
    cleaned = value.strip()
    return DAY_SHORT_MAP.get(cleaned, cleaned)


def parse_time_to_minutes(value: str) -> int:
    if not TIME_PATTERN.match(value):
        raise ValueError("Time must be in HH:MM 24-hour format")
    hours, minutes = value.split(":")
    return int(hours) * 60 + int(minutes)


def slots_overlap(start_a: int, end_a: int, start_b: int, end_b: int) -> bool:
    return start_a < end_b and start_b < end_a


def parse_academic_year(value: str) -> tuple[int, int]:
    """Split ``YYYY-YYYY`` and check that the end year follows the start year."""
    match = ACADEMIC_YEAR_PATTERN.match(value.strip())
    if match is None:
        raise ValueError("Academic year must be in YYYY-YYYY format (e.g., 2025-2026)")
    start_year, end_year = int(match.group(1)), int(match.group(2))
    if end_year != start_year + 1:
        raise ValueError("Academic year end year must be exactly one year after start year")
    return start_year, end_year


def format_time_12h(value: str) -> str:
    minutes = parse_time_to_minutes(value)
    hours, mins = divmod(minutes, 60)
    suffix = "AM" if hours < 12 else "PM"
    display_hour = hours % 12 or 12
    return f"{display_hour}:{mins:02d} {suffix}"
