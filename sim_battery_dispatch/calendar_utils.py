from __future__ import annotations

import calendar
from datetime import date, datetime, timedelta
from typing import List

import numpy as np

MONTH_LENGTHS = np.array([31, 28, 31, 30, 31, 30, 31, 31, 30, 31, 30, 31], dtype=int)


def month_lengths(year: int) -> np.ndarray:
    """
    Days per month for a given year, leap-year aware.

    Args:
        year: Calendar year.

    Returns:
        Array of 12 integers.
    """
    lengths = MONTH_LENGTHS.copy()
    if calendar.isleap(year):
        lengths[1] = 29
    return lengths


def days_in_year(year: int) -> int:
    return 366 if calendar.isleap(year) else 365


def hours_in_year(year: int) -> int:
    return days_in_year(year) * 24


def build_daily_calendar(year: int) -> List[date]:
    """Return every calendar date of ``year`` in order."""
    start = date(year, 1, 1)
    return [start + timedelta(days=offset) for offset in range(days_in_year(year))]


def build_hourly_calendar(year: int) -> List[datetime]:
    """
    Build the naive local-time hourly timestamps covering ``year``.

    Timestamps are wall-clock hours without DST transitions, so every day
    contributes exactly 24 steps (8760 or 8784 in total).

    Args:
        year: Calendar year.

    Returns:
        List of hour-starting datetimes.
    """
    start = datetime(year, 1, 1)
    return [start + timedelta(hours=offset) for offset in range(hours_in_year(year))]
