"""Utility functions."""

from app.utils.time import (
    as_utc,
    end_of_day,
    parse_iso_date,
    start_of_day,
    utc_now,
    years_before,
)

__all__ = [
    "utc_now",
    "as_utc",
    "parse_iso_date",
    "years_before",
    "start_of_day",
    "end_of_day",
]
