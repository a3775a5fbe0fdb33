"""
Utility functions for Hospital Readmission Analytics.
"""
import logging
from datetime import datetime, date
from typing import Optional, Union
import pandas as pd
from dateutil import parser as date_parser


# Configure logging
logger = logging.getLogger(__name__)


def setup_logging(level: int = logging.INFO) -> None:
    """
    Configure logging for the pipeline.

    Args:
        level: Logging level (default: INFO)
    """
    logging.basicConfig(
        level=level,
        format='%(asctime)s [%(levelname)s] %(message)s',
        handlers=[logging.StreamHandler()]
    )


def to_pydate(x: Union[datetime, date, pd.Timestamp, None]) -> Optional[date]:
    """
    Convert various date types to Python date object.

    Args:
        x: Date value (datetime, date, pandas Timestamp, or None/NaT)

    Returns:
        Python date object, or None for missing values

    Raises:
        TypeError: If input type is not supported
    """
    if x is None or x is pd.NaT:
        return None
    if hasattr(x, "to_pydatetime"):
        return x.to_pydatetime().date()
    if isinstance(x, datetime):
        return x.date()
    if isinstance(x, date):
        return x
    raise TypeError(f"Unsupported date type: {type(x)}")


def parse_source_date(
    value,
    date_format: Optional[str] = None,
    dayfirst: bool = True
) -> Optional[date]:
    """
    Parse a source date value into a Python date.

    Text is tried against `date_format` first, then parsed leniently with
    dateutil (day-first by default, matching the admissions export; text
    starting with a 4-digit year is read year-month-day).

    Args:
        value: Raw value (text, date-like, or missing)
        date_format: strptime format to try first
        dayfirst: Whether ambiguous text dates are day-month-year

    Returns:
        Python date, or None if the value is missing or unparseable
    """
    if value is None or (not isinstance(value, str) and pd.isna(value)):
        return None
    if not isinstance(value, str):
        return to_pydate(value)

    text = value.strip()
    if not text:
        return None

    if date_format:
        try:
            return datetime.strptime(text, date_format).date()
        except ValueError:
            pass

    # Text leading with a 4-digit year (ISO and friends) is year-month-day
    year_first = len(text) > 4 and text[:4].isdigit() and not text[4].isdigit()

    try:
        return date_parser.parse(
            text,
            dayfirst=dayfirst and not year_first,
            yearfirst=year_first
        ).date()
    except (ValueError, OverflowError):
        logger.debug(f"Unparseable date value: {value!r}")
        return None


def days_between(start: Optional[date], end: Optional[date]) -> Optional[int]:
    """
    Calendar days from start to end (negative if end is before start).

    Returns None if either date is missing.
    """
    if start is None or end is None:
        return None
    return (end - start).days


def safe_division(numerator: float, denominator: float, default: float = 0.0) -> float:
    """
    Safely perform division, returning default value if denominator is zero.

    Args:
        numerator: Numerator value
        denominator: Denominator value
        default: Default value to return if division is invalid

    Returns:
        Result of division or default value
    """
    if denominator is None or denominator == 0:
        return default
    return numerator / denominator


class Timer:
    """Context manager for timing code execution."""

    def __init__(self, name: str = "Operation", log_level: int = logging.INFO):
        """
        Initialize timer.

        Args:
            name: Name of the operation being timed
            log_level: Logging level for output
        """
        self.name = name
        self.log_level = log_level
        self.start_time = None
        self.end_time = None

    def __enter__(self):
        """Start timer."""
        self.start_time = datetime.now()
        logger.log(self.log_level, f"{self.name} started")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """End timer and log duration."""
        self.end_time = datetime.now()
        duration = (self.end_time - self.start_time).total_seconds()
        logger.log(self.log_level, f"{self.name} completed in {duration:.2f} seconds")

    @property
    def elapsed(self) -> float:
        """Get elapsed time in seconds."""
        if self.start_time is None:
            return 0.0
        end = self.end_time or datetime.now()
        return (end - self.start_time).total_seconds()
