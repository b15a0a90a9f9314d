"""
Utility functions for MeetSplit
"""
from __future__ import annotations
import os
from datetime import date, datetime


def today_str() -> str:
    """Get today's date as ISO string"""
    return date.today().isoformat()


def parse_date(s: str) -> date:
    """Parse YYYY-MM-DD date string"""
    return datetime.strptime(s.strip(), "%Y-%m-%d").date()


def safe_float(x: str, default: float = 0.0) -> float:
    """Convert string to float, returning default when it is blank or malformed"""
    try:
        return float(x)
    except (TypeError, ValueError):
        return default


def round_money(x: float) -> float:
    """Round to whole cents"""
    return round(float(x), 2)


def app_dir() -> str:
    """
    Get application data directory: $MEETSPLIT_HOME or ~/.meetsplit.
    Creates directory if it doesn't exist.
    """
    path = os.environ.get("MEETSPLIT_HOME") or os.path.join(os.path.expanduser("~"), ".meetsplit")
    os.makedirs(path, exist_ok=True)
    return path
