"""Shared utility functions for timestamps and notification text."""
import time
import unicodedata
from datetime import datetime
from typing import Optional

DAY_FORMAT = "%A, %B %d, %Y"


def corrected_timestamp(origin_server_ts: int, age: int = 0) -> float:
    """Return the event time in seconds, corrected by the server-reported age.

    The result is a float so events sharing a wall-clock second keep their order.
    """
    return (origin_server_ts - age) / 1000.0


def format_time(seconds: float, fmt: str = "%H:%M") -> str:
    return time.strftime(fmt, time.localtime(seconds))


def format_date(seconds: float) -> str:
    return format_time(seconds, DAY_FORMAT)


def is_new_day(previous: Optional[float], current: float) -> bool:
    """Return True if ``current`` falls on another local calendar day than ``previous``."""
    if previous is None:
        return True
    return datetime.fromtimestamp(previous).date() != datetime.fromtimestamp(current).date()


def sanitize_notification_text(text: str) -> str:
    """Normalize text for notification backends that reject raw multi-byte input."""
    normalized = unicodedata.normalize("NFC", text or "")
    cleaned = "".join(ch for ch in normalized if ch == "\n" or unicodedata.category(ch) != "Cc")
    return cleaned.encode("ascii", "xmlcharrefreplace").decode("ascii")
