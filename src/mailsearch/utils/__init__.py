"""Utility functions for mailsearch."""

from __future__ import annotations

import time
from datetime import datetime

MINUTE = 60
HOUR = 60 * MINUTE
DAY = 24 * HOUR


def relative_date(timestamp: int, now: float | None = None) -> str:
    """Describe ``timestamp`` relative to ``now`` for human display.

    Args:
        timestamp: Seconds since the epoch.
        now: Reference time; defaults to the current time.

    Returns:
        A short string such as ``"5 mins. ago"``, ``"Today 12:30"``,
        ``"Yest. 09:15"``, ``"Mon. 18:02"``, ``"October 12"`` or
        ``"2008-06-30"``.
    """

    if now is None:
        now = time.time()

    if timestamp > now:
        return "the future"

    delta = int(now - timestamp)
    then_dt = datetime.fromtimestamp(timestamp)
    now_dt = datetime.fromtimestamp(now)

    if delta > 180 * DAY:
        return then_dt.strftime("%Y-%m-%d")

    if delta < HOUR:
        return f"{delta // MINUTE} mins. ago"

    if delta <= 7 * DAY:
        then_wday = then_dt.weekday()
        now_wday = now_dt.weekday()
        if then_wday == now_wday and delta < DAY:
            return then_dt.strftime("Today %H:%M")
        if (now_wday + 7 - then_wday) % 7 == 1:
            return then_dt.strftime("Yest. %H:%M")
        if then_wday != now_wday:
            return then_dt.strftime("%a. %H:%M")

    return then_dt.strftime("%B %d")


def sanitize_string(value: str | None) -> str | None:
    """Make a header value safe to print on one line.

    Tabs and newlines become spaces; other characters below 0x20 become ``?``.
    """

    if value is None:
        return None

    chars = []
    for ch in value:
        if ch in "\t\n":
            chars.append(" ")
        elif ord(ch) < 32:
            chars.append("?")
        else:
            chars.append(ch)
    return "".join(chars)
