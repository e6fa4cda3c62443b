"""Staleness detection over run history.

An account is stale when its last successful run is older than the
threshold (72 hours by default), or when it never succeeded at all.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..state_store import HistoryStore

logger = logging.getLogger(__name__)

DEFAULT_STALE_AFTER_HOURS = 72


@dataclass
class StaleAccount:
    """An account without a recent successful run."""

    title: str
    last_success: datetime | None
    hours_since_success: int | None

    @property
    def never_succeeded(self) -> bool:
        return self.last_success is None


def describe_time_ago(then: datetime, now: datetime) -> str:
    """Humanized relative time, e.g. "4 days ago"."""
    seconds = (now - then).total_seconds()
    suffix = "ago" if seconds >= 0 else "from now"
    seconds = abs(seconds)

    minutes = round(seconds / 60)
    hours = round(seconds / 3600)
    days = round(seconds / 86400)

    if seconds < 45:
        text = "a few seconds"
    elif seconds < 90:
        text = "a minute"
    elif minutes < 45:
        text = f"{minutes} minutes"
    elif minutes < 90:
        text = "an hour"
    elif hours < 22:
        text = f"{hours} hours"
    elif hours < 36:
        text = "a day"
    elif days < 26:
        text = f"{days} days"
    elif days < 45:
        text = "a month"
    elif days < 320:
        text = f"{round(days / 30.4)} months"
    elif days < 548:
        text = "a year"
    else:
        text = f"{round(days / 365)} years"

    if suffix == "from now":
        return f"in {text}"
    return f"{text} ago"


def find_stale_accounts(
    history: HistoryStore,
    now: datetime | None = None,
    threshold_hours: int = DEFAULT_STALE_AFTER_HOURS,
) -> list[StaleAccount]:
    """Scan history for accounts whose last successful run is too old.

    Elapsed time is counted in whole hours; an account is stale when that
    count exceeds threshold_hours.
    """
    now = now or datetime.now(timezone.utc)
    stale: list[StaleAccount] = []

    for title in history.accounts():
        last = history.last_successful(title)
        if last is None:
            stale.append(StaleAccount(title=title, last_success=None, hours_since_success=None))
            continue

        hours = int((now - last.date).total_seconds() // 3600)
        if hours > threshold_hours:
            stale.append(
                StaleAccount(title=title, last_success=last.date, hours_since_success=hours)
            )

    if stale:
        logger.info("Found %d stale account(s): %s", len(stale), ", ".join(s.title for s in stale))
    return stale


def format_staleness_alerts(stale: list[StaleAccount], now: datetime | None = None) -> list[str]:
    """Human-readable advisory line per stale account."""
    now = now or datetime.now(timezone.utc)
    lines = []
    for account in stale:
        if account.last_success is None:
            lines.append(f'Account "{account.title}" has never run successfully')
        else:
            lines.append(
                f'Account "{account.title}" last ran successfully '
                f"{describe_time_ago(account.last_success, now)}"
            )
    return lines
