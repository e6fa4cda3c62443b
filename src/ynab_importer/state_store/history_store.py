"""
JSON-file run history.

One entry per account per run:
    {"title": "bank", "date": "2024-01-10T08:00:00Z", "success": true, "amount": 3}

The file is append-only from the importer's point of view. Entries are never
updated or removed here (log rotation is external). Order on disk does not
matter; queries sort by date.

A missing or corrupt file is not fatal: it is treated as empty history so a
first run, or a broken file, never blocks an import.
"""

import json
import logging
import os
import tempfile
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _as_aware(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.astimezone()
    return value


def _format_timestamp(value: datetime) -> str:
    return value.isoformat().replace("+00:00", "Z")


def _parse_timestamp(value: str) -> datetime:
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    # Naive timestamps are taken as local time
    if parsed.tzinfo is None:
        parsed = parsed.astimezone()
    return parsed


@dataclass(frozen=True)
class HistoryEntry:
    """Outcome of one account in one run."""

    title: str
    date: datetime
    success: bool
    amount: int | None = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "title": self.title,
            "date": _format_timestamp(self.date),
            "success": self.success,
        }
        if self.amount is not None:
            result["amount"] = self.amount
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "HistoryEntry":
        """Create from a decoded JSON object.

        Entries without a `success` key predate failure tracking; those were
        only written for accounts that produced data, so they count as
        successful.

        Raises:
            ValueError: If title or date is missing, or any field is malformed
        """
        title = data.get("title")
        if not isinstance(title, str) or not title:
            raise ValueError(f"history entry has no title: {data!r}")
        raw_date = data.get("date")
        if not isinstance(raw_date, str):
            raise ValueError(f"history entry has no date: {data!r}")

        success = data.get("success", True)
        if not isinstance(success, bool):
            raise ValueError(f"history entry has a non-boolean success: {data!r}")

        amount = data.get("amount")
        return cls(
            title=title,
            date=_parse_timestamp(raw_date),
            success=success,
            amount=int(amount) if isinstance(amount, (int, float)) else None,
        )


class HistoryStore:
    """
    Append-only run history persisted as a JSON array.

    Entries are loaded lazily on first access and written back in full on
    every append (read-modify-append-write).
    """

    def __init__(self, path: Path):
        self.path = Path(path)
        self._entries: list[HistoryEntry] | None = None

    def _read(self) -> list[HistoryEntry]:
        try:
            with open(self.path, encoding="utf-8") as f:
                raw = json.load(f)
        except FileNotFoundError:
            logger.warning("History file %s does not exist, starting with empty history", self.path)
            return []
        except (OSError, ValueError) as e:
            logger.warning("Failed to read history from %s, treating as empty: %s", self.path, e)
            return []

        if raw is None:
            return []
        if not isinstance(raw, list):
            logger.warning(
                "History file %s does not contain a list, treating as empty", self.path
            )
            return []

        entries = []
        for item in raw:
            try:
                if not isinstance(item, dict):
                    raise ValueError(f"history entry is not an object: {item!r}")
                entries.append(HistoryEntry.from_dict(item))
            except ValueError as e:
                logger.warning("Skipping malformed history entry: %s", e)
        return entries

    @property
    def entries(self) -> list[HistoryEntry]:
        """All entries in file order."""
        if self._entries is None:
            self._entries = self._read()
        return list(self._entries)

    def _write(self, entries: list[HistoryEntry]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = [entry.to_dict() for entry in entries]

        fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=".history-", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(payload, f, indent=2, ensure_ascii=False)
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def record_runs(self, entries: list[HistoryEntry]) -> None:
        """Append several entries with a single write."""
        if not entries:
            return
        current = self.entries
        current.extend(entries)
        # Queries in this process see the run even if persisting it fails
        self._entries = current
        self._write(current)
        logger.debug("Recorded %d history entries in %s", len(entries), self.path)

    def record_run(
        self,
        account: str,
        success: bool,
        timestamp: datetime | None = None,
        amount: int | None = None,
    ) -> HistoryEntry:
        """Append one entry for an account. Never overwrites."""
        entry = HistoryEntry(
            title=account,
            date=_as_aware(timestamp) if timestamp else _utc_now(),
            success=success,
            amount=amount,
        )
        self.record_runs([entry])
        return entry

    def accounts(self) -> list[str]:
        """Account titles present in history, in first-seen order."""
        seen: dict[str, None] = {}
        for entry in self.entries:
            seen.setdefault(entry.title, None)
        return list(seen)

    def entries_for(self, account: str) -> list[HistoryEntry]:
        """Entries of one account, most recent first."""
        return sorted(
            (entry for entry in self.entries if entry.title == account),
            key=lambda entry: entry.date,
            reverse=True,
        )

    def last_successful(self, account: str) -> HistoryEntry | None:
        """Most recent successful entry for an account, or None."""
        for entry in self.entries_for(account):
            if entry.success:
                return entry
        return None
