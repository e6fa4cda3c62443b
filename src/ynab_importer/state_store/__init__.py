"""
State store for run history.

Persists one entry per account per run so silently failing scrapers can be
detected across runs.
"""

from .history_store import HistoryEntry, HistoryStore

__all__ = [
    "HistoryStore",
    "HistoryEntry",
]
