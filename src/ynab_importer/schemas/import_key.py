"""
Import key generation (CRITICAL).

This module defines THE deterministic import_id function.
This is the ONLY way to generate YNAB import ids in the system.

Import Key Format:
    {days_since_epoch}{payee_hash}{amount_milliunits}{occurrence}

- days_since_epoch = whole days from 2000-01-01 to the transaction date
- payee_hash = base64(MD5(payee)), 24 characters
- amount_milliunits = signed YNAB amount
- occurrence = 0 for the first transaction with this prefix in the run,
  1 for the second, and so on

The import key must be:
- Stable: the same (date, payee, amount) sequence in the same order always
  produces the same keys, so re-submitting a run is a no-op in YNAB
- Disambiguating: two genuinely distinct but identical purchases on the same
  day get different keys
- At most 35 characters (YNAB field limit). Truncation can cut the
  occurrence counter or amount digits, so two keys that differ only past the
  limit collide. This is an accepted risk; every collision within a run is
  logged as a warning.

Occurrence counters live in an ImportKeyContext owned by the caller. Create
one context per run and pass it to every normalization call of that run.
"""

import base64
import hashlib
import logging
from datetime import date

from .transactions import IMPORT_ID_MAX_LENGTH

logger = logging.getLogger(__name__)

# ============================================================================
# SSOT Constants for Import Key Generation
# ============================================================================

IMPORT_KEY_EPOCH = date(2000, 1, 1)


def days_since_epoch(value: date, epoch: date = IMPORT_KEY_EPOCH) -> int:
    """Whole days between the epoch and a transaction date."""
    return (value - epoch).days


def payee_hash(payee: str) -> str:
    """
    Hash a payee name to a fixed 24-character string.

    MD5 is used for distribution only; nothing here needs to resist an
    attacker.
    """
    digest = hashlib.md5(payee.encode("utf-8")).digest()
    return base64.b64encode(digest).decode("ascii")


def compute_key_prefix(
    transaction_date: date,
    payee: str,
    amount_milliunits: int,
    epoch: date = IMPORT_KEY_EPOCH,
) -> str:
    """
    Compute the occurrence-independent part of an import key.

    Examples:
        >>> compute_key_prefix(date(2024, 1, 10), "Coffee Shop", -12500)
        '8775<24-char payee hash>-12500'
    """
    return f"{days_since_epoch(transaction_date, epoch)}{payee_hash(payee)}{amount_milliunits}"


class ImportKeyContext:
    """
    Run-scoped occurrence counters for import key generation.

    One instance per run. Never persisted: counters restart at zero for
    every new context, which is what makes keys reproducible across runs.
    """

    def __init__(
        self,
        max_length: int = IMPORT_ID_MAX_LENGTH,
        epoch: date = IMPORT_KEY_EPOCH,
    ):
        if max_length < 1 or max_length > IMPORT_ID_MAX_LENGTH:
            raise ValueError(
                f"max_length must be between 1 and {IMPORT_ID_MAX_LENGTH}, got {max_length}"
            )
        self.max_length = max_length
        self.epoch = epoch
        self._counts: dict[str, int] = {}
        self._emitted: set[str] = set()

    def __len__(self) -> int:
        return len(self._counts)

    def occurrences(self, prefix: str) -> int:
        """Number of keys generated so far for a prefix."""
        if prefix not in self._counts:
            return 0
        return self._counts[prefix] + 1

    def next_key(self, transaction_date: date, payee: str, amount_milliunits: int) -> str:
        """
        Generate the next import key for a transaction.

        Args:
            transaction_date: Effective (possibly re-attributed) date
            payee: Full payee name, before any field truncation
            amount_milliunits: Signed YNAB amount

        Returns:
            Import key of at most max_length characters
        """
        prefix = compute_key_prefix(transaction_date, payee, amount_milliunits, self.epoch)

        if prefix in self._counts:
            self._counts[prefix] += 1
        else:
            self._counts[prefix] = 0
        counter = self._counts[prefix]

        key = f"{prefix}{counter}"
        if len(key) > self.max_length:
            truncated = key[: self.max_length]
            if truncated in self._emitted:
                logger.warning(
                    "Import key truncated to %d characters collides with an earlier key "
                    "for %s on %s (%d milliunits, occurrence %d); YNAB will treat it as "
                    "a duplicate",
                    self.max_length,
                    payee,
                    transaction_date.isoformat(),
                    amount_milliunits,
                    counter,
                )
            else:
                logger.debug("Import key %s truncated to %s", key, truncated)
            key = truncated

        self._emitted.add(key)
        return key
