"""Import run orchestration.

Sequences one run:

    per-account JSON files → validate → normalize (+ import keys)
    → submit to YNAB → record history → staleness alerts → notification

Accounts are processed one at a time. A data or ledger error aborts that
account's batch, is recorded as a failed run in history and is re-raised at
the end of the run as ImportRunError. History failures are logged and never
abort the run.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Callable

from ..schemas.import_key import ImportKeyContext
from ..schemas.transactions import (
    CanonicalTransaction,
    InvalidRawTransaction,
    RawTransaction,
    TransactionDataError,
)
from ..schemas.ynab_payload import build_ynab_transaction
from ..state_store import HistoryEntry
from ..ynab_client import LedgerError, UnknownAccount
from .normalizer import NormalizerSettings, normalize_account_transactions
from .notifier import build_notification_message
from .staleness import find_stale_accounts, format_staleness_alerts

if TYPE_CHECKING:
    from ..config import AccountConfig, Config
    from ..state_store import HistoryStore
    from ..ynab_client import YNABClient
    from .notifier import Notifier

logger = logging.getLogger(__name__)


@dataclass
class AccountResult:
    """Outcome for one account in a run."""

    account: str
    total_transactions: int = 0
    new_transactions: int = 0
    error: str | None = None
    transactions: list[CanonicalTransaction] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.error is None


@dataclass
class ImportRunResult:
    """Result of a full import run."""

    accounts: list[AccountResult]
    alerts: list[str] = field(default_factory=list)
    message: str | None = None
    dry_run: bool = False

    @property
    def total_transactions(self) -> int:
        return sum(a.total_transactions for a in self.accounts)

    @property
    def new_transactions(self) -> int:
        return sum(a.new_transactions for a in self.accounts)

    @property
    def failures(self) -> list[AccountResult]:
        return [a for a in self.accounts if not a.success]

    @property
    def success(self) -> bool:
        return not self.failures


class ImportRunError(Exception):
    """Raised after a run in which at least one account failed."""

    def __init__(self, result: ImportRunResult):
        self.result = result
        details = "; ".join(f"{a.account}: {a.error}" for a in result.failures)
        super().__init__(f"{len(result.failures)} account(s) failed: {details}")


def load_raw_transactions(path: Path, account_id: str) -> list[RawTransaction]:
    """Read and validate one account's scraped transactions file."""
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except ValueError as e:
        raise InvalidRawTransaction(f"{path.name} is not valid JSON: {e}").with_context(
            account_id
        ) from e
    except OSError as e:
        raise InvalidRawTransaction(f"Failed to read {path.name}: {e}").with_context(
            account_id
        ) from e

    if not isinstance(data, list):
        raise InvalidRawTransaction(
            f"{path.name} must contain a JSON array, got {type(data).__name__}"
        ).with_context(account_id)

    return [RawTransaction.from_dict(item, default_account=account_id) for item in data]


class ImportService:
    """Runs imports for all configured accounts."""

    def __init__(
        self,
        config: Config,
        client: YNABClient,
        history: HistoryStore,
        notifier: Notifier,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """Initialize the import service.

        Args:
            config: Application configuration.
            client: YNAB API client.
            history: Run history store.
            notifier: Notification sink.
            clock: Returns the current (timezone-aware) time.
        """
        self.config = config
        self.client = client
        self.history = history
        self.notifier = notifier
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        self.settings = NormalizerSettings.from_config(config)

    def discover_account_files(self) -> dict[str, Path]:
        """Per-account data files, keyed by account identifier (file stem)."""
        data_dir = Path(self.config.data_dir)
        if not data_dir.is_dir():
            raise FileNotFoundError(f"Data directory not found: {data_dir}")

        files = {path.stem: path for path in sorted(data_dir.glob("*.json"))}

        for account in self.config.accounts:
            if account.id not in files:
                logger.warning("No data file for configured account %s", account.id)

        return files

    def _ledger_account_id(self, account: AccountConfig) -> str:
        if account.ledger_account_id:
            return account.ledger_account_id
        resolved = self.client.resolve_account_ids({account.id: account.ledger_name})
        return resolved[account.id]

    def _import_account(
        self,
        account_id: str,
        path: Path,
        key_context: ImportKeyContext,
        now: datetime,
        dry_run: bool,
    ) -> AccountResult:
        account = self.config.get_account(account_id)
        if account is None:
            raise UnknownAccount(account_id, "account is not configured")

        raw = load_raw_transactions(path, account_id)
        transactions = normalize_account_transactions(
            account_id,
            raw,
            has_billing_cycle=account.has_billing_cycle,
            key_context=key_context,
            settings=self.settings,
            now=now.astimezone(),
        )
        result = AccountResult(
            account=account_id,
            total_transactions=len(transactions),
            transactions=transactions,
        )

        if dry_run:
            logger.info("[dry-run] %s: %d transaction(s) ready", account_id, len(transactions))
            return result

        ledger_account_id = self._ledger_account_id(account)
        submission = self.client.create_transactions(
            transactions, {account_id: ledger_account_id}
        )
        result.new_transactions = submission.new_transactions
        return result

    def preview_payloads(self, result: ImportRunResult) -> list[dict]:
        """YNAB payloads a dry run would have submitted (account ids unresolved)."""
        return [
            build_ynab_transaction(tx, f"<{tx.account_id}>")
            for account in result.accounts
            for tx in account.transactions
        ]

    def run(self, dry_run: bool = False) -> ImportRunResult:
        """Run one import over every per-account data file.

        Raises:
            ImportRunError: If any account failed (after history is written
                and the notification is sent)
            FileNotFoundError: If the data directory does not exist
        """
        now = self.clock()
        key_context = ImportKeyContext(
            max_length=self.config.import_keys.max_length,
            epoch=self.config.import_keys.epoch,
        )
        files = self.discover_account_files()
        if not files:
            logger.warning("No account data files found in %s", self.config.data_dir)

        results: list[AccountResult] = []
        history_entries: list[HistoryEntry] = []

        for account_id, path in files.items():
            logger.info("Processing account %s (%s)", account_id, path.name)
            try:
                result = self._import_account(account_id, path, key_context, now, dry_run)
            except (TransactionDataError, LedgerError) as e:
                logger.error("Import failed for account %s: %s", account_id, e)
                results.append(AccountResult(account=account_id, error=str(e)))
                history_entries.append(HistoryEntry(title=account_id, date=now, success=False))
                continue

            results.append(result)
            history_entries.append(
                HistoryEntry(
                    title=account_id,
                    date=now,
                    success=True,
                    amount=result.total_transactions,
                )
            )

        run_result = ImportRunResult(accounts=results, dry_run=dry_run)

        if dry_run:
            return run_result

        try:
            self.history.record_runs(history_entries)
        except OSError as e:
            logger.error("Failed to write run history: %s", e)

        try:
            stale = find_stale_accounts(
                self.history, now=now, threshold_hours=self.config.history.stale_after_hours
            )
            run_result.alerts = format_staleness_alerts(stale, now=now)
        except (TypeError, ValueError) as e:
            logger.error("Failed to process history: %s", e)

        logger.info(
            "Done. New transactions: %d. Total transactions: %d",
            run_result.new_transactions,
            run_result.total_transactions,
        )

        if run_result.new_transactions > 0:
            run_result.message = build_notification_message(
                run_result.new_transactions, run_result.alerts
            )
            self.notifier.send(run_result.message)

        if run_result.failures:
            raise ImportRunError(run_result)

        return run_result
