"""
Configuration management (SSOT).

This module defines ALL configuration for the importer.
All config keys are defined here; no other module should invent config keys.

Key invariants:
- Each scraped account maps to exactly one YNAB account
- The YNAB token is never written back to disk by the importer
- Heuristics tuned to one card issuer (billing reference offset,
  installment pattern) are configuration, not constants
"""

import os
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path

import yaml

from .schemas.amounts import DEFAULT_FOREIGN_CURRENCY_MARKERS
from .schemas.import_key import IMPORT_KEY_EPOCH
from .schemas.transactions import IMPORT_ID_MAX_LENGTH

DEFAULT_YNAB_BASE_URL = "https://api.ynab.com/v1"

# Matches "2/3", "2 of 3", "2 out of 3" and the Hebrew "תשלום 2 מתוך 3"
DEFAULT_INSTALLMENT_PATTERN = r"(\d+)\s*(?:/|out of|of|מתוך)\s*(\d+)"


class ConfigValidationError(Exception):
    """Raised when configuration validation fails."""

    pass


@dataclass
class YNABConfig:
    """YNAB API configuration."""

    token: str
    budget_id: str
    base_url: str = DEFAULT_YNAB_BASE_URL
    # Request timeout (seconds)
    timeout_seconds: int = 30
    # Retries are safe because YNAB dedupes by import_id, but off by default
    max_retries: int = 0


@dataclass
class AccountConfig:
    """One scraped account and its YNAB counterpart.

    - id: Local identifier (the scraper's per-account file name)
    - name: YNAB account name, resolved to a UUID at run start
    - ledger_account_id: Explicit YNAB UUID (skips the name lookup)
    - has_billing_cycle: Card-style account whose charges post on a
      statement date distinct from the purchase date
    """

    id: str
    name: str | None = None
    ledger_account_id: str | None = None
    has_billing_cycle: bool = False

    @property
    def ledger_name(self) -> str:
        """Name to look up in YNAB (falls back to the local id)."""
        return self.name or self.id


@dataclass
class BillingConfig:
    """Billing-cycle heuristics.

    The reference date for installment legs is billing date minus
    reference_offset_months plus reference_offset_days. The defaults match
    one issuer's statement cycle.
    """

    reference_offset_months: int = 1
    reference_offset_days: int = 3
    installment_pattern: str = DEFAULT_INSTALLMENT_PATTERN


@dataclass
class ImportKeyConfig:
    """Import key generation settings."""

    max_length: int = IMPORT_ID_MAX_LENGTH
    epoch: date = IMPORT_KEY_EPOCH


@dataclass
class AmountConfig:
    """Amount parsing settings."""

    foreign_currency_markers: tuple[str, ...] = DEFAULT_FOREIGN_CURRENCY_MARKERS


@dataclass
class HistoryConfig:
    """Run history settings."""

    path: Path = field(default_factory=lambda: Path("data/history.json"))
    # Accounts without a successful run for longer than this are reported
    stale_after_hours: int = 72


@dataclass
class NotificationConfig:
    """Pushbullet notification settings.

    Without a token, notifications are only logged.
    """

    pushbullet_token: str | None = None
    title: str = "YNAB import"
    device_iden: str | None = None


@dataclass
class Config:
    """Application configuration (SSOT).

    All configuration is centralized here. No other module should define
    configuration keys or defaults.
    """

    ynab: YNABConfig
    accounts: list[AccountConfig] = field(default_factory=list)
    data_dir: Path = field(default_factory=lambda: Path("data/transactions"))
    billing: BillingConfig = field(default_factory=BillingConfig)
    import_keys: ImportKeyConfig = field(default_factory=ImportKeyConfig)
    amounts: AmountConfig = field(default_factory=AmountConfig)
    history: HistoryConfig = field(default_factory=HistoryConfig)
    notifications: NotificationConfig = field(default_factory=NotificationConfig)

    def get_account(self, account_id: str) -> AccountConfig | None:
        """Find the configured account for a local identifier."""
        for account in self.accounts:
            if account.id == account_id:
                return account
        return None

    def validate(self) -> list[str]:
        """Validate configuration completeness and consistency.

        Returns:
            List of validation errors (empty if valid)
        """
        errors: list[str] = []

        if not self.ynab.token:
            errors.append("ynab.token is required")
        if not self.ynab.budget_id:
            errors.append("ynab.budget_id is required")
        if not self.ynab.base_url:
            errors.append("ynab.base_url is required")
        if self.ynab.max_retries < 0:
            errors.append("ynab.max_retries must be >= 0")

        seen: set[str] = set()
        for account in self.accounts:
            if not account.id:
                errors.append("accounts[].id is required")
            elif account.id in seen:
                errors.append(f"duplicate account id: {account.id}")
            seen.add(account.id)

        if not 1 <= self.import_keys.max_length <= IMPORT_ID_MAX_LENGTH:
            errors.append(f"import_keys.max_length must be between 1 and {IMPORT_ID_MAX_LENGTH}")

        if self.history.stale_after_hours <= 0:
            errors.append("history.stale_after_hours must be positive")

        return errors


def _parse_accounts(raw_accounts: list | dict | None) -> list[AccountConfig]:
    """Accept either a list of account mappings or an id → mapping dict."""
    if not raw_accounts:
        return []

    if isinstance(raw_accounts, dict):
        raw_accounts = [{"id": key, **(value or {})} for key, value in raw_accounts.items()]

    accounts = []
    for item in raw_accounts:
        accounts.append(
            AccountConfig(
                id=str(item.get("id", "")),
                name=item.get("name"),
                ledger_account_id=item.get("ledger_account_id"),
                has_billing_cycle=bool(item.get("has_billing_cycle", False)),
            )
        )
    return accounts


def _parse_date(value: date | str) -> date:
    # PyYAML already decodes unquoted ISO dates
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value))


def load_config(config_path: Path) -> Config:
    """
    Load configuration from YAML file.

    Environment variables can override config values:
    - YNAB_TOKEN
    - YNAB_BUDGET_ID
    - YNAB_BASE_URL
    - PUSHBULLET_TOKEN
    - YNAB_IMPORTER_DATA_DIR
    - YNAB_IMPORTER_HISTORY_FILE
    """
    if config_path.exists():
        with open(config_path) as f:
            data = yaml.safe_load(f) or {}
    else:
        data = {}

    # YNAB config
    ynab_data = data.get("ynab", {})
    ynab = YNABConfig(
        token=os.environ.get("YNAB_TOKEN", ynab_data.get("token", "")),
        budget_id=os.environ.get("YNAB_BUDGET_ID", ynab_data.get("budget_id", "")),
        base_url=os.environ.get("YNAB_BASE_URL", ynab_data.get("base_url", DEFAULT_YNAB_BASE_URL)),
        timeout_seconds=int(ynab_data.get("timeout_seconds", 30)),
        max_retries=int(ynab_data.get("max_retries", 0)),
    )

    # Billing heuristics
    billing_data = data.get("billing", {})
    billing = BillingConfig(
        reference_offset_months=int(billing_data.get("reference_offset_months", 1)),
        reference_offset_days=int(billing_data.get("reference_offset_days", 3)),
        installment_pattern=billing_data.get("installment_pattern", DEFAULT_INSTALLMENT_PATTERN),
    )

    # Import keys
    keys_data = data.get("import_keys", {})
    import_keys = ImportKeyConfig(
        max_length=int(keys_data.get("max_length", IMPORT_ID_MAX_LENGTH)),
        epoch=_parse_date(keys_data.get("epoch", IMPORT_KEY_EPOCH)),
    )

    # Amounts
    amount_data = data.get("amounts", {})
    amounts = AmountConfig(
        foreign_currency_markers=tuple(
            amount_data.get("foreign_currency_markers", DEFAULT_FOREIGN_CURRENCY_MARKERS)
        ),
    )

    # History
    history_data = data.get("history", {})
    history = HistoryConfig(
        path=Path(
            os.environ.get(
                "YNAB_IMPORTER_HISTORY_FILE", history_data.get("path", "data/history.json")
            )
        ),
        stale_after_hours=int(history_data.get("stale_after_hours", 72)),
    )

    # Notifications
    notify_data = data.get("notifications", {})
    notifications = NotificationConfig(
        pushbullet_token=os.environ.get("PUSHBULLET_TOKEN", notify_data.get("pushbullet_token")),
        title=notify_data.get("title", "YNAB import"),
        device_iden=notify_data.get("device_iden"),
    )

    data_dir = os.environ.get("YNAB_IMPORTER_DATA_DIR", data.get("data_dir", "data/transactions"))

    return Config(
        ynab=ynab,
        accounts=_parse_accounts(data.get("accounts")),
        data_dir=Path(data_dir),
        billing=billing,
        import_keys=import_keys,
        amounts=amounts,
        history=history,
        notifications=notifications,
    )


def create_default_config(config_path: Path) -> None:
    """Create a default configuration file."""
    default_config = """# Scraper → YNAB Importer Configuration
#
# Each scraped account is one JSON file under data_dir, named after the
# account id below (e.g. data/transactions/bank.json).

ynab:
  token: "YOUR_YNAB_PERSONAL_ACCESS_TOKEN"
  budget_id: "YOUR_BUDGET_ID"
  base_url: "https://api.ynab.com/v1"
  timeout_seconds: 30
  max_retries: 0                           # Safe to raise: YNAB dedupes by import_id

accounts:
  - id: "bank"                             # File name under data_dir (without .json)
    name: "Checking"                       # YNAB account name
    has_billing_cycle: false
  - id: "visa"
    name: "Visa Card"
    has_billing_cycle: true                # Charges post on a monthly statement

data_dir: "data/transactions"

# Installment legs are re-dated to: billing date - months + days
billing:
  reference_offset_months: 1
  reference_offset_days: 3
  installment_pattern: '(\\d+)\\s*(?:/|out of|of|מתוך)\\s*(\\d+)'

import_keys:
  max_length: 35                           # YNAB import_id limit
  epoch: 2000-01-01

amounts:
  foreign_currency_markers: ["$", "€", "£", "USD", "EUR", "GBP"]

history:
  path: "data/history.json"
  stale_after_hours: 72                    # Report accounts silent for longer

notifications:
  pushbullet_token: null                   # Notifications are only logged without a token
  title: "YNAB import"
"""

    config_path.parent.mkdir(parents=True, exist_ok=True)
    with open(config_path, "w", encoding="utf-8") as f:
        f.write(default_config)
