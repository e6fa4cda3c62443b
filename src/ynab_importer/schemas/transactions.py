"""
Transaction schemas (SSOT).

RawTransaction is the scraper's record, validated ONCE at ingestion.
CanonicalTransaction is the normalized record submitted to YNAB.

Field limits (SSOT):
YNAB rejects payee names over 50 characters, memos over 200 and import ids
over 35. Longer values are truncated, never rejected. All truncation goes
through truncate_field() so the limits are explicit and testable.
"""

import logging
from dataclasses import dataclass
from datetime import date
from typing import Any

logger = logging.getLogger(__name__)

# Limits from https://api.ynab.com/v1#/Transactions
PAYEE_NAME_MAX_LENGTH = 50
MEMO_MAX_LENGTH = 200
IMPORT_ID_MAX_LENGTH = 35


class TransactionDataError(Exception):
    """Base class for defects in scraped transaction data.

    These abort the account's batch: they mean the scraper output changed
    shape and must be looked at, not skipped.
    """

    account: str | None = None
    record: dict | None = None

    def with_context(self, account: str, record: dict | None = None) -> "TransactionDataError":
        """Attach the account and offending record for diagnostics."""
        self.account = account
        if record is not None:
            self.record = record
        return self

    def __str__(self) -> str:
        message = super().__str__()
        if self.account:
            message = f"[{self.account}] {message}"
        if self.record is not None:
            message = f"{message} (record: {self.record})"
        return message


class InvalidRawTransaction(TransactionDataError):
    """Raised when a scraped record is missing fields or has wrong types."""

    pass


def truncate_field(value: str, limit: int, field_name: str) -> str:
    """Truncate a value to a YNAB field limit.

    Args:
        value: Field value
        limit: Maximum allowed length
        field_name: Name used in the debug log

    Returns:
        The value, cut to at most `limit` characters
    """
    if len(value) <= limit:
        return value
    logger.debug("Truncating %s from %d to %d characters", field_name, len(value), limit)
    return value[:limit]


def _optional_int(data: dict, key: str) -> int | None:
    value = data.get(key)
    if value is None:
        return None
    if isinstance(value, bool):
        raise InvalidRawTransaction(f"'{key}' must be an integer, got {value!r}")
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise InvalidRawTransaction(f"'{key}' must be an integer, got {value!r}") from e


@dataclass(frozen=True)
class RawTransaction:
    """A transaction as produced by the scraper.

    Immutable input. The amount keeps its raw form (number or string) and is
    parsed by the normalizer.
    """

    date: str
    payee: str
    amount: Any
    account: str
    memo: str = ""
    billing_date: str | None = None
    installment: int | None = None
    total: int | None = None

    @property
    def has_installment_fields(self) -> bool:
        """True when the scraper reported installment numbering explicitly."""
        return self.installment is not None or self.total is not None

    @classmethod
    def from_dict(cls, data: Any, default_account: str) -> "RawTransaction":
        """Validate a scraped JSON object and build a RawTransaction.

        Args:
            data: Decoded JSON object
            default_account: Account identifier used when the record has none
                (the per-account file name)

        Raises:
            InvalidRawTransaction: On missing keys or wrong value types
        """
        if not isinstance(data, dict):
            raise InvalidRawTransaction(
                f"transaction must be an object, got {type(data).__name__}"
            ).with_context(default_account)

        try:
            for key in ("date", "payee", "amount"):
                if key not in data or data[key] is None:
                    raise InvalidRawTransaction(f"missing required field '{key}'")

            for key in ("date", "payee"):
                if not isinstance(data[key], str):
                    raise InvalidRawTransaction(
                        f"'{key}' must be a string, got {type(data[key]).__name__}"
                    )

            memo = data.get("memo") or ""
            if not isinstance(memo, str):
                raise InvalidRawTransaction(f"'memo' must be a string, got {type(memo).__name__}")

            billing_date = data.get("billingDate", data.get("billing_date"))
            if billing_date is not None and not isinstance(billing_date, str):
                raise InvalidRawTransaction(
                    f"'billingDate' must be a string, got {type(billing_date).__name__}"
                )

            account = data.get("account") or default_account

            return cls(
                date=data["date"],
                payee=data["payee"],
                amount=data["amount"],
                account=str(account),
                memo=memo,
                billing_date=billing_date or None,
                installment=_optional_int(data, "installment"),
                total=_optional_int(data, "total"),
            )
        except InvalidRawTransaction as e:
            raise e.with_context(default_account, data) from None


@dataclass(frozen=True)
class CanonicalTransaction:
    """A normalized transaction ready for YNAB.

    Invariants:
    - amount_milliunits is negative for outflows
    - payee_name, memo and import_key respect the YNAB field limits
    - import_key is unique within a run and stable across re-runs
    """

    account_id: str
    date: date
    payee_name: str
    memo: str
    amount_milliunits: int
    import_key: str

    def __post_init__(self) -> None:
        if len(self.payee_name) > PAYEE_NAME_MAX_LENGTH:
            raise ValueError(f"payee_name exceeds {PAYEE_NAME_MAX_LENGTH} characters")
        if len(self.memo) > MEMO_MAX_LENGTH:
            raise ValueError(f"memo exceeds {MEMO_MAX_LENGTH} characters")
        if len(self.import_key) > IMPORT_ID_MAX_LENGTH:
            raise ValueError(f"import_key exceeds {IMPORT_ID_MAX_LENGTH} characters")
