"""Transaction normalization service.

Turns one account's scraped transactions into CanonicalTransactions:

1. Partition by billing date (billing-cycle accounts only)
2. Resolve each transaction's effective date; installment legs are moved to
   the group's reference date (billing date - 1 month + 3 days by default)
3. Drop future-dated transactions
4. Parse amounts into signed milliunits
5. Compose the memo from notes, truncate to YNAB field limits
6. Attach an import key from the caller's ImportKeyContext

Normalization is a pure function of its input, the clock value passed in and
the key context.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import TYPE_CHECKING

from dateutil.relativedelta import relativedelta

from ..config import DEFAULT_INSTALLMENT_PATTERN
from ..schemas.amounts import DEFAULT_FOREIGN_CURRENCY_MARKERS, parse_amount, to_milliunits
from ..schemas.transactions import (
    MEMO_MAX_LENGTH,
    PAYEE_NAME_MAX_LENGTH,
    CanonicalTransaction,
    RawTransaction,
    TransactionDataError,
    truncate_field,
)

if TYPE_CHECKING:
    from ..config import BillingConfig, Config
    from ..schemas.import_key import ImportKeyContext

logger = logging.getLogger(__name__)

NOTE_SEPARATOR = " | "

_ISO_DATE = re.compile(
    r"^(\d{4}-\d{2}-\d{2})(?:[T ]\d{2}:\d{2}(?::\d{2}(?:\.\d+)?)?(?:Z|[+-]\d{2}:?\d{2})?)?$"
)


class InvalidBillingDate(TransactionDataError):
    """Raised when a billing date is not a strict calendar date."""

    def __init__(self, value: object):
        self.value = value
        super().__init__(f"Invalid billing date {value!r}")


class InvalidTransactionDate(TransactionDataError):
    """Raised when a transaction date is not a strict calendar date."""

    def __init__(self, value: object):
        self.value = value
        super().__init__(f"Invalid transaction date {value!r}")


def parse_strict_date(value: object) -> date | None:
    """Parse YYYY-MM-DD (optionally followed by an ISO time) strictly.

    Returns:
        The calendar date, or None when the value does not parse
    """
    if not isinstance(value, str):
        return None
    match = _ISO_DATE.match(value.strip())
    if not match:
        return None
    try:
        return date.fromisoformat(match.group(1))
    except ValueError:
        return None


@dataclass
class NormalizerSettings:
    """Tunable heuristics for normalization."""

    reference_offset_months: int = 1
    reference_offset_days: int = 3
    installment_pattern: str = DEFAULT_INSTALLMENT_PATTERN
    foreign_currency_markers: tuple[str, ...] = DEFAULT_FOREIGN_CURRENCY_MARKERS
    _compiled: re.Pattern | None = field(default=None, init=False, repr=False, compare=False)

    @classmethod
    def from_config(cls, config: Config) -> NormalizerSettings:
        return cls.from_billing(config.billing, config.amounts.foreign_currency_markers)

    @classmethod
    def from_billing(
        cls,
        billing: BillingConfig,
        foreign_currency_markers: tuple[str, ...] = DEFAULT_FOREIGN_CURRENCY_MARKERS,
    ) -> NormalizerSettings:
        return cls(
            reference_offset_months=billing.reference_offset_months,
            reference_offset_days=billing.reference_offset_days,
            installment_pattern=billing.installment_pattern,
            foreign_currency_markers=foreign_currency_markers,
        )

    @property
    def installment_regex(self) -> re.Pattern:
        if self._compiled is None:
            self._compiled = re.compile(self.installment_pattern, re.IGNORECASE)
        return self._compiled


def reference_date_for(billing_date: date, settings: NormalizerSettings) -> date:
    """Anchor date for installment legs billed on billing_date.

    Example: billing date 2024-03-15 → 2024-02-18 with the default offsets.
    """
    return (
        billing_date
        - relativedelta(months=settings.reference_offset_months)
        + timedelta(days=settings.reference_offset_days)
    )


def is_installment(raw: RawTransaction, settings: NormalizerSettings) -> bool:
    """True when the memo carries an installment count or the scraper reported one."""
    if raw.has_installment_fields:
        return True
    return bool(raw.memo and settings.installment_regex.search(raw.memo))


def group_by_billing_date(
    transactions: list[RawTransaction],
) -> dict[str | None, list[RawTransaction]]:
    """Partition transactions by billing date, keeping first-seen order."""
    groups: dict[str | None, list[RawTransaction]] = {}
    for tx in transactions:
        groups.setdefault(tx.billing_date, []).append(tx)
    return groups


def _installment_note(raw: RawTransaction) -> str | None:
    if raw.has_installment_fields:
        return f"Installment: {raw.installment} out of {raw.total}"
    return None


def _normalize_group(
    account_id: str,
    billing_date_raw: str | None,
    transactions: list[RawTransaction],
    settings: NormalizerSettings,
    key_context: ImportKeyContext,
    today: date,
) -> list[CanonicalTransaction]:
    billing_date: date | None = None
    reference_date: date | None = None

    if billing_date_raw is not None:
        billing_date = parse_strict_date(billing_date_raw)
        if billing_date is None:
            raise InvalidBillingDate(billing_date_raw).with_context(account_id)
        reference_date = reference_date_for(billing_date, settings)

    result: list[CanonicalTransaction] = []

    for raw in transactions:
        record = {"date": raw.date, "payee": raw.payee, "amount": raw.amount, "memo": raw.memo}

        tx_date = parse_strict_date(raw.date)
        if tx_date is None:
            raise InvalidTransactionDate(raw.date).with_context(account_id, record)

        notes: list[str] = []
        if billing_date is not None:
            notes.append(f"Billing date: {billing_date.isoformat()}")

        effective_date = tx_date
        if reference_date is not None and is_installment(raw, settings):
            effective_date = reference_date
            if raw.memo:
                notes.append(raw.memo)
            installment_note = _installment_note(raw)
            if installment_note:
                notes.append(installment_note)

        if effective_date > today:
            logger.info(
                "Dropping future-dated transaction for %s: %s on %s",
                account_id,
                raw.payee,
                effective_date.isoformat(),
            )
            continue

        try:
            amount = parse_amount(raw.amount, settings.foreign_currency_markers)
            amount_milliunits = to_milliunits(amount)
        except TransactionDataError as e:
            raise e.with_context(account_id, record) from None

        result.append(
            CanonicalTransaction(
                account_id=account_id,
                date=effective_date,
                payee_name=truncate_field(raw.payee, PAYEE_NAME_MAX_LENGTH, "payee_name"),
                memo=truncate_field(NOTE_SEPARATOR.join(notes), MEMO_MAX_LENGTH, "memo"),
                amount_milliunits=amount_milliunits,
                import_key=key_context.next_key(effective_date, raw.payee, amount_milliunits),
            )
        )

    return result


def normalize_account_transactions(
    account_id: str,
    transactions: list[RawTransaction],
    has_billing_cycle: bool,
    key_context: ImportKeyContext,
    settings: NormalizerSettings | None = None,
    now: datetime | None = None,
) -> list[CanonicalTransaction]:
    """Normalize all scraped transactions of one account for one run.

    Args:
        account_id: Local account identifier
        transactions: Validated scraper records, in scraper order
        has_billing_cycle: Whether to group by billing date
        key_context: Run-scoped import key counters (shared across accounts)
        settings: Heuristics (defaults when omitted)
        now: Current time; transactions dated after it are dropped

    Returns:
        CanonicalTransactions in input order (grouped by billing date)

    Raises:
        InvalidBillingDate, InvalidTransactionDate, InvalidAmount,
        UnsupportedCurrency: On data defects; the whole batch is rejected
    """
    settings = settings or NormalizerSettings()
    today = (now or datetime.now()).date()

    if not has_billing_cycle:
        groups: dict[str | None, list[RawTransaction]] = {None: list(transactions)}
    else:
        groups = group_by_billing_date(transactions)

    result: list[CanonicalTransaction] = []
    for billing_date_raw, group in groups.items():
        result.extend(
            _normalize_group(account_id, billing_date_raw, group, settings, key_context, today)
        )

    logger.debug(
        "Normalized %d of %d transactions for %s", len(result), len(transactions), account_id
    )
    return result
