"""
SSOT (Single Source of Truth) schemas for the importer.

These canonical schemas are the ONLY models used across all modules.
No duplicated "near-same" models allowed.
"""

from .amounts import (
    DEFAULT_FOREIGN_CURRENCY_MARKERS,
    MILLIUNITS_PER_UNIT,
    InvalidAmount,
    UnsupportedCurrency,
    parse_amount,
    to_milliunits,
)
from .import_key import (
    IMPORT_KEY_EPOCH,
    ImportKeyContext,
    compute_key_prefix,
    days_since_epoch,
    payee_hash,
)
from .transactions import (
    IMPORT_ID_MAX_LENGTH,
    MEMO_MAX_LENGTH,
    PAYEE_NAME_MAX_LENGTH,
    CanonicalTransaction,
    InvalidRawTransaction,
    RawTransaction,
    TransactionDataError,
    truncate_field,
)
from .ynab_payload import build_ynab_payload, build_ynab_transaction

__all__ = [
    # Transactions (canonical input/output schemas)
    "RawTransaction",
    "CanonicalTransaction",
    "TransactionDataError",
    "InvalidRawTransaction",
    "truncate_field",
    "PAYEE_NAME_MAX_LENGTH",
    "MEMO_MAX_LENGTH",
    "IMPORT_ID_MAX_LENGTH",
    # Amounts (SSOT)
    "parse_amount",
    "to_milliunits",
    "InvalidAmount",
    "UnsupportedCurrency",
    "MILLIUNITS_PER_UNIT",
    "DEFAULT_FOREIGN_CURRENCY_MARKERS",
    # Import keys
    "ImportKeyContext",
    "compute_key_prefix",
    "days_since_epoch",
    "payee_hash",
    "IMPORT_KEY_EPOCH",
    # YNAB payload
    "build_ynab_transaction",
    "build_ynab_payload",
]
