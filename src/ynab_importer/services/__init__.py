"""Import services: normalization, staleness, notification and orchestration."""

from ynab_importer.services.importer import ImportRunError, ImportRunResult, ImportService
from ynab_importer.services.normalizer import (
    InvalidBillingDate,
    InvalidTransactionDate,
    NormalizerSettings,
    normalize_account_transactions,
)
from ynab_importer.services.staleness import find_stale_accounts, format_staleness_alerts

__all__ = [
    "ImportService",
    "ImportRunResult",
    "ImportRunError",
    "NormalizerSettings",
    "normalize_account_transactions",
    "InvalidBillingDate",
    "InvalidTransactionDate",
    "find_stale_accounts",
    "format_staleness_alerts",
]
