"""
YNAB API Client.

Provides:
- List budget accounts (GET /budgets/{budget_id}/accounts)
- Resolve account names to YNAB account ids
- Create transactions (POST /budgets/{budget_id}/transactions)

Treats YNAB errors as loud failures carrying the raw response body.
"""

from .client import (
    LedgerAccount,
    LedgerConnectionError,
    LedgerError,
    LedgerRejected,
    SubmissionResult,
    UnknownAccount,
    YNABClient,
)

__all__ = [
    "YNABClient",
    "LedgerAccount",
    "SubmissionResult",
    "LedgerError",
    "LedgerConnectionError",
    "LedgerRejected",
    "UnknownAccount",
]
