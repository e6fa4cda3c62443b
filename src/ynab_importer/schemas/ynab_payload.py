"""
YNAB transaction payload builder (SSOT).

This is THE single builder that maps CanonicalTransaction → YNAB SaveTransaction JSON.

Rules:
- Always set account_id, date, amount, payee_name, memo, import_id
- Amounts are integer milliunits, outflows negative
- Dates are ISO YYYY-MM-DD
"""

from typing import Any

from .transactions import CanonicalTransaction


def build_ynab_transaction(
    transaction: CanonicalTransaction,
    ledger_account_id: str,
) -> dict[str, Any]:
    """
    Map one canonical transaction to the YNAB submission shape.

    Args:
        transaction: Normalized transaction
        ledger_account_id: YNAB account UUID for transaction.account_id

    Returns:
        Dictionary ready to be JSON encoded
    """
    return {
        "account_id": ledger_account_id,
        "date": transaction.date.isoformat(),
        "payee_name": transaction.payee_name,
        "memo": transaction.memo,
        "amount": transaction.amount_milliunits,
        "import_id": transaction.import_key,
    }


def build_ynab_payload(
    transactions: list[CanonicalTransaction],
    ledger_account_ids: dict[str, str],
) -> dict[str, Any]:
    """
    Build the POST body for a batch of transactions.

    Args:
        transactions: Normalized transactions (any mix of accounts)
        ledger_account_ids: Local account identifier → YNAB account UUID

    Raises:
        KeyError: If a transaction's account has no UUID. Callers resolve
            accounts first so this indicates a programming error.
    """
    return {
        "transactions": [
            build_ynab_transaction(tx, ledger_account_ids[tx.account_id]) for tx in transactions
        ]
    }
