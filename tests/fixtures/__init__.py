"""
Shared test data for scraper output and YNAB responses.

- Per-account scraper files (bank feed and billing-cycle card)
- YNAB API response bodies
"""

import json
from datetime import datetime, timezone
from pathlib import Path

YNAB_BASE_URL = "http://ynab.test/v1"
BUDGET_ID = "budget-1234"
BUDGET_URL = f"{YNAB_BASE_URL}/budgets/{BUDGET_ID}"

# Fixed clock for deterministic runs
NOW = datetime(2024, 3, 20, 12, 0, tzinfo=timezone.utc)


SAMPLE_BANK_TRANSACTIONS = [
    {
        "date": "2024-01-10",
        "payee": "Coffee Shop",
        "amount": "12.50",
        "memo": "",
    },
]

SAMPLE_CARD_TRANSACTIONS = [
    {
        "date": "2024-03-01",
        "payee": "Electronics Store",
        "amount": 300,
        "memo": "תשלום 2 מתוך 3",
        "billingDate": "2024-03-15",
    },
    {
        "date": "2024-03-05",
        "payee": "Supermarket",
        "amount": "87.20",
        "memo": "",
        "billingDate": "2024-03-15",
    },
]


def write_account_file(data_dir: Path, account_id: str, transactions: list) -> Path:
    """Write a per-account scraper file."""
    data_dir.mkdir(parents=True, exist_ok=True)
    path = data_dir / f"{account_id}.json"
    path.write_text(json.dumps(transactions, ensure_ascii=False), encoding="utf-8")
    return path


def ynab_accounts_response(*names: str) -> dict:
    """YNAB GET /accounts body with one account per name."""
    return {
        "data": {
            "accounts": [
                {
                    "id": f"uuid-{name.lower().replace(' ', '-')}",
                    "name": name,
                    "type": "checking",
                    "closed": False,
                    "deleted": False,
                }
                for name in names
            ],
            "server_knowledge": 1,
        }
    }


def ynab_created_response(count: int, duplicates: list[str] | None = None) -> dict:
    """YNAB POST /transactions body reporting `count` new transactions."""
    return {
        "data": {
            "transaction_ids": [f"tx-{i}" for i in range(count)],
            "transactions": [{"id": f"tx-{i}"} for i in range(count)],
            "duplicate_import_ids": duplicates or [],
            "server_knowledge": 2,
        }
    }
