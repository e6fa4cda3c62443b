"""
YNAB API client implementation.
"""

import json
import logging
from dataclasses import dataclass, field
from datetime import date

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from ..schemas.transactions import CanonicalTransaction
from ..schemas.ynab_payload import build_ynab_payload

logger = logging.getLogger(__name__)


class LedgerError(Exception):
    """Base exception for YNAB client errors."""

    pass


class LedgerConnectionError(LedgerError):
    """Failed to connect to YNAB."""

    pass


class LedgerRejected(LedgerError):
    """YNAB answered without the expected success shape.

    Carries the raw response body so the failure can be diagnosed without
    re-running the import.
    """

    def __init__(
        self,
        message: str,
        response_body: str | None = None,
        status_code: int | None = None,
    ):
        self.message = message
        self.response_body = response_body
        self.status_code = status_code

        detail = f"YNAB rejected request: {message}"
        if status_code is not None:
            detail = f"YNAB rejected request ({status_code}): {message}"
        if response_body:
            detail = f"{detail}\n{response_body}"
        super().__init__(detail)


class UnknownAccount(LedgerError):
    """A local account identifier has no YNAB account."""

    def __init__(self, account_id: str, detail: str | None = None):
        self.account_id = account_id
        message = f"Failed to find YNAB account for '{account_id}'"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


@dataclass
class LedgerAccount:
    """YNAB account representation."""

    id: str
    name: str
    type: str | None = None
    closed: bool = False
    deleted: bool = False


@dataclass
class SubmissionResult:
    """Outcome of one batch submission."""

    total_transactions: int
    new_transactions: int
    duplicate_import_ids: list[str] = field(default_factory=list)
    last_date: date | None = None


class YNABClient:
    """
    Client for the YNAB API.

    Features:
    - List budget accounts
    - Resolve configured account names to YNAB account ids
    - Submit transaction batches (deduplicated by import_id on YNAB's side)
    - Optional retry with backoff
    """

    DEFAULT_TIMEOUT = 30

    def __init__(
        self,
        base_url: str,
        token: str,
        budget_id: str,
        timeout: int = DEFAULT_TIMEOUT,
        max_retries: int = 0,
        backoff_factor: float = 0.5,
    ):
        """
        Initialize YNAB client.

        Args:
            base_url: YNAB API URL (e.g., "https://api.ynab.com/v1")
            token: Personal access token
            budget_id: Budget UUID (or "last-used")
            timeout: Request timeout in seconds
            max_retries: Maximum retry attempts
            backoff_factor: Backoff factor for retries
        """
        self.base_url = base_url.rstrip("/")
        self.budget_id = budget_id
        self.timeout = timeout
        self._accounts: list[LedgerAccount] | None = None

        self.session = requests.Session()
        self.session.headers.update(
            {
                "Authorization": f"Bearer {token}",
                "Accept": "application/json",
                "Content-Type": "application/json",
            }
        )

        if max_retries:
            retry_strategy = Retry(
                total=max_retries,
                backoff_factor=backoff_factor,
                status_forcelist=[429, 500, 502, 503, 504],
                allowed_methods=["GET", "POST"],
            )
            adapter = HTTPAdapter(max_retries=retry_strategy)
            self.session.mount("http://", adapter)
            self.session.mount("https://", adapter)

    @property
    def budget_url(self) -> str:
        return f"{self.base_url}/budgets/{self.budget_id}"

    def _request(
        self,
        method: str,
        endpoint: str,
        json_data: dict | None = None,
    ) -> dict:
        """Make an API request and return the decoded `data` object."""
        url = f"{self.budget_url}{endpoint}"

        logger.debug(f"API Request: {method} {url}")
        if json_data:
            logger.debug(f"Request body: {json.dumps(json_data, indent=2, ensure_ascii=False)}")

        try:
            response = self.session.request(
                method=method,
                url=url,
                json=json_data,
                timeout=self.timeout,
            )
        except requests.exceptions.ConnectionError as e:
            logger.error(f"Connection error to {url}: {e}")
            raise LedgerConnectionError(f"Failed to connect to YNAB at {self.base_url}: {e}") from e
        except requests.exceptions.Timeout as e:
            logger.error(f"Timeout for {url}: {e}")
            raise LedgerConnectionError(f"Request to YNAB timed out: {e}") from e
        except requests.exceptions.RequestException as e:
            logger.error(f"Request error for {url}: {e}")
            raise LedgerError(f"Request failed: {e}") from e

        logger.debug(f"Response status: {response.status_code}")

        try:
            body = response.json()
        except ValueError:
            body = None

        if not response.ok:
            message = response.reason or "error response"
            if isinstance(body, dict) and isinstance(body.get("error"), dict):
                error = body["error"]
                message = error.get("detail") or error.get("name") or message
            logger.error(f"API Error {response.status_code}: {message}")
            raise LedgerRejected(message, response.text, response.status_code)

        if not isinstance(body, dict) or not isinstance(body.get("data"), dict):
            raise LedgerRejected("response lacks a data object", response.text, response.status_code)

        return body["data"]

    def list_accounts(self, refresh: bool = False) -> list[LedgerAccount]:
        """List the budget's accounts (cached after the first call)."""
        if self._accounts is not None and not refresh:
            return self._accounts

        data = self._request("GET", "/accounts")
        accounts = data.get("accounts")
        if not isinstance(accounts, list):
            raise LedgerRejected("response lacks data.accounts", json.dumps(data))

        self._accounts = [
            LedgerAccount(
                id=account.get("id", ""),
                name=account.get("name", ""),
                type=account.get("type"),
                closed=bool(account.get("closed", False)),
                deleted=bool(account.get("deleted", False)),
            )
            for account in accounts
        ]
        return self._accounts

    def resolve_account_ids(self, account_names: dict[str, str]) -> dict[str, str]:
        """
        Map local account identifiers to YNAB account ids by account name.

        Args:
            account_names: Local account identifier → YNAB account name

        Returns:
            Local account identifier → YNAB account id

        Raises:
            UnknownAccount: If a name matches no (non-deleted) YNAB account
        """
        if not account_names:
            return {}

        by_name = {
            account.name: account.id
            for account in self.list_accounts()
            if not account.deleted
        }

        resolved: dict[str, str] = {}
        for account_id, name in account_names.items():
            if name not in by_name:
                raise UnknownAccount(account_id, f"no YNAB account named '{name}'")
            resolved[account_id] = by_name[name]
            logger.debug("Resolved account %s → %s", account_id, resolved[account_id])

        return resolved

    def create_transactions(
        self,
        transactions: list[CanonicalTransaction],
        ledger_account_ids: dict[str, str],
    ) -> SubmissionResult:
        """
        Submit a batch of transactions.

        YNAB skips transactions whose (account, import_id) already exists and
        returns only the new ones.

        Args:
            transactions: Normalized transactions
            ledger_account_ids: Local account identifier → YNAB account id

        Returns:
            SubmissionResult with the count of new transactions

        Raises:
            UnknownAccount: If a transaction's account is not resolved (no
                request is made)
            LedgerRejected: If YNAB answers without data.transactions
        """
        for tx in transactions:
            if tx.account_id not in ledger_account_ids:
                raise UnknownAccount(tx.account_id)

        if not transactions:
            return SubmissionResult(total_transactions=0, new_transactions=0)

        payload = build_ynab_payload(transactions, ledger_account_ids)
        data = self._request("POST", "/transactions", json_data=payload)

        created = data.get("transactions")
        if not isinstance(created, list):
            raise LedgerRejected("response lacks data.transactions", json.dumps(data))

        duplicates = data.get("duplicate_import_ids") or []
        if duplicates:
            logger.info("YNAB skipped %d already imported transaction(s)", len(duplicates))

        result = SubmissionResult(
            total_transactions=len(transactions),
            new_transactions=len(created),
            duplicate_import_ids=list(duplicates),
            last_date=max(tx.date for tx in transactions),
        )
        logger.info(
            "Submitted %d transaction(s), %d new",
            result.total_transactions,
            result.new_transactions,
        )
        return result
