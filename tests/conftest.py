"""Test fixtures and utilities."""

from pathlib import Path

import pytest

from fixtures import BUDGET_ID, YNAB_BASE_URL
from ynab_importer.config import AccountConfig, Config, HistoryConfig, YNABConfig


@pytest.fixture
def data_dir(tmp_path) -> Path:
    """Empty per-account data directory."""
    path = tmp_path / "transactions"
    path.mkdir()
    return path


@pytest.fixture
def history_path(tmp_path) -> Path:
    """Path for a history file (not created)."""
    return tmp_path / "history.json"


@pytest.fixture
def config(data_dir, history_path) -> Config:
    """Config with a bank account and a billing-cycle card."""
    return Config(
        ynab=YNABConfig(token="test-token", budget_id=BUDGET_ID, base_url=YNAB_BASE_URL),
        accounts=[
            AccountConfig(id="bank", name="Checking"),
            AccountConfig(id="visa", name="Visa Card", has_billing_cycle=True),
        ],
        data_dir=data_dir,
        history=HistoryConfig(path=history_path),
    )
