"""Tests for transaction normalization."""

import logging
from datetime import date, datetime

import pytest

from ynab_importer.config import BillingConfig
from ynab_importer.schemas.amounts import InvalidAmount, UnsupportedCurrency
from ynab_importer.schemas.import_key import ImportKeyContext
from ynab_importer.schemas.transactions import RawTransaction
from ynab_importer.services.normalizer import (
    InvalidBillingDate,
    InvalidTransactionDate,
    NormalizerSettings,
    group_by_billing_date,
    is_installment,
    normalize_account_transactions,
    parse_strict_date,
    reference_date_for,
)

NOW = datetime(2024, 3, 20, 12, 0)


def raw(**kwargs) -> RawTransaction:
    data = {"date": "2024-03-01", "payee": "Store", "amount": "10.00", "memo": ""}
    data.update(kwargs)
    return RawTransaction.from_dict(data, default_account="visa")


def normalize(transactions, has_billing_cycle=True, context=None, settings=None, now=NOW):
    return normalize_account_transactions(
        "visa",
        transactions,
        has_billing_cycle=has_billing_cycle,
        key_context=context if context is not None else ImportKeyContext(),
        settings=settings,
        now=now,
    )


class TestDates:
    """Tests for strict date parsing and the reference date."""

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("2024-03-15", date(2024, 3, 15)),
            ("2024-03-15T00:00:00.000Z", date(2024, 3, 15)),
            ("2024-03-15T10:30:00+02:00", date(2024, 3, 15)),
        ],
    )
    def test_parse_strict_date(self, value, expected):
        assert parse_strict_date(value) == expected

    @pytest.mark.parametrize("value", ["15/03/2024", "2024-02-30", "2024-3-5", "", None, 20240315])
    def test_parse_strict_date_rejects(self, value):
        assert parse_strict_date(value) is None

    def test_reference_date(self):
        """2024-03-15 → 2024-02-18 (one month back, three days forward)."""
        assert reference_date_for(date(2024, 3, 15), NormalizerSettings()) == date(2024, 2, 18)

    def test_reference_date_clamps_month_end(self):
        assert reference_date_for(date(2024, 3, 31), NormalizerSettings()) == date(2024, 3, 3)

    def test_reference_offset_configurable(self):
        settings = NormalizerSettings.from_billing(
            BillingConfig(reference_offset_months=0, reference_offset_days=-5)
        )
        assert reference_date_for(date(2024, 3, 15), settings) == date(2024, 3, 10)


class TestInstallmentDetection:
    """Tests for installment marker matching."""

    @pytest.mark.parametrize(
        "memo", ["תשלום 2 מתוך 3", "2/3", "Installment 2 of 12", "payment 1 out of 6"]
    )
    def test_memo_patterns(self, memo):
        assert is_installment(raw(memo=memo), NormalizerSettings())

    @pytest.mark.parametrize("memo", ["", "Groceries", "Order 12"])
    def test_non_installment(self, memo):
        assert not is_installment(raw(memo=memo), NormalizerSettings())

    def test_explicit_fields(self):
        assert is_installment(raw(installment=1, total=3), NormalizerSettings())

    def test_custom_pattern(self):
        settings = NormalizerSettings(installment_pattern=r"split \d+")
        assert is_installment(raw(memo="Split 2"), settings)
        assert not is_installment(raw(memo="2/3"), settings)


class TestNormalizeBillingCycle:
    """Tests for billing-cycle accounts."""

    def test_installment_reattributed_to_reference_date(self):
        [tx] = normalize([raw(billingDate="2024-03-15", memo="תשלום 2 מתוך 3")])

        assert tx.date == date(2024, 2, 18)
        assert tx.memo == "Billing date: 2024-03-15 | תשלום 2 מתוך 3"

    def test_regular_charge_keeps_date(self):
        [tx] = normalize([raw(billingDate="2024-03-15", date="2024-03-05")])

        assert tx.date == date(2024, 3, 5)
        assert tx.memo == "Billing date: 2024-03-15"

    def test_installment_fields_add_note(self):
        [tx] = normalize([raw(billingDate="2024-03-15", installment=2, total=3)])

        assert tx.date == date(2024, 2, 18)
        assert tx.memo == "Billing date: 2024-03-15 | Installment: 2 out of 3"

    def test_groups_by_billing_date(self):
        transactions = [
            raw(billingDate="2024-02-15", payee="A"),
            raw(billingDate="2024-03-15", payee="B"),
            raw(billingDate="2024-02-15", payee="C"),
        ]
        groups = group_by_billing_date(transactions)

        assert list(groups) == ["2024-02-15", "2024-03-15"]
        assert [t.payee for t in groups["2024-02-15"]] == ["A", "C"]

    def test_each_group_uses_own_reference_date(self):
        transactions = [
            raw(billingDate="2024-02-15", memo="1/3", payee="Laptop"),
            raw(billingDate="2024-03-15", memo="2/3", payee="Laptop"),
        ]
        result = normalize(transactions)

        assert [tx.date for tx in result] == [date(2024, 1, 18), date(2024, 2, 18)]
        assert result[0].import_key != result[1].import_key

    def test_missing_billing_date_keeps_original(self):
        [tx] = normalize([raw(memo="2/3")])
        assert tx.date == date(2024, 3, 1)
        assert tx.memo == ""

    def test_invalid_billing_date(self):
        with pytest.raises(InvalidBillingDate) as exc_info:
            normalize([raw(billingDate="15/03/2024")])
        assert exc_info.value.account == "visa"


class TestNormalizeBankAccount:
    """Tests for accounts without a billing cycle."""

    def test_billing_date_ignored(self):
        [tx] = normalize([raw(billingDate="2024-03-15", memo="2/3")], has_billing_cycle=False)

        assert tx.date == date(2024, 3, 1)
        assert tx.memo == ""

    def test_end_to_end_shape(self):
        [tx] = normalize(
            [raw(date="2024-01-10", payee="Coffee Shop", amount="12.50")],
            has_billing_cycle=False,
        )

        assert tx.account_id == "visa"
        assert tx.amount_milliunits == -12500
        assert tx.payee_name == "Coffee Shop"
        assert tx.import_key.endswith("0")

    def test_invalid_transaction_date(self):
        with pytest.raises(InvalidTransactionDate) as exc_info:
            normalize([raw(date="2024-02-30")], has_billing_cycle=False)

        assert exc_info.value.account == "visa"
        assert exc_info.value.record["date"] == "2024-02-30"


class TestFutureDates:
    """Tests for the future-date filter."""

    def test_future_transaction_dropped(self, caplog):
        transactions = [raw(date="2024-03-21", payee="Tomorrow"), raw(date="2024-03-20")]

        with caplog.at_level(logging.INFO, logger="ynab_importer.services.normalizer"):
            result = normalize(transactions, has_billing_cycle=False)

        assert [tx.date for tx in result] == [date(2024, 3, 20)]
        assert "Tomorrow" in caplog.text

    def test_future_reference_date_dropped(self):
        """The effective (re-attributed) date is what gets filtered."""
        result = normalize([raw(billingDate="2024-04-30", memo="3/3", date="2024-03-01")])
        assert result == []

    def test_dropped_transaction_does_not_consume_counter(self):
        context = ImportKeyContext()
        normalize([raw(date="2024-03-25")], has_billing_cycle=False, context=context)
        assert len(context) == 0


class TestAmountsAndLimits:
    """Tests for amounts, truncation and import keys."""

    def test_currency_error_carries_context(self):
        with pytest.raises(UnsupportedCurrency) as exc_info:
            normalize([raw(amount="$5.00")], has_billing_cycle=False)

        assert exc_info.value.account == "visa"
        assert exc_info.value.record["amount"] == "$5.00"

    def test_invalid_amount_aborts_batch(self):
        with pytest.raises(InvalidAmount):
            normalize([raw(), raw(amount="n/a")], has_billing_cycle=False)

    def test_payee_truncated_key_uses_full_payee(self):
        payee = "A Very Long Merchant Name That Keeps Going And Going Forever"
        [tx] = normalize([raw(payee=payee)], has_billing_cycle=False)

        assert tx.payee_name == payee[:50]
        expected = ImportKeyContext().next_key(date(2024, 3, 1), payee, -10000)
        assert tx.import_key == expected

    def test_memo_truncated(self):
        memo = "2/3 " + "x" * 300
        [tx] = normalize([raw(billingDate="2024-03-15", memo=memo)])
        assert len(tx.memo) == 200
        assert tx.memo.startswith("Billing date: 2024-03-15 | 2/3")

    def test_duplicate_purchases_disambiguated(self):
        result = normalize(
            [raw(payee="Coffee"), raw(payee="Coffee")],
            has_billing_cycle=False,
        )
        assert result[0].import_key[:-1] == result[1].import_key[:-1]
        assert result[0].import_key != result[1].import_key

    def test_context_shared_across_calls(self):
        context = ImportKeyContext()
        [first] = normalize([raw(payee="Coffee")], has_billing_cycle=False, context=context)
        [second] = normalize([raw(payee="Coffee")], has_billing_cycle=False, context=context)
        assert first.import_key.endswith("0")
        assert second.import_key.endswith("1")

    def test_rerun_is_deterministic(self):
        transactions = [raw(payee="Coffee"), raw(payee="Coffee"), raw(payee="Bakery")]
        first = normalize(transactions, has_billing_cycle=False)
        second = normalize(transactions, has_billing_cycle=False)
        assert [tx.import_key for tx in first] == [tx.import_key for tx in second]
