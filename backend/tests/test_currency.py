# tests/test_currency.py
"""
Tests for multi-currency postings.

Tests cover:
- Amount parsing and base conversion rounding
- Explicit and stored exchange rates
- Balance is checked on base-currency amounts
"""

from datetime import date
from decimal import Decimal

import pytest

from ledger.commands import create_transaction
from ledger.currency import normalize_currency, parse_amount, resolve_rate, to_base
from ledger.errors import UnbalancedEntryError, ValidationError
from ledger.models import Account, ExchangeRate, LedgerEntry, Transaction


TXN_DATE = date(2026, 3, 15)
DEBIT = LedgerEntry.EntryType.DEBIT
CREDIT = LedgerEntry.EntryType.CREDIT


def _post(actor, entries, on_date=TXN_DATE):
    return create_transaction(
        actor,
        date=on_date,
        transaction_type=Transaction.Type.INVOICE,
        description="FX invoice",
        entries=entries,
    )


# =============================================================================
# Conversion Helper Tests
# =============================================================================

class TestAmountHelpers:

    def test_parse_amount_accepts_int_float_and_string(self):
        assert parse_amount(10) == Decimal("10.0000")
        assert parse_amount(0.1) == Decimal("0.1000")
        assert parse_amount("118.50") == Decimal("118.5000")

    def test_parse_amount_rejects_bool(self):
        with pytest.raises(ValidationError):
            parse_amount(True)

    def test_to_base_rounds_half_up(self):
        assert to_base(Decimal("33.3333"), Decimal("1.5")) == Decimal("50.0000")
        assert to_base(Decimal("0.0001"), Decimal("0.5")) == Decimal("0.0001")

    def test_currency_codes_are_upper_cased(self):
        assert normalize_currency(" eur ") == "EUR"

    @pytest.mark.parametrize("code", ["", "EURO", "E1R", None])
    def test_bad_currency_codes_are_rejected(self, code):
        with pytest.raises(ValidationError):
            normalize_currency(code)


@pytest.mark.django_db
class TestResolveRate:

    def test_base_currency_is_one(self, organization):
        assert resolve_rate(organization, "USD", TXN_DATE) == Decimal("1")
        assert resolve_rate(organization, "USD", TXN_DATE, "1.000") == Decimal("1")

    def test_base_currency_rejects_other_rates(self, organization):
        with pytest.raises(ValidationError):
            resolve_rate(organization, "USD", TXN_DATE, "1.5")

    def test_latest_rate_on_or_before_date_wins(self, organization, eur_rate):
        ExchangeRate.objects.create(
            organization=organization, currency="EUR",
            rate=Decimal("1.050000"), effective_date=date(2025, 6, 1),
        )
        ExchangeRate.objects.create(
            organization=organization, currency="EUR",
            rate=Decimal("1.200000"), effective_date=date(2026, 4, 1),
        )

        assert resolve_rate(organization, "EUR", TXN_DATE) == Decimal("1.1")
        assert resolve_rate(organization, "EUR", date(2026, 4, 1)) == Decimal("1.2")

    def test_explicit_rate_overrides_stored(self, organization, eur_rate):
        assert resolve_rate(organization, "EUR", TXN_DATE, "1.3") == Decimal("1.300000")

    def test_missing_rate_is_rejected(self, organization, eur_rate):
        with pytest.raises(ValidationError, match="No exchange rate"):
            resolve_rate(organization, "EUR", date(2025, 12, 31))

    def test_rates_of_other_organizations_are_ignored(self, organization, second_organization):
        ExchangeRate.objects.create(
            organization=second_organization, currency="GBP",
            rate=Decimal("1.150000"), effective_date=date(2026, 1, 1),
        )

        with pytest.raises(ValidationError):
            resolve_rate(organization, "GBP", TXN_DATE)


# =============================================================================
# Posting Tests
# =============================================================================

@pytest.mark.django_db
class TestForeignCurrencyPostings:

    def test_explicit_rate_is_stored_on_the_entry(self, actor, entries, receivable, revenue):
        txn = _post(actor, entries(
            (receivable, DEBIT, "100.00", {"currency": "EUR", "exchange_rate": "1.25"}),
            (revenue, CREDIT, "125.00"),
        ))

        eur_line = txn.entries.get(line_no=1)
        assert eur_line.currency == "EUR"
        assert eur_line.amount == Decimal("100")
        assert eur_line.exchange_rate == Decimal("1.25")
        assert eur_line.amount_in_base == Decimal("125")

    def test_stored_rate_is_used_without_explicit_rate(self, actor, entries, receivable, revenue, eur_rate):
        txn = _post(actor, entries(
            (receivable, DEBIT, "100.00", {"currency": "eur"}),
            (revenue, CREDIT, "110.00"),
        ))

        eur_line = txn.entries.get(line_no=1)
        assert eur_line.currency == "EUR"
        assert eur_line.exchange_rate == Decimal("1.1")
        assert eur_line.amount_in_base == Decimal("110")

    def test_account_currency_is_the_default(self, actor, entries, organization, revenue, eur_rate):
        eur_bank = Account.objects.create(
            organization=organization, code="1010", name="EUR Bank",
            account_type=Account.AccountType.ASSET, currency="EUR",
        )

        txn = _post(actor, entries(
            (eur_bank, DEBIT, "50.00"),
            (revenue, CREDIT, "55.00"),
        ))

        assert txn.entries.get(line_no=1).currency == "EUR"
        assert txn.entries.get(line_no=2).currency == "USD"

    def test_missing_rate_rejects_the_posting(self, actor, entries, receivable, revenue):
        with pytest.raises(ValidationError, match="No exchange rate"):
            _post(actor, entries(
                (receivable, DEBIT, "100.00", {"currency": "GBP"}),
                (revenue, CREDIT, "100.00"),
            ))

        assert Transaction.objects.count() == 0

    def test_balance_is_checked_in_base_currency(self, actor, entries, receivable, revenue, eur_rate):
        with pytest.raises(UnbalancedEntryError) as exc_info:
            _post(actor, entries(
                (receivable, DEBIT, "100.00", {"currency": "EUR"}),
                (revenue, CREDIT, "100.00"),
            ))

        assert exc_info.value.total_debits == Decimal("110")
        assert exc_info.value.total_credits == Decimal("100")

    def test_base_currency_entry_with_other_rate_is_rejected(self, actor, entries, receivable, revenue):
        with pytest.raises(ValidationError):
            _post(actor, entries(
                (receivable, DEBIT, "100.00", {"exchange_rate": "1.5"}),
                (revenue, CREDIT, "150.00"),
            ))
