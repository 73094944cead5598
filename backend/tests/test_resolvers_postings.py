# tests/test_resolvers_postings.py
"""
Tests for role-based account resolution and the document posting builders.
"""

from datetime import date
from decimal import Decimal

import pytest

from ledger.errors import MissingAccountMappingError, NotFoundError, ValidationError
from ledger.models import AccountMapping, AccountRole, LedgerEntry, Transaction
from ledger.postings import (
    post_asset_disposal,
    post_bill,
    post_cost_of_sales,
    post_customer_payment,
    post_depreciation,
    post_inventory_revaluation,
    post_invoice,
)
from ledger.resolvers import ChartOfAccountsResolver, map_account


TXN_DATE = date(2026, 3, 15)
DEBIT = LedgerEntry.EntryType.DEBIT
CREDIT = LedgerEntry.EntryType.CREDIT


def _lines(txn):
    return [(e.account.code, e.entry_type, e.amount_in_base) for e in txn.entries.all()]


# =============================================================================
# Resolver Tests
# =============================================================================

@pytest.mark.django_db
class TestChartOfAccountsResolver:

    def test_resolves_mapped_roles(self, organization, role_mappings, receivable):
        coa = ChartOfAccountsResolver(organization, [AccountRole.ACCOUNTS_RECEIVABLE])

        assert coa[AccountRole.ACCOUNTS_RECEIVABLE] == receivable
        assert "ACCOUNTS_RECEIVABLE" in coa

    def test_unmapped_roles_fail_up_front(self, organization, receivable):
        map_account(organization, AccountRole.ACCOUNTS_RECEIVABLE, receivable)

        with pytest.raises(MissingAccountMappingError) as exc_info:
            ChartOfAccountsResolver(
                organization,
                [AccountRole.ACCOUNTS_RECEIVABLE, AccountRole.REVENUE, AccountRole.VAT_OUTPUT],
            )

        assert exc_info.value.roles == ["REVENUE", "VAT_OUTPUT"]
        assert exc_info.value.code == "missing_account_mapping"

    def test_inactive_mapped_account_counts_as_missing(self, organization, role_mappings, revenue):
        revenue.is_active = False
        revenue.save()

        with pytest.raises(MissingAccountMappingError):
            ChartOfAccountsResolver(organization, [AccountRole.REVENUE])

    def test_undeclared_role_is_not_served(self, organization, role_mappings):
        coa = ChartOfAccountsResolver(organization, [AccountRole.CASH])

        with pytest.raises(MissingAccountMappingError):
            coa[AccountRole.REVENUE]

    def test_unknown_role_is_rejected(self, organization):
        with pytest.raises(ValidationError):
            ChartOfAccountsResolver(organization, ["PETTY_CASH"])

    def test_debit_and_credit_build_entry_inputs(self, organization, role_mappings, cash):
        coa = ChartOfAccountsResolver(organization, [AccountRole.CASH])

        entry = coa.debit(AccountRole.CASH, "10.00", "Float")

        assert entry.account_id == cash
        assert entry.entry_type == DEBIT
        assert entry.description == "Float"
        assert coa.credit(AccountRole.CASH, "1").entry_type == CREDIT


@pytest.mark.django_db
class TestMapAccount:

    def test_remapping_replaces_the_account(self, organization, cash, receivable):
        map_account(organization, AccountRole.CASH, cash)
        map_account(organization, AccountRole.CASH, receivable)

        assert AccountMapping.objects.get(organization=organization, role=AccountRole.CASH).account == receivable
        assert AccountMapping.objects.filter(organization=organization).count() == 1

    def test_foreign_account_cannot_be_mapped(self, organization, foreign_account):
        with pytest.raises(NotFoundError):
            map_account(organization, AccountRole.CASH, foreign_account)


# =============================================================================
# Posting Builder Tests
# =============================================================================

@pytest.mark.django_db
class TestPostInvoice:

    def test_invoice_with_vat(self, actor, role_mappings):
        txn = post_invoice(
            actor,
            date=TXN_DATE,
            net_amount="100.00",
            vat_amount="18.00",
            description="Invoice 1001",
            reference_id="1001",
        )

        assert txn.transaction_type == Transaction.Type.INVOICE
        assert txn.number == "INV-2026-0001"
        assert txn.reference_type == "Invoice"
        assert txn.reference_id == "1001"
        assert _lines(txn) == [
            ("1100", DEBIT, Decimal("118")),
            ("4000", CREDIT, Decimal("100")),
            ("2200", CREDIT, Decimal("18")),
        ]

    def test_invoice_without_vat_needs_no_vat_mapping(self, actor, organization, receivable, revenue):
        map_account(organization, AccountRole.ACCOUNTS_RECEIVABLE, receivable)
        map_account(organization, AccountRole.REVENUE, revenue)

        txn = post_invoice(actor, date=TXN_DATE, net_amount=250, description="Zero-rated")

        assert _lines(txn) == [
            ("1100", DEBIT, Decimal("250")),
            ("4000", CREDIT, Decimal("250")),
        ]
        assert txn.reference_type == ""

    def test_missing_mapping_writes_nothing(self, actor, organization, receivable):
        map_account(organization, AccountRole.ACCOUNTS_RECEIVABLE, receivable)

        with pytest.raises(MissingAccountMappingError):
            post_invoice(actor, date=TXN_DATE, net_amount="100", description="Invoice")

        assert Transaction.objects.count() == 0

    def test_negative_vat_is_rejected(self, actor, role_mappings):
        with pytest.raises(ValidationError):
            post_invoice(actor, date=TXN_DATE, net_amount="100", vat_amount="-1", description="Invoice")

    def test_foreign_currency_invoice(self, actor, role_mappings):
        txn = post_invoice(
            actor,
            date=TXN_DATE,
            net_amount="100.00",
            vat_amount="20.00",
            description="EUR invoice",
            currency="EUR",
            exchange_rate="1.1",
        )

        assert {e.currency for e in txn.entries.all()} == {"EUR"}
        assert _lines(txn) == [
            ("1100", DEBIT, Decimal("132")),
            ("4000", CREDIT, Decimal("110")),
            ("2200", CREDIT, Decimal("22")),
        ]

    def test_invoice_can_be_saved_as_draft(self, actor, role_mappings):
        txn = post_invoice(actor, date=TXN_DATE, net_amount="10", description="Draft invoice", post=False)

        assert txn.status == Transaction.Status.DRAFT


@pytest.mark.django_db
class TestOtherBuilders:

    def test_bill_with_vat(self, actor, role_mappings):
        txn = post_bill(
            actor,
            date=TXN_DATE,
            net_amount="200.00",
            vat_amount="28.00",
            description="Office rent",
            reference_id="B-77",
        )

        assert txn.number == "BILL-2026-0001"
        assert txn.reference_type == "Bill"
        assert _lines(txn) == [
            ("6000", DEBIT, Decimal("200")),
            ("1300", DEBIT, Decimal("28")),
            ("2100", CREDIT, Decimal("228")),
        ]

    def test_customer_payment(self, actor, role_mappings):
        txn = post_customer_payment(
            actor,
            date=TXN_DATE,
            amount="118.00",
            description="Payment for invoice 1001",
            reference_id="P-1",
        )

        assert txn.transaction_type == Transaction.Type.PAYMENT
        assert txn.reference_type == "Payment"
        assert _lines(txn) == [
            ("1000", DEBIT, Decimal("118")),
            ("1100", CREDIT, Decimal("118")),
        ]

    def test_depreciation(self, actor, role_mappings):
        txn = post_depreciation(
            actor,
            date=TXN_DATE,
            amount="75.50",
            description="March depreciation",
            asset_reference="FA-3",
        )

        assert txn.number == "DEP-2026-0001"
        assert txn.reference_type == "FixedAsset"
        assert txn.reference_id == "FA-3"
        assert _lines(txn) == [
            ("6500", DEBIT, Decimal("75.5")),
            ("1590", CREDIT, Decimal("75.5")),
        ]

    def test_cost_of_sales(self, actor, role_mappings):
        txn = post_cost_of_sales(actor, date=TXN_DATE, amount="60.00", description="COGS invoice 1001",
                                 reference_id="1001")

        assert txn.number == "ADJ-2026-0001"
        assert txn.reference_type == "Sale"
        assert _lines(txn) == [
            ("5000", DEBIT, Decimal("60")),
            ("1200", CREDIT, Decimal("60")),
        ]


@pytest.mark.django_db
class TestInventoryRevaluation:

    def test_increase(self, actor, role_mappings):
        txn = post_inventory_revaluation(
            actor, date=TXN_DATE, value_change="40.00", description="Widget cost update", reference_id="RV-1",
        )

        assert txn.transaction_type == Transaction.Type.INVENTORY_REVALUATION
        assert txn.number == "REVAL-2026-0001"
        assert txn.reference_type == "InventoryRevaluation"
        assert _lines(txn) == [
            ("1200", DEBIT, Decimal("40")),
            ("5900", CREDIT, Decimal("40")),
        ]

    def test_decrease(self, actor, role_mappings):
        txn = post_inventory_revaluation(actor, date=TXN_DATE, value_change="-12.5", description="Write-down")

        assert _lines(txn) == [
            ("5900", DEBIT, Decimal("12.5")),
            ("1200", CREDIT, Decimal("12.5")),
        ]
        assert txn.entries.first().description == "Revaluation loss - Write-down"

    def test_zero_change_is_rejected(self, actor, role_mappings):
        with pytest.raises(ValidationError, match="zero"):
            post_inventory_revaluation(actor, date=TXN_DATE, value_change="0", description="Nothing")

        assert Transaction.objects.count() == 0


@pytest.mark.django_db
class TestAssetDisposal:

    def test_sale_at_a_gain(self, actor, role_mappings):
        txn = post_asset_disposal(
            actor,
            date=TXN_DATE,
            cost="1000.00",
            accumulated_depreciation="600.00",
            proceeds="500.00",
            description="Sale of forklift",
            asset_reference="FA-9",
        )

        assert txn.transaction_type == Transaction.Type.ASSET_DISPOSAL
        assert txn.number == "DISP-2026-0001"
        assert txn.reference_type == "FixedAsset"
        assert _lines(txn) == [
            ("1000", DEBIT, Decimal("500")),
            ("1590", DEBIT, Decimal("600")),
            ("7100", CREDIT, Decimal("100")),
            ("1500", CREDIT, Decimal("1000")),
        ]

    def test_sale_at_a_loss(self, actor, role_mappings):
        txn = post_asset_disposal(
            actor, date=TXN_DATE, cost="1000", accumulated_depreciation="600", proceeds="250",
            description="Sale of forklift",
        )

        assert _lines(txn) == [
            ("1000", DEBIT, Decimal("250")),
            ("1590", DEBIT, Decimal("600")),
            ("7100", DEBIT, Decimal("150")),
            ("1500", CREDIT, Decimal("1000")),
        ]

    def test_scrapping_a_fully_depreciated_asset(self, actor, organization, fixed_asset, accumulated_depreciation):
        map_account(organization, AccountRole.FIXED_ASSET, fixed_asset)
        map_account(organization, AccountRole.ACCUMULATED_DEPRECIATION, accumulated_depreciation)

        txn = post_asset_disposal(
            actor, date=TXN_DATE, cost="800", accumulated_depreciation="800", description="Scrapped laptop",
        )

        assert _lines(txn) == [
            ("1590", DEBIT, Decimal("800")),
            ("1500", CREDIT, Decimal("800")),
        ]

    def test_depreciation_above_cost_is_rejected(self, actor, role_mappings):
        with pytest.raises(ValidationError, match="exceed cost"):
            post_asset_disposal(
                actor, date=TXN_DATE, cost="100", accumulated_depreciation="150", description="Bad data",
            )

        assert Transaction.objects.count() == 0
