# tests/conftest.py
"""
Pytest fixtures for Ledgerworks tests.

- ActorContext takes: user, organization
- Commands take the actor as first arg and raise ledger.errors on rejection
- Event payload validation stays ON so schema drift fails the tests
"""

from datetime import date
from decimal import Decimal

import pytest
from django.conf import settings
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient

from accounts.authz import ActorContext
from accounts.models import Organization
from ledger.models import Account, AccountRole, ExchangeRate, LedgerEntry
from ledger.resolvers import map_account


User = get_user_model()


@pytest.fixture(autouse=True, scope="session")
def _testing_settings():
    settings.DISABLE_EVENT_VALIDATION = False


# =============================================================================
# Organization & User Fixtures
# =============================================================================

@pytest.fixture
def user(db):
    """Create a test user."""
    return User.objects.create_user(
        username="owner",
        email="owner@test.com",
        password="testpass123",
    )


@pytest.fixture
def outsider(db):
    """A user who belongs to no organization."""
    return User.objects.create_user(
        username="outsider",
        email="outsider@test.com",
        password="testpass123",
    )


@pytest.fixture
def organization(db, user):
    """Create a test organization with ``user`` as member."""
    org = Organization.objects.create(
        name="Acme Trading",
        slug="acme",
        base_currency="USD",
    )
    org.members.add(user)
    return org


@pytest.fixture
def second_organization(db, user):
    """Another tenant, also with ``user`` as member."""
    org = Organization.objects.create(
        name="Globex",
        slug="globex",
        base_currency="EUR",
    )
    org.members.add(user)
    return org


@pytest.fixture
def actor(user, organization):
    return ActorContext(user=user, organization=organization)


@pytest.fixture
def second_actor(user, second_organization):
    return ActorContext(user=user, organization=second_organization)


# =============================================================================
# Chart of Accounts Fixtures
# =============================================================================

def _account(organization, code, name, account_type, **kwargs):
    return Account.objects.create(
        organization=organization,
        code=code,
        name=name,
        account_type=account_type,
        **kwargs,
    )


@pytest.fixture
def cash(organization):
    return _account(organization, "1000", "Cash", Account.AccountType.ASSET)


@pytest.fixture
def receivable(organization):
    return _account(organization, "1100", "Accounts Receivable", Account.AccountType.ASSET)


@pytest.fixture
def vat_input(organization):
    return _account(organization, "1300", "VAT Input", Account.AccountType.ASSET)


@pytest.fixture
def payable(organization):
    return _account(organization, "2100", "Accounts Payable", Account.AccountType.LIABILITY)


@pytest.fixture
def vat_output(organization):
    return _account(organization, "2200", "VAT Output", Account.AccountType.LIABILITY)


@pytest.fixture
def accumulated_depreciation(organization):
    return _account(organization, "1590", "Accumulated Depreciation", Account.AccountType.ASSET)


@pytest.fixture
def revenue(organization):
    return _account(organization, "4000", "Sales Revenue", Account.AccountType.REVENUE)


@pytest.fixture
def expense(organization):
    return _account(organization, "6000", "General Expense", Account.AccountType.EXPENSE)


@pytest.fixture
def depreciation_expense(organization):
    return _account(organization, "6500", "Depreciation Expense", Account.AccountType.EXPENSE)


@pytest.fixture
def inventory(organization):
    return _account(organization, "1200", "Inventory", Account.AccountType.ASSET)


@pytest.fixture
def fixed_asset(organization):
    return _account(organization, "1500", "Equipment", Account.AccountType.ASSET)


@pytest.fixture
def cost_of_sales(organization):
    return _account(organization, "5000", "Cost of Goods Sold", Account.AccountType.COST_OF_SALES)


@pytest.fixture
def inventory_revaluation(organization):
    return _account(organization, "5900", "Inventory Revaluation", Account.AccountType.EXPENSE)


@pytest.fixture
def disposal_gain_loss(organization):
    return _account(organization, "7100", "Gain/Loss on Disposal", Account.AccountType.EXPENSE)


@pytest.fixture
def foreign_account(second_organization):
    """An account that belongs to a different tenant."""
    return _account(second_organization, "1000", "Bank", Account.AccountType.ASSET)


@pytest.fixture
def role_mappings(
    organization,
    cash,
    receivable,
    vat_input,
    payable,
    vat_output,
    accumulated_depreciation,
    revenue,
    expense,
    depreciation_expense,
    inventory,
    fixed_asset,
    cost_of_sales,
    inventory_revaluation,
    disposal_gain_loss,
):
    """Map every role the posting builders use."""
    mapping = {
        AccountRole.CASH: cash,
        AccountRole.ACCOUNTS_RECEIVABLE: receivable,
        AccountRole.VAT_INPUT: vat_input,
        AccountRole.ACCOUNTS_PAYABLE: payable,
        AccountRole.VAT_OUTPUT: vat_output,
        AccountRole.ACCUMULATED_DEPRECIATION: accumulated_depreciation,
        AccountRole.REVENUE: revenue,
        AccountRole.EXPENSE: expense,
        AccountRole.DEPRECIATION_EXPENSE: depreciation_expense,
        AccountRole.INVENTORY: inventory,
        AccountRole.FIXED_ASSET: fixed_asset,
        AccountRole.COST_OF_SALES: cost_of_sales,
        AccountRole.INVENTORY_REVALUATION: inventory_revaluation,
        AccountRole.DISPOSAL_GAIN_LOSS: disposal_gain_loss,
    }
    for role, account in mapping.items():
        map_account(organization, role, account)
    return mapping


@pytest.fixture
def eur_rate(organization):
    return ExchangeRate.objects.create(
        organization=organization,
        currency="EUR",
        rate=Decimal("1.100000"),
        effective_date=date(2026, 1, 1),
    )


# =============================================================================
# Entry Helpers
# =============================================================================

@pytest.fixture
def entries():
    """
    Build an entry list: entries((account, "DEBIT", "100.00"), ...).

    Extra keys (currency, exchange_rate, description) go in a 4th dict item.
    """
    def build(*lines):
        result = []
        for line in lines:
            account, side, amount = line[:3]
            extra = line[3] if len(line) > 3 else {}
            result.append({
                "account_id": account.public_id,
                "entry_type": side,
                "amount": amount,
                **extra,
            })
        return result
    return build


@pytest.fixture
def invoice_entries(entries, receivable, revenue, vat_output):
    """AR 118 / Revenue 100 + VAT 18."""
    return entries(
        (receivable, LedgerEntry.EntryType.DEBIT, "118.00"),
        (revenue, LedgerEntry.EntryType.CREDIT, "100.00"),
        (vat_output, LedgerEntry.EntryType.CREDIT, "18.00"),
    )


# =============================================================================
# API Fixtures
# =============================================================================

@pytest.fixture
def api_client(user):
    client = APIClient()
    client.force_authenticate(user=user)
    return client
