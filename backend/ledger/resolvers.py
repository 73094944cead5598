# ledger/resolvers.py
"""
Typed chart-of-accounts lookup.

Posting code never looks accounts up by code or name. It declares the
roles it needs, and the resolver fails at construction if any of them is
unmapped, before a single entry is built.

Usage:
    coa = ChartOfAccountsResolver(org, [AccountRole.ACCOUNTS_RECEIVABLE, AccountRole.REVENUE])
    entries = [
        coa.debit(AccountRole.ACCOUNTS_RECEIVABLE, "118.00"),
        coa.credit(AccountRole.REVENUE, "118.00"),
    ]
"""

from typing import Iterable

from django.db import transaction

from ledger.commands import EntryInput
from ledger.errors import MissingAccountMappingError, NotFoundError, ValidationError
from ledger.models import Account, AccountMapping, AccountRole, LedgerEntry


def _role(value) -> AccountRole:
    try:
        return AccountRole(value)
    except ValueError:
        raise ValidationError(f"Unknown account role: {value!r}.", field="role")


class ChartOfAccountsResolver:
    def __init__(self, organization, required_roles: Iterable):
        self.organization = organization
        self.roles = [_role(r) for r in required_roles]

        mappings = AccountMapping.objects.filter(
            organization=organization,
            role__in=self.roles,
        ).select_related("account")
        self._accounts = {
            AccountRole(m.role): m.account
            for m in mappings
            if m.account.is_active
        }

        missing = [r for r in self.roles if r not in self._accounts]
        if missing:
            raise MissingAccountMappingError(missing)

    def __getitem__(self, role) -> Account:
        role = _role(role)
        if role not in self._accounts:
            # Not declared up front
            raise MissingAccountMappingError([role])
        return self._accounts[role]

    def __contains__(self, role) -> bool:
        return _role(role) in self._accounts

    def debit(self, role, amount, description: str = "", **kwargs) -> EntryInput:
        return EntryInput(
            account_id=self[role],
            entry_type=LedgerEntry.EntryType.DEBIT,
            amount=amount,
            description=description,
            **kwargs,
        )

    def credit(self, role, amount, description: str = "", **kwargs) -> EntryInput:
        return EntryInput(
            account_id=self[role],
            entry_type=LedgerEntry.EntryType.CREDIT,
            amount=amount,
            description=description,
            **kwargs,
        )


@transaction.atomic
def map_account(organization, role, account: Account) -> AccountMapping:
    """Point ``role`` at ``account``, replacing any previous mapping."""
    role = _role(role)
    if account.organization_id != organization.id:
        raise NotFoundError(f"Account {account.public_id} not found.")
    mapping, _ = AccountMapping.objects.update_or_create(
        organization=organization,
        role=role,
        defaults={"account": account},
    )
    return mapping
