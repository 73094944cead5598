# ledger/balances.py
"""
Read-side queries over posted ledger entries.

Only POSTED transactions count. DRAFT transactions are not yet on the
books and VOIDED ones have been taken off them.
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Optional

from django.db.models import Count, Q, Sum

from ledger.commands import balance_epsilon
from ledger.models import Account, LedgerEntry, Transaction

ZERO = Decimal("0")

_DEBIT = Q(entry_type=LedgerEntry.EntryType.DEBIT)
_CREDIT = Q(entry_type=LedgerEntry.EntryType.CREDIT)


@dataclass(frozen=True)
class AccountBalance:
    account: Account
    total_debit: Decimal
    total_credit: Decimal
    balance: Decimal  # positive on the account's normal side


@dataclass(frozen=True)
class TransactionTotals:
    total_debits: Decimal
    total_credits: Decimal
    difference: Decimal
    is_balanced: bool


@dataclass
class TrialBalance:
    as_of: Optional[date]
    rows: list = field(default_factory=list)
    total_debit: Decimal = ZERO
    total_credit: Decimal = ZERO

    @property
    def is_balanced(self) -> bool:
        return abs(self.total_debit - self.total_credit) <= balance_epsilon()


def _signed(account: Account, debit: Decimal, credit: Decimal) -> Decimal:
    return debit - credit if account.is_debit_normal else credit - debit


def _posted_entries(as_of=None):
    qs = LedgerEntry.objects.filter(transaction__status=Transaction.Status.POSTED)
    if as_of is not None:
        qs = qs.filter(transaction__date__lte=as_of)
    return qs


def account_balance(account: Account, as_of: Optional[date] = None) -> AccountBalance:
    """Base-currency balance of one account from POSTED transactions up to ``as_of``."""
    sums = _posted_entries(as_of).filter(account=account).aggregate(
        debit=Sum("amount_in_base", filter=_DEBIT, default=ZERO),
        credit=Sum("amount_in_base", filter=_CREDIT, default=ZERO),
    )
    return AccountBalance(
        account=account,
        total_debit=sums["debit"],
        total_credit=sums["credit"],
        balance=_signed(account, sums["debit"], sums["credit"]),
    )


def transaction_totals(txn: Transaction) -> TransactionTotals:
    """Debit/credit summary of a single transaction, whatever its status."""
    sums = txn.entries.aggregate(
        debit=Sum("amount_in_base", filter=_DEBIT, default=ZERO),
        credit=Sum("amount_in_base", filter=_CREDIT, default=ZERO),
    )
    difference = abs(sums["debit"] - sums["credit"])
    return TransactionTotals(
        total_debits=sums["debit"],
        total_credits=sums["credit"],
        difference=difference,
        is_balanced=difference <= balance_epsilon(),
    )


def trial_balance(organization, as_of: Optional[date] = None) -> TrialBalance:
    """
    One row per account with posted activity, ordered by account code.

    For a consistent ledger total_debit == total_credit.
    """
    sums = (
        _posted_entries(as_of)
        .filter(organization=organization)
        .order_by()
        .values("account_id")
        .annotate(
            debit=Sum("amount_in_base", filter=_DEBIT, default=ZERO),
            credit=Sum("amount_in_base", filter=_CREDIT, default=ZERO),
        )
    )
    by_account = {row["account_id"]: row for row in sums}
    accounts = Account.objects.filter(pk__in=by_account.keys()).order_by("code")

    result = TrialBalance(as_of=as_of)
    for account in accounts:
        row = by_account[account.pk]
        result.rows.append(AccountBalance(
            account=account,
            total_debit=row["debit"],
            total_credit=row["credit"],
            balance=_signed(account, row["debit"], row["credit"]),
        ))
        result.total_debit += row["debit"]
        result.total_credit += row["credit"]
    return result


def find_unbalanced_transactions(organization=None, limit: Optional[int] = None) -> list:
    """
    POSTED transactions with no entries or whose entries do not balance.

    The posting commands never produce these; a hit means rows were
    written around the command layer.
    """
    eps = balance_epsilon()
    qs = Transaction.objects.filter(status=Transaction.Status.POSTED)
    if organization is not None:
        qs = qs.filter(organization=organization)
    qs = (
        qs.annotate(
            entry_count=Count("entries"),
            debit_total=Sum(
                "entries__amount_in_base",
                filter=Q(entries__entry_type=LedgerEntry.EntryType.DEBIT),
                default=ZERO,
            ),
            credit_total=Sum(
                "entries__amount_in_base",
                filter=Q(entries__entry_type=LedgerEntry.EntryType.CREDIT),
                default=ZERO,
            ),
        )
        .order_by("id")
    )
    found = []
    for txn in qs.iterator():
        if txn.entry_count == 0 or abs(txn.debit_total - txn.credit_total) > eps:
            found.append(txn)
            if limit is not None and len(found) >= limit:
                break
    return found
