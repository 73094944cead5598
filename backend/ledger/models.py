# ledger/models.py
"""
Ledger models for Ledgerworks.

Write rules:
- Transactions and entries are created through ledger.commands only.
- A POSTED transaction is immutable except for the move to VOIDED and
  its audit fields. Nothing is ever physically deleted.
- Ledger entries are insert-only.

Models:
- Account: Chart of accounts
- Transaction: Transaction header (one financial event)
- LedgerEntry: One debit or credit line of a transaction
- OrganizationSequence: Persisted counters behind transaction numbers
- ExchangeRate: Dated conversion rates into the base currency
- AccountMapping: Which account plays which posting role
"""

import uuid
from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import models
from django.db.models import Q, Sum

from accounts.models import Organization
from ledger.errors import ImmutableRecordError


class OrganizationSequence(models.Model):
    """
    Per-organization counters for sequential identifiers.

    Allocated by commands under select_for_update; a consumed value is
    never handed out again, even if the insert that used it fails.
    """

    organization = models.ForeignKey(
        Organization,
        on_delete=models.CASCADE,
        related_name="sequences",
    )
    name = models.CharField(max_length=100)
    next_value = models.BigIntegerField(default=1)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["organization", "name"],
                name="uniq_organization_sequence_name",
            ),
        ]

    def __str__(self):
        return f"{self.organization_id}:{self.name}={self.next_value}"


class Account(models.Model):
    """
    Chart of Accounts entry.

    The normal balance side only decides the sign balances are reported
    with; the posting invariant is debits == credits regardless of type.
    """

    class AccountType(models.TextChoices):
        ASSET = "ASSET", "Asset"
        LIABILITY = "LIABILITY", "Liability"
        EQUITY = "EQUITY", "Equity"
        REVENUE = "REVENUE", "Revenue"
        EXPENSE = "EXPENSE", "Expense"
        COST_OF_SALES = "COST_OF_SALES", "Cost of Sales"

    class NormalBalance(models.TextChoices):
        DEBIT = "DEBIT", "Debit"
        CREDIT = "CREDIT", "Credit"

    NORMAL_BALANCE_MAP = {
        AccountType.ASSET: NormalBalance.DEBIT,
        AccountType.EXPENSE: NormalBalance.DEBIT,
        AccountType.COST_OF_SALES: NormalBalance.DEBIT,
        AccountType.LIABILITY: NormalBalance.CREDIT,
        AccountType.EQUITY: NormalBalance.CREDIT,
        AccountType.REVENUE: NormalBalance.CREDIT,
    }

    organization = models.ForeignKey(
        Organization,
        on_delete=models.CASCADE,
        related_name="accounts",
    )

    public_id = models.UUIDField(
        default=uuid.uuid4,
        editable=False,
        unique=True,
    )

    code = models.CharField(max_length=20)
    name = models.CharField(max_length=255)

    account_type = models.CharField(
        max_length=20,
        choices=AccountType.choices,
        db_column="type",
    )

    # Blank means the organization's base currency
    currency = models.CharField(max_length=3, blank=True, default="")
    description = models.TextField(blank=True, default="")
    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["organization", "code"],
                name="uniq_account_code_per_organization",
            )
        ]
        ordering = ["code"]
        indexes = [
            models.Index(fields=["organization", "account_type"], name="ledger_account_org_type_idx"),
        ]

    def __str__(self):
        return f"{self.code} - {self.name}"

    @property
    def normal_balance(self) -> str:
        return self.NORMAL_BALANCE_MAP[self.account_type]

    @property
    def is_debit_normal(self) -> bool:
        return self.normal_balance == self.NormalBalance.DEBIT


class Transaction(models.Model):
    """
    Transaction header.

    Workflow: DRAFT -> POSTED -> VOIDED
    - DRAFT: Balanced and persisted, not yet counted in balances
    - POSTED: Final; counted in balances
    - VOIDED: Cancelled in place; entries kept, excluded from balances

    A POSTED transaction may instead be corrected by a reversal: a new
    POSTED transaction pointing back through ``reverses``.
    """

    class Type(models.TextChoices):
        JOURNAL_ENTRY = "JOURNAL_ENTRY", "Journal Entry"
        INVOICE = "INVOICE", "Invoice"
        BILL = "BILL", "Bill"
        PAYMENT = "PAYMENT", "Payment"
        RECEIPT = "RECEIPT", "Receipt"
        BANK_TRANSFER = "BANK_TRANSFER", "Bank Transfer"
        INVENTORY_ADJUSTMENT = "INVENTORY_ADJUSTMENT", "Inventory Adjustment"
        INVENTORY_REVALUATION = "INVENTORY_REVALUATION", "Inventory Revaluation"
        DEPRECIATION = "DEPRECIATION", "Depreciation"
        ASSET_DISPOSAL = "ASSET_DISPOSAL", "Asset Disposal"
        CREDIT_NOTE = "CREDIT_NOTE", "Credit Note"
        DEBIT_NOTE = "DEBIT_NOTE", "Debit Note"
        OPENING_BALANCE = "OPENING_BALANCE", "Opening Balance"
        CLOSING_ENTRY = "CLOSING_ENTRY", "Closing Entry"

    class Status(models.TextChoices):
        DRAFT = "DRAFT", "Draft"
        POSTED = "POSTED", "Posted"
        VOIDED = "VOIDED", "Voided"

    # Fields a POSTED transaction may still change (the void transition)
    MUTABLE_WHEN_POSTED = frozenset({
        "status", "voided_at", "voided_by", "void_reason", "updated_at",
    })

    organization = models.ForeignKey(
        Organization,
        on_delete=models.CASCADE,
        related_name="transactions",
    )

    public_id = models.UUIDField(
        default=uuid.uuid4,
        editable=False,
        unique=True,
    )

    number = models.CharField(max_length=50)
    date = models.DateField()
    transaction_type = models.CharField(
        max_length=30,
        choices=Type.choices,
        db_column="type",
    )
    description = models.CharField(max_length=255)
    notes = models.TextField(blank=True, default="")

    status = models.CharField(
        max_length=10,
        choices=Status.choices,
        default=Status.DRAFT,
    )

    # Source document (e.g. "Invoice" + its id)
    reference_type = models.CharField(max_length=50, blank=True, default="")
    reference_id = models.CharField(max_length=100, blank=True, default="")

    reverses = models.OneToOneField(
        "self",
        null=True,
        blank=True,
        on_delete=models.PROTECT,
        related_name="reversed_by",
    )

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="ledger_transactions_created",
    )
    posted_at = models.DateTimeField(null=True, blank=True)
    voided_at = models.DateTimeField(null=True, blank=True)
    voided_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="ledger_transactions_voided",
    )
    void_reason = models.CharField(max_length=255, blank=True, default="")

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["organization", "number"],
                name="uniq_transaction_number_per_organization",
            ),
        ]
        ordering = ["-date", "-id"]
        indexes = [
            models.Index(fields=["organization", "date"], name="ledger_txn_org_date_idx"),
            models.Index(fields=["organization", "status"], name="ledger_txn_org_status_idx"),
            models.Index(fields=["organization", "reference_type", "reference_id"], name="ledger_txn_org_reference_idx"),
        ]

    def __str__(self):
        return f"{self.number} ({self.status})"

    def save(self, *args, **kwargs):
        """
        Enforce posted-transaction immutability.

        DRAFT rows may change freely. POSTED rows may only move to VOIDED
        (plus its audit fields). VOIDED rows are final.
        """
        if self.pk:
            previous = type(self).objects.filter(pk=self.pk).first()
            if previous is not None:
                self._guard_immutable(previous)
        super().save(*args, **kwargs)

    def _guard_immutable(self, previous):
        if previous.status == self.Status.DRAFT:
            return
        if previous.status == self.Status.VOIDED:
            raise ImmutableRecordError(f"Transaction {previous.number} is voided and cannot be modified.")
        if self.status not in (self.Status.POSTED, self.Status.VOIDED):
            raise ImmutableRecordError(
                f"Transaction {previous.number} is posted; it cannot return to {self.status}."
            )
        changed = [
            field.name
            for field in self._meta.concrete_fields
            if field.name not in self.MUTABLE_WHEN_POSTED
            and getattr(self, field.attname) != getattr(previous, field.attname)
        ]
        if changed:
            raise ImmutableRecordError(
                f"Transaction {previous.number} is posted; cannot change {', '.join(changed)}."
            )

    def delete(self, *args, **kwargs):
        raise ImmutableRecordError("Transactions are never deleted. Void or reverse them instead.")

    @property
    def is_reversed(self) -> bool:
        return Transaction.objects.filter(reverses_id=self.pk).exists()

    @property
    def total_debit(self) -> Decimal:
        """Sum of debit entries in base currency."""
        return self.entries.filter(
            entry_type=LedgerEntry.EntryType.DEBIT
        ).aggregate(total=Sum("amount_in_base"))["total"] or Decimal("0")

    @property
    def total_credit(self) -> Decimal:
        """Sum of credit entries in base currency."""
        return self.entries.filter(
            entry_type=LedgerEntry.EntryType.CREDIT
        ).aggregate(total=Sum("amount_in_base"))["total"] or Decimal("0")


class LedgerEntry(models.Model):
    """
    One movement of a transaction: a debit or credit to one account.

    ``amount`` is in ``currency``; ``amount_in_base`` is the same movement
    in the organization's base currency and is what the balance invariant
    is checked on.
    """

    class EntryType(models.TextChoices):
        DEBIT = "DEBIT", "Debit"
        CREDIT = "CREDIT", "Credit"

    transaction = models.ForeignKey(
        Transaction,
        on_delete=models.CASCADE,
        related_name="entries",
    )

    organization = models.ForeignKey(
        Organization,
        on_delete=models.CASCADE,
        related_name="ledger_entries",
    )

    line_no = models.PositiveIntegerField()

    account = models.ForeignKey(
        Account,
        on_delete=models.PROTECT,
        related_name="ledger_entries",
    )

    entry_type = models.CharField(max_length=6, choices=EntryType.choices)
    amount = models.DecimalField(max_digits=19, decimal_places=4)
    currency = models.CharField(max_length=3)
    exchange_rate = models.DecimalField(max_digits=12, decimal_places=6, default=Decimal("1"))
    amount_in_base = models.DecimalField(max_digits=19, decimal_places=4)
    description = models.CharField(max_length=255, blank=True, default="")

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["transaction", "line_no"]
        constraints = [
            models.UniqueConstraint(
                fields=["transaction", "line_no"],
                name="uniq_ledger_entry_line_no",
            ),
            models.CheckConstraint(
                condition=Q(amount__gt=0),
                name="chk_ledger_entry_amount_positive",
            ),
            models.CheckConstraint(
                condition=Q(entry_type__in=["DEBIT", "CREDIT"]),
                name="chk_ledger_entry_type",
            ),
        ]
        indexes = [
            models.Index(fields=["organization", "account"], name="ledger_entry_org_account_idx"),
        ]

    def __str__(self):
        return f"{self.entry_type} {self.amount} {self.currency} -> {self.account_id}"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ImmutableRecordError("Ledger entries are insert-only.")
        if self.transaction_id and self.organization_id and self.transaction.organization_id != self.organization_id:
            raise DjangoValidationError("LedgerEntry organization must match transaction organization.")
        if self.account_id and self.organization_id and self.account.organization_id != self.organization_id:
            raise DjangoValidationError("LedgerEntry organization must match account organization.")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ImmutableRecordError("Ledger entries are never deleted.")


class ExchangeRate(models.Model):
    """
    Units of the organization's base currency per one unit of ``currency``,
    in effect from ``effective_date`` until the next rate for that currency.
    """

    organization = models.ForeignKey(
        Organization,
        on_delete=models.CASCADE,
        related_name="exchange_rates",
    )
    currency = models.CharField(max_length=3)
    rate = models.DecimalField(max_digits=12, decimal_places=6)
    effective_date = models.DateField()
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["currency", "-effective_date"]
        constraints = [
            models.UniqueConstraint(
                fields=["organization", "currency", "effective_date"],
                name="uniq_exchange_rate_per_day",
            ),
            models.CheckConstraint(
                condition=Q(rate__gt=0),
                name="chk_exchange_rate_positive",
            ),
        ]

    def __str__(self):
        return f"{self.currency}@{self.rate} from {self.effective_date}"

    def save(self, *args, **kwargs):
        self.currency = self.currency.upper()
        super().save(*args, **kwargs)


class AccountRole(models.TextChoices):
    ACCOUNTS_RECEIVABLE = "ACCOUNTS_RECEIVABLE", "Accounts Receivable"
    ACCOUNTS_PAYABLE = "ACCOUNTS_PAYABLE", "Accounts Payable"
    CASH = "CASH", "Cash"
    REVENUE = "REVENUE", "Revenue"
    EXPENSE = "EXPENSE", "Expense"
    VAT_OUTPUT = "VAT_OUTPUT", "VAT Output"
    VAT_INPUT = "VAT_INPUT", "VAT Input"
    INVENTORY = "INVENTORY", "Inventory"
    COST_OF_SALES = "COST_OF_SALES", "Cost of Sales"
    DEPRECIATION_EXPENSE = "DEPRECIATION_EXPENSE", "Depreciation Expense"
    ACCUMULATED_DEPRECIATION = "ACCUMULATED_DEPRECIATION", "Accumulated Depreciation"
    FIXED_ASSET = "FIXED_ASSET", "Fixed Asset"
    DISPOSAL_GAIN_LOSS = "DISPOSAL_GAIN_LOSS", "Gain/Loss on Disposal"
    INVENTORY_REVALUATION = "INVENTORY_REVALUATION", "Inventory Revaluation"


class AccountMapping(models.Model):
    """Binds a posting role to a concrete account of the organization."""

    organization = models.ForeignKey(
        Organization,
        on_delete=models.CASCADE,
        related_name="account_mappings",
    )
    role = models.CharField(max_length=40, choices=AccountRole.choices)
    account = models.ForeignKey(
        Account,
        on_delete=models.PROTECT,
        related_name="role_mappings",
    )
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["organization", "role"],
                name="uniq_account_mapping_role",
            ),
        ]

    def __str__(self):
        return f"{self.role} -> {self.account_id}"

    def save(self, *args, **kwargs):
        if self.account_id and self.organization_id and self.account.organization_id != self.organization_id:
            raise DjangoValidationError("AccountMapping account must belong to the same organization.")
        super().save(*args, **kwargs)
