# ledger/commands.py
"""
Command layer for ledger operations.

Commands are the single point where ledger state changes happen.
Views and posting builders call commands; commands enforce rules,
write rows and record events.

Pattern:
1. Validate input and policies (raise typed errors from ledger.errors)
2. Allocate a transaction number
3. Write header + entries in one database transaction
4. Emit event (emit_event) in the same database transaction
5. Return the Transaction

Numbering: ``<PREFIX>-<year>-<seq>``, one OrganizationSequence per
prefix and year. The counter moves in its own savepoint; the inserts run
in a second one. A unique-number collision rolls back only the inserts
and retries with the next counter value.
"""

import logging
import uuid
from dataclasses import dataclass, fields as dataclass_fields
from datetime import date as date_cls, datetime
from decimal import Decimal
from typing import Any, Iterable, Optional

from django.conf import settings
from django.db import IntegrityError, transaction
from django.utils import timezone

from accounts.authz import ActorContext
from events.emitter import emit_event
from events.types import (
    EventTypes,
    LedgerEntryData,
    TransactionDraftedData,
    TransactionPostedData,
    TransactionReversedData,
    TransactionVoidedData,
)
from ledger.currency import normalize_currency, parse_amount, resolve_rate, to_base
from ledger.errors import (
    LedgerError,
    NotFoundError,
    PersistenceConflictError,
    UnbalancedEntryError,
    ValidationError,
)
from ledger.models import Account, LedgerEntry, OrganizationSequence, Transaction
from ledger.policies import (
    assert_can_post_to_account,
    assert_can_post_transaction,
    assert_can_reverse_transaction,
    assert_can_void_transaction,
)
from ops import metrics

logger = logging.getLogger(__name__)


TYPE_PREFIXES = {
    Transaction.Type.JOURNAL_ENTRY: "JE",
    Transaction.Type.INVOICE: "INV",
    Transaction.Type.BILL: "BILL",
    Transaction.Type.PAYMENT: "PAY",
    Transaction.Type.RECEIPT: "REC",
    Transaction.Type.BANK_TRANSFER: "TRF",
    Transaction.Type.INVENTORY_ADJUSTMENT: "ADJ",
    Transaction.Type.INVENTORY_REVALUATION: "REVAL",
    Transaction.Type.DEPRECIATION: "DEP",
    Transaction.Type.ASSET_DISPOSAL: "DISP",
    Transaction.Type.CREDIT_NOTE: "CN",
    Transaction.Type.DEBIT_NOTE: "DN",
    Transaction.Type.OPENING_BALANCE: "OB",
    Transaction.Type.CLOSING_ENTRY: "CE",
}
DEFAULT_PREFIX = "TXN"


@dataclass(frozen=True)
class EntryInput:
    """
    One proposed movement.

    account_id is an Account public id (UUID or its string form) or an
    Account instance, as returned by ChartOfAccountsResolver.
    """
    account_id: Any
    entry_type: str
    amount: Any
    description: str = ""
    currency: Optional[str] = None
    exchange_rate: Any = None

    @classmethod
    def coerce(cls, value, index: int) -> "EntryInput":
        if isinstance(value, cls):
            return value
        if not isinstance(value, dict):
            raise ValidationError(f"Entry {index}: expected an object, got {type(value).__name__}.")
        allowed = {f.name for f in dataclass_fields(cls)}
        unknown = set(value) - allowed
        if unknown:
            raise ValidationError(f"Entry {index}: unknown field(s) {sorted(unknown)}.")
        missing = {"account_id", "entry_type", "amount"} - set(value)
        if missing:
            raise ValidationError(f"Entry {index}: missing field(s) {sorted(missing)}.")
        return cls(**value)


@dataclass(frozen=True)
class PreparedEntry:
    """A validated entry with its account resolved and base amount computed."""
    account: Account
    entry_type: str
    amount: Decimal
    currency: str
    exchange_rate: Decimal
    amount_in_base: Decimal
    description: str = ""

    def mirrored(self) -> "PreparedEntry":
        """Same movement on the opposite side."""
        flipped = (
            LedgerEntry.EntryType.CREDIT
            if self.entry_type == LedgerEntry.EntryType.DEBIT
            else LedgerEntry.EntryType.DEBIT
        )
        return PreparedEntry(
            account=self.account,
            entry_type=flipped,
            amount=self.amount,
            currency=self.currency,
            exchange_rate=self.exchange_rate,
            amount_in_base=self.amount_in_base,
            description=(f"Reversal: {self.description}" if self.description else "Reversal")[:255],
        )


# =============================================================================
# Helpers
# =============================================================================

def balance_epsilon() -> Decimal:
    return Decimal(str(settings.LEDGER_BALANCE_EPSILON))


def format_transaction_number(prefix: str, year: int, value: int) -> str:
    padding = settings.LEDGER_NUMBER_PADDING
    return f"{prefix}-{year}-{value:0{padding}d}"


def _next_organization_sequence(organization, name: str) -> int:
    """
    Allocate the next sequence value for an organization/name pair.

    Uses select_for_update to avoid concurrent duplicates. Runs in its own
    savepoint so that a later failed insert does not give the value back.
    """
    with transaction.atomic():
        seq = OrganizationSequence.objects.select_for_update().filter(
            organization=organization,
            name=name,
        ).first()
        if seq is None:
            try:
                with transaction.atomic():
                    seq = OrganizationSequence.objects.create(
                        organization=organization,
                        name=name,
                        next_value=1,
                    )
            except IntegrityError:
                seq = OrganizationSequence.objects.select_for_update().get(
                    organization=organization,
                    name=name,
                )

        value = seq.next_value
        seq.next_value = value + 1
        seq.save(update_fields=["next_value", "updated_at"])
        return value


def _actor_user_id(actor: ActorContext) -> Optional[int]:
    user = actor.recorded_user
    return user.pk if user is not None else None


def _coerce_date(value) -> date_cls:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date_cls):
        return value
    if isinstance(value, str):
        try:
            return date_cls.fromisoformat(value)
        except ValueError:
            pass
    raise ValidationError(f"Invalid date: {value!r}. Expected YYYY-MM-DD.", field="date")


def _parse_public_id(value, label: str) -> uuid.UUID:
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (ValueError, AttributeError, TypeError):
        raise NotFoundError(f"{label} {value} not found.")


def _get_transaction(actor: ActorContext, transaction_id, for_update: bool = True) -> Transaction:
    if isinstance(transaction_id, Transaction):
        transaction_id = transaction_id.public_id
    public_id = _parse_public_id(transaction_id, "Transaction")
    qs = Transaction.objects.filter(organization=actor.organization, public_id=public_id)
    if for_update:
        qs = qs.select_for_update()
    txn = qs.first()
    if txn is None:
        raise NotFoundError(f"Transaction {transaction_id} not found.")
    return txn


def _reject(actor: ActorContext, exc: LedgerError, operation: str) -> None:
    metrics.posting_rejections.labels(reason=exc.code).inc()
    logger.warning(
        "Ledger %s rejected: %s",
        operation,
        exc.message,
        extra={
            "organization_id": actor.organization_id,
            "error_code": exc.code,
        },
    )


# =============================================================================
# Entry preparation
# =============================================================================

def _resolve_accounts(actor: ActorContext, entries: list[EntryInput]) -> dict:
    """Load every referenced account of the actor's organization in one query."""
    keys = []
    for index, entry in enumerate(entries, start=1):
        ref = entry.account_id
        if isinstance(ref, Account):
            if ref.organization_id != actor.organization.id:
                raise NotFoundError(f"Entry {index}: account {ref.public_id} not found.")
            keys.append(ref.public_id)
        else:
            keys.append(_parse_public_id(ref, f"Entry {index}: account"))

    accounts = {
        a.public_id: a
        for a in Account.objects.filter(organization=actor.organization, public_id__in=set(keys))
    }
    for index, key in enumerate(keys, start=1):
        if key not in accounts:
            raise NotFoundError(f"Entry {index}: account {key} not found.", account=key)
    return {index: accounts[key] for index, key in enumerate(keys, start=1)}


def prepare_entries(actor: ActorContext, entries: Iterable, on_date: date_cls) -> list[PreparedEntry]:
    """
    Validate proposed entries and compute their base-currency amounts.

    Raises:
        ValidationError: empty list, bad side or amount, inactive account,
            missing exchange rate, or only one side present
        NotFoundError: unknown or foreign account
        UnbalancedEntryError: debits and credits differ beyond epsilon
    """
    if entries is None:
        entries = []
    inputs = [EntryInput.coerce(e, i) for i, e in enumerate(entries, start=1)]
    if not inputs:
        raise ValidationError("Transaction must have at least one entry.")

    sides = set()
    for index, entry in enumerate(inputs, start=1):
        if entry.entry_type not in LedgerEntry.EntryType.values:
            raise ValidationError(
                f"Entry {index}: entry_type must be DEBIT or CREDIT, got {entry.entry_type!r}.",
                field="entry_type",
            )
        sides.add(entry.entry_type)
    if sides != {LedgerEntry.EntryType.DEBIT, LedgerEntry.EntryType.CREDIT}:
        raise ValidationError("Transaction must have at least one debit and one credit entry.")

    accounts = _resolve_accounts(actor, inputs)
    organization = actor.organization

    prepared = []
    for index, entry in enumerate(inputs, start=1):
        account = accounts[index]
        assert_can_post_to_account(account)
        amount = parse_amount(entry.amount, f"Entry {index} amount")
        currency = normalize_currency(entry.currency or account.currency or organization.base_currency)
        rate = resolve_rate(organization, currency, on_date, entry.exchange_rate)
        prepared.append(PreparedEntry(
            account=account,
            entry_type=entry.entry_type,
            amount=amount,
            currency=currency,
            exchange_rate=rate,
            amount_in_base=to_base(amount, rate),
            description=(entry.description or "")[:255],
        ))

    assert_balanced(prepared)
    return prepared


def totals(entries: Iterable) -> tuple[Decimal, Decimal]:
    """Base-currency debit and credit totals of prepared entries or LedgerEntry rows."""
    total_debits = Decimal("0")
    total_credits = Decimal("0")
    for entry in entries:
        if entry.entry_type == LedgerEntry.EntryType.DEBIT:
            total_debits += entry.amount_in_base
        else:
            total_credits += entry.amount_in_base
    return total_debits, total_credits


def assert_balanced(entries: Iterable) -> None:
    total_debits, total_credits = totals(entries)
    if abs(total_debits - total_credits) > balance_epsilon():
        raise UnbalancedEntryError(total_debits, total_credits)


# =============================================================================
# Persistence
# =============================================================================

def _persist_transaction(
    actor: ActorContext,
    *,
    entries: list[PreparedEntry],
    status: str,
    reverses: Optional[Transaction] = None,
    **header,
) -> Transaction:
    """Number and insert a transaction, retrying on number collisions."""
    organization = actor.organization
    prefix = TYPE_PREFIXES.get(header["transaction_type"], DEFAULT_PREFIX)
    year = header["date"].year
    sequence_name = f"{prefix}-{year}"
    posted_at = timezone.now() if status == Transaction.Status.POSTED else None
    max_attempts = settings.LEDGER_NUMBER_MAX_ATTEMPTS

    for attempt in range(1, max_attempts + 1):
        number = format_transaction_number(
            prefix, year, _next_organization_sequence(organization, sequence_name)
        )
        try:
            with transaction.atomic():
                txn = Transaction.objects.create(
                    organization=organization,
                    number=number,
                    status=status,
                    reverses=reverses,
                    created_by=actor.recorded_user,
                    posted_at=posted_at,
                    **header,
                )
                for line_no, entry in enumerate(entries, start=1):
                    LedgerEntry.objects.create(
                        transaction=txn,
                        organization=organization,
                        line_no=line_no,
                        account=entry.account,
                        entry_type=entry.entry_type,
                        amount=entry.amount,
                        currency=entry.currency,
                        exchange_rate=entry.exchange_rate,
                        amount_in_base=entry.amount_in_base,
                        description=entry.description,
                    )
            return txn
        except IntegrityError:
            if not Transaction.objects.filter(organization=organization, number=number).exists():
                raise
            metrics.number_collisions.inc()
            logger.warning(
                "Transaction number collision, retrying",
                extra={
                    "organization_id": organization.id,
                    "transaction_number": number,
                    "attempt": attempt,
                },
            )

    raise PersistenceConflictError(
        f"Could not allocate a unique {prefix} number after {max_attempts} attempts.",
        sequence=sequence_name,
    )


def _entry_payloads(txn: Transaction) -> list[dict]:
    return [
        LedgerEntryData(
            line_no=e.line_no,
            account_public_id=str(e.account.public_id),
            account_code=e.account.code,
            entry_type=e.entry_type,
            amount=str(e.amount),
            currency=e.currency,
            exchange_rate=str(e.exchange_rate),
            amount_in_base=str(e.amount_in_base),
            description=e.description,
        ).to_dict()
        for e in txn.entries.select_related("account").order_by("line_no")
    ]


def _emit_posted(actor: ActorContext, txn: Transaction, total_debit, total_credit):
    return emit_event(
        actor,
        EventTypes.TRANSACTION_POSTED,
        "Transaction",
        txn.public_id,
        TransactionPostedData(
            transaction_public_id=str(txn.public_id),
            number=txn.number,
            transaction_type=txn.transaction_type,
            date=txn.date.isoformat(),
            description=txn.description,
            base_currency=actor.organization.base_currency,
            total_debit=str(total_debit),
            total_credit=str(total_credit),
            posted_at=txn.posted_at.isoformat(),
            entries=_entry_payloads(txn),
            reference_type=txn.reference_type,
            reference_id=txn.reference_id,
            posted_by_id=_actor_user_id(actor),
            reverses_public_id=str(txn.reverses.public_id) if txn.reverses_id else None,
        ),
        idempotency_key=f"transaction.posted:{txn.public_id}",
    )


def _reload(txn: Transaction) -> Transaction:
    return Transaction.objects.select_related("reverses").prefetch_related("entries__account").get(pk=txn.pk)


# =============================================================================
# Commands
# =============================================================================

@transaction.atomic
def create_transaction(
    actor: ActorContext,
    *,
    date,
    transaction_type: str,
    description: str,
    entries: Iterable,
    notes: str = "",
    reference_type: str = "",
    reference_id: str = "",
    post: bool = True,
) -> Transaction:
    """
    Create a balanced transaction with its ledger entries.

    Args:
        actor: The actor context (organization + creating user)
        date: Transaction date (date or ISO string); its year picks the sequence
        transaction_type: One of Transaction.Type
        description: Header description
        entries: EntryInput objects or equivalent dicts
        post: POSTED when True (default), otherwise DRAFT

    Returns:
        The persisted Transaction with entries prefetched

    Raises:
        ValidationError, NotFoundError, UnbalancedEntryError: nothing written
        PersistenceConflictError: no unique number after the configured attempts
    """
    with metrics.posting_duration.time():
        try:
            txn_date = _coerce_date(date)
            if transaction_type not in Transaction.Type.values:
                raise ValidationError(
                    f"Unknown transaction type: {transaction_type!r}.",
                    field="transaction_type",
                )
            description = (description or "").strip()
            if not description:
                raise ValidationError("Description is required.", field="description")
            if len(description) > 255:
                raise ValidationError("Description is limited to 255 characters.", field="description")
            if len(reference_type or "") > 50 or len(str(reference_id or "")) > 100:
                raise ValidationError("Reference type or id is too long.", field="reference")
            prepared = prepare_entries(actor, entries, txn_date)
        except LedgerError as exc:
            _reject(actor, exc, "create")
            raise

        status = Transaction.Status.POSTED if post else Transaction.Status.DRAFT
        try:
            txn = _persist_transaction(
                actor,
                entries=prepared,
                status=status,
                date=txn_date,
                transaction_type=transaction_type,
                description=description,
                notes=notes or "",
                reference_type=reference_type or "",
                reference_id=str(reference_id or ""),
            )
        except PersistenceConflictError as exc:
            _reject(actor, exc, "create")
            raise

        total_debit, total_credit = totals(prepared)
        if post:
            _emit_posted(actor, txn, total_debit, total_credit)
            metrics.transactions_posted.labels(transaction_type=transaction_type).inc()
        else:
            emit_event(
                actor,
                EventTypes.TRANSACTION_DRAFTED,
                "Transaction",
                txn.public_id,
                TransactionDraftedData(
                    transaction_public_id=str(txn.public_id),
                    number=txn.number,
                    transaction_type=txn.transaction_type,
                    date=txn.date.isoformat(),
                    description=txn.description,
                    base_currency=actor.organization.base_currency,
                    total_debit=str(total_debit),
                    total_credit=str(total_credit),
                    entries=_entry_payloads(txn),
                    reference_type=txn.reference_type,
                    reference_id=txn.reference_id,
                    created_by_id=_actor_user_id(actor),
                ),
                idempotency_key=f"transaction.drafted:{txn.public_id}",
            )

    logger.info(
        "Transaction %s created",
        txn.number,
        extra={
            "organization_id": actor.organization_id,
            "transaction_number": txn.number,
            "transaction_type": transaction_type,
            "status": status,
            "total_debit": str(total_debit),
        },
    )
    return _reload(txn)


@transaction.atomic
def post_transaction(actor: ActorContext, transaction_id) -> Transaction:
    """
    Post a DRAFT transaction.

    Balance and account activity are checked again: an account may have
    been deactivated since the draft was saved.
    """
    try:
        txn = _get_transaction(actor, transaction_id)
        assert_can_post_transaction(actor, txn)
        entries = list(txn.entries.select_related("account"))
        if not entries:
            raise ValidationError(f"Transaction {txn.number} has no entries.")
        for entry in entries:
            assert_can_post_to_account(entry.account)
        assert_balanced(entries)
    except LedgerError as exc:
        _reject(actor, exc, "post")
        raise

    txn.status = Transaction.Status.POSTED
    txn.posted_at = timezone.now()
    txn.save(update_fields=["status", "posted_at", "updated_at"])

    total_debit, total_credit = totals(entries)
    _emit_posted(actor, txn, total_debit, total_credit)
    metrics.transactions_posted.labels(transaction_type=txn.transaction_type).inc()

    logger.info(
        "Transaction %s posted",
        txn.number,
        extra={"organization_id": actor.organization_id, "transaction_number": txn.number},
    )
    return _reload(txn)


@transaction.atomic
def void_transaction(actor: ActorContext, transaction_id, reason: str = "") -> Transaction:
    """
    Void a POSTED transaction in place.

    Entries are kept untouched; the transaction simply stops counting in
    balances. No offsetting entries are written (use reverse_transaction
    for that).
    """
    try:
        txn = _get_transaction(actor, transaction_id)
        assert_can_void_transaction(actor, txn)
    except LedgerError as exc:
        _reject(actor, exc, "void")
        raise

    reason = (reason or "")[:255]
    txn.status = Transaction.Status.VOIDED
    txn.voided_at = timezone.now()
    txn.voided_by = actor.recorded_user
    txn.void_reason = reason
    txn.save(update_fields=["status", "voided_at", "voided_by", "void_reason", "updated_at"])

    emit_event(
        actor,
        EventTypes.TRANSACTION_VOIDED,
        "Transaction",
        txn.public_id,
        TransactionVoidedData(
            transaction_public_id=str(txn.public_id),
            number=txn.number,
            voided_at=txn.voided_at.isoformat(),
            reason=reason,
            voided_by_id=_actor_user_id(actor),
        ),
        idempotency_key=f"transaction.voided:{txn.public_id}",
    )
    metrics.transactions_voided.inc()

    logger.info(
        "Transaction %s voided",
        txn.number,
        extra={"organization_id": actor.organization_id, "transaction_number": txn.number},
    )
    return _reload(txn)


@transaction.atomic
def reverse_transaction(actor: ActorContext, transaction_id, reason: str = "", date=None) -> Transaction:
    """
    Reverse a POSTED transaction.

    Creates a new POSTED journal entry whose entries mirror the original
    line by line (same account, amount, currency, rate and base amount)
    with DEBIT and CREDIT swapped. The original stays POSTED.

    Emits TWO events:
    1. transaction.posted for the reversal
    2. transaction.reversed for the original (audit link)

    Returns:
        The reversing Transaction
    """
    try:
        original = _get_transaction(actor, transaction_id)
        assert_can_reverse_transaction(actor, original)
        reversal_date = _coerce_date(date) if date is not None else timezone.localdate()
    except LedgerError as exc:
        _reject(actor, exc, "reverse")
        raise

    reason = reason or ""
    mirrored = [
        PreparedEntry(
            account=e.account,
            entry_type=e.entry_type,
            amount=e.amount,
            currency=e.currency,
            exchange_rate=e.exchange_rate,
            amount_in_base=e.amount_in_base,
            description=e.description,
        ).mirrored()
        for e in original.entries.select_related("account").order_by("line_no")
    ]
    description = f"Reversal of {original.number}"
    if reason:
        description = f"{description}: {reason}"

    reversal = _persist_transaction(
        actor,
        entries=mirrored,
        status=Transaction.Status.POSTED,
        reverses=original,
        date=reversal_date,
        transaction_type=Transaction.Type.JOURNAL_ENTRY,
        description=description[:255],
        notes=reason,
        reference_type="Transaction",
        reference_id=str(original.public_id),
    )

    total_debit, total_credit = totals(mirrored)
    _emit_posted(actor, reversal, total_debit, total_credit)
    emit_event(
        actor,
        EventTypes.TRANSACTION_REVERSED,
        "Transaction",
        original.public_id,
        TransactionReversedData(
            original_public_id=str(original.public_id),
            original_number=original.number,
            reversal_public_id=str(reversal.public_id),
            reversal_number=reversal.number,
            reversed_at=reversal.posted_at.isoformat(),
            reason=reason,
            reversed_by_id=_actor_user_id(actor),
        ),
        idempotency_key=f"transaction.reversed:{original.public_id}",
    )
    metrics.transactions_posted.labels(transaction_type=reversal.transaction_type).inc()
    metrics.transactions_reversed.inc()

    logger.info(
        "Transaction %s reversed by %s",
        original.number,
        reversal.number,
        extra={
            "organization_id": actor.organization_id,
            "transaction_number": original.number,
            "reversal_number": reversal.number,
        },
    )
    return _reload(reversal)
