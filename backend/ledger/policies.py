# ledger/policies.py
"""
Business policy functions for ledger operations.

Policies answer: "Is this action allowed given the current state?"
They do NOT perform the action; that's the command's job.

Usage:
    from ledger.policies import can_void_transaction, assert_can_void_transaction

    # Option 1: Check and get boolean + reason
    allowed, reason = can_void_transaction(actor, txn)

    # Option 2: Assert and raise the typed ledger error
    assert_can_void_transaction(actor, txn)
"""

from ledger.errors import (
    AlreadyReversedError,
    AlreadyVoidedError,
    CannotReverseVoidedError,
    InvalidTransitionError,
    LedgerError,
    NotFoundError,
    ValidationError,
)
from ledger.models import Transaction


def _as_tuple(check, *args) -> tuple[bool, str]:
    try:
        check(*args)
    except LedgerError as exc:
        return False, exc.message
    return True, ""


# =============================================================================
# Tenant Boundary Policies
# =============================================================================

def check_tenant_boundary(actor, entity) -> bool:
    """Verify entity belongs to actor's organization."""
    return getattr(entity, "organization_id", None) == actor.organization_id


def assert_tenant_boundary(actor, entity, label: str = "Record") -> None:
    """Foreign rows are reported as missing, never as forbidden."""
    if not check_tenant_boundary(actor, entity):
        raise NotFoundError(f"{label} not found.")


# =============================================================================
# Account Policies
# =============================================================================

def assert_can_post_to_account(account) -> None:
    if not account.is_active:
        raise ValidationError(
            f"Cannot post to inactive account: {account.code}",
            account=account.code,
        )


def can_post_to_account(account) -> tuple[bool, str]:
    return _as_tuple(assert_can_post_to_account, account)


# =============================================================================
# Transaction Policies
# =============================================================================

def assert_can_post_transaction(actor, txn) -> None:
    """Only DRAFT transactions can be posted."""
    assert_tenant_boundary(actor, txn, "Transaction")
    if txn.status != Transaction.Status.DRAFT:
        raise InvalidTransitionError(
            f"Only DRAFT transactions can be posted; {txn.number} is {txn.status}.",
            status=txn.status,
        )


def assert_can_void_transaction(actor, txn) -> None:
    """
    Rules:
    - Must be POSTED (voiding twice is its own error)
    - Must not already have a reversal; the two corrections exclude each other
    - Must not itself be a reversal (reverse it instead)
    """
    assert_tenant_boundary(actor, txn, "Transaction")
    if txn.status == Transaction.Status.VOIDED:
        raise AlreadyVoidedError(f"Transaction {txn.number} is already voided.")
    if txn.status != Transaction.Status.POSTED:
        raise InvalidTransitionError(
            f"Only POSTED transactions can be voided; {txn.number} is {txn.status}.",
            status=txn.status,
        )
    if txn.reverses_id is not None:
        raise InvalidTransitionError(
            f"Transaction {txn.number} reverses another transaction and cannot be voided; reverse it instead.",
            reverses=str(txn.reverses.public_id),
        )
    if txn.is_reversed:
        raise AlreadyReversedError(f"Transaction {txn.number} has been reversed and cannot be voided.")


def assert_can_reverse_transaction(actor, txn) -> None:
    """
    Rules:
    - VOIDED transactions cannot be reversed
    - Must be POSTED
    - At most one reversal per transaction
    """
    assert_tenant_boundary(actor, txn, "Transaction")
    if txn.status == Transaction.Status.VOIDED:
        raise CannotReverseVoidedError(f"Transaction {txn.number} is voided and cannot be reversed.")
    if txn.status != Transaction.Status.POSTED:
        raise InvalidTransitionError(
            f"Only POSTED transactions can be reversed; {txn.number} is {txn.status}.",
            status=txn.status,
        )
    if txn.is_reversed:
        raise AlreadyReversedError(f"Transaction {txn.number} was already reversed.")


def can_post_transaction(actor, txn) -> tuple[bool, str]:
    return _as_tuple(assert_can_post_transaction, actor, txn)


def can_void_transaction(actor, txn) -> tuple[bool, str]:
    return _as_tuple(assert_can_void_transaction, actor, txn)


def can_reverse_transaction(actor, txn) -> tuple[bool, str]:
    return _as_tuple(assert_can_reverse_transaction, actor, txn)
