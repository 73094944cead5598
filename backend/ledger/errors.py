# ledger/errors.py
"""
Typed errors raised by the ledger command layer.

Views translate these into response envelopes; library callers catch them
directly. Every subclass carries a stable ``code`` used both in the API
error payload and as the metrics label for rejected postings.
"""

from decimal import Decimal


class LedgerError(Exception):
    """Base class for ledger failures the caller is expected to handle."""

    code = "ledger_error"

    def __init__(self, message: str = "", **details):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict:
        payload = {"code": self.code, "message": self.message}
        if self.details:
            payload["details"] = {k: str(v) for k, v in self.details.items()}
        return payload


class ValidationError(LedgerError):
    """Input rejected before anything was written."""

    code = "validation_error"


class MissingAccountMappingError(ValidationError):
    code = "missing_account_mapping"

    def __init__(self, roles):
        self.roles = sorted(str(r) for r in roles)
        super().__init__(
            "No active account mapped for role(s): " + ", ".join(self.roles),
            roles=",".join(self.roles),
        )


class UnbalancedEntryError(LedgerError):
    """Debits and credits differ by more than the balance epsilon."""

    code = "unbalanced_entry"

    def __init__(self, total_debits: Decimal, total_credits: Decimal):
        self.total_debits = total_debits
        self.total_credits = total_credits
        self.difference = abs(total_debits - total_credits)
        super().__init__(
            f"Transaction is not balanced. Debits: {total_debits}, "
            f"Credits: {total_credits}, Difference: {self.difference}",
            total_debits=total_debits,
            total_credits=total_credits,
            difference=self.difference,
        )


class NotFoundError(LedgerError):
    code = "not_found"


class InvalidTransitionError(LedgerError):
    """The transaction's status does not allow the requested action."""

    code = "invalid_transition"


class AlreadyVoidedError(InvalidTransitionError):
    code = "already_voided"


class CannotReverseVoidedError(InvalidTransitionError):
    code = "cannot_reverse_voided"


class AlreadyReversedError(InvalidTransitionError):
    code = "already_reversed"


class PersistenceConflictError(LedgerError):
    """A unique transaction number could not be obtained."""

    code = "persistence_conflict"


class ImmutableRecordError(RuntimeError):
    """Direct mutation of a posted transaction, an entry or an event."""
