# events/types.py
"""
Event type definitions for Ledgerworks.

These dataclasses are the schema of every event payload written to the
outbox. Validation runs at emission time, so a payload that drifts from
its dataclass fails the command that produced it.

Naming Convention: {aggregate}.{action}
Examples:
- transaction.posted
- transaction.voided

Events are a stable API for downstream consumers:
- Adding optional fields with defaults is safe
- Removing, renaming or retyping fields is a breaking change
"""

from dataclasses import MISSING, asdict, dataclass, fields as dataclass_fields
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional, Union, get_args, get_origin, get_type_hints


# =============================================================================
# Event Validation
# =============================================================================

class InvalidEventPayload(Exception):
    """
    Raised when an event payload fails validation.

    This exception is raised at event emission time when the provided
    data does not match the expected schema for the event type.
    """
    def __init__(self, event_type: str, errors: List[str]):
        self.event_type = event_type
        self.errors = errors
        error_list = "\n  - ".join(errors)
        super().__init__(
            f"Invalid payload for event '{event_type}':\n  - {error_list}"
        )


def _is_optional_type(type_hint) -> bool:
    """Check if a type hint is Optional[X] (i.e., Union[X, None])."""
    origin = get_origin(type_hint)
    if origin is Union:
        return type(None) in get_args(type_hint)
    return False


def _get_inner_type(type_hint):
    """Get the inner type from Optional[X]."""
    if _is_optional_type(type_hint):
        non_none_args = [a for a in get_args(type_hint) if a is not type(None)]
        if len(non_none_args) == 1:
            return non_none_args[0]
    return type_hint


DECIMAL_FIELDS = {
    "amount",
    "exchange_rate",
    "amount_in_base",
    "total_debit",
    "total_credit",
}

CURRENCY_FIELDS = {"currency", "base_currency"}

DATE_FIELDS = {"date"}

DATETIME_FIELDS = {"posted_at", "voided_at", "reversed_at"}


def _enum_fields() -> Dict[str, set]:
    from ledger.models import LedgerEntry, Transaction

    return {
        "entry_type": set(LedgerEntry.EntryType.values),
        "status": set(Transaction.Status.values),
        "transaction_type": set(Transaction.Type.values),
    }


def validate_event_payload(event_type: str, data: Dict[str, Any]) -> None:
    """
    Validate that a data dict matches the expected schema for an event type.

    Checks, in order:
    1. Required fields are present (fields without defaults)
    2. No unexpected fields are provided (strict schema)
    3. Basic field types (str / int / bool / list)
    4. Domain formats: decimal strings, currency codes, ISO dates, enums

    Raises:
        InvalidEventPayload: If validation fails
        ValueError: If event_type has no registered schema
    """
    data_class = EVENT_DATA_CLASSES.get(event_type)
    if data_class is None:
        raise ValueError(
            f"No schema registered for event type '{event_type}'. "
            f"Add a dataclass to EVENT_DATA_CLASSES."
        )

    errors = []
    dc_fields = {f.name: f for f in dataclass_fields(data_class)}
    type_hints = get_type_hints(data_class)

    for field_name, field_info in dc_fields.items():
        required = (
            field_info.default is MISSING and
            field_info.default_factory is MISSING
        )
        if required and field_name not in data:
            errors.append(f"Missing required field: '{field_name}'")

    unexpected = set(data.keys()) - set(dc_fields.keys())
    if unexpected:
        errors.append(
            f"Unexpected fields: {sorted(unexpected)}. "
            f"Expected: {sorted(dc_fields.keys())}"
        )

    for field_name, value in data.items():
        type_hint = type_hints.get(field_name)
        if type_hint is None:
            continue

        if value is None:
            if not _is_optional_type(type_hint):
                errors.append(f"Field '{field_name}' cannot be None (type: {type_hint})")
            continue

        check_type = _get_inner_type(type_hint)
        origin = get_origin(check_type)

        if origin is list or check_type is list:
            if not isinstance(value, list):
                errors.append(f"Field '{field_name}' must be a list, got {type(value).__name__}")
            elif any(not isinstance(item, dict) for item in value):
                errors.append(f"Field '{field_name}' must be a list of dicts")
        elif check_type is str:
            if not isinstance(value, str):
                errors.append(f"Field '{field_name}' must be a string, got {type(value).__name__}")
        elif check_type is int:
            if not isinstance(value, int) or isinstance(value, bool):
                errors.append(f"Field '{field_name}' must be an int, got {type(value).__name__}")
        elif check_type is bool:
            if not isinstance(value, bool):
                errors.append(f"Field '{field_name}' must be a bool, got {type(value).__name__}")

    enum_fields = _enum_fields()

    def _validate_scalar(name: str, value: Any) -> None:
        if value is None or isinstance(value, (dict, list)):
            return
        if name in enum_fields and value not in enum_fields[name]:
            errors.append(
                f"Field '{name}' must be one of {sorted(enum_fields[name])}, got {value!r}"
            )
        if name in DECIMAL_FIELDS:
            if not isinstance(value, str):
                errors.append(f"Field '{name}' must be a decimal string, got {type(value).__name__}")
            else:
                try:
                    parsed = Decimal(value)
                except InvalidOperation:
                    errors.append(f"Field '{name}' must be a decimal string, got {value!r}")
                else:
                    if name in ("amount", "exchange_rate") and parsed <= 0:
                        errors.append(f"Field '{name}' must be > 0, got {value!r}")
        if name in CURRENCY_FIELDS:
            if (
                not isinstance(value, str)
                or len(value) != 3
                or not value.isalpha()
                or value != value.upper()
            ):
                errors.append(f"Field '{name}' must be a 3-letter uppercase currency code, got {value!r}")
        if name in DATE_FIELDS:
            try:
                date.fromisoformat(value)
            except (TypeError, ValueError):
                errors.append(f"Field '{name}' must be an ISO date string, got {value!r}")
        if name in DATETIME_FIELDS:
            try:
                datetime.fromisoformat(value)
            except (TypeError, ValueError):
                errors.append(f"Field '{name}' must be an ISO datetime string, got {value!r}")

    def _walk(name: str, value: Any) -> None:
        _validate_scalar(name, value)
        if isinstance(value, dict):
            for k, v in value.items():
                _walk(k, v)
        elif isinstance(value, list):
            for item in value:
                _walk(name, item)

    for field_name, value in data.items():
        _walk(field_name, value)

    if errors:
        raise InvalidEventPayload(event_type, errors)


# =============================================================================
# Base Event Classes
# =============================================================================

@dataclass
class BaseEventData:
    """Base class for all event data."""

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON storage."""
        result = {}
        for key, value in asdict(self).items():
            if isinstance(value, Decimal):
                result[key] = str(value)
            elif isinstance(value, (date, datetime)):
                result[key] = value.isoformat()
            else:
                result[key] = value
        return result


# =============================================================================
# Transaction Events
# =============================================================================

@dataclass
class LedgerEntryData:
    """Ledger entry data for embedding in events."""
    line_no: int
    account_public_id: str
    account_code: str
    entry_type: str
    amount: str  # String for JSON safety
    currency: str
    exchange_rate: str
    amount_in_base: str
    description: str = ""

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class TransactionDraftedData(BaseEventData):
    """Data for transaction.drafted event."""
    transaction_public_id: str
    number: str
    transaction_type: str
    date: str  # ISO format
    description: str
    base_currency: str
    total_debit: str
    total_credit: str
    entries: List[dict]  # List of LedgerEntryData dicts
    reference_type: str = ""
    reference_id: str = ""
    created_by_id: Optional[int] = None


@dataclass
class TransactionPostedData(BaseEventData):
    """Data for transaction.posted event."""
    transaction_public_id: str
    number: str
    transaction_type: str
    date: str
    description: str
    base_currency: str
    total_debit: str
    total_credit: str
    posted_at: str
    entries: List[dict]
    reference_type: str = ""
    reference_id: str = ""
    posted_by_id: Optional[int] = None
    reverses_public_id: Optional[str] = None


@dataclass
class TransactionVoidedData(BaseEventData):
    """Data for transaction.voided event."""
    transaction_public_id: str
    number: str
    voided_at: str
    reason: str = ""
    voided_by_id: Optional[int] = None


@dataclass
class TransactionReversedData(BaseEventData):
    """Data for transaction.reversed event."""
    original_public_id: str
    original_number: str
    reversal_public_id: str
    reversal_number: str
    reversed_at: str
    reason: str = ""
    reversed_by_id: Optional[int] = None


# =============================================================================
# Event Type Registry
# =============================================================================

class EventTypes:
    """
    Registry of all event types.

    Naming convention: {aggregate}.{past_tense_verb}
    """

    TRANSACTION_DRAFTED = "transaction.drafted"
    TRANSACTION_POSTED = "transaction.posted"
    TRANSACTION_VOIDED = "transaction.voided"
    TRANSACTION_REVERSED = "transaction.reversed"

    @classmethod
    def all(cls) -> List[str]:
        return [
            value for name, value in vars(cls).items()
            if name.isupper() and isinstance(value, str)
        ]


EVENT_DATA_CLASSES = {
    EventTypes.TRANSACTION_DRAFTED: TransactionDraftedData,
    EventTypes.TRANSACTION_POSTED: TransactionPostedData,
    EventTypes.TRANSACTION_VOIDED: TransactionVoidedData,
    EventTypes.TRANSACTION_REVERSED: TransactionReversedData,
}
