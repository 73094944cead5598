# ledger/currency.py
"""
Amount parsing and conversion into an organization's base currency.

Amounts are carried as Decimal end to end. Anything else (int, float,
string from JSON) is converted through str() so that 0.1 stays 0.1.
"""

from datetime import date
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from ledger.errors import ValidationError
from ledger.models import ExchangeRate

# Storage precision of LedgerEntry.amount / amount_in_base
AMOUNT_Q = Decimal("0.0001")
# Storage precision of exchange rates
RATE_Q = Decimal("0.000001")

MAX_AMOUNT = Decimal("1e15")
MAX_RATE = Decimal("1e6")

ONE = Decimal("1")


def to_decimal(value, field: str = "amount") -> Decimal:
    """Convert input to Decimal; raise ValidationError on junk, NaN or infinity."""
    if isinstance(value, bool) or value is None or value == "":
        raise ValidationError(f"{field} must be a number.", field=field)
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value))
        except (InvalidOperation, ValueError, TypeError):
            raise ValidationError(f"{field} must be a number, got {value!r}.", field=field)
    if not result.is_finite():
        raise ValidationError(f"{field} must be a finite number.", field=field)
    return result


def parse_amount(value, field: str = "amount") -> Decimal:
    """Positive amount with at most four decimal places."""
    amount = to_decimal(value, field)
    if amount <= 0:
        raise ValidationError(f"{field} must be greater than zero.", field=field)
    if amount != amount.quantize(AMOUNT_Q, rounding=ROUND_HALF_UP):
        raise ValidationError(f"{field} supports at most 4 decimal places.", field=field)
    if amount >= MAX_AMOUNT:
        raise ValidationError(f"{field} is too large.", field=field)
    return amount.quantize(AMOUNT_Q)


def normalize_currency(code) -> str:
    code = str(code or "").strip().upper()
    if len(code) != 3 or not code.isalpha():
        raise ValidationError(f"Invalid currency code: {code!r}.", field="currency")
    return code


def resolve_rate(organization, currency: str, on_date: date, explicit=None) -> Decimal:
    """
    Rate converting one unit of ``currency`` into the base currency.

    Base-currency amounts always use 1. Otherwise an explicit rate wins;
    failing that, the latest stored rate effective on or before ``on_date``.
    """
    if currency == organization.base_currency:
        if explicit is not None and to_decimal(explicit, "exchange_rate") != ONE:
            raise ValidationError(
                f"Entries in the base currency ({currency}) must use an exchange rate of 1.",
                field="exchange_rate",
            )
        return ONE

    if explicit is not None:
        rate = to_decimal(explicit, "exchange_rate")
    else:
        stored = (
            ExchangeRate.objects.filter(
                organization=organization,
                currency=currency,
                effective_date__lte=on_date,
            )
            .order_by("-effective_date")
            .first()
        )
        if stored is None:
            raise ValidationError(
                f"No exchange rate for {currency} on or before {on_date.isoformat()}.",
                field="exchange_rate",
            )
        rate = stored.rate

    if rate <= 0:
        raise ValidationError("exchange_rate must be greater than zero.", field="exchange_rate")
    rate = rate.quantize(RATE_Q, rounding=ROUND_HALF_UP)
    if rate == 0 or rate >= MAX_RATE:
        raise ValidationError("exchange_rate is out of range.", field="exchange_rate")
    return rate


def to_base(amount: Decimal, rate: Decimal) -> Decimal:
    """amount x rate, rounded half-up to storage precision."""
    return (amount * rate).quantize(AMOUNT_Q, rounding=ROUND_HALF_UP)
