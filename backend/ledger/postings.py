# ledger/postings.py
"""
Posting builders for common documents.

Each builder declares the account roles it needs, builds balanced entries
through ChartOfAccountsResolver and hands them to create_transaction.
Amounts are in the document currency; pass ``currency`` (and optionally
``exchange_rate``) for foreign-currency documents.
"""

from decimal import Decimal

from accounts.authz import ActorContext
from ledger.commands import create_transaction
from ledger.currency import parse_amount, to_decimal
from ledger.errors import ValidationError
from ledger.models import AccountRole, Transaction
from ledger.resolvers import ChartOfAccountsResolver


def _fx(currency, exchange_rate) -> dict:
    fx = {}
    if currency:
        fx["currency"] = currency
    if exchange_rate is not None:
        fx["exchange_rate"] = exchange_rate
    return fx


def _optional_amount(value, field: str) -> Decimal:
    if value in (None, "", 0):
        return Decimal("0")
    amount = to_decimal(value, field)
    if amount < 0:
        raise ValidationError(f"{field} cannot be negative.", field=field)
    if amount == 0:
        return amount
    return parse_amount(amount, field)


def post_invoice(
    actor: ActorContext,
    *,
    date,
    net_amount,
    vat_amount=None,
    description: str,
    reference_id: str = "",
    currency: str = None,
    exchange_rate=None,
    post: bool = True,
) -> Transaction:
    """Dr Accounts Receivable (gross) / Cr Revenue (net) + Cr VAT Output (tax)."""
    net = parse_amount(net_amount, "net_amount")
    vat = _optional_amount(vat_amount, "vat_amount")

    roles = [AccountRole.ACCOUNTS_RECEIVABLE, AccountRole.REVENUE]
    if vat:
        roles.append(AccountRole.VAT_OUTPUT)
    coa = ChartOfAccountsResolver(actor.organization, roles)
    fx = _fx(currency, exchange_rate)

    entries = [
        coa.debit(AccountRole.ACCOUNTS_RECEIVABLE, net + vat, description, **fx),
        coa.credit(AccountRole.REVENUE, net, description, **fx),
    ]
    if vat:
        entries.append(coa.credit(AccountRole.VAT_OUTPUT, vat, f"VAT - {description}", **fx))

    return create_transaction(
        actor,
        date=date,
        transaction_type=Transaction.Type.INVOICE,
        description=description,
        entries=entries,
        reference_type="Invoice" if reference_id else "",
        reference_id=reference_id,
        post=post,
    )


def post_bill(
    actor: ActorContext,
    *,
    date,
    net_amount,
    vat_amount=None,
    description: str,
    reference_id: str = "",
    currency: str = None,
    exchange_rate=None,
    post: bool = True,
) -> Transaction:
    """Dr Expense (net) + Dr VAT Input (tax) / Cr Accounts Payable (gross)."""
    net = parse_amount(net_amount, "net_amount")
    vat = _optional_amount(vat_amount, "vat_amount")

    roles = [AccountRole.EXPENSE, AccountRole.ACCOUNTS_PAYABLE]
    if vat:
        roles.append(AccountRole.VAT_INPUT)
    coa = ChartOfAccountsResolver(actor.organization, roles)
    fx = _fx(currency, exchange_rate)

    entries = [coa.debit(AccountRole.EXPENSE, net, description, **fx)]
    if vat:
        entries.append(coa.debit(AccountRole.VAT_INPUT, vat, f"VAT - {description}", **fx))
    entries.append(coa.credit(AccountRole.ACCOUNTS_PAYABLE, net + vat, description, **fx))

    return create_transaction(
        actor,
        date=date,
        transaction_type=Transaction.Type.BILL,
        description=description,
        entries=entries,
        reference_type="Bill" if reference_id else "",
        reference_id=reference_id,
        post=post,
    )


def post_customer_payment(
    actor: ActorContext,
    *,
    date,
    amount,
    description: str,
    reference_id: str = "",
    currency: str = None,
    exchange_rate=None,
) -> Transaction:
    """Dr Cash / Cr Accounts Receivable."""
    amount = parse_amount(amount, "amount")
    coa = ChartOfAccountsResolver(
        actor.organization,
        [AccountRole.CASH, AccountRole.ACCOUNTS_RECEIVABLE],
    )
    fx = _fx(currency, exchange_rate)

    return create_transaction(
        actor,
        date=date,
        transaction_type=Transaction.Type.PAYMENT,
        description=description,
        entries=[
            coa.debit(AccountRole.CASH, amount, description, **fx),
            coa.credit(AccountRole.ACCOUNTS_RECEIVABLE, amount, description, **fx),
        ],
        reference_type="Payment" if reference_id else "",
        reference_id=reference_id,
    )


def post_depreciation(
    actor: ActorContext,
    *,
    date,
    amount,
    description: str,
    asset_reference: str = "",
) -> Transaction:
    """Dr Depreciation Expense / Cr Accumulated Depreciation, in base currency."""
    amount = parse_amount(amount, "amount")
    coa = ChartOfAccountsResolver(
        actor.organization,
        [AccountRole.DEPRECIATION_EXPENSE, AccountRole.ACCUMULATED_DEPRECIATION],
    )

    return create_transaction(
        actor,
        date=date,
        transaction_type=Transaction.Type.DEPRECIATION,
        description=description,
        entries=[
            coa.debit(AccountRole.DEPRECIATION_EXPENSE, amount, description),
            coa.credit(AccountRole.ACCUMULATED_DEPRECIATION, amount, description),
        ],
        reference_type="FixedAsset" if asset_reference else "",
        reference_id=asset_reference,
    )


def post_cost_of_sales(
    actor: ActorContext,
    *,
    date,
    amount,
    description: str,
    reference_id: str = "",
) -> Transaction:
    """Dr Cost of Sales / Cr Inventory, in base currency."""
    amount = parse_amount(amount, "amount")
    coa = ChartOfAccountsResolver(
        actor.organization,
        [AccountRole.COST_OF_SALES, AccountRole.INVENTORY],
    )

    return create_transaction(
        actor,
        date=date,
        transaction_type=Transaction.Type.INVENTORY_ADJUSTMENT,
        description=description,
        entries=[
            coa.debit(AccountRole.COST_OF_SALES, amount, description),
            coa.credit(AccountRole.INVENTORY, amount, description),
        ],
        reference_type="Sale" if reference_id else "",
        reference_id=reference_id,
    )


def post_inventory_revaluation(
    actor: ActorContext,
    *,
    date,
    value_change,
    description: str,
    reference_id: str = "",
) -> Transaction:
    """
    Book a change in inventory carrying value.

    ``value_change`` is signed: an increase debits Inventory and credits
    Inventory Revaluation, a decrease does the opposite.
    """
    change = to_decimal(value_change, "value_change")
    if change == 0:
        raise ValidationError("value_change must not be zero.", field="value_change")
    amount = parse_amount(abs(change), "value_change")

    coa = ChartOfAccountsResolver(
        actor.organization,
        [AccountRole.INVENTORY, AccountRole.INVENTORY_REVALUATION],
    )
    if change > 0:
        entries = [
            coa.debit(AccountRole.INVENTORY, amount, f"Inventory value increase - {description}"),
            coa.credit(AccountRole.INVENTORY_REVALUATION, amount, f"Revaluation gain - {description}"),
        ]
    else:
        entries = [
            coa.debit(AccountRole.INVENTORY_REVALUATION, amount, f"Revaluation loss - {description}"),
            coa.credit(AccountRole.INVENTORY, amount, f"Inventory value decrease - {description}"),
        ]

    return create_transaction(
        actor,
        date=date,
        transaction_type=Transaction.Type.INVENTORY_REVALUATION,
        description=description,
        entries=entries,
        reference_type="InventoryRevaluation" if reference_id else "",
        reference_id=reference_id,
    )


def post_asset_disposal(
    actor: ActorContext,
    *,
    date,
    cost,
    accumulated_depreciation=None,
    proceeds=None,
    description: str,
    asset_reference: str = "",
) -> Transaction:
    """
    Remove a fixed asset from the books, in base currency.

        Dr Cash                      proceeds (if sold)
        Dr Accumulated Depreciation  depreciation to date
        Dr/Cr Gain/Loss on Disposal  proceeds - book value
        Cr Fixed Asset               original cost

    Raises:
        ValidationError: accumulated depreciation exceeds cost
    """
    cost = parse_amount(cost, "cost")
    accumulated = _optional_amount(accumulated_depreciation, "accumulated_depreciation")
    proceeds = _optional_amount(proceeds, "proceeds")
    if accumulated > cost:
        raise ValidationError(
            "accumulated_depreciation cannot exceed cost.",
            field="accumulated_depreciation",
        )

    gain_loss = proceeds - (cost - accumulated)

    roles = [AccountRole.FIXED_ASSET]
    if proceeds:
        roles.append(AccountRole.CASH)
    if accumulated:
        roles.append(AccountRole.ACCUMULATED_DEPRECIATION)
    if gain_loss:
        roles.append(AccountRole.DISPOSAL_GAIN_LOSS)
    coa = ChartOfAccountsResolver(actor.organization, roles)

    entries = []
    if proceeds:
        entries.append(coa.debit(AccountRole.CASH, proceeds, f"Proceeds - {description}"))
    if accumulated:
        entries.append(coa.debit(
            AccountRole.ACCUMULATED_DEPRECIATION, accumulated, f"Clear depreciation - {description}"
        ))
    if gain_loss > 0:
        entries.append(coa.credit(AccountRole.DISPOSAL_GAIN_LOSS, gain_loss, f"Gain - {description}"))
    elif gain_loss < 0:
        entries.append(coa.debit(AccountRole.DISPOSAL_GAIN_LOSS, -gain_loss, f"Loss - {description}"))
    entries.append(coa.credit(AccountRole.FIXED_ASSET, cost, description))

    return create_transaction(
        actor,
        date=date,
        transaction_type=Transaction.Type.ASSET_DISPOSAL,
        description=description,
        entries=entries,
        reference_type="FixedAsset" if asset_reference else "",
        reference_id=asset_reference,
    )
