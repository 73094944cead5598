# ledger/serializers.py
"""
Serializers for the ledger API.

Input serializers only check shape and types. Ledger rules (balance,
account activity, exchange rates) live in commands.py so that library
callers and HTTP callers get the same errors.
"""

from decimal import Decimal

from rest_framework import serializers

from .models import Account, LedgerEntry, Transaction


# =============================================================================
# Input Serializers
# =============================================================================

class EntryInputSerializer(serializers.Serializer):
    account_id = serializers.UUIDField()
    entry_type = serializers.ChoiceField(choices=LedgerEntry.EntryType.choices)
    amount = serializers.DecimalField(max_digits=19, decimal_places=4, min_value=Decimal("0.0001"))
    description = serializers.CharField(max_length=255, required=False, allow_blank=True, default="")
    currency = serializers.CharField(min_length=3, max_length=3, required=False, allow_null=True, default=None)
    exchange_rate = serializers.DecimalField(
        max_digits=12,
        decimal_places=6,
        min_value=Decimal("0.000001"),
        required=False,
        allow_null=True,
        default=None,
    )


class TransactionCreateSerializer(serializers.Serializer):
    date = serializers.DateField()
    type = serializers.ChoiceField(choices=Transaction.Type.choices)
    description = serializers.CharField(max_length=255)
    notes = serializers.CharField(required=False, allow_blank=True, default="")
    reference_type = serializers.CharField(max_length=50, required=False, allow_blank=True, default="")
    reference_id = serializers.CharField(max_length=100, required=False, allow_blank=True, default="")
    entries = EntryInputSerializer(many=True, allow_empty=False)
    post = serializers.BooleanField(required=False, default=True)


class VoidSerializer(serializers.Serializer):
    reason = serializers.CharField(max_length=255, required=False, allow_blank=True, default="")


class ReverseSerializer(serializers.Serializer):
    reason = serializers.CharField(max_length=255, required=False, allow_blank=True, default="")
    date = serializers.DateField(required=False, allow_null=True, default=None)


class TransactionFilterSerializer(serializers.Serializer):
    type = serializers.ChoiceField(choices=Transaction.Type.choices, required=False)
    status = serializers.ChoiceField(choices=Transaction.Status.choices, required=False)
    start_date = serializers.DateField(required=False)
    end_date = serializers.DateField(required=False)
    page = serializers.IntegerField(min_value=1, required=False, default=1)
    limit = serializers.IntegerField(min_value=1, max_value=100, required=False, default=20)

    def validate(self, attrs):
        start, end = attrs.get("start_date"), attrs.get("end_date")
        if start and end and start > end:
            raise serializers.ValidationError("start_date must not be after end_date.")
        return attrs


# =============================================================================
# Output Serializers
# =============================================================================

class AccountSerializer(serializers.ModelSerializer):
    id = serializers.UUIDField(source="public_id", read_only=True)
    type = serializers.CharField(source="account_type", read_only=True)
    normal_balance = serializers.CharField(read_only=True)

    class Meta:
        model = Account
        fields = [
            "id",
            "code",
            "name",
            "type",
            "normal_balance",
            "currency",
            "description",
            "is_active",
        ]


class LedgerEntrySerializer(serializers.ModelSerializer):
    account_id = serializers.UUIDField(source="account.public_id", read_only=True)
    account_code = serializers.CharField(source="account.code", read_only=True)
    account_name = serializers.CharField(source="account.name", read_only=True)

    class Meta:
        model = LedgerEntry
        fields = [
            "line_no",
            "account_id",
            "account_code",
            "account_name",
            "entry_type",
            "amount",
            "currency",
            "exchange_rate",
            "amount_in_base",
            "description",
        ]


class TransactionSerializer(serializers.ModelSerializer):
    id = serializers.UUIDField(source="public_id", read_only=True)
    type = serializers.CharField(source="transaction_type", read_only=True)
    reverses = serializers.SerializerMethodField()
    reversed_by = serializers.SerializerMethodField()
    total_debit = serializers.SerializerMethodField()
    total_credit = serializers.SerializerMethodField()
    entries = LedgerEntrySerializer(many=True, read_only=True)

    class Meta:
        model = Transaction
        fields = [
            "id",
            "number",
            "date",
            "type",
            "description",
            "notes",
            "status",
            "reference_type",
            "reference_id",
            "reverses",
            "reversed_by",
            "created_by",
            "posted_at",
            "voided_at",
            "voided_by",
            "void_reason",
            "total_debit",
            "total_credit",
            "entries",
            "created_at",
        ]

    def get_reverses(self, obj):
        return str(obj.reverses.public_id) if obj.reverses_id else None

    def get_reversed_by(self, obj):
        reversal = Transaction.objects.filter(reverses_id=obj.pk).only("public_id").first()
        return str(reversal.public_id) if reversal else None

    def _side_total(self, obj, side) -> str:
        total = sum(
            (e.amount_in_base for e in obj.entries.all() if e.entry_type == side),
            Decimal("0"),
        )
        return str(total)

    def get_total_debit(self, obj):
        return self._side_total(obj, LedgerEntry.EntryType.DEBIT)

    def get_total_credit(self, obj):
        return self._side_total(obj, LedgerEntry.EntryType.CREDIT)


class TrialBalanceRowSerializer(serializers.Serializer):
    account_id = serializers.UUIDField(source="account.public_id")
    account_code = serializers.CharField(source="account.code")
    account_name = serializers.CharField(source="account.name")
    account_type = serializers.CharField(source="account.account_type")
    debit = serializers.DecimalField(source="total_debit", max_digits=19, decimal_places=4)
    credit = serializers.DecimalField(source="total_credit", max_digits=19, decimal_places=4)
    balance = serializers.DecimalField(max_digits=19, decimal_places=4)


class TrialBalanceQuerySerializer(serializers.Serializer):
    as_of = serializers.DateField(required=False)
