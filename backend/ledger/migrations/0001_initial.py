import uuid
from decimal import Decimal

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("accounts", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="OrganizationSequence",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=100)),
                ("next_value", models.BigIntegerField(default=1)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("organization", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="sequences", to="accounts.organization")),
            ],
            options={
                "constraints": [
                    models.UniqueConstraint(fields=("organization", "name"), name="uniq_organization_sequence_name"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Account",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("public_id", models.UUIDField(default=uuid.uuid4, editable=False, unique=True)),
                ("code", models.CharField(max_length=20)),
                ("name", models.CharField(max_length=255)),
                ("account_type", models.CharField(choices=[("ASSET", "Asset"), ("LIABILITY", "Liability"), ("EQUITY", "Equity"), ("REVENUE", "Revenue"), ("EXPENSE", "Expense"), ("COST_OF_SALES", "Cost of Sales")], db_column="type", max_length=20)),
                ("currency", models.CharField(blank=True, default="", max_length=3)),
                ("description", models.TextField(blank=True, default="")),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("organization", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="accounts", to="accounts.organization")),
            ],
            options={
                "ordering": ["code"],
                "indexes": [
                    models.Index(fields=["organization", "account_type"], name="ledger_account_org_type_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(fields=("organization", "code"), name="uniq_account_code_per_organization"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Transaction",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("public_id", models.UUIDField(default=uuid.uuid4, editable=False, unique=True)),
                ("number", models.CharField(max_length=50)),
                ("date", models.DateField()),
                ("transaction_type", models.CharField(choices=[("JOURNAL_ENTRY", "Journal Entry"), ("INVOICE", "Invoice"), ("BILL", "Bill"), ("PAYMENT", "Payment"), ("RECEIPT", "Receipt"), ("BANK_TRANSFER", "Bank Transfer"), ("INVENTORY_ADJUSTMENT", "Inventory Adjustment"), ("INVENTORY_REVALUATION", "Inventory Revaluation"), ("DEPRECIATION", "Depreciation"), ("ASSET_DISPOSAL", "Asset Disposal"), ("CREDIT_NOTE", "Credit Note"), ("DEBIT_NOTE", "Debit Note"), ("OPENING_BALANCE", "Opening Balance"), ("CLOSING_ENTRY", "Closing Entry")], db_column="type", max_length=30)),
                ("description", models.CharField(max_length=255)),
                ("notes", models.TextField(blank=True, default="")),
                ("status", models.CharField(choices=[("DRAFT", "Draft"), ("POSTED", "Posted"), ("VOIDED", "Voided")], default="DRAFT", max_length=10)),
                ("reference_type", models.CharField(blank=True, default="", max_length=50)),
                ("reference_id", models.CharField(blank=True, default="", max_length=100)),
                ("posted_at", models.DateTimeField(blank=True, null=True)),
                ("voided_at", models.DateTimeField(blank=True, null=True)),
                ("void_reason", models.CharField(blank=True, default="", max_length=255)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("organization", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="transactions", to="accounts.organization")),
                ("reverses", models.OneToOneField(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name="reversed_by", to="ledger.transaction")),
                ("created_by", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="ledger_transactions_created", to=settings.AUTH_USER_MODEL)),
                ("voided_by", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="ledger_transactions_voided", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "ordering": ["-date", "-id"],
                "indexes": [
                    models.Index(fields=["organization", "date"], name="ledger_txn_org_date_idx"),
                    models.Index(fields=["organization", "status"], name="ledger_txn_org_status_idx"),
                    models.Index(fields=["organization", "reference_type", "reference_id"], name="ledger_txn_org_reference_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(fields=("organization", "number"), name="uniq_transaction_number_per_organization"),
                ],
            },
        ),
        migrations.CreateModel(
            name="LedgerEntry",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("line_no", models.PositiveIntegerField()),
                ("entry_type", models.CharField(choices=[("DEBIT", "Debit"), ("CREDIT", "Credit")], max_length=6)),
                ("amount", models.DecimalField(decimal_places=4, max_digits=19)),
                ("currency", models.CharField(max_length=3)),
                ("exchange_rate", models.DecimalField(decimal_places=6, default=Decimal("1"), max_digits=12)),
                ("amount_in_base", models.DecimalField(decimal_places=4, max_digits=19)),
                ("description", models.CharField(blank=True, default="", max_length=255)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("account", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="ledger_entries", to="ledger.account")),
                ("organization", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="ledger_entries", to="accounts.organization")),
                ("transaction", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="entries", to="ledger.transaction")),
            ],
            options={
                "ordering": ["transaction", "line_no"],
                "indexes": [
                    models.Index(fields=["organization", "account"], name="ledger_entry_org_account_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(fields=("transaction", "line_no"), name="uniq_ledger_entry_line_no"),
                    models.CheckConstraint(condition=models.Q(("amount__gt", 0)), name="chk_ledger_entry_amount_positive"),
                    models.CheckConstraint(condition=models.Q(("entry_type__in", ["DEBIT", "CREDIT"])), name="chk_ledger_entry_type"),
                ],
            },
        ),
        migrations.CreateModel(
            name="ExchangeRate",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("currency", models.CharField(max_length=3)),
                ("rate", models.DecimalField(decimal_places=6, max_digits=12)),
                ("effective_date", models.DateField()),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("organization", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="exchange_rates", to="accounts.organization")),
            ],
            options={
                "ordering": ["currency", "-effective_date"],
                "constraints": [
                    models.UniqueConstraint(fields=("organization", "currency", "effective_date"), name="uniq_exchange_rate_per_day"),
                    models.CheckConstraint(condition=models.Q(("rate__gt", 0)), name="chk_exchange_rate_positive"),
                ],
            },
        ),
        migrations.CreateModel(
            name="AccountMapping",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("role", models.CharField(choices=[("ACCOUNTS_RECEIVABLE", "Accounts Receivable"), ("ACCOUNTS_PAYABLE", "Accounts Payable"), ("CASH", "Cash"), ("REVENUE", "Revenue"), ("EXPENSE", "Expense"), ("VAT_OUTPUT", "VAT Output"), ("VAT_INPUT", "VAT Input"), ("INVENTORY", "Inventory"), ("COST_OF_SALES", "Cost of Sales"), ("DEPRECIATION_EXPENSE", "Depreciation Expense"), ("ACCUMULATED_DEPRECIATION", "Accumulated Depreciation"), ("FIXED_ASSET", "Fixed Asset"), ("DISPOSAL_GAIN_LOSS", "Gain/Loss on Disposal"), ("INVENTORY_REVALUATION", "Inventory Revaluation")], max_length=40)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("account", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="role_mappings", to="ledger.account")),
                ("organization", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="account_mappings", to="accounts.organization")),
            ],
            options={
                "constraints": [
                    models.UniqueConstraint(fields=("organization", "role"), name="uniq_account_mapping_role"),
                ],
            },
        ),
    ]
