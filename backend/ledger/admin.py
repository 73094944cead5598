# ledger/admin.py
"""
Django admin configuration for ledger models.

Transactions and entries are viewing only: posting, voiding and
reversing go through ledger.commands so that numbering, balance checks
and events cannot be bypassed. Accounts, exchange rates and role
mappings are configuration and stay editable.
"""

from django.contrib import admin

from .models import Account, AccountMapping, ExchangeRate, LedgerEntry, Transaction


class ReadOnlyModelAdmin(admin.ModelAdmin):
    """Base admin class for command-owned models."""

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


class LedgerEntryInline(admin.TabularInline):
    model = LedgerEntry
    extra = 0
    fields = ["line_no", "account", "entry_type", "amount", "currency", "exchange_rate", "amount_in_base", "description"]
    readonly_fields = fields

    def has_add_permission(self, request, obj=None):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(Transaction)
class TransactionAdmin(ReadOnlyModelAdmin):
    list_display = ["number", "date", "transaction_type", "status", "description", "organization"]
    list_filter = ["status", "transaction_type", "organization"]
    search_fields = ["number", "description", "reference_id"]
    date_hierarchy = "date"
    inlines = [LedgerEntryInline]


@admin.register(Account)
class AccountAdmin(admin.ModelAdmin):
    list_display = ["code", "name", "account_type", "currency", "is_active", "organization"]
    list_filter = ["account_type", "is_active", "organization"]
    search_fields = ["code", "name"]

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(ExchangeRate)
class ExchangeRateAdmin(admin.ModelAdmin):
    list_display = ["currency", "rate", "effective_date", "organization"]
    list_filter = ["currency", "organization"]


@admin.register(AccountMapping)
class AccountMappingAdmin(admin.ModelAdmin):
    list_display = ["role", "account", "organization"]
    list_filter = ["role", "organization"]
