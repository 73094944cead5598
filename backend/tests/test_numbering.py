# tests/test_numbering.py
"""
Tests for transaction numbering.

Tests cover:
- Sequential numbers per organization, prefix and year
- Retry on a number that is already taken
- PersistenceConflictError once retries are exhausted
- Concurrent posting (PostgreSQL only)
"""

import threading
from datetime import date

import pytest
from django.db import connection
from prometheus_client import REGISTRY

from accounts.authz import ActorContext
from ledger.commands import create_transaction, format_transaction_number
from ledger.errors import PersistenceConflictError
from ledger.models import Account, LedgerEntry, OrganizationSequence, Transaction


TXN_DATE = date(2026, 3, 15)
DEBIT = LedgerEntry.EntryType.DEBIT
CREDIT = LedgerEntry.EntryType.CREDIT


def _post(actor, entries, transaction_type=Transaction.Type.JOURNAL_ENTRY, on_date=TXN_DATE):
    return create_transaction(
        actor,
        date=on_date,
        transaction_type=transaction_type,
        description="Numbering test",
        entries=entries,
    )


def _sample(name, labels=None):
    return REGISTRY.get_sample_value(name, labels or {}) or 0


# =============================================================================
# Format Tests
# =============================================================================

class TestNumberFormat:

    def test_default_padding(self):
        assert format_transaction_number("INV", 2026, 7) == "INV-2026-0007"

    def test_padding_is_configurable(self, settings):
        settings.LEDGER_NUMBER_PADDING = 6
        assert format_transaction_number("JE", 2026, 42) == "JE-2026-000042"

    def test_values_wider_than_padding_are_not_truncated(self):
        assert format_transaction_number("JE", 2026, 123456) == "JE-2026-123456"


# =============================================================================
# Sequence Tests
# =============================================================================

@pytest.mark.django_db
class TestSequentialNumbers:

    def test_numbers_increase_by_one(self, actor, entries, cash, revenue):
        lines = entries((cash, DEBIT, "10"), (revenue, CREDIT, "10"))

        numbers = [_post(actor, lines).number for _ in range(3)]

        assert numbers == ["JE-2026-0001", "JE-2026-0002", "JE-2026-0003"]

    def test_each_type_has_its_own_sequence(self, actor, entries, cash, revenue):
        lines = entries((cash, DEBIT, "10"), (revenue, CREDIT, "10"))

        je = _post(actor, lines)
        inv = _post(actor, lines, Transaction.Type.INVOICE)
        pay = _post(actor, lines, Transaction.Type.PAYMENT)

        assert (je.number, inv.number, pay.number) == ("JE-2026-0001", "INV-2026-0001", "PAY-2026-0001")

    def test_new_year_starts_a_new_sequence(self, actor, entries, cash, revenue):
        lines = entries((cash, DEBIT, "10"), (revenue, CREDIT, "10"))

        _post(actor, lines)
        next_year = _post(actor, lines, on_date=date(2027, 1, 2))

        assert next_year.number == "JE-2027-0001"
        assert set(OrganizationSequence.objects.values_list("name", flat=True)) == {"JE-2026", "JE-2027"}

    def test_organizations_do_not_share_sequences(self, actor, second_actor, entries, cash, revenue):
        bank = Account.objects.create(
            organization=second_actor.organization, code="1000", name="Bank",
            account_type=Account.AccountType.ASSET,
        )
        sales = Account.objects.create(
            organization=second_actor.organization, code="4000", name="Sales",
            account_type=Account.AccountType.REVENUE,
        )

        first = _post(actor, entries((cash, DEBIT, "10"), (revenue, CREDIT, "10")))
        second = _post(second_actor, entries((bank, DEBIT, "10"), (sales, CREDIT, "10")))

        assert first.number == second.number == "JE-2026-0001"

    def test_drafts_take_numbers_too(self, actor, entries, cash, revenue):
        lines = entries((cash, DEBIT, "10"), (revenue, CREDIT, "10"))

        draft = create_transaction(
            actor, date=TXN_DATE, transaction_type=Transaction.Type.JOURNAL_ENTRY,
            description="Draft", entries=lines, post=False,
        )
        posted = _post(actor, lines)

        assert draft.number == "JE-2026-0001"
        assert posted.number == "JE-2026-0002"


# =============================================================================
# Collision Tests
# =============================================================================

@pytest.mark.django_db
class TestNumberCollisions:

    @pytest.fixture
    def imported_invoice(self, organization):
        """A row numbered outside the sequence, e.g. by a data import."""
        return Transaction.objects.create(
            organization=organization,
            number="INV-2026-0001",
            date=TXN_DATE,
            transaction_type=Transaction.Type.INVOICE,
            description="Imported invoice",
        )

    def test_taken_number_is_skipped(self, actor, entries, cash, revenue, imported_invoice):
        before = _sample("ledger_number_collisions_total")

        txn = _post(actor, entries((cash, DEBIT, "10"), (revenue, CREDIT, "10")), Transaction.Type.INVOICE)

        assert txn.number == "INV-2026-0002"
        assert _sample("ledger_number_collisions_total") == before + 1
        seq = OrganizationSequence.objects.get(organization=actor.organization, name="INV-2026")
        assert seq.next_value == 3

    def test_exhausted_retries_raise_conflict(self, actor, entries, cash, revenue, imported_invoice, monkeypatch):
        monkeypatch.setattr("ledger.commands._next_organization_sequence", lambda organization, name: 1)
        before = _sample("ledger_posting_rejections_total", {"reason": "persistence_conflict"})

        with pytest.raises(PersistenceConflictError):
            _post(actor, entries((cash, DEBIT, "10"), (revenue, CREDIT, "10")), Transaction.Type.INVOICE)

        assert Transaction.objects.count() == 1
        assert LedgerEntry.objects.count() == 0
        assert _sample("ledger_posting_rejections_total", {"reason": "persistence_conflict"}) == before + 1

    def test_retry_count_follows_setting(self, actor, entries, cash, revenue, imported_invoice, monkeypatch, settings):
        settings.LEDGER_NUMBER_MAX_ATTEMPTS = 5
        calls = []

        def always_one(organization, name):
            calls.append(name)
            return 1

        monkeypatch.setattr("ledger.commands._next_organization_sequence", always_one)

        with pytest.raises(PersistenceConflictError):
            _post(actor, entries((cash, DEBIT, "10"), (revenue, CREDIT, "10")), Transaction.Type.INVOICE)

        assert calls == ["INV-2026"] * 5


# =============================================================================
# Concurrency Tests
# =============================================================================

@pytest.mark.postgres
@pytest.mark.django_db(transaction=True)
class TestConcurrentPosting:
    """Row locks on OrganizationSequence need a real database server."""

    def test_parallel_postings_get_distinct_numbers(self, user, organization, cash, revenue, entries):
        if connection.vendor != "postgresql":
            pytest.skip("needs PostgreSQL; set DATABASE_URL=postgres://... (see backend/.env.example)")

        actor = ActorContext(user=user, organization=organization)
        lines = entries((cash, DEBIT, "10"), (revenue, CREDIT, "10"))
        numbers = []
        errors = []
        lock = threading.Lock()

        def worker():
            from django.db import connection as thread_connection
            try:
                txn = _post(actor, lines)
                with lock:
                    numbers.append(txn.number)
            except Exception as exc:
                with lock:
                    errors.append(exc)
            finally:
                thread_connection.close()

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        assert sorted(numbers) == [f"JE-2026-{n:04d}" for n in range(1, 9)]
