# events/__init__.py
"""
Events app - Domain event outbox for Ledgerworks.

Every ledger command records what it did as a DomainEvent, written in
the same database transaction as the ledger rows. Delivery to external
consumers reads from this table and is handled elsewhere.
"""
