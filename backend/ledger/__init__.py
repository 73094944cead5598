# ledger/__init__.py
"""
Ledger app - double-entry posting for Ledgerworks.

Every money-moving feature ends up here: a list of proposed debits and
credits becomes a balanced, numbered, immutable Transaction.
"""
