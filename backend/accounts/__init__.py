# accounts/__init__.py
"""
Accounts app - Organizations and membership for Ledgerworks.

This app provides:
- Organization: Tenant model carrying the base currency
- ActorContext: Who is acting, in which organization

Multi-tenancy is enforced at every layer through the ActorContext pattern.
"""
