# ledger/urls.py
"""
URL configuration for the ledger API.

Mounted under /api/orgs/<org_slug>/.

Endpoints:
- /transactions/ - list + create
- /transactions/<id>/ - detail, with post/void/reverse actions
- /accounts/ - chart of accounts
- /trial-balance/ - posted totals per account
"""

from django.urls import path

from .views import (
    AccountListView,
    TransactionDetailView,
    TransactionListCreateView,
    TransactionPostView,
    TransactionReverseView,
    TransactionVoidView,
    TrialBalanceView,
)

app_name = "ledger"

urlpatterns = [
    path(
        "transactions/",
        TransactionListCreateView.as_view(),
        name="transaction-list-create",
    ),
    path(
        "transactions/<uuid:public_id>/",
        TransactionDetailView.as_view(),
        name="transaction-detail",
    ),
    path(
        "transactions/<uuid:public_id>/post/",
        TransactionPostView.as_view(),
        name="transaction-post",
    ),
    path(
        "transactions/<uuid:public_id>/void/",
        TransactionVoidView.as_view(),
        name="transaction-void",
    ),
    path(
        "transactions/<uuid:public_id>/reverse/",
        TransactionReverseView.as_view(),
        name="transaction-reverse",
    ),
    path(
        "accounts/",
        AccountListView.as_view(),
        name="account-list",
    ),
    path(
        "trial-balance/",
        TrialBalanceView.as_view(),
        name="trial-balance",
    ),
]
