"""
Operations endpoints, mounted without authentication.

Protect them at network level (internal only) in production.
"""
from django.urls import path

from ops.health import FullHealthView, LedgerIntegrityView, LivenessView, ReadinessView
from ops.metrics import MetricsView

urlpatterns = [
    path("live", LivenessView.as_view(), name="health-live"),
    path("ready", ReadinessView.as_view(), name="health-ready"),
    path("ledger", LedgerIntegrityView.as_view(), name="health-ledger"),
    path("full", FullHealthView.as_view(), name="health-full"),
]

# Mounted under its own prefix in ledgerworks_backend/urls.py
metrics_patterns = [
    path("", MetricsView.as_view(), name="metrics"),
]
