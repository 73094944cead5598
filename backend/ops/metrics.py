"""
Prometheus metrics endpoint.

Exposes application metrics in Prometheus format for scraping.

Metrics exposed:
- ledger_transactions_posted_total: Transactions reaching POSTED, by type
- ledger_posting_rejections_total: Rejected postings, by error class
- ledger_number_collisions_total: Transaction number collisions that were retried
- ledger_transactions_voided_total / ledger_transactions_reversed_total
- ledger_posting_duration_seconds: Time spent inside create_transaction
- ledger_request_duration_seconds: HTTP request duration histogram
"""
import logging
import re
import time

from django.http import HttpResponse
from django.views import View
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)

logger = logging.getLogger(__name__)


transactions_posted = Counter(
    "ledger_transactions_posted",
    "Transactions that reached POSTED status",
    ["transaction_type"],
)

posting_rejections = Counter(
    "ledger_posting_rejections",
    "Postings rejected before anything was persisted",
    ["reason"],
)

number_collisions = Counter(
    "ledger_number_collisions",
    "Transaction number collisions retried with a fresh number",
)

transactions_voided = Counter(
    "ledger_transactions_voided",
    "Transactions moved from POSTED to VOIDED",
)

transactions_reversed = Counter(
    "ledger_transactions_reversed",
    "Transactions corrected by a reversing transaction",
)

posting_duration = Histogram(
    "ledger_posting_duration_seconds",
    "Time spent creating a transaction and its entries",
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5),
)

request_duration = Histogram(
    "ledger_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint", "status"],
    buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
)

active_requests = Gauge(
    "ledger_active_requests",
    "Number of requests currently being processed",
)


def get_prometheus_response():
    """Generate Prometheus metrics response."""
    output = generate_latest()
    return HttpResponse(output, content_type=CONTENT_TYPE_LATEST)


class MetricsView(View):
    """
    Prometheus metrics endpoint.

    Exposes metrics in Prometheus format at /_metrics.
    Should be protected in production (internal network only).
    """

    def get(self, request):
        return get_prometheus_response()


def _normalize_endpoint(path: str) -> str:
    # Strip IDs for cardinality control
    endpoint = re.sub(r"/\d+/", "/{id}/", path)
    endpoint = re.sub(r"/[0-9a-f-]{36}/", "/{uuid}/", endpoint)
    return endpoint[:50]


def track_request_metrics(get_response):
    """
    Middleware to track request duration metrics.

    Add to MIDDLEWARE after SecurityMiddleware:
        "ops.metrics.track_request_metrics",
    """

    def middleware(request):
        start = time.time()
        active_requests.inc()
        status = 500

        try:
            response = get_response(request)
            status = response.status_code
            return response
        finally:
            active_requests.dec()
            request_duration.labels(
                method=request.method,
                endpoint=_normalize_endpoint(request.path),
                status=f"{status // 100}xx",
            ).observe(time.time() - start)

    return middleware
