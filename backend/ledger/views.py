# ledger/views.py
"""
Thin views that delegate to the commands layer.

Views handle: HTTP parsing, authentication, response envelopes.
Commands handle: business logic, validation, events.

Every response is an envelope:
    {"success": true, "data": ...}
    {"success": false, "error": {"code": ..., "message": ..., "details": ...}}
"""

import math

from django.http import Http404
from rest_framework import status
from rest_framework.exceptions import ValidationError as DRFValidationError
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from accounts.authz import resolve_actor
from .balances import trial_balance
from .commands import create_transaction, post_transaction, reverse_transaction, void_transaction
from .errors import (
    InvalidTransitionError,
    LedgerError,
    NotFoundError,
    PersistenceConflictError,
)
from .models import Account, Transaction
from .serializers import (
    AccountSerializer,
    ReverseSerializer,
    TransactionCreateSerializer,
    TransactionFilterSerializer,
    TransactionSerializer,
    TrialBalanceQuerySerializer,
    TrialBalanceRowSerializer,
    VoidSerializer,
)


def error_status(exc: LedgerError) -> int:
    if isinstance(exc, NotFoundError):
        return status.HTTP_404_NOT_FOUND
    if isinstance(exc, InvalidTransitionError):
        return status.HTTP_409_CONFLICT
    if isinstance(exc, PersistenceConflictError):
        return status.HTTP_503_SERVICE_UNAVAILABLE
    # ValidationError, UnbalancedEntryError
    return status.HTTP_400_BAD_REQUEST


def _framework_error_code(exc) -> str:
    if isinstance(exc, Http404):
        return "not_found"
    return getattr(exc, "default_code", "error")


def ok(data, status_code=status.HTTP_200_OK) -> Response:
    return Response({"success": True, "data": data}, status=status_code)


class LedgerAPIView(APIView):
    """Wraps every error response (ledger, input, framework) in the error envelope."""

    permission_classes = [IsAuthenticated]

    def handle_exception(self, exc):
        if isinstance(exc, LedgerError):
            return Response(
                {"success": False, "error": exc.to_dict()},
                status=error_status(exc),
            )
        if isinstance(exc, DRFValidationError):
            return Response(
                {
                    "success": False,
                    "error": {
                        "code": "validation_error",
                        "message": "Invalid input.",
                        "details": exc.detail,
                    },
                },
                status=status.HTTP_400_BAD_REQUEST,
            )

        # Authentication, permission, 404 and method errors from DRF itself
        response = super().handle_exception(exc)
        detail = response.data.get("detail", "") if isinstance(response.data, dict) else response.data
        response.data = {
            "success": False,
            "error": {
                "code": _framework_error_code(exc),
                "message": str(detail),
                "details": {},
            },
        }
        return response


def _transaction_queryset(organization):
    return (
        Transaction.objects.filter(organization=organization)
        .select_related("reverses")
        .prefetch_related("entries__account")
    )


class TransactionListCreateView(LedgerAPIView):
    """
    GET /api/orgs/<org>/transactions/ -> paginated list with filters
    POST /api/orgs/<org>/transactions/ -> create (and by default post)
    """

    def get(self, request, org_slug):
        actor = resolve_actor(request, org_slug)
        filters = TransactionFilterSerializer(data=request.query_params)
        filters.is_valid(raise_exception=True)
        params = filters.validated_data

        qs = _transaction_queryset(actor.organization)
        if params.get("type"):
            qs = qs.filter(transaction_type=params["type"])
        if params.get("status"):
            qs = qs.filter(status=params["status"])
        if params.get("start_date"):
            qs = qs.filter(date__gte=params["start_date"])
        if params.get("end_date"):
            qs = qs.filter(date__lte=params["end_date"])
        qs = qs.order_by("-date", "-id")

        page, limit = params["page"], params["limit"]
        total = qs.count()
        items = qs[(page - 1) * limit:page * limit]

        return ok({
            "transactions": TransactionSerializer(items, many=True).data,
            "pagination": {
                "page": page,
                "limit": limit,
                "total": total,
                "total_pages": math.ceil(total / limit) if total else 0,
            },
        })

    def post(self, request, org_slug):
        actor = resolve_actor(request, org_slug)
        serializer = TransactionCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        txn = create_transaction(
            actor,
            date=data["date"],
            transaction_type=data["type"],
            description=data["description"],
            entries=[dict(e) for e in data["entries"]],
            notes=data["notes"],
            reference_type=data["reference_type"],
            reference_id=data["reference_id"],
            post=data["post"],
        )
        return ok(TransactionSerializer(txn).data, status.HTTP_201_CREATED)


class TransactionDetailView(LedgerAPIView):
    """GET /api/orgs/<org>/transactions/<public_id>/"""

    def get(self, request, org_slug, public_id):
        actor = resolve_actor(request, org_slug)
        txn = _transaction_queryset(actor.organization).filter(public_id=public_id).first()
        if txn is None:
            raise NotFoundError(f"Transaction {public_id} not found.")
        return ok(TransactionSerializer(txn).data)


class TransactionPostView(LedgerAPIView):
    """POST /api/orgs/<org>/transactions/<public_id>/post/ -> DRAFT to POSTED"""

    def post(self, request, org_slug, public_id):
        actor = resolve_actor(request, org_slug)
        txn = post_transaction(actor, public_id)
        return ok(TransactionSerializer(txn).data)


class TransactionVoidView(LedgerAPIView):
    """POST /api/orgs/<org>/transactions/<public_id>/void/"""

    def post(self, request, org_slug, public_id):
        actor = resolve_actor(request, org_slug)
        serializer = VoidSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        txn = void_transaction(actor, public_id, reason=serializer.validated_data["reason"])
        return ok(TransactionSerializer(txn).data)


class TransactionReverseView(LedgerAPIView):
    """POST /api/orgs/<org>/transactions/<public_id>/reverse/ -> reversing transaction"""

    def post(self, request, org_slug, public_id):
        actor = resolve_actor(request, org_slug)
        serializer = ReverseSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        reversal = reverse_transaction(
            actor,
            public_id,
            reason=serializer.validated_data["reason"],
            date=serializer.validated_data["date"],
        )
        return ok(TransactionSerializer(reversal).data, status.HTTP_201_CREATED)


class AccountListView(LedgerAPIView):
    """GET /api/orgs/<org>/accounts/ (?include_inactive=1)"""

    def get(self, request, org_slug):
        actor = resolve_actor(request, org_slug)
        accounts = Account.objects.filter(organization=actor.organization)
        if request.query_params.get("include_inactive") not in ("1", "true", "True"):
            accounts = accounts.filter(is_active=True)
        return ok(AccountSerializer(accounts.order_by("code"), many=True).data)


class TrialBalanceView(LedgerAPIView):
    """GET /api/orgs/<org>/trial-balance/ (?as_of=YYYY-MM-DD)"""

    def get(self, request, org_slug):
        actor = resolve_actor(request, org_slug)
        query = TrialBalanceQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        as_of = query.validated_data.get("as_of")

        report = trial_balance(actor.organization, as_of=as_of)
        return ok({
            "as_of": as_of.isoformat() if as_of else None,
            "base_currency": actor.organization.base_currency,
            "rows": TrialBalanceRowSerializer(report.rows, many=True).data,
            "total_debit": str(report.total_debit),
            "total_credit": str(report.total_credit),
            "is_balanced": report.is_balanced,
        })
