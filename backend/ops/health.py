"""
Health check endpoints for operations monitoring.

Checks:
- Database connectivity (all configured databases)
- Schema state (unapplied migrations mean the ledger tables may not match the code)
- Ledger integrity (posted transactions whose entries do not balance)

Endpoints:
- /_health/live    - Kubernetes liveness probe (is the process running?)
- /_health/ready   - Kubernetes readiness probe (database reachable, schema migrated)
- /_health/ledger  - Ledger integrity scan only
- /_health/full    - Everything above (for debugging/dashboards)
"""
import logging
import time
from typing import Dict, Any

from django.conf import settings
from django.db import connections, DatabaseError
from django.db.migrations.executor import MigrationExecutor
from django.http import JsonResponse
from django.views import View

logger = logging.getLogger(__name__)

HEALTHY = "healthy"
DEGRADED = "degraded"
UNHEALTHY = "unhealthy"

# How many offending transaction ids the integrity check reports
INTEGRITY_SAMPLE_SIZE = 10


class HealthCheck:
    """Individual checks; each returns a dict with at least a ``status`` key."""

    @staticmethod
    def check_database(alias: str = "default") -> Dict[str, Any]:
        start = time.time()
        try:
            conn = connections[alias]
            conn.ensure_connection()
            with conn.cursor() as cursor:
                cursor.execute("SELECT 1")
                cursor.fetchone()
        except DatabaseError as e:
            logger.error("Database health check failed", extra={"alias": alias, "error": str(e)})
            return {
                "status": UNHEALTHY,
                "alias": alias,
                "vendor": connections[alias].vendor,
                "error": str(e),
                "duration_ms": round((time.time() - start) * 1000, 2),
            }
        return {
            "status": HEALTHY,
            "alias": alias,
            "vendor": connections[alias].vendor,
            "duration_ms": round((time.time() - start) * 1000, 2),
        }

    @staticmethod
    def check_all_databases() -> Dict[str, Any]:
        results = {alias: HealthCheck.check_database(alias) for alias in settings.DATABASES}
        all_healthy = all(r["status"] == HEALTHY for r in results.values())
        return {
            "status": HEALTHY if all_healthy else UNHEALTHY,
            "databases": results,
        }

    @staticmethod
    def check_migrations(alias: str = "default") -> Dict[str, Any]:
        """Unapplied migrations on ``alias``."""
        try:
            executor = MigrationExecutor(connections[alias])
            plan = executor.migration_plan(executor.loader.graph.leaf_nodes())
        except DatabaseError as e:
            return {"status": UNHEALTHY, "error": str(e)}

        pending = [f"{migration.app_label}.{migration.name}" for migration, _ in plan]
        if pending:
            logger.warning("Unapplied migrations", extra={"alias": alias, "pending": pending})
        return {
            "status": HEALTHY if not pending else UNHEALTHY,
            "pending": pending,
        }

    @staticmethod
    def check_ledger_integrity() -> Dict[str, Any]:
        """
        Look for POSTED transactions with no entries or unbalanced entries.

        The posting commands never let such a transaction through, so any
        hit here means rows were written around the command layer.
        """
        from ledger.balances import find_unbalanced_transactions

        try:
            unbalanced = find_unbalanced_transactions(limit=INTEGRITY_SAMPLE_SIZE)
        except DatabaseError as e:
            return {"status": UNHEALTHY, "error": str(e)}

        if unbalanced:
            logger.error(
                "Unbalanced posted transactions found",
                extra={"transaction_numbers": [t.number for t in unbalanced]},
            )
        return {
            "status": HEALTHY if not unbalanced else DEGRADED,
            "unbalanced_transactions": [str(t.public_id) for t in unbalanced],
        }

    @staticmethod
    def get_full_health() -> Dict[str, Any]:
        checks = {
            "databases": HealthCheck.check_all_databases(),
            "migrations": HealthCheck.check_migrations(),
            "ledger_integrity": HealthCheck.check_ledger_integrity(),
        }

        statuses = [c["status"] for c in checks.values()]
        if all(s == HEALTHY for s in statuses):
            overall = HEALTHY
        elif UNHEALTHY in statuses:
            overall = UNHEALTHY
        else:
            overall = DEGRADED

        return {
            "status": overall,
            "checks": checks,
            "version": getattr(settings, "VERSION", "unknown"),
            "environment": "production" if not settings.DEBUG else "development",
        }


def _respond(payload: Dict[str, Any], ok: bool) -> JsonResponse:
    return JsonResponse(payload, status=200 if ok else 503)


class LivenessView(View):
    """Returns 200 while the process is running; touches nothing external."""

    def get(self, request):
        return JsonResponse({"status": "alive"})


class ReadinessView(View):
    """Ready once the database answers and the schema is migrated."""

    def get(self, request):
        database = HealthCheck.check_database("default")
        migrations = (
            HealthCheck.check_migrations("default")
            if database["status"] == HEALTHY
            else {"status": "skipped"}
        )
        ready = database["status"] == HEALTHY and migrations["status"] == HEALTHY
        return _respond({
            "status": "ready" if ready else "not_ready",
            "database": database,
            "migrations": migrations,
        }, ready)


class LedgerIntegrityView(View):
    """Integrity scan alone; can be slow on large ledgers."""

    def get(self, request):
        result = HealthCheck.check_ledger_integrity()
        return _respond(result, result["status"] == HEALTHY)


class FullHealthView(View):
    """
    Full health check for debugging and dashboards.

    Should be protected in production (internal network only).
    """

    def get(self, request):
        health = HealthCheck.get_full_health()
        return _respond(health, health["status"] == HEALTHY)
