# rx_core/audit/selectors.py
from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from django.conf import settings
from django.db.models import Count, Max, QuerySet

from rx_core.audit.models import AuditAction, AuditEntry
from rx_core.common.errors import translate_store_errors

DEFAULT_TRAIL_LIMIT = 100
DEFAULT_ACTIVITY_LIMIT = 50


def _cap(limit: int | None, default: int) -> int:
    ceiling = int(getattr(settings, "RX_AUDIT_TRAIL_MAX_LIMIT", 500))
    n = default if limit is None else int(limit)
    return max(1, min(n, ceiling))


def _in_range(qs: QuerySet[AuditEntry], start: datetime | None, end: datetime | None) -> QuerySet[AuditEntry]:
    if start is not None:
        qs = qs.filter(timestamp__gte=start)
    if end is not None:
        qs = qs.filter(timestamp__lte=end)
    return qs


@translate_store_errors
def trail(
    *,
    record_id: UUID,
    action: str | None = None,
    actor_role: str | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
    limit: int | None = None,
) -> list[AuditEntry]:
    qs = AuditEntry.objects.filter(record_id=record_id)
    if action:
        qs = qs.filter(action=action)
    if actor_role:
        qs = qs.filter(actor_role=actor_role)
    qs = _in_range(qs, start, end)
    return list(qs.order_by("-timestamp", "-id")[: _cap(limit, DEFAULT_TRAIL_LIMIT)])


@translate_store_errors
def activity(
    *,
    actor_id: str,
    role: str | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
    limit: int | None = None,
) -> list[AuditEntry]:
    qs = AuditEntry.objects.filter(actor_id=str(actor_id))
    if role:
        qs = qs.filter(actor_role=role)
    qs = _in_range(qs, start, end)
    return list(qs.order_by("-timestamp", "-id")[: _cap(limit, DEFAULT_ACTIVITY_LIMIT)])


@translate_store_errors
def stats(*, start: datetime | None = None, end: datetime | None = None) -> list[dict[str, Any]]:
    """
    Per action: total count, last activity and a per-role count breakdown.
    """
    qs = _in_range(AuditEntry.objects.all(), start, end)

    rows = qs.order_by().values("action", "actor_role").annotate(count=Count("id"), last=Max("timestamp"))

    by_action: dict[str, dict[str, Any]] = {}
    for row in rows:
        bucket = by_action.setdefault(
            row["action"],
            {"action": row["action"], "count": 0, "last_activity": None, "by_role": {}},
        )
        bucket["count"] += row["count"]
        bucket["by_role"][row["actor_role"]] = row["count"]
        if bucket["last_activity"] is None or row["last"] > bucket["last_activity"]:
            bucket["last_activity"] = row["last"]

    return sorted(by_action.values(), key=lambda b: b["count"], reverse=True)


@translate_store_errors
def compliance_report(*, start: datetime | None = None, end: datetime | None = None) -> dict[str, Any]:
    qs = _in_range(AuditEntry.objects.all(), start, end)
    total = qs.count()

    per_action = {a: 0 for a in AuditAction.values}
    for row in qs.order_by().values("action").annotate(count=Count("id")):
        per_action[row["action"]] = row["count"]

    per_role = {
        row["actor_role"]: row["count"]
        for row in qs.order_by().values("actor_role").annotate(count=Count("id"))
    }

    def pct(n: int) -> float:
        return round(n * 100.0 / total, 2) if total else 0.0

    return {
        "period": {"start": start, "end": end},
        "total_actions": total,
        "records_touched": qs.exclude(record_id=None).values("record_id").distinct().count(),
        "actions": [
            {"action": action, "count": count, "percentage": pct(count)}
            for action, count in per_action.items()
        ],
        "roles": [
            {"role": role, "count": count, "percentage": pct(count)}
            for role, count in sorted(per_role.items())
        ],
    }
