# rx_core/audit/services.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional
from uuid import UUID

from django.conf import settings
from django.db import transaction

from rx_core.audit.models import AuditEntry
from rx_core.audit.sanitize import sanitize

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RequestMeta:
    ip_address: Optional[str] = None
    user_agent: str = ""
    session_id: str = ""


@dataclass(frozen=True)
class IntegrityIssue:
    entry_id: int
    problem: str


@dataclass
class IntegrityReport:
    record_id: UUID
    entries_checked: int = 0
    issues: list[IntegrityIssue] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.issues


class AuditLedger:
    """
    Append-only audit writer.
    append() never raises: a lost audit entry must not block the primary action.
    """

    @staticmethod
    def append(
        *,
        action: str,
        actor_id: str,
        actor_role: str,
        actor_name: str,
        record_id: UUID | None = None,
        changes: Optional[Dict[str, Any]] = None,
        previous_values: Optional[Dict[str, Any]] = None,
        metadata: Optional[Dict[str, Any]] = None,
        request_meta: RequestMeta | None = None,
    ) -> AuditEntry | None:
        meta = request_meta or RequestMeta()
        try:
            # savepoint: a failed insert must not poison the caller's transaction
            with transaction.atomic():
                return AuditEntry.objects.create(
                    record_id=record_id,
                    action=action,
                    actor_id=str(actor_id),
                    actor_role=actor_role,
                    actor_name=actor_name or "",
                    changes=sanitize(changes or {}),
                    previous_values=sanitize(previous_values or {}),
                    metadata=sanitize(metadata or {}),
                    ip_address=meta.ip_address or None,
                    user_agent=(meta.user_agent or "")[:512],
                    session_id=(meta.session_id or "")[:128],
                )
        except Exception:
            logger.exception(
                "Audit append failed: action=%s record_id=%s actor=%s:%s",
                action,
                record_id,
                actor_role,
                actor_id,
            )
            return None

    @staticmethod
    def dispatch(**kwargs: Any) -> AuditEntry | None:
        """
        Fire-and-forget append. With RX_AUDIT_DEFER_TO_COMMIT the write is queued
        after the surrounding transaction commits; callbacks run in registration
        order, so per-record ordering is kept.
        """
        if getattr(settings, "RX_AUDIT_DEFER_TO_COMMIT", False):
            transaction.on_commit(lambda: AuditLedger.append(**kwargs), robust=True)
            return None
        return AuditLedger.append(**kwargs)

    @staticmethod
    def validate_integrity(*, record_id: UUID) -> IntegrityReport:
        """
        Diagnostic walk over a record's entries in insertion order.
        Flags entries missing actor/role/action and timestamps that go backwards.
        """
        report = IntegrityReport(record_id=record_id)
        previous = None

        for entry in AuditEntry.objects.filter(record_id=record_id).order_by("id").iterator():
            report.entries_checked += 1

            missing = [name for name in ("actor_id", "actor_role", "action") if not getattr(entry, name)]
            if missing:
                report.issues.append(
                    IntegrityIssue(entry_id=entry.id, problem="missing required fields: " + ", ".join(missing))
                )

            if previous is not None and entry.timestamp < previous.timestamp:
                report.issues.append(
                    IntegrityIssue(
                        entry_id=entry.id,
                        problem=f"timestamp earlier than preceding entry {previous.id}",
                    )
                )
            previous = entry

        if report.issues:
            logger.warning("Audit integrity issues for record %s: %d", record_id, len(report.issues))
        return report


def request_meta_from(request) -> RequestMeta:
    forwarded = request.META.get("HTTP_X_FORWARDED_FOR", "")
    ip = forwarded.split(",")[0].strip() if forwarded else request.META.get("REMOTE_ADDR")

    session = getattr(request, "session", None)
    session_id = getattr(session, "session_key", None) or request.META.get("HTTP_X_SESSION_ID", "")

    return RequestMeta(
        ip_address=ip or None,
        user_agent=request.META.get("HTTP_USER_AGENT", ""),
        session_id=session_id or "",
    )
