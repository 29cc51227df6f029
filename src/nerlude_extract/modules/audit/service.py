from __future__ import annotations

from collections.abc import Callable

from sqlalchemy.orm import Session, sessionmaker

from nerlude_extract.core.db import SessionLocal, session_scope
from nerlude_extract.core.logging import get_logger, log_event, log_exception
from nerlude_extract.modules.audit.models import AuditEvent
from nerlude_extract.modules.audit.schemas import AuditEntry

logger = get_logger(__name__)

AuditWriter = Callable[[AuditEntry], None]


class SqlAuditWriter:
    """Appends audit entries to the ``audit_event`` table, one short session per write."""

    def __init__(self, session_factory: sessionmaker[Session] = SessionLocal) -> None:
        self._session_factory = session_factory

    def __call__(self, entry: AuditEntry) -> None:
        with session_scope(self._session_factory) as session:
            session.add(
                AuditEvent(
                    actor_user_id=entry.actor_id,
                    context_id=entry.context_id,
                    action=entry.action.value,
                    document_count=entry.document_count,
                    services_detected=entry.services_detected,
                    success=entry.success,
                    payload_json=dict(entry.details),
                    occurred_at=entry.timestamp,
                )
            )


def record_audit_entry(writer: AuditWriter, entry: AuditEntry) -> bool:
    """
    Best-effort audit write.

    Any failure is logged and swallowed; the return value only reports whether the entry landed.
    """
    try:
        writer(entry)
    except Exception:  # noqa: BLE001
        log_exception(
            logger,
            "audit.write.failed",
            action=entry.action.value,
            actor_id=str(entry.actor_id),
            context_id=entry.context_id,
        )
        return False
    log_event(
        logger,
        "audit.write.ok",
        action=entry.action.value,
        document_count=entry.document_count,
        services_detected=entry.services_detected,
        success=entry.success,
    )
    return True
