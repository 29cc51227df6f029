from __future__ import annotations

import enum
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from nerlude_extract.core.models import utcnow


class AuditAction(str, enum.Enum):
    DOCUMENTS_ANALYZED = "documents_analyzed"
    EMAIL_INVOICE_SYNC = "email_invoice_sync"


@dataclass(frozen=True)
class AuditEntry:
    actor_id: uuid.UUID
    action: AuditAction
    document_count: int
    services_detected: int
    success: bool
    timestamp: datetime = field(default_factory=utcnow)
    context_id: str | None = None
    details: dict[str, Any] = field(default_factory=dict)
