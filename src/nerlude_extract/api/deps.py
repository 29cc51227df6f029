from __future__ import annotations

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from nerlude_extract.core.config import settings
from nerlude_extract.core.db import db_session
from nerlude_extract.core.logging import set_user_context
from nerlude_extract.modules.audit.service import AuditWriter, SqlAuditWriter
from nerlude_extract.modules.extraction.client import ExtractionClient, GeminiExtractionClient
from nerlude_extract.modules.extraction.service import ExtractionPipeline
from nerlude_extract.modules.identity.models import User
from nerlude_extract.modules.identity.service import resolve_bearer_token
from nerlude_extract.modules.mailbox.client import MailboxClient
from nerlude_extract.modules.mailbox.service import MailboxInvoiceSync
from nerlude_extract.modules.registry.service import ServiceRegistry

bearer_scheme = HTTPBearer(auto_error=False)


def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    session: Session = Depends(db_session),
) -> User:
    token = credentials.credentials if credentials else None
    user = resolve_bearer_token(session, token=token)
    set_user_context(str(user.id))
    return user


def get_registry(request: Request) -> ServiceRegistry:
    return request.app.state.registry


def get_extraction_client() -> ExtractionClient:
    return GeminiExtractionClient.from_settings()


def get_audit_writer() -> AuditWriter:
    return SqlAuditWriter()


def get_mailbox_client() -> MailboxClient:
    return MailboxClient.from_settings()


def get_extraction_pipeline(
    registry: ServiceRegistry = Depends(get_registry),
    client: ExtractionClient = Depends(get_extraction_client),
    audit_writer: AuditWriter = Depends(get_audit_writer),
) -> ExtractionPipeline:
    return ExtractionPipeline(
        registry=registry,
        client=client,
        audit_writer=audit_writer,
        max_documents=settings.max_documents_per_request,
    )


def get_mailbox_sync(
    client: MailboxClient = Depends(get_mailbox_client),
    pipeline: ExtractionPipeline = Depends(get_extraction_pipeline),
) -> MailboxInvoiceSync:
    return MailboxInvoiceSync(
        client=client,
        pipeline=pipeline,
        list_limit=settings.mailbox_list_limit,
        max_candidates=settings.max_candidate_emails,
        max_attachments_per_email=settings.max_attachments_per_email,
        fetch_workers=settings.attachment_fetch_workers,
    )
