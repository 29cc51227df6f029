from __future__ import annotations

import base64
import logging
import mimetypes
import re
import time
import uuid
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from html import unescape

from nerlude_extract.core.config import settings
from nerlude_extract.core.logging import get_logger, log_event, log_exception, monotonic_ms
from nerlude_extract.modules.audit.schemas import AuditAction, AuditEntry
from nerlude_extract.modules.audit.service import record_audit_entry
from nerlude_extract.modules.extraction.schemas import DocumentInput, DocumentKind
from nerlude_extract.modules.extraction.service import ExtractionPipeline, empty_result
from nerlude_extract.modules.mailbox.client import MailboxClient
from nerlude_extract.modules.mailbox.prefilter import (
    filter_invoice_candidates,
    is_relevant_attachment,
)
from nerlude_extract.modules.mailbox.schemas import (
    AuthLinkOut,
    MailboxAttachment,
    MailboxMessage,
    MailboxSyncResult,
    SyncEmailRequest,
)

logger = get_logger(__name__)

_MAX_BODY_CHARS = 20_000


@dataclass(frozen=True)
class _PendingAttachment:
    message_id: str
    attachment: MailboxAttachment


@dataclass(frozen=True)
class MailboxInvoiceSync:
    """
    Mailbox path into the extraction pipeline.

    Lists recent messages, keeps the ones that look billing-related, turns each into a text
    document (headers plus body) followed by its relevant attachments, and extracts services in
    ceiling-sized batches. A failed attachment download only loses that attachment.
    """

    client: MailboxClient
    pipeline: ExtractionPipeline
    list_limit: int = 250
    max_candidates: int = 20
    max_attachments_per_email: int = 3
    fetch_workers: int = 3

    def fetch_invoices(
        self, *, actor_id: uuid.UUID, account_id: str, days_back: int
    ) -> MailboxSyncResult:
        start = time.monotonic()
        after = datetime.now(UTC) - timedelta(days=days_back)
        log_event(logger, "mailbox.sync.start", account_id=account_id, days_back=days_back)

        messages = self.client.list_messages(
            account_id=account_id, after=after, limit=self.list_limit
        )
        candidates = filter_invoice_candidates(messages, self.pipeline.registry)
        selected = candidates[: self.max_candidates]
        log_event(
            logger,
            "mailbox.sync.filtered",
            account_id=account_id,
            emails_scanned=len(messages),
            invoice_emails_found=len(candidates),
            selected=len(selected),
        )

        documents = self.materialize(account_id=account_id, messages=selected)
        if documents:
            result = self.pipeline.extract_in_batches(documents)
        else:
            result = empty_result("No invoice emails found in the selected period")

        record_audit_entry(
            self.pipeline.audit_writer,
            AuditEntry(
                actor_id=actor_id,
                action=AuditAction.EMAIL_INVOICE_SYNC,
                document_count=len(documents),
                services_detected=len(result.services),
                success=result.success,
                details={
                    "accountId": account_id,
                    "emailsScanned": len(messages),
                    "invoiceEmailsFound": len(candidates),
                    "documentsAnalyzed": len(documents),
                    "servicesExtracted": len(result.services),
                },
            ),
        )
        log_event(
            logger,
            "mailbox.sync.finish",
            account_id=account_id,
            status="success" if result.success else "unusable_output",
            documents_analyzed=len(documents),
            services_detected=len(result.services),
            duration_ms=monotonic_ms(start),
        )
        return MailboxSyncResult.model_validate(
            {
                **result.model_dump(),
                "emails_scanned": len(messages),
                "invoice_emails_found": len(candidates),
                "documents_analyzed": len(documents),
            }
        )

    def materialize(
        self, *, account_id: str, messages: Sequence[MailboxMessage]
    ) -> list[DocumentInput]:
        """Build documents in message order: each body, then that message's attachments."""
        pending: list[_PendingAttachment] = []
        for message in messages:
            relevant = [a for a in message.attachments if is_relevant_attachment(a)]
            for attachment in relevant[: self.max_attachments_per_email]:
                pending.append(_PendingAttachment(message_id=message.id, attachment=attachment))

        downloaded = self._download_all(account_id=account_id, pending=pending)

        documents: list[DocumentInput] = []
        for message in messages:
            body_doc = email_body_document(message)
            if body_doc is not None:
                documents.append(body_doc)
            for item in pending:
                if item.message_id != message.id:
                    continue
                doc = downloaded.get((item.message_id, item.attachment.id))
                if doc is not None:
                    documents.append(doc)
        return documents

    def _download_all(
        self, *, account_id: str, pending: Sequence[_PendingAttachment]
    ) -> dict[tuple[str, str], DocumentInput]:
        if not pending:
            return {}
        workers = max(1, min(int(self.fetch_workers or 1), len(pending)))
        with ThreadPoolExecutor(max_workers=workers) as pool:
            futures = [
                (item, pool.submit(self._download_one, account_id=account_id, item=item))
                for item in pending
            ]
        out: dict[tuple[str, str], DocumentInput] = {}
        for item, future in futures:
            try:
                doc = future.result()
            except Exception:
                log_exception(
                    logger,
                    "mailbox.attachment.failed",
                    message_id=item.message_id,
                    attachment_id=item.attachment.id,
                    filename=item.attachment.filename or None,
                )
                continue
            if doc is not None:
                out[(item.message_id, item.attachment.id)] = doc
        return out

    def _download_one(self, *, account_id: str, item: _PendingAttachment) -> DocumentInput | None:
        body = self.client.get_attachment(
            account_id=account_id,
            message_id=item.message_id,
            attachment_id=item.attachment.id,
        )
        if not body:
            log_event(
                logger,
                "mailbox.attachment.empty",
                level=logging.WARNING,
                message_id=item.message_id,
                attachment_id=item.attachment.id,
            )
            return None
        return DocumentInput(
            kind=DocumentKind.BINARY,
            content=base64.b64encode(body).decode("ascii"),
            mime_type=attachment_mime_type(item.attachment),
            filename=item.attachment.filename or f"attachment_{item.attachment.id}",
        )

    def create_auth_link(self, *, actor_id: uuid.UUID, payload: SyncEmailRequest) -> AuthLinkOut:
        return create_auth_link(self.client, actor_id=actor_id, payload=payload)


def create_auth_link(
    client: MailboxClient, *, actor_id: uuid.UUID, payload: SyncEmailRequest
) -> AuthLinkOut:
    base = settings.app_base_url.rstrip("/")
    link = client.create_hosted_auth_link(
        name=str(actor_id),
        success_redirect_url=payload.success_redirect_url
        or f"{base}/projects/new?email_connected=true",
        failure_redirect_url=payload.failure_redirect_url
        or f"{base}/projects/new?email_connected=false",
        notify_url=payload.notify_url,
    )
    log_event(logger, "mailbox.auth_link.created", actor_id=str(actor_id))
    return AuthLinkOut(auth_link=link)


def email_body_document(message: MailboxMessage) -> DocumentInput | None:
    body = (message.body_plain or "").strip()
    if not body and message.body_html:
        body = _html_to_text(message.body_html)
    if not body and not message.subject:
        return None
    content = (
        f"From: {message.sender_email}\n"
        f"Subject: {message.subject or ''}\n"
        f"Date: {message.date or ''}\n\n"
        f"{_truncate_text(body)}"
    )
    return DocumentInput(
        kind=DocumentKind.TEXT,
        content=content,
        mime_type="text/plain",
        filename=f"email_{message.id}.txt",
    )


def attachment_mime_type(attachment: MailboxAttachment) -> str:
    content_type = (attachment.content_type or "").split(";")[0].strip().lower()
    if content_type and content_type != "application/octet-stream":
        return content_type
    guessed, _ = mimetypes.guess_type(attachment.filename or "")
    if guessed:
        return guessed
    if (attachment.filename or "").lower().endswith(".heic"):
        return "image/heic"
    return "application/pdf"


def _truncate_text(text: str) -> str:
    if len(text) <= _MAX_BODY_CHARS:
        return text
    return text[:_MAX_BODY_CHARS] + "\n[TRUNCATED]"


def _html_to_text(html: str) -> str:
    html = re.sub(r"(?is)<(script|style).*?>.*?</\1>", "", html)
    html = re.sub(r"(?i)<br\s*/?>", "\n", html)
    html = re.sub(r"(?i)</p\s*>", "\n\n", html)
    html = re.sub(r"(?i)</(div|tr)\s*>", "\n", html)
    html = re.sub(r"(?s)<[^>]+>", "", html)
    html = unescape(html)
    lines = [re.sub(r"\s+", " ", ln).strip() for ln in html.splitlines()]
    return "\n".join([ln for ln in lines if ln])
