from __future__ import annotations

from collections.abc import Iterable
from typing import Protocol

from nerlude_extract.modules.mailbox.schemas import MailboxAttachment, MailboxMessage

INVOICE_KEYWORDS = (
    "invoice",
    "receipt",
    "payment",
    "subscription",
    "billing",
    "order confirmation",
    "payment received",
    "your order",
    "transaction",
)

RELEVANT_ATTACHMENT_EXTENSIONS = (".pdf", ".png", ".jpg", ".jpeg", ".gif", ".webp", ".heic")


class SenderDirectory(Protocol):
    def sender_matches(self, address: str | None) -> bool: ...


def is_relevant_attachment(attachment: MailboxAttachment) -> bool:
    content_type = (attachment.content_type or "").lower()
    if content_type == "application/pdf" or content_type.startswith("image/"):
        return True
    return (attachment.filename or "").lower().endswith(RELEVANT_ATTACHMENT_EXTENSIONS)


def has_billing_keyword(message: MailboxMessage) -> bool:
    haystack = f"{message.subject or ''}\n{message.body_plain or ''}".lower()
    return any(keyword in haystack for keyword in INVOICE_KEYWORDS)


def is_invoice_candidate(message: MailboxMessage, registry: SenderDirectory) -> bool:
    if has_billing_keyword(message):
        return True
    if registry.sender_matches(message.sender_email):
        return True
    return any(is_relevant_attachment(a) for a in message.attachments)


def filter_invoice_candidates(
    messages: Iterable[MailboxMessage], registry: SenderDirectory
) -> list[MailboxMessage]:
    return [m for m in messages if is_invoice_candidate(m, registry)]
