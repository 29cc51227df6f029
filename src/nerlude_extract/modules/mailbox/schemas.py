from __future__ import annotations

from typing import Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, model_validator

from nerlude_extract.core.config import settings
from nerlude_extract.modules.extraction.schemas import AnalysisResult, CamelModel


class MailboxAddress(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str | None = Field(
        default=None, validation_alias=AliasChoices("name", "display_name")
    )
    email: str = Field(default="", validation_alias=AliasChoices("email", "identifier"))


class MailboxAttachment(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    filename: str = Field(default="", validation_alias=AliasChoices("filename", "name"))
    content_type: str = Field(
        default="", validation_alias=AliasChoices("content_type", "mime", "mime_type")
    )
    size: int | None = None


class MailboxMessage(BaseModel):
    """One message as listed by the mailbox provider (``meta_only=false``)."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: str
    subject: str | None = None
    sender: MailboxAddress | None = Field(
        default=None, validation_alias=AliasChoices("from", "from_attendee", "sender")
    )
    date: str | None = None
    body_plain: str | None = None
    body_html: str | None = Field(default=None, validation_alias=AliasChoices("body_html", "body"))
    attachments: list[MailboxAttachment] = Field(default_factory=list)

    @property
    def sender_email(self) -> str:
        return self.sender.email if self.sender else ""


class SyncEmailRequest(CamelModel):
    action: Literal["fetch_invoices", "create_auth_link"]
    account_id: str | None = Field(default=None, max_length=200)
    days_back: int = Field(default_factory=lambda: settings.default_days_back, ge=1, le=365)
    success_redirect_url: str | None = None
    failure_redirect_url: str | None = None
    notify_url: str | None = None

    @model_validator(mode="after")
    def _fetch_needs_account(self) -> SyncEmailRequest:
        if self.action == "fetch_invoices" and not (self.account_id or "").strip():
            raise ValueError("accountId is required for fetch_invoices")
        return self


class MailboxSyncResult(AnalysisResult):
    emails_scanned: int = 0
    invoice_emails_found: int = 0
    documents_analyzed: int = 0


class AuthLinkOut(CamelModel):
    auth_link: str
