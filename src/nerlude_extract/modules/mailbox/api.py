from __future__ import annotations

from fastapi import APIRouter, Depends

from nerlude_extract.api.deps import get_current_user, get_mailbox_sync
from nerlude_extract.modules.identity.models import User
from nerlude_extract.modules.mailbox.schemas import AuthLinkOut, MailboxSyncResult, SyncEmailRequest
from nerlude_extract.modules.mailbox.service import MailboxInvoiceSync

router = APIRouter(tags=["mailbox"])


@router.post("/projects/sync-email", response_model=MailboxSyncResult | AuthLinkOut)
def sync_email(
    payload: SyncEmailRequest,
    user: User = Depends(get_current_user),
    sync: MailboxInvoiceSync = Depends(get_mailbox_sync),
) -> MailboxSyncResult | AuthLinkOut:
    if payload.action == "create_auth_link":
        return sync.create_auth_link(actor_id=user.id, payload=payload)
    return sync.fetch_invoices(
        actor_id=user.id,
        account_id=(payload.account_id or "").strip(),
        days_back=payload.days_back,
    )
