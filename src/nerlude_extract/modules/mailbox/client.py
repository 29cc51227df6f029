from __future__ import annotations

import logging
import time
from datetime import UTC, datetime, timedelta
from typing import Any

import httpx
from pydantic import ValidationError

from nerlude_extract.core.config import settings
from nerlude_extract.core.errors import MailboxTransportError
from nerlude_extract.core.logging import get_logger, log_event, monotonic_ms
from nerlude_extract.modules.mailbox.schemas import MailboxMessage

logger = get_logger(__name__)

HOSTED_AUTH_PROVIDERS = ("GOOGLE", "OUTLOOK", "MAIL")
HOSTED_AUTH_TTL = timedelta(minutes=30)


class MailboxClient:
    """
    Thin wrapper over the Unipile-style mailbox REST API.

    Every non-2xx answer, timeout or connection problem raises ``MailboxTransportError``.
    """

    def __init__(self, *, api_key: str | None, base_url: str, timeout_seconds: float) -> None:
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds

    @classmethod
    def from_settings(cls) -> MailboxClient:
        return cls(
            api_key=settings.mailbox_api_key,
            base_url=settings.mailbox_base_url,
            timeout_seconds=float(settings.mailbox_timeout_seconds or 30.0),
        )

    def create_hosted_auth_link(
        self,
        *,
        name: str,
        success_redirect_url: str,
        failure_redirect_url: str,
        notify_url: str | None = None,
    ) -> str:
        expires_on = datetime.now(UTC) + HOSTED_AUTH_TTL
        payload: dict[str, Any] = {
            "type": "create",
            "providers": list(HOSTED_AUTH_PROVIDERS),
            "api_url": self.base_url,
            "expiresOn": expires_on.isoformat().replace("+00:00", "Z"),
            "name": name,
            "success_redirect_url": success_redirect_url,
            "failure_redirect_url": failure_redirect_url,
            "bypass_success_screen": True,
        }
        if notify_url:
            payload["notify_url"] = notify_url

        resp = self._request("POST", "/api/v1/hosted/accounts/link", json=payload)
        body = _json_body(resp)
        link = body.get("url") or body.get("hosted_auth_link") or body.get("connection_link")
        if not isinstance(link, str) or not link:
            raise MailboxTransportError("Mailbox provider returned no auth link")
        return link

    def list_messages(
        self, *, account_id: str, after: datetime, limit: int
    ) -> list[MailboxMessage]:
        """List messages received after ``after``, following cursors until ``limit`` is reached."""
        messages: list[MailboxMessage] = []
        cursor: str | None = None
        skipped = 0
        while len(messages) < limit:
            params: dict[str, Any] = {
                "account_id": account_id,
                "after": after.astimezone(UTC).isoformat().replace("+00:00", "Z"),
                "limit": limit - len(messages),
                "meta_only": "false",
            }
            if cursor:
                params["cursor"] = cursor
            body = _json_body(self._request("GET", "/api/v1/emails", params=params))

            items = body.get("items")
            if not isinstance(items, list) or not items:
                break
            for item in items:
                try:
                    messages.append(MailboxMessage.model_validate(item))
                except ValidationError:
                    skipped += 1

            next_cursor = body.get("cursor")
            if not isinstance(next_cursor, str) or not next_cursor or next_cursor == cursor:
                break
            cursor = next_cursor

        if skipped:
            log_event(
                logger,
                "mailbox.list.skipped_items",
                level=logging.WARNING,
                account_id=account_id,
                skipped=skipped,
            )
        return messages[:limit]

    def get_attachment(self, *, account_id: str, message_id: str, attachment_id: str) -> bytes:
        resp = self._request(
            "GET",
            f"/api/v1/emails/{message_id}/attachments/{attachment_id}",
            params={"account_id": account_id},
        )
        return resp.content

    def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        if not self.api_key:
            raise MailboxTransportError("MAILBOX_API_KEY is not configured")

        url = f"{self.base_url}{path}"
        start = time.monotonic()
        try:
            resp = httpx.request(
                method,
                url,
                headers={"X-API-KEY": self.api_key, "Accept": "application/json"},
                timeout=self.timeout_seconds,
                follow_redirects=True,
                **kwargs,
            )
            resp.raise_for_status()
        except httpx.TimeoutException as e:
            raise MailboxTransportError(
                f"Mailbox provider timed out after {self.timeout_seconds:g}s"
            ) from e
        except httpx.HTTPStatusError as e:
            raise MailboxTransportError(
                f"Mailbox provider returned {e.response.status_code}: {e.response.text[:300]}",
                status_code=e.response.status_code,
            ) from e
        except httpx.HTTPError as e:
            raise MailboxTransportError(f"Mailbox provider unreachable: {e}") from e

        log_event(
            logger,
            "mailbox.call.finish",
            method=method,
            path=path.split("?")[0],
            status_code=resp.status_code,
            duration_ms=monotonic_ms(start),
        )
        return resp


def _json_body(resp: httpx.Response) -> dict[str, Any]:
    try:
        body = resp.json()
    except ValueError as e:
        raise MailboxTransportError("Mailbox provider returned a non-JSON body") from e
    if not isinstance(body, dict):
        raise MailboxTransportError("Mailbox provider returned an unexpected body")
    return body
