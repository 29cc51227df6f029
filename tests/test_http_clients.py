from __future__ import annotations

from datetime import UTC, datetime

import httpx
import pytest

from nerlude_extract.core.errors import ExtractionTransportError, MailboxTransportError
from nerlude_extract.modules.extraction.client import GeminiExtractionClient
from nerlude_extract.modules.mailbox.client import MailboxClient


def _gemini(**overrides) -> GeminiExtractionClient:
    params = {
        "api_key": "k",
        "base_url": "https://gemini.example.test/v1beta/",
        "model": "gemini-test",
        "timeout_seconds": 5,
    }
    params.update(overrides)
    return GeminiExtractionClient(**params)


def _response(status_code: int, *, json=None, content: bytes | None = None, url="https://x.test"):
    request = httpx.Request("POST", url)
    if json is not None:
        return httpx.Response(status_code, json=json, request=request)
    return httpx.Response(status_code, content=content or b"", request=request)


def test_gemini_request_shape_and_text(monkeypatch):
    seen = {}

    def _post(url, **kwargs):
        seen["url"] = url
        seen.update(kwargs)
        return _response(
            200,
            json={
                "candidates": [
                    {"content": {"parts": [{"text": '{"success": '}, {"text": "true}"}]}}
                ]
            },
        )

    monkeypatch.setattr(httpx, "post", _post)

    text = _gemini().generate([{"text": "hello"}])

    assert text == '{"success": true}'
    assert seen["url"] == "https://gemini.example.test/v1beta/models/gemini-test:generateContent"
    assert seen["params"] == {"key": "k"}
    assert seen["json"]["contents"] == [{"parts": [{"text": "hello"}]}]
    assert seen["json"]["generationConfig"] == {"temperature": 0.1, "maxOutputTokens": 8192}
    assert seen["timeout"] == 5


def test_gemini_empty_candidates_yield_empty_text(monkeypatch):
    monkeypatch.setattr(httpx, "post", lambda url, **kw: _response(200, json={"candidates": []}))

    assert _gemini().generate([{"text": "hi"}]) == ""


def test_gemini_missing_key_is_transport_error(monkeypatch):
    def _post(url, **kwargs):
        raise AssertionError("no request expected")

    monkeypatch.setattr(httpx, "post", _post)

    with pytest.raises(ExtractionTransportError):
        _gemini(api_key=None).generate([{"text": "hi"}])


def test_gemini_timeout_is_transport_error(monkeypatch):
    def _post(url, **kwargs):
        raise httpx.ReadTimeout("slow")

    monkeypatch.setattr(httpx, "post", _post)

    with pytest.raises(ExtractionTransportError) as exc:
        _gemini().generate([{"text": "hi"}])
    assert "timed out" in str(exc.value)


def test_gemini_error_status_is_transport_error(monkeypatch):
    monkeypatch.setattr(httpx, "post", lambda url, **kw: _response(503, content=b"overloaded"))

    with pytest.raises(ExtractionTransportError) as exc:
        _gemini().generate([{"text": "hi"}])
    assert exc.value.status_code == 503
    assert exc.value.service == "extraction"


def _mailbox() -> MailboxClient:
    return MailboxClient(api_key="mk", base_url="https://mail.example.test/", timeout_seconds=5)


def test_mailbox_list_follows_cursor_and_skips_bad_items(monkeypatch):
    calls = []
    pages = [
        {"items": [{"id": "1", "subject": "Invoice"}, {"subject": "no id"}], "cursor": "c2"},
        {"items": [{"id": "2", "subject": "Receipt"}], "cursor": None},
    ]

    def _request(method, url, **kwargs):
        calls.append((method, url, kwargs))
        return _response(200, json=pages[len(calls) - 1])

    monkeypatch.setattr(httpx, "request", _request)

    messages = _mailbox().list_messages(
        account_id="acc", after=datetime(2025, 1, 1, tzinfo=UTC), limit=250
    )

    assert [m.id for m in messages] == ["1", "2"]
    method, url, kwargs = calls[0]
    assert method == "GET"
    assert url == "https://mail.example.test/api/v1/emails"
    assert kwargs["headers"]["X-API-KEY"] == "mk"
    assert kwargs["params"]["after"] == "2025-01-01T00:00:00Z"
    assert kwargs["params"]["meta_only"] == "false"
    assert calls[1][2]["params"]["cursor"] == "c2"


def test_mailbox_hosted_link(monkeypatch):
    seen = {}

    def _request(method, url, **kwargs):
        seen.update(kwargs, method=method, url=url)
        return _response(201, json={"object": "HostedAuthUrl", "url": "https://link.test/x"})

    monkeypatch.setattr(httpx, "request", _request)

    link = _mailbox().create_hosted_auth_link(
        name="user-1",
        success_redirect_url="https://app.test/ok",
        failure_redirect_url="https://app.test/fail",
    )

    assert link == "https://link.test/x"
    assert seen["url"] == "https://mail.example.test/api/v1/hosted/accounts/link"
    body = seen["json"]
    assert body["type"] == "create"
    assert body["providers"] == ["GOOGLE", "OUTLOOK", "MAIL"]
    assert body["api_url"] == "https://mail.example.test"
    assert body["bypass_success_screen"] is True
    assert "notify_url" not in body


def test_mailbox_error_status_is_transport_error(monkeypatch):
    monkeypatch.setattr(httpx, "request", lambda method, url, **kw: _response(401, content=b"no"))

    with pytest.raises(MailboxTransportError) as exc:
        _mailbox().get_attachment(account_id="acc", message_id="m", attachment_id="a")
    assert exc.value.status_code == 401
