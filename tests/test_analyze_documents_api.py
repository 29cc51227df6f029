from __future__ import annotations

import json

from nerlude_extract.core.errors import ExtractionTransportError
from nerlude_extract.modules.audit.schemas import AuditAction

_VERCEL_RESPONSE = json.dumps(
    {
        "success": True,
        "suggestedProjectName": "Acme Launch",
        "services": [
            {
                "registryId": "vercel",
                "detectedName": "Vercel",
                "confidence": 0.95,
                "billing": {"amount": 20, "currency": "USD", "frequency": "monthly"},
                "renewalDate": "2025-03-01",
                "planName": "Pro",
            }
        ],
        "unmatchedItems": ["Unclassified image (photo.png)"],
        "documentType": "invoice",
        "processingNotes": "",
    }
)


def _documents(n: int = 1) -> list[dict]:
    return [
        {
            "kind": "text",
            "content": f"Invoice {i}: Vercel Pro $20.00 / month",
            "filename": f"d{i}.txt",
        }
        for i in range(n)
    ]


def test_vercel_invoice_end_to_end(api, auth_headers, fake_client, audit_writer):
    fake_client.responses = [f"```json\n{_VERCEL_RESPONSE}\n```"]
    documents = [
        {
            "kind": "text",
            "content": "Vercel Pro $20/month renews 2025-03-01",
            "filename": "receipt.txt",
        },
        {
            "kind": "binary",
            "content": "iVBORw0KGgo=",
            "mimeType": "image/png",
            "filename": "photo.png",
        },
    ]

    r = api.post(
        "/api/projects/analyze-documents",
        json={"documents": documents, "contextId": "ws-1"},
        headers=auth_headers,
    )

    assert r.status_code == 200, r.text
    body = r.json()
    assert body["success"] is True
    assert body["suggestedProjectName"] == "Acme Launch"
    assert body["documentType"] == "invoice"
    assert body["unmatchedItems"] == ["Unclassified image (photo.png)"]
    [service] = body["services"]
    assert service["registryId"] == "vercel"
    assert service["billing"] == {"amount": 20.0, "currency": "USD", "frequency": "monthly"}
    assert service["renewalDate"] == "2025-03-01"

    [parts] = fake_client.calls
    assert {"inline_data": {"mime_type": "image/png", "data": "iVBORw0KGgo="}} in parts

    [entry] = audit_writer.entries
    assert entry.action == AuditAction.DOCUMENTS_ANALYZED
    assert entry.document_count == 2
    assert entry.services_detected == 1
    assert entry.success is True
    assert entry.context_id == "ws-1"


def test_eleven_documents_are_rejected_before_extraction(
    api, auth_headers, fake_client, audit_writer
):
    r = api.post(
        "/api/projects/analyze-documents",
        json={"documents": _documents(11)},
        headers=auth_headers,
    )

    assert r.status_code == 422
    assert "Maximum 10 documents" in r.text
    assert fake_client.calls == []
    assert audit_writer.entries == []


def test_empty_and_malformed_documents_are_rejected(api, auth_headers, fake_client):
    assert api.post(
        "/api/projects/analyze-documents", json={"documents": []}, headers=auth_headers
    ).status_code == 422
    assert api.post(
        "/api/projects/analyze-documents",
        json={"documents": [{"kind": "binary", "content": "abc"}]},
        headers=auth_headers,
    ).status_code == 422
    assert fake_client.calls == []


def test_missing_or_bad_credentials_are_rejected(api, fake_client, audit_writer):
    r = api.post("/api/projects/analyze-documents", json={"documents": _documents(1)})
    assert r.status_code == 401

    r = api.post(
        "/api/projects/analyze-documents",
        json={"documents": _documents(1)},
        headers={"Authorization": "Bearer not-a-token"},
    )
    assert r.status_code == 401

    assert fake_client.calls == []
    assert audit_writer.entries == []


def test_unparseable_output_is_audited_as_failure(api, auth_headers, fake_client, audit_writer):
    fake_client.responses = ["Sorry, I cannot help with that."]

    r = api.post(
        "/api/projects/analyze-documents",
        json={"documents": _documents(2), "workspaceId": "legacy-ws"},
        headers=auth_headers,
    )

    assert r.status_code == 200
    body = r.json()
    assert body["success"] is False
    assert body["services"] == []
    assert body["processingNotes"].startswith("Failed to parse AI response")
    [entry] = audit_writer.entries
    assert entry.success is False
    assert entry.context_id == "legacy-ws"


def test_audit_failure_does_not_change_response(api, auth_headers, fake_client, audit_writer):
    fake_client.responses = [_VERCEL_RESPONSE]
    ok = api.post(
        "/api/projects/analyze-documents", json={"documents": _documents(1)}, headers=auth_headers
    ).json()

    audit_writer.fail = True
    failed_audit = api.post(
        "/api/projects/analyze-documents", json={"documents": _documents(1)}, headers=auth_headers
    )

    assert failed_audit.status_code == 200
    assert failed_audit.json() == ok


def test_transport_failure_maps_to_bad_gateway(api, auth_headers, fake_client, audit_writer):
    def _boom(_parts):
        raise ExtractionTransportError("Extraction service timed out after 60s")

    fake_client.generate = _boom

    r = api.post(
        "/api/projects/analyze-documents", json={"documents": _documents(1)}, headers=auth_headers
    )

    assert r.status_code == 502
    assert r.json()["service"] == "extraction"
    assert audit_writer.entries == []


def test_audit_event_is_persisted_by_default_writer(auth_headers, fake_client):
    from fastapi.testclient import TestClient
    from sqlalchemy import select

    from nerlude_extract.api import deps
    from nerlude_extract.core.db import SessionLocal
    from nerlude_extract.main import app
    from nerlude_extract.modules.audit.models import AuditEvent

    fake_client.responses = [_VERCEL_RESPONSE]
    app.dependency_overrides[deps.get_extraction_client] = lambda: fake_client
    try:
        r = TestClient(app).post(
            "/api/projects/analyze-documents",
            json={"documents": _documents(1)},
            headers=auth_headers,
        )
    finally:
        app.dependency_overrides.clear()

    assert r.status_code == 200
    with SessionLocal() as session:
        events = session.scalars(select(AuditEvent)).all()
    assert len(events) == 1
    assert events[0].action == "documents_analyzed"
    assert events[0].services_detected == 1
