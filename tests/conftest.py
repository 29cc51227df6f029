from __future__ import annotations

import os

import pytest

# Set env before any nerlude_extract imports (settings/engine are created at import time).
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DATABASE_URL", "sqlite:///./.nerlude_extract_test.db")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("GEMINI_API_KEY", "test-gemini-key")
os.environ.setdefault("MAILBOX_API_KEY", "test-mailbox-key")


@pytest.fixture(autouse=True)
def _reset_db() -> None:
    import nerlude_extract.models  # noqa: F401
    from nerlude_extract.core.db import engine
    from nerlude_extract.core.models import Base

    Base.metadata.drop_all(engine)
    Base.metadata.create_all(engine)

    yield


class FakeExtractionClient:
    """Records every call and answers with canned model text."""

    def __init__(self, *responses: str) -> None:
        self.responses = list(responses) or ['{"success": true, "services": []}']
        self.calls: list[list[dict]] = []

    def generate(self, parts):
        self.calls.append(list(parts))
        idx = min(len(self.calls) - 1, len(self.responses) - 1)
        return self.responses[idx]


class RecordingAuditWriter:
    def __init__(self, *, fail: bool = False) -> None:
        self.entries = []
        self.fail = fail

    def __call__(self, entry) -> None:
        if self.fail:
            raise RuntimeError("audit store unavailable")
        self.entries.append(entry)


@pytest.fixture
def fake_client() -> FakeExtractionClient:
    return FakeExtractionClient()


@pytest.fixture
def audit_writer() -> RecordingAuditWriter:
    return RecordingAuditWriter()


@pytest.fixture
def registry():
    from nerlude_extract.modules.registry.service import load_registry

    return load_registry()


@pytest.fixture
def user():
    from nerlude_extract.core.db import SessionLocal
    from nerlude_extract.modules.identity.service import create_user

    with SessionLocal() as session:
        created = create_user(session, email="owner@example.com", password="pw-123456")
        session.expunge(created)
        return created


@pytest.fixture
def auth_headers(user) -> dict[str, str]:
    from nerlude_extract.core.security import create_access_token

    return {"Authorization": f"Bearer {create_access_token(subject=str(user.id))}"}


@pytest.fixture
def api(fake_client, audit_writer):
    from fastapi.testclient import TestClient

    from nerlude_extract.api import deps
    from nerlude_extract.main import app

    app.dependency_overrides[deps.get_extraction_client] = lambda: fake_client
    app.dependency_overrides[deps.get_audit_writer] = lambda: audit_writer
    yield TestClient(app)
    app.dependency_overrides.clear()
