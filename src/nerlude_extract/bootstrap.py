from __future__ import annotations

import nerlude_extract.models  # noqa: F401
from nerlude_extract.core.config import settings
from nerlude_extract.core.db import SessionLocal, engine
from nerlude_extract.core.logging import get_logger, log_event
from nerlude_extract.core.models import Base
from nerlude_extract.modules.identity.service import create_user, get_user_by_email

logger = get_logger(__name__)


def bootstrap() -> None:
    if settings.environment in {"dev", "test"} and settings.database_url.startswith("sqlite"):
        Base.metadata.create_all(engine)

    if not settings.init_user_email or not settings.init_user_password:
        return

    # Comma-separated list; every address gets the same initial password.
    emails = [e.strip() for e in settings.init_user_email.split(",") if e.strip()]
    created = 0
    with SessionLocal() as session:
        for email in emails:
            if get_user_by_email(session, email=email):
                continue
            create_user(session, email=email, password=settings.init_user_password)
            created += 1
    if created:
        log_event(logger, "bootstrap.users.created", count=created)
