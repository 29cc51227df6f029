"""
Alembic model import hook.

Importing this module ensures all SQLAlchemy models are registered on Base.metadata.
"""

from __future__ import annotations

# User first; audit events reference it.
from nerlude_extract.modules.identity.models import User  # noqa: F401

from nerlude_extract.modules.audit.models import AuditEvent  # noqa: F401
