from __future__ import annotations

from fastapi import APIRouter

from nerlude_extract.modules.extraction.api import router as extraction_router
from nerlude_extract.modules.identity.api import router as identity_router
from nerlude_extract.modules.mailbox.api import router as mailbox_router
from nerlude_extract.modules.registry.api import router as registry_router

router = APIRouter()

router.include_router(identity_router, prefix="/api")
router.include_router(registry_router, prefix="/api")
router.include_router(extraction_router, prefix="/api")
router.include_router(mailbox_router, prefix="/api")


@router.get("/healthz")
def healthz() -> dict[str, str]:
    return {"status": "ok"}
