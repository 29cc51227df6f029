from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from nerlude_extract.api.router import router as api_router
from nerlude_extract.bootstrap import bootstrap
from nerlude_extract.core.config import settings
from nerlude_extract.core.errors import BatchLimitExceeded, UpstreamServiceError
from nerlude_extract.core.logging import (
    RequestContextMiddleware,
    get_logger,
    log_event,
)
from nerlude_extract.modules.registry.service import load_registry

logger = get_logger(__name__)


def create_app() -> FastAPI:

    @asynccontextmanager
    async def lifespan(_: FastAPI):
        bootstrap()
        yield

    app = FastAPI(title="Nerlude Extract", version="0.1.0", lifespan=lifespan)
    app.state.registry = load_registry(settings.registry_path)
    app.add_middleware(RequestContextMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(UpstreamServiceError)
    async def _upstream_error(_: Request, exc: UpstreamServiceError) -> JSONResponse:
        log_event(
            logger,
            "upstream.error",
            level=logging.ERROR,
            service=exc.service,
            upstream_status=exc.status_code,
            error=str(exc),
        )
        return JSONResponse(status_code=502, content={"detail": str(exc), "service": exc.service})

    @app.exception_handler(BatchLimitExceeded)
    async def _batch_limit(_: Request, exc: BatchLimitExceeded) -> JSONResponse:
        return JSONResponse(status_code=422, content={"detail": str(exc)})

    app.include_router(api_router)
    return app


app = create_app()
