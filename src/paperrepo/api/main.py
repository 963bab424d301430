"""
PaperRepo API - FastAPI backend for the research paper repository.

Routers are mounted under ``/api``; every collaborator is reached through
``app.state.container`` so tests can hand in their own.
"""

from __future__ import annotations

import time
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger

from paperrepo.application.container import ServiceContainer, build_container
from paperrepo.domain.errors import RepositoryError
from paperrepo.utils.logging_config import LogFiles, Logger, clear_trace_id, set_trace_id

from .routes import auth, paper_requests, papers

API_VERSION = "0.1.0"


def create_app(container: Optional[ServiceContainer] = None) -> FastAPI:
    owns_container = container is None
    container = container or build_container()

    app = FastAPI(
        title="PaperRepo API",
        description="Research paper catalog, access requests and account review",
        version=API_VERSION,
    )
    app.state.container = container

    if owns_container:

        @app.on_event("shutdown")
        def _close_container() -> None:
            container.close()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=container.settings.cors_origins or ["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def trace_requests(request: Request, call_next):
        trace_id = set_trace_id(request.headers.get("x-request-id"))
        started = time.perf_counter()
        try:
            response = await call_next(request)
        finally:
            elapsed_ms = (time.perf_counter() - started) * 1000
            Logger.info(
                f"{request.method} {request.url.path} {elapsed_ms:.1f}ms",
                file=LogFiles.API,
            )
            clear_trace_id()
        response.headers["X-Trace-Id"] = trace_id
        return response

    @app.exception_handler(RepositoryError)
    async def repository_error_handler(request: Request, exc: RepositoryError):
        if exc.status_code >= 500:
            Logger.error(f"{request.method} {request.url.path}: {exc.message}", file=LogFiles.ERROR)
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception):
        Logger.exception(f"Unhandled error on {request.method} {request.url.path}", exc, file=LogFiles.ERROR)
        return JSONResponse(status_code=500, content={"detail": "Server error"})

    @app.get("/health")
    async def health_check():
        """Health check endpoint"""
        return {"status": "healthy", "version": API_VERSION}

    app.include_router(auth.router, prefix="/api", tags=["Auth"])
    app.include_router(paper_requests.router, prefix="/api", tags=["Paper Requests"])
    app.include_router(papers.router, prefix="/api", tags=["Papers"])

    logger.info(
        f"PaperRepo API ready (db={container.settings.db_url}, mail={container.settings.mail_provider})"
    )
    return app


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("paperrepo.api.main:create_app", factory=True, host="0.0.0.0", port=8000)
