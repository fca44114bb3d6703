from __future__ import annotations

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.gzip import GZipMiddleware
from starlette.middleware.trustedhost import TrustedHostMiddleware
from uvicorn.middleware.proxy_headers import ProxyHeadersMiddleware

from .api.errors import register_exception_handlers
from .api.middleware.security import REQUEST_ID_HEADER, SecurityMiddleware
from .api.v1.router import api_router
from .config import settings
from .core.repositories.implementations.memory.store import MemoryStore
from .utils.logging import get_logger, setup_logging

logger = get_logger(__name__)


def create_app() -> FastAPI:
    setup_logging()

    app = FastAPI(
        title="IntelliVault API",
        debug=settings.debug,
        version="0.1.0",
        root_path=settings.root_path or "",
    )

    if settings.storage_backend == "memory":
        # Process-local data; lost on restart.
        app.state.memory_store = MemoryStore()
        logger.warning("Using in-memory storage backend")

    register_exception_handlers(app)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_origin_regex=settings.cors_origin_regex,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS"],
        allow_headers=[
            "Accept",
            "Accept-Language",
            "Content-Language",
            "Content-Type",
            "Authorization",
            "X-Requested-With",
            REQUEST_ID_HEADER,
        ],
        expose_headers=[REQUEST_ID_HEADER],
        max_age=600,  # Cache preflight requests for 10 minutes
    )

    # Proxy headers (X-Forwarded-*) when behind a load balancer
    app.add_middleware(ProxyHeadersMiddleware, trusted_hosts=["*"])

    # Trusted hosts (configure in env for production)
    app.add_middleware(TrustedHostMiddleware, allowed_hosts=settings.trusted_hosts)

    app.add_middleware(GZipMiddleware, minimum_size=1000)

    app.add_middleware(SecurityMiddleware)

    app.include_router(api_router, prefix=settings.api_prefix)
    return app


app = create_app()
