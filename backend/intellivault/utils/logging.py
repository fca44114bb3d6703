from __future__ import annotations

import logging
import sys

from intellivault.config import settings


def setup_logging() -> None:
    """Setup basic logging for the application."""

    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stdout
    )

    logging.getLogger("uvicorn").setLevel(logging.INFO)
    logging.getLogger("uvicorn.access").setLevel(logging.INFO)
    logging.getLogger("fastapi").setLevel(logging.INFO)
    # Supabase/PostgREST request lines carry bearer-scoped URLs; keep them quiet.
    logging.getLogger("httpx").setLevel(logging.WARNING)

    logging.info(
        "Logging configured successfully",
        extra={"level": settings.log_level, "storage_backend": settings.storage_backend},
    )


def get_logger(name: str | None = None) -> logging.Logger:
    """Get a logger instance."""
    return logging.getLogger(name)
