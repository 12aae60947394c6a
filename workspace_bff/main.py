"""
FastAPI application entrypoint for the Google Workspace backend-for-frontend.
"""

from __future__ import annotations

from fastapi import FastAPI

from workspace_bff.api.errors import register_exception_handlers
from workspace_bff.api.routes import router as api_router
from workspace_bff.core.config import get_settings
from workspace_bff.core.logging import configure_logging


def create_app() -> FastAPI:
    """Factory for the FastAPI application."""
    settings = get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title="Google Workspace BFF",
        version="0.1.0",
        description="Google sign-in plus Gmail, Calendar and Tasks proxies for the web client.",
    )
    register_exception_handlers(app)
    app.include_router(api_router, prefix="/api")
    return app


app = create_app()

__all__ = ["app", "create_app"]
