"""Translate domain exceptions into HTTP responses."""

from __future__ import annotations

import logging
from http import HTTPStatus
from urllib.parse import urlencode

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from workspace_bff.core.errors import (
    AuthenticationError,
    ProviderCallFailedError,
    ReauthRequiredError,
    TaskNotFoundError,
)

logger = logging.getLogger(__name__)

AUTHORIZE_PATH = "/api/auth/google/authorize"


def reauthorize_url(user_id: str | None) -> str:
    """Relative link that restarts consent and forces a new refresh token."""
    params = {"force_consent": "true"}
    if user_id:
        params["user_id"] = user_id
    return f"{AUTHORIZE_PATH}?{urlencode(params)}"


async def handle_authentication_error(request: Request, exc: AuthenticationError) -> JSONResponse:
    logger.info(
        "%s for user %s on %s", exc.code, exc.user_id, request.url.path
    )
    content = {"detail": str(exc), "code": exc.code}
    if isinstance(exc, ReauthRequiredError):
        content["authorize_url"] = reauthorize_url(exc.user_id)
    return JSONResponse(status_code=HTTPStatus.UNAUTHORIZED, content=content)


async def handle_provider_error(request: Request, exc: ProviderCallFailedError) -> JSONResponse:
    status_code = exc.status_code
    if status_code is None or not 400 <= status_code < 500:
        status_code = HTTPStatus.BAD_GATEWAY
    return JSONResponse(
        status_code=status_code,
        content={
            "detail": str(exc),
            "code": exc.code,
            "operation": exc.operation,
            "provider_status": exc.status_code,
        },
    )


async def handle_task_not_found(request: Request, exc: TaskNotFoundError) -> JSONResponse:
    return JSONResponse(
        status_code=HTTPStatus.NOT_FOUND,
        content={"detail": str(exc), "code": exc.code},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AuthenticationError, handle_authentication_error)
    app.add_exception_handler(ProviderCallFailedError, handle_provider_error)
    app.add_exception_handler(TaskNotFoundError, handle_task_not_found)


__all__ = ["register_exception_handlers", "reauthorize_url"]
