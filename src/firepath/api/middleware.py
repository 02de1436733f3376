from __future__ import annotations

from collections.abc import Awaitable, Callable

from fastapi import FastAPI, Request
from starlette.responses import Response

from firepath.api.auth import authenticate_request, is_protected_path
from firepath.api.errors import APIError, build_error_response


def install_auth_middleware(app: FastAPI) -> None:
    @app.middleware("http")
    async def _bearer_auth_middleware(
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        if request.method == "OPTIONS" or not is_protected_path(request.url.path):
            return await call_next(request)
        try:
            request.state.auth = authenticate_request(request)
        except APIError as exc:
            return build_error_response(
                status_code=exc.status_code,
                code=exc.code,
                message=exc.message,
                details=exc.details,
            )
        return await call_next(request)
