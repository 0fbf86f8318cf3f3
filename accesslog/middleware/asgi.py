"""
ASGI adapter for the request logger.

Implemented as pure ASGI middleware (not BaseHTTPMiddleware) so the response
status, headers and body size can be observed as the application sends them.
"""

from typing import Optional

from starlette.exceptions import HTTPException
from starlette.responses import JSONResponse, Response
from starlette.types import ASGIApp, Receive, Scope, Send

from accesslog.config import LoggerConfig
from accesslog.middleware.logging import request_logger
from accesslog.models.context import Context, ErrorHandler, request_from_scope


async def default_error_handler(exc: Exception, ctx: Context) -> None:
    if ctx.response.committed:
        return

    if isinstance(exc, HTTPException) and exc.status_code in {204, 304}:
        response = Response(status_code=exc.status_code, headers=exc.headers)
    elif isinstance(exc, HTTPException):
        response = JSONResponse(
            {"detail": exc.detail},
            status_code=exc.status_code,
            headers=exc.headers,
        )
    else:
        response = JSONResponse({"detail": "Internal Server Error"}, status_code=500)

    await response(ctx.scope, ctx.receive, ctx.send)


class RequestLogMiddleware:
    """Emits one access-log record per HTTP request through a structlog logger."""

    def __init__(
        self,
        app: ASGIApp,
        config: Optional[LoggerConfig] = None,
        *,
        log=None,
        skip_2xx: bool = False,
        error_handler: ErrorHandler = default_error_handler,
    ):
        self.app = app
        if config is not None and (log is not None or skip_2xx):
            raise TypeError("pass either config or log/skip_2xx, not both")
        if config is None:
            config = LoggerConfig(log=log, skip_2xx=skip_2xx)
        self.config = config
        self.error_handler = error_handler
        self.handler = request_logger(config)(self._call_app)

    async def _call_app(self, ctx: Context) -> None:
        await self.app(ctx.scope, ctx.receive, ctx.send)

    async def __call__(self, scope: Scope, receive: Receive, send: Send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        ctx = Context(
            request_from_scope(scope),
            scope=scope,
            receive=receive,
            send=send,
            error_handler=self.error_handler,
        )
        await self.handler(ctx)
