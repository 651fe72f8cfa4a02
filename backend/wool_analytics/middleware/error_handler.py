"""
Global error handling middleware.

Pure ASGI middleware (not BaseHTTPMiddleware) so the yield-based
database session dependency keeps working.
"""
from fastapi import HTTPException
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from wool_analytics.core.logging import get_logger

logger = get_logger(__name__)

_BODY = b"Internal Server Error"


class ErrorHandlerMiddleware:
    """
    Turns unhandled exceptions into a plain-text 500.

    HTTPException passes through to FastAPI's own handler.
    """

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        response_started = False

        async def send_wrapper(message: Message) -> None:
            nonlocal response_started
            if message["type"] == "http.response.start":
                response_started = True
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        except HTTPException:
            raise
        except Exception as e:
            logger.exception(
                "unhandled_exception",
                error=str(e),
                path=scope.get("path", "unknown"),
                response_started=response_started,
            )
            if response_started:
                # Headers already sent, can't change the response
                raise

            await send({
                "type": "http.response.start",
                "status": 500,
                "headers": [
                    [b"content-type", b"text/plain; charset=utf-8"],
                    [b"content-length", str(len(_BODY)).encode()],
                    [b"cache-control", b"no-store"],
                ],
            })
            await send({"type": "http.response.body", "body": _BODY})
