"""
Last-resort error handling for the analytics API.

Pure ASGI middleware (not BaseHTTPMiddleware) so the request-scoped
database session dependency keeps working.
"""
import json

from starlette.exceptions import HTTPException
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from footfall.core.logging import get_logger

logger = get_logger(__name__)


def _error_body(scope: Scope) -> bytes:
    payload = {"error": "Internal server error"}
    request_id = scope.get("state", {}).get("request_id")
    if request_id:
        payload["request_id"] = request_id
    return json.dumps(payload).encode("utf-8")


class ErrorHandlerMiddleware:
    """
    Turns exceptions nobody handled into `500 {"error": ...}`.

    HTTPExceptions pass through to the app's exception handlers.
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
                "Unhandled exception",
                error=str(e),
                method=scope.get("method"),
                path=scope.get("path", "unknown"),
                response_started=response_started,
            )
            if response_started:
                # Headers are already on the wire
                raise

            body = _error_body(scope)
            await send({
                "type": "http.response.start",
                "status": 500,
                "headers": [
                    [b"content-type", b"application/json"],
                    [b"content-length", str(len(body)).encode()],
                ],
            })
            await send({"type": "http.response.body", "body": body})
