"""ASGI middleware resolving the calling principal from a bearer token."""

import json
from typing import Any

import jwt
import structlog
from starlette.types import ASGIApp, Receive, Scope, Send

from chat_memory.core.config import settings

logger = structlog.get_logger()

PUBLIC_PATHS: set[str] = {
    "",
    "/",
    "/health",
    "/docs",
    "/openapi.json",
    "/redoc",
}


class AuthMiddleware:
    """Pure ASGI middleware for JWT verification.

    Tokens are issued by an external identity provider; this service only
    verifies the signature and expiry and exposes the ``sub`` claim as the
    owner id of every session the request touches.
    """

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        method = scope.get("method", "")
        if method == "OPTIONS":
            await self.app(scope, receive, send)
            return

        path = scope["path"]
        normalized = path.rstrip("/") or "/"
        if normalized in PUBLIC_PATHS or path.startswith(("/docs", "/redoc")):
            await self.app(scope, receive, send)
            return

        headers = dict(scope.get("headers", []))
        auth_header = headers.get(b"authorization", b"").decode()

        if not auth_header.startswith("Bearer "):
            await self._send_error(
                send, 401, "MISSING_TOKEN", "Authorization header required"
            )
            return

        token = auth_header[7:]
        auth = settings.auth

        try:
            payload: dict[str, Any] = jwt.decode(
                token,
                auth.secret_key.get_secret_value(),
                algorithms=[auth.algorithm],
                audience=auth.audience,
                options={"require": ["sub", "exp"]},
            )
        except jwt.ExpiredSignatureError:
            await self._send_error(send, 401, "TOKEN_EXPIRED", "Token has expired")
            return
        except jwt.InvalidTokenError as exc:
            logger.debug("Rejected bearer token", reason=str(exc))
            await self._send_error(send, 401, "INVALID_TOKEN", "Invalid token")
            return

        owner_id = str(payload["sub"]).strip()
        if not owner_id:
            await self._send_error(send, 401, "INVALID_TOKEN", "Token has no subject")
            return

        scope.setdefault("state", {})
        scope["state"]["owner_id"] = owner_id

        await self.app(scope, receive, send)

    @staticmethod
    async def _send_error(send: Send, status: int, code: str, message: str) -> None:
        """Send the error envelope directly."""
        body = json.dumps(
            {"success": False, "error": {"code": code, "message": message}}
        ).encode()

        await send(
            {
                "type": "http.response.start",
                "status": status,
                "headers": [
                    [b"content-type", b"application/json"],
                    [b"content-length", str(len(body)).encode()],
                ],
            }
        )
        await send({"type": "http.response.body", "body": body})
