"""Request ID middleware.

Forwards a safe client-supplied request ID (or generates one), exposes it on
scope state and in the request context for log lines, and echoes it on the
response. Raw ASGI, no BaseHTTPMiddleware.
"""

import re
from typing import Callable

from basin.core.request_context import current_request_id
from basin.shared.utils.generators import generate_request_id

REQUEST_ID_MAX_LENGTH = 64
_REQUEST_ID_RE = re.compile(r"^[A-Za-z0-9_-]{1,%d}$" % REQUEST_ID_MAX_LENGTH)


def sanitize_request_id(raw: str | None) -> str:
    """Return raw (stripped) if it is short and header/log safe; otherwise a new ID."""
    candidate = (raw or "").strip()
    if _REQUEST_ID_RE.match(candidate):
        return candidate
    return generate_request_id()


def RequestIDMiddleware(app: Callable, header_name: str = "X-Request-ID") -> Callable:
    """Wrap app so every HTTP request carries a request ID in and out."""
    wanted = header_name.lower().encode()

    async def asgi_app(scope: dict, receive: Callable, send: Callable) -> None:
        if scope["type"] != "http":
            await app(scope, receive, send)
            return
        supplied = next(
            (v.decode("latin-1") for k, v in scope.get("headers", []) if k.lower() == wanted),
            None,
        )
        request_id = sanitize_request_id(supplied)
        scope.setdefault("state", {})["request_id"] = request_id
        token = current_request_id.set(request_id)

        async def send_with_id(message: dict) -> None:
            if message["type"] == "http.response.start":
                message["headers"] = [
                    *message.get("headers", []),
                    (wanted, request_id.encode()),
                ]
            await send(message)

        try:
            await app(scope, receive, send_with_id)
        finally:
            current_request_id.reset(token)

    return asgi_app
