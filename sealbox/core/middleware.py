"""HTTP middleware for request correlation and security headers.

request_id_middleware:
- Generates a fresh UUID per request; incoming X-Request-ID headers are
  ignored so no client-supplied value is echoed or logged
- Stores request_id in contextvars for access throughout the request lifecycle
- Injects request_id and total duration into response headers
- Clears context after request completion to prevent context leaks

security_headers_middleware:
- Creates a per-request CSP nonce on ``request.state.csp_nonce`` for the
  entry page's inline module scripts
- Sets CSP, framing, HSTS, sniffing and referrer headers on every response

Usage:
    app.middleware("http")(security_headers_middleware)
    app.middleware("http")(request_id_middleware)
"""

from __future__ import annotations

import base64
import secrets
import time
import uuid

from fastapi import Request, Response

from sealbox.core.logging import clear_request_id, set_request_id

SCRIPT_SOURCES = ("'self'", "https://cdn.jsdelivr.net")


def generate_nonce() -> str:
    return base64.b64encode(secrets.token_bytes(16)).decode("ascii")


def build_content_security_policy(nonce: str) -> str:
    directives = [
        "default-src 'self'",
        "script-src " + " ".join((*SCRIPT_SOURCES, f"'nonce-{nonce}'")),
        "style-src 'self' 'unsafe-inline'",
        "img-src 'self' data: https:",
        "connect-src 'self'",
        "font-src 'self'",
        "object-src 'none'",
        "upgrade-insecure-requests",
    ]
    return "; ".join(directives)


async def request_id_middleware(request: Request, call_next) -> Response:
    """HTTP middleware for request ID generation and propagation.

    Args:
        request: The incoming HTTP request object.
        call_next: The next middleware/route handler in the stack.

    Returns:
        Response: The response from the next handler with request_id and
            duration headers added.
    """

    header_name = request.app.state.settings.log.request_id_header
    request_id = str(uuid.uuid4())
    set_request_id(request_id)
    start = time.perf_counter()
    try:
        response: Response = await call_next(request)
    finally:
        clear_request_id()

    duration_ms = (time.perf_counter() - start) * 1000
    response.headers[header_name] = request_id
    response.headers.setdefault("X-Request-Duration-ms", f"{duration_ms:.2f}")
    return response


async def security_headers_middleware(request: Request, call_next) -> Response:
    """Attach browser hardening headers and thread the CSP nonce through."""

    nonce = generate_nonce()
    request.state.csp_nonce = nonce

    response: Response = await call_next(request)

    response.headers["Content-Security-Policy"] = build_content_security_policy(nonce)
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains; preload"
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-XSS-Protection"] = "0"
    response.headers["Referrer-Policy"] = "no-referrer"
    return response
