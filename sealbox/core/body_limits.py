"""Request body size enforcement."""
from __future__ import annotations

import logging

from fastapi import HTTPException, Request, status

logger = logging.getLogger(__name__)

PAYLOAD_TOO_LARGE_MESSAGE = "Payload too large"


def _reject(reason: str, size: int, max_bytes: int) -> HTTPException:
    logger.warning(
        "body_limit.rejected",
        extra={"reason": reason, "size": size, "max_bytes": max_bytes},
    )
    return HTTPException(
        status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
        detail=PAYLOAD_TOO_LARGE_MESSAGE,
    )


async def read_body_limited(request: Request, max_bytes: int) -> bytes:
    """Read the request body in chunks enforcing the max size limit.

    The declared Content-Length is checked before anything is read, so most
    oversized requests are rejected without buffering. Bodies without a
    usable length (chunked uploads, or a length that lies) are still cut off
    once the running total passes the limit.

    Args:
        request: Incoming request whose body has not been consumed yet.
        max_bytes: Largest accepted body size.

    Returns:
        The body as bytes if within the allowed size limit.

    Raises:
        HTTPException: 413 if the body exceeds the limit.
    """
    declared = request.headers.get("content-length")
    if declared is not None and declared.isdigit() and int(declared) > max_bytes:
        raise _reject("content_length", int(declared), max_bytes)

    size = 0
    chunks: list[bytes] = []

    async for chunk in request.stream():
        if not chunk:
            continue

        size += len(chunk)
        if size > max_bytes:
            raise _reject("chunked_read", size, max_bytes)
        chunks.append(chunk)

    return b"".join(chunks)
