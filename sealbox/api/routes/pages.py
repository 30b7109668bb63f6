from __future__ import annotations

import asyncio
import logging
import re
from pathlib import Path
from typing import Sequence

from fastapi import APIRouter, Request
from fastapi.responses import HTMLResponse, PlainTextResponse, Response
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException
from starlette.routing import BaseRoute, Match, Mount
from starlette.types import Scope

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Pages"])

_MODULE_SCRIPT_RE = re.compile(r'<script type="module">')


class PublicAssets(StaticFiles):
    """Static assets mounted underneath the application's own routes.

    Starlette prefers a full mount match over a route that only matched the
    path, so a wrong method on an API path would otherwise land here. Such
    requests get the 405 they get without the mount; other non-GET requests
    get a 404.
    """

    def __init__(self, *, directory: Path, routes: Sequence[BaseRoute] = ()) -> None:
        super().__init__(directory=directory)
        self._routes = routes

    def _allowed_methods(self, scope: Scope) -> set[str]:
        allowed: set[str] = set()
        for route in self._routes:
            if isinstance(route, Mount):
                continue
            match, _ = route.matches(scope)
            if match == Match.PARTIAL:
                allowed.update(getattr(route, "methods", None) or ())
        return allowed

    async def get_response(self, path: str, scope: Scope) -> Response:
        allowed = self._allowed_methods(scope)
        if allowed:
            raise HTTPException(status_code=405, headers={"Allow": ", ".join(sorted(allowed))})
        if scope["method"] not in ("GET", "HEAD"):
            raise HTTPException(status_code=404)
        return await super().get_response(path, scope)


def inject_nonce(html: str, nonce: str) -> str:
    """Add the CSP nonce to every inline module script tag."""
    return _MODULE_SCRIPT_RE.sub(f'<script type="module" nonce="{nonce}">', html)


@router.get("/", response_class=HTMLResponse)
async def index(request: Request) -> Response:
    """Serve the entry page with this request's CSP nonce threaded in."""
    index_path: Path = request.app.state.settings.storage.index_path
    loop = asyncio.get_running_loop()

    try:
        html = await loop.run_in_executor(None, index_path.read_text, "utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        logger.error(
            "index.read_failed",
            extra={"error_type": type(exc).__name__, "path": str(index_path)},
        )
        return PlainTextResponse("Server error", status_code=500)

    nonce = getattr(request.state, "csp_nonce", None)
    if nonce:
        html = inject_nonce(html, nonce)
    return HTMLResponse(html)
