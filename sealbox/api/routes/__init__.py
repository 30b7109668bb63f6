from __future__ import annotations

from sealbox.api.routes.feedback import router as feedback_router
from sealbox.api.routes.pages import router as pages_router
from sealbox.api.routes.public_key import router as public_key_router

__all__ = ["feedback_router", "pages_router", "public_key_router"]
