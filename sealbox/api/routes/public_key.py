from __future__ import annotations

from fastapi import APIRouter, Request

from sealbox.schemas.feedback import PublicKeyResponse
from sealbox.services.public_key_service import load_public_key

# Deliberately outside the rate-limited router: the key is public and the
# entry page fetches it on every load.
router = APIRouter(prefix="/api", tags=["Keys"])


@router.get("/public-key", response_model=PublicKeyResponse)
async def get_public_key(request: Request) -> PublicKeyResponse:
    """Return the armored public key clients encrypt feedback to.

    Returns:
        PublicKeyResponse: ``{"publicKey": "<armored key>"}``.

    Raises:
        PublicKeyUnavailableError: 404 when no key has been provisioned.
        PublicKeyFormatError: 500 when the key file is not a public key block.
    """
    public_key = await load_public_key(request.app.state.settings.storage.public_key_path)
    return PublicKeyResponse(public_key=public_key)
