"""Loading of the operator-provisioned public key."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

from sealbox.core.errors import PublicKeyFormatError, PublicKeyUnavailableError
from sealbox.utils.pgp_validators import is_public_key_block

logger = logging.getLogger(__name__)


async def load_public_key(path: Path) -> str:
    """Read the armored public key without blocking the event loop.

    The file is returned verbatim; it is only checked for the armor header.

    Args:
        path: Location of the key file.

    Returns:
        The armored key text.

    Raises:
        PublicKeyUnavailableError: If the file does not exist.
        PublicKeyFormatError: If the file is not an armored public key block.
        OSError: For any other read failure.
    """
    loop = asyncio.get_running_loop()

    try:
        text = await loop.run_in_executor(None, Path(path).read_text, "utf-8")
    except FileNotFoundError as exc:
        logger.warning("public_key.missing", extra={"path": str(path)})
        raise PublicKeyUnavailableError(
            code="public_key_missing",
            message="Public key not available",
            details={"path": str(path)},
        ) from exc
    except UnicodeDecodeError as exc:
        logger.error("public_key.undecodable", extra={"path": str(path)})
        raise PublicKeyFormatError(
            code="public_key_undecodable",
            message="Invalid public key format",
            details={"path": str(path)},
        ) from exc

    if not is_public_key_block(text):
        logger.error(
            "public_key.invalid_format",
            extra={"path": str(path), "char_count": len(text)},
        )
        raise PublicKeyFormatError(
            code="public_key_invalid_format",
            message="Invalid public key format",
            details={"path": str(path)},
        )

    return text
