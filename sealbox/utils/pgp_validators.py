"""Structural validation of ASCII-armored PGP blocks.

Only the shape of the armor is checked. The server never holds key material,
so nothing here attempts to parse or verify the packets themselves.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)

MESSAGE_BEGIN_MARKER = "-----BEGIN PGP MESSAGE-----"
MESSAGE_END_MARKER = "-----END PGP MESSAGE-----"
PUBLIC_KEY_BEGIN_MARKER = "-----BEGIN PGP PUBLIC KEY BLOCK-----"


@dataclass(frozen=True)
class PGPMessageValidator:
    """Decide whether a submitted string looks like one encrypted PGP message.

    Attributes:
        max_chars: Upper bound on the whole candidate length.
        min_chars: Lower bound on the whole candidate length.
        min_content_chars: Lower bound on the trimmed armor body length.
    """

    max_chars: int = 1_000_000
    min_chars: int = 100
    min_content_chars: int = 50

    def validate(self, candidate: Any) -> bool:
        """Return True when ``candidate`` is exactly one plausible envelope.

        Surrounding whitespace is tolerated; any other text before the begin
        marker or after the end marker is not.

        Args:
            candidate: Value taken from the request body, of any type.

        Returns:
            True if every structural rule holds, False otherwise.
        """
        if not isinstance(candidate, str):
            return False
        if not self.min_chars <= len(candidate) <= self.max_chars:
            return False

        armor = candidate.strip()
        if not (armor.startswith(MESSAGE_BEGIN_MARKER) and armor.endswith(MESSAGE_END_MARKER)):
            return False
        if armor.count(MESSAGE_BEGIN_MARKER) != 1 or armor.count(MESSAGE_END_MARKER) != 1:
            return False

        content = armor[len(MESSAGE_BEGIN_MARKER):-len(MESSAGE_END_MARKER)]
        # Armor lines are headers, base64 or a "=" checksum, never dash-led
        if any(line.lstrip().startswith("-") for line in content.splitlines()):
            return False

        return len(content.strip()) >= self.min_content_chars


def is_public_key_block(text: str) -> bool:
    """Check that ``text`` carries an armored public key header."""
    return PUBLIC_KEY_BEGIN_MARKER in text
