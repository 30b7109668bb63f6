"""Append-only feedback log backed by a flat text file.

Each entry is a delimiter line carrying only the submission date, followed by
the encrypted envelope:

    <blank line>
    --- Feedback received on 2024-05-17 ---
    -----BEGIN PGP MESSAGE-----
    ...
    -----END PGP MESSAGE-----

Dates are UTC calendar dates with no time-of-day, so the log cannot be used to
line submissions up with request timing.
"""

from __future__ import annotations

import asyncio
import errno
import logging
import os
import re
from dataclasses import dataclass
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Callable

from sealbox.core.errors import StorageAppError, StorageFullError

logger = logging.getLogger(__name__)

LOG_FILE_MODE = 0o600

_DELIMITER_TEMPLATE = "--- Feedback received on {date} ---"
_DELIMITER_RE = re.compile(
    r"^--- Feedback received on (\d{4}-\d{2}-\d{2}) ---$",
    re.MULTILINE,
)

# Out of space, or out of quota for the owning user
_STORAGE_FULL_ERRNOS = {errno.ENOSPC, errno.EDQUOT}


@dataclass(frozen=True)
class FeedbackEntry:
    """One stored submission."""

    coarse_date: date
    payload: str

    def serialize(self) -> str:
        delimiter = _DELIMITER_TEMPLATE.format(date=self.coarse_date.isoformat())
        return f"\n{delimiter}\n{self.payload}\n"


def _utc_today() -> date:
    return datetime.now(timezone.utc).date()


def parse_entries(text: str) -> list[FeedbackEntry]:
    """Split a serialized log back into entries, in file order."""
    matches = list(_DELIMITER_RE.finditer(text))
    entries: list[FeedbackEntry] = []

    for index, match in enumerate(matches):
        start = match.end() + 1
        if index + 1 < len(matches):
            # drop the blank line that opens the next entry
            stop = matches[index + 1].start() - 1
        else:
            stop = len(text)
        payload = text[start:stop]
        if payload.endswith("\n"):
            payload = payload[:-1]
        entries.append(
            FeedbackEntry(
                coarse_date=date.fromisoformat(match.group(1)),
                payload=payload,
            )
        )

    return entries


class AppendOnlyFeedbackStore:
    """Durable, serialized appends to the feedback log.

    Appends go through an ``asyncio.Lock`` so concurrent requests are written
    one at a time and in the order they reached the store. The blocking file
    work itself runs in the default executor.
    """

    def __init__(self, path: Path, *, today: Callable[[], date] = _utc_today) -> None:
        self._path = Path(path)
        self._today = today
        self._lock = asyncio.Lock()

    @property
    def path(self) -> Path:
        return self._path

    async def append(self, payload: str) -> FeedbackEntry:
        """Append one payload under today's coarse date.

        Args:
            payload: Encrypted envelope that already passed validation.

        Returns:
            The entry as written.

        Raises:
            ValueError: If the payload contains a delimiter line.
            StorageFullError: If the device or quota is exhausted.
            StorageAppError: For any other I/O failure.
        """
        if _DELIMITER_RE.search(payload):
            raise ValueError("payload must not contain an entry delimiter line")

        entry = FeedbackEntry(coarse_date=self._today(), payload=payload)
        data = entry.serialize().encode("utf-8")
        loop = asyncio.get_running_loop()

        async with self._lock:
            try:
                await loop.run_in_executor(None, self._write, data)
            except OSError as exc:
                raise self._translate_error(exc) from exc

            await loop.run_in_executor(None, self._restrict_permissions)

        logger.info(
            "store.appended",
            extra={"entry_date": entry.coarse_date.isoformat(), "entry_bytes": len(data)},
        )
        return entry

    async def read_all(self) -> list[FeedbackEntry]:
        """Return every stored entry in write order (empty if no log yet)."""
        loop = asyncio.get_running_loop()
        async with self._lock:
            text = await loop.run_in_executor(None, self._read_text)
        return parse_entries(text)

    def _write(self, data: bytes) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(self._path, os.O_WRONLY | os.O_APPEND | os.O_CREAT, LOG_FILE_MODE)
        try:
            size_before = os.fstat(fd).st_size
            try:
                view = memoryview(data)
                while view:
                    written = os.write(fd, view)
                    view = view[written:]
                os.fsync(fd)
            except OSError:
                # A torn entry would run into the next one
                self._truncate(fd, size_before)
                raise
        finally:
            os.close(fd)

    def _truncate(self, fd: int, size: int) -> None:
        try:
            os.ftruncate(fd, size)
            os.fsync(fd)
        except OSError as exc:
            logger.error(
                "store.rollback_failed",
                extra={"errno": exc.errno, "path": str(self._path)},
            )

    def _restrict_permissions(self) -> None:
        try:
            os.chmod(self._path, LOG_FILE_MODE)
        except OSError as exc:
            logger.warning(
                "store.chmod_failed",
                extra={"errno": exc.errno, "error_type": type(exc).__name__},
            )

    def _read_text(self) -> str:
        try:
            return self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return ""

    def _translate_error(self, exc: OSError) -> StorageAppError:
        if exc.errno in _STORAGE_FULL_ERRNOS:
            logger.error(
                "store.storage_full",
                extra={"errno": exc.errno, "path": str(self._path)},
            )
            return StorageFullError(
                code="storage_full",
                message="Storage full",
                details={"errno": exc.errno},
            )

        logger.error(
            "store.append_failed",
            extra={
                "errno": exc.errno,
                "error_type": type(exc).__name__,
                "error_msg": str(exc),
                "path": str(self._path),
            },
        )
        return StorageAppError(
            code="storage_error",
            message="Server error",
            details={"errno": exc.errno} if exc.errno is not None else None,
        )
