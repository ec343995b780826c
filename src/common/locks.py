"""Mutual exclusion for cache keys and project manifests.

Two layers are combined:

- ``KeyedLock`` serializes coroutines of one process per key.
- ``FileLock`` serializes processes through a lock file created with
  ``O_CREAT | O_EXCL``. Lock files older than ``stale_after`` seconds are
  treated as left behind by a crashed process and removed.
"""
from __future__ import annotations

import asyncio
import logging
import os
import time
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Dict, Optional

from constants import Constants

from .errors import LockTimeoutError

logger = logging.getLogger(__name__)


class FileLock:
    """Cross-process lock backed by an exclusively created file.

    Acquisition polls with ``asyncio.sleep`` so other coroutines keep running
    while the lock is contended.
    """

    def __init__(
        self,
        path: Path,
        timeout: float = Constants.LOCK_TIMEOUT_SEC,
        stale_after: float = Constants.STALE_LOCK_AGE_SEC,
        poll_interval: float = Constants.LOCK_POLL_INTERVAL_SEC,
    ):
        self.path = Path(path)
        self.timeout = timeout
        self.stale_after = stale_after
        self.poll_interval = poll_interval
        self._held = False

    @property
    def held(self) -> bool:
        return self._held

    def _try_acquire(self) -> bool:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        try:
            fd = os.open(str(self.path), os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o644)
        except FileExistsError:
            self._break_if_stale()
            return False
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(str(os.getpid()))
        self._held = True
        return True

    def _break_if_stale(self) -> None:
        try:
            age = time.time() - self.path.stat().st_mtime
        except FileNotFoundError:
            return
        if age > self.stale_after:
            logger.warning("Removing stale lock file %s (age %.0fs)", self.path, age)
            try:
                self.path.unlink()
            except FileNotFoundError:
                pass

    async def acquire(self) -> None:
        """Wait until the lock is held or ``timeout`` elapses."""
        deadline = time.monotonic() + self.timeout
        while not self._try_acquire():
            if time.monotonic() >= deadline:
                raise LockTimeoutError(f"Timed out waiting for lock {self.path}")
            await asyncio.sleep(self.poll_interval)

    def release(self) -> None:
        if not self._held:
            return
        self._held = False
        try:
            self.path.unlink()
        except FileNotFoundError:
            logger.warning("Lock file %s vanished before release", self.path)

    async def __aenter__(self) -> "FileLock":
        await self.acquire()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        self.release()


class KeyedLock:
    """Per-key ``asyncio.Lock`` registry with reference counting."""

    def __init__(self) -> None:
        self._locks: Dict[str, asyncio.Lock] = {}
        self._waiters: Dict[str, int] = {}

    @asynccontextmanager
    async def hold(self, key: str, file_lock: Optional[FileLock] = None) -> AsyncIterator[None]:
        """Hold the in-process lock for ``key`` and optionally ``file_lock``."""
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._waiters[key] = self._waiters.get(key, 0) + 1
        try:
            async with lock:
                if file_lock is None:
                    yield
                else:
                    async with file_lock:
                        yield
        finally:
            self._waiters[key] -= 1
            if self._waiters[key] == 0:
                del self._waiters[key]
                self._locks.pop(key, None)
