"""Coordinate keyed local artifact store.

Blobs live under ``<cache_dir>/artifacts/<sha256(key)>`` next to a small JSON
metadata file. Entries are written once and only removed by ``clean()``; there
is no eviction.
"""

from __future__ import annotations

import hashlib
import json
import logging
import os
import shutil
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Awaitable, Callable, List, Optional, Tuple, Union

from cli_config import ManagerConfig
from common.locks import FileLock, KeyedLock
from common.logging_utils import extra_context, is_debug_enabled
from versioning.models import Coordinate

logger = logging.getLogger(__name__)

_HASH_CHUNK = 1024 * 1024


@dataclass(frozen=True)
class CacheEntry:
    """A stored artifact."""

    cache_key: str
    local_path: Path
    size_bytes: int
    content_hash: str


@dataclass(frozen=True)
class CleanResult:
    """What ``ContentCache.clean`` removed."""

    entries_removed: int
    bytes_freed: int


def cache_key(coordinate: Coordinate) -> str:
    """SHA-256 hex digest of ``groupId:artifactId:version``.

    A classifier, when present, is appended as a fourth field so classified
    artifacts do not share a slot with the main jar.
    """
    material = f"{coordinate.group_id or ''}:{coordinate.artifact_id}:{coordinate.version}"
    if coordinate.classifier:
        material = f"{material}:{coordinate.classifier}"
    return hashlib.sha256(material.encode("utf-8")).hexdigest()


def file_sha256(path: Path) -> str:
    """Hex SHA-256 of a file, read in chunks."""
    digest = hashlib.sha256()
    with open(path, "rb") as handle:
        for chunk in iter(lambda: handle.read(_HASH_CHUNK), b""):
            digest.update(chunk)
    return digest.hexdigest()


class ContentCache:
    """Local blob store addressed by coordinate."""

    def __init__(self, config: ManagerConfig):
        self._config = config
        self.root = Path(config.cache_dir) / "artifacts"
        self._locks = KeyedLock()

    def _blob_path(self, key: str) -> Path:
        return self.root / key

    def _meta_path(self, key: str) -> Path:
        return self.root / f"{key}.json"

    def _lock_for(self, key: str) -> FileLock:
        return FileLock(
            self.root / ".locks" / f"{key}.lock",
            timeout=self._config.lock_timeout,
            stale_after=self._config.stale_lock_age,
        )

    def get(self, coordinate: Coordinate) -> Optional[CacheEntry]:
        """Return the cached entry or None. Hits are not re-hashed."""
        key = cache_key(coordinate)
        blob = self._blob_path(key)
        if not blob.is_file():
            return None
        content_hash = None
        try:
            meta = json.loads(self._meta_path(key).read_text(encoding="utf-8"))
            content_hash = meta.get("content_hash")
        except (OSError, ValueError):
            pass
        if not content_hash:
            # Metadata lost; hash once and rewrite it.
            content_hash = file_sha256(blob)
            self._write_meta(key, coordinate, blob.stat().st_size, content_hash)
        if is_debug_enabled(logger):
            logger.debug(
                "Cache hit",
                extra=extra_context(
                    event="cache", component="cache", action="get", outcome="hit",
                    coordinate=coordinate.key,
                ),
            )
        return CacheEntry(key, blob, blob.stat().st_size, content_hash)

    def _write_meta(self, key: str, coordinate: Coordinate, size: int, content_hash: str) -> None:
        payload = {
            "coordinate": coordinate.key,
            "size_bytes": size,
            "content_hash": content_hash,
        }
        fd, tmp = tempfile.mkstemp(dir=self.root, prefix=".meta-")
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            json.dump(payload, handle)
        os.replace(tmp, self._meta_path(key))

    def put(self, coordinate: Coordinate, data: Union[bytes, Path]) -> CacheEntry:
        """Store ``data`` for ``coordinate`` atomically.

        Args:
            coordinate: Resolved coordinate.
            data: Raw bytes, or the path of a downloaded file which is moved
                into the cache.
        """
        key = cache_key(coordinate)
        self.root.mkdir(parents=True, exist_ok=True)
        blob = self._blob_path(key)
        fd, tmp = tempfile.mkstemp(dir=self.root, prefix=".blob-")
        try:
            if isinstance(data, (bytes, bytearray)):
                with os.fdopen(fd, "wb") as handle:
                    handle.write(data)
            else:
                os.close(fd)
                shutil.move(str(data), tmp)
            content_hash = file_sha256(Path(tmp))
            size = os.path.getsize(tmp)
            os.replace(tmp, blob)
        except BaseException:
            if os.path.exists(tmp):
                os.unlink(tmp)
            raise
        self._write_meta(key, coordinate, size, content_hash)
        logger.debug("Cached %s as %s", coordinate, key)
        return CacheEntry(key, blob, size, content_hash)

    async def get_or_fetch(
        self,
        coordinate: Coordinate,
        fetcher: Callable[[Path], Awaitable[object]],
    ) -> Tuple[CacheEntry, bool]:
        """Return the cached entry, downloading it first on a miss.

        Lookup, download and store run under the key's lock so concurrent
        callers for the same coordinate trigger a single download.

        Args:
            coordinate: Resolved coordinate.
            fetcher: Coroutine function that writes the artifact to the given path.

        Returns:
            ``(entry, cache_hit)``
        """
        key = cache_key(coordinate)
        self.root.mkdir(parents=True, exist_ok=True)
        async with self._locks.hold(key, self._lock_for(key)):
            entry = self.get(coordinate)
            if entry is not None:
                return entry, True
            staging = self.root / f".{key}.download"
            try:
                await fetcher(staging)
                entry = self.put(coordinate, staging)
            finally:
                if staging.exists():
                    staging.unlink()
            return entry, False

    def entries(self) -> List[CacheEntry]:
        """All stored blobs."""
        if not self.root.is_dir():
            return []
        out = []
        for path in sorted(self.root.iterdir()):
            if path.is_file() and len(path.name) == 64 and "." not in path.name:
                content_hash = ""
                try:
                    meta = json.loads(self._meta_path(path.name).read_text(encoding="utf-8"))
                    content_hash = meta.get("content_hash", "")
                except (OSError, ValueError):
                    pass
                out.append(CacheEntry(path.name, path, path.stat().st_size, content_hash))
        return out

    def clean(self) -> CleanResult:
        """Delete every cached blob and its metadata."""
        removed = 0
        freed = 0
        for entry in self.entries():
            freed += entry.size_bytes
            entry.local_path.unlink()
            meta = self._meta_path(entry.cache_key)
            if meta.exists():
                meta.unlink()
            removed += 1
        logger.info("Cache cleaned: %d entries, %d bytes freed", removed, freed)
        return CleanResult(removed, freed)
