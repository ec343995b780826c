"""Cached retrieval: cache lookup, download on miss, copy into a target directory."""
from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from common.cancellation import CancelToken
from common.errors import JarDepsError, OperationCancelledError
from store.cache import ContentCache
from versioning.models import Coordinate, ResolvedArtifact

from .downloader import Downloader, ProgressCallback

logger = logging.getLogger(__name__)


@dataclass
class FetchOutcome:
    """Per-item result of a batch fetch."""

    coordinate: Coordinate
    success: bool
    path: Optional[Path] = None
    size_bytes: int = 0
    content_hash: Optional[str] = None
    cache_hit: bool = False
    error: Optional[str] = None


class CachedFetcher:
    """Serve artifacts from the content cache, downloading them once."""

    def __init__(
        self,
        cache: ContentCache,
        downloader: Downloader,
        progress: Optional[ProgressCallback] = None,
    ):
        self.cache = cache
        self.downloader = downloader
        self._progress = progress

    async def fetch(
        self,
        artifact: ResolvedArtifact,
        destination_dir: Path,
        token: Optional[CancelToken] = None,
    ) -> FetchOutcome:
        """Place ``artifact`` into ``destination_dir``.

        Raises:
            DownloadError: When the artifact is not cached and cannot be downloaded.
        """

        async def _download(staging: Path) -> None:
            await self.downloader.fetch(
                artifact.download_url,
                staging,
                checksum_url=artifact.checksum_url,
                token=token,
                progress=self._progress,
            )

        entry, hit = await self.cache.get_or_fetch(artifact.coordinate, _download)
        destination_dir = Path(destination_dir)
        destination_dir.mkdir(parents=True, exist_ok=True)
        target = destination_dir / artifact.file_name
        shutil.copyfile(entry.local_path, target)
        if hit:
            logger.info("Using cached %s", artifact.coordinate)
        return FetchOutcome(
            coordinate=artifact.coordinate,
            success=True,
            path=target,
            size_bytes=entry.size_bytes,
            content_hash=entry.content_hash,
            cache_hit=hit,
        )

    async def try_fetch(
        self,
        artifact: ResolvedArtifact,
        destination_dir: Path,
        token: Optional[CancelToken] = None,
    ) -> FetchOutcome:
        """Like ``fetch`` but reports failures on the outcome instead of raising."""
        try:
            return await self.fetch(artifact, destination_dir, token=token)
        except OperationCancelledError:
            raise
        except (JarDepsError, OSError) as e:
            logger.error("Failed to fetch %s: %s", artifact.coordinate, e)
            return FetchOutcome(coordinate=artifact.coordinate, success=False, error=str(e))
