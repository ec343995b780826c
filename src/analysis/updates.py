"""Compare installed versions with what the package index reports as latest."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional

from common.cancellation import CancelToken
from common.errors import JarDepsError, OperationCancelledError
from registry.maven.resolver import Resolver
from store.manifest import ManifestEntry
from versioning.compare import is_newer
from versioning.models import LATEST, Coordinate

logger = logging.getLogger(__name__)


@dataclass
class UpdateInfo:
    """Update status of one installed artifact.

    ``update_available`` is true whenever the versions differ; ``newer`` holds
    the naive component comparison and may disagree for odd version schemes.
    """

    name: str
    group_id: Optional[str]
    artifact_id: str
    current: str
    latest: Optional[str] = None
    update_available: bool = False
    newer: Optional[bool] = None
    error: Optional[str] = None


class UpdateChecker:
    """Resolve ``latest`` for each installed artifact, one at a time."""

    def __init__(self, resolver: Resolver):
        self._resolver = resolver

    async def check_updates(
        self, entries: Iterable[ManifestEntry], token: Optional[CancelToken] = None
    ) -> List[UpdateInfo]:
        results: List[UpdateInfo] = []
        for entry in entries:
            info = UpdateInfo(
                name=entry.name,
                group_id=entry.group_id,
                artifact_id=entry.artifact_id,
                current=entry.version,
            )
            try:
                resolved = await self._resolver.resolve(
                    Coordinate(artifact_id=entry.artifact_id, version=LATEST, group_id=entry.group_id),
                    token=token,
                )
            except OperationCancelledError:
                raise
            except JarDepsError as e:
                logger.warning("Could not check updates for %s: %s", entry.name, e)
                info.error = str(e)
                results.append(info)
                continue
            info.latest = resolved.version
            info.update_available = resolved.version != entry.version
            if entry.version:
                info.newer = is_newer(resolved.version, entry.version)
            results.append(info)
        available = sum(1 for r in results if r.update_available)
        logger.info("%d of %d dependencies have updates available", available, len(results))
        return results
