"""Turn partial coordinates into downloadable artifacts."""
from __future__ import annotations

import logging
from typing import Optional

from cli_config import ManagerConfig
from common.cancellation import CancelToken
from common.errors import NotFoundError
from common.logging_utils import extra_context, is_debug_enabled
from versioning.models import LATEST, Coordinate, ResolvedArtifact

from .client import MavenSearchClient, build_query

logger = logging.getLogger(__name__)


def artifact_url(repository_url: str, coordinate: Coordinate, extension: str = "jar") -> str:
    """Build the Maven2 layout URL of an artifact file.

    ``{repo}/{group/with/slashes}/{a}/{v}/{a}-{v}[-{classifier}].{ext}``
    """
    group_path = (coordinate.group_id or "").replace(".", "/")
    artifact = coordinate.artifact_id
    version = coordinate.version
    suffix = f"-{coordinate.classifier}" if coordinate.classifier else ""
    base = repository_url.rstrip("/")
    return f"{base}/{group_path}/{artifact}/{version}/{artifact}-{version}{suffix}.{extension}"


class Resolver:
    """Resolve a coordinate against the package index.

    The first index document wins. A caller supplied version is kept as is;
    only ``latest`` is replaced by the index's ``latestVersion``.
    """

    def __init__(self, config: ManagerConfig, client: MavenSearchClient):
        self._config = config
        self._client = client

    async def resolve(
        self, coordinate: Coordinate, token: Optional[CancelToken] = None
    ) -> ResolvedArtifact:
        """Resolve ``coordinate`` into a ``ResolvedArtifact``.

        Raises:
            NotFoundError: When the index returns no documents.
            RegistryError: When the index cannot be queried.
        """
        candidates = await self._client.find(coordinate, token=token)
        if not candidates:
            logger.warning("No index entry for %s", coordinate)
            raise NotFoundError(build_query(coordinate))

        first = candidates[0]
        version = coordinate.version
        if version == LATEST:
            version = first.latest_version
        if not version:
            raise NotFoundError(build_query(coordinate))

        resolved = Coordinate(
            artifact_id=first.artifact_id,
            version=version,
            group_id=first.group_id,
            classifier=coordinate.classifier,
        )
        if is_debug_enabled(logger):
            logger.debug(
                "Resolved coordinate",
                extra=extra_context(
                    event="function_exit",
                    component="resolver",
                    action="resolve",
                    outcome="resolved",
                    coordinate=resolved.key,
                    count=len(candidates),
                ),
            )
        return ResolvedArtifact(
            coordinate=resolved,
            download_url=artifact_url(self._config.repository_url, resolved),
            packaging=first.packaging,
            description=first.description,
        )
