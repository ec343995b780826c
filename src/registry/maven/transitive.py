"""Fetch an artifact together with the dependencies its POM declares.

Only one level is followed: the dependencies of dependencies are not read.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from cli_config import ManagerConfig
from common.cancellation import CancelToken, guarded
from common.errors import JarDepsError, OperationCancelledError
from common.http_client import TRANSIENT_ERRORS, HttpClient
from common.logging_utils import extra_context, is_debug_enabled, safe_url
from common.retry import RetryExhausted, RetryPolicy, retry_async
from download.fetcher import CachedFetcher, FetchOutcome
from versioning.models import Coordinate, ResolvedArtifact

from .descriptor import DescriptorParser, PomDescriptorParser
from .resolver import Resolver

logger = logging.getLogger(__name__)


@dataclass
class TransitiveResult:
    """``success`` means the batch ran; check each outcome for failures."""

    main: FetchOutcome
    dependencies: List[FetchOutcome] = field(default_factory=list)
    success: bool = True

    @property
    def outcomes(self) -> List[FetchOutcome]:
        return [self.main] + self.dependencies

    @property
    def fetched(self) -> int:
        return sum(1 for o in self.outcomes if o.success)


class TransitiveFetcher:
    """Resolve, read the descriptor, then download main and declared dependencies."""

    def __init__(
        self,
        config: ManagerConfig,
        resolver: Resolver,
        http: HttpClient,
        fetcher: CachedFetcher,
        parser: Optional[DescriptorParser] = None,
    ):
        self._resolver = resolver
        self._http = http
        self._fetcher = fetcher
        self._parser = parser or PomDescriptorParser()
        self._policy = RetryPolicy(config.max_retries, config.retry_base_delay)

    async def declared_dependencies(
        self, artifact: ResolvedArtifact, token: Optional[CancelToken] = None
    ) -> List[Coordinate]:
        """Dependencies declared by ``artifact``'s POM; empty if it can't be fetched."""

        async def _attempt(_attempt: int) -> str:
            return await guarded(self._http.get_text(artifact.pom_url, context="pom"), token)

        try:
            document = await retry_async(
                _attempt, self._policy, retry_on=TRANSIENT_ERRORS, token=token, context="pom"
            )
        except RetryExhausted as exc:
            logger.warning(
                "Could not fetch descriptor %s: %s", safe_url(artifact.pom_url), exc.last_error
            )
            return []
        declared = self._parser.extract_declared_dependencies(document)
        if is_debug_enabled(logger):
            logger.debug(
                "Declared dependencies read",
                extra=extra_context(
                    event="function_exit",
                    component="transitive",
                    action="declared_dependencies",
                    coordinate=artifact.coordinate.key,
                    count=len(declared),
                ),
            )
        return declared

    async def fetch_with_transitives(
        self,
        coordinate: Coordinate,
        destination_dir: Path,
        token: Optional[CancelToken] = None,
    ) -> TransitiveResult:
        """Download ``coordinate`` and its declared dependencies into ``destination_dir``.

        Raises:
            NotFoundError: When the main coordinate cannot be resolved.
        """
        main = await self._resolver.resolve(coordinate, token=token)
        declared = await self.declared_dependencies(main, token=token)

        result = TransitiveResult(main=await self._fetcher.try_fetch(main, destination_dir, token))
        for dependency in declared:
            try:
                resolved = await self._resolver.resolve(dependency, token=token)
            except OperationCancelledError:
                raise
            except JarDepsError as e:
                logger.warning("Could not resolve %s: %s", dependency, e)
                result.dependencies.append(
                    FetchOutcome(coordinate=dependency, success=False, error=str(e))
                )
                continue
            result.dependencies.append(
                await self._fetcher.try_fetch(resolved, destination_dir, token)
            )

        logger.info(
            "Downloaded %d of %d dependencies", result.fetched, len(result.outcomes)
        )
        return result
