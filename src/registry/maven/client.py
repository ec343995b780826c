"""Maven Central search (solrsearch) client."""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from cli_config import ManagerConfig
from common.cancellation import CancelToken, guarded
from common.errors import RegistryError
from common.http_client import TRANSIENT_ERRORS, HttpClient
from common.logging_utils import Timer, extra_context, is_debug_enabled, safe_url
from common.retry import RetryExhausted, RetryPolicy, retry_async
from versioning.models import Coordinate, IndexCandidate

logger = logging.getLogger(__name__)


def build_query(coordinate: Coordinate) -> str:
    """Return the solr query for a coordinate.

    With a group: ``g:"G" AND a:"A"``; otherwise ``a:"A"``.
    """
    if coordinate.group_id:
        return f'g:"{coordinate.group_id}" AND a:"{coordinate.artifact_id}"'
    return f'a:"{coordinate.artifact_id}"'


def _first_text(value: Any) -> str:
    if isinstance(value, list):
        return str(value[0]) if value else ""
    return str(value or "")


def parse_docs(payload: Any) -> List[IndexCandidate]:
    """Turn a solrsearch JSON payload into candidates, skipping malformed docs."""
    if not isinstance(payload, dict):
        raise RegistryError("Unexpected package index response")
    docs = (payload.get("response") or {}).get("docs") or []
    candidates: List[IndexCandidate] = []
    for doc in docs:
        if not isinstance(doc, dict):
            continue
        group = doc.get("g")
        artifact = doc.get("a")
        if not group or not artifact:
            continue
        candidates.append(
            IndexCandidate(
                group_id=group,
                artifact_id=artifact,
                latest_version=doc.get("latestVersion") or doc.get("v") or "",
                packaging=doc.get("p") or "jar",
                description=_first_text(doc.get("text")),
                timestamp=int(doc.get("timestamp") or 0),
            )
        )
    return candidates


class MavenSearchClient:
    """Query the package index for artifact candidates."""

    def __init__(self, config: ManagerConfig, http: HttpClient):
        self._config = config
        self._http = http
        self._policy = RetryPolicy(config.max_retries, config.retry_base_delay)

    async def query(
        self,
        query: str,
        rows: Optional[int] = None,
        token: Optional[CancelToken] = None,
    ) -> List[IndexCandidate]:
        """Run a raw solr query.

        Args:
            query: Solr ``q`` parameter.
            rows: Maximum number of documents, defaults to ``config.search_rows``.
            token: Optional cancellation token.

        Returns:
            Candidates in index order.

        Raises:
            RegistryError: When the index cannot be reached after all retries.
        """
        params: Dict[str, Any] = {
            "q": query,
            "rows": rows or self._config.search_rows,
            "wt": "json",
        }
        url = self._config.search_url

        async def _attempt(_attempt: int) -> Any:
            return await guarded(
                self._http.get_json(url, params=params, context="maven"), token
            )

        with Timer() as timer:
            try:
                payload = await retry_async(
                    _attempt,
                    self._policy,
                    retry_on=TRANSIENT_ERRORS + (ValueError,),
                    token=token,
                    context="maven search",
                )
            except RetryExhausted as exc:
                logger.error("Package index query failed: %s", exc.last_error)
                raise RegistryError(
                    f"Package index query '{query}' failed after {exc.attempts} attempt(s): "
                    f"{exc.last_error}"
                ) from exc.last_error

        candidates = parse_docs(payload)
        if is_debug_enabled(logger):
            logger.debug(
                "Index query complete",
                extra=extra_context(
                    event="function_exit",
                    component="client",
                    action="query",
                    outcome="found" if candidates else "empty",
                    count=len(candidates),
                    duration_ms=timer.duration_ms(),
                    target=safe_url(url),
                ),
            )
        return candidates

    async def find(
        self, coordinate: Coordinate, token: Optional[CancelToken] = None
    ) -> List[IndexCandidate]:
        """Return index candidates for a coordinate."""
        return await self.query(build_query(coordinate), token=token)

    async def search(
        self, text: str, limit: int = 20, token: Optional[CancelToken] = None
    ) -> List[IndexCandidate]:
        """Free text search, as typed by a user."""
        return await self.query(text, rows=limit, token=token)
