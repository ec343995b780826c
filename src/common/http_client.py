"""Shared async HTTP helpers used by the index client, the downloader and the
descriptor fetcher.

Encapsulates session lifecycle, per-call timeouts, status handling and DEBUG
traces so callers only deal with ``HttpStatusError`` / ``aiohttp.ClientError``.
Retrying is left to the caller's ``RetryPolicy``.
"""
from __future__ import annotations

import json
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Mapping, Optional

import aiohttp
from yarl import URL

from constants import Constants

from .errors import HttpStatusError
from .logging_utils import Timer, extra_context, is_debug_enabled, safe_url

logger = logging.getLogger(__name__)

# Exceptions that mean "this attempt failed, another one may succeed".
TRANSIENT_ERRORS = (aiohttp.ClientError, TimeoutError, HttpStatusError, OSError)


class HttpClient:
    """Thin wrapper around an ``aiohttp.ClientSession``."""

    def __init__(
        self,
        timeout: float = Constants.REQUEST_TIMEOUT,
        user_agent: str = Constants.USER_AGENT,
    ):
        """Initialize the client.

        Args:
            timeout: Ceiling in seconds for a single HTTP call.
            user_agent: Value of the ``User-Agent`` header.
        """
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._user_agent = user_agent
        self._session: Optional[aiohttp.ClientSession] = None

    async def start(self) -> None:
        """Start the HTTP session."""
        if self._session is None:
            self._session = aiohttp.ClientSession(
                timeout=self._timeout,
                headers={"User-Agent": self._user_agent},
            )

    async def stop(self) -> None:
        """Stop the HTTP session."""
        if self._session:
            await self._session.close()
            self._session = None

    @staticmethod
    def build_url(url: str, params: Optional[Mapping[str, Any]] = None) -> str:
        """Return ``url`` with ``params`` encoded into its query string."""
        if not params:
            return url
        return str(URL(url).update_query({k: str(v) for k, v in params.items()}))

    @asynccontextmanager
    async def open_response(
        self,
        url: str,
        *,
        params: Optional[Mapping[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
        context: str = "http",
    ) -> AsyncIterator[aiohttp.ClientResponse]:
        """Open a GET response as an async context manager.

        Raises:
            HttpStatusError: When the status is not 2xx.
            aiohttp.ClientError: On transport failures.
        """
        if self._session is None:
            await self.start()
        assert self._session is not None
        target = safe_url(url)
        with Timer() as timer:
            if is_debug_enabled(logger):
                logger.debug(
                    "HTTP request",
                    extra=extra_context(
                        event="http_request",
                        component="http_client",
                        action="GET",
                        target=target,
                        context=context,
                    ),
                )
            response = await self._session.get(self.build_url(url, params), headers=headers)
        try:
            if response.status >= 400:
                logger.warning(
                    "%s request returned HTTP %s for %s", context, response.status, target
                )
                raise HttpStatusError(url, response.status)
            if is_debug_enabled(logger):
                logger.debug(
                    "HTTP response ok",
                    extra=extra_context(
                        event="http_response",
                        component="http_client",
                        action="GET",
                        outcome="success",
                        status_code=response.status,
                        duration_ms=timer.duration_ms(),
                        target=target,
                        context=context,
                    ),
                )
            yield response
        finally:
            response.release()

    async def get_text(
        self,
        url: str,
        *,
        params: Optional[Mapping[str, Any]] = None,
        context: str = "http",
    ) -> str:
        """GET ``url`` and return the decoded body."""
        async with self.open_response(url, params=params, context=context) as response:
            return await response.text()

    async def get_json(
        self,
        url: str,
        *,
        params: Optional[Mapping[str, Any]] = None,
        context: str = "http",
    ) -> Any:
        """GET ``url`` and parse the body as JSON.

        Raises:
            ValueError: When the body is not valid JSON.
        """
        headers = {"Accept": "application/json"}
        async with self.open_response(
            url, params=params, headers=headers, context=context
        ) as response:
            text = await response.text()
        try:
            return json.loads(text)
        except json.JSONDecodeError as exc:
            if is_debug_enabled(logger):
                logger.debug(
                    "JSON decode error",
                    extra=extra_context(
                        event="parse",
                        component="http_client",
                        action="get_json",
                        outcome="json_decode_error",
                        target=safe_url(url),
                    ),
                )
            raise ValueError(f"{context} returned invalid JSON: {exc}") from exc

    async def __aenter__(self) -> "HttpClient":
        """Async context manager entry."""
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        await self.stop()
