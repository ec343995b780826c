"""Artifact download with retry, hashing and optional sidecar verification."""
from __future__ import annotations

import hashlib
import logging
import os
import warnings
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional

from cli_config import ManagerConfig
from common.cancellation import CancelToken
from common.errors import ChecksumMismatchWarning, DownloadError
from common.http_client import TRANSIENT_ERRORS, HttpClient
from common.logging_utils import Timer, extra_context, is_debug_enabled, safe_url
from common.retry import RetryExhausted, RetryPolicy, retry_async
from constants import Constants

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProgressEvent:
    """Download progress notification."""

    url: str
    loaded: int
    total: int
    percent: float


ProgressCallback = Callable[[ProgressEvent], None]


@dataclass
class DownloadResult:
    """Outcome of a successful download."""

    url: str
    path: Path
    size_bytes: int
    content_hash: str
    attempts: int
    duration_ms: int
    # None when no sidecar was checked
    checksum_verified: Optional[bool] = None
    warnings: List[str] = field(default_factory=list)


@dataclass
class _Streamed:
    size_bytes: int
    sha256: str
    sha1: str


def parse_sidecar(text: str) -> Optional[str]:
    """Return the hex digest of a ``.sha1`` file (``<digest> [filename]``)."""
    stripped = text.strip()
    if not stripped:
        return None
    return stripped.split()[0].lower()


class Downloader:
    """Fetch URLs to local files.

    Each attempt streams the body to ``<destination>.part``; the part file is
    renamed into place on success and removed on any failure. Failed attempts
    are retried by the configured ``RetryPolicy``.
    """

    def __init__(
        self,
        config: ManagerConfig,
        http: HttpClient,
        policy: Optional[RetryPolicy] = None,
    ):
        self._config = config
        self._http = http
        self._policy = policy or RetryPolicy(config.max_retries, config.retry_base_delay)

    async def _stream_once(
        self,
        url: str,
        destination: Path,
        token: CancelToken,
        progress: Optional[ProgressCallback],
    ) -> _Streamed:
        part = destination.with_name(destination.name + ".part")
        sha256 = hashlib.sha256()
        sha1 = hashlib.sha1()
        loaded = 0
        try:
            async with self._http.open_response(url, context="download") as response:
                total = response.content_length or 0
                with open(part, "wb") as handle:
                    async for chunk in response.content.iter_chunked(Constants.DOWNLOAD_CHUNK_SIZE):
                        token.raise_if_cancelled()
                        handle.write(chunk)
                        sha256.update(chunk)
                        sha1.update(chunk)
                        loaded += len(chunk)
                        if progress is not None and total > 0:
                            progress(ProgressEvent(url, loaded, total, round(loaded * 100.0 / total, 1)))
            os.replace(part, destination)
        except BaseException:
            try:
                part.unlink()
            except FileNotFoundError:
                pass
            raise
        return _Streamed(loaded, sha256.hexdigest(), sha1.hexdigest())

    async def _verify_sidecar(self, checksum_url: str, actual_sha1: str, result: DownloadResult) -> None:
        try:
            expected = parse_sidecar(await self._http.get_text(checksum_url, context="checksum"))
        except TRANSIENT_ERRORS + (ValueError,) as e:
            logger.debug("No checksum sidecar at %s: %s", safe_url(checksum_url), e)
            return
        if expected is None:
            return
        if expected == actual_sha1:
            result.checksum_verified = True
            return
        result.checksum_verified = False
        message = (
            f"Checksum mismatch for {safe_url(result.url)}: "
            f"expected sha1 {expected}, got {actual_sha1}"
        )
        result.warnings.append(message)
        warnings.warn(message, ChecksumMismatchWarning, stacklevel=3)

    async def fetch(
        self,
        url: str,
        destination: Path,
        *,
        checksum_url: Optional[str] = None,
        token: Optional[CancelToken] = None,
        progress: Optional[ProgressCallback] = None,
    ) -> DownloadResult:
        """Download ``url`` to ``destination``.

        Args:
            url: Artifact URL.
            destination: Target file; parent directories are created.
            checksum_url: Optional ``.sha1`` sidecar URL. A mismatch is
                reported as a warning and the download is still accepted.
            token: Optional cancellation token.
            progress: Callback receiving ``ProgressEvent`` when the size is known.

        Returns:
            DownloadResult describing the stored file.

        Raises:
            DownloadError: After every attempt failed; the message carries the
                last cause.
            OperationCancelledError: When ``token`` is cancelled.
        """
        destination = Path(destination)
        destination.parent.mkdir(parents=True, exist_ok=True)
        token = token or CancelToken()
        attempts = 0

        async def _attempt(attempt: int) -> _Streamed:
            nonlocal attempts
            attempts = attempt
            return await token.guard(self._stream_once(url, destination, token, progress))

        with Timer() as timer:
            try:
                streamed = await retry_async(
                    _attempt,
                    self._policy,
                    retry_on=TRANSIENT_ERRORS,
                    token=token,
                    context="download",
                )
            except RetryExhausted as exc:
                logger.error("Download of %s failed: %s", safe_url(url), exc.last_error)
                raise DownloadError(url, exc.attempts, exc.last_error) from exc.last_error

        result = DownloadResult(
            url=url,
            path=destination,
            size_bytes=streamed.size_bytes,
            content_hash=streamed.sha256,
            attempts=attempts,
            duration_ms=timer.duration_ms(),
        )
        if checksum_url and self._config.verify_checksums:
            await self._verify_sidecar(checksum_url, streamed.sha1, result)

        logger.info("Downloaded %s (%d bytes)", destination.name, result.size_bytes)
        if is_debug_enabled(logger):
            logger.debug(
                "Download complete",
                extra=extra_context(
                    event="function_exit",
                    component="downloader",
                    action="fetch",
                    outcome="success",
                    attempt=attempts,
                    duration_ms=result.duration_ms,
                    target=safe_url(url),
                ),
            )
        return result
