"""Shared fixtures: an in-memory HTTP client and a config pointing at temp dirs."""

import json
from contextlib import asynccontextmanager
from typing import Any, Callable, Dict, List, Optional

import pytest

from cli_config import ManagerConfig
from common.errors import HttpStatusError

SEARCH_URL = "https://search.test/solrsearch/select"
REPO_URL = "https://repo.test/maven2"


class _DummyContent:
    """Async iterable for streamed response content."""

    def __init__(self, body: bytes, chunk: int = 4, error: Optional[BaseException] = None):
        self._body = body
        self._chunk = chunk
        self._error = error

    async def iter_chunked(self, size: int):
        for start in range(0, len(self._body), self._chunk):
            yield self._body[start:start + self._chunk]
        if self._error is not None:
            raise self._error


class DummyResponse:
    """Minimal async response stub."""

    def __init__(self, body: bytes = b"ok", status: int = 200, error: Optional[BaseException] = None):
        self.status = status
        self.content_length = len(body)
        self.content = _DummyContent(body, error=error)


class FakeHttp:
    """Stand-in for ``HttpClient`` serving canned responses by URL.

    Route values may be bytes, str, a JSON-able dict, a ``DummyResponse``, an
    exception instance (raised on every call) or a callable receiving the
    query params and returning one of those. Unknown URLs answer HTTP 404.
    """

    def __init__(self, routes: Optional[Dict[str, Any]] = None):
        self.routes: Dict[str, Any] = dict(routes or {})
        self.calls: List[tuple] = []
        self.started = False

    def route(self, url: str, value: Any) -> None:
        self.routes[url] = value

    def count(self, url: str) -> int:
        return sum(1 for called, _ in self.calls if called == url)

    def _lookup(self, url: str, params: Optional[Dict[str, Any]]) -> Any:
        self.calls.append((url, dict(params or {})))
        value = self.routes.get(url)
        if callable(value):
            value = value(dict(params or {}))
        if value is None:
            raise HttpStatusError(url, 404)
        if isinstance(value, BaseException):
            raise value
        return value

    @staticmethod
    def _as_bytes(value: Any) -> bytes:
        if isinstance(value, bytes):
            return value
        if isinstance(value, dict):
            return json.dumps(value).encode("utf-8")
        return str(value).encode("utf-8")

    async def start(self) -> None:
        self.started = True

    async def stop(self) -> None:
        self.started = False

    @asynccontextmanager
    async def open_response(self, url, *, params=None, headers=None, context="http"):
        value = self._lookup(url, params)
        if isinstance(value, DummyResponse):
            yield value
        else:
            yield DummyResponse(self._as_bytes(value))

    async def get_text(self, url, *, params=None, context="http") -> str:
        return self._as_bytes(self._lookup(url, params)).decode("utf-8")

    async def get_json(self, url, *, params=None, context="http") -> Any:
        value = self._lookup(url, params)
        if isinstance(value, dict):
            return value
        return json.loads(self._as_bytes(value))


def solr(*docs: Dict[str, Any]) -> Dict[str, Any]:
    """Build a solrsearch response payload."""
    return {"response": {"numFound": len(docs), "docs": list(docs)}}


def doc(group: str, artifact: str, latest: str, packaging: str = "jar") -> Dict[str, Any]:
    return {"id": f"{group}:{artifact}", "g": group, "a": artifact, "latestVersion": latest, "p": packaging}


def index_of(*docs: Dict[str, Any]) -> Callable[[Dict[str, Any]], Dict[str, Any]]:
    """Index route answering queries by the ``a:"..."`` clause."""

    def _answer(params: Dict[str, Any]) -> Dict[str, Any]:
        query = params.get("q", "")
        return solr(*[d for d in docs if f'a:"{d["a"]}"' in query])

    return _answer


def jar_url(group: str, artifact: str, version: str) -> str:
    path = group.replace(".", "/")
    return f"{REPO_URL}/{path}/{artifact}/{version}/{artifact}-{version}.jar"


@pytest.fixture
def config(tmp_path):
    """Config with no backoff and a private cache directory."""
    return ManagerConfig(
        search_url=SEARCH_URL,
        repository_url=REPO_URL,
        cache_dir=tmp_path / "cache",
        retry_base_delay=0.0,
        lock_timeout=2.0,
    )


@pytest.fixture
def fake_http():
    return FakeHttp()


@pytest.fixture
def project(tmp_path):
    path = tmp_path / "project"
    path.mkdir()
    return path
