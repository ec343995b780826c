"""Tests for the Maven index client and resolver."""

import asyncio

import aiohttp
import pytest

from conftest import REPO_URL, SEARCH_URL, doc, index_of, solr
from common.errors import NotFoundError, RegistryError
from registry.maven.client import MavenSearchClient, build_query, parse_docs
from registry.maven.resolver import Resolver, artifact_url
from versioning.models import Coordinate, ResolvedArtifact
from versioning.parser import parse_spec


def _resolver(config, http):
    return Resolver(config, MavenSearchClient(config, http))


class TestQueryBuilding:
    """Tests for solr query construction and response parsing."""

    def test_query_with_group(self):
        """Group and artifact are both constrained."""
        assert build_query(parse_spec("com.google.code.gson:gson:2.8.9")) == (
            'g:"com.google.code.gson" AND a:"gson"'
        )

    def test_query_without_group(self):
        """Only the artifact is constrained without a group."""
        assert build_query(parse_spec("gson")) == 'a:"gson"'

    def test_parse_docs_skips_incomplete(self):
        """Docs without group or artifact are ignored."""
        payload = solr(doc("g", "a", "1.0"), {"a": "missing-group"})
        candidates = parse_docs(payload)
        assert len(candidates) == 1
        assert candidates[0].latest_version == "1.0"
        assert candidates[0].packaging == "jar"

    def test_parse_docs_rejects_non_object(self):
        """A non-object payload is a registry error."""
        with pytest.raises(RegistryError):
            parse_docs(["unexpected"])


class TestArtifactUrl:
    """Tests for Maven2 layout URL derivation."""

    def test_plain_jar(self):
        """Dots in the group become slashes."""
        url = artifact_url(REPO_URL, Coordinate("gson", "2.8.9", "com.google.code.gson"))
        assert url == f"{REPO_URL}/com/google/code/gson/gson/2.8.9/gson-2.8.9.jar"

    def test_classifier_suffix(self):
        """A classifier is appended after the version."""
        url = artifact_url(REPO_URL + "/", Coordinate("lwjgl", "3.3.1", "org.lwjgl", "natives-linux"))
        assert url == f"{REPO_URL}/org/lwjgl/lwjgl/3.3.1/lwjgl-3.3.1-natives-linux.jar"

    def test_sidecar_and_pom_urls(self):
        """Checksum and POM locations derive from the download URL."""
        coordinate = Coordinate("gson", "2.8.9", "com.google.code.gson")
        artifact = ResolvedArtifact(coordinate, artifact_url(REPO_URL, coordinate))
        assert artifact.checksum_url.endswith("gson-2.8.9.jar.sha1")
        assert artifact.pom_url == f"{REPO_URL}/com/google/code/gson/gson/2.8.9/gson-2.8.9.pom"
        assert artifact.file_name == "gson-2.8.9.jar"

    def test_unresolved_coordinate_rejected(self):
        """ResolvedArtifact needs a concrete version and group."""
        with pytest.raises(ValueError):
            ResolvedArtifact(Coordinate("gson"), "https://example/gson.jar")


class TestResolver:
    """Tests for Resolver.resolve."""

    def test_latest_uses_index_latest_version(self, config, fake_http):
        """version=latest takes latestVersion from the first document."""
        fake_http.route(SEARCH_URL, index_of(doc("com.google.code.gson", "gson", "2.10.1")))

        resolved = asyncio.run(_resolver(config, fake_http).resolve(parse_spec("gson")))

        assert resolved.version == "2.10.1"
        assert resolved.group_id == "com.google.code.gson"
        assert resolved.download_url == (
            f"{REPO_URL}/com/google/code/gson/gson/2.10.1/gson-2.10.1.jar"
        )

    def test_query_parameters(self, config, fake_http):
        """The index is queried with q, rows and wt=json."""
        fake_http.route(SEARCH_URL, index_of(doc("g", "a", "1.0")))

        asyncio.run(_resolver(config, fake_http).resolve(parse_spec("g:a:latest")))

        url, params = fake_http.calls[0]
        assert url == SEARCH_URL
        assert params == {"q": 'g:"g" AND a:"a"', "rows": config.search_rows, "wt": "json"}

    def test_explicit_version_kept(self, config, fake_http):
        """A caller supplied version is not checked against the index."""
        fake_http.route(SEARCH_URL, index_of(doc("g", "a", "9.9")))

        resolved = asyncio.run(_resolver(config, fake_http).resolve(parse_spec("a:1.0")))

        assert resolved.version == "1.0"
        assert resolved.group_id == "g"

    def test_first_document_wins(self, config, fake_http):
        """With several candidates the first one is used."""
        fake_http.route(SEARCH_URL, solr(doc("first.group", "a", "1.0"), doc("second.group", "a", "2.0")))

        resolved = asyncio.run(_resolver(config, fake_http).resolve(parse_spec("a")))

        assert resolved.group_id == "first.group"
        assert resolved.version == "1.0"

    def test_no_documents_raises_not_found(self, config, fake_http):
        """Zero candidates is NotFoundError."""
        fake_http.route(SEARCH_URL, solr())

        with pytest.raises(NotFoundError) as exc:
            asyncio.run(_resolver(config, fake_http).resolve(parse_spec("nothing")))
        assert "nothing" in str(exc.value)

    def test_transport_failure_after_retries(self, config, fake_http):
        """Exhausted retries against the index raise RegistryError."""
        fake_http.route(SEARCH_URL, aiohttp.ClientConnectionError("index down"))

        with pytest.raises(RegistryError) as exc:
            asyncio.run(_resolver(config, fake_http).resolve(parse_spec("gson")))

        assert "index down" in str(exc.value)
        assert fake_http.count(SEARCH_URL) == config.max_retries

    def test_search_returns_all_candidates(self, config, fake_http):
        """Free text search returns every document with the requested row limit."""
        fake_http.route(SEARCH_URL, solr(doc("g1", "json", "1"), doc("g2", "json-simple", "2")))
        client = MavenSearchClient(config, fake_http)

        results = asyncio.run(client.search("json", limit=5))

        assert [c.artifact_id for c in results] == ["json", "json-simple"]
        assert fake_http.calls[0][1]["rows"] == 5
