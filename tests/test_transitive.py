"""Tests for POM descriptor parsing and one-level transitive fetching."""

import asyncio

import pytest

from conftest import REPO_URL, SEARCH_URL, doc, index_of, jar_url
from common.errors import NotFoundError
from download.downloader import Downloader
from download.fetcher import CachedFetcher
from registry.maven.client import MavenSearchClient
from registry.maven.descriptor import PomDescriptorParser
from registry.maven.resolver import Resolver
from registry.maven.transitive import TransitiveFetcher
from store.cache import ContentCache
from versioning.models import LATEST
from versioning.parser import parse_spec

POM = """<?xml version="1.0" encoding="UTF-8"?>
<project xmlns="http://maven.apache.org/POM/4.0.0">
  <modelVersion>4.0.0</modelVersion>
  <groupId>org.example</groupId>
  <artifactId>app</artifactId>
  <version>1.0</version>
  <properties><dep.version>2.0</dep.version></properties>
  <dependencyManagement>
    <dependencies>
      <dependency><groupId>org.managed</groupId><artifactId>managed</artifactId><version>9</version></dependency>
    </dependencies>
  </dependencyManagement>
  <dependencies>
    <dependency>
      <groupId>org.example</groupId>
      <artifactId>core</artifactId>
      <version>${dep.version}</version>
    </dependency>
    <dependency>
      <groupId>org.example</groupId>
      <artifactId>util</artifactId>
      <version>1.1</version>
    </dependency>
    <dependency>
      <groupId>junit</groupId>
      <artifactId>junit</artifactId>
      <version>4.13.2</version>
      <scope>test</scope>
    </dependency>
    <dependency>
      <groupId>org.example</groupId>
      <artifactId>extra</artifactId>
      <version>1.0</version>
      <optional>true</optional>
    </dependency>
  </dependencies>
</project>
"""


class TestPomDescriptorParser:
    """Tests for PomDescriptorParser."""

    def test_top_level_dependencies_only(self):
        """Managed, test scoped and optional dependencies are skipped."""
        declared = PomDescriptorParser().extract_declared_dependencies(POM)
        assert [c.artifact_id for c in declared] == ["core", "util"]

    def test_property_versions_become_latest(self):
        """${...} versions are not interpolated."""
        declared = PomDescriptorParser().extract_declared_dependencies(POM)
        assert declared[0].version == LATEST
        assert declared[1].version == "1.1"

    def test_missing_version_becomes_latest(self):
        """Dependencies without a version resolve to latest."""
        pom = (
            "<project><dependencies><dependency><groupId>g</groupId>"
            "<artifactId>a</artifactId></dependency></dependencies></project>"
        )
        [declared] = PomDescriptorParser().extract_declared_dependencies(pom)
        assert declared.key == "g:a:latest"

    def test_invalid_document(self):
        """Unparseable documents declare nothing."""
        assert PomDescriptorParser().extract_declared_dependencies("<project>") == []

    def test_custom_scopes(self):
        """Scopes to follow are configurable."""
        declared = PomDescriptorParser(["test"]).extract_declared_dependencies(POM)
        assert [c.artifact_id for c in declared] == ["junit"]


def _transitive(config, http):
    resolver = Resolver(config, MavenSearchClient(config, http))
    fetcher = CachedFetcher(ContentCache(config), Downloader(config, http))
    return TransitiveFetcher(config, resolver, http, fetcher)


class TestTransitiveFetcher:
    """Tests for TransitiveFetcher.fetch_with_transitives."""

    def test_main_and_declared_dependencies(self, config, fake_http, tmp_path):
        """Main and declared dependencies are fetched; failures are collected."""
        fake_http.route(SEARCH_URL, index_of(
            doc("org.example", "app", "1.0"),
            doc("org.example", "core", "2.0"),
            doc("org.example", "util", "1.1"),
        ))
        fake_http.route(f"{REPO_URL}/org/example/app/1.0/app-1.0.pom", POM)
        fake_http.route(jar_url("org.example", "app", "1.0"), b"app")
        fake_http.route(jar_url("org.example", "core", "2.0"), b"core")
        destination = tmp_path / "libs"

        result = asyncio.run(
            _transitive(config, fake_http).fetch_with_transitives(parse_spec("org.example:app:1.0"), destination)
        )

        assert result.success is True
        assert result.main.success is True
        assert [o.coordinate.artifact_id for o in result.dependencies] == ["core", "util"]
        assert result.dependencies[0].success is True
        assert result.dependencies[0].coordinate.version == "2.0"
        assert result.dependencies[1].success is False
        assert "HTTP 404" in result.dependencies[1].error
        assert sorted(p.name for p in destination.iterdir()) == ["app-1.0.jar", "core-2.0.jar"]
        assert result.fetched == 2

    def test_missing_pom_fetches_main_only(self, config, fake_http, tmp_path):
        """Without a descriptor only the main artifact is fetched."""
        fake_http.route(SEARCH_URL, index_of(doc("org.example", "app", "1.0")))
        fake_http.route(jar_url("org.example", "app", "1.0"), b"app")

        result = asyncio.run(
            _transitive(config, fake_http).fetch_with_transitives(parse_spec("app"), tmp_path / "libs")
        )

        assert result.main.success is True
        assert result.dependencies == []

    def test_unresolvable_main_is_fatal(self, config, fake_http, tmp_path):
        """A main coordinate missing from the index raises NotFoundError."""
        fake_http.route(SEARCH_URL, index_of())

        with pytest.raises(NotFoundError):
            asyncio.run(
                _transitive(config, fake_http).fetch_with_transitives(parse_spec("ghost"), tmp_path)
            )

    def test_unresolvable_dependency_is_collected(self, config, fake_http, tmp_path):
        """A declared dependency missing from the index is recorded as failed."""
        fake_http.route(SEARCH_URL, index_of(doc("org.example", "app", "1.0")))
        fake_http.route(f"{REPO_URL}/org/example/app/1.0/app-1.0.pom", POM)
        fake_http.route(jar_url("org.example", "app", "1.0"), b"app")

        result = asyncio.run(
            _transitive(config, fake_http).fetch_with_transitives(parse_spec("org.example:app:1.0"), tmp_path)
        )

        assert result.success is True
        assert [o.success for o in result.dependencies] == [False, False]
        assert "Dependency not found" in result.dependencies[0].error
