"""Project level dependency workflows.

``DependencyManager`` wires the resolver, downloader, content cache, manifest
and analysis components together for one project directory::

    async with DependencyManager(project_dir, config) as manager:
        await manager.add_dependency("com.google.code.gson:gson:2.8.9")

Batch operations (import, update, transitive fetch) run their items one after
another and collect failures per item.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from analysis.conflicts import ConflictDetector, ConflictReport
from analysis.updates import UpdateChecker, UpdateInfo
from cli_config import ManagerConfig, build_config
from common.cancellation import CancelToken
from common.errors import JarDepsError, OperationCancelledError, ProjectError
from common.http_client import HttpClient
from constants import Constants
from download.downloader import Downloader, ProgressCallback
from download.fetcher import CachedFetcher, FetchOutcome
from registry.maven.client import MavenSearchClient
from registry.maven.resolver import Resolver
from registry.maven.transitive import TransitiveFetcher, TransitiveResult
from store.cache import CleanResult, ContentCache
from store.manifest import LockEntry, ManifestEntry, ProjectManifest, utc_now_iso
from versioning.models import IndexCandidate, LATEST, Coordinate
from versioning.parser import parse_spec

logger = logging.getLogger(__name__)


@dataclass
class AddResult:
    entry: ManifestEntry
    outcome: FetchOutcome
    warnings: List[str] = field(default_factory=list)


@dataclass
class ValidationReport:
    valid: bool
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


@dataclass
class DependencyStats:
    total: int
    size_bytes: int
    unique_artifacts: int
    version_conflicts: int

    @property
    def average_size(self) -> float:
        return self.size_bytes / self.total if self.total else 0.0


def format_file_size(size: float) -> str:
    """Human readable size, e.g. ``1.5 KB``."""
    if size <= 0:
        return "0 Bytes"
    units = ["Bytes", "KB", "MB", "GB"]
    index = 0
    value = float(size)
    while value >= 1024 and index < len(units) - 1:
        value /= 1024
        index += 1
    return f"{round(value, 2):g} {units[index]}"


class DependencyManager:
    """Manage the jar dependencies of one project directory."""

    def __init__(
        self,
        project_dir: Path,
        config: Optional[ManagerConfig] = None,
        http: Optional[HttpClient] = None,
        progress: Optional[ProgressCallback] = None,
    ):
        """Initialize the manager and its components.

        Args:
            project_dir: Project root holding the manifest and ``libs/``.
            config: Explicit configuration; defaults plus environment when omitted.
            http: Shared HTTP client, created from ``config`` when omitted.
            progress: Optional download progress callback.
        """
        self.project_dir = Path(project_dir)
        self.config = config or build_config()
        self.http = http or HttpClient(self.config.timeout, self.config.user_agent)
        self.client = MavenSearchClient(self.config, self.http)
        self.resolver = Resolver(self.config, self.client)
        self.cache = ContentCache(self.config)
        self.fetcher = CachedFetcher(self.cache, Downloader(self.config, self.http), progress)
        self.manifest = ProjectManifest(self.project_dir, self.config)
        self.detector = ConflictDetector(self.config.incompatible_artifacts)
        self.updates = UpdateChecker(self.resolver)
        self.transitive = TransitiveFetcher(self.config, self.resolver, self.http, self.fetcher)

    async def __aenter__(self) -> "DependencyManager":
        await self.http.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.http.stop()

    @property
    def libs_dir(self) -> Path:
        return self.manifest.libs_dir

    def _require_project(self) -> None:
        if not self.project_dir.is_dir():
            raise ProjectError(f"Project directory does not exist: {self.project_dir}")

    def installed_files(self) -> List[str]:
        """Names of the jar files present in ``libs/``."""
        if not self.libs_dir.is_dir():
            return []
        jars = self.libs_dir.glob(f"*{Constants.JAR_EXTENSION}")
        return sorted(p.name for p in jars if p.is_file())

    async def _record(self, outcome: FetchOutcome) -> ManifestEntry:
        assert outcome.path is not None
        coordinate = outcome.coordinate
        entry = ManifestEntry(
            group_id=coordinate.group_id,
            artifact_id=coordinate.artifact_id,
            version=coordinate.version,
            name=coordinate.artifact_id,
            path=outcome.path.relative_to(self.project_dir).as_posix(),
            added=utc_now_iso(),
        )
        await self.manifest.add(entry)
        return entry

    async def _install(
        self, coordinate: Coordinate, token: Optional[CancelToken], analyze: bool = True
    ) -> AddResult:
        artifact = await self.resolver.resolve(coordinate, token=token)
        outcome = await self.fetcher.fetch(artifact, self.libs_dir, token=token)
        entry = await self._record(outcome)
        logger.info("Dependency %s added successfully", entry.name)
        if not analyze:
            return AddResult(entry=entry, outcome=outcome)
        report = self.detector.analyze(self.installed_files())
        return AddResult(entry=entry, outcome=outcome, warnings=report.warnings)

    async def add_dependency(self, spec: str, token: Optional[CancelToken] = None) -> AddResult:
        """Resolve, download and record a dependency.

        Raises:
            InvalidSpecError: For a malformed ``spec``.
            ProjectError: When the project directory does not exist.
            NotFoundError: When the index has no match.
            DownloadError: When the artifact cannot be downloaded.
        """
        coordinate = parse_spec(spec)
        self._require_project()
        return await self._install(coordinate, token)

    async def remove_dependency(self, spec: str) -> bool:
        """Delete the installed file(s) and manifest entry matching ``spec``."""
        coordinate = parse_spec(spec)
        removed = False
        for entry in self.manifest.list():
            if entry.artifact_id != coordinate.artifact_id:
                continue
            if coordinate.group_id and entry.group_id != coordinate.group_id:
                continue
            if coordinate.version != LATEST and entry.version != coordinate.version:
                continue
            if entry.path:
                installed = self.project_dir / entry.path
                if installed.is_file():
                    installed.unlink()
                    removed = True
            removed = await self.manifest.remove(entry.group_id, entry.artifact_id) or removed
        if coordinate.version != LATEST:
            guess = self.libs_dir / f"{coordinate.artifact_id}-{coordinate.version}{Constants.JAR_EXTENSION}"
            if guess.is_file():
                guess.unlink()
                removed = True
        if removed:
            logger.info("Dependency %s removed successfully", coordinate.artifact_id)
        else:
            logger.warning("Dependency %s is not installed", spec)
        return removed

    def list_dependencies(self) -> List[ManifestEntry]:
        return self.manifest.list()

    async def check_updates(self, token: Optional[CancelToken] = None) -> List[UpdateInfo]:
        return await self.updates.check_updates(self.manifest.list(), token=token)

    async def update_dependencies(self, token: Optional[CancelToken] = None) -> List[FetchOutcome]:
        """Install the latest version of every outdated dependency."""
        self._require_project()
        entries = {e.identity: e for e in self.manifest.list()}
        outcomes: List[FetchOutcome] = []
        for info in await self.check_updates(token=token):
            if info.error or not info.update_available or not info.latest:
                continue
            coordinate = Coordinate(
                artifact_id=info.artifact_id, version=info.latest, group_id=info.group_id
            )
            try:
                result = await self._install(coordinate, token, analyze=False)
            except OperationCancelledError:
                raise
            except JarDepsError as e:
                logger.error("Failed to update %s: %s", info.name, e)
                outcomes.append(FetchOutcome(coordinate=coordinate, success=False, error=str(e)))
                continue
            old = entries.get((info.group_id, info.artifact_id))
            if old is not None and old.path and old.path != result.entry.path:
                old_file = self.project_dir / old.path
                if old_file.is_file():
                    old_file.unlink()
            outcomes.append(result.outcome)
        updated = sum(1 for o in outcomes if o.success)
        logger.info("Updated %d of %d dependencies", updated, len(outcomes))
        return outcomes

    def check_conflicts(self) -> ConflictReport:
        """Analyze the jar files in ``libs/``, which may hold versions the manifest replaced."""
        return self.detector.analyze(self.installed_files())

    def validate(self) -> ValidationReport:
        """Check installed files exist, are non-empty and not oversized."""
        entries = self.manifest.list()
        report = ValidationReport(valid=True)
        for entry in entries:
            installed = self.project_dir / entry.path if entry.path else None
            if installed is None or not installed.is_file():
                report.errors.append(f"Dependency file not found: {entry.name}")
                continue
            size = installed.stat().st_size
            if size == 0:
                report.errors.append(f"Dependency file is empty: {entry.name}")
            elif size > Constants.LARGE_ARTIFACT_BYTES:
                report.warnings.append(
                    f"Dependency file is very large: {entry.name} ({format_file_size(size)})"
                )
        report.warnings.extend(self.detector.analyze(self.installed_files()).warnings)
        report.valid = not report.errors
        return report

    def stats(self) -> DependencyStats:
        entries = self.manifest.list()
        total_size = 0
        artifacts = set()
        for entry in entries:
            installed = self.project_dir / entry.path if entry.path else None
            if installed is None or not installed.is_file():
                continue
            total_size += installed.stat().st_size
            artifacts.add(entry.artifact_id)
        return DependencyStats(
            total=len(entries),
            size_bytes=total_size,
            unique_artifacts=len(artifacts),
            version_conflicts=len(self.detector.detect_conflicts(self.installed_files())),
        )

    async def search(
        self, query: str, limit: int = 20, token: Optional[CancelToken] = None
    ) -> List[IndexCandidate]:
        return await self.client.search(query, limit=limit, token=token)

    def export_dependencies(self, path: Path) -> int:
        return self.manifest.export(path)

    async def import_dependencies(
        self, path: Path, overwrite: bool = True, token: Optional[CancelToken] = None
    ) -> List[FetchOutcome]:
        """Install every dependency listed in an export file.

        Raises:
            ImportFormatError: When the file is unreadable or malformed.
        """
        self._require_project()
        outcomes: List[FetchOutcome] = []
        for coordinate in self.manifest.import_(path, overwrite=overwrite):
            try:
                outcomes.append((await self._install(coordinate, token)).outcome)
            except OperationCancelledError:
                raise
            except JarDepsError as e:
                logger.error("Failed to import %s: %s", coordinate, e)
                outcomes.append(FetchOutcome(coordinate=coordinate, success=False, error=str(e)))
        imported = sum(1 for o in outcomes if o.success)
        logger.info("Imported %d of %d dependencies", imported, len(outcomes))
        return outcomes

    def write_lock_file(self) -> List[LockEntry]:
        return self.manifest.write_lock()

    async def fetch_with_transitives(
        self, spec: str, token: Optional[CancelToken] = None
    ) -> TransitiveResult:
        """Install ``spec`` and the dependencies its POM declares."""
        coordinate = parse_spec(spec)
        self._require_project()
        result = await self.transitive.fetch_with_transitives(coordinate, self.libs_dir, token=token)
        for outcome in result.outcomes:
            if not outcome.success or outcome.path is None:
                continue
            await self._record(outcome)
        return result

    def clean_cache(self) -> CleanResult:
        return self.cache.clean()

    @staticmethod
    def format_file_size(size: float) -> str:
        return format_file_size(size)
