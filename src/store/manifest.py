"""Per-project record of installed artifacts.

Files inside the project directory (names configurable)::

    dependencies.json   {"dependencies": [{groupId, artifactId, version, name, path, added}]}
    dependencies.lock   {"generated", "project", "dependencies": [{name, groupId, artifactId, version, checksum}]}
    libs/               the installed jar files

Read and write failures of the manifest and lock file are logged and the
operation goes on; they never abort a workflow. Export failures raise
``ExportError``.
"""
from __future__ import annotations

import json
import logging
import os
import tempfile
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from cli_config import ManagerConfig
from common.errors import ConfigIOError, ExportError, ImportFormatError
from common.locks import FileLock
from constants import Constants
from store.cache import file_sha256
from versioning.models import LATEST, Coordinate
from versioning.parser import artifact_name_from_filename, version_from_filename

logger = logging.getLogger(__name__)


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class ManifestEntry:
    """One installed artifact. Unique per ``(group_id, artifact_id)``."""

    group_id: Optional[str]
    artifact_id: str
    version: str
    name: str
    path: str
    added: str = ""

    @property
    def identity(self) -> tuple:
        return (self.group_id, self.artifact_id)

    @property
    def coordinate(self) -> Coordinate:
        return Coordinate(artifact_id=self.artifact_id, version=self.version or LATEST, group_id=self.group_id)

    def to_json(self) -> Dict[str, Any]:
        return {
            "groupId": self.group_id,
            "artifactId": self.artifact_id,
            "version": self.version,
            "name": self.name,
            "path": self.path,
            "added": self.added,
        }

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "ManifestEntry":
        artifact = data.get("artifactId") or data.get("name") or ""
        return cls(
            group_id=data.get("groupId"),
            artifact_id=artifact,
            version=data.get("version") or "",
            name=data.get("name") or artifact,
            path=data.get("path") or "",
            added=data.get("added") or "",
        )


@dataclass(frozen=True)
class LockEntry:
    """Point-in-time record written to the lock file."""

    name: str
    group_id: Optional[str]
    artifact_id: str
    version: str
    checksum: str

    def to_json(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "groupId": self.group_id,
            "artifactId": self.artifact_id,
            "version": self.version,
            "checksum": self.checksum,
        }


def _write_json_atomic(path: Path, payload: Dict[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            json.dump(payload, handle, indent=2)
            handle.write("\n")
        os.replace(tmp, path)
    except BaseException:
        if os.path.exists(tmp):
            os.unlink(tmp)
        raise


class ProjectManifest:
    """Read and update the manifest of one project directory."""

    def __init__(self, project_dir: Path, config: ManagerConfig):
        self.project_dir = Path(project_dir)
        self._config = config

    @property
    def manifest_path(self) -> Path:
        return self.project_dir / self._config.manifest_filename

    @property
    def lock_path(self) -> Path:
        return self.project_dir / self._config.lock_filename

    @property
    def libs_dir(self) -> Path:
        return self.project_dir / self._config.libs_dirname

    def _file_lock(self) -> FileLock:
        return FileLock(
            self.project_dir / f".{self._config.manifest_filename}.lock",
            timeout=self._config.lock_timeout,
            stale_after=self._config.stale_lock_age,
        )

    def _load(self) -> Optional[List[ManifestEntry]]:
        """Return manifest entries, or None when no manifest file exists.

        Raises:
            ConfigIOError: When the file exists but cannot be read or parsed.
        """
        if not self.manifest_path.is_file():
            return None
        try:
            with open(self.manifest_path, "r", encoding="utf-8") as handle:
                data = json.load(handle)
        except (OSError, ValueError) as e:
            raise ConfigIOError(f"Cannot read {self.manifest_path}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigIOError(f"Cannot read {self.manifest_path}: not a JSON object")
        return [
            ManifestEntry.from_json(item)
            for item in data.get("dependencies") or []
            if isinstance(item, dict) and (item.get("artifactId") or item.get("name"))
        ]

    def _load_or_empty(self) -> List[ManifestEntry]:
        try:
            return self._load() or []
        except ConfigIOError as e:
            logger.warning("%s; continuing with an empty manifest", e)
            return []

    def _save(self, entries: List[ManifestEntry]) -> None:
        try:
            _write_json_atomic(
                self.manifest_path, {"dependencies": [e.to_json() for e in entries]}
            )
        except OSError as e:
            logger.warning("%s", ConfigIOError(f"Cannot write {self.manifest_path}: {e}"))

    async def add(self, entry: ManifestEntry) -> None:
        """Insert ``entry`` or replace the entry with the same group and artifact."""
        async with self._file_lock():
            entries = self._load_or_empty()
            for index, existing in enumerate(entries):
                if existing.identity == entry.identity:
                    entries[index] = entry
                    break
            else:
                entries.append(entry)
            self._save(entries)
        logger.debug("Manifest entry recorded: %s:%s", entry.group_id, entry.artifact_id)

    async def remove(self, group_id: Optional[str], artifact_id: str) -> bool:
        """Drop the matching entry. Returns True when one was removed."""
        async with self._file_lock():
            entries = self._load_or_empty()
            kept = [e for e in entries if e.identity != (group_id, artifact_id)]
            if len(kept) == len(entries):
                return False
            self._save(kept)
        return True

    def scan_libs(self) -> List[ManifestEntry]:
        """Entries guessed from ``libs/*.jar`` file names."""
        if not self.libs_dir.is_dir():
            return []
        entries = []
        for jar in sorted(self.libs_dir.glob(f"*{Constants.JAR_EXTENSION}")):
            name = artifact_name_from_filename(jar.name)
            entries.append(
                ManifestEntry(
                    group_id=None,
                    artifact_id=name,
                    version=version_from_filename(jar.name) or "",
                    name=name,
                    path=f"{self._config.libs_dirname}/{jar.name}",
                )
            )
        return entries

    def list(self) -> List[ManifestEntry]:
        """Installed entries; falls back to ``scan_libs`` without a manifest file."""
        try:
            entries = self._load()
        except ConfigIOError as e:
            logger.warning("%s; listing no dependencies", e)
            return []
        if entries is None:
            return self.scan_libs()
        return entries

    def export(self, path: Path) -> int:
        """Write a portable copy of the manifest; returns the entry count.

        Raises:
            ExportError: When the export file cannot be written.
        """
        entries = self.list()
        payload = {
            "project": self.project_dir.resolve().name,
            "exported": utc_now_iso(),
            "dependencies": [
                {
                    "groupId": e.group_id,
                    "artifactId": e.artifact_id,
                    "version": e.version,
                    "name": e.name,
                }
                for e in entries
            ],
        }
        try:
            _write_json_atomic(Path(path), payload)
        except OSError as e:
            raise ExportError(f"Cannot write export file {path}: {e}") from e
        logger.info("Exported %d dependencies to %s", len(entries), path)
        return len(entries)

    def import_(self, path: Path, overwrite: bool = True) -> List[Coordinate]:
        """Read an export file and return the coordinates to install.

        Args:
            path: Export file.
            overwrite: When False, entries whose group and artifact are
                already in the manifest are skipped, whatever their version.

        Raises:
            ImportFormatError: When the file cannot be read or has no
                ``dependencies`` array.
        """
        try:
            with open(path, "r", encoding="utf-8") as handle:
                data = json.load(handle)
        except (OSError, ValueError) as e:
            raise ImportFormatError(f"Cannot read import file {path}: {e}") from e
        if not isinstance(data, dict) or not isinstance(data.get("dependencies"), list):
            raise ImportFormatError(f"Invalid import file format: {path}")

        existing = set()
        if not overwrite:
            existing = {e.identity for e in self.list()}

        coordinates: List[Coordinate] = []
        for item in data["dependencies"]:
            if not isinstance(item, dict) or not item.get("artifactId"):
                logger.warning("Skipping malformed import entry: %r", item)
                continue
            coordinate = Coordinate(
                artifact_id=item["artifactId"],
                version=item.get("version") or LATEST,
                group_id=item.get("groupId"),
            )
            if (coordinate.group_id, coordinate.artifact_id) in existing:
                logger.info("Skipping %s, already installed", coordinate)
                continue
            coordinates.append(coordinate)
        return coordinates

    def write_lock(self) -> List[LockEntry]:
        """Write the lock file with a SHA-256 checksum per installed file.

        The entries are returned even when the file cannot be written.
        """
        locked = []
        for entry in self.list():
            installed = self.project_dir / entry.path if entry.path else None
            if installed is not None and installed.is_file():
                checksum = file_sha256(installed)
            else:
                checksum = Constants.UNKNOWN_CHECKSUM
            locked.append(
                LockEntry(entry.name, entry.group_id, entry.artifact_id, entry.version, checksum)
            )
        payload = {
            "generated": utc_now_iso(),
            "project": self.project_dir.resolve().name,
            "dependencies": [e.to_json() for e in locked],
        }
        try:
            _write_json_atomic(self.lock_path, payload)
        except OSError as e:
            logger.warning("%s", ConfigIOError(f"Cannot write {self.lock_path}: {e}"))
            return locked
        logger.info("Created lock file with %d dependencies", len(locked))
        return locked
