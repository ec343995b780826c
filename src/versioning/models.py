"""Data models for dependency references and resolved artifacts."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from common.errors import InvalidSpecError

# Sentinel version meaning "whatever the index reports as newest".
LATEST = "latest"


@dataclass(frozen=True)
class Coordinate:
    """A possibly partial Maven coordinate.

    ``version`` is ``LATEST`` until resolution fills in a concrete value.
    """

    artifact_id: str
    version: str = LATEST
    group_id: Optional[str] = None
    classifier: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.artifact_id:
            raise InvalidSpecError(str(self.artifact_id), "empty artifact field")

    @property
    def key(self) -> str:
        """Normalized ``groupId:artifactId:version`` string."""
        return f"{self.group_id or ''}:{self.artifact_id}:{self.version}"

    @property
    def is_resolved(self) -> bool:
        return self.group_id is not None and self.version != LATEST

    def __str__(self) -> str:
        parts = [p for p in (self.group_id, self.artifact_id, self.version, self.classifier) if p]
        return ":".join(parts)


@dataclass(frozen=True)
class IndexCandidate:
    """One document returned by the package index."""

    group_id: str
    artifact_id: str
    latest_version: str
    packaging: str = "jar"
    description: str = ""
    timestamp: int = 0


@dataclass(frozen=True)
class ResolvedArtifact:
    """A fully determined artifact and where to download it from."""

    coordinate: Coordinate
    download_url: str
    packaging: str = "jar"
    description: str = ""

    def __post_init__(self) -> None:
        if not self.coordinate.is_resolved:
            raise ValueError(f"ResolvedArtifact requires a concrete coordinate, got {self.coordinate}")

    @property
    def group_id(self) -> str:
        return self.coordinate.group_id or ""

    @property
    def artifact_id(self) -> str:
        return self.coordinate.artifact_id

    @property
    def version(self) -> str:
        return self.coordinate.version

    @property
    def file_name(self) -> str:
        """Name of the artifact file as published in the repository."""
        return self.download_url.rsplit("/", 1)[-1]

    @property
    def checksum_url(self) -> str:
        """Location of the published ``.sha1`` sidecar."""
        return f"{self.download_url}.sha1"

    @property
    def pom_url(self) -> str:
        """Location of the artifact's POM descriptor."""
        base = self.download_url.rsplit("/", 1)[0]
        return f"{base}/{self.artifact_id}-{self.version}.pom"
