"""Extraction of declared dependencies from artifact descriptors."""
from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from abc import ABC, abstractmethod
from typing import List, Optional

from versioning.models import LATEST, Coordinate

logger = logging.getLogger(__name__)

POM_NS = "{http://maven.apache.org/POM/4.0.0}"


class DescriptorParser(ABC):
    """Interface for reading the dependencies an artifact declares."""

    @abstractmethod
    def extract_declared_dependencies(self, document: str) -> List[Coordinate]:
        """Return the top-level dependencies declared in ``document``."""


def _child_text(node: ET.Element, tag: str, ns: str) -> Optional[str]:
    child = node.find(f"{ns}{tag}")
    if child is None or child.text is None:
        return None
    text = child.text.strip()
    return text or None


class PomDescriptorParser(DescriptorParser):
    """Read ``<project><dependencies>`` from a POM.

    Only the project's own dependency list is read: ``dependencyManagement``,
    profiles and plugins are ignored, parents are not followed and
    ``${...}`` properties are not interpolated. Versions that are missing or
    still contain a property reference become ``latest``.
    """

    def __init__(self, include_scopes: Optional[List[str]] = None):
        # test/provided/system artifacts are not needed at runtime
        self._include_scopes = include_scopes or ["compile", "runtime"]

    def extract_declared_dependencies(self, document: str) -> List[Coordinate]:
        try:
            root = ET.fromstring(document)
        except ET.ParseError as e:
            logger.warning("Couldn't parse POM descriptor: %s", e)
            return []

        ns = POM_NS if root.tag.startswith(POM_NS) else ""
        dependencies = root.find(f"{ns}dependencies")
        if dependencies is None:
            return []

        out: List[Coordinate] = []
        for dependency in dependencies.findall(f"{ns}dependency"):
            group = _child_text(dependency, "groupId", ns)
            artifact = _child_text(dependency, "artifactId", ns)
            if not group or not artifact:
                continue
            scope = _child_text(dependency, "scope", ns) or "compile"
            if scope not in self._include_scopes:
                continue
            if (_child_text(dependency, "optional", ns) or "").lower() == "true":
                continue
            version = _child_text(dependency, "version", ns)
            if not version or "${" in version:
                version = LATEST
            out.append(
                Coordinate(
                    artifact_id=artifact,
                    version=version,
                    group_id=group,
                    classifier=_child_text(dependency, "classifier", ns),
                )
            )
        return out
