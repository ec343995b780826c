"""Version conflict and known incompatibility detection over installed artifacts."""
from __future__ import annotations

import logging
import warnings
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional, Set, Tuple, Union

from common.errors import ConflictWarning, IncompatibilityWarning
from constants import Constants
from store.manifest import ManifestEntry
from versioning.parser import artifact_name_from_filename, version_from_filename

logger = logging.getLogger(__name__)

Installed = Union[str, ManifestEntry]


@dataclass
class ConflictRecord:
    """One artifact installed in several versions."""

    artifact_name: str
    versions: Set[str]
    files: List[str]


@dataclass
class IncompatibilityRecord:
    dependency: str
    conflicts_with: List[str]


@dataclass
class ConflictReport:
    """Combined result of all checks; warnings never flip ``valid``."""

    conflicts: List[ConflictRecord] = field(default_factory=list)
    incompatibilities: List[IncompatibilityRecord] = field(default_factory=list)
    cycles: List[List[str]] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    valid: bool = True


def _describe(item: Installed) -> Tuple[str, Optional[str], str]:
    """Return ``(normalized name, version, file)`` for a file name or entry."""
    if isinstance(item, ManifestEntry):
        name = item.artifact_id or item.name
        return name.lower(), item.version or None, item.path or name
    return artifact_name_from_filename(item).lower(), version_from_filename(item), item


class ConflictDetector:
    """Checks over a snapshot of installed artifacts."""

    def __init__(self, incompatible: Optional[Mapping[str, List[str]]] = None):
        """Initialize the detector.

        Args:
            incompatible: Artifact name to names it must not be installed
                with. Defaults to ``Constants.INCOMPATIBLE_ARTIFACTS``.
        """
        table = incompatible if incompatible is not None else Constants.INCOMPATIBLE_ARTIFACTS
        self._incompatible: Dict[str, List[str]] = {
            k.lower(): [v.lower() for v in vs] for k, vs in table.items()
        }

    def detect_conflicts(self, entries: Iterable[Installed]) -> List[ConflictRecord]:
        """Group entries by artifact name and report names with several versions."""
        grouped: "OrderedDict[str, ConflictRecord]" = OrderedDict()
        for item in entries:
            name, version, file_name = _describe(item)
            record = grouped.setdefault(name, ConflictRecord(name, set(), []))
            if version:
                record.versions.add(version)
            record.files.append(file_name)
        return [r for r in grouped.values() if len(r.versions) > 1]

    def check_incompatibilities(self, entries: Iterable[Installed]) -> List[IncompatibilityRecord]:
        """Report installed artifacts that appear in the incompatibility table."""
        names = {_describe(item)[0] for item in entries}
        out = []
        for dependency, others in self._incompatible.items():
            if dependency not in names:
                continue
            present = [o for o in others if o in names]
            if present:
                out.append(IncompatibilityRecord(dependency, present))
        return out

    def check_circular(self, entries: Iterable[Installed]) -> List[List[str]]:
        """Always empty: installed jars carry no dependency edges to walk."""
        return []

    def analyze(self, entries: Iterable[Installed]) -> ConflictReport:
        """Run every check and collect human readable warnings."""
        items = list(entries)
        report = ConflictReport(
            conflicts=self.detect_conflicts(items),
            incompatibilities=self.check_incompatibilities(items),
            cycles=self.check_circular(items),
        )
        for conflict in report.conflicts:
            message = (
                f"Version conflict detected for {conflict.artifact_name}: "
                f"{', '.join(sorted(conflict.versions))}"
            )
            report.warnings.append(message)
            warnings.warn(message, ConflictWarning, stacklevel=2)
        for record in report.incompatibilities:
            message = (
                f"{record.dependency} is incompatible with {', '.join(record.conflicts_with)}"
            )
            report.warnings.append(message)
            warnings.warn(message, IncompatibilityWarning, stacklevel=2)
        report.valid = not report.cycles
        logger.debug(
            "Conflict analysis: %d conflicts, %d incompatibilities",
            len(report.conflicts),
            len(report.incompatibilities),
        )
        return report
