"""Tests for conflict and incompatibility detection."""

import pytest

from analysis.conflicts import ConflictDetector
from common.errors import ConflictWarning, IncompatibilityWarning, JarDepsWarning
from store.manifest import ManifestEntry


def _entry(artifact, version):
    return ManifestEntry("g", artifact, version, artifact, f"libs/{artifact}-{version}.jar")


class TestDetectConflicts:
    """Tests for duplicate version detection."""

    def test_two_versions_of_one_artifact(self):
        """foo-1.0.0 and foo-2.0.0 form one conflict."""
        conflicts = ConflictDetector().detect_conflicts(
            ["foo-1.0.0.jar", "foo-2.0.0.jar", "bar-3.1.0.jar"]
        )

        assert len(conflicts) == 1
        assert conflicts[0].artifact_name == "foo"
        assert conflicts[0].versions == {"1.0.0", "2.0.0"}
        assert conflicts[0].files == ["foo-1.0.0.jar", "foo-2.0.0.jar"]

    def test_same_version_twice_is_not_a_conflict(self):
        """Multiple files with one version are fine."""
        assert ConflictDetector().detect_conflicts(["foo-1.0.0.jar", "libs/foo-1.0.0.jar"]) == []

    def test_manifest_entries(self):
        """ManifestEntry values are grouped by artifact id."""
        conflicts = ConflictDetector().detect_conflicts(
            [_entry("gson", "2.8.9"), _entry("gson", "2.10.1"), _entry("junit", "4.13.2")]
        )
        assert [c.artifact_name for c in conflicts] == ["gson"]

    def test_names_are_case_insensitive(self):
        """Artifact names are normalized before grouping."""
        conflicts = ConflictDetector().detect_conflicts(["Foo-1.0.0.jar", "foo-1.1.0.jar"])
        assert len(conflicts) == 1


class TestIncompatibilities:
    """Tests for the known incompatible pairs."""

    def test_gson_with_json_simple(self):
        """gson and json-simple together are reported."""
        records = ConflictDetector().check_incompatibilities(
            ["gson-2.8.9.jar", "json-simple-1.1.1.jar"]
        )
        assert len(records) == 1
        assert records[0].dependency == "gson"
        assert records[0].conflicts_with == ["json-simple"]

    def test_single_side_is_fine(self):
        """Only one member of a pair is not reported."""
        assert ConflictDetector().check_incompatibilities(["okhttp-4.9.3.jar"]) == []

    def test_custom_table(self):
        """The table can be replaced through configuration."""
        detector = ConflictDetector({"log4j": ["logback-classic"]})
        records = detector.check_incompatibilities([_entry("log4j", "1.2.17"), _entry("logback-classic", "1.2.11")])
        assert records[0].conflicts_with == ["logback-classic"]
        assert detector.check_incompatibilities(["gson-2.8.9.jar", "json-simple-1.1.1.jar"]) == []


class TestAnalyze:
    """Tests for the combined report."""

    def test_circular_check_is_empty(self):
        """The circular dependency check always returns nothing."""
        assert ConflictDetector().check_circular(["a-1.0.0.jar", "b-1.0.0.jar"]) == []

    def test_warnings_do_not_invalidate(self):
        """Conflicts and incompatibilities are warnings only."""
        files = ["foo-1.0.0.jar", "foo-2.0.0.jar", "retrofit-2.9.0.jar", "volley-1.2.1.jar"]

        with pytest.warns(JarDepsWarning) as record:
            report = ConflictDetector().analyze(files)

        categories = {w.category for w in record}
        assert {ConflictWarning, IncompatibilityWarning} <= categories

        assert report.valid is True
        assert len(report.conflicts) == 1
        assert len(report.incompatibilities) == 1
        assert report.cycles == []
        assert report.warnings == [
            "Version conflict detected for foo: 1.0.0, 2.0.0",
            "retrofit is incompatible with volley",
        ]

    def test_clean_report(self):
        """No findings means no warnings."""
        report = ConflictDetector().analyze(["foo-1.0.0.jar"])
        assert report.warnings == []
        assert report.valid is True
