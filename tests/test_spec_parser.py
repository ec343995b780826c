"""Tests for dependency reference parsing and filename heuristics."""

import pytest

from common.errors import InvalidSpecError
from versioning.compare import compare_versions, is_newer
from versioning.models import LATEST, Coordinate
from versioning.parser import artifact_name_from_filename, parse_spec, version_from_filename


class TestParseSpec:
    """Tests for parse_spec."""

    def test_artifact_only_means_latest(self):
        """A bare artifact id resolves to the latest version."""
        coordinate = parse_spec("gson")
        assert coordinate == Coordinate(artifact_id="gson", version=LATEST)
        assert coordinate.group_id is None

    def test_artifact_and_version(self):
        """Two fields are artifact and version."""
        coordinate = parse_spec("gson:2.8.9")
        assert coordinate.artifact_id == "gson"
        assert coordinate.version == "2.8.9"
        assert coordinate.group_id is None

    def test_full_coordinate(self):
        """Three fields are group, artifact and version."""
        coordinate = parse_spec("com.google.code.gson:gson:2.8.9")
        assert coordinate.group_id == "com.google.code.gson"
        assert coordinate.artifact_id == "gson"
        assert coordinate.version == "2.8.9"
        assert coordinate.classifier is None

    def test_classifier(self):
        """A fourth field is the classifier."""
        coordinate = parse_spec("org.lwjgl:lwjgl:3.3.1:natives-linux")
        assert coordinate.classifier == "natives-linux"
        assert str(coordinate) == "org.lwjgl:lwjgl:3.3.1:natives-linux"

    def test_whitespace_is_stripped(self):
        """Surrounding whitespace does not end up in the fields."""
        coordinate = parse_spec("  junit:junit:4.13.2 \n")
        assert coordinate.key == "junit:junit:4.13.2"

    def test_empty_version_means_latest(self):
        """A trailing colon without version falls back to latest."""
        assert parse_spec("gson:").version == LATEST

    @pytest.mark.parametrize("spec", ["", "   ", ":2.0", ":gson:1.0"])
    def test_empty_first_field_rejected(self, spec):
        """An empty first field raises InvalidSpecError."""
        with pytest.raises(InvalidSpecError):
            parse_spec(spec)

    def test_empty_artifact_in_full_form_rejected(self):
        """group::version has no artifact."""
        with pytest.raises(InvalidSpecError):
            parse_spec("com.example::1.0")

    def test_key_format(self):
        """The normalized key is groupId:artifactId:version."""
        assert parse_spec("g:a:1.0").key == "g:a:1.0"
        assert parse_spec("a:1.0").key == ":a:1.0"

    def test_is_resolved(self):
        """Only coordinates with a group and concrete version count as resolved."""
        assert parse_spec("g:a:1.0").is_resolved
        assert not parse_spec("a:1.0").is_resolved
        assert not parse_spec("g:a:latest").is_resolved


class TestFilenameHeuristics:
    """Tests for name/version extraction from jar file names."""

    @pytest.mark.parametrize(
        "filename,name,version",
        [
            ("foo-1.2.3.jar", "foo", "1.2.3"),
            ("guava-31.1-jre.jar", "guava-31.1-jre", None),
            ("guava-32.1.2-jre.jar", "guava", "32.1.2-jre"),
            ("spring-core-5.3.20.RELEASE.jar", "spring-core", "5.3.20.RELEASE"),
            ("commons-lang3-3.12.0.jar", "commons-lang3", "3.12.0"),
            ("plain.jar", "plain", None),
        ],
    )
    def test_name_and_version(self, filename, name, version):
        """Name and version are split at the first x.y.z version."""
        assert artifact_name_from_filename(filename) == name
        assert version_from_filename(filename) == version

    def test_jar_extension_not_in_version(self):
        """The .jar suffix never leaks into the captured version."""
        assert version_from_filename("libs/foo-2.0.0.jar") == "2.0.0"


class TestCompareVersions:
    """Tests for the naive component comparison."""

    def test_numeric_components(self):
        """Numeric parts compare as numbers, not strings."""
        assert compare_versions("1.10.0", "1.9.0") == 1
        assert compare_versions("1.2.0", "1.2.0") == 0
        assert compare_versions("1.0", "1.0.1") == -1

    def test_dash_separates_components(self):
        """Dashes split components like dots."""
        assert is_newer("2.0-2", "2.0-1")

    def test_qualifiers_compare_lexicographically(self):
        """Mixed parts fall back to string order."""
        assert compare_versions("1.0-beta", "1.0-alpha") == 1
