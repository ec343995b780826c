"""Dependency reference parsing utilities."""

import re
from typing import Optional

from constants import Constants
from common.errors import InvalidSpecError

from .models import LATEST, Coordinate

# "1.2.3", "2.10.1-jre", "5.0.0.RELEASE"; the trailing ".jar" is cut off first.
_VERSION_IN_FILENAME = re.compile(r"\d+\.\d+\.\d+(?:[-.][\w.-]+)?")


def parse_spec(spec: str) -> Coordinate:
    """Parse a colon separated dependency reference.

    Accepted forms::

        artifactId
        artifactId:version
        groupId:artifactId:version[:classifier]

    Args:
        spec: Human written reference, surrounding whitespace is ignored.

    Returns:
        Coordinate with ``version`` set to ``LATEST`` when none was given.

    Raises:
        InvalidSpecError: When the first field is empty.
    """
    if spec is None:
        raise InvalidSpecError("", "empty artifact field")
    raw = spec.strip()
    parts = [p.strip() for p in raw.split(":")]
    if not parts[0]:
        raise InvalidSpecError(spec, "empty artifact field")

    if len(parts) == 1:
        return Coordinate(artifact_id=parts[0])
    if len(parts) == 2:
        return Coordinate(artifact_id=parts[0], version=parts[1] or LATEST)

    group, artifact, version = parts[0], parts[1], parts[2]
    if not artifact:
        raise InvalidSpecError(spec, "empty artifact field")
    classifier = parts[3] if len(parts) > 3 and parts[3] else None
    return Coordinate(
        artifact_id=artifact,
        version=version or LATEST,
        group_id=group,
        classifier=classifier,
    )


def _strip_jar(filename: str) -> str:
    name = filename.rsplit("/", 1)[-1]
    if name.lower().endswith(Constants.JAR_EXTENSION):
        name = name[: -len(Constants.JAR_EXTENSION)]
    return name


def version_from_filename(filename: str) -> Optional[str]:
    """Return the version embedded in a jar file name, if any.

    >>> version_from_filename("foo-1.2.3.jar")
    '1.2.3'
    """
    match = _VERSION_IN_FILENAME.search(_strip_jar(filename))
    return match.group(0) if match else None


def artifact_name_from_filename(filename: str) -> str:
    """Return the artifact name of a jar file, without version and extension.

    Files without a recognizable version keep their whole stem.
    """
    stem = _strip_jar(filename)
    match = _VERSION_IN_FILENAME.search(stem)
    if not match:
        return stem
    return stem[: match.start()].rstrip("-_.") or stem
