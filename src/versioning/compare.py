"""Naive version comparison.

Versions are split on ``.`` and ``-``; components compare numerically when
both are digits and lexicographically otherwise. No qualifier ordering
(``-SNAPSHOT``, ``-rc1``) is attempted.
"""

import re
from typing import List, Union

_SEPARATORS = re.compile(r"[.-]")


def _components(version: str) -> List[Union[int, str]]:
    out: List[Union[int, str]] = []
    for part in _SEPARATORS.split(version.strip()):
        out.append(int(part) if part.isdigit() else part)
    return out


def compare_versions(left: str, right: str) -> int:
    """Return -1, 0 or 1 as ``left`` is older, equal or newer than ``right``."""
    a, b = _components(left), _components(right)
    for x, y in zip(a, b):
        if x == y:
            continue
        if isinstance(x, int) and isinstance(y, int):
            return -1 if x < y else 1
        return -1 if str(x) < str(y) else 1
    if len(a) == len(b):
        return 0
    return -1 if len(a) < len(b) else 1


def is_newer(candidate: str, current: str) -> bool:
    return compare_versions(candidate, current) > 0
