from __future__ import annotations

import logging
import re
from typing import Tuple

logger = logging.getLogger(__name__)

_LEADING_DIGITS = re.compile(r"^\d+")


def strip_tag_prefix(tag: str) -> str:
    """Drop a single leading "v" from a release tag. Nothing else is normalized."""
    return tag[1:] if tag.startswith("v") else tag


def parse_version(value: str) -> Tuple[int, ...]:
    """
    Parse "major.minor.patch" into a tuple of ints, padded to three parts.

    Segments without leading digits count as 0. Date-style or otherwise
    non-semantic tags therefore compare on whatever digits they start with.
    """
    parts = []
    unparsable = False
    for segment in value.strip().split("."):
        match = _LEADING_DIGITS.match(segment)
        if match is None:
            unparsable = True
            parts.append(0)
            continue
        if match.end() != len(segment):
            unparsable = True
        parts.append(int(match.group()))
    if unparsable:
        logger.warning("Version %r is not plain major.minor.patch; unparsable segments count as 0", value)
    while len(parts) < 3:
        parts.append(0)
    return tuple(parts)


def compare_versions(a: str, b: str) -> int:
    left, right = parse_version(a), parse_version(b)
    width = max(len(left), len(right))
    left += (0,) * (width - len(left))
    right += (0,) * (width - len(right))
    if left < right:
        return -1
    if left > right:
        return 1
    return 0


def is_newer(candidate: str, current: str) -> bool:
    return compare_versions(current, candidate) < 0
