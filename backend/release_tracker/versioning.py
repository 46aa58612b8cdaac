"""Version string parsing, ordering and drift classification.

A plan version is a dotted sequence of non-negative integers: three
segments for a Release (``25.8.2``), four for a Patch (``25.8.1.1``).
The first two segments form the version line (``25.8``).
"""

import re
from typing import Optional, Tuple

from .errors import InvalidVersion, ValidationError

COMPARABLE_VERSION_RE = re.compile(r"^\d+(?:\.\d+){1,3}$")
PLAN_VERSION_RE = re.compile(r"^\d+(?:\.\d+){2,3}$")
VERSION_LINE_RE = re.compile(r"^\d+\.\d+$")

PLAN_TYPE_RELEASE = "Release"
PLAN_TYPE_PATCH = "Patch"
SEGMENTS_BY_PLAN_TYPE = {PLAN_TYPE_RELEASE: 3, PLAN_TYPE_PATCH: 4}

DRIFT_ALIGNED = "aligned"
DRIFT_BEHIND_ONE = "behind_one"
DRIFT_BEHIND_MANY = "behind_many"
DRIFT_AHEAD = "ahead"
DRIFT_CHOICES = (DRIFT_ALIGNED, DRIFT_BEHIND_ONE, DRIFT_BEHIND_MANY, DRIFT_AHEAD)


def parse_version(value: str) -> Tuple[int, ...]:
    raw = str(value or "").strip()
    if not COMPARABLE_VERSION_RE.match(raw):
        raise InvalidVersion(value)
    return tuple(int(part) for part in raw.split("."))


def _segment(segments: Tuple[int, ...], index: int) -> int:
    return segments[index] if index < len(segments) else 0


def compare_versions(a: str, b: str) -> int:
    """Return -1, 0 or 1; missing trailing segments count as zero."""
    seg_a = parse_version(a)
    seg_b = parse_version(b)
    for index in range(max(len(seg_a), len(seg_b))):
        num_a = _segment(seg_a, index)
        num_b = _segment(seg_b, index)
        if num_a != num_b:
            return -1 if num_a < num_b else 1
    return 0


def version_sort_key(value: str) -> Tuple[int, int, int, int]:
    segments = parse_version(value)
    return tuple(_segment(segments, index) for index in range(4))


def version_line(value: str) -> str:
    segments = parse_version(value)
    return f"{segments[0]}.{segments[1]}"


def plan_type_for(value: str) -> str:
    segments = parse_version(value)
    return PLAN_TYPE_PATCH if len(segments) == 4 else PLAN_TYPE_RELEASE


def validate_plan_version(value: str, plan_type: Optional[str] = None) -> str:
    raw = str(value or "").strip()
    if not PLAN_VERSION_RE.match(raw):
        raise InvalidVersion(value)
    if plan_type is not None:
        expected = SEGMENTS_BY_PLAN_TYPE.get(plan_type)
        if expected is None:
            raise ValidationError(f"invalid plan type: {plan_type!r}")
        if len(raw.split(".")) != expected:
            raise ValidationError(f"{plan_type} versions must have {expected} segments")
    return raw


def validate_version_line(value: str) -> str:
    raw = str(value or "").strip()
    if not VERSION_LINE_RE.match(raw):
        raise ValidationError(f"invalid version line: {value!r}")
    return raw


def classify_drift(current: str, baseline: str) -> str:
    """Classify how far ``current`` is from ``baseline``.

    Only the first three segments feed the one/many threshold; a fourth
    (patch-chain) segment decides ordering but never the distance.
    """
    diff = compare_versions(current, baseline)
    if diff == 0:
        return DRIFT_ALIGNED
    if diff > 0:
        return DRIFT_AHEAD

    current_segs = parse_version(current)
    baseline_segs = parse_version(baseline)
    if current_segs[:2] != baseline_segs[:2]:
        return DRIFT_BEHIND_MANY

    patch_diff = abs(_segment(baseline_segs, 2) - _segment(current_segs, 2))
    return DRIFT_BEHIND_ONE if patch_diff <= 1 else DRIFT_BEHIND_MANY
