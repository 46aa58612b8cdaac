"""Read-side alignment statistics for the dashboard and region views.

Everything here works on plain mappings so it can be exercised without a
database: the service layer materialises rows and an ``AlignmentConfig``
and hands them in.
"""

import json
import math
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from .errors import ValidationError
from .versioning import DRIFT_CHOICES, classify_drift, validate_version_line, version_line

ACTIVE_VERSION_LINES_KEY = "active_version_lines"
BASELINE_KEY_PREFIX = "baseline_"

PLAN_STATUS_COUNTED = ("draft", "testing", "ready", "released")


def baseline_key(line: str) -> str:
    return f"{BASELINE_KEY_PREFIX}{line}"


def parse_active_version_lines(raw: str) -> Tuple[str, ...]:
    try:
        value = json.loads(raw)
    except (TypeError, json.JSONDecodeError):
        raise ValidationError(f"{ACTIVE_VERSION_LINES_KEY} must be a JSON array")
    if not isinstance(value, list):
        raise ValidationError(f"{ACTIVE_VERSION_LINES_KEY} must be a JSON array")
    if not all(isinstance(item, str) for item in value):
        raise ValidationError(f"{ACTIVE_VERSION_LINES_KEY} items must be strings")
    return tuple(validate_version_line(item) for item in value)


@dataclass(frozen=True)
class AlignmentConfig:
    active_version_lines: Tuple[str, ...] = ()
    baselines: Mapping[str, str] = field(default_factory=dict)

    @classmethod
    def from_entries(cls, entries: Mapping[str, str]) -> "AlignmentConfig":
        raw_lines = entries.get(ACTIVE_VERSION_LINES_KEY)
        lines = parse_active_version_lines(raw_lines) if raw_lines else ()
        baselines = {}
        for line in lines:
            value = entries.get(baseline_key(line))
            if value:
                baselines[line] = value
        return cls(active_version_lines=lines, baselines=baselines)

    def baseline_for(self, line: str) -> Optional[str]:
        return self.baselines.get(line)


def percent(numerator: int, denominator: int) -> int:
    if denominator <= 0:
        return 0
    # Half-up rounding, not Python's banker's rounding.
    return int(math.floor(numerator * 100 / denominator + 0.5))


def region_drift(current_version: Optional[str], config: AlignmentConfig) -> Optional[str]:
    """Four-way drift of a pinned version against its line's baseline, if any."""
    if not current_version:
        return None
    baseline = config.baseline_for(version_line(current_version))
    if not baseline:
        return None
    return classify_drift(current_version, baseline)


def _line_stats(
    line: str,
    baseline_plan: Mapping[str, Any],
    pins_on_line: List[Tuple[Mapping[str, Any], Mapping[str, Any]]],
    region_total: int,
) -> Dict[str, Any]:
    total = len(pins_on_line)
    at_baseline = sum(1 for pin, _plan in pins_on_line if pin["plan_id"] == baseline_plan["id"])
    drift_counts = {name: 0 for name in DRIFT_CHOICES}
    for _pin, plan in pins_on_line:
        drift_counts[classify_drift(plan["version"], baseline_plan["version"])] += 1
    return {
        "version_line": line,
        "baseline": baseline_plan["version"],
        "baseline_plan_id": baseline_plan["id"],
        "total_regions": total,
        "at_baseline": at_baseline,
        "behind_baseline": total - at_baseline,
        "alignment_rate": percent(at_baseline, total),
        "coverage": percent(total, region_total),
        "drift_counts": drift_counts,
    }


def compute_alignment(
    plans: Iterable[Mapping[str, Any]],
    regions: Iterable[Mapping[str, Any]],
    region_versions: Iterable[Mapping[str, Any]],
    config: AlignmentConfig,
) -> Dict[str, Any]:
    """Aggregate per-line and overall alignment.

    A region counts as at baseline only when pinned to the exact baseline
    plan; every other pin on the line is behind. Lines without a configured
    baseline, or whose baseline version has no plan, are skipped.
    """
    plans = list(plans)
    plans_by_id = {plan["id"]: plan for plan in plans}
    plans_by_version = {plan["version"]: plan for plan in plans}
    region_total = len(list(regions))

    pins_by_line: Dict[str, List[Tuple[Mapping[str, Any], Mapping[str, Any]]]] = {}
    for pin in region_versions:
        plan = plans_by_id.get(pin["plan_id"])
        if plan is None:
            continue
        pins_by_line.setdefault(plan["version_line"], []).append((pin, plan))

    line_stats = []
    for line in config.active_version_lines:
        baseline_version = config.baseline_for(line)
        if not baseline_version:
            continue
        baseline_plan = plans_by_version.get(baseline_version)
        if baseline_plan is None:
            continue
        line_stats.append(_line_stats(line, baseline_plan, pins_by_line.get(line, []), region_total))

    total_aligned = sum(entry["at_baseline"] for entry in line_stats)
    status_counts = {status: 0 for status in PLAN_STATUS_COUNTED}
    for plan in plans:
        if plan.get("status") in status_counts:
            status_counts[plan["status"]] += 1
    return {
        "stats": {
            "total_plans": len(plans),
            "draft_plans": status_counts["draft"],
            "testing_plans": status_counts["testing"],
            "ready_plans": status_counts["ready"],
            "released_plans": status_counts["released"],
            "total_regions": region_total,
            "total_aligned_regions": total_aligned,
            "overall_alignment_rate": percent(total_aligned, region_total),
        },
        "version_lines": line_stats,
    }
