from typing import Any, Dict, Iterable, List, Mapping

from .errors import ValidationError
from .versioning import parse_version

FRONTEND_COMPONENT = "frontend"
MISSING_VERSION = "-"

CHANGE_ADDED = "added"
CHANGE_REMOVED = "removed"
CHANGE_CHANGED = "changed"

BASIC_INFO_FIELDS = ("type", "status", "summary", "related_requirements", "related_bugs")
UNORDERED_FIELDS = {"related_requirements", "related_bugs"}


def _component_index(components: Iterable[Mapping[str, Any]], side: str) -> Dict[str, Mapping[str, Any]]:
    index: Dict[str, Mapping[str, Any]] = {}
    for idx, component in enumerate(components or []):
        if not isinstance(component, Mapping):
            raise ValidationError(f"manifest {side}: components[{idx}] must be an object")
        name = str(component.get("component_name") or "").strip()
        if not name:
            raise ValidationError(f"manifest {side}: components[{idx}].component_name is required")
        if name in index:
            raise ValidationError(f"manifest {side}: duplicate component {name}")
        parse_version(component.get("target_version"))
        index[name] = component
    return index


def diff_manifests(manifest_a: Mapping[str, Any], manifest_b: Mapping[str, Any]) -> List[Dict[str, Any]]:
    """Compare two manifests and return one changelog entry per differing item.

    The frontend entry, if any, comes first; backend components follow in
    name order. Only target versions are compared: differing change types
    or reasons alone produce no entry.
    """
    components_a = _component_index(manifest_a.get("components"), "A")
    components_b = _component_index(manifest_b.get("components"), "B")

    diff: List[Dict[str, Any]] = []
    frontend_a = manifest_a.get("frontend_version") or ""
    frontend_b = manifest_b.get("frontend_version") or ""
    if frontend_a != frontend_b:
        diff.append(
            {
                "component_name": FRONTEND_COMPONENT,
                "version_a": frontend_a or MISSING_VERSION,
                "version_b": frontend_b or MISSING_VERSION,
                "change_type": CHANGE_CHANGED,
            }
        )

    for name in sorted(set(components_a) | set(components_b)):
        comp_a = components_a.get(name)
        comp_b = components_b.get(name)
        if comp_a is None:
            diff.append(
                {
                    "component_name": name,
                    "version_a": MISSING_VERSION,
                    "version_b": comp_b["target_version"],
                    "change_type": CHANGE_ADDED,
                    "reason_b": comp_b.get("change_reason") or "",
                }
            )
        elif comp_b is None:
            diff.append(
                {
                    "component_name": name,
                    "version_a": comp_a["target_version"],
                    "version_b": MISSING_VERSION,
                    "change_type": CHANGE_REMOVED,
                    "reason_a": comp_a.get("change_reason") or "",
                }
            )
        elif comp_a["target_version"] != comp_b["target_version"]:
            diff.append(
                {
                    "component_name": name,
                    "version_a": comp_a["target_version"],
                    "version_b": comp_b["target_version"],
                    "change_type": CHANGE_CHANGED,
                    "reason_a": comp_a.get("change_reason") or "",
                    "reason_b": comp_b.get("change_reason") or "",
                }
            )
    return diff


def _same_value(field: str, value_a: Any, value_b: Any) -> bool:
    if field in UNORDERED_FIELDS:
        return set(value_a or []) == set(value_b or [])
    return value_a == value_b


def diff_basic_info(plan_a: Mapping[str, Any], plan_b: Mapping[str, Any]) -> List[Dict[str, Any]]:
    diff = []
    for field in BASIC_INFO_FIELDS:
        value_a = plan_a.get(field)
        value_b = plan_b.get(field)
        if not _same_value(field, value_a, value_b):
            diff.append({"field": field, "value_a": value_a, "value_b": value_b})
    return diff
