import json
import logging
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import IntegrityError, models, transaction
from django.utils import timezone
from jsonschema import Draft202012Validator

from . import audit
from .alignment import (
    ACTIVE_VERSION_LINES_KEY,
    BASELINE_KEY_PREFIX,
    AlignmentConfig,
    compute_alignment,
    parse_active_version_lines,
    region_drift,
)
from .catalog import REGION_AREAS, load_catalog
from .errors import ConflictError, NotFoundError, ValidationError
from .manifest_diff import diff_basic_info, diff_manifests
from .models import AuditLog, Manifest, ManifestComponent, Plan, Region, RegionVersion, SystemConfig
from .serializers import (
    AuditLogSerializer,
    ManifestSerializer,
    PlanSerializer,
    RegionSerializer,
)
from .versioning import plan_type_for, validate_plan_version, validate_version_line, version_line

logger = logging.getLogger(__name__)

SCHEMA_DIR = Path(__file__).resolve().parent / "schemas"
PLAN_STATUSES = [choice for choice, _label in Plan.STATUS_CHOICES]
PLAN_TYPES = [choice for choice, _label in Plan.TYPE_CHOICES]
MANIFEST_FIELDS = (
    "frontend_version",
    "frontend_change_type",
    "frontend_change_reason",
    "fe_be_check_status",
    "fe_be_check_message",
    "dependency_check_status",
    "dependency_check_message",
)


@lru_cache(maxsize=None)
def _load_schema(name: str) -> Dict[str, Any]:
    with open(SCHEMA_DIR / name, "r", encoding="utf-8") as handle:
        return json.load(handle)


def _validate_schema_payload(payload: Dict[str, Any], schema_name: str) -> None:
    if not isinstance(payload, dict):
        raise ValidationError("payload must be a JSON object")
    validator = Draft202012Validator(_load_schema(schema_name))
    errors = []
    for error in sorted(validator.iter_errors(payload), key=lambda e: list(e.path)):
        path = ".".join(str(p) for p in error.path) if error.path else "root"
        errors.append(f"{path}: {error.message}")
    if errors:
        raise ValidationError("; ".join(errors), errors=errors)


def _get_or_raise(queryset, label: str, **lookup):
    try:
        return queryset.get(**lookup)
    except (queryset.model.DoesNotExist, DjangoValidationError, ValueError):
        raise NotFoundError(f"{label} not found")


def _ticket_list(value: Any, field: str) -> List[str]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise ValidationError(f"{field} must be a list")
    tickets: List[str] = []
    for item in value:
        ticket = str(item or "").strip()
        if ticket and ticket not in tickets:
            tickets.append(ticket)
    return tickets


# Plans


def list_plans(
    status: Optional[str] = None,
    plan_type: Optional[str] = None,
    search: Optional[str] = None,
    include_deprecated: bool = False,
):
    qs = Plan.objects.select_related("manifest").order_by("-created_at")
    if status:
        qs = qs.filter(status=status)
    elif not include_deprecated:
        qs = qs.exclude(status="deprecated")
    if plan_type:
        qs = qs.filter(type=plan_type)
    if search:
        qs = qs.filter(models.Q(version__icontains=search) | models.Q(summary__icontains=search))
    return qs


def get_plan(plan_id: str) -> Plan:
    return _get_or_raise(Plan.objects.select_related("manifest"), "plan", id=plan_id)


def _ensure_version_available(version: str) -> None:
    if Plan.objects.filter(version=version).exists():
        raise ConflictError(f"version {version} already exists")


def _insert_plan(**fields) -> Plan:
    # A concurrent create of the same version can pass the pre-check; the unique index decides.
    try:
        with transaction.atomic():
            return Plan.objects.create(**fields)
    except IntegrityError:
        raise ConflictError(f"version {fields['version']} already exists")


def create_plan(payload: Dict[str, Any], operator: Optional[str] = None) -> Plan:
    _validate_schema_payload(payload, "plan.v1.schema.json")
    version = payload.get("version")
    plan_type = payload.get("type")
    summary = (payload.get("summary") or "").strip()
    if not version or not plan_type or not summary:
        raise ValidationError("version, type, summary required")
    version = validate_plan_version(version, plan_type)
    _ensure_version_available(version)
    related_requirements = _ticket_list(payload.get("related_requirements"), "related_requirements")
    related_bugs = _ticket_list(payload.get("related_bugs"), "related_bugs")
    manifest_payload = payload.get("manifest")

    with transaction.atomic():
        plan = _insert_plan(
            version=version,
            type=plan_type,
            status="draft",
            summary=summary,
            related_requirements=related_requirements,
            related_bugs=related_bugs,
        )
        audit.record("plan", plan.id, "create", new_value=PlanSerializer(plan).data, operator=operator)
        if manifest_payload is not None:
            _create_manifest(plan, manifest_payload, operator)
    logger.info("Created plan %s (%s)", plan.version, plan.type)
    return plan


def update_plan(plan_id: str, payload: Dict[str, Any], operator: Optional[str] = None) -> Plan:
    plan = get_plan(plan_id)
    before = PlanSerializer(plan).data
    if "summary" in payload:
        summary = (payload.get("summary") or "").strip()
        if not summary:
            raise ValidationError("summary must not be empty")
        plan.summary = summary
    if "related_requirements" in payload:
        plan.related_requirements = _ticket_list(payload.get("related_requirements"), "related_requirements")
    if "related_bugs" in payload:
        plan.related_bugs = _ticket_list(payload.get("related_bugs"), "related_bugs")
    with transaction.atomic():
        plan.save(update_fields=["summary", "related_requirements", "related_bugs", "updated_at"])
        audit.record(
            "plan", plan.id, "update", old_value=before, new_value=PlanSerializer(plan).data, operator=operator
        )
    return plan


def set_plan_status(plan_id: str, status: Optional[str], operator: Optional[str] = None) -> Plan:
    if status not in PLAN_STATUSES:
        raise ValidationError(f"invalid status: {status!r}")
    plan = get_plan(plan_id)
    previous = plan.status
    plan.status = status
    with transaction.atomic():
        plan.save(update_fields=["status", "updated_at"])
        audit.record(
            "plan",
            plan.id,
            "status_change",
            field="status",
            old_value=previous,
            new_value=status,
            operator=operator,
        )
    logger.info("Plan %s status %s -> %s", plan.version, previous, status)
    return plan


def deprecate_plan(plan_id: str, operator: Optional[str] = None) -> Plan:
    """Soft delete: the plan, its manifest and any region pins stay in place."""
    plan = get_plan(plan_id)
    previous = plan.status
    plan.status = "deprecated"
    with transaction.atomic():
        plan.save(update_fields=["status", "updated_at"])
        audit.record(
            "plan",
            plan.id,
            "delete",
            field="status",
            old_value=previous,
            new_value="deprecated",
            operator=operator,
        )
    logger.info("Plan %s deprecated", plan.version)
    return plan


# Manifests


def _validate_components(components: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    catalog = load_catalog()
    seen = set()
    cleaned = []
    for idx, component in enumerate(components):
        name = component["component_name"].strip()
        if not catalog.has_component(name):
            raise ValidationError(f"components[{idx}].component_name: unknown component {name}")
        if name in seen:
            raise ValidationError(f"components[{idx}].component_name: duplicate component {name}")
        seen.add(name)
        cleaned.append(
            {
                "component_name": name,
                "target_version": component["target_version"],
                "change_type": component.get("change_type") or "unchanged",
                "change_reason": component.get("change_reason") or "",
            }
        )
    return cleaned


def _replace_components(manifest: Manifest, components: List[Dict[str, Any]]) -> None:
    manifest.components.all().delete()
    ManifestComponent.objects.bulk_create(
        [ManifestComponent(manifest=manifest, **component) for component in components]
    )


def _create_manifest(plan: Plan, payload: Dict[str, Any], operator: Optional[str]) -> Manifest:
    _validate_schema_payload(payload, "manifest.v1.schema.json")
    if not payload.get("frontend_version"):
        raise ValidationError("frontend_version required")
    components = _validate_components(payload.get("components") or [])
    manifest = Manifest.objects.create(
        plan=plan,
        frontend_version=payload["frontend_version"],
        frontend_change_type=payload.get("frontend_change_type") or "unchanged",
        frontend_change_reason=payload.get("frontend_change_reason") or "",
        fe_be_check_status=payload.get("fe_be_check_status") or "ok",
        fe_be_check_message=payload.get("fe_be_check_message") or "",
        dependency_check_status=payload.get("dependency_check_status") or "ok",
        dependency_check_message=payload.get("dependency_check_message") or "",
    )
    _replace_components(manifest, components)
    audit.record(
        "manifest",
        manifest.id,
        "create",
        new_value={"plan_id": str(plan.id), "frontend_version": manifest.frontend_version},
        operator=operator,
    )
    return manifest


def get_manifest(plan_id: str) -> Manifest:
    plan = get_plan(plan_id)
    manifest = getattr(plan, "manifest", None)
    if manifest is None:
        raise NotFoundError("manifest not found")
    return manifest


def create_manifest(plan_id: str, payload: Dict[str, Any], operator: Optional[str] = None) -> Manifest:
    plan = get_plan(plan_id)
    if Manifest.objects.filter(plan=plan).exists():
        raise ConflictError(f"plan {plan.version} already has a manifest")
    with transaction.atomic():
        manifest = _create_manifest(plan, payload, operator)
    logger.info("Created manifest for plan %s", plan.version)
    return manifest


def update_manifest(plan_id: str, payload: Dict[str, Any], operator: Optional[str] = None) -> Manifest:
    manifest = get_manifest(plan_id)
    _validate_schema_payload(payload, "manifest.v1.schema.json")
    components = payload.get("components")
    cleaned = _validate_components(components) if isinstance(components, list) else None
    before = ManifestSerializer(manifest).data
    for field in MANIFEST_FIELDS:
        if field in payload and payload[field] is not None:
            setattr(manifest, field, payload[field])
    if not manifest.frontend_version:
        raise ValidationError("frontend_version must not be empty")
    with transaction.atomic():
        manifest.save()
        if cleaned is not None:
            _replace_components(manifest, cleaned)
        manifest.refresh_from_db()
        audit.record(
            "manifest",
            manifest.id,
            "update",
            old_value=before,
            new_value=ManifestSerializer(manifest).data,
            operator=operator,
        )
    return manifest


def copy_manifest(source_plan_id: str, payload: Dict[str, Any], operator: Optional[str] = None) -> Manifest:
    """Create a new draft plan whose manifest copies the source's versions."""
    source = get_manifest(source_plan_id)
    new_version = payload.get("new_version")
    if not new_version:
        raise ValidationError("new_version required")
    new_type = payload.get("new_type") or plan_type_for(validate_plan_version(new_version))
    new_version = validate_plan_version(new_version, new_type)
    _ensure_version_available(new_version)
    summary = (payload.get("new_summary") or "").strip() or f"Copied from {source.plan.version}"

    with transaction.atomic():
        plan = _insert_plan(
            version=new_version,
            type=new_type,
            status="draft",
            summary=summary,
        )
        manifest = Manifest.objects.create(
            plan=plan,
            frontend_version=source.frontend_version,
            frontend_change_type="unchanged",
        )
        _replace_components(
            manifest,
            [
                {
                    "component_name": component.component_name,
                    "target_version": component.target_version,
                    "change_type": "unchanged",
                    "change_reason": "",
                }
                for component in source.components.all()
            ],
        )
        audit.record(
            "plan",
            plan.id,
            "create",
            new_value={"copied_from": str(source.plan_id), "version": new_version},
            operator=operator,
        )
    logger.info("Copied manifest %s -> %s", source.plan.version, new_version)
    return manifest


def compare_manifests(plan_id: str, other_plan_id: Optional[str]) -> Dict[str, Any]:
    if not other_plan_id:
        raise ValidationError("compare_to required")
    manifest_a = get_manifest(plan_id)
    manifest_b = get_manifest(other_plan_id)
    diff = diff_manifests(ManifestSerializer(manifest_a).data, ManifestSerializer(manifest_b).data)
    return {
        "plan_a": {"id": str(manifest_a.plan_id), "version": manifest_a.plan.version},
        "plan_b": {"id": str(manifest_b.plan_id), "version": manifest_b.plan.version},
        "diff": diff,
        "total_changes": len(diff),
    }


def compare_plans(plan_id: str, other_plan_id: Optional[str]) -> Dict[str, Any]:
    if not other_plan_id:
        raise ValidationError("with required")
    plan_a = get_plan(plan_id)
    plan_b = get_plan(other_plan_id)
    basic_info = diff_basic_info(PlanSerializer(plan_a).data, PlanSerializer(plan_b).data)
    manifest_a = getattr(plan_a, "manifest", None)
    manifest_b = getattr(plan_b, "manifest", None)
    manifest_diff = None
    if manifest_a is not None and manifest_b is not None:
        manifest_diff = diff_manifests(ManifestSerializer(manifest_a).data, ManifestSerializer(manifest_b).data)
    return {
        "plan_a": {"id": str(plan_a.id), "version": plan_a.version},
        "plan_b": {"id": str(plan_b.id), "version": plan_b.version},
        "basic_info": basic_info,
        "manifest": manifest_diff,
        "total_changes": len(basic_info) + len(manifest_diff or []),
    }


# Regions


def list_regions(area: Optional[str] = None):
    qs = Region.objects.select_related("current_version__plan").order_by("area", "name")
    if area:
        if area not in REGION_AREAS:
            raise ValidationError(f"invalid area: {area!r}")
        qs = qs.filter(area=area)
    return qs


def get_region(region_id: str) -> Region:
    return _get_or_raise(
        Region.objects.select_related("current_version__plan__manifest"), "region", id=region_id
    )


def region_overview(area: Optional[str] = None) -> Dict[str, Any]:
    config = alignment_config()
    rows = []
    for region in list_regions(area):
        row = RegionSerializer(region).data
        pin = getattr(region, "current_version", None)
        row["drift"] = region_drift(pin.plan.version, config) if pin else None
        rows.append(row)
    return {
        "regions": rows,
        "baselines": dict(config.baselines),
        "version_lines": list(config.active_version_lines),
    }


def _flag(payload: Dict[str, Any], key: str) -> Optional[bool]:
    if key not in payload or payload[key] is None:
        return None
    if not isinstance(payload[key], bool):
        raise ValidationError(f"{key} must be a boolean")
    return payload[key]


def assign_region_version(region_id: str, payload: Dict[str, Any], operator: Optional[str] = None) -> RegionVersion:
    region = get_region(region_id)
    plan_id = payload.get("plan_id")
    backend_ready = _flag(payload, "backend_ready")
    frontend_ready = _flag(payload, "frontend_ready")
    plan = get_plan(plan_id) if plan_id else None

    pin = getattr(region, "current_version", None)
    old_plan_id = str(pin.plan_id) if pin else None
    with transaction.atomic():
        if pin is None:
            if plan is None:
                raise ValidationError("plan_id required for a region without a version")
            pin = RegionVersion.objects.create(
                region=region,
                plan=plan,
                backend_ready=bool(backend_ready),
                frontend_ready=bool(frontend_ready),
            )
        else:
            if plan is not None:
                pin.plan = plan
            if backend_ready is not None:
                pin.backend_ready = backend_ready
            if frontend_ready is not None:
                pin.frontend_ready = frontend_ready
            pin.last_updated_at = timezone.now()
            pin.save()
        audit.record(
            "region",
            region.id,
            "update",
            field="version",
            old_value=old_plan_id,
            new_value=str(pin.plan_id),
            operator=operator,
        )
    logger.info("Region %s pinned to %s", region.name, pin.plan.version)
    return pin


# Configuration


def list_config():
    return SystemConfig.objects.order_by("key")


def _validate_config_entry(key: str, value: str) -> None:
    if key == ACTIVE_VERSION_LINES_KEY:
        parse_active_version_lines(value)
    elif key.startswith(BASELINE_KEY_PREFIX):
        line = validate_version_line(key[len(BASELINE_KEY_PREFIX):])
        version = validate_plan_version(value)
        if version_line(version) != line:
            raise ValidationError(f"baseline {version} is not on version line {line}")


def upsert_config(key: Optional[str], value: Any, operator: Optional[str] = None) -> SystemConfig:
    key = str(key or "").strip()
    if value is None:
        value = ""
    elif not isinstance(value, str):
        value = json.dumps(value)
    value = value.strip()
    if not key or not value:
        raise ValidationError("key and value required")
    _validate_config_entry(key, value)
    with transaction.atomic():
        entry = SystemConfig.objects.filter(key=key).first()
        previous = entry.value if entry else None
        if entry is None:
            entry = SystemConfig.objects.create(key=key, value=value)
        else:
            entry.value = value
            entry.save(update_fields=["value", "updated_at"])
        audit.record(
            "config",
            key,
            "create" if previous is None else "update",
            field="value",
            old_value=previous,
            new_value=value,
            operator=operator,
        )
    logger.info("Config %s updated", key)
    return entry


def alignment_config() -> AlignmentConfig:
    entries = dict(SystemConfig.objects.values_list("key", "value"))
    return AlignmentConfig.from_entries(entries)


# Dashboard & audit


def dashboard(recent_plan_limit: int = 5, recent_log_limit: int = 10) -> Dict[str, Any]:
    plans = [
        {"id": str(plan_id), "version": version, "version_line": line, "status": status}
        for plan_id, version, line, status in Plan.objects.values_list("id", "version", "version_line", "status")
    ]
    regions = [{"id": str(region_id)} for region_id in Region.objects.values_list("id", flat=True)]
    pins = [
        {"region_id": str(region_id), "plan_id": str(plan_id)}
        for region_id, plan_id in RegionVersion.objects.values_list("region_id", "plan_id")
    ]
    result = compute_alignment(plans, regions, pins, alignment_config())
    recent_plans = Plan.objects.order_by("-updated_at")[:recent_plan_limit]
    recent_logs = AuditLog.objects.order_by("-created_at")[:recent_log_limit]
    result["recent_plans"] = PlanSerializer(recent_plans, many=True).data
    result["recent_logs"] = [
        {key: row[key] for key in ("id", "entity_type", "action", "field", "operator", "created_at")}
        for row in AuditLogSerializer(recent_logs, many=True).data
    ]
    return result


def list_audit_logs(entity_type: Optional[str] = None, entity_id: Optional[str] = None):
    qs = AuditLog.objects.order_by("-created_at")
    if entity_type:
        qs = qs.filter(entity_type=entity_type)
    if entity_id:
        qs = qs.filter(entity_id=entity_id)
    return qs
