import json
import logging
from functools import wraps
from typing import Any, Dict, Optional

from django.core.paginator import Paginator
from django.http import HttpRequest, JsonResponse
from django.views.decorators.csrf import csrf_exempt

from . import services
from .catalog import load_catalog
from .errors import ReleaseTrackerError, ValidationError
from .serializers import (
    AuditLogSerializer,
    ManifestSerializer,
    PlanDetailSerializer,
    PlanListSerializer,
    PlanSerializer,
    RegionPinSerializer,
    RegionSerializer,
    SystemConfigSerializer,
)

logger = logging.getLogger(__name__)


def _parse_json(request: HttpRequest) -> Dict[str, Any]:
    """Decode a mutating request body; an empty body is an empty object."""
    if not request.body:
        return {}
    try:
        payload = json.loads(request.body.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError):
        raise ValidationError("request body must be valid JSON")
    if not isinstance(payload, dict):
        raise ValidationError("request body must be a JSON object")
    return payload


def _ok(data: Any, status: int = 200) -> JsonResponse:
    return JsonResponse({"success": True, "data": data}, status=status)


def _fail(error: str, status: int, errors: Optional[list] = None) -> JsonResponse:
    body: Dict[str, Any] = {"success": False, "error": error}
    if errors:
        body["errors"] = errors
    return JsonResponse(body, status=status)


def _operator(request: HttpRequest) -> Optional[str]:
    return getattr(request, "operator", None)


def _truthy(value: Optional[str]) -> bool:
    return (value or "").strip().lower() in ("1", "true", "yes")


def _paginate(request: HttpRequest, qs, key: str, serializer_class) -> JsonResponse:
    try:
        page_size = int(request.GET.get("page_size", 20))
        page_number = int(request.GET.get("page", 1))
    except ValueError:
        return _fail("page and page_size must be integers", 400)
    paginator = Paginator(qs, max(1, min(page_size, 200)))
    page = paginator.get_page(page_number)
    return _ok(
        {
            key: serializer_class(page.object_list, many=True).data,
            "count": paginator.count,
            "next": page.next_page_number() if page.has_next() else None,
            "prev": page.previous_page_number() if page.has_previous() else None,
        }
    )


def json_endpoint(*methods: str):
    """Restrict methods and turn domain errors into the response envelope."""

    def decorator(view_func):
        @csrf_exempt
        @wraps(view_func)
        def _wrapped(request: HttpRequest, *args, **kwargs):
            if request.method not in methods:
                return _fail("method not allowed", 405)
            try:
                return view_func(request, *args, **kwargs)
            except ReleaseTrackerError as exc:
                return _fail(exc.message, exc.status_code, exc.errors)
            except Exception:
                logger.exception("Unhandled error in %s %s", request.method, request.path)
                return _fail("internal error", 500)

        return _wrapped

    return decorator


@json_endpoint("GET", "POST")
def plans_collection(request: HttpRequest) -> JsonResponse:
    if request.method == "POST":
        plan = services.create_plan(_parse_json(request), operator=_operator(request))
        return _ok(PlanDetailSerializer(plan).data, status=201)
    qs = services.list_plans(
        status=request.GET.get("status"),
        plan_type=request.GET.get("type"),
        search=request.GET.get("search"),
        include_deprecated=_truthy(request.GET.get("include_deprecated")),
    )
    return _ok(PlanListSerializer(qs, many=True).data)


@json_endpoint("GET", "PUT", "PATCH", "DELETE")
def plan_detail(request: HttpRequest, plan_id: str) -> JsonResponse:
    if request.method in ("PUT", "PATCH"):
        plan = services.update_plan(plan_id, _parse_json(request), operator=_operator(request))
        return _ok(PlanSerializer(plan).data)
    if request.method == "DELETE":
        plan = services.deprecate_plan(plan_id, operator=_operator(request))
        return _ok(PlanSerializer(plan).data)
    return _ok(PlanDetailSerializer(services.get_plan(plan_id)).data)


@json_endpoint("PATCH")
def plan_status(request: HttpRequest, plan_id: str) -> JsonResponse:
    payload = _parse_json(request)
    plan = services.set_plan_status(plan_id, payload.get("status"), operator=_operator(request))
    return _ok(PlanSerializer(plan).data)


@json_endpoint("GET")
def plan_compare(request: HttpRequest, plan_id: str) -> JsonResponse:
    return _ok(services.compare_plans(plan_id, request.GET.get("with")))


@json_endpoint("GET", "POST", "PUT")
def manifest_detail(request: HttpRequest, plan_id: str) -> JsonResponse:
    if request.method == "POST":
        manifest = services.create_manifest(plan_id, _parse_json(request), operator=_operator(request))
        return _ok(ManifestSerializer(manifest).data, status=201)
    if request.method == "PUT":
        manifest = services.update_manifest(plan_id, _parse_json(request), operator=_operator(request))
        return _ok(ManifestSerializer(manifest).data)
    return _ok(ManifestSerializer(services.get_manifest(plan_id)).data)


@json_endpoint("GET")
def manifest_diff(request: HttpRequest, plan_id: str) -> JsonResponse:
    return _ok(services.compare_manifests(plan_id, request.GET.get("compare_to")))


@json_endpoint("POST")
def manifest_copy(request: HttpRequest, plan_id: str) -> JsonResponse:
    manifest = services.copy_manifest(plan_id, _parse_json(request), operator=_operator(request))
    return _ok(ManifestSerializer(manifest).data, status=201)


@json_endpoint("GET")
def regions_collection(request: HttpRequest) -> JsonResponse:
    return _ok(services.region_overview(area=request.GET.get("area")))


@json_endpoint("GET")
def region_detail(request: HttpRequest, region_id: str) -> JsonResponse:
    region = services.get_region(region_id)
    data = RegionSerializer(region).data
    pin = getattr(region, "current_version", None)
    manifest = getattr(pin.plan, "manifest", None) if pin else None
    data["manifest"] = ManifestSerializer(manifest).data if manifest else None
    return _ok(data)


@json_endpoint("PATCH")
def region_version(request: HttpRequest, region_id: str) -> JsonResponse:
    pin = services.assign_region_version(region_id, _parse_json(request), operator=_operator(request))
    return _ok(RegionPinSerializer(pin).data)


@json_endpoint("GET", "PUT")
def config_collection(request: HttpRequest) -> JsonResponse:
    if request.method == "PUT":
        payload = _parse_json(request)
        entry = services.upsert_config(payload.get("key"), payload.get("value"), operator=_operator(request))
        return _ok(SystemConfigSerializer(entry).data)
    return _ok({"configs": SystemConfigSerializer(services.list_config(), many=True).data})


@json_endpoint("GET")
def dashboard(request: HttpRequest) -> JsonResponse:
    return _ok(services.dashboard())


@json_endpoint("GET")
def audit_logs(request: HttpRequest) -> JsonResponse:
    qs = services.list_audit_logs(
        entity_type=request.GET.get("entity_type"),
        entity_id=request.GET.get("entity_id"),
    )
    return _paginate(request, qs, "audit_logs", AuditLogSerializer)


@json_endpoint("GET")
def catalog(request: HttpRequest) -> JsonResponse:
    return _ok(load_catalog().to_payload())
