import json
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from django.db import transaction

from .alignment import ACTIVE_VERSION_LINES_KEY, baseline_key
from .catalog import Catalog, load_catalog
from .models import AuditLog, Manifest, ManifestComponent, Plan, Region, RegionVersion, SystemConfig
from .versioning import plan_type_for

logger = logging.getLogger(__name__)

CHECK_OK = "配套检查通过"
DEPENDENCY_OK = "依赖检查通过"


@dataclass
class SamplePlan:
    version: str
    status: str
    summary: str
    frontend: Tuple[str, str, str]
    overrides: Dict[str, Tuple[str, str, str]] = field(default_factory=dict)
    default_component: Tuple[str, str, str] = ("", "unchanged", "")
    requirements: List[str] = field(default_factory=list)
    bugs: List[str] = field(default_factory=list)


SAMPLE_PLANS = [
    SamplePlan(
        version="25.8.0",
        status="released",
        summary="基线版本，所有组件版本统一为25.8.0",
        frontend=("25.8.0", "new", "基线版本"),
        default_component=("25.8.0", "new", "基线版本"),
        requirements=["REQ-001", "REQ-002", "REQ-003"],
    ),
    SamplePlan(
        version="25.8.1",
        status="released",
        summary="紧急需求，ces-go-api组件升级",
        frontend=("25.8.0", "unchanged", ""),
        default_component=("25.8.0", "unchanged", ""),
        overrides={"ces-go-api": ("25.8.1", "upgrade", "REQ-004: 紧急API优化需求")},
        requirements=["REQ-004"],
    ),
    SamplePlan(
        version="25.8.1.1",
        status="released",
        summary="问题补丁，task-center修复",
        frontend=("25.8.0", "unchanged", ""),
        default_component=("25.8.0", "unchanged", ""),
        overrides={
            "ces-go-api": ("25.8.1", "unchanged", ""),
            "task-center": ("25.8.1.1", "upgrade", "BUG-001: 任务调度死锁问题修复"),
        },
        bugs=["BUG-001"],
    ),
    SamplePlan(
        version="25.8.2",
        status="released",
        summary="前端连续需求更新，后端版本收敛",
        frontend=("25.8.2", "upgrade", "REQ-005: 新增监控面板; REQ-006: 告警配置优化"),
        default_component=("25.8.0", "unchanged", ""),
        overrides={
            "ces-go-api": ("25.8.1", "unchanged", ""),
            "task-center": ("25.8.1.1", "unchanged", ""),
            "alarm-manager": ("25.8.2", "upgrade", "REQ-006: 告警配置优化"),
            "admin-server": ("25.8.2", "upgrade", "BUG-002: 管理端权限问题修复"),
        },
        requirements=["REQ-005", "REQ-006"],
        bugs=["BUG-002"],
    ),
    SamplePlan(
        version="25.10.0",
        status="released",
        summary="新版本线基线，架构优化与性能提升",
        frontend=("25.10.0", "upgrade", "REQ-101: 全新UI架构; REQ-102: 性能优化"),
        default_component=("25.10.0", "upgrade", "REQ-103: 架构升级至25.10"),
        requirements=["REQ-101", "REQ-102", "REQ-103"],
    ),
    SamplePlan(
        version="25.10.1",
        status="released",
        summary="25.10灰度问题修复",
        frontend=("25.10.1", "upgrade", "BUG-101: UI渲染问题修复"),
        default_component=("25.10.0", "unchanged", ""),
        overrides={"admin-server": ("25.10.1", "upgrade", "BUG-101: 权限校验问题修复")},
        bugs=["BUG-101"],
    ),
    SamplePlan(
        version="25.10.2",
        status="testing",
        summary="25.10新特性：智能告警",
        frontend=("25.10.2", "upgrade", "REQ-104: 智能告警配置界面"),
        default_component=("25.10.0", "unchanged", ""),
        overrides={
            "admin-server": ("25.10.1", "unchanged", ""),
            "alarm-engine": ("25.10.2", "upgrade", "REQ-104: 智能告警引擎"),
            "alarm-manager": ("25.10.2", "upgrade", "REQ-104: 智能告警引擎"),
        },
        requirements=["REQ-104"],
    ),
]

# Region name -> plan version; regions not listed fall back to SAMPLE_DEFAULT_PIN.
SAMPLE_PINS = {
    "广州友好": "25.10.1",
    "乌兰察布-汽车一": "25.10.1",
    "北京四": "25.10.0",
    "广州": "25.10.0",
    "上海一": "25.10.0",
    "华东二": "25.8.2",
    "贵阳一": "25.8.2",
    "香港": "25.8.2",
    "新加坡": "25.8.1.1",
    "曼谷": "25.8.1.1",
    "雅加达": "25.8.1.1",
    "墨西哥城一": "25.8.1",
    "圣保罗一": "25.8.1",
    "约翰内斯堡": "25.8.0",
}
SAMPLE_DEFAULT_PIN = "25.8.1.1"

SAMPLE_CONFIG = {
    baseline_key("25.8"): "25.8.2",
    baseline_key("25.10"): "25.10.0",
    ACTIVE_VERSION_LINES_KEY: json.dumps(["25.8", "25.10"]),
}


def seed_regions(catalog: Optional[Catalog] = None) -> int:
    catalog = catalog or load_catalog()
    created = 0
    for entry in catalog.regions:
        _region, was_created = Region.objects.update_or_create(
            name=entry.name, defaults={"area": entry.area, "is_gray": entry.is_gray}
        )
        created += int(was_created)
    return created


def _seed_plan(sample: SamplePlan, catalog: Catalog) -> Tuple[Plan, bool]:
    existing = Plan.objects.filter(version=sample.version).first()
    if existing:
        return existing, False
    plan = Plan.objects.create(
        version=sample.version,
        type=plan_type_for(sample.version),
        status=sample.status,
        summary=sample.summary,
        related_requirements=sample.requirements,
        related_bugs=sample.bugs,
    )
    frontend_version, frontend_change, frontend_reason = sample.frontend
    manifest = Manifest.objects.create(
        plan=plan,
        frontend_version=frontend_version,
        frontend_change_type=frontend_change,
        frontend_change_reason=frontend_reason,
        fe_be_check_status="ok",
        fe_be_check_message=CHECK_OK,
        dependency_check_status="ok",
        dependency_check_message=DEPENDENCY_OK,
    )
    rows = []
    for name in catalog.components:
        target_version, change_type, reason = sample.overrides.get(name, sample.default_component)
        rows.append(
            ManifestComponent(
                manifest=manifest,
                component_name=name,
                target_version=target_version,
                change_type=change_type,
                change_reason=reason,
            )
        )
    ManifestComponent.objects.bulk_create(rows)
    return plan, True


def seed_sample_data(catalog: Optional[Catalog] = None) -> Dict[str, int]:
    catalog = catalog or load_catalog()
    plans = {}
    created_plans = 0
    for sample in SAMPLE_PLANS:
        plan, created = _seed_plan(sample, catalog)
        plans[plan.version] = plan
        created_plans += int(created)

    created_pins = 0
    for region in Region.objects.all():
        if RegionVersion.objects.filter(region=region).exists():
            continue
        plan = plans[SAMPLE_PINS.get(region.name, SAMPLE_DEFAULT_PIN)]
        RegionVersion.objects.create(region=region, plan=plan, backend_ready=True, frontend_ready=True)
        created_pins += 1

    for key, value in SAMPLE_CONFIG.items():
        SystemConfig.objects.get_or_create(key=key, defaults={"value": value})
    return {"plans": created_plans, "region_versions": created_pins}


def reset_release_data() -> None:
    AuditLog.objects.all().delete()
    RegionVersion.objects.all().delete()
    Region.objects.all().delete()
    ManifestComponent.objects.all().delete()
    Manifest.objects.all().delete()
    Plan.objects.all().delete()
    SystemConfig.objects.all().delete()


def seed(reset: bool = False, catalog_only: bool = False) -> Dict[str, int]:
    with transaction.atomic():
        if reset:
            reset_release_data()
            logger.warning("Release tracker data reset")
        result = {"regions": seed_regions()}
        if not catalog_only:
            result.update(seed_sample_data())
    logger.info("Seed applied: %s", result)
    return result
