from django.urls import path

from . import api

urlpatterns = [
    path("plans", api.plans_collection, name="plans-collection"),
    path("plans/<str:plan_id>", api.plan_detail, name="plan-detail"),
    path("plans/<str:plan_id>/status", api.plan_status, name="plan-status"),
    path("plans/<str:plan_id>/compare", api.plan_compare, name="plan-compare"),
    path("manifests/<str:plan_id>", api.manifest_detail, name="manifest-detail"),
    path("manifests/<str:plan_id>/diff", api.manifest_diff, name="manifest-diff"),
    path("manifests/<str:plan_id>/copy", api.manifest_copy, name="manifest-copy"),
    path("regions", api.regions_collection, name="regions-collection"),
    path("regions/<str:region_id>", api.region_detail, name="region-detail"),
    path("regions/<str:region_id>/version", api.region_version, name="region-version"),
    path("config", api.config_collection, name="config"),
    path("dashboard", api.dashboard, name="dashboard"),
    path("audit-logs", api.audit_logs, name="audit-logs"),
    path("catalog", api.catalog, name="catalog"),
]
