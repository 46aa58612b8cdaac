from django.contrib import admin

from .models import AuditLog, Manifest, ManifestComponent, Plan, Region, RegionVersion, SystemConfig


class ManifestComponentInline(admin.TabularInline):
    model = ManifestComponent
    extra = 0
    fields = ("component_name", "target_version", "change_type", "change_reason")


@admin.register(Plan)
class PlanAdmin(admin.ModelAdmin):
    list_display = ("version", "version_line", "type", "status", "updated_at")
    list_filter = ("status", "type", "version_line")
    search_fields = ("version", "summary")
    readonly_fields = ("version_line", "created_at", "updated_at")
    ordering = ("-created_at",)


@admin.register(Manifest)
class ManifestAdmin(admin.ModelAdmin):
    list_display = ("plan", "frontend_version", "fe_be_check_status", "dependency_check_status", "updated_at")
    list_filter = ("fe_be_check_status", "dependency_check_status")
    search_fields = ("plan__version", "frontend_version")
    inlines = [ManifestComponentInline]


@admin.register(Region)
class RegionAdmin(admin.ModelAdmin):
    list_display = ("name", "area", "is_gray")
    list_filter = ("area", "is_gray")
    search_fields = ("name",)


@admin.register(RegionVersion)
class RegionVersionAdmin(admin.ModelAdmin):
    list_display = ("region", "plan", "backend_ready", "frontend_ready", "last_updated_at")
    list_filter = ("backend_ready", "frontend_ready", "plan__version_line")
    search_fields = ("region__name", "plan__version")


@admin.register(SystemConfig)
class SystemConfigAdmin(admin.ModelAdmin):
    list_display = ("key", "value", "updated_at")
    search_fields = ("key",)


@admin.register(AuditLog)
class AuditLogAdmin(admin.ModelAdmin):
    list_display = ("created_at", "entity_type", "entity_id", "action", "field", "operator")
    list_filter = ("entity_type", "action")
    search_fields = ("entity_id", "operator")
    readonly_fields = (
        "entity_type",
        "entity_id",
        "action",
        "field",
        "old_value",
        "new_value",
        "operator",
        "created_at",
    )

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
