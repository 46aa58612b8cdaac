from rest_framework import serializers

from .models import AuditLog, Manifest, ManifestComponent, Plan, Region, RegionVersion, SystemConfig


class PlanSerializer(serializers.ModelSerializer):
    class Meta:
        model = Plan
        fields = [
            "id",
            "version",
            "version_line",
            "type",
            "status",
            "summary",
            "related_requirements",
            "related_bugs",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class ManifestComponentSerializer(serializers.ModelSerializer):
    class Meta:
        model = ManifestComponent
        fields = ["id", "component_name", "target_version", "change_type", "change_reason"]


class ManifestSerializer(serializers.ModelSerializer):
    plan_id = serializers.UUIDField(read_only=True)
    plan_version = serializers.CharField(source="plan.version", read_only=True)
    components = ManifestComponentSerializer(many=True, read_only=True)

    class Meta:
        model = Manifest
        fields = [
            "id",
            "plan_id",
            "plan_version",
            "frontend_version",
            "frontend_change_type",
            "frontend_change_reason",
            "fe_be_check_status",
            "fe_be_check_message",
            "dependency_check_status",
            "dependency_check_message",
            "components",
            "created_at",
            "updated_at",
        ]


class PlanListSerializer(PlanSerializer):
    frontend_version = serializers.SerializerMethodField()
    frontend_change_type = serializers.SerializerMethodField()
    region_count = serializers.SerializerMethodField()

    class Meta(PlanSerializer.Meta):
        fields = PlanSerializer.Meta.fields + ["frontend_version", "frontend_change_type", "region_count"]
        read_only_fields = fields

    def _manifest(self, obj):
        return getattr(obj, "manifest", None)

    def get_frontend_version(self, obj):
        manifest = self._manifest(obj)
        return manifest.frontend_version if manifest else None

    def get_frontend_change_type(self, obj):
        manifest = self._manifest(obj)
        return manifest.frontend_change_type if manifest else None

    def get_region_count(self, obj):
        return obj.region_versions.count()


class RegionPinSerializer(serializers.ModelSerializer):
    plan_id = serializers.UUIDField(read_only=True)
    plan = PlanSerializer(read_only=True)

    class Meta:
        model = RegionVersion
        fields = ["id", "plan_id", "plan", "backend_ready", "frontend_ready", "last_updated_at"]


class RegionSerializer(serializers.ModelSerializer):
    current_version = serializers.SerializerMethodField()

    class Meta:
        model = Region
        fields = ["id", "name", "area", "is_gray", "current_version"]

    def get_current_version(self, obj):
        pin = getattr(obj, "current_version", None)
        return RegionPinSerializer(pin).data if pin else None


class PlanDetailSerializer(PlanSerializer):
    manifest = serializers.SerializerMethodField()
    regions = serializers.SerializerMethodField()

    class Meta(PlanSerializer.Meta):
        fields = PlanSerializer.Meta.fields + ["manifest", "regions"]
        read_only_fields = fields

    def get_manifest(self, obj):
        manifest = getattr(obj, "manifest", None)
        return ManifestSerializer(manifest).data if manifest else None

    def get_regions(self, obj):
        pins = obj.region_versions.select_related("region").order_by("region__area", "region__name")
        return [
            {
                "id": str(pin.region_id),
                "name": pin.region.name,
                "area": pin.region.area,
                "is_gray": pin.region.is_gray,
                "backend_ready": pin.backend_ready,
                "frontend_ready": pin.frontend_ready,
                "last_updated_at": serializers.DateTimeField().to_representation(pin.last_updated_at),
            }
            for pin in pins
        ]


class SystemConfigSerializer(serializers.ModelSerializer):
    class Meta:
        model = SystemConfig
        fields = ["id", "key", "value", "updated_at"]


class AuditLogSerializer(serializers.ModelSerializer):
    class Meta:
        model = AuditLog
        fields = [
            "id",
            "entity_type",
            "entity_id",
            "action",
            "field",
            "old_value",
            "new_value",
            "operator",
            "created_at",
        ]
