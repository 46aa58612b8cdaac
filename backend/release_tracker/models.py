import uuid

from django.db import models
from django.utils import timezone

from .versioning import version_line

CHANGE_TYPE_CHOICES = [
    ("new", "New"),
    ("upgrade", "Upgrade"),
    ("unchanged", "Unchanged"),
    ("removed", "Removed"),
]

CHECK_STATUS_CHOICES = [
    ("ok", "OK"),
    ("warn", "Warning"),
    ("error", "Error"),
]


class Plan(models.Model):
    TYPE_CHOICES = [
        ("Release", "Release"),
        ("Patch", "Patch"),
    ]
    STATUS_CHOICES = [
        ("draft", "Draft"),
        ("testing", "Testing"),
        ("ready", "Ready"),
        ("released", "Released"),
        ("deprecated", "Deprecated"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    version = models.CharField(max_length=64, unique=True)
    version_line = models.CharField(max_length=32, db_index=True)
    type = models.CharField(max_length=20, choices=TYPE_CHOICES)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default="draft")
    summary = models.TextField()
    related_requirements = models.JSONField(default=list, blank=True)
    related_bugs = models.JSONField(default=list, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return f"{self.version} ({self.status})"

    def save(self, *args, **kwargs):
        self.version_line = version_line(self.version)
        super().save(*args, **kwargs)


class Manifest(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    plan = models.OneToOneField(Plan, on_delete=models.CASCADE, related_name="manifest")
    frontend_version = models.CharField(max_length=64)
    frontend_change_type = models.CharField(max_length=20, choices=CHANGE_TYPE_CHOICES, default="unchanged")
    frontend_change_reason = models.TextField(blank=True)
    fe_be_check_status = models.CharField(max_length=10, choices=CHECK_STATUS_CHOICES, default="ok")
    fe_be_check_message = models.TextField(blank=True)
    dependency_check_status = models.CharField(max_length=10, choices=CHECK_STATUS_CHOICES, default="ok")
    dependency_check_message = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self) -> str:
        return f"Manifest for {self.plan.version}"


class ManifestComponent(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    manifest = models.ForeignKey(Manifest, on_delete=models.CASCADE, related_name="components")
    component_name = models.CharField(max_length=120)
    target_version = models.CharField(max_length=64)
    change_type = models.CharField(max_length=20, choices=CHANGE_TYPE_CHOICES, default="unchanged")
    change_reason = models.TextField(blank=True)

    class Meta:
        ordering = ["component_name"]
        unique_together = ("manifest", "component_name")

    def __str__(self) -> str:
        return f"{self.component_name}@{self.target_version}"


class Region(models.Model):
    AREA_CHOICES = [
        ("domestic", "Domestic"),
        ("apac", "APAC"),
        ("africa", "Africa"),
        ("latam", "LATAM"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=120, unique=True)
    area = models.CharField(max_length=20, choices=AREA_CHOICES)
    is_gray = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["area", "name"]

    def __str__(self) -> str:
        return self.name


class RegionVersion(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    region = models.OneToOneField(Region, on_delete=models.CASCADE, related_name="current_version")
    plan = models.ForeignKey(Plan, on_delete=models.PROTECT, related_name="region_versions")
    backend_ready = models.BooleanField(default=False)
    frontend_ready = models.BooleanField(default=False)
    last_updated_at = models.DateTimeField(default=timezone.now)

    def __str__(self) -> str:
        return f"{self.region.name} -> {self.plan.version}"


class SystemConfig(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    key = models.CharField(max_length=120, unique=True)
    value = models.TextField()
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["key"]

    def __str__(self) -> str:
        return f"{self.key}={self.value[:60]}"


class AuditLog(models.Model):
    ENTITY_CHOICES = [
        ("plan", "Plan"),
        ("manifest", "Manifest"),
        ("region", "Region"),
        ("config", "Config"),
    ]
    ACTION_CHOICES = [
        ("create", "Create"),
        ("update", "Update"),
        ("delete", "Delete"),
        ("status_change", "Status change"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    entity_type = models.CharField(max_length=20, choices=ENTITY_CHOICES)
    entity_id = models.CharField(max_length=120)
    action = models.CharField(max_length=20, choices=ACTION_CHOICES)
    field = models.CharField(max_length=64, blank=True)
    old_value = models.TextField(null=True, blank=True)
    new_value = models.TextField(null=True, blank=True)
    operator = models.CharField(max_length=120, default="system")
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [models.Index(fields=["entity_type", "entity_id"], name="audit_entity_idx")]

    def __str__(self) -> str:
        return f"{self.entity_type}:{self.entity_id} {self.action}"
