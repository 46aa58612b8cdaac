from django.db import migrations, models
import django.db.models.deletion
import django.utils.timezone
import uuid


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


class Migration(migrations.Migration):
    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Plan",
            fields=[
                ("id", models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False, serialize=False)),
                ("version", models.CharField(max_length=64, unique=True)),
                ("version_line", models.CharField(db_index=True, max_length=32)),
                (
                    "type",
                    models.CharField(choices=[("Release", "Release"), ("Patch", "Patch")], max_length=20),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("draft", "Draft"),
                            ("testing", "Testing"),
                            ("ready", "Ready"),
                            ("released", "Released"),
                            ("deprecated", "Deprecated"),
                        ],
                        default="draft",
                        max_length=20,
                    ),
                ),
                ("summary", models.TextField()),
                ("related_requirements", models.JSONField(blank=True, default=list)),
                ("related_bugs", models.JSONField(blank=True, default=list)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "ordering": ["-created_at"],
            },
        ),
        migrations.CreateModel(
            name="Region",
            fields=[
                ("id", models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False, serialize=False)),
                ("name", models.CharField(max_length=120, unique=True)),
                (
                    "area",
                    models.CharField(
                        choices=[
                            ("domestic", "Domestic"),
                            ("apac", "APAC"),
                            ("africa", "Africa"),
                            ("latam", "LATAM"),
                        ],
                        max_length=20,
                    ),
                ),
                ("is_gray", models.BooleanField(default=False)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "ordering": ["area", "name"],
            },
        ),
        migrations.CreateModel(
            name="SystemConfig",
            fields=[
                ("id", models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False, serialize=False)),
                ("key", models.CharField(max_length=120, unique=True)),
                ("value", models.TextField()),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "ordering": ["key"],
            },
        ),
        migrations.CreateModel(
            name="AuditLog",
            fields=[
                ("id", models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False, serialize=False)),
                (
                    "entity_type",
                    models.CharField(
                        choices=[
                            ("plan", "Plan"),
                            ("manifest", "Manifest"),
                            ("region", "Region"),
                            ("config", "Config"),
                        ],
                        max_length=20,
                    ),
                ),
                ("entity_id", models.CharField(max_length=120)),
                (
                    "action",
                    models.CharField(
                        choices=[
                            ("create", "Create"),
                            ("update", "Update"),
                            ("delete", "Delete"),
                            ("status_change", "Status change"),
                        ],
                        max_length=20,
                    ),
                ),
                ("field", models.CharField(blank=True, max_length=64)),
                ("old_value", models.TextField(blank=True, null=True)),
                ("new_value", models.TextField(blank=True, null=True)),
                ("operator", models.CharField(default="system", max_length=120)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [models.Index(fields=["entity_type", "entity_id"], name="audit_entity_idx")],
            },
        ),
        migrations.CreateModel(
            name="Manifest",
            fields=[
                ("id", models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False, serialize=False)),
                ("frontend_version", models.CharField(max_length=64)),
                (
                    "frontend_change_type",
                    models.CharField(choices=CHANGE_TYPE_CHOICES, default="unchanged", max_length=20),
                ),
                ("frontend_change_reason", models.TextField(blank=True)),
                ("fe_be_check_status", models.CharField(choices=CHECK_STATUS_CHOICES, default="ok", max_length=10)),
                ("fe_be_check_message", models.TextField(blank=True)),
                (
                    "dependency_check_status",
                    models.CharField(choices=CHECK_STATUS_CHOICES, default="ok", max_length=10),
                ),
                ("dependency_check_message", models.TextField(blank=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "plan",
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="manifest",
                        to="release_tracker.plan",
                    ),
                ),
            ],
        ),
        migrations.CreateModel(
            name="ManifestComponent",
            fields=[
                ("id", models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False, serialize=False)),
                ("component_name", models.CharField(max_length=120)),
                ("target_version", models.CharField(max_length=64)),
                ("change_type", models.CharField(choices=CHANGE_TYPE_CHOICES, default="unchanged", max_length=20)),
                ("change_reason", models.TextField(blank=True)),
                (
                    "manifest",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="components",
                        to="release_tracker.manifest",
                    ),
                ),
            ],
            options={
                "ordering": ["component_name"],
                "unique_together": {("manifest", "component_name")},
            },
        ),
        migrations.CreateModel(
            name="RegionVersion",
            fields=[
                ("id", models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False, serialize=False)),
                ("backend_ready", models.BooleanField(default=False)),
                ("frontend_ready", models.BooleanField(default=False)),
                ("last_updated_at", models.DateTimeField(default=django.utils.timezone.now)),
                (
                    "plan",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="region_versions",
                        to="release_tracker.plan",
                    ),
                ),
                (
                    "region",
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="current_version",
                        to="release_tracker.region",
                    ),
                ),
            ],
        ),
    ]
