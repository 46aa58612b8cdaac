import json
from io import StringIO

from django.core.management import CommandError, call_command
from django.db import connection
from django.test import TestCase
from django.test.utils import CaptureQueriesContext

from release_tracker.models import AuditLog, Plan, Region, RegionVersion, SystemConfig
from release_tracker.seeds import seed


class SeedTests(TestCase):
    def test_seed_loads_catalog_and_sample_data(self):
        result = seed()
        self.assertEqual(result, {"regions": 28, "plans": 7, "region_versions": 28})
        self.assertEqual(Plan.objects.get(version="25.8.1.1").type, "Patch")
        self.assertEqual(Plan.objects.get(version="25.10.2").status, "testing")
        manifest = Plan.objects.get(version="25.8.1").manifest
        self.assertEqual(manifest.components.count(), 22)
        self.assertEqual(manifest.components.get(component_name="ces-go-api").target_version, "25.8.1")
        self.assertEqual(SystemConfig.objects.get(key="baseline_25.10").value, "25.10.0")

    def test_seed_is_idempotent(self):
        seed()
        second = seed()
        self.assertEqual(second, {"regions": 0, "plans": 0, "region_versions": 0})
        self.assertEqual(Plan.objects.count(), 7)

    def test_catalog_only(self):
        result = seed(catalog_only=True)
        self.assertEqual(result, {"regions": 28})
        self.assertFalse(Plan.objects.exists())

    def test_reset_clears_existing_rows(self):
        seed()
        AuditLog.objects.create(entity_type="plan", entity_id="x", action="create")
        seed(reset=True, catalog_only=True)
        self.assertFalse(Plan.objects.exists())
        self.assertFalse(AuditLog.objects.exists())
        self.assertEqual(Region.objects.count(), 28)

    def test_seed_command_prints_json(self):
        out = StringIO()
        call_command("seed_release_tracker", "--catalog-only", stdout=out)
        self.assertEqual(json.loads(out.getvalue()), {"regions": 28})


class DashboardApiTests(TestCase):
    def setUp(self):
        seed()

    def test_dashboard_stats_for_sample_data(self):
        response = self.client.get("/api/dashboard")
        self.assertEqual(response.status_code, 200)
        data = response.json()["data"]
        stats = data["stats"]
        self.assertEqual(stats["total_plans"], 7)
        self.assertEqual(stats["released_plans"], 6)
        self.assertEqual(stats["testing_plans"], 1)
        self.assertEqual(stats["total_regions"], 28)
        self.assertEqual(stats["total_aligned_regions"], 6)
        self.assertEqual(stats["overall_alignment_rate"], 21)

        lines = {entry["version_line"]: entry for entry in data["version_lines"]}
        self.assertEqual(lines["25.8"]["total_regions"], 23)
        self.assertEqual(lines["25.8"]["at_baseline"], 3)
        self.assertEqual(lines["25.8"]["alignment_rate"], 13)
        self.assertEqual(lines["25.10"]["total_regions"], 5)
        self.assertEqual(lines["25.10"]["alignment_rate"], 60)
        self.assertEqual(lines["25.10"]["drift_counts"]["ahead"], 2)
        self.assertEqual(len(data["recent_plans"]), 5)

    def test_recent_logs_follow_changes(self):
        plan = Plan.objects.get(version="25.10.2")
        self.client.patch(
            f"/api/plans/{plan.id}/status",
            data=json.dumps({"status": "ready"}),
            content_type="application/json",
            HTTP_X_OPERATOR="bob",
        )
        logs = self.client.get("/api/dashboard").json()["data"]["recent_logs"]
        self.assertEqual(len(logs), 1)
        self.assertEqual((logs[0]["action"], logs[0]["operator"]), ("status_change", "bob"))
        self.assertNotIn("old_value", logs[0])

    def test_alignment_report_command(self):
        out = StringIO()
        call_command("alignment_report", "--line", "25.10", stdout=out)
        report = json.loads(out.getvalue())
        self.assertEqual([entry["version_line"] for entry in report["version_lines"]], ["25.10"])
        with self.assertRaises(CommandError):
            call_command("alignment_report", "--line", "24.1", stdout=StringIO())

    def test_unpinned_region_lowers_coverage(self):
        RegionVersion.objects.filter(region__name="约翰内斯堡").delete()
        data = self.client.get("/api/dashboard").json()["data"]
        lines = {entry["version_line"]: entry for entry in data["version_lines"]}
        self.assertEqual(lines["25.8"]["total_regions"], 22)
        self.assertEqual(lines["25.8"]["coverage"], 79)


class AuditLogApiTests(TestCase):
    def setUp(self):
        for idx in range(3):
            AuditLog.objects.create(entity_type="plan", entity_id=f"p{idx}", action="create")
        AuditLog.objects.create(entity_type="config", entity_id="baseline_25.8", action="update", field="value")

    def test_filters_and_pagination(self):
        data = self.client.get("/api/audit-logs?entity_type=plan&page_size=2").json()["data"]
        self.assertEqual(data["count"], 3)
        self.assertEqual(len(data["audit_logs"]), 2)
        self.assertEqual(data["next"], 2)
        self.assertIsNone(data["prev"])

        data = self.client.get("/api/audit-logs?entity_id=baseline_25.8").json()["data"]
        self.assertEqual([row["entity_type"] for row in data["audit_logs"]], ["config"])

    def test_bad_page_parameters(self):
        self.assertEqual(self.client.get("/api/audit-logs?page=x").status_code, 400)

    def test_catalog_endpoint(self):
        data = self.client.get("/api/catalog").json()["data"]
        self.assertEqual(len(data["components"]), 22)
        self.assertEqual(len(data["regions"]), 28)

    def test_only_the_requested_page_is_loaded(self):
        AuditLog.objects.bulk_create(
            [AuditLog(entity_type="plan", entity_id=f"bulk{idx}", action="update") for idx in range(50)]
        )
        with CaptureQueriesContext(connection) as queries:
            data = self.client.get("/api/audit-logs?page_size=1").json()["data"]
        self.assertEqual(len(data["audit_logs"]), 1)
        self.assertEqual(data["count"], 54)
        row_queries = [q["sql"] for q in queries.captured_queries if "COUNT(" not in q["sql"].upper()]
        audit_queries = [sql for sql in row_queries if "release_tracker_auditlog" in sql]
        self.assertEqual(len(audit_queries), 1)
        self.assertIn("LIMIT", audit_queries[0].upper())
