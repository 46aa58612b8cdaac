import json
from unittest.mock import patch

from django.test import TestCase

from release_tracker.models import AuditLog, Plan


class PlansApiTests(TestCase):
    def _post(self, payload, **extra):
        return self.client.post("/api/plans", data=json.dumps(payload), content_type="application/json", **extra)

    def _create(self, version="25.8.0", plan_type="Release", summary="baseline", **fields):
        response = self._post({"version": version, "type": plan_type, "summary": summary, **fields})
        self.assertEqual(response.status_code, 201, response.content)
        return response.json()["data"]

    def test_create_plan_starts_as_draft(self):
        plan = self._create(related_requirements=["REQ-1", " REQ-1 ", "REQ-2"])
        self.assertEqual(plan["status"], "draft")
        self.assertEqual(plan["version_line"], "25.8")
        self.assertEqual(plan["related_requirements"], ["REQ-1", "REQ-2"])
        self.assertIsNone(plan["manifest"])
        self.assertEqual(plan["regions"], [])

    def test_create_records_operator_in_audit_log(self):
        response = self._post({"version": "25.8.0", "type": "Release", "summary": "s"}, HTTP_X_OPERATOR="alice")
        self.assertEqual(response.status_code, 201)
        entry = AuditLog.objects.get(entity_type="plan", action="create")
        self.assertEqual(entry.operator, "alice")
        self.assertEqual(entry.entity_id, response.json()["data"]["id"])

    def test_operator_defaults_to_system(self):
        self._create()
        self.assertEqual(AuditLog.objects.get(entity_type="plan").operator, "system")

    def test_create_with_nested_manifest(self):
        plan = self._create(
            manifest={
                "frontend_version": "25.8.0",
                "frontend_change_type": "new",
                "components": [{"component_name": "guard", "target_version": "25.8.0", "change_type": "new"}],
            }
        )
        self.assertEqual(plan["manifest"]["frontend_version"], "25.8.0")
        self.assertEqual([c["component_name"] for c in plan["manifest"]["components"]], ["guard"])

    def test_duplicate_version_conflicts(self):
        self._create()
        response = self._post({"version": "25.8.0", "type": "Release", "summary": "again"})
        self.assertEqual(response.status_code, 409)
        self.assertFalse(response.json()["success"])
        self.assertEqual(Plan.objects.count(), 1)

    def test_rejects_type_segment_mismatch(self):
        response = self._post({"version": "25.8.1", "type": "Patch", "summary": "s"})
        self.assertEqual(response.status_code, 400)
        response = self._post({"version": "25.8", "type": "Release", "summary": "s"})
        self.assertEqual(response.status_code, 400)

    def test_rejects_missing_fields_and_bad_types(self):
        self.assertEqual(self._post({"version": "25.8.0", "type": "Release"}).status_code, 400)
        response = self._post({"version": "25.8.0", "type": "Hotfix", "summary": "s"})
        self.assertEqual(response.status_code, 400)
        self.assertIn("errors", response.json())

    def test_list_hides_deprecated_by_default(self):
        keep = self._create("25.8.0")
        gone = self._create("25.8.1", summary="old")
        self.client.delete(f"/api/plans/{gone['id']}")

        rows = self.client.get("/api/plans").json()["data"]
        self.assertEqual([row["id"] for row in rows], [keep["id"]])
        rows = self.client.get("/api/plans?include_deprecated=true").json()["data"]
        self.assertEqual(len(rows), 2)
        rows = self.client.get("/api/plans?status=deprecated").json()["data"]
        self.assertEqual([row["id"] for row in rows], [gone["id"]])

    def test_list_filters_by_type_and_search(self):
        self._create("25.8.0", summary="baseline")
        self._create("25.8.1.1", plan_type="Patch", summary="deadlock fix")
        rows = self.client.get("/api/plans?type=Patch").json()["data"]
        self.assertEqual([row["version"] for row in rows], ["25.8.1.1"])
        rows = self.client.get("/api/plans?search=deadlock").json()["data"]
        self.assertEqual([row["version"] for row in rows], ["25.8.1.1"])
        self.assertEqual(rows[0]["region_count"], 0)

    def test_deprecated_plan_still_retrievable(self):
        plan = self._create()
        response = self.client.delete(f"/api/plans/{plan['id']}")
        self.assertEqual(response.status_code, 200)
        detail = self.client.get(f"/api/plans/{plan['id']}").json()["data"]
        self.assertEqual(detail["status"], "deprecated")
        entry = AuditLog.objects.get(entity_type="plan", action="delete")
        self.assertEqual((entry.old_value, entry.new_value), ("draft", "deprecated"))

    def test_unknown_plan_is_404(self):
        self.assertEqual(self.client.get("/api/plans/00000000-0000-0000-0000-000000000000").status_code, 404)
        self.assertEqual(self.client.get("/api/plans/not-a-uuid").status_code, 404)

    def test_update_plan_fields(self):
        plan = self._create()
        response = self.client.put(
            f"/api/plans/{plan['id']}",
            data=json.dumps({"summary": "updated", "related_bugs": ["BUG-1"]}),
            content_type="application/json",
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["data"]["summary"], "updated")
        self.assertEqual(response.json()["data"]["related_bugs"], ["BUG-1"])
        self.assertTrue(AuditLog.objects.filter(entity_type="plan", action="update").exists())

    def test_status_change(self):
        plan = self._create()
        url = f"/api/plans/{plan['id']}/status"
        response = self.client.patch(url, data=json.dumps({"status": "testing"}), content_type="application/json")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["data"]["status"], "testing")
        entry = AuditLog.objects.get(action="status_change")
        self.assertEqual((entry.field, entry.old_value, entry.new_value), ("status", "draft", "testing"))

        response = self.client.patch(url, data=json.dumps({"status": "shipped"}), content_type="application/json")
        self.assertEqual(response.status_code, 400)

    def test_compare_plans(self):
        a = self._create("25.8.0", related_requirements=["R1", "R2"])
        b = self._create("25.8.1", related_requirements=["R2", "R1"], summary="next")
        data = self.client.get(f"/api/plans/{a['id']}/compare?with={b['id']}").json()["data"]
        self.assertEqual([row["field"] for row in data["basic_info"]], ["summary"])
        self.assertIsNone(data["manifest"])
        self.assertEqual(data["total_changes"], 1)

        response = self.client.get(f"/api/plans/{a['id']}/compare")
        self.assertEqual(response.status_code, 400)

    def test_method_not_allowed(self):
        plan = self._create()
        response = self.client.post(f"/api/plans/{plan['id']}/status")
        self.assertEqual(response.status_code, 405)

    def test_malformed_body_is_rejected_without_writing(self):
        plan = self._create()
        response = self.client.put(f"/api/plans/{plan['id']}", data="{not json", content_type="application/json")
        self.assertEqual(response.status_code, 400)
        self.assertFalse(AuditLog.objects.filter(entity_type="plan", action="update").exists())
        response = self.client.put(f"/api/plans/{plan['id']}", data="[1, 2]", content_type="application/json")
        self.assertEqual(response.status_code, 400)
        self.assertEqual(self._post_raw("{oops").status_code, 400)

    def _post_raw(self, body):
        return self.client.post("/api/plans", data=body, content_type="application/json")

    @patch("release_tracker.services._ensure_version_available")
    def test_racing_create_of_same_version_conflicts(self, _precheck):
        self._create()
        response = self._post({"version": "25.8.0", "type": "Release", "summary": "racing"})
        self.assertEqual(response.status_code, 409)
        self.assertEqual(Plan.objects.count(), 1)
        self.assertEqual(AuditLog.objects.filter(entity_type="plan", action="create").count(), 1)
