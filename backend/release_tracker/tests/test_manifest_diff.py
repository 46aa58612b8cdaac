from django.test import SimpleTestCase

from release_tracker.catalog import load_catalog
from release_tracker.errors import InvalidVersion, ValidationError
from release_tracker.manifest_diff import diff_basic_info, diff_manifests


def _manifest(frontend="25.8.0", overrides=None, default="25.8.0", names=None):
    overrides = overrides or {}
    names = names if names is not None else load_catalog().components
    return {
        "frontend_version": frontend,
        "components": [
            {"component_name": name, "target_version": overrides.get(name, default), "change_reason": ""}
            for name in names
        ],
    }


class DiffManifestsTests(SimpleTestCase):
    def test_single_component_upgrade_across_full_catalog(self):
        a = _manifest()
        b = _manifest(overrides={"ces-go-api": "25.8.1"})
        b["components"][16]["change_reason"] = "REQ-004"
        diff = diff_manifests(a, b)
        self.assertEqual(len(load_catalog().components), 22)
        self.assertEqual(
            diff,
            [
                {
                    "component_name": "ces-go-api",
                    "version_a": "25.8.0",
                    "version_b": "25.8.1",
                    "change_type": "changed",
                    "reason_a": "",
                    "reason_b": "REQ-004",
                }
            ],
        )

    def test_identical_manifests_have_empty_diff(self):
        manifest = _manifest(overrides={"task-center": "25.8.1.1"})
        self.assertEqual(diff_manifests(manifest, manifest), [])

    def test_diff_is_symmetric(self):
        a = _manifest(names=["guard", "poros"])
        b = _manifest(frontend="25.8.2", names=["guard", "metis"], default="25.8.1")
        forward = diff_manifests(a, b)
        backward = diff_manifests(b, a)
        self.assertEqual(
            [(row["component_name"], row["change_type"]) for row in forward],
            [("frontend", "changed"), ("guard", "changed"), ("metis", "added"), ("poros", "removed")],
        )
        self.assertEqual(
            [(row["component_name"], row["change_type"]) for row in backward],
            [("frontend", "changed"), ("guard", "changed"), ("metis", "removed"), ("poros", "added")],
        )
        for fwd, bwd in zip(forward, backward):
            self.assertEqual((fwd["version_a"], fwd["version_b"]), (bwd["version_b"], bwd["version_a"]))

    def test_missing_side_uses_placeholder(self):
        diff = diff_manifests(_manifest(names=[]), _manifest(names=["hermes"]))
        self.assertEqual(diff[0]["version_a"], "-")
        self.assertEqual(diff[0]["version_b"], "25.8.0")

    def test_change_type_alone_is_not_a_difference(self):
        a = _manifest(names=["guard"])
        b = _manifest(names=["guard"])
        b["components"][0]["change_type"] = "upgrade"
        self.assertEqual(diff_manifests(a, b), [])

    def test_rejects_duplicate_and_malformed_components(self):
        duplicate = _manifest(names=["guard", "guard"])
        with self.assertRaises(ValidationError):
            diff_manifests(duplicate, _manifest(names=[]))
        malformed = _manifest(names=["guard"], default="latest")
        with self.assertRaises(InvalidVersion):
            diff_manifests(_manifest(names=[]), malformed)


class DiffBasicInfoTests(SimpleTestCase):
    def test_ticket_lists_compare_as_sets(self):
        a = {"type": "Release", "status": "draft", "summary": "s", "related_requirements": ["R1", "R2"], "related_bugs": []}
        b = dict(a, related_requirements=["R2", "R1"])
        self.assertEqual(diff_basic_info(a, b), [])

    def test_reports_changed_fields(self):
        a = {"type": "Release", "status": "draft", "summary": "s", "related_requirements": [], "related_bugs": []}
        b = dict(a, status="released", related_bugs=["BUG-1"])
        self.assertEqual(
            diff_basic_info(a, b),
            [
                {"field": "status", "value_a": "draft", "value_b": "released"},
                {"field": "related_bugs", "value_a": [], "value_b": ["BUG-1"]},
            ],
        )
