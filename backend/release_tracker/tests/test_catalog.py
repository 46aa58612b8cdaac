from django.test import SimpleTestCase

from release_tracker.catalog import load_catalog, parse_catalog
from release_tracker.errors import ValidationError


class CatalogTests(SimpleTestCase):
    def test_bundled_catalog(self):
        catalog = load_catalog()
        self.assertEqual(len(catalog.components), 22)
        self.assertEqual(len(catalog.regions), 28)
        self.assertTrue(catalog.has_component("ces-go-api"))
        gray = sorted(region.name for region in catalog.regions if region.is_gray)
        self.assertEqual(gray, sorted(["广州友好", "乌兰察布-汽车一"]))

    def test_payload_lists_areas(self):
        payload = load_catalog().to_payload()
        self.assertEqual(payload["areas"], ["domestic", "apac", "africa", "latam"])

    def test_rejects_unknown_area(self):
        with self.assertRaises(ValidationError):
            parse_catalog({"components": ["a"], "regions": [{"name": "x", "area": "europe"}]})

    def test_rejects_duplicate_components(self):
        with self.assertRaises(ValidationError):
            parse_catalog({"components": ["a", "a"], "regions": []})
