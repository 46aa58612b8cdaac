import json

from django.core.management.base import BaseCommand

from release_tracker.seeds import seed


class Command(BaseCommand):
    help = "Load the region catalog and, optionally, the sample 25.8 / 25.10 release data."

    def add_arguments(self, parser):
        parser.add_argument("--reset", action="store_true", help="Delete existing release data first")
        parser.add_argument("--catalog-only", action="store_true", help="Only load regions from the catalog")

    def handle(self, *args, **options):
        result = seed(reset=bool(options.get("reset")), catalog_only=bool(options.get("catalog_only")))
        self.stdout.write(json.dumps(result, indent=2))
