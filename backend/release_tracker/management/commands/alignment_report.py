import json

from django.core.management.base import BaseCommand, CommandError

from release_tracker import services


class Command(BaseCommand):
    help = "Print version-line alignment statistics as JSON."

    def add_arguments(self, parser):
        parser.add_argument("--line", dest="line", help="Only report this version line, e.g. 25.8")

    def handle(self, *args, **options):
        result = services.dashboard()
        report = {"stats": result["stats"], "version_lines": result["version_lines"]}
        line = options.get("line")
        if line:
            report["version_lines"] = [entry for entry in report["version_lines"] if entry["version_line"] == line]
            if not report["version_lines"]:
                raise CommandError(f"version line {line} is not active or has no baseline plan")
        self.stdout.write(json.dumps(report, indent=2, ensure_ascii=False, default=str))
