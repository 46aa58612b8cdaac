from django.apps import AppConfig


class ReleaseTrackerConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "release_tracker"
    label = "release_tracker"
    verbose_name = "Release tracker"
