# materials_core/apps.py

from django.apps import AppConfig


class MaterialsCoreConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "materials_core"
    verbose_name = "Materials testing workflow"

    def ready(self):
        from . import signals  # noqa
